from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Center Membership Engine'
    app_env: str = 'local'
    app_timezone: str = 'Europe/Madrid'
    database_url: str = 'sqlite:///./membership.db'
    batch_write_limit: int = 500
    access_code_max_attempts: int = 10
    cascade_conflict_retries: int = 3
    detach_members_on_center_delete: bool = True
    actor_header: str = 'x-actor-id'
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
