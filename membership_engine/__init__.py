"""Center / class / member consistency service.

``membership_engine.app`` is resolved lazily so scripts and tests can import
the services without building the FastAPI application.
"""

__version__ = '0.1.0'
__all__ = ['app', '__version__']


def __getattr__(name: str):
    if name == 'app':
        from .main import app

        return app
    raise AttributeError(name)
