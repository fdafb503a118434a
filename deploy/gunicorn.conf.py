import multiprocessing
import os

wsgi_app = "membership_engine.main:app"
bind = os.getenv("MEMBERSHIP_BIND", "127.0.0.1:8000")
workers = int(os.getenv("MEMBERSHIP_WORKERS", (multiprocessing.cpu_count() * 2) + 1))
worker_class = "uvicorn.workers.UvicornWorker"
# Large cascades commit several batches inside one request.
timeout = 120
graceful_timeout = 60
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
