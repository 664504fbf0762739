"""
Gunicorn configuration for the Phantom Pen API.

Env vars that override defaults:
  PORT     — TCP port to bind (default: 8000)
  WORKERS  — number of worker processes (default: 1)

Pending synthesis jobs are timers inside the worker process, so the
debounce only holds within one process. Keep WORKERS at 1 unless the job
runner is swapped for a shared queue.
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "1"))

# Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Upstream transcription of a long recording can take a while.
timeout = 120

# stdout only; the platform collects it.
loglevel = "info"
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

# Graceful restart: wait up to 30 s for in-flight requests to finish.
graceful_timeout = 30
