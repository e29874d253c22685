"""Gunicorn configuration for production deployment.

Run with: gunicorn -c gunicorn.conf.py ispdesk.main:app
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 1024

# Workers: (2 x cores) + 1, capped for the shared Postgres pool
workers = int(os.getenv("GUNICORN_WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 6)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 5000
max_requests_jitter = 500

# Revenue reports scan every customer in a city
timeout = 60
graceful_timeout = 30
keepalive = 5

proc_name = "ispdesk-api"

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)s'

# TLS is normally terminated upstream
keyfile = os.getenv("GUNICORN_KEYFILE")
certfile = os.getenv("GUNICORN_CERTFILE")


def when_ready(server):
    """Log once the master is accepting connections."""
    server.log.info("ispdesk-api ready with %s workers", workers)


def worker_exit(server, worker):
    server.log.info("Worker %s exited", worker.pid)
