"""Gunicorn configuration for the course generation engine.

Usage:
    gunicorn main:app -c deploy/gunicorn.conf.py

The generation queue and key rotation state live in process memory, so the
service runs a single async worker: more workers would multiply the request
rate seen by each provider key.
"""

import os

# ─── Server socket ──────────────────────────────────────────────

bind = os.getenv("BIND", "0.0.0.0:5000")
backlog = 2048

# ─── Worker processes ───────────────────────────────────────────

workers = 1
worker_class = "uvicorn.workers.UvicornWorker"

# ─── Timeouts ───────────────────────────────────────────────────
#
# One lesson: content plus up to four feature calls, each spaced by the
# queue interval and bounded by REQUEST_TIMEOUT.  Progress streams send a
# heartbeat every 15s, so the worker timeout only has to cover one idle gap.

timeout = 180
graceful_timeout = 120  # let an in-flight lesson finish and persist
keepalive = 120

# ─── Logging ────────────────────────────────────────────────────

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info")
access_log_format = (
    '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" %(D)sμs'
)

proc_name = "course-generation-engine"

# ─── Server hooks ───────────────────────────────────────────────


def on_starting(server):
    server.log.info(
        "Starting course generation engine — workers=%d, timeout=%ds, bind=%s",
        workers,
        timeout,
        bind,
    )


def worker_exit(server, worker):
    server.log.info("Worker exit (pid: %s)", worker.pid)
