"""
Gunicorn configuration for FinanceTracker production deployment.

Usage:
    gunicorn app.main:app -c gunicorn.conf.py
"""

import multiprocessing
import os

# Bind to all interfaces; APP_PORT overrides the default port
bind = f"0.0.0.0:{os.getenv('APP_PORT', '8000')}"

# Worker processes: CPU cores * 2 + 1 unless WEB_CONCURRENCY is set.
# Each worker holds its own SQLAlchemy pool (pool_size=5, max_overflow=10).
workers = int(os.getenv("WEB_CONCURRENCY", str(multiprocessing.cpu_count() * 2 + 1)))

# Use Uvicorn's ASGI worker for FastAPI
worker_class = "uvicorn.workers.UvicornWorker"

# Request timeout (seconds)
timeout = 30

# Keep-alive connections (seconds)
keepalive = 5

# Logging
accesslog = "-"  # stdout
errorlog = "-"   # stderr
loglevel = os.getenv("LOG_LEVEL", "info")
