"""
Production Server Configuration

Uvicorn workers under Gunicorn for the Customer Analytics API.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", f"0.0.0.0:{os.getenv('PORT', '4001')}")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 10000
max_requests_jitter = 1000
# full rebuilds run inside the request
timeout = int(os.getenv("GUNICORN_TIMEOUT", 600))
keepalive = 5
graceful_timeout = 30

proc_name = "customer-analytics-api"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
