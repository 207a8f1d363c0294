"""Gunicorn configuration for IPGUARD production deployment."""

# Server socket
bind = '127.0.0.1:8080'

# The engine caches live in process memory: a single worker keeps one
# coherent cache, threads serve concurrent requests.
workers = 1
worker_class = 'gthread'
threads = 8

# Timeout
timeout = 30

# Logging
accesslog = '-'
errorlog = '-'
loglevel = 'info'
