"""
Gunicorn configuration for the Starbyte rewards service.

    gunicorn -c gunicorn.conf.py run:app
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Checkout holds a worker for the purchase, the fulfillment call and the
# receipt send, so keep the timeout above DELIVERY_FETCH_TIMEOUT + SMTP_TIMEOUT
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = int(os.getenv('GUNICORN_TIMEOUT', '60'))
keepalive = 5
graceful_timeout = 30

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'starbyte'

preload_app = True


def on_starting(server):
    print("[Gunicorn] Starting Starbyte server...")


def on_exit(server):
    print("[Gunicorn] Starbyte server shutting down...")
