"""
Gunicorn configuration for the Narrate API.

Env vars that override defaults:
  PORT     : TCP port to bind
  WORKERS  : number of worker processes (default: 2)
  AI_TIMEOUT_SECONDS, SUMMARY_MAX_RETRIES, SUMMARY_RETRY_DELAY_SECONDS
           : a summary request may span every provider attempt, so the
             worker timeout is derived from them
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

workers = int(os.environ.get("WORKERS", "2"))
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

_ai_timeout = float(os.environ.get("AI_TIMEOUT_SECONDS", "30"))
_attempts = int(os.environ.get("SUMMARY_MAX_RETRIES", "3")) + 1
_retry_delay = float(os.environ.get("SUMMARY_RETRY_DELAY_SECONDS", "2"))

# Worst case for POST /summaries/weekly, plus headroom for the DB read.
timeout = int(_attempts * _ai_timeout + (_attempts - 1) * _retry_delay) + 15
graceful_timeout = 30

# stdout only; the app logs through the same streams.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'
