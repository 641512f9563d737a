import multiprocessing
import os

# App factory (flag gate + admin panel API)
wsgi_app = "app:create_app()"

# Bind / workers / threads
bind = os.getenv("BIND", "0.0.0.0:8080")
workers = int(os.getenv("WEB_CONCURRENCY", str(max(2, multiprocessing.cpu_count() // 2))))
threads = int(os.getenv("WEB_THREADS", "4"))

# Worker class & timeouts
# Admin calls block on the backend API (API_TIMEOUT); keep the worker timeout above it.
worker_class = "gthread"
timeout = int(os.getenv("WEB_TIMEOUT", "30"))
graceful_timeout = int(os.getenv("WEB_GRACEFUL_TIMEOUT", "20"))
keepalive = int(os.getenv("WEB_KEEPALIVE", "5"))

# Logging (app loggers write logs/flags.log themselves)
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
capture_output = True

# Behind the admin proxy
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1")

# Settings and env flag defaults are read once at import
preload_app = True

def post_fork(server, worker):
    server.log.info("Flags worker spawned (pid: %s)", worker.pid)

def when_ready(server):
    server.log.info("Flags service ready on %s", bind)
