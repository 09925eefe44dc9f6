"""Runtime constants and environment-backed defaults for rytetime."""

import os
from dotenv import load_dotenv

load_dotenv()

# Cache
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory").lower()
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "300"))
CACHE_MAX_SIZE = int(os.getenv("CACHE_MAX_SIZE", "1000"))
CACHE_KEY_PREFIX = "tasks:"

# Queue
QUEUE_BACKEND = os.getenv("QUEUE_BACKEND", "memory").lower()
QUEUE_KEY = os.getenv("QUEUE_KEY", "notification:queue")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

# Worker
WORKER_BATCH_SIZE = int(os.getenv("WORKER_BATCH_SIZE", "10"))
WORKER_MAX_SCAN_PAGES = int(os.getenv("WORKER_MAX_SCAN_PAGES", "10"))
WORKER_INTERVAL_SECONDS = int(os.getenv("WORKER_INTERVAL_SECONDS", "60"))
WORKER_RECONCILE_EVERY_CYCLES = int(os.getenv("WORKER_RECONCILE_EVERY_CYCLES", "5"))
WORKER_TRIGGER_TOKEN = os.getenv("WORKER_TRIGGER_TOKEN", "")
DISPATCH_TIMEOUT_SECONDS = float(os.getenv("DISPATCH_TIMEOUT_SECONDS", "10"))
DISPATCH_MAX_WORKERS = int(os.getenv("DISPATCH_MAX_WORKERS", "4"))
RECONCILE_LIMIT = int(os.getenv("RECONCILE_LIMIT", "500"))

# Channels
RESEND_API_URL = "https://api.resend.com/emails"
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "notifications@rytetime.app")

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER", "")

PUSH_GATEWAY_URL = os.getenv("PUSH_GATEWAY_URL", "")
PUSH_GATEWAY_TOKEN = os.getenv("PUSH_GATEWAY_TOKEN", "")

# Tasks
DEFAULT_TIMEZONE = "UTC"
MAX_TITLE_LENGTH = 200
