import os

SERVICE_NAME = "booking-service"

BOOKING_DB = os.getenv("BOOKING_DB")
SQL_ECHO = (os.getenv("SQL_ECHO") or "false").strip().lower() in ("1", "true", "yes")

RABBIT_URL = os.getenv("RABBIT_URL")  # optional; events are skipped when unset
EXCHANGE_NAME = "domain_events"

REDIS_URL = os.getenv("REDIS_URL")  # optional; responsiveness metrics source

ALTERNATIVE_WINDOW_HOURS = float(os.getenv("ALTERNATIVE_WINDOW_HOURS") or "24")
MAX_ALTERNATIVES = int(os.getenv("MAX_ALTERNATIVES") or "5")

# Neutral average response time (hours) for providers without tracked data.
DEFAULT_RESPONSE_HOURS = float(os.getenv("DEFAULT_RESPONSE_HOURS") or "4")
