import os

db_url = os.environ.get("DB_URL", "sqlite://:memory:")
users_ms_url = os.environ.get("USERS_MS_URL", "http://localhost:8000")
billing_ms_url = os.environ.get("BILLING_MS_URL", "http://localhost:8004")
rooms_ms_url = os.environ.get("ROOMS_MS_URL", "http://localhost:8005")
shifts_ms_url = os.environ.get("SHIFTS_MS_URL", "http://localhost:8006")
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

HOTEL_TIMEZONE = os.environ.get("HOTEL_TIMEZONE", "America/Bogota")

# Front-desk policy knobs
OVERDUE_THRESHOLD_DAYS = int(os.environ.get("OVERDUE_THRESHOLD_DAYS", "3"))
REFUND_THRESHOLD_DAYS = int(os.environ.get("REFUND_THRESHOLD_DAYS", "5"))
VOUCHER_TTL_DAYS = int(os.environ.get("VOUCHER_TTL_DAYS", "30"))
VOUCHER_CODE_PREFIX = os.environ.get("VOUCHER_CODE_PREFIX", "BLU")
