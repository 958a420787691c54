from .base import *  # noqa
from .base import BASE_DIR, DB_ENGINE
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

DEBUG = False

# SQLite by default; DATABASE_ENGINE=postgres runs the suite (including the
# row-locking concurrency tests) against the DATABASE_* server from base settings
if DB_ENGINE.lower() != "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "test_db.sqlite3",
        }
    }

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}

# Gateways never reach the network in tests; clients are patched per test
STRIPE_SECRET_KEY = "sk_test_dummy"
STRIPE_WEBHOOK_SECRET = "whsec_test_secret"
BLIK_MERCHANT_ID = "11111"
BLIK_POS_ID = "11111"
BLIK_API_KEY = "p24-test-key"
BLIK_CRC = "p24-test-crc"
BLIK_SANDBOX = True
FRONTEND_URL = "http://frontend.test"
BACKEND_URL = "http://backend.test"
SUPPORT_EMAIL = "support@shop.test"
DEFAULT_PAYMENT_GATEWAY = "stripe"
CART_RESERVATION_TTL_MINUTES = 30
ORDER_PAYMENT_TIMEOUT_MINUTES = 1440

# Relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    scope: "10000/min" for scope in BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {})
}
