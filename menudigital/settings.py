# /menudigital/menudigital/settings.py
"""
Menu Digital Django settings

CHANGE LOG
----------
2026-02-10 • Table locking settings
- TABLEORDERS_STALE_PENDING_MINUTES / TABLEORDERS_REAPER_INTERVAL_SECONDS drive the reaper.
- TABLEORDERS_REAPER_AUTOSTART starts the reaper inside the WSGI process (off by default;
  run `manage.py run_table_reaper` as a separate worker instead).

2026-01-28 • Payment gateway selection
- TABLEORDERS_PAYMENT_GATEWAY picks the adapter class. Defaults to Stripe when
  STRIPE_SECRET_KEY is present, the development gateway otherwise.

2026-01-20 • Database from env
- PostgreSQL when POSTGRES_DB is set (row locks are only real there), SQLite otherwise.
"""

from pathlib import Path
import os

from dotenv import load_dotenv

# ========= Base / Env =========
BASE_DIR = Path(__file__).resolve().parent.parent

ENV_CANDIDATES = [
    BASE_DIR / ".env",
    BASE_DIR.parent / ".env",
]
for _env in ENV_CANDIDATES:
    if _env.exists():
        load_dotenv(_env)
        print(f"[settings] Loaded env from: {_env}")
        break
else:
    load_dotenv()


def _env_bool(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# ========= Secret Key =========
DEBUG = _env_bool("DEBUG")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "")
if not SECRET_KEY:
    print("[settings] DJANGO_SECRET_KEY not set; using an insecure development key.")
    SECRET_KEY = "menudigital-insecure-development-key"

# ========= Hosts / CSRF / Security =========
ALLOWED_HOSTS = [
    "127.0.0.1",
    "localhost",
    "testserver",
] + (os.getenv("ADDITIONAL_HOSTS", "").split(",") if os.getenv("ADDITIONAL_HOSTS") else [])

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG
SECURE_SSL_REDIRECT = _env_bool("SECURE_SSL_REDIRECT")
SECURE_CONTENT_TYPE_NOSNIFF = True

# ========= Installed apps =========
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "tableorders",
]

# ========= Middleware =========
# CORS middleware stays at the very top.
MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

# ========= URL / Templates / WSGI =========
ROOT_URLCONF = "menudigital.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "menudigital.wsgi.application"

# ========= Database =========
if os.getenv("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB"),
            "USER": os.getenv("POSTGRES_USER", "postgres"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": int(os.getenv("POSTGRES_CONN_MAX_AGE", "60")),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
            "OPTIONS": {"timeout": 30},
        }
    }

# ========= I18N =========
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ========= Static =========
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedStaticFilesStorage"},
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ========= CORS / CSRF =========
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")

CORS_ALLOWED_ORIGINS = [
    FRONTEND_URL,
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]
for _o in os.getenv("CORS_ALLOWED_ORIGINS", "").split(","):
    _o = _o.strip()
    if _o and _o not in CORS_ALLOWED_ORIGINS:
        CORS_ALLOWED_ORIGINS.append(_o)

CORS_ALLOW_HEADERS = list({
    "accept",
    "accept-encoding",
    "authorization",
    "content-type",
    "origin",
    "user-agent",
    "x-csrftoken",
    "x-callback-token",
})
CSRF_TRUSTED_ORIGINS = list(CORS_ALLOWED_ORIGINS)

# ========= REST framework =========
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
}

# ========= Logging =========
LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "file": {
            "level": "INFO",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / "tableorders.log",
            "maxBytes": 1024 * 1024 * 15,
            "backupCount": 10,
            "formatter": "verbose",
            "encoding": "utf-8",
        },
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "tableorders": {
            "handlers": ["file", "console"],
            "level": os.getenv("TABLEORDERS_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "django": {
            "handlers": ["file"],
            "level": "ERROR",
            "propagate": True,
        },
    },
}

# ========= Payments =========
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_CURRENCY = os.getenv("STRIPE_CURRENCY", "idr").lower()

TABLEORDERS_WEBHOOK_TOKEN = os.getenv("TABLEORDERS_WEBHOOK_TOKEN", "")

TABLEORDERS_PAYMENT_GATEWAY = os.getenv(
    "TABLEORDERS_PAYMENT_GATEWAY",
    "tableorders.services.payment_gateway.StripeGateway"
    if STRIPE_SECRET_KEY
    else "tableorders.services.payment_gateway.DevelopmentGateway",
)

if not STRIPE_SECRET_KEY:
    print("[settings] STRIPE_SECRET_KEY not set; orders use the development payment gateway.")
elif not STRIPE_WEBHOOK_SECRET:
    print("[settings] STRIPE_WEBHOOK_SECRET not set; every webhook delivery will be rejected.")

# ========= Table locking =========
TABLEORDERS_STALE_PENDING_MINUTES = int(os.getenv("TABLEORDERS_STALE_PENDING_MINUTES", "15"))
TABLEORDERS_REAPER_INTERVAL_SECONDS = int(os.getenv("TABLEORDERS_REAPER_INTERVAL_SECONDS", "60"))
TABLEORDERS_REAPER_AUTOSTART = _env_bool("TABLEORDERS_REAPER_AUTOSTART")
