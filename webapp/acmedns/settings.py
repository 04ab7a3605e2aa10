"""
Django settings for acmedns.

Everything deployment specific comes from the environment.
"""
import os

from pathlib import Path


def env_bool(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).lower() in ["1", "true", "yes", "on"]


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-development-key")
DEBUG = env_bool("DJANGO_DEBUG")
ALLOWED_HOSTS = os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",")

INSTALLED_APPS = [
    "domains",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "acmedns.urls"
WSGI_APPLICATION = "acmedns.wsgi.application"

# acme-dns paths have no trailing slash
APPEND_SLASH = False

# Both engines go through the same store code, see domains/dialects.py
if os.environ.get("ACMEDNS_DB_ENGINE", "sqlite3") == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ.get("ACMEDNS_DB_NAME", "acmedns"),
            "USER": os.environ.get("ACMEDNS_DB_USER", "acmedns"),
            "PASSWORD": os.environ.get("ACMEDNS_DB_PASSWORD", ""),
            "HOST": os.environ.get("ACMEDNS_DB_HOST", "localhost"),
            "PORT": os.environ.get("ACMEDNS_DB_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("ACMEDNS_DB_NAME", str(BASE_DIR / "acme-dns.db")),
        }
    }

USE_TZ = True
TIME_ZONE = "UTC"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.environ.get("ACMEDNS_LOG_LEVEL", "INFO"),
    },
}

# Registered subdomains live under this domain
ACMEDNS_DOMAIN = os.environ.get("ACMEDNS_DOMAIN", "auth.example.org").rstrip(".").lower()

# Guards the management API, unset keeps it closed
ACMEDNS_ADMIN_API_KEY = os.environ.get("ACMEDNS_ADMIN_API_KEY", "")

# Take the client address from a proxy header instead of the socket
ACMEDNS_USE_HEADER = env_bool("ACMEDNS_USE_HEADER")
ACMEDNS_HEADER_NAME = os.environ.get("ACMEDNS_HEADER_NAME", "X-Forwarded-For")

ACMEDNS_BCRYPT_ROUNDS = int(os.environ.get("ACMEDNS_BCRYPT_ROUNDS", "10"))

# Resolvers used by the CNAME check
ACMEDNS_CHECK_NAMESERVERS = os.environ.get(
    "ACMEDNS_CHECK_NAMESERVERS", "8.8.8.8,8.8.4.4,1.1.1.1"
).split(",")
