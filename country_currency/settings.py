"""
Django settings for country_currency project.

Every value can be overridden from the environment (or a `.env` file at the
project root).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

load_dotenv(BASE_DIR / ".env")


def env_bool(name, default=False):
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


def env_float(name, default=None):
    value = os.getenv(name)
    if value in (None, ""):
        return default
    return float(value)


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "django-insecure-country-currency-dev-key")

DEBUG = env_bool("DJANGO_DEBUG", False)

ALLOWED_HOSTS = [h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",") if h.strip()]


# Application definition

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'countries.apps.CountriesConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'country_currency.urls'

WSGI_APPLICATION = 'country_currency.wsgi.application'


# Database

DB_ENGINE = os.getenv("DB_ENGINE", "django.db.backends.sqlite3")

if DB_ENGINE.endswith("sqlite3"):
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.getenv("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME': os.getenv("DB_NAME", "countries"),
            'USER': os.getenv("DB_USER", ""),
            'PASSWORD': os.getenv("DB_PASSWORD", ""),
            'HOST': os.getenv("DB_HOST", "localhost"),
            'PORT': os.getenv("DB_PORT", ""),
            'CONN_MAX_AGE': int(os.getenv("DB_CONN_MAX_AGE", "60")),
        }
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# Internationalization

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = False
USE_TZ = True


# Django REST Framework: JSON only, no authentication layer

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'DEFAULT_PARSER_CLASSES': ['rest_framework.parsers.JSONParser'],
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'UNAUTHENTICATED_USER': None,
}


# Upstream data sources

COUNTRIES_API_URL = os.getenv(
    "COUNTRIES_API_URL",
    "https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies",
)
EXCHANGE_RATES_API_URL = os.getenv("EXCHANGE_RATES_API_URL", "https://open.er-api.com/v6/latest/USD")
UPSTREAM_TIMEOUT = env_float("UPSTREAM_TIMEOUT", 10.0)


# Refresh pipeline

GDP_MULTIPLIER_MIN = env_float("GDP_MULTIPLIER_MIN", 1000.0)
GDP_MULTIPLIER_MAX = env_float("GDP_MULTIPLIER_MAX", 2000.0)
SUMMARY_CACHE_DIR = os.getenv("SUMMARY_CACHE_DIR", str(BASE_DIR / "cache"))
SUMMARY_TOP_N = int(os.getenv("SUMMARY_TOP_N", "5"))
# None leaves the refresh unbounded
REFRESH_DEADLINE_SECONDS = env_float("REFRESH_DEADLINE_SECONDS")


# Logging

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'countries': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
    },
}
