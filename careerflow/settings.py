from pathlib import Path
from datetime import datetime
import os
import sys

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

IS_TESTING = "test" in sys.argv or "pytest" in sys.modules

SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-change-me")
DEBUG = os.environ.get("DJANGO_DEBUG", "false").lower() == "true"
allowed_hosts_env = os.environ.get("DJANGO_ALLOWED_HOSTS", "")
if DEBUG:
    ALLOWED_HOSTS = ["*"]
else:
    ALLOWED_HOSTS = [host.strip() for host in allowed_hosts_env.split(",") if host.strip()] or ["*"]
CSRF_TRUSTED_ORIGINS = [orig for orig in os.environ.get("DJANGO_CSRF_TRUSTED_ORIGINS", "").split(",") if orig]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "ledger",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

if not DEBUG:
    MIDDLEWARE.insert(1, "whitenoise.middleware.WhiteNoiseMiddleware")
if not IS_TESTING:
    MIDDLEWARE.append("careerflow.middleware.AutomatedMarketSyncMiddleware")

ROOT_URLCONF = "careerflow.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "careerflow.wsgi.application"

db_path_env = os.environ.get("DJANGO_DB_PATH")
DB_PATH = Path(db_path_env) if db_path_env else BASE_DIR / "db.sqlite3"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": DB_PATH,
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-au"
system_tz = datetime.now().astimezone().tzinfo
SYSTEM_TZ_NAME = getattr(system_tz, "key", str(system_tz))
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", SYSTEM_TZ_NAME)
USE_I18N = True
USE_TZ = True

STATIC_URL = os.environ.get("DJANGO_STATIC_URL", "static/")
STATIC_ROOT = BASE_DIR / "staticfiles"
if DEBUG or IS_TESTING:
    STATIC_BACKEND = "django.contrib.staticfiles.storage.StaticFilesStorage"
else:
    STATIC_BACKEND = "whitenoise.storage.CompressedManifestStaticFilesStorage"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": STATIC_BACKEND},
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
}

# Earnings engine
CAREERFLOW_CONCESSIONAL_CAP = os.environ.get("CAREERFLOW_CONCESSIONAL_CAP", "30000")
CAREERFLOW_SUPER_RETURN = os.environ.get("CAREERFLOW_SUPER_RETURN", "0.07")
CAREERFLOW_SUPER_PROJECTION_YEARS = int(os.environ.get("CAREERFLOW_SUPER_PROJECTION_YEARS", "30"))
CAREERFLOW_LOYALTY_MATERIALITY = os.environ.get("CAREERFLOW_LOYALTY_MATERIALITY", "1000")
# "legacy" or "hourly-derived"
CAREERFLOW_OVERTIME_FORMULA = os.environ.get("CAREERFLOW_OVERTIME_FORMULA", "legacy")
CAREERFLOW_MARKET_DATA_URL = os.environ.get("CAREERFLOW_MARKET_DATA_URL", "")
CAREERFLOW_MARKET_MAX_AGE_DAYS = int(os.environ.get("CAREERFLOW_MARKET_MAX_AGE_DAYS", "30"))

LOG_LEVEL = os.environ.get("DJANGO_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        }
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
}
