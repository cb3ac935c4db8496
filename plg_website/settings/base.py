"""
Base Django settings for the PLG website backend.

These settings are shared across all environments.
Environment-specific overrides are in dev.py, test.py, and prod.py
"""
import os
from pathlib import Path

from plg_website.settings.logging import get_logging_config

# Build paths inside the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get(
    "DJANGO_SECRET_KEY", "django-insecure-plg-7c1u!x2m$q0r9e^d8h5k@w3v6z&n4j(b)t_y+f%s"
)

ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

# Application definition
INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    # Third party
    "rest_framework",
    "drf_spectacular",
    # Local apps
    "plg_website.apps.PlgWebsiteConfig",
    "core",
    "trials",
    "licenses",
    "activations",
    "billing",
    "organizations",
    "portal",
    "api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    # Custom middleware
    "core.middleware.observability.ObservabilityMiddleware",
    "core.middleware.metrics.MetricsMiddleware",
    "core.middleware.auth.CognitoAuthenticationMiddleware",
]

ROOT_URLCONF = "plg_website.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

# Only Django internals touch the relational database; business data lives in DynamoDB
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# REST Framework
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "api.exceptions.custom_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

# drf-spectacular settings
SPECTACULAR_SETTINGS = {
    "TITLE": "PLG Website API",
    "DESCRIPTION": (
        "Backend for the product-led-growth website. "
        "Covers trials, license activation and heartbeats, checkout, "
        "Stripe and Keygen webhooks, and the customer portal."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
    "SCHEMA_PATH_PREFIX": "/api",
    "TAGS": [
        {"name": "License API", "description": "Trials, activation, heartbeat and validation"},
        {"name": "Checkout", "description": "Stripe checkout sessions"},
        {"name": "Webhooks", "description": "Stripe and Keygen webhook receivers"},
        {"name": "Portal", "description": "Authenticated customer portal"},
        {"name": "Health", "description": "Health check endpoints"},
    ],
}

# Redis Cache
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": os.environ.get("REDIS_URL", "redis://127.0.0.1:6379/1"),
        "OPTIONS": {
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
        },
    }
}

# Celery
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
CELERY_TASK_ALWAYS_EAGER = False
CELERY_TASK_SERIALIZER = "json"

# AWS
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
DYNAMODB_TABLE_NAME = os.environ.get("DYNAMODB_TABLE_NAME", "hic-plg-production")
DYNAMODB_ENDPOINT_URL = os.environ.get("DYNAMODB_ENDPOINT_URL")
APP_SECRETS_ARN = os.environ.get("APP_SECRETS_ARN")
SECRETS_CACHE_TTL = 300

# Cognito
COGNITO_USER_POOL_ID = os.environ.get("COGNITO_USER_POOL_ID", "")
COGNITO_CLIENT_ID = os.environ.get("COGNITO_CLIENT_ID", "")
COGNITO_REGION = os.environ.get("COGNITO_REGION", AWS_REGION)
COGNITO_JWKS_CACHE_TTL = 3600

# Keygen
KEYGEN_ACCOUNT_ID = os.environ.get("KEYGEN_ACCOUNT_ID", "")
KEYGEN_PRODUCT_TOKEN = os.environ.get("KEYGEN_PRODUCT_TOKEN", "")
KEYGEN_WEBHOOK_SECRET = os.environ.get("KEYGEN_WEBHOOK_SECRET", "")
KEYGEN_POLICY_INDIVIDUAL = os.environ.get("KEYGEN_POLICY_INDIVIDUAL", "")
KEYGEN_POLICY_BUSINESS = os.environ.get("KEYGEN_POLICY_BUSINESS", "")
KEYGEN_TIMEOUT = 10

# Stripe
STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "")
STRIPE_PRICES = {
    "individual": {
        "monthly": os.environ.get("STRIPE_PRICE_INDIVIDUAL_MONTHLY", ""),
        "annual": os.environ.get("STRIPE_PRICE_INDIVIDUAL_ANNUAL", ""),
    },
    "business": {
        "monthly": os.environ.get("STRIPE_PRICE_BUSINESS_MONTHLY", ""),
        "annual": os.environ.get("STRIPE_PRICE_BUSINESS_ANNUAL", ""),
    },
}

# Trials and activations
TRIAL_TOKEN_SECRET = os.environ.get("TRIAL_TOKEN_SECRET", "")
CONCURRENT_DEVICE_WINDOW_HOURS = float(os.environ.get("CONCURRENT_DEVICE_WINDOW_HOURS", "2"))

# Email
APP_URL = os.environ.get("APP_URL", "http://localhost:3000")
SES_FROM_EMAIL = os.environ.get("SES_FROM_EMAIL", "noreply@hic-ai.com")
ALERT_EMAIL = os.environ.get("ALERT_EMAIL", "alerts@hic-ai.com")

# Observability
LOGGING = get_logging_config(os.environ.get("ENVIRONMENT", "development"))
