"""
Test settings for the PLG website backend.
"""

from .base import *  # noqa: F403, F401

DEBUG = False

ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Use in-memory cache for tests
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_BROKER_URL = "memory://"

AWS_REGION = "us-east-1"
DYNAMODB_TABLE_NAME = "plg-test"
DYNAMODB_ENDPOINT_URL = None
APP_SECRETS_ARN = None

COGNITO_USER_POOL_ID = "us-east-1_TestPool"
COGNITO_CLIENT_ID = "test-client-id"
COGNITO_REGION = "us-east-1"

KEYGEN_ACCOUNT_ID = "test-account"
KEYGEN_PRODUCT_TOKEN = "prod-test-token"
KEYGEN_WEBHOOK_SECRET = "keygen-test-secret"
KEYGEN_POLICY_INDIVIDUAL = "policy-individual"
KEYGEN_POLICY_BUSINESS = "policy-business"

STRIPE_SECRET_KEY = "sk_test_dummy"
STRIPE_WEBHOOK_SECRET = "whsec_test"
STRIPE_PRICES = {
    "individual": {"monthly": "price_ind_month", "annual": "price_ind_year"},
    "business": {"monthly": "price_biz_month", "annual": "price_biz_year"},
}

TRIAL_TOKEN_SECRET = "trial-test-secret"
APP_URL = "https://app.test"

# Disable logging during tests
LOGGING_CONFIG = None
