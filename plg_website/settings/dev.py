"""
Development settings for the PLG website backend.
"""

from .base import *  # noqa: F403, F401

DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "0.0.0.0"]

# Point DYNAMODB_ENDPOINT_URL at DynamoDB Local to develop offline
import os

DYNAMODB_TABLE_NAME = os.environ.get("DYNAMODB_TABLE_NAME", "hic-plg-development")

# CORS settings for development
CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

LOGGING["loggers"]["core"]["level"] = "DEBUG"  # noqa: F405
