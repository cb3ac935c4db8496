"""
Core module for shared infrastructure.

This module contains:
- Domain events, exceptions and the signed-in identity
- DynamoDB, Keygen, Stripe, SES and Cognito adapters
- Middleware, logging, metrics and tracing
"""
