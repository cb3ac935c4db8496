"""
Licenses module - Customer profiles and Keygen-backed licenses.

This module handles:
- Customer profiles mirrored from Stripe and Cognito
- License records mirrored from Keygen
- License key validation and status checks
- Keygen webhook processing
"""
