"""
Billing module - Stripe checkout and subscription mirroring.

This module handles:
- Plans, pricing and promo codes
- Checkout session creation and verification
- Stripe webhook processing (license provisioning, dunning, disputes)
- Scheduled lifecycle emails (trial reminders, win-back)
"""
