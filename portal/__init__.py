"""
Portal module - the signed-in customer's self-service views.

This module handles:
- Account, license and device overviews
- Billing, invoices and the Stripe billing portal
- Profile settings, data export, account deletion and leaving an organization
"""
