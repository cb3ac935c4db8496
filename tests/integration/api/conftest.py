"""
Fixtures for the HTTP tests.

The views build their Keygen, Stripe and Cognito adapters at import time;
``gateways`` swaps them for the in-memory fakes on every view module.
"""
from types import SimpleNamespace

import pytest

VIEW_MODULES = (
    "api.v1.license.views",
    "api.v1.checkout.views",
    "api.v1.webhooks.views",
    "api.v1.portal.views",
)


@pytest.fixture
def gateways(monkeypatch, dynamodb_table, keygen, stripe_gateway, identity_admin):
    """Point every view module at the fakes, backed by the moto table."""
    replacements = {
        "_keygen": keygen,
        "_stripe": stripe_gateway,
        "_identity_admin": identity_admin,
    }
    for module in VIEW_MODULES:
        for name, fake in replacements.items():
            monkeypatch.setattr(f"{module}.{name}", fake, raising=False)
    return SimpleNamespace(keygen=keygen, stripe=stripe_gateway, identity_admin=identity_admin)
