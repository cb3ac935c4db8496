"""
Serializers for Checkout API endpoints.
"""

from rest_framework import serializers


class CheckoutRequestSerializer(serializers.Serializer):
    """Serializer for create checkout session request."""

    plan = serializers.ChoiceField(
        choices=["individual", "business"],
        error_messages={
            "invalid_choice": "Invalid plan specified",
            "required": "Invalid plan specified",
            "null": "Invalid plan specified",
        },
    )
    billingCycle = serializers.ChoiceField(
        choices=["monthly", "annual"], required=False, default="monthly"
    )
    seats = serializers.IntegerField(required=False, default=1, min_value=1)
    promoCode = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)


class CheckoutSessionResponseSerializer(serializers.Serializer):
    """Serializer for a created checkout session."""

    sessionId = serializers.CharField()
    url = serializers.URLField()


class CheckoutVerificationResponseSerializer(serializers.Serializer):
    """Serializer for a verified checkout session."""

    valid = serializers.BooleanField()
    email = serializers.EmailField(allow_null=True)
    planType = serializers.CharField()
    planName = serializers.CharField()
    subscriptionId = serializers.CharField(allow_null=True)
    customerId = serializers.CharField(allow_null=True)
