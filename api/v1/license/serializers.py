"""
Serializers for License API endpoints.

Required fields are checked in the views so each route can return its own
error message; these serializers coerce types and document the bodies.
"""

from rest_framework import serializers


class TrialInitRequestSerializer(serializers.Serializer):
    """Serializer for trial init request."""

    fingerprint = serializers.CharField(required=False, allow_blank=True, default="")


class TrialIssuedResponseSerializer(serializers.Serializer):
    """Serializer for an issued trial token."""

    trialToken = serializers.CharField()
    expiresAt = serializers.DateTimeField()
    remainingDays = serializers.IntegerField()
    issuedAt = serializers.DateTimeField()


class TrialStatusResponseSerializer(serializers.Serializer):
    """Serializer for a device's trial history."""

    hasTrialHistory = serializers.BooleanField()
    canStartTrial = serializers.BooleanField()
    isExpired = serializers.BooleanField(required=False)
    remainingDays = serializers.IntegerField(required=False)
    expiresAt = serializers.DateTimeField(required=False)


class ValidateLicenseRequestSerializer(serializers.Serializer):
    """Serializer for validate request; without a license key the trial flow runs."""

    licenseKey = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    fingerprint = serializers.CharField(required=False, allow_blank=True, default="")
    machineId = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ActivateLicenseRequestSerializer(serializers.Serializer):
    """Serializer for activate request."""

    licenseKey = serializers.CharField(required=False, allow_blank=True, default="")
    fingerprint = serializers.CharField(required=False, allow_blank=True, default="")
    deviceName = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=200
    )
    platform = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=50
    )


class DeactivateRequestSerializer(serializers.Serializer):
    """Serializer for deactivate request."""

    licenseId = serializers.CharField(required=False, allow_blank=True, default="")
    machineId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    fingerprint = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class HeartbeatRequestSerializer(serializers.Serializer):
    """Serializer for heartbeat request; without a license key it is a trial heartbeat."""

    fingerprint = serializers.CharField(required=False, allow_blank=True, default="")
    licenseKey = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    machineId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    sessionId = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class LicenseCheckResponseSerializer(serializers.Serializer):
    """Serializer for license check by email."""

    status = serializers.CharField()
    licenseKey = serializers.CharField(allow_null=True)
    licenseId = serializers.CharField(required=False)
    plan = serializers.CharField(required=False)
    email = serializers.EmailField()
