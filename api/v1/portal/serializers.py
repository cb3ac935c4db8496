"""
Serializers for Portal API endpoints.

Most portal validation lives in the handlers; these serializers pick the
fields each route reads and document the request bodies.
"""

from rest_framework import serializers

INVALID_TEAM_ACTION = "Invalid action. Use invite, update_status, update_role, or resend_invite"
INVALID_TEAM_DELETE_TYPE = "Invalid type. Use member or invite"


class TeamActionRequestSerializer(serializers.Serializer):
    """Serializer for team POST; ``action`` selects which other fields apply."""

    action = serializers.ChoiceField(
        choices=["invite", "update_status", "update_role", "resend_invite"],
        error_messages={
            "invalid_choice": INVALID_TEAM_ACTION,
            "required": INVALID_TEAM_ACTION,
        },
    )
    email = serializers.CharField(required=False, allow_blank=True, default="")
    role = serializers.CharField(required=False, allow_blank=True, default="")
    status = serializers.CharField(required=False, allow_blank=True, default="")
    memberId = serializers.CharField(required=False, allow_blank=True, default="")
    inviteId = serializers.CharField(required=False, allow_blank=True, default="")


class TeamDeleteRequestSerializer(serializers.Serializer):
    """Serializer for team DELETE."""

    type = serializers.ChoiceField(
        choices=["member", "invite"],
        error_messages={
            "invalid_choice": INVALID_TEAM_DELETE_TYPE,
            "required": INVALID_TEAM_DELETE_TYPE,
        },
    )
    memberId = serializers.CharField(required=False, allow_blank=True, default="")
    inviteId = serializers.CharField(required=False, allow_blank=True, default="")


class SeatsUpdateRequestSerializer(serializers.Serializer):
    """Serializer for seats POST; the quantity is checked by the handler."""

    quantity = serializers.JSONField(required=False, allow_null=True)


class RemoveDeviceRequestSerializer(serializers.Serializer):
    """Serializer for devices DELETE."""

    machineId = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    licenseId = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UpdateSettingsRequestSerializer(serializers.Serializer):
    """
    Schema for settings PATCH. Omitted keys are left unchanged.

    Lengths (50, 10, 50) are checked by the handler so each field reports
    its own error.
    """

    givenName = serializers.CharField(required=False, allow_blank=True)
    middleName = serializers.CharField(required=False, allow_blank=True)
    familyName = serializers.CharField(required=False, allow_blank=True)
    notifications = serializers.JSONField(required=False)


class DeleteAccountRequestSerializer(serializers.Serializer):
    """Serializer for delete-account POST."""

    confirmation = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class LeaveOrganizationRequestSerializer(serializers.Serializer):
    """Serializer for leave-organization POST."""

    confirmation = serializers.CharField(required=False, allow_blank=True, allow_null=True)
