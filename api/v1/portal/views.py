"""
Customer portal API views.

Every route acts on the signed-in Cognito user: dashboard status, the
license and its devices, billing, team and seat management for Business
organizations, and account settings.
"""

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from activations.application.handlers.deactivate_device_handler import DeactivateDeviceHandler
from activations.infrastructure.repositories.dynamodb_device_repository import (
    DynamoDBDeviceRepository,
)
from api.v1.identity import current_user, optional_user
from api.v1.portal.serializers import (
    DeleteAccountRequestSerializer,
    LeaveOrganizationRequestSerializer,
    RemoveDeviceRequestSerializer,
    SeatsUpdateRequestSerializer,
    TeamActionRequestSerializer,
    TeamDeleteRequestSerializer,
    UpdateSettingsRequestSerializer,
)
from core.infrastructure.cognito import CognitoAdmin
from core.infrastructure.keygen import KeygenClient
from core.infrastructure.stripe_gateway import StripeClient
from core.instrumentation import Status, StatusCode, get_tracer
from core.logging import ApiLogger
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)
from organizations.application.commands.accept_invite import AcceptInviteCommand
from organizations.application.commands.invite_member import InviteMemberCommand
from organizations.application.commands.manage_invite import (
    CancelInviteCommand,
    ResendInviteCommand,
)
from organizations.application.commands.remove_member import RemoveMemberCommand
from organizations.application.commands.update_member import (
    UpdateMemberRoleCommand,
    UpdateMemberStatusCommand,
)
from organizations.application.commands.update_seats import UpdateSeatsCommand
from organizations.application.handlers.invite_handlers import (
    AcceptInviteHandler,
    GetInviteHandler,
)
from organizations.application.handlers.seat_handlers import GetSeatsHandler, UpdateSeatsHandler
from organizations.application.handlers.team_handlers import (
    CancelInviteHandler,
    GetTeamHandler,
    InviteMemberHandler,
    RemoveMemberHandler,
    ResendInviteHandler,
    UpdateMemberRoleHandler,
    UpdateMemberStatusHandler,
)
from organizations.application.queries.get_invite import GetInviteQuery
from organizations.application.queries.get_seats import GetSeatsQuery
from organizations.application.queries.get_team import GetTeamQuery
from organizations.infrastructure.repositories.dynamodb_organization_repository import (
    DynamoDBOrganizationRepository,
)
from portal.application.commands.account_commands import (
    CancelAccountDeletionCommand,
    CreateBillingPortalSessionCommand,
    LeaveOrganizationCommand,
    RequestAccountDeletionCommand,
    UpdateSettingsCommand,
)
from portal.application.commands.device_commands import RemoveDeviceCommand
from portal.application.handlers.account_handlers import (
    GetPortalLicenseHandler,
    GetPortalStatusHandler,
)
from portal.application.handlers.billing_handlers import (
    CreateBillingPortalSessionHandler,
    GetBillingHandler,
    ListInvoicesHandler,
)
from portal.application.handlers.device_handlers import ListDevicesHandler, RemoveDeviceHandler
from portal.application.handlers.settings_handlers import (
    CancelAccountDeletionHandler,
    ExportDataHandler,
    GetSettingsHandler,
    LeaveOrganizationHandler,
    RequestAccountDeletionHandler,
    UpdateSettingsHandler,
)
from portal.application.queries.portal_queries import (
    ExportDataQuery,
    GetBillingQuery,
    GetPortalLicenseQuery,
    GetPortalStatusQuery,
    GetSettingsQuery,
    ListDevicesQuery,
    ListInvoicesQuery,
)

# Initialize repositories (in production, use DI container)
_keygen = KeygenClient()
_stripe = StripeClient()
_identity_admin = CognitoAdmin()
_customer_repo = DynamoDBCustomerRepository()
_license_repo = DynamoDBLicenseRepository()
_device_repo = DynamoDBDeviceRepository()
_organization_repo = DynamoDBOrganizationRepository()

tracer = get_tracer(__name__)

SERVICE = "plg-api-portal"

SETTINGS_KEYS = ("givenName", "middleName", "familyName", "notifications")

UNAUTHORIZED = {401: {"description": "Unauthorized"}}


def _message_or(default: str):
    """Server error body that surfaces the exception message when it has one."""

    def body(exc: Exception):
        return {"error": str(exc) or default}

    return body


class PortalStatusView(APIView):
    """View for the dashboard subscription summary."""

    server_error_body = {"error": "Failed to get portal status"}

    @extend_schema(
        operation_id="portal_status",
        summary="Portal Status",
        description="Subscription state of the signed-in user, used to route the dashboard.",
        tags=["Portal"],
        responses={200: {"description": "Portal status"}, **UNAUTHORIZED},
    )
    def get(self, request: Request) -> Response:
        """Get portal status."""
        return async_to_sync(self._handle_status)(request)

    async def _handle_status(self, request: Request) -> Response:
        """Async handler for portal status."""
        with tracer.start_as_current_span("portal_status") as span:
            user = current_user(request)
            span.set_attribute("user.id", user.user_id)

            handler = GetPortalStatusHandler(
                customer_repository=_customer_repo, device_repository=_device_repo
            )
            result = await handler.handle(GetPortalStatusQuery(user=user))

            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class PortalLicenseView(APIView):
    """View for the caller's license."""

    server_error_body = {"error": "Failed to fetch license"}

    @extend_schema(
        operation_id="portal_license",
        summary="Portal License",
        description="License key, plan and device allowance of the signed-in user.",
        tags=["Portal"],
        responses={200: {"description": "License details"}, **UNAUTHORIZED},
    )
    def get(self, request: Request) -> Response:
        """Get the caller's license."""
        return async_to_sync(self._handle_license)(request)

    async def _handle_license(self, request: Request) -> Response:
        """Async handler for portal license."""
        with tracer.start_as_current_span("portal_license") as span:
            user = current_user(request)
            span.set_attribute("user.id", user.user_id)

            handler = GetPortalLicenseHandler(
                customer_repository=_customer_repo,
                license_repository=_license_repo,
                keygen=_keygen,
            )
            result = await handler.handle(GetPortalLicenseQuery(user=user))

            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class DevicesView(APIView):
    """View for listing and removing the caller's devices."""

    server_error_body = {"error": "Failed to fetch devices"}
    server_error_bodies = {"DELETE": {"error": "Failed to deactivate device"}}

    @extend_schema(
        operation_id="portal_devices",
        summary="List Devices",
        description="Devices activated on the caller's license, merged with Keygen machine data.",
        tags=["Portal"],
        responses={200: {"description": "Device list"}, **UNAUTHORIZED},
    )
    def get(self, request: Request) -> Response:
        """List devices."""
        return async_to_sync(self._handle_list)(request)

    @extend_schema(
        operation_id="portal_remove_device",
        summary="Remove Device",
        description="Deactivate one of the caller's devices and free its slot.",
        tags=["Portal"],
        request=RemoveDeviceRequestSerializer,
        responses={
            200: {"description": "Device deactivated"},
            400: {"description": "Machine ID and License ID required"},
            403: {"description": "License belongs to another user"},
            **UNAUTHORIZED,
        },
    )
    def delete(self, request: Request) -> Response:
        """Remove a device."""
        return async_to_sync(self._handle_remove)(request)

    async def _handle_list(self, request: Request) -> Response:
        """Async handler for device list."""
        with tracer.start_as_current_span("portal_devices") as span:
            user = current_user(request)
            span.set_attribute("user.id", user.user_id)

            handler = ListDevicesHandler(
                customer_repository=_customer_repo,
                device_repository=_device_repo,
                keygen=_keygen,
            )
            result = await handler.handle(ListDevicesQuery(user=user))

            span.set_attribute("devices.count", len(result.devices))
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())

    async def _handle_remove(self, request: Request) -> Response:
        """Async handler for device removal."""
        with tracer.start_as_current_span("portal_remove_device") as span:
            log = ApiLogger(SERVICE, request, "portal_device_remove")
            user = current_user(request)
            log.request_received(user_id=user.user_id)

            serializer = RemoveDeviceRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            handler = RemoveDeviceHandler(
                customer_repository=_customer_repo,
                license_repository=_license_repo,
                deactivate_handler=DeactivateDeviceHandler(
                    keygen=_keygen,
                    device_repository=_device_repo,
                    license_repository=_license_repo,
                ),
            )
            result = await handler.handle(
                RemoveDeviceCommand(
                    user=user,
                    machine_id=data.get("machineId") or None,
                    license_id=data.get("licenseId") or None,
                )
            )

            log.response(200, "Device removed")
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class BillingView(APIView):
    """View for subscription and payment method details."""

    server_error_body = {"error": "Failed to fetch billing information"}

    @extend_schema(
        operation_id="portal_billing",
        summary="Billing Details",
        description="Current subscription and default payment method from Stripe.",
        tags=["Portal"],
        responses={200: {"description": "Billing details"}, **UNAUTHORIZED},
    )
    def get(self, request: Request) -> Response:
        """Get billing details."""
        return async_to_sync(self._handle_billing)(request)

    async def _handle_billing(self, request: Request) -> Response:
        """Async handler for billing details."""
        with tracer.start_as_current_span("portal_billing") as span:
            user = current_user(request)
            span.set_attribute("user.id", user.user_id)

            handler = GetBillingHandler(customer_repository=_customer_repo, stripe_gateway=_stripe)
            result = await handler.handle(GetBillingQuery(user=user))

            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class InvoicesView(APIView):
    """View for recent invoices."""

    server_error_body = {"error": "Failed to fetch invoices"}

    @extend_schema(
        operation_id="portal_invoices",
        summary="List Invoices",
        description="Recent Stripe invoices, newest first.",
        tags=["Portal"],
        parameters=[
            OpenApiParameter(
                name="limit",
                type=int,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Number of invoices (1-100, default 10)",
            ),
        ],
        responses={200: {"description": "Invoice list"}, **UNAUTHORIZED},
    )
    def get(self, request: Request) -> Response:
        """List invoices."""
        return async_to_sync(self._handle_invoices)(request)

    async def _handle_invoices(self, request: Request) -> Response:
        """Async handler for invoice list."""
        with tracer.start_as_current_span("portal_invoices") as span:
            user = current_user(request)
            try:
                limit = int(request.query_params.get("limit", 10))
            except ValueError:
                limit = 10
            span.set_attribute("invoices.limit", limit)

            handler = ListInvoicesHandler(
                customer_repository=_customer_repo, stripe_gateway=_stripe
            )
            result = await handler.handle(ListInvoicesQuery(user=user, limit=limit))

            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class StripeSessionView(APIView):
    """View for handing off to the Stripe billing portal."""

    server_error_body = {"error": "Failed to create portal session"}

    @extend_schema(
        operation_id="portal_stripe_session",
        summary="Open Billing Portal",
        description="Create a Stripe billing portal session and redirect to it.",
        tags=["Portal"],
        request=None,
        responses={
            303: {"description": "Redirect to the Stripe billing portal"},
            404: {"description": "No Stripe customer"},
            **UNAUTHORIZED,
        },
    )
    def post(self, request: Request) -> Response:
        """Open the billing portal."""
        return async_to_sync(self._handle_session)(request)

    async def _handle_session(self, request: Request) -> Response:
        """Async handler for billing portal session."""
        with tracer.start_as_current_span("portal_stripe_session") as span:
            user = current_user(request)
            span.set_attribute("user.id", user.user_id)

            handler = CreateBillingPortalSessionHandler(
                customer_repository=_customer_repo, stripe_gateway=_stripe
            )
            url = await handler.handle(CreateBillingPortalSessionCommand(user=user))

            span.set_status(Status(StatusCode.OK))
            return Response(status=status.HTTP_303_SEE_OTHER, headers={"Location": url})


class TeamView(APIView):
    """View for Business team management."""

    server_error_body = {"error": "Failed to fetch team data"}
    server_error_bodies = {
        "POST": _message_or("Failed to process request"),
        "DELETE": _message_or("Failed to process request"),
    }

    @extend_schema(
        operation_id="portal_team",
        summary="Team",
        description="Members, pending invites and seat usage of the caller's organization.",
        tags=["Portal Team"],
        responses={
            200: {"description": "Team details"},
            400: {"description": "Organization not configured"},
            403: {"description": "Not a Business account"},
            **UNAUTHORIZED,
        },
    )
    def get(self, request: Request) -> Response:
        """Get the team."""
        return async_to_sync(self._handle_get)(request)

    @extend_schema(
        operation_id="portal_team_action",
        summary="Team Action",
        description=(
            "Invite a member, change a member's status or role, or re-send an "
            "invite. Owners and admins only."
        ),
        tags=["Portal Team"],
        request=TeamActionRequestSerializer,
        responses={
            200: {"description": "Action applied"},
            400: {"description": "Bad Request"},
            403: {"description": "Admin permissions required"},
            404: {"description": "Member or invite not found"},
            **UNAUTHORIZED,
        },
    )
    def post(self, request: Request) -> Response:
        """Apply a team action."""
        return async_to_sync(self._handle_action)(request)

    @extend_schema(
        operation_id="portal_team_delete",
        summary="Remove Member or Invite",
        description="Remove a member or cancel a pending invite. Owners and admins only.",
        tags=["Portal Team"],
        request=TeamDeleteRequestSerializer,
        responses={
            200: {"description": "Removed"},
            400: {"description": "Bad Request"},
            403: {"description": "Admin permissions required"},
            **UNAUTHORIZED,
        },
    )
    def delete(self, request: Request) -> Response:
        """Remove a member or invite."""
        return async_to_sync(self._handle_delete)(request)

    async def _handle_get(self, request: Request) -> Response:
        """Async handler for team details."""
        with tracer.start_as_current_span("portal_team") as span:
            user = current_user(request)
            span.set_attribute("user.id", user.user_id)

            handler = GetTeamHandler(
                organization_repository=_organization_repo, customer_repository=_customer_repo
            )
            result = await handler.handle(GetTeamQuery(user=user))

            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())

    async def _handle_action(self, request: Request) -> Response:
        """Async handler for team actions."""
        with tracer.start_as_current_span("portal_team_action") as span:
            log = ApiLogger(SERVICE, request, "portal_team_action")
            user = current_user(request)

            serializer = TeamActionRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            action = data["action"]
            span.set_attribute("team.action", action)
            log.request_received(action=action)

            if action == "invite":
                handler = InviteMemberHandler(_organization_repo, _customer_repo)
                result = await handler.handle(
                    InviteMemberCommand(
                        user=user, email=data["email"], role=data["role"] or "member"
                    )
                )
            elif action == "update_status":
                handler = UpdateMemberStatusHandler(_organization_repo, _customer_repo)
                result = await handler.handle(
                    UpdateMemberStatusCommand(
                        user=user, member_id=data["memberId"], status=data["status"]
                    )
                )
            elif action == "update_role":
                handler = UpdateMemberRoleHandler(_organization_repo, _customer_repo)
                result = await handler.handle(
                    UpdateMemberRoleCommand(
                        user=user, member_id=data["memberId"], role=data["role"]
                    )
                )
            else:
                handler = ResendInviteHandler(_organization_repo, _customer_repo)
                result = await handler.handle(
                    ResendInviteCommand(user=user, invite_id=data["inviteId"])
                )

            log.response(200, "Team action applied", action=action)
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())

    async def _handle_delete(self, request: Request) -> Response:
        """Async handler for member and invite removal."""
        with tracer.start_as_current_span("portal_team_delete") as span:
            log = ApiLogger(SERVICE, request, "portal_team_delete")
            user = current_user(request)

            serializer = TeamDeleteRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data
            span.set_attribute("team.delete_type", data["type"])
            log.request_received(delete_type=data["type"])

            if data["type"] == "member":
                handler = RemoveMemberHandler(_organization_repo, _customer_repo)
                await handler.handle(RemoveMemberCommand(user=user, member_id=data["memberId"]))
                message = "Member removed"
            else:
                handler = CancelInviteHandler(_organization_repo, _customer_repo)
                await handler.handle(CancelInviteCommand(user=user, invite_id=data["inviteId"]))
                message = "Invite cancelled"

            log.response(200, message)
            span.set_status(Status(StatusCode.OK))
            return Response({"success": True, "message": message})


class InviteView(APIView):
    """View for the invite landing page."""

    server_error_body = {"error": "Failed to retrieve invite"}
    server_error_bodies = {"POST": {"error": "Failed to accept invite"}}

    @extend_schema(
        operation_id="portal_invite",
        summary="Get Invite",
        description="Look up a pending invite by its token.",
        tags=["Portal Team"],
        responses={
            200: {"description": "Invite details"},
            400: {"description": "Invite is no longer pending or has expired"},
            404: {"description": "Invite not found"},
        },
    )
    def get(self, request: Request, token: str) -> Response:
        """Look up an invite."""
        return async_to_sync(self._handle_get)(request, token)

    @extend_schema(
        operation_id="portal_accept_invite",
        summary="Accept Invite",
        description="Join the inviting organization as the signed-in user.",
        tags=["Portal Team"],
        request=None,
        responses={
            200: {"description": "Joined the organization"},
            400: {"description": "Invite unusable or already in an organization"},
            403: {"description": "Invite was sent to a different email"},
            404: {"description": "Invite not found"},
            **UNAUTHORIZED,
        },
    )
    def post(self, request: Request, token: str) -> Response:
        """Accept an invite."""
        return async_to_sync(self._handle_accept)(request, token)

    async def _handle_get(self, request: Request, token: str) -> Response:
        """Async handler for invite lookup."""
        with tracer.start_as_current_span("portal_invite") as span:
            handler = GetInviteHandler(organization_repository=_organization_repo)
            result = await handler.handle(GetInviteQuery(token=token))
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())

    async def _handle_accept(self, request: Request, token: str) -> Response:
        """Async handler for invite acceptance."""
        with tracer.start_as_current_span("portal_accept_invite") as span:
            log = ApiLogger(SERVICE, request, "portal_invite_accept")
            log.request_received()

            handler = AcceptInviteHandler(
                organization_repository=_organization_repo,
                customer_repository=_customer_repo,
                identity_admin=_identity_admin,
            )
            member = await handler.handle(
                AcceptInviteCommand(token=token, user=optional_user(request))
            )

            span.set_attribute("org.id", member.org_id)
            log.response(200, "Invite accepted", org_id=member.org_id)
            span.set_status(Status(StatusCode.OK))
            return Response(
                {
                    "success": True,
                    "message": "You have successfully joined the organization",
                    "redirectTo": "/portal/team",
                }
            )


class SeatsView(APIView):
    """View for Business seat quantity."""

    server_error_body = {"error": "Failed to get seat information"}
    server_error_bodies = {"POST": _message_or("Failed to update seat quantity")}

    @extend_schema(
        operation_id="portal_seats",
        summary="Seat Usage",
        description="Seat limit, usage and per-seat price of the caller's organization.",
        tags=["Portal Team"],
        responses={
            200: {"description": "Seat usage"},
            403: {"description": "Not a Business account"},
            404: {"description": "Organization not found"},
            **UNAUTHORIZED,
        },
    )
    def get(self, request: Request) -> Response:
        """Get seat usage."""
        return async_to_sync(self._handle_get)(request)

    @extend_schema(
        operation_id="portal_update_seats",
        summary="Update Seats",
        description=(
            "Change the subscription's seat quantity with proration. The "
            "quantity cannot drop below the plan minimum or the seats in use."
        ),
        tags=["Portal Team"],
        request=SeatsUpdateRequestSerializer,
        responses={
            200: {"description": "Seat quantity updated"},
            400: {"description": "Invalid quantity"},
            403: {"description": "Owners and admins only"},
            **UNAUTHORIZED,
        },
    )
    def post(self, request: Request) -> Response:
        """Update seat quantity."""
        return async_to_sync(self._handle_update)(request)

    async def _handle_get(self, request: Request) -> Response:
        """Async handler for seat usage."""
        with tracer.start_as_current_span("portal_seats") as span:
            user = current_user(request)
            span.set_attribute("user.id", user.user_id)

            handler = GetSeatsHandler(_organization_repo, _customer_repo, _stripe)
            result = await handler.handle(GetSeatsQuery(user=user))

            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())

    async def _handle_update(self, request: Request) -> Response:
        """Async handler for seat quantity changes."""
        with tracer.start_as_current_span("portal_update_seats") as span:
            log = ApiLogger(SERVICE, request, "portal_seats_update")
            user = current_user(request)
            log.request_received(user_id=user.user_id)

            serializer = SeatsUpdateRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)

            handler = UpdateSeatsHandler(_organization_repo, _customer_repo, _stripe)
            result = await handler.handle(
                UpdateSeatsCommand(user=user, quantity=serializer.validated_data.get("quantity"))
            )

            span.set_attribute("seats.quantity", result.new_quantity)
            log.response(
                200,
                "Seat quantity updated",
                previous_quantity=result.previous_quantity,
                new_quantity=result.new_quantity,
            )
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class SettingsView(APIView):
    """View for profile and notification settings."""

    server_error_body = {"error": "Failed to fetch settings"}
    server_error_bodies = {"PATCH": {"error": "Failed to update settings"}}

    @extend_schema(
        operation_id="portal_settings",
        summary="Get Settings",
        description="Profile and notification preferences.",
        tags=["Portal Settings"],
        responses={200: {"description": "Settings"}, **UNAUTHORIZED},
    )
    def get(self, request: Request) -> Response:
        """Get settings."""
        return async_to_sync(self._handle_get)(request)

    @extend_schema(
        operation_id="portal_update_settings",
        summary="Update Settings",
        description="Update name fields and notification preferences.",
        tags=["Portal Settings"],
        request=UpdateSettingsRequestSerializer,
        responses={
            200: {"description": "Settings updated"},
            400: {"description": "Invalid field"},
            **UNAUTHORIZED,
        },
    )
    def patch(self, request: Request) -> Response:
        """Update settings."""
        return async_to_sync(self._handle_update)(request)

    async def _handle_get(self, request: Request) -> Response:
        """Async handler for settings."""
        with tracer.start_as_current_span("portal_settings") as span:
            user = current_user(request)
            handler = GetSettingsHandler(customer_repository=_customer_repo)
            result = await handler.handle(GetSettingsQuery(user=user))
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())

    async def _handle_update(self, request: Request) -> Response:
        """Async handler for settings updates."""
        with tracer.start_as_current_span("portal_update_settings") as span:
            user = current_user(request)
            changes = {key: request.data[key] for key in SETTINGS_KEYS if key in request.data}
            span.set_attribute("settings.keys", ",".join(changes))

            handler = UpdateSettingsHandler(customer_repository=_customer_repo)
            result = await handler.handle(UpdateSettingsCommand(user=user, changes=changes))

            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class ExportDataView(APIView):
    """View for downloading everything stored about the caller."""

    server_error_body = {"error": "Failed to export data"}

    @extend_schema(
        operation_id="portal_export_data",
        summary="Export Data",
        description="Download the caller's profile, licenses, devices and billing as JSON.",
        tags=["Portal Settings"],
        request=None,
        responses={200: {"description": "JSON attachment"}, **UNAUTHORIZED},
    )
    def post(self, request: Request) -> Response:
        """Export account data."""
        return async_to_sync(self._handle_export)(request)

    async def _handle_export(self, request: Request) -> Response:
        """Async handler for data export."""
        with tracer.start_as_current_span("portal_export_data") as span:
            log = ApiLogger(SERVICE, request, "portal_data_export")
            user = current_user(request)
            log.request_received(user_id=user.user_id)

            handler = ExportDataHandler(
                customer_repository=_customer_repo,
                license_repository=_license_repo,
                device_repository=_device_repo,
                stripe_gateway=_stripe,
            )
            result = await handler.handle(ExportDataQuery(user=user))

            log.response(200, "Data exported")
            span.set_status(Status(StatusCode.OK))
            return Response(
                result.to_dict(),
                headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
            )


class DeleteAccountView(APIView):
    """View for requesting or withdrawing account deletion."""

    server_error_body = {"error": "Failed to process deletion request"}
    server_error_bodies = {"DELETE": {"error": "Failed to cancel deletion request"}}

    @extend_schema(
        operation_id="portal_delete_account",
        summary="Request Account Deletion",
        description=(
            "Cancel subscriptions at period end and mark the account for "
            "deletion. Organization owners dissolve their organization; "
            "members must leave first."
        ),
        tags=["Portal Settings"],
        request=DeleteAccountRequestSerializer,
        responses={
            200: {"description": "Deletion scheduled"},
            400: {"description": "Missing confirmation or still in an organization"},
            404: {"description": "Customer not found"},
            **UNAUTHORIZED,
        },
    )
    def post(self, request: Request) -> Response:
        """Request account deletion."""
        return async_to_sync(self._handle_request)(request)

    @extend_schema(
        operation_id="portal_cancel_account_deletion",
        summary="Cancel Account Deletion",
        description="Withdraw a pending deletion request.",
        tags=["Portal Settings"],
        request=None,
        responses={
            200: {"description": "Deletion cancelled"},
            404: {"description": "No pending deletion request"},
            **UNAUTHORIZED,
        },
    )
    def delete(self, request: Request) -> Response:
        """Cancel a pending deletion."""
        return async_to_sync(self._handle_cancel)(request)

    async def _handle_request(self, request: Request) -> Response:
        """Async handler for deletion requests."""
        with tracer.start_as_current_span("portal_delete_account") as span:
            log = ApiLogger(SERVICE, request, "portal_account_delete")
            user = current_user(request)
            log.request_received(user_id=user.user_id)

            serializer = DeleteAccountRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            handler = RequestAccountDeletionHandler(
                customer_repository=_customer_repo,
                organization_repository=_organization_repo,
                stripe_gateway=_stripe,
            )
            result = await handler.handle(
                RequestAccountDeletionCommand(
                    user=user,
                    confirmation=data.get("confirmation"),
                    reason=data.get("reason") or None,
                )
            )

            log.response(200, "Account deletion scheduled")
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())

    async def _handle_cancel(self, request: Request) -> Response:
        """Async handler for withdrawing a deletion request."""
        with tracer.start_as_current_span("portal_cancel_account_deletion") as span:
            user = current_user(request)
            handler = CancelAccountDeletionHandler(customer_repository=_customer_repo)
            result = await handler.handle(CancelAccountDeletionCommand(user=user))
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class LeaveOrganizationView(APIView):
    """View for a member leaving their organization."""

    server_error_body = {"error": "Failed to leave organization"}

    @extend_schema(
        operation_id="portal_leave_organization",
        summary="Leave Organization",
        description="Leave the caller's organization. Owners cannot leave.",
        tags=["Portal Settings"],
        request=LeaveOrganizationRequestSerializer,
        responses={
            200: {"description": "Left the organization"},
            400: {"description": "Missing confirmation or not in an organization"},
            403: {"description": "Owners cannot leave"},
            **UNAUTHORIZED,
        },
    )
    def post(self, request: Request) -> Response:
        """Leave the organization."""
        return async_to_sync(self._handle_leave)(request)

    async def _handle_leave(self, request: Request) -> Response:
        """Async handler for leaving an organization."""
        with tracer.start_as_current_span("portal_leave_organization") as span:
            log = ApiLogger(SERVICE, request, "portal_leave_organization")
            user = current_user(request)
            log.request_received(user_id=user.user_id)

            serializer = LeaveOrganizationRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)

            handler = LeaveOrganizationHandler(
                customer_repository=_customer_repo,
                organization_repository=_organization_repo,
                identity_admin=_identity_admin,
            )
            result = await handler.handle(
                LeaveOrganizationCommand(
                    user=user, confirmation=serializer.validated_data.get("confirmation")
                )
            )

            log.response(200, "Left organization")
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())
