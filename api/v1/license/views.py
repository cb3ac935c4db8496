"""
License API views.

These endpoints are called by the editor extension to:
- Start and look up device trials
- Validate, activate and deactivate license keys
- Send heartbeats from running devices
- Check license status by email
"""

from asgiref.sync import async_to_sync
from django.conf import settings
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from activations.application.commands.activate_device import ActivateDeviceCommand
from activations.application.commands.deactivate_device import DeactivateDeviceCommand
from activations.application.commands.record_heartbeat import RecordHeartbeatCommand
from activations.application.handlers.activate_device_handler import ActivateDeviceHandler
from activations.application.handlers.deactivate_device_handler import DeactivateDeviceHandler
from activations.application.handlers.record_heartbeat_handler import RecordHeartbeatHandler
from activations.infrastructure.repositories.dynamodb_device_repository import (
    DynamoDBDeviceRepository,
)
from activations.infrastructure.repositories.dynamodb_version_repository import (
    DynamoDBVersionRepository,
)
from api.v1.identity import optional_user
from api.v1.license.serializers import (
    ActivateLicenseRequestSerializer,
    DeactivateRequestSerializer,
    HeartbeatRequestSerializer,
    LicenseCheckResponseSerializer,
    TrialInitRequestSerializer,
    TrialIssuedResponseSerializer,
    TrialStatusResponseSerializer,
    ValidateLicenseRequestSerializer,
)
from core.domain.exceptions import InvalidRequestError
from core.infrastructure.keygen import KeygenClient
from core.infrastructure.rate_limit import RateLimiter, get_client_ip, rate_limit_headers
from core.infrastructure.secrets import get_secret
from core.instrumentation import Status, StatusCode, get_tracer
from core.logging import ApiLogger
from licenses.application.handlers.check_license_handler import CheckLicenseHandler
from licenses.application.handlers.validate_license_handler import ValidateLicenseHandler
from licenses.application.queries.check_license import CheckLicenseQuery
from licenses.application.queries.validate_license import ValidateLicenseQuery
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)
from licenses.infrastructure.repositories.dynamodb_license_repository import (
    DynamoDBLicenseRepository,
)
from trials.application.commands.init_trial import InitTrialCommand
from trials.application.handlers.get_trial_status_handler import GetTrialStatusHandler
from trials.application.handlers.init_trial_handler import InitTrialHandler
from trials.application.queries.get_trial_status import GetTrialStatusQuery
from trials.domain.services import TrialTokenService
from trials.infrastructure.repositories.dynamodb_trial_repository import DynamoDBTrialRepository

# Initialize repositories (in production, use DI container)
_keygen = KeygenClient()
_trial_repo = DynamoDBTrialRepository()
_device_repo = DynamoDBDeviceRepository()
_license_repo = DynamoDBLicenseRepository()
_customer_repo = DynamoDBCustomerRepository()
_version_repo = DynamoDBVersionRepository()

tracer = get_tracer(__name__)

SERVICE = "plg-api-license"

HEARTBEAT_ERROR_BODY = {
    "valid": False,
    "status": "error",
    "reason": "Server error during heartbeat",
    "concurrentMachines": 0,
    "maxMachines": 0,
}


def _with_headers(response: Response, rate_limit: dict) -> Response:
    for header, value in rate_limit_headers(rate_limit).items():
        response[header] = value
    return response


def _window_hours() -> float:
    return settings.CONCURRENT_DEVICE_WINDOW_HOURS


class TrialInitView(APIView):
    """View for issuing and looking up device trials."""

    @extend_schema(
        operation_id="trial_init",
        summary="Start Trial",
        description="Issue a signed 14-day trial token for a device fingerprint.",
        tags=["License API"],
        request=TrialInitRequestSerializer,
        responses={
            200: TrialIssuedResponseSerializer,
            400: {"description": "Invalid fingerprint"},
            409: {"description": "A trial is already running for this device"},
            410: {"description": "The device's trial has ended"},
            429: {"description": "Rate limit exceeded"},
        },
    )
    def post(self, request: Request) -> Response:
        """Start a trial."""
        return async_to_sync(self._handle_init)(request)

    async def _handle_init(self, request: Request) -> Response:
        """Async handler for trial init."""
        with tracer.start_as_current_span("trial_init") as span:
            span.set_attribute("operation", "trial_init")
            log = ApiLogger(SERVICE, request, "trial_init")
            log.request_received()

            serializer = TrialInitRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            fingerprint = serializer.validated_data["fingerprint"]

            rate_limit = RateLimiter("trialInit").enforce(fingerprint, request.path)

            handler = InitTrialHandler(
                trial_repository=_trial_repo,
                token_service=TrialTokenService(get_secret("TRIAL_TOKEN_SECRET")),
            )
            result = await handler.handle(InitTrialCommand(fingerprint=fingerprint))

            log.response(200, "Trial issued")
            span.set_status(Status(StatusCode.OK))
            return _with_headers(Response(result.to_dict()), rate_limit)

    @extend_schema(
        operation_id="trial_status",
        summary="Trial Status",
        description="Report whether a device has used its trial.",
        tags=["License API"],
        parameters=[
            OpenApiParameter(
                name="fingerprint",
                type=str,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Device fingerprint",
            ),
        ],
        responses={
            200: TrialStatusResponseSerializer,
            400: {"description": "Invalid fingerprint"},
        },
    )
    def get(self, request: Request) -> Response:
        """Look up a device's trial."""
        return async_to_sync(self._handle_status)(request)

    async def _handle_status(self, request: Request) -> Response:
        """Async handler for trial status."""
        with tracer.start_as_current_span("trial_status") as span:
            span.set_attribute("operation", "trial_status")
            handler = GetTrialStatusHandler(trial_repository=_trial_repo)
            result = await handler.handle(
                GetTrialStatusQuery(fingerprint=request.query_params.get("fingerprint", ""))
            )
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class ValidateLicenseView(APIView):
    """View for validating a license key or the device's trial."""

    @extend_schema(
        operation_id="validate_license",
        summary="Validate License",
        description=(
            "Validate a license key for a device. Without a license key the "
            "device's trial is started or reported."
        ),
        tags=["License API"],
        request=ValidateLicenseRequestSerializer,
        responses={
            200: {"description": "Validation result"},
            400: {"description": "Missing fingerprint"},
            429: {"description": "Rate limit exceeded"},
        },
    )
    def post(self, request: Request) -> Response:
        """Validate a license."""
        return async_to_sync(self._handle_validate)(request)

    async def _handle_validate(self, request: Request) -> Response:
        """Async handler for validate."""
        with tracer.start_as_current_span("validate_license") as span:
            span.set_attribute("operation", "validate_license")
            log = ApiLogger(SERVICE, request, "license_validate")
            log.request_received()

            serializer = ValidateLicenseRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            if not data["fingerprint"]:
                log.decision("fingerprint_missing", "Validation rejected: no fingerprint")
                raise InvalidRequestError("Device fingerprint is required")

            RateLimiter("validate").enforce(data["fingerprint"], request.path)
            span.set_attribute("license.has_key", bool(data.get("licenseKey")))

            handler = ValidateLicenseHandler(
                keygen=_keygen,
                trial_repository=_trial_repo,
                device_repository=_device_repo,
            )
            result = await handler.handle(
                ValidateLicenseQuery(
                    fingerprint=data["fingerprint"],
                    license_key=data.get("licenseKey") or None,
                    machine_id=data.get("machineId") or None,
                )
            )

            body = result.to_dict()
            log.response(200, "Validation complete", valid=body.get("valid"), code=body.get("code"))
            span.set_status(Status(StatusCode.OK))
            return Response(body)


class ActivateLicenseView(APIView):
    """View for binding a device to a license."""

    @extend_schema(
        operation_id="activate_license",
        summary="Activate Device",
        description=(
            "Activate a license key on a device. An Authorization header is "
            "optional; when sent it must carry a valid Cognito ID token."
        ),
        tags=["License API"],
        request=ActivateLicenseRequestSerializer,
        responses={
            200: {"description": "Device activated or already active"},
            400: {"description": "Bad Request"},
            401: {"description": "Invalid authentication token"},
            422: {"description": "Keygen rejected the activation"},
            429: {"description": "Rate limit exceeded"},
        },
    )
    def post(self, request: Request) -> Response:
        """Activate a device."""
        return async_to_sync(self._handle_activate)(request)

    async def _handle_activate(self, request: Request) -> Response:
        """Async handler for activate."""
        with tracer.start_as_current_span("activate_license") as span:
            span.set_attribute("operation", "activate_license")
            log = ApiLogger(SERVICE, request, "license_activate")
            log.request_received()

            user = optional_user(request, reject_invalid=True)

            serializer = ActivateLicenseRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            if not data["licenseKey"] or not data["fingerprint"]:
                log.decision("fields_missing", "Activation rejected: missing key or fingerprint")
                raise InvalidRequestError("License key and fingerprint are required")

            RateLimiter("activate").enforce(data["licenseKey"], request.path)

            handler = ActivateDeviceHandler(
                keygen=_keygen,
                device_repository=_device_repo,
                window_hours=_window_hours(),
            )
            result = await handler.handle(
                ActivateDeviceCommand(
                    license_key=data["licenseKey"],
                    fingerprint=data["fingerprint"],
                    device_name=data.get("deviceName") or None,
                    platform=data.get("platform") or None,
                    user_id=user.user_id if user else None,
                    user_email=user.email if user else None,
                )
            )

            body = result.to_dict()
            log.response(200, "Activation complete", over_limit=body.get("overLimit"))
            span.set_status(Status(StatusCode.OK))
            return Response(body)


class DeactivateLicenseView(APIView):
    """View for releasing a device's slot."""

    @extend_schema(
        operation_id="deactivate_license",
        summary="Deactivate Device",
        description=(
            "Deactivate a device by machine id or fingerprint. When a valid "
            "Cognito ID token is sent, the caller must own the license."
        ),
        tags=["License API"],
        request=DeactivateRequestSerializer,
        responses={
            200: {"description": "Device deactivated"},
            400: {"description": "Bad Request"},
            403: {"description": "License belongs to another user"},
        },
    )
    def delete(self, request: Request) -> Response:
        """Deactivate a device."""
        return async_to_sync(self._handle_deactivate)(request)

    def post(self, request: Request) -> Response:
        """Deactivate a device (POST alias for clients that cannot send DELETE bodies)."""
        return async_to_sync(self._handle_deactivate)(request)

    async def _handle_deactivate(self, request: Request) -> Response:
        """Async handler for deactivate."""
        with tracer.start_as_current_span("deactivate_license") as span:
            span.set_attribute("operation", "deactivate_license")
            log = ApiLogger(SERVICE, request, "license_deactivate")
            log.request_received()

            serializer = DeactivateRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            if not data.get("machineId") and not data.get("fingerprint"):
                raise InvalidRequestError("Machine ID or fingerprint is required")
            if not data["licenseId"]:
                raise InvalidRequestError("License ID is required")

            user = optional_user(request)
            handler = DeactivateDeviceHandler(
                keygen=_keygen,
                device_repository=_device_repo,
                license_repository=_license_repo,
            )
            result = await handler.handle(
                DeactivateDeviceCommand(
                    license_id=data["licenseId"],
                    machine_id=data.get("machineId") or None,
                    fingerprint=data.get("fingerprint") or None,
                    user_id=user.user_id if user else None,
                )
            )

            log.response(200, result.message)
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict())


class HeartbeatView(APIView):
    """View for device heartbeats."""

    server_error_body = HEARTBEAT_ERROR_BODY

    @extend_schema(
        operation_id="license_heartbeat",
        summary="Heartbeat",
        description=(
            "Record a heartbeat from a trial or licensed device. Licensed "
            "heartbeats need a Cognito ID token and a session id."
        ),
        tags=["License API"],
        request=HeartbeatRequestSerializer,
        responses={
            200: {"description": "Heartbeat result"},
            400: {"description": "Bad Request"},
            401: {"description": "Authentication required"},
            429: {"description": "Rate limit exceeded"},
        },
    )
    def post(self, request: Request) -> Response:
        """Record a heartbeat."""
        return async_to_sync(self._handle_heartbeat)(request)

    async def _handle_heartbeat(self, request: Request) -> Response:
        """Async handler for heartbeat."""
        with tracer.start_as_current_span("license_heartbeat") as span:
            span.set_attribute("operation", "license_heartbeat")
            log = ApiLogger(SERVICE, request, "license_heartbeat")
            log.request_received()

            serializer = HeartbeatRequestSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            data = serializer.validated_data

            rate_limit = RateLimiter("heartbeat").enforce(
                data.get("licenseKey") or data["fingerprint"], request.path
            )

            if not data["fingerprint"]:
                raise InvalidRequestError("Device fingerprint is required")

            user = optional_user(request)
            handler = RecordHeartbeatHandler(
                keygen=_keygen,
                license_repository=_license_repo,
                device_repository=_device_repo,
                trial_repository=_trial_repo,
                version_repository=_version_repo,
                window_hours=_window_hours(),
            )
            result = await handler.handle(
                RecordHeartbeatCommand(
                    fingerprint=data["fingerprint"],
                    license_key=data.get("licenseKey") or None,
                    machine_id=data.get("machineId") or None,
                    session_id=data.get("sessionId") or None,
                    user_id=user.user_id if user else None,
                )
            )

            span.set_attribute("heartbeat.status", result.status)
            log.response(200, "Heartbeat handled", heartbeat_status=result.status)
            span.set_status(Status(StatusCode.OK))
            response = Response(result.to_dict())
            if result.with_rate_limit_headers:
                _with_headers(response, rate_limit)
            return response


class LicenseCheckView(APIView):
    """View for looking up a license by purchaser email."""

    @extend_schema(
        operation_id="license_check",
        summary="Check License by Email",
        description="Find the active license for an email address.",
        tags=["License API"],
        parameters=[
            OpenApiParameter(
                name="email",
                type=str,
                location=OpenApiParameter.QUERY,
                required=True,
                description="Purchaser email",
            ),
        ],
        responses={
            200: LicenseCheckResponseSerializer,
            400: {"description": "Invalid email"},
            429: {"description": "Rate limit exceeded"},
        },
    )
    def get(self, request: Request) -> Response:
        """Check license status by email."""
        return async_to_sync(self._handle_check)(request)

    async def _handle_check(self, request: Request) -> Response:
        """Async handler for license check."""
        with tracer.start_as_current_span("license_check") as span:
            span.set_attribute("operation", "license_check")

            RateLimiter("licenseCheck").enforce(get_client_ip(request), request.path)

            handler = CheckLicenseHandler(customer_repository=_customer_repo, keygen=_keygen)
            result = await handler.handle(
                CheckLicenseQuery(email=request.query_params.get("email", ""))
            )

            span.set_attribute("license.status", result.status)
            span.set_status(Status(StatusCode.OK))
            return Response(result.to_dict(), status=status.HTTP_200_OK)
