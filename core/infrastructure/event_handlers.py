"""
Event handlers for domain events.

These handlers process domain events for side effects: audit logging,
transactional email and lifecycle metrics.
"""

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from asgiref.sync import sync_to_async
from django.conf import settings

from activations.domain.events import DeviceActivated, DeviceDeactivated
from billing.domain.events import DisputeOpened, PaymentFailed
from core.domain.events import DomainEvent, EventHandler
from core.metrics import devices_activated_total, devices_deactivated_total, trials_started_total
from licenses.domain.events import LicenseProvisioned, LicenseStatusChanged
from organizations.domain.events import InviteCreated, MemberJoined
from trials.domain.events import TrialStarted

logger = logging.getLogger(__name__)

# Event -> (template, recipient, template data)
EmailSpec = Tuple[str, Optional[str], Dict[str, Any]]


def _license_delivery(event: LicenseProvisioned) -> EmailSpec:
    return (
        "licenseDelivery",
        event.email,
        {"email": event.email, "licenseKey": event.license_key, "planName": event.plan_name},
    )


def _payment_failed(event: PaymentFailed) -> EmailSpec:
    return (
        "paymentFailed",
        event.email,
        {"email": event.email, "attemptCount": event.attempt_count, "retryDate": event.retry_date},
    )


def _dispute_alert(event: DisputeOpened) -> EmailSpec:
    return (
        "disputeAlert",
        settings.ALERT_EMAIL,
        {
            "customerEmail": event.customer_email,
            "amount": event.amount,
            "currency": event.currency,
            "reason": event.reason,
            "disputeId": event.dispute_id,
        },
    )


def _enterprise_invite(event: InviteCreated) -> EmailSpec:
    return (
        "enterpriseInvite",
        event.email,
        {
            "email": event.email,
            "inviteToken": event.token,
            "inviterName": event.inviter_name,
            "organizationName": event.organization_name,
            "role": event.role,
        },
    )


EMAIL_EVENTS: Dict[type, Callable[[Any], EmailSpec]] = {
    LicenseProvisioned: _license_delivery,
    PaymentFailed: _payment_failed,
    DisputeOpened: _dispute_alert,
    InviteCreated: _enterprise_invite,
}


class AuditLogEventHandler(EventHandler):
    """
    Event handler for audit logging.

    Writes every domain event to the structured log.
    """

    async def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for audit logging.

        Args:
            event: Domain event to log
        """
        logger.info(
            "Audit log: %s - %s",
            event.event_type,
            event.aggregate_id,
            extra={
                "event_id": str(event.event_id),
                "event_type": event.event_type,
                "aggregate_id": event.aggregate_id,
                "occurred_at": event.occurred_at.isoformat(),
                "payload": event.payload(),
            },
        )


class TransactionalEmailHandler(EventHandler):
    """
    Event handler that queues transactional email.

    Sending happens in the ``send_email_task`` Celery task.
    """

    async def handle(self, event: DomainEvent) -> None:
        build = EMAIL_EVENTS.get(type(event))
        if build is None:
            return

        template, recipient, data = build(event)
        if not recipient:
            logger.warning(
                "No recipient for transactional email",
                extra={"template": template, "event_type": event.event_type},
            )
            return

        from core.tasks import send_email_task

        await sync_to_async(send_email_task.delay)(template, recipient, data)
        logger.info(
            "Email queued",
            extra={"template": template, "event_type": event.event_type},
        )


class LifecycleMetricsHandler(EventHandler):
    """Event handler for trial and device lifecycle counters."""

    async def handle(self, event: DomainEvent) -> None:
        if isinstance(event, TrialStarted):
            trials_started_total.labels(source=event.source).inc()
        elif isinstance(event, DeviceActivated):
            devices_activated_total.labels(over_limit=str(event.over_limit).lower()).inc()
        elif isinstance(event, DeviceDeactivated):
            devices_deactivated_total.labels(source=event.source).inc()


# Register event handlers
def register_event_handlers():
    """Register all event handlers with the event bus."""
    from core.infrastructure.events import event_bus

    audit_handler = AuditLogEventHandler()
    email_handler = TransactionalEmailHandler()
    metrics_handler = LifecycleMetricsHandler()

    for event_type in (
        TrialStarted,
        DeviceActivated,
        DeviceDeactivated,
        LicenseProvisioned,
        LicenseStatusChanged,
        PaymentFailed,
        DisputeOpened,
        InviteCreated,
        MemberJoined,
    ):
        event_bus.subscribe(event_type, audit_handler)

    for event_type in EMAIL_EVENTS:
        event_bus.subscribe(event_type, email_handler)

    event_bus.subscribe(TrialStarted, metrics_handler)
    event_bus.subscribe(DeviceActivated, metrics_handler)
    event_bus.subscribe(DeviceDeactivated, metrics_handler)

    logger.info("Event handlers registered")
