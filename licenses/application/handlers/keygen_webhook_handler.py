"""
KeygenWebhookHandler.

Mirrors Keygen license lifecycle events and machine deletions into the
local store. Deliveries carrying a Keygen event id are claimed first so
retries are acknowledged without being applied twice.
"""

import logging

from activations.domain.events import DeviceDeactivated
from activations.ports.device_repository import DeviceRepository
from core.infrastructure.events import event_bus
from core.metrics import webhook_events_total
from core.ports.webhook_event_repository import WebhookEventRepository
from licenses.application.commands.process_keygen_webhook import ProcessKeygenWebhookCommand
from licenses.application.dto.license_dto import WebhookReceiptDTO
from licenses.domain.events import LicenseStatusChanged
from licenses.domain.services import status_change_for_event
from licenses.ports.license_repository import LicenseRepository

logger = logging.getLogger(__name__)

SOURCE = "keygen"


class KeygenWebhookHandler:
    """Handler for ProcessKeygenWebhookCommand."""

    def __init__(
        self,
        license_repository: LicenseRepository,
        device_repository: DeviceRepository,
        webhook_event_repository: WebhookEventRepository,
    ):
        """Initialize handler with repositories."""
        self.license_repository = license_repository
        self.device_repository = device_repository
        self.webhook_event_repository = webhook_event_repository

    async def handle(self, command: ProcessKeygenWebhookCommand) -> WebhookReceiptDTO:
        """
        Handle a Keygen webhook delivery.

        Args:
            command: ProcessKeygenWebhookCommand

        Returns:
            WebhookReceiptDTO, flagged duplicate for an already-claimed delivery

        Raises:
            Exception: Any processing failure, after releasing the claim
        """
        event = command.event
        event_id = command.event_id
        if event_id is None:
            logger.info("Keygen webhook without delivery id applied unclaimed", extra={"event": event})
        elif not await self.webhook_event_repository.claim(SOURCE, event_id, event):
            webhook_events_total.labels(source=SOURCE, event_type=event, outcome="duplicate").inc()
            logger.info("Duplicate Keygen webhook ignored", extra={"event": event})
            return WebhookReceiptDTO(duplicate=True)

        try:
            await self._apply(event, command.data)
        except Exception:
            if event_id is not None:
                await self.webhook_event_repository.release(SOURCE, event_id)
            webhook_events_total.labels(source=SOURCE, event_type=event, outcome="failed").inc()
            raise

        if event_id is not None:
            await self.webhook_event_repository.mark_processed(SOURCE, event_id)
        webhook_events_total.labels(source=SOURCE, event_type=event, outcome="processed").inc()
        return WebhookReceiptDTO()

    async def _apply(self, event: str, data: dict) -> None:
        resource_id = data.get("id")

        if event == "machine.deleted":
            license_id = (
                ((data.get("relationships") or {}).get("license") or {}).get("data") or {}
            ).get("id")
            if license_id and await self.device_repository.remove(license_id, resource_id):
                await event_bus.publish(
                    DeviceDeactivated(
                        license_id=license_id, machine_id=resource_id, source="keygen_webhook"
                    )
                )
            return

        change = status_change_for_event(
            event, expiry=(data.get("attributes") or {}).get("expiry")
        )
        if change is None:
            logger.info("Unhandled Keygen event", extra={"event": event, "resource_id": resource_id})
            return

        updated = await self.license_repository.update_status(
            resource_id, change.status, change.updates
        )
        if updated is None:
            logger.warning(
                "Keygen event for unknown license",
                extra={"event": event, "license_id": resource_id},
            )
            return
        await event_bus.publish(
            LicenseStatusChanged(license_id=resource_id, status=change.status, source="keygen")
        )
