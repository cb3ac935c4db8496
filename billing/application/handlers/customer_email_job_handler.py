"""
CustomerEmailJobHandler.

Scheduled lifecycle emails: the trial-ending reminder and the 30/90-day
win-back messages. Each customer gets each email once; the send is
recorded in the profile's ``emailsSent`` map.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from asgiref.sync import sync_to_async

from billing.application.commands.run_email_job import RunEmailJobCommand
from billing.application.dto.billing_dto import EmailJobResultDTO
from billing.domain.plans import plan_display_name
from core.ports.email_sender import EmailSender
from licenses.ports.customer_repository import CustomerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailJob:
    """Which customers a job targets and what it sends them."""

    subscription_status: str
    date_field: str
    days_offset: int
    template: str


EMAIL_JOBS = {
    "trial-reminder": EmailJob("trialing", "current_period_end", 3, "trialEnding"),
    "winback-30": EmailJob("canceled", "canceled_at", -30, "winBack30"),
    "winback-90": EmailJob("canceled", "canceled_at", -90, "winBack90"),
}


class CustomerEmailJobHandler:
    """Handler for RunEmailJobCommand."""

    def __init__(
        self,
        customer_repository: CustomerRepository,
        email_sender: EmailSender,
        today: Optional[date] = None,
    ):
        """Initialize handler with the customer repository and email sender."""
        self.customer_repository = customer_repository
        self.email_sender = email_sender
        self.today = today

    async def handle(self, command: RunEmailJobCommand) -> EmailJobResultDTO:
        """
        Run one scheduled email job.

        Args:
            command: RunEmailJobCommand

        Returns:
            EmailJobResultDTO with sent, skipped and failed counts. An
            unknown job name sends nothing and counts as one skip.
        """
        result = EmailJobResultDTO(task=command.task_name)
        job = EMAIL_JOBS.get(command.task_name)
        if not job:
            logger.warning("Unknown scheduled task", extra={"task": command.task_name})
            result.skipped = 1
            return result

        target = (self.today or datetime.now(timezone.utc).date()) + timedelta(days=job.days_offset)
        day = target.isoformat()
        customers = await self.customer_repository.find_for_email_job(
            job.subscription_status, job.date_field, f"{day}T00:00:00", f"{day}T23:59:59.999999"
        )
        logger.info(
            "Scheduled email job started",
            extra={"task": command.task_name, "target_date": day, "count": len(customers)},
        )

        for customer in customers:
            if customer.was_email_sent(command.task_name):
                result.skipped += 1
                continue

            if command.dry_run:
                logger.info("Dry run, email not sent", extra={"template": job.template})
                result.sent += 1
                continue

            data = {"email": customer.email}
            if job.template == "trialEnding":
                data.update(
                    {
                        "daysRemaining": job.days_offset,
                        "planName": plan_display_name(customer.account_type),
                    }
                )

            sent = await sync_to_async(self.email_sender.send)(job.template, customer.email, data)
            if not sent:
                result.failed += 1
                continue
            await self.customer_repository.mark_email_sent(
                customer.user_id, command.task_name, datetime.now(timezone.utc).isoformat()
            )
            result.sent += 1

        logger.info(
            "Scheduled email job complete",
            extra={"task": command.task_name, **result.to_dict()},
        )
        return result
