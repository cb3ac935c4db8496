"""
Django management command to run a scheduled customer email job.

Normally run by Celery beat; this command runs a job by hand.
"""

import asyncio
import logging

from django.core.management.base import BaseCommand, CommandError

from billing.application.commands.run_email_job import RunEmailJobCommand
from billing.application.handlers.customer_email_job_handler import (
    EMAIL_JOBS,
    CustomerEmailJobHandler,
)
from core.infrastructure.email import SesEmailSender
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to run a scheduled email job."""

    help = "Run a scheduled email job (trial-reminder, winback-30, winback-90)"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument("task", help="Job name")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Dry run mode - count recipients without sending",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        task = options["task"]
        if task not in EMAIL_JOBS:
            raise CommandError(f"Unknown task '{task}'. Choose from: {', '.join(EMAIL_JOBS)}")

        if options["dry_run"]:
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("DRY RUN - No emails will be sent"))

        handler = CustomerEmailJobHandler(
            customer_repository=DynamoDBCustomerRepository(),
            email_sender=SesEmailSender(),
        )
        result = asyncio.run(
            handler.handle(RunEmailJobCommand(task_name=task, dry_run=options["dry_run"]))
        )

        self.stdout.write(
            # pylint: disable=no-member
            self.style.SUCCESS(
                f"{task}: sent={result.sent} skipped={result.skipped} failed={result.failed}"
            )
        )
