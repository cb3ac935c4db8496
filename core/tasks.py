"""
Celery tasks for background processing.

Tasks for transactional email delivery and the scheduled customer jobs.
"""
import asyncio
import logging

from plg_website.celery import app

from billing.application.commands.run_email_job import RunEmailJobCommand
from billing.application.handlers.customer_email_job_handler import CustomerEmailJobHandler
from core.infrastructure.email import SesEmailSender
from licenses.infrastructure.repositories.dynamodb_customer_repository import (
    DynamoDBCustomerRepository,
)

logger = logging.getLogger(__name__)


@app.task(bind=True, max_retries=3)
def send_email_task(self, template: str, to: str, data: dict):
    """
    Celery task for transactional email.

    Args:
        template: Template name
        to: Recipient address
        data: Template variables
    """
    if not SesEmailSender().send(template, to, data):
        logger.warning("Email send failed, retrying", extra={"template": template})
        raise self.retry(countdown=2 ** self.request.retries)
    return True


@app.task
def run_scheduled_task(task_name: str, dry_run: bool = False) -> dict:
    """
    Run a scheduled lifecycle email job.

    Args:
        task_name: trial-reminder, winback-30 or winback-90
        dry_run: Count recipients without sending

    Returns:
        Job result counts
    """
    handler = CustomerEmailJobHandler(
        customer_repository=DynamoDBCustomerRepository(),
        email_sender=SesEmailSender(),
    )
    result = asyncio.run(handler.handle(RunEmailJobCommand(task_name=task_name, dry_run=dry_run)))
    return result.to_dict()
