"""
SES email adapter and transactional templates.

Each template is a function from its variables to (subject, text, html).
HTML bodies wrap the plain text.
"""

import logging
from typing import Any, Callable, Dict, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.utils.html import escape, linebreaks

from core.metrics import emails_sent_total
from core.ports.email_sender import EmailSender

logger = logging.getLogger(__name__)

PRODUCT_NAME = "Mouse"
COMPANY_NAME = "HIC AI"

Rendered = Tuple[str, str]


def _welcome(data: Dict[str, Any]) -> Rendered:
    return (
        f"Welcome to {PRODUCT_NAME}! Complete your account setup",
        f"Thank you for your purchase! Your subscription is now active.\n\n"
        f"Complete your account setup to get your license key:\n"
        f"{settings.APP_URL}/welcome?session_id={data.get('sessionId', '')}",
    )


def _license_delivery(data: Dict[str, Any]) -> Rendered:
    return (
        f"Your {PRODUCT_NAME} License Key",
        f"Here's your {PRODUCT_NAME} {data.get('planName', '')} license key:\n\n"
        f"{data['licenseKey']}\n\n"
        f"How to activate:\n"
        f"1. Install the {PRODUCT_NAME} extension from the VS Code Marketplace\n"
        f"2. Open VS Code Settings (Cmd/Ctrl + ,)\n"
        f'3. Search for "mouse.licenseKey"\n'
        f"4. Paste your license key and restart VS Code\n\n"
        f"Go to your portal: {settings.APP_URL}/portal",
    )


def _payment_failed(data: Dict[str, Any]) -> Rendered:
    attempt = int(data.get("attemptCount") or 1)
    if attempt < 3:
        outcome = f"We'll retry on {data.get('retryDate') or 'the next billing attempt'}."
    else:
        outcome = "This was the final attempt. Your license has been suspended."
    return (
        f"Action Required: Payment Failed for {PRODUCT_NAME}",
        f"We were unable to process your payment for {PRODUCT_NAME}. "
        f"This was attempt {attempt} of 3.\n\n{outcome}\n\n"
        f"Update your payment method: {settings.APP_URL}/portal/billing",
    )


def _trial_ending(data: Dict[str, Any]) -> Rendered:
    days = data.get("daysRemaining", 3)
    return (
        f"Your {PRODUCT_NAME} trial ends in {days} days",
        f"Your {PRODUCT_NAME} {data.get('planName') or ''} trial ends in {days} days.\n\n"
        f"Your subscription starts automatically. Manage it here: "
        f"{settings.APP_URL}/portal/billing",
    )


def _dispute_alert(data: Dict[str, Any]) -> Rendered:
    return (
        f"[ALERT] Chargeback opened for {data.get('customerEmail') or 'unknown customer'}",
        f"A dispute was opened.\n\n"
        f"Customer: {data.get('customerEmail') or 'unknown'}\n"
        f"Amount: {data.get('amount')} {str(data.get('currency') or '').upper()}\n"
        f"Reason: {data.get('reason')}\n"
        f"Dispute: {data.get('disputeId')}\n\n"
        f"The customer's license has been suspended pending resolution.",
    )


def _enterprise_invite(data: Dict[str, Any]) -> Rendered:
    inviter = data.get("inviterName") or "A teammate"
    return (
        f"{inviter} invited you to join {data.get('organizationName') or 'their team'} on {PRODUCT_NAME}",
        f"{inviter} invited you to join {data.get('organizationName') or 'their team'} "
        f"as {data.get('role', 'member')}.\n\n"
        f"Accept the invite: {settings.APP_URL}/invite/{data['inviteToken']}\n\n"
        f"This invite expires in 7 days.",
    )


def _win_back(days: int) -> Callable[[Dict[str, Any]], Rendered]:
    def render(data: Dict[str, Any]) -> Rendered:
        return (
            f"We miss you at {PRODUCT_NAME}",
            f"It's been {days} days since you left {PRODUCT_NAME}. "
            f"A lot has shipped since then.\n\n"
            f"Come back any time: {settings.APP_URL}/pricing",
        )

    return render


TEMPLATES: Dict[str, Callable[[Dict[str, Any]], Rendered]] = {
    "welcome": _welcome,
    "licenseDelivery": _license_delivery,
    "paymentFailed": _payment_failed,
    "trialEnding": _trial_ending,
    "disputeAlert": _dispute_alert,
    "enterpriseInvite": _enterprise_invite,
    "winBack30": _win_back(30),
    "winBack90": _win_back(90),
}


def render_template(template: str, data: Dict[str, Any]) -> Tuple[str, str, str]:
    """
    Render a template.

    Returns:
        Tuple of (subject, text, html)

    Raises:
        ValueError: For an unknown template name
    """
    if template not in TEMPLATES:
        raise ValueError(f"Unknown email template: {template}")
    subject, text = TEMPLATES[template](data)
    text = f"{text}\n\n{COMPANY_NAME}"
    html = (
        '<!DOCTYPE html><html><body style="font-family: sans-serif;">'
        f"{linebreaks(escape(text))}</body></html>"
    )
    return subject, text, html


class SesEmailSender(EmailSender):
    """Amazon SES adapter."""

    def __init__(self, client=None, from_email: str = None):
        self._client = client
        self.from_email = from_email or settings.SES_FROM_EMAIL

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client("ses", region_name=settings.AWS_REGION)
        return self._client

    def send(self, template: str, to: str, data: Dict[str, Any]) -> bool:
        subject, text, html = render_template(template, data)
        try:
            response = self.client.send_email(
                Source=self.from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Text": {"Data": text, "Charset": "UTF-8"},
                        "Html": {"Data": html, "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            emails_sent_total.labels(template=template, outcome="failed").inc()
            logger.error("Email failed", extra={"template": template, "error": str(e)})
            return False
        emails_sent_total.labels(template=template, outcome="sent").inc()
        logger.info(
            "Email sent",
            extra={"template": template, "message_id": response.get("MessageId")},
        )
        return True
