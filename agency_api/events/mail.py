"""Outbound mail via Amazon SES.

Invite and reset flows call the send_* helpers after their own commit and
treat any exception as non-fatal: the plaintext link is always returned to
the caller as a fallback delivery channel.
"""

import html
import logging
from typing import Optional

import boto3
from botocore.config import Config

from agency_api.config import env

logger = logging.getLogger(__name__)


class MailNotConfiguredError(RuntimeError):
    """Raised when MAIL_FROM is unset and mail cannot be sent."""


class MailSender:
    """SES client wrapper with a single send() operation."""

    def __init__(
        self,
        sender: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        self.sender = sender or env.get_mail_from()
        if not self.sender:
            raise MailNotConfiguredError("MAIL_FROM is not set; outbound mail is disabled")

        self.region = region or env.get_aws_region()
        config = Config(
            region_name=self.region,
            retries={"max_attempts": 3, "mode": "standard"},
            connect_timeout=5,
            read_timeout=10,
        )
        self.client = boto3.client(
            "ses",
            config=config,
            endpoint_url=endpoint_url or env.get_ses_endpoint_url(),
        )

    def send(self, to_address: str, subject: str, html_body: str) -> str:
        """Send one HTML email.

        Returns:
            SES MessageId
        """
        response = self.client.send_email(
            Source=self.sender,
            Destination={"ToAddresses": [to_address]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Html": {"Data": html_body, "Charset": "UTF-8"}},
            },
        )
        message_id = response.get("MessageId", "")
        logger.info("Mail sent", extra={"event": "mail.sent", "message_id": message_id})
        return message_id


_sender: Optional[MailSender] = None


def get_mail_sender() -> MailSender:
    """Return the process-wide sender, creating it on first use."""
    global _sender
    if _sender is None:
        _sender = MailSender()
    return _sender


def _button(link: str, label: str) -> str:
    return (
        f'<p><a href="{html.escape(link, quote=True)}" '
        'style="background:#4F46E5;color:white;padding:12px 24px;border-radius:6px;'
        f'text-decoration:none;display:inline-block;">{label}</a></p>'
    )


def send_invite_email(to_address: str, name: str, link: str, role: str) -> None:
    body = (
        "<h2>Welcome to the agency workspace</h2>"
        f"<p>Hi {html.escape(name)},</p>"
        f"<p>You've been invited to join the agency as a <strong>{html.escape(role)}</strong>.</p>"
        "<p>Click the button below to set your password and activate your account:</p>"
        f"{_button(link, 'Accept Invitation')}"
        "<p>This link expires in 72 hours.</p>"
        "<p>If you did not expect this invitation, you can safely ignore this email.</p>"
    )
    get_mail_sender().send(to_address, "You've been invited to the agency workspace", body)


def send_password_reset_email(to_address: str, name: str, link: str) -> None:
    body = (
        "<h2>Password Reset Request</h2>"
        f"<p>Hi {html.escape(name)},</p>"
        "<p>We received a request to reset your password. "
        "Click the button below to choose a new password:</p>"
        f"{_button(link, 'Reset Password')}"
        "<p>This link expires in 1 hour.</p>"
        "<p>If you did not request a password reset, you can safely ignore this email.</p>"
    )
    get_mail_sender().send(to_address, "Reset your agency workspace password", body)
