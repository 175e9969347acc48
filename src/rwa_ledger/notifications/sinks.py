"""Log and e-mail notification sinks."""

import logging

import httpx

from rwa_ledger.notifications.base import Notification

logger = logging.getLogger(__name__)


class LoggingSink:
    """Writes every notification to the application log."""

    async def send(self, notification: Notification) -> None:
        logger.info(
            "Notification %s for user %s: %s",
            notification.event_type,
            notification.user_id or "-",
            notification.title,
            extra={"event_type": notification.event_type, "user_id": notification.user_id},
        )


class EmailSink:
    """Sends notification e-mails.

    Supports SendGrid and Resend via environment configuration.
    Falls back to logging if no provider is configured.
    """

    def __init__(
        self,
        provider: str = "",
        api_key: str = "",
        from_email: str = "notifications@rwa-ledger.local",
        from_name: str = "RWA Ledger",
    ):
        self.provider = provider.lower()  # "sendgrid" or "resend"
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name

    async def send(self, notification: Notification) -> None:
        if not notification.email:
            return
        subject = f"[{self.from_name}] {notification.title}"
        body = self._build_body(notification)

        if self.provider == "sendgrid":
            await self._send_sendgrid(notification.email, subject, body)
        elif self.provider == "resend":
            await self._send_resend(notification.email, subject, body)
        else:
            logger.info(
                "No email provider configured; would send '%s' to %s",
                subject,
                notification.email,
            )

    def _build_body(self, notification: Notification) -> str:
        return (
            f"{notification.message}\n\n"
            f"Event: {notification.event_type}\n\n"
            f"{self.from_name}"
        )

    async def _send_sendgrid(self, to: str, subject: str, body: str) -> bool:
        """Send via SendGrid v3 API."""
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                "https://api.sendgrid.com/v3/mail/send",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "personalizations": [{"to": [{"email": to}]}],
                    "from": {"email": self.from_email, "name": self.from_name},
                    "subject": subject,
                    "content": [{"type": "text/plain", "value": body}],
                },
                timeout=30,
            )
        if resp.status_code in (200, 202):
            logger.info("SendGrid email sent to %s", to)
            return True
        logger.warning("SendGrid error: %s %s", resp.status_code, resp.text)
        return False

    async def _send_resend(self, to: str, subject: str, body: str) -> bool:
        """Send via Resend API."""
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                "https://api.resend.com/emails",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": f"{self.from_name} <{self.from_email}>",
                    "to": [to],
                    "subject": subject,
                    "text": body,
                },
                timeout=30,
            )
        if resp.status_code in (200, 201):
            logger.info("Resend email sent to %s", to)
            return True
        logger.warning("Resend error: %s %s", resp.status_code, resp.text)
        return False
