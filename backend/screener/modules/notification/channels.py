"""Email delivery channel."""

import asyncio
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from screener.core.config import settings


@dataclass
class ChannelDeliveryResult:
    """Result of a channel delivery attempt."""
    success: bool
    recipient: str
    delivered_at: Optional[datetime] = None
    error: Optional[str] = None


class EmailChannel:
    """SMTP email channel."""

    channel_name = "email"

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        from_email: Optional[str] = None,
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.from_email = from_email if from_email is not None else settings.SMTP_FROM_EMAIL

    async def deliver(
        self,
        recipient: str,
        subject: str,
        text_body: str,
        html_body: str,
    ) -> ChannelDeliveryResult:
        """Send one email. Failures are returned, not raised."""
        if not self.host or not self.from_email:
            return ChannelDeliveryResult(
                success=False, recipient=recipient, error="SMTP not configured"
            )

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = recipient
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            # smtplib blocks; keep it off the event loop
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._send_smtp, recipient, msg)
        except (smtplib.SMTPException, OSError) as e:
            return ChannelDeliveryResult(success=False, recipient=recipient, error=str(e))

        return ChannelDeliveryResult(
            success=True, recipient=recipient, delivered_at=datetime.utcnow()
        )

    def _send_smtp(self, recipient: str, msg: MIMEMultipart) -> None:
        """Send email via SMTP (blocking operation)."""
        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            if settings.SMTP_TLS:
                server.starttls()

            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)

            server.sendmail(self.from_email, recipient, msg.as_string())
