"""
Escalation Notifier: best-effort email delivery for overdue breaks.

``send`` returns True when the message was handed to the SMTP server and
False when mail is not configured. Transport problems raise UpstreamFailure;
callers log it and carry on.
"""

from __future__ import annotations

import logging
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

from ..config import Config
from ..errors import UpstreamFailure

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, to: str, subject: str, text: str, html: str) -> bool: ...


class EmailNotifier:

    def __init__(self, cfg: Config):
        self._cfg = cfg

    @property
    def configured(self) -> bool:
        return bool(self._cfg.smtp_host and self._cfg.email_from)

    async def send(self, to: str, subject: str, text: str, html: str) -> bool:
        if not self.configured:
            logger.debug("Mail not configured; skipping message to %s", to)
            return False

        msg = EmailMessage()
        msg["From"] = self._cfg.email_from
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                msg,
                hostname=self._cfg.smtp_host,
                port=self._cfg.smtp_port,
                username=self._cfg.smtp_user or None,
                password=self._cfg.smtp_password or None,
                start_tls=self._cfg.smtp_start_tls,
                timeout=self._cfg.smtp_timeout_s,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            raise UpstreamFailure(f"Mail delivery to {to} failed: {exc}") from exc

        logger.info("Sent %r to %s", subject, to)
        return True
