"""
Email Transport Service.

Sends multipart (plain text + HTML) notifications synchronously over SMTP
with a structured audit event for every attempt.

Architectural notes:
    - Configuration injected as AppConfig; ``is_configured`` lets callers
      soft-skip instead of attempting a send that cannot succeed.
    - SMTP failures never raise: ``_dispatch_smtp`` maps them to a failed
      ``ServiceResult``.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional, Union

from portal.config import AppConfig
from portal.logger import StructuredLogger
from portal.models.service_models import ServiceResult
from portal.services.base_service import BaseService
from portal.utils.audit import log_audit_event


class EmailService(BaseService):
    """Service for composing and sending email notifications."""

    def __init__(self, config: AppConfig, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._config = config

    @property
    def is_configured(self) -> bool:
        """``True`` when SMTP credentials and server are all present."""
        try:
            self._config.validate_email_config()
        except ValueError:
            return False
        return True

    # ------------------------------------------------------------------
    # Core send method
    # ------------------------------------------------------------------

    def send_email(
        self,
        to: Union[str, list[str]],
        subject: str,
        html: str,
        text: str,
        sender_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> ServiceResult:
        """
        Compose and send an email synchronously via SMTP.

        Multiple recipients go out as one message.  The envelope sender is
        always the configured mailbox; *sender_name* only changes the display
        name, and *reply_to* defaults to the mailbox itself.
        """
        try:
            self._config.validate_email_config()
        except ValueError as exc:
            self._logger.error("Email configuration error: %s", exc)
            return ServiceResult(
                success=False,
                error=f"Email configuration error: {exc}",
                status_code=503,
            )

        recipients = [to] if isinstance(to, str) else list(to)
        recipients_str = ", ".join(recipients)
        mailbox = self._config.MAIL_USERNAME

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((sender_name or self._config.MAIL_SENDER_NAME, mailbox))
        msg["To"] = recipients_str
        msg["Reply-To"] = reply_to or mailbox
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")

        log_audit_event(
            logger=self._logger,
            action="EMAIL_SEND_ATTEMPT",
            entity_type="Email",
            entity_id=subject,
            details={"to": recipients_str, "subject": subject},
        )

        return self._dispatch_smtp(msg)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _dispatch_smtp(self, msg: EmailMessage) -> ServiceResult:
        """
        Open an SMTP connection, authenticate, send, and close.

        Returns ServiceResult so callers never need to handle raw SMTP
        exceptions.
        """
        config = self._config
        smtp: Optional[smtplib.SMTP] = None
        try:
            smtp = smtplib.SMTP(config.MAIL_SERVER, config.MAIL_PORT, timeout=30)
            smtp.starttls()
            smtp.login(config.MAIL_USERNAME, config.MAIL_PASSWORD.get_secret_value())
            smtp.send_message(msg)

            self._logger.info("Email sent successfully to %s", msg["To"])
            log_audit_event(
                logger=self._logger,
                action="EMAIL_SENT",
                entity_type="Email",
                entity_id=msg["Subject"] or "",
                details={"to": msg["To"], "subject": msg["Subject"]},
            )
            return ServiceResult(success=True)

        except smtplib.SMTPAuthenticationError as exc:
            self._logger.error(
                "SMTP authentication failed for '%s': %s", config.MAIL_USERNAME, exc
            )
            return ServiceResult(
                success=False,
                error=f"SMTP authentication failed: {exc}",
                status_code=500,
            )

        except smtplib.SMTPException as exc:
            self._logger.error("SMTP error sending to %s: %s", msg["To"], exc)
            return ServiceResult(
                success=False, error=f"SMTP error: {exc}", status_code=500
            )

        except OSError as exc:
            self._logger.error(
                "Network error connecting to %s:%d: %s",
                config.MAIL_SERVER,
                config.MAIL_PORT,
                exc,
            )
            return ServiceResult(
                success=False, error=f"Network error: {exc}", status_code=500
            )

        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except smtplib.SMTPException:
                    self._logger.debug("SMTP quit failed", exc_info=True)
