"""
Outbound email.

Mail is a collaborator: order settlement and the trainer portal talk to the
``Mailer`` protocol, production wires ``SmtpMailer`` and tests use a
recording fake. Delivery failures surface as ``MailDeliveryError`` and the
callers decide whether they are fatal.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol, Sequence

from gymhub.core.config import Settings, settings
from gymhub.core.money import format_money
from gymhub.core.logging import log_event
from gymhub.models.shop import Order

logger = logging.getLogger("gymhub")


class MailerNotConfiguredError(RuntimeError):
    pass


class MailDeliveryError(RuntimeError):
    pass


@dataclass(frozen=True)
class MailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


class Mailer(Protocol):
    def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
        attachments: Sequence[MailAttachment] = (),
    ) -> None:
        ...


@dataclass
class SmtpConfig:
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    from_email: Optional[str]
    timeout: int = 20

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "SmtpConfig":
        cfg = cfg or settings
        user = cfg.SMTP_USER or cfg.EMAIL_USER
        return cls(
            host=cfg.SMTP_HOST or cfg.EMAIL_HOST or "smtp.gmail.com",
            port=cfg.SMTP_PORT or cfg.EMAIL_PORT or 465,
            user=user,
            password=cfg.SMTP_PASS or cfg.EMAIL_PASSWORD,
            from_email=cfg.MAIL_FROM or cfg.EMAIL_FROM or user,
            timeout=cfg.SMTP_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.port and self.user and self.password)


class SmtpMailer:
    """SMTP delivery; implicit TLS on port 465, STARTTLS otherwise."""

    def __init__(self, config: Optional[SmtpConfig] = None):
        self.config = config or SmtpConfig.from_settings()

    def _build_message(self, to, subject, text, html, attachments) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.config.from_email or ""
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text or "")
        if html:
            msg.add_alternative(html, subtype="html")
        for attachment in attachments:
            maintype, _, subtype = attachment.content_type.partition("/")
            msg.add_attachment(
                attachment.content,
                maintype=maintype,
                subtype=subtype or "octet-stream",
                filename=attachment.filename,
            )
        return msg

    def send(self, to, subject, text, html=None, attachments=()) -> None:
        cfg = self.config
        if not cfg.is_configured:
            raise MailerNotConfiguredError(
                "SMTP not configured. Set SMTP_HOST/PORT/USER/PASS (or EMAIL_HOST/PORT/USER/PASSWORD)."
            )

        msg = self._build_message(to, subject, text, html, attachments)
        try:
            if cfg.port == 465:
                with smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=cfg.timeout) as server:
                    server.login(cfg.user, cfg.password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout) as server:
                    server.ehlo()
                    server.starttls()
                    server.ehlo()
                    server.login(cfg.user, cfg.password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(f"SMTP send failed: {exc}") from exc

        logger.info("mail.sent", extra={"event_type": "mail.sent"})


_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    """FastAPI dependency; tests override it with a recording mailer."""
    global _mailer
    if _mailer is None:
        _mailer = SmtpMailer()
    return _mailer


def order_confirmation_text(user_name: str, order: Order) -> str:
    return (
        f"Hi {user_name}, your order {order.id} is confirmed. "
        f"Payment method: {order.payment_method.value}. Total: {format_money(order.total)}."
    )


def send_order_confirmation(mailer: Mailer, user_name: str, user_email: Optional[str], order: Order) -> bool:
    """
    Best-effort confirmation email. Returns whether it was sent.

    The order is already committed when this runs, so delivery problems are
    logged and never raised.
    """
    if not user_email:
        return False
    try:
        mailer.send(to=user_email, subject="Order Confirmed", text=order_confirmation_text(user_name, order))
    except (MailerNotConfiguredError, MailDeliveryError) as exc:
        log_event(
            "warning",
            "mail.failed",
            user_id=order.user_id,
            event_type="order.confirmation",
            error_code=type(exc).__name__,
            extra={"order_id": order.id, "reason": exc},
        )
        return False
    return True
