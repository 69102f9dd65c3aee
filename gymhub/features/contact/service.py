"""Public contact form submissions."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from gymhub.core.clock import as_utc, normalize_now
from gymhub.core.database import contact_messages, new_id
from gymhub.core.errors import ValidationError
from gymhub.core.logging import log_event
from gymhub.models.contact import ContactMessage


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def submit_message(
    db: Session,
    name: Optional[str],
    email: Optional[str],
    message: Optional[str],
    phone: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ContactMessage:
    name, email, message = _clean(name), _clean(email), _clean(message)
    if not name or not email or not message:
        raise ValidationError("Name, email and message are required")

    message_id = new_id()
    created_at = normalize_now(now)
    db.execute(
        insert(contact_messages).values(
            id=message_id, name=name, email=email, phone=_clean(phone), message=message, created_at=created_at
        )
    )
    db.commit()
    log_event("info", "contact.received", event_type="contact.received", extra={"contact_id": message_id})
    return ContactMessage(id=message_id, name=name, email=email, phone=_clean(phone), message=message, created_at=created_at)


def list_messages(db: Session) -> List[ContactMessage]:
    rows = db.execute(select(contact_messages).order_by(contact_messages.c.created_at.desc())).fetchall()
    return [
        ContactMessage(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            message=row.message,
            created_at=as_utc(row.created_at),
        )
        for row in rows
    ]
