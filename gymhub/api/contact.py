"""
Public contact form; owners read the submissions.
"""
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import require_owner
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.serialization import CamelModel, dump_all
from gymhub.features.contact.service import list_messages, submit_message
from gymhub.models.user import Principal

router = APIRouter(prefix="/api/contact", tags=["contact"])


class ContactRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None


@router.post("", status_code=201)
def submit(body: ContactRequest, db: Session = Depends(get_db), now: datetime = Depends(get_now)) -> Dict:
    submit_message(db, body.name, body.email, body.message, phone=body.phone, now=now)
    return {"message": "Thanks! We will get back to you shortly."}


@router.get("")
def messages(_: Principal = Depends(require_owner), db: Session = Depends(get_db)) -> Dict:
    return {"messages": dump_all(list_messages(db))}
