"""
Member sign-up, login and logout.
"""
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gymhub.core.auth import get_current_principal
from gymhub.core.clock import get_now
from gymhub.core.database import get_db
from gymhub.core.security import revoke_principal_token, sign_token
from gymhub.core.serialization import CamelModel
from gymhub.features.users.service import authenticate, register_user
from gymhub.models.user import Principal, RegisterInput, User

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(CamelModel):
    email: str
    password: str


def _session_payload(user: User, message: str) -> Dict:
    return {
        "message": message,
        "token": sign_token(user.id, user.name, user.role),
        "user": {"id": user.id, "name": user.name, "email": user.email, "role": user.role.value},
    }


@router.post("/register", status_code=201)
def register(body: RegisterInput, db: Session = Depends(get_db), now: datetime = Depends(get_now)) -> Dict:
    user = register_user(db, body, now=now)
    return _session_payload(user, "Registered successfully")


@router.post("/login")
def login(body: LoginRequest, db: Session = Depends(get_db)) -> Dict:
    user = authenticate(db, body.email, body.password)
    return _session_payload(user, "Login successful")


@router.post("/logout")
def logout(principal: Principal = Depends(get_current_principal)) -> Dict:
    revoke_principal_token(principal)
    return {"message": "Logged out"}
