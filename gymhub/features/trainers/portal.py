"""
Trainer portal: the members linked to a trainer, and emailing them plans.
"""

from typing import List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from gymhub.core.database import user_trainers, users
from gymhub.core.errors import InternalError, NotFoundError, PermissionError, ValidationError
from gymhub.core.logging import log_event
from gymhub.features.notifications.mailer import MailAttachment, MailDeliveryError, Mailer, MailerNotConfiguredError
from gymhub.features.users.service import row_to_user
from gymhub.features.workout_plans.generator import GeneratedPlan, generate_plan
from gymhub.models.user import User


def list_assigned_users(db: Session, trainer_id: str) -> List[User]:
    rows = db.execute(
        select(users)
        .select_from(user_trainers.join(users, user_trainers.c.user_id == users.c.id))
        .where(user_trainers.c.trainer_id == trainer_id)
        .order_by(user_trainers.c.created_at.desc())
    ).fetchall()
    return [row_to_user(row) for row in rows]


def _assigned_user_row(db: Session, trainer_id: str, user_id: str):
    row = db.execute(select(users).where(users.c.id == user_id)).first()
    if not row:
        raise NotFoundError("User not found")
    link = db.execute(
        select(user_trainers.c.id)
        .where(user_trainers.c.user_id == user_id)
        .where(user_trainers.c.trainer_id == trainer_id)
    ).first()
    if not link:
        raise PermissionError("User not assigned to you")
    return row


def unassign_user(db: Session, trainer_id: str, user_id: str) -> None:
    """Drop the trainer's link to a member; the member account stays."""
    _assigned_user_row(db, trainer_id, user_id)
    db.execute(
        delete(user_trainers)
        .where(user_trainers.c.user_id == user_id)
        .where(user_trainers.c.trainer_id == trainer_id)
    )
    db.commit()
    log_event("info", "trainer.unassigned", user_id=user_id, event_type="trainer.unassigned", extra={"trainer_id": trainer_id})


def plan_filename(name: str) -> str:
    return f"plan-{'_'.join(name.split()).lower()}.pdf"


def send_plan_email(db: Session, trainer_id: str, user_id: str, mailer: Mailer) -> GeneratedPlan:
    """
    Generate a member's 30-day plan and email it as a PDF attachment.

    Raises:
        NotFoundError: Unknown member
        PermissionError: Member not linked to this trainer
        ValidationError: Member has no email
        InternalError: Mail could not be delivered
    """
    row = _assigned_user_row(db, trainer_id, user_id)
    if not row.email:
        raise ValidationError("User has no email configured")

    plan = generate_plan(row.name, row.email, row.height_cm, row.weight_kg)
    bmi_note = f" (BMI: {plan.bmi:.1f})" if plan.bmi else ""
    label = plan.plan_type.label

    try:
        mailer.send(
            to=row.email,
            subject="Your 30-Day Workout & Nutrition Plan",
            text=(
                f"Hi {row.name},\n\nAttached is your personalized 30-day plan. "
                f"Plan type: {label}{bmi_note}.\n\nAll the best!"
            ),
            html=(
                f"<p>Hi {row.name},</p><p>Attached is your personalized <strong>30-day plan</strong>.</p>"
                f"<p>Plan type: <strong>{label}</strong>{bmi_note}.</p><p>All the best!</p>"
            ),
            attachments=[MailAttachment(filename=plan_filename(row.name), content=plan.pdf)],
        )
    except (MailerNotConfiguredError, MailDeliveryError) as exc:
        log_event(
            "error",
            "mail.failed",
            user_id=user_id,
            event_type="plan.email",
            error_code=type(exc).__name__,
            extra={"trainer_id": trainer_id, "reason": exc},
        )
        raise InternalError("Failed to send plan email") from exc

    log_event("info", "plan.emailed", user_id=user_id, event_type="plan.email", extra={"plan_type": plan.plan_type.value})
    return plan
