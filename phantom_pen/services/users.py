"""
Users and their memoir style profile.

The user row is keyed by the identity-provider subject (`external_id`),
which is also the `owner_id` on every capture, entry and upload.

Public API
----------
upsert_user(db, external_id, **contact)              -> User
get_user(db, external_id)                            -> User   (raises)
update_style_profile(db, external_id, update)        -> User
complete_onboarding(db, external_id)                 -> User
toggle_memoir_privacy(db, external_id)               -> User
delete_user(db, scheduler, external_id)              -> int    (captures deleted)
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from phantom_pen.core.errors import UserNotFoundError
from phantom_pen.core.logging import get_logger
from phantom_pen.models.capture import Capture
from phantom_pen.models.user import User
from phantom_pen.schemas.user import StyleProfileUpdate
from phantom_pen.services.cascade import cascade_user_delete
from phantom_pen.services.scheduler import SynthesisScheduler

logger = get_logger(__name__)


def _find(db: Session, external_id: str) -> Optional[User]:
    return db.query(User).filter(User.external_id == external_id).first()


def get_user(db: Session, external_id: str) -> User:
    user = _find(db, external_id)
    if user is None:
        raise UserNotFoundError(external_id)
    return user


def upsert_user(
    db: Session,
    external_id: str,
    email: Optional[str] = None,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    profile_picture: Optional[str] = None,
) -> User:
    """Create the user on first sign-in; afterwards refresh the contact fields."""
    user = _find(db, external_id)
    if user is None:
        user = User(external_id=external_id)
        db.add(user)
        logger.info("User %s created", external_id)
    user.email = email
    user.first_name = first_name
    user.last_name = last_name
    user.profile_picture = profile_picture
    db.commit()
    db.refresh(user)
    return user


def update_style_profile(db: Session, external_id: str, update: StyleProfileUpdate) -> User:
    user = get_user(db, external_id)
    for field, value in update.model_dump().items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def complete_onboarding(db: Session, external_id: str) -> User:
    user = get_user(db, external_id)
    user.onboarding_completed = True
    db.commit()
    db.refresh(user)
    return user


def toggle_memoir_privacy(db: Session, external_id: str) -> User:
    user = get_user(db, external_id)
    user.is_memoir_public = not user.is_memoir_public
    db.commit()
    db.refresh(user)
    logger.info(
        "User %s memoir is now %s", external_id, "public" if user.is_memoir_public else "private"
    )
    return user


def delete_user(db: Session, scheduler: SynthesisScheduler, external_id: str) -> int:
    user = get_user(db, external_id)
    capture_ids = [
        row.id for row in db.query(Capture.id).filter(Capture.owner_id == external_id).all()
    ]
    try:
        deleted = cascade_user_delete(db, user, scheduler.cancel_job)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for capture_id in capture_ids:
        scheduler.forget(capture_id)
    return deleted
