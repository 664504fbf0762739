"""
Users router. Every route acts on the authenticated caller.

PUT    /users/me                        — Create or refresh the user record
GET    /users/me                        — Profile and style preferences
PUT    /users/me/profile                — Save onboarding answers
POST   /users/me/complete-onboarding    — Mark onboarding done
POST   /users/me/toggle-memoir-privacy  — Flip public / private memoir
DELETE /users/me                        — Delete the user and everything they own
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from phantom_pen.core.auth import get_current_user_id
from phantom_pen.db.base import get_db
from phantom_pen.models.user import User
from phantom_pen.schemas.common import DeletedResponse
from phantom_pen.schemas.user import StyleProfile, StyleProfileUpdate, UpsertUserRequest, UserResponse
from phantom_pen.services import users as user_service
from phantom_pen.services.scheduler import SynthesisScheduler, get_scheduler

router = APIRouter(prefix="/users", tags=["users"])


def _to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        external_id=user.external_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        profile_picture=user.profile_picture,
        onboarding_completed=user.onboarding_completed,
        is_memoir_public=user.is_memoir_public,
        style=StyleProfile.model_validate(user),
    )


@router.put("/me", response_model=UserResponse, summary="Create or refresh the caller's record")
def upsert_me(
    payload: UpsertUserRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Called after every sign-in; contact fields are overwritten with the provider's values."""
    user = user_service.upsert_user(db, user_id, **payload.model_dump())
    return _to_response(user)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="The caller's profile",
    responses={404: {"description": "User record not created yet."}},
)
def get_me(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return _to_response(user_service.get_user(db, user_id))


@router.put("/me/profile", response_model=UserResponse, summary="Save the memoir style profile")
def update_profile(
    payload: StyleProfileUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return _to_response(user_service.update_style_profile(db, user_id, payload))


@router.post("/me/complete-onboarding", response_model=UserResponse, summary="Finish onboarding")
def complete_onboarding(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return _to_response(user_service.complete_onboarding(db, user_id))


@router.post(
    "/me/toggle-memoir-privacy",
    response_model=UserResponse,
    summary="Flip the caller's memoir between public and private",
)
def toggle_memoir_privacy(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return _to_response(user_service.toggle_memoir_privacy(db, user_id))


@router.delete(
    "/me",
    response_model=DeletedResponse,
    summary="Delete the caller and all their notes, memoir entries and uploads",
)
def delete_me(
    db: Session = Depends(get_db),
    scheduler: SynthesisScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_current_user_id),
):
    user_service.delete_user(db, scheduler, user_id)
    return DeletedResponse(id=user_id)
