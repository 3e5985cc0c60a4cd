"""
User administration and role lookup.

POST   /api/admin/users                 : create user (identity + profile)
GET    /api/admin/users                 : list profiles
GET    /api/admin/users/{user_id}       : one profile
PUT    /api/admin/users/{user_id}/role  : change role
DELETE /api/admin/users/{user_id}       : delete profile and identity
GET    /api/user-role/{user_id}         : role of a user (self, or any for admins)
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.auth import ADMIN, CurrentUser, get_current_user, require_roles
from app.database import get_db
from app.dependencies import get_identity_provider
from app.errors import IdentityProviderError, NotFoundError
from app.identity import IdentityProvider
from app.models.profile import ProfileModel
from app.schemas import RoleResponse, RoleUpdate, RoleUpdated, UserCreate, UserCreated, UserResponse

logger = logging.getLogger(__name__)
router = APIRouter()

ROLES = ("admin", "user")


def transform_profile(model: ProfileModel) -> UserResponse:
    return UserResponse(id=model.id, email=model.email, role=model.role)


def get_profile_or_404(db: Session, user_id: str) -> ProfileModel:
    profile = db.query(ProfileModel).filter(ProfileModel.id == user_id).first()
    if profile is None:
        raise NotFoundError("User not found")
    return profile


def check_role(role: str) -> None:
    if role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Invalid role. Allowed roles: {', '.join(ROLES)}")


# ── POST /api/admin/users ────────────────────────────────────────────────
@router.post("/admin/users", response_model=UserCreated, status_code=201)
async def create_user(
    req: UserCreate,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    _: CurrentUser = Depends(require_roles(ADMIN)),
):
    if not req.email or not req.password or not req.role:
        raise HTTPException(status_code=400, detail="Email, password, and role are required.")
    check_role(req.role)

    user = await identity.create_user(req.email, req.password)
    try:
        db.add(ProfileModel(id=user.id, email=req.email, role=req.role))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error creating user profile for %s: %s", user.id, exc)
        # The identity user is useless without a profile
        try:
            await identity.delete_user(user.id)
        except IdentityProviderError as cleanup_exc:
            logger.error("Rollback of identity user %s failed: %s", user.id, cleanup_exc.message)
        raise HTTPException(status_code=500, detail="Error creating user profile")

    logger.info("Created user %s (%s)", user.id, req.role)
    return UserCreated(user_id=user.id)


# ── GET /api/admin/users ─────────────────────────────────────────────────
@router.get("/admin/users", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_roles(ADMIN)),
):
    profiles = db.query(ProfileModel).order_by(ProfileModel.email).all()
    return [transform_profile(p) for p in profiles]


# ── GET /api/admin/users/{user_id} ───────────────────────────────────────
@router.get("/admin/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_roles(ADMIN)),
):
    return transform_profile(get_profile_or_404(db, user_id))


# ── PUT /api/admin/users/{user_id}/role ──────────────────────────────────
@router.put("/admin/users/{user_id}/role", response_model=RoleUpdated)
def update_role(
    user_id: str,
    req: RoleUpdate,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_roles(ADMIN)),
):
    check_role(req.role)
    profile = get_profile_or_404(db, user_id)
    profile.role = req.role
    db.commit()
    logger.info("Role of %s set to %s", user_id, req.role)
    return RoleUpdated(user=transform_profile(profile))


# ── DELETE /api/admin/users/{user_id} ────────────────────────────────────
@router.delete("/admin/users/{user_id}", status_code=204)
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
    _: CurrentUser = Depends(require_roles(ADMIN)),
):
    profile = get_profile_or_404(db, user_id)
    db.delete(profile)
    db.commit()
    await identity.delete_user(user_id)
    logger.info("Deleted user %s", user_id)
    return Response(status_code=204)


# ── GET /api/user-role/{user_id} ─────────────────────────────────────────
@router.get("/user-role/{user_id}", response_model=RoleResponse)
def get_user_role(
    user_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    if user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied: Insufficient permissions")
    return RoleResponse(role=get_profile_or_404(db, user_id).role)
