"""
Bearer-token authentication and role authorization dependencies.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_identity_provider
from app.identity import IdentityProvider
from app.models.profile import ProfileModel

logger = logging.getLogger(__name__)

ADMIN = "admin"


@dataclass
class CurrentUser:
    id: str
    email: Optional[str]
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    identity: IdentityProvider = Depends(get_identity_provider),
    db: Session = Depends(get_db),
) -> CurrentUser:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="No token provided or invalid format")
    token = authorization.split(" ", 1)[1].strip()

    user = await identity.get_user(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    profile = db.query(ProfileModel).filter(ProfileModel.id == user.id).first()
    if profile is None:
        logger.warning("No profile for authenticated user %s", user.id)
        raise HTTPException(status_code=401, detail="User profile not found or access denied")

    return CurrentUser(id=user.id, email=user.email or profile.email, role=profile.role)


def require_roles(*roles: str):
    """Dependency that admits only users holding one of ``roles``."""

    def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.role:
            raise HTTPException(status_code=403, detail="Access denied: User role not found")
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Access denied: Insufficient permissions")
        return user

    return _check
