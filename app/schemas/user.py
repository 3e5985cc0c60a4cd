"""
User administration schemas.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    email: str
    password: str
    role: str = Field(..., description="admin | user")


class UserCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "User created successfully"
    user_id: str = Field(..., alias="userId")


class UserResponse(BaseModel):
    id: str
    email: str
    role: str


class RoleUpdate(BaseModel):
    role: str


class RoleUpdated(BaseModel):
    message: str = "User role updated successfully"
    user: UserResponse


class RoleResponse(BaseModel):
    role: str
