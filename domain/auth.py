"""Domain Entities - Auth"""
from pydantic import BaseModel
from typing import Optional

from domain.enums import Role


class CallerIdentity(BaseModel):
    """Who is calling, resolved once per request by the auth collaborator"""
    id: str
    role: Role = Role.USER
    verified: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    class Config:
        frozen = True


class User(BaseModel):
    """User Entity"""
    user_id: str
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Role = Role.USER
    verification_status: str = "unverified"
    disabled: bool = False

    def to_identity(self) -> CallerIdentity:
        return CallerIdentity(
            id=self.user_id,
            role=self.role,
            verified=self.verification_status == "verified"
        )

    class Config:
        from_attributes = True


class UserInDB(User):
    """User with hashed password for DB storage"""
    hashed_password: str
