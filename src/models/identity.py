"""Caller identity and profile models."""

from enum import Enum

from pydantic import BaseModel


class Role(str, Enum):
    """Role claim issued by the identity provider."""

    CUSTOMER = "customer"
    ADMIN = "admin"


class Principal(BaseModel):
    """Authenticated caller as resolved from request claims."""

    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class Profile(BaseModel):
    """Customer or admin profile, used for display names in ticket search."""

    user_id: str
    first_name: str
    last_name: str
    role: Role = Role.CUSTOMER

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
