"""Caller identity passed from the API layer into services."""

from dataclasses import dataclass

from app.models.user import Role


@dataclass(frozen=True)
class AuthContext:
    """The caller on whose behalf a request runs."""
    user_id: str
    role: Role = Role.user

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin
