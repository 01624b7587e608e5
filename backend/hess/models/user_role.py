"""User role assignment model."""
from sqlalchemy import Column, ForeignKey, UniqueConstraint, Uuid

from hess.models.base import BaseModel, enum_type
from hess.models.enums import AppRole


class UserRole(BaseModel):
    """Grants an application role to an identity."""

    __tablename__ = "user_roles"

    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("auth_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role = Column(
        enum_type(AppRole, "app_role"),
        nullable=False,
        default=AppRole.MEMBER
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id}, role={self.role})>"
