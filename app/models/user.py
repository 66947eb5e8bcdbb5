"""Principal, role and permission-claim ORM models."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Table, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

PERMISSION_CLAIM_TYPE = "permission"

user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    """Named role carrying a set of permission claims."""

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    claims: Mapped[list["RoleClaim"]] = relationship(
        back_populates="role", cascade="all, delete-orphan", lazy="selectin"
    )


class RoleClaim(Base):
    __tablename__ = "role_claims"
    __table_args__ = (UniqueConstraint("role_id", "claim_type", "claim_value", name="uq_role_claims"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    claim_type: Mapped[str] = mapped_column(String(64), nullable=False, default=PERMISSION_CLAIM_TYPE)
    claim_value: Mapped[str] = mapped_column(String(128), nullable=False)

    role: Mapped[Role] = relationship(back_populates="claims")


class UserClaim(Base):
    __tablename__ = "user_claims"
    __table_args__ = (UniqueConstraint("user_id", "claim_type", "claim_value", name="uq_user_claims"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    claim_type: Mapped[str] = mapped_column(String(64), nullable=False, default=PERMISSION_CLAIM_TYPE)
    claim_value: Mapped[str] = mapped_column(String(128), nullable=False)

    user: Mapped["User"] = relationship(back_populates="claims")


class User(Base):
    """Authenticated principal; deactivated instead of deleted."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    roles: Mapped[list[Role]] = relationship(secondary=user_roles, lazy="selectin")
    claims: Mapped[list[UserClaim]] = relationship(
        back_populates="user", cascade="all, delete-orphan", lazy="selectin"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def role_names(self) -> list[str]:
        return sorted(role.name for role in self.roles)

    @property
    def permissions(self) -> list[str]:
        """Own permission claims merged with the claims of every assigned role."""
        values = {claim.claim_value for claim in self.claims if claim.claim_type == PERMISSION_CLAIM_TYPE}
        for role in self.roles:
            values.update(claim.claim_value for claim in role.claims if claim.claim_type == PERMISSION_CLAIM_TYPE)
        return sorted(values)
