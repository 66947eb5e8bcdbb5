"""Principal, role and claim service operations."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.user import PERMISSION_CLAIM_TYPE, Role, RoleClaim, User, UserClaim

DEFAULT_ROLE = "User"


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.strip().lower()).limit(1))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.id)).all())


def get_role(db: Session, name: str) -> Role | None:
    return db.scalar(select(Role).where(Role.name == name).limit(1))


def ensure_role(db: Session, name: str) -> Role:
    role = get_role(db, name)
    if role is None:
        role = Role(name=name)
        db.add(role)
        db.flush()
    return role


def create_user(
    db: Session,
    email: str,
    hashed_password: str,
    first_name: str = "",
    last_name: str = "",
    roles: list[str] | None = None,
) -> User:
    """Create an active principal with the given roles (``User`` by default)."""
    normalized_email = email.strip().lower()
    user = User(
        username=normalized_email,
        email=normalized_email,
        password_hash=hashed_password,
        first_name=first_name,
        last_name=last_name,
        is_active=True,
    )
    for role_name in roles or [DEFAULT_ROLE]:
        user.roles.append(ensure_role(db, role_name))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def assign_roles(db: Session, user: User, role_names: list[str]) -> User:
    """Replace the role set of ``user``; unknown role names raise ``ValueError``."""
    roles: list[Role] = []
    for name in role_names:
        role = get_role(db, name)
        if role is None:
            raise ValueError(f"Unknown role: {name}")
        roles.append(role)
    user.roles = roles
    db.commit()
    db.refresh(user)
    return user


def add_role_claim(db: Session, role: Role, value: str) -> bool:
    """Attach a permission claim to a role; returns False when already present."""
    if any(claim.claim_value == value and claim.claim_type == PERMISSION_CLAIM_TYPE for claim in role.claims):
        return False
    role.claims.append(RoleClaim(claim_type=PERMISSION_CLAIM_TYPE, claim_value=value))
    db.flush()
    return True


def add_user_claim(db: Session, user: User, value: str) -> bool:
    if any(claim.claim_value == value and claim.claim_type == PERMISSION_CLAIM_TYPE for claim in user.claims):
        return False
    user.claims.append(UserClaim(claim_type=PERMISSION_CLAIM_TYPE, claim_value=value))
    db.commit()
    return True


def set_active(db: Session, user: User, is_active: bool) -> User:
    user.is_active = is_active
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, user: User, first_name: str, last_name: str) -> User:
    user.first_name = first_name
    user.last_name = last_name
    db.commit()
    db.refresh(user)
    return user
