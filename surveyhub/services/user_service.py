"""User lookups for the caller's profile and the admin assignment screens."""

from surveyhub.core.exceptions import NotFoundError, ValidationError
from surveyhub.models import db
from surveyhub.models.user import ROLE_CLIENT, ROLE_SURVEYOR, User


def get_current_user(identity) -> User:
    user = db.session.get(User, identity.user_id)
    if user is None:
        raise NotFoundError("User", identity.user_id)
    return user


def list_users_by_role(role: str) -> list[User]:
    if role not in (ROLE_SURVEYOR, ROLE_CLIENT):
        raise ValidationError(f"Cannot list role '{role}'", details={"role": "invalid"})
    return User.query.filter_by(role=role).order_by(User.email).all()
