"""Identity resolution: user id or email to the explicit actor context."""

from dataclasses import dataclass

from journalflow.errors import NotFound, ValidationFailed
from journalflow.store import EntityStore


@dataclass(frozen=True)
class Actor:
    id: int
    email: str
    role: str
    name: str | None = None


def normalize_email(email: str) -> str:
    return email.strip().lower()


def resolve_identity(store: EntityStore, *, user_id: int | None = None, email: str | None = None) -> Actor:
    if user_id is not None:
        user = store.get_one("users", {"id": user_id})
        key = user_id
    elif email:
        user = store.get_one("users", {"email": normalize_email(email)})
        key = email
    else:
        raise ValidationFailed("A user id or email is required", field="user_id")

    if user is None:
        raise NotFound("User not found", entity="users", key=key)

    return Actor(id=user.id, email=user.email, role=user.role, name=user.name)
