from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models.user import User

_ANY = object()


def normalize_identifier(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def find_by_identifier(session: Session, identifier: str) -> Optional[User]:
    """Look a user up by username or email (both stored lower-cased)."""
    ident = normalize_identifier(identifier)
    if not ident:
        return None
    return session.query(User).filter(or_(User.username == ident, User.email == ident)).first()


def find_by_id(session: Session, user_id: Optional[str]) -> Optional[User]:
    if not user_id:
        return None
    return session.get(User, str(user_id))


def exists_with(session: Session, username: Optional[str] = None, email: Optional[str] = None,
                exclude_id: Optional[str] = None) -> bool:
    clauses = []
    if username:
        clauses.append(User.username == normalize_identifier(username))
    if email:
        clauses.append(User.email == normalize_identifier(email))
    if not clauses:
        return False
    query = session.query(User.id).filter(or_(*clauses))
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def save(session: Session, user: User) -> User:
    session.add(user)
    session.commit()
    return user


def update_fields(session: Session, user_id: str, **fields: Any) -> int:
    """Single-row UPDATE; returns the number of rows touched (0 or 1)."""
    updated = (
        session.query(User)
        .filter(User.id == user_id)
        .update({getattr(User, k): v for k, v in fields.items()}, synchronize_session="fetch")
    )
    session.commit()
    return updated


def replace_refresh_token(session: Session, user_id: str, new_token: Optional[str], expected: Any = _ANY) -> bool:
    """
    Atomically overwrite the stored refresh token.
    With ``expected`` the write only happens when the stored value equals it.
    """
    query = session.query(User).filter(User.id == user_id)
    if expected is not _ANY:
        query = query.filter(User.refresh_token == expected)
    updated = query.update({User.refresh_token: new_token}, synchronize_session="fetch")
    session.commit()
    return updated == 1


def append_watch_history(session: Session, user_id: str, video_id: str) -> bool:
    """
    Append ``video_id`` to the user's watch history and commit.

    The row is re-read under ``SELECT ... FOR UPDATE`` so a copy loaded
    earlier in the request cannot overwrite another request's append. SQLite
    has no row locks; there the caller's earlier write in the same
    transaction already holds the database write lock.
    """
    user = (
        session.query(User)
        .filter(User.id == user_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )
    if user is None:
        return False
    user.watch_history = list(user.watch_history or []) + [video_id]
    session.commit()
    return True
