"""Persistence operations for user records.

Every function takes the session to work in as its first argument; nothing
here holds a connection of its own. Failures are raised as the errors in
``userapi.core.errors``.
"""

import logging
import re
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from userapi.auth.password import hash_password
from userapi.core.errors import InvalidArgument, NotFound, ValidationError
from userapi.models.user import User, is_object_id

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('name', 'username', 'email', 'password', 'role')
UPDATABLE_FIELDS = ('name', 'username', 'email', 'password', 'role')
USERNAME_PATTERN = re.compile(r'^[A-Za-z0-9_.-]{3,50}$')


def _normalize(fields: dict[str, Any], names) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    for name in names:
        if name not in fields or fields[name] is None:
            continue
        value = fields[name]
        if not isinstance(value, str):
            raise ValidationError(f'Field "{name}" must be a string.')
        # Passwords are taken verbatim.
        cleaned[name] = value if name == 'password' else value.strip()
    return cleaned


def _validate_formats(cleaned: dict[str, str]) -> None:
    blank = [name for name, value in cleaned.items() if not value]
    if blank:
        raise ValidationError(f'Fields must not be blank: {", ".join(blank)}')

    if 'username' in cleaned and not USERNAME_PATTERN.match(cleaned['username']):
        raise ValidationError('Username must be 3-50 letters, digits, dots, dashes or underscores.')

    if 'email' in cleaned:
        cleaned['email'] = cleaned['email'].lower()


def _ensure_username_free(db: Session, username: str, exclude_id: str | None = None) -> None:
    query = db.query(User.id).filter(User.username == username)
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first() is not None:
        raise ValidationError(f'Username "{username}" is already taken.')


def _commit(db: Session, user: User) -> User:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError('Username is already taken.') from exc
    db.refresh(user)
    return user


def _require_id(user_id: str) -> None:
    if not is_object_id(user_id):
        raise InvalidArgument(f'Cast to ObjectId failed for value "{user_id}".')


def create_user(db: Session, fields: dict[str, Any]) -> User:
    cleaned = _normalize(fields, REQUIRED_FIELDS)
    missing = [name for name in REQUIRED_FIELDS if name not in cleaned]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}')

    _validate_formats(cleaned)
    _ensure_username_free(db, cleaned['username'])

    cleaned['password'] = hash_password(cleaned['password'])
    user = User(**cleaned)
    db.add(user)
    _commit(db, user)

    logger.info('Created user %s (%s)', user.id, user.username)
    return user


def find_by_id(db: Session, user_id: str) -> User:
    _require_id(user_id)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound()
    return user


def find_by_username(db: Session, username: str) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise NotFound()
    return user


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at, User.id).all()


def update_user(db: Session, user_id: str, fields: dict[str, Any]) -> User:
    user = find_by_id(db, user_id)

    cleaned = _normalize(fields, UPDATABLE_FIELDS)
    _validate_formats(cleaned)
    if 'username' in cleaned and cleaned['username'] != user.username:
        _ensure_username_free(db, cleaned['username'], exclude_id=user.id)
    if 'password' in cleaned:
        cleaned['password'] = hash_password(cleaned['password'])

    for name, value in cleaned.items():
        setattr(user, name, value)
    _commit(db, user)

    logger.info('Updated user %s fields=%s', user.id, sorted(cleaned))
    return user


def delete_user(db: Session, user_id: str) -> None:
    user = find_by_id(db, user_id)
    db.delete(user)
    db.commit()
    logger.info('Deleted user %s', user_id)


def set_token(db: Session, user: User, token: str) -> User:
    user.token = token
    db.commit()
    db.refresh(user)
    return user
