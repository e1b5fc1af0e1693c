import logging
from functools import lru_cache

import jwt
from sqlalchemy.orm import Session

from userapi.auth import jwt_handler
from userapi.auth.password import hash_password, verify_password
from userapi.core.errors import NotFound, Unauthenticated, Unauthorized
from userapi.models.user import User, is_object_id
from userapi.services import user_store

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return hash_password("unknown-user-placeholder")


def verify_credentials(db: Session, username: str, password: str) -> User:
    # Unknown user and wrong password raise the same error.
    try:
        user = user_store.find_by_username(db, username)
    except NotFound as exc:
        # Same bcrypt cost as a wrong password.
        verify_password(password, _dummy_password_hash())
        logger.warning('Rejected login attempt')
        raise Unauthorized() from exc

    if not verify_password(password, user.password):
        logger.warning('Rejected login attempt')
        raise Unauthorized()

    return user


def issue_token(db: Session, user: User) -> str:
    token = jwt_handler.create_access_token(subject=user.id)
    user_store.set_token(db, user, token)
    return token


def validate_token(db: Session, token: str) -> User:
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise Unauthenticated('Invalid token') from exc

    user_id = payload.get('sub')
    if not user_id or not is_object_id(user_id):
        raise Unauthenticated('Invalid token subject')

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise Unauthenticated('User not found')
    if user.token != token:
        raise Unauthenticated('Token has been replaced by a newer login')
    return user
