import binascii
from base64 import b64decode

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from userapi.auth import credentials as auth_credentials
from userapi.core import config
from userapi.core.errors import Forbidden, Unauthenticated, Unauthorized
from userapi.database import get_db
from userapi.models.user import User

# auto_error is off so missing headers go through our own error types.
bearer_security = HTTPBearer(auto_error=False)


def parse_basic_credentials(authorization: str | None) -> tuple[str, str]:
    """Split a Basic ``Authorization`` header into username and password.

    Any malformed header is a failed login, not a framework 401.
    """
    scheme, param = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != 'basic':
        raise Unauthorized()
    try:
        decoded = b64decode(param, validate=True).decode('utf-8')
    except (ValueError, UnicodeDecodeError, binascii.Error) as exc:
        raise Unauthorized() from exc
    username, separator, password = decoded.partition(':')
    if not separator:
        raise Unauthorized()
    return username, password


def get_login_user(request: Request, db: Session = Depends(get_db)) -> User:
    username, password = parse_basic_credentials(request.headers.get('Authorization'))
    return auth_credentials.verify_credentials(db, username, password)


def get_current_user(
    bearer: HTTPAuthorizationCredentials | None = Depends(bearer_security),
    db: Session = Depends(get_db),
) -> User:
    if bearer is None or not bearer.credentials:
        raise Unauthenticated('Missing bearer token')
    return auth_credentials.validate_token(db, bearer.credentials)


def require_delete_role(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role not in config.DELETE_ALLOWED_ROLES:
        raise Forbidden()
    return current_user
