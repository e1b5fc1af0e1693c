import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, EmailStr, computed_field
from sqlalchemy.orm import Session

from userapi.auth import credentials as auth_credentials
from userapi.auth.dependencies import get_current_user, get_login_user, require_delete_role
from userapi.database import get_db
from userapi.models.user import User
from userapi.services import user_store

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)


class SignupRequest(BaseModel):
    # Left optional so missing fields reach the store's validation.
    name: str | None = None
    username: str | None = None
    email: EmailStr | None = None
    password: str | None = None
    role: str | None = None


class UpdateUserRequest(BaseModel):
    name: str | None = None
    username: str | None = None
    email: EmailStr | None = None
    password: str | None = None
    role: str | None = None


class UserResponse(BaseModel):
    id: str
    name: str
    username: str
    email: str
    role: str
    created_at: datetime

    class Config:
        from_attributes = True

    # Clients written against the document-store API read `_id`.
    @computed_field(alias='_id')
    @property
    def object_id(self) -> str:
        return self.id


class AuthenticatedUserResponse(UserResponse):
    token: str


@router.post('/signup', response_model=AuthenticatedUserResponse, status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    user = user_store.create_user(db, data.model_dump(exclude_none=True))
    auth_credentials.issue_token(db, user)
    return user


@router.post('/login', response_model=AuthenticatedUserResponse)
def login(user: User = Depends(get_login_user), db: Session = Depends(get_db)):
    auth_credentials.issue_token(db, user)
    logger.info('User %s logged in', user.id)
    return user


@router.get('/users', response_model=list[UserResponse])
def list_users(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return user_store.list_users(db)


@router.get('/users/{user_id}', response_model=UserResponse)
def get_user(user_id: str, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return user_store.find_by_id(db, user_id)


@router.patch('/users/{user_id}', response_model=UserResponse)
def update_user(
    user_id: str,
    data: UpdateUserRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return user_store.update_user(db, user_id, data.model_dump(exclude_unset=True))


@router.delete('/users/{user_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    current_user: User = Depends(require_delete_role),
    db: Session = Depends(get_db),
):
    user_store.delete_user(db, user_id)
    logger.info('User %s deleted by %s', user_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
