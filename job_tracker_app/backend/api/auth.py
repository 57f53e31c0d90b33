import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocketException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from .. import schemas
from ..errors import AuthError
from ..models.db import crud
from ..models.db.database import get_db
from ..security import (
    verify_password,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_federated_token,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Missing credentials are reported through AuthError (401), not HTTPBearer's default
oauth2_scheme = HTTPBearer(scheme_name="Bearer", auto_error=False)


def _issue_token(user) -> dict:
    access_token = create_access_token(data={"sub": user.id})
    return {"access_token": access_token, "token_type": "bearer"}


def _resolve_user(db: Session, token: str):
    payload = decode_access_token(token)
    if crud.is_token_revoked(db, payload["jti"]):
        raise AuthError("Token has been revoked")
    user = crud.get_user_by_id(db, payload["sub"])
    if user is None:
        raise AuthError("Could not validate credentials")
    return user, payload


@router.post("/register", response_model=schemas.User)
def register(user: schemas.UserCreate, db: Session = Depends(get_db)):
    if crud.get_user_by_email(db, email=user.email):
        raise AuthError("Email already registered", status_code=status.HTTP_400_BAD_REQUEST)

    new_user = crud.create_user(db=db, user=user, hashed_password=get_password_hash(user.password))
    logger.info("Registered user %s", new_user.id)
    return new_user


@router.post("/login", response_model=schemas.Token)
def login(db: Session = Depends(get_db), form_data: OAuth2PasswordRequestForm = Depends()):
    user = crud.get_user_by_email(db, email=form_data.username.strip())
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise AuthError("Incorrect email or password")
    if not user.is_active:
        raise AuthError("Inactive user", status_code=status.HTTP_400_BAD_REQUEST)
    return _issue_token(user)


@router.post("/federated", response_model=schemas.Token)
def federated_sign_in(request: schemas.FederatedSignIn, db: Session = Depends(get_db)):
    """
    Sign in with a Google ID token. The account is created on first use and
    linked by email to an existing password account otherwise.
    """
    claims = verify_federated_token(request.id_token)
    user = crud.get_user_by_email(db, email=claims["email"])
    if user is None:
        user = crud.create_federated_user(db, email=claims["email"], display_name=claims.get("name"), provider="google")
        logger.info("Created federated user %s", user.id)
    if not user.is_active:
        raise AuthError("Inactive user", status_code=status.HTTP_400_BAD_REQUEST)
    return _issue_token(user)


def authenticate_request(
    db: Session = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme),
):
    """``(user, payload)`` for the bearer token; resolved once per request."""
    if credentials is None:
        raise AuthError("Not authenticated")
    return _resolve_user(db, credentials.credentials)


def get_token_payload(authenticated=Depends(authenticate_request)) -> dict:
    return authenticated[1]


def get_current_user(authenticated=Depends(authenticate_request)):
    return authenticated[0]


def get_current_active_user(current_user: schemas.User = Depends(get_current_user)):
    if not current_user.is_active:
        raise AuthError("Inactive user", status_code=status.HTTP_400_BAD_REQUEST)
    return current_user


def get_current_user_ws(token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    """WebSocket variant: the token travels as a ``token`` query parameter."""
    if not token:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Not authenticated")
    try:
        user, _ = _resolve_user(db, token)
    except AuthError as e:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
    if not user.is_active:
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Inactive user")
    return user


@router.get("/me", response_model=schemas.User)
def read_current_user(current_user: schemas.User = Depends(get_current_active_user)):
    """The signed-in user; 401 tells the client to show the sign-in view."""
    return current_user


@router.post("/logout")
def logout(payload: dict = Depends(get_token_payload), db: Session = Depends(get_db)):
    crud.revoke_token(db, payload["jti"])
    logger.info("User %s signed out", payload["sub"])
    return {"message": "Signed out"}
