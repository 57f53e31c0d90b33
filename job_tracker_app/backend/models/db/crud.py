from typing import Optional

from sqlalchemy.orm import Session

from . import user as model
from ... import schemas


def get_user_by_email(db: Session, email: str):
    return db.query(model.User).filter(model.User.email == email.lower()).first()


def get_user_by_id(db: Session, user_id: str):
    return db.query(model.User).filter(model.User.id == user_id).first()


def create_user(db: Session, user: schemas.UserCreate, hashed_password: str):
    db_user = model.User(
        email=user.email.lower(),
        hashed_password=hashed_password,
        display_name=user.display_name,
        provider="password",
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def create_federated_user(db: Session, email: str, display_name: Optional[str], provider: str):
    db_user = model.User(email=email.lower(), display_name=display_name, provider=provider)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def revoke_token(db: Session, jti: str):
    if not is_token_revoked(db, jti):
        db.add(model.RevokedToken(jti=jti))
        db.commit()


def is_token_revoked(db: Session, jti: str) -> bool:
    return db.query(model.RevokedToken).filter(model.RevokedToken.jti == jti).first() is not None
