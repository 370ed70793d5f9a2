# storefront/routes/users.py
import logging
import re

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config import Settings, get_app_settings
from storefront.database import get_db
from storefront.exceptions import EmailAlreadyRegistered, NotFound, PersistenceFailure, ValidationFailed
from storefront.models.users import User
from storefront.schemas import user as schemas
from storefront.utils.audit import client_ip, write_log
from storefront.utils.hashing import get_password_hash, verify_password
from storefront.utils.tokenJWT import Principal, create_access_token, get_current_principal, set_auth_cookie

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9.]+@[a-zA-Z0-9.]+$")
MIN_PASSWORD_LENGTH = 8


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed()
    return name


def _clean_email(email: str) -> str:
    email = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationFailed("Please enter a valid email address format")
    return email


def _check_password(password: str):
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def _email_taken(db: Session, email: str, exclude_user_id: int = None) -> bool:
    query = db.query(User.id).filter(func.lower(User.email) == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def _load_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User information not found")
    return user


# Register a new customer account
@router.post("", response_model=schemas.MessageResponse, status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserRegister, request: Request, db: Session = Depends(get_db)):
    name = _clean_name(payload.name)
    email = _clean_email(payload.email)
    _check_password(payload.password)

    if _email_taken(db, email):
        write_log(db, user_id=None, action="REGISTER", resource="users", status="FAIL",
                  ip=client_ip(request), meta={"email": email, "reason": "Email exists"})
        raise EmailAlreadyRegistered()

    new_user = User(name=name, email=email, password_hash=get_password_hash(payload.password))
    db.add(new_user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same address
        db.rollback()
        raise EmailAlreadyRegistered()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("User registration error")
        raise PersistenceFailure() from e
    db.refresh(new_user)

    write_log(db, user_id=new_user.id, action="REGISTER", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"email": new_user.email})
    return {"message": "Registration completed"}


# Retrieve current authenticated user details
@router.get("/me", response_model=schemas.UserMe)
def me(principal: Principal = Depends(get_current_principal)):
    return {
        "user_id": principal.user_id,
        "name": principal.name,
        "email": principal.email,
        "is_admin": principal.is_admin,
    }


# Update name/email and reissue the auth cookie with the new claims
@router.put("", response_model=schemas.MessageResponse)
def update_me(
    payload: schemas.UserUpdate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    principal: Principal = Depends(get_current_principal),
):
    name = _clean_name(payload.name)
    email = _clean_email(payload.email)

    if _email_taken(db, email, exclude_user_id=principal.user_id):
        raise EmailAlreadyRegistered("This email address is already in use")

    user = _load_user(db, principal.user_id)
    user.name = name
    user.email = email
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise EmailAlreadyRegistered("This email address is already in use")
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("User update error (UserID=%s)", principal.user_id)
        raise PersistenceFailure() from e

    # Admin flag is carried over from the current credential
    refreshed = Principal(user_id=principal.user_id, name=name, email=email, is_admin=principal.is_admin)
    set_auth_cookie(response, create_access_token(refreshed, settings), settings)

    write_log(db, user_id=principal.user_id, action="UPDATE_PROFILE", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"email": email})
    return {"message": "User information updated"}


@router.put("/password", response_model=schemas.MessageResponse)
def change_password(
    payload: schemas.PasswordUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    _check_password(payload.new_password)

    user = _load_user(db, principal.user_id)
    if not verify_password(payload.old_password, user.password_hash):
        write_log(db, user_id=principal.user_id, action="CHANGE_PASSWORD", resource="users", status="FAIL",
                  ip=client_ip(request))
        raise ValidationFailed("Current password is incorrect")

    user.password_hash = get_password_hash(payload.new_password)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Password update error (UserID=%s)", principal.user_id)
        raise PersistenceFailure() from e

    write_log(db, user_id=principal.user_id, action="CHANGE_PASSWORD", resource="users", status="SUCCESS",
              ip=client_ip(request))
    return {"message": "Password changed successfully"}
