# storefront/routes/auth.py
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.config import Settings, get_app_settings
from storefront.database import get_db
from storefront.exceptions import Unauthenticated
from storefront.models.users import User
from storefront.schemas import user as schemas
from storefront.utils.audit import client_ip, write_log
from storefront.utils.hashing import verify_password
from storefront.utils.tokenJWT import Principal, clear_auth_cookie, create_access_token, set_auth_cookie

router = APIRouter(prefix="/auth", tags=["Auth"])

INVALID_CREDENTIALS = "Incorrect email address or password"


# Authenticate user, issue JWT token and set the auth cookie
@router.post("/login", response_model=schemas.LoginResponse)
def login(
    payload: schemas.UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    email = payload.email.strip().lower()
    db_user = db.query(User).filter(func.lower(User.email) == email).first()

    # Validate credentials and log failure on error
    if not db_user or not db_user.enabled or not verify_password(payload.password, db_user.password_hash):
        write_log(db, user_id=(db_user.id if db_user else None), action="LOGIN", resource="auth",
                  status="FAIL", ip=client_ip(request), meta={"email": email})
        raise Unauthenticated(INVALID_CREDENTIALS)

    principal = Principal(user_id=db_user.id, name=db_user.name, email=db_user.email, is_admin=db_user.is_admin)
    access_token = create_access_token(principal, settings)
    set_auth_cookie(response, access_token, settings)

    write_log(db, user_id=db_user.id, action="LOGIN", resource="auth",
              status="SUCCESS", ip=client_ip(request), meta={"email": db_user.email})

    return {"message": "Login successful", "is_admin": db_user.is_admin, "access_token": access_token}


# Clear the auth cookie and send the browser back to the top page
@router.post("/logout")
def logout(settings: Settings = Depends(get_app_settings)):
    response = RedirectResponse(url="/?logged-out=1", status_code=status.HTTP_303_SEE_OTHER)
    clear_auth_cookie(response, settings)
    return response
