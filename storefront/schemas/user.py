# storefront/schemas/user.py
from pydantic import BaseModel

from storefront.schemas.order import CamelModel


# Schema for user registration requests; email format is checked by the route
class UserRegister(BaseModel):
    name: str
    email: str
    password: str


# Schema for user authentication credentials
class UserLogin(BaseModel):
    email: str
    password: str


class LoginResponse(CamelModel):
    message: str
    is_admin: bool
    access_token: str
    token_type: str = "bearer"


# Output schema for the current user's profile
class UserMe(CamelModel):
    user_id: int
    name: str
    email: str
    is_admin: bool


class UserUpdate(BaseModel):
    name: str
    email: str


class PasswordUpdate(CamelModel):
    old_password: str
    new_password: str


class MessageResponse(BaseModel):
    message: str
