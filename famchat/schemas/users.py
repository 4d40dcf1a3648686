from datetime import datetime
import re
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from typing import Optional
from ..config import MIN_USERNAME_LENGTH, MIN_PASSWORD_LENGTH

USERNAME_RE = re.compile(r'^[A-Za-z0-9_.-]+$')

class RegisterIn(BaseModel):
    username: str
    email: EmailStr
    password: str
    display_name: Optional[str] = None

    @field_validator('username')
    @classmethod
    def check_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < MIN_USERNAME_LENGTH:
            raise ValueError(f'Username must be at least {MIN_USERNAME_LENGTH} characters')
        if not USERNAME_RE.match(v):
            raise ValueError('Username may only contain letters, digits, dots, dashes and underscores')
        return v

    @field_validator('password')
    @classmethod
    def check_password(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        return v

    @field_validator('display_name')
    @classmethod
    def blank_display_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v

class LoginIn(BaseModel):
    # username or email
    username: str
    password: str

class UserOut(BaseModel):
    id: int
    username: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    public_key: Optional[str] = None
    created_at: Optional[datetime] = None
    last_seen: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class TokenOut(BaseModel):
    access_token: str
    token_type: str = 'bearer'
    user: UserOut

class PublicKeyIn(BaseModel):
    public_key: str

    @field_validator('public_key')
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('Public key cannot be empty')
        return v

class ActionOkOut(BaseModel):
    ok: bool = True
    message: Optional[str] = None
