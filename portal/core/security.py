from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Optional

from jose import jwt, JWTError
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext

from portal.core.config import settings
from portal.core.enums import UserRole
from portal.core.errors import Unauthenticated, AuthorizationFailure

JWT_ALGORITHM = "HS256"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/admin/login", auto_error=False)


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


@dataclass(frozen=True)
class Caller:
    """Authenticated identity as seen by the order services."""
    caller_id: str
    phone: Optional[str] = None
    is_admin: bool = False
    name: Optional[str] = None
    profile_id: Optional[str] = None

    @property
    def role(self) -> UserRole:
        return UserRole.ADMIN if self.is_admin else UserRole.CUSTOMER


def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except Exception:
        return False

def vip_password_matches(stored: Optional[str], supplied: str) -> bool:
    # VIP passwords are issued by staff and compared case-insensitively.
    if not stored:
        return False
    return stored.strip().upper() == supplied.strip().upper()

def is_admin_phone(phone: Optional[str]) -> bool:
    return bool(phone) and phone in settings.admin_phones

def _encode(claims: dict, token_type: str, expires_minutes: int) -> str:
    expire_dt = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = {**claims, "type": token_type, "exp": expire_dt}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=JWT_ALGORITHM)

def create_access_token(caller: Caller, expires_minutes: int | None = None) -> str:
    claims = {
        "sub": caller.caller_id,
        "phone": caller.phone,
        "is_admin": caller.is_admin,
        "name": caller.name,
        "profile_id": caller.profile_id,
    }
    return _encode(claims, "access", expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

def create_refresh_token(caller: Caller) -> str:
    claims = {
        "sub": caller.caller_id,
        "phone": caller.phone,
        "is_admin": caller.is_admin,
        "name": caller.name,
        "profile_id": caller.profile_id,
    }
    return _encode(claims, "refresh", settings.REFRESH_TOKEN_EXPIRE_MINUTES)

def decode_token(token: str, expected_type: str = "access") -> Caller:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise Unauthenticated("Invalid or expired token", "الرمز غير صالح أو منتهي الصلاحية")
    if payload.get("sub") is None or payload.get("type") != expected_type:
        raise Unauthenticated("Invalid token", "الرمز غير صالح")
    return Caller(
        caller_id=str(payload["sub"]),
        phone=payload.get("phone"),
        is_admin=bool(payload.get("is_admin", False)),
        name=payload.get("name"),
        profile_id=payload.get("profile_id"),
    )

async def get_current_caller(token: Optional[str] = Depends(oauth2_scheme)) -> Caller:
    if not token:
        raise Unauthenticated()
    return decode_token(token)

def require_admin(caller: Caller = Depends(get_current_caller)) -> Caller:
    if not caller.is_admin:
        raise AuthorizationFailure("Admin access required", "يتطلب صلاحيات المدير")
    return caller
