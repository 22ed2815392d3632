from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


class LoginIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    profile_id: str
    password: str


class RefreshIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    refresh_token: str


class DevTokenIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    phone: str
    is_admin: bool = False


class CallerOut(BaseModel):
    id: str
    phone: Optional[str] = None
    name: Optional[str] = None
    profile_id: Optional[str] = None
    is_admin: bool = False


class TokenOut(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user: Optional[CallerOut] = None


class VipProfile(BaseModel):
    id: str
    profile_id: str
    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    drive_folder: Optional[str] = None
    password: Optional[str] = None
