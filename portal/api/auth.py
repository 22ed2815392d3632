import logging

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from portal.schemas.auth import LoginIn, RefreshIn, DevTokenIn, TokenOut, CallerOut
from portal.core.security import (
    Caller,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_caller,
    is_admin_phone,
    verify_password,
    vip_password_matches,
)
from portal.core.config import settings
from portal.core.clients import get_store
from portal.core.errors import Unauthenticated, AuthorizationFailure
from portal.core.audit_log import log_audit
from portal.core.enums import AuditAction
from portal.core.rate_limit import check_rate_limit
from portal.services.collaborators import OrderStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def _caller_out(caller: Caller) -> CallerOut:
    return CallerOut(
        id=caller.caller_id,
        phone=caller.phone,
        name=caller.name,
        profile_id=caller.profile_id,
        is_admin=caller.is_admin,
    )


def _tokens(caller: Caller) -> TokenOut:
    return TokenOut(
        access_token=create_access_token(caller),
        refresh_token=create_refresh_token(caller),
        user=_caller_out(caller),
    )


@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, store: OrderStore = Depends(get_store)):
    """VIP customer login with the membership id and the staff-issued password."""
    await check_rate_limit(f"login:{payload.profile_id.strip().upper()}")

    profile = await store.get_vip_profile(payload.profile_id)
    if profile is None or not vip_password_matches(profile.password, payload.password):
        logger.info(f"Failed VIP login for {payload.profile_id}")
        raise Unauthenticated("Invalid profile ID or password", "رقم العضوية أو كلمة المرور غير صحيحة")

    caller = Caller(
        caller_id=profile.profile_id,
        phone=profile.phone,
        is_admin=is_admin_phone(profile.phone),
        name=profile.name,
        profile_id=profile.id,
    )
    log_audit(caller.caller_id, AuditAction.LOGIN, profile.id)
    return _tokens(caller)


@router.post("/admin/login", response_model=TokenOut)
async def admin_login(form_data: OAuth2PasswordRequestForm = Depends()):
    await check_rate_limit(f"login:{form_data.username}")

    if form_data.username != settings.ADMIN_USERNAME or not verify_password(
        form_data.password, settings.ADMIN_PASSWORD_HASH
    ):
        raise Unauthenticated("Invalid credentials", "بيانات الدخول غير صحيحة")

    caller = Caller(caller_id=f"admin:{form_data.username}", is_admin=True, name=form_data.username)
    log_audit(caller.caller_id, AuditAction.LOGIN)
    return _tokens(caller)


@router.post("/refresh", response_model=TokenOut)
async def refresh(payload: RefreshIn):
    caller = decode_token(payload.refresh_token, expected_type="refresh")
    return TokenOut(access_token=create_access_token(caller), user=_caller_out(caller))


@router.get("/me")
async def me(caller: Caller = Depends(get_current_caller), store: OrderStore = Depends(get_store)):
    orders = await store.get_orders_by_owner(caller.phone) if caller.phone else []
    return {
        "success": True,
        "user": _caller_out(caller),
        "order_count": len(orders),
    }


@router.post("/dev-token", response_model=TokenOut)
async def dev_token(payload: DevTokenIn):
    if not settings.dev_tokens_enabled:
        raise AuthorizationFailure("Development tokens are disabled", "رموز التطوير غير مفعلة")

    caller = Caller(caller_id=f"dev:{payload.phone}", phone=payload.phone, is_admin=payload.is_admin)
    logger.warning(f"Issued development token for {payload.phone} (admin={payload.is_admin})")
    return _tokens(caller)
