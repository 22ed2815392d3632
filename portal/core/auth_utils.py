"""Authentication and authorization utilities"""
from portal.core.errors import AuthorizationFailure
from portal.core.security import Caller


def owns_order(order, caller: Caller) -> bool:
    # Orders are keyed to customers by phone number.
    return bool(caller.phone) and order.phone == caller.phone


def check_ownership(order, caller: Caller) -> None:

    if not caller.is_admin and not owns_order(order, caller):
        raise AuthorizationFailure()
