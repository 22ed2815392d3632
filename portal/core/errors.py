"""Error taxonomy shared by the core services and the HTTP layer.

Every error carries a stable machine-readable ``category`` plus an English and
an Arabic message. The category never depends on the language.
"""
from enum import Enum
from typing import Optional

from fastapi import HTTPException


class ErrorCategory(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    LIFECYCLE_VIOLATION = "lifecycle_violation"
    RATE_LIMITED = "rate_limited"
    COLLABORATOR_FAILURE = "collaborator_failure"

    def __str__(self):
        return self.value


class PortalError(HTTPException):
    category: ErrorCategory = ErrorCategory.VALIDATION_FAILED
    status_code_default: int = 400
    message_default: str = "Request failed"
    message_ar_default: str = "تعذر تنفيذ الطلب"

    def __init__(self, message: Optional[str] = None, message_ar: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.message_default
        self.message_ar = message_ar or self.message_ar_default
        super().__init__(status_code=status_code or self.status_code_default, detail=self.message)

    def to_dict(self) -> dict:
        return {
            "success": False,
            "category": str(self.category),
            "error": self.message,
            "error_ar": self.message_ar,
        }


class ValidationFailure(PortalError):
    category = ErrorCategory.VALIDATION_FAILED
    status_code_default = 400
    message_default = "Invalid request data"
    message_ar_default = "خطأ في البيانات المدخلة"


class Unauthenticated(PortalError):
    category = ErrorCategory.UNAUTHENTICATED
    status_code_default = 401
    message_default = "Authentication required"
    message_ar_default = "يجب تسجيل الدخول"

    def __init__(self, message: Optional[str] = None, message_ar: Optional[str] = None):
        super().__init__(message, message_ar)
        self.headers = {"WWW-Authenticate": "Bearer"}


class AuthorizationFailure(PortalError):
    category = ErrorCategory.FORBIDDEN
    status_code_default = 403
    message_default = "Access denied"
    message_ar_default = "غير مسموح بالوصول"


class NotFound(PortalError):
    category = ErrorCategory.NOT_FOUND
    status_code_default = 404
    message_default = "Resource not found"
    message_ar_default = "المورد غير موجود"


class LifecycleViolation(PortalError):
    category = ErrorCategory.LIFECYCLE_VIOLATION
    status_code_default = 409
    message_default = "Order cannot be cancelled at this stage"
    message_ar_default = "لا يمكن إلغاء الطلب في هذه المرحلة"


class RateLimited(PortalError):
    category = ErrorCategory.RATE_LIMITED
    status_code_default = 429
    message_default = "Too many requests, please slow down"
    message_ar_default = "طلبات كثيرة، يرجى الانتظار"


class CollaboratorFailure(PortalError):
    category = ErrorCategory.COLLABORATOR_FAILURE
    status_code_default = 502
    message_default = "External service error"
    message_ar_default = "خطأ في خدمة خارجية"


def not_found(resource: str = "Resource", resource_ar: str = "المورد", resource_id=None) -> NotFound:
    if resource_id:
        return NotFound(f"{resource} with id {resource_id} not found", f"{resource_ar} غير موجود")
    return NotFound(f"{resource} not found", f"{resource_ar} غير موجود")
