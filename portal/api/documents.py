import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from portal.schemas.document import Base64UploadIn, Base64UploadOut, FileRef, ProcessDocumentIn, UploadOut
from portal.core.security import Caller, get_current_caller, require_admin
from portal.core.clients import get_drive, get_order_service
from portal.core.config import settings
from portal.core.errors import CollaboratorFailure, PortalError, ValidationFailure
from portal.core.audit_log import log_audit
from portal.core.enums import AuditAction
from portal.core.metrics import side_effect_failures
from portal.core.rate_limit import check_rate_limit
from portal.services.collaborators import DriveService
from portal.services.orders import OrderService
from portal.services.tasks import process_document
from portal.utils.data_url import decode_image

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/documents", tags=["documents"])

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def _check_file(file: UploadFile, content: bytes) -> None:
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailure(f"Invalid file type: {file.content_type}", "نوع الملف غير مسموح")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationFailure(
            f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE / (1024*1024)}MB",
            "حجم الملف كبير جداً",
        )


async def _upload_folder(order_id: Optional[str], caller: Caller, drive: DriveService,
                         service: OrderService) -> Optional[str]:
    """The order's Uploads folder, or the shared uploads folder when there is no order or Drive fails."""
    folder_id = settings.GOOGLE_DRIVE_UPLOADS_FOLDER_ID or None
    if order_id:
        order = await service.get(order_id, caller)
        try:
            folders = await drive.create_customer_folders(order.customer_name, order_id)
            folder_id = folders.uploads.id
        except Exception as e:
            side_effect_failures.labels(effect="drive_folder").inc()
            logger.error(f"Failed to get customer folder for order {order_id}: {e}")
    return folder_id


async def _attach(order_id: str, files: List[FileRef], caller: Caller, service: OrderService) -> None:
    try:
        await service.attach_documents(order_id, files, caller)
    except CollaboratorFailure as e:
        side_effect_failures.labels(effect="attach_documents").inc()
        logger.error(f"Failed to attach uploaded files to order {order_id}: {e.message}")


@router.post("/upload", response_model=UploadOut)
async def upload_documents(
    files: List[UploadFile] = File(...),
    order_id: Optional[str] = Form(None, alias="orderId"),
    caller: Caller = Depends(get_current_caller),
    drive: DriveService = Depends(get_drive),
    service: OrderService = Depends(get_order_service),
):
    await check_rate_limit(caller.caller_id)

    if not files:
        raise ValidationFailure("No files provided", "لم يتم تحميل ملفات")
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise ValidationFailure(
            f"Too many files. Maximum: {settings.MAX_UPLOAD_FILES}",
            "عدد الملفات أكبر من المسموح",
        )

    folder_id = await _upload_folder(order_id, caller, drive, service)

    uploaded: List[FileRef] = []
    errors = []
    for file in files:
        content = await file.read()
        try:
            _check_file(file, content)
            uploaded.append(await drive.upload_file(
                content, folder_id, file.filename or "document", file.content_type or "application/octet-stream",
            ))
        except PortalError as e:
            logger.warning(f"Upload of {file.filename} failed: {e.message}")
            errors.append({"file": file.filename or "", "error": e.message})

    if order_id and uploaded:
        await _attach(order_id, uploaded, caller, service)

    return UploadOut(success=not errors, files=uploaded, errors=errors)


@router.post("/upload-base64", response_model=Base64UploadOut)
async def upload_base64_image(
    payload: Base64UploadIn,
    caller: Caller = Depends(get_current_caller),
    drive: DriveService = Depends(get_drive),
    service: OrderService = Depends(get_order_service),
):
    """Upload a camera capture sent as a ``data:image/...;base64,`` string."""
    await check_rate_limit(caller.caller_id)

    if not payload.image:
        raise ValidationFailure("No image provided", "لم يتم توفير صورة")
    content, mime_type = decode_image(payload.image)
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationFailure("Image too large", "حجم الصورة كبير جداً")

    folder_id = await _upload_folder(payload.order_id, caller, drive, service)
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    name = payload.file_name or f"capture_{payload.side or 'document'}_{stamp}.jpg"
    uploaded = await drive.upload_file(content, folder_id, name, mime_type)

    if payload.order_id:
        await _attach(payload.order_id, [uploaded], caller, service)
    return Base64UploadOut(file=uploaded)


@router.get("/order/{order_id}")
async def list_order_documents(
    order_id: str,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    order = await service.get(order_id, caller)
    return {"success": True, "documents": order.documents}


@router.get("/{file_id}")
async def get_document(
    file_id: str,
    caller: Caller = Depends(get_current_caller),
    drive: DriveService = Depends(get_drive),
):
    return {"success": True, "file": await drive.get_file(file_id)}


@router.delete("/{file_id}")
async def delete_document(
    file_id: str,
    caller: Caller = Depends(require_admin),
    drive: DriveService = Depends(get_drive),
):
    await drive.delete_file(file_id)
    log_audit(caller.caller_id, AuditAction.DELETE_DOCUMENT, file_id)
    return {"success": True, "message": "File deleted", "message_ar": "تم حذف الملف"}


@router.post("/order/{order_id}/process", status_code=202)
async def process_order_document(
    order_id: str,
    payload: ProcessDocumentIn,
    caller: Caller = Depends(get_current_caller),
    service: OrderService = Depends(get_order_service),
):
    """Queue OCR and translation of one uploaded file; results land in the order notes."""
    await check_rate_limit(caller.caller_id)
    await service.get(order_id, caller)

    try:
        process_document.delay(order_id, payload.file_id, payload.document_type, payload.target_lang)
    except Exception as e:
        logger.error(f"Failed to queue document processing for order {order_id}: {e}")
        raise CollaboratorFailure("Processing queue unavailable", "خدمة المعالجة غير متاحة")

    return {"status": "queued", "order_id": order_id, "file_id": payload.file_id}
