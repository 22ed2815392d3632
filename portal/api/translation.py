from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from portal.schemas.document import (
    DocumentProcessingOut,
    ExtractDocumentIn,
    Extraction,
    TranslateFieldsIn,
    TranslateFieldsOut,
    TranslateIn,
    TranslateOut,
    TranslationReview,
    ValidateTranslationIn,
)
from portal.core.security import Caller, get_current_caller
from portal.core.clients import get_ai
from portal.core.config import settings
from portal.core.enums import DocumentType, LanguagePair
from portal.core.errors import ValidationFailure
from portal.core.rate_limit import check_rate_limit
from portal.services.collaborators import AIService
from portal.services.document_processing import process_images, translate_fields
from portal.services.gemini import DOCUMENT_FIELDS, LANGUAGE_NAMES
from portal.utils.data_url import decode_image

router = APIRouter(prefix="/translation", tags=["translation"])


@router.post("/extract", response_model=Extraction)
async def extract_text(
    image: UploadFile = File(...),
    document_type: Optional[str] = Form(None, alias="documentType"),
    caller: Caller = Depends(get_current_caller),
    ai: AIService = Depends(get_ai),
):
    await check_rate_limit(caller.caller_id)

    if not (image.content_type or "").startswith("image/"):
        raise ValidationFailure("Image required", "الصورة مطلوبة")
    content = await image.read()
    if not content:
        raise ValidationFailure("Image required", "الصورة مطلوبة")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise ValidationFailure("Image too large", "حجم الصورة كبير جداً")

    return await ai.extract_text(content, image.content_type, document_type)


@router.post("/translate", response_model=TranslateOut)
async def translate_text(
    payload: TranslateIn,
    caller: Caller = Depends(get_current_caller),
    ai: AIService = Depends(get_ai),
):
    await check_rate_limit(caller.caller_id)

    if not payload.text.strip():
        raise ValidationFailure("Text required", "النص مطلوب")

    translated = await ai.translate_text(payload.text, payload.from_lang, payload.to_lang)
    return TranslateOut(
        original=payload.text,
        translated=translated,
        from_lang=payload.from_lang,
        to_lang=payload.to_lang,
    )


@router.post("/extract-document", response_model=DocumentProcessingOut)
async def extract_document(
    payload: ExtractDocumentIn,
    caller: Caller = Depends(get_current_caller),
    ai: AIService = Depends(get_ai),
):
    """OCR every page image of one document, then translate the merged result."""
    await check_rate_limit(caller.caller_id)

    if not payload.images:
        raise ValidationFailure("Images required", "الصور مطلوبة")
    if not payload.document_type:
        raise ValidationFailure("Document type required", "نوع الوثيقة مطلوب")
    if len(payload.images) > settings.MAX_UPLOAD_FILES:
        raise ValidationFailure(
            f"Too many images. Maximum: {settings.MAX_UPLOAD_FILES}",
            "عدد الصور أكبر من المسموح",
        )

    images = [decode_image(image, require_data_url=False) for image in payload.images]
    if any(len(content) > settings.MAX_UPLOAD_SIZE for content, _ in images):
        raise ValidationFailure("Image too large", "حجم الصورة كبير جداً")

    return await process_images(ai, images, payload.document_type, payload.target_language)


@router.post("/translate-fields", response_model=TranslateFieldsOut)
async def translate_extracted_fields(
    payload: TranslateFieldsIn,
    caller: Caller = Depends(get_current_caller),
    ai: AIService = Depends(get_ai),
):
    await check_rate_limit(caller.caller_id)

    if not payload.fields:
        raise ValidationFailure("Fields required", "الحقول مطلوبة")

    return TranslateFieldsOut(
        translated=await translate_fields(ai, payload.fields, payload.from_lang, payload.to_lang),
    )


@router.post("/validate", response_model=TranslationReview)
async def validate_translation(
    payload: ValidateTranslationIn,
    caller: Caller = Depends(get_current_caller),
    ai: AIService = Depends(get_ai),
):
    await check_rate_limit(caller.caller_id)

    if not payload.original.strip() or not payload.translation.strip():
        raise ValidationFailure("Original and translation required", "النص الأصلي والترجمة مطلوبان")

    return await ai.validate_translation(payload.original, payload.translation, payload.language)


@router.get("/document-types")
async def document_types(caller: Caller = Depends(get_current_caller)):
    return {
        "success": True,
        "document_types": [
            {
                "id": doc_type.value,
                "name": doc_type.to_store(),
                "name_ar": doc_type.label_ar,
                "fields": DOCUMENT_FIELDS[doc_type],
            }
            for doc_type in DocumentType
        ],
    }


@router.get("/languages")
async def languages(caller: Caller = Depends(get_current_caller)):
    return {
        "success": True,
        "languages": [{"code": code, "name": name} for code, name in LANGUAGE_NAMES.items()],
        "pairs": [{"id": pair.value, "name": pair.to_store()} for pair in LanguagePair],
    }
