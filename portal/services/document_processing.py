"""Multi-page OCR and translation built on the AI service.

A document arrives as one image per page. Each page is extracted on its own,
the pages are merged, and the merged text and fields are translated when the
detected language differs from the target.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from portal.schemas.document import DocumentProcessingOut, DocumentText, PageExtraction
from portal.services.collaborators import AIService

logger = logging.getLogger(__name__)

PAGE_SIDES = ("front", "back")
PAGE_SEPARATOR = "\n---\n"
DEFAULT_CONFIDENCE = 0.5


def page_side(index: int) -> str:
    return PAGE_SIDES[index] if index < len(PAGE_SIDES) else f"page_{index + 1}"


def source_language(detected: Optional[str], target_lang: str) -> str:
    if detected and detected not in ("other", target_lang):
        return detected
    return "ar" if target_lang != "ar" else "en"


def merge_pages(pages: List[PageExtraction]) -> Tuple[DocumentText, float]:
    """Join page texts, let later pages override earlier fields, and average confidence."""
    fields: Dict[str, Any] = {}
    for page in pages:
        fields.update(page.fields or {})
    scores = [page.confidence for page in pages if page.confidence]
    confidence = sum(scores) / len(scores) if scores else DEFAULT_CONFIDENCE
    return DocumentText(raw_text=PAGE_SEPARATOR.join(p.raw_text for p in pages), fields=fields), confidence


def _language_key(lang: str) -> str:
    return "arabic" if lang == "ar" else "english"


async def translate_fields(ai: AIService, fields: Dict[str, Any], from_lang: str = "ar",
                           to_lang: str = "en") -> Dict[str, Any]:
    """Add a translation next to every extracted field that lacks one.

    A field is either a plain string or a dict with an ``original`` value;
    anything else is passed through untouched.
    """
    key = _language_key(to_lang)
    translated = {}
    for name, value in fields.items():
        if isinstance(value, dict) and value.get("original"):
            if value.get(key):
                translated[name] = value
            else:
                translated[name] = {**value, key: await ai.translate_text(value["original"], from_lang, to_lang)}
        elif isinstance(value, str) and value:
            translated[name] = {"original": value, key: await ai.translate_text(value, from_lang, to_lang)}
        else:
            translated[name] = value
    return translated


async def process_images(
    ai: AIService,
    images: List[Tuple[bytes, str]],
    document_type: str,
    target_lang: str = "en",
) -> DocumentProcessingOut:
    pages = []
    for index, (content, mime_type) in enumerate(images):
        extraction = await ai.extract_text(content, mime_type, document_type)
        pages.append(PageExtraction(side=page_side(index), **extraction.model_dump()))

    original, confidence = merge_pages(pages)
    detected = next((page.language for page in pages if page.language), None)
    source = source_language(detected, target_lang)

    translated = original.model_copy(deep=True)
    if detected != target_lang:
        if original.fields:
            translated.fields = await translate_fields(ai, original.fields, source, target_lang)
        if original.raw_text.strip():
            translated.raw_text = await ai.translate_text(original.raw_text, source, target_lang)

    logger.info(f"Processed {len(pages)} page(s) of {document_type} from {source} to {target_lang}")
    return DocumentProcessingOut(
        document_type=document_type,
        source_language=detected if detected == target_lang else source,
        target_language=target_lang,
        original=original,
        translated=translated,
        confidence=confidence,
        extractions=pages,
    )
