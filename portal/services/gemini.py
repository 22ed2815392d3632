"""Gemini client for document text extraction and translation."""
import base64
import json
import logging
import re
from typing import List, Optional

import httpx

from portal.core.config import settings
from portal.core.enums import DocumentType
from portal.core.errors import CollaboratorFailure
from portal.core.metrics import track_collaborator_call
from portal.schemas.document import Extraction, TranslationReview

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
FALLBACK_CONFIDENCE = 0.7
FALLBACK_REVIEW_SCORE = 0.8

LANGUAGE_NAMES = {
    "ar": "Arabic (العربية)",
    "en": "English",
    "kr": "Kurdish (کوردی)",
    "fr": "French (Français)",
    "de": "German (Deutsch)",
    "es": "Spanish (Español)",
    "tr": "Turkish (Türkçe)",
    "ru": "Russian (Русский)",
    "fa": "Persian (فارسی)",
    "zh": "Chinese (中文)",
}

# Fields worth pulling out of each kind of document.
DOCUMENT_FIELDS = {
    DocumentType.ID_DOCUMENTS: [
        "fullName", "idNumber", "dateOfBirth", "gender", "nationality",
        "address", "issueDate", "expiryDate", "placeOfIssue",
    ],
    DocumentType.CERTIFICATES: [
        "certificateType", "holderName", "institution", "dateIssued",
        "grade", "certificateNumber", "specialization", "duration",
    ],
    DocumentType.OFFICIAL_LETTERS: [
        "title", "date", "referenceNumber", "sender", "recipient",
        "subject", "content", "signature",
    ],
    DocumentType.POWER_OF_ATTORNEY: [
        "principal", "agent", "poaType", "powers", "date",
        "validUntil", "notary", "notaryNumber",
    ],
    DocumentType.COURT_DOCUMENTS: [
        "caseNumber", "courtName", "plaintiff", "defendant", "ruling",
        "date", "judge", "summary",
    ],
    DocumentType.MEDICAL_REPORTS: [
        "patientName", "dateOfBirth", "date", "diagnosis", "treatment",
        "medications", "doctor", "hospital", "recommendations",
    ],
    DocumentType.COMPANY_DOCUMENTS: [
        "companyName", "registrationNumber", "documentType", "date",
        "address", "authorizedSignatory", "capital", "activity",
    ],
}

_JSON_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def document_fields(document_type: Optional[str]) -> List[str]:
    doc_type = DocumentType.parse(document_type) if document_type else None
    return DOCUMENT_FIELDS.get(doc_type, DOCUMENT_FIELDS[DocumentType.OFFICIAL_LETTERS])


def extraction_prompt(document_type: Optional[str]) -> str:
    if not document_type:
        return (
            "You are an OCR expert. Extract all text in the image exactly, keeping the "
            "original layout where possible, and identify the document language.\n"
            'Reply with JSON: {"rawText": "...", "documentLanguage": "ar|en|other", "confidence": 0.95}'
        )
    fields = "\n".join(f"- {name}" for name in document_fields(document_type))
    return (
        f"You are a document data extraction expert. This is a document of type: {document_type}.\n"
        "1. Extract all text in the image.\n"
        f"2. Identify these fields where present:\n{fields}\n"
        'Reply with JSON: {"rawText": "...", "extractedFields": {"fieldKey": {"original": "...", '
        '"arabic": "...", "english": "..."}}, "documentLanguage": "ar|en|other", "confidence": 0.95}\n'
        "Leave out fields you cannot find."
    )


def translation_prompt(text: str, from_lang: str, to_lang: str) -> str:
    source = LANGUAGE_NAMES.get(from_lang, from_lang)
    target = LANGUAGE_NAMES.get(to_lang, to_lang)
    return (
        f"You are a professional legal translator. Translate the following text from {source} to {target}.\n"
        "Keep the exact legal meaning, use official terminology, keep number and date formats, "
        "and do not translate proper names unless they have an official equivalent.\n"
        f'Text:\n"""\n{text}\n"""\n'
        "Return only the translation."
    )


def review_prompt(original: str, translation: str, language: Optional[str] = None) -> str:
    target = LANGUAGE_NAMES.get(language, language) if language else "the target language"
    return (
        f"You are a professional translation reviewer. Review this translation into {target}.\n"
        f'Original:\n"""\n{original}\n"""\n'
        f'Translation:\n"""\n{translation}\n"""\n'
        "Score accuracy, fluency, terminology and formatting from 0 to 1.\n"
        'Reply with JSON: {"overallScore": 0.95, "accuracy": 0.95, "fluency": 0.9, "terminology": 0.95, '
        '"formatting": 1.0, "issues": ["..."], "suggestions": ["..."]}'
    )


def _reply_json(reply: str) -> Optional[dict]:
    match = _JSON_BLOCK.search(reply) or _JSON_OBJECT.search(reply)
    if not match:
        return None
    candidate = match.group(1) if match.groups() else match.group(0)
    try:
        data = json.loads(candidate)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_extraction(reply: str) -> Extraction:
    """Pull the JSON object out of a model reply, falling back to the raw reply text."""
    data = _reply_json(reply)
    if data is not None:
        return Extraction(
            raw_text=data.get("rawText", ""),
            fields=data.get("extractedFields"),
            language=data.get("documentLanguage"),
            confidence=data.get("confidence"),
        )
    return Extraction(raw_text=reply, confidence=FALLBACK_CONFIDENCE)


def parse_review(reply: str) -> TranslationReview:
    data = _reply_json(reply)
    if data is None:
        return TranslationReview(overall_score=FALLBACK_REVIEW_SCORE, raw_response=reply)
    return TranslationReview(
        overall_score=data.get("overallScore"),
        accuracy=data.get("accuracy"),
        fluency=data.get("fluency"),
        terminology=data.get("terminology"),
        formatting=data.get("formatting"),
        issues=data.get("issues") or [],
        suggestions=data.get("suggestions") or [],
    )


class GeminiClient:

    def __init__(
        self,
        api_key: str = settings.GEMINI_API_KEY,
        model: str = settings.GEMINI_MODEL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.client = client or httpx.AsyncClient(timeout=settings.GEMINI_TIMEOUT)

    async def aclose(self):
        await self.client.aclose()

    async def _generate(self, parts: list) -> str:
        if not self.api_key:
            raise CollaboratorFailure("AI service is not configured", "خدمة الذكاء الاصطناعي غير مهيأة")
        try:
            response = await self.client.post(
                f"{GEMINI_API_URL}/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json={"contents": [{"parts": parts}]},
            )
            response.raise_for_status()
            candidates = response.json().get("candidates") or []
            return "".join(p.get("text", "") for p in candidates[0]["content"]["parts"]) if candidates else ""
        except (httpx.HTTPError, KeyError, IndexError) as e:
            logger.error(f"Gemini request failed: {e}")
            raise CollaboratorFailure("AI service error", "خطأ في خدمة الذكاء الاصطناعي")

    @track_collaborator_call("gemini", "extract_text")
    async def extract_text(
        self,
        image: bytes,
        mime_type: str = "image/jpeg",
        document_type: Optional[str] = None,
    ) -> Extraction:
        reply = await self._generate([
            {"text": extraction_prompt(document_type)},
            {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(image).decode()}},
        ])
        return parse_extraction(reply)

    @track_collaborator_call("gemini", "translate_text")
    async def translate_text(self, text: str, from_lang: str = "ar", to_lang: str = "en") -> str:
        reply = await self._generate([{"text": translation_prompt(text, from_lang, to_lang)}])
        return reply.strip()

    @track_collaborator_call("gemini", "validate_translation")
    async def validate_translation(
        self,
        original: str,
        translation: str,
        language: Optional[str] = None,
    ) -> TranslationReview:
        reply = await self._generate([{"text": review_prompt(original, translation, language)}])
        return parse_review(reply)
