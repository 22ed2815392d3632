from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any


class FolderRef(BaseModel):
    id: str
    name: str
    url: Optional[str] = None


class CustomerFolders(BaseModel):
    customer: FolderRef
    order: FolderRef
    uploads: FolderRef
    translated: FolderRef


class FileRef(BaseModel):
    id: str
    name: str
    mime_type: Optional[str] = None
    size: Optional[int] = None
    view_url: Optional[str] = None
    download_url: Optional[str] = None
    direct_url: Optional[str] = None


class UploadOut(BaseModel):
    success: bool = True
    files: List[FileRef] = Field(default_factory=list)
    errors: List[Dict[str, str]] = Field(default_factory=list)


class Extraction(BaseModel):
    raw_text: str = ""
    fields: Optional[Dict[str, Any]] = None
    language: Optional[str] = None
    confidence: Optional[float] = None


class TranslateIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    text: str
    from_lang: str = "ar"
    to_lang: str = "en"


class TranslateOut(BaseModel):
    original: str
    translated: str
    from_lang: str
    to_lang: str


class ProcessDocumentIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_id: str
    document_type: Optional[str] = None
    target_lang: str = "en"


class Base64UploadIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image: str
    order_id: Optional[str] = None
    file_name: Optional[str] = None
    side: Optional[str] = None


class Base64UploadOut(BaseModel):
    success: bool = True
    file: FileRef


class PageExtraction(Extraction):
    side: str


class DocumentText(BaseModel):
    raw_text: str = ""
    fields: Dict[str, Any] = Field(default_factory=dict)


class ExtractDocumentIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    images: List[str] = Field(default_factory=list)
    document_type: Optional[str] = None
    target_language: str = "en"


class DocumentProcessingOut(BaseModel):
    document_type: str
    source_language: str
    target_language: str
    original: DocumentText
    translated: DocumentText
    confidence: float
    extractions: List[PageExtraction]


class TranslateFieldsIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    fields: Dict[str, Any] = Field(default_factory=dict)
    from_lang: str = "ar"
    to_lang: str = "en"


class TranslateFieldsOut(BaseModel):
    translated: Dict[str, Any]


class ValidateTranslationIn(BaseModel):
    original: str = ""
    translation: str = ""
    language: Optional[str] = None


class TranslationReview(BaseModel):
    overall_score: Optional[float] = None
    accuracy: Optional[float] = None
    fluency: Optional[float] = None
    terminology: Optional[float] = None
    formatting: Optional[float] = None
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    raw_response: Optional[str] = None
