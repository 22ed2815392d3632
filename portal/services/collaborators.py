"""Contracts for the external services the portal depends on.

The order services only ever talk to these protocols. Production wiring uses
the Notion, Google Drive and Gemini clients; tests use in-memory fakes.
"""
from typing import Any, Dict, List, Optional, Protocol

from portal.schemas.auth import VipProfile
from portal.schemas.document import CustomerFolders, Extraction, FileRef, FolderRef, TranslationReview
from portal.schemas.order import NewOrder, OrderDocument, OrderFilter, OrderOut, OrderPage


class OrderStore(Protocol):

    async def create_order(self, order: NewOrder) -> OrderOut: ...

    async def get_order(self, order_id: str) -> OrderOut:
        """Return the order or raise ``NotFound``."""
        ...

    async def update_order(self, order_id: str, changes: Dict[str, Any]) -> OrderOut: ...

    async def query_orders(
        self,
        filters: OrderFilter,
        cursor: Optional[str] = None,
        page_size: int = 20,
    ) -> OrderPage: ...

    async def get_orders_by_owner(self, phone: str) -> List[OrderOut]: ...

    async def add_documents(self, order_id: str, documents: List[OrderDocument]) -> OrderOut:
        """Append documents after the ones already attached."""
        ...

    async def get_vip_profile(self, profile_id: str) -> Optional[VipProfile]: ...

    async def get_or_create_customer_profile(self, phone: str, name: str) -> VipProfile: ...


class DriveService(Protocol):

    async def create_folder(self, name: str, parent_id: Optional[str] = None) -> FolderRef: ...

    async def find_folder(self, name: str, parent_id: Optional[str] = None) -> Optional[FolderRef]: ...

    async def create_customer_folders(self, customer_name: str, order_id: str) -> CustomerFolders: ...

    async def upload_file(
        self,
        content: bytes,
        folder_id: Optional[str],
        name: str,
        mime_type: str = "application/octet-stream",
    ) -> FileRef: ...

    async def download_file(self, file_id: str) -> bytes: ...

    async def get_file(self, file_id: str) -> FileRef: ...

    async def delete_file(self, file_id: str) -> None: ...

    async def list_files(self, folder_id: str) -> List[FileRef]: ...


class AIService(Protocol):

    async def extract_text(
        self,
        image: bytes,
        mime_type: str = "image/jpeg",
        document_type: Optional[str] = None,
    ) -> Extraction: ...

    async def translate_text(self, text: str, from_lang: str = "ar", to_lang: str = "en") -> str: ...

    async def validate_translation(
        self,
        original: str,
        translation: str,
        language: Optional[str] = None,
    ) -> TranslationReview: ...
