import logging
from typing import Optional

from portal.core.enums import DocumentType
from portal.services.collaborators import AIService, DriveService, OrderStore
from portal.services.document_processing import source_language
from portal.services.orders import append_note

logger = logging.getLogger(__name__)

RESULTS_HEADER = "--- AI Translation Results ---"


async def run_document_processing(
    store: OrderStore,
    drive: DriveService,
    ai: AIService,
    order_id: str,
    file_id: str,
    document_type: Optional[str] = None,
    target_lang: str = "en",
) -> str:
    """Extract and translate one file, then append the result to the order notes."""
    order = await store.get_order(order_id)
    if document_type is None and order.document_types:
        document_type = order.document_types[0].value
    document_type = document_type or DocumentType.OFFICIAL_LETTERS.value

    meta = await drive.get_file(file_id)
    content = await drive.download_file(file_id)
    extraction = await ai.extract_text(content, meta.mime_type or "image/jpeg", document_type)

    translated = ""
    if extraction.raw_text.strip():
        source = source_language(extraction.language, target_lang)
        translated = await ai.translate_text(extraction.raw_text, source, target_lang)

    note = f"{RESULTS_HEADER}\nFile: {meta.name}\n{translated or extraction.raw_text}"
    await store.update_order(order_id, {"notes": append_note(order.notes, note)})
    logger.info(f"Processed file {file_id} for order {order_id} ({len(translated)} chars translated)")
    return translated


async def process_document_async(
    order_id: str,
    file_id: str,
    document_type: Optional[str] = None,
    target_lang: str = "en",
):
    """Background task entry point; builds its own clients since it runs outside the API process."""
    from portal.services.drive import DriveClient
    from portal.services.gemini import GeminiClient
    from portal.services.notion import NotionStore

    store, drive, ai = NotionStore(), DriveClient(), GeminiClient()
    try:
        return await run_document_processing(store, drive, ai, order_id, file_id, document_type, target_lang)
    except Exception as e:
        logger.error(f"Document processing failed for order {order_id}, file {file_id}: {e}")
        raise
    finally:
        for client in (store, drive, ai):
            await client.aclose()
