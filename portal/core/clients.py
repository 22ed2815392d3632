"""Collaborator clients shared across requests.

Created once in the application lifespan and handed to routers through FastAPI
dependencies, so tests can swap them with ``app.dependency_overrides``.
"""
import logging
from typing import Optional

from fastapi import Depends

from portal.core.errors import CollaboratorFailure
from portal.services.collaborators import AIService, DriveService, OrderStore
from portal.services.drive import DriveClient
from portal.services.gemini import GeminiClient
from portal.services.notion import NotionStore
from portal.services.orders import OrderService
from portal.services.webhook import send_webhook

logger = logging.getLogger(__name__)

store: Optional[NotionStore] = None
drive: Optional[DriveClient] = None
ai: Optional[GeminiClient] = None


async def init_clients():
    global store, drive, ai
    store = NotionStore()
    drive = DriveClient()
    ai = GeminiClient()
    logger.info("Collaborator clients initialised")


async def close_clients():
    global store, drive, ai
    for client in (store, drive, ai):
        if client is not None:
            await client.aclose()
    store = drive = ai = None


def get_store() -> OrderStore:
    if store is None:
        raise CollaboratorFailure("Database service unavailable", "خدمة قاعدة البيانات غير متاحة")
    return store


def get_drive() -> DriveService:
    if drive is None:
        raise CollaboratorFailure("Storage service unavailable", "خدمة التخزين غير متاحة")
    return drive


def get_ai() -> AIService:
    if ai is None:
        raise CollaboratorFailure("AI service unavailable", "خدمة الذكاء الاصطناعي غير متاحة")
    return ai


def get_order_service(
    order_store: OrderStore = Depends(get_store),
    drive_service: DriveService = Depends(get_drive),
) -> OrderService:
    return OrderService(order_store, drive=drive_service, notifier=send_webhook)
