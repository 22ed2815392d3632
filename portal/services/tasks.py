from typing import Optional

from celery import Celery
from portal.core.config import settings

celery_app = Celery(
    "worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_BACKEND,
)
celery_app.conf.task_routes = {"portal.services.tasks.process_document": {"queue": "documents"}}

@celery_app.task(bind=True, max_retries=3)
def process_document(self, order_id: str, file_id: str, document_type: Optional[str] = None, target_lang: str = "en"):
    import asyncio
    from portal.services.tasks_internal import process_document_async

    try:
        asyncio.run(process_document_async(order_id, file_id, document_type, target_lang))
    except Exception as e:
        retry_kwargs = {"countdown": 2 ** self.request.retries}
        raise self.retry(exc=e, **retry_kwargs)
