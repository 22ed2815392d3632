"""Google Drive v3 client authenticated with a service account.

Folder layout per order: root > customer name > Order_<id>_<date> > Uploads, Translated.
"""
import json
import logging
import time
import uuid
from datetime import date
from typing import List, Optional

import httpx
from jose import jwt

from portal.core.config import settings
from portal.core.errors import CollaboratorFailure, NotFound
from portal.core.metrics import track_collaborator_call
from portal.schemas.document import CustomerFolders, FileRef, FolderRef

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id,name,webViewLink,webContentLink,mimeType,size"


def order_folder_name(order_id: str, on: Optional[date] = None) -> str:
    return f"Order_{order_id}_{(on or date.today()).isoformat()}"


def file_ref(data: dict) -> FileRef:
    return FileRef(
        id=data["id"],
        name=data.get("name", ""),
        mime_type=data.get("mimeType"),
        size=int(data["size"]) if data.get("size") else None,
        view_url=data.get("webViewLink"),
        download_url=data.get("webContentLink"),
        direct_url=f"https://drive.google.com/uc?id={data['id']}",
    )


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:

    def __init__(
        self,
        service_account_email: str = settings.GOOGLE_SERVICE_ACCOUNT_EMAIL,
        private_key: str = settings.GOOGLE_PRIVATE_KEY,
        root_folder_id: str = settings.GOOGLE_DRIVE_ROOT_FOLDER_ID,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.service_account_email = service_account_email
        # Keys stored in env files usually carry escaped newlines.
        self.private_key = private_key.replace("\\n", "\n")
        self.root_folder_id = root_folder_id or None
        self.client = client or httpx.AsyncClient(timeout=settings.DRIVE_TIMEOUT)
        self._token: Optional[str] = None
        self._token_expires = 0.0

    async def aclose(self):
        await self.client.aclose()

    def _assertion(self) -> str:
        now = int(time.time())
        claims = {
            "iss": self.service_account_email,
            "scope": DRIVE_SCOPE,
            "aud": TOKEN_URL,
            "iat": now,
            "exp": now + 3600,
        }
        return jwt.encode(claims, self.private_key, algorithm="RS256")

    async def _access_token(self) -> str:
        if self._token and time.time() < self._token_expires - 60:
            return self._token
        if not self.service_account_email or not self.private_key:
            raise CollaboratorFailure("Google Drive is not configured", "خدمة Google Drive غير مهيأة")

        try:
            response = await self.client.post(TOKEN_URL, data={
                "grant_type": "urn:ietf:params:oauth:grant-type:jwt-bearer",
                "assertion": self._assertion(),
            })
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Google token exchange failed: {e}")
            raise CollaboratorFailure("Storage service error", "خطأ في خدمة التخزين")

        payload = response.json()
        self._token = payload["access_token"]
        self._token_expires = time.time() + int(payload.get("expires_in", 3600))
        return self._token

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {await self._access_token()}"
        try:
            response = await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Drive {method} {url} failed: {e}")
            raise CollaboratorFailure("Storage service error", "خطأ في خدمة التخزين")

        if response.status_code == 404:
            raise NotFound("File not found", "الملف غير موجود")
        if response.status_code >= 400:
            logger.error(f"Drive {method} {url} returned {response.status_code}: {response.text[:500]}")
            raise CollaboratorFailure("Storage service error", "خطأ في خدمة التخزين")
        return response

    @track_collaborator_call("drive", "create_folder")
    async def create_folder(self, name: str, parent_id: Optional[str] = None) -> FolderRef:
        metadata = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            metadata["parents"] = [parent_id]
        response = await self._request(
            "POST", f"{DRIVE_API_URL}/files", params={"fields": "id,name,webViewLink"}, json=metadata,
        )
        data = response.json()
        return FolderRef(id=data["id"], name=data.get("name", name), url=data.get("webViewLink"))

    @track_collaborator_call("drive", "find_folder")
    async def find_folder(self, name: str, parent_id: Optional[str] = None) -> Optional[FolderRef]:
        query = f"name = '{_escape(name)}' and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        if parent_id:
            query += f" and '{parent_id}' in parents"
        response = await self._request(
            "GET", f"{DRIVE_API_URL}/files", params={"q": query, "fields": "files(id,name,webViewLink)"},
        )
        files = response.json().get("files", [])
        if not files:
            return None
        return FolderRef(id=files[0]["id"], name=files[0].get("name", name), url=files[0].get("webViewLink"))

    async def create_customer_folders(self, customer_name: str, order_id: str) -> CustomerFolders:
        customer = await self.find_folder(customer_name, self.root_folder_id)
        if customer is None:
            customer = await self.create_folder(customer_name, self.root_folder_id)

        order = await self.create_folder(order_folder_name(order_id), customer.id)
        uploads = await self.create_folder("Uploads", order.id)
        translated = await self.create_folder("Translated", order.id)
        logger.info(f"Created Drive folders for order {order_id} under {customer.name}")
        return CustomerFolders(customer=customer, order=order, uploads=uploads, translated=translated)

    @track_collaborator_call("drive", "upload_file")
    async def upload_file(
        self,
        content: bytes,
        folder_id: Optional[str],
        name: str,
        mime_type: str = "application/octet-stream",
    ) -> FileRef:
        metadata = {"name": name}
        if folder_id:
            metadata["parents"] = [folder_id]

        boundary = uuid.uuid4().hex
        body = b"".join([
            f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n".encode(),
            json.dumps(metadata).encode(),
            f"\r\n--{boundary}\r\nContent-Type: {mime_type}\r\n\r\n".encode(),
            content,
            f"\r\n--{boundary}--".encode(),
        ])
        response = await self._request(
            "POST",
            UPLOAD_URL,
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            content=body,
        )
        data = response.json()

        # Uploaded documents are shared by link so the order page can show them.
        await self._request(
            "POST", f"{DRIVE_API_URL}/files/{data['id']}/permissions", json={"role": "reader", "type": "anyone"},
        )
        return file_ref(data)

    @track_collaborator_call("drive", "download_file")
    async def download_file(self, file_id: str) -> bytes:
        response = await self._request("GET", f"{DRIVE_API_URL}/files/{file_id}", params={"alt": "media"})
        return response.content

    @track_collaborator_call("drive", "get_file")
    async def get_file(self, file_id: str) -> FileRef:
        response = await self._request("GET", f"{DRIVE_API_URL}/files/{file_id}", params={"fields": FILE_FIELDS})
        return file_ref(response.json())

    @track_collaborator_call("drive", "delete_file")
    async def delete_file(self, file_id: str) -> None:
        await self._request("DELETE", f"{DRIVE_API_URL}/files/{file_id}")
        logger.info(f"Deleted Drive file {file_id}")

    @track_collaborator_call("drive", "list_files")
    async def list_files(self, folder_id: str) -> List[FileRef]:
        response = await self._request("GET", f"{DRIVE_API_URL}/files", params={
            "q": f"'{folder_id}' in parents and trashed = false",
            "fields": f"files({FILE_FIELDS})",
            "orderBy": "createdTime desc",
        })
        return [file_ref(f) for f in response.json().get("files", [])]
