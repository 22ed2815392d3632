import base64

import pytest

from portal.api import documents
from portal.core.config import settings

CUSTOMER_PHONE = "+9647700000001"
OTHER_PHONE = "+9647700000002"

PDF = ("scan.pdf", b"%PDF-1.4 test", "application/pdf")
PNG = ("photo.png", b"\x89PNG test", "image/png")
EXE = ("tool.exe", b"MZ", "application/octet-stream")
CAPTURE = "data:image/png;base64," + base64.b64encode(b"\x89PNG capture").decode()


class FakeQueue:

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def delay(self, *args):
        if self.fail:
            raise ConnectionError("broker down")
        self.calls.append(args)


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_to_order(self, client, store, drive, customer_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE, customer_name="Ali Hassan")

        response = await client.post(
            "/documents/upload",
            files=[("files", PDF), ("files", PNG)],
            data={"orderId": order.id},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [f["name"] for f in body["files"]] == ["scan.pdf", "photo.png"]
        assert [d.name for d in store.orders[order.id].documents] == ["scan.pdf", "photo.png"]
        assert store.orders[order.id].documents[0].url == "https://drive.google.com/uc?id=file-1"
        assert "Uploads" in [f.name for f in drive.folders]

    @pytest.mark.asyncio
    async def test_rejected_type_reported_per_file(self, client, store, customer_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.post(
            "/documents/upload",
            files=[("files", PDF), ("files", EXE)],
            data={"orderId": order.id},
            headers=auth_headers(customer_token),
        )

        body = response.json()
        assert body["success"] is False
        assert [f["name"] for f in body["files"]] == ["scan.pdf"]
        assert body["errors"][0]["file"] == "tool.exe"
        assert len(store.orders[order.id].documents) == 1

    @pytest.mark.asyncio
    async def test_upload_to_someone_elses_order(self, client, store, drive, customer_token, auth_headers):
        order = store.seed(phone=OTHER_PHONE)

        response = await client.post(
            "/documents/upload",
            files=[("files", PDF)],
            data={"orderId": order.id},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 403
        assert drive.files == {}

    @pytest.mark.asyncio
    async def test_too_many_files(self, client, customer_token, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_FILES", 1)

        response = await client.post(
            "/documents/upload",
            files=[("files", PDF), ("files", PNG)],
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_file_too_large(self, client, customer_token, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 4)

        response = await client.post(
            "/documents/upload", files=[("files", PDF)], headers=auth_headers(customer_token),
        )

        assert response.json()["success"] is False
        assert "too large" in response.json()["errors"][0]["error"]

    @pytest.mark.asyncio
    async def test_attach_failure_keeps_uploads(self, client, store, drive, customer_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)
        store.fail_on.add("add_documents")

        response = await client.post(
            "/documents/upload",
            files=[("files", PDF)],
            data={"orderId": order.id},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 200
        assert len(response.json()["files"]) == 1
        assert len(drive.files) == 1

    @pytest.mark.asyncio
    async def test_drive_outage_reported(self, client, store, drive, customer_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE)
        drive.fail = True

        response = await client.post(
            "/documents/upload",
            files=[("files", PDF)],
            data={"orderId": order.id},
            headers=auth_headers(customer_token),
        )

        assert response.json()["success"] is False
        assert store.orders[order.id].documents == []


class TestBase64Upload:

    @pytest.mark.asyncio
    async def test_capture_attached_to_order(self, client, store, drive, customer_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE, customer_name="Ali Hassan")

        response = await client.post(
            "/documents/upload-base64",
            json={"image": CAPTURE, "orderId": order.id, "side": "front"},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 200
        uploaded = response.json()["file"]
        assert uploaded["name"].startswith("capture_front_")
        assert uploaded["mime_type"] == "image/png"
        assert drive.contents[uploaded["id"]] == b"\x89PNG capture"
        assert [d.name for d in store.orders[order.id].documents] == [uploaded["name"]]

    @pytest.mark.asyncio
    async def test_capture_without_order_keeps_file_name(self, client, drive, customer_token, auth_headers):
        response = await client.post(
            "/documents/upload-base64",
            json={"image": CAPTURE, "fileName": "passport.png"},
            headers=auth_headers(customer_token),
        )

        assert response.json()["file"]["name"] == "passport.png"
        assert drive.folders == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("image", ["", "aGVsbG8=", "data:image/png;base64,%%%"])
    async def test_invalid_capture_rejected(self, client, drive, customer_token, auth_headers, image):
        response = await client.post(
            "/documents/upload-base64", json={"image": image}, headers=auth_headers(customer_token),
        )

        assert response.status_code == 400
        assert response.json()["category"] == "validation_failed"
        assert drive.files == {}

    @pytest.mark.asyncio
    async def test_capture_for_someone_elses_order(self, client, store, drive, customer_token, auth_headers):
        order = store.seed(phone=OTHER_PHONE)

        response = await client.post(
            "/documents/upload-base64",
            json={"image": CAPTURE, "orderId": order.id},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 403
        assert drive.files == {}


class TestOrderDocuments:

    @pytest.mark.asyncio
    async def test_file_metadata(self, client, drive, customer_token, auth_headers):
        uploaded = await drive.upload_file(b"%PDF", None, "scan.pdf", "application/pdf")

        response = await client.get(f"/documents/{uploaded.id}", headers=auth_headers(customer_token))

        assert response.status_code == 200
        assert response.json()["file"]["name"] == "scan.pdf"

    @pytest.mark.asyncio
    async def test_missing_file_metadata(self, client, customer_token, auth_headers):
        response = await client.get("/documents/file-404", headers=auth_headers(customer_token))

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_documents(self, client, store, customer_token, auth_headers):
        order = store.seed(phone=CUSTOMER_PHONE, documents=[{"name": "a.pdf", "url": "https://x/a"}])

        response = await client.get(f"/documents/order/{order.id}", headers=auth_headers(customer_token))

        assert response.json()["documents"] == [{"name": "a.pdf", "url": "https://x/a"}]

    @pytest.mark.asyncio
    async def test_delete_requires_admin(self, client, drive, customer_token, admin_token, auth_headers):
        denied = await client.delete("/documents/file-1", headers=auth_headers(customer_token))
        allowed = await client.delete("/documents/file-1", headers=auth_headers(admin_token))

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert drive.deleted == ["file-1"]

    @pytest.mark.asyncio
    async def test_queue_processing(self, client, store, customer_token, auth_headers, monkeypatch):
        queue = FakeQueue()
        monkeypatch.setattr(documents, "process_document", queue)
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.post(
            f"/documents/order/{order.id}/process",
            json={"fileId": "file-9", "documentType": "certificates"},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 202
        assert response.json() == {"status": "queued", "order_id": order.id, "file_id": "file-9"}
        assert queue.calls == [(order.id, "file-9", "certificates", "en")]

    @pytest.mark.asyncio
    async def test_queue_unavailable(self, client, store, customer_token, auth_headers, monkeypatch):
        monkeypatch.setattr(documents, "process_document", FakeQueue(fail=True))
        order = store.seed(phone=CUSTOMER_PHONE)

        response = await client.post(
            f"/documents/order/{order.id}/process", json={"fileId": "file-9"}, headers=auth_headers(customer_token),
        )

        assert response.status_code == 502
        assert response.json()["category"] == "collaborator_failure"


class TestTranslationRoutes:

    @pytest.mark.asyncio
    async def test_extract(self, client, customer_token, auth_headers):
        response = await client.post(
            "/translation/extract",
            files={"image": PNG},
            data={"documentType": "certificates"},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 200
        assert response.json()["raw_text"] == "نص تجريبي"

    @pytest.mark.asyncio
    async def test_extract_requires_image(self, client, customer_token, auth_headers):
        response = await client.post("/translation/extract", files={"image": PDF}, headers=auth_headers(customer_token))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_translate(self, client, ai, customer_token, auth_headers):
        response = await client.post(
            "/translation/translate",
            json={"text": "مرحبا", "fromLang": "ar", "toLang": "en"},
            headers=auth_headers(customer_token),
        )

        assert response.json() == {"original": "مرحبا", "translated": "[en] مرحبا", "from_lang": "ar", "to_lang": "en"}
        assert ai.translations == [("مرحبا", "ar", "en")]

    @pytest.mark.asyncio
    async def test_translate_empty_text(self, client, customer_token, auth_headers):
        response = await client.post("/translation/translate", json={"text": "  "}, headers=auth_headers(customer_token))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_catalogues(self, client, customer_token, auth_headers):
        types = await client.get("/translation/document-types", headers=auth_headers(customer_token))
        languages = await client.get("/translation/languages", headers=auth_headers(customer_token))

        assert len(types.json()["document_types"]) == 7
        assert {"id": "en-ar", "name": "En ⇆ Ar"} in languages.json()["pairs"]

    @pytest.mark.asyncio
    async def test_requires_login(self, client):
        response = await client.get("/translation/languages")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_extract_document_pages(self, client, ai, customer_token, auth_headers):
        ai.fields = {"holderName": "علي"}

        response = await client.post(
            "/translation/extract-document",
            json={"images": [CAPTURE, base64.b64encode(b"back").decode()], "documentType": "certificates"},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 200
        body = response.json()
        assert [page["side"] for page in body["extractions"]] == ["front", "back"]
        assert body["source_language"] == "ar"
        assert body["original"]["raw_text"] == "نص تجريبي\n---\nنص تجريبي"
        assert body["translated"]["raw_text"] == "[en] نص تجريبي\n---\nنص تجريبي"
        assert body["translated"]["fields"] == {"holderName": {"original": "علي", "english": "[en] علي"}}

    @pytest.mark.asyncio
    async def test_extract_document_requires_type_and_images(self, client, customer_token, auth_headers):
        no_images = await client.post(
            "/translation/extract-document", json={"documentType": "certificates"}, headers=auth_headers(customer_token),
        )
        no_type = await client.post(
            "/translation/extract-document", json={"images": [CAPTURE]}, headers=auth_headers(customer_token),
        )

        assert no_images.json()["error"] == "Images required"
        assert no_type.json()["error"] == "Document type required"

    @pytest.mark.asyncio
    async def test_translate_fields(self, client, ai, customer_token, auth_headers):
        response = await client.post(
            "/translation/translate-fields",
            json={"fields": {"name": "علي", "date": {"original": "٢٠٢٤", "english": "2024"}}, "toLang": "en"},
            headers=auth_headers(customer_token),
        )

        assert response.json()["translated"] == {
            "name": {"original": "علي", "english": "[en] علي"},
            "date": {"original": "٢٠٢٤", "english": "2024"},
        }
        assert ai.translations == [("علي", "ar", "en")]

    @pytest.mark.asyncio
    async def test_translate_fields_requires_fields(self, client, customer_token, auth_headers):
        response = await client.post(
            "/translation/translate-fields", json={"fields": {}}, headers=auth_headers(customer_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_validate_translation(self, client, ai, customer_token, auth_headers):
        response = await client.post(
            "/translation/validate",
            json={"original": "مرحبا", "translation": "Hello", "language": "en"},
            headers=auth_headers(customer_token),
        )

        assert response.status_code == 200
        assert response.json()["overall_score"] == 0.9
        assert ai.reviews == [("مرحبا", "Hello", "en")]

    @pytest.mark.asyncio
    async def test_validate_requires_both_texts(self, client, customer_token, auth_headers):
        response = await client.post(
            "/translation/validate", json={"original": "مرحبا"}, headers=auth_headers(customer_token),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Original and translation required"
