"""
Tests for mistral_ocr/transport.py

Runs AiohttpTransport against a local aiohttp.web app standing in for the
Mistral API.
"""

import asyncio

import pytest
from aiohttp import test_utils, web

from mistral_ocr.context import LocalExecutionContext
from mistral_ocr.errors import ApiHttpError, OcrAdapterError
from mistral_ocr.orchestrator import MistralOcrOrchestrator
from mistral_ocr.transport import AiohttpTransport, MistralCredentials, verify_credentials
from mistral_ocr.types import FormField, RequestSpec

from conftest import PDF_BYTES, no_sleep, pdf_item

API_KEY = "test-key"


def make_provider_app(seen, ocr_failures=0):
    """Fake provider; every handled request is appended to `seen`."""
    state = {"ocr_failures": ocr_failures}

    def authorized(request):
        return request.headers.get("Authorization") == f"Bearer {API_KEY}"

    async def upload(request):
        form = await request.post()
        upload_file = form["file"]
        seen.append({
            "path": request.path,
            "purpose": form["purpose"],
            "filename": upload_file.filename,
            "content_type": upload_file.content_type,
            "content": upload_file.file.read(),
            "authorization": request.headers.get("Authorization"),
        })
        return web.json_response({"id": "file-abc", "object": "file", "purpose": "ocr"})

    async def signed_url(request):
        seen.append({"path": request.path, "expiry": request.query.get("expiry")})
        file_id = request.match_info["file_id"]
        return web.json_response({"url": f"https://files.example.com/{file_id}?sig=1"})

    async def ocr(request):
        body = await request.json()
        seen.append({"path": request.path, "body": body})
        if state["ocr_failures"] > 0:
            state["ocr_failures"] -= 1
            return web.json_response({"message": "Service tier capacity exceeded"}, status=429)
        return web.json_response({
            "pages": [{"index": 0, "markdown": "hello"}],
            "model": body["model"],
            "usage_info": {"pages_processed": 1},
        })

    async def models(request):
        seen.append({"path": request.path})
        if not authorized(request):
            return web.json_response({"message": "Unauthorized"}, status=401)
        return web.json_response({"object": "list", "data": [{"id": "mistral-ocr-latest"}]})

    app = web.Application()
    app.router.add_post("/v1/files", upload)
    app.router.add_get("/v1/files/{file_id}/url", signed_url)
    app.router.add_post("/v1/ocr", ocr)
    app.router.add_get("/v1/models", models)
    return app


def with_server(app, scenario):
    async def _run():
        async with test_utils.TestServer(app) as server:
            return await scenario(f"http://{server.host}:{server.port}")

    return asyncio.run(_run())


def make_transport(base_url, api_key=API_KEY):
    return AiohttpTransport({"mistralApi": MistralCredentials(api_key)}, base_url=base_url, timeout=10)


class TestAuthenticatedCall:
    def test_multipart_upload(self):
        seen = []

        async def scenario(base_url):
            request = RequestSpec(
                method="POST",
                url="/v1/files",
                form=[
                    FormField("purpose", "ocr"),
                    FormField("file", PDF_BYTES, filename="invoice.pdf", content_type="application/pdf"),
                ],
            )
            return await make_transport(base_url).authenticated_call("mistralApi", request)

        response = with_server(make_provider_app(seen), scenario)

        assert response["id"] == "file-abc"
        assert seen[0]["purpose"] == "ocr"
        assert seen[0]["filename"] == "invoice.pdf"
        assert seen[0]["content_type"] == "application/pdf"
        assert seen[0]["content"] == PDF_BYTES
        assert seen[0]["authorization"] == "Bearer test-key"

    def test_query_string(self):
        seen = []

        async def scenario(base_url):
            request = RequestSpec(method="GET", url="/v1/files/file-abc/url", qs={"expiry": 48})
            return await make_transport(base_url).authenticated_call("mistralApi", request)

        response = with_server(make_provider_app(seen), scenario)

        assert response["url"] == "https://files.example.com/file-abc?sig=1"
        assert seen[0]["expiry"] == "48"

    def test_error_status_raises(self):
        seen = []

        async def scenario(base_url):
            request = RequestSpec(method="POST", url="/v1/ocr", json={"model": "mistral-ocr-latest"})
            return await make_transport(base_url).authenticated_call("mistralApi", request)

        with pytest.raises(ApiHttpError) as exc_info:
            with_server(make_provider_app(seen, ocr_failures=1), scenario)

        assert exc_info.value.status == 429
        assert "POST /v1/ocr failed: 429" in exc_info.value.message
        assert "Service tier capacity exceeded" in exc_info.value.body

    def test_unknown_credential(self):
        transport = AiohttpTransport({}, base_url="http://localhost:1")
        with pytest.raises(OcrAdapterError, match="No credentials configured for 'mistralApi'"):
            asyncio.run(transport.authenticated_call("mistralApi", RequestSpec(method="GET", url="/v1/models")))

    def test_credentials_repr_masks_key(self):
        assert "secret" not in repr(MistralCredentials("secret"))


class TestVerifyCredentials:
    def test_valid_key(self):
        seen = []

        async def scenario(base_url):
            return await verify_credentials(make_transport(base_url), "mistralApi")

        response = with_server(make_provider_app(seen), scenario)
        assert response["data"][0]["id"] == "mistral-ocr-latest"
        assert seen == [{"path": "/v1/models"}]

    def test_rejected_key(self):
        seen = []

        async def scenario(base_url):
            return await verify_credentials(make_transport(base_url, api_key="wrong"), "mistralApi")

        with pytest.raises(ApiHttpError) as exc_info:
            with_server(make_provider_app(seen), scenario)
        assert exc_info.value.status == 401


class TestEndToEnd:
    def test_pipeline_over_http_with_rate_limit(self, tmp_path):
        seen = []

        async def scenario(base_url):
            context = LocalExecutionContext(
                [pdf_item()],
                {"operation": "basicOcr", "options": {"expiryHours": 2}},
                make_transport(base_url).authenticated_call,
                storage_dir=tmp_path,
            )
            return await MistralOcrOrchestrator(context, sleep=no_sleep).execute()

        outputs = with_server(make_provider_app(seen, ocr_failures=1), scenario)

        assert [entry["path"] for entry in seen] == [
            "/v1/files",
            "/v1/files/file-abc/url",
            "/v1/ocr",
            "/v1/ocr",
        ]
        assert seen[1]["expiry"] == "2"
        assert seen[2]["body"]["document"]["document_url"] == "https://files.example.com/file-abc?sig=1"
        assert outputs[0].json["pages"][0]["markdown"] == "hello"
        assert outputs[0].json["_metadata"]["uploadedFileId"] == "file-abc"
