"""
Shared fixtures: a recording fake of the Mistral API and execution contexts
"""

import base64

import pytest

from mistral_ocr.context import LocalExecutionContext
from mistral_ocr.types import BinaryData, WorkItem

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


class FakeProvider:
    """Answers upload / signed URL / OCR requests and records every call."""

    def __init__(self):
        self.calls = []
        self.failures = {}  # url -> list of exceptions raised (in order) before succeeding
        self.upload_count = 0

    async def authenticated_call(self, credential_id, request):
        self.calls.append((credential_id, request))

        pending = self.failures.get(request.url)
        if pending:
            raise pending.pop(0)

        if request.url == "/v1/files":
            self.upload_count += 1
            return {"id": f"file-{self.upload_count}", "object": "file", "purpose": "ocr"}
        if request.url.endswith("/url"):
            file_id = request.url.split("/")[3]
            return {"url": f"https://files.example.com/{file_id}?signature=abc"}
        if request.url == "/v1/ocr":
            return {
                "pages": [{"index": 0, "markdown": "# Invoice 2024-001", "images": []}],
                "model": request.json["model"],
                "usage_info": {"pages_processed": 1},
            }
        raise AssertionError(f"Unexpected request: {request.method} {request.url}")

    @property
    def urls(self):
        return [request.url for _, request in self.calls]

    def last_ocr_body(self):
        bodies = [request.json for _, request in self.calls if request.url == "/v1/ocr"]
        return bodies[-1]


def pdf_item(file_name="invoice.pdf", mime_type="application/pdf"):
    return WorkItem(
        json={"fileName": file_name},
        binary={
            "data": BinaryData(
                data=base64.b64encode(PDF_BYTES).decode("ascii"),
                mime_type=mime_type,
                file_name=file_name,
            )
        },
    )


async def no_sleep(seconds):
    return None


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def make_context(provider, tmp_path):
    def _make(items=None, params=None, continue_on_fail=False, item_params=None):
        return LocalExecutionContext(
            items if items is not None else [pdf_item()],
            params or {"operation": "basicOcr"},
            provider.authenticated_call,
            item_params=item_params,
            storage_dir=tmp_path,
            continue_on_fail=continue_on_fail,
        )

    return _make
