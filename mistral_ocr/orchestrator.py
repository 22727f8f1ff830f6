"""
Mistral OCR orchestration

Per input item:
1. normalize the binary payload
2. upload it (POST /v1/files, purpose=ocr)
3. get a signed URL (GET /v1/files/{id}/url)
4. build annotation formats when requested
5. submit the OCR request (POST /v1/ocr)
6. merge the provider result with `_metadata`

Items run one after another in input order; every provider call goes through
`call_with_retry`.
"""

from __future__ import annotations

import asyncio
import json
import random
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .binary import normalize_binary
from .config import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_BINARY_PROPERTY,
    DEFAULT_CREDENTIAL_ID,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MODEL,
    DEFAULT_PAGES,
    MAX_DOCUMENT_PAGES,
    MAX_FILE_SIZE,
    OCR_PATH,
    UPLOAD_PATH,
    signed_url_path,
)
from .context import ExecutionContext
from .errors import (
    MissingBinaryData,
    OcrAdapterError,
    OcrRequestFailed,
    SignedUrlFailed,
    TooManyPages,
    UploadFailed,
    ValidationError,
)
from .field_resolver import resolve_bbox_fields, resolve_document_fields
from .logging import get_logger
from .pages import parse_pages
from .retry import call_with_retry
from .schema_builder import RequiredPolicy, build_json_schema
from .templates import DEFAULT_ADVANCED_DOCUMENT_SCHEMA, DEFAULT_BBOX_SCHEMA, DEFAULT_CUSTOM_FIELDS
from .types import (
    METADATA_KEY,
    DocumentTemplateType,
    ExecutionMetadata,
    FormField,
    NormalizedDocument,
    OcrOptions,
    OcrRequestBody,
    Operation,
    OutputItem,
    RequestSpec,
    SignedUrl,
    UploadedDocument,
)

logger = get_logger(__name__)

DOCUMENT_SCHEMA_NAME = "DocumentAnnotation"
BBOX_SCHEMA_NAME = "BBoxAnnotation"


def _schema_json(fields) -> str:
    return json.dumps({name: spec.to_dict() for name, spec in fields.items()}, indent=2)


def build_ocr_request(
    model: str,
    signed_url: SignedUrl,
    options: OcrOptions,
    *,
    document_fields: Optional[Dict[str, Any]] = None,
    bbox_fields: Optional[Dict[str, Any]] = None,
    pages_expr: Optional[str] = DEFAULT_PAGES,
    required_policy: RequiredPolicy = RequiredPolicy.DECLARED,
) -> OcrRequestBody:
    """
    Assemble the OCR request body.

    `pages` is only sent together with a non-empty document schema.

    Raises:
        TooManyPages: more than MAX_DOCUMENT_PAGES pages selected for document annotations
    """
    body = OcrRequestBody(
        model=model,
        document_url=signed_url.url,
        include_image_base64=options.include_image_base64,
    )

    if document_fields:
        body.document_annotation_format = build_json_schema(
            document_fields, DOCUMENT_SCHEMA_NAME, required_policy
        )
        pages = parse_pages(pages_expr)
        if pages:
            if len(pages) > MAX_DOCUMENT_PAGES:
                raise TooManyPages(
                    f"Document Annotations are limited to maximum {MAX_DOCUMENT_PAGES} pages"
                )
            body.pages = pages

    if bbox_fields is not None:
        body.bbox_annotation_format = build_json_schema(bbox_fields, BBOX_SCHEMA_NAME, required_policy)

    return body


class MistralOcrOrchestrator:
    """
    Runs the upload -> sign -> OCR pipeline for every input item of a context.

    Args:
        context: host collaborators (params, binaries, authenticated calls)
        credential_id: credential name forwarded to `authenticated_call`
        required_policy: required-field policy for every schema built
        sleep / jitter: backoff hooks (asyncio.sleep / random.random)
    """

    def __init__(
        self,
        context: ExecutionContext,
        *,
        credential_id: str = DEFAULT_CREDENTIAL_ID,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        required_policy: RequiredPolicy = RequiredPolicy.DECLARED,
        max_file_size: int = MAX_FILE_SIZE,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        jitter: Callable[[], float] = random.random,
    ):
        self.context = context
        self.credential_id = credential_id
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.required_policy = required_policy
        self.max_file_size = max_file_size
        self.sleep = sleep
        self.jitter = jitter

    # ------------------------------------------------------------------
    # Provider calls
    # ------------------------------------------------------------------

    async def _call_once(self, request: RequestSpec) -> Any:
        return await self.context.authenticated_call(self.credential_id, request)

    async def _request(self, request: RequestSpec) -> Any:
        return await call_with_retry(
            self._call_once,
            request,
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            sleep=self.sleep,
            jitter=self.jitter,
        )

    async def upload(self, document: NormalizedDocument) -> UploadedDocument:
        response = await self._request(RequestSpec(
            method="POST",
            url=UPLOAD_PATH,
            form=[
                FormField("purpose", "ocr"),
                FormField(
                    "file",
                    document.content,
                    filename=document.file_name,
                    content_type=document.mime_type,
                ),
            ],
        ))
        file_id = response.get("id") if isinstance(response, dict) else None
        if not file_id:
            raise UploadFailed("Failed to upload file to Mistral API")
        return UploadedDocument(id=str(file_id))

    async def get_signed_url(self, uploaded: UploadedDocument, expiry_hours: int) -> SignedUrl:
        response = await self._request(RequestSpec(
            method="GET",
            url=signed_url_path(uploaded.id),
            qs={"expiry": expiry_hours},
            headers={"Accept": "application/json"},
        ))
        url = response.get("url") if isinstance(response, dict) else None
        if not url:
            raise SignedUrlFailed("Failed to get signed URL from Mistral API")
        return SignedUrl(url=url, expiry_hours=expiry_hours)

    async def submit_ocr(self, body: OcrRequestBody) -> Dict[str, Any]:
        response = await self._request(RequestSpec(
            method="POST",
            url=OCR_PATH,
            json=body.to_dict(),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        ))
        if not isinstance(response, dict):
            raise OcrRequestFailed("Mistral API returned no OCR result")
        return response

    # ------------------------------------------------------------------
    # Per-item pipeline
    # ------------------------------------------------------------------

    def _param(self, name: str, item_index: int, default: Any = None) -> Any:
        return self.context.get_param(name, item_index, default)

    def _annotation_fields(self, item_index: int):
        template = self._param("documentTemplate", item_index, DocumentTemplateType.CUSTOM.value)
        advanced_mode = bool(self._param("advancedMode", item_index, False))
        include_bbox = bool(self._param("includeBboxAnnotations", item_index, False))

        if advanced_mode:
            document_fields = resolve_document_fields(
                template,
                advanced_mode=True,
                document_schema_json=self._param(
                    "documentAnnotationSchema", item_index, _schema_json(DEFAULT_ADVANCED_DOCUMENT_SCHEMA)
                ),
            )
        else:
            custom_source = self._param("customFields", item_index)
            if custom_source is None:
                custom_source = self._param("customFieldsJson", item_index, _schema_json(DEFAULT_CUSTOM_FIELDS))
            document_fields = resolve_document_fields(template, custom_source, advanced_mode=False)

        bbox_fields = None
        if include_bbox:
            bbox_fields = resolve_bbox_fields(
                advanced_mode,
                self._param("bboxAnnotationSchema", item_index, _schema_json(DEFAULT_BBOX_SCHEMA)),
            )

        return template, advanced_mode, include_bbox, document_fields, bbox_fields

    async def process_item(self, item_index: int) -> OutputItem:
        operation = self._param("operation", item_index, Operation.BASIC_OCR.value)
        property_name = self._param("binaryPropertyName", item_index, DEFAULT_BINARY_PROPERTY)
        model = self._param("model", item_index, DEFAULT_MODEL)
        options = OcrOptions.from_param(self._param("options", item_index, {}))
        try:
            operation = Operation(operation).value
        except ValueError:
            raise ValidationError(f"Unknown operation: {operation}")

        binary = self.context.get_binary_payload(item_index, property_name)
        if binary is None:
            raise MissingBinaryData(f'No binary data found in property "{property_name}"')

        document = await normalize_binary(
            binary,
            item_index=item_index,
            property_name=property_name,
            dereference=self.context.dereference_to_bytes,
            max_file_size=self.max_file_size,
        )

        # Annotation settings are validated before anything is uploaded
        annotations = None
        if operation == Operation.OCR_WITH_ANNOTATIONS.value:
            annotations = self._annotation_fields(item_index)

        logger.info(f"[item {item_index}] Uploading {document.file_name} ({document.mime_type})")
        uploaded = await self.upload(document)

        logger.info(f"[item {item_index}] Uploaded as {uploaded.id}, requesting signed URL")
        signed_url = await self.get_signed_url(uploaded, options.expiry_hours)

        if annotations is not None:
            template, advanced_mode, include_bbox, document_fields, bbox_fields = annotations
            body = build_ocr_request(
                model,
                signed_url,
                options,
                document_fields=document_fields,
                bbox_fields=bbox_fields,
                pages_expr=self._param("pages", item_index, DEFAULT_PAGES),
                required_policy=self.required_policy,
            )
        else:
            body = build_ocr_request(model, signed_url, options)

        logger.info(f"[item {item_index}] Submitting OCR request (model={model})")
        ocr_response = await self.submit_ocr(body)

        extra = {}
        if annotations is not None:
            extra = {
                "document_template": template,
                "include_bbox_annotations": include_bbox,
                "advanced_mode": advanced_mode,
            }
        metadata = ExecutionMetadata(
            operation=operation,
            uploaded_file_id=uploaded.id,
            signed_url=signed_url.url,
            **extra,
        )

        return OutputItem(json={**ocr_response, METADATA_KEY: metadata.to_dict()})

    async def execute(
        self,
        on_item_done: Optional[Callable[[int, OutputItem], None]] = None,
    ) -> List[OutputItem]:
        """
        Process all items sequentially.

        With continue-on-fail, a failing item yields `{"error": message}`
        paired with its index; otherwise the first error aborts the run.
        `on_item_done(index, output)` is called after each emitted output.
        """
        results: List[OutputItem] = []
        continue_on_fail = self.context.continue_on_fail()

        for item_index in range(len(self.context.get_input_items())):
            try:
                output = await self.process_item(item_index)
            except Exception as e:
                if isinstance(e, OcrAdapterError) and e.item_index is None:
                    e.item_index = item_index
                if not continue_on_fail:
                    raise
                message = getattr(e, "message", None) or str(e) or "Unknown error"
                logger.warning(f"[item {item_index}] Failed: {message}")
                output = OutputItem(json={"error": message}, paired_item=item_index)

            results.append(output)
            if on_item_done is not None:
                on_item_done(item_index, output)

        return results
