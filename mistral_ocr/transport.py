"""
Authenticated HTTP transport for the Mistral API (aiohttp)

Performs exactly one call per invocation; retries are layered on top by
`mistral_ocr.retry`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import aiohttp

from .config import DEFAULT_BASE_URL, MODELS_PATH
from .errors import ApiHttpError, OcrAdapterError
from .logging import get_logger
from .types import RequestSpec

logger = get_logger(__name__)


@dataclass(frozen=True)
class MistralCredentials:
    api_key: str

    def authenticate(self, headers: Dict[str, str]) -> Dict[str, str]:
        return {**headers, "Authorization": f"Bearer {self.api_key}"}

    def __repr__(self) -> str:
        return "MistralCredentials(api_key=***)"


def build_form_data(request: RequestSpec) -> aiohttp.FormData:
    data = aiohttp.FormData()
    for form_field in request.form or []:
        if form_field.filename is not None:
            data.add_field(
                form_field.name,
                form_field.value,
                filename=form_field.filename,
                content_type=form_field.content_type,
            )
        else:
            data.add_field(form_field.name, str(form_field.value))
    return data


class AiohttpTransport:
    """
    Executes RequestSpecs against the provider under stored credentials.

    One `ClientSession` per call; calls are sequential per item so there is no
    pool to share.
    """

    def __init__(
        self,
        credentials: Mapping[str, MistralCredentials],
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 300.0,
    ):
        self.credentials = dict(credentials)
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _credentials_for(self, credential_id: str) -> MistralCredentials:
        credentials = self.credentials.get(credential_id)
        if credentials is None:
            raise OcrAdapterError(f"No credentials configured for '{credential_id}'")
        return credentials

    async def authenticated_call(self, credential_id: str, request: RequestSpec) -> Any:
        credentials = self._credentials_for(credential_id)
        url = f"{self.base_url}{request.url}"
        headers = credentials.authenticate(dict(request.headers))

        kwargs: Dict[str, Any] = {"headers": headers}
        if request.qs:
            kwargs["params"] = {k: str(v) for k, v in request.qs.items()}
        if request.form is not None:
            kwargs["data"] = build_form_data(request)
        elif request.json is not None:
            kwargs["json"] = request.json

        logger.debug(f"{request.method} {request.url}")
        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.request(request.method, url, **kwargs) as resp:
                if resp.status >= 400:
                    error_text = await resp.text()
                    raise ApiHttpError(resp.status, error_text, method=request.method, url=request.url)
                if resp.status == 204:
                    return {}
                return await resp.json(content_type=None)


async def verify_credentials(
    transport: AiohttpTransport,
    credential_id: str,
) -> Optional[Dict[str, Any]]:
    """Credential test: list models with the stored key. Raises ApiHttpError on rejection."""
    return await transport.authenticated_call(
        credential_id,
        RequestSpec(method="GET", url=MODELS_PATH, headers={"Accept": "application/json"}),
    )
