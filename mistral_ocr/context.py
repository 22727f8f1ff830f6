"""
Execution context: the host-side collaborators used by the orchestrator

The orchestrator only talks to the host through `ExecutionContext`.
`LocalExecutionContext` is the in-process implementation used by the API
and by tests.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from .binary import FILESYSTEM_PREFIX
from .errors import EmptyOrCorruptData
from .types import BinaryData, RequestSpec, WorkItem

_MISSING = object()

AuthenticatedCall = Callable[[str, RequestSpec], Awaitable[Any]]


class ExecutionContext(Protocol):
    def get_input_items(self) -> Sequence[WorkItem]:
        ...

    def get_param(self, name: str, item_index: int, default: Any = _MISSING) -> Any:
        ...

    def get_binary_payload(self, item_index: int, property_name: str) -> Optional[BinaryData]:
        ...

    async def dereference_to_bytes(self, item_index: int, property_name: str) -> bytes:
        ...

    async def authenticated_call(self, credential_id: str, request: RequestSpec) -> Any:
        ...

    def continue_on_fail(self) -> bool:
        ...


class LocalExecutionContext:
    """
    In-memory host.

    Args:
        items: input items, processed in order
        params: run-level parameters
        caller: performs one authenticated call (e.g. AiohttpTransport.authenticated_call)
        item_params: per-item parameter overrides, keyed by item index
        storage_dir: directory behind `filesystem-<name>` binary handles
        continue_on_fail: best-effort continuation flag
    """

    def __init__(
        self,
        items: Sequence[WorkItem],
        params: Mapping[str, Any],
        caller: AuthenticatedCall,
        *,
        item_params: Optional[Mapping[int, Mapping[str, Any]]] = None,
        storage_dir: Optional[Path] = None,
        continue_on_fail: bool = False,
    ):
        self.items: List[WorkItem] = list(items)
        self.params = dict(params)
        self.caller = caller
        self.item_params = {int(k): dict(v) for k, v in (item_params or {}).items()}
        self.storage_dir = Path(storage_dir) if storage_dir else None
        self._continue_on_fail = continue_on_fail

    def get_input_items(self) -> Sequence[WorkItem]:
        return self.items

    def get_param(self, name: str, item_index: int, default: Any = _MISSING) -> Any:
        overrides = self.item_params.get(item_index, {})
        if name in overrides:
            return overrides[name]
        if name in self.params:
            return self.params[name]
        if default is _MISSING:
            raise KeyError(f"Could not get parameter '{name}'")
        return default

    def get_binary_payload(self, item_index: int, property_name: str) -> Optional[BinaryData]:
        return self.items[item_index].binary.get(property_name)

    async def dereference_to_bytes(self, item_index: int, property_name: str) -> bytes:
        binary = self.get_binary_payload(item_index, property_name)
        if binary is None or not binary.data or not binary.data.startswith(FILESYSTEM_PREFIX):
            raise EmptyOrCorruptData(f"Binary property '{property_name}' is not stored on disk")
        if self.storage_dir is None:
            raise EmptyOrCorruptData("No binary storage directory configured")

        root = self.storage_dir.resolve()
        path = (root / binary.data[len(FILESYSTEM_PREFIX):]).resolve()
        if root not in path.parents or not path.is_file():
            raise EmptyOrCorruptData(f"Stored binary data not found: {path.name}")
        return await asyncio.to_thread(path.read_bytes)

    async def authenticated_call(self, credential_id: str, request: RequestSpec) -> Any:
        return await self.caller(credential_id, request)

    def continue_on_fail(self) -> bool:
        return self._continue_on_fail


def store_binary(storage_dir: Path, name: str, content: bytes) -> str:
    """Write content under storage_dir and return its `filesystem-` handle."""
    storage_dir.mkdir(parents=True, exist_ok=True)
    (storage_dir / name).write_bytes(content)
    return f"{FILESYSTEM_PREFIX}{name}"


def discard_stored_binaries(storage_dir: Optional[Path], items: Sequence[WorkItem]) -> int:
    """Delete the files behind `filesystem-` handles of items; returns the number removed."""
    if storage_dir is None:
        return 0
    root = Path(storage_dir).resolve()
    removed = 0
    for item in items:
        for binary in item.binary.values():
            if not binary.data or not binary.data.startswith(FILESYSTEM_PREFIX):
                continue
            path = (root / binary.data[len(FILESYSTEM_PREFIX):]).resolve()
            if root in path.parents and path.is_file():
                path.unlink()
                removed += 1
    return removed


__all__ = [
    "ExecutionContext",
    "LocalExecutionContext",
    "AuthenticatedCall",
    "store_binary",
    "discard_stored_binaries",
]
