"""Async boundary over the blocking backend clients."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from objstore.storage.base import BackendClient, Params


class AsyncBackend:
    """Runs each backend call in a worker thread; errors propagate unchanged."""

    def __init__(self, client: BackendClient) -> None:
        self.client = client

    @property
    def default_bucket(self) -> str | None:
        return self.client.default_bucket

    async def get_object(self, params: Params) -> dict[str, Any]:
        return await asyncio.to_thread(self.client.get_object, params)

    async def put_object(self, params: Params) -> dict[str, Any]:
        return await asyncio.to_thread(self.client.put_object, params)

    async def delete_object(self, params: Params) -> Any:
        return await asyncio.to_thread(self.client.delete_object, params)

    async def upload(self, params: Params, options: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return await asyncio.to_thread(self.client.upload, params, options)


__all__ = ["AsyncBackend"]
