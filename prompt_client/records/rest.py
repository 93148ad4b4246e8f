from typing import Any, Self
from urllib.parse import quote

import httpx
from loguru import logger

from prompt_client.configuration import ConfigValue
from prompt_client.errors import ConfigurationError, ConnectivityError, InvocationTimeoutError, MalformedOutputError, RecordNotFoundError, TransportError
from prompt_client.models import TargetRecord
from prompt_client.utility import truncate

from . import RecordStores
from .store import RecordStore


@RecordStores.register(key="rest")
class RestRecordStore(RecordStore):
    """
    Reads and updates records through the sObject REST resource:

        GET   {base_url}/sobjects/{record_type}/{id}
        PATCH {base_url}/sobjects/{record_type}/{id}   (changed fields only)
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        token: str | None = None,
        record_type: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url: str = (base_url or ConfigValue(f"records.{self.key}.base_url").resolve() or "").rstrip("/")
        self.token: str = token or ConfigValue(f"records.{self.key}.token,endpoint.token").resolve() or ""
        self.record_type: str = record_type or ConfigValue(f"records.{self.key}.record_type", default="Case").resolve()
        self.timeout: float = timeout or ConfigValue(f"records.{self.key}.timeout,endpoint.timeout", default=30.0).resolve()
        self._transport: httpx.AsyncBaseTransport | None = transport
        self._client: httpx.AsyncClient | None = None

        if not self.base_url:
            raise ConfigurationError("RestRecordStore requires a base_url (records.rest.base_url)")

    async def __aenter__(self) -> Self:
        self._client = self._create_client()
        return self

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.token}", "Accept": "application/json"},
            transport=self._transport,
        )

    def record_url(self, record_id: str, record_type: str | None = None) -> str:
        return f"{self.base_url}/sobjects/{quote(record_type or self.record_type, safe='')}/{quote(record_id, safe='')}"

    async def get(self, record_id: str) -> TargetRecord:
        response: httpx.Response = await self._request("GET", self.record_url(record_id))
        if response.status_code == 404:
            raise RecordNotFoundError(record_id)
        self._ensure_ok(response)

        try:
            data: dict[str, Any] = response.json()
        except ValueError as e:
            raise MalformedOutputError(f"record {record_id} response is not valid JSON", text=truncate(response.text)) from e
        if not isinstance(data, dict):
            raise MalformedOutputError(f"record {record_id} response is not a JSON object", text=truncate(response.text))
        data.pop("attributes", None)
        return TargetRecord(data, record_id=record_id, record_type=self.record_type)

    async def update(self, record: TargetRecord) -> None:
        changed: dict[str, Any] = record.changed_fields
        if not changed:
            logger.debug(f"Nothing to update on {record.record_id}")
            return

        record_type: str = record.record_type or self.record_type
        url: str = self.record_url(str(record.record_id), record_type)
        response: httpx.Response = await self._request("PATCH", url, json=changed)
        if response.status_code == 404:
            raise RecordNotFoundError(str(record.record_id))
        self._ensure_ok(response)

        record.mark_clean()
        logger.info(f"Updated {record_type} {record.record_id}: {sorted(changed)}")

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            if self._client is None:
                async with self._create_client() as client:
                    return await client.request(method, url, **kwargs)
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise InvocationTimeoutError(f"{method} {url} timed out: {e}") from e
        except httpx.TransportError as e:
            raise ConnectivityError(f"could not reach {url}: {e}") from e

    @staticmethod
    def _ensure_ok(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise TransportError(response.status_code, response.text)
