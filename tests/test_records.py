import json
from typing import Any

import httpx
import pytest

from prompt_client.configuration import MockConfigProvider
from prompt_client.errors import ConfigurationError, ConnectivityError, MalformedOutputError, RecordNotFoundError, TransportError
from prompt_client.models import TargetRecord
from prompt_client.records import RecordStores
from prompt_client.records.memory import InMemoryRecordStore
from prompt_client.records.rest import RestRecordStore
from tests.decorators import with_test_config

# pylint: disable=unused-argument, protected-access

BASE_URL = "https://test.example.com/services/data/v60.0"

CASE_BODY: dict[str, Any] = {
    "attributes": {"type": "Case", "url": "/services/data/v60.0/sobjects/Case/500A"},
    "Id": "500A",
    "Subject": "Pump leaking",
    "Type": None,
}


class SObjectHandler:
    """Minimal sObject resource backed by a dict, recording every request"""

    def __init__(self, records: dict[str, dict[str, Any]]) -> None:
        self.records = records
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        record_id: str = request.url.path.rsplit("/", 1)[-1]
        if record_id not in self.records:
            return httpx.Response(404, json=[{"errorCode": "NOT_FOUND", "message": "The requested resource does not exist"}])
        if request.method == "GET":
            return httpx.Response(200, json=self.records[record_id])
        if request.method == "PATCH":
            self.records[record_id].update(json.loads(request.content))
            return httpx.Response(204)
        return httpx.Response(405)


def rest_store(handler) -> RestRecordStore:
    return RestRecordStore(base_url=BASE_URL, token="secret-token", record_type="Case", transport=httpx.MockTransport(handler))


class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore"""

    def test_registered(self):
        assert RecordStores.get("memory") is InMemoryRecordStore

    @pytest.mark.asyncio
    async def test_get_returns_copy(self, case_store: InMemoryRecordStore):
        record: TargetRecord = await case_store.get("500A")
        record["Status"] = "Closed"
        assert case_store.records["500A"]["Status"] == "New"
        assert record.record_type == "Case"

    @pytest.mark.asyncio
    async def test_update_writes_changed_fields(self, case_store: InMemoryRecordStore):
        record = await case_store.get("500A")
        record["Type"] = "Electrical"

        await case_store.update(record)

        assert case_store.records["500A"]["Type"] == "Electrical"
        assert case_store.update_count == 1
        assert record.changed_fields == {}

    @pytest.mark.asyncio
    async def test_get_unknown_record(self, case_store: InMemoryRecordStore):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await case_store.get("500Z")
        assert exc_info.value.record_id == "500Z"
        assert str(exc_info.value) == "record 500Z not found"

    @pytest.mark.asyncio
    async def test_update_unknown_record(self, case_store: InMemoryRecordStore):
        with pytest.raises(RecordNotFoundError):
            await case_store.update(TargetRecord({"Id": "500Z"}))

    def test_add(self):
        store = InMemoryRecordStore()
        store.add("500C", {"Id": "500C"})
        assert "500C" in store.records


class TestRestRecordStore:
    """Tests for RestRecordStore using httpx.MockTransport"""

    def test_registered(self):
        assert RecordStores.get("rest") is RestRecordStore

    @pytest.mark.asyncio
    async def test_get(self):
        handler = SObjectHandler({"500A": dict(CASE_BODY)})

        record = await rest_store(handler).get("500A")

        assert record.record_id == "500A"
        assert record["Subject"] == "Pump leaking"
        assert "attributes" not in record
        assert record.changed_fields == {}
        assert str(handler.requests[0].url) == f"{BASE_URL}/sobjects/Case/500A"
        assert handler.requests[0].headers["Authorization"] == "Bearer secret-token"

    @pytest.mark.asyncio
    async def test_update_patches_changed_fields_only(self):
        handler = SObjectHandler({"500A": dict(CASE_BODY)})
        store = rest_store(handler)

        async with store:
            record = await store.get("500A")
            record["Type"] = "Mechanical"
            await store.update(record)

        patch: httpx.Request = handler.requests[-1]
        assert patch.method == "PATCH"
        assert json.loads(patch.content) == {"Type": "Mechanical"}
        assert handler.records["500A"]["Type"] == "Mechanical"
        assert store._client is None

    @pytest.mark.asyncio
    async def test_update_without_changes_is_skipped(self):
        handler = SObjectHandler({"500A": dict(CASE_BODY)})
        store = rest_store(handler)

        await store.update(await store.get("500A"))

        assert [r.method for r in handler.requests] == ["GET"]

    @pytest.mark.asyncio
    async def test_get_unknown_record(self):
        with pytest.raises(RecordNotFoundError):
            await rest_store(SObjectHandler({})).get("500Z")

    @pytest.mark.asyncio
    async def test_server_error(self):
        with pytest.raises(TransportError) as exc_info:
            await rest_store(lambda request: httpx.Response(503, text="unavailable")).get("500A")
        assert exc_info.value.status == 503

    @pytest.mark.asyncio
    async def test_connect_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ConnectivityError):
            await rest_store(handler).get("500A")

    @pytest.mark.asyncio
    async def test_record_id_is_escaped(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"Id": "a/b?c"})

        record = await rest_store(handler).get("a/b?c")

        assert record.record_id == "a/b?c"
        assert requests[0].url.raw_path == b"/services/data/v60.0/sobjects/Case/a%2Fb%3Fc"
        assert requests[0].url.query == b""

    @pytest.mark.asyncio
    async def test_update_escapes_record_type(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        record = TargetRecord({"Id": "500A"}, record_id="500A", record_type="Custom Object")
        record["Type"] = "Mechanical"
        await rest_store(handler).update(record)

        assert requests[0].url.raw_path == b"/services/data/v60.0/sobjects/Custom%20Object/500A"

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        login_page = httpx.Response(200, text="<html>Please log in</html>")

        with pytest.raises(MalformedOutputError, match="not valid JSON") as exc_info:
            await rest_store(lambda request: login_page).get("500A")
        assert exc_info.value.text == "<html>Please log in</html>"

    @pytest.mark.asyncio
    async def test_non_object_response(self):
        with pytest.raises(MalformedOutputError, match="not a JSON object"):
            await rest_store(lambda request: httpx.Response(200, json=["500A"])).get("500A")

    def test_missing_base_url(self):
        with pytest.raises(ConfigurationError, match="base_url"):
            RestRecordStore(token="secret-token")

    @with_test_config
    def test_defaults_from_configuration(self, test_provider: MockConfigProvider):
        test_provider.get_config().update({"records.rest.base_url": f"{BASE_URL}/"})
        store = RestRecordStore()
        assert store.base_url == BASE_URL
        assert store.token == "test-token"
        assert store.record_type == "Case"
        assert store.timeout == 5
