from typing import Any

from loguru import logger

from prompt_client.errors import RecordNotFoundError
from prompt_client.models import TargetRecord

from . import RecordStores
from .store import RecordStore


@RecordStores.register(key="memory")
class InMemoryRecordStore(RecordStore):
    """Dict backed store, records are copied in and out"""

    def __init__(self, records: dict[str, dict[str, Any]] | None = None, record_type: str | None = None) -> None:
        self.records: dict[str, dict[str, Any]] = {k: dict(v) for k, v in (records or {}).items()}
        self.record_type: str | None = record_type
        self.update_count: int = 0

    def add(self, record_id: str, fields: dict[str, Any]) -> None:
        self.records[record_id] = dict(fields)

    async def get(self, record_id: str) -> TargetRecord:
        if record_id not in self.records:
            raise RecordNotFoundError(record_id)
        return TargetRecord(dict(self.records[record_id]), record_id=record_id, record_type=self.record_type)

    async def update(self, record: TargetRecord) -> None:
        if record.record_id not in self.records:
            raise RecordNotFoundError(str(record.record_id))
        changed: dict[str, Any] = record.changed_fields
        self.records[record.record_id].update(changed)
        self.update_count += 1
        record.mark_clean()
        logger.debug(f"Updated {record.record_id}: {sorted(changed)}")
