from abc import ABC, abstractmethod
from typing import Self

from prompt_client.models import TargetRecord
from prompt_client.utility import Registry


class RecordStore(ABC):
    """Access to the external system of record"""

    _registry_key: str = "undefined"

    @property
    def key(self) -> str:
        return getattr(self, "_registry_key", "undefined")

    @abstractmethod
    async def get(self, record_id: str) -> TargetRecord:
        """Fetch a record by id, raising RecordNotFoundError if it does not exist"""

    @abstractmethod
    async def update(self, record: TargetRecord) -> None:
        """Persist the fields written on `record`"""

    async def aclose(self) -> None:
        """Release any held resources"""

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class RecordStoreRegistry(Registry):

    items: dict[str, type[RecordStore]] = {}
