"""
Backend Adapter Contract.

Every store under test implements the same six operations with the same
numeric conventions, so that a value written by ``insert`` or
``bulk_insert`` is readable by ``read`` on any backend.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Literal

import structlog
from pydantic import BaseModel, Field

from dbbench.core.errors import ProvisioningFailure

logger = structlog.get_logger(__name__)

ConnectionDiscipline = Literal["shared", "per_chunk"]


class Record(BaseModel):
    """A benchmark record as stored by a backend."""

    id: str | None = Field(default=None, description="Key generated by the adapter or store")
    name: str = Field(default="", description="Payload string (empty for the workload)")
    value: int = Field(..., description="Payload integer, also the secondary lookup key")


def workload_records(start: int, count: int) -> list[Record]:
    """Records with values ``[start, start + count)`` and empty names."""
    return [Record(value=v) for v in range(start, start + count)]


class BackendAdapter(ABC):
    """
    Uniform operation contract for one data store.

    Subclasses document their connection discipline:
    - ``shared``: one client per scenario, shared by every chunk
    - ``per_chunk``: each chunk opens and closes its own connection
    """

    name: str = "backend"
    connection_discipline: ConnectionDiscipline = "shared"

    @abstractmethod
    async def setup(self) -> None:
        """Connect and provision a clean, empty, indexed store (drop then create)."""

    @abstractmethod
    async def setup_read(self) -> None:
        """Connect for the read scenario without reprovisioning."""

    @abstractmethod
    async def insert(self, start: int, count: int) -> None:
        """Write values ``[start, start + count)`` one record at a time."""

    @abstractmethod
    async def bulk_insert(self, start: int, count: int) -> None:
        """Write values ``[start, start + count)`` as one batched operation."""

    @abstractmethod
    async def read(self, key: int) -> Record:
        """Return one record whose value equals ``key`` or raise ``NotFound``."""

    @abstractmethod
    async def cleanup(self, drop: bool = False) -> None:
        """Release connections; with ``drop`` also remove provisioned state."""

    @asynccontextmanager
    async def provisioning(self, step: str) -> AsyncGenerator[None, None]:
        """Translate driver errors raised inside the block into ``ProvisioningFailure``."""
        try:
            yield
        except ProvisioningFailure:
            raise
        except Exception as e:
            logger.error("Provisioning failed", backend=self.name, step=step, error=str(e))
            raise ProvisioningFailure(f"{self.name}: {step} failed: {e}", backend=self.name) from e

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} discipline={self.connection_discipline!r}>"
