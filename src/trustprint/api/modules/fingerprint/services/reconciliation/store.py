import asyncio
import dataclasses
import logging
from abc import ABC, abstractmethod

from trustprint.api.modules.fingerprint.exceptions import FingerprintAlreadyExistsError
from trustprint.api.modules.fingerprint.services.core import (
    FingerprintPatch,
    FingerprintRecord,
    NewFingerprint,
)

logger = logging.getLogger(__name__)


class FingerprintStore(ABC):
    """Storage port for fingerprint records, keyed uniquely by fingerprint_id.

    ``create`` is conditional: it raises FingerprintAlreadyExistsError when
    the id is already taken. ``update`` applies a FingerprintPatch atomically
    (scalars overwrite, sets union) and may raise FingerprintConflictError
    when a concurrent writer collides with it.
    """

    @abstractmethod
    async def find_one(self, fingerprint_id: str) -> FingerprintRecord | None: ...

    @abstractmethod
    async def create(self, data: NewFingerprint) -> FingerprintRecord: ...

    @abstractmethod
    async def update(self, fingerprint_id: str, patch: FingerprintPatch) -> None: ...

    @abstractmethod
    async def get_all(
        self,
        limit: int,
        offset: int,
        flagged: bool | None = None,
        user_id: str | None = None,
    ) -> list[FingerprintRecord]: ...

    @abstractmethod
    async def get_total_count(
        self,
        flagged: bool | None = None,
        user_id: str | None = None,
    ) -> int: ...


def _matches(
    record: FingerprintRecord,
    flagged: bool | None,
    user_id: str | None,
) -> bool:
    if flagged is not None and record.flagged != flagged:
        return False
    return user_id is None or user_id in record.users


class InMemoryFingerprintStore(FingerprintStore):
    """Per-process store; every operation runs under one asyncio lock.

    Suitable for tests and single-replica deployments only.
    """

    def __init__(self) -> None:
        self._items: dict[str, FingerprintRecord] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def find_one(self, fingerprint_id: str) -> FingerprintRecord | None:
        async with self._lock:
            return self._items.get(fingerprint_id)

    async def create(self, data: NewFingerprint) -> FingerprintRecord:
        async with self._lock:
            if data.fingerprint_id in self._items:
                raise FingerprintAlreadyExistsError(data.fingerprint_id)

            record = FingerprintRecord(
                id=self._next_id,
                fingerprint_id=data.fingerprint_id,
                created_at=data.seen_at,
                updated_at=data.seen_at,
                last_seen_at=data.seen_at,
                ip_addresses=frozenset(data.ip_addresses),
                flagged=False,
                trust_score=data.trust_score,
                users=frozenset(data.users),
            )
            self._next_id += 1
            self._items[data.fingerprint_id] = record
            return record

    async def update(self, fingerprint_id: str, patch: FingerprintPatch) -> None:
        async with self._lock:
            record = self._items.get(fingerprint_id)
            if record is None:
                logger.warning(
                    "Fingerprint disappeared before update",
                    extra={"fingerprint_id": fingerprint_id},
                )
                return

            ip_addresses = record.ip_addresses
            if patch.ip_address:
                ip_addresses = ip_addresses | {patch.ip_address}
            users = record.users
            if patch.user_id:
                users = users | {patch.user_id}

            self._items[fingerprint_id] = dataclasses.replace(
                record,
                trust_score=patch.trust_score,
                updated_at=patch.seen_at,
                last_seen_at=patch.seen_at,
                ip_addresses=ip_addresses,
                users=users,
            )

    async def get_all(
        self,
        limit: int,
        offset: int,
        flagged: bool | None = None,
        user_id: str | None = None,
    ) -> list[FingerprintRecord]:
        async with self._lock:
            items = [
                record
                for record in self._items.values()
                if _matches(record, flagged, user_id)
            ]
        items.sort(key=lambda record: (record.created_at, record.id), reverse=True)
        return items[offset : offset + limit]

    async def get_total_count(
        self,
        flagged: bool | None = None,
        user_id: str | None = None,
    ) -> int:
        async with self._lock:
            return sum(
                1 for record in self._items.values() if _matches(record, flagged, user_id)
            )


__all__ = ("FingerprintStore", "InMemoryFingerprintStore")
