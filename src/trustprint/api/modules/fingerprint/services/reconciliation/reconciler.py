import logging
from collections.abc import Callable
from datetime import datetime

from trustprint.api.modules.fingerprint.exceptions import (
    FingerprintAlreadyExistsError,
    FingerprintConflictError,
)
from trustprint.api.modules.fingerprint.services.core import (
    FingerprintPatch,
    FingerprintRecord,
    NewFingerprint,
    utc_now,
)
from trustprint.api.modules.fingerprint.services.reconciliation.store import (
    FingerprintStore,
)

logger = logging.getLogger(__name__)


class FingerprintReconciler:
    """Find-or-create-or-merge for one fingerprint record per identifier.

    The trust score is overwritten on every sighting, so a record always
    reflects the most recent evaluation only.
    """

    def __init__(
        self,
        store: FingerprintStore,
        save_ip_addresses: bool = True,
        max_update_attempts: int = 3,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._save_ip_addresses = save_ip_addresses
        self._max_update_attempts = max(1, max_update_attempts)
        self._clock = clock

    @property
    def store(self) -> FingerprintStore:
        return self._store

    async def _create(
        self,
        fingerprint_id: str,
        trust_score: float | None,
        seen_at: datetime,
        ip_address: str | None,
        user_id: str | None,
    ) -> bool:
        try:
            await self._store.create(
                NewFingerprint(
                    fingerprint_id=fingerprint_id,
                    trust_score=trust_score,
                    seen_at=seen_at,
                    ip_addresses=frozenset({ip_address}) if ip_address else frozenset(),
                    users=frozenset({user_id}) if user_id else frozenset(),
                )
            )
        except FingerprintAlreadyExistsError:
            logger.debug(
                "Fingerprint created concurrently, merging instead",
                extra={"fingerprint_id": fingerprint_id},
            )
            return False
        return True

    async def _update(self, fingerprint_id: str, patch: FingerprintPatch) -> None:
        for attempt in range(1, self._max_update_attempts + 1):
            try:
                await self._store.update(fingerprint_id, patch)
                return
            except FingerprintConflictError:
                if attempt == self._max_update_attempts:
                    raise
                logger.debug(
                    "Fingerprint update conflicted, retrying",
                    extra={"fingerprint_id": fingerprint_id, "attempt": attempt},
                )

    async def reconcile(
        self,
        fingerprint_id: str,
        trust_score: float | None,
        ip_address: str | None = None,
        user_id: str | None = None,
    ) -> FingerprintRecord | None:
        seen_at = self._clock()
        if not self._save_ip_addresses:
            ip_address = None

        existing = await self._store.find_one(fingerprint_id)
        created = False
        if existing is None:
            created = await self._create(
                fingerprint_id, trust_score, seen_at, ip_address, user_id
            )

        if not created:
            await self._update(
                fingerprint_id,
                FingerprintPatch(
                    trust_score=trust_score,
                    seen_at=seen_at,
                    ip_address=ip_address,
                    user_id=user_id,
                ),
            )

        record = await self._store.find_one(fingerprint_id)
        if record is None:
            logger.error(
                "Fingerprint record not found after creation or update",
                extra={"fingerprint_id": fingerprint_id},
            )
            return None

        logger.info(
            "Fingerprint %s",
            "created" if created else "updated",
            extra={"fingerprint_id": fingerprint_id, "record_id": record.id},
        )
        return record


__all__ = ("FingerprintReconciler",)
