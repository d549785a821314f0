import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal

from trustprint.api.modules.fingerprint.services.core import FingerprintRecord
from trustprint.api.modules.fingerprint.services.reconciliation.store import (
    FingerprintStore,
)

logger = logging.getLogger(__name__)

SuspicionReason = Literal["too-many-accounts", "too-many-fingerprints"]


@dataclass(frozen=True, slots=True)
class SuspiciousActivity:
    fingerprint_id: str
    reason: SuspicionReason
    linked_accounts: tuple[str, ...]
    user_id: str | None = None


SuspicionCallback = Callable[[SuspiciousActivity], Awaitable[None]]


class SuspicionMonitor:
    """Reports shared devices and account hopping after reconciliation.

    Reports are informational: the record is never flagged from here.
    """

    def __init__(
        self,
        store: FingerprintStore,
        accounts_per_fingerprint: int | None = None,
        fingerprints_per_account: int | None = None,
        on_suspicious: SuspicionCallback | None = None,
    ):
        self._store = store
        self._accounts_per_fingerprint = accounts_per_fingerprint
        self._fingerprints_per_account = fingerprints_per_account
        self._on_suspicious = on_suspicious

    @property
    def enabled(self) -> bool:
        return (
            self._accounts_per_fingerprint is not None
            or self._fingerprints_per_account is not None
        )

    async def inspect(
        self,
        record: FingerprintRecord,
        user_id: str | None,
    ) -> list[SuspiciousActivity]:
        linked_accounts = tuple(sorted(record.users))
        reports: list[SuspiciousActivity] = []

        if (
            self._accounts_per_fingerprint is not None
            and len(record.users) > self._accounts_per_fingerprint
        ):
            reports.append(
                SuspiciousActivity(
                    fingerprint_id=record.fingerprint_id,
                    reason="too-many-accounts",
                    linked_accounts=linked_accounts,
                    user_id=user_id,
                )
            )

        if self._fingerprints_per_account is not None and user_id:
            count = await self._store.get_total_count(user_id=user_id)
            if count > self._fingerprints_per_account:
                reports.append(
                    SuspiciousActivity(
                        fingerprint_id=record.fingerprint_id,
                        reason="too-many-fingerprints",
                        linked_accounts=linked_accounts,
                        user_id=user_id,
                    )
                )

        for report in reports:
            logger.warning(
                "Suspicious fingerprint activity: %s",
                report.reason,
                extra={
                    "fingerprint_id": report.fingerprint_id,
                    "user_id": report.user_id,
                    "linked_accounts": len(report.linked_accounts),
                },
            )
            if self._on_suspicious is None:
                continue
            try:
                await self._on_suspicious(report)
            except Exception:  # noqa: BLE001
                logger.exception(
                    "Suspicious activity callback failed",
                    extra={"fingerprint_id": report.fingerprint_id},
                )

        return reports


__all__ = (
    "SuspicionCallback",
    "SuspicionMonitor",
    "SuspicionReason",
    "SuspiciousActivity",
)
