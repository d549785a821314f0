import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trustprint.api.modules.fingerprint.exceptions import (
    FingerprintAlreadyExistsError,
    FingerprintConflictError,
)
from trustprint.api.modules.fingerprint.gateway import FingerprintGateway, build_filters
from trustprint.api.modules.fingerprint.models import (
    Fingerprint,
    FingerprintIpAddress,
    FingerprintUser,
)
from trustprint.api.modules.fingerprint.services.core import (
    FingerprintPatch,
    FingerprintRecord,
    NewFingerprint,
)
from trustprint.api.modules.fingerprint.services.reconciliation.store import (
    FingerprintStore,
)

logger = logging.getLogger(__name__)


def to_record(row: Fingerprint) -> FingerprintRecord:
    return FingerprintRecord(
        id=row.id,
        fingerprint_id=row.fingerprint_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        last_seen_at=row.last_seen_at,
        ip_addresses=frozenset(item.ip_address for item in row.ip_addresses),
        flagged=row.flagged,
        trust_score=row.trust_score,
        users=frozenset(item.user_id for item in row.users),
    )


class SqlAlchemyFingerprintStore(FingerprintStore):
    """Store backed by SQLAlchemy; each call runs in its own transaction.

    The unique constraint on fingerprint_id turns a lost create race into
    FingerprintAlreadyExistsError. Updates lock the row (SELECT ... FOR UPDATE
    where the dialect supports it) and union the child rows.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def find_one(self, fingerprint_id: str) -> FingerprintRecord | None:
        async with self._session_factory() as session:
            row = await FingerprintGateway(session).get_by_fingerprint_id(fingerprint_id)
            return to_record(row) if row else None

    async def create(self, data: NewFingerprint) -> FingerprintRecord:
        row = Fingerprint(
            fingerprint_id=data.fingerprint_id,
            created_at=data.seen_at,
            updated_at=data.seen_at,
            last_seen_at=data.seen_at,
            flagged=False,
            trust_score=data.trust_score,
            ip_addresses=[
                FingerprintIpAddress(ip_address=ip) for ip in sorted(data.ip_addresses)
            ],
            users=[FingerprintUser(user_id=user_id) for user_id in sorted(data.users)],
        )
        async with self._session_factory() as session:
            try:
                await FingerprintGateway(session).create(row)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise FingerprintAlreadyExistsError(data.fingerprint_id) from exc
            return to_record(row)

    async def update(self, fingerprint_id: str, patch: FingerprintPatch) -> None:
        async with self._session_factory() as session:
            gateway = FingerprintGateway(session)
            row = await gateway.get_by_fingerprint_id(fingerprint_id, for_update=True)
            if row is None:
                logger.warning(
                    "Fingerprint disappeared before update",
                    extra={"fingerprint_id": fingerprint_id},
                )
                return

            row.trust_score = patch.trust_score
            row.updated_at = patch.seen_at
            row.last_seen_at = patch.seen_at

            known_ips = {item.ip_address for item in row.ip_addresses}
            if patch.ip_address and patch.ip_address not in known_ips:
                row.ip_addresses.append(FingerprintIpAddress(ip_address=patch.ip_address))

            known_users = {item.user_id for item in row.users}
            if patch.user_id and patch.user_id not in known_users:
                row.users.append(FingerprintUser(user_id=patch.user_id))

            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise FingerprintConflictError(fingerprint_id) from exc

    async def get_all(
        self,
        limit: int,
        offset: int,
        flagged: bool | None = None,
        user_id: str | None = None,
    ) -> list[FingerprintRecord]:
        async with self._session_factory() as session:
            rows = await FingerprintGateway(session).get_all(
                limit=limit,
                offset=offset,
                filters=build_filters(flagged=flagged, user_id=user_id),
            )
            return [to_record(row) for row in rows]

    async def get_total_count(
        self,
        flagged: bool | None = None,
        user_id: str | None = None,
    ) -> int:
        async with self._session_factory() as session:
            return await FingerprintGateway(session).get_total_count(
                build_filters(flagged=flagged, user_id=user_id)
            )


__all__ = ("SqlAlchemyFingerprintStore", "to_record")
