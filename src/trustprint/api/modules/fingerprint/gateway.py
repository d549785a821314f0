from collections.abc import Sequence

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from trustprint.api.modules.fingerprint.models import Fingerprint, FingerprintUser


def build_filters(
    flagged: bool | None = None,
    user_id: str | None = None,
) -> list[ColumnElement[bool]]:
    filters: list[ColumnElement[bool]] = []
    if flagged is not None:
        filters.append(Fingerprint.flagged == flagged)
    if user_id is not None:
        filters.append(Fingerprint.users.any(FingerprintUser.user_id == user_id))
    return filters


class FingerprintGateway:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_total_count(
        self, filters: list[ColumnElement[bool]]
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Fingerprint)
            .where(*filters)
        )
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def get_all(
        self,
        limit: int,
        offset: int,
        filters: list[ColumnElement[bool]],
    ) -> Sequence[Fingerprint]:
        stmt = (
            select(Fingerprint)
            .filter(*filters)
            .order_by(Fingerprint.created_at.desc(), Fingerprint.id.desc())
            .offset(offset=offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def get_by_fingerprint_id(
        self,
        fingerprint_id: str,
        for_update: bool = False,
    ) -> Fingerprint | None:
        stmt = select(Fingerprint).where(Fingerprint.fingerprint_id == fingerprint_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, fingerprint: Fingerprint) -> Fingerprint:
        self.session.add(fingerprint)
        await self.session.flush()
        return fingerprint
