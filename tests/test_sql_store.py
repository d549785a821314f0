import asyncio
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trustprint.api.modules.fingerprint.exceptions import FingerprintAlreadyExistsError
from trustprint.api.modules.fingerprint.models import Fingerprint
from trustprint.api.modules.fingerprint.services.core import (
    FingerprintPatch,
    NewFingerprint,
)
from trustprint.api.modules.fingerprint.services.reconciliation import (
    FingerprintReconciler,
)
from trustprint.api.modules.fingerprint.services.reconciliation.sql_store import (
    SqlAlchemyFingerprintStore,
)
from trustprint.database import create_engine, create_session_factory, create_tables

SEEN_AT = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'fingerprints.db'}")
    await create_tables(engine)
    yield create_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def sql_store(session_factory) -> SqlAlchemyFingerprintStore:
    return SqlAlchemyFingerprintStore(session_factory)


async def _flag(session_factory, fingerprint_id: str) -> None:
    async with session_factory() as session:
        await session.execute(
            update(Fingerprint)
            .where(Fingerprint.fingerprint_id == fingerprint_id)
            .values(flagged=True)
        )
        await session.commit()


@pytest.mark.asyncio
async def test_create_and_find(sql_store):
    created = await sql_store.create(
        NewFingerprint(
            fingerprint_id="fp-1",
            trust_score=None,
            seen_at=SEEN_AT,
            ip_addresses=frozenset({"10.0.0.1"}),
            users=frozenset({"u1"}),
        )
    )

    found = await sql_store.find_one("fp-1")

    assert found.id == created.id
    assert found.trust_score is None
    assert found.flagged is False
    assert found.ip_addresses == {"10.0.0.1"}
    assert found.users == {"u1"}
    assert await sql_store.find_one("fp-missing") is None


@pytest.mark.asyncio
async def test_create_is_conditional(sql_store):
    data = NewFingerprint(fingerprint_id="fp-1", trust_score=1.0, seen_at=SEEN_AT)
    await sql_store.create(data)

    with pytest.raises(FingerprintAlreadyExistsError):
        await sql_store.create(data)

    assert await sql_store.get_total_count() == 1


@pytest.mark.asyncio
async def test_update_overwrites_scalars_and_unions_sets(sql_store):
    await sql_store.create(
        NewFingerprint(
            fingerprint_id="fp-1",
            trust_score=1.0,
            seen_at=SEEN_AT,
            ip_addresses=frozenset({"10.0.0.1"}),
            users=frozenset({"u1"}),
        )
    )

    for ip, user in (("10.0.0.2", "u2"), ("10.0.0.1", "u1"), (None, None)):
        await sql_store.update(
            "fp-1",
            FingerprintPatch(
                trust_score=0.4,
                seen_at=SEEN_AT + timedelta(minutes=5),
                ip_address=ip,
                user_id=user,
            ),
        )

    record = await sql_store.find_one("fp-1")
    assert record.trust_score == 0.4
    assert record.ip_addresses == {"10.0.0.1", "10.0.0.2"}
    assert record.users == {"u1", "u2"}
    assert record.last_seen_at.replace(tzinfo=None) == (
        SEEN_AT + timedelta(minutes=5)
    ).replace(tzinfo=None)


@pytest.mark.asyncio
async def test_update_of_missing_record_is_a_noop(sql_store):
    await sql_store.update("fp-missing", FingerprintPatch(trust_score=1.0, seen_at=SEEN_AT))

    assert await sql_store.get_total_count() == 0


@pytest.mark.asyncio
async def test_listing_filters_and_orders_newest_first(sql_store, session_factory):
    for index, (fingerprint_id, users) in enumerate(
        (("fp-1", {"alice"}), ("fp-2", {"alice", "bob"}), ("fp-3", {"bob"}))
    ):
        await sql_store.create(
            NewFingerprint(
                fingerprint_id=fingerprint_id,
                trust_score=1.0,
                seen_at=SEEN_AT + timedelta(minutes=index),
                users=frozenset(users),
            )
        )
    await _flag(session_factory, "fp-2")

    newest_first = await sql_store.get_all(limit=10, offset=0)
    alice = await sql_store.get_all(limit=10, offset=0, user_id="alice")
    flagged = await sql_store.get_all(limit=10, offset=0, flagged=True)
    page = await sql_store.get_all(limit=1, offset=1)

    assert [r.fingerprint_id for r in newest_first] == ["fp-3", "fp-2", "fp-1"]
    assert [r.fingerprint_id for r in alice] == ["fp-2", "fp-1"]
    assert [r.fingerprint_id for r in flagged] == ["fp-2"]
    assert [r.fingerprint_id for r in page] == ["fp-2"]
    assert await sql_store.get_total_count(flagged=False) == 2
    assert await sql_store.get_total_count(flagged=False, user_id="bob") == 1


@pytest.mark.asyncio
async def test_reconciler_over_sql_store(sql_store, session_factory, clock):
    reconciler = FingerprintReconciler(sql_store, clock=clock)
    first = await reconciler.reconcile("fp-1", 0.9, ip_address="10.0.0.1", user_id="u1")
    await _flag(session_factory, "fp-1")

    clock.advance(30)
    second = await reconciler.reconcile("fp-1", 0.1, ip_address="10.0.0.2", user_id="u2")

    assert second.id == first.id
    assert second.trust_score == 0.1
    assert second.flagged is True
    assert second.users == {"u1", "u2"}
    assert second.ip_addresses == {"10.0.0.1", "10.0.0.2"}


@pytest.mark.asyncio
async def test_concurrent_first_sightings_create_one_row(sql_store, clock):
    reconciler = FingerprintReconciler(sql_store, clock=clock)
    users = [f"u{i}" for i in range(5)]

    results = await asyncio.gather(
        *(reconciler.reconcile("fp-1", 1.0, user_id=user) for user in users)
    )

    assert await sql_store.get_total_count() == 1
    assert len({record.id for record in results}) == 1
    stored = await sql_store.find_one("fp-1")
    assert stored.users == frozenset(users)
