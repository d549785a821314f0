import asyncio
import logging

import pytest

from trustprint.api.modules.fingerprint.exceptions import FingerprintConflictError
from trustprint.api.modules.fingerprint.services.core import FingerprintPatch
from trustprint.api.modules.fingerprint.services.reconciliation import (
    FingerprintReconciler,
    InMemoryFingerprintStore,
)


class ConflictingStore(InMemoryFingerprintStore):
    def __init__(self, conflicts: int):
        super().__init__()
        self.conflicts = conflicts
        self.update_calls = 0

    async def update(self, fingerprint_id: str, patch: FingerprintPatch) -> None:
        self.update_calls += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            raise FingerprintConflictError(fingerprint_id)
        await super().update(fingerprint_id, patch)


class ForgetfulStore(InMemoryFingerprintStore):
    async def find_one(self, fingerprint_id: str):
        return None


@pytest.mark.asyncio
async def test_first_sighting_creates_record(memory_store, clock):
    reconciler = FingerprintReconciler(memory_store, clock=clock)

    record = await reconciler.reconcile("fp-1", 0.75, ip_address="10.0.0.1", user_id="u1")

    assert record.fingerprint_id == "fp-1"
    assert record.trust_score == 0.75
    assert record.ip_addresses == {"10.0.0.1"}
    assert record.users == {"u1"}
    assert record.flagged is False
    assert record.created_at == record.updated_at == record.last_seen_at == clock.now


@pytest.mark.asyncio
async def test_repeat_sighting_merges_sets_and_refreshes_timestamps(memory_store, clock):
    reconciler = FingerprintReconciler(memory_store, clock=clock)
    created = await reconciler.reconcile("fp-1", 1.0, ip_address="10.0.0.1", user_id="u1")

    seen_at = clock.advance(60)
    record = await reconciler.reconcile("fp-1", 1.0, ip_address="10.0.0.2", user_id="u2")

    assert record.id == created.id
    assert record.created_at == created.created_at
    assert record.updated_at == record.last_seen_at == seen_at
    assert record.ip_addresses == {"10.0.0.1", "10.0.0.2"}
    assert record.users == {"u1", "u2"}
    assert await memory_store.get_total_count() == 1


@pytest.mark.asyncio
async def test_latest_trust_score_overwrites_previous(memory_store, clock):
    reconciler = FingerprintReconciler(memory_store, clock=clock)
    await reconciler.reconcile("fp-1", 1.0, user_id="u1")

    lowered = await reconciler.reconcile("fp-1", 0.2, user_id="u1")
    unknown = await reconciler.reconcile("fp-1", None, user_id="u1")

    assert lowered.trust_score == 0.2
    assert unknown.trust_score is None


@pytest.mark.asyncio
async def test_replaying_same_sighting_is_idempotent_for_sets(memory_store, clock):
    reconciler = FingerprintReconciler(memory_store, clock=clock)

    first = await reconciler.reconcile("fp-1", 0.5, ip_address="10.0.0.1", user_id="u1")
    second = await reconciler.reconcile("fp-1", 0.5, ip_address="10.0.0.1", user_id="u1")

    assert second.ip_addresses == first.ip_addresses
    assert second.users == first.users


@pytest.mark.asyncio
async def test_sighting_without_user_or_ip_keeps_existing_sets(memory_store, clock):
    reconciler = FingerprintReconciler(memory_store, clock=clock)
    await reconciler.reconcile("fp-1", 0.5, ip_address="10.0.0.1", user_id="u1")

    record = await reconciler.reconcile("fp-1", 0.5)

    assert record.ip_addresses == {"10.0.0.1"}
    assert record.users == {"u1"}


@pytest.mark.asyncio
async def test_ip_addresses_are_not_saved_when_disabled(memory_store, clock):
    reconciler = FingerprintReconciler(memory_store, save_ip_addresses=False, clock=clock)

    await reconciler.reconcile("fp-1", 0.5, ip_address="10.0.0.1", user_id="u1")
    record = await reconciler.reconcile("fp-1", 0.5, ip_address="10.0.0.2", user_id="u1")

    assert record.ip_addresses == frozenset()


@pytest.mark.asyncio
async def test_concurrent_first_sightings_converge_on_one_record(memory_store, clock):
    reconciler = FingerprintReconciler(memory_store, clock=clock)
    users = [f"u{i}" for i in range(8)]

    results = await asyncio.gather(
        *(reconciler.reconcile("fp-1", 1.0, user_id=user) for user in users)
    )

    assert await memory_store.get_total_count() == 1
    assert len({record.id for record in results}) == 1
    stored = await memory_store.find_one("fp-1")
    assert stored.users == frozenset(users)


@pytest.mark.asyncio
async def test_update_conflicts_are_retried(clock):
    store = ConflictingStore(conflicts=2)
    reconciler = FingerprintReconciler(store, max_update_attempts=3, clock=clock)
    await reconciler.reconcile("fp-1", 1.0, user_id="u1")

    record = await reconciler.reconcile("fp-1", 1.0, user_id="u2")

    assert store.update_calls == 3
    assert record.users == {"u1", "u2"}


@pytest.mark.asyncio
async def test_update_conflict_after_last_attempt_propagates(clock):
    store = ConflictingStore(conflicts=5)
    reconciler = FingerprintReconciler(store, max_update_attempts=2, clock=clock)
    await reconciler.reconcile("fp-1", 1.0, user_id="u1")

    with pytest.raises(FingerprintConflictError):
        await reconciler.reconcile("fp-1", 1.0, user_id="u2")

    assert store.update_calls == 2


@pytest.mark.asyncio
async def test_missing_record_after_write_is_logged(caplog, clock):
    store = ForgetfulStore()
    reconciler = FingerprintReconciler(store, clock=clock)

    with caplog.at_level(logging.ERROR):
        result = await reconciler.reconcile("fp-1", 1.0, user_id="u1")

    assert result is None
    assert "Fingerprint record not found after creation or update" in caplog.text
