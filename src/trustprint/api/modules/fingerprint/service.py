import asyncio
import logging
from collections.abc import Coroutine, Mapping
from typing import Any

from trustprint.api.modules.fingerprint.exceptions import FingerprintUnauthorizedError
from trustprint.api.modules.fingerprint.services.core import (
    ExecutionMode,
    FingerprintRecord,
    SignalEvaluation,
    compute_trust_score,
)
from trustprint.api.modules.fingerprint.services.identity import IdentityResolver
from trustprint.api.modules.fingerprint.services.network import (
    RequestIpResolver,
    normalize_headers,
)
from trustprint.api.modules.fingerprint.services.reconciliation import (
    FingerprintReconciler,
    SuspicionMonitor,
)
from trustprint.api.modules.fingerprint.services.transport import decode
from trustprint.api.modules.fingerprint.services.validators import ValidatorRegistry
from trustprint.settings import FingerprintConfig

logger = logging.getLogger(__name__)

ReconciliationWork = Coroutine[Any, Any, FingerprintRecord | None]


class FingerprintService:
    """Pre- and post-authentication phases of the fingerprint pipeline.

    ``evaluate`` runs before the instrumented endpoint (decode signals, run
    validators, score). ``after_authentication`` returns the reconciliation
    as pending work; ``dispatch`` either awaits it or detaches it.
    """

    def __init__(
        self,
        config: FingerprintConfig,
        validators: ValidatorRegistry,
        identity: IdentityResolver,
        reconciler: FingerprintReconciler,
        ip_resolver: RequestIpResolver,
        suspicion: SuspicionMonitor | None = None,
    ):
        self._config = config
        self._validators = validators
        self._identity = identity
        self._reconciler = reconciler
        self._ip_resolver = ip_resolver
        self._suspicion = suspicion
        self._signal_header = config.signal_header.lower()
        self._background: set[asyncio.Task[FingerprintRecord | None]] = set()

    @property
    def execution_mode(self) -> ExecutionMode:
        return ExecutionMode.from_flag(self._config.awaited)

    def is_instrumented(self, path: str) -> bool:
        return path in self._config.endpoints

    def evaluate(self, headers: Mapping[str, str] | None) -> SignalEvaluation:
        normalized = normalize_headers(headers)
        bundles = decode(
            normalized.get(self._signal_header),
            max_bytes=self._config.max_signal_payload_bytes,
        )
        verdicts = self._validators.evaluate(bundles)
        evaluation = SignalEvaluation(
            bundles=tuple(bundles),
            verdicts=tuple(verdicts),
            trust_score=compute_trust_score(verdicts),
        )
        logger.debug(
            "Signals evaluated",
            extra={
                "bundles": len(bundles),
                "lying": [v.module_id for v in verdicts if v.is_lying],
                "trust_score": evaluation.trust_score,
            },
        )
        return evaluation

    async def resolve_fingerprint_id(
        self,
        headers: Mapping[str, str] | None,
        evaluation: SignalEvaluation,
    ) -> str | None:
        return await self._identity.resolve(headers, evaluation)

    def after_authentication(
        self,
        headers: Mapping[str, str] | None,
        evaluation: SignalEvaluation,
        user_id: str | None,
        client_host: str | None = None,
        require_session: bool = False,
    ) -> ReconciliationWork:
        if require_session and not user_id:
            raise FingerprintUnauthorizedError("An authenticated session is required")
        return self._reconcile(
            normalize_headers(headers),
            evaluation,
            user_id,
            client_host,
        )

    async def _reconcile(
        self,
        headers: dict[str, str],
        evaluation: SignalEvaluation,
        user_id: str | None,
        client_host: str | None,
    ) -> FingerprintRecord | None:
        try:
            fingerprint_id = await self._identity.resolve(headers, evaluation)
            if fingerprint_id is None:
                logger.debug("Request left unfingerprinted, no identifier resolved")
                return None

            ip_address = self._ip_resolver.resolve(headers, client_host)
            record = await self._reconciler.reconcile(
                fingerprint_id=fingerprint_id,
                trust_score=evaluation.trust_score,
                ip_address=ip_address,
                user_id=user_id,
            )
            if record is not None and self._suspicion and self._suspicion.enabled:
                await self._suspicion.inspect(record, user_id)
            return record
        except Exception:
            logger.exception("Fingerprint reconciliation failed")
            return None

    async def dispatch(
        self,
        work: ReconciliationWork,
        mode: ExecutionMode | None = None,
    ) -> FingerprintRecord | None:
        mode = mode or self.execution_mode
        if mode is ExecutionMode.AWAITED:
            return await work

        task = asyncio.create_task(work)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return None

    def _on_background_done(self, task: asyncio.Task[FingerprintRecord | None]) -> None:
        self._background.discard(task)
        if task.cancelled():
            logger.warning("Detached fingerprint reconciliation was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Detached fingerprint reconciliation failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for detached reconciliations still in flight."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)


__all__ = ("FingerprintService", "ReconciliationWork")
