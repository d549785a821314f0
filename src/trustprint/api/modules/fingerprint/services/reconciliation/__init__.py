from trustprint.api.modules.fingerprint.services.reconciliation.reconciler import (
    FingerprintReconciler,
)
from trustprint.api.modules.fingerprint.services.reconciliation.store import (
    FingerprintStore,
    InMemoryFingerprintStore,
)
from trustprint.api.modules.fingerprint.services.reconciliation.suspicion import (
    SuspicionCallback,
    SuspicionMonitor,
    SuspiciousActivity,
)

__all__ = (
    "FingerprintReconciler",
    "FingerprintStore",
    "InMemoryFingerprintStore",
    "SuspicionCallback",
    "SuspicionMonitor",
    "SuspiciousActivity",
)
