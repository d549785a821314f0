class FingerprintError(Exception):
    """Base error of the fingerprint trust engine."""


class FingerprintUnauthorizedError(FingerprintError):
    """Reconciliation was requested without an authenticated session."""


class FingerprintAlreadyExistsError(FingerprintError):
    """Conditional create lost the race for a fingerprint_id."""

    def __init__(self, fingerprint_id: str):
        super().__init__(f"Fingerprint {fingerprint_id!r} already exists")
        self.fingerprint_id = fingerprint_id


class FingerprintConflictError(FingerprintError):
    """A concurrent write collided with an update of the same fingerprint."""

    def __init__(self, fingerprint_id: str):
        super().__init__(f"Concurrent update of fingerprint {fingerprint_id!r}")
        self.fingerprint_id = fingerprint_id


class UnknownModuleError(FingerprintError, ValueError):
    """A configured collector or validator name is not a built-in module."""

    def __init__(self, kind: str, name: str, known: list[str]):
        super().__init__(
            f"Unknown {kind} module {name!r}; expected one of: {', '.join(sorted(known))}"
        )
        self.kind = kind
        self.name = name


__all__ = (
    "FingerprintAlreadyExistsError",
    "FingerprintConflictError",
    "FingerprintError",
    "FingerprintUnauthorizedError",
    "UnknownModuleError",
)
