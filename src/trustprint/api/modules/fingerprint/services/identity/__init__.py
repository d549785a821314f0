from trustprint.api.modules.fingerprint.services.identity.resolver import (
    DEFAULT_CLIENT_ID_HEADER,
    DEFAULT_REQUIRED_ID_HEADERS,
    DEFAULT_SERVER_ID_HEADERS,
    ClientAssertedStrategy,
    CombinedSignalsGetter,
    CustomStrategy,
    FingerprintIdGetter,
    FingerprintIdRequest,
    IdentityResolver,
    IdentityStrategy,
    ServerDerivedStrategy,
    build_identity_resolver,
    clean_fingerprint_id,
)

__all__ = (
    "DEFAULT_CLIENT_ID_HEADER",
    "DEFAULT_REQUIRED_ID_HEADERS",
    "DEFAULT_SERVER_ID_HEADERS",
    "ClientAssertedStrategy",
    "CombinedSignalsGetter",
    "CustomStrategy",
    "FingerprintIdGetter",
    "FingerprintIdRequest",
    "IdentityResolver",
    "IdentityStrategy",
    "ServerDerivedStrategy",
    "build_identity_resolver",
    "clean_fingerprint_id",
)
