from trustprint.api.modules.fingerprint.services.network import (
    RequestIpResolver,
    normalize_headers,
    normalize_ip,
)

__all__ = (
    "RequestIpResolver",
    "normalize_headers",
    "normalize_ip",
)
