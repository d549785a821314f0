from trustprint.api.modules.fingerprint.services.network.common import (
    FORWARDED_IP_HEADERS,
    RequestIpResolver,
    normalize_headers,
    normalize_ip,
)

__all__ = (
    "FORWARDED_IP_HEADERS",
    "RequestIpResolver",
    "normalize_headers",
    "normalize_ip",
)
