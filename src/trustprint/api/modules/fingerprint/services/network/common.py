from collections.abc import Mapping
from ipaddress import ip_address

from starlette.requests import Request

FORWARDED_IP_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip")


def normalize_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not headers:
        return {}
    return {str(k).lower(): str(v) for k, v in headers.items()}


def normalize_ip(value: str | None) -> str | None:
    if not value:
        return None

    candidate = value.split(",", 1)[0].strip()
    try:
        return str(ip_address(candidate))
    except ValueError:
        return None


class RequestIpResolver:
    def __init__(self, trust_forwarded_ip: bool):
        self._trust_forwarded_ip = trust_forwarded_ip

    def resolve(
        self,
        headers: Mapping[str, str] | None,
        client_host: str | None = None,
    ) -> str | None:
        normalized = normalize_headers(headers)
        if self._trust_forwarded_ip:
            for header in FORWARDED_IP_HEADERS:
                ip = normalize_ip(normalized.get(header))
                if ip:
                    return ip

        return normalize_ip(client_host)

    def get_request_ip(self, request: Request) -> str | None:
        client_host = request.client.host if request.client else None
        return self.resolve(request.headers, client_host)


__all__ = (
    "FORWARDED_IP_HEADERS",
    "RequestIpResolver",
    "normalize_headers",
    "normalize_ip",
)
