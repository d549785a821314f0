import pytest

from trustprint.api.modules.fingerprint.services.network import (
    RequestIpResolver,
    normalize_headers,
    normalize_ip,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("203.0.113.7", "203.0.113.7"),
        (" 203.0.113.7 , 10.0.0.1", "203.0.113.7"),
        ("2001:0db8:0000:0000:0000:0000:0000:0001", "2001:db8::1"),
        ("unknown", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_ip(value, expected):
    assert normalize_ip(value) == expected


def test_forwarded_headers_are_checked_in_priority_order():
    resolver = RequestIpResolver(trust_forwarded_ip=True)
    headers = {
        "X-Real-IP": "198.51.100.3",
        "X-Forwarded-For": "198.51.100.2",
        "CF-Connecting-IP": "198.51.100.1",
    }

    assert resolver.resolve(headers, "10.0.0.1") == "198.51.100.1"
    assert resolver.resolve({"X-Real-IP": "bogus"}, "10.0.0.1") == "10.0.0.1"


def test_socket_peer_is_used_when_proxies_are_untrusted():
    resolver = RequestIpResolver(trust_forwarded_ip=False)

    assert resolver.resolve({"X-Forwarded-For": "198.51.100.2"}, "10.0.0.1") == "10.0.0.1"
    assert resolver.resolve({}, None) is None


def test_normalize_headers_lowercases_names():
    assert normalize_headers({"X-Data": "abc"}) == {"x-data": "abc"}
    assert normalize_headers(None) == {}
