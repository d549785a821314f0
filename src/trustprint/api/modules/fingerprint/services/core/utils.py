import json
import math
from collections.abc import Sequence
from datetime import UTC, datetime
from hashlib import sha256

FINGERPRINT_ID_LENGTH = 32


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def as_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    return candidate or None


def hash_material(parts: Sequence[object]) -> str:
    body = json.dumps(list(parts), separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )
    return sha256(body).hexdigest()[:FINGERPRINT_ID_LENGTH]


__all__ = (
    "FINGERPRINT_ID_LENGTH",
    "as_number",
    "as_text",
    "hash_material",
    "utc_now",
)
