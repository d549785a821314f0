import base64
import binascii
import json
import logging
from collections.abc import Iterable

from trustprint.api.modules.fingerprint.services.core.types import (
    RESERVED_FIELD,
    SignalBundle,
    SignalFields,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAYLOAD_BYTES = 16_384
_SCALAR_TYPES = (str, int, float, bool)


def encode(bundles: Iterable[SignalBundle]) -> str:
    """Serialize bundles into a single base64 token.

    The token wraps a compact JSON array of ``{"id": module_id, **fields}``
    objects, the same shape the browser collector script emits.
    """
    items = [{RESERVED_FIELD: bundle.module_id, **bundle.fields} for bundle in bundles]
    body = json.dumps(items, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(body.encode("utf-8")).decode("ascii")


def _parse_item(item: object) -> SignalBundle | None:
    if not isinstance(item, dict):
        return None

    module_id = item.get(RESERVED_FIELD)
    if not isinstance(module_id, str) or not module_id:
        return None

    fields: SignalFields = {}
    for key, value in item.items():
        if key == RESERVED_FIELD:
            continue
        if not isinstance(value, _SCALAR_TYPES):
            return None
        fields[key] = value
    return SignalBundle(module_id=module_id, fields=fields)


def decode(
    token: str | None,
    max_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
) -> list[SignalBundle]:
    """Inverse of :func:`encode`.

    Missing, oversized or undecodable tokens yield an empty list: absence of
    signals is a valid low-trust state, not a protocol fault.
    """
    if not token:
        return []

    candidate = token.strip()
    if not candidate or len(candidate) > max_bytes:
        logger.debug("Signal payload empty or too large", extra={"size": len(candidate)})
        return []

    try:
        raw = base64.b64decode(candidate, validate=True)
        items = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError, RecursionError) as exc:
        logger.debug("Signal payload is malformed: %s", exc)
        return []

    if not isinstance(items, list):
        logger.debug("Signal payload is not an array")
        return []

    bundles: list[SignalBundle] = []
    seen: set[str] = set()
    for item in items:
        bundle = _parse_item(item)
        if bundle is None:
            logger.debug("Skipping malformed signal bundle")
            continue
        if bundle.module_id in seen:
            continue
        seen.add(bundle.module_id)
        bundles.append(bundle)
    return bundles


__all__ = ("DEFAULT_MAX_PAYLOAD_BYTES", "decode", "encode")
