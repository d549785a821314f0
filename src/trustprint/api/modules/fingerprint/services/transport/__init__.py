from trustprint.api.modules.fingerprint.services.transport.codec import (
    DEFAULT_MAX_PAYLOAD_BYTES,
    decode,
    encode,
)

__all__ = ("DEFAULT_MAX_PAYLOAD_BYTES", "decode", "encode")
