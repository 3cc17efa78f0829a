"""
HMAC-SHA384 request signing.

The payload is serialized once, base64-encoded, and that encoded string is
both sent in ``X-GEMINI-PAYLOAD`` and signed. REST requests and the orders
socket handshake go through the same encode step.
"""
from typing import Any, Dict, Mapping, Union
import base64
import hashlib
import hmac
import json

PAYLOAD_HEADER = "X-GEMINI-PAYLOAD"
SIGNATURE_HEADER = "X-GEMINI-SIGNATURE"
APIKEY_HEADER = "X-GEMINI-APIKEY"


def encode_payload(payload: Mapping[str, Any]) -> str:
    """
    Serialize a payload to compact JSON and base64-encode it.

    Keys keep their insertion order, so the same mapping always encodes to
    the same string.

    Args:
        payload: JSON-serializable mapping, usually with ``request`` and ``nonce``

    Returns:
        Base64 string
    """
    raw = json.dumps(payload, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_payload(encoded: str) -> Dict[str, Any]:
    """Inverse of encode_payload."""
    return json.loads(base64.b64decode(encoded).decode("utf-8"))


def compute_signature(secret: str, encoded: str) -> str:
    """Lowercase hex HMAC-SHA384 of the encoded payload. ``secret`` must not be empty."""
    return hmac.new(secret.encode("utf-8"), encoded.encode("utf-8"), hashlib.sha384).hexdigest()


def sign_request(key: str, secret: str, payload: Union[str, Mapping[str, Any]]) -> Dict[str, str]:
    """
    Build the three Gemini authentication headers.

    Args:
        key: API key, sent as-is
        secret: API secret, used only as the HMAC key
        payload: Either an already base64-encoded string or a mapping to encode

    Returns:
        Dictionary with X-GEMINI-PAYLOAD, X-GEMINI-SIGNATURE and X-GEMINI-APIKEY

    Examples:
        >>> sign_request("mykey", "1234abcd", {"request": "/v1/heartbeat", "nonce": 1})["X-GEMINI-APIKEY"]
        'mykey'
    """
    encoded = payload if isinstance(payload, str) else encode_payload(payload)
    return {
        PAYLOAD_HEADER: encoded,
        SIGNATURE_HEADER: compute_signature(secret, encoded),
        APIKEY_HEADER: key,
    }


def verify_signature(secret: str, encoded: str, signature: str) -> bool:
    """Check a signature the way the server does, in constant time."""
    return hmac.compare_digest(compute_signature(secret, encoded), signature)
