"""
Gemini API credentials and payload authentication.
"""
from typing import Dict, Any, Optional
import json
import os
import logging

from .exceptions import MissingCredentialsError
from .nonce import NonceProvider, millisecond_nonce
from .signer import sign_request


def mask_key(key: Optional[str]) -> str:
    """
    Shorten an API key for log output.

    Examples:
        >>> mask_key("account-abcdef123456")
        'acco...3456'
    """
    if not key:
        return "<none>"
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}...{key[-4:]}"


class GeminiCredentials:
    """Store Gemini API credentials. Read-only once constructed."""

    def __init__(self, key: str, secret: str, **kwargs: Any):
        """
        Initialize Gemini credentials.

        Args:
            key: Gemini API key (sent in X-GEMINI-APIKEY)
            secret: Gemini API secret (HMAC key, never transmitted)
            **kwargs: Additional credential fields such as a default ``account``
        """
        self._key = key
        self._secret = secret
        self._extra = dict(kwargs)

    @property
    def key(self) -> str:
        return self._key

    @property
    def secret(self) -> str:
        return self._secret

    @property
    def extra(self) -> Dict[str, Any]:
        return dict(self._extra)

    def __repr__(self) -> str:
        return f"GeminiCredentials(key={mask_key(self._key)!r}, secret='****')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeminiCredentials):
            return NotImplemented
        return (self._key, self._secret, self._extra) == (other._key, other._secret, other._extra)

    def __hash__(self) -> int:
        return hash((self._key, self._secret))

    @classmethod
    def from_env(cls, env_var: str = "GEMINI_CREDENTIALS") -> "GeminiCredentials":
        """
        Load credentials from environment variable containing JSON.

        Expected JSON format:
        {
            "key": "account-XXXXXXXXXXXX",
            "secret": "XXXXXXXXXXXXXXXXXXXX"
        }

        Args:
            env_var: Environment variable name containing JSON credentials

        Returns:
            GeminiCredentials instance

        Raises:
            ValueError: If credentials are missing or invalid
        """
        creds_json = os.getenv(env_var)
        if not creds_json:
            raise ValueError(f"Environment variable '{env_var}' is not set")

        try:
            creds_data = json.loads(creds_json)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in '{env_var}': {e}")
        if not isinstance(creds_data, dict):
            raise ValueError(f"Credentials in '{env_var}' must be a JSON object")

        required_fields = ["key", "secret"]
        missing = [f for f in required_fields if not creds_data.get(f)]
        if missing:
            raise ValueError(f"Missing required credential fields: {', '.join(missing)}")

        return cls(
            key=creds_data["key"],
            secret=creds_data["secret"],
            **{k: v for k, v in creds_data.items() if k not in required_fields}
        )


class GeminiAuthenticator:
    """Build signed payload headers for Gemini private endpoints."""

    def __init__(self, credentials: GeminiCredentials, nonce: NonceProvider = millisecond_nonce):
        """
        Initialize authenticator with credentials.

        Args:
            credentials: GeminiCredentials instance
            nonce: Zero-argument callable returning the next nonce

        Raises:
            MissingCredentialsError: If key or secret is empty
        """
        if not credentials.key or not credentials.secret:
            raise MissingCredentialsError("Authenticated requests require both `key` and `secret`")
        self.credentials = credentials
        self.nonce = nonce

    def build_payload(self, request_path: str, **fields: Any) -> Dict[str, Any]:
        """
        Build the payload envelope for a private request.

        ``request`` and ``nonce`` come first; ``None`` fields are dropped and
        the rest are passed through verbatim.
        """
        payload: Dict[str, Any] = {"request": request_path, "nonce": self.nonce()}
        payload.update({k: v for k, v in fields.items() if v is not None})
        return payload

    def sign(self, payload: Dict[str, Any]) -> Dict[str, str]:
        """Sign an already built payload."""
        return sign_request(self.credentials.key, self.credentials.secret, payload)

    def get_auth_headers(self, request_path: str, **fields: Any) -> Dict[str, str]:
        """
        Get HTTP headers for an authenticated Gemini request.

        Args:
            request_path: API endpoint path, repeated in the payload as ``request``
            **fields: Endpoint specific payload fields

        Returns:
            Dictionary with the three X-GEMINI-* headers
        """
        payload = self.build_payload(request_path, **fields)
        logging.debug(f"Signing {request_path} for {mask_key(self.credentials.key)} (nonce {payload['nonce']})")
        return self.sign(payload)
