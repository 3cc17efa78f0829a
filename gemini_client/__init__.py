"""
Gemini exchange client package.

Signs REST and WebSocket payloads and manages named WebSocket channels.
"""
from typing import Protocol, Dict, Any, runtime_checkable


@runtime_checkable
class RequestAuthenticator(Protocol):
    """Protocol defining the interface for payload authenticators."""

    def get_auth_headers(
        self,
        request_path: str,
        **fields: Any
    ) -> Dict[str, str]:
        """
        Get HTTP headers for an authenticated API request.

        Args:
            request_path: API endpoint path, also sent as the payload ``request``
            **fields: Additional endpoint specific payload fields

        Returns:
            Dictionary of X-GEMINI-* headers
        """
        ...


# Re-export the public API for easy imports
from .auth import GeminiCredentials, GeminiAuthenticator
from .exceptions import (
    GeminiError,
    GeminiAPIError,
    InvalidStateError,
    MalformedFrameError,
    MissingCredentialsError,
    NotConnectedError,
    TransportError,
)
from .nonce import millisecond_nonce, second_nonce
from .registry import SocketRegistry, SocketState
from .rest import PublicClient, AuthenticatedClient
from .signer import sign_request, encode_payload, decode_payload, verify_signature
from .websocket import WebsocketClient

__all__ = [
    'RequestAuthenticator',
    'GeminiCredentials',
    'GeminiAuthenticator',
    'GeminiError',
    'GeminiAPIError',
    'InvalidStateError',
    'MalformedFrameError',
    'MissingCredentialsError',
    'NotConnectedError',
    'TransportError',
    'millisecond_nonce',
    'second_nonce',
    'SocketRegistry',
    'SocketState',
    'PublicClient',
    'AuthenticatedClient',
    'sign_request',
    'encode_payload',
    'decode_payload',
    'verify_signature',
    'WebsocketClient',
]
