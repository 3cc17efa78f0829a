"""
Nonce providers.

A provider is any zero-argument callable returning an int. Clients call it
once per signed request or signed connection; ordering is the caller's job.
"""
from typing import Callable
import time

NonceProvider = Callable[[], int]


def millisecond_nonce() -> int:
    """Current epoch time in milliseconds, used for REST requests."""
    return int(time.time() * 1000)


def second_nonce() -> int:
    """Current epoch time in seconds, used for the orders socket handshake."""
    return int(time.time())
