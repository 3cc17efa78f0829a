"""
Gemini WebSocket client.

Three kinds of channels share one socket registry:

- market data v1, one socket per symbol (public)
- order events, a single "orders" socket authenticated at the handshake
- market data v2, a single "v2" socket driven by subscribe/unsubscribe messages
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode
import logging

from .auth import GeminiCredentials, mask_key
from .config import DEFAULT_SYMBOL, resolve_ws_url
from .events import EventRelay, Listener
from .exceptions import MissingCredentialsError
from .nonce import NonceProvider, second_nonce
from .registry import SocketRegistry, SocketState, TransportFactory, websocket_transport
from .signer import sign_request

ORDERS_CHANNEL = "orders"
V2_CHANNEL = "v2"
ORDER_EVENTS_PATH = "/v1/order/events"
MARKET_DATA_PATH = "/v1/marketdata"
MARKET_DATA_V2_PATH = "/v2/marketdata"

Subscription = Mapping[str, Any]


def build_query(params: Mapping[str, Any]) -> str:
    """
    Build a query string from the parameters that were actually supplied.

    ``None`` values are dropped, booleans are rendered as ``true``/``false``
    and lists repeat their key.

    Examples:
        >>> build_query({"heartbeat": True, "bids": None, "symbolFilter": ["btcusd", "ethusd"]})
        '?heartbeat=true&symbolFilter=btcusd&symbolFilter=ethusd'
    """
    query: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        query[key] = value
    qs = urlencode(query, doseq=True)
    return f"?{qs}" if qs else ""


class WebsocketClient:
    """Connects to the Gemini WebSocket APIs and relays their events."""

    def __init__(
        self,
        key: Optional[str] = None,
        secret: Optional[str] = None,
        symbol: Optional[str] = None,
        sandbox: bool = False,
        ws_uri: Optional[str] = None,
        nonce: NonceProvider = second_nonce,
        transport: TransportFactory = websocket_transport,
    ):
        """
        Create a WebsocketClient.

        Args:
            key: Gemini API key, only needed for the orders channel
            secret: Gemini API secret, only needed for the orders channel
            symbol: Default symbol for market data channels
            sandbox: Use the sandbox host (production otherwise)
            ws_uri: Explicit host, overrides ``sandbox`` and GEMINI_WS_URL
            nonce: Nonce provider for the orders handshake
            transport: Socket factory, replaceable for tests
        """
        self.ws_uri = resolve_ws_url(sandbox, ws_uri)
        self.symbol = symbol or DEFAULT_SYMBOL
        self.credentials = GeminiCredentials(key, secret) if key and secret else None
        self.key = key
        self.nonce = nonce
        self._relay = EventRelay()
        self._registry = SocketRegistry(self._relay, transport)

    def on(self, event: str, callback: Listener) -> Listener:
        return self._relay.on(event, callback)

    def once(self, event: str, callback: Listener) -> Listener:
        return self._relay.once(event, callback)

    def off(self, event: str, callback: Listener) -> None:
        self._relay.off(event, callback)

    def state(self, name: str) -> SocketState:
        """State of the socket registered under ``name``."""
        return self._registry.state(name)

    async def connect_market(
        self,
        symbol: Optional[str] = None,
        *,
        heartbeat: Optional[bool] = None,
        top_of_book: Optional[bool] = None,
        bids: Optional[bool] = None,
        offers: Optional[bool] = None,
        trades: Optional[bool] = None,
        auctions: Optional[bool] = None,
    ) -> None:
        """
        Connect to the public market data stream of one symbol.

        Only the flags passed explicitly end up in the query string.

        Args:
            symbol: Trading symbol, defaults to the client symbol
            heartbeat: Receive a heartbeat every 5 seconds
            top_of_book: Receive top of book only instead of full depth
            bids: Include bids in change events
            offers: Include asks in change events
            trades: Include trade events
            auctions: Include auction events
        """
        symbol = symbol or self.symbol
        qs = build_query({
            "heartbeat": heartbeat,
            "top_of_book": top_of_book,
            "bids": bids,
            "offers": offers,
            "trades": trades,
            "auctions": auctions,
        })
        await self._registry.connect(symbol, f"{self.ws_uri}{MARKET_DATA_PATH}/{symbol}{qs}")

    async def connect_orders(
        self,
        *,
        account: Optional[str] = None,
        symbol_filter: Optional[Union[str, Sequence[str]]] = None,
        api_session_filter: Optional[Union[str, Sequence[str]]] = None,
        event_type_filter: Optional[Union[str, Sequence[str]]] = None,
    ) -> None:
        """
        Connect to the private order events stream.

        The signed payload travels as handshake headers, not as a message.
        Credentials are checked when the coroutine is awaited, before the
        nonce is drawn or any socket is attempted.

        Args:
            account: Sub-account name added to the signed payload
            symbol_filter: Only receive events for these symbols
            api_session_filter: Only receive events for these API sessions
            event_type_filter: Only receive these event types

        Raises:
            MissingCredentialsError: If the client has no key or no secret
        """
        if self.credentials is None:
            raise MissingCredentialsError("`connect_orders` requires both `key` and `secret`")

        payload: Dict[str, Any] = {"request": ORDER_EVENTS_PATH, "nonce": self.nonce()}
        if account is not None:
            payload["account"] = account
        headers = sign_request(self.credentials.key, self.credentials.secret, payload)
        qs = build_query({
            "symbolFilter": symbol_filter,
            "apiSessionFilter": api_session_filter,
            "eventTypeFilter": event_type_filter,
        })
        logging.debug(f"Opening order events for {mask_key(self.credentials.key)} (nonce {payload['nonce']})")
        await self._registry.connect(ORDERS_CHANNEL, f"{self.ws_uri}{ORDER_EVENTS_PATH}{qs}", headers)

    async def connect(self) -> None:
        """Connect to the shared market data v2 stream."""
        await self._registry.connect(V2_CHANNEL, f"{self.ws_uri}{MARKET_DATA_V2_PATH}")

    async def disconnect_market(self, symbol: Optional[str] = None) -> None:
        await self._registry.disconnect(symbol or self.symbol)

    async def disconnect_orders(self) -> None:
        await self._registry.disconnect(ORDERS_CHANNEL)

    async def disconnect(self) -> None:
        await self._registry.disconnect(V2_CHANNEL)

    async def subscribe(self, subscriptions: Union[Subscription, Sequence[Subscription]]) -> None:
        """
        Subscribe to v2 data feeds.

        Args:
            subscriptions: One ``{"name": ..., "symbols": [...]}`` mapping or a list of them

        Raises:
            NotConnectedError: If the v2 socket is not open
            TransportError: If the send itself fails
        """
        await self._send_control("subscribe", subscriptions)

    async def unsubscribe(self, subscriptions: Union[Subscription, Sequence[Subscription]]) -> None:
        """Unsubscribe from v2 data feeds. Same contract as ``subscribe``."""
        await self._send_control("unsubscribe", subscriptions)

    async def _send_control(self, message_type: str, subscriptions: Union[Subscription, Sequence[Subscription]]) -> None:
        if isinstance(subscriptions, Mapping):
            subscriptions = [subscriptions]
        message: Dict[str, Any] = {"type": message_type, "subscriptions": [dict(s) for s in subscriptions]}
        logging.debug(f"Sending {message_type} for {len(message['subscriptions'])} feed(s)")
        await self._registry.send(V2_CHANNEL, message)

    def channels(self) -> List[str]:
        """Names of every channel this client has registered."""
        return self._registry.names()
