"""
Gemini REST API clients.

PublicClient covers the unauthenticated market data endpoints; AuthenticatedClient
adds signed POST requests for trading and account endpoints.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

import requests

from .auth import GeminiAuthenticator, GeminiCredentials, mask_key
from .config import API_LIMIT, DEFAULT_SYMBOL, DEFAULT_TIMEOUT, HEADERS, resolve_api_url
from .exceptions import GeminiAPIError, MissingCredentialsError
from .nonce import NonceProvider, millisecond_nonce


def _prepare_query(query: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop unset values and render booleans the way the API expects them."""
    params: Dict[str, Any] = {}
    for key, value in query.items():
        if value is None:
            continue
        params[key] = ("true" if value else "false") if isinstance(value, bool) else value
    return params


class PublicClient:
    """Unauthenticated access to the Gemini REST API."""

    def __init__(
        self,
        symbol: Optional[str] = None,
        sandbox: bool = False,
        api_uri: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Create a PublicClient.

        Args:
            symbol: Default symbol for market data calls
            sandbox: Use the sandbox host (production otherwise)
            api_uri: Explicit host, overrides ``sandbox`` and GEMINI_API_BASE_URL
            timeout: Request timeout in seconds
            session: Optional requests session to reuse
        """
        self.api_uri = resolve_api_url(sandbox, api_uri)
        self.symbol = symbol or DEFAULT_SYMBOL
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.api_uri}/{path.lstrip('/')}"

    def _handle_response(self, response: requests.Response) -> Any:
        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            try:
                data = response.json()
            except ValueError:
                data = {}
            if not isinstance(data, dict):
                data = {}
            reason = data.get("reason")
            message = data.get("message") or reason or str(e)
            logging.warning(f"Gemini API error {response.status_code}: {message}")
            raise GeminiAPIError(message, status_code=response.status_code, reason=reason) from e
        return response.json()

    def get(self, path: str, **query: Any) -> Any:
        """
        Make a GET request.

        Args:
            path: API endpoint path, e.g. "/v1/symbols"
            **query: Query parameters; ``None`` values are left out

        Returns:
            Decoded JSON response

        Raises:
            GeminiAPIError: If the API answers with an error status
        """
        url = self._url(path)
        params = _prepare_query(query)
        logging.debug(f"GET {url} params={params}")
        response = self.session.get(url, params=params, headers=dict(HEADERS), timeout=self.timeout)
        return self._handle_response(response)

    def get_symbols(self) -> List[str]:
        """All available trading symbols."""
        return self.get("/v1/symbols")

    def get_ticker(self, symbol: Optional[str] = None) -> Dict[str, Any]:
        """Latest bid, ask and trade for a symbol."""
        return self.get(f"/v1/pubticker/{symbol or self.symbol}")

    def get_order_book(self, symbol: Optional[str] = None, limit_bids: int = 0, limit_asks: int = 0) -> Dict[str, Any]:
        """Current order book; a limit of 0 returns the full depth."""
        return self.get(f"/v1/book/{symbol or self.symbol}", limit_bids=limit_bids, limit_asks=limit_asks)

    def get_trade_history(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit_trades: int = API_LIMIT,
        include_breaks: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        """Trades executed since a timestamp."""
        return self.get(
            f"/v1/trades/{symbol or self.symbol}",
            since=since,
            limit_trades=limit_trades,
            include_breaks=include_breaks,
        )

    def get_current_auction(self, symbol: Optional[str] = None) -> Dict[str, Any]:
        return self.get(f"/v1/auction/{symbol or self.symbol}")

    def get_auction_history(
        self,
        symbol: Optional[str] = None,
        since: Optional[int] = None,
        limit_auction_results: int = API_LIMIT,
        include_indicative: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        return self.get(
            f"/v1/auction/{symbol or self.symbol}/history",
            since=since,
            limit_auction_results=limit_auction_results,
            include_indicative=include_indicative,
        )


class AuthenticatedClient(PublicClient):
    """Signed access to the Gemini private REST API."""

    def __init__(
        self,
        key: Optional[str],
        secret: Optional[str],
        nonce: NonceProvider = millisecond_nonce,
        **options: Any,
    ):
        """
        Create an AuthenticatedClient.

        Args:
            key: Gemini API key
            secret: Gemini API secret
            nonce: Nonce provider, called once per request
            **options: Any PublicClient option

        Raises:
            MissingCredentialsError: If key or secret is missing
        """
        if not key or not secret:
            raise MissingCredentialsError("AuthenticatedClient requires both `key` and `secret`")
        super().__init__(**options)
        self.authenticator = GeminiAuthenticator(GeminiCredentials(key, secret), nonce)
        logging.info(f"Initialized Gemini client for key {mask_key(key)} at {self.api_uri}")

    @classmethod
    def from_env(cls, env_var: str = "GEMINI_CREDENTIALS", **options: Any) -> "AuthenticatedClient":
        """Create a client from credentials stored as JSON in an environment variable."""
        credentials = GeminiCredentials.from_env(env_var)
        return cls(credentials.key, credentials.secret, **options)

    @property
    def nonce(self) -> NonceProvider:
        return self.authenticator.nonce

    @nonce.setter
    def nonce(self, provider: NonceProvider) -> None:
        self.authenticator.nonce = provider

    def post(self, request: str, **fields: Any) -> Any:
        """
        Make a signed POST request.

        The payload ``{"request": request, "nonce": ..., **fields}`` is sent in
        the X-GEMINI-PAYLOAD header; the body stays empty.

        Args:
            request: API endpoint path, e.g. "/v1/order/status"
            **fields: Endpoint specific fields; ``None`` values are left out

        Returns:
            Decoded JSON response

        Raises:
            GeminiAPIError: If the API answers with an error status
        """
        url = self._url(request)
        headers = dict(HEADERS)
        headers.update(self.authenticator.get_auth_headers(request, **fields))
        logging.debug(f"POST {url}")
        response = self.session.post(url, headers=headers, timeout=self.timeout)
        return self._handle_response(response)

    def new_order(
        self,
        amount: Any,
        price: Any,
        side: str,
        symbol: Optional[str] = None,
        order_type: str = "exchange limit",
        client_order_id: Optional[str] = None,
        min_amount: Optional[Any] = None,
        stop_price: Optional[Any] = None,
        options: Optional[Sequence[str]] = None,
        account: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Submit a new order."""
        if side not in ("buy", "sell"):
            raise ValueError(f"Invalid side: {side}. Must be 'buy' or 'sell'")
        return self.post(
            "/v1/order/new",
            symbol=symbol or self.symbol,
            amount=amount,
            price=price,
            side=side,
            type=order_type,
            client_order_id=client_order_id,
            min_amount=min_amount,
            stop_price=stop_price,
            options=list(options) if options is not None else None,
            account=account,
        )

    def buy(self, amount: Any, price: Any, **kwargs: Any) -> Dict[str, Any]:
        return self.new_order(amount, price, "buy", **kwargs)

    def sell(self, amount: Any, price: Any, **kwargs: Any) -> Dict[str, Any]:
        return self.new_order(amount, price, "sell", **kwargs)

    def cancel_order(self, order_id: int, account: Optional[str] = None) -> Dict[str, Any]:
        return self.post("/v1/order/cancel", order_id=order_id, account=account)

    def cancel_session(self, account: Optional[str] = None) -> Dict[str, Any]:
        """Cancel all orders opened by this session."""
        return self.post("/v1/order/cancel/session", account=account)

    def cancel_all(self, account: Optional[str] = None) -> Dict[str, Any]:
        """Cancel all outstanding orders of every session of this account."""
        return self.post("/v1/order/cancel/all", account=account)

    def get_order_status(
        self,
        order_id: Optional[int] = None,
        client_order_id: Optional[str] = None,
        include_trades: Optional[bool] = None,
        account: Optional[str] = None,
    ) -> Dict[str, Any]:
        if order_id is None and client_order_id is None:
            raise ValueError("Either order_id or client_order_id is required")
        return self.post(
            "/v1/order/status",
            order_id=order_id,
            client_order_id=client_order_id,
            include_trades=include_trades,
            account=account,
        )

    def get_active_orders(self, account: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.post("/v1/orders", account=account)

    def get_past_trades(
        self,
        symbol: Optional[str] = None,
        limit_trades: int = API_LIMIT,
        timestamp: Optional[int] = None,
        account: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return self.post(
            "/v1/mytrades",
            symbol=symbol or self.symbol,
            limit_trades=limit_trades,
            timestamp=timestamp,
            account=account,
        )

    def get_notional_volume(self, account: Optional[str] = None) -> Dict[str, Any]:
        """30 day traded volume in price currency across all pairs."""
        return self.post("/v1/notionalvolume", account=account)

    def get_trade_volume(self, account: Optional[str] = None) -> List[List[Dict[str, Any]]]:
        return self.post("/v1/tradevolume", account=account)

    def get_available_balances(self, account: Optional[str] = None) -> List[Dict[str, Any]]:
        return self.post("/v1/balances", account=account)

    def heartbeat(self) -> Dict[str, Any]:
        """Keep a session that requires heartbeats from timing out."""
        return self.post("/v1/heartbeat")
