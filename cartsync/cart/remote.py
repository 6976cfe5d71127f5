"""
Remote Cart Client

Thin adapter over the cart service's REST resource:
    GET    /cart                     -> {"items": [...]}
    POST   /cart/items               -> {"items": [...]}
    PATCH  /cart/items/{lineItemId}  -> {"items": [...]}
    DELETE /cart/items/{lineItemId}  -> {"items": [...]}
    DELETE /cart                     -> 204

Every failure surfaces as Unauthenticated (401/403, or an anonymous read)
or RemoteUnavailable (network, timeout, other non-2xx, unreadable body).
"""

import inspect
import os
import re
from typing import Any, Awaitable, Callable, Dict, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from cartsync.errors import RemoteUnavailable, Unauthenticated
from cartsync.logging import get_logger, sanitize_id_for_logging
from .merge import validate_quantity
from .models import Cart

logger = get_logger(__name__)


# Environment
CART_API_URL = os.environ.get("CART_API_URL", "http://localhost:5001")
CART_API_TIMEOUT = float(os.environ.get("CART_API_TIMEOUT", "10"))
CART_FETCH_RETRIES = int(os.environ.get("CART_FETCH_RETRIES", "3"))

CredentialProvider = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


def normalize_base_url(url: str) -> str:
    """Strip a trailing slash and a trailing /api segment from the service URL."""
    return re.sub(r"/api/?$", "", url.strip()).rstrip("/")


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, RemoteUnavailable) and error.transient


class RemoteCartClient:
    """Cart service client for the active identity."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        credential_provider: Optional[CredentialProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = normalize_base_url(base_url or CART_API_URL)
        self._credential_provider = credential_provider
        self._http_client = http_client
        self._timeout = timeout or CART_API_TIMEOUT

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazily create a shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=5.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "RemoteCartClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _credential(self) -> Optional[str]:
        """Current bearer credential, or None when there is no session."""
        if self._credential_provider is None:
            return None
        try:
            token = self._credential_provider()
            if inspect.isawaitable(token):
                token = await token
        except Exception:
            # A broken provider means no identity, not a failed mutation
            logger.warning("Credential provider failed, sending anonymous request", exc_info=True)
            return None
        return token or None

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> tuple[httpx.Response, Optional[str]]:
        token = await self._credential()
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        client = await self._get_http_client()
        url = f"{self.base_url}{path}"
        try:
            response = await client.request(method, url, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Cart service timeout on %s %s", method, path)
            raise RemoteUnavailable(f"Cart service timed out: {e.__class__.__name__}", transient=True) from e
        except httpx.RequestError as e:
            logger.warning("Cart service network error on %s %s: %s", method, path, e)
            raise RemoteUnavailable(f"Failed to connect to cart service: {e}", transient=True) from e
        except (httpx.HTTPError, TypeError, ValueError, UnicodeError) as e:
            # Request could not be built: unserializable body, unencodable header
            logger.warning("Cart service request %s %s could not be sent: %s", method, path, e)
            raise RemoteUnavailable(f"Invalid cart service request: {e.__class__.__name__}") from e

        if response.status_code in (401, 403):
            raise Unauthenticated()
        if not response.is_success:
            logger.warning("Cart service returned %s for %s %s", response.status_code, method, path)
            raise RemoteUnavailable(
                f"Cart service returned {response.status_code}",
                status_code=response.status_code,
            )
        return response, token

    @staticmethod
    def _parse_cart(response: httpx.Response) -> Cart:
        try:
            return Cart.from_dict(response.json())
        except (ValueError, ValidationError, TypeError) as e:
            # json.JSONDecodeError is a ValueError
            raise RemoteUnavailable(
                f"Unreadable cart payload: {e.__class__.__name__}",
                status_code=response.status_code,
            ) from e

    @retry(
        stop=stop_after_attempt(CART_FETCH_RETRIES),
        wait=wait_exponential(multiplier=0.1, max=1),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    async def fetch(self) -> Cart:
        """GET the authoritative cart for the active identity."""
        response, token = await self._request("GET", "/cart")
        if token is None:
            # Anonymous reads are answered with an empty cart; that is not
            # authoritative for a visitor whose cart lives locally
            raise Unauthenticated("Anonymous cart read")
        return self._parse_cart(response)

    async def add_item(
        self,
        product_id: str,
        quantity_delta: int,
        display_fields: Optional[Dict[str, Any]] = None,
    ) -> Cart:
        """Increment (or create) the line item for a product."""
        validate_quantity(quantity_delta)
        body = dict(display_fields or {})
        body.update({"productId": product_id, "quantity": quantity_delta})
        logger.debug("Adding %s x%s to remote cart", sanitize_id_for_logging(product_id), quantity_delta)
        response, _ = await self._request("POST", "/cart/items", json=body)
        return self._parse_cart(response)

    async def set_quantity(self, line_item_id: str, quantity: int) -> Cart:
        """Absolute quantity set; removal goes through remove_item."""
        validate_quantity(quantity)
        response, _ = await self._request(
            "PATCH", f"/cart/items/{quote(str(line_item_id), safe='')}", json={"quantity": quantity}
        )
        return self._parse_cart(response)

    async def remove_item(self, line_item_id: str) -> Cart:
        response, _ = await self._request("DELETE", f"/cart/items/{quote(str(line_item_id), safe='')}")
        return self._parse_cart(response)

    async def clear(self) -> None:
        await self._request("DELETE", "/cart")
