import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from shared.utils import settings, UpstreamUnavailableException
from services.order_service.schemas import CartSnapshot

logger = logging.getLogger("order-service")


class CartClient:
    """Single blocking GET against the cart service, no retries.

    A 404, an empty body or an envelope without data all mean "no cart".
    Transport errors, timeouts and other error statuses surface as
    UpstreamUnavailableException; callers decide whether to try again.
    """

    def __init__(
        self,
        base_url: str = f"{settings.CART_SERVICE_URL}/cart",
        timeout: float = settings.CART_SERVICE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def get_cart(
        self, customer_id: str, restaurant_id: str, request_id: Optional[str] = None
    ) -> Optional[CartSnapshot]:
        url = f"{self.base_url}/{customer_id}/{restaurant_id}"
        headers = {"X-Request-ID": request_id} if request_id else {}

        async with self._client() as client:
            try:
                response = await client.get(url, headers=headers)
            except httpx.RequestError as exc:
                logger.error("Cart service call failed", extra={
                    "target": url, "request_id": request_id
                }, exc_info=exc)
                raise UpstreamUnavailableException("Cart service unavailable")

        if response.status_code == 404:
            return None
        if response.is_error:
            logger.error("Cart service returned an error", extra={
                "target": url, "status_code": response.status_code, "request_id": request_id
            })
            raise UpstreamUnavailableException(f"Cart service returned {response.status_code}")
        if not response.content:
            return None

        try:
            body = response.json()
        except ValueError:
            raise UpstreamUnavailableException("Cart service returned an unreadable body")

        # Services wrap payloads in {success, data, message}; a bare snapshot is accepted too
        payload = body.get("data") if isinstance(body, dict) and "data" in body else body
        if not payload:
            return None
        # A cart document with null or missing items is an empty cart
        if isinstance(payload, dict) and not payload.get("items"):
            return None

        try:
            return CartSnapshot(**payload)
        except (TypeError, ValidationError):
            raise UpstreamUnavailableException("Cart service returned an invalid cart")

    async def health(self) -> str:
        url = httpx.URL(self.base_url).copy_with(path="/health")
        try:
            async with self._client() as client:
                response = await client.get(url, timeout=2.0)
        except httpx.RequestError:
            return "unreachable"
        return "healthy" if response.status_code == 200 else "unhealthy"
