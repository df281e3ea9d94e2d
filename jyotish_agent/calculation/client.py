"""
Calculation Service Client
==========================

Async HTTP client for the remote Vedic calculation service.

Every endpoint takes the user's birth facts (date, time, lat, lon) plus
operation-specific parameters, and returns a JSON document that is handed
to the model verbatim.

Endpoints:
    POST /calculate/chart        birth chart (rashi, houses, ascendant)
    POST /calculate/dasha        Vimshottari dasha periods
    POST /calculate/transits     transits against the natal chart
    POST /calculate/varga        divisional charts (D2, D9, D10, ...)
    POST /calculate/varshaphala  annual solar return

Cold starts:
    The service sleeps when idle and answers 503 while waking up. A 503
    is retried exactly once after a fixed delay; a second 503 is reported
    as an error so a single call never waits more than twice. The retry is
    skipped when the request deadline would pass during the delay.

Every failure is raised as CalculationError with a short message the
model can read and act on.
"""

import asyncio
from typing import Any

import httpx

from jyotish_agent.deadline import Deadline, bound_timeout
from jyotish_agent.errors import CalculationError
from jyotish_agent.utils.logger import Logger

logger = Logger("CalculationClient")


class CalculationClient:
    """
    Client for the calculation service.

    Example:
        async with CalculationClient("https://vedic-engine.example") as client:
            chart = await client.birth_chart(user)
            dasha = await client.dasha(user)
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        warmup_retry_delay_seconds: float = 2.0,
        http_client: httpx.AsyncClient | None = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Service root, without trailing slash
            timeout_seconds: Default per-request timeout
            warmup_retry_delay_seconds: Delay before retrying a 503
            http_client: Pre-built client (tests pass one with a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.warmup_retry_delay_seconds = warmup_retry_delay_seconds
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "CalculationClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def post(
        self,
        endpoint: str,
        payload: dict[str, Any],
        timeout: float | None = None,
        deadline: Deadline | None = None
    ) -> dict[str, Any]:
        """
        POST a payload and return the decoded JSON body.

        Args:
            endpoint: Path such as "/calculate/dasha"
            payload: JSON body
            timeout: Per-call timeout, defaults to the client timeout
            deadline: Optional request deadline; each attempt is bounded by it

        Returns:
            The response JSON

        Raises:
            CalculationError: On any transport or HTTP failure
        """
        base_timeout = timeout if timeout is not None else self.timeout_seconds
        logger.debug(f"POST {endpoint}", payload)

        response = await self._send(endpoint, payload, bound_timeout(deadline, base_timeout))

        if response.status_code == 503:
            if deadline is not None and deadline.remaining() <= self.warmup_retry_delay_seconds:
                logger.warning(f"Service warming up, no time left to retry {endpoint}")
            else:
                logger.warning(
                    f"Service warming up, retrying {endpoint} in {self.warmup_retry_delay_seconds}s"
                )
                await asyncio.sleep(self.warmup_retry_delay_seconds)
                response = await self._send(endpoint, payload, bound_timeout(deadline, base_timeout))

        if response.status_code >= 400:
            message = self._describe_status(endpoint, response.status_code)
            logger.error(f"{endpoint} failed", data={
                "status": response.status_code,
                "body": response.content[:300].decode("utf-8", errors="replace"),
            })
            raise CalculationError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"{endpoint} returned invalid JSON", e)
            raise CalculationError(
                "Calculation service returned an invalid response.",
                status_code=response.status_code,
            ) from e

        logger.debug(f"{endpoint} response received")
        return data

    async def _send(self, endpoint: str, payload: dict, timeout: float) -> httpx.Response:
        try:
            return await self._http.post(endpoint, json=payload, timeout=timeout)
        except httpx.TimeoutException as e:
            logger.error(f"{endpoint} timed out after {timeout}s")
            raise CalculationError(
                f"Calculation service timed out after {timeout:g}s."
            ) from e
        except httpx.ConnectError as e:
            logger.error(f"Cannot connect to calculation service at {self.base_url}", e)
            raise CalculationError("Cannot connect to calculation service.") from e
        except httpx.HTTPError as e:
            logger.error(f"{endpoint} transport error", e)
            raise CalculationError(f"Calculation service request failed: {e}") from e

    @staticmethod
    def _describe_status(endpoint: str, status: int) -> str:
        if status == 503:
            return "Calculation service is starting up. Please try again in a few seconds."
        if status == 404:
            return f"Endpoint {endpoint} not found on calculation service."
        if status >= 500:
            return f"Calculation service error (status {status})."
        return f"Calculation service rejected the request (status {status})."

    # ==========================================================================
    # Endpoints
    # ==========================================================================

    async def birth_chart(self, user, timeout: float | None = None, deadline: Deadline | None = None) -> dict:
        return await self.post("/calculate/chart", user.birth_payload(), timeout, deadline)

    async def dasha(self, user, timeout: float | None = None, deadline: Deadline | None = None) -> dict:
        payload = {**user.birth_payload(), "timezone": user.timezone}
        return await self.post("/calculate/dasha", payload, timeout, deadline)

    async def transits(
        self,
        user,
        current_date: str,
        years: float | None = None,
        include_moon: bool | None = None,
        timeout: float | None = None,
        deadline: Deadline | None = None
    ) -> dict:
        payload = {
            **user.birth_payload(),
            "current_date": current_date,
            "years": 1.0 if years is None else years,
            "include_moon": True if include_moon is None else include_moon,
        }
        return await self.post("/calculate/transits", payload, timeout, deadline)

    async def varga(
        self,
        user,
        varga_num: int,
        timeout: float | None = None,
        deadline: Deadline | None = None
    ) -> dict:
        payload = {**user.birth_payload(), "varga_num": varga_num}
        return await self.post("/calculate/varga", payload, timeout, deadline)

    async def varshaphala(
        self,
        user,
        age: int,
        timeout: float | None = None,
        deadline: Deadline | None = None
    ) -> dict:
        payload = {**user.birth_payload(), "age": age}
        return await self.post("/calculate/varshaphala", payload, timeout, deadline)
