"""
chains/providers.py - Ledger REST provider management with failover.

Provides reliable REST access with:
- Multiple endpoint failover
- Request timeout handling
- Connection pooling
- Latency tracking

Failover contract:
- Transport errors, timeouts, HTTP 5xx and undecodable bodies -> try next endpoint
- HTTP 2xx and 4xx -> returned to the caller (4xx is a deterministic answer
  from the ledger, retrying elsewhere would not change it)
"""

import os
import time
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from core.logging import get_logger
from core.exceptions import DecodeError, InfraError, RPCError, RPCTimeoutError
from core.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS, ErrorCode

logger = get_logger(__name__)


@dataclass
class RPCStats:
    """Statistics for a REST endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


@dataclass
class RPCResponse:
    """Response from a REST call."""
    status_code: int
    result: Any
    latency_ms: int
    endpoint_used: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class AptosRestProvider:
    """
    Ledger REST provider with failover support.

    Tries multiple base URLs in order until one answers.
    Tracks statistics per endpoint for monitoring.
    """

    def __init__(
        self,
        network: str,
        base_urls: list[str],
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.network = network
        self.timeout_seconds = timeout_seconds
        self.base_urls = [url.rstrip("/") for url in base_urls]
        self._api_key = api_key if api_key is not None else os.getenv("APTOS_API_KEY", "")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        self.stats: dict[str, RPCStats] = {
            url: RPCStats(url=url) for url in self.base_urls
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AptosRestProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        params: Optional[dict] = None,
    ) -> RPCResponse:
        """
        Make a REST call with failover.

        Args:
            method: HTTP method
            path: Path relative to the base URL (e.g. "/accounts/0x1")
            json_body: Optional JSON body
            params: Optional query parameters

        Returns:
            RPCResponse for any 2xx/4xx answer

        Raises:
            InfraError: If every endpoint fails
        """
        if not self.base_urls:
            raise InfraError(
                "No REST endpoints configured",
                code=ErrorCode.INFRA_NO_ENDPOINTS,
                details={"network": self.network},
            )

        client = await self._get_client()
        last_error: Exception | None = None

        for url in self.base_urls:
            stats = self.stats[url]
            stats.total_requests += 1
            start_ms = int(time.time() * 1000)

            try:
                resp = await client.request(method, url + path, json=json_body, params=params)
                latency_ms = int(time.time() * 1000) - start_ms

                if resp.status_code >= 500:
                    stats.failed_requests += 1
                    stats.last_error = f"HTTP {resp.status_code}"
                    last_error = InfraError(
                        f"HTTP {resp.status_code} from {url}",
                        code=ErrorCode.INFRA_HTTP_STATUS,
                        details={"url": url, "path": path, "body": resp.text[:200]},
                    )
                    logger.debug(f"REST {resp.status_code} from {url}{path}")
                    continue

                try:
                    result = resp.json() if resp.content else None
                except ValueError as e:
                    stats.failed_requests += 1
                    stats.last_error = f"Undecodable body: {e}"
                    last_error = e
                    logger.debug(f"REST body from {url}{path} is not JSON: {e}")
                    continue

                stats.successful_requests += 1
                stats.total_latency_ms += latency_ms
                stats.last_success_ts = int(time.time() * 1000)

                return RPCResponse(
                    status_code=resp.status_code,
                    result=result,
                    latency_ms=latency_ms,
                    endpoint_used=url,
                )

            except httpx.TimeoutException as e:
                latency_ms = int(time.time() * 1000) - start_ms
                stats.failed_requests += 1
                stats.last_error = f"Timeout after {latency_ms}ms"
                last_error = e
                logger.debug(f"REST timeout for {url}{path}: {latency_ms}ms")
                continue

            except httpx.HTTPError as e:
                stats.failed_requests += 1
                stats.last_error = str(e)
                last_error = e
                logger.debug(f"REST failed for {url}{path}: {e}")
                continue

        details = {
            "network": self.network,
            "path": path,
            "endpoints_tried": len(self.base_urls),
            "last_error": str(last_error),
        }
        message = f"All REST endpoints failed for {self.network}: {method} {path}"
        if isinstance(last_error, httpx.TimeoutException):
            raise RPCTimeoutError(message, details=details)
        if isinstance(last_error, ValueError):
            raise DecodeError(message, details=details)
        raise RPCError(message, details=details)

    async def get(self, path: str, params: Optional[dict] = None) -> RPCResponse:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json_body: Any = None, params: Optional[dict] = None) -> RPCResponse:
        return await self.request("POST", path, json_body=json_body, params=params)

    # -------------------------------------------------------------------------
    # Ledger endpoints
    # -------------------------------------------------------------------------

    async def get_ledger_info(self) -> RPCResponse:
        """Ledger info (chain_id, ledger_version, ledger_timestamp)."""
        return await self.get("/")

    async def get_account(self, address: str) -> RPCResponse:
        """Account record with sequence_number and authentication_key."""
        return await self.get(f"/accounts/{address}")

    async def estimate_gas_price(self) -> RPCResponse:
        return await self.get("/estimate_gas_price")

    async def get_account_resources(self, address: str) -> RPCResponse:
        return await self.get(f"/accounts/{address}/resources")

    async def get_account_modules(self, address: str) -> RPCResponse:
        return await self.get(f"/accounts/{address}/modules")

    async def view(self, function_id: str, type_args: list, args: list) -> RPCResponse:
        return await self.post(
            "/view",
            {"function": function_id, "type_arguments": type_args, "arguments": args},
        )

    async def encode_submission(self, body: dict) -> RPCResponse:
        """Signing message (hex) for an unsigned transaction body."""
        return await self.post("/transactions/encode_submission", body)

    async def submit_transaction(self, body: dict) -> RPCResponse:
        return await self.post("/transactions", body)

    async def simulate_transaction(self, body: dict) -> RPCResponse:
        return await self.post("/transactions/simulate", body)

    async def get_transaction_by_hash(self, tx_hash: str) -> RPCResponse:
        return await self.get(f"/transactions/by_hash/{tx_hash}")

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        return {
            url: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for url, s in self.stats.items()
        }
