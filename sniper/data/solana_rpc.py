"""Solana JSON-RPC client for balance and connectivity checks."""

import time
from typing import Any

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ..core.interfaces import RpcClient

logger = structlog.get_logger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


def _is_retryable_error(exception) -> bool:
    """Check if an exception is retryable."""
    if isinstance(exception, httpx.TimeoutException):
        return True
    if isinstance(exception, httpx.ConnectError):
        return True
    if isinstance(exception, httpx.NetworkError):
        return True
    if isinstance(exception, SolanaRpcError):
        retryable_codes = {
            -32603,  # Internal error
            -32005,  # Node is unhealthy
            -32004,  # Slot was skipped
            429,  # Too many requests
        }
        return exception.code in retryable_codes
    return False


class SolanaRpcError(Exception):
    """Exception for Solana RPC errors."""

    def __init__(self, code: int, message: str, data: dict | None = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC Error {code}: {message}")


class SolanaRpcClient(RpcClient):
    """JSON-RPC client for the Solana node the bot trades through."""

    def __init__(
        self,
        rpc_url: str,
        wallet_address: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize SolanaRpcClient.

        Args:
            rpc_url: Solana RPC endpoint URL
            wallet_address: Wallet public key used for balance queries
            client: Optional httpx client (will create one if not provided)
            timeout: Request timeout in seconds
        """
        self.rpc_url = rpc_url
        self.wallet_address = wallet_address
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.timeout = timeout
        self._request_id = 0
        logger.info("SolanaRpcClient initialized", rpc_url=rpc_url, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    def _get_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception(_is_retryable_error),
        reraise=True,
    )
    async def _make_rpc_request(self, method: str, params: list[Any]) -> Any:
        """Make a JSON-RPC request with retries.

        Args:
            method: RPC method name
            params: Method parameters

        Returns:
            RPC response result

        Raises:
            SolanaRpcError: For RPC-specific errors
            httpx.HTTPError: For HTTP errors
        """
        request_id = self._get_request_id()
        payload = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params,
        }

        start_time = time.time()
        try:
            response = await self.client.post(
                self.rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()

            logger.debug(
                "RPC request completed",
                method=method,
                request_id=request_id,
                duration=time.time() - start_time,
                status_code=response.status_code,
            )

            data = response.json()

            if "error" in data:
                error = data["error"]
                raise SolanaRpcError(
                    code=error.get("code", -1),
                    message=error.get("message", "Unknown RPC error"),
                    data=error.get("data"),
                )

            return data.get("result")

        except httpx.HTTPError as e:
            logger.error(
                "RPC request failed",
                method=method,
                request_id=request_id,
                duration=time.time() - start_time,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

    async def get_balance(self, address: str | None = None) -> float:
        """Get the SOL balance of a wallet.

        Args:
            address: Wallet public key, defaults to the configured wallet

        Returns:
            Balance in SOL

        Raises:
            ValueError: If no address is given and no wallet is configured
        """
        address = address or self.wallet_address
        if not address:
            raise ValueError("No wallet address configured for balance queries")

        result = await self._make_rpc_request(
            "getBalance", [address, {"commitment": "confirmed"}]
        )
        return result["value"] / LAMPORTS_PER_SOL

    async def health_check(self) -> bool:
        """Check that the RPC node is reachable and reports healthy."""
        try:
            result = await self._make_rpc_request("getHealth", [])
        except Exception as e:
            logger.warning(
                "RPC health check failed",
                rpc_url=self.rpc_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        return result == "ok"
