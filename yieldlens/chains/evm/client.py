"""EVM JSON-RPC client with fallback support."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ...config import ChainConfig
from ...models import CallResult, ContractCall
from .abi import decode_result, encode_call, normalize_address

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 50


class EvmClient:
    """EVM blockchain RPC client with automatic endpoint fallback.

    Batched reads go out as JSON-RPC batch requests; each item in a batch
    succeeds or fails on its own.
    """

    def __init__(self, config: ChainConfig, max_batch_size: int = MAX_BATCH_SIZE) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.chain_id = config.chain_id
        self.max_batch_size = max_batch_size
        self.current_rpc_index = 0

    async def _post(self, payload: Any) -> Any:
        """POST a JSON-RPC payload, rotating endpoints on transport failure."""
        if not self.endpoints:
            raise RuntimeError("No RPC endpoints configured")

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json()

                        if rpc_index != self.current_rpc_index:
                            logger.info("Switched to RPC endpoint: %s", rpc_url)
                            self.current_rpc_index = rpc_index

                        return result
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

        raise RuntimeError(f"All RPC endpoints failed. Last error: {last_error}")

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make a single RPC call. JSON-RPC errors raise RuntimeError."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        result = await self._post(payload)
        if not isinstance(result, dict):
            raise RuntimeError(f"Unexpected RPC response: {result!r}")
        if "error" in result:
            raise RuntimeError(f"RPC Error: {result['error']}")
        return result.get("result")

    async def rpc_batch(
        self, requests: list[tuple[str, list[Any]]]
    ) -> list[dict[str, Any]]:
        """Send requests as JSON-RPC batches, returning responses in request order.

        Missing responses come back as ``{"error": ...}`` entries.
        """
        responses: list[dict[str, Any]] = []
        for start in range(0, len(requests), self.max_batch_size):
            chunk = requests[start : start + self.max_batch_size]
            payload = [
                {"jsonrpc": "2.0", "id": i, "method": method, "params": params}
                for i, (method, params) in enumerate(chunk)
            ]
            result = await self._post(payload)
            if not isinstance(result, list):
                raise RuntimeError(f"Batch request rejected: {result!r}")

            by_id = {item.get("id"): item for item in result if isinstance(item, dict)}
            for i in range(len(chunk)):
                responses.append(by_id.get(i, {"error": "missing batch response"}))
        return responses

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        return await self.rpc_call("eth_call", [{"to": to, "data": data}, block])

    async def call(self, call: ContractCall) -> tuple[Any, ...]:
        """Execute one read-only contract call and decode its outputs."""
        raw = await self.eth_call(normalize_address(call.to), encode_call(call))
        return decode_result(call, raw)

    async def multicall(self, calls: list[ContractCall]) -> list[CallResult]:
        """Execute calls as one batch; each result succeeds or fails on its own."""
        if not calls:
            return []

        results: list[CallResult | None] = [None] * len(calls)
        requests: list[tuple[str, list[Any]]] = []
        request_index: list[int] = []

        for i, call in enumerate(calls):
            try:
                request = {"to": normalize_address(call.to), "data": encode_call(call)}
            except Exception as e:
                results[i] = CallResult(success=False, error=str(e))
                continue
            requests.append(("eth_call", [request, "latest"]))
            request_index.append(i)

        try:
            responses = await self.rpc_batch(requests) if requests else []
        except Exception as e:
            logger.error("Batch of %d calls failed: %s", len(requests), e)
            responses = [{"error": str(e)}] * len(requests)

        for i, response in zip(request_index, responses):
            call = calls[i]
            if "error" in response:
                results[i] = CallResult(success=False, error=str(response["error"]))
                continue
            try:
                results[i] = CallResult(
                    success=True, value=decode_result(call, response.get("result", ""))
                )
            except Exception as e:
                results[i] = CallResult(success=False, error=str(e))

        failed = sum(1 for r in results if r is not None and not r.success)
        if failed:
            logger.debug("%d of %d batched calls failed", failed, len(calls))

        return [r if r is not None else CallResult(success=False) for r in results]

    async def get_balance(self, address: str) -> int:
        """Native balance in wei."""
        result = await self.rpc_call(
            "eth_getBalance", [normalize_address(address), "latest"]
        )
        return int(result, 16)
