"""Chain client protocol: on-chain read access abstraction."""
from typing import Any, Protocol

from ..models import CallResult, ContractCall


class ChainClient(Protocol):
    """Abstract interface for read-only blockchain RPC interactions."""

    async def call(self, call: ContractCall) -> tuple[Any, ...]: ...

    async def multicall(self, calls: list[ContractCall]) -> list[CallResult]: ...

    async def get_balance(self, address: str) -> int: ...
