"""Helpers shared by the position readers."""
from __future__ import annotations

from ..models import ContractCall

# Readers can't see the deposit transaction, so entry time is estimated.
ASSUMED_POSITION_AGE_DAYS = 90
SECONDS_PER_DAY = 86_400

# Non-zero address used for reachability probes.
PROBE_ADDRESS = "0x0000000000000000000000000000000000000001"


def estimated_entry_timestamp(now: int) -> int:
    return now - ASSUMED_POSITION_AGE_DAYS * SECONDS_PER_DAY


def balance_of(contract: str, owner: str) -> ContractCall:
    return ContractCall(
        to=contract,
        function="balanceOf",
        input_types=("address",),
        args=(owner,),
        output_types=("uint256",),
    )
