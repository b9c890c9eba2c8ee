"""Unit tests for data models."""
from __future__ import annotations

import pytest

from conftest import make_position
from yieldlens.models import ContractCall, PositionType, ReadResult


class TestPosition:
    def test_frozen(self) -> None:
        position = make_position()
        with pytest.raises(AttributeError):
            position.deposited_usd = 5.0  # type: ignore[misc]

    def test_negative_deposit_rejected(self) -> None:
        with pytest.raises(ValueError, match="deposited_usd"):
            make_position(deposited_usd=-1.0)

    def test_lp_requires_in_range(self) -> None:
        with pytest.raises(ValueError, match="in_range"):
            make_position(position_type=PositionType.LP, in_range=None)

    def test_non_lp_rejects_in_range(self) -> None:
        with pytest.raises(ValueError, match="only defined for lp"):
            make_position(position_type=PositionType.STAKING, in_range=True)

    def test_lp_out_of_range_is_valid(self) -> None:
        position = make_position(position_type=PositionType.LP, in_range=False)
        assert position.in_range is False

    def test_position_type_values(self) -> None:
        assert {t.value for t in PositionType} == {"lending", "staking", "lp", "bond"}


class TestContractCall:
    def test_signature(self) -> None:
        call = ContractCall(
            to="0x1",
            function="getPool",
            input_types=("address", "address", "uint24"),
        )
        assert call.signature == "getPool(address,address,uint24)"

    def test_signature_no_args(self) -> None:
        assert ContractCall(to="0x1", function="slot0").signature == "slot0()"


class TestReadResult:
    def test_success(self) -> None:
        result = ReadResult.success("Avon", [1, 2])
        assert result.ok
        assert result.value == [1, 2]

    def test_skipped_from_exception(self) -> None:
        result = ReadResult.skipped("Prism#7", RuntimeError("execution reverted"))
        assert not result.ok
        assert result.value is None
        assert result.error == "execution reverted"

    def test_skipped_empty_message_uses_type_name(self) -> None:
        result = ReadResult.skipped("Prism", TimeoutError())
        assert result.error == "TimeoutError"
