"""
tests/unit/test_operations.py - xbtc Operation builders.
"""

import pytest

from core.constants import ErrorCode, FA_METADATA_TYPE, FA_TRANSFER_FUNCTION, OperationKind
from core.exceptions import ConfigError, ValidationError
from execution.operations import TokenOperations, format_amount

CONTRACT = "0x8e17e166bcd06535d7fbd016c3ca2ebf23cb515423f75fcf30e2516d9070918c"
LONG_ONE = "0x" + "0" * 63 + "1"
LONG_TWO = "0x" + "0" * 63 + "2"


@pytest.fixture
def ops():
    return TokenOperations(CONTRACT)


class TestFormatAmount:

    def test_whole(self):
        assert format_amount(100_000_000) == "1 XBTC"

    def test_fraction(self):
        assert format_amount(150_000_000) == "1.5 XBTC"
        assert format_amount(1) == "0.00000001 XBTC"


class TestBuilders:
    """Entry-function builders."""

    def test_mint(self, ops):
        op = ops.mint("0x1", 100_000_000)
        assert op.kind == OperationKind.MINT
        assert op.function_id == f"{CONTRACT}::xbtc::mint"
        assert op.args == [LONG_ONE, 100_000_000]
        assert op.type_args == []
        assert "1 XBTC" in op.description

    def test_burn(self, ops):
        op = ops.burn(50_000_000)
        assert op.function_name == "burn"
        assert op.args == [50_000_000]

    def test_set_pause(self, ops):
        assert ops.set_pause(True).args == [True]
        assert ops.set_pause(0).args == [False]

    def test_batch_denylist_is_single_vector_argument(self, ops):
        op = ops.batch_add_to_deny_list(["0x1", "0x2", "0x01"])
        assert op.kind == OperationKind.BATCH_ADD_TO_DENY_LIST
        assert op.args == [[LONG_ONE, LONG_TWO]]

    def test_role_transfers(self, ops):
        assert ops.transfer_minter_role("0x1").function_name == "transfer_minter_role"
        assert ops.transfer_denylister_role("0x2").args == [LONG_TWO]
        assert ops.set_receiver("0x1").kind == OperationKind.SET_RECEIVER
        assert ops.transfer_fungible_store("0x2").function_name == "transfer_fungible_store"

    def test_custom_module_name(self):
        ops = TokenOperations("0xc", module_name="xbtc_v2")
        assert ops.function_id("mint") == "0x" + "0" * 63 + "c::xbtc_v2::mint"

    def test_invalid_amount_rejected_before_submission(self, ops):
        with pytest.raises(ValidationError) as exc_info:
            ops.mint("0x1", 0)
        assert exc_info.value.code == ErrorCode.VALIDATION_INVALID_AMOUNT

    def test_invalid_address_rejected(self, ops):
        with pytest.raises(ValidationError):
            ops.add_to_deny_list("not-an-address")

    def test_to_dict(self, ops):
        d = ops.burn(1).to_dict()
        assert d["kind"] == "burn"
        assert d["args"] == [1]


class TestTransfer:
    """Framework fungible-asset transfer."""

    def test_requires_metadata_address(self, ops):
        with pytest.raises(ConfigError) as exc_info:
            ops.transfer("0x1", 10)
        assert exc_info.value.code == ErrorCode.CONFIG_MISSING

    def test_transfer_payload(self):
        ops = TokenOperations(CONTRACT, metadata_address="0xab")
        op = ops.transfer("0x1", 10_000_000)
        assert op.kind == OperationKind.TRANSFER
        assert op.function_id == FA_TRANSFER_FUNCTION
        assert op.type_args == [FA_METADATA_TYPE]
        assert op.args == ["0x" + "0" * 62 + "ab", LONG_ONE, 10_000_000]
