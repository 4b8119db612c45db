"""
tests/unit/test_gateway.py - LedgerGateway against httpx.MockTransport.
"""

import json

import httpx
import pytest

from chains.gateway import LedgerGateway, encode_argument
from chains.providers import AptosRestProvider
from chains.signer import Ed25519Signer
from core.constants import ErrorCode
from core.exceptions import DecodeError, InfraError, RPCTimeoutError, SerializationError, TransactionRejectedError
from core.models import PendingHandle, UnsignedTx
from tests.fakes import BASE_URL

SENDER = "0x" + "aa" * 32
FUNCTION_ID = "0x" + "0c" * 32 + "::xbtc::mint"


def make_gateway(handler, **kwargs) -> LedgerGateway:
    provider = AptosRestProvider("testnet", [BASE_URL], transport=httpx.MockTransport(handler))
    kwargs.setdefault("poll_interval_seconds", 0)
    return LedgerGateway(provider, clock=lambda: 1_700_000_000, **kwargs)


def route(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/v1")


class TestEncodeArgument:
    """Entry-function argument encoding."""

    def test_integers_become_strings(self):
        assert encode_argument(100_000_000) == "100000000"

    def test_bool_stays_bool(self):
        assert encode_argument(True) is True

    def test_vectors_recurse(self):
        assert encode_argument(["0x1", 5]) == ["0x1", "5"]

    def test_bytes_become_hex(self):
        assert encode_argument(b"\x01\x02") == "0x0102"

    def test_negative_rejected(self):
        with pytest.raises(SerializationError) as exc_info:
            encode_argument(-1)
        assert exc_info.value.code == ErrorCode.INFRA_SERIALIZATION_ERROR

    def test_unsupported_type_rejected(self):
        with pytest.raises(SerializationError):
            encode_argument(1.5)


class TestBuild:
    """build_operation."""

    @pytest.mark.asyncio
    async def test_build_uses_sequence_and_gas_estimate(self):
        def handler(request):
            if route(request) == f"/accounts/{SENDER}":
                return httpx.Response(200, json={"sequence_number": "42"})
            if route(request) == "/estimate_gas_price":
                return httpx.Response(200, json={"gas_estimate": 150})
            return httpx.Response(404, json={"message": "no route"})

        gateway = make_gateway(handler, tx_ttl_seconds=30)
        tx = await gateway.build_operation(SENDER, FUNCTION_ID, [], ["0x1", 100])

        assert tx.sequence_number == 42
        assert tx.gas_unit_price == 150
        assert tx.args == ["0x1", "100"]
        assert tx.expiration_timestamp_secs == 1_700_000_030
        body = tx.to_request()
        assert body["payload"]["function"] == FUNCTION_ID
        assert body["sequence_number"] == "42"

    @pytest.mark.asyncio
    async def test_configured_gas_price_skips_estimate(self):
        seen = []

        def handler(request):
            seen.append(route(request))
            return httpx.Response(200, json={"sequence_number": "0"})

        gateway = make_gateway(handler, gas_unit_price=100)
        tx = await gateway.build_operation(SENDER, FUNCTION_ID, [], [])
        assert tx.gas_unit_price == 100
        assert "/estimate_gas_price" not in seen

    @pytest.mark.asyncio
    async def test_unknown_account_is_http_status_error(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Account not found", "error_code": "account_not_found"})

        gateway = make_gateway(handler, gas_unit_price=100)
        with pytest.raises(InfraError) as exc_info:
            await gateway.build_operation(SENDER, FUNCTION_ID, [], [])
        assert exc_info.value.code == ErrorCode.INFRA_HTTP_STATUS
        assert exc_info.value.details["error_code"] == "account_not_found"


class TestSimulateAndSubmit:
    """simulate / sign / submit / wait."""

    @pytest.fixture
    def unsigned(self):
        return UnsignedTx(SENDER, 1, FUNCTION_ID, [], ["0x1", "100"], 200_000, 100, 1_700_000_060)

    @pytest.mark.asyncio
    async def test_simulate_sends_zero_signature(self, unsigned):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=[{"success": False, "vm_status": "Move abort: EPAUSED", "gas_used": "7"}])

        gateway = make_gateway(handler)
        outcome = await gateway.simulate(unsigned, b"\x01" * 32)

        signature = captured["body"]["signature"]
        assert signature["type"] == "ed25519_signature"
        assert signature["signature"] == "0x" + "00" * 64
        assert signature["public_key"] == "0x" + "01" * 32
        assert outcome.success is False
        assert outcome.simulated is True
        assert outcome.gas_used == 7
        assert outcome.vm_status == "Move abort: EPAUSED"

    @pytest.mark.asyncio
    async def test_admission_rejection_carries_vm_status(self, unsigned):
        def handler(request):
            return httpx.Response(
                400,
                json={"message": "SEQUENCE_NUMBER_TOO_OLD", "error_code": "vm_error", "vm_error_code": 3},
            )

        gateway = make_gateway(handler)
        with pytest.raises(TransactionRejectedError) as exc_info:
            await gateway.simulate(unsigned, b"\x01" * 32)
        assert exc_info.value.vm_status == "SEQUENCE_NUMBER_TOO_OLD"
        assert exc_info.value.details["vm_error_code"] == 3

    @pytest.mark.asyncio
    async def test_sign_uses_node_signing_message(self, unsigned):
        signer = Ed25519Signer.from_hex("0x" + "44" * 32)

        def handler(request):
            assert route(request) == "/transactions/encode_submission"
            return httpx.Response(200, json="0xb5e97db07fa0bd0e5598aa3643a9bc6f6693bddc1a9fec9e674a461eaa00b193")

        gateway = make_gateway(handler)
        signed = await gateway.sign(unsigned, signer)

        message = bytes.fromhex("b5e97db07fa0bd0e5598aa3643a9bc6f6693bddc1a9fec9e674a461eaa00b193")
        assert signed.signature_hex == "0x" + signer.sign(message).hex()
        assert signed.public_key_hex == signer.public_key_hex()

    @pytest.mark.asyncio
    async def test_wait_polls_until_committed(self):
        responses = [
            httpx.Response(404, json={"message": "Transaction not found"}),
            httpx.Response(200, json={"type": "pending_transaction", "hash": "0xabc"}),
            httpx.Response(200, json={
                "type": "user_transaction", "hash": "0xabc", "success": True,
                "vm_status": "Executed successfully", "gas_used": "11", "version": "99",
            }),
        ]

        def handler(request):
            return responses.pop(0)

        gateway = make_gateway(handler)
        outcome = await gateway.wait(PendingHandle("0xabc", FUNCTION_ID))

        assert outcome.success is True
        assert outcome.version == 99
        assert outcome.tx_hash == "0xabc"
        assert responses == []

    @pytest.mark.asyncio
    async def test_wait_times_out(self):
        def handler(request):
            return httpx.Response(404, json={"message": "Transaction not found"})

        gateway = make_gateway(handler, wait_timeout_seconds=0)
        with pytest.raises(RPCTimeoutError) as exc_info:
            await gateway.wait(PendingHandle("0xabc", FUNCTION_ID))
        assert exc_info.value.details["tx_hash"] == "0xabc"


class TestReads:
    """read_state / view / explorer_link."""

    @pytest.mark.asyncio
    async def test_read_state_keys_by_type(self):
        def handler(request):
            return httpx.Response(200, json=[
                {"type": "0x1::object::ObjectCore", "data": {"owner": "0x1"}},
                {"type": "0xc::xbtc::Roles", "data": {"minter": "0x2"}},
            ])

        gateway = make_gateway(handler)
        resources = await gateway.read_state("0xc")
        assert len(resources) == 2
        assert resources.find("::xbtc::Roles").data["minter"] == "0x2"
        assert resources.address == "0x" + "0" * 63 + "c"

    @pytest.mark.asyncio
    async def test_view_encodes_arguments(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=["5"])

        gateway = make_gateway(handler)
        result = await gateway.view("0x1::m::f", [], [7, True])
        assert result == ["5"]
        assert captured["body"]["arguments"] == ["7", True]

    @pytest.mark.asyncio
    async def test_view_non_list_is_decode_error(self):
        gateway = make_gateway(lambda request: httpx.Response(200, json={"oops": 1}))
        with pytest.raises(DecodeError):
            await gateway.view("0x1::m::f", [], [])

    def test_explorer_link(self):
        gateway = make_gateway(
            lambda request: httpx.Response(200),
            explorer_url_template="https://explorer.aptoslabs.com/txn/{tx_hash}?network={network}",
        )
        assert gateway.explorer_link("0xabc") == "https://explorer.aptoslabs.com/txn/0xabc?network=testnet"

    def test_explorer_link_unconfigured(self):
        assert make_gateway(lambda request: httpx.Response(200)).explorer_link("0xabc") is None
