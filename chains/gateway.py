"""
chains/gateway.py - Ledger gateway.

Abstracts "build an operation, simulate it, sign it, submit it, wait for
settlement, read current state" against a ledger REST node.

GATEWAY CONTRACT:
=================
  build_operation(sender, function_id, type_args, args) -> UnsignedTx
  simulate(tx, signer_public_key)                        -> OperationOutcome  (no state change)
  sign(tx, signer)                                       -> SignedTx
  submit(signed)                                         -> PendingHandle
  wait(handle)                                           -> OperationOutcome
  read_state(address)                                    -> ResourceSet
  view(function_id, type_args, args)                     -> list

Failure decoding (done ONCE, here):
  - transport/timeout/5xx/undecodable       -> InfraError (from the provider)
  - 4xx with vm_error_code                  -> TransactionRejectedError(vm_status)
  - other 4xx                               -> InfraError(INFRA_HTTP_STATUS)
  - finalized with success=false            -> OperationOutcome(success=False)
  - still pending after wait_timeout        -> RPCTimeoutError
=================
"""

import asyncio
import time
from typing import Any, Callable, Optional

from chains.providers import AptosRestProvider, RPCResponse
from core.constants import (
    DEFAULT_MAX_GAS_AMOUNT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_TX_TTL_SECONDS,
    DEFAULT_WAIT_TIMEOUT_SECONDS,
    ED25519_SIGNATURE_LENGTH,
    ErrorCode,
)
from core.exceptions import (
    DecodeError,
    InfraError,
    RPCTimeoutError,
    SerializationError,
    TransactionRejectedError,
)
from core.logging import get_logger
from core.models import (
    OperationOutcome,
    PendingHandle,
    ResourceSet,
    SignedTx,
    SigningCapability,
    UnsignedTx,
)
from core.validators import normalize_address

logger = get_logger(__name__)


def encode_argument(value: Any) -> Any:
    """
    Encode one entry-function argument as ledger JSON.

    u64/u128 go over the wire as decimal strings; vectors recurse.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value < 0:
            raise SerializationError(f"Negative integer argument: {value}")
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [encode_argument(v) for v in value]
    raise SerializationError(
        f"Unsupported argument type: {type(value).__name__}",
        details={"value": repr(value)},
    )


def _error_body(resp: RPCResponse) -> dict:
    return resp.result if isinstance(resp.result, dict) else {"message": str(resp.result)}


class LedgerGateway:
    """
    Async gateway to one ledger network.

    Stateless apart from configuration; safe to share between
    orchestrators of different senders.
    """

    def __init__(
        self,
        provider: AptosRestProvider,
        max_gas_amount: int = DEFAULT_MAX_GAS_AMOUNT,
        gas_unit_price: Optional[int] = None,
        tx_ttl_seconds: int = DEFAULT_TX_TTL_SECONDS,
        wait_timeout_seconds: float = DEFAULT_WAIT_TIMEOUT_SECONDS,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        explorer_url_template: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.provider = provider
        self.max_gas_amount = max_gas_amount
        self.gas_unit_price = gas_unit_price
        self.tx_ttl_seconds = tx_ttl_seconds
        self.wait_timeout_seconds = wait_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.explorer_url_template = explorer_url_template
        self._clock = clock

    async def close(self) -> None:
        await self.provider.close()

    # -------------------------------------------------------------------------
    # Response decoding
    # -------------------------------------------------------------------------

    def _check(self, resp: RPCResponse, action: str) -> Any:
        """Return the body of a 2xx response or raise the decoded error."""
        if resp.ok:
            return resp.result

        body = _error_body(resp)
        message = body.get("message") or f"HTTP {resp.status_code}"
        details = {
            "action": action,
            "status_code": resp.status_code,
            "error_code": body.get("error_code"),
            "endpoint": resp.endpoint_used,
        }

        if body.get("vm_error_code") is not None:
            details["vm_error_code"] = body["vm_error_code"]
            raise TransactionRejectedError(
                f"{action} rejected by ledger: {message}",
                vm_status=message,
                details=details,
            )

        raise InfraError(
            f"{action} failed with HTTP {resp.status_code}: {message}",
            code=ErrorCode.INFRA_HTTP_STATUS,
            details=details,
        )

    # -------------------------------------------------------------------------
    # Transaction lifecycle
    # -------------------------------------------------------------------------

    async def get_sequence_number(self, address: str) -> int:
        resp = await self.provider.get_account(normalize_address(address))
        account = self._check(resp, "get_account")
        try:
            return int(account["sequence_number"])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed account record: {account!r}") from e

    async def get_gas_unit_price(self) -> int:
        if self.gas_unit_price is not None:
            return self.gas_unit_price
        resp = await self.provider.estimate_gas_price()
        estimate = self._check(resp, "estimate_gas_price")
        try:
            return int(estimate["gas_estimate"])
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed gas estimate: {estimate!r}") from e

    async def build_operation(
        self,
        sender: str,
        function_id: str,
        type_args: list[str],
        args: list[Any],
    ) -> UnsignedTx:
        """Build an unsigned entry-function transaction for `sender`."""
        sender = normalize_address(sender)
        encoded_args = [encode_argument(a) for a in args]

        sequence_number = await self.get_sequence_number(sender)
        gas_unit_price = await self.get_gas_unit_price()

        tx = UnsignedTx(
            sender=sender,
            sequence_number=sequence_number,
            function_id=function_id,
            type_args=list(type_args),
            args=encoded_args,
            max_gas_amount=self.max_gas_amount,
            gas_unit_price=gas_unit_price,
            expiration_timestamp_secs=int(self._clock()) + self.tx_ttl_seconds,
        )
        logger.debug(
            f"Built {function_id}",
            extra={"context": {"sender": sender, "sequence_number": sequence_number}},
        )
        return tx

    async def simulate(self, tx: UnsignedTx, signer_public_key: bytes) -> OperationOutcome:
        """
        Dry-run a transaction against current state.

        The ledger refuses simulations that carry a valid signature, so an
        all-zero signature is sent with the real public key.
        """
        body = SignedTx(
            transaction=tx,
            public_key_hex="0x" + signer_public_key.hex(),
            signature_hex="0x" + "00" * ED25519_SIGNATURE_LENGTH,
        ).to_request()

        resp = await self.provider.simulate_transaction(body)
        result = self._check(resp, "simulate")
        if not isinstance(result, list) or not result:
            raise DecodeError(f"Unexpected simulation response: {result!r}")

        return OperationOutcome.from_transaction(result[0], tx.function_id, simulated=True)

    async def sign(self, tx: UnsignedTx, signer: SigningCapability) -> SignedTx:
        """Obtain the signing message from the node and sign it."""
        resp = await self.provider.encode_submission(tx.to_request())
        message_hex = self._check(resp, "encode_submission")
        if not isinstance(message_hex, str):
            raise DecodeError(f"Unexpected signing message: {message_hex!r}")

        try:
            message = bytes.fromhex(message_hex[2:] if message_hex.startswith("0x") else message_hex)
        except ValueError as e:
            raise DecodeError(f"Signing message is not hex: {message_hex[:20]}...") from e

        return SignedTx(
            transaction=tx,
            public_key_hex="0x" + signer.public_key().hex(),
            signature_hex="0x" + signer.sign(message).hex(),
        )

    async def submit(self, signed: SignedTx) -> PendingHandle:
        resp = await self.provider.submit_transaction(signed.to_request())
        pending = self._check(resp, "submit")
        try:
            tx_hash = pending["hash"]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Submission response without hash: {pending!r}") from e

        return PendingHandle(tx_hash=tx_hash, function_id=signed.transaction.function_id)

    async def wait(self, handle: PendingHandle) -> OperationOutcome:
        """
        Poll until the transaction is committed.

        A freshly submitted hash may 404 briefly before the node indexes it.
        """
        deadline = time.monotonic() + self.wait_timeout_seconds
        polls = 0

        while True:
            polls += 1
            resp = await self.provider.get_transaction_by_hash(handle.tx_hash)

            if resp.status_code != 404:
                txn = self._check(resp, "get_transaction")
                if not isinstance(txn, dict):
                    raise DecodeError(f"Unexpected transaction payload: {txn!r}")
                if txn.get("type") != "pending_transaction":
                    return OperationOutcome.from_transaction(txn, handle.function_id, simulated=False)

            if time.monotonic() >= deadline:
                raise RPCTimeoutError(
                    f"Transaction {handle.tx_hash} not finalized after {self.wait_timeout_seconds}s",
                    details={"tx_hash": handle.tx_hash, "polls": polls},
                )
            await asyncio.sleep(self.poll_interval_seconds)

    # -------------------------------------------------------------------------
    # State reads
    # -------------------------------------------------------------------------

    async def read_state(self, address: str) -> ResourceSet:
        """All resources held at `address`, keyed by type string."""
        address = normalize_address(address)
        resp = await self.provider.get_account_resources(address)
        items = self._check(resp, "read_state")
        if not isinstance(items, list):
            raise DecodeError(f"Unexpected resources payload: {items!r}")
        return ResourceSet.from_list(address, items)

    async def view(self, function_id: str, type_args: list[str], args: list[Any]) -> list:
        resp = await self.provider.view(
            function_id, list(type_args), [encode_argument(a) for a in args]
        )
        result = self._check(resp, "view")
        if not isinstance(result, list):
            raise DecodeError(f"Unexpected view result: {result!r}")
        return result

    async def get_modules(self, address: str) -> list:
        resp = await self.provider.get_account_modules(normalize_address(address))
        modules = self._check(resp, "get_modules")
        return modules if isinstance(modules, list) else []

    def explorer_link(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url_template:
            return None
        return self.explorer_url_template.format(tx_hash=tx_hash, network=self.provider.network)
