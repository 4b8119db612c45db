# PATH: execution/operations.py
"""
Operation builders for the xbtc token module.

Each builder returns an `Operation` (pure data); nothing here talks to
the ledger. Arguments are validated and addresses normalized up front so
that a bad script fails before anything is submitted.
"""

from typing import Iterable, Optional

from core.constants import (
    DEFAULT_MODULE_NAME,
    ErrorCode,
    FA_METADATA_TYPE,
    FA_TRANSFER_FUNCTION,
    ONE_XBTC,
    OperationKind,
)
from core.exceptions import ConfigError
from core.models import Operation
from core.validators import normalize_address, normalize_addresses, validate_amount


def format_amount(amount: int) -> str:
    """Base units -> "1.5 XBTC" style string."""
    whole, frac = divmod(amount, ONE_XBTC)
    frac_str = f"{frac:08d}".rstrip("0")
    return f"{whole}.{frac_str} XBTC" if frac_str else f"{whole} XBTC"


class TokenOperations:
    """Builds xbtc entry-function calls for one deployed contract."""

    def __init__(
        self,
        contract_address: str,
        module_name: str = DEFAULT_MODULE_NAME,
        metadata_address: Optional[str] = None,
    ):
        self.contract_address = normalize_address(contract_address)
        self.module_name = module_name
        self.metadata_address = normalize_address(metadata_address) if metadata_address else None

    def function_id(self, name: str) -> str:
        return f"{self.contract_address}::{self.module_name}::{name}"

    def _op(self, kind: OperationKind, args: list, description: str) -> Operation:
        return Operation(
            kind=kind,
            function_id=self.function_id(kind.value),
            type_args=[],
            args=args,
            description=description,
        )

    # Minter operations

    def mint(self, recipient: str, amount: int) -> Operation:
        recipient = normalize_address(recipient)
        validate_amount(amount)
        return self._op(
            OperationKind.MINT,
            [recipient, amount],
            f"Mint {format_amount(amount)} to {recipient}",
        )

    def burn(self, amount: int) -> Operation:
        """Burn from the Receiver's store."""
        validate_amount(amount)
        return self._op(OperationKind.BURN, [amount], f"Burn {format_amount(amount)}")

    def set_receiver(self, receiver: str) -> Operation:
        receiver = normalize_address(receiver)
        return self._op(OperationKind.SET_RECEIVER, [receiver], f"Set receiver to {receiver}")

    def transfer_minter_role(self, new_minter: str) -> Operation:
        new_minter = normalize_address(new_minter)
        return self._op(
            OperationKind.TRANSFER_MINTER_ROLE,
            [new_minter],
            f"Transfer minter role to {new_minter}",
        )

    def transfer_fungible_store(self, new_owner: str) -> Operation:
        new_owner = normalize_address(new_owner)
        return self._op(
            OperationKind.TRANSFER_FUNGIBLE_STORE,
            [new_owner],
            f"Transfer fungible store to {new_owner}",
        )

    # Denylister operations

    def set_pause(self, paused: bool) -> Operation:
        return self._op(OperationKind.SET_PAUSE, [bool(paused)], f"Set pause to {bool(paused)}")

    def add_to_deny_list(self, address: str) -> Operation:
        address = normalize_address(address)
        return self._op(OperationKind.ADD_TO_DENY_LIST, [address], f"Denylist {address}")

    def remove_from_deny_list(self, address: str) -> Operation:
        address = normalize_address(address)
        return self._op(OperationKind.REMOVE_FROM_DENY_LIST, [address], f"Un-denylist {address}")

    def batch_add_to_deny_list(self, addresses: Iterable[str]) -> Operation:
        addresses = normalize_addresses(addresses)
        return self._op(
            OperationKind.BATCH_ADD_TO_DENY_LIST,
            [addresses],
            f"Denylist {len(addresses)} addresses",
        )

    def batch_remove_from_deny_list(self, addresses: Iterable[str]) -> Operation:
        addresses = normalize_addresses(addresses)
        return self._op(
            OperationKind.BATCH_REMOVE_FROM_DENY_LIST,
            [addresses],
            f"Un-denylist {len(addresses)} addresses",
        )

    def transfer_denylister_role(self, new_denylister: str) -> Operation:
        new_denylister = normalize_address(new_denylister)
        return self._op(
            OperationKind.TRANSFER_DENYLISTER_ROLE,
            [new_denylister],
            f"Transfer denylister role to {new_denylister}",
        )

    # Holder operations

    def transfer(self, recipient: str, amount: int) -> Operation:
        """
        Fungible-asset transfer through the framework's primary store.

        The sender is whoever signs; requires the metadata object address.
        """
        if not self.metadata_address:
            raise ConfigError(
                "Token metadata address is not resolved; call TokenStateReader.token_address() first",
                code=ErrorCode.CONFIG_MISSING,
            )
        recipient = normalize_address(recipient)
        validate_amount(amount)
        return Operation(
            kind=OperationKind.TRANSFER,
            function_id=FA_TRANSFER_FUNCTION,
            type_args=[FA_METADATA_TYPE],
            args=[self.metadata_address, recipient, amount],
            description=f"Transfer {format_amount(amount)} to {recipient}",
        )
