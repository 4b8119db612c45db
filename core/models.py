# PATH: core/models.py
"""
Core data models for the XBTC harness.

LEDGER TRANSACTION FLOW
=======================
  Operation  --build-->  UnsignedTx  --sign-->  SignedTx
             --submit--> PendingHandle --wait--> OperationOutcome
  UnsignedTx --simulate------------------------> OperationOutcome

OUTCOME CONTRACT
================
  OperationOutcome.success=False is DATA, not an error: the ledger
  finalized (or simulated) the transaction and the Move code aborted.
  `vm_status` is decoded once, at the gateway boundary.
=======================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from core.constants import OperationKind, RoleName, VM_STATUS_EXECUTED
from core.validators import normalize_address


class SigningCapability(Protocol):
    """Opaque key holder; key material is never inspected."""

    @property
    def address(self) -> str: ...

    def public_key(self) -> bytes: ...

    def sign(self, message: bytes) -> bytes: ...


@dataclass(frozen=True)
class Roles:
    """
    Singleton role record of a deployed token instance.

    Minter: mint/burn/set_receiver. Denylister: pause/denylist.
    """
    minter: str
    denylister: str
    receiver: str

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        for name in ("minter", "denylister", "receiver"):
            object.__setattr__(self, name, normalize_address(getattr(self, name)))

    def holder(self, role: RoleName) -> str:
        return getattr(self, RoleName(role).value)

    def with_holder(self, role: RoleName, address: str) -> "Roles":
        values = self.to_dict()
        values[RoleName(role).value] = address
        return Roles(**values)

    @classmethod
    def from_resource(cls, data: Dict[str, Any]) -> "Roles":
        return cls(
            minter=data["minter"],
            denylister=data["denylister"],
            receiver=data["receiver"],
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "minter": self.minter,
            "denylister": self.denylister,
            "receiver": self.receiver,
        }


@dataclass
class Operation:
    """An intended state transition on the ledger."""
    kind: OperationKind
    function_id: str
    type_args: List[str] = field(default_factory=list)
    args: List[Any] = field(default_factory=list)
    description: str = ""

    @property
    def function_name(self) -> str:
        return self.function_id.rsplit("::", 1)[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "function_id": self.function_id,
            "type_args": list(self.type_args),
            "args": list(self.args),
            "description": self.description,
        }


@dataclass
class UnsignedTx:
    """A built but unsigned entry-function transaction."""
    sender: str
    sequence_number: int
    function_id: str
    type_args: List[str]
    args: List[Any]
    max_gas_amount: int
    gas_unit_price: int
    expiration_timestamp_secs: int

    def to_request(self) -> Dict[str, Any]:
        """Ledger REST JSON body (without signature)."""
        return {
            "sender": self.sender,
            "sequence_number": str(self.sequence_number),
            "max_gas_amount": str(self.max_gas_amount),
            "gas_unit_price": str(self.gas_unit_price),
            "expiration_timestamp_secs": str(self.expiration_timestamp_secs),
            "payload": {
                "type": "entry_function_payload",
                "function": self.function_id,
                "type_arguments": list(self.type_args),
                "arguments": list(self.args),
            },
        }


@dataclass
class SignedTx:
    """An UnsignedTx plus its Ed25519 authenticator."""
    transaction: UnsignedTx
    public_key_hex: str
    signature_hex: str

    def to_request(self) -> Dict[str, Any]:
        body = self.transaction.to_request()
        body["signature"] = {
            "type": "ed25519_signature",
            "public_key": self.public_key_hex,
            "signature": self.signature_hex,
        }
        return body


@dataclass
class PendingHandle:
    """Handle on a submitted transaction."""
    tx_hash: str
    function_id: str
    submitted_at: str = ""

    def __post_init__(self):
        if not self.submitted_at:
            self.submitted_at = datetime.now(timezone.utc).isoformat()


@dataclass
class OperationOutcome:
    """Result of simulating or committing an Operation."""
    success: bool
    function_id: str
    vm_status: Optional[str] = None
    gas_used: int = 0
    tx_hash: Optional[str] = None
    version: Optional[int] = None
    simulated: bool = False

    @property
    def failure_status(self) -> Optional[str]:
        """VM status string when the transaction aborted, else None."""
        if self.success:
            return None
        return self.vm_status or "UNKNOWN"

    @classmethod
    def from_transaction(cls, txn: Dict[str, Any], function_id: str, simulated: bool) -> "OperationOutcome":
        """Decode a ledger UserTransaction JSON object."""
        version = txn.get("version")
        return cls(
            success=bool(txn.get("success")),
            function_id=function_id,
            vm_status=txn.get("vm_status") or (VM_STATUS_EXECUTED if txn.get("success") else None),
            gas_used=int(txn.get("gas_used") or 0),
            tx_hash=txn.get("hash"),
            version=int(version) if version is not None else None,
            simulated=simulated,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "function_id": self.function_id,
            "vm_status": self.vm_status,
            "gas_used": self.gas_used,
            "tx_hash": self.tx_hash,
            "version": self.version,
            "simulated": self.simulated,
        }


@dataclass
class Resource:
    """A typed on-chain resource."""
    type: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ResourceSet:
    """Resources of one address keyed by type string."""
    address: str
    resources: Dict[str, Resource] = field(default_factory=dict)

    @classmethod
    def from_list(cls, address: str, items: List[Dict[str, Any]]) -> "ResourceSet":
        resources = {
            item["type"]: Resource(type=item["type"], data=item.get("data") or {})
            for item in items
        }
        return cls(address=address, resources=resources)

    def get(self, type_str: str) -> Optional[Resource]:
        return self.resources.get(type_str)

    def find(self, fragment: str) -> Optional[Resource]:
        """First resource whose type contains `fragment`."""
        for type_str, resource in self.resources.items():
            if fragment in type_str:
                return resource
        return None

    @property
    def types(self) -> List[str]:
        return list(self.resources)

    def __len__(self) -> int:
        return len(self.resources)
