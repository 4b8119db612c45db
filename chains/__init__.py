"""
chains/ - Ledger interaction layer.

Modules:
- providers: REST provider management with failover
- gateway: build / simulate / sign / submit / wait / read
- signer: Ed25519 signing capability
"""

from chains.providers import (
    AptosRestProvider,
    RPCResponse,
    RPCStats,
)
from chains.gateway import (
    LedgerGateway,
    encode_argument,
)
from chains.signer import (
    Ed25519Signer,
    derive_address,
)

__all__ = [
    # Providers
    "AptosRestProvider",
    "RPCResponse",
    "RPCStats",
    # Gateway
    "LedgerGateway",
    "encode_argument",
    # Signer
    "Ed25519Signer",
    "derive_address",
]
