# PATH: execution/token_state.py
"""
Token state reads.

Reads the on-chain state the compliance model is checked against:
- token metadata object address (view `<contract>::xbtc::xbtc_address`)
- Roles resource stored at the metadata object
- primary-store balances (view `0x1::primary_fungible_store::balance`)
- pause flag and denylist, when the module exposes them in a resource

All reads go through LedgerGateway; errors propagate unchanged.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from chains.gateway import LedgerGateway
from core.constants import ErrorCode, FA_BALANCE_FUNCTION, FA_METADATA_TYPE, OBJECT_CORE_TYPE
from core.exceptions import ConfigError, DecodeError
from core.logging import get_logger
from core.models import Roles
from core.validators import normalize_address, normalize_addresses
from execution.operations import TokenOperations

logger = get_logger(__name__)


@dataclass
class TokenSnapshot:
    """Point-in-time view of the token's access-control state."""
    roles: Roles
    balances: Dict[str, int] = field(default_factory=dict)
    paused: Optional[bool] = None
    deny_list: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roles": self.roles.to_dict(),
            "balances": dict(self.balances),
            "paused": self.paused,
            "deny_list": self.deny_list,
        }


class TokenStateReader:
    """Reads xbtc token state through the gateway."""

    def __init__(self, gateway: LedgerGateway, operations: TokenOperations):
        self.gateway = gateway
        self.operations = operations
        self._roles_fragment = f"::{operations.module_name}::Roles"

    async def token_address(self) -> str:
        """
        Resolve (and cache) the token metadata object address.

        Also makes transfer operations buildable.
        """
        if self.operations.metadata_address:
            return self.operations.metadata_address

        result = await self.gateway.view(self.operations.function_id("xbtc_address"), [], [])
        if not result or not isinstance(result[0], str):
            raise DecodeError(
                "xbtc_address view returned no address",
                details={"result": result},
            )

        address = normalize_address(result[0])
        self.operations.metadata_address = address
        logger.info(
            "Resolved token metadata address",
            extra={"context": {"token_address": address}},
        )
        return address

    async def roles(self) -> Roles:
        token = await self.token_address()
        resources = await self.gateway.read_state(token)
        resource = resources.find(self._roles_fragment)
        if resource is None:
            raise ConfigError(
                f"Roles resource not found at {token}",
                code=ErrorCode.CONFIG_INVALID,
                details={"available_types": resources.types},
            )
        return Roles.from_resource(resource.data)

    async def _module_field(self, name: str) -> Any:
        token = await self.token_address()
        resources = await self.gateway.read_state(token)
        prefix = f"::{self.operations.module_name}::"
        for type_str, resource in resources.resources.items():
            if prefix in type_str and name in resource.data:
                return resource.data[name]
        return None

    async def paused(self) -> Optional[bool]:
        """Pause flag if any module resource carries a `paused` field, else None."""
        value = await self._module_field("paused")
        return None if value is None else bool(value)

    async def deny_list(self) -> Optional[List[str]]:
        """
        Denylisted addresses if any module resource carries a `deny_list`
        field, else None.
        """
        value = await self._module_field("deny_list")
        if value is None:
            return None
        if not isinstance(value, list):
            raise DecodeError(
                "Malformed deny_list field",
                details={"value": value},
            )
        return normalize_addresses(value)

    async def balance(self, address: str) -> int:
        token = await self.token_address()
        result = await self.gateway.view(
            FA_BALANCE_FUNCTION,
            [FA_METADATA_TYPE],
            [normalize_address(address), token],
        )
        if not result:
            raise DecodeError(
                f"Balance view returned nothing for {address}",
                details={"address": address},
            )
        try:
            return int(result[0])
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Malformed balance: {result[0]!r}") from e

    async def balances(self, addresses: Iterable[str]) -> Dict[str, int]:
        # Sequential on purpose: one request in flight at a time
        balances = {}
        for address in normalize_addresses(addresses):
            balances[address] = await self.balance(address)
        return balances

    async def snapshot(self, addresses: Iterable[str] = ()) -> TokenSnapshot:
        return TokenSnapshot(
            roles=await self.roles(),
            balances=await self.balances(addresses),
            paused=await self.paused(),
            deny_list=await self.deny_list(),
        )

    async def describe_access(self, address: str) -> Dict[str, Any]:
        """Which roles `address` holds."""
        address = normalize_address(address)
        roles = await self.roles()
        return {
            "address": address,
            "roles": roles.to_dict(),
            "is_minter": roles.minter == address,
            "is_denylister": roles.denylister == address,
            "is_receiver": roles.receiver == address,
        }

    async def contract_info(self) -> Dict[str, Any]:
        """
        Modules published at the contract address plus resources held by the
        contract object and the token metadata object.
        """
        contract = self.operations.contract_address
        modules: List[Dict[str, Any]] = []
        for module in await self.gateway.get_modules(contract):
            abi = module.get("abi") or {}
            modules.append({
                "name": abi.get("name"),
                "structs": [s.get("name") for s in abi.get("structs", [])],
                "exposed_functions": [
                    {
                        "name": f.get("name"),
                        "visibility": f.get("visibility"),
                        "is_entry": f.get("is_entry", False),
                        "is_view": f.get("is_view", False),
                    }
                    for f in abi.get("exposed_functions", [])
                ],
            })

        contract_resources = await self.gateway.read_state(contract)
        object_core = contract_resources.get(OBJECT_CORE_TYPE)

        token = await self.token_address()
        token_resources = await self.gateway.read_state(token)

        return {
            "contract_address": contract,
            "owner": object_core.data.get("owner") if object_core else None,
            "modules": modules,
            "contract_resources": contract_resources.types,
            "token_address": token,
            "token_resources": {
                type_str: resource.data for type_str, resource in token_resources.resources.items()
            },
        }
