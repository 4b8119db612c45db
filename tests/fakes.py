# PATH: tests/fakes.py
"""
In-memory ledger node for tests.

FakeXbtcNode answers the REST routes the harness uses and executes the
xbtc entry functions with their own (independent) rules, so scenario
tests check the compliance model against something it did not produce.

Wire it in through httpx.MockTransport:

    node = FakeXbtcNode(contract, admin)
    provider = AptosRestProvider("fake", ["http://fake/v1"], transport=node.transport())
"""

import copy
import hashlib
import json
import re
from typing import Any, Dict, List, Optional, Set

import httpx

from core.constants import FA_BALANCE_FUNCTION, FA_TRANSFER_FUNCTION, OBJECT_CORE_TYPE
from core.validators import normalize_address

BASE_URL = "http://fake/v1"

# Abort strings in the shape the node reports them
E_UNAUTHORIZED = "EUNAUTHORIZED"
E_PAUSED = "EPAUSED"
E_DENYLISTED = "EDENYLISTED"
E_INSUFFICIENT = "EINSUFFICIENT_BALANCE"
E_UNKNOWN_FUNCTION = "FUNCTION_RESOLUTION_FAILURE"


class _Abort(Exception):
    def __init__(self, status: str):
        super().__init__(status)
        self.status = status


class XbtcLedgerState:
    """Contract storage: roles, pause flag, denylist, primary-store balances."""

    def __init__(self, minter: str, denylister: str, receiver: str):
        self.minter = normalize_address(minter)
        self.denylister = normalize_address(denylister)
        self.receiver = normalize_address(receiver)
        self.paused = False
        self.denylist: Set[str] = set()
        self.balances: Dict[str, int] = {}
        self.store_owner = self.receiver

    def balance(self, address: str) -> int:
        return self.balances.get(normalize_address(address), 0)


class FakeXbtcNode:
    """Fake REST node hosting one xbtc deployment."""

    def __init__(
        self,
        contract: str,
        admin: str,
        module: str = "xbtc",
        token_address: str = "0x" + "ab" * 32,
        object_owner: Optional[str] = None,
    ):
        self.contract = normalize_address(contract)
        self.module = module
        self.token_address = normalize_address(token_address)
        self.object_owner = normalize_address(object_owner or admin)
        self.state = XbtcLedgerState(admin, admin, admin)

        self.sequence_numbers: Dict[str, int] = {}
        self.transactions: Dict[str, Dict[str, Any]] = {}
        self.submitted: List[Dict[str, Any]] = []
        self.simulated: List[Dict[str, Any]] = []
        self.version = 1000

        # Failure injection
        self.pending_polls = 0
        self.fail_paths: Set[str] = set()
        self.reject_submissions_with: Optional[str] = None

    # -------------------------------------------------------------------------
    # Contract execution
    # -------------------------------------------------------------------------

    def _abort(self, code: str) -> _Abort:
        return _Abort(f"Move abort in {self.contract}::{self.module}: {code}(0x50001)")

    def _require(self, condition: bool, code: str) -> None:
        if not condition:
            raise self._abort(code)

    def _fid(self, name: str) -> str:
        return f"{self.contract}::{self.module}::{name}"

    def execute(self, state: XbtcLedgerState, sender: str, function: str, args: List[Any]) -> None:
        """Run one entry function against `state`; raises _Abort on failure."""
        sender = normalize_address(sender)

        if function == self._fid("mint"):
            recipient, amount = normalize_address(args[0]), int(args[1])
            self._require(sender == state.minter, E_UNAUTHORIZED)
            self._require(not state.paused, E_PAUSED)
            state.balances[recipient] = state.balance(recipient) + amount

        elif function == self._fid("burn"):
            amount = int(args[0])
            self._require(sender == state.minter, E_UNAUTHORIZED)
            self._require(not state.paused, E_PAUSED)
            self._require(state.balance(state.receiver) >= amount, E_INSUFFICIENT)
            state.balances[state.receiver] = state.balance(state.receiver) - amount

        elif function == FA_TRANSFER_FUNCTION:
            recipient, amount = normalize_address(args[1]), int(args[2])
            self._require(not state.paused, E_PAUSED)
            self._require(sender not in state.denylist, E_DENYLISTED)
            self._require(recipient not in state.denylist, E_DENYLISTED)
            self._require(state.balance(sender) >= amount, E_INSUFFICIENT)
            state.balances[sender] = state.balance(sender) - amount
            state.balances[recipient] = state.balance(recipient) + amount

        elif function == self._fid("set_pause"):
            self._require(sender == state.denylister, E_UNAUTHORIZED)
            state.paused = bool(args[0])

        elif function in (self._fid("add_to_deny_list"), self._fid("batch_add_to_deny_list")):
            self._require(sender == state.denylister, E_UNAUTHORIZED)
            targets = args[0] if isinstance(args[0], list) else [args[0]]
            state.denylist.update(normalize_address(a) for a in targets)

        elif function in (self._fid("remove_from_deny_list"), self._fid("batch_remove_from_deny_list")):
            self._require(sender == state.denylister, E_UNAUTHORIZED)
            targets = args[0] if isinstance(args[0], list) else [args[0]]
            state.denylist.difference_update(normalize_address(a) for a in targets)

        elif function == self._fid("set_receiver"):
            self._require(sender == state.minter, E_UNAUTHORIZED)
            state.receiver = normalize_address(args[0])

        elif function == self._fid("transfer_minter_role"):
            self._require(sender == state.minter, E_UNAUTHORIZED)
            state.minter = normalize_address(args[0])

        elif function == self._fid("transfer_denylister_role"):
            self._require(sender == state.denylister, E_UNAUTHORIZED)
            state.denylister = normalize_address(args[0])

        elif function == self._fid("transfer_fungible_store"):
            self._require(sender == state.minter, E_UNAUTHORIZED)
            state.store_owner = normalize_address(args[0])

        else:
            raise _Abort(E_UNKNOWN_FUNCTION)

    def _run(self, body: Dict[str, Any], simulate: bool) -> Dict[str, Any]:
        sender = normalize_address(body["sender"])
        payload = body["payload"]
        scratch = copy.deepcopy(self.state)

        try:
            self.execute(scratch, sender, payload["function"], payload["arguments"])
            success, vm_status = True, "Executed successfully"
        except _Abort as e:
            success, vm_status = False, e.status

        if success and not simulate:
            self.state = scratch

        digest = hashlib.sha3_256(json.dumps(body, sort_keys=True).encode()).hexdigest()
        self.version += 1
        return {
            "type": "user_transaction",
            "hash": "0x" + digest,
            "version": str(self.version),
            "success": success,
            "vm_status": vm_status,
            "gas_used": "12",
            "sender": sender,
            "payload": payload,
        }

    # -------------------------------------------------------------------------
    # REST routes
    # -------------------------------------------------------------------------

    def resources(self, address: str) -> List[Dict[str, Any]]:
        address = normalize_address(address)
        if address == self.token_address:
            return [
                {
                    "type": f"{self.contract}::{self.module}::Roles",
                    "data": {
                        "minter": self.state.minter,
                        "denylister": self.state.denylister,
                        "receiver": self.state.receiver,
                    },
                },
                {
                    "type": f"{self.contract}::{self.module}::Management",
                    "data": {"paused": self.state.paused, "deny_list": sorted(self.state.denylist)},
                },
                {"type": "0x1::fungible_asset::Metadata", "data": {"name": "XBTC", "decimals": 8}},
            ]
        if address == self.contract:
            return [{"type": OBJECT_CORE_TYPE, "data": {"owner": self.object_owner}}]
        return [{"type": "0x1::account::Account", "data": {"sequence_number": "0"}}]

    def modules(self) -> List[Dict[str, Any]]:
        names = [
            "mint", "burn", "set_pause", "add_to_deny_list", "remove_from_deny_list",
            "batch_add_to_deny_list", "batch_remove_from_deny_list", "set_receiver",
            "transfer_minter_role", "transfer_denylister_role", "transfer_fungible_store",
        ]
        functions = [
            {"name": n, "visibility": "public", "is_entry": True, "is_view": False} for n in names
        ]
        functions.append({"name": "xbtc_address", "visibility": "public", "is_entry": False, "is_view": True})
        return [{
            "bytecode": "0x00",
            "abi": {
                "address": self.contract,
                "name": self.module,
                "structs": [{"name": "Roles"}, {"name": "Management"}],
                "exposed_functions": functions,
            },
        }]

    def _view(self, body: Dict[str, Any]) -> httpx.Response:
        function = body["function"]
        if function == self._fid("xbtc_address"):
            return httpx.Response(200, json=[self.token_address])
        if function == FA_BALANCE_FUNCTION:
            return httpx.Response(200, json=[str(self.state.balance(body["arguments"][0]))])
        return httpx.Response(
            400,
            json={"message": f"{E_UNKNOWN_FUNCTION}: {function}", "error_code": "invalid_input", "vm_error_code": 4008},
        )

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        if path in self.fail_paths:
            return httpx.Response(503, text="unavailable")
        body = json.loads(request.content) if request.content else None

        if request.method == "GET":
            if path == "/estimate_gas_price":
                return httpx.Response(200, json={"gas_estimate": 100})
            match = re.fullmatch(r"/accounts/(0x[0-9a-f]+)/resources", path)
            if match:
                return httpx.Response(200, json=self.resources(match.group(1)))
            match = re.fullmatch(r"/accounts/(0x[0-9a-f]+)/modules", path)
            if match:
                return httpx.Response(200, json=self.modules() if normalize_address(match.group(1)) == self.contract else [])
            match = re.fullmatch(r"/accounts/(0x[0-9a-f]+)", path)
            if match:
                address = normalize_address(match.group(1))
                return httpx.Response(
                    200,
                    json={"sequence_number": str(self.sequence_numbers.get(address, 0)), "authentication_key": address},
                )
            match = re.fullmatch(r"/transactions/by_hash/(0x[0-9a-f]+)", path)
            if match:
                if self.pending_polls > 0:
                    self.pending_polls -= 1
                    return httpx.Response(200, json={"type": "pending_transaction", "hash": match.group(1)})
                txn = self.transactions.get(match.group(1))
                if txn is None:
                    return httpx.Response(404, json={"message": "Transaction not found", "error_code": "transaction_not_found"})
                return httpx.Response(200, json=txn)

        if request.method == "POST":
            if path == "/view":
                return self._view(body)
            if path == "/transactions/encode_submission":
                digest = hashlib.sha3_256(json.dumps(body, sort_keys=True).encode()).hexdigest()
                return httpx.Response(200, json="0x" + digest)
            if path == "/transactions/simulate":
                txn = self._run(body, simulate=True)
                self.simulated.append(txn)
                return httpx.Response(200, json=[txn])
            if path == "/transactions":
                if self.reject_submissions_with:
                    return httpx.Response(
                        400,
                        json={
                            "message": self.reject_submissions_with,
                            "error_code": "vm_error",
                            "vm_error_code": 1,
                        },
                    )
                sender = normalize_address(body["sender"])
                self.sequence_numbers[sender] = self.sequence_numbers.get(sender, 0) + 1
                txn = self._run(body, simulate=False)
                self.transactions[txn["hash"]] = txn
                self.submitted.append(txn)
                return httpx.Response(202, json={"hash": txn["hash"], "type": "pending_transaction"})

        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)
