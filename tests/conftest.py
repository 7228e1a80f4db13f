from typing import Any

import base64

import pytest

from near_assembler import rpc_client
from near_assembler.codec import base58_encode
from near_assembler.config import Config
from near_assembler.primitives import KeyPair
from near_assembler.rpc_client import AccountNotFoundError, RPCError

SIGNER_SECRET = "ed25519:" + base58_encode(bytes(range(1, 33)))
BLOCK_HASH = b"\x11" * 32


class StubNearRPC:
    def __init__(self, accounts=("alice.testnet",), nonce: int = 41, status: Any = None) -> None:
        self.accounts = set(accounts)
        self.nonce = nonce
        self.status = status if status is not None else {"SuccessValue": ""}
        self.calls: list[tuple] = []
        self.broadcasts: list[str] = []
        self.contracts: dict[str, bytes] = {}

    def view_account(self, account_id: str, block_reference=None):
        self.calls.append(("view_account", account_id))
        if account_id not in self.accounts:
            raise AccountNotFoundError(account_id)
        return {"amount": "1000000000000000000000000", "code_hash": "11111111111111111111111111111111"}

    def view_access_key(self, account_id: str, public_key: str, block_reference=None):
        self.calls.append(("view_access_key", account_id, public_key))
        return {"nonce": self.nonce, "block_hash": base58_encode(BLOCK_HASH), "permission": "FullAccess"}

    def view_code(self, account_id: str, block_reference=None):
        self.calls.append(("view_code", account_id, block_reference))
        if account_id not in self.contracts:
            raise RPCError(-32000, "Server error", name="HANDLER_ERROR", cause="NO_CONTRACT_CODE")
        code = self.contracts[account_id]
        return {"code_base64": base64.b64encode(code).decode("ascii"), "hash": "11111111111111111111111111111111"}

    def broadcast_tx_commit(self, signed_transaction_base64: str):
        self.calls.append(("broadcast_tx_commit",))
        self.broadcasts.append(signed_transaction_base64)
        return {"status": self.status, "transaction": {"hash": "8bCzTxHash"}}


@pytest.fixture
def near_rpc(monkeypatch) -> StubNearRPC:
    stub = StubNearRPC()
    monkeypatch.setattr(rpc_client, "client_for_network", lambda network: stub)
    return stub


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(credentials_home=tmp_path / "credentials")


@pytest.fixture
def signer_key() -> KeyPair:
    return KeyPair.from_string(SIGNER_SECRET)


@pytest.fixture
def scripted_input(monkeypatch):
    """Feed ``builtins.input`` from a list; fail loudly when a test prompts unexpectedly."""

    answers: list[str] = []
    prompts: list[str] = []

    def fake_input(prompt: str = "") -> str:
        prompts.append(prompt)
        if not answers:
            raise AssertionError(f"unexpected prompt: {prompt}")
        return answers.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)

    def script(*values: str) -> list[str]:
        answers.extend(values)
        return prompts

    return script
