import pytest

from near_assembler.actions import (
    AddKeyAction,
    DeleteAccountAction,
    DeleteKeyAction,
    FullAccessPermission,
    FunctionCallPermission,
)
from near_assembler.callbacks import CallbackRole, PrintTransactionSummary
from near_assembler.codec import base58_encode
from near_assembler.commands import COMMANDS, assemble, build_pipeline
from near_assembler.errors import InvalidInputError
from near_assembler.fields import FieldResolver
from near_assembler.primitives import NearToken, PublicKey

PUBLIC_KEY = "ed25519:" + base58_encode(bytes([5]) * 32)
SUBMISSION = {"network": "testnet", "sign_with": "keychain", "submit": "display"}


def _assemble(config, command: str, **arguments):
    return assemble(
        config, FieldResolver(interactive=False), {"command": command, **SUBMISSION, **arguments}
    )


def test_every_command_ends_with_the_submission_stages():
    for key, command in COMMANDS.items():
        names = [stage.name for stage in build_pipeline(key)]
        if command.view_only:
            assert names[-2:] == ["network-selection", "block-reference"]
        else:
            assert names[-3:] == ["network-selection", "signing", "sending"]


def test_add_full_access_key(near_rpc, config):
    context = _assemble(
        config, "account add-key", owner_account_id="alice.testnet", public_key=PUBLIC_KEY
    )

    (action,) = context.actions.actions()
    assert action == AddKeyAction(PublicKey.parse(PUBLIC_KEY), action.access_key)
    assert action.access_key.permission == FullAccessPermission()
    assert isinstance(context.callbacks.get(CallbackRole.BEFORE_SIGNING), PrintTransactionSummary)
    prepopulated = context.callbacks.get(CallbackRole.AFTER_NETWORK_SELECTED)(config.network("testnet"))
    assert prepopulated.signer_id == prepopulated.receiver_id == "alice.testnet"


def test_add_function_call_key(near_rpc, config):
    context = _assemble(
        config,
        "account add-key",
        owner_account_id="alice.testnet",
        public_key=PUBLIC_KEY,
        permission="function-call",
        receiver_id="guestbook.testnet",
        method_names="add_message, get_messages",
        allowance="1 NEAR",
    )

    (action,) = context.actions.actions()
    assert action.access_key.permission == FunctionCallPermission(
        "guestbook.testnet", ("add_message", "get_messages"), NearToken.from_near(1)
    )


def test_delete_key(near_rpc, config):
    context = _assemble(
        config, "account delete-key", owner_account_id="alice.testnet", public_key=PUBLIC_KEY
    )

    assert context.actions.actions() == (DeleteKeyAction(PublicKey.parse(PUBLIC_KEY)),)
    assert context.stages[-4:] == ("access-key", "network-selection", "signing", "sending")


def test_delete_account_sends_the_balance_to_the_beneficiary(near_rpc, config):
    context = _assemble(
        config, "account delete-account", account_id="alice.testnet", beneficiary_id="bob.testnet"
    )

    assert context.actions.actions() == (DeleteAccountAction("bob.testnet"),)
    prepopulated = context.callbacks.get(CallbackRole.AFTER_NETWORK_SELECTED)(config.network("testnet"))
    assert prepopulated.receiver_id == "alice.testnet"


def test_delete_key_rejects_a_malformed_key(near_rpc, config):
    with pytest.raises(InvalidInputError, match="--public-key"):
        _assemble(config, "account delete-key", owner_account_id="alice.testnet", public_key="ed25519:0OIl")


def test_unknown_command_is_rejected(config):
    with pytest.raises(InvalidInputError, match="--command"):
        _assemble(config, "account rename")
