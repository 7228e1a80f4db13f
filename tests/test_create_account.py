import base64
import json
from dataclasses import replace

import pytest

from near_assembler.actions import (
    AccessKey,
    AddKeyAction,
    CreateAccountAction,
    FullAccessPermission,
    FunctionCallAction,
    TransferAction,
)
from near_assembler.callbacks import CallbackRole
from near_assembler.codec import base58_encode
from near_assembler.commands import assemble
from near_assembler.commands.account import (
    CreateAccountRouting,
    SaveGeneratedKey,
    route_account_creation,
)
from near_assembler.driver import ExecutionDriver
from near_assembler.errors import (
    AccountAlreadyExistsError,
    PermissionDeniedError,
    SignerAccountMissingError,
)
from near_assembler.fields import FieldResolver
from near_assembler.primitives import NearGas, NearToken, PublicKey


SIGNER_SECRET = "ed25519:" + base58_encode(bytes(range(1, 33)))
NEW_KEY = PublicKey.parse("ed25519:" + base58_encode(bytes([9]) * 32))
LONG_NAME = "a" * 40


def _arguments(**overrides):
    arguments = {
        "command": "account create-account",
        "new_account_id": "bob.alice.testnet",
        "initial_balance": "1 NEAR",
        "public_key": str(NEW_KEY),
        "signer_account_id": "alice.testnet",
        "network": "testnet",
        "sign_with": "plaintext-private-key",
        "signer_private_key": SIGNER_SECRET,
        "submit": "send",
    }
    arguments.update(overrides)
    return arguments


def _routing(new_account_id: str, signer_id: str = "alice.testnet") -> CreateAccountRouting:
    return CreateAccountRouting(signer_id, new_account_id, NearToken.from_near(1), NEW_KEY)


def test_direct_sub_account_gets_three_actions(near_rpc, config) -> None:
    prepopulated = _routing("bob.alice.testnet")(config.network("testnet"))

    assert prepopulated.signer_id == "alice.testnet"
    assert prepopulated.receiver_id == "bob.alice.testnet"
    assert prepopulated.actions == (
        CreateAccountAction(),
        TransferAction(NearToken.from_near(1)),
        AddKeyAction(NEW_KEY, AccessKey(nonce=0, permission=FullAccessPermission())),
    )


def test_linkdrop_sub_account_is_created_through_the_linkdrop(near_rpc, config) -> None:
    prepopulated = _routing("bob.testnet")(config.network("testnet"))

    assert prepopulated.receiver_id == "testnet"
    (call,) = prepopulated.actions
    assert isinstance(call, FunctionCallAction)
    assert call.method_name == "create_account"
    assert json.loads(call.args) == {"new_account_id": "bob.testnet", "new_public_key": str(NEW_KEY)}
    assert call.gas == NearGas.parse("30 TeraGas")
    assert call.deposit == NearToken.from_near(1)


def test_long_top_level_name_goes_through_the_linkdrop(config) -> None:
    prepopulated = route_account_creation(
        config.network("mainnet"), "alice.near", LONG_NAME, NearToken.from_near(1), NEW_KEY
    )

    assert prepopulated.receiver_id == "near"


def test_unrelated_sub_account_is_denied(config) -> None:
    with pytest.raises(PermissionDeniedError) as excinfo:
        route_account_creation(
            config.network("testnet"), "alice.testnet", "bob.carol.testnet", NearToken(1), NEW_KEY
        )

    assert str(excinfo.value) == (
        "Signer account <alice.testnet> does not have permission to create account <bob.carol.testnet>."
    )


def test_network_without_linkdrop_is_denied(config) -> None:
    network = replace(config.network("testnet"), linkdrop_account_id=None)

    with pytest.raises(PermissionDeniedError, match="linkdrop_account_id"):
        route_account_creation(network, "alice.testnet", "bob.testnet", NearToken(1), NEW_KEY)


def test_existing_account_is_not_created_again(near_rpc, config) -> None:
    near_rpc.accounts.add("bob.alice.testnet")

    with pytest.raises(AccountAlreadyExistsError, match="already exists"):
        _routing("bob.alice.testnet")(config.network("testnet"))


def test_missing_signer_fails_before_routing(near_rpc, config) -> None:
    near_rpc.accounts.clear()

    with pytest.raises(SignerAccountMissingError) as excinfo:
        _routing("bob.alice.testnet")(config.network("testnet"))

    assert "alice.testnet" in str(excinfo.value)
    assert "testnet" in str(excinfo.value)
    assert near_rpc.calls == [("view_account", "alice.testnet")]


@pytest.mark.parametrize("network_override", [{}, {"network": "mainnet"}])
def test_short_top_level_name_fails_at_construction(near_rpc, config, network_override) -> None:
    with pytest.raises(PermissionDeniedError, match="character count"):
        assemble(
            config,
            FieldResolver(interactive=False),
            _arguments(new_account_id="newname", **network_override),
        )

    assert near_rpc.calls == []


def test_create_sub_account_end_to_end(near_rpc, config) -> None:
    context = assemble(config, FieldResolver(interactive=False), _arguments())

    assert ExecutionDriver(context).run() == 0

    (encoded,) = near_rpc.broadcasts
    raw = base64.b64decode(encoded)
    assert raw[:4] == len("alice.testnet").to_bytes(4, "little")
    assert raw[4:17] == b"alice.testnet"
    assert b"bob.alice.testnet" in raw
    signer_public_key = str(context.value("signer_private_key").public_key)
    assert ("view_access_key", "alice.testnet", signer_public_key) in near_rpc.calls


def test_signer_is_derived_from_parent_account(near_rpc, config) -> None:
    arguments = _arguments()
    del arguments["signer_account_id"]

    context = assemble(config, FieldResolver(interactive=False), arguments)

    assert context.value("signer_account_id") == "alice.testnet"
    prepopulated = context.callbacks.get(CallbackRole.AFTER_NETWORK_SELECTED)(config.network("testnet"))
    assert prepopulated.receiver_id == "bob.alice.testnet"


def test_generated_key_is_saved_after_success(near_rpc, config) -> None:
    arguments = _arguments(key_mode="generate-keypair")
    del arguments["public_key"]

    context = assemble(config, FieldResolver(interactive=False), arguments)
    saver = context.callbacks.get(CallbackRole.AFTER_SENDING)
    assert isinstance(saver, SaveGeneratedKey)

    ExecutionDriver(context).run()

    saved = json.loads((config.credentials_home / "testnet" / "bob.alice.testnet.json").read_text())
    assert saved["account_id"] == "bob.alice.testnet"
    assert saved["public_key"] == str(context.value("public_key"))


def test_interactive_create_account(near_rpc, config, scripted_input, capsys) -> None:
    scripted_input(
        "1",  # account create-account
        "bob.alice.testnet",
        "1 NEAR",
        "2",  # use a public key
        str(NEW_KEY),
        "1",  # testnet
        "2",  # plaintext-private-key
        SIGNER_SECRET,
        "2",  # display
    )

    context = assemble(config, FieldResolver(interactive=True), {})
    assert ExecutionDriver(context).run() == 0

    output = capsys.readouterr().out
    assert "CreateAccount" in output
    assert "base64:" in output
    assert near_rpc.broadcasts == []
