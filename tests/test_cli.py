import json

import pytest

from near_assembler import cli
from near_assembler.codec import base58_encode

SIGNER_SECRET = "ed25519:" + base58_encode(bytes(range(1, 33)))
SUBMIT_WITH_KEY = [
    "--network",
    "testnet",
    "--sign-with",
    "plaintext-private-key",
    "--signer-private-key",
    SIGNER_SECRET,
]


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    monkeypatch.setattr("near_assembler.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
    for name in ("NEAR_ENV", "NEAR_ASSEMBLER_RPC_URL", "NEAR_CREDENTIALS_HOME", "NEAR_ASSEMBLER_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    yield


def _send_near(*extra: str) -> list[str]:
    return [
        "--no-prompt",
        "tokens",
        "send-near",
        "--signer-account-id",
        "alice.testnet",
        "--receiver-account-id",
        "bob.testnet",
        "--amount",
        "1 NEAR",
        *SUBMIT_WITH_KEY,
        *extra,
    ]


def test_collect_arguments_maps_flags_to_fields():
    parser = cli.build_parser()
    args = parser.parse_args(_send_near("--submit", "display"))

    arguments = cli.collect_arguments(args)

    assert arguments["command"] == "tokens send-near"
    assert arguments["amount"] == "1 NEAR"
    assert arguments["submit"] == "display"
    assert "no_prompt" not in arguments
    assert "group" not in arguments
    assert "public_key" not in arguments


def test_send_near_display_prints_signed_transaction(near_rpc, capsys):
    assert cli.main(_send_near("--submit", "display")) == 0

    output = capsys.readouterr().out
    assert "Transfer 1 NEAR" in output
    assert "base64:" in output
    assert near_rpc.broadcasts == []


def test_send_near_submits_by_default(near_rpc, capsys):
    assert cli.main(_send_near()) == 0

    assert len(near_rpc.broadcasts) == 1
    assert "Transaction 8bCzTxHash succeeded." in capsys.readouterr().out


def test_missing_argument_without_prompts(near_rpc, capsys):
    argv = ["--no-prompt", "tokens", "send-near", "--signer-account-id", "alice.testnet"]

    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 1
    assert "error: missing required argument --receiver-account-id" in capsys.readouterr().err


def test_missing_signer_account_is_reported(near_rpc, capsys):
    near_rpc.accounts.clear()

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_send_near())

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "error:" in err
    assert "alice.testnet" in err
    assert near_rpc.broadcasts == []


def test_failed_transaction_exits_non_zero(near_rpc, capsys):
    near_rpc.status = {"Failure": {"ActionError": {"kind": "LackBalanceForState"}}}

    with pytest.raises(SystemExit) as excinfo:
        cli.main(_send_near())

    assert excinfo.value.code == 1
    assert "failed on network <testnet>" in capsys.readouterr().err


def test_construct_transaction_from_actions_json(near_rpc, capsys):
    actions = [
        {"kind": "transfer", "amount": "1 NEAR"},
        {"kind": "function-call", "method_name": "ping", "args": {"n": 1}},
    ]
    argv = [
        "--no-prompt",
        "transaction",
        "construct-transaction",
        "--signer-account-id",
        "alice.testnet",
        "--receiver-account-id",
        "app.testnet",
        "--actions-json",
        json.dumps(actions),
        *SUBMIT_WITH_KEY,
        "--submit",
        "display",
    ]

    assert cli.main(argv) == 0

    output = capsys.readouterr().out
    assert "Transfer 1 NEAR" in output
    assert 'FunctionCall ping({"n": 1})' in output


def test_invalid_actions_json_is_a_usage_error(near_rpc, capsys):
    argv = [
        "--no-prompt",
        "transaction",
        "construct-transaction",
        "--actions-json",
        "{not json",
    ]

    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)

    assert excinfo.value.code == 1
    assert "Invalid --actions-json" in capsys.readouterr().err
