"""Command-line interface for near-assembler.

Every field the pipeline asks for has a flag. Flags that are omitted are
asked for interactively, unless ``--no-prompt`` is given or stdin is not a
terminal, in which case a missing value is an error.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Sequence

from .commands import COMMANDS, assemble
from .codec import CodecError
from .config import ConfigurationError, load_config, set_default_config_path
from .driver import driver_for
from .errors import InvalidInputError, PipelineError
from .fields import FieldResolver
from .prompts import Prompter
from .rpc_client import RPCError, RPCTransportError, format_rpc_hint
from .submission import SIGN_WITH_KEYCHAIN, SIGN_WITH_PLAINTEXT, SUBMIT_DISPLAY, SUBMIT_SEND

logger = logging.getLogger(__name__)

# Parser destinations that configure the run rather than name a field.
_RUN_OPTIONS = {"config", "no_prompt", "rpc_url", "credentials_home", "group", "command_name"}


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _debug_enabled() -> bool:
    return os.getenv("NEAR_ASSEMBLER_DEBUG", "").lower() in {"1", "true", "yes", "on"}


def _stdin_is_interactive() -> bool:
    return sys.stdin is not None and sys.stdin.isatty()


def _add_submission_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--network", help="Network name from the configuration (mainnet, testnet, ...)")
    parser.add_argument(
        "--sign-with",
        choices=[SIGN_WITH_KEYCHAIN, SIGN_WITH_PLAINTEXT],
        help="Where the signing key comes from",
    )
    parser.add_argument(
        "--signer-private-key",
        help="ed25519:... private key, used with --sign-with plaintext-private-key",
    )
    parser.add_argument(
        "--submit",
        choices=[SUBMIT_SEND, SUBMIT_DISPLAY],
        help="Send the signed transaction, or only display it (default: send)",
    )


def _add_view_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--network", help="Network name from the configuration (mainnet, testnet, ...)")
    parser.add_argument(
        "--block-reference",
        help="Block to read: 'final', a block height or a block hash (default: final)",
    )


def _add_access_key_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--public-key", help="ed25519:... public key")
    parser.add_argument(
        "--permission",
        choices=["full-access", "function-call"],
        help="Access key permission (default: full-access)",
    )
    parser.add_argument("--receiver-id", help="Contract a function-call key may call")
    parser.add_argument(
        "--method-names",
        help="Comma-separated methods a function-call key may call (empty for any)",
    )
    parser.add_argument(
        "--allowance",
        help="Allowance of a function-call key, e.g. '0.25 NEAR' (default: unlimited)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="near-assembler",
        description="Assemble, sign and submit NEAR transactions",
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument("--rpc-url", help="Override the RPC endpoint of the default network")
    parser.add_argument("--credentials-home", help="Directory holding keychain credentials")
    parser.add_argument(
        "--no-prompt",
        action="store_true",
        help="Never prompt; fail when a required value is missing",
    )
    groups = parser.add_subparsers(dest="group")
    subparsers: dict[str, Any] = {}
    leaves: dict[str, argparse.ArgumentParser] = {}

    def command_parser(key: str) -> argparse.ArgumentParser:
        command = COMMANDS[key]
        if command.group not in subparsers:
            group_parser = groups.add_parser(command.group, help=f"{command.group} commands")
            subparsers[command.group] = group_parser.add_subparsers(dest="command_name")
        sub = subparsers[command.group].add_parser(command.name, help=command.help)
        leaves[key] = sub
        return sub

    create = command_parser("account create-account")
    create.add_argument("--new-account-id", help="Account id to create")
    create.add_argument("--initial-balance", help="Amount to fund the new account with, e.g. '1 NEAR'")
    create.add_argument(
        "--key-mode",
        choices=["generate-keypair", "public-key"],
        help="Generate a key pair or use --public-key",
    )
    create.add_argument("--public-key", help="ed25519:... public key for the new account")
    create.add_argument("--signer-account-id", help="Account paying for the new account")

    add_key = command_parser("account add-key")
    add_key.add_argument("--owner-account-id", help="Account receiving the access key")
    _add_access_key_arguments(add_key)

    delete_key = command_parser("account delete-key")
    delete_key.add_argument("--owner-account-id", help="Account holding the access key")
    delete_key.add_argument("--public-key", help="ed25519:... public key to delete")

    delete_account = command_parser("account delete-account")
    delete_account.add_argument("--account-id", help="Account to delete")
    delete_account.add_argument("--beneficiary-id", help="Account receiving the remaining balance")

    send_near = command_parser("tokens send-near")
    send_near.add_argument("--signer-account-id", help="Account sending the tokens")
    send_near.add_argument("--receiver-account-id", help="Account receiving the tokens")
    send_near.add_argument("--amount", help="Amount to send, e.g. '1.5 NEAR'")

    construct = command_parser("transaction construct-transaction")
    construct.add_argument("--signer-account-id", help="Account signing the transaction")
    construct.add_argument("--receiver-account-id", help="Account receiving the transaction")
    construct.add_argument(
        "--actions-json",
        help='JSON list of actions, e.g. \'[{"kind": "transfer", "amount": "1 NEAR"}]\'',
    )

    inspect = command_parser("contract inspect")
    inspect.add_argument("--contract-account-id", help="Account the contract is deployed on")
    inspect.add_argument(
        "--folder-path", help="Folder to save the contract code in (default: ~/Downloads)"
    )

    for key, sub in leaves.items():
        if COMMANDS[key].view_only:
            _add_view_arguments(sub)
        else:
            _add_submission_arguments(sub)
    return parser


def _parse_actions_json(raw: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CLIError(f"Invalid --actions-json: {exc}") from exc
    if not isinstance(data, list):
        raise CLIError("--actions-json must be a JSON list of action objects")
    return data


def collect_arguments(args: argparse.Namespace) -> dict[str, Any]:
    """Map parsed flags onto field names, dropping the ones not given."""

    arguments = {
        name: value
        for name, value in vars(args).items()
        if name not in _RUN_OPTIONS and value is not None
    }
    if getattr(args, "group", None) and getattr(args, "command_name", None):
        arguments["command"] = f"{args.group} {args.command_name}"
    if "actions_json" in arguments:
        arguments["actions_json"] = _parse_actions_json(arguments["actions_json"])
    return arguments


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    debug = _debug_enabled()
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO)

    overrides = {"rpc_url": args.rpc_url, "credentials_home": args.credentials_home}
    try:
        set_default_config_path(args.config)
        config = load_config(overrides={k: v for k, v in overrides.items() if v is not None})
        resolver = FieldResolver(
            Prompter(), interactive=not args.no_prompt and _stdin_is_interactive()
        )
        context = assemble(config, resolver, collect_arguments(args))
        return driver_for(context).run()
    except (
        CLIError,
        CodecError,
        ConfigurationError,
        InvalidInputError,
        PipelineError,
        RPCError,
        RPCTransportError,
    ) as exc:
        logger.debug("Command failed", exc_info=debug)
        message = f"error: {exc}\n"
        hint = format_rpc_hint(exc) if isinstance(exc, RPCError) else None
        if hint:
            message += f"hint: {hint}\n"
        parser.exit(1, message)


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
