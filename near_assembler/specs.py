"""Reusable :class:`FieldSpec` factories for the value types of this tool."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from . import accounts
from .config import Config
from .errors import InvalidInputError
from .fields import FieldSpec
from .primitives import NearGas, NearToken, PublicKey, parse_account_id

AccountCheck = Callable[[str], "str | None"]


def warn_if_missing(config: Config) -> AccountCheck:
    """Advisory check: flag accounts that do not exist on the default network yet."""

    def check(account_id: str) -> str | None:
        network = config.advisory_network
        if accounts.account_exists(network, account_id) is False:
            return f"The account <{account_id}> does not yet exist on network <{network.network_name}>."
        return None

    return check


def warn_if_taken(config: Config) -> AccountCheck:
    """Advisory check: flag names that are already registered on the default network."""

    def check(account_id: str) -> str | None:
        network = config.advisory_network
        if accounts.account_exists(network, account_id) is True:
            return f"The account <{account_id}> already exists on network <{network.network_name}>."
        return None

    return check


def _text(raw: Any) -> str:
    if not isinstance(raw, str):
        raise InvalidInputError(f"expected text, got {type(raw).__name__}")
    return raw


def account_id_spec(
    name: str,
    prompt: str,
    *,
    check: AccountCheck | None = None,
    derive: Callable[[], Any] | None = None,
) -> FieldSpec:
    return FieldSpec(
        name=name,
        prompt=prompt,
        parse=lambda raw: parse_account_id(_text(raw)),
        check=check,
        derive=derive,
    )


def public_key_spec(name: str, prompt: str) -> FieldSpec:
    return FieldSpec(name=name, prompt=prompt, parse=lambda raw: PublicKey.parse(_text(raw)))


def amount_spec(name: str, prompt: str, default: str | None = None) -> FieldSpec:
    return FieldSpec(
        name=name, prompt=prompt, parse=lambda raw: NearToken.parse(str(raw)), default=default
    )


def optional_amount_spec(name: str, prompt: str) -> FieldSpec:
    def parse(raw: Any) -> NearToken | None:
        if raw is None or str(raw).strip().lower() in {"", "unlimited"}:
            return None
        return NearToken.parse(str(raw))

    return FieldSpec(name=name, prompt=prompt, parse=parse, default="unlimited")


def gas_spec(name: str, prompt: str, default: str = "100 TeraGas") -> FieldSpec:
    return FieldSpec(name=name, prompt=prompt, parse=lambda raw: NearGas.parse(str(raw)), default=default)


def _parse_json_args(raw: Any) -> bytes:
    if isinstance(raw, (dict, list)):
        return json.dumps(raw, separators=(",", ":")).encode("utf-8")
    try:
        parsed = json.loads(_text(raw))
    except json.JSONDecodeError as exc:
        raise InvalidInputError(f"function arguments must be JSON: {exc}") from exc
    return json.dumps(parsed, separators=(",", ":")).encode("utf-8")


def json_args_spec(name: str, prompt: str) -> FieldSpec:
    return FieldSpec(name=name, prompt=prompt, parse=_parse_json_args, default="{}")


def _parse_method_name(raw: Any) -> str:
    value = _text(raw).strip()
    if not value:
        raise InvalidInputError("method name must not be empty")
    return value


def method_name_spec(name: str, prompt: str) -> FieldSpec:
    return FieldSpec(name=name, prompt=prompt, parse=_parse_method_name)


def _parse_method_names(raw: Any) -> tuple[str, ...]:
    if isinstance(raw, (list, tuple)):
        names = [str(item).strip() for item in raw]
    else:
        names = [piece.strip() for piece in _text(raw).split(",")]
    return tuple(name for name in names if name)


def method_names_spec(name: str, prompt: str) -> FieldSpec:
    return FieldSpec(name=name, prompt=prompt, parse=_parse_method_names, default="")


def _parse_path(raw: Any) -> Path:
    value = _text(raw).strip()
    if not value:
        raise InvalidInputError("path must not be empty")
    return Path(value).expanduser()


def path_spec(name: str, prompt: str, default: str | None = None) -> FieldSpec:
    """A filesystem path; a leading ``~`` expands to the home directory."""

    return FieldSpec(name=name, prompt=prompt, parse=_parse_path, default=default)


def choice_spec(
    name: str, prompt: str, choices: list[str], default: str | None = None
) -> FieldSpec:
    def parse(raw: Any) -> str:
        value = _text(raw).strip().lower()
        if value not in choices:
            raise InvalidInputError(f"expected one of {', '.join(choices)}, got <{raw}>")
        return value

    return FieldSpec(name=name, prompt=prompt, parse=parse, default=default, choices=tuple(choices))
