"""Stages shared by every command: network, block, signing and sending configuration."""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from . import specs
from .codec import CodecError, base58_decode
from .config import Config
from .context import FieldStage, StageContext
from .errors import InvalidInputError
from .fields import Field, FieldSpec
from .primitives import KeyPair
from .rpc_client import BlockReference

SIGN_WITH_PLAINTEXT = "plaintext-private-key"
SIGN_WITH_KEYCHAIN = "keychain"
SUBMIT_SEND = "send"
SUBMIT_DISPLAY = "display"
FINAL_BLOCK = "final"


def network_spec(config: Config) -> FieldSpec:
    def parse(raw: Any) -> str:
        name = str(raw).strip()
        if name not in config.networks:
            raise InvalidInputError(
                f"unknown network <{name}>; configured networks: {', '.join(config.network_names)}"
            )
        return name

    names = config.network_names
    if config.default_network in names:
        names.remove(config.default_network)
        names.insert(0, config.default_network)
    return FieldSpec(
        name="network",
        prompt="What is the name of the network?",
        parse=parse,
        default=config.default_network,
        choices=tuple(names),
    )


def _parse_private_key(raw: Any) -> KeyPair:
    if not isinstance(raw, str):
        raise InvalidInputError("private key must be text")
    return KeyPair.from_string(raw)


class NetworkSelectionStage(FieldStage):
    name = "network-selection"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield network_spec(previous.config)


class SigningStage(FieldStage):
    name = "signing"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.choice_spec(
            "sign_with",
            "Select a tool for signing the transaction:",
            [SIGN_WITH_KEYCHAIN, SIGN_WITH_PLAINTEXT],
        )
        if resolved["sign_with"].value == SIGN_WITH_PLAINTEXT:
            yield FieldSpec(
                name="signer_private_key",
                prompt="Enter the signer's private key (ed25519:...)",
                parse=_parse_private_key,
            )


class SendingStage(FieldStage):
    name = "sending"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.choice_spec(
            "submit",
            "How would you like to proceed?",
            [SUBMIT_SEND, SUBMIT_DISPLAY],
            default=SUBMIT_SEND,
        )


def submission_stages() -> list[FieldStage]:
    return [NetworkSelectionStage(), SigningStage(), SendingStage()]


def parse_block_reference(raw: Any) -> BlockReference:
    """``final``, a block height, or a base58 block hash."""

    value = str(raw).strip()
    if value.lower() in {"", FINAL_BLOCK}:
        return BlockReference.latest()
    if value.isdigit():
        return BlockReference.at_height(int(value))
    message = f"block reference must be '{FINAL_BLOCK}', a block height or a block hash, got <{value}>"
    try:
        decoded = base58_decode(value)
    except CodecError as exc:
        raise InvalidInputError(message) from exc
    if len(decoded) != 32:
        raise InvalidInputError(message)
    return BlockReference(finality=None, block_id=value)


class BlockReferenceStage(FieldStage):
    name = "block-reference"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield FieldSpec(
            name="block_reference",
            prompt="Which block should be read? (final, a block height or a block hash)",
            parse=parse_block_reference,
            default=FINAL_BLOCK,
        )


def view_stages() -> list[FieldStage]:
    return [NetworkSelectionStage(), BlockReferenceStage()]
