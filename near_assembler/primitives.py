"""Value types shared by fields, actions and the signer.

Account ids are kept as plain strings validated by :func:`parse_account_id`;
amounts, gas and keys get small frozen dataclasses so that parsing happens
exactly once, at field resolution time.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from enum import IntEnum

from cryptography.hazmat.primitives.asymmetric import ed25519
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from .codec import BorshWriter, CodecError, base58_decode, base58_encode
from .errors import InvalidInputError

MIN_ACCOUNT_ID_LEN = 2
MAX_ACCOUNT_ID_LEN = 64
ONE_NEAR = 10**24
ONE_TERAGAS = 10**12
ONE_GIGAGAS = 10**9

_ACCOUNT_ID_RE = re.compile(r"^(([a-z\d]+[\-_])*[a-z\d]+\.)*([a-z\d]+[\-_])*[a-z\d]+$")
_AMOUNT_RE = re.compile(r"^\s*(?P<number>[0-9]+(\.[0-9]*)?|\.[0-9]+)\s*(?P<unit>[A-Za-z]+)\s*$")


# Account ids -------------------------------------------------------------


def parse_account_id(raw: str) -> str:
    """Validate ``raw`` against NEAR account id rules and return it."""

    value = raw.strip()
    if not MIN_ACCOUNT_ID_LEN <= len(value) <= MAX_ACCOUNT_ID_LEN:
        raise InvalidInputError(
            f"account id <{value}> must be between {MIN_ACCOUNT_ID_LEN} and "
            f"{MAX_ACCOUNT_ID_LEN} characters long"
        )
    if not _ACCOUNT_ID_RE.match(value):
        raise InvalidInputError(
            f"account id <{value}> may only contain lowercase letters, digits and "
            "single '-', '_' or '.' separators"
        )
    return value


def is_top_level(account_id: str) -> bool:
    return "." not in account_id


def is_sub_account_of(account_id: str, parent_id: str) -> bool:
    """Return True when ``account_id`` is a direct sub-account of ``parent_id``."""

    suffix = "." + parent_id
    if not account_id.endswith(suffix):
        return False
    prefix = account_id[: -len(suffix)]
    return bool(prefix) and "." not in prefix


def parent_account_id(account_id: str) -> str | None:
    """Return the account that owns ``account_id``, or None for top-level ids."""

    if is_top_level(account_id):
        return None
    return account_id.split(".", 1)[1]


# Amounts -----------------------------------------------------------------


def _parse_scaled(raw: str, units: dict[str, int], kind: str) -> int:
    match = _AMOUNT_RE.match(raw)
    if not match:
        raise InvalidInputError(
            f"invalid {kind} <{raw}>; expected a number followed by one of: "
            + ", ".join(sorted(set(units)))
        )
    scale = units.get(match.group("unit").lower())
    if scale is None:
        raise InvalidInputError(f"unknown {kind} unit <{match.group('unit')}>")
    with localcontext() as ctx:
        ctx.prec = 80
        try:
            scaled = Decimal(match.group("number")) * scale
        except InvalidOperation as exc:  # pragma: no cover - regex guards the format
            raise InvalidInputError(f"invalid {kind} <{raw}>") from exc
        if scaled != scaled.to_integral_value():
            raise InvalidInputError(f"{kind} <{raw}> has too many decimal places")
    return int(scaled)


def _format_scaled(value: int, scale: int) -> str:
    with localcontext() as ctx:
        ctx.prec = 80
        text = format((Decimal(value) / scale).normalize(), "f")
    return text


@dataclass(frozen=True, order=True)
class NearToken:
    """An amount of NEAR stored in yoctoNEAR."""

    yoctonear: int

    UNITS = {"near": ONE_NEAR, "millinear": 10**21, "yoctonear": 1}

    @classmethod
    def parse(cls, raw: str) -> "NearToken":
        """Parse amounts such as ``1 NEAR``, ``0.25 near`` or ``100 yoctoNEAR``."""

        return cls(_parse_scaled(raw, cls.UNITS, "amount"))

    @classmethod
    def from_near(cls, amount: int | str | Decimal) -> "NearToken":
        return cls.parse(f"{amount} NEAR")

    def __str__(self) -> str:
        return f"{_format_scaled(self.yoctonear, ONE_NEAR)} NEAR"


@dataclass(frozen=True, order=True)
class NearGas:
    """An amount of gas units."""

    gas: int

    UNITS = {"tgas": ONE_TERAGAS, "teragas": ONE_TERAGAS, "ggas": ONE_GIGAGAS, "gigagas": ONE_GIGAGAS, "gas": 1}

    @classmethod
    def parse(cls, raw: str) -> "NearGas":
        """Parse gas such as ``30 TeraGas``, ``30 Tgas`` or ``5000 gas``."""

        gas = _parse_scaled(raw, cls.UNITS, "gas")
        if gas > 2**64 - 1:
            raise InvalidInputError(f"gas <{raw}> exceeds the u64 range")
        return cls(gas)

    def __str__(self) -> str:
        return f"{_format_scaled(self.gas, ONE_TERAGAS)} Tgas"


# Keys --------------------------------------------------------------------


class KeyType(IntEnum):
    ED25519 = 0
    SECP256K1 = 1


_KEY_LENGTHS = {KeyType.ED25519: 32, KeyType.SECP256K1: 64}


def _split_key_string(raw: str, kind: str) -> tuple[KeyType, bytes]:
    value = raw.strip()
    prefix, sep, body = value.partition(":")
    if not sep:
        prefix, body = "ed25519", value
    try:
        key_type = KeyType[prefix.upper()]
    except KeyError:
        raise InvalidInputError(f"unsupported {kind} type <{prefix}>") from None
    try:
        data = base58_decode(body)
    except CodecError as exc:
        raise InvalidInputError(f"{kind} <{value}> is not valid base58: {exc}") from exc
    return key_type, data


@dataclass(frozen=True)
class PublicKey:
    """A public key in NEAR's ``<type>:<base58>`` notation."""

    key_type: KeyType
    data: bytes

    @classmethod
    def parse(cls, raw: str) -> "PublicKey":
        key_type, data = _split_key_string(raw, "public key")
        if len(data) != _KEY_LENGTHS[key_type]:
            raise InvalidInputError(
                f"public key <{raw.strip()}> must decode to {_KEY_LENGTHS[key_type]} bytes"
            )
        return cls(key_type, data)

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(int(self.key_type)).fixed(self.data, _KEY_LENGTHS[self.key_type])

    def __str__(self) -> str:
        return f"{self.key_type.name.lower()}:{base58_encode(self.data)}"


class KeyPair:
    """Ed25519 key pair backed by ``cryptography``."""

    def __init__(self, private_key: ed25519.Ed25519PrivateKey) -> None:
        self._private_key = private_key

    @classmethod
    def generate(cls) -> "KeyPair":
        return cls(ed25519.Ed25519PrivateKey.generate())

    @classmethod
    def from_string(cls, raw: str) -> "KeyPair":
        """Load ``ed25519:<base58>`` secret keys (32-byte seed or 64-byte seed+public)."""

        key_type, data = _split_key_string(raw, "private key")
        if key_type is not KeyType.ED25519:
            raise InvalidInputError("only ed25519 private keys can sign transactions")
        if len(data) not in (32, 64):
            raise InvalidInputError("ed25519 private key must decode to 32 or 64 bytes")
        pair = cls(ed25519.Ed25519PrivateKey.from_private_bytes(data[:32]))
        if len(data) == 64 and data[32:] != pair.public_key.data:
            raise InvalidInputError("private key does not match its embedded public key")
        return pair

    @property
    def public_key(self) -> PublicKey:
        raw = self._private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        return PublicKey(KeyType.ED25519, raw)

    @property
    def secret_key(self) -> str:
        seed = self._private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return "ed25519:" + base58_encode(seed + self.public_key.data)

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(message)
