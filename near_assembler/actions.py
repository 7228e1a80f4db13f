"""Concrete transaction actions and the prepopulated transaction they form.

Each action knows its Borsh layout (the variant index of NEAR's ``Action``
enum followed by its fields) and a one-line description for summaries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Tuple, Union

from .codec import BorshWriter
from .primitives import NearGas, NearToken, PublicKey


@dataclass(frozen=True)
class CreateAccountAction:
    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(0)

    def describe(self) -> str:
        return "CreateAccount"


@dataclass(frozen=True)
class FunctionCallAction:
    method_name: str
    args: bytes
    gas: NearGas
    deposit: NearToken = NearToken(0)

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(2).string(self.method_name).blob(self.args)
        writer.u64(self.gas.gas).u128(self.deposit.yoctonear)

    def describe(self) -> str:
        try:
            rendered = json.dumps(json.loads(self.args))
        except ValueError:
            rendered = f"<{len(self.args)} bytes>"
        return (
            f"FunctionCall {self.method_name}({rendered}) gas={self.gas} deposit={self.deposit}"
        )


@dataclass(frozen=True)
class TransferAction:
    deposit: NearToken

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(3).u128(self.deposit.yoctonear)

    def describe(self) -> str:
        return f"Transfer {self.deposit}"


@dataclass(frozen=True)
class FullAccessPermission:
    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(1)

    def describe(self) -> str:
        return "full access"


@dataclass(frozen=True)
class FunctionCallPermission:
    receiver_id: str
    method_names: Tuple[str, ...] = ()
    allowance: NearToken | None = None

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(0)
        writer.option(self.allowance, lambda amount: writer.u128(amount.yoctonear))
        writer.string(self.receiver_id)
        writer.vec(self.method_names, writer.string)

    def describe(self) -> str:
        methods = ", ".join(self.method_names) or "any method"
        allowance = str(self.allowance) if self.allowance is not None else "unlimited"
        return f"function call on {self.receiver_id} ({methods}; allowance {allowance})"


AccessKeyPermission = Union[FullAccessPermission, FunctionCallPermission]


@dataclass(frozen=True)
class AccessKey:
    nonce: int = 0
    permission: AccessKeyPermission = field(default_factory=FullAccessPermission)


@dataclass(frozen=True)
class AddKeyAction:
    public_key: PublicKey
    access_key: AccessKey

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(5)
        self.public_key.write_borsh(writer)
        writer.u64(self.access_key.nonce)
        self.access_key.permission.write_borsh(writer)

    def describe(self) -> str:
        return f"AddKey {self.public_key} ({self.access_key.permission.describe()})"


@dataclass(frozen=True)
class DeleteKeyAction:
    public_key: PublicKey

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(6)
        self.public_key.write_borsh(writer)

    def describe(self) -> str:
        return f"DeleteKey {self.public_key}"


@dataclass(frozen=True)
class DeleteAccountAction:
    beneficiary_id: str

    def write_borsh(self, writer: BorshWriter) -> None:
        writer.u8(7).string(self.beneficiary_id)

    def describe(self) -> str:
        return f"DeleteAccount (beneficiary {self.beneficiary_id})"


Action = Union[
    CreateAccountAction,
    DeleteAccountAction,
    AddKeyAction,
    DeleteKeyAction,
    TransferAction,
    FunctionCallAction,
]


@dataclass(frozen=True)
class PrepopulatedTransaction:
    """Signer, receiver and ordered actions, before nonce and block hash are known."""

    signer_id: str
    receiver_id: str
    actions: Tuple[Action, ...]

    def summary_lines(self) -> list[str]:
        lines = [
            f"signer:   {self.signer_id}",
            f"receiver: {self.receiver_id}",
            f"actions ({len(self.actions)}):",
        ]
        lines.extend(f"  {index}. {action.describe()}" for index, action in enumerate(self.actions, 1))
        return lines
