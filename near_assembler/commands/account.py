"""``account`` commands: create-account, add-key, delete-key, delete-account."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping

from .. import accounts, specs
from ..action_chain import ActionKind
from ..actions import (
    AccessKey,
    AddKeyAction,
    CreateAccountAction,
    FullAccessPermission,
    FunctionCallAction,
    PrepopulatedTransaction,
    TransferAction,
)
from ..callbacks import AfterNetworkSelected, AfterSending, CallbackRole, PrintTransactionSummary
from ..config import MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH, Config, NetworkConfig
from ..context import FieldStage, StageContext
from ..errors import PermissionDeniedError
from ..fields import Field, FieldResolver, FieldSource, FieldSpec
from ..primitives import (
    KeyPair,
    NearGas,
    NearToken,
    PublicKey,
    is_sub_account_of,
    is_top_level,
    parent_account_id,
)
from ..signer import save_credentials
from .common import AccountStage, SingleActionStage

logger = logging.getLogger(__name__)

KEY_MODE_GENERATE = "generate-keypair"
KEY_MODE_PUBLIC_KEY = "public-key"
LINKDROP_CREATE_ACCOUNT_GAS = NearGas.parse("30 TeraGas")


def check_top_level_length(new_account_id: str) -> None:
    """Reject short top-level names; only the registrar may create those."""

    length = len(new_account_id)
    if is_top_level(new_account_id) and length < MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH:
        raise PermissionDeniedError(
            f"Account <{new_account_id}> has <{length}> character count. Only the registrar "
            "account can create new top level accounts that are shorter than "
            f"{MIN_ALLOWED_TOP_LEVEL_ACCOUNT_LENGTH} characters."
        )


def route_account_creation(
    network: NetworkConfig,
    signer_id: str,
    new_account_id: str,
    initial_balance: NearToken,
    public_key: PublicKey,
) -> PrepopulatedTransaction:
    """Choose between creating a sub-account directly and calling the linkdrop contract."""

    if is_sub_account_of(new_account_id, signer_id):
        return PrepopulatedTransaction(
            signer_id=signer_id,
            receiver_id=new_account_id,
            actions=(
                CreateAccountAction(),
                TransferAction(initial_balance),
                AddKeyAction(public_key, AccessKey(nonce=0, permission=FullAccessPermission())),
            ),
        )

    linkdrop = network.linkdrop_account_id
    if linkdrop is None:
        raise PermissionDeniedError(
            f"Account <{new_account_id}> cannot be created on network <{network.network_name}> "
            "because no linkdrop_account_id is configured for it. Add one under "
            f"networks.{network.network_name} in the configuration file."
        )
    long_enough = len(new_account_id) >= network.min_top_level_account_length
    if is_sub_account_of(new_account_id, linkdrop) or (is_top_level(new_account_id) and long_enough):
        args = json.dumps(
            {"new_account_id": new_account_id, "new_public_key": str(public_key)},
            separators=(",", ":"),
        ).encode("utf-8")
        return PrepopulatedTransaction(
            signer_id=signer_id,
            receiver_id=linkdrop,
            actions=(
                FunctionCallAction(
                    method_name="create_account",
                    args=args,
                    gas=LINKDROP_CREATE_ACCOUNT_GAS,
                    deposit=initial_balance,
                ),
            ),
        )
    raise PermissionDeniedError(
        f"Signer account <{signer_id}> does not have permission to create account <{new_account_id}>."
    )


@dataclass(frozen=True)
class CreateAccountRouting(AfterNetworkSelected):
    signer_id: str
    new_account_id: str
    initial_balance: NearToken
    public_key: PublicKey

    def __call__(self, network: NetworkConfig) -> PrepopulatedTransaction:
        accounts.validate_signer_account_id(network, self.signer_id)
        accounts.validate_new_account_id(network, self.new_account_id)
        prepopulated = route_account_creation(
            network, self.signer_id, self.new_account_id, self.initial_balance, self.public_key
        )
        logger.info(
            "Creating %s via %s on %s",
            self.new_account_id,
            prepopulated.receiver_id,
            network.network_name,
        )
        return prepopulated


@dataclass(frozen=True)
class SaveGeneratedKey(AfterSending):
    """Store a freshly generated key once the account actually exists."""

    credentials_home: Path
    account_id: str
    key_pair: KeyPair

    def __call__(self, outcome, network: NetworkConfig) -> None:
        if outcome.is_success:
            path = save_credentials(
                self.credentials_home, network.network_name, self.account_id, self.key_pair
            )
            print(f"The key pair for <{self.account_id}> was saved to {path}")
        elif not outcome.submitted:
            print(
                f"The transaction was not sent, so the key pair for <{self.account_id}> was not "
                f"saved.\n  public key:  {self.key_pair.public_key}\n  private key: {self.key_pair.secret_key}"
            )
        else:
            logger.warning("Account creation failed; generated key for %s discarded", self.account_id)


class NewAccountStage(FieldStage):
    name = "new-account"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.account_id_spec(
            "new_account_id",
            "What is the new account ID?",
            check=specs.warn_if_taken(previous.config),
        )
        yield specs.amount_spec(
            "initial_balance",
            "Enter the amount of NEAR tokens to transfer to the new account (example: 10 NEAR)",
        )

    def scope(
        self, previous: StageContext, resolver: FieldResolver, arguments: Mapping[str, Any]
    ) -> dict[str, Field]:
        resolved = super().scope(previous, resolver, arguments)
        supplied_key = arguments.get("public_key")
        key_mode = specs.choice_spec(
            "key_mode",
            "Add an access key for this account:",
            [KEY_MODE_GENERATE, KEY_MODE_PUBLIC_KEY],
        )
        mode = resolver.resolve(
            replace(key_mode, derive=lambda: KEY_MODE_PUBLIC_KEY if supplied_key is not None else None),
            arguments.get("key_mode"),
        )
        resolved["key_mode"] = mode
        if mode.value == KEY_MODE_GENERATE:
            key_pair = KeyPair.generate()
            resolved["generated_key_pair"] = Field("generated_key_pair", key_pair, FieldSource.DERIVED)
            resolved["public_key"] = Field("public_key", key_pair.public_key, FieldSource.DERIVED)
        else:
            resolved["public_key"] = resolver.resolve(
                specs.public_key_spec("public_key", "Enter the public key for this account"),
                supplied_key,
            )
        return resolved

    def from_previous_context(self, previous: StageContext, scope: Mapping[str, Field]) -> StageContext:
        check_top_level_length(scope["new_account_id"].value)
        return previous.extend(self.name, fields=scope.values())


def _derive_signer(config: Config, new_account_id: str) -> Callable[[], str | None]:
    def derive() -> str | None:
        parent = parent_account_id(new_account_id)
        if parent is None or is_top_level(parent):
            return None
        if accounts.account_exists(config.advisory_network, parent) is True:
            return parent
        return None

    return derive


class SignAsStage(FieldStage):
    name = "sign-as"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.account_id_spec(
            "signer_account_id",
            "What is the signer account ID?",
            check=specs.warn_if_missing(previous.config),
            derive=_derive_signer(previous.config, previous.value("new_account_id")),
        )

    def from_previous_context(self, previous: StageContext, scope: Mapping[str, Field]) -> StageContext:
        new_account_id = previous.value("new_account_id")
        callbacks: dict[CallbackRole, Any] = {
            CallbackRole.AFTER_NETWORK_SELECTED: CreateAccountRouting(
                signer_id=scope["signer_account_id"].value,
                new_account_id=new_account_id,
                initial_balance=previous.value("initial_balance"),
                public_key=previous.value("public_key"),
            ),
            CallbackRole.BEFORE_SIGNING: PrintTransactionSummary(),
        }
        key_pair = previous.get("generated_key_pair")
        if key_pair is not None:
            callbacks[CallbackRole.AFTER_SENDING] = SaveGeneratedKey(
                previous.config.credentials_home, new_account_id, key_pair
            )
        return previous.extend(
            self.name,
            fields=scope.values(),
            callbacks=callbacks,
            fill_default_callbacks=True,
        )


def create_account_stages() -> list:
    return [NewAccountStage(), SignAsStage()]


def add_key_stages() -> list:
    return [
        AccountStage("owner", "owner_account_id", "Which account should you add an access key to?"),
        SingleActionStage("access-key", ActionKind.ADD_KEY, "owner_account_id", "owner_account_id"),
    ]


def delete_key_stages() -> list:
    return [
        AccountStage("owner", "owner_account_id", "Which account should you delete the access key for?"),
        SingleActionStage("access-key", ActionKind.DELETE_KEY, "owner_account_id", "owner_account_id"),
    ]


def delete_account_stages() -> list:
    return [
        AccountStage("account", "account_id", "What Account ID to be deleted?"),
        SingleActionStage("beneficiary", ActionKind.DELETE_ACCOUNT, "account_id", "account_id"),
    ]
