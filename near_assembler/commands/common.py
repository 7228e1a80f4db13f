"""Stages reused by several commands."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Mapping

from .. import specs
from ..action_chain import ALL_ACTION_KINDS, ActionChainBuilder, ActionKind, chain_from_actions
from ..callbacks import CallbackRole, MaterializeActionChain, PrintTransactionSummary
from ..config import Config
from ..context import FieldStage, Stage, StageContext
from ..errors import InvalidInputError
from ..fields import Field, FieldResolver, FieldSource, FieldSpec

CheckFactory = Callable[[Config], specs.AccountCheck]


class AccountStage(FieldStage):
    """Resolve a single account id field."""

    def __init__(
        self,
        name: str,
        field_name: str,
        prompt: str,
        check: CheckFactory | None = specs.warn_if_missing,
    ) -> None:
        self.name = name
        self.field_name = field_name
        self.prompt = prompt
        self.check = check

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.account_id_spec(
            self.field_name,
            self.prompt,
            check=self.check(previous.config) if self.check is not None else None,
        )


def _transaction_callbacks(signer_id: str, receiver_id: str, chain) -> dict:
    return {
        CallbackRole.AFTER_NETWORK_SELECTED: MaterializeActionChain(signer_id, receiver_id, chain),
        CallbackRole.BEFORE_SIGNING: PrintTransactionSummary(),
    }


class SingleActionStage(Stage):
    """Resolve the fields of one action and schedule it as the whole transaction."""

    def __init__(self, name: str, kind: ActionKind, signer_field: str, receiver_field: str) -> None:
        self.name = name
        self.kind = kind
        self.signer_field = signer_field
        self.receiver_field = receiver_field

    def scope(
        self, previous: StageContext, resolver: FieldResolver, arguments: Mapping[str, Any]
    ) -> dict[str, Field]:
        builder = ActionChainBuilder(resolver, previous.config, (self.kind,))
        action = builder.build_action(self.kind, arguments)
        return {"action": Field("action", action, FieldSource.DERIVED)}

    def from_previous_context(self, previous: StageContext, scope: Mapping[str, Field]) -> StageContext:
        chain = chain_from_actions([scope["action"].value])
        return previous.extend(
            self.name,
            actions=chain,
            callbacks=_transaction_callbacks(
                previous.value(self.signer_field), previous.value(self.receiver_field), chain
            ),
            fill_default_callbacks=True,
        )


class ActionSelectionStage(Stage):
    """Build an action chain from ``--actions-json`` or the action menu."""

    name = "action-selection"

    def __init__(self, signer_field: str, receiver_field: str, allowed_kinds=ALL_ACTION_KINDS) -> None:
        self.signer_field = signer_field
        self.receiver_field = receiver_field
        self.allowed_kinds = tuple(allowed_kinds)

    def scope(
        self, previous: StageContext, resolver: FieldResolver, arguments: Mapping[str, Any]
    ) -> dict[str, Field]:
        supplied = arguments.get("actions_json")
        if supplied is not None and not isinstance(supplied, list):
            raise InvalidInputError("--actions-json must be a JSON list of action objects")
        builder = ActionChainBuilder(resolver, previous.config, self.allowed_kinds)
        chain = builder.build(supplied)
        source = FieldSource.ARGUMENT if supplied is not None else FieldSource.INTERACTIVE
        return {"actions": Field("actions", chain, source)}

    def from_previous_context(self, previous: StageContext, scope: Mapping[str, Field]) -> StageContext:
        chain = scope["actions"].value
        return previous.extend(
            self.name,
            actions=chain,
            callbacks=_transaction_callbacks(
                previous.value(self.signer_field), previous.value(self.receiver_field), chain
            ),
            fill_default_callbacks=True,
        )
