"""Singly linked chains of transaction actions ending in a terminal node.

A chain is built either from structured arguments (a JSON list of action
objects) or interactively, one menu choice per position with a "skip" choice
that ends the chain. Node construction enforces the tail invariant, so a
chain that exists is always finite and terminated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Sequence

from . import specs
from .actions import (
    AccessKey,
    Action,
    AddKeyAction,
    CreateAccountAction,
    DeleteAccountAction,
    DeleteKeyAction,
    FullAccessPermission,
    FunctionCallAction,
    FunctionCallPermission,
    TransferAction,
)
from .config import Config
from .errors import ConstructionError, ConstructionInvariantViolation, InvalidInputError
from .fields import FieldResolver

logger = logging.getLogger(__name__)


class ActionKind(Enum):
    CREATE_ACCOUNT = "create-account"
    DELETE_ACCOUNT = "delete-account"
    ADD_KEY = "add-key"
    DELETE_KEY = "delete-key"
    TRANSFER = "transfer"
    FUNCTION_CALL = "function-call"
    TERMINAL = "skip"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ActionKind.CREATE_ACCOUNT: "Create an account",
    ActionKind.DELETE_ACCOUNT: "Delete an account",
    ActionKind.ADD_KEY: "Add an access key",
    ActionKind.DELETE_KEY: "Delete an access key",
    ActionKind.TRANSFER: "Transfer NEAR tokens",
    ActionKind.FUNCTION_CALL: "Call a function",
    ActionKind.TERMINAL: "Skip adding a new action",
}

_KIND_OF_ACTION = {
    CreateAccountAction: ActionKind.CREATE_ACCOUNT,
    DeleteAccountAction: ActionKind.DELETE_ACCOUNT,
    AddKeyAction: ActionKind.ADD_KEY,
    DeleteKeyAction: ActionKind.DELETE_KEY,
    TransferAction: ActionKind.TRANSFER,
    FunctionCallAction: ActionKind.FUNCTION_CALL,
}

ALL_ACTION_KINDS: tuple[ActionKind, ...] = tuple(_KIND_OF_ACTION.values())


@dataclass(frozen=True)
class ActionNode:
    """One position of an action chain.

    Non-terminal nodes carry an action and a successor; the terminal node
    carries neither.
    """

    kind: ActionKind
    action: Action | None = None
    next: "ActionNode | None" = None

    def __post_init__(self) -> None:
        if self.kind is ActionKind.TERMINAL:
            if self.action is not None or self.next is not None:
                raise ConstructionInvariantViolation("terminal node cannot carry an action or successor")
            return
        if self.action is None or _KIND_OF_ACTION.get(type(self.action)) is not self.kind:
            raise ConstructionInvariantViolation(
                f"{self.kind.value} node must carry a matching action, got {self.action!r}"
            )
        if not isinstance(self.next, ActionNode):
            raise ConstructionInvariantViolation(
                f"{self.kind.value} node has no successor; chains must end with a terminal node"
            )

    @classmethod
    def terminal(cls) -> "ActionNode":
        return cls(ActionKind.TERMINAL)

    @classmethod
    def of(cls, action: Action, next_node: "ActionNode") -> "ActionNode":
        kind = _KIND_OF_ACTION.get(type(action))
        if kind is None:
            raise ConstructionInvariantViolation(f"unknown action type {type(action).__name__}")
        return cls(kind, action, next_node)

    @property
    def is_terminal(self) -> bool:
        return self.kind is ActionKind.TERMINAL

    def nodes(self) -> Iterator["ActionNode"]:
        node: ActionNode | None = self
        while node is not None:
            yield node
            node = node.next

    def __iter__(self) -> Iterator[Action]:
        for node in self.nodes():
            if node.action is not None:
                yield node.action

    def actions(self) -> tuple[Action, ...]:
        return tuple(self)

    def __len__(self) -> int:
        return sum(1 for _ in self)


def chain_from_actions(actions: Iterable[Action]) -> ActionNode:
    """Link ``actions`` in order, ending with a terminal node."""

    node = ActionNode.terminal()
    for action in reversed(list(actions)):
        node = ActionNode.of(action, node)
    return node


class ActionChainBuilder:
    """Build an action chain from arguments or interactive menus."""

    def __init__(
        self,
        resolver: FieldResolver,
        config: Config,
        allowed_kinds: Sequence[ActionKind] = ALL_ACTION_KINDS,
    ) -> None:
        self.resolver = resolver
        self.config = config
        self.allowed_kinds = tuple(allowed_kinds)

    def build(self, supplied: Sequence[Mapping[str, Any]] | None) -> ActionNode:
        if supplied is not None:
            actions = self._actions_from_arguments(supplied)
        elif not self.resolver.interactive:
            raise InvalidInputError("missing required argument --actions-json")
        else:
            actions = self._actions_from_prompts()
        logger.debug("Action chain: %s", [action.describe() for action in actions] or "empty")
        return chain_from_actions(actions)

    def _actions_from_arguments(self, supplied: Sequence[Mapping[str, Any]]) -> list[Action]:
        actions: list[Action] = []
        for position, entry in enumerate(supplied, start=1):
            if not isinstance(entry, Mapping) or "kind" not in entry:
                raise ConstructionError(f"action #{position} must be an object with a 'kind'")
            kind = self._kind(entry["kind"], position)
            if kind is ActionKind.TERMINAL:
                if position != len(supplied):
                    raise ConstructionError(
                        f"action #{position} ends the chain but {len(supplied) - position} more follow"
                    )
                break
            actions.append(self.build_action(kind, entry))
        return actions

    def _actions_from_prompts(self) -> list[Action]:
        actions: list[Action] = []
        menu = [*self.allowed_kinds, ActionKind.TERMINAL]
        while True:
            index = self.resolver.prompter.select(
                "Select an action that you want to add to the transaction:",
                [kind.label for kind in menu],
            )
            kind = menu[index]
            if kind is ActionKind.TERMINAL:
                return actions
            actions.append(self.build_action(kind, None))

    def _kind(self, raw: Any, position: int) -> ActionKind:
        try:
            kind = ActionKind(str(raw).strip().lower())
        except ValueError:
            raise ConstructionError(f"action #{position}: unknown action kind <{raw}>") from None
        if kind is not ActionKind.TERMINAL and kind not in self.allowed_kinds:
            raise ConstructionError(
                f"action #{position}: <{kind.value}> is not supported here; allowed: "
                + ", ".join(k.value for k in self.allowed_kinds)
            )
        return kind

    def build_action(self, kind: ActionKind, entry: Mapping[str, Any] | None) -> Action:
        """Resolve the fields of one action; ``entry`` holds supplied values, if any."""

        def value(spec):
            supplied = entry.get(spec.name) if entry is not None else None
            return self.resolver.resolve_value(spec, supplied)

        if kind is ActionKind.CREATE_ACCOUNT:
            return CreateAccountAction()
        if kind is ActionKind.DELETE_ACCOUNT:
            beneficiary = value(
                specs.account_id_spec(
                    "beneficiary_id",
                    "What is the beneficiary account ID?",
                    check=specs.warn_if_missing(self.config),
                )
            )
            return DeleteAccountAction(beneficiary)
        if kind is ActionKind.ADD_KEY:
            public_key = value(specs.public_key_spec("public_key", "Enter the public key to add"))
            permission_kind = value(
                specs.choice_spec(
                    "permission",
                    "Select a permission for this access key:",
                    ["full-access", "function-call"],
                    default="full-access",
                )
            )
            if permission_kind == "full-access":
                permission = FullAccessPermission()
            else:
                permission = FunctionCallPermission(
                    receiver_id=value(
                        specs.account_id_spec("receiver_id", "Which contract may this key call?")
                    ),
                    method_names=value(
                        specs.method_names_spec(
                            "method_names", "Comma-separated method names (blank for any method)"
                        )
                    ),
                    allowance=value(
                        specs.optional_amount_spec(
                            "allowance", "Allowance in NEAR (blank for unlimited)"
                        )
                    ),
                )
            return AddKeyAction(public_key, AccessKey(nonce=0, permission=permission))
        if kind is ActionKind.DELETE_KEY:
            return DeleteKeyAction(
                value(specs.public_key_spec("public_key", "Enter the public key to delete"))
            )
        if kind is ActionKind.TRANSFER:
            return TransferAction(
                value(
                    specs.amount_spec(
                        "amount", "How many NEAR tokens do you want to transfer? (example: 10 NEAR)"
                    )
                )
            )
        if kind is ActionKind.FUNCTION_CALL:
            return FunctionCallAction(
                method_name=value(
                    specs.method_name_spec("method_name", "What is the name of the function?")
                ),
                args=value(specs.json_args_spec("args", "Enter the function arguments as JSON")),
                gas=value(specs.gas_spec("gas", "Enter the gas for the function call")),
                deposit=value(
                    specs.amount_spec(
                        "deposit", "Enter the deposit for the function call", default="0 NEAR"
                    )
                ),
            )
        raise ConstructionError(f"<{kind.value}> does not describe an action")
