"""Command registry: which stages each top-level command runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

from .. import specs
from ..config import Config
from ..context import FieldStage, Stage, StageContext, run_stages
from ..fields import Field, FieldResolver, FieldSpec
from ..submission import submission_stages, view_stages
from . import account, contract, tokens, transaction


@dataclass(frozen=True)
class Command:
    group: str
    name: str
    help: str
    stages: Callable[[], list]
    view_only: bool = False

    @property
    def key(self) -> str:
        return f"{self.group} {self.name}"


COMMANDS: dict[str, Command] = {
    command.key: command
    for command in (
        Command("account", "create-account", "Create a new account", account.create_account_stages),
        Command("account", "add-key", "Add an access key to an account", account.add_key_stages),
        Command("account", "delete-key", "Delete an access key from an account", account.delete_key_stages),
        Command("account", "delete-account", "Delete an account", account.delete_account_stages),
        Command("tokens", "send-near", "Transfer NEAR tokens", tokens.send_near_stages),
        Command(
            "transaction",
            "construct-transaction",
            "Construct a transaction from a chain of actions",
            transaction.construct_transaction_stages,
        ),
        Command(
            "contract",
            "inspect",
            "Download a contract and list its functions",
            contract.inspect_stages,
            view_only=True,
        ),
    )
}


class CommandSelectionStage(FieldStage):
    name = "command-selection"

    def field_specs(self, previous: StageContext, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.choice_spec("command", "What are you going to do?", list(COMMANDS))


def build_pipeline(command_key: str) -> list[Stage]:
    """Entity stages of ``command_key`` followed by network and submission stages.

    View-only commands end with network and block selection instead of
    signing and sending.
    """

    command = COMMANDS[command_key]
    tail = view_stages() if command.view_only else submission_stages()
    return [*command.stages(), *tail]


def assemble(config: Config, resolver: FieldResolver, arguments: Mapping[str, Any]) -> StageContext:
    """Run every construction stage and return the final context."""

    context = run_stages(
        [CommandSelectionStage()], StageContext.initial(config), resolver, arguments
    )
    return run_stages(build_pipeline(context.value("command")), context, resolver, arguments)
