from typing import Any, Iterator, Mapping

import pytest

from near_assembler import specs
from near_assembler.action_chain import chain_from_actions
from near_assembler.actions import CreateAccountAction
from near_assembler.callbacks import CallbackRole, NoOpAfterSending, PrintTransactionSummary
from near_assembler.context import FieldStage, Stage, StageContext, run_stages
from near_assembler.errors import ConstructionInvariantViolation
from near_assembler.fields import Field, FieldResolver, FieldSource, FieldSpec


class SignerStage(FieldStage):
    name = "signer"

    def field_specs(self, previous, resolved: Mapping[str, Field]) -> Iterator[FieldSpec]:
        yield specs.account_id_spec("signer_account_id", "Signer?")
        # later specs of the same stage may read earlier ones
        signer = resolved["signer_account_id"].value
        yield specs.account_id_spec("receiver_account_id", "Receiver?", derive=lambda: signer)


class ForgetfulStage(Stage):
    name = "forgetful"

    def from_previous_context(self, previous: StageContext, scope) -> StageContext:
        return StageContext(config=previous.config, stages=previous.stages + (self.name,))


def _field(name: str, value: Any) -> Field:
    return Field(name, value, FieldSource.ARGUMENT)


def test_run_stages_accumulates_fields_in_order(config) -> None:
    context = run_stages(
        [SignerStage()],
        StageContext.initial(config),
        FieldResolver(interactive=False),
        {"signer_account_id": "alice.testnet"},
    )

    assert context.value("signer_account_id") == "alice.testnet"
    assert context.value("receiver_account_id") == "alice.testnet"
    assert context.lookup("receiver_account_id").source is FieldSource.DERIVED
    assert context.stages == ("global-config", "signer")


def test_extend_keeps_previous_fields_unchanged(config) -> None:
    first = StageContext.initial(config).extend("one", fields=[_field("a", 1)])
    second = first.extend("two", fields=[_field("b", 2)])

    assert second.lookup("a") is first.lookup("a")
    assert second.extends(first)
    assert dict(first.fields) == {"a": first.lookup("a")}


def test_extend_rejects_overwriting_a_field(config) -> None:
    context = StageContext.initial(config).extend("one", fields=[_field("a", 1)])

    with pytest.raises(ConstructionInvariantViolation, match="overwrite field <a>"):
        context.extend("two", fields=[_field("a", 2)])


def test_extend_rejects_replacing_the_action_chain(config) -> None:
    chain = chain_from_actions([CreateAccountAction()])
    context = StageContext.initial(config).extend("actions", actions=chain)

    with pytest.raises(ConstructionInvariantViolation):
        context.extend("again", actions=chain_from_actions([]))


def test_extend_rejects_reregistering_a_callback(config) -> None:
    context = StageContext.initial(config).extend(
        "one", callbacks={CallbackRole.BEFORE_SIGNING: PrintTransactionSummary()}
    )

    with pytest.raises(ConstructionInvariantViolation, match="already registered"):
        context.extend("two", callbacks={CallbackRole.BEFORE_SIGNING: PrintTransactionSummary()})


def test_extend_can_fill_remaining_callbacks_with_no_ops(config) -> None:
    context = StageContext.initial(config).extend("one", fill_default_callbacks=True)

    assert isinstance(context.callbacks.get(CallbackRole.AFTER_SENDING), NoOpAfterSending)
    assert context.callbacks.missing_roles() == [CallbackRole.AFTER_NETWORK_SELECTED]


def test_reading_a_field_no_stage_provided_is_a_defect(config) -> None:
    with pytest.raises(ConstructionInvariantViolation, match="signer_account_id"):
        StageContext.initial(config).value("signer_account_id")


def test_run_stages_rejects_a_stage_that_drops_state(config) -> None:
    with pytest.raises(ConstructionInvariantViolation, match="forgetful"):
        run_stages(
            [SignerStage(), ForgetfulStage()],
            StageContext.initial(config),
            FieldResolver(interactive=False),
            {"signer_account_id": "alice.testnet"},
        )
