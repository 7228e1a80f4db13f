"""Append-only stage contexts and the sequential stage runner.

Each stage resolves its own fields (``scope``) and then builds the next
context from the previous one (``from_previous_context``). The runner checks
after every step that the new context still holds everything the previous one
held, unchanged.
"""

from __future__ import annotations

import logging
from abc import ABC
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping, Sequence

from .action_chain import ActionNode
from .callbacks import AfterBlockSelected, CallbackRegistry, CallbackRole
from .config import Config
from .errors import ConstructionInvariantViolation
from .fields import Field, FieldResolver, FieldSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageContext:
    """Everything accumulated by the stages that ran so far."""

    config: Config
    fields: Mapping[str, Field] = field(default_factory=lambda: MappingProxyType({}))
    actions: ActionNode | None = None
    callbacks: CallbackRegistry = field(default_factory=CallbackRegistry)
    stages: tuple[str, ...] = ()
    view: AfterBlockSelected | None = None

    @classmethod
    def initial(cls, config: Config) -> "StageContext":
        return cls(config=config, stages=("global-config",))

    def lookup(self, name: str) -> Field:
        try:
            return self.fields[name]
        except KeyError:
            raise ConstructionInvariantViolation(
                f"stage needs field <{name}> but no earlier stage provided it "
                f"(stages so far: {', '.join(self.stages)})"
            ) from None

    def value(self, name: str) -> Any:
        return self.lookup(name).value

    def get(self, name: str, default: Any = None) -> Any:
        found = self.fields.get(name)
        return found.value if found is not None else default

    def extend(
        self,
        stage: str,
        *,
        fields: Iterable[Field] = (),
        actions: ActionNode | None = None,
        callbacks: Mapping[CallbackRole, Any] | None = None,
        fill_default_callbacks: bool = False,
        view: AfterBlockSelected | None = None,
    ) -> "StageContext":
        """Return a new context with this stage's contribution appended."""

        merged = dict(self.fields)
        for item in fields:
            if item.name in merged:
                raise ConstructionInvariantViolation(
                    f"stage {stage} tried to overwrite field <{item.name}>"
                )
            merged[item.name] = item

        if actions is not None and self.actions is not None:
            raise ConstructionInvariantViolation(f"stage {stage} tried to replace the action chain")
        if view is not None and not isinstance(view, AfterBlockSelected):
            raise ConstructionInvariantViolation(
                f"{type(view).__name__} cannot be registered as the view callback"
            )
        if view is not None and self.view is not None:
            raise ConstructionInvariantViolation(f"stage {stage} tried to replace the view callback")

        registry = self.callbacks
        for role, callback in (callbacks or {}).items():
            registry = registry.register(role, callback)
        if fill_default_callbacks:
            registry = registry.with_defaults()

        return StageContext(
            config=self.config,
            fields=MappingProxyType(merged),
            actions=actions if actions is not None else self.actions,
            callbacks=registry,
            stages=self.stages + (stage,),
            view=view if view is not None else self.view,
        )

    def extends(self, previous: "StageContext") -> bool:
        """True when this context holds everything ``previous`` held, unchanged."""

        return (
            self.config is previous.config
            and all(self.fields.get(name) is item for name, item in previous.fields.items())
            and (previous.actions is None or self.actions is previous.actions)
            and (previous.view is None or self.view is previous.view)
            and self.callbacks.contains(previous.callbacks)
            and self.stages[: len(previous.stages)] == previous.stages
            and len(self.stages) > len(previous.stages)
        )


class Stage(ABC):
    """One step of the pipeline.

    ``scope`` performs field resolution (and so may prompt); it must not
    touch the network except for advisory checks. ``from_previous_context``
    is a pure function of the previous context and the resolved scope.
    """

    name = "stage"

    def scope(
        self, previous: StageContext, resolver: FieldResolver, arguments: Mapping[str, Any]
    ) -> dict[str, Field]:
        return {}

    def from_previous_context(self, previous: StageContext, scope: Mapping[str, Field]) -> StageContext:
        return previous.extend(self.name, fields=scope.values())


def run_stages(
    stages: Sequence[Stage],
    initial: StageContext,
    resolver: FieldResolver,
    arguments: Mapping[str, Any],
) -> StageContext:
    """Thread ``initial`` through ``stages`` in order and return the final context."""

    context = initial
    for stage in stages:
        scope = stage.scope(context, resolver, arguments)
        next_context = stage.from_previous_context(context, scope)
        if not next_context.extends(context):
            raise ConstructionInvariantViolation(
                f"stage {stage.name} dropped or changed state contributed by earlier stages"
            )
        logger.debug(
            "Stage %s contributed %s",
            stage.name,
            sorted(set(next_context.fields) - set(context.fields)) or "no fields",
        )
        context = next_context
    return context


class FieldStage(Stage):
    """A stage that resolves a sequence of field specs and appends them.

    ``field_specs`` is consumed lazily, so a spec may depend on the values
    resolved earlier in the same stage (passed in ``resolved``).
    """

    def field_specs(
        self, previous: StageContext, resolved: Mapping[str, Field]
    ) -> Iterator[FieldSpec]:
        return iter(())

    def scope(
        self, previous: StageContext, resolver: FieldResolver, arguments: Mapping[str, Any]
    ) -> dict[str, Field]:
        resolved: dict[str, Field] = {}
        for spec in self.field_specs(previous, resolved):
            resolved[spec.name] = resolver.resolve(spec, arguments.get(spec.name))
        return resolved
