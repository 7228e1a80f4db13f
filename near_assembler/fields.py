"""Resolve one configuration value from an argument or an interactive prompt.

A :class:`FieldSpec` owns the parsing/validation of a value; the two
strategies only decide where the raw text comes from. Pre-supplied values that
fail validation are never accepted silently: the resolver falls back to the
prompt, or fails when prompts are disabled.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Sequence, TypeVar

from .errors import InvalidInputError
from .prompts import Prompter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FieldSource(Enum):
    ARGUMENT = "argument"
    INTERACTIVE = "interactive"
    DERIVED = "derived"


@dataclass(frozen=True)
class Field(Generic[T]):
    """A value that passed its validation, tagged with where it came from."""

    name: str
    value: T
    source: FieldSource


@dataclass(frozen=True)
class FieldSpec:
    """How to obtain and validate one field.

    ``parse`` turns raw input into the field value and raises
    :class:`InvalidInputError` when the input is unacceptable. ``check``
    reports a recoverable ambiguity (for example an account that does not
    exist yet) as a message; the operator may then keep the value anyway.
    ``derive`` offers a value computed from earlier context that is accepted
    without prompting when it is not None.
    """

    name: str
    prompt: str
    parse: Callable[[Any], Any] = str
    check: Callable[[Any], str | None] | None = None
    derive: Callable[[], Any] | None = None
    default: str | None = None
    choices: Sequence[str] | None = None

    @property
    def flag(self) -> str:
        return "--" + self.name.replace("_", "-")


class ArgumentStrategy:
    """Take the value from structured arguments."""

    def resolve(self, spec: FieldSpec, supplied: Any) -> Field:
        return Field(spec.name, spec.parse(supplied), FieldSource.ARGUMENT)


class PromptStrategy:
    """Ask the operator until the value validates."""

    def __init__(self, prompter: Prompter) -> None:
        self.prompter = prompter

    def resolve(self, spec: FieldSpec) -> Field:
        while True:
            if spec.choices:
                index = self.prompter.select(spec.prompt, list(spec.choices))
                raw: str = spec.choices[index]
            else:
                raw = self.prompter.text(spec.prompt, default=spec.default)
            try:
                value = spec.parse(raw)
            except InvalidInputError as exc:
                print(f"Invalid value: {exc}")
                continue
            warning = spec.check(value) if spec.check is not None else None
            if warning and not self._keep_anyway(spec, warning):
                continue
            return Field(spec.name, value, FieldSource.INTERACTIVE)

    def _keep_anyway(self, spec: FieldSpec, warning: str) -> bool:
        print(f"\n{warning}")
        label = spec.name
        choice = self.prompter.select(
            f"Do you want to enter a new value for {label}?",
            [
                f"Yes, I want to enter a new value for {label}.",
                f"No, I want to use this value for {label}.",
            ],
        )
        return choice == 1


class FieldResolver:
    """Single entry point used by every stage to resolve its fields."""

    def __init__(self, prompter: Prompter | None = None, *, interactive: bool = True) -> None:
        self.interactive = interactive
        self._argument = ArgumentStrategy()
        self._prompt = PromptStrategy(prompter or Prompter())

    @property
    def prompter(self) -> Prompter:
        return self._prompt.prompter

    def resolve(self, spec: FieldSpec, supplied: Any = None) -> Field:
        if supplied is not None:
            try:
                return self._argument.resolve(spec, supplied)
            except InvalidInputError as exc:
                if not self.interactive:
                    raise InvalidInputError(f"{spec.flag}: {exc}") from exc
                logger.warning("Ignoring invalid %s: %s", spec.flag, exc)
                print(f"The supplied value for {spec.name} is invalid: {exc}")
        if spec.derive is not None:
            derived = spec.derive()
            if derived is not None:
                logger.info("Using %s=%s derived from earlier input", spec.name, derived)
                return Field(spec.name, derived, FieldSource.DERIVED)
        if not self.interactive:
            if spec.default is not None:
                return Field(spec.name, spec.parse(spec.default), FieldSource.DERIVED)
            raise InvalidInputError(f"missing required argument {spec.flag}")
        return self._prompt.resolve(spec)

    def resolve_value(self, spec: FieldSpec, supplied: Any = None) -> Any:
        return self.resolve(spec, supplied).value
