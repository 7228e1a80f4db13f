"""Terminal prompt helpers used for interactive field resolution."""

from __future__ import annotations

from typing import Sequence

from .errors import PromptAbortedError


def _read(prompt: str) -> str:
    try:
        return input(prompt)
    except (KeyboardInterrupt, EOFError) as exc:
        print()
        raise PromptAbortedError("Operation was interrupted by the user") from exc


class Prompter:
    """Plain ``input()`` based prompts.

    Every prompt maps Ctrl-C and end-of-input to :class:`PromptAbortedError`
    so an aborted prompt is an ordinary terminal failure of the run.
    """

    def text(self, message: str, default: str | None = None) -> str:
        """Prompt for a string value, honoring an optional default."""

        suffix = f" [{default}]" if default is not None else ""
        while True:
            raw = _read(f"{message}{suffix}: ").strip()
            if raw:
                return raw
            if default is not None:
                return default
            print("Please enter a value.")

    def select(self, message: str, options: Sequence[str], default: int = 0) -> int:
        """Show a numbered menu and return the index of the chosen option."""

        if not options:
            raise ValueError("select() needs at least one option")
        print(f"\n{message}")
        for index, label in enumerate(options, start=1):
            print(f"  [{index}] {label}")
        while True:
            raw = _read(f"Select an option [{default + 1}]: ").strip()
            if not raw:
                return default
            if raw.isdigit() and 1 <= int(raw) <= len(options):
                return int(raw) - 1
            lowered = raw.lower()
            for index, label in enumerate(options):
                if label.lower() == lowered:
                    return index
            print("Invalid selection, please try again.")
