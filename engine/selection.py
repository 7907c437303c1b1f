"""Category / tag selection prompts.

Both calls suspend the pipeline until the user is done and resolve exactly
once.  Cancelling and confirming an empty choice both resolve to ``[]``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, Protocol

logger = logging.getLogger("autodesc.engine.selection")

# Persists a newly created category and returns the refreshed option list.
CategoryCreator = Callable[[str], list[str]]


class SelectionPrompt(Protocol):
    async def choose_category(self, options: list[str]) -> list[str]: ...

    async def choose_tags(self, options: list[str]) -> list[str]: ...


def _pick(answer: str, options: list[str]) -> str | None:
    if answer.isdigit():
        index = int(answer) - 1
        return options[index] if 0 <= index < len(options) else None
    return answer if answer in options else None


class TerminalSelectionPrompt:
    """Numbered console menu.

    Category menu: a number or exact name selects, ``+name`` creates a new
    category, ``0`` confirms no category, Enter or ``q`` cancels.
    Tag menu: numbers separated by spaces or commas, ``a`` keeps all.
    """

    def __init__(
        self,
        *,
        on_create: CategoryCreator | None = None,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ) -> None:
        self._on_create = on_create
        self._input = input_func
        self._output = output

    async def choose_category(self, options: list[str]) -> list[str]:
        return await asyncio.to_thread(self._category_menu, list(options))

    async def choose_tags(self, options: list[str]) -> list[str]:
        return await asyncio.to_thread(self._tag_menu, list(options))

    def _ask(self) -> str | None:
        try:
            return self._input("> ").strip()
        except EOFError:
            return None

    def _render(self, title: str, options: list[str]) -> None:
        self._output(title)
        for number, option in enumerate(options, start=1):
            self._output(f"  {number}) {option}")

    def _category_menu(self, options: list[str]) -> list[str]:
        while True:
            self._render("Choose a category:", options)
            self._output("  0) none    +name) new category    Enter/q) cancel")
            answer = self._ask()
            if answer is None or answer in ("", "q"):
                logger.debug("Category selection cancelled.")
                return []
            if answer == "0":
                return []
            if answer.startswith("+"):
                name = answer[1:].strip()
                if not name:
                    self._output("Category name must not be empty.")
                elif name in options:
                    self._output(f"Category already exists: {name}")
                elif self._on_create is not None:
                    options = list(self._on_create(name))
                else:
                    options = [*options, name]
                continue
            choice = _pick(answer, options)
            if choice is not None:
                return [choice]
            self._output(f"Invalid choice: {answer}")

    def _tag_menu(self, options: list[str]) -> list[str]:
        while True:
            self._render("Keep which tags?", options)
            self._output("  a) all    0) none    Enter/q) cancel")
            answer = self._ask()
            if answer is None or answer in ("", "q", "0"):
                return []
            if answer == "a":
                return options
            picks = [_pick(part, options) for part in re.split(r"[\s,]+", answer) if part]
            if picks and all(p is not None for p in picks):
                return list(dict.fromkeys(picks))
            self._output(f"Invalid choice: {answer}")


class PresetSelectionPrompt:
    """Resolves to choices made up front (command-line flags, HTTP request)."""

    def __init__(
        self,
        *,
        category: str | None = None,
        tags: list[str] | None = None,
        on_create: CategoryCreator | None = None,
    ) -> None:
        self._category = category.strip() if category else None
        self._tags = tags
        self._on_create = on_create

    async def choose_category(self, options: list[str]) -> list[str]:
        if not self._category:
            return []
        if self._category not in options and self._on_create is not None:
            self._on_create(self._category)
        return [self._category]

    async def choose_tags(self, options: list[str]) -> list[str]:
        if self._tags is None:
            return list(options)
        wanted = set(self._tags)
        return [t for t in options if t in wanted]
