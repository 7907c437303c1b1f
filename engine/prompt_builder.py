"""Instruction builder: fills the summary template."""

from __future__ import annotations

import logging

from prompts.system_prompt import LENGTH_PLACEHOLDER

logger = logging.getLogger("autodesc.engine.prompt_builder")


def build_summary_instruction(template: str, length: int) -> str:
    """Return *template* with every ``{length}`` replaced by *length*.

    A template without the placeholder is returned unchanged, so applying
    this twice is a no-op.
    """
    if LENGTH_PLACEHOLDER not in template:
        logger.debug("Summary template has no %s placeholder.", LENGTH_PLACEHOLDER)
        return template
    return template.replace(LENGTH_PLACEHOLDER, str(length))
