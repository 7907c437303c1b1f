"""Step 1: Description."""

from __future__ import annotations

import logging

from config import Settings
from engine.prompt_builder import build_summary_instruction
from services.llm_service import CompletionClient

logger = logging.getLogger("autodesc.engine.summarizer")


async def summarize(client: CompletionClient, document: str, settings: Settings) -> str:
    """Return a summary of *document* no longer than ``settings.summary_length``."""
    instruction = build_summary_instruction(settings.custom_prompt, settings.summary_length)
    summary = await client.complete(document, instruction)
    if not summary:
        logger.warning("Provider returned an empty summary.")
    return summary
