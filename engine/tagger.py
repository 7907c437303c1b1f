"""Step 2: Tags."""

from __future__ import annotations

import logging
import re

from prompts.system_prompt import TAG_PROMPT
from services.llm_service import CompletionClient

logger = logging.getLogger("autodesc.engine.tagger")

# ASCII comma, full-width comma, enumeration comma, newline.
_TAG_SEPARATORS = re.compile(r"[,，、\r\n]+")


def parse_tags(text: str) -> list[str]:
    """Split a raw tag completion into trimmed, non-empty tags."""
    return [t.strip() for t in _TAG_SEPARATORS.split(text) if t.strip()]


async def generate_tags(client: CompletionClient, document: str) -> list[str]:
    raw = await client.complete(document, TAG_PROMPT)
    tags = parse_tags(raw)
    if not tags:
        logger.warning("Provider returned no usable tags: %r", raw[:200])
    return tags
