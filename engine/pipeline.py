"""Pipeline orchestrator: description, tags, category, front-matter rewrite."""

from __future__ import annotations

import logging
import time
from typing import Protocol

from config import Settings
from engine.document import Document
from engine.front_matter import FrontMatterError, apply_generation, parse_document
from engine.selection import SelectionPrompt
from engine.summarizer import summarize
from engine.tagger import generate_tags
from schemas.response import GenerationOutcome, GenerationResult
from services.llm_service import (
    ChatProvider,
    CompletionClient,
    LLMError,
    MissingAPIKeyError,
    UnsupportedProviderError,
    get_completion_client,
)

logger = logging.getLogger("autodesc.pipeline")


class PreconditionError(Exception):
    """The action cannot start on this document / configuration."""


class Notifier(Protocol):
    def notify(self, message: str, level: str = "info") -> None: ...


class LogNotifier:
    """Routes user notices to the ``autodesc.notice`` logger."""

    _logger = logging.getLogger("autodesc.notice")

    def notify(self, message: str, level: str = "info") -> None:
        self._logger.log(logging.getLevelName(level.upper()), message)


def _error_kind(exc: Exception) -> str:
    if isinstance(exc, (PreconditionError, FrontMatterError, MissingAPIKeyError, UnicodeDecodeError)):
        return "precondition"
    if isinstance(exc, UnsupportedProviderError):
        return "configuration"
    if isinstance(exc, OSError):
        return "io"
    return "upstream"


def check_preconditions(content: str, settings: Settings) -> None:
    """Fail before any network call when the action cannot succeed."""
    if not content or not content.strip():
        raise PreconditionError("Document is empty; nothing to summarize.")
    if not settings.api_key:
        raise PreconditionError("API key is not configured.")
    # Raises FrontMatterError on an unterminated block.
    parse_document(content)


async def run_pipeline(
    document: Document,
    *,
    settings: Settings,
    selector: SelectionPrompt,
    notifier: Notifier | None = None,
    client: CompletionClient | None = None,
) -> GenerationOutcome:
    """Generate description / tags / category for *document* and write them back.

    The document is written once, and only after every step succeeded.
    Failures are reported through *notifier* and returned in the outcome.

    Parameters
    ----------
    document : Document
        Source of the text; receives the rewritten text on success.
    settings : Settings
        Provider, key, summary length, prompt template and categories.
    selector : SelectionPrompt
        Resolves the category (and the tags when ``review_tags`` is on).
    notifier : Notifier | None
        Receives user notices; defaults to :class:`LogNotifier`.
    client : CompletionClient | None
        Completion client to use.  When omitted one is built from
        *settings* and closed before returning.

    Returns
    -------
    GenerationOutcome
        ``ok`` with the result and new content, or the error message and
        its kind (``precondition``, ``configuration``, ``upstream``, ``io``).
    """
    notifier = notifier or LogNotifier()
    t0 = time.perf_counter()
    owned: ChatProvider | None = None

    try:
        content = document.read()
        check_preconditions(content, settings)
        if client is None:
            client = owned = get_completion_client(settings)

        notifier.notify("Generating description...")

        # ── Step 1: Description ────────────────────────────────────────
        summary = await summarize(client, content, settings)

        # ── Step 2: Tags ───────────────────────────────────────────────
        tags = await generate_tags(client, content)
        if settings.review_tags and tags:
            tags = await selector.choose_tags(tags)
        logger.info("Steps 1/2 complete: %d chars, %d tags", len(summary), len(tags))

        # ── Step 3: Category ───────────────────────────────────────────
        categories = (await selector.choose_category(list(settings.categories)))[:1]

        # ── Step 4: Rewrite ────────────────────────────────────────────
        result = GenerationResult(description=summary, tags=tags, categories=categories)
        new_content = apply_generation(content, result)
        document.write(new_content)
    except (PreconditionError, FrontMatterError, LLMError, UnicodeDecodeError, OSError) as exc:
        logger.warning("Generation aborted: %s", exc)
        notifier.notify(f"Failed to generate description: {exc}", level="error")
        return GenerationOutcome(ok=False, error=str(exc), error_kind=_error_kind(exc))
    finally:
        if owned is not None:
            await owned.aclose()

    elapsed = time.perf_counter() - t0
    logger.info("Pipeline complete in %.2fs", elapsed)
    notifier.notify("Description generated.")
    return GenerationOutcome(ok=True, result=result, content=new_content)
