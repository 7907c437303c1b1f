"""Tests for the orchestrator with a fake completion client."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config import Settings
from engine.document import FileDocument, TextDocument
from engine.pipeline import run_pipeline
from engine.selection import PresetSelectionPrompt
from services.llm_service import ProviderAPIError, ProviderTransportError
from prompts.system_prompt import TAG_PROMPT


# ── Helpers ────────────────────────────────────────────────────────────

def _settings(**overrides) -> Settings:
    return Settings(**{"api_key": "sk-test", "categories": ["技术", "生活"], **overrides})


def _client(*replies):
    client = AsyncMock()
    client.complete.side_effect = list(replies)
    return client


def _selector(categories: list[str] | None = None, tags: list[str] | None = None):
    selector = AsyncMock()
    selector.choose_category.return_value = categories or []
    selector.choose_tags.return_value = tags or []
    return selector


class _Notices:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def notify(self, message: str, level: str = "info") -> None:
        self.messages.append((level, message))


# ── Preconditions ──────────────────────────────────────────────────────

class TestPreconditions:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n\t  "])
    async def test_empty_document_makes_no_calls(self, text):
        document = TextDocument(text)
        client = _client()
        notices = _Notices()

        outcome = await run_pipeline(
            document, settings=_settings(), selector=_selector(), client=client, notifier=notices
        )

        assert not outcome.ok
        assert outcome.error_kind == "precondition"
        client.complete.assert_not_awaited()
        assert document.writes == 0
        assert document.text == text
        assert notices.messages[-1][0] == "error"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        document = TextDocument("Body")
        client = _client()

        outcome = await run_pipeline(
            document, settings=_settings(api_key=""), selector=_selector(), client=client
        )

        assert not outcome.ok
        assert "API key" in outcome.error
        client.complete.assert_not_awaited()
        assert document.writes == 0

    @pytest.mark.asyncio
    async def test_unclosed_front_matter_makes_no_calls(self):
        document = TextDocument("---\ntitle: T\nBody")
        client = _client()

        outcome = await run_pipeline(document, settings=_settings(), selector=_selector(), client=client)

        assert not outcome.ok
        assert outcome.error_kind == "precondition"
        client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsupported_provider(self):
        document = TextDocument("Body")

        outcome = await run_pipeline(
            document, settings=_settings(api_provider="nope"), selector=_selector()
        )

        assert not outcome.ok
        assert outcome.error_kind == "configuration"
        assert "nope" in outcome.error
        assert document.writes == 0


# ── Happy path ─────────────────────────────────────────────────────────

class TestGeneration:
    @pytest.mark.asyncio
    async def test_full_run(self):
        document = TextDocument("# Note\n\nBody.\n")
        client = _client("这是摘要", "AI, 笔记、工具\n教程")
        selector = _selector(categories=["技术"])
        notices = _Notices()

        outcome = await run_pipeline(
            document, settings=_settings(), selector=selector, client=client, notifier=notices
        )

        assert outcome.ok
        assert outcome.result.description == "这是摘要"
        assert outcome.result.tags == ["AI", "笔记", "工具", "教程"]
        assert outcome.result.categories == ["技术"]
        assert document.writes == 1
        assert document.text == (
            "---\n"
            'description: "这是摘要"\n'
            "tags:\n  - AI\n  - 笔记\n  - 工具\n  - 教程\n"
            "categories:\n  - 技术\n"
            "---\n\n"
            "# Note\n\nBody.\n"
        )
        assert outcome.content == document.text
        assert [level for level, _ in notices.messages] == ["info", "info"]

    @pytest.mark.asyncio
    async def test_instructions_sent(self):
        client = _client("s", "t")

        await run_pipeline(
            TextDocument("Body"), settings=_settings(summary_length=200), selector=_selector(), client=client
        )

        summary_call, tag_call = client.complete.await_args_list
        assert summary_call.args == ("Body", "请为以下内容生成一个简洁的摘要，不超过200字：")
        assert tag_call.args == ("Body", TAG_PROMPT)

    @pytest.mark.asyncio
    async def test_category_offered_from_settings(self):
        selector = _selector()

        await run_pipeline(TextDocument("Body"), settings=_settings(), selector=selector, client=_client("s", "t"))

        selector.choose_category.assert_awaited_once_with(["技术", "生活"])

    @pytest.mark.asyncio
    async def test_cancelled_category_omits_key(self):
        document = TextDocument("---\ntitle: T\ncategories:\n  - 旧\n---\nBody")

        outcome = await run_pipeline(
            document, settings=_settings(), selector=_selector(categories=[]), client=_client("s", "AI")
        )

        assert outcome.ok
        assert outcome.result.categories == []
        assert "categories:" not in document.text
        assert document.text == '---\ntitle: T\ndescription: "s"\ntags:\n  - AI\n---\nBody'

    @pytest.mark.asyncio
    async def test_tag_review_disabled_by_default(self):
        selector = _selector()

        await run_pipeline(TextDocument("Body"), settings=_settings(), selector=selector, client=_client("s", "a,b"))

        selector.choose_tags.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tag_review(self):
        selector = _selector(tags=["b"])

        outcome = await run_pipeline(
            TextDocument("Body"), settings=_settings(review_tags=True), selector=selector, client=_client("s", "a,b")
        )

        selector.choose_tags.assert_awaited_once_with(["a", "b"])
        assert outcome.result.tags == ["b"]

    @pytest.mark.asyncio
    async def test_preset_selector_creates_category(self):
        created: list[str] = []

        def on_create(name: str) -> list[str]:
            created.append(name)
            return ["技术", "生活", name]

        selector = PresetSelectionPrompt(category="读书", on_create=on_create)
        outcome = await run_pipeline(
            TextDocument("Body"), settings=_settings(), selector=selector, client=_client("s", "t")
        )

        assert outcome.result.categories == ["读书"]
        assert created == ["读书"]

    @pytest.mark.asyncio
    async def test_file_document(self, tmp_path):
        path = tmp_path / "note.md"
        path.write_bytes("---\r\ntitle: T\r\n---\r\nBody\r\n".encode("utf-8"))

        outcome = await run_pipeline(
            FileDocument(path), settings=_settings(), selector=_selector(), client=_client("s", "")
        )

        assert outcome.ok
        assert path.read_bytes().decode("utf-8") == '---\r\ntitle: T\r\ndescription: "s"\r\n---\r\nBody\r\n'

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self):
        fake = MagicMock()
        fake.complete = AsyncMock(side_effect=["s", "t"])
        fake.aclose = AsyncMock()

        with patch("engine.pipeline.get_completion_client", return_value=fake):
            outcome = await run_pipeline(TextDocument("Body"), settings=_settings(), selector=_selector())

        assert outcome.ok
        fake.aclose.assert_awaited_once()


# ── Upstream failures ──────────────────────────────────────────────────

class TestFailures:
    @pytest.mark.asyncio
    async def test_tag_failure_leaves_document_untouched(self):
        document = TextDocument("---\ntitle: T\n---\nBody")
        client = _client("摘要", ProviderAPIError("Kimi API error: rate limited", status_code=429))
        selector = _selector()
        notices = _Notices()

        outcome = await run_pipeline(
            document, settings=_settings(), selector=selector, client=client, notifier=notices
        )

        assert not outcome.ok
        assert outcome.error_kind == "upstream"
        assert outcome.error == "Kimi API error: rate limited"
        assert document.writes == 0
        selector.choose_category.assert_not_awaited()
        assert notices.messages[-1] == ("error", "Failed to generate description: Kimi API error: rate limited")

    @pytest.mark.asyncio
    async def test_transport_failure_on_summary(self):
        document = TextDocument("Body")
        client = _client(ProviderTransportError("Kimi request failed: Connection error."))

        outcome = await run_pipeline(document, settings=_settings(), selector=_selector(), client=client)

        assert not outcome.ok
        assert client.complete.await_count == 1
        assert document.writes == 0


# ── Document I/O failures ──────────────────────────────────────────────

class _ReadOnlyDocument(TextDocument):
    def write(self, text: str) -> None:
        raise PermissionError(13, "Permission denied", "note.md")


class TestDocumentErrors:
    @pytest.mark.asyncio
    async def test_undecodable_file_reported_before_any_call(self, tmp_path):
        path = tmp_path / "note.md"
        path.write_bytes(b"caf\xe9 body\n")
        client = _client()
        notices = _Notices()

        outcome = await run_pipeline(
            FileDocument(path), settings=_settings(), selector=_selector(), client=client, notifier=notices
        )

        assert not outcome.ok
        assert outcome.error_kind == "precondition"
        client.complete.assert_not_awaited()
        assert path.read_bytes() == b"caf\xe9 body\n"
        assert notices.messages[-1][0] == "error"

    @pytest.mark.asyncio
    async def test_write_failure_reported(self):
        document = _ReadOnlyDocument("Body")
        notices = _Notices()

        outcome = await run_pipeline(
            document, settings=_settings(), selector=_selector(), client=_client("摘要", "AI"), notifier=notices
        )

        assert not outcome.ok
        assert outcome.error_kind == "io"
        assert "Permission denied" in outcome.error
        assert document.text == "Body"
        assert notices.messages[-1][0] == "error"
