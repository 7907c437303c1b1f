"""Chat-completion providers (Kimi / DeepSeek / Hunyuan / Qwen).

Every provider speaks the OpenAI-compatible ``/chat/completions`` wire format
and is driven through the ``openai`` SDK.  The raw JSON body is inspected
rather than the typed model because some providers answer with a
``delta``-shaped choice even when streaming is off.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Protocol

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from config import Settings
from prompts.system_prompt import SYSTEM_PROMPT

logger = logging.getLogger("autodesc.llm")

TEMPERATURE = 0.3


class LLMError(Exception):
    """Raised when a completion cannot be produced."""


class UnsupportedProviderError(LLMError):
    """The configured provider identifier has no implementation."""


class MissingAPIKeyError(LLMError):
    """No secret key is configured."""


class ProviderTransportError(LLMError):
    """The HTTP exchange could not be completed."""


class ProviderAPIError(LLMError):
    """The provider answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseShapeError(LLMError):
    """The provider answered with JSON we do not understand."""


class CompletionClient(Protocol):
    async def complete(self, document: str, instruction: str) -> str: ...


def extract_completion_text(data: Any) -> str | None:
    """Return the trimmed completion text from a chat-completion body.

    ``choices[0].message.content`` is tried first, then
    ``choices[0].delta.content``.  Returns ``None`` when neither is present.
    """
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    first = choices[0]
    for field in ("message", "delta"):
        part = first.get(field)
        if isinstance(part, dict) and isinstance(part.get("content"), str):
            return part["content"].strip()
    return None


def _remote_error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return None


class ChatProvider:
    """Base for one OpenAI-compatible provider.

    Subclasses only declare where the service lives and which extra request
    parameters it wants; :meth:`complete` is shared.
    """

    name: ClassVar[str]
    display_name: ClassVar[str]
    base_url: ClassVar[str]
    default_model: ClassVar[str]
    models: ClassVar[tuple[str, ...]] = ()

    def __init__(self, settings: Settings, *, http_client: httpx.AsyncClient | None = None) -> None:
        if not settings.api_key:
            raise MissingAPIKeyError("API key is not configured.")
        self._settings = settings
        self._client = AsyncOpenAI(
            api_key=settings.api_key,
            base_url=self.base_url,
            max_retries=0,
            http_client=http_client,
        )

    def extra_params(self) -> dict[str, Any]:
        return {}

    def build_payload(self, document: str, instruction: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._settings.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"{instruction}\n\n{document}"},
            ],
            "max_tokens": self._settings.summary_length * 2,
            "temperature": TEMPERATURE,
        }
        payload.update(self.extra_params())
        return payload

    async def complete(self, document: str, instruction: str) -> str:
        """Send one chat-completion request and return the trimmed reply text.

        Parameters
        ----------
        document : str
            Full document text, sent after the instruction.
        instruction : str
            The summary or tag instruction.

        Returns
        -------
        str
            ``choices[0].message.content``, else ``choices[0].delta.content``.
        """
        payload = self.build_payload(document, instruction)
        logger.debug(
            "Calling %s model=%s max_tokens=%d", self.display_name, payload["model"], payload["max_tokens"]
        )

        try:
            raw = await self._client.chat.completions.with_raw_response.create(**payload)
        except APIStatusError as exc:
            message = _remote_error_message(exc.response)
            logger.error("%s API returned %d: %s", self.display_name, exc.status_code, message)
            raise ProviderAPIError(
                f"{self.display_name} API error: {message or 'unknown error'}",
                status_code=exc.status_code,
            ) from exc
        except APIConnectionError as exc:
            logger.error("%s request failed: %s", self.display_name, exc)
            raise ProviderTransportError(f"{self.display_name} request failed: {exc}") from exc

        try:
            data = raw.http_response.json()
        except ValueError as exc:
            raise ResponseShapeError(f"{self.display_name} returned a non-JSON response.") from exc

        text = extract_completion_text(data)
        if text is None:
            logger.error("Unexpected %s response shape: %s", self.display_name, str(data)[:500])
            raise ResponseShapeError(f"{self.display_name} returned an unexpected response shape.")
        return text

    async def aclose(self) -> None:
        await self._client.close()


class KimiProvider(ChatProvider):
    name = "kimi"
    display_name = "Kimi"
    base_url = "https://api.moonshot.cn/v1"
    default_model = "moonshot-v1-8k"
    models = ("moonshot-v1-8k", "moonshot-v1-32k", "moonshot-v1-128k")


class DeepSeekProvider(ChatProvider):
    name = "deepseek"
    display_name = "DeepSeek"
    base_url = "https://api.deepseek.com/v1"
    default_model = "deepseek-chat"
    models = ("deepseek-chat", "deepseek-reasoner")


class HunyuanProvider(ChatProvider):
    name = "hunyuan"
    display_name = "Tencent Hunyuan"
    base_url = "https://api.hunyuan.cloud.tencent.com/v1"
    default_model = "hunyuan-lite"
    models = ("hunyuan-lite", "hunyuan-standard", "hunyuan-pro")

    def extra_params(self) -> dict[str, Any]:
        return {"stream": False, "top_p": 0.7}


class QianwenProvider(ChatProvider):
    name = "qianwen"
    display_name = "Qwen"
    base_url = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    default_model = "qwen-turbo"
    models = ("qwen-turbo", "qwen-plus", "qwen-max")


PROVIDERS: dict[str, type[ChatProvider]] = {
    cls.name: cls for cls in (KimiProvider, DeepSeekProvider, HunyuanProvider, QianwenProvider)
}


def get_completion_client(
    settings: Settings, *, http_client: httpx.AsyncClient | None = None
) -> ChatProvider:
    """Return the provider configured in *settings*.

    Parameters
    ----------
    settings : Settings
        ``api_provider`` selects the provider (case and surrounding
        whitespace ignored); ``api_key`` and ``model`` configure it.
    http_client : httpx.AsyncClient, optional
        Transport handed to the underlying ``AsyncOpenAI`` client.

    Returns
    -------
    ChatProvider
        A ready client; the caller closes it with :meth:`ChatProvider.aclose`.

    Raises
    ------
    UnsupportedProviderError
        The identifier is unknown.  Raised before any client is built.
    MissingAPIKeyError
        ``api_key`` is empty.
    """
    provider_cls = PROVIDERS.get(settings.api_provider.strip().lower())
    if provider_cls is None:
        raise UnsupportedProviderError(f"Unsupported API provider: {settings.api_provider}")
    return provider_cls(settings, http_client=http_client)


def default_model_for_provider(provider: str) -> str:
    provider_cls = PROVIDERS.get(provider.strip().lower(), KimiProvider)
    return provider_cls.default_model
