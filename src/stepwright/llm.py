"""LLM conversion of flattened text into import YAML using LiteLLM."""

from __future__ import annotations

import warnings
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

# Suppress LiteLLM's async logging warnings (coroutine never awaited)
warnings.filterwarnings(
    "ignore",
    message="coroutine 'Logging.async_success_handler' was never awaited",
    category=RuntimeWarning,
)

import litellm
from loguru import logger

from stepwright.exceptions import EnvVarNotFoundError, LLMError
from stepwright.prompts import PromptManager
from stepwright.utils.text import strip_code_fence

if TYPE_CHECKING:
    from stepwright.config import LLMConfig

litellm.suppress_debug_info = True


class WorkflowGenerator:
    """Ask a chat model to rewrite extracted text as a workflow definition."""

    def __init__(
        self,
        config: LLMConfig | None = None,
        prompts: PromptManager | None = None,
    ) -> None:
        from stepwright.config import LLMConfig

        self.config = config or LLMConfig()
        self.prompts = prompts or PromptManager(self.config.prompts_dir)

    def build_messages(self, text: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.prompts.get_prompt("workflow_import_system")},
            {
                "role": "user",
                "content": self.prompts.get_prompt("workflow_import_user", content=text),
            },
        ]

    def _completion_kwargs(self) -> dict[str, Any]:
        try:
            api_key = self.config.get_resolved_api_key(strict=True)
        except EnvVarNotFoundError as e:
            raise LLMError(f"LLM API key is not set: {e}") from e

        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "timeout": self.config.timeout,
        }
        if api_key:
            kwargs["api_key"] = api_key
        if self.config.api_base:
            kwargs["api_base"] = self.config.api_base
        return kwargs

    async def generate(self, text: str) -> str:
        """Return import YAML for ``text`` with any code fence removed.

        Raises:
            LLMError: If the key is missing, the call fails or the reply is empty.
        """
        kwargs = self._completion_kwargs()
        logger.info(f"Generating workflow with {self.config.model} ({len(text)} chars)")
        try:
            response = await litellm.acompletion(messages=self.build_messages(text), **kwargs)
        except Exception as e:
            raise LLMError(f"LLM request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMError("LLM returned an empty response")
        return strip_code_fence(content)

    async def stream(self, text: str) -> AsyncIterator[str]:
        """Yield raw reply chunks as they arrive.

        The joined chunks still need :func:`strip_code_fence` before parsing.
        """
        kwargs = self._completion_kwargs()
        try:
            response = await litellm.acompletion(
                messages=self.build_messages(text), stream=True, **kwargs
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as e:
            raise LLMError(f"LLM streaming failed: {e}") from e


async def generate_workflow_text(text: str, config: LLMConfig | None = None) -> str:
    """Convert flattened document text into import YAML."""
    return await WorkflowGenerator(config).generate(text)


async def stream_workflow_text(
    text: str, config: LLMConfig | None = None
) -> AsyncIterator[str]:
    """Stream the import YAML for ``text`` chunk by chunk."""
    async for chunk in WorkflowGenerator(config).stream(text):
        yield chunk
