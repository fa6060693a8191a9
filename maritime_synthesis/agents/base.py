"""SynthesisCaller — Anthropic SDK wrapper with cost tracking, bounded retry and timeout."""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone

import anthropic

from maritime_synthesis.contracts import LLMCompletion, LLMSettings

HAIKU_MODEL = "claude-haiku-4-5-20251001"
SONNET_MODEL = "claude-sonnet-4-20250514"

# Pricing per million tokens
_PRICING: dict[str, dict[str, float]] = {
    "claude-haiku-4-5-20251001": {"input": 1.0, "output": 5.0},
    "claude-haiku-4-5": {"input": 1.0, "output": 5.0},
    "claude-sonnet-4-20250514": {"input": 3.0, "output": 15.0},
    "claude-sonnet-4-6": {"input": 3.0, "output": 15.0},
    "claude-opus-4-6": {"input": 15.0, "output": 75.0},
}
_DEFAULT_PRICING = {"input": 1.0, "output": 5.0}

# Config files may still name OpenAI models
_MODEL_ALIASES: dict[str, str] = {
    "gpt-4o-mini": HAIKU_MODEL,
    "gpt-4o": HAIKU_MODEL,
    "gpt-4-turbo": SONNET_MODEL,
    "gpt-4": SONNET_MODEL,
}


class LLMUnavailableError(RuntimeError):
    """The model did not answer: missing credentials, network, timeout, non-2xx."""


def resolve_model(configured: str) -> str:
    """Map a configured model name onto an Anthropic model id."""
    if configured.startswith("claude-"):
        return configured
    return _MODEL_ALIASES.get(configured, HAIKU_MODEL)


def compute_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    pricing = _PRICING.get(model, _DEFAULT_PRICING)
    cost = (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
    return round(cost, 6)


def _is_transient(error: anthropic.APIError) -> bool:
    if isinstance(error, (anthropic.RateLimitError, anthropic.APIConnectionError)):
        return True
    return isinstance(error, anthropic.APIStatusError) and error.status_code >= 500


class SynthesisCaller:
    """Wraps Anthropic API calls for the synthesis pass."""

    def __init__(
        self,
        *,
        api_key: str,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
    ) -> None:
        self._api_key = api_key
        self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0) if api_key else None
        self._max_retries = max(1, max_retries)
        self._backoff = backoff_seconds
        self._usage_log: list[LLMCompletion] = []

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        prompt: str,
        llm: LLMSettings,
        *,
        timeout_seconds: float,
    ) -> LLMCompletion:
        """Send one synthesis prompt. The whole call, retries included, is
        bounded by `timeout_seconds`.

        Raises LLMUnavailableError on any failure to obtain a text completion.
        """
        if self._client is None:
            raise LLMUnavailableError("ANTHROPIC_API_KEY not configured")

        model = resolve_model(llm.model)
        try:
            return await asyncio.wait_for(
                self._call_with_retry(prompt=prompt, model=model, llm=llm),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise LLMUnavailableError(
                f"Synthesis LLM call timed out after {timeout_seconds}s"
            ) from None

    async def _call_with_retry(
        self, *, prompt: str, model: str, llm: LLMSettings
    ) -> LLMCompletion:
        last_error = None

        for attempt in range(self._max_retries):
            try:
                response = await self._client.messages.create(
                    model=model,
                    max_tokens=llm.max_tokens,
                    temperature=llm.temperature,
                    messages=[{"role": "user", "content": prompt}],
                )
            except anthropic.APIError as e:
                last_error = str(e)
                if not _is_transient(e):
                    raise LLMUnavailableError(f"Synthesis LLM call failed: {e}") from e
                if attempt < self._max_retries - 1:
                    wait = self._backoff * 2**attempt
                    print(
                        f"WARNING: {model} transient error, "
                        f"retry {attempt + 1}/{self._max_retries - 1} in {wait}s: {e}",
                        file=sys.stderr,
                    )
                    await asyncio.sleep(wait)
                continue

            text = ""
            for block in response.content:
                if block.type == "text":
                    text += block.text
            if not text:
                raise LLMUnavailableError("No text response from LLM")

            return self._track_usage(response, model, text)

        raise LLMUnavailableError(
            f"Synthesis LLM call failed after {self._max_retries} attempts: {last_error}"
        )

    def _track_usage(self, response, model: str, text: str) -> LLMCompletion:
        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens

        completion = LLMCompletion(
            text=text,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=compute_cost(model, input_tokens, output_tokens),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        self._usage_log.append(completion)
        return completion

    @property
    def total_tokens(self) -> int:
        return sum(u["input_tokens"] + u["output_tokens"] for u in self._usage_log)

    @property
    def total_cost(self) -> float:
        return sum(u["cost_usd"] for u in self._usage_log)
