"""Chat-completion client for extraction prompts (OpenAI-compatible API)."""
from __future__ import annotations

from jobmail.config import Settings
from jobmail.costs import LLMUsage
from jobmail.log import get_logger
from jobmail.retry import retry

log = get_logger(__name__)

APOLOGY_SENTINEL = "I apologize, I don't have an answer for you at the moment."

# Bad key, bad request, unknown model: retrying cannot help.
_PERMANENT_STATUS = frozenset({400, 401, 403, 404, 422})


def _is_permanent(exc: BaseException) -> bool:
    return getattr(exc, "status_code", None) in _PERMANENT_STATUS


@retry(max_attempts=2, base_delay=2.0, retryable=(Exception,), give_up=_is_permanent)
def _call_openai(
    api_key: str,
    base_url: str | None,
    model: str,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    max_tokens: int,
    timeout: float,
) -> tuple[str, int, int]:
    from openai import OpenAI

    client = OpenAI(api_key=api_key, base_url=base_url or None, timeout=timeout)
    r = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=temperature,
        max_tokens=max_tokens,
    )
    text = (r.choices[0].message.content or "").strip()
    usage = r.usage
    if usage is None:
        return text, 0, 0
    return text, usage.prompt_tokens or 0, usage.completion_tokens or 0


class LLMClient:
    """``complete`` never raises: failures come back as the apology sentinel."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        base_url: str = "",
        timeout: float = 60.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> LLMClient:
        return cls(
            settings.openai_api_key,
            settings.llm_model,
            base_url=settings.openai_base_url,
            timeout=settings.llm_timeout,
        )

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: float = 0.1,
        max_tokens: int = 6000,
    ) -> LLMUsage:
        if not self.api_key:
            log.warning("No OPENAI_API_KEY — LLM extraction unavailable")
            return LLMUsage(response=APOLOGY_SENTINEL)
        try:
            text, input_tokens, output_tokens = _call_openai(
                self.api_key,
                self.base_url,
                self.model,
                system_prompt,
                user_prompt,
                temperature,
                max_tokens,
                self.timeout,
            )
        except Exception as exc:
            log.error("LLM call failed (%s): %s", self.model, str(exc)[:150])
            return LLMUsage(response=APOLOGY_SENTINEL)

        usage = LLMUsage.priced(text, self.model, input_tokens, output_tokens)
        log.debug(
            "LLM %s: %d in / %d out tokens", self.model, input_tokens, output_tokens,
        )
        return usage
