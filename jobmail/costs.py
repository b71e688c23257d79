"""LLM cost accounting from token usage (OpenAI list prices, USD per 1M tokens)."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from jobmail.log import get_logger

log = get_logger(__name__)

DEFAULT_PRICING_MODEL = "gpt-4o-mini"

MODEL_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4o": (2.50, 10.00),
    "gpt-4o-2024-11-20": (2.50, 10.00),
    "gpt-4o-2024-08-06": (2.50, 10.00),
    "gpt-4o-2024-05-13": (5.00, 15.00),
    "gpt-4o-mini": (0.150, 0.600),
    "gpt-4o-mini-2024-07-18": (0.150, 0.600),
    "gpt-4": (30.00, 60.00),
    "gpt-4-turbo": (10.00, 30.00),
    "gpt-4-turbo-2024-04-09": (10.00, 30.00),
    "gpt-4-turbo-preview": (10.00, 30.00),
    "gpt-4-1106-preview": (10.00, 30.00),
    "gpt-4-0125-preview": (10.00, 30.00),
    "gpt-3.5-turbo": (0.50, 1.50),
    "gpt-3.5-turbo-0125": (0.50, 1.50),
    "gpt-3.5-turbo-1106": (1.00, 2.00),
    "gpt-3.5-turbo-instruct": (1.50, 2.00),
}


def get_pricing(model: str) -> tuple[float, float]:
    """(input, output) price per million tokens; unknown models use gpt-4o-mini."""
    return MODEL_PRICING.get((model or "").lower(), MODEL_PRICING[DEFAULT_PRICING_MODEL])


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    if (model or "").lower() not in MODEL_PRICING:
        log.debug("Unknown model %r, using %s pricing", model, DEFAULT_PRICING_MODEL)
    input_price, output_price = get_pricing(model)
    return input_tokens / 1_000_000 * input_price + output_tokens / 1_000_000 * output_price


def format_cost(cost_usd: float) -> str:
    if cost_usd < 0.001:
        return f"${cost_usd:.6f}"
    if cost_usd < 0.01:
        return f"${cost_usd:.4f}"
    if cost_usd < 1.0:
        return f"${cost_usd:.3f}"
    return f"${cost_usd:.2f}"


@dataclass
class LLMUsage:
    """One LLM answer with its token usage and price."""

    response: str
    model: str = "unknown"
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @classmethod
    def priced(cls, response: str, model: str, input_tokens: int, output_tokens: int) -> LLMUsage:
        return cls(
            response=response,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=calculate_cost(model, input_tokens, output_tokens),
        )


@dataclass
class CostSummary:
    api_calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_cost: float = 0.0
    model_usage: Counter = field(default_factory=Counter)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, usage: LLMUsage | None) -> None:
        if usage is None:
            return
        self.api_calls += 1
        self.input_tokens += usage.input_tokens
        self.output_tokens += usage.output_tokens
        self.total_cost += usage.cost_usd
        self.model_usage[usage.model] += 1

    def summary_lines(self) -> list[str]:
        lines = [
            f"API calls: {self.api_calls}",
            f"Input tokens: {self.input_tokens:,}",
            f"Output tokens: {self.output_tokens:,}",
            f"Total tokens: {self.total_tokens:,}",
            f"Total cost: {format_cost(self.total_cost)} USD",
        ]
        for model, calls in self.model_usage.most_common():
            lines.append(f"Model {model}: {calls} call(s)")
        return lines
