"""
response_analyzer.llm.pricing - Static model price table and cost calculation.

Prices are USD per million tokens, (input, output).
"""

from __future__ import annotations

from dataclasses import dataclass

MODEL_PRICES: dict[str, tuple[float, float]] = {
    "claude-3-opus-20240229": (15.0, 75.0),
    "claude-3-sonnet-20240229": (3.0, 15.0),
    "claude-3-haiku-20240307": (0.25, 1.25),
    "claude-3-5-sonnet-20240620": (3.0, 15.0),
    "claude-3-5-sonnet-20241022": (3.0, 15.0),
    "claude-3-5-haiku-20241022": (0.80, 4.0),
    "claude-3-7-sonnet-20250219": (3.0, 15.0),
    "claude-2.1": (8.0, 24.0),
    "claude-2.0": (8.0, 24.0),
}

# Unknown models are billed at the most expensive tier
FALLBACK_PRICE = (15.0, 75.0)


@dataclass(frozen=True)
class Cost:
    """Token usage and cost of one completion."""

    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost: float


def model_price(model: str) -> tuple[float, float]:
    """Look up (input, output) price per million tokens for a model.

    A provider prefix such as "anthropic/" is ignored.
    """
    name = model.split("/", 1)[-1]
    return MODEL_PRICES.get(name, FALLBACK_PRICE)


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> Cost:
    input_price, output_price = model_price(model)
    cost = (input_tokens * input_price + output_tokens * output_price) / 1_000_000
    return Cost(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        cost=cost,
    )
