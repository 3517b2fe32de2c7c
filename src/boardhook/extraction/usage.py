"""Token pricing and cost calculation."""

from __future__ import annotations

import math

# USD per million tokens
MODEL_PRICING: dict[str, dict[str, float]] = {
    "claude-haiku-4-5-20251001": {"input": 1, "output": 5},
    "claude-4-5-haiku": {"input": 1, "output": 5},
    "claude-sonnet-4-5-20250514": {"input": 3, "output": 15},
    "claude-4-5-sonnet": {"input": 3, "output": 15},
    "claude-sonnet-4-20250514": {"input": 3, "output": 15},
    "claude-4-sonnet": {"input": 3, "output": 15},
    "claude-opus-4-5-20251101": {"input": 5, "output": 25},
    "claude-4-5-opus": {"input": 5, "output": 25},
    "claude-opus-4-20250514": {"input": 15, "output": 75},
    "claude-4-opus": {"input": 15, "output": 75},
}

# Unknown models are billed at Haiku rates
DEFAULT_PRICING = {"input": 1, "output": 5}

CACHE_WRITE_MULTIPLIER = 1.25
CACHE_READ_MULTIPLIER = 0.1


def calculate_cost_cents(
    model: str,
    input_tokens: int,
    output_tokens: int,
    cache_creation_input_tokens: int = 0,
    cache_read_input_tokens: int = 0,
) -> int:
    """Cost of a call in whole US cents, rounded half up.

    ``input_tokens`` is the total input including cache tokens; cache writes
    and reads are split out and billed at their own multipliers.
    """
    pricing = MODEL_PRICING.get(model, DEFAULT_PRICING)

    regular_input = input_tokens - cache_creation_input_tokens - cache_read_input_tokens

    # tokens / 1_000_000 * usd_per_million * 100 cents
    cost = (
        regular_input * pricing["input"]
        + output_tokens * pricing["output"]
        + cache_creation_input_tokens * pricing["input"] * CACHE_WRITE_MULTIPLIER
        + cache_read_input_tokens * pricing["input"] * CACHE_READ_MULTIPLIER
    ) / 10_000

    return math.floor(cost + 0.5)
