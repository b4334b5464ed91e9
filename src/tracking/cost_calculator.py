# src/tracking/cost_calculator.py - v2
"""Cost estimation from cached entries.

Computes estimated USD cost avoided per entry, per model, and in total.
Pure functions over a pricing table; no persistence.
"""

from __future__ import annotations

from collections.abc import Iterable

from promptcache.cache.models import CacheEntry, estimate_tokens
from promptcache.tracking.models import (
    CostEstimate,
    CostReport,
    CostSaved,
    ModelPricing,
    ModelSavings,
    SavingsSummary,
    TokenKind,
)

FALLBACK_MODEL = "gpt-4"

# Default pricing per 1M tokens
DEFAULT_PRICING: dict[str, ModelPricing] = {
    "gpt-4-turbo": ModelPricing(
        model="gpt-4-turbo", input_price_per_1m=10.00, output_price_per_1m=30.00,
    ),
    "gpt-4": ModelPricing(
        model="gpt-4", input_price_per_1m=30.00, output_price_per_1m=60.00,
    ),
    "gpt-4o": ModelPricing(
        model="gpt-4o", input_price_per_1m=5.00, output_price_per_1m=15.00,
    ),
    "gpt-4o-mini": ModelPricing(
        model="gpt-4o-mini", input_price_per_1m=0.15, output_price_per_1m=0.60,
    ),
    "gpt-3.5-turbo": ModelPricing(
        model="gpt-3.5-turbo", input_price_per_1m=0.50, output_price_per_1m=1.50,
    ),
    "claude-3-opus": ModelPricing(
        model="claude-3-opus", input_price_per_1m=15.00, output_price_per_1m=75.00,
    ),
    "claude-3-sonnet": ModelPricing(
        model="claude-3-sonnet", input_price_per_1m=3.00, output_price_per_1m=15.00,
    ),
    "claude-3.5-sonnet": ModelPricing(
        model="claude-3.5-sonnet", input_price_per_1m=3.00, output_price_per_1m=15.00,
    ),
    "claude-3-haiku": ModelPricing(
        model="claude-3-haiku", input_price_per_1m=0.25, output_price_per_1m=1.25,
    ),
    "llama-3-70b": ModelPricing(
        model="llama-3-70b", input_price_per_1m=0.00, output_price_per_1m=0.00,
    ),
    "llama-3-8b": ModelPricing(
        model="llama-3-8b", input_price_per_1m=0.00, output_price_per_1m=0.00,
    ),
    "mistral-large": ModelPricing(
        model="mistral-large", input_price_per_1m=4.00, output_price_per_1m=12.00,
    ),
    "mistral-medium": ModelPricing(
        model="mistral-medium", input_price_per_1m=2.70, output_price_per_1m=8.10,
    ),
    "default": ModelPricing(
        model="default", input_price_per_1m=0.50, output_price_per_1m=1.50,
    ),
}


def calculate_cost(
    tokens: int,
    model: str = FALLBACK_MODEL,
    kind: TokenKind = "output",
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """USD cost of ``tokens``; unknown models are priced as gpt-4."""
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(model) or pricing.get(FALLBACK_MODEL) or DEFAULT_PRICING[FALLBACK_MODEL]
    price = p.input_price_per_1m if kind == "input" else p.output_price_per_1m
    return tokens / 1_000_000 * price


def get_cost_saved(
    entry: CacheEntry, pricing: dict[str, ModelPricing] | None = None
) -> CostSaved:
    """Output cost avoided by one hit on ``entry``."""
    tokens = entry.tokens or estimate_tokens(entry.response)
    return CostSaved(
        model=entry.model,
        tokens=tokens,
        cost=calculate_cost(tokens, entry.model, "output", pricing),
    )


def calculate_total_savings(
    entries: Iterable[CacheEntry],
    pricing: dict[str, ModelPricing] | None = None,
) -> SavingsSummary:
    """Aggregate tokens x hits per model."""
    summary = SavingsSummary()
    for entry in entries:
        model = entry.model or "default"
        tokens = entry.tokens * entry.hits
        cost = calculate_cost(tokens, model, "output", pricing)

        bucket = summary.by_model.setdefault(model, ModelSavings(model=model))
        bucket.tokens += tokens
        bucket.cost += cost
        bucket.hits += entry.hits

        summary.total_tokens += tokens
        summary.total += cost
    return summary


def format_cost_report(savings: SavingsSummary) -> CostReport:
    """Flatten a summary into per-model rows sorted by cost descending."""
    models = sorted(savings.by_model.values(), key=lambda m: m.cost, reverse=True)
    return CostReport(
        total_saved=savings.total,
        total_tokens=savings.total_tokens,
        models=models,
    )


def estimate_cost(
    prompt: str,
    response: str,
    model: str = FALLBACK_MODEL,
    pricing: dict[str, ModelPricing] | None = None,
) -> CostEstimate:
    """Estimate what a prompt/response round trip costs without the cache."""
    input_tokens = estimate_tokens(prompt)
    output_tokens = estimate_tokens(response)
    input_cost = calculate_cost(input_tokens, model, "input", pricing)
    output_cost = calculate_cost(output_tokens, model, "output", pricing)
    return CostEstimate(
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )


def get_model_pricing(model: str) -> ModelPricing | None:
    return DEFAULT_PRICING.get(model)


def list_supported_models() -> list[str]:
    return list(DEFAULT_PRICING)
