# src/tracking/models.py - v2
"""Cost tracking models: pricing table rows, savings and estimates."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

TokenKind = Literal["input", "output"]


class ModelPricing(BaseModel):
    """USD price per 1M tokens for one model."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float


class CostSaved(BaseModel):
    """Cost avoided by serving one entry from cache once."""

    model: str
    tokens: int
    cost: float


class ModelSavings(BaseModel):
    model: str
    tokens: int = 0
    cost: float = 0.0
    hits: int = 0


class SavingsSummary(BaseModel):
    """Savings across all entries, cost = output tokens x hits."""

    total: float = 0.0
    total_tokens: int = 0
    by_model: dict[str, ModelSavings] = Field(default_factory=dict)


class CostReport(BaseModel):
    """Savings flattened per model, most expensive first."""

    total_saved: float = 0.0
    total_tokens: int = 0
    models: list[ModelSavings] = Field(default_factory=list)
    pro_required: bool = False


class CostEstimate(BaseModel):
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    input_cost: float
    output_cost: float
    total_cost: float
