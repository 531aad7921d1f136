# ABOUTME: Per-model token pricing and cost calculation for F-Bot model calls
# ABOUTME: Used when a caller reports token usage without an actual billed cost

"""
F-Bot Router Pricing Module.

Contains list prices (USD per 1K tokens) for the models F-Bot routes to.
Local models are priced at a nominal electricity cost.
"""

import logging
from typing import TypedDict

logger = logging.getLogger(__name__)


class ModelPricing(TypedDict):
    """Pricing data for a model."""

    input_per_thousand: float  # USD per 1K input tokens
    output_per_thousand: float  # USD per 1K output tokens


MODEL_PRICING: dict[str, ModelPricing] = {
    "gpt-4o": {"input_per_thousand": 0.005, "output_per_thousand": 0.015},
    "gpt-4o-mini": {"input_per_thousand": 0.00015, "output_per_thousand": 0.0006},
    "claude-3-5-sonnet": {"input_per_thousand": 0.003, "output_per_thousand": 0.015},
    "claude-3-5-haiku": {"input_per_thousand": 0.00025, "output_per_thousand": 0.00125},
    "claude-3-opus": {"input_per_thousand": 0.015, "output_per_thousand": 0.075},
    "gemini-1.5-pro": {"input_per_thousand": 0.00125, "output_per_thousand": 0.005},
    "gemini-1.5-flash": {"input_per_thousand": 0.000075, "output_per_thousand": 0.0003},
    "perplexity-sonar": {"input_per_thousand": 0.001, "output_per_thousand": 0.001},
    # Local model: electricity only
    "llama3.2": {"input_per_thousand": 0.0001, "output_per_thousand": 0.0001},
}


def get_model_pricing(model: str) -> ModelPricing | None:
    """Get pricing for a model, or None if the model is not priced."""
    return MODEL_PRICING.get(model)


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Calculate the cost of a model call in USD.

    Args:
        model: The model id used for the call
        input_tokens: Number of input tokens
        output_tokens: Number of output tokens

    Returns:
        Cost in USD, or 0.0 if model pricing is not found.
    """
    pricing = get_model_pricing(model)
    if pricing is None:
        logger.warning(f"No pricing data for model: {model}")
        return 0.0

    input_cost = (input_tokens / 1000) * pricing["input_per_thousand"]
    output_cost = (output_tokens / 1000) * pricing["output_per_thousand"]

    return input_cost + output_cost
