# ABOUTME: Weighted multi-criteria model selection for F-Bot routing
# ABOUTME: Filters models by safety, budget and use case, then scores the survivors

"""
F-Bot Model Selector.

Picks a model for a classified task:
1. Hard filters (medical-accuracy floor, budget pressure, use-case match)
2. Weighted scoring (capability, complexity fit, cost, preference, safety)
3. Highest score wins, ties go to the model registered first
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from fbot_router.classifier import TaskRequirement
from fbot_router.registry import ModelProfile, Registry

logger = logging.getLogger(__name__)

SAFETY_ACCURACY_FLOOR = 0.85
LOW_BUDGET = 50.0
LOW_BUDGET_MIN_COST_TIER = 0.8

CAPABILITY_WEIGHT = 0.4
COMPLEXITY_WEIGHT = 0.3
COST_WEIGHT = 0.2
COST_WEIGHT_PRIORITIZED = 0.3
PREFERENCE_BONUS = 0.1
SAFETY_WEIGHT = 0.2

HIGH_COMPLEXITY = 0.8
MEDIUM_COMPLEXITY = 0.6

# Upper bound of the weighted sum when every component is at its maximum
MAX_SCORE = (
    CAPABILITY_WEIGHT + COMPLEXITY_WEIGHT + COST_WEIGHT_PRIORITIZED + PREFERENCE_BONUS + SAFETY_WEIGHT
)

CHARS_PER_TOKEN = 3

NO_CANDIDATES_REASON = "no candidates matched; used default"

# Component -> (threshold above which it is named in the reason, phrase)
DISCLOSURE_THRESHOLDS: dict[str, tuple[float, str]] = {
    "capability": (0.3, "high capability match for {task_type}"),
    "safety": (0.15, "medical safety requirements"),
    "cost": (0.25, "cost-optimized selection"),
    "complexity": (0.25, "complexity-appropriate reasoning"),
}


@dataclass(frozen=True)
class UserPreferences:
    """Caller preferences that nudge the score."""

    preferred_model_id: str | None = None
    prioritize_cost: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "UserPreferences":
        """Build preferences from a loosely-typed dict (HTTP bodies, CLI).

        Raises:
            ValueError: If a value has the wrong type ("false" is not a boolean)
        """
        data = data or {}
        preferred = data.get("preferred_model_id") or data.get("preferredModel")
        prioritize = data.get("prioritize_cost", data.get("prioritizeCost", False))
        if preferred is not None and not isinstance(preferred, str):
            raise ValueError(f"preferred_model_id must be a string, got {preferred!r}")
        if not isinstance(prioritize, bool):
            raise ValueError(f"prioritize_cost must be a boolean, got {prioritize!r}")
        return cls(preferred_model_id=preferred, prioritize_cost=prioritize)


@dataclass(frozen=True)
class CostEstimate:
    """Rough pre-flight cost of running the query on a model."""

    estimated_tokens: int
    estimated_cost: float  # USD
    tokens_per_dollar: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "estimated_tokens": self.estimated_tokens,
            "estimated_cost": self.estimated_cost,
            "tokens_per_dollar": self.tokens_per_dollar,
        }


@dataclass
class SelectionResult:
    """Outcome of a model selection."""

    chosen_model_id: str
    confidence_score: float
    reason: str
    cost_estimate: CostEstimate
    safety_level: str  # "high" or "medium"
    task_type: str = ""
    components: dict[str, float] = field(default_factory=dict)
    needs_review: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "chosen_model_id": self.chosen_model_id,
            "confidence_score": self.confidence_score,
            "reason": self.reason,
            "cost_estimate": self.cost_estimate.to_dict(),
            "safety_level": self.safety_level,
            "task_type": self.task_type,
            "components": dict(self.components),
            "needs_review": self.needs_review,
        }


def estimate_cost(profile: ModelProfile, query_text: str) -> CostEstimate:
    """Estimate tokens (~3 chars each) and USD cost of a query on a model."""
    tokens = math.ceil(len(query_text) / CHARS_PER_TOKEN)
    return CostEstimate(
        estimated_tokens=tokens,
        estimated_cost=tokens / profile.tokens_per_dollar,
        tokens_per_dollar=profile.tokens_per_dollar,
    )


def matches_task_category(profile: ModelProfile, keywords: tuple[str, ...]) -> bool:
    """Check whether any of the model's use cases covers the task keywords.

    A keyword matches when its root (text before the first underscore)
    appears inside a use-case tag. Task types without keywords match every
    model.
    """
    if not keywords:
        return True
    roots = [keyword.split("_")[0].lower() for keyword in keywords]
    return any(
        root in use_case.lower() for use_case in profile.supported_task_categories for root in roots
    )


def score_components(
    profile: ModelProfile,
    requirement: TaskRequirement,
    preferences: UserPreferences,
) -> dict[str, float]:
    """Compute the weighted score components for one candidate.

    The "safety" component is only present for safety-critical requirements
    and "preference" only when the model is the preferred one.
    """
    required = requirement.required_capabilities
    capability = sum(profile.capability(name) for name in required) / len(required) if required else 0.0

    reasoning = profile.capability("reasoning")
    if requirement.complexity_score > HIGH_COMPLEXITY:
        complexity_fit = reasoning
    elif requirement.complexity_score > MEDIUM_COMPLEXITY:
        complexity_fit = (reasoning + profile.speed_score) / 2
    else:
        complexity_fit = profile.speed_score

    cost_weight = COST_WEIGHT_PRIORITIZED if preferences.prioritize_cost else COST_WEIGHT

    components = {
        "capability": capability * CAPABILITY_WEIGHT,
        "complexity": complexity_fit * COMPLEXITY_WEIGHT,
        "cost": profile.cost_tier * cost_weight,
    }
    if preferences.preferred_model_id == profile.id:
        components["preference"] = PREFERENCE_BONUS
    if requirement.safety_critical:
        components["safety"] = profile.capability("medical_accuracy") * SAFETY_WEIGHT
    return components


def build_reason(components: dict[str, float], task_type: str) -> str:
    """Name each score component that is large enough to explain the pick."""
    reasons = [
        phrase.format(task_type=task_type)
        for name, (threshold, phrase) in DISCLOSURE_THRESHOLDS.items()
        if components.get(name, 0.0) > threshold
    ]
    return ", ".join(reasons) or f"best fit for {task_type}"


class ModelSelector:
    """Selects the best model for a TaskRequirement."""

    def __init__(self, registry: Registry) -> None:
        self.registry = registry

    def candidates(self, requirement: TaskRequirement, cost_budget: float) -> list[ModelProfile]:
        """Apply the hard filters, preserving registry order."""
        survivors = []
        for profile in self.registry:
            if requirement.safety_critical:
                if profile.capability("medical_accuracy") < SAFETY_ACCURACY_FLOOR:
                    continue
            elif cost_budget < LOW_BUDGET and profile.cost_tier < LOW_BUDGET_MIN_COST_TIER:
                continue

            if not matches_task_category(profile, requirement.keywords):
                continue
            survivors.append(profile)
        return survivors

    def fallback_model(self, requirement: TaskRequirement) -> ModelProfile:
        """Model returned when no candidate survives filtering.

        Normally the registry default. For safety-critical requests a default
        under the accuracy floor is skipped in favour of the first registered
        model that meets it.
        """
        default = self.registry.default_model
        if (
            not requirement.safety_critical
            or default.capability("medical_accuracy") >= SAFETY_ACCURACY_FLOOR
        ):
            return default
        for profile in self.registry:
            if profile.capability("medical_accuracy") >= SAFETY_ACCURACY_FLOOR:
                logger.warning(
                    f"Default model {default.id} is below the medical accuracy floor, "
                    f"falling back to {profile.id}"
                )
                return profile
        logger.error(f"No registered model meets the medical accuracy floor, using {default.id}")
        return default

    def select(
        self,
        requirement: TaskRequirement,
        cost_budget: float = 100.0,
        preferences: UserPreferences | None = None,
    ) -> SelectionResult:
        """Pick a model. Never raises for well-formed input.

        If no model survives filtering, fallback_model() is returned with
        confidence 0.
        """
        preferences = preferences or UserPreferences()
        candidates = self.candidates(requirement, cost_budget)

        if not candidates:
            default = self.fallback_model(requirement)
            logger.warning(
                f"No candidate model for {requirement.task_type} "
                f"(budget={cost_budget}), falling back to {default.id}"
            )
            return SelectionResult(
                chosen_model_id=default.id,
                confidence_score=0.0,
                reason=NO_CANDIDATES_REASON,
                cost_estimate=estimate_cost(default, requirement.query_text),
                safety_level=requirement.safety_level,
                task_type=requirement.task_type,
                needs_review=True,
            )

        best = candidates[0]
        best_components = score_components(best, requirement, preferences)
        best_score = sum(best_components.values())

        for profile in candidates[1:]:
            components = score_components(profile, requirement, preferences)
            score = sum(components.values())
            logger.debug(f"Candidate {profile.id}: score={score:.4f} {components}")

            # Strict comparison keeps the earliest-registered model on ties
            if score > best_score:
                best, best_score, best_components = profile, score, components

        result = SelectionResult(
            chosen_model_id=best.id,
            confidence_score=best_score,
            reason=build_reason(best_components, requirement.task_type),
            cost_estimate=estimate_cost(best, requirement.query_text),
            safety_level=requirement.safety_level,
            task_type=requirement.task_type,
            components=best_components,
            needs_review=best_score < requirement.confidence_threshold,
        )
        logger.info(
            f"Selected {result.chosen_model_id} for {requirement.task_type} "
            f"(score={best_score:.3f}, reason={result.reason})"
        )
        return result
