# ABOUTME: Task classification for F-Bot routing
# ABOUTME: Maps task type + query text to capability requirements and a complexity score

"""
F-Bot Task Classifier.

Turns a declared task type and the user's query into a TaskRequirement:
1. Task type lookup (unknown keys fall back to "general")
2. Complexity heuristic (indicator phrases + length checks, clamped to [0, 1])
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from fbot_router.registry import GENERAL_TASK_TYPE, Registry

logger = logging.getLogger(__name__)

# Phrase -> weight added when the phrase appears in the query
DEFAULT_COMPLEXITY_INDICATORS: dict[str, float] = {
    "multiple symptoms": 0.3,
    "chronic": 0.2,
    "research": 0.3,
    "compare": 0.2,
    "analyze": 0.3,
    "systematic": 0.4,
    "differential": 0.4,
    "complex": 0.3,
    "interaction": 0.3,
    "contraindication": 0.4,
}

LONG_QUERY_CHARS = 200
LONG_QUERY_WORDS = 30
LENGTH_BONUS = 0.2


@dataclass(frozen=True)
class TaskRequirement:
    """Requirement profile derived from a single request."""

    task_type: str
    required_capabilities: tuple[str, ...]
    safety_critical: bool
    complexity_score: float
    keywords: tuple[str, ...] = ()
    confidence_threshold: float = 0.0
    query_text: str = ""
    fallback: bool = False  # True if the requested task type was unknown

    @property
    def safety_level(self) -> str:
        return "high" if self.safety_critical else "medium"


def complexity_score(
    query_text: str,
    indicators: Mapping[str, float] | None = None,
) -> float:
    """Estimate query difficulty in [0, 1].

    Args:
        query_text: The user's query
        indicators: Phrase -> weight table (defaults to DEFAULT_COMPLEXITY_INDICATORS)

    Returns:
        Sum of matched indicator weights plus length bonuses, clamped to [0, 1]
    """
    table = DEFAULT_COMPLEXITY_INDICATORS if indicators is None else indicators
    query_lower = query_text.lower()

    score = 0.0
    for phrase, weight in table.items():
        if phrase.lower() in query_lower:
            score += weight

    if len(query_text) > LONG_QUERY_CHARS:
        score += LENGTH_BONUS
    if len(query_text.split()) > LONG_QUERY_WORDS:
        score += LENGTH_BONUS

    return max(0.0, min(score, 1.0))


class TaskClassifier:
    """Builds TaskRequirements from the task type registry."""

    def __init__(
        self,
        registry: Registry,
        indicators: Mapping[str, float] | None = None,
    ) -> None:
        self.registry = registry
        self.indicators = dict(DEFAULT_COMPLEXITY_INDICATORS if indicators is None else indicators)

    def classify(self, task_type_key: str, query_text: str) -> TaskRequirement:
        """Classify a request.

        Unknown task types degrade to "general" (reasoning only, not safety
        critical) instead of raising.
        """
        task_type = self.registry.get_task_type(task_type_key)
        fallback = task_type is None
        if task_type is None:
            logger.warning(f"Unknown task type {task_type_key!r}, using {GENERAL_TASK_TYPE!r}")
            task_type = self.registry.general

        return TaskRequirement(
            task_type=task_type.key,
            required_capabilities=task_type.required_capabilities,
            safety_critical=task_type.safety_critical,
            complexity_score=complexity_score(query_text, self.indicators),
            keywords=task_type.keywords,
            confidence_threshold=task_type.confidence_threshold,
            query_text=query_text,
            fallback=fallback,
        )
