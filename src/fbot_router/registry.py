# ABOUTME: Static model capability and task type registries for F-Bot routing
# ABOUTME: Validates profiles at load time and raises ConfigurationError on bad data

"""
F-Bot Router Registry.

Holds the two static lookup tables the router works from:
- Capability Registry: one ModelProfile per LLM (scores, cost tier, use cases)
- Task Type Registry: one TaskType per medical task category

Both are validated once when a Registry is constructed. Nothing here
changes after startup, so the tables are safe to share between threads.
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

GENERAL_TASK_TYPE = "general"
DEFAULT_MODEL_ID = "gpt-4o"


class ConfigurationError(Exception):
    """Registry or task table is empty or malformed."""

    pass


@dataclass(frozen=True)
class ModelProfile:
    """Capability profile for one model."""

    id: str
    capability_scores: Mapping[str, float]
    cost_tier: float  # 0-1, higher = cheaper
    speed_score: float  # 0-1
    supported_task_categories: frozenset[str]
    tokens_per_dollar: float
    context_window_tokens: int

    def capability(self, name: str) -> float:
        """Score for a capability, 0.0 when the model does not declare it."""
        return self.capability_scores.get(name, 0.0)


@dataclass(frozen=True)
class TaskType:
    """Static description of a task category."""

    key: str
    keywords: tuple[str, ...] = ()
    required_capabilities: tuple[str, ...] = ("reasoning",)
    confidence_threshold: float = 0.0
    safety_critical: bool = False


def _profile(
    model_id: str,
    scores: dict[str, float],
    cost_tier: float,
    speed: float,
    use_cases: list[str],
    tokens_per_dollar: float,
    context_window: int,
) -> ModelProfile:
    return ModelProfile(
        id=model_id,
        capability_scores=MappingProxyType(scores),
        cost_tier=cost_tier,
        speed_score=speed,
        supported_task_categories=frozenset(use_cases),
        tokens_per_dollar=tokens_per_dollar,
        context_window_tokens=context_window,
    )


# Order matters: ties in scoring go to the model listed first
DEFAULT_MODELS: tuple[ModelProfile, ...] = (
    _profile(
        "gpt-4o",
        {"reasoning": 0.95, "medical_accuracy": 0.92},
        cost_tier=0.30,
        speed=0.70,
        use_cases=["complex_diagnosis", "treatment_planning", "research_synthesis"],
        tokens_per_dollar=400,
        context_window=128_000,
    ),
    _profile(
        "claude-3-5-sonnet",
        {"reasoning": 0.93, "empathy": 0.95, "medical_accuracy": 0.90},
        cost_tier=0.35,
        speed=0.75,
        use_cases=["patient_coaching", "emotional_support", "treatment_explanation"],
        tokens_per_dollar=350,
        context_window=200_000,
    ),
    _profile(
        "claude-3-opus",
        {"reasoning": 0.97, "medical_accuracy": 0.94, "research_synthesis": 0.96},
        cost_tier=0.15,
        speed=0.60,
        use_cases=["complex_research", "evidence_synthesis", "critical_analysis"],
        tokens_per_dollar=200,
        context_window=200_000,
    ),
    _profile(
        "gemini-1.5-pro",
        {"reasoning": 0.90, "multimodal": 0.95, "medical_accuracy": 0.88},
        cost_tier=0.40,
        speed=0.80,
        use_cases=["image_analysis", "ultrasound_interpretation", "visual_generation"],
        tokens_per_dollar=500,
        context_window=1_000_000,
    ),
    _profile(
        "perplexity-sonar",
        {"research": 0.98, "current_info": 0.95, "medical_accuracy": 0.85},
        cost_tier=0.25,
        speed=0.85,
        use_cases=["literature_search", "latest_research", "real_time_info"],
        tokens_per_dollar=800,
        context_window=8_000,
    ),
    _profile(
        "llama3.2",
        {"reasoning": 0.75, "medical_accuracy": 0.70},
        cost_tier=0.95,
        speed=0.60,
        use_cases=["basic_queries", "cost_optimization", "privacy_sensitive"],
        tokens_per_dollar=2000,
        context_window=128_000,
    ),
)

DEFAULT_TASK_TYPES: tuple[TaskType, ...] = (
    TaskType(
        key="fascia_diagnosis",
        keywords=("pain", "tension", "restriction", "assessment", "diagnosis"),
        required_capabilities=("medical_accuracy", "reasoning"),
        confidence_threshold=0.85,
        safety_critical=True,
    ),
    TaskType(
        key="treatment_advice",
        keywords=("treatment", "therapy", "exercise", "technique", "protocol"),
        required_capabilities=("medical_accuracy", "empathy"),
        confidence_threshold=0.80,
        safety_critical=True,
    ),
    TaskType(
        key="research_query",
        keywords=("study", "research", "evidence", "literature", "clinical trial"),
        required_capabilities=("research", "reasoning"),
        confidence_threshold=0.75,
    ),
    TaskType(
        key="image_analysis",
        keywords=("ultrasound", "image", "scan", "visual", "anatomy"),
        required_capabilities=("multimodal", "medical_accuracy"),
        confidence_threshold=0.80,
        safety_critical=True,
    ),
    TaskType(
        key="emotional_support",
        keywords=("worried", "anxious", "frustrated", "scared", "concerned"),
        required_capabilities=("empathy", "reasoning"),
        confidence_threshold=0.70,
    ),
    TaskType(
        key="educational",
        keywords=("learn", "understand", "explain", "teach", "anatomy"),
        required_capabilities=("reasoning", "empathy"),
        confidence_threshold=0.75,
    ),
    TaskType(key=GENERAL_TASK_TYPE),
)


def _check_unit(value: float, label: str) -> None:
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{label} must be in [0, 1], got {value}")


def validate_profile(profile: ModelProfile) -> None:
    """Validate a single model profile.

    Raises:
        ConfigurationError: If any score is outside [0, 1] or tokens_per_dollar <= 0
    """
    if not profile.id:
        raise ConfigurationError("Model profile has an empty id")
    for name, score in profile.capability_scores.items():
        _check_unit(score, f"{profile.id}.{name}")
    _check_unit(profile.cost_tier, f"{profile.id}.cost_tier")
    _check_unit(profile.speed_score, f"{profile.id}.speed_score")
    if profile.tokens_per_dollar <= 0:
        raise ConfigurationError(f"{profile.id}.tokens_per_dollar must be > 0")
    if profile.context_window_tokens <= 0:
        raise ConfigurationError(f"{profile.id}.context_window_tokens must be > 0")


class Registry:
    """Validated, read-only view over model profiles and task types."""

    def __init__(
        self,
        models: tuple[ModelProfile, ...] | list[ModelProfile] = DEFAULT_MODELS,
        task_types: tuple[TaskType, ...] | list[TaskType] = DEFAULT_TASK_TYPES,
        default_model_id: str = DEFAULT_MODEL_ID,
    ):
        if not models:
            raise ConfigurationError("Capability registry is empty")

        self._models: dict[str, ModelProfile] = {}
        for profile in models:
            validate_profile(profile)
            if profile.id in self._models:
                raise ConfigurationError(f"Duplicate model id: {profile.id}")
            self._models[profile.id] = profile

        if default_model_id not in self._models:
            raise ConfigurationError(f"Default model {default_model_id!r} is not registered")
        self.default_model_id = default_model_id

        self._task_types: dict[str, TaskType] = {}
        for task_type in task_types:
            _check_unit(task_type.confidence_threshold, f"{task_type.key}.confidence_threshold")
            if not task_type.required_capabilities:
                raise ConfigurationError(f"{task_type.key} has no required capabilities")
            self._task_types[task_type.key] = task_type
        self._task_types.setdefault(GENERAL_TASK_TYPE, TaskType(key=GENERAL_TASK_TYPE))

    def __iter__(self) -> Iterator[ModelProfile]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def get_model(self, model_id: str) -> ModelProfile | None:
        """Get a model profile by id, or None if not registered."""
        return self._models.get(model_id)

    def get_task_type(self, key: str) -> TaskType | None:
        """Get a task type by key, or None if not registered."""
        return self._task_types.get(key)

    @property
    def default_model(self) -> ModelProfile:
        return self._models[self.default_model_id]

    @property
    def general(self) -> TaskType:
        return self._task_types[GENERAL_TASK_TYPE]

    @property
    def task_types(self) -> list[TaskType]:
        return list(self._task_types.values())
