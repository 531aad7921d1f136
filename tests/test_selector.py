# ABOUTME: Tests for weighted model selection
# ABOUTME: Covers hard filters, score components, tie-breaks, reasons and cost estimates

"""Tests for F-Bot model selector."""

import itertools
from types import MappingProxyType

import pytest

from fbot_router.classifier import TaskClassifier, TaskRequirement
from fbot_router.registry import DEFAULT_TASK_TYPES, ModelProfile, Registry
from fbot_router.selector import (
    MAX_SCORE,
    NO_CANDIDATES_REASON,
    SAFETY_ACCURACY_FLOOR,
    ModelSelector,
    UserPreferences,
    build_reason,
    estimate_cost,
    matches_task_category,
    score_components,
)


def profile(
    model_id: str,
    scores: dict[str, float],
    cost_tier: float = 0.5,
    speed: float = 0.5,
    use_cases: tuple[str, ...] = ("general_chat",),
    tokens_per_dollar: float = 100,
) -> ModelProfile:
    return ModelProfile(
        id=model_id,
        capability_scores=MappingProxyType(scores),
        cost_tier=cost_tier,
        speed_score=speed,
        supported_task_categories=frozenset(use_cases),
        tokens_per_dollar=tokens_per_dollar,
        context_window_tokens=8000,
    )


def requirement(
    safety_critical: bool = False,
    capabilities: tuple[str, ...] = ("reasoning",),
    complexity: float = 0.0,
    keywords: tuple[str, ...] = (),
    query: str = "query",
    threshold: float = 0.0,
) -> TaskRequirement:
    return TaskRequirement(
        task_type="test_task",
        required_capabilities=capabilities,
        safety_critical=safety_critical,
        complexity_score=complexity,
        keywords=keywords,
        confidence_threshold=threshold,
        query_text=query,
    )


class TestHardFilters:
    """Tests for candidate filtering."""

    def test_safety_floor_excludes_inaccurate_model(self) -> None:
        """Safety-critical requests drop models below 0.85 medical accuracy."""
        model_a = profile("A", {"medical_accuracy": 0.90, "reasoning": 0.8}, cost_tier=0.2)
        model_b = profile("B", {"medical_accuracy": 0.70, "reasoning": 0.95}, cost_tier=0.9)
        selector = ModelSelector(Registry(models=[model_a, model_b], default_model_id="A"))

        result = selector.select(requirement(safety_critical=True), cost_budget=1000)

        assert result.chosen_model_id == "A"
        assert result.safety_level == "high"
        assert [p.id for p in selector.candidates(requirement(safety_critical=True), 1000)] == ["A"]

    def test_safety_floor_not_relaxed_by_low_budget(self) -> None:
        """Budget pressure never lets an inaccurate model through on critical tasks."""
        model_a = profile("A", {"medical_accuracy": 0.90}, cost_tier=0.2)
        model_b = profile("B", {"medical_accuracy": 0.70}, cost_tier=0.95)
        selector = ModelSelector(Registry(models=[model_a, model_b], default_model_id="A"))

        result = selector.select(requirement(safety_critical=True), cost_budget=1)

        assert result.chosen_model_id == "A"

    def test_floor_is_inclusive(self) -> None:
        """Exactly 0.85 medical accuracy passes the floor."""
        edge = profile("edge", {"medical_accuracy": SAFETY_ACCURACY_FLOOR})
        selector = ModelSelector(Registry(models=[edge], default_model_id="edge"))
        assert selector.candidates(requirement(safety_critical=True), 100) == [edge]

    def test_low_budget_keeps_only_cheap_models(self) -> None:
        """Budgets under 50 exclude models with cost tier below 0.8."""
        cheap = profile("cheap", {"reasoning": 0.5}, cost_tier=0.95)
        pricey = profile("pricey", {"reasoning": 0.99}, cost_tier=0.3)
        selector = ModelSelector(Registry(models=[pricey, cheap], default_model_id="pricey"))

        result = selector.select(requirement(), cost_budget=10)

        assert result.chosen_model_id == "cheap"
        assert selector.candidates(requirement(), 10) == [cheap]

    def test_budget_of_fifty_is_not_low(self) -> None:
        """The budget filter applies strictly below 50."""
        pricey = profile("pricey", {"reasoning": 0.99}, cost_tier=0.3)
        selector = ModelSelector(Registry(models=[pricey], default_model_id="pricey"))
        assert selector.candidates(requirement(), 50) == [pricey]

    def test_use_case_filter(self) -> None:
        """Models whose use cases share no keyword root are excluded."""
        matching = profile("match", {"reasoning": 0.5}, use_cases=("complex_diagnosis",))
        other = profile("other", {"reasoning": 0.9}, use_cases=("image_analysis",))
        selector = ModelSelector(Registry(models=[other, matching], default_model_id="other"))

        survivors = selector.candidates(requirement(keywords=("pain", "diagnosis")), 100)

        assert survivors == [matching]

    def test_no_candidates_returns_default(self) -> None:
        """When nothing survives, the default model is returned with zero confidence."""
        selector = ModelSelector(Registry())
        result = selector.select(
            TaskClassifier(selector.registry).classify("research_query", "latest studies"),
            cost_budget=10,
        )

        assert result.chosen_model_id == "gpt-4o"
        assert result.confidence_score == 0.0
        assert result.reason == NO_CANDIDATES_REASON
        assert result.needs_review is True

    def test_no_candidates_never_falls_back_below_floor(self) -> None:
        """A safety-critical fallback skips a default under the accuracy floor."""
        weak = profile("weak", {"medical_accuracy": 0.70}, use_cases=("image_analysis",))
        safe = profile("safe", {"medical_accuracy": 0.90}, use_cases=("image_analysis",))
        selector = ModelSelector(Registry(models=[weak, safe], default_model_id="weak"))

        result = selector.select(requirement(safety_critical=True, keywords=("pain",)), 100)

        assert result.chosen_model_id == "safe"
        assert result.confidence_score == 0.0
        assert result.needs_review is True

    def test_non_critical_fallback_keeps_default(self) -> None:
        weak = profile("weak", {"medical_accuracy": 0.70}, use_cases=("image_analysis",))
        safe = profile("safe", {"medical_accuracy": 0.90}, use_cases=("image_analysis",))
        selector = ModelSelector(Registry(models=[weak, safe], default_model_id="weak"))
        result = selector.select(requirement(keywords=("pain",)), 100)
        assert result.chosen_model_id == "weak"

    def test_llama_default_with_critical_request(self) -> None:
        """With llama3.2 as default, a critical request with no candidates stays above the floor."""
        registry = Registry(default_model_id="llama3.2")
        selector = ModelSelector(registry)
        result = selector.select(requirement(safety_critical=True, keywords=("nothing",)), 100)

        chosen = registry.get_model(result.chosen_model_id)
        assert chosen is not None
        assert chosen.capability("medical_accuracy") >= SAFETY_ACCURACY_FLOOR
        assert result.chosen_model_id == "gpt-4o"


class TestMatchesTaskCategory:
    """Tests for matches_task_category()."""

    def test_root_of_keyword_is_used(self) -> None:
        """Only the part of a keyword before "_" is matched."""
        model = profile("m", {}, use_cases=("latest_research",))
        assert matches_task_category(model, ("research_papers",)) is True

    def test_no_keywords_matches_everything(self) -> None:
        """Keyword-less task types accept every model."""
        model = profile("m", {}, use_cases=("anything",))
        assert matches_task_category(model, ()) is True

    def test_no_match(self) -> None:
        """Unrelated keywords do not match."""
        model = profile("m", {}, use_cases=("basic_queries",))
        assert matches_task_category(model, ("ultrasound", "scan")) is False


class TestScoreComponents:
    """Tests for score_components()."""

    def test_capability_is_mean_of_required(self) -> None:
        """Capability averages the required scores and weights by 0.4."""
        model = profile("m", {"reasoning": 0.8, "empathy": 0.6})
        components = score_components(
            model, requirement(capabilities=("reasoning", "empathy")), UserPreferences()
        )
        assert components["capability"] == pytest.approx(0.7 * 0.4)

    def test_missing_capability_counts_as_zero(self) -> None:
        """Undeclared capabilities contribute 0 to the mean."""
        model = profile("m", {"reasoning": 0.8})
        components = score_components(
            model, requirement(capabilities=("reasoning", "research")), UserPreferences()
        )
        assert components["capability"] == pytest.approx(0.4 * 0.4)

    @pytest.mark.parametrize(
        ("complexity", "expected"),
        [
            (0.0, 0.0),  # speed only
            (0.6, 0.0),  # 0.6 is not > 0.6
            (0.61, 0.5),  # mean of reasoning and speed
            (0.8, 0.5),  # 0.8 is not > 0.8
            (0.81, 1.0),  # reasoning only
        ],
    )
    def test_complexity_thresholds_are_strict(self, complexity: float, expected: float) -> None:
        """Complexity bands switch strictly above 0.6 and 0.8."""
        model = profile("m", {"reasoning": 1.0}, speed=0.0)
        components = score_components(model, requirement(complexity=complexity), UserPreferences())
        assert components["complexity"] == pytest.approx(expected * 0.3)

    def test_cost_weight_default_and_prioritized(self) -> None:
        """Cost weight is 0.2 normally and 0.3 when cost is prioritized."""
        model = profile("m", {}, cost_tier=0.5)
        normal = score_components(model, requirement(), UserPreferences())
        cheap = score_components(model, requirement(), UserPreferences(prioritize_cost=True))
        assert normal["cost"] == pytest.approx(0.1)
        assert cheap["cost"] == pytest.approx(0.15)

    def test_preference_bonus(self) -> None:
        """The preferred model gets +0.1, others get no preference component."""
        model = profile("m", {})
        preferred = score_components(model, requirement(), UserPreferences(preferred_model_id="m"))
        other = score_components(model, requirement(), UserPreferences(preferred_model_id="x"))
        assert preferred["preference"] == pytest.approx(0.1)
        assert "preference" not in other

    def test_safety_component_only_when_critical(self) -> None:
        """Safety is added for critical requests and omitted otherwise."""
        model = profile("m", {"medical_accuracy": 0.9})
        critical = score_components(model, requirement(safety_critical=True), UserPreferences())
        normal = score_components(model, requirement(), UserPreferences())
        assert critical["safety"] == pytest.approx(0.18)
        assert "safety" not in normal


class TestSelection:
    """Tests for ModelSelector.select() on the default registry."""

    @pytest.fixture
    def registry(self) -> Registry:
        return Registry()

    def select(
        self,
        registry: Registry,
        task_type: str,
        query: str = "short question",
        budget: float = 100,
        preferences: UserPreferences | None = None,
    ):
        req = TaskClassifier(registry).classify(task_type, query)
        return ModelSelector(registry).select(req, budget, preferences)

    def test_fascia_diagnosis_routes_to_gpt4o(self, registry: Registry) -> None:
        """Only gpt-4o covers diagnosis use cases."""
        assert self.select(registry, "fascia_diagnosis").chosen_model_id == "gpt-4o"

    def test_image_analysis_routes_to_gemini(self, registry: Registry) -> None:
        """Imaging tasks go to the multimodal model."""
        result = self.select(registry, "image_analysis")
        assert result.chosen_model_id == "gemini-1.5-pro"
        assert result.safety_level == "high"

    def test_research_query_routes_to_perplexity(self, registry: Registry) -> None:
        """Short research queries favor the fast research model."""
        result = self.select(registry, "research_query")
        assert result.chosen_model_id == "perplexity-sonar"
        assert result.confidence_score == pytest.approx(0.501)
        assert result.reason == "complexity-appropriate reasoning"

    def test_treatment_advice_reason(self, registry: Registry) -> None:
        """Reasons name every component above its disclosure threshold."""
        result = self.select(registry, "treatment_advice")
        assert result.chosen_model_id == "claude-3-5-sonnet"
        assert result.confidence_score == pytest.approx(0.845)
        assert result.reason == (
            "high capability match for treatment_advice, medical safety requirements"
        )
        assert result.needs_review is False

    def test_unknown_task_type_uses_general(self, registry: Registry) -> None:
        """Unknown task types are routed as general reasoning tasks."""
        result = self.select(registry, "xyz", query="hello")
        assert result.task_type == "general"
        assert result.chosen_model_id == "gemini-1.5-pro"
        assert result.confidence_score == pytest.approx(0.68)

    def test_prioritize_cost_prefers_cheap_model(self, registry: Registry) -> None:
        """Prioritizing cost tips general tasks to the local model."""
        result = self.select(
            registry, "xyz", query="hello", preferences=UserPreferences(prioritize_cost=True)
        )
        assert result.chosen_model_id == "llama3.2"

    def test_preferred_model_bonus_can_win(self, registry: Registry) -> None:
        """The preference bonus can change the winner."""
        result = self.select(
            registry,
            "xyz",
            query="hello",
            preferences=UserPreferences(preferred_model_id="llama3.2"),
        )
        assert result.chosen_model_id == "llama3.2"
        assert result.components["preference"] == pytest.approx(0.1)

    def test_tie_goes_to_first_registered(self) -> None:
        """Equal scores resolve to the model registered first."""
        first = profile("first", {"reasoning": 0.7})
        second = profile("second", {"reasoning": 0.7})
        registry = Registry(models=[first, second], default_model_id="second")
        result = ModelSelector(registry).select(requirement(), 100)
        assert result.chosen_model_id == "first"

    def test_generic_reason_when_nothing_stands_out(self) -> None:
        """Low components give the generic reason."""
        weak = profile("weak", {"reasoning": 0.1}, cost_tier=0.1, speed=0.1)
        registry = Registry(models=[weak], default_model_id="weak")
        result = ModelSelector(registry).select(requirement(), 100)
        assert result.reason == "best fit for test_task"

    def test_needs_review_below_confidence_threshold(self) -> None:
        """Results under the task's confidence threshold are flagged."""
        weak = profile("weak", {"reasoning": 0.1}, cost_tier=0.1, speed=0.1)
        registry = Registry(models=[weak], default_model_id="weak")
        result = ModelSelector(registry).select(requirement(threshold=0.9), 100)
        assert result.needs_review is True

    def test_selection_is_deterministic(self, registry: Registry) -> None:
        """Repeated calls give identical decisions."""
        first = self.select(registry, "educational", query="explain fascia")
        second = self.select(registry, "educational", query="explain fascia")
        assert first.chosen_model_id == second.chosen_model_id
        assert first.confidence_score == second.confidence_score

    def test_result_to_dict(self, registry: Registry) -> None:
        """Results serialize to plain dicts."""
        data = self.select(registry, "fascia_diagnosis").to_dict()
        assert data["chosen_model_id"] == "gpt-4o"
        assert data["cost_estimate"]["tokens_per_dollar"] == 400


class TestSelectionProperties:
    """Invariants over the default registry."""

    QUERIES = [
        "hi",
        "compare chronic pain",
        "Please compare the systematic differential interaction effects across "
        "multiple chronic symptoms",
        " ".join(["tension"] * 45),
    ]
    BUDGETS = [0, 10, 49.99, 50, 100, 1_000_000]
    PREFERENCES = [
        UserPreferences(),
        UserPreferences(prioritize_cost=True),
        UserPreferences(preferred_model_id="llama3.2"),
        UserPreferences(preferred_model_id="claude-3-opus", prioritize_cost=True),
    ]

    def test_safety_floor_holds_for_all_inputs(self) -> None:
        """Safety-critical requests never get a model below the accuracy floor."""
        registry = Registry()
        classifier = TaskClassifier(registry)
        selector = ModelSelector(registry)

        for task_type, query, budget, prefs in itertools.product(
            [t.key for t in DEFAULT_TASK_TYPES if t.safety_critical],
            self.QUERIES,
            self.BUDGETS,
            self.PREFERENCES,
        ):
            result = selector.select(classifier.classify(task_type, query), budget, prefs)
            chosen = registry.get_model(result.chosen_model_id)
            assert chosen is not None
            assert chosen.capability("medical_accuracy") >= SAFETY_ACCURACY_FLOOR

    def test_scores_never_exceed_ceiling(self) -> None:
        """No combination of components exceeds MAX_SCORE."""
        registry = Registry()
        for model, safety, complexity, prefs in itertools.product(
            registry, [True, False], [0.0, 0.7, 0.9], self.PREFERENCES
        ):
            req = requirement(
                safety_critical=safety,
                capabilities=("reasoning", "medical_accuracy"),
                complexity=complexity,
            )
            total = sum(score_components(model, req, prefs).values())
            assert total <= MAX_SCORE + 1e-9

    def test_perfect_model_hits_ceiling(self) -> None:
        """A model maxing every score reaches exactly MAX_SCORE."""
        perfect = profile("p", {"reasoning": 1.0, "medical_accuracy": 1.0}, cost_tier=1.0, speed=1.0)
        req = requirement(safety_critical=True, complexity=0.9)
        prefs = UserPreferences(preferred_model_id="p", prioritize_cost=True)
        assert sum(score_components(perfect, req, prefs).values()) == pytest.approx(MAX_SCORE)

    def test_chosen_model_is_always_registered(self) -> None:
        """Every decision names a registered model."""
        registry = Registry()
        classifier = TaskClassifier(registry)
        selector = ModelSelector(registry)
        for task_type in [t.key for t in DEFAULT_TASK_TYPES] + ["unknown"]:
            for budget in self.BUDGETS:
                result = selector.select(classifier.classify(task_type, "hi"), budget)
                assert result.chosen_model_id in registry


class TestCostEstimate:
    """Tests for estimate_cost() and build_reason()."""

    def test_tokens_are_a_third_of_characters_rounded_up(self) -> None:
        """Token estimate is ceil(len / 3)."""
        model = profile("m", {}, tokens_per_dollar=400)
        estimate = estimate_cost(model, "x" * 10)
        assert estimate.estimated_tokens == 4
        assert estimate.estimated_cost == pytest.approx(0.01)

    def test_empty_query_costs_nothing(self) -> None:
        """An empty query estimates to zero tokens."""
        estimate = estimate_cost(profile("m", {}), "")
        assert estimate.estimated_tokens == 0
        assert estimate.estimated_cost == 0.0

    def test_build_reason_ordering(self) -> None:
        """Reason phrases follow capability, safety, cost, complexity order."""
        reason = build_reason(
            {"capability": 0.35, "safety": 0.19, "cost": 0.27, "complexity": 0.29}, "educational"
        )
        assert reason == (
            "high capability match for educational, medical safety requirements, "
            "cost-optimized selection, complexity-appropriate reasoning"
        )

    def test_thresholds_are_strict(self) -> None:
        """Components exactly at their threshold are not named."""
        assert build_reason({"capability": 0.3, "cost": 0.25}, "x") == "best fit for x"


class TestUserPreferences:
    """Tests for UserPreferences.from_dict()."""

    def test_snake_case_keys(self) -> None:
        prefs = UserPreferences.from_dict({"preferred_model_id": "gpt-4o", "prioritize_cost": True})
        assert prefs == UserPreferences(preferred_model_id="gpt-4o", prioritize_cost=True)

    def test_camel_case_keys(self) -> None:
        """Keys used by the chat front end are accepted too."""
        prefs = UserPreferences.from_dict({"preferredModel": "llama3.2", "prioritizeCost": True})
        assert prefs.preferred_model_id == "llama3.2"
        assert prefs.prioritize_cost is True

    def test_none_gives_defaults(self) -> None:
        assert UserPreferences.from_dict(None) == UserPreferences()

    @pytest.mark.parametrize("value", ["false", "true", 1, 0, None])
    def test_non_boolean_prioritize_cost_rejected(self, value: object) -> None:
        """Only real booleans are accepted, so "false" cannot switch cost priority on."""
        with pytest.raises(ValueError):
            UserPreferences.from_dict({"prioritize_cost": value})

    def test_non_string_preferred_model_rejected(self) -> None:
        with pytest.raises(ValueError):
            UserPreferences.from_dict({"preferred_model_id": 42})
