# ABOUTME: Rich-based rendering for the F-Bot router CLI
# ABOUTME: Formats routing decisions, the model registry and cost totals

"""
F-Bot Router UI Components.

Renders router output using the Rich library:
- Routing decision with score breakdown
- Model registry table
- Cost totals with progress bars against alert thresholds
- Cost breakdown from the usage ledger
"""

from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from fbot_router.ledger import CostBreakdown
from fbot_router.meter import PERIODS, CostTotals
from fbot_router.registry import Registry
from fbot_router.selector import SelectionResult


def get_color_for_percent(percent: float) -> str:
    """Get color based on percentage threshold.

    - Green: Under 50%
    - Yellow: 50-80%
    - Red: Over 80%
    """
    if percent >= 80:
        return "red"
    elif percent >= 50:
        return "yellow"
    return "green"


def make_bar(percent: float, width: int = 20) -> str:
    """Generate a progress bar string."""
    filled = int(width * min(max(percent, 0), 100) / 100)
    return "█" * filled + "░" * (width - filled)


def render_decision(result: SelectionResult) -> RenderableType:
    """Render a routing decision as a tree with its score components."""
    style = "yellow" if result.needs_review else "green"
    tree = Tree(Text(f"🧭 {result.chosen_model_id}", style=f"bold {style}"))

    summary = Text()
    summary.append("Task: ", style="bold")
    summary.append(result.task_type, style="cyan")
    summary.append(" │ Safety: ", style="dim")
    summary.append(result.safety_level, style="red" if result.safety_level == "high" else "cyan")
    tree.add(summary)

    score = Text()
    score.append("Confidence: ", style="bold")
    score.append(f"{result.confidence_score:.3f}", style=style)
    if result.needs_review:
        score.append(" (needs review)", style="yellow")
    tree.add(score)

    tree.add(Text.assemble(("Reason: ", "bold"), result.reason))

    estimate = result.cost_estimate
    tree.add(
        Text.assemble(
            ("Estimate: ", "bold"),
            (f"~{estimate.estimated_tokens} tokens, ${estimate.estimated_cost:.4f}", "cyan"),
        )
    )

    if result.components:
        branch = tree.add(Text("Components", style="bold"))
        for name, value in result.components.items():
            branch.add(Text(f"{name}: {value:.3f}", style="dim"))

    return tree


def render_models(registry: Registry) -> RenderableType:
    """Render the capability registry as a table."""
    table = Table(title="📊 Registered Models")
    table.add_column("Model", style="cyan")
    table.add_column("Med. accuracy", justify="right")
    table.add_column("Reasoning", justify="right")
    table.add_column("Cost tier", justify="right")
    table.add_column("Speed", justify="right")
    table.add_column("Tokens/$", justify="right")
    table.add_column("Use cases", style="dim")

    for profile in registry:
        marker = " *" if profile.id == registry.default_model_id else ""
        table.add_row(
            f"{profile.id}{marker}",
            f"{profile.capability('medical_accuracy'):.2f}",
            f"{profile.capability('reasoning'):.2f}",
            f"{profile.cost_tier:.2f}",
            f"{profile.speed_score:.2f}",
            f"{profile.tokens_per_dollar:.0f}",
            ", ".join(sorted(profile.supported_task_categories)),
        )
    return table


def render_costs(totals: CostTotals, thresholds: dict[str, float]) -> RenderableType:
    """Render cost totals with progress bars against their alert thresholds."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("label", width=8)
    table.add_column("bar", width=24)
    table.add_column("values", width=28)

    for period in PERIODS:
        spent = totals.get(period)
        limit = thresholds.get(period) or 0.0
        percent = (spent / limit * 100) if limit > 0 else 0.0
        color = get_color_for_percent(percent)

        bar = Text()
        bar.append("│ ", style="dim")
        bar.append(make_bar(percent), style=color)
        bar.append(" │", style="dim")

        values = Text()
        values.append(f"${spent:.4f}", style=color)
        values.append(f"/${limit:.0f}", style="dim")
        values.append(f" ({percent:.0f}%)", style=color)

        table.add_row(period.capitalize(), bar, values)

    return table


def render_breakdown(breakdown: CostBreakdown) -> RenderableType:
    """Render ledger spend grouped by model and by task type."""
    by_model = Table(title="By model")
    by_model.add_column("Model", style="cyan")
    by_model.add_column("Cost", justify="right")
    for model, cost in breakdown.by_model.items():
        by_model.add_row(model, f"${cost:.4f}")

    by_task = Table(title="By task type")
    by_task.add_column("Task type", style="cyan")
    by_task.add_column("Cost", justify="right")
    for task_type, cost in breakdown.by_task_type.items():
        by_task.add_row(task_type, f"${cost:.4f}")

    total = Text.assemble(("Total: ", "bold"), (f"${breakdown.total:.4f}", "cyan"))
    return Group(by_model, by_task, total)
