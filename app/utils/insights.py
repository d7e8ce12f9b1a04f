"""
Insight cards for the dashboard, built from one ExpenseAnalyzer pass.
"""
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional

from app.core.categories import display_name
from app.utils.analyzer import AnalysisResult


@dataclass
class Insight:
    title: str
    message: str
    type: str  # info | success | warning

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _plain_amount(amount: float) -> str:
    return f"{amount:,.2f}"


def build_insights(
    result: AnalysisResult,
    format_amount: Optional[Callable[[float], str]] = None,
) -> List[Insight]:
    """
    Turn an analysis into display cards. Amount formatting (currency symbols,
    conversion) belongs to the caller and is passed in as ``format_amount``.
    """
    if result.transaction_count == 0:
        return []

    fmt = format_amount or _plain_amount
    insights: List[Insight] = []

    for pattern in result.spending_patterns:
        if pattern.is_high_spending:
            insights.append(
                Insight(
                    title=f"High Spending in {display_name(pattern.category)}",
                    message=(
                        f"This category represents {pattern.percentage:.1f}% of your total expenses. "
                        "Consider setting a budget."
                    ),
                    type="warning",
                )
            )

    if result.anomalies:
        insights.append(
            Insight(
                title="Unusual Transactions Detected",
                message=(
                    f"Found {len(result.anomalies)} transactions that are significantly "
                    "different from your usual spending."
                ),
                type="info",
            )
        )

    stability = result.income_stability
    if stability:
        insights.append(
            Insight(
                title="Income Analysis",
                message=(
                    f"Your income is {'stable' if stability.stable else 'variable'} with "
                    f"{stability.variability_percent:.1f}% variability. Trend is {stability.trend}."
                ),
                type="success" if stability.stable else "warning",
            )
        )

    insights.append(
        Insight(
            title="Expense Prediction",
            message=(
                "Based on your spending patterns, predicted expenses for next month: "
                f"{fmt(result.predicted_expense)}"
            ),
            type="info",
        )
    )

    for rec in result.recommendations:
        insights.append(
            Insight(
                title=f"Savings Opportunity: {display_name(rec.category)}",
                message=rec.message,
                type="warning" if rec.priority == "high" else "info",
            )
        )

    return insights
