from __future__ import annotations

import statistics
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

HIGH_SPENDING_PERCENT = 30.0
ANOMALY_SIGMA = 2.0
SMALL_EXPENSE_AMOUNT = 10.0
SMALL_EXPENSE_SHARE = 0.2
STABLE_INCOME_CV = 0.15
TREND_PERCENT = 5.0


@dataclass
class CategorySpending:
    """Share of total expenses taken by one category."""

    category: str
    amount: float
    percentage: float
    is_high_spending: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Recommendation:
    category: str
    message: str
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class IncomeStability:
    stable: bool
    variability_percent: float
    trend: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnalysisResult:
    spending_patterns: List[CategorySpending] = field(default_factory=list)
    anomalies: List[Any] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    income_stability: Optional[IncomeStability] = None
    predicted_expense: float = 0.0
    transaction_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "spending_patterns": [p.to_dict() for p in self.spending_patterns],
            "anomalies": [_as_mapping(t) for t in self.anomalies],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "income_stability": self.income_stability.to_dict() if self.income_stability else None,
            "predicted_expense": self.predicted_expense,
            "transaction_count": self.transaction_count,
        }


def _as_mapping(transaction: Any) -> Dict[str, Any]:
    if isinstance(transaction, Mapping):
        return dict(transaction)
    return transaction.model_dump(mode="json")


def _type_of(transaction: Mapping[str, Any]) -> str:
    value = transaction.get("type")
    # Enum members and plain strings both end up as their value
    return getattr(value, "value", value)


def _mean_and_pstdev(values: Sequence[float]):
    mean = statistics.fmean(values)
    return mean, statistics.pstdev(values)


class ExpenseAnalyzer:
    """
    Pure analytics over a snapshot of transactions.

    Transactions may be plain dicts (as returned by the data store) or pydantic
    models; each needs ``amount``, ``type`` and ``category``. Nothing is cached
    and nothing is mutated, so one instance may be shared between threads.

    The income trend in :meth:`analyze_income_stability` splits income in the
    order given, so callers must pass transactions sorted chronologically for
    the trend to mean anything.
    """

    def __init__(self, transactions: Sequence[Any]) -> None:
        self._originals = list(transactions)
        self._records = [
            t if isinstance(t, Mapping) else t.model_dump() for t in self._originals
        ]

    def _amount(self, record: Mapping[str, Any]) -> float:
        return float(record.get("amount", 0) or 0)

    def _amounts_of(self, kind: str) -> List[float]:
        return [self._amount(r) for r in self._records if _type_of(r) == kind]

    def analyze_spending_patterns(self) -> List[CategorySpending]:
        totals: Dict[str, float] = {}
        for record in self._records:
            if _type_of(record) != "expense":
                continue
            category = record.get("category", "")
            totals[category] = totals.get(category, 0.0) + self._amount(record)

        total = sum(totals.values())
        if total <= 0:
            return []

        patterns = []
        for category, amount in totals.items():
            percentage = amount * 100 / total
            patterns.append(
                CategorySpending(
                    category=category,
                    amount=amount,
                    percentage=percentage,
                    is_high_spending=percentage > HIGH_SPENDING_PERCENT,
                )
            )
        return patterns

    def detect_anomalies(self) -> List[Any]:
        """
        Flag transactions more than two population standard deviations away
        from the mean of all amounts, income and expense alike.
        """
        if not self._records:
            return []

        amounts = [self._amount(r) for r in self._records]
        mean, stdev = _mean_and_pstdev(amounts)
        if stdev == 0:
            return []

        return [
            original
            for original, amount in zip(self._originals, amounts)
            if abs(amount - mean) > ANOMALY_SIGMA * stdev
        ]

    def generate_savings_recommendations(self) -> List[Recommendation]:
        recommendations = [
            Recommendation(
                category=pattern.category,
                message=(
                    f"Consider reducing spending in {pattern.category} as it represents "
                    f"{pattern.percentage:.1f}% of your expenses"
                ),
                priority="high",
            )
            for pattern in self.analyze_spending_patterns()
            if pattern.percentage > HIGH_SPENDING_PERCENT
        ]

        small_expenses = sum(
            1
            for r in self._records
            if _type_of(r) == "expense" and self._amount(r) < SMALL_EXPENSE_AMOUNT
        )
        # Share is taken over all transactions, not just expenses
        if small_expenses > len(self._records) * SMALL_EXPENSE_SHARE:
            recommendations.append(
                Recommendation(
                    category="Small Expenses",
                    message=(
                        "You have many small transactions. Consider bundling purchases "
                        "to reduce impulse spending."
                    ),
                    priority="medium",
                )
            )
        return recommendations

    def analyze_income_stability(self) -> Optional[IncomeStability]:
        incomes = self._amounts_of("income")
        if len(incomes) < 2:
            return None

        mean, stdev = _mean_and_pstdev(incomes)
        variability = stdev / mean if mean else 0.0
        return IncomeStability(
            stable=variability < STABLE_INCOME_CV,
            variability_percent=variability * 100,
            trend=self._trend(incomes),
        )

    @staticmethod
    def _trend(values: List[float]) -> str:
        middle = len(values) // 2
        first_avg = statistics.fmean(values[:middle])
        second_avg = statistics.fmean(values[middle:])
        if first_avg == 0:
            return "stable"

        change = (second_avg - first_avg) / first_avg * 100
        if change > TREND_PERCENT:
            return "increasing"
        if change < -TREND_PERCENT:
            return "decreasing"
        return "stable"

    def predict_future_expenses(self, days_ahead: int = 30) -> float:
        """
        Fit amount = a + b * index over expenses (index = position among
        expenses) by least squares and evaluate it at ``count + days_ahead``.

        With no expenses the forecast is 0.0; with one it is that amount.
        The result is not clamped and may be negative on a falling trend.
        """
        amounts = self._amounts_of("expense")
        n = len(amounts)
        if n == 0:
            return 0.0
        if n == 1:
            return amounts[0]

        x_mean = (n - 1) / 2
        y_mean = statistics.fmean(amounts)
        sxx = sum((i - x_mean) ** 2 for i in range(n))
        sxy = sum((i - x_mean) * (y - y_mean) for i, y in enumerate(amounts))
        slope = sxy / sxx
        intercept = y_mean - slope * x_mean
        return intercept + slope * (n + days_ahead)

    def summarize(self, days_ahead: int = 30) -> AnalysisResult:
        if not self._records:
            return AnalysisResult()

        return AnalysisResult(
            spending_patterns=self.analyze_spending_patterns(),
            anomalies=self.detect_anomalies(),
            recommendations=self.generate_savings_recommendations(),
            income_stability=self.analyze_income_stability(),
            predicted_expense=self.predict_future_expenses(days_ahead),
            transaction_count=len(self._records),
        )
