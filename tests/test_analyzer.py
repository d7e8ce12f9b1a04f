import pytest

from app.models.transaction import TransactionCreate
from app.utils.analyzer import ExpenseAnalyzer

sample_transactions = [
    {"type": "expense", "category": "food", "amount": 100.0, "date": "2025-11-01T12:00:00Z", "currency": "USD"},
    {"type": "expense", "category": "food", "amount": 50.0, "date": "2025-11-02T12:00:00Z", "currency": "USD"},
    {"type": "expense", "category": "transport", "amount": 20.0, "date": "2025-11-03T12:00:00Z", "currency": "USD"},
]


def _expense(category, amount):
    return {"type": "expense", "category": category, "amount": amount}


def _income(amount):
    return {"type": "income", "category": "salary", "amount": amount}


def test_spending_patterns_percentages():
    patterns = {p.category: p for p in ExpenseAnalyzer(sample_transactions).analyze_spending_patterns()}
    assert set(patterns) == {"food", "transport"}
    assert patterns["food"].amount == 150.0
    assert round(patterns["food"].percentage, 1) == 88.2
    assert patterns["food"].is_high_spending is True
    assert patterns["transport"].is_high_spending is False


def test_spending_patterns_sum_to_hundred():
    transactions = sample_transactions + [_expense("rent", 812.37), _income(3000.0), _expense("fun", 3.33)]
    patterns = ExpenseAnalyzer(transactions).analyze_spending_patterns()
    assert sum(p.percentage for p in patterns) == pytest.approx(100.0)


def test_spending_patterns_empty_without_expenses():
    assert ExpenseAnalyzer([]).analyze_spending_patterns() == []
    assert ExpenseAnalyzer([_income(1000.0)]).analyze_spending_patterns() == []
    assert ExpenseAnalyzer([_expense("food", 0.0)]).analyze_spending_patterns() == []


def test_high_spending_threshold_is_strict():
    transactions = [
        _expense("food", 3000.0),
        _expense("rent", 3001.0),
        _expense("travel", 2999.0),
        _expense("other", 1000.0),
    ]
    analyzer = ExpenseAnalyzer(transactions)
    patterns = {p.category: p for p in analyzer.analyze_spending_patterns()}
    assert patterns["food"].percentage == 30.0
    assert patterns["food"].is_high_spending is False
    assert patterns["rent"].is_high_spending is True

    high = [r for r in analyzer.generate_savings_recommendations() if r.priority == "high"]
    assert [r.category for r in high] == ["rent"]
    assert "30.0%" in high[0].message


def test_detect_anomalies():
    transactions = [_expense("food", 10.0) for _ in range(10)] + [_income(1000.0)]
    anomalies = ExpenseAnalyzer(transactions).detect_anomalies()
    assert anomalies == [transactions[-1]]


def test_detect_anomalies_identical_amounts():
    transactions = [_expense("food", 42.5) for _ in range(6)]
    assert ExpenseAnalyzer(transactions).detect_anomalies() == []
    assert ExpenseAnalyzer([]).detect_anomalies() == []


def test_small_expense_recommendation():
    transactions = [
        _expense("coffee", 4.0),
        _expense("coffee", 3.5),
        _income(2000.0),
        _income(2000.0),
        _income(2000.0),
    ]
    recommendations = ExpenseAnalyzer(transactions).generate_savings_recommendations()
    medium = [r for r in recommendations if r.priority == "medium"]
    assert len(medium) == 1
    assert medium[0].category == "Small Expenses"


def test_small_expense_share_must_exceed_twenty_percent():
    # 1 of 5 transactions is exactly 20%
    transactions = [_expense("coffee", 4.0)] + [_income(2000.0)] * 4
    recommendations = ExpenseAnalyzer(transactions).generate_savings_recommendations()
    assert all(r.priority != "medium" for r in recommendations)


def test_income_stability_needs_two_incomes():
    assert ExpenseAnalyzer([]).analyze_income_stability() is None
    assert ExpenseAnalyzer([_income(1000.0), _expense("food", 5.0)]).analyze_income_stability() is None


def test_income_stability_increasing():
    transactions = [_income(1000.0), _income(1000.0), _income(1100.0), _income(1100.0)]
    stability = ExpenseAnalyzer(transactions).analyze_income_stability()
    assert stability.stable is True
    assert stability.variability_percent == pytest.approx(50 / 1050 * 100)
    assert stability.trend == "increasing"


def test_income_stability_decreasing_and_variable():
    transactions = [_income(3000.0), _income(1000.0), _income(500.0)]
    stability = ExpenseAnalyzer(transactions).analyze_income_stability()
    assert stability.stable is False
    assert stability.variability_percent >= 0
    assert stability.trend == "decreasing"


def test_income_stability_zero_income():
    stability = ExpenseAnalyzer([_income(0.0), _income(0.0)]).analyze_income_stability()
    assert stability.variability_percent == 0.0
    assert stability.trend == "stable"


def test_predict_future_expenses():
    transactions = [_expense("food", 10.0), _income(500.0), _expense("food", 20.0), _expense("food", 30.0)]
    assert ExpenseAnalyzer(transactions).predict_future_expenses(30) == pytest.approx(340.0)


def test_predict_future_expenses_is_not_clamped():
    transactions = [_expense("food", 30.0), _expense("food", 20.0), _expense("food", 10.0)]
    assert ExpenseAnalyzer(transactions).predict_future_expenses(30) == pytest.approx(-300.0)


def test_predict_future_expenses_fallbacks():
    assert ExpenseAnalyzer([]).predict_future_expenses() == 0.0
    assert ExpenseAnalyzer([_income(100.0)]).predict_future_expenses() == 0.0
    assert ExpenseAnalyzer([_expense("food", 75.0)]).predict_future_expenses(10) == 75.0


def test_accepts_pydantic_transactions():
    transactions = [
        TransactionCreate(type="expense", category="food", amount=100.0),
        TransactionCreate(type="expense", category="transport", amount=20.0),
    ]
    patterns = {p.category: p for p in ExpenseAnalyzer(transactions).analyze_spending_patterns()}
    assert patterns["food"].is_high_spending is True


def test_summarize():
    result = ExpenseAnalyzer(sample_transactions).summarize()
    data = result.to_dict()
    assert data["transaction_count"] == 3
    assert len(data["spending_patterns"]) == 2
    assert data["income_stability"] is None
    assert [r["category"] for r in data["recommendations"]] == ["food"]


def test_summarize_empty():
    result = ExpenseAnalyzer([]).summarize()
    assert result.transaction_count == 0
    assert result.spending_patterns == []
    assert result.predicted_expense == 0.0
