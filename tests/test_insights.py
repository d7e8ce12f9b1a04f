from app.utils.analyzer import ExpenseAnalyzer
from app.utils.insights import build_insights


def test_no_transactions_no_insights():
    assert build_insights(ExpenseAnalyzer([]).summarize()) == []


def test_insight_cards():
    transactions = [
        {"type": "income", "category": "salary", "amount": 3000.0},
        {"type": "expense", "category": "food", "amount": 100.0},
        {"type": "expense", "category": "food", "amount": 50.0},
        {"type": "income", "category": "salary", "amount": 3000.0},
        {"type": "expense", "category": "transport", "amount": 20.0},
    ]
    insights = build_insights(ExpenseAnalyzer(transactions).summarize(), format_amount=lambda a: f"${a:.0f}")
    titles = [i.title for i in insights]

    assert "High Spending in Food & Dining" in titles
    assert "Savings Opportunity: Food & Dining" in titles
    income = next(i for i in insights if i.title == "Income Analysis")
    assert income.type == "success"
    assert "0.0% variability. Trend is stable." in income.message
    prediction = next(i for i in insights if i.title == "Expense Prediction")
    assert prediction.message.endswith("$-1223")


def test_anomaly_card():
    transactions = [{"type": "expense", "category": "food", "amount": 10.0} for _ in range(10)]
    transactions.append({"type": "expense", "category": "travel", "amount": 1000.0})
    insights = build_insights(ExpenseAnalyzer(transactions).summarize())
    anomaly = next(i for i in insights if i.title == "Unusual Transactions Detected")
    assert anomaly.message.startswith("Found 1 transactions")
