"""
Static category tables.
Analytics works on category ids only; display names are for presentation.
"""
from typing import Dict

INCOME_CATEGORIES: Dict[str, str] = {
    "salary": "Salary",
    "freelance": "Freelance",
    "investments": "Investments",
    "business": "Business",
    "rental": "Rental Income",
    "other_income": "Other Income",
}

EXPENSE_CATEGORIES: Dict[str, str] = {
    "food": "Food & Dining",
    "shopping": "Shopping",
    "transport": "Transport",
    "utilities": "Bills & Utilities",
    "entertainment": "Entertainment",
    "healthcare": "Healthcare",
    "travel": "Travel",
    "education": "Education",
    "rent": "Rent/Mortgage",
    "insurance": "Insurance",
    "other": "Other",
}

BILL_CATEGORIES: Dict[str, str] = {
    "utilities": "Utilities",
    "rent": "Rent/Mortgage",
    "insurance": "Insurance",
    "phone": "Phone/Internet",
    "subscription": "Subscriptions",
    "credit_card": "Credit Card",
    "loan": "Loan Payment",
    "other": "Other",
}


def display_name(category_id: str) -> str:
    """Return a human label for a category id, falling back to the id itself."""
    for table in (EXPENSE_CATEGORIES, INCOME_CATEGORIES, BILL_CATEGORIES):
        if category_id in table:
            return table[category_id]
    return category_id
