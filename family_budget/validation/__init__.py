"""Input validation package."""

from family_budget.validation.validator import InputValidator, parse_amount_minor

__all__ = ["InputValidator", "parse_amount_minor"]
