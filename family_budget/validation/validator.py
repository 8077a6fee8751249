"""
Pre-flight Input Validation

DESIGN DECISION: Input is checked before any request is sent.
A request that would obviously be rejected (empty name, amount that is
not a whole number of minor units, zero amount, reversed period) is
blocked locally and the first problem is shown next to the form.

Everything else is the server's business. Its answer to a request that
passes these checks is shown as-is, whatever it says.

IMPORTANT: Validation NEVER silently fixes input.
It reports problems; the caller decides what to do.
"""

import re
from datetime import date
from typing import Optional

from family_budget.models.budget import (
    Account,
    Category,
    CategoryType,
    Density,
    Theme,
    ValidationIssue,
    ValidationResult,
)


_CURRENCY_RE = re.compile(r"^[A-Za-z]{3}$")


def parse_amount_minor(text: Optional[str]) -> Optional[int]:
    """
    Parse an amount typed in minor units.

    Returns None unless the text is a whole number (e.g. "1500", "-20").
    """
    if text is None:
        return None
    text = text.strip().replace(" ", "")
    if not re.fullmatch(r"[+-]?\d+", text):
        return None
    return int(text)


def _issue(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message)


class InputValidator:
    """
    Validates form input for every mutating request.

    Each check_* method returns a ValidationResult; an empty result
    means the request may be sent.
    """

    def _require(self, issues: list, field: str, value: Optional[str], label: str) -> None:
        if value is None or not value.strip():
            issues.append(_issue(field, "missing", f"{label} is required"))

    def _check_currency(self, issues: list, field: str, value: Optional[str]) -> None:
        if value and not _CURRENCY_RE.match(value.strip()):
            issues.append(_issue(
                field,
                "invalid_format",
                "Currency must be a three-letter code (e.g. RUB, USD)",
            ))

    def check_registration(
        self,
        email: str,
        password: str,
        name: str,
        currency: str,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._require(issues, "email", email, "Email")
        if email and email.strip() and "@" not in email:
            issues.append(_issue("email", "invalid_format", "Email address looks invalid"))
        self._require(issues, "password", password, "Password")
        self._require(issues, "name", name, "Name")
        self._require(issues, "currency", currency, "Currency")
        self._check_currency(issues, "currency", currency)
        return ValidationResult(issues=issues)

    def check_category(
        self,
        name: str,
        category_type: str,
        parent_id: Optional[str] = None,
        editing_category_id: Optional[str] = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._require(issues, "name", name, "Category name")
        if category_type not in {t.value for t in CategoryType}:
            issues.append(_issue("type", "invalid_value", f"Unknown category type: {category_type}"))
        if parent_id and editing_category_id and parent_id == editing_category_id:
            issues.append(_issue("parent_id", "invalid_value", "A category cannot be its own parent"))
        return ValidationResult(issues=issues)

    def check_archive(self, category: Optional[Category], archived: bool) -> ValidationResult:
        """System categories cannot be archived from the client."""
        issues: list[ValidationIssue] = []
        if category is None:
            issues.append(_issue("category_id", "missing", "Category not found"))
        elif archived and category.is_system:
            issues.append(_issue("category_id", "not_allowed", "System categories cannot be archived"))
        return ValidationResult(issues=issues)

    def check_account(
        self,
        name: str,
        currency: Optional[str] = None,
        initial_balance: Optional[str] = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._require(issues, "name", name, "Account name")
        self._check_currency(issues, "currency", currency)
        if initial_balance and initial_balance.strip():
            if parse_amount_minor(initial_balance) is None:
                issues.append(_issue(
                    "initial_balance_minor",
                    "not_integer",
                    "Initial balance must be a whole number of minor units",
                ))
        return ValidationResult(issues=issues)

    def check_transaction(
        self,
        account: Optional[Account],
        category_id: Optional[str],
        amount: Optional[str],
        has_accounts: bool = True,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if not has_accounts:
            issues.append(_issue("account_id", "missing", "Add an account first"))
        elif account is None:
            issues.append(_issue("account_id", "missing", "Choose an account"))
        if not category_id:
            issues.append(_issue("category_id", "missing", "Choose a category"))

        amount_minor = parse_amount_minor(amount)
        if amount_minor is None:
            issues.append(_issue("amount_minor", "not_integer", "Amount must be a whole number"))
        elif amount_minor == 0:
            issues.append(_issue("amount_minor", "zero_amount", "Amount cannot be zero"))
        return ValidationResult(issues=issues)

    def check_planned_operation(
        self,
        account: Optional[Account],
        category_id: Optional[str],
        title: str,
        amount: Optional[str],
        due_date: Optional[date],
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if account is None:
            issues.append(_issue("account_id", "missing", "Choose an account for the planned operation"))
        if not category_id:
            issues.append(_issue("category_id", "missing", "Choose a category"))
        self._require(issues, "title", title, "Title")

        amount_minor = parse_amount_minor(amount)
        if amount_minor is None:
            issues.append(_issue("amount_minor", "not_integer", "Amount must be a whole number"))
        elif amount_minor <= 0:
            issues.append(_issue("amount_minor", "not_positive", "Amount must be greater than zero"))

        if due_date is None:
            issues.append(_issue("due_at", "missing", "Choose a valid due date"))
        return ValidationResult(issues=issues)

    def check_period(self, start: Optional[date], end: Optional[date]) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if start and end and start > end:
            issues.append(_issue("period", "inconsistent", "Start date must not be after end date"))
        return ValidationResult(issues=issues)

    def check_settings(
        self,
        theme: str,
        density: str,
        user_currency: Optional[str] = None,
        family_currency: Optional[str] = None,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        if theme.strip().lower() not in {t.value for t in Theme}:
            issues.append(_issue("theme", "invalid_value", f"Unknown theme: {theme}"))
        if density.strip().lower() not in {d.value for d in Density}:
            issues.append(_issue("density", "invalid_value", f"Unknown density: {density}"))
        self._check_currency(issues, "user_currency", user_currency)
        self._check_currency(issues, "family_currency", family_currency)
        return ValidationResult(issues=issues)
