"""
Two-Stage Transaction Form Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Amount parses as a number and is greater than zero
- Type is income or expense
- Category is present; category and description within length limits
- Date is present
Any failure here blocks the save.

STAGE 2 - SEMANTIC VALIDATION:
- Unusually large amounts
- Dates too far in the future
- Missing description
These are warnings only; the user may still save.

IMPORTANT: Validation NEVER silently fixes issues and never raises.
It reports them so the form can show them next to the inputs.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from litfunds.config import AppSettings, get_settings
from litfunds.models.transaction import (
    MAX_CATEGORY_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    Transaction,
    TransactionInput,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


class TransactionValidator:
    """
    Validates new/edit transaction form input.

    Stage 1: Schema validation (blocking errors)
    Stage 2: Semantic validation (warnings), only when stage 1 passes
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    @staticmethod
    def _parse_amount(raw: str) -> Optional[Decimal]:
        """Parse the typed amount, tolerating thousands separators."""
        cleaned = raw.replace(",", "").strip()
        if not cleaned:
            return None
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return None
        if not value.is_finite():
            return None
        return value

    def _validate_schema(
        self,
        form: TransactionInput,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        amount = self._parse_amount(form.amount)
        if not form.amount.strip():
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter how much money moved, e.g. 25.50",
            ))
        elif amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"'{form.amount}' is not a valid amount",
                severity="error",
                suggested_fix="Use digits only, e.g. 1250.00",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter a positive amount and pick the type instead",
            ))

        valid_types = {t.value for t in TransactionType}
        if form.type.strip().lower() not in valid_types:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"Type must be one of: {', '.join(sorted(valid_types))}",
                severity="error",
            ))

        if not form.category.strip():
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
                suggested_fix="Pick a category from the list",
            ))
        elif len(form.category) > MAX_CATEGORY_LENGTH:
            issues.append(ValidationIssue(
                field="category",
                issue_type="too_long",
                message=f"Category must be at most {MAX_CATEGORY_LENGTH} characters",
                severity="error",
            ))

        if len(form.description) > MAX_DESCRIPTION_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
                severity="error",
                suggested_fix="Shorten the description",
            ))

        if form.transaction_date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        form: TransactionInput,
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        amount = self._parse_amount(form.amount)

        max_amount = self._settings.max_transaction_amount
        if amount is not None and amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if form.transaction_date and form.transaction_date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({form.transaction_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        if not form.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="No description given",
                severity="info",
                suggested_fix="A short note makes the transaction easier to find later",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        form: TransactionInput,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run the two-stage validation pipeline.

        Args:
            form: Raw form values
            today: Reference day for the future-date check (defaults to today)

        Returns:
            ValidationResult with all issues found
        """
        today = today or date.today()
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(form)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(form, today)
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def to_transaction(
        self,
        form: TransactionInput,
        user_id: str,
        transaction_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Transaction:
        """
        Build the canonical Transaction from validated form input.

        The amount is typed as a positive magnitude; the model applies
        the sign from the type. Raises ValueError if the form has not
        passed schema validation.
        """
        amount = self._parse_amount(form.amount)
        if amount is None or amount <= 0 or form.transaction_date is None:
            raise ValueError("Form input must pass validation before conversion")

        fields = {
            "user_id": user_id,
            "amount": amount,
            "description": form.description,
            "category": form.category,
            "type": form.type.strip().lower(),
            "date": datetime.combine(form.transaction_date, time.min),
        }
        if transaction_id:
            fields["id"] = transaction_id
        if created_at:
            fields["created_at"] = created_at

        return Transaction(**fields)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show under the form.
        """
        if result.is_valid and not result.warnings:
            return "✅ Looks good!"

        lines = []

        if not result.schema_valid:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.schema_valid:
            lines.append("")
            lines.append("You can still save, but please double-check.")

        return "\n".join(lines).strip()
