"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Amount is a positive number
- This catches model replies that missed the point of the sentence

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Absurd amount detection
- Category and account must exist in the ledger
- Duplicate detection
- This catches logically impossible or suspicious data

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can confirm or correct the draft.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import structlog

from pixelledger.config import get_settings
from pixelledger.config.settings import AppSettings
from pixelledger.models.intent import TransactionDraft
from pixelledger.models.ledger import ValidationIssue, ValidationResult
from pixelledger.services.storage.interface import (
    CatalogStorageInterface,
    ExpenseStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class TransactionValidator:
    """
    Validates AI-parsed transaction drafts through a two-stage pipeline.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (needs the catalog for names and the
    expense store for duplicate checks)
    """

    def __init__(
        self,
        catalog_storage: Optional[CatalogStorageInterface] = None,
        expense_storage: Optional[ExpenseStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize validator.

        Args:
            catalog_storage: Used to check that category/account names exist.
                            If None, name checks are skipped.
            expense_storage: Used for duplicate checking.
                            If None, duplicate checking is skipped.
        """
        self._catalog = catalog_storage
        self._expenses = expense_storage
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        draft: TransactionDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="No amount could be found in the input",
                severity="error",
                suggested_fix="Include the amount, e.g. 'lunch 35'",
            ))
        elif draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Check if the amount was read correctly",
            ))

        if not draft.category_name:
            issues.append(ValidationIssue(
                field="category_name",
                issue_type="missing",
                message="No category was chosen for this transaction",
                severity="warning",
                suggested_fix="Pick a category before saving",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        draft: TransactionDraft,
        when: datetime,
        now: datetime,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation that needs no storage.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        max_future = now + timedelta(days=self._settings.future_date_tolerance_days)
        if when > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({when:%Y-%m-%d}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if draft.amount and draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=(
                    f"Amount ({self._settings.currency_symbol}{draft.amount:,.2f}) "
                    "seems unusually high"
                ),
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    async def _check_names(self, draft: TransactionDraft) -> list[ValidationIssue]:
        """Category and account must already exist in the ledger."""
        issues = []

        if self._catalog is None:
            return issues

        if draft.category_name:
            category = await self._catalog.get_category_by_name(draft.category_name)
            if category is None:
                issues.append(ValidationIssue(
                    field="category_name",
                    issue_type="unknown",
                    message=f"Category '{draft.category_name}' does not exist",
                    severity="error",
                    suggested_fix="Choose one of your existing categories",
                ))

        if draft.account_name:
            account = await self._catalog.get_account_by_name(draft.account_name)
            if account is None:
                issues.append(ValidationIssue(
                    field="account_name",
                    issue_type="unknown",
                    message=f"Account '{draft.account_name}' does not exist",
                    severity="error",
                    suggested_fix="Choose one of your existing accounts",
                ))

        return issues

    async def _check_duplicates(
        self,
        draft: TransactionDraft,
        when: datetime,
    ) -> list[ValidationIssue]:
        """
        Flag a record with the same amount on the same day.

        This requires storage access.
        """
        issues = []

        if self._expenses is None or draft.amount is None:
            return issues

        day_start = when.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1) - timedelta(microseconds=1)

        try:
            same_day = await self._expenses.list_expenses(day_start, day_end)
        except StorageError as e:
            # Duplicate detection is advisory
            logger.warning("duplicate_check_failed", error=str(e))
            return issues

        if any(e.amount == draft.amount for e in same_day):
            issues.append(ValidationIssue(
                field="duplicate",
                issue_type="potential_duplicate",
                message=(
                    f"A record of {self._settings.currency_symbol}{draft.amount:.2f} "
                    f"on {when:%Y-%m-%d} already exists"
                ),
                severity="warning",
                suggested_fix="Please verify this isn't a duplicate entry",
            ))

        return issues

    async def validate(
        self,
        draft: TransactionDraft,
        check_duplicates: bool = True,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            draft: The AI-parsed draft to validate
            check_duplicates: Whether to check for duplicates (requires storage)
            now: Reference time for relative dates and the future check

        Returns:
            ValidationResult with all issues found
        """
        now = now or datetime.now()
        all_issues = []

        # Stage 1: Schema validation
        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            when = draft.resolve_date(now)
            semantic_valid, semantic_issues = self._validate_semantic(draft, when, now)
            all_issues.extend(semantic_issues)

            name_issues = await self._check_names(draft)
            all_issues.extend(name_issues)
            if any(issue.severity == "error" for issue in name_issues):
                semantic_valid = False

            if check_duplicates:
                all_issues.extend(await self._check_duplicates(draft, when))

        warnings = [i.message for i in all_issues if i.severity == "warning"]
        is_valid = schema_valid and semantic_valid

        # A draft without a category can still be saved once the user picks one
        can_save = is_valid and bool(draft.category_name)

        return ValidationResult(
            draft_id=draft.draft_id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=is_valid,
            can_save=can_save,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed! Please review the details below."

        lines = []

        if result.has_errors:
            lines.append("❌ This transaction cannot be saved yet:")
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

        lines.append("")
        if result.can_save:
            lines.append("You can still save, but please review carefully.")
        else:
            lines.append("Please fix the issues above before saving.")

        return "\n".join(lines)
