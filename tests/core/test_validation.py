"""Tests for core/validation.py - payload validation and the persistence guard."""

import pytest

from core.exceptions import InvoiceValidationError
from core.models import InvoiceCreate, InvoiceItem
from core.validation import (
    INVALID_NUMBER,
    SUBTOTAL_MISMATCH,
    TOTAL_MISMATCH,
    ValidationResult,
    ensure_persistable,
    ensure_totals_consistent,
    validate_invoice_data,
)


@pytest.fixture
def valid_payload(items) -> InvoiceCreate:
    return InvoiceCreate(
        project_id="proj-1",
        project_title="Website Redesign",
        billed_to_name="Acme Corp",
        items=items,
        tax_percent=10,
        subtotal=150,
        total=165,
    )


class TestValidPayload:

    def test_valid_payload_has_no_errors(self, valid_payload):
        result = validate_invoice_data(valid_payload)

        assert result.is_valid
        assert result.errors == []

    def test_validation_is_repeatable(self, valid_payload):
        """Same input, same result."""
        assert validate_invoice_data(valid_payload) == validate_invoice_data(valid_payload)

    def test_sub_cent_rounding_accepted(self):
        payload = InvoiceCreate(
            project_id="p", project_title="t", billed_to_name="b",
            items=[InvoiceItem(description="x", quantity=3, rate=33.33, amount=99.99)],
            tax_percent=8.25, subtotal=99.99, total=108.24,
        )
        assert validate_invoice_data(payload).is_valid


class TestRequiredFields:

    def test_empty_payload_reports_every_problem(self):
        result = validate_invoice_data(InvoiceCreate())

        assert result.errors == [
            "Project ID is required",
            "Project title is required",
            "Billed to name is required",
            "At least one item is required",
        ]

    def test_whitespace_only_strings_are_missing(self, valid_payload):
        payload = valid_payload.model_copy(update={"billed_to_name": "   "})

        result = validate_invoice_data(payload)

        assert "Billed to name is required" in result.errors


class TestItems:

    def test_item_errors_are_numbered_from_one(self, valid_payload):
        bad = InvoiceItem(description="", quantity=0, rate=-1, amount=-1)
        payload = valid_payload.model_copy(update={"items": [valid_payload.items[0], bad]})

        errors = validate_invoice_data(payload).errors

        assert "Item 2: Description is required" in errors
        assert "Item 2: Quantity must be positive" in errors
        assert "Item 2: Rate cannot be negative" in errors
        assert "Item 2: Amount cannot be negative" in errors
        assert not any(e.startswith("Item 1:") for e in errors)

    def test_amount_must_equal_quantity_times_rate(self, valid_payload):
        item = InvoiceItem(description="Design", quantity=2, rate=50, amount=90)
        payload = valid_payload.model_copy(
            update={"items": [item], "subtotal": 90, "total": 99}
        )

        errors = validate_invoice_data(payload).errors

        assert errors == ["Item 1: Amount does not match quantity x rate"]


class TestTotals:

    def test_tax_out_of_range(self, valid_payload):
        payload = valid_payload.model_copy(update={"tax_percent": 101})

        errors = validate_invoice_data(payload).errors

        assert "Tax percentage must be between 0 and 100" in errors

    def test_negative_totals(self, valid_payload):
        payload = valid_payload.model_copy(update={"subtotal": -1, "total": -1})

        errors = validate_invoice_data(payload).errors

        assert "Subtotal cannot be negative" in errors
        assert "Total cannot be negative" in errors

    def test_subtotal_mismatch(self, valid_payload):
        payload = valid_payload.model_copy(update={"subtotal": 140, "total": 154})

        errors = validate_invoice_data(payload).errors

        assert errors == [SUBTOTAL_MISMATCH]

    def test_total_mismatch(self, valid_payload):
        payload = valid_payload.model_copy(update={"total": 160})

        errors = validate_invoice_data(payload).errors

        assert errors == [TOTAL_MISMATCH]

    def test_both_mismatches_in_order(self, valid_payload):
        payload = valid_payload.model_copy(update={"subtotal": 10, "total": 5})

        errors = validate_invoice_data(payload).errors

        assert errors == [SUBTOTAL_MISMATCH, TOTAL_MISMATCH]


class TestValidationResult:

    def test_raise_for_errors_carries_all_errors(self):
        result = ValidationResult(errors=["a", "b"])

        with pytest.raises(InvoiceValidationError) as exc_info:
            result.raise_for_errors()

        assert exc_info.value.errors == ["a", "b"]

    def test_raise_for_errors_noop_when_valid(self):
        ValidationResult().raise_for_errors()


class TestEnsureTotalsConsistent:

    def test_consistent_totals_pass(self, items):
        ensure_totals_consistent(items, 150, 10, 165)

    def test_inconsistent_total_raises(self, items):
        with pytest.raises(InvoiceValidationError) as exc_info:
            ensure_totals_consistent(items, 150, 10, 170)

        assert exc_info.value.errors == [TOTAL_MISMATCH]


class TestEnsurePersistable:

    def test_well_formed_invoice_passes(self, items):
        ensure_persistable("INV-202501-001", items, 150, 10, 165)

    @pytest.mark.parametrize("number", ["INV-202501-1000", "STU-202501-001", "COMBINED-1736950205000"])
    def test_malformed_number_rejected(self, items, number):
        with pytest.raises(InvoiceValidationError) as exc_info:
            ensure_persistable(number, items, 150, 10, 165)

        assert exc_info.value.errors == [INVALID_NUMBER]

    def test_reports_number_and_totals_together(self, items):
        with pytest.raises(InvoiceValidationError) as exc_info:
            ensure_persistable("INV-202501-1000", items, 140, 10, 165)

        assert exc_info.value.errors == [INVALID_NUMBER, SUBTOTAL_MISMATCH, TOTAL_MISMATCH]


class TestLargeAmounts:

    @pytest.fixture
    def payload(self) -> InvoiceCreate:
        return InvoiceCreate(
            project_id="proj-1",
            project_title="Brand Identity",
            billed_to_name="Acme Corp",
            items=[InvoiceItem(description="Design", quantity=2, rate=500000, amount=1000000)],
            tax_percent=10,
            subtotal=1000000,
            total=1100000,
        )

    def test_accepted(self, payload):
        assert validate_invoice_data(payload).is_valid

    def test_omitted_tax_is_total_mismatch(self, payload):
        untaxed = payload.model_copy(update={"total": 1000000})

        assert validate_invoice_data(untaxed).errors == [TOTAL_MISMATCH]
