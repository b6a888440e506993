"""Period parsing, draft aggregation and status rules without a database."""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from erp.services.gst_service import (
    GSTReturnError,
    build_draft,
    outstanding_liability,
    parse_period,
    summary_breakup,
)
from erp.services.gst_state_machine import (
    GSTStatusError,
    get_allowed_transitions,
    parse_status,
    validate_transition,
)


def make_invoice(number, treatment, sub_total, tax, cess="0", name="Asha Traders", gstin=None):
    sub_total, tax, cess = Decimal(sub_total), Decimal(tax), Decimal(cess)
    return SimpleNamespace(
        invoice_number=number,
        issue_date=date(2025, 11, 15),
        customer_name=name,
        customer_gstin=gstin,
        gst_treatment=treatment,
        status="Sent",
        sub_total=sub_total,
        tax_amount=tax,
        cess_amount=cess,
        grand_total=sub_total + tax + cess,
    )


class TestParsePeriod:
    def test_month_bounds(self):
        assert parse_period("2025-11") == (date(2025, 11, 1), date(2025, 11, 30))

    def test_december_rolls_into_next_year(self):
        assert parse_period("2024-12") == (date(2024, 12, 1), date(2024, 12, 31))

    def test_leap_february(self):
        assert parse_period("2024-02")[1] == date(2024, 2, 29)

    @pytest.mark.parametrize("period", ["2025-13", "2025-00", "2025-1", "11-2025", "", None, "abcd-ef"])
    def test_invalid(self, period):
        with pytest.raises(GSTReturnError) as exc:
            parse_period(period)
        assert exc.value.error_code == "INVALID_PERIOD"


class TestBuildDraft:
    def test_single_b2b_invoice(self):
        invoice = make_invoice("INV-00001", "b2b", "1000", "180", gstin="29ABCDE1234F1Z5")
        draft = build_draft("2025-11", date(2025, 11, 1), date(2025, 11, 30), [invoice])

        assert draft["totals"]["taxable_value"] == Decimal("1000.00")
        assert draft["totals"]["tax"] == Decimal("180.00")
        assert draft["totals"]["grand_total"] == Decimal("1180.00")
        assert draft["totals"]["invoices"] == 1
        assert list(draft["sections"]) == ["b2b"]
        assert draft["sections"]["b2b"]["label"] == "B2B"
        assert draft["sections"]["b2b"]["count"] == 1
        assert draft["invoices"][0]["customer_gstin"] == "29ABCDE1234F1Z5"

    def test_sections_sum_to_totals(self):
        invoices = [
            make_invoice("INV-00001", "b2b", "1000", "180"),
            make_invoice("INV-00002", "b2c", "250.50", "45.09"),
            make_invoice("INV-00003", "b2c", "100", "12", cess="1.50"),
            make_invoice("INV-00004", "export", "2000", "0"),
        ]
        draft = build_draft("2025-11", date(2025, 11, 1), date(2025, 11, 30), invoices)

        sections = draft["sections"].values()
        assert sum(s["count"] for s in sections) == draft["totals"]["invoices"] == 4
        assert sum(s["taxable_value"] for s in sections) == draft["totals"]["taxable_value"]
        assert sum(s["tax"] for s in sections) == draft["totals"]["tax"]
        assert draft["sections"]["b2c"]["count"] == 2
        assert draft["sections"]["export"]["label"] == "Export"
        assert "sez" not in draft["sections"]

    def test_empty_period(self):
        draft = build_draft("2025-11", date(2025, 11, 1), date(2025, 11, 30), [])

        assert draft["sections"] == {}
        assert draft["invoices"] == []
        assert draft["totals"]["invoices"] == 0
        assert draft["totals"]["tax"] == Decimal("0")

    def test_missing_customer_details_read_as_na(self):
        invoice = make_invoice("INV-00001", "b2c", "10", "0", name=None, gstin=None)
        draft = build_draft("2025-11", date(2025, 11, 1), date(2025, 11, 30), [invoice])

        assert draft["invoices"][0]["customer_name"] == "N/A"
        assert draft["invoices"][0]["customer_gstin"] == "N/A"

    def test_summary_breakup_is_json_safe(self):
        invoice = make_invoice("INV-00001", "b2b", "1000", "180")
        draft = build_draft(
            "2025-11", date(2025, 11, 1), date(2025, 11, 30), [invoice], Decimal("500")
        )

        assert summary_breakup(draft) == {
            "invoices": {"b2b": {"count": 1, "value": 1000.0, "tax": 180.0}},
            "collections": {"received": 500.0},
        }


class TestStatusRules:
    def test_outstanding_liability(self):
        assert outstanding_liability("draft", Decimal("180")) == Decimal("180.00")
        assert outstanding_liability("filed", Decimal("180")) == Decimal("180.00")
        assert outstanding_liability("paid", Decimal("180")) == Decimal("0")

    def test_parse_status_normalizes_case(self):
        assert parse_status("Filed") == "filed"

    def test_parse_status_rejects_unknown(self):
        with pytest.raises(GSTStatusError):
            parse_status("approved")

    def test_permissive_allows_backwards(self):
        validate_transition("filed", "draft", forward_only=False)

    def test_forward_only_allows_skipping(self):
        validate_transition("draft", "filed", forward_only=True)

    def test_forward_only_rejects_backwards(self):
        with pytest.raises(GSTStatusError) as exc:
            validate_transition("filed", "submitted", forward_only=True)
        assert exc.value.error_code == "INVALID_TRANSITION"

    def test_paid_is_terminal_when_forward_only(self):
        assert get_allowed_transitions("paid", forward_only=True) == []
        with pytest.raises(GSTStatusError):
            validate_transition("paid", "filed", forward_only=True)

    def test_same_status_is_always_allowed(self):
        validate_transition("paid", "paid", forward_only=True)
