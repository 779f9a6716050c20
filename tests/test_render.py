"""Tests for rich renderables: customer details, raw fields, plan tables, TUI panels."""

from datetime import datetime, timezone

import pytest
from rich.console import Console

from billbrowse.billing.credits import CREDIT_SYSTEMS
from billbrowse.billing.records import Customer, group_by_plan, overall_summary
from billbrowse.billing.render import (
    customer_details,
    format_value,
    plans_table,
    record_field_table,
    summary_table,
)
from billbrowse.core.batch import BatchOrchestrator
from billbrowse.core.browser import PageRow
from billbrowse.tui.presenter import CustomerPresenter

from tests.browser_harness import ScriptedHandler, action, make_browser, make_records, press


def _text(renderable, width=120) -> str:
    console = Console(record=True, width=width)
    console.print(renderable)
    return console.export_text()


@pytest.fixture
def ada():
    return Customer.from_dict(
        {
            "id": "cus_ada",
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "stripe_id": "cus_s1",
            "env": "live",
            "created_at": "2024-01-05T10:00:00Z",
            "products": [{"id": "pro", "name": "Pro", "group": "plan", "status": "active"}],
            "features": {"ai-tokens": {"balance": -150}},
        }
    )


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, "N/A"),
        (True, "✓"),
        (False, "✗"),
        ({"a": 1, "b": 2}, "<dict: 2 items>"),
        ([1], "<list: 1 items>"),
        ("x" * 60, "x" * 47 + "..."),
        (3, "3"),
    ],
)
def test_format_value(value, expected):
    assert format_value(value) == expected


class TestRecordFieldTable:
    def test_important_fields_first(self):
        out = _text(record_field_table({"zeta": 1, "email": "a@b.c", "id": "x1"}, title="Record x1"))
        assert out.index("Email") < out.index("zeta")
        assert out.index("ID") < out.index("zeta")

    def test_truncation_note(self):
        data = {f"k{i}": i for i in range(10)}
        out = _text(record_field_table(data, max_items=4))
        assert "... and 6 more fields" in out

    def test_formatters(self):
        out = _text(record_field_table({"created_at": 0, "spend_limit": None, "credit": 5}))
        assert "1970-01-01 00:00" in out
        assert "N/A" in out
        assert "$5" in out

    def test_empty(self):
        assert "No data available" in _text(record_field_table({}))


class TestCustomerDetails:
    def test_default_style(self, ada):
        out = _text(customer_details(ada, plan_price=20.0, credit_system=CREDIT_SYSTEMS["tokens"]))
        assert "Customer Details" in out
        assert "Ada Lovelace" in out
        assert "✓ Connected" in out
        assert "$20.00/month" in out
        assert "150 tokens" in out
        assert "Created:" in out and "2024-01-05" in out
        assert "Total Monthly Value: $170.00" in out

    def test_compact_style(self, ada):
        out = _text(customer_details(ada, plan_price=20.0, credit_system=CREDIT_SYSTEMS["tokens"], style="compact"))
        assert "Ada Lovelace" in out
        assert "Pro - $20.00/mo" in out
        assert "Customer Details" not in out

    def test_secondary_credits_listed(self):
        customer = Customer(id="c", features={"cpu-credit": {"balance": -250}})
        out = _text(customer_details(customer, plan_price=0.0, credit_system=CREDIT_SYSTEMS["multi_credit"]))
        assert "CPU Credits:" in out
        assert "$2.50" in out
        assert "✗ Not Connected" in out


def test_plans_and_summary_tables(ada):
    bob = Customer(id="cus_bob", products=[{"id": "pro", "name": "Pro", "group": "plan", "status": "active"}])
    groups = group_by_plan([ada, bob], {"pro": 20.0}, CREDIT_SYSTEMS["tokens"])
    now = datetime(2024, 1, 20, tzinfo=timezone.utc)
    out = _text(plans_table(groups, now=now), width=160)
    assert "Pro" in out
    assert "100.0%" in out
    assert "$40.00" in out

    out = _text(summary_table(overall_summary(groups)))
    assert "$40.00/month" in out
    assert "$190.00" in out


class TestPresenter:
    @pytest.fixture
    def presenter(self):
        return CustomerPresenter({"pro": 20.0}, CREDIT_SYSTEMS["tokens"])

    def test_columns_use_credit_name(self, presenter):
        assert "Tokens" in presenter.columns()
        assert len(presenter.columns()) == 9

    def test_row_cells(self, presenter, ada):
        row = PageRow(record=ada, value=170.0, is_cursor=True, is_selected=True)
        cells = presenter.row_cells(row, multi_select=True)
        assert len(cells) == len(presenter.columns())
        assert str(cells[0]) == "▸●"
        assert str(cells[4]) == "20.00"
        assert str(cells[5]) == "150 tokens"
        assert str(cells[6]) == "170.00"
        assert cells[7] == "✓"

    def test_details_without_record(self, presenter):
        assert "No customer selected" in _text(presenter.details(None))

    def test_menu_panel(self, presenter):
        browser = make_browser(make_records(3), [action(ScriptedHandler(), id="one"), action(ScriptedHandler(), id="two")])
        press(browser, "m", "a", "enter", "down")
        out = _text(presenter.menu_panel(browser.snapshot().menu, target_label="Customer 01"))
        assert "3 customers selected" in out
        assert "→ Two" in out

    def test_batch_panel(self, presenter):
        orch = BatchOrchestrator()
        session = orch.start(["a", "b"])
        callback = orch.status_callback(session.token)
        callback("a", "Migration completed successfully")
        callback("b", "ERROR: timeout")
        browser = make_browser(make_records(1))
        browser.orchestrator = orch
        out = _text(presenter.batch_panel(browser.batch_view()))
        assert "Completed: 1" in out
        assert "Failed: 1" in out
        assert "ERROR: timeout" in out
        assert "Press Esc to close" in out
