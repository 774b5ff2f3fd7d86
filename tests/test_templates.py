"""Tests for WhatsApp reply templates and formatting."""

from decimal import Decimal

import pytest

from jengatrack.whatsapp.templates import (
    format_amount,
    format_percent,
    help_text,
    render,
    render_options,
)


class TestRender:
    def test_unknown_template(self):
        with pytest.raises(ValueError, match="Unknown template"):
            render("nope", {})

    def test_disallowed_param(self):
        with pytest.raises(ValueError, match="Disallowed"):
            render("no_active_project", {"dashboard_url": "x", "phone": "+256"})

    def test_no_active_project_mentions_dashboard(self):
        text = render("no_active_project", {"dashboard_url": "https://jengatrack.test"})
        assert "No active project" in text
        assert "https://jengatrack.test" in text


class TestHelpText:
    def test_bilingual_examples(self):
        text = help_text()
        assert "spent 500000 on cement" in text
        assert "(Luganda)" in text

    def test_uses_dashboard_url(self, monkeypatch):
        monkeypatch.setenv("DASHBOARD_URL", "https://example.test/")
        assert help_text().endswith("Visit https://example.test")


class TestFormatting:
    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("50000"), "UGX 50,000"),
            (Decimal("1500.50"), "UGX 1,500.5"),
            (Decimal("0"), "UGX 0"),
            (Decimal("-2500"), "UGX -2,500"),
        ],
    )
    def test_format_amount(self, amount, expected):
        assert format_amount(amount) == expected

    def test_format_amount_currency(self):
        assert format_amount(Decimal("20"), "USD") == "USD 20"

    def test_format_percent(self):
        assert format_percent(0) == "0.0%"
        assert format_percent(33.333) == "33.3%"

    def test_render_options(self):
        assert render_options(["Yes", "No"]) == "1. Yes\n2. No"
