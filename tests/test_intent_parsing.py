"""Golden tests for deterministic intent parsing."""

from decimal import Decimal

import pytest

from jengatrack.domain.intents import IntentKind, ParsedIntent
from jengatrack.domain.parsing import parse_intent
from jengatrack.domain.patterns import clean_description, parse_amount

MEDIA_URL = "https://api.twilio.com/2010-04-01/Accounts/AC1/Messages/MM1/Media/ME1"


class TestExpenseMessages:
    """Tests for English and Luganda expense phrasing."""

    @pytest.mark.parametrize(
        "text,amount,description",
        [
            ("spent 50000 on cement", "50000", "cement"),
            ("Paid 200,000 for bricks.", "200000", "bricks"),
            ("used 1,500.50 on nails", "1500.50", "nails"),
        ],
    )
    def test_spent_paid_used(self, text, amount, description):
        result = parse_intent(text)

        assert result.intent is IntentKind.LOG_EXPENSE
        assert result.amount == Decimal(amount)
        assert result.description == description
        assert result.confidence >= 0.90

    def test_bought_for(self):
        result = parse_intent("bought sand for 150000")

        assert result.intent is IntentKind.LOG_EXPENSE
        assert result.amount == Decimal("150000")
        assert result.description == "sand"
        assert result.confidence == 0.95

    def test_leading_number(self):
        result = parse_intent("500 for cement")

        assert result.amount == Decimal("500")
        assert result.description == "cement"
        assert result.confidence == 0.85

    def test_leading_word(self):
        result = parse_intent("cement 50000")

        assert result.intent is IntentKind.LOG_EXPENSE
        assert result.amount == Decimal("50000")
        assert result.description == "cement"
        assert result.confidence == 0.80

    def test_luganda_spent_on(self):
        result = parse_intent("nimaze 300 ku sand")

        assert result.intent is IntentKind.LOG_EXPENSE
        assert result.amount == Decimal("300")
        assert result.description == "sand"
        assert result.confidence == 0.95

    def test_luganda_bought(self):
        result = parse_intent("naguze cement 500")

        assert result.amount == Decimal("500")
        assert result.description == "cement"

    def test_luganda_you_spent_defaults_description(self):
        result = parse_intent("omaze 500")

        assert result.intent is IntentKind.LOG_EXPENSE
        assert result.description == "Expense"
        assert result.confidence == 0.90

    def test_currency_extracted(self):
        result = parse_intent("spent 20 on paint usd")

        assert result.currency == "USD"

    def test_currency_defaults_to_ugx(self):
        assert parse_intent("spent 50000 on cement").currency == "UGX"


class TestTaskMessages:
    def test_task_prefix(self):
        result = parse_intent("task: inspect foundation")

        assert result.intent is IntentKind.CREATE_TASK
        assert result.title == "inspect foundation"
        assert result.priority is None
        assert result.confidence == 0.95

    def test_todo_prefix(self):
        result = parse_intent("todo: order roofing sheets")

        assert result.intent is IntentKind.CREATE_TASK
        assert result.title == "order roofing sheets"

    def test_remind_me(self):
        result = parse_intent("remind me to call the plumber")

        assert result.title == "call the plumber"
        assert result.confidence == 0.90

    def test_urgent_sets_high_priority(self):
        result = parse_intent("urgent: fix the scaffolding")

        assert result.intent is IntentKind.CREATE_TASK
        assert result.priority == "high"


class TestBudgetMessages:
    @pytest.mark.parametrize(
        "text,amount",
        [
            ("set budget 5000000", "5000000"),
            ("my budget is 2,000,000", "2000000"),
            ("budget yange 750000", "750000"),
        ],
    )
    def test_budget_phrasing(self, text, amount):
        result = parse_intent(text)

        assert result.intent is IntentKind.SET_BUDGET
        assert result.amount == Decimal(amount)


class TestQueryMessages:
    @pytest.mark.parametrize(
        "text",
        [
            "how much did I spend?",
            "show expenses",
            "report",
            "budget status",
            "ssente zmeka",
            "lipoota",
        ],
    )
    def test_query_detected(self, text):
        result = parse_intent(text)

        assert result.intent is IntentKind.QUERY_EXPENSES
        assert result.confidence == 0.90


class TestFallbackAndUnknown:
    def test_bare_number_fallback(self):
        result = parse_intent("Cement, 45000")

        assert result.intent is IntentKind.LOG_EXPENSE
        assert result.amount == Decimal("45000")
        assert result.description == "Cement"
        assert result.confidence == 0.60

    def test_number_only_is_unknown(self):
        result = parse_intent("12345")

        assert result.intent is IntentKind.UNKNOWN

    @pytest.mark.parametrize("text", ["hello", "good morning team", "asante"])
    def test_no_pattern_no_digits_is_unknown(self, text):
        result = parse_intent(text)

        assert result.intent is IntentKind.UNKNOWN
        assert result.confidence == 0.0

    def test_empty_text_without_media_is_unknown(self):
        assert parse_intent("   ").intent is IntentKind.UNKNOWN


class TestMediaMessages:
    def test_empty_caption_is_image(self):
        result = parse_intent("", media_url=MEDIA_URL)

        assert result.intent is IntentKind.LOG_IMAGE
        assert result.caption == ""
        assert result.media_url == MEDIA_URL
        assert result.confidence == 0.95

    def test_caption_expense_prefers_expense(self):
        result = parse_intent("cement 50000", media_url=MEDIA_URL)

        assert result.intent is IntentKind.LOG_EXPENSE
        assert result.amount == Decimal("50000")
        assert result.media_url == MEDIA_URL
        assert result.confidence == pytest.approx(0.80 * 0.95)

    def test_caption_without_amount_is_image(self):
        result = parse_intent("foundation progress", media_url=MEDIA_URL)

        assert result.intent is IntentKind.LOG_IMAGE
        assert result.caption == "foundation progress"
        assert result.confidence == 0.90


class TestHelpers:
    def test_parse_amount_strips_separators(self):
        assert parse_amount("1,250,000") == Decimal("1250000")

    def test_parse_amount_rejects_garbage(self):
        assert parse_amount("abc") == Decimal("0")
        assert parse_amount("-5") == Decimal("0")

    def test_clean_description(self):
        assert clean_description("  red   bricks, ") == "red bricks"
        assert len(clean_description("x" * 400)) == 255

    def test_parsed_intent_rejects_bad_confidence(self):
        with pytest.raises(ValueError):
            ParsedIntent(intent=IntentKind.UNKNOWN, confidence=1.5, original_message="")

    def test_parsed_intent_rejects_negative_amount(self):
        with pytest.raises(ValueError):
            ParsedIntent(
                intent=IntentKind.LOG_EXPENSE,
                confidence=0.9,
                original_message="",
                amount=Decimal("-1"),
            )
