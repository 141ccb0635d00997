"""Tests for template rendering and the template catalog."""

from datetime import date

import pytest
from hypothesis import given
from hypothesis import strategies as st

from reminders_config import load_config
from reminders_config.schema import TemplateDef
from reminders_delivery.templates import TemplateCatalog, render
from reminders_kernel.domain.types import Channel
from reminders_kernel.exceptions import TemplateNotFoundError, ValidationError


class TestRender:
    def test_conditional_kept_when_truthy(self):
        assert render("Hello {{name}}{{#if vip}}, VIP{{/if}}", {"name": "Ana", "vip": True}) == "Hello Ana, VIP"

    def test_conditional_dropped_when_falsy(self):
        assert render("Hello {{name}}{{#if vip}}, VIP{{/if}}", {"name": "Ana", "vip": False}) == "Hello Ana"

    def test_missing_and_none_render_empty(self):
        assert render("[{{a}}][{{b}}]", {"a": None}) == "[][]"

    def test_whitespace_inside_token(self):
        assert render("Hi {{ name }}", {"name": "Ana"}) == "Hi Ana"

    def test_missing_condition_is_falsy(self):
        assert render("x{{#if flag}}y{{/if}}z", {}) == "xz"

    def test_block_may_span_lines_and_hold_tokens(self):
        template = "Total{{#if late}}\nLate by {{days}} day(s){{/if}}."
        assert render(template, {"late": 1, "days": 3}) == "Total\nLate by 3 day(s)."

    def test_multiple_blocks(self):
        template = "{{#if positive}}up{{/if}}{{#if negative}}down{{/if}}"
        assert render(template, {"positive": False, "negative": True}) == "down"

    def test_value_stringification(self):
        assert render("{{d}} {{n}} {{b}}", {"d": date(2024, 3, 15), "n": 12, "b": True}) == "2024-03-15 12 true"

    def test_value_cannot_close_a_block(self):
        template = "Hi{{#if vip}} VIP {{title}}{{/if}}!"
        data = {"vip": False, "title": "x{{/if}} LEAK"}
        assert render(template, data) == "Hi!"
        assert render(template, {**data, "vip": True}) == "Hi VIP x{{/if}} LEAK!"

    def test_value_is_not_rendered_again(self):
        assert render("{{a}}", {"a": "{{b}}", "b": "nope"}) == "{{b}}"

    def test_pure(self):
        data = {"name": "Ana"}
        render("{{name}}", data)
        assert data == {"name": "Ana"}


class TestTemplateCatalog:
    @pytest.fixture
    def catalog(self):
        return TemplateCatalog(
            [
                TemplateDef(
                    template_id="due",
                    subject="Due: {{title}}",
                    text="Pay {{title}} ({{amount}})",
                    html="<p>{{title}}</p>",
                    sms="{{title}} due",
                ),
                TemplateDef(template_id="plain", subject="Hi", text="Hello {{name}}"),
            ]
        )

    def test_email_rendering(self, catalog):
        content = catalog.render_message("due", Channel.EMAIL, {"title": "Rent", "amount": "10.00"})
        assert content.subject == "Due: Rent"
        assert content.text == "Pay Rent (10.00)"
        assert content.html == "<p>Rent</p>"

    def test_sms_uses_sms_body_without_html(self, catalog):
        content = catalog.render_message("due", Channel.SMS, {"title": "Rent"})
        assert content.text == "Rent due"
        assert content.html is None

    def test_sms_falls_back_to_text(self, catalog):
        assert catalog.render_message("plain", Channel.SMS, {"name": "Ana"}).text == "Hello Ana"

    def test_unknown_template(self, catalog):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            catalog.render_message("missing", Channel.EMAIL, {})
        assert isinstance(exc_info.value, ValidationError)

    def test_membership(self, catalog):
        assert "due" in catalog
        assert catalog.template_ids == ["due", "plain"]


class TestBundledTemplates:
    """Every cycle template in defaults.yaml renders with its payload."""

    @pytest.fixture(scope="class")
    def catalog(self):
        return TemplateCatalog(load_config(environ={}).templates)

    def test_monthly_report_branches(self, catalog):
        payload = {"name": "Ana", "period": "2024-02", "revenue": "3000.00",
                   "expense": "1500.50", "balance": "1499.50"}
        good = catalog.render_message("monthly_report", Channel.EMAIL, {**payload, "positive": True, "negative": False})
        bad = catalog.render_message("monthly_report", Channel.EMAIL, {**payload, "positive": False, "negative": True})

        assert "positive balance" in good.text
        assert "spent more" not in good.text
        assert "spent more" in bad.text
        assert "Balance: R$ 1499.50" in good.text

    def test_overdue_category_optional(self, catalog):
        payload = {"name": "Ana", "title": "Rent", "amount": "1500.00",
                   "due_date": "2024-03-10", "days_overdue": 5}
        without = catalog.render_message("expense_overdue", Channel.EMAIL, payload)
        with_cat = catalog.render_message("expense_overdue", Channel.EMAIL, {**payload, "category": "Housing"})

        assert "Category" not in without.text
        assert "Category: Housing" in with_cat.text
        assert without.subject == "Overdue expense: Rent"

    def test_all_cycle_templates_present(self, catalog):
        for template_id in (
            "expense_overdue", "expense_due_today", "revenue_due_today",
            "investment_maturing", "goal_progress", "monthly_report",
            "achievement_unlocked", "goal_update", "alert",
        ):
            assert template_id in catalog


_plain_text = st.text(alphabet=st.characters(exclude_characters="{}"), max_size=40)


class TestRenderProperties:
    @given(_plain_text)
    def test_text_without_markers_is_unchanged(self, text):
        assert render(text, {"name": "Ana"}) == text

    @given(_plain_text, _plain_text, _plain_text)
    def test_token_replaced_by_value(self, before, value, after):
        assert render(f"{before}{{{{title}}}}{after}", {"title": value}) == before + value + after

    @given(_plain_text, st.booleans())
    def test_block_kept_iff_truthy(self, body, flag):
        assert render(f"{{{{#if show}}}}{body}{{{{/if}}}}", {"show": flag}) == (body if flag else "")
