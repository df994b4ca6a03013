import pytest

from app.services.ai_analysis import (
    calculate_project_complexity,
    extract_budget_amount,
    extract_timeline_duration,
    format_currency,
    parse_amount,
    round_half_up,
)
from tests.factories import make_project


class TestExtractBudgetAmount:
    """Free-text budgets resolve to their upper bound"""

    @pytest.mark.parametrize("text,expected", [
        ("$15,000 - $25,000", 25000.0),
        ("$5000", 5000.0),
        ("around $1,234.50", 1234.5),
        ("8000 to 12000", 12000.0),
        ("$1,000,000", 1000000.0),
    ])
    def test_parses_largest_figure(self, text, expected):
        assert extract_budget_amount(text) == expected

    @pytest.mark.parametrize("text", ["no budget given", "", None, "flexible"])
    def test_unparseable_is_none(self, text):
        assert extract_budget_amount(text) is None


class TestExtractTimelineDuration:
    """Timelines are converted to whole weeks"""

    def test_range_uses_number_next_to_unit(self):
        assert extract_timeline_duration("2-3 months") == 12

    @pytest.mark.parametrize("text,expected", [
        ("4 weeks", 4),
        ("3 Weeks", 3),
        ("1 month", 4),
        ("10 days", 2),
        ("7 days", 1),
        ("about 6 weeks, maybe 8 weeks", 6),
    ])
    def test_units(self, text, expected):
        assert extract_timeline_duration(text) == expected

    @pytest.mark.parametrize("text", ["ASAP", "", None, "weeks"])
    def test_unparseable_is_none(self, text):
        assert extract_timeline_duration(text) is None


class TestProjectComplexity:

    def test_high_keywords_win(self):
        project = make_project(title="Complete remodel", description="Major full renovation")
        assert calculate_project_complexity(project) == "high"

    def test_medium_beats_low(self):
        project = make_project(
            title="Bathroom upgrade",
            description="Improve the vanity area",
            category="Plumbing",
        )
        assert calculate_project_complexity(project) == "medium"

    def test_low_keywords(self):
        project = make_project(title="Fix leak", description="Minor repair under sink", category="Plumbing")
        assert calculate_project_complexity(project) == "low"

    def test_no_keywords_defaults_to_low(self):
        project = make_project(title="Deck", description="New deck boards", category="Carpentry")
        assert calculate_project_complexity(project) == "low"

    def test_tie_between_high_and_medium_goes_to_medium(self):
        # "remodel" from the category against "update" from the title
        project = make_project(title="Kitchen update", description="Cabinets", category="Kitchen Remodeling")
        assert calculate_project_complexity(project) == "medium"

    def test_is_deterministic(self):
        project = make_project()
        assert calculate_project_complexity(project) == calculate_project_complexity(project)
        assert calculate_project_complexity(project) in {"low", "medium", "high"}


class TestAmountHelpers:

    @pytest.mark.parametrize("value,expected", [
        ("18500.00", 18500.0),
        ("$1,250", 1250.0),
        (42, 42.0),
        ("abc", None),
        (None, None),
        ("NaN", None),
    ])
    def test_parse_amount(self, value, expected):
        assert parse_amount(value) == expected

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(71.665, 2) == 71.67

    def test_format_currency(self):
        assert format_currency(12345.4) == "$12,345"
        assert format_currency(19500) == "$19,500"
