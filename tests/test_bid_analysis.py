from decimal import Decimal

import pytest

from app.services.ai_analysis import AIAnalysisService
from tests.factories import make_bid, make_project

STRONG_PROPOSAL = (
    "Detailed and comprehensive plan for the whole kitchen. Our licensed and insured crew "
    "provides a five year warranty on labor and uses premium materials throughout."
)


class TestAnalyzeBid:
    """Bids are judged against a fair price derived from the project budget"""

    @pytest.fixture(autouse=True)
    def setup(self):
        self.service = AIAnalysisService()
        # medium complexity, $25,000 upper bound -> fair price $25,000
        self.project = make_project()

    def test_fair_price_uses_complexity_multiplier(self):
        analysis = self.service.analyze_bid(make_bid(), self.project)
        assert analysis.fair_price_estimate == "$25,000"

        complex_project = make_project(title="Complete remodel")
        analysis = self.service.analyze_bid(make_bid(), complex_project)
        assert analysis.fair_price_estimate == "$32,500"

    def test_minimal_proposal(self):
        analysis = self.service.analyze_bid(make_bid(amount=Decimal("20000.00")), self.project)

        assert analysis.bid_id == 1
        assert analysis.price_analysis == "good"
        assert analysis.quality_score == 70
        assert "Minimal detail in bid proposal" in analysis.risk_factors
        assert "Materials not specified" in analysis.risk_factors
        assert "Ask for more details about scope of work" in analysis.recommendations

    def test_strong_proposal_is_capped_at_100(self):
        assert len(STRONG_PROPOSAL) > 100
        bid = make_bid(amount=Decimal("24000.00"), proposal=STRONG_PROPOSAL)
        analysis = self.service.analyze_bid(bid, self.project)

        assert analysis.quality_score == 100
        assert analysis.price_analysis == "fair"
        assert analysis.risk_factors == []
        assert analysis.recommendations == ["This bid appears well-structured"]

    def test_low_bid(self):
        analysis = self.service.analyze_bid(make_bid(amount=Decimal("10000.00")), self.project)

        assert analysis.price_analysis == "low"
        assert "Unusually low price - may indicate cutting corners" in analysis.risk_factors
        assert "Request detailed breakdown of costs" in analysis.recommendations

    def test_high_bid(self):
        analysis = self.service.analyze_bid(make_bid(amount=Decimal("40000.00")), self.project)

        assert analysis.price_analysis == "high"
        assert "Significantly higher than market rate" in analysis.risk_factors
        assert "Negotiate price or request justification" in analysis.recommendations

    @pytest.mark.parametrize("amount,expected", [
        ("17500", "good"),
        ("22500", "fair"),
        ("30000", "high"),
    ])
    def test_price_band_boundaries(self, amount, expected):
        analysis = self.service.analyze_bid(make_bid(amount=Decimal(amount)), self.project)
        assert analysis.price_analysis == expected

    def test_string_amount_is_accepted(self):
        analysis = self.service.analyze_bid(make_bid(amount="20000.00"), self.project)
        assert analysis.price_analysis == "good"

    def test_unparseable_budget(self):
        project = make_project(budget="Flexible")
        analysis = self.service.analyze_bid(make_bid(), project)

        assert analysis.fair_price_estimate == "Unable to determine"
        assert analysis.quality_score == 70
        assert analysis.price_analysis == "fair"
        assert analysis.risk_factors == ["Insufficient pricing data"]
        assert analysis.recommendations == ["Request detailed breakdown"]
