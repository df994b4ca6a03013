from decimal import Decimal

import pytest

from app.services.ai_analysis import AIAnalysisService
from tests.factories import make_bid, make_project

LONG_DESCRIPTION = (
    "Replace the existing laminate counters with quartz, swap the sink and faucet, "
    "install under-cabinet lighting and repaint the walls in a neutral color. "
    "All appliances stay in place and the layout does not change."
)


class TestAnalyzeProject:

    def test_analysis_fields(self):
        service = AIAnalysisService()
        analysis = service.analyze_project(make_project())

        assert analysis.complexity == "medium"
        assert analysis.estimated_duration == "4-6 weeks"
        assert analysis.budget_range == "High-end project"
        assert analysis.required_specialties == ["Kitchen Remodeling", "Cabinetry", "Plumbing", "Electrical"]
        assert analysis.risk_factors == []

    @pytest.mark.parametrize("budget,expected", [
        ("$30,000", "High-end project"),
        ("$15,000", "Mid-range project"),
        ("$5,000", "Standard project"),
        ("$2,000", "Budget-friendly project"),
        ("Negotiable", "Budget not specified"),
    ])
    def test_budget_range(self, budget, expected):
        analysis = AIAnalysisService().analyze_project(make_project(budget=budget))
        assert analysis.budget_range == expected

    def test_unknown_category(self):
        project = make_project(category="Landscaping", title="Garden", description="New garden beds")
        analysis = AIAnalysisService().analyze_project(project)

        assert analysis.required_specialties == ["Landscaping"]
        assert analysis.estimated_duration == "2-4 weeks"

    def test_risk_factors(self):
        project = make_project(title="Complete remodel", budget="$3,000", timeline="urgent, 1 week")
        analysis = AIAnalysisService().analyze_project(project)

        assert analysis.risk_factors == [
            "Complex project requiring experienced contractor",
            "Low budget may limit contractor options",
            "Tight timeline may affect quality",
        ]


class TestPredictTimeline:

    @pytest.fixture(autouse=True)
    def setup(self):
        self.service = AIAnalysisService()

    def test_roofing_medium_without_adjustments(self):
        project = make_project(
            title="Roof update",
            description="Upgrade worn shingles on the garage roof",
            category="Roofing",
            budget="$10,000 - $15,000",
            timeline="3 weeks",
            address="45 Oak Ave, Fresno",
        )
        prediction = self.service.predict_timeline(project)

        assert prediction.estimated_weeks == 2
        assert prediction.factors == []
        assert prediction.potential_delays == []

    def test_high_budget_adds_a_week(self):
        prediction = self.service.predict_timeline(make_project())

        assert prediction.estimated_weeks == 5
        assert prediction.factors == ["High-budget project with premium materials"]

    def test_urgent_never_drops_below_one_week(self):
        project = make_project(
            title="Fix flashing", description="Small repair", category="Roofing",
            budget="$2,000", timeline="urgent",
        )
        prediction = self.service.predict_timeline(project)

        assert prediction.estimated_weeks == 1
        assert "Urgent timeline requested" in prediction.factors
        assert prediction.potential_delays == ["Rushing may affect quality"]

    def test_urban_address(self):
        project = make_project(budget="$10,000", address="500 Downtown Plaza")
        prediction = self.service.predict_timeline(project)

        assert prediction.estimated_weeks == 5
        assert "City permits and inspections" in prediction.potential_delays

    def test_unknown_category_uses_default_base(self):
        project = make_project(category="Landscaping", budget="$10,000")
        assert self.service.predict_timeline(project).estimated_weeks == 3

    @pytest.mark.parametrize("description,budget,expected", [
        (LONG_DESCRIPTION, "$10,000", "high"),
        (LONG_DESCRIPTION, "Negotiable", "medium"),
        ("Update the kitchen cabinets and replace the hardware too", "$10,000", "medium"),
        ("Update cabinets", "$10,000", "low"),
    ])
    def test_confidence(self, description, budget, expected):
        project = make_project(description=description, budget=budget)
        assert self.service.predict_timeline(project).confidence == expected


class TestAssessProjectRisks:

    @pytest.fixture(autouse=True)
    def setup(self):
        self.service = AIAnalysisService()
        self.project = make_project(description=LONG_DESCRIPTION, budget="$10,000", address="123 Main St, Springfield")

    def bids(self, *amounts):
        return [make_bid(id=i, amount=Decimal(str(a))) for i, a in enumerate(amounts, start=1)]

    def test_clean_project_is_low_risk(self):
        assessment = self.service.assess_project_risks(self.project, [])

        assert assessment.overall_risk == "low"
        assert assessment.risk_factors == []
        assert assessment.red_flags == []

    def test_wide_bid_spread(self):
        assessment = self.service.assess_project_risks(self.project, self.bids(1000, 3000, 10000))

        assert "Large variation in bid amounts" in assessment.risk_factors
        assert "Extreme bid variation suggests unclear project scope" in assessment.red_flags
        assert "Unusually low bid - may indicate cutting corners" in assessment.red_flags
        assert assessment.overall_risk == "medium"

    def test_similar_bids_not_flagged(self):
        assessment = self.service.assess_project_risks(self.project, self.bids(9000, 10000, 11000))
        assert assessment.overall_risk == "low"

    def test_zero_bid_counts_as_wide_spread(self):
        assessment = self.service.assess_project_risks(self.project, self.bids(0, 5000))
        assert "Large variation in bid amounts" in assessment.risk_factors

    def test_short_description_and_address(self):
        project = make_project(description="Kitchen work", budget="$10,000", address="Here")
        assessment = self.service.assess_project_risks(project, [])

        assert assessment.risk_factors == ["Limited project description", "Incomplete location information"]
        assert assessment.recommendations == [
            "Provide more detailed project requirements",
            "Provide complete project address",
        ]
        assert assessment.overall_risk == "medium"

    def test_many_red_flags_is_high_risk(self):
        project = make_project(description=LONG_DESCRIPTION, budget="$3,000", timeline="quick turnaround")
        assessment = self.service.assess_project_risks(project, self.bids(500, 2000, 6000))

        assert len(assessment.red_flags) > 2
        assert assessment.overall_risk == "high"
