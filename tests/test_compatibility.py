from decimal import Decimal

import pytest

from app.services.ai_analysis import AIAnalysisService
from tests.factories import make_contractor, make_project


class FailingStorage:
    def get_user(self, user_id):
        raise RuntimeError("store unavailable")


class TestFactorScores:
    """Each factor is scored independently on a 0-100 scale"""

    @pytest.fixture(autouse=True)
    def setup(self):
        self.service = AIAnalysisService()
        self.project = make_project()

    @pytest.mark.parametrize("specialties,expected", [
        (["Kitchen Remodeling"], 100),
        (["kitchen remodeling", "Tiling"], 100),
        (["Cabinetry"], 70),
        (["Roofing"], 30),
        ([], 30),
    ])
    def test_specialty_match(self, specialties, expected):
        contractor = make_contractor(specialties=specialties)
        assert self.service.calculate_specialty_match(self.project, contractor) == expected

    def test_location_local_marker(self):
        project = make_project(address="100 Mission St, San Francisco")
        assert self.service.calculate_location_match(project, make_contractor()) == 90

    def test_location_default(self):
        assert self.service.calculate_location_match(self.project, make_contractor()) == 75

    def test_location_lookup_failure_is_neutral(self):
        service = AIAnalysisService(FailingStorage())
        project = make_project(address="100 Mission St, San Francisco")
        assert service.calculate_location_match(project, make_contractor()) == 50

    def test_budget_match_bands(self):
        premium = make_contractor(rating=Decimal("5.00"), experience_years=30)
        assert self.service.calculate_budget_match(self.project, premium) == 100
        # 4.5 * 0.3 + 5 * 0.1 = 1.85, below every band
        assert self.service.calculate_budget_match(self.project, make_contractor()) == 60

    def test_budget_match_unparseable_budget(self):
        project = make_project(budget="TBD")
        assert self.service.calculate_budget_match(project, make_contractor()) == 70

    @pytest.mark.parametrize("timeline,years,expected", [
        ("1 week", 5, 100),
        ("2 weeks", 3, 90),
        ("3 weeks", 2, 80),
        ("6 weeks", 1, 70),
        ("6 weeks", 0, 60),
        ("3 months", 10, 60),
        ("whenever", 10, 70),
    ])
    def test_timeline_match(self, timeline, years, expected):
        project = make_project(timeline=timeline)
        contractor = make_contractor(experience_years=years)
        assert self.service.calculate_timeline_match(project, contractor) == expected

    @pytest.mark.parametrize("title,years,expected", [
        ("Fix a small leak", 1, 100),
        ("Fix a small leak", 0, 70),
        ("Upgrade and improve", 3, 100),
        ("Upgrade and improve", 1, 80),
        ("Upgrade and improve", 0, 60),
        ("Complete full renovation", 5, 100),
        ("Complete full renovation", 3, 85),
        ("Complete full renovation", 1, 70),
        ("Complete full renovation", 0, 50),
    ])
    def test_experience_match(self, title, years, expected):
        project = make_project(title=title, description="", category="Other")
        contractor = make_contractor(experience_years=years)
        assert self.service.calculate_experience_match(project, contractor) == expected

    def test_rating_score_damped_by_review_count(self):
        assert self.service.calculate_rating_score(make_contractor(review_count=10)) == 90
        assert self.service.calculate_rating_score(make_contractor(review_count=5)) == 45
        assert self.service.calculate_rating_score(make_contractor(review_count=0)) == 0

    def test_rating_score_capped(self):
        contractor = make_contractor(rating=Decimal("5.00"), review_count=50)
        assert self.service.calculate_rating_score(contractor) == 100

    def test_rating_score_monotonic(self):
        scores_by_rating = [
            self.service.calculate_rating_score(make_contractor(rating=Decimal(str(r)), review_count=7))
            for r in (0, 1, 2.5, 4, 5)
        ]
        scores_by_reviews = [
            self.service.calculate_rating_score(make_contractor(review_count=n))
            for n in (0, 1, 5, 10, 25)
        ]
        assert scores_by_rating == sorted(scores_by_rating)
        assert scores_by_reviews == sorted(scores_by_reviews)

    def test_missing_rating_uses_default(self):
        contractor = make_contractor(rating=None, review_count=5)
        assert self.service.calculate_rating_score(contractor) == 0
        assert self.service.calculate_rating_score(contractor, default_rating=4.0) == 40


class TestCompatibilityScore:

    @pytest.fixture(autouse=True)
    def setup(self):
        self.service = AIAnalysisService()

    def test_aggregate_is_mean_of_factors(self):
        score = self.service.calculate_compatibility_score(make_project(), make_contractor())

        assert score.contractor_id == 1
        assert score.company_name == "Acme Renovations"
        assert score.factors.specialty == 100
        assert score.factors.location == 75
        assert score.factors.budget == 60
        assert score.factors.timeline == 70
        assert score.factors.experience == 100
        assert score.factors.rating == 90
        assert score.score == 82.5

    def test_recommendations(self):
        score = self.service.calculate_compatibility_score(make_project(), make_contractor(is_verified=True))

        assert "Perfect specialty match for your project" in score.recommendations
        assert "Highly experienced for your project complexity" in score.recommendations
        assert "Excellent customer satisfaction rating" in score.recommendations
        assert "Verified contractor with credentials" in score.recommendations
        assert "Local contractor - convenient for site visits" not in score.recommendations

    @pytest.mark.parametrize("contractor_fields", [
        {},
        {"specialties": [], "experience_years": 0, "rating": Decimal("0"), "review_count": 0},
        {"rating": Decimal("5.00"), "review_count": 100, "experience_years": 40},
        {"rating": None, "review_count": None, "experience_years": None, "specialties": None},
    ])
    def test_aggregate_within_bounds(self, contractor_fields):
        score = self.service.calculate_compatibility_score(make_project(), make_contractor(**contractor_fields))
        assert 0 <= score.score <= 100


class TestFindCompatibleContractors:

    @pytest.fixture(autouse=True)
    def setup(self):
        self.service = AIAnalysisService()

    def test_sorted_best_first(self):
        contractors = [
            make_contractor(id=1, company_name="Roofers", specialties=["Roofing"]),
            make_contractor(id=2, company_name="Kitchens", specialties=["Kitchen Remodeling"]),
            make_contractor(id=3, company_name="Cabinets", specialties=["Cabinetry"]),
        ]
        ranked = self.service.find_compatible_contractors(make_project(), contractors)
        assert [s.contractor_id for s in ranked] == [2, 3, 1]
        assert ranked[0].score >= ranked[1].score >= ranked[2].score

    def test_ties_keep_input_order(self):
        contractors = [make_contractor(id=i, company_name=f"Twin {i}") for i in (7, 3, 5)]
        ranked = self.service.find_compatible_contractors(make_project(), contractors)
        assert [s.contractor_id for s in ranked] == [7, 3, 5]

    def test_missing_rating_defaults_to_four(self):
        contractor = make_contractor(rating=None, review_count=10)
        ranked = self.service.find_compatible_contractors(make_project(), [contractor])
        assert ranked[0].factors.rating == 80

    def test_requires_contractors_or_storage(self):
        with pytest.raises(ValueError):
            self.service.find_compatible_contractors(make_project())

    def test_empty_list(self):
        assert self.service.find_compatible_contractors(make_project(), []) == []
