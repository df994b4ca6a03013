from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence
import math
import re
import logging

from app.models.marketplace import Project, Contractor, Bid
from app.models.analysis import (
    BidAnalysis,
    CompatibilityFactors,
    CompatibilityScore,
    GeneratedDescription,
    ProjectAnalysis,
    ResponseSuggestion,
    RiskAssessment,
    TimelinePrediction,
)
from app.services.templates import (
    DESCRIPTION_TEMPLATES,
    RESPONSE_TEMPLATES,
    ProjectCategory,
    ResponseContext,
)

logger = logging.getLogger(__name__)

BUDGET_PATTERN = re.compile(r"\$?(\d+(?:,\d{3})*(?:\.\d+)?)")
TIMELINE_PATTERN = re.compile(r"(\d+)\s*(week|month|day)", re.IGNORECASE)

COMPLEXITY_KEYWORDS = {
    "high": ["complete", "remodel", "renovation", "major", "extensive", "full"],
    "medium": ["update", "upgrade", "modify", "improve", "partial"],
    "low": ["repair", "fix", "maintenance", "small", "minor"],
}

COMPLEXITY_MULTIPLIER = {"low": 0.8, "medium": 1.0, "high": 1.3}

RELATED_SPECIALTIES = {
    "kitchen remodeling": ["bathroom renovation", "general contracting", "cabinetry"],
    "bathroom renovation": ["kitchen remodeling", "plumbing", "tiling"],
    "roofing": ["general contracting", "exterior work"],
    "plumbing": ["bathroom renovation", "kitchen remodeling"],
    "electrical": ["general contracting", "home improvement"],
}

LOCAL_AREA_MARKERS = ("san francisco", "sf", "california", "ca")

BASE_TIMELINE_WEEKS = {
    "kitchen remodeling": {"low": 2, "medium": 4, "high": 8},
    "bathroom renovation": {"low": 1, "medium": 3, "high": 6},
    "roofing": {"low": 1, "medium": 2, "high": 3},
    "plumbing": {"low": 1, "medium": 2, "high": 3},
    "electrical": {"low": 1, "medium": 2, "high": 3},
}
DEFAULT_TIMELINE_WEEKS = 3

DURATION_TEXT = {
    "kitchen remodeling": {"low": "2-3 weeks", "medium": "4-6 weeks", "high": "8-12 weeks"},
    "bathroom renovation": {"low": "1-2 weeks", "medium": "3-4 weeks", "high": "6-8 weeks"},
    "roofing": {"low": "3-5 days", "medium": "1-2 weeks", "high": "2-3 weeks"},
    "plumbing": {"low": "1-3 days", "medium": "1 week", "high": "2-3 weeks"},
    "electrical": {"low": "1-3 days", "medium": "1 week", "high": "2-3 weeks"},
}

REQUIRED_SPECIALTIES = {
    "Kitchen Remodeling": ["Kitchen Remodeling", "Cabinetry", "Plumbing", "Electrical"],
    "Bathroom Renovation": ["Bathroom Renovation", "Plumbing", "Tiling"],
    "Roofing": ["Roofing", "General Contracting"],
    "Plumbing": ["Plumbing", "General Contracting"],
    "Electrical": ["Electrical", "General Contracting"],
}


# ========== EXTRACTORS ==========

def extract_budget_amount(text: Optional[str]) -> Optional[float]:
    """
    Pull every dollar figure out of a free-text budget and return the largest,
    i.e. the upper bound of a stated range. None when nothing parses.
    """
    if not text:
        return None
    amounts = [float(match.replace(",", "")) for match in BUDGET_PATTERN.findall(text)]
    if not amounts:
        return None
    return max(amounts)


def extract_timeline_duration(text: Optional[str]) -> Optional[int]:
    """
    Convert the first `<n> day|week|month` token to weeks.

    Only the first number directly followed by a unit counts, so
    "2-3 months" reads as 3 months.
    """
    if not text:
        return None
    match = TIMELINE_PATTERN.search(text)
    if not match:
        return None

    amount = int(match.group(1))
    unit = match.group(2).lower()
    if unit == "month":
        return amount * 4
    if unit == "day":
        return math.ceil(amount / 7)
    return amount


def calculate_project_complexity(project: Project) -> str:
    text = f"{project.title or ''} {project.description or ''} {project.category or ''}".lower()

    high = sum(1 for word in COMPLEXITY_KEYWORDS["high"] if word in text)
    medium = sum(1 for word in COMPLEXITY_KEYWORDS["medium"] if word in text)
    low = sum(1 for word in COMPLEXITY_KEYWORDS["low"] if word in text)

    if high > medium and high > low:
        return "high"
    if medium > low:
        return "medium"
    return "low"


def parse_amount(value) -> Optional[float]:
    """Best-effort float from a Decimal, number or decimal string"""
    if value is None:
        return None
    try:
        amount = float(Decimal(str(value).replace("$", "").replace(",", "").strip()))
    except (InvalidOperation, ValueError):
        return None
    if math.isnan(amount) or math.isinf(amount):
        return None
    return amount


def round_half_up(value: float, digits: int = 0) -> float:
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_currency(value: float) -> str:
    return f"${int(round_half_up(value)):,}"


class AIAnalysisService:
    """
    Rule-based project/contractor/bid analysis:
    - Compatibility scoring of contractors against a project (six factors)
    - Bid fair-price and quality analysis
    - Timeline prediction and risk assessment
    - Template-driven description and response generators

    `storage` is only used to look up a contractor's owning user during
    location matching and to load contractors for ranking.
    """

    def __init__(self, storage=None):
        self.storage = storage

    # ========== PROJECT ANALYSIS ==========

    def analyze_project(self, project: Project) -> ProjectAnalysis:
        return ProjectAnalysis(
            complexity=calculate_project_complexity(project),
            estimated_duration=self._estimate_project_duration(project),
            budget_range=self._analyze_budget_range(project),
            required_specialties=self._extract_required_specialties(project),
            risk_factors=self._identify_risk_factors(project),
        )

    def _estimate_project_duration(self, project: Project) -> str:
        complexity = calculate_project_complexity(project)
        category = (project.category or "").lower()
        return DURATION_TEXT.get(category, {}).get(complexity, "2-4 weeks")

    def _analyze_budget_range(self, project: Project) -> str:
        amount = extract_budget_amount(project.budget)
        if not amount:
            return "Budget not specified"
        if amount >= 25000:
            return "High-end project"
        if amount >= 15000:
            return "Mid-range project"
        if amount >= 5000:
            return "Standard project"
        return "Budget-friendly project"

    def _extract_required_specialties(self, project: Project) -> List[str]:
        return list(REQUIRED_SPECIALTIES.get(project.category, [project.category]))

    def _identify_risk_factors(self, project: Project) -> List[str]:
        risks = []
        if calculate_project_complexity(project) == "high":
            risks.append("Complex project requiring experienced contractor")

        budget_amount = extract_budget_amount(project.budget)
        if budget_amount and budget_amount < 5000:
            risks.append("Low budget may limit contractor options")

        timeline = (project.timeline or "").lower()
        if "urgent" in timeline or "quick" in timeline:
            risks.append("Tight timeline may affect quality")
        return risks

    # ========== COMPATIBILITY ==========

    def find_compatible_contractors(
        self,
        project: Project,
        contractors: Optional[Sequence[Contractor]] = None
    ) -> List[CompatibilityScore]:
        """Score every contractor against the project, best match first"""
        if contractors is None:
            if self.storage is None:
                raise ValueError("No contractors supplied and no storage configured")
            contractors = self.storage.get_contractors()

        scores = [
            self.calculate_compatibility_score(project, contractor, default_rating=4.0)
            for contractor in contractors
        ]
        # sorted() is stable, equal scores keep store order
        scores = sorted(scores, key=lambda s: s.score, reverse=True)

        logger.info(f"Scored {len(scores)} contractors for project {project.id}")
        return scores

    def calculate_compatibility_score(
        self,
        project: Project,
        contractor: Contractor,
        default_rating: float = 0.0
    ) -> CompatibilityScore:
        factors = CompatibilityFactors(
            specialty=self.calculate_specialty_match(project, contractor),
            location=self.calculate_location_match(project, contractor),
            budget=self.calculate_budget_match(project, contractor, default_rating),
            timeline=self.calculate_timeline_match(project, contractor),
            experience=self.calculate_experience_match(project, contractor),
            rating=self.calculate_rating_score(contractor, default_rating),
        )
        values = list(factors.model_dump().values())
        total = sum(values) / len(values)

        return CompatibilityScore(
            contractor_id=contractor.id,
            company_name=contractor.company_name,
            score=round_half_up(total, 2),
            factors=factors,
            recommendations=self._generate_recommendations(contractor, factors),
        )

    def calculate_specialty_match(self, project: Project, contractor: Contractor) -> float:
        category = (project.category or "").lower()
        specialties = [s.lower() for s in (contractor.specialties or [])]

        if category in specialties:
            return 100

        related = RELATED_SPECIALTIES.get(category, [])
        if any(specialty in specialties for specialty in related):
            return 70
        return 30

    def calculate_location_match(self, project: Project, contractor: Contractor) -> float:
        """
        Address keyword check. The contractor's user is fetched but no real
        distance is computed; a failed fetch yields a neutral 50.
        """
        try:
            if self.storage is not None:
                self.storage.get_user(contractor.user_id)
        except Exception as e:
            logger.warning(f"Location lookup failed for contractor {contractor.id}: {e}")
            return 50

        location = (project.address or "").lower()
        if any(marker in location for marker in LOCAL_AREA_MARKERS):
            return 90
        return 75

    def calculate_budget_match(
        self,
        project: Project,
        contractor: Contractor,
        default_rating: float = 0.0
    ) -> float:
        budget_amount = extract_budget_amount(project.budget)
        if not budget_amount:
            return 70

        rating = self._contractor_rating(contractor, default_rating)
        experience_years = contractor.experience_years or 0
        # Higher rated/experienced contractors typically charge more
        expected_rate = rating * 0.3 + experience_years * 0.1

        if budget_amount >= 20000 and expected_rate > 4.0:
            return 100
        if budget_amount >= 15000 and expected_rate > 3.5:
            return 90
        if budget_amount >= 10000 and expected_rate > 3.0:
            return 80
        if budget_amount >= 5000 and expected_rate > 2.5:
            return 70
        return 60

    def calculate_timeline_match(self, project: Project, contractor: Contractor) -> float:
        weeks = extract_timeline_duration(project.timeline)
        if not weeks:
            return 70

        experience_years = contractor.experience_years or 0
        if weeks <= 1 and experience_years >= 5:
            return 100
        if weeks <= 2 and experience_years >= 3:
            return 90
        if weeks <= 3 and experience_years >= 2:
            return 80
        if weeks <= 6 and experience_years >= 1:
            return 70
        return 60

    def calculate_experience_match(self, project: Project, contractor: Contractor) -> float:
        years = contractor.experience_years or 0
        complexity = calculate_project_complexity(project)

        if complexity == "low":
            return 100 if years >= 1 else 70
        if complexity == "medium":
            if years >= 3:
                return 100
            return 80 if years >= 1 else 60
        if years >= 5:
            return 100
        if years >= 3:
            return 85
        return 70 if years >= 1 else 50

    def calculate_rating_score(self, contractor: Contractor, default_rating: float = 0.0) -> float:
        """Rating on a 100 scale, damped until the contractor has 10 reviews"""
        rating = self._contractor_rating(contractor, default_rating)
        review_count = max(contractor.review_count or 0, 0)
        weighted = rating * min(review_count / 10, 1)
        return min(weighted * 20, 100)

    @staticmethod
    def _contractor_rating(contractor: Contractor, default_rating: float) -> float:
        rating = parse_amount(contractor.rating)
        if rating is None:
            return default_rating
        return rating

    def _generate_recommendations(self, contractor: Contractor, factors: CompatibilityFactors) -> List[str]:
        recommendations = []

        if factors.specialty >= 90:
            recommendations.append("Perfect specialty match for your project")
        elif factors.specialty >= 70:
            recommendations.append("Good specialty alignment with related experience")

        if factors.location >= 90:
            recommendations.append("Local contractor - convenient for site visits")
        if factors.experience >= 90:
            recommendations.append("Highly experienced for your project complexity")
        if factors.rating >= 90:
            recommendations.append("Excellent customer satisfaction rating")
        if contractor.is_verified:
            recommendations.append("Verified contractor with credentials")
        if factors.budget >= 90:
            recommendations.append("Budget-friendly option for your project")

        return recommendations

    # ========== BID ANALYSIS ==========

    def analyze_bid(self, bid: Bid, project: Project) -> BidAnalysis:
        budget_amount = extract_budget_amount(project.budget)
        bid_amount = parse_amount(bid.amount)

        if not budget_amount or not bid_amount:
            return BidAnalysis(
                bid_id=bid.id,
                fair_price_estimate="Unable to determine",
                quality_score=70,
                price_analysis="fair",
                risk_factors=["Insufficient pricing data"],
                recommendations=["Request detailed breakdown"],
            )

        complexity = calculate_project_complexity(project)
        fair_price = budget_amount * COMPLEXITY_MULTIPLIER[complexity]

        proposal = (bid.proposal or "").lower()
        quality_score = 70
        if "detailed" in proposal or "comprehensive" in proposal:
            quality_score += 10
        if "warranty" in proposal or "guarantee" in proposal:
            quality_score += 10
        if "licensed" in proposal or "insured" in proposal:
            quality_score += 10
        if len(proposal) > 100:
            quality_score += 10

        price_ratio = bid_amount / fair_price
        if price_ratio < 0.7:
            price_analysis = "low"
        elif price_ratio < 0.9:
            price_analysis = "good"
        elif price_ratio < 1.2:
            price_analysis = "fair"
        else:
            price_analysis = "high"

        risk_factors = []
        if price_ratio < 0.6:
            risk_factors.append("Unusually low price - may indicate cutting corners")
        if price_ratio > 1.5:
            risk_factors.append("Significantly higher than market rate")
        if len(proposal) < 50:
            risk_factors.append("Minimal detail in bid proposal")
        if "materials" not in proposal:
            risk_factors.append("Materials not specified")

        recommendations = []
        if price_analysis == "low":
            recommendations.append("Request detailed breakdown of costs")
        if price_analysis == "high":
            recommendations.append("Negotiate price or request justification")
        if quality_score < 80:
            recommendations.append("Ask for more details about scope of work")
        if not risk_factors:
            recommendations.append("This bid appears well-structured")

        return BidAnalysis(
            bid_id=bid.id,
            fair_price_estimate=format_currency(fair_price),
            quality_score=min(quality_score, 100),
            price_analysis=price_analysis,
            risk_factors=risk_factors,
            recommendations=recommendations,
        )

    # ========== GENERATORS ==========

    def generate_project_description(
        self,
        keywords: str,
        category,
        budget: Optional[str] = None
    ) -> GeneratedDescription:
        if not isinstance(category, ProjectCategory):
            category = ProjectCategory.parse(category)
        template = DESCRIPTION_TEMPLATES[category]

        return GeneratedDescription(
            title=template.title.format(keywords=keywords),
            description=template.description.format(keywords=keywords),
            suggested_budget=budget or template.default_budget,
            suggested_timeline=template.suggested_timeline,
            key_points=list(template.key_points),
        )

    def generate_response_suggestion(
        self,
        context: ResponseContext,
        contractor_name: str,
        bid_amount: Optional[str] = None,
        project_title: Optional[str] = None
    ) -> List[ResponseSuggestion]:
        context = ResponseContext(context)
        values: Dict[str, str] = {
            "contractor_name": contractor_name,
            "project_title": project_title or "your project",
            "bid_amount_clause": f" of {bid_amount}" if bid_amount else "",
        }
        return [
            ResponseSuggestion(
                type=template.type,
                message=template.message.format(**values),
                tone=template.tone,
            )
            for template in RESPONSE_TEMPLATES[context]
        ]

    # ========== TIMELINE PREDICTION ==========

    def predict_timeline(self, project: Project) -> TimelinePrediction:
        complexity = calculate_project_complexity(project)
        category = (project.category or "").lower()
        estimated_weeks = BASE_TIMELINE_WEEKS.get(category, {}).get(complexity, DEFAULT_TIMELINE_WEEKS)

        factors = []
        potential_delays = []

        budget_amount = extract_budget_amount(project.budget)
        if budget_amount and budget_amount > 20000:
            estimated_weeks += 1
            factors.append("High-budget project with premium materials")

        if "urgent" in (project.timeline or "").lower():
            estimated_weeks = max(estimated_weeks - 1, 1)
            factors.append("Urgent timeline requested")
            potential_delays.append("Rushing may affect quality")

        address = (project.address or "").lower()
        if "downtown" in address or "city" in address:
            estimated_weeks += 1
            factors.append("Urban location with parking/access considerations")
            potential_delays.append("City permits and inspections")

        description_length = len(project.description or "")
        confidence = "medium"
        if description_length > 200 and budget_amount:
            confidence = "high"
        if description_length < 50:
            confidence = "low"

        return TimelinePrediction(
            estimated_weeks=estimated_weeks,
            confidence=confidence,
            factors=factors,
            potential_delays=potential_delays,
        )

    # ========== RISK ASSESSMENT ==========

    def assess_project_risks(self, project: Project, bids: Sequence[Bid]) -> RiskAssessment:
        risk_factors = []
        red_flags = []
        recommendations = []

        if calculate_project_complexity(project) == "high":
            risk_factors.append("Complex project requiring experienced contractor")
            recommendations.append("Verify contractor has experience with similar projects")

        budget_amount = extract_budget_amount(project.budget)
        if budget_amount and budget_amount < 5000:
            risk_factors.append("Low budget may limit contractor options")
            red_flags.append("Very low budget for project scope")

        timeline = (project.timeline or "").lower()
        if "urgent" in timeline or "quick" in timeline:
            risk_factors.append("Tight timeline may affect quality")
            red_flags.append("Rushed timeline could lead to poor workmanship")

        amounts = [a for a in (parse_amount(bid.amount) for bid in bids) if a is not None]
        if amounts:
            average = sum(amounts) / len(amounts)
            lowest = min(amounts)
            highest = max(amounts)

            spread_too_wide = highest > 0 and (lowest <= 0 or highest / lowest > 3)
            if spread_too_wide:
                risk_factors.append("Large variation in bid amounts")
                red_flags.append("Extreme bid variation suggests unclear project scope")
                recommendations.append("Clarify project requirements and get more detailed bids")

            if lowest < average * 0.5:
                red_flags.append("Unusually low bid - may indicate cutting corners")
                recommendations.append("Investigate low bid thoroughly before accepting")

        if len(project.description or "") < 100:
            risk_factors.append("Limited project description")
            recommendations.append("Provide more detailed project requirements")

        if len(project.address or "") < 10:
            risk_factors.append("Incomplete location information")
            recommendations.append("Provide complete project address")

        if len(red_flags) > 2 or len(risk_factors) > 4:
            overall_risk = "high"
        elif red_flags or risk_factors:
            overall_risk = "medium"
        else:
            overall_risk = "low"

        return RiskAssessment(
            overall_risk=overall_risk,
            risk_factors=risk_factors,
            recommendations=recommendations,
            red_flags=red_flags,
        )
