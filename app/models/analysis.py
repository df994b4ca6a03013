from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from app.services.templates import SuggestionType, Tone

Complexity = Literal["low", "medium", "high"]
Level = Literal["low", "medium", "high"]


class CompatibilityFactors(BaseModel):
    """The six 0-100 factor scores behind a compatibility score"""
    specialty: float
    location: float
    budget: float
    timeline: float
    experience: float
    rating: float


class CompatibilityScore(BaseModel):
    """
    Project/contractor fit, computed per request and never stored.
    `score` is the unweighted mean of the factors.
    """
    contractor_id: int
    company_name: str
    score: float = Field(..., ge=0, le=100)
    factors: CompatibilityFactors
    recommendations: List[str] = Field(default_factory=list)


class ProjectAnalysis(BaseModel):
    complexity: Complexity
    estimated_duration: str
    budget_range: str
    required_specialties: List[str]
    risk_factors: List[str]


class BidAnalysis(BaseModel):
    bid_id: int
    fair_price_estimate: str
    quality_score: int = Field(..., ge=0, le=100)
    price_analysis: Literal["good", "fair", "high", "low"]
    risk_factors: List[str]
    recommendations: List[str]


class GeneratedDescription(BaseModel):
    title: str
    description: str
    suggested_budget: str
    suggested_timeline: str
    key_points: List[str]


class ResponseSuggestion(BaseModel):
    type: SuggestionType
    message: str
    tone: Tone


class TimelinePrediction(BaseModel):
    estimated_weeks: int
    confidence: Level
    factors: List[str]
    potential_delays: List[str]


class RiskAssessment(BaseModel):
    overall_risk: Level
    risk_factors: List[str]
    recommendations: List[str]
    red_flags: List[str]


class ComprehensiveAnalysis(BaseModel):
    project_id: int
    project_analysis: ProjectAnalysis
    timeline_prediction: TimelinePrediction
    risk_assessment: RiskAssessment
    bid_analyses: List[BidAnalysis]
    top_matches: Optional[List[CompatibilityScore]] = None
