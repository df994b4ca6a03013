from fastapi import APIRouter, HTTPException, status, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from app.database import get_db
from app.models.analysis import (
    BidAnalysis,
    CompatibilityScore,
    ComprehensiveAnalysis,
    GeneratedDescription,
    ProjectAnalysis,
    ResponseSuggestion,
    RiskAssessment,
    TimelinePrediction,
)
from app.models.schemas import GenerateDescriptionRequest, ResponseSuggestionRequest
from app.services.ai_analysis import AIAnalysisService
from app.services.storage import MarketplaceStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI Analysis"])


class AIContext:
    """Storage plus analysis service bound to one request's session"""

    def __init__(self, db: Session = Depends(get_db)):
        self.storage = MarketplaceStorage(db)
        self.service = AIAnalysisService(self.storage)

    def project_or_404(self, project_id: int):
        project = self.storage.get_project(project_id)
        if not project:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
        return project


@router.get("/analyze-project/{project_id}", response_model=ProjectAnalysis)
def analyze_project(project_id: int, ctx: AIContext = Depends()):
    return ctx.service.analyze_project(ctx.project_or_404(project_id))


@router.get("/recommendations/{project_id}", response_model=List[CompatibilityScore])
def contractor_recommendations(
    project_id: int,
    limit: int = Query(10, ge=1, le=100),
    ctx: AIContext = Depends()
):
    """Contractors ranked by compatibility with the project, best first"""
    project = ctx.project_or_404(project_id)
    return ctx.service.find_compatible_contractors(project)[:limit]


@router.get("/analyze-bid/{bid_id}", response_model=BidAnalysis)
def analyze_bid(bid_id: int, ctx: AIContext = Depends()):
    bid = ctx.storage.get_bid(bid_id)
    if not bid:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bid not found")
    return ctx.service.analyze_bid(bid, ctx.project_or_404(bid.project_id))


@router.get("/predict-timeline/{project_id}", response_model=TimelinePrediction)
def predict_timeline(project_id: int, ctx: AIContext = Depends()):
    return ctx.service.predict_timeline(ctx.project_or_404(project_id))


@router.get("/risk-assessment/{project_id}", response_model=RiskAssessment)
def risk_assessment(project_id: int, ctx: AIContext = Depends()):
    project = ctx.project_or_404(project_id)
    return ctx.service.assess_project_risks(project, ctx.storage.get_bids_by_project(project.id))


@router.get("/comprehensive-analysis/{project_id}", response_model=ComprehensiveAnalysis)
def comprehensive_analysis(
    project_id: int,
    include_matches: bool = True,
    ctx: AIContext = Depends()
):
    """
    Everything the engine knows about a project in one response:
    project analysis, timeline, risks, every bid analysed, and the top 5 contractors.
    """
    project = ctx.project_or_404(project_id)
    bids = ctx.storage.get_bids_by_project(project.id)

    return ComprehensiveAnalysis(
        project_id=project.id,
        project_analysis=ctx.service.analyze_project(project),
        timeline_prediction=ctx.service.predict_timeline(project),
        risk_assessment=ctx.service.assess_project_risks(project, bids),
        bid_analyses=[ctx.service.analyze_bid(bid, project) for bid in bids],
        top_matches=ctx.service.find_compatible_contractors(project)[:5] if include_matches else None,
    )


@router.post("/generate-description", response_model=GeneratedDescription)
def generate_description(request: GenerateDescriptionRequest):
    service = AIAnalysisService()
    return service.generate_project_description(request.keywords, request.category, request.budget)


@router.post("/response-suggestions", response_model=List[ResponseSuggestion])
def response_suggestions(request: ResponseSuggestionRequest):
    service = AIAnalysisService()
    return service.generate_response_suggestion(
        request.context,
        request.contractor_name,
        bid_amount=request.bid_amount,
        project_title=request.project_title,
    )
