"""
Canned text used by the description and response generators.

Categories and response contexts are closed enums so every member is
guaranteed a template; free-text categories coming from the API are
coerced with ``ProjectCategory.parse`` which falls back to kitchen
remodeling for anything it does not recognise.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class ProjectCategory(str, Enum):
    KITCHEN_REMODELING = "Kitchen Remodeling"
    BATHROOM_RENOVATION = "Bathroom Renovation"
    ROOFING = "Roofing"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProjectCategory":
        if value:
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return cls.KITCHEN_REMODELING


class ResponseContext(str, Enum):
    BID_RECEIVED = "bid-received"
    BID_ACCEPTED = "bid-accepted"
    BID_DECLINED = "bid-declined"
    FOLLOW_UP = "follow-up"


class SuggestionType(str, Enum):
    QUESTION = "question"
    NEGOTIATION = "negotiation"
    ACCEPTANCE = "acceptance"
    DECLINE = "decline"


class Tone(str, Enum):
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    FORMAL = "formal"


@dataclass(frozen=True)
class DescriptionTemplate:
    title: str
    description: str
    default_budget: str
    suggested_timeline: str
    key_points: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResponseTemplate:
    type: SuggestionType
    message: str
    tone: Tone


DESCRIPTION_TEMPLATES: Dict[ProjectCategory, DescriptionTemplate] = {
    ProjectCategory.KITCHEN_REMODELING: DescriptionTemplate(
        title="Modern {keywords} Kitchen Remodel",
        description=(
            "Transform your kitchen into a modern, functional space with {keywords}. "
            "This comprehensive remodel will enhance both aesthetics and functionality, "
            "creating a kitchen that meets your lifestyle needs and adds value to your home."
        ),
        default_budget="$15,000 - $25,000",
        suggested_timeline="4-6 weeks",
        key_points=[
            "Modern design with contemporary finishes",
            "Improved functionality and workflow",
            "Energy-efficient appliances and lighting",
            "Quality materials and craftsmanship",
        ],
    ),
    ProjectCategory.BATHROOM_RENOVATION: DescriptionTemplate(
        title="Luxury {keywords} Bathroom Renovation",
        description=(
            "Create a spa-like retreat with this {keywords} bathroom renovation. "
            "We'll transform your space into a luxurious, functional bathroom that combines "
            "style with modern amenities and superior craftsmanship."
        ),
        default_budget="$8,000 - $15,000",
        suggested_timeline="2-3 weeks",
        key_points=[
            "Luxury fixtures and finishes",
            "Improved functionality and storage",
            "Modern plumbing and electrical",
            "Water-efficient features",
        ],
    ),
    ProjectCategory.ROOFING: DescriptionTemplate(
        title="Professional {keywords} Roof Installation",
        description=(
            "Protect your home with a high-quality {keywords} roof installation. "
            "Our expert team ensures proper installation, weather protection, and "
            "long-term durability for your peace of mind."
        ),
        default_budget="$5,000 - $12,000",
        suggested_timeline="3-5 days",
        key_points=[
            "Quality roofing materials",
            "Professional installation",
            "Weather protection and durability",
            "Warranty coverage",
        ],
    ),
}


RESPONSE_TEMPLATES: Dict[ResponseContext, List[ResponseTemplate]] = {
    ResponseContext.BID_RECEIVED: [
        ResponseTemplate(
            SuggestionType.QUESTION,
            "Thank you for your bid on {project_title}. Could you provide more details about the "
            "materials you plan to use and the estimated timeline for completion?",
            Tone.PROFESSIONAL,
        ),
        ResponseTemplate(
            SuggestionType.QUESTION,
            "Hi {contractor_name}, thanks for the bid! I'd like to know if this includes all permits "
            "and cleanup, and what warranty you provide on the work.",
            Tone.FRIENDLY,
        ),
    ],
    ResponseContext.BID_ACCEPTED: [
        ResponseTemplate(
            SuggestionType.ACCEPTANCE,
            "Thank you for your competitive bid{bid_amount_clause}. I'm pleased to accept your proposal "
            "for {project_title}. When can we schedule a meeting to discuss next steps?",
            Tone.PROFESSIONAL,
        ),
    ],
    ResponseContext.BID_DECLINED: [
        ResponseTemplate(
            SuggestionType.DECLINE,
            "Thank you for your interest in {project_title}. After careful consideration, I've decided "
            "to go with another contractor. I appreciate your time and wish you the best.",
            Tone.PROFESSIONAL,
        ),
    ],
    ResponseContext.FOLLOW_UP: [
        ResponseTemplate(
            SuggestionType.QUESTION,
            "Hi {contractor_name}, I wanted to follow up on your bid. Do you have any questions about "
            "the project requirements, and when would be a good time to discuss this further?",
            Tone.FRIENDLY,
        ),
    ],
}
