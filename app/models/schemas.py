from pydantic import BaseModel, EmailStr, Field, validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal, InvalidOperation

from app.models.marketplace import UserType, ProjectStatus, BidStatus
from app.services.templates import ResponseContext

# ========== USER / AUTH MODELS ==========


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    user_type: UserType
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    class Config:
        json_schema_extra = {
            "example": {
                "username": "jdoe",
                "email": "jane.doe@example.com",
                "password": "SecurePass123!",
                "first_name": "Jane",
                "last_name": "Doe",
                "user_type": "homeowner",
                "city": "San Francisco",
                "state": "CA"
            }
        }


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    user_type: str
    is_verified: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ========== CONTRACTOR MODELS ==========


class ContractorCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    license_number: Optional[str] = Field(None, max_length=100)
    insurance_number: Optional[str] = Field(None, max_length=100)
    specialties: List[str] = Field(..., min_length=1)
    experience_years: int = Field(..., ge=0)
    description: str = Field(..., min_length=1)
    portfolio: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "company_name": "Bay Area Kitchens",
                "license_number": "CA-123456",
                "specialties": ["Kitchen Remodeling", "Cabinetry"],
                "experience_years": 8,
                "description": "Licensed and insured kitchen specialists"
            }
        }


class ContractorResponse(BaseModel):
    id: int
    user_id: int
    company_name: str
    license_number: Optional[str] = None
    insurance_number: Optional[str] = None
    specialties: List[str]
    experience_years: int
    description: str
    portfolio: List[str] = Field(default_factory=list)
    rating: Decimal
    review_count: int
    is_verified: bool

    class Config:
        from_attributes = True


class ContractorWithUser(ContractorResponse):
    user: Optional[UserResponse] = None


# ========== PROJECT MODELS ==========


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    budget: str = Field(..., min_length=1, max_length=100, description="Free text, e.g. '$15,000 - $25,000'")
    timeline: str = Field(..., min_length=1, max_length=100, description="Free text, e.g. '2-3 months'")
    address: str = Field(..., min_length=1, max_length=500)
    photos: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Complete kitchen remodel",
                "description": "Full kitchen renovation with new cabinets, granite countertops and lighting",
                "category": "Kitchen Remodeling",
                "budget": "$15,000 - $25,000",
                "timeline": "2-3 months",
                "address": "123 Market St, San Francisco, CA"
            }
        }


class ProjectResponse(BaseModel):
    id: int
    homeowner_id: int
    title: str
    description: str
    category: str
    budget: str
    timeline: str
    address: str
    photos: List[str] = Field(default_factory=list)
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectListItem(ProjectResponse):
    homeowner: Optional[UserResponse] = None
    bid_count: int = 0


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


# ========== BID MODELS ==========

MAX_BID_AMOUNT = Decimal("100000000")


class BidCreate(BaseModel):
    project_id: int
    amount: str = Field(..., description="Decimal string, e.g. '18500.00'")
    timeline: str = Field(..., min_length=1, max_length=100)
    proposal: str = Field(..., min_length=1)

    @validator("amount")
    def validate_amount(cls, v):
        try:
            amount = Decimal(v.replace("$", "").replace(",", "").strip())
        except (InvalidOperation, AttributeError):
            raise ValueError("amount must be a decimal number")
        if not amount.is_finite() or amount <= 0:
            raise ValueError("amount must be greater than zero")
        # Numeric(10, 2) column
        if amount >= MAX_BID_AMOUNT:
            raise ValueError("amount must be less than 100,000,000")
        try:
            return str(amount.quantize(Decimal("0.01")))
        except InvalidOperation:
            raise ValueError("amount must be a decimal number")


class BidResponse(BaseModel):
    id: int
    project_id: int
    contractor_id: int
    amount: Decimal
    timeline: str
    proposal: str
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BidWithContractor(BidResponse):
    contractor: Optional[ContractorWithUser] = None


class BidStatusUpdate(BaseModel):
    status: BidStatus


class ProjectDetail(ProjectListItem):
    bids: List[BidResponse] = Field(default_factory=list)


# ========== MESSAGE MODELS ==========


class MessageCreate(BaseModel):
    project_id: int
    receiver_id: int
    content: str = Field(..., min_length=1, max_length=5000)


class MessageResponse(BaseModel):
    id: int
    project_id: int
    sender_id: int
    receiver_id: int
    content: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class MessageWithUsers(MessageResponse):
    sender: Optional[UserResponse] = None
    receiver: Optional[UserResponse] = None


class ConversationResponse(BaseModel):
    project_id: int
    project: Optional[ProjectResponse] = None
    other_user: Optional[UserResponse] = None
    last_message: MessageResponse
    message_count: int
    unread_count: int


# ========== REVIEW MODELS ==========


class ReviewCategories(BaseModel):
    quality: int = Field(..., ge=1, le=5)
    timeliness: int = Field(..., ge=1, le=5)
    communication: int = Field(..., ge=1, le=5)
    professionalism: int = Field(..., ge=1, le=5)
    value: int = Field(..., ge=1, le=5)


class ReviewCreate(BaseModel):
    project_id: int
    contractor_id: int
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1, max_length=100)
    comment: str = Field(..., min_length=10, max_length=1000)
    photos: List[str] = Field(default_factory=list)
    categories: ReviewCategories
    would_recommend: bool


class ReviewResponse(BaseModel):
    id: int
    project_id: int
    contractor_id: int
    reviewer_id: int
    rating: int
    title: str
    comment: str
    photos: List[str] = Field(default_factory=list)
    categories: ReviewCategories
    would_recommend: bool
    is_verified: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ========== AI REQUEST MODELS ==========


class GenerateDescriptionRequest(BaseModel):
    keywords: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1)
    budget: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "keywords": "modern, granite",
                "category": "Kitchen Remodeling",
                "budget": ""
            }
        }


class ResponseSuggestionRequest(BaseModel):
    context: ResponseContext
    contractor_name: str = Field(..., min_length=1)
    bid_amount: Optional[str] = None
    project_title: Optional[str] = None


class MessageOut(BaseModel):
    message: str
