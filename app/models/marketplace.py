# app/models/marketplace.py
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey, Numeric, JSON, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class UserType(str, enum.Enum):
    HOMEOWNER = "homeowner"
    CONTRACTOR = "contractor"


class ProjectStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BidStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Contractor(Base):
    __tablename__ = "contractors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    company_name = Column(String(255), nullable=False)
    license_number = Column(String(100), nullable=True)
    insurance_number = Column(String(100), nullable=True)
    specialties = Column(JSON, default=list, nullable=False)
    experience_years = Column(Integer, default=0, nullable=False)
    description = Column(Text, nullable=False)
    portfolio = Column(JSON, default=list)
    rating = Column(Numeric(3, 2), default=0, nullable=False)  # 0.00 - 5.00
    review_count = Column(Integer, default=0, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Relationships
    user = relationship("User", back_populates="contractor")
    bids = relationship("Bid", back_populates="contractor", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="contractor", cascade="all, delete-orphan")


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    homeowner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    budget = Column(String(100), nullable=False)  # free text, e.g. "$15,000 - $25,000"
    timeline = Column(String(100), nullable=False)  # free text, e.g. "2-3 months"
    address = Column(String(500), nullable=False)
    photos = Column(JSON, default=list)
    status = Column(String(20), default=ProjectStatus.OPEN.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    homeowner = relationship("User", back_populates="projects")
    bids = relationship("Bid", back_populates="project", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="project", cascade="all, delete-orphan")


class Bid(Base):
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    contractor_id = Column(Integer, ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    timeline = Column(String(100), nullable=False)
    proposal = Column(Text, nullable=False)
    status = Column(String(20), default=BidStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    project = relationship("Project", back_populates="bids")
    contractor = relationship("Contractor", back_populates="bids")

    __table_args__ = (
        Index('idx_bid_project_status', 'project_id', 'status'),
    )


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    contractor_id = Column(Integer, ForeignKey("contractors.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    title = Column(String(100), nullable=False)
    comment = Column(Text, nullable=False)
    photos = Column(JSON, default=list)
    categories = Column(JSON, nullable=False)  # quality/timeliness/communication/professionalism/value
    would_recommend = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    project = relationship("Project", back_populates="reviews")
    contractor = relationship("Contractor", back_populates="reviews")
