"""Unsaved ORM objects for exercising the analysis engine without a database"""
from decimal import Decimal

from app.models.marketplace import Bid, Contractor, Project


def make_project(**overrides) -> Project:
    fields = {
        "id": 1,
        "homeowner_id": 1,
        "title": "Kitchen update",
        "description": "Update the kitchen cabinets and counters",
        "category": "Kitchen Remodeling",
        "budget": "$15,000 - $25,000",
        "timeline": "4 weeks",
        "address": "123 Main St, Springfield",
        "status": "open",
    }
    fields.update(overrides)
    return Project(**fields)


def make_contractor(**overrides) -> Contractor:
    fields = {
        "id": 1,
        "user_id": 2,
        "company_name": "Acme Renovations",
        "specialties": ["Kitchen Remodeling"],
        "experience_years": 5,
        "description": "General renovation company",
        "rating": Decimal("4.50"),
        "review_count": 10,
        "is_verified": False,
    }
    fields.update(overrides)
    return Contractor(**fields)


def make_bid(**overrides) -> Bid:
    fields = {
        "id": 1,
        "project_id": 1,
        "contractor_id": 1,
        "amount": Decimal("20000.00"),
        "timeline": "4 weeks",
        "proposal": "Full scope of work",
        "status": "pending",
    }
    fields.update(overrides)
    return Bid(**fields)
