# create_tables.py
import argparse

from app.core.auth import hash_password
from app.database import SessionLocal, init_db
from app.services.storage import MarketplaceStorage

SAMPLE_PASSWORD = "password123"


def seed_sample_data(storage: MarketplaceStorage):
    """One homeowner, two contractors, two open projects and a review each"""
    if storage.get_user_by_email("john@example.com"):
        print("Sample data already present, skipping")
        return

    hashed = hash_password(SAMPLE_PASSWORD)
    john = storage.create_user(
        username="john_doe", email="john@example.com", hashed_password=hashed,
        first_name="John", last_name="Doe", user_type="homeowner", city="New York", state="NY",
    )
    jane = storage.create_user(
        username="jane_smith", email="jane@example.com", hashed_password=hashed,
        first_name="Jane", last_name="Smith", user_type="contractor", city="Los Angeles", state="CA",
    )
    mike = storage.create_user(
        username="mike_johnson", email="mike@example.com", hashed_password=hashed,
        first_name="Mike", last_name="Johnson", user_type="contractor", city="Chicago", state="IL",
    )

    smith = storage.create_contractor(
        jane.id,
        company_name="Smith Renovations",
        specialties=["Kitchen Remodeling", "Bathroom Renovation"],
        experience_years=8,
        description="Professional kitchen and bathroom renovation specialist with 8 years of experience.",
        is_verified=True,
    )
    johnson = storage.create_contractor(
        mike.id,
        company_name="Johnson Construction",
        specialties=["Roofing", "Plumbing", "Electrical"],
        experience_years=12,
        description="Full-service construction company specializing in roofing, plumbing, and electrical work.",
        is_verified=True,
    )

    kitchen = storage.create_project(
        john.id,
        title="Kitchen Remodel",
        description="Looking to completely remodel my kitchen. Need new cabinets, countertops, and appliances.",
        category="Kitchen Remodeling",
        budget="$15,000 - $25,000",
        timeline="2-3 months",
        address="123 Main St, New York, NY",
    )
    bathroom = storage.create_project(
        john.id,
        title="Bathroom Update",
        description="Need to update my master bathroom with new fixtures and tile work.",
        category="Bathroom Renovation",
        budget="$8,000 - $12,000",
        timeline="1-2 months",
        address="123 Main St, New York, NY",
    )

    storage.create_review(
        project_id=kitchen.id, contractor_id=smith.id, reviewer_id=john.id, rating=5,
        title="Outstanding kitchen",
        comment="Excellent work! Jane and her team were professional, timely, and delivered exactly what we wanted.",
        categories={"quality": 5, "timeliness": 5, "communication": 5, "professionalism": 5, "value": 4},
        would_recommend=True,
    )
    storage.create_review(
        project_id=bathroom.id, contractor_id=johnson.id, reviewer_id=john.id, rating=4,
        title="Solid bathroom work",
        comment="Great work on the bathroom renovation. The work was completed on time.",
        categories={"quality": 4, "timeliness": 5, "communication": 4, "professionalism": 4, "value": 4},
        would_recommend=True,
    )
    print(f"✓ Sample data created (login with any sample email / {SAMPLE_PASSWORD})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create marketplace tables")
    parser.add_argument("--seed", action="store_true", help="also insert sample users, contractors and projects")
    args = parser.parse_args()

    init_db()
    print("✓ Marketplace tables created successfully!")

    if args.seed:
        db = SessionLocal()
        try:
            seed_sample_data(MarketplaceStorage(db))
        finally:
            db.close()
