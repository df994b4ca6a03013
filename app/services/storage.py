from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
import math
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.models import User, Message
from app.models.marketplace import (
    Contractor, Project, Bid, Review, ProjectStatus, BidStatus
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres"""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class MarketplaceStorage:
    """
    Store accessor shared by the HTTP routes, the chat relay and the
    serverless handlers. Getters return None for missing rows; updates raise
    LookupError for missing rows and ValueError for invalid values.
    """

    def __init__(self, db: Session):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    # ========== USERS ==========

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def create_user(self, **fields) -> User:
        if self.get_user_by_email(fields["email"]):
            raise ValueError("User with this email already exists")
        if self.get_user_by_username(fields["username"]):
            raise ValueError("Username is already taken")
        return self._save(User(**fields))

    # ========== CONTRACTORS ==========

    def get_contractor(self, contractor_id: int) -> Optional[Contractor]:
        return self.db.query(Contractor).filter(Contractor.id == contractor_id).first()

    def get_contractor_by_user_id(self, user_id: int) -> Optional[Contractor]:
        return self.db.query(Contractor).filter(Contractor.user_id == user_id).first()

    def create_contractor(self, user_id: int, **fields) -> Contractor:
        if self.get_user(user_id) is None:
            raise LookupError("User not found")
        if self.get_contractor_by_user_id(user_id):
            raise ValueError("Contractor profile already exists for this user")

        contractor = Contractor(
            user_id=user_id,
            rating=Decimal("0.00"),
            review_count=0,
            portfolio=fields.pop("portfolio", None) or [],
            **fields
        )
        return self._save(contractor)

    def get_contractors(self) -> List[Contractor]:
        return self.db.query(Contractor).order_by(Contractor.id).all()

    def get_contractors_by_category(self, category: str) -> List[Contractor]:
        # Specialties live in a JSON column, so membership is checked in Python
        return [c for c in self.get_contractors() if category in (c.specialties or [])]

    def get_contractors_by_location(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = 20
    ) -> List[Contractor]:
        """Contractors whose user's coordinates fall within radius_km"""
        nearby = []
        for contractor in self.get_contractors():
            user = contractor.user
            if user is None or user.latitude is None or user.longitude is None:
                continue
            if haversine_km(latitude, longitude, user.latitude, user.longitude) <= radius_km:
                nearby.append(contractor)
        return nearby

    def search_contractors(
        self,
        category: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius_km: float = 20
    ) -> List[Contractor]:
        if latitude is not None and longitude is not None:
            contractors = self.get_contractors_by_location(latitude, longitude, radius_km)
            if category:
                contractors = [c for c in contractors if category in (c.specialties or [])]
            return contractors
        if category:
            return self.get_contractors_by_category(category)
        return self.get_contractors()

    # ========== PROJECTS ==========

    def get_project(self, project_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def create_project(self, homeowner_id: int, **fields) -> Project:
        if self.get_user(homeowner_id) is None:
            raise LookupError("Homeowner not found")
        project = Project(
            homeowner_id=homeowner_id,
            photos=fields.pop("photos", None) or [],
            status=ProjectStatus.OPEN.value,
            **fields
        )
        return self._save(project)

    def get_projects(self) -> List[Project]:
        return self.db.query(Project).order_by(Project.created_at.desc(), Project.id.desc()).all()

    def get_projects_by_homeowner(self, homeowner_id: int) -> List[Project]:
        return self.db.query(Project).filter(Project.homeowner_id == homeowner_id).order_by(Project.id).all()

    def update_project_status(self, project_id: int, status: str) -> Project:
        value = ProjectStatus(status).value
        project = self.get_project(project_id)
        if project is None:
            raise LookupError("Project not found")
        project.status = value
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Project {project_id} status -> {value}")
        return project

    # ========== BIDS ==========

    def get_bid(self, bid_id: int) -> Optional[Bid]:
        return self.db.query(Bid).filter(Bid.id == bid_id).first()

    def create_bid(self, project_id: int, contractor_id: int, **fields) -> Bid:
        project = self.get_project(project_id)
        if project is None:
            raise LookupError("Project not found")
        if self.get_contractor(contractor_id) is None:
            raise LookupError("Contractor not found")
        if project.status != ProjectStatus.OPEN.value:
            raise ValueError("Project is not accepting bids")

        bid = Bid(
            project_id=project_id,
            contractor_id=contractor_id,
            status=BidStatus.PENDING.value,
            **fields
        )
        return self._save(bid)

    def get_bids_by_project(self, project_id: int) -> List[Bid]:
        return self.db.query(Bid).filter(Bid.project_id == project_id).order_by(Bid.id).all()

    def get_bids_by_contractor(self, contractor_id: int) -> List[Bid]:
        return self.db.query(Bid).filter(Bid.contractor_id == contractor_id).order_by(Bid.id).all()

    def update_bid_status(self, bid_id: int, status: str) -> Bid:
        value = BidStatus(status).value
        bid = self.get_bid(bid_id)
        if bid is None:
            raise LookupError("Bid not found")
        bid.status = value
        self.db.commit()
        self.db.refresh(bid)
        logger.info(f"Bid {bid_id} status -> {value}")
        return bid

    # ========== MESSAGES ==========

    def create_message(self, project_id: int, sender_id: int, receiver_id: int, content: str) -> Message:
        if self.get_project(project_id) is None:
            raise LookupError("Project not found")
        if not content or not content.strip():
            raise ValueError("Message content is required")
        message = Message(
            project_id=project_id,
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
        )
        return self._save(message)

    def get_messages_by_project(self, project_id: int) -> List[Message]:
        return (
            self.db.query(Message)
            .filter(Message.project_id == project_id)
            .order_by(Message.created_at, Message.id)
            .all()
        )

    def mark_messages_read(self, project_id: int, user_id: int) -> int:
        updated = (
            self.db.query(Message)
            .filter(
                Message.project_id == project_id,
                Message.receiver_id == user_id,
                Message.is_read.is_(False),
            )
            .update({Message.is_read: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated

    def get_conversations(self, user_id: int) -> List[Dict]:
        """One entry per project the user has messaged in, newest activity first"""
        messages = (
            self.db.query(Message)
            .filter(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(Message.created_at, Message.id)
            .all()
        )

        conversations: Dict[int, Dict] = {}
        for message in messages:
            other_user_id = message.receiver_id if message.sender_id == user_id else message.sender_id
            conversation = conversations.setdefault(message.project_id, {
                "project_id": message.project_id,
                "other_user_id": other_user_id,
                "last_message": message,
                "message_count": 0,
                "unread_count": 0,
            })
            conversation["message_count"] += 1
            conversation["last_message"] = message
            if message.receiver_id == user_id and not message.is_read:
                conversation["unread_count"] += 1

        return sorted(
            conversations.values(),
            key=lambda c: (c["last_message"].created_at, c["last_message"].id),
            reverse=True,
        )

    # ========== REVIEWS ==========

    def create_review(self, **fields) -> Review:
        contractor = self.get_contractor(fields["contractor_id"])
        if contractor is None:
            raise LookupError("Contractor not found")
        if self.get_project(fields["project_id"]) is None:
            raise LookupError("Project not found")

        review = Review(photos=fields.pop("photos", None) or [], **fields)
        self.db.add(review)
        self.db.flush()

        # Keep the contractor's denormalised rating in step with its reviews
        count, average = (
            self.db.query(func.count(Review.id), func.avg(Review.rating))
            .filter(Review.contractor_id == contractor.id)
            .one()
        )
        contractor.review_count = count
        contractor.rating = Decimal(str(average or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        self.db.commit()
        self.db.refresh(review)
        logger.info(f"Review {review.id} recorded for contractor {contractor.id}")
        return review

    def get_reviews_by_contractor(self, contractor_id: int) -> List[Review]:
        return self.db.query(Review).filter(Review.contractor_id == contractor_id).order_by(Review.id).all()

    def get_reviews_by_project(self, project_id: int) -> List[Review]:
        return self.db.query(Review).filter(Review.project_id == project_id).order_by(Review.id).all()
