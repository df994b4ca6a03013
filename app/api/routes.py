from fastapi import APIRouter, HTTPException, status, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.api.errors import store_errors
from app.core.auth import User, get_current_user
from app.database import get_db
from app.models.marketplace import Project, Bid, Contractor, UserType
from app.models.schemas import (
    BidCreate,
    BidResponse,
    BidStatusUpdate,
    BidWithContractor,
    ContractorCreate,
    ContractorWithUser,
    ConversationResponse,
    MessageCreate,
    MessageOut,
    MessageResponse,
    MessageWithUsers,
    ProjectCreate,
    ProjectDetail,
    ProjectListItem,
    ProjectResponse,
    ProjectStatusUpdate,
    ReviewCreate,
    ReviewResponse,
    UserResponse,
)
from app.services.storage import MarketplaceStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Marketplace"])


def get_storage(db: Session = Depends(get_db)) -> MarketplaceStorage:
    return MarketplaceStorage(db)


# ========== SERIALIZATION HELPERS ==========

def _user_out(user) -> Optional[UserResponse]:
    return UserResponse.model_validate(user) if user is not None else None


def contractor_out(contractor: Contractor) -> ContractorWithUser:
    data = ContractorWithUser.model_validate(contractor)
    data.user = _user_out(contractor.user)
    return data


def project_list_item(project: Project) -> ProjectListItem:
    return ProjectListItem(
        **ProjectResponse.model_validate(project).model_dump(),
        homeowner=_user_out(project.homeowner),
        bid_count=len(project.bids),
    )


def bid_with_contractor(bid: Bid) -> BidWithContractor:
    return BidWithContractor(
        **BidResponse.model_validate(bid).model_dump(),
        contractor=contractor_out(bid.contractor) if bid.contractor else None,
    )


def _require_project(storage: MarketplaceStorage, project_id: int) -> Project:
    project = storage.get_project(project_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


# ========== USERS ==========

@router.get("/users/{user_id}", response_model=UserResponse, tags=["Users"])
def get_user(user_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    user = storage.get_user(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/users/{user_id}/conversations", response_model=List[ConversationResponse], tags=["Messages"])
def list_conversations(
    user_id: int,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """Conversations grouped by project, most recent activity first"""
    if current_user.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot read another user's conversations")

    results = []
    for conv in storage.get_conversations(user_id):
        project = storage.get_project(conv["project_id"])
        results.append(ConversationResponse(
            project_id=conv["project_id"],
            project=ProjectResponse.model_validate(project) if project else None,
            other_user=_user_out(storage.get_user(conv["other_user_id"])),
            last_message=MessageResponse.model_validate(conv["last_message"]),
            message_count=conv["message_count"],
            unread_count=conv["unread_count"],
        ))
    return results


# ========== CONTRACTORS ==========

@router.post("/contractors", response_model=ContractorWithUser, status_code=status.HTTP_201_CREATED, tags=["Contractors"])
def create_contractor(
    contractor_data: ContractorCreate,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """Create the contractor profile for the current user"""
    if current_user.user_type != UserType.CONTRACTOR.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only contractor accounts can create a contractor profile")

    with store_errors("Create contractor", storage.db):
        contractor = storage.create_contractor(current_user.user_id, **contractor_data.model_dump())

    logger.info(f"Contractor profile {contractor.id} created for user {current_user.user_id}")
    return contractor_out(contractor)


@router.get("/contractors", response_model=List[ContractorWithUser], tags=["Contractors"])
def list_contractors(
    category: Optional[str] = None,
    latitude: Optional[float] = Query(None, ge=-90, le=90),
    longitude: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(20, gt=0, description="Search radius in km"),
    storage: MarketplaceStorage = Depends(get_storage)
):
    """
    List contractors.
    - latitude/longitude: only contractors within `radius` km
    - category: only contractors listing that specialty
    """
    contractors = storage.search_contractors(category, latitude, longitude, radius)
    return [contractor_out(c) for c in contractors]


@router.get("/contractors/{contractor_id}", response_model=ContractorWithUser, tags=["Contractors"])
def get_contractor(contractor_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    contractor = storage.get_contractor(contractor_id)
    if not contractor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contractor not found")
    return contractor_out(contractor)


@router.get("/contractors/{contractor_id}/bids", response_model=List[BidResponse], tags=["Bids"])
def list_contractor_bids(contractor_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    if not storage.get_contractor(contractor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contractor not found")
    return storage.get_bids_by_contractor(contractor_id)


@router.get("/contractors/{contractor_id}/reviews", response_model=List[ReviewResponse], tags=["Reviews"])
def list_contractor_reviews(contractor_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    if not storage.get_contractor(contractor_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contractor not found")
    return storage.get_reviews_by_contractor(contractor_id)


# ========== PROJECTS ==========

@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED, tags=["Projects"])
def create_project(
    project_data: ProjectCreate,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """Post a new project owned by the current user"""
    with store_errors("Create project", storage.db):
        project = storage.create_project(current_user.user_id, **project_data.model_dump())

    logger.info(f"Project {project.id} posted by user {current_user.user_id}")
    return project


@router.get("/projects", response_model=List[ProjectListItem], tags=["Projects"])
def list_projects(
    homeowner_id: Optional[int] = None,
    storage: MarketplaceStorage = Depends(get_storage)
):
    """All projects, newest first, with homeowner and bid count"""
    if homeowner_id is not None:
        projects = storage.get_projects_by_homeowner(homeowner_id)
    else:
        projects = storage.get_projects()
    return [project_list_item(p) for p in projects]


@router.get("/projects/{project_id}", response_model=ProjectDetail, tags=["Projects"])
def get_project(project_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    project = _require_project(storage, project_id)
    bids = storage.get_bids_by_project(project.id)
    return ProjectDetail(
        **project_list_item(project).model_dump(),
        bids=[BidResponse.model_validate(b) for b in bids],
    )


@router.put("/projects/{project_id}/status", response_model=MessageOut, tags=["Projects"])
def update_project_status(
    project_id: int,
    update: ProjectStatusUpdate,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    project = _require_project(storage, project_id)
    if project.homeowner_id != current_user.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the project owner can change its status")

    with store_errors("Update project status", storage.db):
        storage.update_project_status(project_id, update.status.value)
    return MessageOut(message="Project status updated")


# ========== BIDS ==========

@router.post("/bids", response_model=BidResponse, status_code=status.HTTP_201_CREATED, tags=["Bids"])
def create_bid(
    bid_data: BidCreate,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """Submit a bid as the current user's contractor profile"""
    contractor = storage.get_contractor_by_user_id(current_user.user_id)
    if not contractor:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Create a contractor profile before bidding")

    with store_errors("Create bid", storage.db):
        bid = storage.create_bid(
            project_id=bid_data.project_id,
            contractor_id=contractor.id,
            amount=bid_data.amount,
            timeline=bid_data.timeline,
            proposal=bid_data.proposal,
        )

    logger.info(f"Bid {bid.id} submitted on project {bid.project_id} by contractor {contractor.id}")
    return bid


@router.get("/projects/{project_id}/bids", response_model=List[BidWithContractor], tags=["Bids"])
def list_project_bids(project_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    _require_project(storage, project_id)
    return [bid_with_contractor(b) for b in storage.get_bids_by_project(project_id)]


@router.put("/bids/{bid_id}/status", response_model=MessageOut, tags=["Bids"])
def update_bid_status(
    bid_id: int,
    update: BidStatusUpdate,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    bid = storage.get_bid(bid_id)
    if not bid:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bid not found")
    if bid.project.homeowner_id != current_user.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the project owner can accept or reject bids")

    with store_errors("Update bid status", storage.db):
        storage.update_bid_status(bid_id, update.status.value)
    return MessageOut(message="Bid status updated")


# ========== MESSAGES ==========

@router.post("/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED, tags=["Messages"])
def create_message(
    message_data: MessageCreate,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    if not storage.get_user(message_data.receiver_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Receiver not found")

    with store_errors("Send message", storage.db):
        return storage.create_message(
            project_id=message_data.project_id,
            sender_id=current_user.user_id,
            receiver_id=message_data.receiver_id,
            content=message_data.content,
        )


@router.get("/projects/{project_id}/messages", response_model=List[MessageWithUsers], tags=["Messages"])
def list_project_messages(project_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    _require_project(storage, project_id)
    return [
        MessageWithUsers(
            **MessageResponse.model_validate(m).model_dump(),
            sender=_user_out(storage.get_user(m.sender_id)),
            receiver=_user_out(storage.get_user(m.receiver_id)),
        )
        for m in storage.get_messages_by_project(project_id)
    ]


# ========== REVIEWS ==========

@router.post("/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED, tags=["Reviews"])
def create_review(
    review_data: ReviewCreate,
    storage: MarketplaceStorage = Depends(get_storage),
    current_user: User = Depends(get_current_user)
):
    """Review a contractor on one of the current user's projects"""
    project = _require_project(storage, review_data.project_id)
    if project.homeowner_id != current_user.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the project owner can review its contractor")

    # Reviews from the owner of a project the contractor actually bid on are marked verified
    bid_contractors = {b.contractor_id for b in storage.get_bids_by_project(project.id)}

    with store_errors("Create review", storage.db):
        return storage.create_review(
            reviewer_id=current_user.user_id,
            is_verified=review_data.contractor_id in bid_contractors,
            **review_data.model_dump(),
        )


@router.get("/projects/{project_id}/reviews", response_model=List[ReviewResponse], tags=["Reviews"])
def list_project_reviews(project_id: int, storage: MarketplaceStorage = Depends(get_storage)):
    _require_project(storage, project_id)
    return storage.get_reviews_by_project(project_id)
