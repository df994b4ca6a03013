from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
import logging

from app.core.auth import hash_password, token_for_user
from app.core.config import settings
from app.core.rate_limit import limiter
from app.database import get_db
from app.models.schemas import UserCreate, Token, UserResponse
from app.services.storage import MarketplaceStorage

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Authentication"])


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def register(request: Request, user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a homeowner or contractor account and return a bearer token"""
    storage = MarketplaceStorage(db)
    fields = user_data.model_dump(exclude={"password"})
    fields["user_type"] = user_data.user_type.value
    fields["email"] = user_data.email.lower()

    try:
        db_user = storage.create_user(hashed_password=hash_password(user_data.password), **fields)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info(f"Registered {db_user.user_type} user {db_user.id}")
    return Token(access_token=token_for_user(db_user), user=UserResponse.model_validate(db_user))
