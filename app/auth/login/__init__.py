from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.auth import authenticate_user, token_for_user, get_current_user, get_user_by_id, User
from app.core.config import settings
from app.core.rate_limit import limiter
from app.database import get_db
from app.models.schemas import LoginRequest, Token, UserResponse

router = APIRouter(tags=["Authentication"])


@router.post("/login", response_model=Token)
@limiter.limit(settings.RATE_LIMIT_AUTH)
async def login(request: Request, credentials: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email/password for a bearer token"""
    user = authenticate_user(db, credentials.email.lower(), credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return Token(access_token=token_for_user(user), user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Profile of the authenticated user"""
    return get_user_by_id(db, current_user.user_id)
