from contextlib import contextmanager
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
import logging

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(action: str, db: Optional[Session] = None):
    """
    Map storage-layer failures onto HTTP errors:
    LookupError -> 404, ValueError -> 400, database errors -> 400 (logged,
    and the session rolled back).
    """
    try:
        yield
    except HTTPException:
        raise
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e).strip("'\""))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SQLAlchemyError as e:
        if db is not None:
            db.rollback()
        logger.error(f"{action} failed: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{action} failed")


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request validation failures are reported as 400 with the offending fields"""
    errors = [
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(errors) or "Invalid request"},
    )
