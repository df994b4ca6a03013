from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import SQLAlchemyError
from app.database import SessionLocal
from app.models import AuditLog
import time
import logging

logger = logging.getLogger(__name__)

SKIP_PATHS = ["/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"]
WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class AuditMiddleware(BaseHTTPMiddleware):
    """Record one AuditLog row per API request"""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/" or any(request.url.path.startswith(path) for path in SKIP_PATHS):
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        latency_ms = int((time.time() - start_time) * 1000)

        # Set by get_current_user during the request, absent for anonymous calls
        user_id = getattr(request.state, "user_id", None)
        path = request.url.path

        db = SessionLocal()
        try:
            db.add(AuditLog(
                user_id=user_id,
                action=self._determine_action(request.method, path),
                resource_type=self._extract_resource_type(path),
                resource_id=self._extract_resource_id(path),
                details={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "latency_ms": latency_ms,
                },
                ip_address=request.client.host if request.client else "unknown",
                user_agent=request.headers.get("user-agent", "")
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Audit logging failed for {request.method} {path}: {e}")
        finally:
            db.close()

        return response

    def _determine_action(self, method: str, path: str) -> str:
        """Map HTTP method + path to action name"""
        if "/auth/login" in path:
            return "user_login"
        if "/auth/register" in path:
            return "user_register"
        if path.endswith("/status") and method == "PUT":
            return f"{self._extract_resource_type(path)}_status_update"
        if "/api/ai/" in path:
            return f"ai_{path.split('/')[3].replace('-', '_')}" if len(path.split("/")) > 3 else "ai_request"
        if method in WRITE_METHODS:
            return f"{self._extract_resource_type(path)}_create"
        return f"{self._extract_resource_type(path)}_view"

    def _extract_resource_type(self, path: str) -> str:
        """Extract resource type from path"""
        if "/auth" in path:
            return "auth"
        if "/api/ai" in path:
            return "ai"
        if "/messages" in path or "/conversations" in path:
            return "message"
        if "/reviews" in path:
            return "review"
        if "/bids" in path:
            return "bid"
        if "/projects" in path:
            return "project"
        if "/contractors" in path:
            return "contractor"
        if "/users" in path:
            return "user"
        return "unknown"

    def _extract_resource_id(self, path: str):
        ids = [part for part in path.split("/") if part.isdigit()]
        return ids[0] if ids else None
