"""
Serverless entry points exposing the core marketplace operations outside the
FastAPI app. Each handler takes an API-gateway style event
(httpMethod, path, body, queryStringParameters) and returns
{"statusCode", "headers", "body"}.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes import bid_with_contractor, contractor_out, project_list_item
from app.core.auth import hash_password
from app.database import SessionLocal
from app.models.schemas import (
    BidCreate,
    BidResponse,
    BidStatusUpdate,
    ContractorCreate,
    ProjectCreate,
    ProjectDetail,
    ProjectResponse,
    ProjectStatusUpdate,
    UserCreate,
    UserResponse,
)
from app.services.storage import MarketplaceStorage

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, PUT, OPTIONS",
    "Content-Type": "application/json",
}


class NotFound(LookupError):
    pass


class ContractorCreateEvent(ContractorCreate):
    user_id: int


class ProjectCreateEvent(ProjectCreate):
    homeowner_id: int


class BidCreateEvent(BidCreate):
    contractor_id: int


def _serialize(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, list):
        return [_serialize(item) for item in payload]
    return payload


def create_response(status_code: int, payload: Any = None) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": "" if payload is None else json.dumps(_serialize(payload)),
    }


def create_error_response(status_code: int, message: str) -> Dict[str, Any]:
    return create_response(status_code, {"message": message})


def _path_parts(event: Dict[str, Any], resource: str) -> List[str]:
    """Path segments after the resource name, e.g. /api/projects/3/status -> ['3', 'status']"""
    parts = [p for p in (event.get("path") or "").split("/") if p]
    if resource in parts:
        return parts[parts.index(resource) + 1:]
    return []


def _parse_id(value: str, label: str) -> int:
    if not value.isdigit():
        raise ValueError(f"Invalid {label} ID")
    return int(value)


def _body(event: Dict[str, Any]) -> Dict[str, Any]:
    raw = event.get("body")
    if not raw:
        return {}
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _run(event: Dict[str, Any], label: str, route) -> Dict[str, Any]:
    """Shared preflight, session and error mapping for every handler"""
    if event.get("httpMethod") == "OPTIONS":
        return create_response(200)

    db = SessionLocal()
    try:
        storage = MarketplaceStorage(db)
        response = route(event, storage)
        if response is None:
            return create_error_response(405, "Method not allowed")
        return response
    except ValidationError as e:
        return create_error_response(400, "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ))
    except LookupError as e:
        return create_error_response(404, str(e).strip("'\""))
    except ValueError as e:
        return create_error_response(400, str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{label} operation error: {e}")
        return create_error_response(400, f"{label} operation failed")
    finally:
        db.close()


# ========== USERS ==========

def _users(event: Dict[str, Any], storage: MarketplaceStorage) -> Optional[Dict[str, Any]]:
    method = event.get("httpMethod")
    parts = _path_parts(event, "users")

    if method == "POST" and not parts:
        data = UserCreate(**_body(event))
        fields = data.model_dump(exclude={"password"})
        fields["user_type"] = data.user_type.value
        fields["email"] = data.email.lower()
        user = storage.create_user(hashed_password=hash_password(data.password), **fields)
        return create_response(201, UserResponse.model_validate(user))

    if method == "GET" and len(parts) == 1:
        user = storage.get_user(_parse_id(parts[0], "user"))
        if not user:
            raise NotFound("User not found")
        return create_response(200, UserResponse.model_validate(user))

    return None


def users_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return _run(event, "User", _users)


# ========== CONTRACTORS ==========

def _contractors(event: Dict[str, Any], storage: MarketplaceStorage) -> Optional[Dict[str, Any]]:
    method = event.get("httpMethod")
    parts = _path_parts(event, "contractors")

    if method == "POST" and not parts:
        data = ContractorCreateEvent(**_body(event))
        contractor = storage.create_contractor(data.user_id, **data.model_dump(exclude={"user_id"}))
        return create_response(201, contractor_out(contractor))

    if method == "GET" and len(parts) == 1:
        contractor = storage.get_contractor(_parse_id(parts[0], "contractor"))
        if not contractor:
            raise NotFound("Contractor not found")
        return create_response(200, contractor_out(contractor))

    if method == "GET" and not parts:
        query = event.get("queryStringParameters") or {}
        latitude = query.get("latitude")
        longitude = query.get("longitude")
        located = bool(latitude and longitude)

        contractors = storage.search_contractors(
            query.get("category"),
            float(latitude) if located else None,
            float(longitude) if located else None,
            float(query.get("radius") or 20),
        )
        return create_response(200, [contractor_out(c) for c in contractors])

    return None


def contractors_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return _run(event, "Contractor", _contractors)


# ========== PROJECTS ==========

def _projects(event: Dict[str, Any], storage: MarketplaceStorage) -> Optional[Dict[str, Any]]:
    method = event.get("httpMethod")
    parts = _path_parts(event, "projects")

    if method == "POST" and not parts:
        data = ProjectCreateEvent(**_body(event))
        project = storage.create_project(data.homeowner_id, **data.model_dump(exclude={"homeowner_id"}))
        return create_response(201, ProjectResponse.model_validate(project))

    if method == "GET" and not parts:
        return create_response(200, [project_list_item(p) for p in storage.get_projects()])

    if method == "GET" and len(parts) == 1:
        project = storage.get_project(_parse_id(parts[0], "project"))
        if not project:
            raise NotFound("Project not found")
        detail = ProjectDetail(
            **project_list_item(project).model_dump(),
            bids=[BidResponse.model_validate(b) for b in storage.get_bids_by_project(project.id)],
        )
        return create_response(200, detail)

    if method == "PUT" and len(parts) == 2 and parts[1] == "status":
        update = ProjectStatusUpdate(**_body(event))
        storage.update_project_status(_parse_id(parts[0], "project"), update.status.value)
        return create_response(200, {"message": "Project status updated"})

    return None


def projects_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return _run(event, "Project", _projects)


# ========== BIDS ==========

def _bids(event: Dict[str, Any], storage: MarketplaceStorage) -> Optional[Dict[str, Any]]:
    method = event.get("httpMethod")
    parts = _path_parts(event, "bids")
    project_parts = _path_parts(event, "projects")

    # GET /projects/{id}/bids
    if method == "GET" and len(project_parts) == 2 and project_parts[1] == "bids":
        project_id = _parse_id(project_parts[0], "project")
        if storage.get_project(project_id) is None:
            raise NotFound("Project not found")
        return create_response(200, [bid_with_contractor(b) for b in storage.get_bids_by_project(project_id)])

    if method == "POST" and not parts and not project_parts:
        data = BidCreateEvent(**_body(event))
        bid = storage.create_bid(
            project_id=data.project_id,
            contractor_id=data.contractor_id,
            amount=data.amount,
            timeline=data.timeline,
            proposal=data.proposal,
        )
        return create_response(201, BidResponse.model_validate(bid))

    if method == "PUT" and len(parts) == 2 and parts[1] == "status":
        update = BidStatusUpdate(**_body(event))
        storage.update_bid_status(_parse_id(parts[0], "bid"), update.status.value)
        return create_response(200, {"message": "Bid status updated"})

    return None


def bids_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return _run(event, "Bid", _bids)
