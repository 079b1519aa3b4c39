"""Request dependencies and error mapping for the API."""

from typing import Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import IntegrityError

from ..auth.client import AuthError, HostedAuthClient
from ..auth.session import SessionState
from ..services.admin import AdminService, InvalidRequest, PermissionDenied
from ..services.content import ContentService
from ..storage.database import Database, NotFoundError
from ..utils.result import Result


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_auth_client(request: Request) -> HostedAuthClient:
    return request.app.state.auth


def get_content_service(request: Request) -> ContentService:
    return request.app.state.content


def get_admin_service(request: Request) -> AdminService:
    return request.app.state.admin


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_session_state(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> SessionState:
    """Resolve the bearer token into an explicit session for this request.

    Anonymous requests get an empty SessionState.
    """
    token = bearer_token(authorization)
    if not token:
        return SessionState()

    auth = get_auth_client(request)
    try:
        user = await auth.get_user(token)
    except AuthError as e:
        logger.warning(f"Rejected access token: {e.message}")
        raise HTTPException(status_code=401 if e.status_code < 500 else 503, detail=e.message)

    metadata = user.get("user_metadata") or {}
    profile = get_db(request).ensure_profile(user["id"], user.get("email", ""), metadata.get("full_name"))
    return SessionState(user=user, profile=profile, access_token=token)


async def require_user(session: SessionState = Depends(get_session_state)) -> SessionState:
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Not signed in")
    return session


async def require_content_manager(session: SessionState = Depends(require_user)) -> SessionState:
    if not session.can_manage_content():
        raise HTTPException(status_code=403, detail="You do not have permission to manage content")
    return session


async def require_user_manager(session: SessionState = Depends(require_user)) -> SessionState:
    if not session.can_manage_users():
        raise HTTPException(status_code=403, detail="You do not have permission to manage users")
    return session


def render(result: Result) -> Dict[str, Any]:
    """Turn a fetch result into a response body.

    Failed reads still return their default payload so the page renders
    empty lists and zero metrics, with the error alongside.
    """
    if isinstance(result.data, dict):
        body = {**result.data, "status": result.status.value}
    else:
        body = {"data": result.data, "status": result.status.value}
    if result.error:
        body["error"] = result.error
    return body


async def handle_not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def handle_permission_denied(request: Request, exc: PermissionDenied):
    return JSONResponse(status_code=403, content={"detail": str(exc)})


async def handle_invalid_request(request: Request, exc: InvalidRequest):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def handle_auth_error(request: Request, exc: AuthError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def handle_integrity_error(request: Request, exc: IntegrityError):
    logger.warning(f"Constraint violation on {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=409, content={"detail": "Record conflicts with an existing one (duplicate slug?)"})


def register_exception_handlers(app):
    """Register domain exception handlers with the FastAPI app"""
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(PermissionDenied, handle_permission_denied)
    app.add_exception_handler(InvalidRequest, handle_invalid_request)
    app.add_exception_handler(AuthError, handle_auth_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
