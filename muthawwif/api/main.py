"""FastAPI application for the Muthawwif site."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel

from ..analytics.aggregator import AnalyticsAggregator
from ..auth.client import HostedAuthClient
from ..auth.session import SessionState
from ..listing.state import FilterState
from ..services.admin import AdminService
from ..services.content import ContentService
from ..services.views import profile_view, purchase_view
from ..storage.database import Database
from ..storage.models import ConsultationPayload, Profile, ProfileUpdate
from ..utils.config import Config, get_config
from .admin import router as admin_router
from .deps import (
    get_auth_client,
    get_content_service,
    get_db,
    get_session_state,
    register_exception_handlers,
    render,
    require_user,
)

VERSION = "1.0.0"

router = APIRouter()
auth_router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterPayload(BaseModel):
    email: str
    password: str
    full_name: str


class LoginPayload(BaseModel):
    email: str
    password: str


# ============================================================================
# Public pages
# ============================================================================


@router.get("/")
async def root(request: Request):
    """Root endpoint."""
    config: Config = request.app.state.config
    return {
        "name": config.site.name,
        "tagline": config.site.tagline,
        "version": VERSION,
        "status": "running",
    }


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/pages/home")
async def home_page(content: ContentService = Depends(get_content_service)):
    """Featured products, latest posts, testimonials and public site settings."""
    return render(content.home())


@router.get("/pages/about")
async def about_page(content: ContentService = Depends(get_content_service)):
    return render(content.about())


@router.get("/pages/contact")
async def contact_page(content: ContentService = Depends(get_content_service)):
    return render(content.contact())


@router.post("/pages/contact", status_code=201)
async def submit_contact(
    payload: ConsultationPayload,
    content: ContentService = Depends(get_content_service),
    session: SessionState = Depends(get_session_state),
):
    """Store a consultation request from the contact form."""
    try:
        consultation = content.submit_consultation(payload, session)
    except Exception as e:
        logger.error(f"Error submitting consultation: {e}")
        raise HTTPException(
            status_code=500,
            detail="Terjadi kesalahan saat mengirim pesan. Silakan coba lagi.",
        )

    return {"message": "Pesan berhasil dikirim", "id": consultation.id}


@router.get("/blog")
async def blog_listing(request: Request, content: ContentService = Depends(get_content_service)):
    """Published posts filtered by ``category``, ``search`` and ``page`` query parameters."""
    state = FilterState.from_params(content.blog_spec, request.query_params)
    return render(content.blog(state))


@router.get("/blog/{slug}")
async def blog_post(slug: str, content: ContentService = Depends(get_content_service)):
    result = content.post(slug)
    if result.is_error:
        raise HTTPException(status_code=500, detail=result.error)
    if result.data is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return result.data


@router.get("/products")
async def product_listing(request: Request, content: ContentService = Depends(get_content_service)):
    """Active products filtered by category, search, type, priceRange and sortBy."""
    state = FilterState.from_params(content.catalog_spec, request.query_params)
    return render(content.catalog(state))


@router.get("/products/{slug}")
async def product_detail(
    slug: str,
    content: ContentService = Depends(get_content_service),
    session: SessionState = Depends(get_session_state),
):
    result = content.product(slug, session)
    if result.is_error:
        raise HTTPException(status_code=500, detail=result.error)
    if result.data is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return result.data


@router.post("/products/{slug}/purchase", status_code=201)
async def start_purchase(
    slug: str,
    content: ContentService = Depends(get_content_service),
    session: SessionState = Depends(require_user),
):
    """Record a pending purchase of the product for the signed-in user."""
    purchase = content.purchase(slug, session)
    return {"message": "Pesanan berhasil dibuat", "purchase": purchase_view(purchase)}


# ============================================================================
# Authentication
# ============================================================================


def _permissions(session: SessionState) -> dict:
    return {
        "is_admin": session.is_admin(),
        "is_owner": session.is_owner(),
        "can_manage_content": session.can_manage_content(),
        "can_manage_users": session.can_manage_users(),
    }


@auth_router.post("/register", status_code=201)
async def register(
    payload: RegisterPayload,
    auth: HostedAuthClient = Depends(get_auth_client),
    db: Database = Depends(get_db),
):
    """Sign up with the auth provider and create the matching profile."""
    result = await auth.sign_up(payload.email, payload.password, payload.full_name)
    user = result["user"]
    if user.get("id"):
        db.ensure_profile(user["id"], payload.email, payload.full_name)

    session = result["session"]
    return {
        "message": "Registrasi berhasil! Silakan cek email untuk verifikasi.",
        "user": user,
        "access_token": session.access_token if session else None,
    }


@auth_router.post("/login")
async def login(
    payload: LoginPayload,
    auth: HostedAuthClient = Depends(get_auth_client),
    db: Database = Depends(get_db),
):
    session = await auth.sign_in(payload.email, payload.password)
    profile = db.ensure_profile(session.user_id, session.email, session.full_name)
    return {
        "message": "Login berhasil!",
        "access_token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_in": session.expires_in,
        "user": session.user,
        "profile": profile_view(profile),
    }


@auth_router.post("/logout")
async def logout(
    session: SessionState = Depends(require_user),
    auth: HostedAuthClient = Depends(get_auth_client),
):
    await auth.sign_out(session.access_token)
    return {"message": "Logout berhasil!"}


@auth_router.get("/me")
async def current_user(session: SessionState = Depends(require_user)):
    return {
        "user": session.user,
        "profile": profile_view(session.profile),
        "permissions": _permissions(session),
    }


@auth_router.patch("/me")
async def update_current_user(
    payload: ProfileUpdate,
    session: SessionState = Depends(require_user),
    db: Database = Depends(get_db),
):
    values = payload.model_dump(exclude_unset=True)
    values["updated_at"] = datetime.utcnow()
    profile = db.update(Profile, session.user_id, values)
    return {"message": "Profile berhasil diupdate!", "profile": profile_view(profile)}


@auth_router.get("/me/purchases")
async def my_purchases(
    session: SessionState = Depends(require_user),
    content: ContentService = Depends(get_content_service),
):
    return render(content.purchases(session))


# ============================================================================
# Application factory
# ============================================================================


def create_app(
    config: Optional[Config] = None,
    db: Optional[Database] = None,
    auth: Optional[HostedAuthClient] = None,
) -> FastAPI:
    """Build the API with its collaborators.

    Args:
        config: Configuration, defaults to the global one
        db: Database, defaults to one built from ``config.database``
        auth: Auth provider client, defaults to one built from ``config.auth``

    Returns:
        FastAPI application
    """
    config = config or get_config()
    db = db or Database(config.database.url, echo=config.database.echo)
    auth = auth or HostedAuthClient(config.auth.url, config.auth.anon_key, timeout=config.auth.timeout)

    app = FastAPI(
        title="Muthawwif Site API",
        description="Content, catalog and admin API for a muthawwif consultant website",
        version=VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.db = db
    app.state.auth = auth
    app.state.content = ContentService(db, config)
    app.state.admin = AdminService(db, config, AnalyticsAggregator(config.model_dump()))

    register_exception_handlers(app)
    app.include_router(router)
    app.include_router(auth_router)
    app.include_router(admin_router)

    unsubscribe = auth.events.subscribe(
        lambda event, session: logger.info(
            f"Auth event: {event}" + (f" ({session.email})" if session else "")
        )
    )

    @app.on_event("startup")
    async def startup_event():
        """Run on application startup."""
        logger.info("Muthawwif Site API starting up")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Run on application shutdown."""
        unsubscribe()
        logger.info("Muthawwif Site API shutting down")

    return app
