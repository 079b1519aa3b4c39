"""Admin panel routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from ..auth.session import SessionState
from ..listing.state import ADMIN_POSTS, ADMIN_PRODUCTS, ADMIN_USERS, FilterState
from ..services.admin import AdminService
from ..services.views import category_view, post_view, product_view, profile_view, purchase_view
from ..storage.models import (
    ADMIN_SETTING_KEYS,
    BulkAction,
    CategoryPayload,
    PostPayload,
    ProductPayload,
    PurchaseStatus,
    SettingValue,
)
from .deps import get_admin_service, render, require_content_manager, require_user_manager

router = APIRouter(prefix="/admin", tags=["admin"])


class RoleChange(BaseModel):
    role: str


# ============================================================================
# Dashboard and analytics
# ============================================================================


@router.get("/dashboard")
async def dashboard(
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    return render(admin.dashboard())


@router.get("/analytics")
async def analytics(
    range_days: Optional[int] = Query(None, alias="range"),
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    """Revenue, sales and user metrics; ``range`` is one of 7, 30, 90 or 365 days."""
    return render(admin.analytics(range_days))


# ============================================================================
# Posts
# ============================================================================


@router.get("/posts")
async def list_posts(
    request: Request,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    state = FilterState.from_params(ADMIN_POSTS, request.query_params)
    return render(admin.listing(state))


@router.post("/posts", status_code=201)
async def create_post(
    payload: PostPayload,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    post = admin.create_post(payload, session.user_id)
    return {"message": "Post created", "post": post_view(post)}


@router.put("/posts/{post_id}")
async def update_post(
    post_id: int,
    payload: PostPayload,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    post = admin.update_post(post_id, payload)
    return {"message": "Post updated", "post": post_view(post)}


@router.delete("/posts/{post_id}")
async def delete_post(
    post_id: int,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    admin.delete_post(post_id)
    return {"message": "Post deleted"}


@router.post("/posts/{post_id}/toggle-status")
async def toggle_post_status(
    post_id: int,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    post = admin.toggle_post_status(post_id)
    return {"message": f"Post {post.status}", "post": post_view(post)}


@router.post("/posts/bulk")
async def bulk_posts(
    payload: BulkAction,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    return {"message": admin.bulk_posts(payload.action, payload.ids)}


# ============================================================================
# Products
# ============================================================================


@router.get("/products")
async def list_products(
    request: Request,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    state = FilterState.from_params(ADMIN_PRODUCTS, request.query_params)
    return render(admin.listing(state))


@router.post("/products", status_code=201)
async def create_product(
    payload: ProductPayload,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    product = admin.create_product(payload)
    return {"message": "Product created", "product": product_view(product)}


@router.put("/products/{product_id}")
async def update_product(
    product_id: int,
    payload: ProductPayload,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    product = admin.update_product(product_id, payload)
    return {"message": "Product updated", "product": product_view(product)}


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: int,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    admin.delete_product(product_id)
    return {"message": "Product deleted"}


@router.post("/products/{product_id}/toggle-active")
async def toggle_product_active(
    product_id: int,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    product = admin.toggle_product_active(product_id)
    state = "activated" if product.is_active else "deactivated"
    return {"message": f"Product {state}", "product": product_view(product)}


@router.post("/products/{product_id}/toggle-featured")
async def toggle_product_featured(
    product_id: int,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    product = admin.toggle_product_featured(product_id)
    state = "featured" if product.is_featured else "unfeatured"
    return {"message": f"Product {state}", "product": product_view(product)}


@router.post("/products/bulk")
async def bulk_products(
    payload: BulkAction,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    return {"message": admin.bulk_products(payload.action, payload.ids)}


# ============================================================================
# Categories
# ============================================================================


@router.get("/categories")
async def list_categories(
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    return render(admin.categories())


@router.post("/categories", status_code=201)
async def create_category(
    payload: CategoryPayload,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    category = admin.create_category(payload)
    return {"message": "Category created", "category": category_view(category)}


@router.put("/categories/{category_id}")
async def update_category(
    category_id: int,
    payload: CategoryPayload,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    category = admin.update_category(category_id, payload)
    return {"message": "Category updated", "category": category_view(category)}


# ============================================================================
# Purchases
# ============================================================================


@router.put("/purchases/{purchase_id}/status")
async def update_purchase_status(
    purchase_id: int,
    payload: PurchaseStatus,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    """Confirm, fail or refund a purchase; only completed purchases count as revenue."""
    purchase = admin.update_purchase_status(purchase_id, payload.payment_status)
    return {"message": f"Purchase {purchase.payment_status}", "purchase": purchase_view(purchase)}


# ============================================================================
# Users
# ============================================================================


@router.get("/users")
async def list_users(
    request: Request,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    state = FilterState.from_params(ADMIN_USERS, request.query_params)
    return render(admin.listing(state))


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: str,
    payload: RoleChange,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_user_manager),
):
    profile = admin.update_user_role(session, user_id, payload.role)
    return {"message": f"User role updated to {profile.role}", "user": profile_view(profile)}


@router.post("/users/{user_id}/toggle-status")
async def toggle_user_status(
    user_id: str,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_user_manager),
):
    profile = admin.toggle_user_status(session, user_id)
    state = "activated" if profile.is_active else "deactivated"
    return {"message": f"User {state}", "user": profile_view(profile)}


@router.post("/users/bulk")
async def bulk_users(
    payload: BulkAction,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_user_manager),
):
    return {"message": admin.bulk_users(session, payload.action, [str(i) for i in payload.ids])}


# ============================================================================
# Settings
# ============================================================================


@router.get("/settings")
async def get_settings(
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    return render(admin.settings())


@router.put("/settings/{key}")
async def save_setting(
    key: str,
    payload: SettingValue,
    admin: AdminService = Depends(get_admin_service),
    session: SessionState = Depends(require_content_manager),
):
    if key not in ADMIN_SETTING_KEYS:
        raise HTTPException(status_code=404, detail=f"Unknown setting: {key}")
    value = admin.save_setting(key, payload.value, payload.is_public)
    return {"message": "Settings saved", "key": key, "value": value}
