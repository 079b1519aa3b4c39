from datetime import datetime

from muthawwif.storage import Category, Post, Product, Profile, Purchase


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def seed_content(db):
    db.insert(Category, {"id": 1, "name": "Umrah", "slug": "umrah"})
    db.insert(
        Post,
        {
            "title": "Persiapan Umrah",
            "slug": "persiapan-umrah",
            "content": "Daftar barang bawaan",
            "status": "published",
            "category_id": 1,
            "published_at": datetime(2026, 9, 1),
        },
    )
    db.insert(Post, {"title": "Draft", "slug": "draft", "status": "draft"})
    db.insert(
        Product,
        {"id": 1, "title": "Kelas Manasik", "slug": "kelas-manasik", "price": 350000, "is_featured": True},
    )
    db.insert(Product, {"id": 2, "title": "E-book Doa", "slug": "ebook-doa", "price": 50000})


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/health").json()["status"] == "healthy"


def test_home_page_with_empty_store(client):
    body = client.get("/pages/home").json()

    assert body["status"] == "empty"
    assert body["featured_products"] == []


def test_home_page_lists_featured_products(client, db):
    seed_content(db)

    body = client.get("/pages/home").json()

    assert body["status"] == "success"
    assert [p["slug"] for p in body["featured_products"]] == ["kelas-manasik"]
    assert body["featured_products"][0]["price_display"] == "Rp 350.000"
    assert [p["slug"] for p in body["latest_posts"]] == ["persiapan-umrah"]


def test_contact_page_builds_whatsapp_link(client, db):
    default = client.get("/pages/contact").json()
    assert default["whatsapp_url"].startswith("https://wa.me/6282119097273?text=Assalamualaikum%2C")

    db.upsert_setting("contact_info", {"whatsapp": "+62 812-3456-7890"}, is_public=True)
    body = client.get("/pages/contact").json()
    assert body["whatsapp_url"].startswith("https://wa.me/6281234567890?text=")


def test_contact_form_is_stored(client):
    response = client.post(
        "/pages/contact",
        json={"name": "Fatimah", "email": "fatimah@example.com", "message": "Jadwal umrah Desember?"},
    )

    assert response.status_code == 201
    assert response.json()["id"] == 1


def test_blog_listing_reflects_filters(client, db):
    seed_content(db)

    body = client.get("/blog", params={"category": "1", "page": "1"}).json()

    assert body["query_string"] == "category=1"
    assert body["pagination"] == {"page": 1, "per_page": 9, "total": 1, "total_pages": 1}
    assert body["items"][0]["category"]["name"] == "Umrah"
    assert body["generation"] == 0
    assert body["categories"][0]["slug"] == "umrah"


def test_blog_post_counts_views_and_hides_drafts(client, db):
    seed_content(db)

    first = client.get("/blog/persiapan-umrah").json()
    second = client.get("/blog/persiapan-umrah").json()

    assert second["view_count"] == first["view_count"] + 1
    assert second["content"] == "Daftar barang bawaan"
    assert client.get("/blog/draft").status_code == 404


def test_catalog_sort_and_ownership(client, db):
    seed_content(db)
    db.insert(Purchase, {"user_id": "u-user", "product_id": 1, "amount": 350000, "payment_status": "completed"})

    listing = client.get("/products", params={"sortBy": "price_low"}).json()
    assert [p["slug"] for p in listing["items"]] == ["ebook-doa", "kelas-manasik"]
    assert listing["query_string"] == "sortBy=price_low"

    assert client.get("/products/kelas-manasik", headers=bearer("user-token")).json()["owned"] is True
    assert client.get("/products/kelas-manasik").json()["owned"] is False
    assert client.get("/products/missing").status_code == 404


def test_invalid_token_is_rejected(client):
    assert client.get("/auth/me", headers=bearer("expired")).status_code == 401
    assert client.get("/auth/me").status_code == 401


def test_login_creates_profile_on_first_sight(client, db):
    db.delete(Profile, "u-user")

    body = client.post("/auth/login", json={"email": "jamaah@example.com", "password": "rahasia"}).json()

    assert body["access_token"] == "user-token"
    assert body["profile"]["role"] == "user"
    assert body["profile"]["full_name"] == "Jamaah"


def test_me_and_profile_update(client):
    me = client.get("/auth/me", headers=bearer("owner-token")).json()
    assert me["permissions"]["can_manage_content"] is True
    assert me["permissions"]["can_manage_users"] is False

    response = client.patch("/auth/me", json={"phone": "0812"}, headers=bearer("user-token"))
    assert response.json()["profile"]["phone"] == "0812"


def test_admin_requires_content_manager(client):
    assert client.get("/admin/dashboard").status_code == 401
    assert client.get("/admin/dashboard", headers=bearer("user-token")).status_code == 403

    body = client.get("/admin/dashboard", headers=bearer("owner-token")).json()
    assert body["total_users"] == 3


def test_owner_cannot_manage_users(client):
    response = client.post(
        "/admin/users/bulk",
        json={"action": "deactivate", "ids": ["u-user"]},
        headers=bearer("owner-token"),
    )

    assert response.status_code == 403


def test_admin_cannot_touch_own_account(client):
    headers = bearer("admin-token")

    bulk = client.post("/admin/users/bulk", json={"action": "makeUser", "ids": ["u-admin", "u-user"]}, headers=headers)
    role = client.put("/admin/users/u-admin/role", json={"role": "user"}, headers=headers)
    toggle = client.post("/admin/users/u-admin/toggle-status", headers=headers)

    assert bulk.status_code == 403
    assert role.status_code == 403
    assert toggle.status_code == 403


def test_admin_bulk_user_update(client, db):
    response = client.post(
        "/admin/users/bulk",
        json={"action": "deactivate", "ids": ["u-user", "u-owner"]},
        headers=bearer("admin-token"),
    )

    assert response.json() == {"message": "2 users updated"}
    assert db.get(Profile, "u-user").is_active is False


def test_admin_post_lifecycle(client, db):
    headers = bearer("owner-token")

    created = client.post("/admin/posts", json={"title": "Doa Sa'i & Thawaf"}, headers=headers)
    assert created.status_code == 201
    post = created.json()["post"]
    assert post["slug"] == "doa-sai-thawaf"
    assert post["status"] == "draft"

    duplicate = client.post("/admin/posts", json={"title": "Doa Sa'i & Thawaf"}, headers=headers)
    assert duplicate.status_code == 409

    toggled = client.post(f"/admin/posts/{post['id']}/toggle-status", headers=headers).json()
    assert toggled["post"]["status"] == "published"
    assert toggled["post"]["published_at"] is not None

    bulk = client.post("/admin/posts/bulk", json={"action": "unpublish", "ids": [post["id"]]}, headers=headers)
    assert bulk.json() == {"message": "1 posts unpublished"}

    listing = client.get("/admin/posts", params={"status": "draft"}, headers=headers).json()
    assert [p["id"] for p in listing["items"]] == [post["id"]]

    assert client.delete(f"/admin/posts/{post['id']}", headers=headers).status_code == 200
    assert client.delete(f"/admin/posts/{post['id']}", headers=headers).status_code == 404


def test_bulk_requires_selection_and_known_action(client):
    headers = bearer("owner-token")

    empty = client.post("/admin/products/bulk", json={"action": "activate", "ids": []}, headers=headers)
    unknown = client.post("/admin/products/bulk", json={"action": "explode", "ids": [1]}, headers=headers)

    assert empty.status_code == 400
    assert unknown.status_code == 400


def test_admin_product_toggles(client, db):
    seed_content(db)
    headers = bearer("owner-token")

    featured = client.post("/admin/products/2/toggle-featured", headers=headers).json()
    inactive = client.post("/admin/products/1/toggle-active", headers=headers).json()

    assert featured["message"] == "Product featured"
    assert inactive["product"]["is_active"] is False
    assert client.get("/products/kelas-manasik").status_code == 404


def test_analytics_summary(client, db):
    seed_content(db)
    db.insert(
        Purchase,
        {
            "user_id": "u-user",
            "product_id": 1,
            "amount": 350000,
            "payment_status": "completed",
            "created_at": datetime.utcnow(),
        },
    )

    body = client.get("/admin/analytics", params={"range": 7}, headers=bearer("admin-token")).json()

    assert body["status"] == "success"
    assert body["revenue"]["total"] == 350000
    assert body["period"]["days"] == 7
    assert body["top_products"][0]["title"] == "Kelas Manasik"
    assert len(body["monthly_revenue"]) == 12


def test_analytics_rejects_unknown_range(client):
    response = client.get("/admin/analytics", params={"range": 13}, headers=bearer("admin-token"))

    assert response.status_code == 400


def test_analytics_failure_renders_zero_metrics(client, db, monkeypatch):
    def broken(since=None):
        raise RuntimeError("connection lost")

    monkeypatch.setattr(db, "get_completed_purchases", broken)

    body = client.get("/admin/analytics", headers=bearer("admin-token")).json()

    assert body["status"] == "error"
    assert body["error"] == "connection lost"
    assert body["revenue"]["total"] == 0
    assert body["conversion_rate"] == 0
    assert len(body["monthly_revenue"]) == 12


def test_settings_round_trip(client):
    headers = bearer("owner-token")

    saved = client.put(
        "/admin/settings/social_media",
        json={"value": {"instagram": "@muthawwif"}, "is_public": True},
        headers=headers,
    )
    assert saved.status_code == 200
    assert client.put("/admin/settings/secret", json={"value": {}}, headers=headers).status_code == 404

    settings = client.get("/admin/settings", headers=headers).json()
    assert settings["social_media"] == {"instagram": "@muthawwif"}
    assert settings["seo_settings"] == {}


def test_arabic_titles_get_distinct_reachable_slugs(client):
    headers = bearer("owner-token")

    first = client.post("/admin/posts", json={"title": "عمرة رمضان", "status": "published"}, headers=headers)
    second = client.post("/admin/posts", json={"title": "الحج"}, headers=headers)

    assert first.status_code == 201
    assert second.status_code == 201
    first_slug = first.json()["post"]["slug"]
    second_slug = second.json()["post"]["slug"]
    assert first_slug.startswith("post-")
    assert second_slug.startswith("post-")
    assert first_slug != second_slug
    assert client.get(f"/blog/{first_slug}").json()["title"] == "عمرة رمضان"


def test_created_post_carries_its_author(client):
    created = client.post("/admin/posts", json={"title": "Miqat Umrah"}, headers=bearer("owner-token")).json()

    assert created["post"]["author"]["id"] == "u-owner"


def test_bulk_publish_stamps_published_at(client, db):
    seed_content(db)
    draft = db.get(Post, 2)
    published = db.get(Post, 1)
    assert draft.published_at is None

    response = client.post("/admin/posts/bulk", json={"action": "publish", "ids": [1, 2]}, headers=bearer("owner-token"))

    assert response.json() == {"message": "2 posts published"}
    assert db.get(Post, 2).published_at is not None
    assert db.get(Post, 1).published_at == published.published_at
    assert client.get("/blog/draft").status_code == 200


def test_admin_category_management(client, db):
    seed_content(db)
    headers = bearer("owner-token")

    created = client.post("/admin/categories", json={"name": "Ziarah Madinah", "color": "green"}, headers=headers)
    assert created.status_code == 201
    category = created.json()["category"]
    assert category["slug"] == "ziarah-madinah"

    updated = client.put(
        f"/admin/categories/{category['id']}",
        json={"name": "Ziarah Madinah", "is_active": False},
        headers=headers,
    ).json()
    assert updated["category"]["is_active"] is False

    listing = client.get("/admin/categories", headers=headers).json()
    assert [c["slug"] for c in listing["data"]] == ["umrah", "ziarah-madinah"]
    assert [c["slug"] for c in client.get("/blog").json()["categories"]] == ["umrah"]

    assert client.put("/admin/categories/99", json={"name": "Haji"}, headers=headers).status_code == 404
    assert client.get("/admin/categories", headers=bearer("user-token")).status_code == 403


def test_purchase_is_pending_until_confirmed(client, db):
    seed_content(db)

    started = client.post("/products/kelas-manasik/purchase", headers=bearer("user-token"))
    assert started.status_code == 201
    purchase = started.json()["purchase"]
    assert purchase["payment_status"] == "pending"
    assert purchase["amount"] == 350000
    assert client.get("/admin/dashboard", headers=bearer("admin-token")).json()["total_revenue"] == 0

    headers = bearer("owner-token")
    confirmed = client.put(
        f"/admin/purchases/{purchase['id']}/status", json={"payment_status": "completed"}, headers=headers
    )
    assert confirmed.json()["purchase"]["payment_status"] == "completed"
    assert db.get(Product, 1).sold_count == 1
    assert client.get("/admin/dashboard", headers=bearer("admin-token")).json()["total_revenue"] == 350000
    assert client.get("/products/kelas-manasik", headers=bearer("user-token")).json()["owned"] is True

    again = client.post("/products/kelas-manasik/purchase", headers=bearer("user-token"))
    assert again.status_code == 400


def test_purchase_status_rules(client, db):
    seed_content(db)
    headers = bearer("owner-token")

    assert client.post("/products/ebook-doa/purchase").status_code == 401
    assert client.post("/products/missing/purchase", headers=bearer("user-token")).status_code == 404

    purchase = client.post("/products/ebook-doa/purchase", headers=bearer("user-token")).json()["purchase"]
    unknown = client.put(f"/admin/purchases/{purchase['id']}/status", json={"payment_status": "lunas"}, headers=headers)
    missing = client.put("/admin/purchases/99/status", json={"payment_status": "failed"}, headers=headers)

    assert unknown.status_code == 400
    assert missing.status_code == 404
