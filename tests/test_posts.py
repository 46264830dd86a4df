from datetime import datetime

from onair.db.models.posts import Post

from factories import make_post


def _create(client, headers, **fields):
    body = {"title": "Nouvelle Grille", "content": "Dès lundi..."}
    body.update(fields)
    return client.post("/api/v1/posts", json=body, headers=headers)


def test_create_generates_slug_and_author(client, admin, admin_headers):
    r = _create(client, admin_headers)
    assert r.status_code == 201
    body = r.json()
    assert body["slug"] == "nouvelle-grille"
    assert body["author_id"] == admin.id
    assert body["status"] == "draft"
    assert body["published_at"] is None


def test_create_is_admin_only(client, artist_headers):
    assert _create(client, artist_headers).status_code == 403


def test_title_without_letters_is_400(client, admin_headers):
    assert _create(client, admin_headers, title="!!!").status_code == 400


def test_duplicate_titles_get_suffixed_slugs(client, admin_headers):
    first = _create(client, admin_headers).json()
    second = _create(client, admin_headers).json()
    assert first["slug"] == "nouvelle-grille"
    assert second["slug"] == "nouvelle-grille-2"


def test_create_published_sets_published_at(client, admin_headers):
    body = _create(client, admin_headers, status="published").json()
    assert body["published_at"] is not None


def test_update_regenerates_slug_and_publishes_once(client, session, admin_headers):
    post_id = _create(client, admin_headers).json()["id"]

    r = client.put(f"/api/v1/posts/{post_id}", json={"title": "Grille d'Été", "status": "published"}, headers=admin_headers)
    body = r.json()
    assert body["slug"] == "grille-d-ete"
    first_published = body["published_at"]
    assert first_published is not None

    client.put(f"/api/v1/posts/{post_id}", json={"status": "archived"}, headers=admin_headers)
    r = client.put(f"/api/v1/posts/{post_id}", json={"status": "published"}, headers=admin_headers)
    assert r.json()["published_at"] == first_published


def test_update_same_title_keeps_slug(client, admin_headers):
    post_id = _create(client, admin_headers).json()["id"]
    r = client.put(f"/api/v1/posts/{post_id}", json={"title": "Nouvelle Grille", "content": "x"}, headers=admin_headers)
    assert r.json()["slug"] == "nouvelle-grille"


def test_public_listing_is_paginated_and_published_only(client, session, admin):
    for i in range(5):
        make_post(
            session,
            author=admin,
            title=f"News {i}",
            status="published",
            published_at=datetime(2024, 1, i + 1),
        )
    make_post(session, author=admin, title="Draft")

    r = client.get("/api/v1/posts", params={"page": 2, "limit": 2})

    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 5
    assert body["pages"] == 3
    assert body["page"] == 2
    assert [p["title"] for p in body["items"]] == ["News 2", "News 1"]


def test_public_listing_filters_category(client, session, admin):
    make_post(session, author=admin, title="Gig", status="published", category="event")
    make_post(session, author=admin, title="Info", status="published")

    body = client.get("/api/v1/posts", params={"category": "event"}).json()
    assert [p["title"] for p in body["items"]] == ["Gig"]


def test_featured_is_capped_at_five(client, session, admin):
    for i in range(7):
        make_post(session, author=admin, title=f"Star {i}", status="published", featured=True)
    make_post(session, author=admin, title="Hidden", status="draft", featured=True)

    r = client.get("/api/v1/posts/featured")
    assert len(r.json()) == 5
    assert "Hidden" not in [p["title"] for p in r.json()]


def test_slug_lookup_hides_drafts(client, session, admin):
    make_post(session, author=admin, title="Live", status="published")
    make_post(session, author=admin, title="Secret")

    assert client.get("/api/v1/posts/slug/live").status_code == 200
    assert client.get("/api/v1/posts/slug/secret").status_code == 404


def test_admin_lists_everything(client, session, admin, admin_headers, artist_headers):
    make_post(session, author=admin, title="A", status="published")
    make_post(session, author=admin, title="B")

    r = client.get("/api/v1/posts/admin/all", headers=admin_headers)
    assert {p["title"] for p in r.json()} == {"A", "B"}

    r = client.get("/api/v1/posts/admin/all", params={"status": "draft"}, headers=admin_headers)
    assert [p["title"] for p in r.json()] == ["B"]

    assert client.get("/api/v1/posts/admin/all", headers=artist_headers).status_code == 403


def test_delete_removes_image(client, session, admin, admin_headers, store):
    post = make_post(session, author=admin)
    key = f"posts/{post.id}_1.jpg"
    client.post(
        f"/api/v1/upload/confirm/post/{post.id}",
        json={"key": key, "fileUrl": f"https://cdn.test/{key}", "slot": "image"},
        headers=admin_headers,
    )

    post_id = post.id
    assert client.delete(f"/api/v1/posts/{post_id}", headers=admin_headers).status_code == 204
    session.expire_all()
    assert session.get(Post, post_id) is None
    assert store.deleted == [key]
    assert client.get(f"/api/v1/posts/{post_id}", headers=admin_headers).status_code == 404
