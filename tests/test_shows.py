from onair.db.models.assets import Asset
from onair.db.models.episodes import Episode
from onair.db.models.shows import Show
from sqlmodel import select

from factories import make_episode, make_show


def _request(client, headers, title="Deep Sessions"):
    return client.post(
        "/api/v1/shows/artist/request",
        json={"title": title, "description": "Deep house every week", "genres": ["house"]},
        headers=headers,
    )


# -----------------------------
# Demande artiste
# -----------------------------
def test_artist_request_creates_pending_show_and_notifies_admin(client, artist_headers, outbox):
    r = _request(client, artist_headers)

    assert r.status_code == 201
    body = r.json()
    assert body["slug"] == "deep-sessions"
    assert body["request_status"] == "pending"
    assert body["status"] == "inactive"
    assert body["featured"] is False
    assert body["artist_name"] == "DJ Nina"
    assert [m.to for m in outbox.outbox] == ["admin-inbox@onair.test"]


def test_request_ignores_status_fields_from_artist(client, artist_headers):
    r = client.post(
        "/api/v1/shows/artist/request",
        json={"title": "Sneaky", "description": "x", "status": "active", "featured": True},
        headers=artist_headers,
    )
    assert r.status_code == 201
    assert r.json()["status"] == "inactive"
    assert r.json()["featured"] is False


def test_admin_cannot_use_artist_request(client, admin_headers):
    assert _request(client, admin_headers).status_code == 403


def test_duplicate_title_is_409(client, artist_headers, show):
    assert _request(client, artist_headers, title=show.title).status_code == 409


def test_artist_lists_only_own_shows(client, session, artist, other_artist, artist_headers):
    make_show(session, owner=artist, title="Mine")
    make_show(session, owner=other_artist, title="Theirs")

    r = client.get("/api/v1/shows", headers=artist_headers)
    assert [s["title"] for s in r.json()] == ["Mine"]

    r = client.get("/api/v1/shows/artist/my-shows", headers=artist_headers)
    assert [s["title"] for s in r.json()] == ["Mine"]


def test_approved_list_excludes_pending_and_inactive(client, session, artist, artist_headers):
    make_show(session, owner=artist, title="Zeta")
    make_show(session, owner=artist, title="Alpha")
    make_show(session, owner=artist, title="Waiting", request_status="pending", status="inactive")
    make_show(session, owner=artist, title="Paused", status="inactive")

    r = client.get("/api/v1/shows/artist/approved", headers=artist_headers)
    assert [s["title"] for s in r.json()] == ["Alpha", "Zeta"]


def test_get_show_of_other_artist_is_403(client, show, other_headers):
    assert client.get(f"/api/v1/shows/{show.id}", headers=other_headers).status_code == 403


def test_public_slug_lookup(client, show):
    r = client.get(f"/api/v1/shows/slug/{show.slug}")
    assert r.status_code == 200
    assert r.json()["id"] == show.id
    assert client.get("/api/v1/shows/slug/nope").status_code == 404


# -----------------------------
# Approbation
# -----------------------------
def test_approval_scenario(client, artist_headers, admin_headers, outbox):
    show_id = _request(client, artist_headers).json()["id"]
    outbox.outbox.clear()
    episode = {"show_id": show_id, "title": "First", "air_date": "2024-06-01T20:00:00"}

    r = client.post("/api/v1/episodes", json=episode, headers=artist_headers)
    assert r.status_code == 403
    assert "must be approved" in r.json()["detail"]

    pending = client.get("/api/v1/shows/admin/requests", headers=admin_headers).json()
    assert [s["id"] for s in pending] == [show_id]

    r = client.put(f"/api/v1/shows/admin/{show_id}/approve", json={"adminNotes": "Welcome!"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["request_status"] == "approved"
    assert r.json()["status"] == "active"
    assert r.json()["admin_notes"] == "Welcome!"
    assert [m.to for m in outbox.outbox] == ["nina@onair.test"]

    # l'artiste peut maintenant créer des épisodes
    r = client.post("/api/v1/episodes", json=episode, headers=artist_headers)
    assert r.status_code == 201

    # plus en attente : une nouvelle transition est refusée
    again = client.put(f"/api/v1/shows/admin/{show_id}/approve", headers=admin_headers)
    assert again.status_code == 409


def test_approve_without_body(client, session, artist, admin_headers):
    show = make_show(session, owner=artist, request_status="pending", status="inactive")
    r = client.put(f"/api/v1/shows/admin/{show.id}/approve", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["admin_notes"] is None


def test_reject_requires_notes(client, session, artist, admin_headers, outbox):
    show = make_show(session, owner=artist, request_status="pending", status="inactive")

    for body in ({}, {"adminNotes": "   "}):
        r = client.put(f"/api/v1/shows/admin/{show.id}/reject", json=body, headers=admin_headers)
        assert r.status_code == 400

    session.refresh(show)
    assert show.request_status == "pending"
    assert outbox.outbox == []


def test_reject_sets_status_and_notifies(client, session, artist, admin_headers, outbox):
    show = make_show(session, owner=artist, request_status="pending", status="inactive")

    r = client.put(
        f"/api/v1/shows/admin/{show.id}/reject",
        json={"adminNotes": "Not a fit for the schedule"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["request_status"] == "rejected"
    assert r.json()["admin_notes"] == "Not a fit for the schedule"
    assert len(outbox.outbox) == 1
    assert "Not a fit for the schedule" in outbox.outbox[0].html


def test_approval_endpoints_are_admin_only(client, session, artist, artist_headers):
    show = make_show(session, owner=artist, request_status="pending", status="inactive")
    assert client.put(f"/api/v1/shows/admin/{show.id}/approve", headers=artist_headers).status_code == 403
    assert client.get("/api/v1/shows/admin/requests", headers=artist_headers).status_code == 403


def test_notification_failure_does_not_fail_approval(client, session, artist, admin_headers, outbox, monkeypatch):
    from onair.core.errors import NotificationError

    def boom(email):
        raise NotificationError("smtp down")

    monkeypatch.setattr(outbox, "send", boom)
    show = make_show(session, owner=artist, request_status="pending", status="inactive")

    r = client.put(f"/api/v1/shows/admin/{show.id}/approve", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["request_status"] == "approved"


# -----------------------------
# CRUD admin
# -----------------------------
def test_admin_create_update_and_slug_conflict(client, admin_headers, show):
    r = client.post(
        "/api/v1/shows",
        json={"title": "Matinale Jazz", "artist_name": "Crew", "genres": ["jazz"]},
        headers=admin_headers,
    )
    assert r.status_code == 201
    created = r.json()
    assert created["slug"] == "matinale-jazz"
    assert created["request_status"] == "approved"

    r = client.put(f"/api/v1/shows/{created['id']}", json={"title": "Matinale Jazz & Soul"}, headers=admin_headers)
    assert r.json()["title"] == "Matinale Jazz & Soul"
    assert r.json()["slug"] == "matinale-jazz"

    r = client.put(f"/api/v1/shows/{created['id']}", json={"slug": show.slug}, headers=admin_headers)
    assert r.status_code == 409


def test_artist_cannot_create_show_directly(client, artist_headers):
    r = client.post("/api/v1/shows", json={"title": "X", "artist_name": "Y"}, headers=artist_headers)
    assert r.status_code == 403


def test_delete_show_cascades_episodes_and_assets(client, session, show, admin_headers, artist_headers, store):
    episode = make_episode(session, show=show)
    key = f"episodes/{episode.id}_1.mp3"
    client.post(
        f"/api/v1/upload/confirm/episode/{episode.id}",
        json={"key": key, "fileUrl": f"https://cdn.test/{key}", "slot": "audio"},
        headers=artist_headers,
    )

    show_id = show.id
    r = client.delete(f"/api/v1/shows/{show_id}", headers=admin_headers)

    assert r.status_code == 204
    session.expire_all()
    assert session.get(Show, show_id) is None
    assert session.exec(select(Episode)).all() == []
    assert session.exec(select(Asset)).all() == []
    assert store.deleted == [key]
