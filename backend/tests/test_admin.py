import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from forum.models.auth import AccountLockout, SecurityEvent
from forum.models.post import Post
from forum.models.user import User
from support import TEST_PASSWORD, auth_headers, build_test_client, create_post, set_role, signup


def _admin(harness, email: str = "admin@example.com", role: str = "admin") -> dict:
    data = signup(harness, email, name=role.title())
    set_role(harness, data["user"]["id"], role)
    return data


def test_admin_routes_require_admin_role():
    harness = build_test_client()
    member = signup(harness, "member@example.com")

    anonymous = harness.client.get("/api/v1/admin/users")
    assert anonymous.status_code == 401

    forbidden = harness.client.get("/api/v1/admin/users", headers=auth_headers(member["token"]))
    assert forbidden.status_code == 403
    assert forbidden.json() == {"error": "Forbidden: admin access required"}

    admin = _admin(harness)
    allowed = harness.client.get("/api/v1/admin/users", headers=auth_headers(admin["token"]))
    assert allowed.status_code == 200
    assert {user["email"] for user in allowed.json()} == {"member@example.com", "admin@example.com"}


def test_super_admin_only_routes():
    harness = build_test_client()
    admin = _admin(harness)
    member = signup(harness, "promotee@example.com")

    denied = harness.client.post(
        f"/api/v1/admin/users/{member['user']['id']}/promote",
        json={"role": "admin"},
        headers=auth_headers(admin["token"]),
    )
    assert denied.status_code == 403
    assert denied.json() == {"error": "Forbidden: super admin access required"}

    root = _admin(harness, "root@example.com", role="super_admin")
    promoted = harness.client.post(
        f"/api/v1/admin/users/{member['user']['id']}/promote",
        json={"role": "admin"},
        headers=auth_headers(root["token"]),
    )
    assert promoted.status_code == 200

    login = harness.client.post(
        "/api/v1/auth/login", json={"email": "promotee@example.com", "password": TEST_PASSWORD}
    ).json()
    assert login["roles"] == ["admin"]
    assert "admin" in login["permissions"]
    assert login["user"]["is_admin"] is True

    invalid = harness.client.post(
        f"/api/v1/admin/users/{member['user']['id']}/promote",
        json={"role": "overlord"},
        headers=auth_headers(root["token"]),
    )
    assert invalid.status_code == 400
    assert invalid.json() == {"error": "Invalid role. Must be user, admin, or super_admin"}

    self_promote = harness.client.post(
        f"/api/v1/admin/users/{root['user']['id']}/promote",
        headers=auth_headers(root["token"]),
    )
    assert self_promote.status_code == 400
    assert self_promote.json() == {"error": "Cannot promote yourself"}


def test_super_admin_creates_admin_account():
    harness = build_test_client()
    root = _admin(harness, "root@example.com", role="super_admin")

    created = harness.client.post(
        "/api/v1/admin/create",
        json={"name": "Mod", "email": "mod@example.com", "password": TEST_PASSWORD},
        headers=auth_headers(root["token"]),
    )
    assert created.status_code == 201
    assert created.json()["role"] == "admin"
    assert created.json()["is_admin"] is True

    duplicate = harness.client.post(
        "/api/v1/admin/create",
        json={"name": "Mod", "email": "mod@example.com", "password": TEST_PASSWORD},
        headers=auth_headers(root["token"]),
    )
    assert duplicate.status_code == 409

    incomplete = harness.client.post(
        "/api/v1/admin/create", json={"email": "x@example.com"}, headers=auth_headers(root["token"])
    )
    assert incomplete.status_code == 400
    assert incomplete.json() == {"error": "Name, email, and password are required"}


def test_ban_blocks_access_and_unban_clears_lockout():
    harness = build_test_client()
    admin = _admin(harness)
    member = signup(harness, "banned@example.com")
    member_id = member["user"]["id"]

    for _ in range(5):
        harness.client.post("/api/v1/auth/login", json={"email": "banned@example.com", "password": "nope-nope"})

    banned = harness.client.post(f"/api/v1/admin/users/{member_id}/ban", headers=auth_headers(admin["token"]))
    assert banned.status_code == 200
    assert harness.client.get("/api/v1/auth/verify", headers=auth_headers(member["token"])).status_code == 403

    self_ban = harness.client.post(
        f"/api/v1/admin/users/{admin['user']['id']}/ban", headers=auth_headers(admin["token"])
    )
    assert self_ban.json() == {"error": "Cannot ban yourself"}

    unbanned = harness.client.post(f"/api/v1/admin/users/{member_id}/unban", headers=auth_headers(admin["token"]))
    assert unbanned.status_code == 200

    login = harness.client.post("/api/v1/auth/login", json={"email": "banned@example.com", "password": TEST_PASSWORD})
    assert login.status_code == 200

    db = harness.session_factory()
    try:
        assert db.query(AccountLockout).count() == 0
        events = {event.event_type for event in db.query(SecurityEvent).all()}
        assert {"user_banned", "user_unbanned"} <= events
    finally:
        db.close()


def test_update_verify_and_delete_user():
    harness = build_test_client()
    admin = _admin(harness)
    root = _admin(harness, "root@example.com", role="super_admin")
    member = signup(harness, "target@example.com")
    member_id = member["user"]["id"]
    create_post(harness, member["token"])

    updated = harness.client.put(
        f"/api/v1/admin/users/{member_id}",
        json={"is_active": False},
        headers=auth_headers(admin["token"]),
    )
    assert updated.json()["is_active"] is False

    verified = harness.client.post(f"/api/v1/admin/users/{member_id}/verify", headers=auth_headers(admin["token"]))
    assert verified.status_code == 200

    not_super = harness.client.delete(f"/api/v1/admin/users/{member_id}", headers=auth_headers(admin["token"]))
    assert not_super.status_code == 403

    deleted = harness.client.delete(f"/api/v1/admin/users/{member_id}", headers=auth_headers(root["token"]))
    assert deleted.status_code == 200
    assert harness.identity.deleted == [member_id]

    db = harness.session_factory()
    try:
        assert db.query(User).filter(User.id == member_id).first() is None
        assert db.query(Post).count() == 0
    finally:
        db.close()


def test_moderate_and_delete_any_post():
    harness = build_test_client()
    admin = _admin(harness)
    author = signup(harness, "writer@example.com")
    post = create_post(harness, author["token"])

    pinned = harness.client.put(
        f"/api/v1/admin/posts/{post['id']}",
        json={"is_pinned": True, "is_hot": True},
        headers=auth_headers(admin["token"]),
    )
    assert pinned.json()["is_pinned"] is True
    assert pinned.json()["is_hot"] is True

    listed = harness.client.get("/api/v1/admin/posts", headers=auth_headers(admin["token"]))
    assert [item["id"] for item in listed.json()] == [post["id"]]

    removed = harness.client.delete(f"/api/v1/admin/posts/{post['id']}", headers=auth_headers(admin["token"]))
    assert removed.status_code == 200
    assert harness.client.get(f"/api/v1/posts/{post['id']}").status_code == 404
    assert harness.client.get(f"/api/v1/users/{author['user']['id']}").json()["posts_count"] == 0


def test_report_lifecycle():
    harness = build_test_client()
    admin = _admin(harness)
    reporter = signup(harness, "reporter@example.com", name="Reporter")
    author = signup(harness, "reported@example.com")
    post = create_post(harness, author["token"])
    headers = auth_headers(reporter["token"])

    no_reason = harness.client.post("/api/v1/admin/reports", json={"post_id": post["id"]}, headers=headers)
    assert no_reason.json() == {"error": "Reason is required"}
    no_target = harness.client.post("/api/v1/admin/reports", json={"reason": "spam"}, headers=headers)
    assert no_target.json() == {"error": "Post or comment ID is required"}
    missing = harness.client.post(
        "/api/v1/admin/reports", json={"reason": "spam", "post_id": "missing"}, headers=headers
    )
    assert missing.status_code == 404

    created = harness.client.post(
        "/api/v1/admin/reports", json={"reason": "spam", "post_id": post["id"]}, headers=headers
    )
    assert created.status_code == 201
    report = created.json()
    assert report["status"] == "pending"
    assert report["reporter"]["name"] == "Reporter"

    assert harness.client.get("/api/v1/admin/reports", headers=headers).status_code == 403

    pending = harness.client.get(
        "/api/v1/admin/reports", params={"status": "pending"}, headers=auth_headers(admin["token"])
    )
    assert [item["id"] for item in pending.json()] == [report["id"]]

    reviewed = harness.client.put(
        f"/api/v1/admin/reports/{report['id']}",
        json={"status": "reviewed"},
        headers=auth_headers(admin["token"]),
    )
    assert reviewed.json()["reviewed_by"] == admin["user"]["id"]

    bad_resolution = harness.client.post(
        f"/api/v1/admin/reports/{report['id']}/resolve",
        json={"status": "reviewed"},
        headers=auth_headers(admin["token"]),
    )
    assert bad_resolution.json() == {"error": "Status must be 'resolved' or 'rejected'"}

    resolved = harness.client.post(
        f"/api/v1/admin/reports/{report['id']}/resolve",
        json={"status": "resolved"},
        headers=auth_headers(admin["token"]),
    )
    assert resolved.status_code == 200
    body = resolved.json()
    assert body["message"] == "Report resolved successfully"
    assert body["report"]["status"] == "resolved"
    assert body["report"]["resolved_by"] == admin["user"]["id"]

    assert harness.client.get(
        "/api/v1/admin/reports", params={"status": "pending"}, headers=auth_headers(admin["token"])
    ).json() == []


def test_stats_counts():
    harness = build_test_client()
    admin = _admin(harness)
    member = signup(harness, "stats@example.com")
    post = create_post(harness, member["token"])
    harness.client.post(f"/api/v1/posts/{post['id']}/like", headers=auth_headers(member["token"]))
    harness.client.post(
        f"/api/v1/posts/{post['id']}/comments", json={"content": "hi"}, headers=auth_headers(admin["token"])
    )
    harness.client.post(f"/api/v1/admin/users/{member['user']['id']}/ban", headers=auth_headers(admin["token"]))

    response = harness.client.get("/api/v1/admin/stats", headers=auth_headers(admin["token"]))
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_users"] == 2
    assert stats["active_users"] == 1
    assert stats["total_admins"] == 1
    assert stats["total_posts"] == 1
    assert stats["total_comments"] == 1
    assert stats["total_likes"] == 1
    assert stats["new_users_today"] == 2
    assert stats["new_posts_today"] == 1
