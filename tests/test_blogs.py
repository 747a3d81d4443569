from datetime import datetime, timezone

from bson import ObjectId

from config import DEFAULT_BLOG_PHOTO
from tests.conftest import auth, create_blog


def test_create_blog_sets_author_and_defaults(client, db, alice):
    user, token = alice
    blog = create_blog(client, token, title="My First Post!", tags=["python"])
    assert blog["author"] == user["id"]
    assert blog["slug"] == "my-first-post"
    assert blog["photo"] == DEFAULT_BLOG_PHOTO
    assert blog["views"] == 0
    assert blog["likes"] == []
    assert blog["featured"] is False

    stored_user = db["user"].find_one({"_id": ObjectId(user["id"])})
    assert stored_user["blogs"] == [blog["id"]]


def test_create_blog_requires_token(client):
    resp = client.post("/blogs", json={"title": "t", "description": "d"})
    assert resp.status_code == 401


def test_create_blog_ignores_unlisted_fields(client, alice, bob):
    bob_user, _ = bob
    _, token = alice
    blog = create_blog(client, token, author=bob_user["id"], views=99, likes=["x", "x"])
    assert blog["author"] != bob_user["id"]
    assert blog["views"] == 0
    assert blog["likes"] == []


def test_list_embeds_sanitized_author(client, db, alice):
    _, token = alice
    older = create_blog(client, token, title="Older")
    create_blog(client, token, title="Newer")
    db["blogpost"].update_one(
        {"_id": ObjectId(older["id"])},
        {"$set": {"created_at": datetime(2020, 1, 1, tzinfo=timezone.utc)}},
    )

    blogs = client.get("/blogs").json()["blogs"]
    assert [b["title"] for b in blogs] == ["Newer", "Older"]
    assert blogs[0]["author"]["name"] == "Alice"
    assert "password_hash" not in blogs[0]["author"]


def test_get_blog_increments_views(client, alice):
    _, token = alice
    blog = create_blog(client, token)
    for expected in range(1, 6):
        resp = client.get(f"/blogs/{blog['id']}")
        assert resp.status_code == 200
        assert resp.json()["blog"]["views"] == expected


def test_get_missing_blog(client):
    assert client.get(f"/blogs/{ObjectId()}").status_code == 404
    resp = client.get("/blogs/not-an-id")
    assert resp.status_code == 404
    assert resp.json()["message"] == "Blog not found"


def test_featured_capped_at_three(client, alice):
    _, token = alice
    for i in range(5):
        create_blog(client, token, title=f"Featured {i}", featured=True)
    create_blog(client, token, title="Plain")

    blogs = client.get("/blogs/featured").json()["blogs"]
    assert len(blogs) == 3
    assert all(b["featured"] for b in blogs)


def test_blogs_by_tag(client, alice):
    _, token = alice
    create_blog(client, token, title="A", tags=["python", "web"])
    create_blog(client, token, title="B", tags=["rust"])

    blogs = client.get("/blogs/tag/python").json()["blogs"]
    assert [b["title"] for b in blogs] == ["A"]


def test_related_blogs_intersect_tags(client, alice):
    _, token = alice
    create_blog(client, token, title="A", tags=["python"])
    create_blog(client, token, title="B", tags=["rust"])
    create_blog(client, token, title="C", tags=["go"])

    blogs = client.get("/blogs/related", params=[("tags", "python"), ("tags", "rust")]).json()["blogs"]
    assert {b["title"] for b in blogs} == {"A", "B"}


def test_search_is_case_insensitive_substring(client, alice):
    _, token = alice
    create_blog(client, token, title="Introduction to X")
    create_blog(client, token, title="AN INTRODUCTION")
    create_blog(client, token, title="Outro")
    create_blog(client, token, title="Int. roads")

    blogs = client.get("/blogs/search", params={"query": "intro"}).json()["blogs"]
    assert {b["title"] for b in blogs} == {"Introduction to X", "AN INTRODUCTION"}


def test_search_treats_query_literally(client, alice):
    _, token = alice
    create_blog(client, token, title="C++ tips")
    create_blog(client, token, title="Cats")

    blogs = client.get("/blogs/search", params={"query": "c++"}).json()["blogs"]
    assert [b["title"] for b in blogs] == ["C++ tips"]


def test_search_requires_query(client):
    assert client.get("/blogs/search").status_code == 400


def test_like_toggle(client, alice, bob):
    _, alice_token = alice
    bob_user, bob_token = bob
    blog = create_blog(client, alice_token)

    first = client.patch(f"/blogs/like/{blog['id']}", headers=auth(bob_token))
    assert first.status_code == 200
    assert first.json()["blog"]["likes"] == [bob_user["id"]]

    second = client.patch(f"/blogs/like/{blog['id']}", headers=auth(bob_token))
    assert second.json()["blog"]["likes"] == []


def test_likes_never_duplicate(client, db, alice, bob):
    alice_user, alice_token = alice
    bob_user, bob_token = bob
    blog = create_blog(client, alice_token)

    client.patch(f"/blogs/like/{blog['id']}", headers=auth(alice_token))
    client.patch(f"/blogs/like/{blog['id']}", headers=auth(bob_token))
    stored = db["blogpost"].find_one({"_id": ObjectId(blog["id"])})
    assert sorted(stored["likes"]) == sorted([alice_user["id"], bob_user["id"]])


def test_like_requires_auth_and_existing_blog(client, alice):
    _, token = alice
    blog = create_blog(client, token)
    assert client.patch(f"/blogs/like/{blog['id']}").status_code == 401
    assert client.patch(f"/blogs/like/{ObjectId()}", headers=auth(token)).status_code == 404
    assert client.patch("/blogs/like/bogus", headers=auth(token)).status_code == 404


def test_update_by_owner_keeps_other_fields(client, alice):
    _, token = alice
    blog = create_blog(client, token, tags=["a"])
    resp = client.put(f"/blogs/{blog['id']}", json={"title": "Renamed"}, headers=auth(token))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["title"] == "Renamed"
    assert data["description"] == blog["description"]
    assert data["tags"] == ["a"]
    assert data["author"] == blog["author"]


def test_update_by_stranger_refused(client, db, alice, bob):
    _, alice_token = alice
    _, bob_token = bob
    blog = create_blog(client, alice_token)
    resp = client.put(f"/blogs/{blog['id']}", json={"title": "Hijacked"}, headers=auth(bob_token))
    assert resp.status_code == 401
    assert db["blogpost"].find_one({"_id": ObjectId(blog["id"])})["title"] == blog["title"]


def test_update_by_admin_allowed(client, alice, admin):
    _, alice_token = alice
    _, admin_token = admin
    blog = create_blog(client, alice_token)
    resp = client.put(f"/blogs/{blog['id']}", json={"featured": True}, headers=auth(admin_token))
    assert resp.status_code == 200
    assert resp.json()["data"]["featured"] is True


def test_update_missing_blog(client, alice):
    _, token = alice
    resp = client.put(f"/blogs/{ObjectId()}", json={"title": "x"}, headers=auth(token))
    assert resp.status_code == 404


def test_delete_permissions(client, db, alice, bob, admin):
    alice_user, alice_token = alice
    _, bob_token = bob
    _, admin_token = admin
    mine = create_blog(client, alice_token, title="Mine")
    other = create_blog(client, alice_token, title="Other")

    assert client.delete(f"/blogs/{mine['id']}", headers=auth(bob_token)).status_code == 401
    assert client.delete(f"/blogs/{mine['id']}", headers=auth(alice_token)).status_code == 200
    assert client.delete(f"/blogs/{other['id']}", headers=auth(admin_token)).status_code == 200

    assert db["blogpost"].count_documents({}) == 0
    assert db["user"].find_one({"_id": ObjectId(alice_user["id"])})["blogs"] == []


def test_update_ignores_explicit_nulls(client, db, alice):
    _, token = alice
    blog = create_blog(client, token, tags=["a"], featured=True)
    resp = client.put(
        f"/blogs/{blog['id']}",
        json={"title": None, "description": None, "tags": None, "featured": None, "photo": "p.png"},
        headers=auth(token),
    )
    assert resp.status_code == 200

    stored = db["blogpost"].find_one({"_id": ObjectId(blog["id"])})
    assert stored["title"] == blog["title"]
    assert stored["description"] == blog["description"]
    assert stored["tags"] == ["a"]
    assert stored["featured"] is True
    assert stored["photo"] == "p.png"
