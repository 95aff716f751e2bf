import pytest


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_tokens):
    return auth_header(admin_tokens["access_token"])


@pytest.fixture
def john(register):
    body = register().get_json()
    return body["data"], body["tokens"]


def test_list_users_paginates(client, admin_headers, make_user):
    for i in range(3):
        make_user(email=f"user{i}@example.com")

    resp = client.get("/api/v1/users?page=2&limit=2", headers=admin_headers)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["meta"] == {"page": 2, "limit": 2, "total": 4, "total_pages": 2}
    assert [u["email"] for u in body["data"]] == ["user1@example.com", "user2@example.com"]


def test_list_users_sorted_desc(client, admin_headers, make_user):
    make_user(email="zed@example.com")

    resp = client.get("/api/v1/users?sort=-email", headers=admin_headers)

    emails = [u["email"] for u in resp.get_json()["data"]]
    assert emails == ["zed@example.com", "admin@example.com"]


def test_list_users_rejects_unknown_sort(client, admin_headers):
    resp = client.get("/api/v1/users?sort=password_hash", headers=admin_headers)
    assert resp.status_code == 400


def test_list_users_rejects_non_integer_page(client, admin_headers):
    resp = client.get("/api/v1/users?page=two", headers=admin_headers)
    assert resp.status_code == 400


def test_list_users_requires_admin(client, john):
    _, tokens = john
    resp = client.get("/api/v1/users", headers=auth_header(tokens["access_token"]))
    assert resp.status_code == 403


def test_list_users_requires_auth(client):
    assert client.get("/api/v1/users").status_code == 401


def test_get_user(client, admin_headers, john):
    user, _ = john

    resp = client.get(f"/api/v1/users/{user['id']}", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.get_json()["data"]["email"] == "john.doe@example.com"


def test_get_missing_user(client, admin_headers):
    resp = client.get("/api/v1/users/does-not-exist", headers=admin_headers)

    assert resp.status_code == 404
    assert resp.get_json()["message"] == "User not found"


def test_set_roles(client, admin_headers, john):
    user, tokens = john

    resp = client.put(
        f"/api/v1/users/{user['id']}/roles",
        json={"roles": ["admin", "user", "admin"]},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.get_json()["data"]["roles"] == ["admin", "user"]
    # the promoted user can now reach admin routes with the same token
    promoted = client.get("/api/v1/users", headers=auth_header(tokens["access_token"]))
    assert promoted.status_code == 200


def test_set_roles_rejects_unknown_role(client, admin_headers, john):
    user, _ = john

    resp = client.put(f"/api/v1/users/{user['id']}/roles", json={"roles": ["superuser"]}, headers=admin_headers)

    assert resp.status_code == 422


def test_set_roles_requires_at_least_one(client, admin_headers, john):
    user, _ = john

    resp = client.put(f"/api/v1/users/{user['id']}/roles", json={"roles": []}, headers=admin_headers)

    assert resp.status_code == 422
    assert resp.get_json()["error"] == "VALIDATION_ERROR"


def test_set_roles_missing_user(client, admin_headers):
    resp = client.put("/api/v1/users/does-not-exist/roles", json={"roles": ["user"]}, headers=admin_headers)
    assert resp.status_code == 404
