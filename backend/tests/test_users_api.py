# 사용자 API 테스트 (TestClient + 인메모리 저장소)
from http import HTTPStatus
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure

API = "/api/v1/users"


def _create(client, name, email, **extra):
    response = client.post(API, json={"name": name, "email": email, **extra})
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_create_returns_basic_projection_with_string_id(client):
    user = _create(client, "John Developer", "john@example.com", age=30)

    assert ObjectId.is_valid(user["_id"])
    assert user["email"] == "john@example.com"
    assert set(user) <= {"_id", "name", "email", "age", "phone", "createdAt", "updatedAt"}


def test_create_duplicate_email_is_conflict(client):
    _create(client, "John", "john@example.com")

    response = client.post(API, json={"name": "John 2", "email": "JOHN@example.com"})

    assert response.status_code == HTTPStatus.CONFLICT
    assert "already exists" in response.json()["detail"]


def test_create_validates_body(client):
    response = client.post(API, json={"name": "No Email"})
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_create_keeps_email_case(client):
    user = _create(client, "John", "John@Example.COM")
    assert user["email"] == "John@Example.COM"

    admin = client.get(f"{API}/{user['_id']}", params={"fields": "admin"}).json()
    assert admin["emailLower"] == "john@example.com"


def test_create_rejects_malformed_email(client):
    response = client.post(API, json={"name": "Bad", "email": "not-an-email"})
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_get_update_and_fields(client):
    user = _create(client, "Jane", "jane@example.com")

    response = client.get(f"{API}/{user['_id']}", params={"fields": "name,emailLower"})
    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"_id": user["_id"], "name": "Jane", "emailLower": "jane@example.com"}

    response = client.put(f"{API}/{user['_id']}", json={"name": "Jane Doe"})
    assert response.status_code == HTTPStatus.OK
    assert response.json()["name"] == "Jane Doe"
    assert response.json()["emailLower"] == "jane@example.com"


def test_invalid_field_names_are_rejected(client):
    response = client.get(API, params={"fields": "name,password"})

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["invalidFields"] == ["password"]


@pytest.mark.parametrize("params", [{"nameRegex": r"\u0041"}, {"nameRegex": r"\u0041", "page": 1}])
def test_regex_rejected_by_store_is_bad_request(client, repo, monkeypatch, params):
    # 인메모리 저장소는 Python re 를 쓰므로 서버의 PCRE 컴파일 오류를 흉내냄
    failure = OperationFailure("Regular expression is invalid: PCRE does not support \\u", code=51091)
    monkeypatch.setattr(repo, "find", AsyncMock(side_effect=failure))
    monkeypatch.setattr(repo, "count", AsyncMock(side_effect=failure))

    response = client.get(API, params=params)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["detail"] == "Invalid regex pattern"


def test_invalid_age_list_is_bad_request(client):
    response = client.get(API, params={"ageIn": "20,twenty"})
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_invalid_id_and_missing_user(client):
    assert client.get(f"{API}/not-an-id").status_code == HTTPStatus.BAD_REQUEST
    assert client.get(f"{API}/{ObjectId()}").status_code == HTTPStatus.NOT_FOUND


def test_list_plain_vs_paginated(client):
    for i in range(5):
        _create(client, f"User {i}", f"user{i}@example.com", age=20 + i)

    plain = client.get(API, params={"ageIn": "20,21,22"}).json()
    assert isinstance(plain, list)
    assert sorted(user["name"] for user in plain) == ["User 0", "User 1", "User 2"]

    page = client.get(API, params={"page": 2, "pageSize": 2, "sortBy": "age", "sortOrder": "asc"}).json()
    assert [user["name"] for user in page["items"]] == ["User 2", "User 3"]
    assert page["meta"] == {"total": 5, "page": 2, "pageSize": 2, "totalPages": 3}

    beyond = client.get(API, params={"page": 9, "pageSize": 2}).json()
    assert beyond["items"] == []

    floored = client.get(API, params={"page": 0, "pageSize": 0}).json()
    assert floored["meta"]["page"] == 1
    assert floored["meta"]["pageSize"] == 1


def test_invalid_sort_field_is_bad_request(client):
    response = client.get(API, params={"sortBy": "password"})
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_soft_delete_and_restore_flow(client):
    user = _create(client, "Jane", "jane@example.com")
    url = f"{API}/{user['_id']}"

    response = client.request("DELETE", url, json={"deletedBy": "admin", "deleteReason": "requested"})
    assert response.status_code == HTTPStatus.OK
    body = response.json()
    assert body["isDeleted"] is True
    assert body["deletedBy"] == "admin"
    assert body["deleteReason"] == "requested"

    assert client.delete(url).status_code == HTTPStatus.CONFLICT
    assert client.get(url).status_code == HTTPStatus.NOT_FOUND
    assert client.get(url, params={"includeDeleted": "true"}).status_code == HTTPStatus.OK
    assert all(u["_id"] != user["_id"] for u in client.get(API).json())

    response = client.post(f"{url}/restore")
    assert response.status_code == HTTPStatus.OK
    assert response.json()["isDeleted"] is False
    assert "deletedBy" not in response.json()

    assert client.post(f"{url}/restore").status_code == HTTPStatus.CONFLICT


def test_delete_without_body(client):
    user = _create(client, "Jane", "jane@example.com")
    response = client.delete(f"{API}/{user['_id']}")
    assert response.status_code == HTTPStatus.OK
    assert response.json()["isDeleted"] is True


def test_cursor_endpoint(client):
    ids = [_create(client, f"User {i}", f"user{i}@example.com")["_id"] for i in range(3)]

    first = client.get(f"{API}/cursor", params={"limit": 2}).json()
    assert [u["_id"] for u in first["items"]] == ids[:2]
    assert first["pageInfo"] == {"endCursor": ids[1], "hasNextPage": True}

    second = client.get(f"{API}/cursor", params={"after": first["pageInfo"]["endCursor"], "limit": 2}).json()
    assert [u["_id"] for u in second["items"]] == ids[2:]
    assert second["pageInfo"]["hasNextPage"] is False

    assert client.get(f"{API}/cursor", params={"after": "nope"}).status_code == HTTPStatus.BAD_REQUEST
    assert client.get(f"{API}/cursor", params={"limit": 0}).status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_search_requires_query_and_text_index(client):
    _create(client, "John Developer", "john@example.com")
    _create(client, "Jane Engineer", "jane@example.com")

    response = client.get(f"{API}/search")
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()["detail"] == "Query (q) is required"

    # 인메모리 컬렉션에는 텍스트 인덱스가 없음 → 빈 결과가 아니라 400
    response = client.get(f"{API}/search", params={"q": "developer"})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert "Text index not found" in response.json()["detail"]


def test_bulk_create_endpoint(client):
    _create(client, "John", "john@example.com")

    response = client.post(f"{API}/bulk", json={"users": [
        {"name": "John", "email": "John@example.com"},
        {"name": "Jane", "email": "jane@example.com"},
    ]})

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {
        "insertedCount": 1,
        "skipped": [{"email": "John@example.com", "reason": "Duplicate email"}],
    }
