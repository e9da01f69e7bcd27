# tests/v1/test_threads.py
"""Tests for thread endpoints."""

from fastapi import status


def test_create_and_fetch_thread(client, auth_token) -> None:
    created = client.post("/api/v1/threads", json={"text": "Hello world"}, headers=auth_token)
    assert created.status_code == status.HTTP_201_CREATED
    pk = created.json()["data"]["pk"]

    response = client.get(f"/api/v1/threads/{pk}", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["text"] == "Hello world"
    assert response.json()["author"]["id"] == "user_alice"


def test_empty_text_is_rejected(client, auth_token) -> None:
    response = client.post("/api/v1/threads", json={"text": ""}, headers=auth_token)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_feed_pagination(client, auth_token) -> None:
    for i in range(3):
        client.post("/api/v1/threads", json={"text": f"post {i}"}, headers=auth_token)

    data = client.get("/api/v1/threads?page=1&page_size=2", headers=auth_token).json()

    assert data["total"] == 3
    assert data["is_next"] is True
    assert [t["text"] for t in data["threads"]] == ["post 2", "post 1"]


def test_comment_and_reply_tree(client, auth_token, other_auth_token, test_thread) -> None:
    response = client.post(
        f"/api/v1/threads/{test_thread.pk}/comments",
        json={"text": "Reply from Bob"},
        headers=other_auth_token,
    )
    assert response.status_code == status.HTTP_201_CREATED

    detail = client.get(f"/api/v1/threads/{test_thread.pk}", headers=auth_token).json()
    assert detail["reply_count"] == 1
    assert detail["children"][0]["text"] == "Reply from Bob"


def test_comment_on_missing_thread(client, auth_token) -> None:
    response = client.post(
        "/api/v1/threads/424242/comments", json={"text": "?"}, headers=auth_token
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_like_and_repost_toggles(client, other_auth_token, test_thread) -> None:
    liked = client.post(f"/api/v1/threads/{test_thread.pk}/like", headers=other_auth_token)
    unliked = client.post(f"/api/v1/threads/{test_thread.pk}/like", headers=other_auth_token)
    reposted = client.post(f"/api/v1/threads/{test_thread.pk}/repost", headers=other_auth_token)

    assert liked.json() == {"thread_pk": test_thread.pk, "active": True, "count": 1}
    assert unliked.json()["active"] is False
    assert reposted.json()["count"] == 1
