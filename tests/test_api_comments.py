"""Tests for comment endpoints."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def video_id(session, make_video, register) -> str:
    creator_id, _ = register("creator")
    return make_video(creator_id)


class TestComments:
    def test_post_and_list(self, test_client: TestClient, register, video_id) -> None:
        commenter_id, headers = register("commenter")

        response = test_client.post(
            f"/api/comments/{video_id}", headers=headers, json={"content": "Clear signing!"}
        )

        assert response.status_code == 200
        comment = response.json()
        assert comment["content"] == "Clear signing!"
        assert comment["user_id"] == commenter_id
        assert comment["video_id"] == video_id
        assert comment["username"] == "commenter"
        assert comment["likes"] == 0

        listed = test_client.get(f"/api/comments/{video_id}").json()
        assert [c["id"] for c in listed] == [comment["id"]]

    def test_empty_content(self, test_client: TestClient, register, video_id) -> None:
        _, headers = register("commenter")

        response = test_client.post(f"/api/comments/{video_id}", headers=headers, json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Comment content required"}

    def test_requires_token(self, test_client: TestClient, video_id) -> None:
        response = test_client.post(f"/api/comments/{video_id}", json={"content": "hi"})
        assert response.status_code == 401

    def test_author_deletes(self, test_client: TestClient, register, video_id) -> None:
        _, headers = register("commenter")
        comment_id = test_client.post(
            f"/api/comments/{video_id}", headers=headers, json={"content": "typo"}
        ).json()["id"]

        response = test_client.delete(f"/api/comments/{comment_id}", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Deleted"}
        assert test_client.get(f"/api/comments/{video_id}").json() == []

    def test_other_user_cannot_delete(self, test_client: TestClient, register, video_id) -> None:
        _, author_headers = register("commenter")
        _, other_headers = register("other")
        comment_id = test_client.post(
            f"/api/comments/{video_id}", headers=author_headers, json={"content": "keep me"}
        ).json()["id"]

        response = test_client.delete(f"/api/comments/{comment_id}", headers=other_headers)
        missing = test_client.delete("/api/comments/missing-comment", headers=other_headers)

        assert response.status_code == 404
        assert response.json() == missing.json() == {"error": "Not found or unauthorized"}
        assert len(test_client.get(f"/api/comments/{video_id}").json()) == 1
