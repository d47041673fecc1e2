"""Tests for the newsletter_api FastAPI application."""

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from common.errors import GenerationError
from fetch_feeds.models import FeedMetadata, ParsedFeed
from generate_newsletter.schema import NewsletterResult, PartialNewsletter
from newsletter_api.main import app

OWNER = {"X-Owner-Id": "owner-1"}
OTHER = {"X-Owner-Id": "owner-2"}
URL = "https://example.com/rss"

RESULT = NewsletterResult(
    suggested_titles=[f"Title {i}" for i in range(5)],
    suggested_subject_lines=[f"Subject {i}" for i in range(5)],
    body="Body",
    top_announcements=[f"Item {i}" for i in range(5)],
)


@pytest.fixture
def client(session_factory):
    return TestClient(app)


@pytest.fixture
def feed_id(client, article_factory):
    parsed = ParsedFeed(
        metadata=FeedMetadata(title="Example News"),
        articles=[article_factory("g1", day=5), article_factory("g2", day=6)],
    )
    with patch("refresh_feeds.subscribe.validate_feed_url", return_value=True), \
            patch("refresh_feeds.refresh.fetch_and_parse_feed", return_value=parsed):
        response = client.post("/feeds", json={"url": URL}, headers=OWNER)
    assert response.status_code == 201
    return response.json()["feed"]["id"]


def _events(response) -> list[dict]:
    return [json.loads(line) for line in response.text.splitlines() if line.strip()]


class TestHealth:
    def test_health(self, client) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestFeeds:
    def test_owner_header_is_required(self, client) -> None:
        assert client.get("/feeds").status_code == 401

    def test_add_and_list(self, client, feed_id) -> None:
        response = client.get("/feeds", headers=OWNER)
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["feeds"][0]["id"] == feed_id
        assert body["feeds"][0]["title"] == "Example News"
        assert body["feeds"][0]["article_count"] == 2

    def test_feeds_are_owner_scoped(self, client, feed_id) -> None:
        assert client.get("/feeds", headers=OTHER).json()["total"] == 0
        assert client.get(f"/feeds/{feed_id}", headers=OTHER).status_code == 404

    @patch("refresh_feeds.subscribe.validate_feed_url", return_value=False)
    def test_invalid_feed_url(self, mock_validate, client) -> None:
        response = client.post("/feeds", json={"url": "https://example.com/page"}, headers=OWNER)
        assert response.status_code == 400
        assert "Invalid RSS feed URL" in response.json()["error"]

    @patch("refresh_feeds.subscribe.validate_feed_url", return_value=True)
    def test_duplicate_feed(self, mock_validate, client, feed_id) -> None:
        response = client.post("/feeds", json={"url": URL}, headers=OWNER)
        assert response.status_code == 409

    def test_delete_feed(self, client, feed_id) -> None:
        assert client.delete(f"/feeds/{feed_id}", headers=OTHER).status_code == 404

        response = client.delete(f"/feeds/{feed_id}", headers=OWNER)
        assert response.status_code == 200
        assert response.json() == {"feed_id": feed_id, "references_removed": 2, "articles_deleted": 2}
        assert client.get("/feeds", headers=OWNER).json()["total"] == 0

    @patch("refresh_feeds.refresh.fetch_and_parse_feed")
    def test_refresh_skips_fresh_feeds_unless_forced(self, mock_fetch, client, feed_id, article_factory) -> None:
        mock_fetch.return_value = ParsedFeed(metadata=FeedMetadata(), articles=[article_factory("g3")])

        body = client.post("/feeds/refresh", json={"feed_ids": [feed_id]}, headers=OWNER).json()
        assert body["skipped"] == 1
        assert body["outcomes"] == []

        body = client.post("/feeds/refresh", json={"feed_ids": [feed_id], "force": True}, headers=OWNER).json()
        assert body["succeeded"] == 1
        assert body["outcomes"][0]["created"] == 1

    def test_refresh_requires_feed_ids(self, client) -> None:
        assert client.post("/feeds/refresh", json={"feed_ids": []}, headers=OWNER).status_code == 400


class TestArticles:
    def test_lists_articles_in_range(self, client, feed_id) -> None:
        response = client.get(
            "/articles",
            params={"feed_ids": [feed_id], "start": "2024-03-01", "end": "2024-03-05"},
            headers=OWNER,
        )
        assert response.status_code == 200
        body = response.json()
        assert [article["guid"] for article in body["articles"]] == ["g1"]
        assert body["articles"][0]["feed_title"] == "Example News"

    def test_end_before_start_is_rejected(self, client, feed_id) -> None:
        response = client.get(
            "/articles",
            params={"feed_ids": [feed_id], "start": "2024-03-05", "end": "2024-03-01"},
            headers=OWNER,
        )
        assert response.status_code == 400
        assert "end date must not be before start date" in response.json()["detail"]

    def test_internal_value_error_is_a_server_error(self, feed_id) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        with patch(
            "newsletter_api.routers.articles.query_articles_by_feeds_and_range",
            side_effect=ValueError("unexpected"),
        ):
            response = client.get(
                "/articles",
                params={"feed_ids": [feed_id], "start": "2024-03-01", "end": "2024-03-05"},
                headers=OWNER,
            )
        assert response.status_code == 500


class TestNewsletters:
    def _generate(self, client, feed_id, **overrides):
        payload = {"feed_ids": [feed_id], "start_date": "2024-03-01", "end_date": "2024-03-31"}
        payload.update(overrides)
        return client.post("/newsletters/generate", json=payload, headers=OWNER)

    @patch("newsletter_api.routers.newsletters.stream_newsletter")
    def test_streams_partials_then_complete(self, mock_stream, client, feed_id) -> None:
        mock_stream.return_value = iter([PartialNewsletter(body="Bo"), RESULT])

        response = self._generate(client, feed_id, save=True)

        assert response.status_code == 200
        events = _events(response)
        assert [event["type"] for event in events] == ["partial", "complete"]
        assert events[0]["newsletter"] == {"body": "Bo"}
        assert events[1]["newsletter"]["body"] == "Body"
        assert events[1]["article_count"] == 2

        newsletter_id = events[1]["newsletter_id"]
        listed = client.get("/newsletters", headers=OWNER).json()
        assert listed["total"] == 1
        assert listed["newsletters"][0]["id"] == newsletter_id

    @patch("newsletter_api.routers.newsletters.stream_newsletter")
    def test_generation_error_ends_stream_with_error_event(self, mock_stream, client, feed_id) -> None:
        def failing(*args, **kwargs):
            yield PartialNewsletter(body="Bo")
            raise GenerationError("Model call failed: quota exceeded")

        mock_stream.side_effect = failing

        events = _events(self._generate(client, feed_id))
        assert events[-1] == {"type": "error", "error": "Model call failed: quota exceeded"}

    def test_no_content_returns_404_with_refresh_summary(self, client, feed_id) -> None:
        response = self._generate(client, feed_id, start_date="2023-01-01", end_date="2023-01-31")
        assert response.status_code == 404
        body = response.json()
        assert "No articles found" in body["error"]
        assert body["refresh"]["skipped"] == 1

    def test_validation_errors_return_400(self, client, feed_id) -> None:
        assert self._generate(client, feed_id, feed_ids=[]).status_code == 400
        assert self._generate(client, feed_id, start_date="not-a-date").status_code == 400
        assert self._generate(client, feed_id, start_date="2024-03-31", end_date="2024-03-01").status_code == 400

    def test_other_owners_feed_is_not_found(self, client, feed_id) -> None:
        response = client.post(
            "/newsletters/generate",
            json={"feed_ids": [feed_id], "start_date": "2024-03-01", "end_date": "2024-03-31"},
            headers=OTHER,
        )
        assert response.status_code == 404

    @patch("newsletter_api.routers.newsletters.stream_newsletter")
    def test_get_and_delete_newsletter(self, mock_stream, client, feed_id) -> None:
        mock_stream.return_value = iter([RESULT])
        newsletter_id = _events(self._generate(client, feed_id, save=True))[-1]["newsletter_id"]

        assert client.get(f"/newsletters/{newsletter_id}", headers=OWNER).json()["body"] == "Body"
        assert client.get(f"/newsletters/{newsletter_id}", headers=OTHER).status_code == 403
        assert client.delete(f"/newsletters/{newsletter_id}", headers=OWNER).status_code == 204
        assert client.get(f"/newsletters/{newsletter_id}", headers=OWNER).status_code == 404
