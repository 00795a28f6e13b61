"""Tests for search and health endpoints."""
import httpx

from karaoke.services.yt_service import YouTubeService, get_yt_service


async def test_search_requires_query(client):
    response = await client.get("/search", params={"q": "  "})
    assert response.status_code == 400
    assert response.json() == {"error": "Query parameter is required"}


async def test_search_not_configured(client, test_app):
    test_app.dependency_overrides[get_yt_service] = lambda: YouTubeService(api_key="")
    response = await client.get("/search", params={"q": "queen"})
    assert response.status_code == 500
    assert response.json() == {"error": "YouTube API is not configured"}


async def test_search_results(client, test_app):
    def handler(request):
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json={"items": [{"id": {"videoId": "abc123"}}]})
        return httpx.Response(200, json={"items": [{
            "id": "abc123",
            "snippet": {"title": "Queen - Somebody to Love", "channelTitle": "Queen"},
            "contentDetails": {"duration": "PT4M56S"},
        }]})

    test_app.dependency_overrides[get_yt_service] = lambda: YouTubeService(
        api_key="k", transport=httpx.MockTransport(handler)
    )
    response = await client.get("/search", params={"q": "queen", "karaoke": "true"})
    assert response.status_code == 200
    assert response.json() == [{
        "video_id": "abc123",
        "title": "Somebody to Love",
        "artist": "Queen",
        "thumbnail": None,
        "duration_s": 296,
        "duration_label": "4:56",
    }]


async def test_search_upstream_status(client, test_app):
    test_app.dependency_overrides[get_yt_service] = lambda: YouTubeService(
        api_key="k", transport=httpx.MockTransport(lambda request: httpx.Response(429))
    )
    response = await client.get("/search", params={"q": "queen"})
    assert response.status_code == 429
    assert "error" in response.json()


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["checks"]["database"] == "pass"
    # No API key in the test environment
    assert body["checks"]["environmentVariables"] == "warn"
    assert response.headers["cache-control"] == "no-store, max-age=0"


async def test_health_at_root(test_app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=test_app), base_url="http://test") as ac:
        response = await ac.get("/health")
    assert response.status_code == 200
