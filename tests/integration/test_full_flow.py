import asyncio
import json
import pytest
from datetime import datetime
from httpx import AsyncClient, ASGITransport
from app.core.database import get_counter_database
from app.main import app
from app.services.ingestion import StrictIngestion, get_ingestion_strategy


transport = ASGITransport(app=app)


@pytest.fixture
def strict_app(raw_store, record_store, counter_db):
    """App wired to in-memory backends in strict mode"""
    strategy = StrictIngestion(raw_store, record_store, counter_db)
    app.dependency_overrides[get_ingestion_strategy] = lambda: strategy
    app.dependency_overrides[get_counter_database] = lambda: counter_db
    yield app
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health_check():
    """Test health endpoint"""
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["mode"] in ["strict", "best_effort"]


@pytest.mark.asyncio
async def test_event_ingestion_and_counts_flow(strict_app, raw_store, record_store):
    """Test complete flow: ingest events -> query counters"""

    async with AsyncClient(transport=transport, base_url="http://test") as client:
        # 1. Ingest events
        payloads = [
            {"event_type": "page_view", "url": "/home", "user_id": "u1"},
            {"event_type": "page_view", "url": "/pricing", "user_id": "u2"},
            {"event_type": "button_click", "url": "/checkout", "user_id": "u1"},
        ]

        event_ids = []
        for payload in payloads:
            response = await client.post("/events", content=json.dumps(payload))
            assert response.status_code == 200
            data = response.json()
            assert data["message"] == "Event processed and stored successfully!"
            event_ids.append(data["eventId"])

        assert len(set(event_ids)) == 3

        # 2. Normalized records share the returned id
        record = record_store.items[event_ids[2]]
        assert record["eventType"] == "button_click"
        assert record["url"] == "/checkout"
        datetime.fromisoformat(record["receivedAt"].replace("Z", "+00:00"))

        # 3. Raw copies are stored verbatim
        stored = [json.loads(body) for body in raw_store.objects.values()]
        assert sorted(stored, key=lambda p: p["url"]) == sorted(payloads, key=lambda p: p["url"])

        # 4. Query counters
        response = await client.get("/stats/event-counts?limit=5")
        assert response.status_code == 200
        assert response.json() == [
            {"event_type": "page_view", "count": 2},
            {"event_type": "button_click", "count": 1},
        ]


@pytest.mark.asyncio
async def test_same_payload_twice_counts_twice(strict_app, counter_db):
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        for _ in range(2):
            response = await client.post("/events", content='{"event_type":"click","url":"/x"}')
            assert response.status_code == 200

    assert counter_db.fake_engine.counts["click"] == 2


@pytest.mark.asyncio
async def test_parallel_requests_count_every_event(strict_app, counter_db):
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        responses = await asyncio.gather(*(
            client.post("/events", content='{"event_type":"click","url":"/x"}')
            for _ in range(25)
        ))

    assert all(r.status_code == 200 for r in responses)
    assert counter_db.fake_engine.counts["click"] == 25


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["not json", "{", ""])
async def test_invalid_json(strict_app, body, raw_store, record_store, counter_db):
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/events", content=body)

    assert response.status_code == 400
    assert response.json() == {"message": "Invalid JSON format."}
    assert raw_store.objects == {}
    assert record_store.items == {}
    assert counter_db.connect_calls == 0


@pytest.mark.asyncio
async def test_backend_failure_returns_500(strict_app, record_store):
    record_store.fail_with = RuntimeError("ProvisionedThroughputExceeded")

    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/events", content='{"event_type":"click","url":"/x"}')

    assert response.status_code == 500
    assert response.json() == {
        "message": "An internal error occurred.",
        "errorName": "RuntimeError",
        "errorMessage": "ProvisionedThroughputExceeded",
    }


@pytest.mark.asyncio
async def test_event_counts_failure(strict_app, counter_db):
    counter_db.connect_error = OSError("could not connect")

    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/stats/event-counts")

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to fetch event counts"}


@pytest.mark.asyncio
async def test_event_counts_limit_validation(strict_app):
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/stats/event-counts?limit=0")
        assert response.status_code == 422

        response = await client.get("/stats/event-counts?limit=101")
        assert response.status_code == 422
