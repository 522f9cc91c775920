"""Integration tests for the HTTP API."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from leadscore.analyzer import AnalysisOrchestrator
from leadscore.api import create_app
from leadscore.models import (
    CategoryScores,
    KeyPhrases,
    ScoringAnalysis,
    ScoringMetadata,
    ScoringResult,
)
from leadscore.queries import AnalysisQueryService
from leadscore.scoring import ScoringEngine

from tests.fakes import FailingGateway, FakeTranscriptionGateway

BEYOND_SQLITE_INTEGER = 2**63

FIXED_RESULT = ScoringResult(
    scores=CategoryScores(urgency=70, budget=85, interest=90, engagement=75, overall=80),
    analysis=ScoringAnalysis(
        key_phrases=KeyPhrases(interest=["נכס בתל אביב"], budget=["800 אלף שקל"]),
        objections=[],
        notes="לקוח בעל פוטנציאל גבוה לסגירת עסקה - מומלץ לעקוב אחריו באופן מיידי.",
        confidence=90,
    ),
    metadata=ScoringMetadata(duration=180.0, word_count=12, words_per_minute=4),
    lexicon_version="1.0",
)


class FixedScoringEngine(ScoringEngine):
    """Returns the same result for every transcript."""

    def score(self, transcript, duration=0, word_count=0):
        return FIXED_RESULT


async def make_client(orchestrator, repo):
    app = create_app(orchestrator, AnalysisQueryService(repo), default_page_size=10)
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestAnalyzeEndpoint:
    """Tests for POST /api/analyze."""

    @pytest.mark.asyncio
    async def test_analyze_pending_call(self, client, pending_call):
        """A pending call is analyzed and the result returned."""
        response = await client.post("/api/analyze", json={"salesCallId": pending_call.id})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["salesCall"]["id"] == pending_call.id
        assert data["salesCall"]["scoringStatus"] == "completed"
        assert data["transcription"]["language"] == "he"
        assert data["transcription"]["stats"]["wordCount"] == 12
        assert "נכס בתל אביב" in data["scoring"]["analysis"]["keyPhrases"]["interest"]
        assert data["scoring"]["analysis"]["objections"] == []

    @pytest.mark.asyncio
    async def test_scores_passed_through(self, memory_repo, gateway, pending_call):
        """Engine output reaches the response and the stored call unchanged."""
        orchestrator = AnalysisOrchestrator(memory_repo, gateway, FixedScoringEngine())
        async with await make_client(orchestrator, memory_repo) as client:
            response = await client.post("/api/analyze", json={"salesCallId": pending_call.id})

        data = response.json()["data"]
        assert data["scoring"]["scores"]["overall"] == 80
        assert data["scoring"]["analysis"]["confidence"] == 90
        assert data["salesCall"]["overallScore"] == 80
        assert data["salesCall"]["interestScore"] == 90

    @pytest.mark.asyncio
    async def test_already_analyzed(self, client, pending_call):
        """A second analysis is a 400 carrying the call state."""
        await client.post("/api/analyze", json={"salesCallId": pending_call.id})

        response = await client.post("/api/analyze", json={"salesCallId": pending_call.id})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "already_analyzed"
        assert body["data"]["hasTranscript"] is True
        assert body["data"]["hasScores"] is True

    @pytest.mark.asyncio
    async def test_unknown_call(self, client):
        """Unknown ids are 404."""
        response = await client.post("/api/analyze", json={"salesCallId": 404})

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"salesCallId": "abc"}, {"salesCallId": None}])
    async def test_invalid_body(self, client, payload):
        """Missing or non-integer ids are 400."""
        response = await client.post("/api/analyze", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_gateway_failure(self, memory_repo, engine, pending_call):
        """Provider failures are 500 and leave the call pending."""
        orchestrator = AnalysisOrchestrator(memory_repo, FailingGateway(), engine)
        async with await make_client(orchestrator, memory_repo) as client:
            response = await client.post("/api/analyze", json={"salesCallId": pending_call.id})
            follow_up = await client.get(f"/api/analyze/{pending_call.id}")

        assert response.status_code == 500
        assert response.json()["error"] == "gateway_error"
        assert follow_up.json()["data"]["analysisStatus"] == "pending"


class TestGetAnalysisEndpoint:
    """Tests for GET /api/analyze/{id}."""

    @pytest.mark.asyncio
    async def test_pending_call(self, client, pending_call):
        """Derived statuses and customer are included."""
        response = await client.get(f"/api/analyze/{pending_call.id}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["analysisStatus"] == "pending"
        assert data["scoringStatus"] == "pending"
        assert data["customer"]["name"] == "דני כהן"
        assert data["transcriptionStats"] is None

    @pytest.mark.asyncio
    async def test_scored_call(self, client, pending_call):
        """A scored call shows transcript stats."""
        await client.post("/api/analyze", json={"salesCallId": pending_call.id})

        data = (await client.get(f"/api/analyze/{pending_call.id}")).json()["data"]

        assert data["analysisStatus"] == "transcribed"
        assert data["scoringStatus"] == "completed"
        assert data["transcriptionStats"]["wordCount"] == 12

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        """Unknown ids are 404."""
        response = await client.get("/api/analyze/12345")
        assert response.status_code == 404


class TestListEndpoint:
    """Tests for GET /api/analyze."""

    @pytest.mark.asyncio
    async def test_list_with_pagination(self, client, memory_repo):
        """Pagination metadata and status summary are returned."""
        customer = await memory_repo.create_customer("יעל", "053-2222222")
        for i in range(3):
            await memory_repo.create_call(customer.id, f"/recordings/{i}.mp3")
        await client.post("/api/analyze", json={"salesCallId": 1})

        response = await client.get("/api/analyze", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        data = response.json()["data"]
        assert [a["id"] for a in data["analyses"]] == [1, 2]
        assert data["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}
        assert data["summary"]["scored"] == 1
        assert data["summary"]["pending"] == 2
        assert data["analyses"][0]["transcriptionStats"]["wordCount"] == 12
        assert data["analyses"][1]["transcriptionStats"] is None

    @pytest.mark.asyncio
    async def test_status_and_customer_filters(self, client, memory_repo):
        """Filters narrow the listing."""
        first = await memory_repo.create_customer("א", "050-0000001")
        second = await memory_repo.create_customer("ב", "050-0000002")
        await memory_repo.create_call(first.id, "/a.mp3")
        await memory_repo.create_call(second.id, "/b.mp3")
        await client.post("/api/analyze", json={"salesCallId": 1})

        scored = await client.get("/api/analyze", params={"status": "scored"})
        by_customer = await client.get("/api/analyze", params={"customerId": second.id})

        assert [a["id"] for a in scored.json()["data"]["analyses"]] == [1]
        assert [a["customerId"] for a in by_customer.json()["data"]["analyses"]] == [second.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params", [{"status": "done"}, {"page": 0}, {"limit": 0}, {"limit": 1000}, {"page": "x"}]
    )
    async def test_invalid_query(self, client, params):
        """Bad filters or paging are 400."""
        response = await client.get("/api/analyze", params=params)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestScoreEndpoint:
    """Tests for POST /api/analyze/{id}/score."""

    @pytest.mark.asyncio
    async def test_no_transcript(self, client, pending_call):
        """Scoring a pending call is a 400."""
        response = await client.post(f"/api/analyze/{pending_call.id}/score")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "no_transcript"
        assert body["data"]["hasTranscript"] is False

    @pytest.mark.asyncio
    async def test_score_transcribed_call(self, client, memory_repo, pending_call, scenario_transcription):
        """A transcribed call is scored."""
        await memory_repo.commit_transcript(pending_call.id, scenario_transcription)

        response = await client.post(f"/api/analyze/{pending_call.id}/score")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["salesCall"]["scoringStatus"] == "completed"
        assert data["scoring"]["lexiconVersion"] == "1.0"

    @pytest.mark.asyncio
    async def test_already_scored(self, client, pending_call):
        """Scoring twice is a 400."""
        await client.post("/api/analyze", json={"salesCallId": pending_call.id})

        response = await client.post(f"/api/analyze/{pending_call.id}/score")

        assert response.status_code == 400
        assert response.json()["error"] == "already_scored"

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        """Unknown ids are 404."""
        response = await client.post("/api/analyze/77/score")
        assert response.status_code == 404


class TestMiscEndpoints:
    """Tests for config and health endpoints."""

    @pytest.mark.asyncio
    async def test_scoring_config(self, client):
        """Weights and lexicon version are exposed."""
        response = await client.get("/api/scoring/config")

        data = response.json()["data"]
        assert data["weights"]["urgency"] == 0.30
        assert data["lexiconVersion"] == "1.0"

    @pytest.mark.asyncio
    async def test_health(self, client):
        """Health check responds."""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCustomerEmbedding:
    """Tests for the customer attached to call payloads."""

    @pytest.mark.asyncio
    async def test_analyze_includes_customer(self, client, pending_call):
        """The analyzed call carries its customer."""
        response = await client.post("/api/analyze", json={"salesCallId": pending_call.id})

        customer = response.json()["data"]["salesCall"]["customer"]
        assert customer["id"] == pending_call.customer_id
        assert customer["name"] == "דני כהן"
        assert customer["phone"] == "050-1234567"
        assert customer["email"] == "dani@example.com"

    @pytest.mark.asyncio
    async def test_score_includes_customer(self, client, memory_repo, pending_call, scenario_transcription):
        """The scored call carries its customer."""
        await memory_repo.commit_transcript(pending_call.id, scenario_transcription)

        response = await client.post(f"/api/analyze/{pending_call.id}/score")

        assert response.json()["data"]["salesCall"]["customer"]["name"] == "דני כהן"

    @pytest.mark.asyncio
    async def test_listing_items_include_customer(self, client, memory_repo):
        """Each listed call carries its own customer."""
        first = await memory_repo.create_customer("יעל", "053-2222222", "yael@example.com")
        second = await memory_repo.create_customer("אבי", "054-3333333")
        await memory_repo.create_call(first.id, "/a.mp3")
        await memory_repo.create_call(second.id, "/b.mp3")

        analyses = (await client.get("/api/analyze")).json()["data"]["analyses"]

        assert [a["customer"]["name"] for a in analyses] == ["יעל", "אבי"]
        assert analyses[0]["customer"]["email"] == "yael@example.com"
        assert analyses[1]["customer"]["email"] is None


@pytest_asyncio.fixture
async def sqlite_client(sqlite_repo, scenario_transcription):
    """Client over the SQLite repository."""
    orchestrator = AnalysisOrchestrator(
        sqlite_repo, FakeTranscriptionGateway(result=scenario_transcription), ScoringEngine()
    )
    async with await make_client(orchestrator, sqlite_repo) as client:
        yield client


class TestSQLiteBackedApi:
    """Tests for the API against SQLite storage."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("call_id", [BEYOND_SQLITE_INTEGER, -BEYOND_SQLITE_INTEGER - 1])
    async def test_out_of_range_ids_not_found(self, sqlite_client, call_id):
        """Ids SQLite cannot store are unknown calls on every route."""
        get = await sqlite_client.get(f"/api/analyze/{call_id}")
        analyze = await sqlite_client.post("/api/analyze", json={"salesCallId": call_id})
        score = await sqlite_client.post(f"/api/analyze/{call_id}/score")

        for response in (get, analyze, score):
            assert response.status_code == 404
            assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_out_of_range_customer_filter(self, sqlite_client, sqlite_repo):
        """A customer filter SQLite cannot store matches nothing."""
        customer = await sqlite_repo.create_customer("נועה", "050-9999999")
        await sqlite_repo.create_call(customer.id, "/c.mp3")

        response = await sqlite_client.get(
            "/api/analyze", params={"customerId": BEYOND_SQLITE_INTEGER}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["analyses"] == []
        assert data["pagination"]["total"] == 0
        assert data["summary"]["total"] == 0

    @pytest.mark.asyncio
    async def test_analyze_and_list_with_customers(self, sqlite_client, sqlite_repo):
        """Analysis and listing embed the stored customer."""
        customer = await sqlite_repo.create_customer("נועה", "050-9999999", "noa@example.com")
        call = await sqlite_repo.create_call(customer.id, "/c.mp3")

        analyze = await sqlite_client.post("/api/analyze", json={"salesCallId": call.id})
        listing = await sqlite_client.get("/api/analyze", params={"status": "scored"})

        assert analyze.status_code == 200
        assert analyze.json()["data"]["salesCall"]["customer"]["name"] == "נועה"
        (item,) = listing.json()["data"]["analyses"]
        assert item["customer"] == {
            "id": customer.id,
            "name": "נועה",
            "phone": "050-9999999",
            "email": "noa@example.com",
            "createdAt": item["customer"]["createdAt"],
        }
