"""Shared pytest fixtures for testing."""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from leadscore.analyzer import AnalysisOrchestrator
from leadscore.api import create_app
from leadscore.models import TranscriptionResult
from leadscore.queries import AnalysisQueryService
from leadscore.scoring import ScoringEngine
from leadscore.sqlite_repository import SQLiteCallRepository

from tests.fakes import FakeTranscriptionGateway, InMemoryCallRepository

SCENARIO_TRANSCRIPT = "שלום, אני מעוניין בנכס בתל אביב. התקציב שלי הוא 800 אלף שקל."


# =============================================================================
# Scoring Fixtures
# =============================================================================


@pytest.fixture
def engine() -> ScoringEngine:
    """Scoring engine with default configuration."""
    return ScoringEngine()


@pytest.fixture
def scenario_transcription() -> TranscriptionResult:
    """Transcription of a short interested-buyer call."""
    return TranscriptionResult(
        text=SCENARIO_TRANSCRIPT,
        language="he",
        duration=180.0,
        word_count=12,
    )


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def memory_repo() -> InMemoryCallRepository:
    """Dict-backed repository."""
    return InMemoryCallRepository()


@pytest_asyncio.fixture
async def sqlite_repo(tmp_path) -> AsyncGenerator[SQLiteCallRepository, None]:
    """SQLite repository on a temp file."""
    repo = SQLiteCallRepository(str(tmp_path / "calls.db"))
    yield repo
    await repo.close()


@pytest.fixture
def audio_file(tmp_path) -> str:
    """A small file with a supported audio extension."""
    path = tmp_path / "call.mp3"
    path.write_bytes(b"ID3" + b"\x00" * 128)
    return str(path)


# =============================================================================
# Pipeline Fixtures
# =============================================================================


@pytest.fixture
def gateway(scenario_transcription) -> FakeTranscriptionGateway:
    """Gateway that returns the scenario transcription."""
    return FakeTranscriptionGateway(result=scenario_transcription)


@pytest.fixture
def orchestrator(memory_repo, gateway, engine) -> AnalysisOrchestrator:
    """Orchestrator over in-memory collaborators."""
    return AnalysisOrchestrator(memory_repo, gateway, engine, transcription_timeout=1.0)


@pytest_asyncio.fixture
async def pending_call(memory_repo):
    """A customer with one freshly created call."""
    customer = await memory_repo.create_customer("דני כהן", "050-1234567", "dani@example.com")
    return await memory_repo.create_call(customer.id, "/recordings/call-1.mp3")


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def app(orchestrator, memory_repo) -> FastAPI:
    """Create test FastAPI application."""
    return create_app(orchestrator, AnalysisQueryService(memory_repo), default_page_size=10)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
