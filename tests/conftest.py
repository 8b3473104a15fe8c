"""
Test Configuration
==================

Pytest fixtures for risk engine tests.
"""

import os
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def risk_engine_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Risk Engine Service with a fresh run store."""
    from services.risk_engine import dependencies
    from services.risk_engine.main import app

    dependencies.reset()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    dependencies.reset()


@pytest.fixture
def sample_weight_config() -> dict[str, Any]:
    """Two equally weighted categories."""
    return {
        "categories": [
            {"key": "RISK", "weight": 0.5},
            {"key": "KYC_AML", "weight": 0.5},
        ]
    }


@pytest.fixture
def sample_sub_scores() -> dict[str, float]:
    """Sub-scores for the sample weight config."""
    return {"RISK": 70.0, "KYC_AML": 60.0}


@pytest.fixture
def sample_ai_answer_data() -> dict[str, Any]:
    """Low-confidence AI answer on the KYC_AML category."""
    return {
        "source": "AI_EXTRACTED",
        "evidence_id": "ai-q-kyc-1",
        "question_id": "q-kyc-1",
        "question": "Do you verify beneficial owners?",
        "section_title": "Customer Due Diligence",
        "category": "KYC_AML",
        "answer": "Yes, for some customers",
        "confidence": 0.4,
        "basis": "none",
    }
