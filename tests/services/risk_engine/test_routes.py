"""
Risk Engine API Tests
=====================

Tests for the risk engine HTTP endpoints.

Version: 0.1.0
"""

from typing import Any

import pytest
from httpx import AsyncClient


# =============================================================================
# Health Tests
# =============================================================================


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["category_rules"]["rules"] > 0

    @pytest.mark.asyncio
    async def test_root(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "Compliance Risk Engine"


# =============================================================================
# Scoring Endpoint Tests
# =============================================================================


class TestScoringRoutes:
    """Tests for stateless scoring endpoints."""

    @pytest.mark.asyncio
    async def test_validate_weights(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
    ) -> None:
        response = await risk_engine_client.post("/api/v1/scoring/weights/validate", json=sample_weight_config)

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["sum"] == pytest.approx(1.0)
        assert data["error"] is None

    @pytest.mark.asyncio
    async def test_validate_weights_out_of_tolerance(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/weights/validate",
            json={"categories": [{"key": "RISK", "weight": 0.6}, {"key": "KYC_AML", "weight": 0.2}]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is False
        assert data["error"] == "category weights sum to 0.8000, must equal 1.0 (±0.01)"
        assert data["normalized"] == {"RISK": pytest.approx(0.75), "KYC_AML": pytest.approx(0.25)}

    @pytest.mark.asyncio
    async def test_validate_weights_malformed(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/weights/validate",
            json={"categories": [{"key": "RISK", "weight": 0.5}, {"key": "RISK", "weight": 0.5}]},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_WEIGHTS"

    @pytest.mark.asyncio
    async def test_map_category(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/categories/map",
            json={"label": "KYC and AML Procedures"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "label": "KYC and AML Procedures",
            "vendor_category": "KYC_AML",
            "matched_by": "keyword",
            "pattern": "kyc",
        }

    @pytest.mark.asyncio
    async def test_map_unknown_category(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post("/api/v1/scoring/categories/map", json={"label": None})

        assert response.status_code == 200
        assert response.json()["vendor_category"] is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("score", "expected"), [(10, "CRITICAL"), (45, "HIGH"), (65, "MEDIUM"), (95, "LOW")])
    async def test_risk_level(self, risk_engine_client: AsyncClient, score: float, expected: str) -> None:
        response = await risk_engine_client.get("/api/v1/scoring/risk-level", params={"score": score})

        assert response.status_code == 200
        assert response.json()["risk_level"] == expected

    @pytest.mark.asyncio
    async def test_evidence_tier(self, risk_engine_client: AsyncClient, sample_ai_answer_data: dict[str, Any]) -> None:
        payload = {**sample_ai_answer_data, "basis": "policy_document"}

        response = await risk_engine_client.post("/api/v1/scoring/evidence/tier", json={"evidence": payload})

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "AI_EXTRACTED"
        assert data["tier"] == "TIER_1"
        assert data["multiplier"] == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_evidence_tier_unknown_source(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/evidence/tier",
            json={"evidence": {"source": "FAX", "evidence_id": "x"}},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_aggregate(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
        sample_ai_answer_data: dict[str, Any],
    ) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/aggregate",
            json={
                "sub_scores": {"RISK": 70, "KYC_AML": 40},
                "weights": sample_weight_config,
                "evidence": [
                    {
                        "source": "UPLOADED_DOCUMENT",
                        "evidence_id": "doc-risk",
                        "document_id": "doc-risk",
                        "categories": ["RISK"],
                        "analysis_status": "analyzed",
                        "document_kind": "system_export",
                    },
                    sample_ai_answer_data,
                ],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["overall"] == pytest.approx(47.0)
        assert data["by_category"] == {"RISK": 70.0, "KYC_AML": 24.0}
        assert data["risk_level"] == "HIGH"
        assert data["gaps"][0]["vendor_category"] == "KYC_AML"
        assert data["gaps"][0]["severity"] == "MEDIUM"
        assert data["low_confidence_answers"][0]["question_id"] == "q-kyc-1"

    @pytest.mark.asyncio
    async def test_aggregate_invalid_weights(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/aggregate",
            json={"sub_scores": {"RISK": 70}, "weights": {"categories": [{"key": "RISK", "weight": 0.7}]}},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "WEIGHTS_OUT_OF_TOLERANCE"

    @pytest.mark.asyncio
    async def test_score_sections(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/sections",
            json={
                "template": {
                    "name": "Vendor Questionnaire",
                    "sections": [
                        {
                            "section_id": "s-kyc",
                            "title": "KYC and AML Procedures",
                            "weight": 1.0,
                            "questions": [
                                {"question_id": "q1", "weight": 0.5},
                                {"question_id": "q2", "weight": 0.5},
                            ],
                        }
                    ],
                },
                "answers": [{"question_id": "q1", "raw_quality_score": 4, "evidence_tiers": ["TIER_2"]}],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["overall"] == pytest.approx(40.0)
        assert data["risk_level"] == "HIGH"
        assert data["gaps"][0]["vendor_category"] == "KYC_AML"
        assert data["sections"][0]["question_scores"][1]["answered"] is False

    @pytest.mark.asyncio
    async def test_score_sections_bad_question_weights(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/sections",
            json={
                "template": {
                    "name": "Vendor Questionnaire",
                    "sections": [
                        {
                            "section_id": "s-access",
                            "title": "Access Control",
                            "weight": 1.0,
                            "questions": [{"question_id": "q1", "weight": 0.5}],
                        }
                    ],
                },
            },
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "WEIGHTS_OUT_OF_TOLERANCE"

    @pytest.mark.asyncio
    async def test_normalize_template(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/scoring/templates/normalize",
            json={
                "name": "Vendor Questionnaire",
                "sections": [
                    {"section_id": "s-1", "title": "Risk", "weight": 0.2},
                    {"section_id": "s-2", "title": "KYC", "weight": 0.6},
                ],
            },
        )

        assert response.status_code == 200
        weights = [s["weight"] for s in response.json()["sections"]]
        assert weights == [pytest.approx(0.25), pytest.approx(0.75)]


# =============================================================================
# Assessment Endpoint Tests
# =============================================================================


class TestAssessmentRoutes:
    """Tests for the assessment run lifecycle over HTTP."""

    async def _create(self, client: AsyncClient, weight_config: dict[str, Any], sub_scores: dict[str, float]) -> str:
        response = await client.post(
            "/api/v1/assessments",
            json={"organization_id": "org-1", "weights": weight_config, "sub_scores": sub_scores},
        )
        assert response.status_code == 201
        return response.json()["data"]["run_id"]

    @pytest.mark.asyncio
    async def test_full_lifecycle(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
        sample_sub_scores: dict[str, float],
        sample_ai_answer_data: dict[str, Any],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, sample_sub_scores)
        base = f"/api/v1/assessments/{run_id}"

        response = await risk_engine_client.post(
            f"{base}/documents",
            json={"document_id": "doc-risk", "filename": "risk_register.xlsx", "categories": ["RISK"]},
        )
        assert response.status_code == 201
        assert response.json()["data"]["analysis_status"] == "pending"

        response = await risk_engine_client.post(
            f"{base}/documents/doc-risk/analysis",
            json={"status": "analyzed", "document_kind": "system_export"},
        )
        assert response.status_code == 200

        response = await risk_engine_client.post(
            f"{base}/evidence",
            json={
                "document_ids": ["doc-risk"],
                "ai_answers": [sample_ai_answer_data],
                "sub_scores": {"KYC_AML": 40},
            },
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "NEEDS_REVIEW"
        assert data["result"]["gaps"][0]["gap_category"] == "KYC_AML"

        response = await risk_engine_client.post(
            f"{base}/evidence",
            json={"manual_answers": {"q-kyc-1": "Yes, for all customers"}},
        )
        data = response.json()["data"]
        assert data["status"] == "COMPLETED"
        assert len(data["history"]) == 1

        response = await risk_engine_client.post(f"{base}/accept")
        assert response.json()["data"]["status"] == "ACCEPTED"

        response = await risk_engine_client.get(base)
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "ACCEPTED"

    @pytest.mark.asyncio
    async def test_skip_review(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
        sample_ai_answer_data: dict[str, Any],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, {"RISK": 70, "KYC_AML": 40})
        base = f"/api/v1/assessments/{run_id}"
        await risk_engine_client.post(f"{base}/evidence", json={"ai_answers": [sample_ai_answer_data]})

        response = await risk_engine_client.post(f"{base}/skip-review")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "COMPLETED"
        assert data["completed_with_unresolved"] is True

    @pytest.mark.asyncio
    async def test_failed_analysis(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
        sample_sub_scores: dict[str, float],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, sample_sub_scores)
        base = f"/api/v1/assessments/{run_id}"
        await risk_engine_client.post(f"{base}/documents", json={"document_id": "doc-1", "categories": ["RISK"]})
        await risk_engine_client.post(
            f"{base}/documents/doc-1/analysis",
            json={"status": "failed", "reason": "unsupported format"},
        )

        response = await risk_engine_client.post(f"{base}/evidence", json={"document_ids": ["doc-1"]})

        data = response.json()["data"]
        assert data["status"] == "COMPLETED"
        assert data["failures"][0]["evidence_id"] == "doc-1"
        assert data["failures"][0]["reason"] == "unsupported format"

    @pytest.mark.asyncio
    async def test_create_invalid_weights(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.post(
            "/api/v1/assessments",
            json={"organization_id": "org-1", "weights": {"categories": [{"key": "RISK", "weight": 0.2}]}},
        )

        assert response.status_code == 422
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_unknown_run(self, risk_engine_client: AsyncClient) -> None:
        response = await risk_engine_client.get("/api/v1/assessments/missing")

        assert response.status_code == 404
        assert response.json()["error_code"] == "RUN_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_unknown_document(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, {})

        response = await risk_engine_client.post(
            f"/api/v1/assessments/{run_id}/documents/missing/analysis",
            json={"status": "analyzed"},
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "EVIDENCE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_invalid_transition(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, {})

        response = await risk_engine_client.post(f"/api/v1/assessments/{run_id}/accept")

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVALID_TRANSITION"

    @pytest.mark.asyncio
    async def test_empty_draft_submission(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, {})

        response = await risk_engine_client.post(f"/api/v1/assessments/{run_id}/evidence", json={})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_abandon(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, {})

        response = await risk_engine_client.post(f"/api/v1/assessments/{run_id}/abandon")
        assert response.json()["data"]["status"] == "ABANDONED"

        response = await risk_engine_client.get("/api/v1/assessments", params={"organization_id": "org-1"})
        assert [r["run_id"] for r in response.json()["data"]] == [run_id]

    @pytest.mark.asyncio
    async def test_pending_analysis_status_rejected(
        self,
        risk_engine_client: AsyncClient,
        sample_weight_config: dict[str, Any],
    ) -> None:
        run_id = await self._create(risk_engine_client, sample_weight_config, {})
        base = f"/api/v1/assessments/{run_id}"
        await risk_engine_client.post(f"{base}/documents", json={"document_id": "doc-1"})

        response = await risk_engine_client.post(f"{base}/documents/doc-1/analysis", json={"status": "pending"})

        assert response.status_code == 422
