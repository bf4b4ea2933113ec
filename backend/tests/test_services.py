"""Tests for the external-service clients: LLM transport, categorization, reports, ledger, store."""

import asyncio
import json
from unittest.mock import MagicMock

import httpx
import pytest
from google.api_core.exceptions import GoogleAPIError

from docking_agent.config import get_settings
from docking_agent.exceptions import ExternalServiceError, PersistenceError
from docking_agent.models import DockingMetrics
from docking_agent.services.categorization import CategorizationService
from docking_agent.services.firestore import FirestoreService
from docking_agent.services.ledger import LedgerAnchorService, LedgerConfig, payload_digest
from docking_agent.services.llm import LLMService, parse_json_object
from docking_agent.services.report_generation import DEFAULT_CONTENT, ReportGenerationService


class StubLLM:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    async def complete_json_async(self, system, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response


METRICS = DockingMetrics(
    proteinTarget="EGFR-TK",
    ligandName="Gefitinib",
    bindingAffinity=-9.8,
    rmsd=1.2,
    interactionData={"hBonds": 3},
)


# ---------------------------------------------------------------------------
# parse_json_object
# ---------------------------------------------------------------------------

class TestParseJsonObject:
    def test_plain_json(self):
        assert parse_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_json(self):
        assert parse_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    def test_rejects_non_object(self):
        with pytest.raises(ValueError):
            parse_json_object("[1, 2]")
        with pytest.raises(ValueError):
            parse_json_object("no json here")


# ---------------------------------------------------------------------------
# LLMService
# ---------------------------------------------------------------------------

@pytest.fixture
def openrouter_key(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    get_settings.cache_clear()


class TestLLMService:
    def test_falls_back_to_openrouter(self, openrouter_key):
        seen = []

        def handler(request):
            seen.append(request.url.host)
            body = {"choices": [{"message": {"content": json.dumps({"tags": []})}}]}
            return httpx.Response(200, json=body)

        llm = LLMService(transport=httpx.MockTransport(handler))
        data = asyncio.run(llm.complete_json_async("system", "prompt"))

        assert data == {"tags": []}
        assert seen == ["openrouter.ai"]

    def test_provider_error_becomes_external_service_error(self, openrouter_key):
        llm = LLMService(transport=httpx.MockTransport(lambda request: httpx.Response(400, json={})))
        with pytest.raises(ExternalServiceError):
            asyncio.run(llm.complete_json_async("system", "prompt"))

    def test_no_keys_configured(self):
        with pytest.raises(ExternalServiceError):
            asyncio.run(LLMService().complete_json_async("system", "prompt"))


# ---------------------------------------------------------------------------
# CategorizationService
# ---------------------------------------------------------------------------

class TestCategorization:
    def test_returns_valid_tags(self):
        llm = StubLLM({"tags": [
            {"type": "binding_strength", "value": "strong"},
            {"type": "protein_family"},
            {"type": "drug_class", "value": "TKI"},
        ]})

        tags = asyncio.run(CategorizationService(llm).categorize("EGFR-TK", "Gefitinib", -9.8))

        assert [(t.type, t.value) for t in tags] == [("binding_strength", "strong"), ("drug_class", "TKI")]
        assert "EGFR-TK" in llm.prompts[0]
        assert "-9.8 kcal/mol" in llm.prompts[0]

    def test_missing_tags_list_is_malformed(self):
        with pytest.raises(ExternalServiceError):
            asyncio.run(CategorizationService(StubLLM({"labels": []})).categorize("A", "B", -5.0))

    def test_transport_error_propagates(self):
        llm = StubLLM(error=ExternalServiceError("timeout"))
        with pytest.raises(ExternalServiceError):
            asyncio.run(CategorizationService(llm).categorize("A", "B", -5.0))


# ---------------------------------------------------------------------------
# ReportGenerationService
# ---------------------------------------------------------------------------

class TestReportGeneration:
    def test_builds_content(self):
        llm = StubLLM({
            "executiveSummary": "Strong binder.",
            "fullContent": "Details.",
            "performanceMetrics": {"bindingEnergy": -9.8, "toxicityRisk": "low"},
        })

        content = asyncio.run(ReportGenerationService(llm).generate_report(METRICS))

        assert content.executiveSummary == "Strong binder."
        assert content.performanceMetrics["toxicityRisk"] == "low"
        prompt = llm.prompts[0]
        assert "Ligand Efficiency: N/A" in prompt
        assert '"hBonds": 3' in prompt

    def test_defaults_for_missing_text(self):
        content = asyncio.run(ReportGenerationService(StubLLM({})).generate_report(METRICS))
        assert content.executiveSummary == "Analysis completed successfully."
        assert content.fullContent == DEFAULT_CONTENT
        assert content.performanceMetrics == {}

    def test_malformed_metrics(self):
        llm = StubLLM({"executiveSummary": "x", "performanceMetrics": [1, 2]})
        with pytest.raises(ExternalServiceError):
            asyncio.run(ReportGenerationService(llm).generate_report(METRICS))


# ---------------------------------------------------------------------------
# LedgerAnchorService
# ---------------------------------------------------------------------------

PAYLOAD = {"reportId": "REP-2026-ABC123", "simulationId": "SIM-1", "executiveSummary": "x",
           "generatedAt": "2026-01-01T00:00:00+00:00"}


class TestLedger:
    def test_disabled_returns_none(self):
        service = LedgerAnchorService(LedgerConfig())
        assert service.enabled is False
        assert asyncio.run(service.anchor(PAYLOAD)) is None
        assert asyncio.run(service.verify("anything")) is False

    def test_anchor_returns_token(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"signature": "5xSig"})

        cfg = LedgerConfig(anchor_url="https://ledger.test/v1/anchors", api_key="k")
        service = LedgerAnchorService(cfg, transport=httpx.MockTransport(handler))

        assert asyncio.run(service.anchor(PAYLOAD)) == "5xSig"
        assert bodies[0]["digest"] == payload_digest(PAYLOAD)
        assert bodies[0]["network"] == "devnet"

    def test_anchor_failure(self):
        cfg = LedgerConfig(anchor_url="https://ledger.test/v1/anchors")
        service = LedgerAnchorService(cfg, transport=httpx.MockTransport(lambda r: httpx.Response(401)))
        with pytest.raises(ExternalServiceError):
            asyncio.run(service.anchor(PAYLOAD))

    def test_anchor_without_token(self):
        cfg = LedgerConfig(anchor_url="https://ledger.test/v1/anchors")
        service = LedgerAnchorService(cfg, transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        with pytest.raises(ExternalServiceError):
            asyncio.run(service.anchor(PAYLOAD))

    def test_verify(self):
        def handler(request):
            return httpx.Response(200 if request.url.path.endswith("/known") else 404)

        cfg = LedgerConfig(anchor_url="https://ledger.test/v1/anchors")
        service = LedgerAnchorService(cfg, transport=httpx.MockTransport(handler))
        assert asyncio.run(service.verify("known")) is True
        assert asyncio.run(service.verify("unknown")) is False

    def test_digest_is_key_order_independent(self):
        assert payload_digest({"a": 1, "b": 2}) == payload_digest({"b": 2, "a": 1})


# ---------------------------------------------------------------------------
# FirestoreService
# ---------------------------------------------------------------------------

class TestFirestoreService:
    def test_create_job_defaults(self):
        client = MagicMock()
        client.collection.return_value.document.return_value.id = "abc"
        store = FirestoreService(client=client)

        job = store.create_job({
            "simulationId": "SIM-1", "proteinTarget": "EGFR", "ligandName": "X",
            "bindingAffinity": -7.5, "rmsd": 0.8,
        })

        assert job.id == "abc"
        assert job.status == "pending"
        client.collection.return_value.document.return_value.set.assert_called_once()

    def test_google_errors_become_persistence_errors(self):
        client = MagicMock()
        client.collection.return_value.document.return_value.get.side_effect = GoogleAPIError("down")
        store = FirestoreService(client=client)

        with pytest.raises(PersistenceError):
            store.get_job("abc")

    def test_update_missing_job_returns_none(self):
        client = MagicMock()
        client.collection.return_value.document.return_value.get.return_value.exists = False
        store = FirestoreService(client=client)

        assert store.update_job("abc", {"status": "processing"}) is None
