import pytest

from docking_agent.config import get_settings
from docking_agent.services.orchestration.pipeline_executor import PipelineExecutor
from docking_agent.services.orchestration.runtime import build_runtime

from fakes import FakeCategorizer, FakeLedger, FakeReporter, InMemoryStore


@pytest.fixture(autouse=True)
def agent_env(monkeypatch):
    """Isolated settings: agent loop off, no LLM keys, ledger disabled."""
    monkeypatch.setenv("AGENT_ENABLED", "false")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("OPENROUTER_API_KEY", "")
    monkeypatch.setenv("LEDGER_ANCHOR_URL", "")
    monkeypatch.setenv("FIRESTORE_DATABASE_ID", "(default)")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def categorizer(store):
    return FakeCategorizer(store)


@pytest.fixture
def reporter(store):
    return FakeReporter(store)


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def executor(store, categorizer, reporter, ledger):
    return PipelineExecutor(store=store, categorizer=categorizer, reporter=reporter, ledger=ledger)


@pytest.fixture
def runtime(executor):
    return build_runtime(executor)


def make_job(store, target="EGFR-TK", ligand="Gefitinib", affinity=-9.8, **extra):
    fields = {
        "simulationId": extra.pop("simulationId", f"SIM-{target}-{ligand}"),
        "proteinTarget": target,
        "ligandName": ligand,
        "bindingAffinity": affinity,
        "rmsd": extra.pop("rmsd", 1.2),
    }
    fields.update(extra)
    return store.create_job(fields)


@pytest.fixture
def new_job(store):
    def _make(**kwargs):
        return make_job(store, **kwargs)

    return _make
