"""
Tests for the JSON-RPC block source, the processing pipeline, the metrics
tracker, config loading, validators, and the HTTP routes.
"""

import os
import sys

# Ensure project root is on sys.path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import requests
from fastapi.testclient import TestClient

import app.config as config
from api import routes
from app.main import app
from app.config import ConfigError, RpcSettings, load_rpc_settings
from core.chain.models import NULL_TXID, RetrievalError
from services.bitcoin_rpc import BitcoinRpcClient
from services.processing_pipeline import ProcessingService
from utils.metrics import MetricsTracker
from utils.validators import validate_height_range

from test_funding_graph import (
    FakeBlockSource,
    _coinbase_only_blocks,
    _multi_hop_blocks,
    _txid,
)


# ── Stub HTTP Session ─────────────────────────────────────────────────


class _StubResponse:
    def __init__(self, body, status_code=200):
        self._body = body
        self.status_code = status_code
        self.ok = 200 <= status_code < 300

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class _StubSession:
    """Answers JSON-RPC calls from a method -> handler table."""

    def __init__(self, handlers):
        self.handlers = handlers
        self.auth = None
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        handler = self.handlers[json["method"]]
        return handler(*json["params"])


def _settings():
    return RpcSettings(url="http://127.0.0.1:18443", user="alice", password="secret", timeout=5.0)


def _verbose_block(block_hash, height):
    return {
        "hash": block_hash,
        "height": height,
        "tx": [
            {"txid": _txid(1), "vin": [{"coinbase": "03a0860100", "sequence": 4294967295}]},
            {
                "txid": _txid(2),
                "vin": [
                    {"txid": _txid(9), "vout": 0},
                    {"txid": _txid(9), "vout": 3},
                ],
            },
        ],
    }


def _ok(result):
    return _StubResponse({"result": result, "error": None, "id": 1})


# ── RPC Client Tests ──────────────────────────────────────────────────


class TestBitcoinRpcClient:
    def test_get_block_hash(self):
        session = _StubSession({"getblockhash": lambda h: _ok(f"hash{h}")})
        client = BitcoinRpcClient(_settings(), session=session)
        assert client.get_block_hash(7) == "hash7"
        assert session.auth == ("alice", "secret")
        url, payload, timeout = session.calls[0]
        assert url == "http://127.0.0.1:18443"
        assert payload["params"] == [7]
        assert timeout == 5.0

    def test_get_block_parses_coinbase_and_spends(self):
        session = _StubSession({"getblock": lambda h, verbosity: _ok(_verbose_block(h, 12))})
        block = BitcoinRpcClient(_settings(), session=session).get_block("abc")
        assert block.hash == "abc"
        assert block.height == 12
        coinbase, spend = block.transactions
        assert coinbase.is_coinbase()
        assert coinbase.inputs[0].previous_output.txid == NULL_TXID
        assert [i.previous_output.vout for i in spend.inputs] == [0, 3]
        assert not spend.is_coinbase()
        assert session.calls[0][1]["params"] == ["abc", 2]

    def test_rpc_error_payload(self):
        err = _StubResponse(
            {"result": None, "error": {"code": -8, "message": "Block height out of range"}},
            status_code=500,
        )
        client = BitcoinRpcClient(_settings(), session=_StubSession({"getblockhash": lambda h: err}))
        with pytest.raises(RetrievalError) as exc:
            client.get_block_hash(999)
        assert exc.value.height == 999
        assert "out of range" in str(exc.value)

    def test_transport_error(self):
        def boom(*_):
            raise requests.ConnectionError("refused")

        client = BitcoinRpcClient(_settings(), session=_StubSession({"getblockhash": boom}))
        with pytest.raises(RetrievalError):
            client.get_block_hash(1)

    def test_http_error_without_json(self):
        bad = _StubResponse(ValueError("not json"), status_code=401)
        client = BitcoinRpcClient(_settings(), session=_StubSession({"getblock": lambda h, v: bad}))
        with pytest.raises(RetrievalError) as exc:
            client.get_block("abc")
        assert exc.value.block_hash == "abc"
        assert "401" in str(exc.value)

    def test_malformed_block(self):
        session = _StubSession({"getblock": lambda h, v: _ok({"hash": h})})
        with pytest.raises(RetrievalError):
            BitcoinRpcClient(_settings(), session=session).get_block("abc")

    def test_get_block_count(self):
        session = _StubSession({"getblockcount": lambda: _ok(101)})
        assert BitcoinRpcClient(_settings(), session=session).get_block_count() == 101


# ── Config Tests ──────────────────────────────────────────────────────


_RPC_ENV = ("BITCOIN_RPC_URL", "BITCOIN_RPC_USER", "BITCOIN_RPC_PASSWORD")


def _clear_rpc_env(monkeypatch):
    # setenv first so teardown restores the original state even after
    # load_dotenv writes straight into os.environ
    for name in _RPC_ENV:
        monkeypatch.setenv(name, "unset")
        monkeypatch.delenv(name)


class TestConfig:
    def test_missing_credentials(self, monkeypatch):
        _clear_rpc_env(monkeypatch)
        monkeypatch.setenv("BITCOIN_RPC_USER", "u")
        with pytest.raises(ConfigError) as exc:
            load_rpc_settings()
        assert "BITCOIN_RPC_URL" in str(exc.value)
        assert "BITCOIN_RPC_PASSWORD" in str(exc.value)
        assert "BITCOIN_RPC_USER" not in str(exc.value)

    def test_complete_credentials(self, monkeypatch):
        monkeypatch.setenv("BITCOIN_RPC_URL", "http://node:8332")
        monkeypatch.setenv("BITCOIN_RPC_USER", "u")
        monkeypatch.setenv("BITCOIN_RPC_PASSWORD", "p")
        settings = load_rpc_settings()
        assert settings.url == "http://node:8332"
        assert settings.user == "u"

    def test_dotenv_file_supplies_credentials(self, monkeypatch, tmp_path):
        _clear_rpc_env(monkeypatch)
        monkeypatch.setenv("BITCOIN_RPC_USER", "from_env")
        env_file = tmp_path / ".env"
        env_file.write_text(
            "BITCOIN_RPC_URL=http://127.0.0.1:18443\n"
            "BITCOIN_RPC_USER=from_file\n"
            "BITCOIN_RPC_PASSWORD=hunter2\n"
        )
        assert config.load_env_file(str(env_file))
        settings = load_rpc_settings()
        assert settings.url == "http://127.0.0.1:18443"
        assert settings.password == "hunter2"
        # variables already in the environment are not overridden
        assert settings.user == "from_env"


# ── Validator Tests ───────────────────────────────────────────────────


class TestValidator:
    def test_valid_range(self):
        assert validate_height_range(0, 0) is None
        assert validate_height_range(5, 10) is None

    def test_reversed_range(self):
        assert "must not exceed" in validate_height_range(10, 5)

    def test_negative(self):
        assert "non-negative" in validate_height_range(-1, 5)

    def test_non_integer(self):
        assert validate_height_range("1", 5) is not None
        assert validate_height_range(True, 5) is not None

    def test_span_limit(self):
        assert validate_height_range(0, 9, max_span=10) is None
        assert validate_height_range(0, 10, max_span=10) is not None


# ── Metrics Tracker Tests ─────────────────────────────────────────────


class TestMetricsTracker:
    def test_initial_state(self):
        assert MetricsTracker().get_metrics()["status"] == "no_processing_yet"

    def test_record_then_failure(self):
        t = MetricsTracker()
        t.record({"total_vertices": 3})
        t.record_failure("node down")
        m = t.get_metrics()
        assert m["status"] == "last_run_failed"
        assert m["total_runs"] == 2
        assert m["failed_runs"] == 1
        assert m["last_run"] == {"total_vertices": 3}
        assert m["last_error"] == "node down"


# ── Pipeline Tests ────────────────────────────────────────────────────


class TestProcessingService:
    def test_process_summary(self):
        result = ProcessingService(FakeBlockSource(_multi_hop_blocks())).process(0, 2)
        summary = result["summary"]
        assert summary["total_vertices"] == 6
        assert summary["blocks_scanned"] == 3
        assert summary["start_height"] == 0
        assert result["top_funders"][0]["txid"] == NULL_TXID
        assert result["top_funders"][0]["funds"] == 3
        assert all(f["funds"] > 0 for f in result["top_funders"])

    def test_path_reuses_cached_graph(self):
        source = FakeBlockSource(_multi_hop_blocks())
        service = ProcessingService(source)
        service.process(0, 2)
        calls = len(source.hash_calls)
        assert service.path(0, 2, _txid(1), _txid(21).upper())
        assert not service.path(0, 2, _txid(21), _txid(1))
        assert len(source.hash_calls) == calls

    def test_retrieval_error_propagates(self):
        service = ProcessingService(FakeBlockSource(_coinbase_only_blocks(2)))
        with pytest.raises(RetrievalError):
            service.process(0, 5)


# ── API Tests ─────────────────────────────────────────────────────────


@pytest.fixture
def client():
    routes.graph_cache.invalidate()
    routes.metrics_tracker = MetricsTracker()
    app.dependency_overrides[routes.get_block_source] = lambda: FakeBlockSource(_multi_hop_blocks())
    yield TestClient(app)
    app.dependency_overrides.clear()
    routes.graph_cache.invalidate()


class TestRoutes:
    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_build_and_query(self, client):
        resp = client.post("/graph", json={"start_height": 0, "end_height": 2})
        assert resp.status_code == 200
        assert resp.json()["summary"]["total_edges"] == 5

        params = {"start_height": 0, "end_height": 2, "source": _txid(1), "target": _txid(21)}
        resp = client.get("/graph/path", params=params)
        assert resp.status_code == 200
        assert resp.json()["path_exists"] is True

        params["source"], params["target"] = _txid(21), _txid(1)
        assert client.get("/graph/path", params=params).json()["path_exists"] is False

        assert client.get("/metrics").json()["status"] == "ready"

    def test_path_before_build(self, client):
        params = {"start_height": 0, "end_height": 2, "source": "a", "target": "b"}
        assert client.get("/graph/path", params=params).status_code == 404

    def test_invalid_range(self, client):
        resp = client.post("/graph", json={"start_height": 3, "end_height": 1})
        assert resp.status_code == 400

    def test_retrieval_failure(self, client):
        resp = client.post("/graph", json={"start_height": 0, "end_height": 9})
        assert resp.status_code == 502
        assert client.get("/metrics").json()["status"] == "last_run_failed"

    def test_missing_config(self, client, monkeypatch):
        app.dependency_overrides.clear()
        routes._rpc_client.cache_clear()
        _clear_rpc_env(monkeypatch)
        resp = client.post("/graph", json={"start_height": 0, "end_height": 1})
        assert resp.status_code == 500
        routes._rpc_client.cache_clear()

    def test_path_query_never_touches_block_source(self, client):
        client.post("/graph", json={"start_height": 0, "end_height": 2})
        # any block retrieval from here on fails with 502
        app.dependency_overrides[routes.get_block_source] = lambda: FakeBlockSource([])

        params = {"start_height": 0, "end_height": 2, "source": _txid(20).upper(), "target": _txid(21)}
        resp = client.get("/graph/path", params=params)
        assert resp.status_code == 200
        assert resp.json()["path_exists"] is True

        routes.graph_cache.invalidate()
        assert client.get("/graph/path", params=params).status_code == 404
