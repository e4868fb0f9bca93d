"""Tests for Agent."""

import logging
import os

import pytest

from rum_core import Agent
from rum_core.constants import PAGE_LOAD, TRANSACTION_END
from rum_core.models import TransactionState
from rum_core.timeline import InMemoryTimeline
from rum_core.transactions import PayloadQueue
from timeline_samples import PAGE_LOAD_END, TIMING_LEVEL1_ENTRY


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep RUM_* variables out of the agent and restore the package log level."""
    for key in list(os.environ):
        if key.startswith("RUM_"):
            monkeypatch.delenv(key)
    level = logging.getLogger("rum_core").level
    yield
    logging.getLogger("rum_core").setLevel(level)


@pytest.fixture
def agent(timeline, clock):
    return Agent(timeline=timeline, clock=clock)


class TestAgentInit:
    """Tests for Agent.init()."""

    def test_components_wired(self, agent):
        """Test that components are created in dependency order."""
        assert agent.config_service is not None
        assert agent.transaction_service._config is agent.config_service
        assert agent.transaction_service._timeline is agent.timeline
        assert agent.transaction_service._transport is agent.transport
        assert isinstance(agent.transport, PayloadQueue)

    def test_valid_config_starts_page_load(self, agent):
        """Test that init starts a managed page load transaction."""
        agent.init({"serviceName": "shop"})

        tr = agent.get_current_transaction()
        assert agent.is_active()
        assert tr.type == PAGE_LOAD
        assert tr.managed is True
        assert tr.pending_tasks == 1

    def test_page_load_disabled(self, agent):
        """Test that sendPageLoadTransaction=False skips the page load."""
        agent.init({"serviceName": "shop", "sendPageLoadTransaction": False})

        assert agent.get_current_transaction() is None

    def test_missing_config_deactivates(self, agent, caplog):
        """Test that invalid config logs and deactivates the agent."""
        with caplog.at_level(logging.ERROR, logger="rum_core"):
            agent.init({})

        assert not agent.is_active()
        assert "RUM Agent isn't correctly configured: Missing config - serviceName" in caplog.text
        assert agent.start_transaction("t") is None
        assert agent.start_span("s") is None

    def test_explicitly_inactive(self, agent):
        """Test that active=False keeps the agent quiet."""
        agent.init({"serviceName": "shop", "active": False})

        assert not agent.is_active()
        assert agent.get_current_transaction() is None

    def test_init_once(self, agent):
        """Test that a second init is ignored."""
        agent.init({"serviceName": "shop"})
        first = agent.get_current_transaction()
        agent.init({"serviceName": "other"})

        assert agent.get_current_transaction() is first
        assert agent.config_service.get("serviceName") == "shop"

    def test_env_file(self, tmp_path, timeline, clock):
        """Test that RUM_* settings in a .env file are picked up."""
        env_file = tmp_path / ".env"
        env_file.write_text("RUM_SERVICE_NAME=from-env-file\n")
        agent = Agent(timeline=timeline, clock=clock, env_file=env_file)

        agent.init()

        assert agent.is_active()
        assert agent.config_service.get("serviceName") == "from-env-file"

    def test_log_level_applied(self, agent):
        """Test that logLevel maps onto the package logger."""
        agent.init({"serviceName": "shop", "logLevel": "debug"})

        assert logging.getLogger("rum_core").level == logging.DEBUG

        agent.config({"logLevel": "error"})
        assert logging.getLogger("rum_core").level == logging.ERROR

    def test_queue_limit(self, agent):
        """Test that queueLimit caps the payload queue."""
        agent.init({"serviceName": "shop", "queueLimit": 1, "sendPageLoadTransaction": False})

        agent.start_transaction("a").end()
        agent.start_transaction("b").end()

        assert len(agent.transport) == 1


class TestAgentPageLoad:
    """Tests for the page load flow."""

    def test_page_loaded_flushes(self, agent):
        """Test that the load signal finishes and flushes the page load."""
        agent.init({"serviceName": "shop"})
        tr = agent.get_current_transaction()

        agent.page_loaded(PAGE_LOAD_END)

        assert tr.state == TransactionState.FLUSHED
        (payload,) = agent.transport.drain()
        assert payload["type"] == PAGE_LOAD
        assert payload["duration"] == PAGE_LOAD_END

    def test_initial_page_load_name(self, clock):
        """Test naming the page load before init."""
        agent = Agent(timeline=InMemoryTimeline(timing=TIMING_LEVEL1_ENTRY), clock=clock)
        agent.set_initial_page_load_name("/checkout")
        agent.init({"serviceName": "shop"})

        agent.page_loaded(PAGE_LOAD_END)

        (payload,) = agent.transport.drain()
        assert payload["name"] == "/checkout"
        assert len(payload["spans"]) == 4

    def test_page_loaded_without_page_load(self, agent):
        """Test that the load signal is ignored for other transactions."""
        agent.init({"serviceName": "shop", "sendPageLoadTransaction": False})
        tr = agent.start_transaction("t", "route-change")

        agent.page_loaded(10)

        assert tr.state == TransactionState.OPEN


class TestAgentPublicApi:
    """Tests for the public API surface."""

    def test_transactions_and_spans(self, agent, clock):
        """Test starting transactions and spans through the agent."""
        agent.init({"serviceName": "shop", "sendPageLoadTransaction": False})

        tr = agent.start_transaction("/cart", "route-change", managed=True)
        span = agent.start_span("render", "app")
        clock.advance(5)
        span.end()
        tr.end()

        (payload,) = agent.transport.drain()
        assert payload["name"] == "/cart"
        assert "render" in [s["name"] for s in payload["spans"]]

    def test_context_and_filters(self, agent):
        """Test user context, custom context, labels and filters."""
        agent.init({"serviceName": "shop", "sendPageLoadTransaction": False})
        agent.set_user_context({"id": 7, "username": "ann"})
        agent.set_custom_context({"plan": "pro"})
        agent.add_labels({"release.name": "r1"})
        seen = []
        agent.add_filter(lambda payload: seen.append(payload["name"]) or payload)

        agent.start_transaction("t").end()

        (payload,) = agent.transport.drain()
        assert seen == ["t"]
        assert payload["context"] == {
            "user": {"id": 7, "username": "ann"},
            "custom": {"plan": "pro"},
            "tags": {"release_name": "r1"},
        }

    def test_observe(self, agent):
        """Test transaction end listeners."""
        agent.init({"serviceName": "shop", "sendPageLoadTransaction": False})
        ended = []
        agent.observe(TRANSACTION_END, ended.append)

        tr = agent.start_transaction("t")
        tr.end()

        assert ended == [tr]

    def test_observe_unsubscribe(self, agent):
        """Test that the handle returned by observe() removes the listener."""
        agent.init({"serviceName": "shop", "sendPageLoadTransaction": False})
        ended = []
        unsubscribe = agent.observe(TRANSACTION_END, ended.append)

        unsubscribe()
        agent.start_transaction("t").end()

        assert ended == []
