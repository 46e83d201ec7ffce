"""
Tests for the ConsensusService facade.
"""

import time

import pytest

from quorum.config import QuorumConfig
from quorum.consensus import FAILURE_TEXT
from quorum.dispatch import DispatchConfig
from quorum.errors import AllProvidersFailedError, NoProvidersEnabledError, NotFoundError
from quorum.providers import AdapterRegistry, ErrorCode, ProviderConfig, ProviderRegistry
from quorum.providers.base import BaseAdapter
from quorum.providers.implementations import StaticAdapter
from quorum.service import ConsensusService


class BlockingAdapter(BaseAdapter):
    """Blocking SDK stand-in that ignores its deadline."""

    def __init__(self, seconds):
        self.seconds = seconds

    def _call_impl(self, config, conversation, max_tokens):
        time.sleep(self.seconds)
        return "too late"


class RecordingAdapter:
    def __init__(self, text):
        self.text = text
        self.conversations = []

    async def call(self, config, conversation, max_tokens):
        self.conversations.append((list(conversation), max_tokens))
        return self.text


@pytest.fixture
def service(registry, adapters, tracker):
    return ConsensusService(registry=registry, adapters=adapters, tracker=tracker)


@pytest.mark.integration
class TestConsensus:
    @pytest.mark.asyncio
    async def test_dispatch_consensus(self, service):
        result = await service.dispatch_consensus("What is the capital of France?")

        assert result.succeeded
        assert len(result.responses) == 3
        assert len(result.vote_breakdown) == 3
        assert 0.5 <= result.confidence <= 0.95
        assert sum(v.weight for v in result.vote_breakdown) == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_prompt_and_system_prompt_reach_adapters(self, registry, tracker):
        recorder = RecordingAdapter("answer")
        adapters = AdapterRegistry({"alpha": recorder, "beta": StaticAdapter("x"), "gamma": StaticAdapter("y")})
        service = ConsensusService(registry=registry, adapters=adapters, tracker=tracker)

        await service.dispatch_consensus("Question?", system_prompt="Be brief.", max_tokens=64)

        conversation, max_tokens = recorder.conversations[0]
        assert [(m.role, m.content) for m in conversation] == [
            ("system", "Be brief."),
            ("user", "Question?"),
        ]
        assert max_tokens == 64

    @pytest.mark.asyncio
    async def test_all_failed_returns_sentinel(self, registry, tracker):
        adapters = AdapterRegistry(
            {n: StaticAdapter(error="down") for n in ("alpha", "beta", "gamma")}
        )
        service = ConsensusService(registry=registry, adapters=adapters, tracker=tracker)

        result = await service.dispatch_consensus("Anyone there?")

        assert result.consensus_text == FAILURE_TEXT
        assert result.confidence == 0.0
        assert all(r.failed for r in result.responses)

    @pytest.mark.asyncio
    async def test_no_providers_enabled(self, service, static_adapters):
        for config in service.list_providers():
            service.set_provider_enabled(config.name, False)

        with pytest.raises(NoProvidersEnabledError):
            await service.dispatch_consensus("Hello?")

        assert all(a.calls == 0 for a in static_adapters.values())

    @pytest.mark.asyncio
    async def test_blank_prompt_rejected(self, service):
        with pytest.raises(ValueError):
            await service.dispatch_consensus("   ")

    def test_sync_wrapper(self, service):
        result = service.generate_consensus("What is the capital of France?")

        assert result.selected_provider in {"alpha", "beta", "gamma"}

    def test_sync_wrapper_does_not_wait_for_hung_thread(self, make_provider, tracker):
        registry = ProviderRegistry(
            [make_provider("quick", 1), make_provider("stuck", 2, timeout_seconds=0.2)]
        )
        adapters = AdapterRegistry({"quick": StaticAdapter("done"), "stuck": BlockingAdapter(3)})
        service = ConsensusService(registry=registry, adapters=adapters, tracker=tracker)

        start = time.perf_counter()
        result = service.generate_consensus("hello")
        elapsed = time.perf_counter() - start

        assert elapsed < 1.0
        assert result.consensus_text == "done"
        assert result.responses[1].error_code == ErrorCode.TIMEOUT


@pytest.mark.integration
class TestFallback:
    @pytest.mark.asyncio
    async def test_dispatch_fallback_returns_text(self, service):
        assert await service.dispatch_fallback("Capital?") == "Paris is the capital of France"

    @pytest.mark.asyncio
    async def test_dispatch_fallback_all_failed(self, registry, tracker):
        adapters = AdapterRegistry(
            {n: StaticAdapter(error="down") for n in ("alpha", "beta", "gamma")}
        )
        service = ConsensusService(registry=registry, adapters=adapters, tracker=tracker)

        with pytest.raises(AllProvidersFailedError):
            await service.dispatch_fallback("Anyone?")

    def test_sync_wrapper(self, service):
        assert service.query_with_fallback("Capital?") == "Paris is the capital of France"

    def test_sync_wrapper_skips_hung_provider_promptly(self, make_provider, tracker):
        registry = ProviderRegistry(
            [make_provider("stuck", 1, timeout_seconds=0.2), make_provider("backup", 2)]
        )
        adapters = AdapterRegistry({"stuck": BlockingAdapter(3), "backup": StaticAdapter("backup answer")})
        service = ConsensusService(registry=registry, adapters=adapters, tracker=tracker)

        start = time.perf_counter()
        answer = service.query_with_fallback("hello")

        assert time.perf_counter() - start < 1.0
        assert answer == "backup answer"


@pytest.mark.unit
class TestConfigurationAndFeedback:
    def test_set_provider_credential(self, service):
        service.set_provider_credential("alpha", "sk-abc")

        assert service.registry.get("alpha").credential == "sk-abc"

    def test_unknown_provider(self, service):
        with pytest.raises(NotFoundError):
            service.set_provider_enabled("missing", True)

    def test_reconfigure_provider(self, service):
        updated = service.reconfigure_provider("beta", model="bigger-model")

        assert updated.model == "bigger-model"
        assert service.list_providers()[1].model == "bigger-model"

    def test_record_feedback_and_stats(self, service):
        service.record_feedback("alpha", True, 100, rating=4)
        service.record_feedback("alpha", False, 300, rating=2)

        stats = service.get_provider_stats()
        assert stats[0].provider_name == "alpha"
        assert stats[0].avg_latency_ms == pytest.approx(200.0)
        assert stats[0].success_count == 1
        assert service.get_average_rating("alpha") == pytest.approx(3.0)
        assert service.get_average_rating("beta") is None

    @pytest.mark.asyncio
    async def test_dispatch_feeds_tracker(self, service):
        await service.dispatch_consensus("Capital?")

        assert {s.provider_name for s in service.get_provider_stats()} == {"alpha", "beta", "gamma"}


@pytest.mark.unit
def test_from_config(make_provider):
    config = QuorumConfig(
        providers=[make_provider("solo", 1)],
        dispatch=DispatchConfig(timeout_seconds=5.0),
        max_ratings=10,
    )
    adapters = AdapterRegistry({"solo": StaticAdapter("only me")})

    service = ConsensusService.from_config(config, adapters=adapters)

    assert [p.name for p in service.list_providers()] == ["solo"]
    assert service.tracker.max_ratings == 10
    assert service.dispatcher.config.timeout_seconds == 5.0
    assert service.generate_consensus("Hi").consensus_text == "only me"


@pytest.mark.unit
def test_default_service_uses_builtin_providers():
    service = ConsensusService()

    assert [p.name for p in service.list_providers()] == ["groq", "ollama", "openai", "claude"]
    assert isinstance(service.list_providers()[0], ProviderConfig)
