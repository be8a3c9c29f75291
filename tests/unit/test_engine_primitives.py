"""Engine Layer 기본 요소 테스트 (Budget / Strategy / Escalation / Context)"""
import asyncio

import pytest

from kl_taxonomy.core.exceptions import (
    BlockedException,
    BrowserException,
    InvalidTargetException,
    ParsingException,
    TransientNetworkException,
)
from kl_taxonomy.engine import (
    BudgetConfig,
    BudgetManager,
    ErrorKind,
    ExecutionStrategy,
    ResolutionContext,
    ResolutionResult,
    ResolutionStatus,
    Stage,
    StructuralMismatchError,
    escalate,
)
from kl_taxonomy.engine.budget import CHILDREN_BROWSER_STAGES
from kl_taxonomy.engine.context import ProxyConfig, SessionContext

from tests.fixtures.fakes import make_session


def _stage(name, items=None, error=None, delay=0.0, **kwargs):
    calls = {"count": 0}

    async def run(ctx):
        calls["count"] += 1
        if delay:
            await asyncio.sleep(delay)
        if error is not None:
            raise error
        return list(items or [])

    stage = Stage(name, run, **kwargs)
    stage.calls = calls
    return stage


class TestBudget:
    def test_children_defaults(self):
        config = BudgetConfig.for_children()
        assert config.total_budget == 150.0
        assert config.stage_timeouts["browser"] == 135.0

    def test_children_browser_sub_stages_have_own_bounds(self):
        manager = BudgetManager(BudgetConfig.for_children())
        manager.start()
        for name in CHILDREN_BROWSER_STAGES:
            assert manager.get_timeout_for(name) <= 40.0

    def test_fields_defaults(self):
        config = BudgetConfig.for_fields()
        assert config.total_budget == 240.0
        assert config.stage_timeouts["inject_category"] == 75.0

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            BudgetConfig(total_budget=0)
        with pytest.raises(ValueError):
            BudgetConfig(total_budget=10, stage_timeouts={"x": 20})

    def test_timeout_is_bounded_by_remaining(self):
        manager = BudgetManager(BudgetConfig(total_budget=5, stage_timeouts={"listing_fetch": 3}))
        manager.start()
        assert manager.get_timeout_for("listing_fetch") <= 3
        assert 4.5 < manager.get_timeout_for("unknown") <= 5

    def test_checkpoint_requires_start(self):
        with pytest.raises(RuntimeError):
            BudgetManager().checkpoint("x")

    def test_report(self):
        manager = BudgetManager(BudgetConfig(total_budget=1))
        manager.start()
        manager.checkpoint("cache_miss")
        report = manager.get_report()
        assert "cache_miss" in report["checkpoints"]
        assert report["is_exhausted"] is False


class TestStrategy:
    @pytest.mark.parametrize(
        "error,kind",
        [
            (TransientNetworkException("u", "503"), ErrorKind.TRANSIENT_NETWORK),
            (BlockedException("captcha"), ErrorKind.TRANSIENT_NETWORK),
            (asyncio.TimeoutError(), ErrorKind.TRANSIENT_NETWORK),
            (BrowserException("launch failed"), ErrorKind.RENDER_FAILURE),
            (ParsingException("no rows"), ErrorKind.STRUCTURAL_MISMATCH),
            (StructuralMismatchError("x"), ErrorKind.STRUCTURAL_MISMATCH),
            (KeyError("x"), ErrorKind.UNKNOWN),
        ],
    )
    def test_classify(self, error, kind):
        assert ExecutionStrategy.classify(error) == kind

    def test_retry_only_for_render_failures(self):
        assert ExecutionStrategy.get_retry_count(BrowserException("x")) == 1
        assert ExecutionStrategy.get_retry_count(ParsingException("x")) == 0

    def test_cancellation_never_escalates(self):
        assert ExecutionStrategy.should_escalate(asyncio.CancelledError()) is False


class TestContext:
    def test_requires_target(self):
        with pytest.raises(InvalidTargetException):
            ResolutionContext(target_id="  ", target_url="")

    def test_cache_keys(self):
        assert ResolutionContext(target_id="161").cache_key() == "id:161"
        ctx = ResolutionContext(target_url="https://www.kleinanzeigen.de/s-autos/c216/")
        assert ctx.cache_key() == "url:/s-autos/c216"
        assert ctx.numeric_id == "216"

    def test_session_requires_proxy(self):
        assert ResolutionContext(target_id="1", session=SessionContext()).has_session is False
        assert ResolutionContext(target_id="1", session=make_session()).has_session is True

    def test_proxy_urls(self):
        proxy = ProxyConfig(host="10.0.0.1", port=1080, type="socks5", username="u", password="p")
        assert proxy.http_url() == "socks5h://u:p@10.0.0.1:1080"
        assert proxy.playwright_proxy() == {"server": "socks5://10.0.0.1:1080", "username": "u", "password": "p"}


class TestEscalate:
    @pytest.mark.asyncio
    async def test_first_non_empty_wins(self):
        stages = [_stage("a"), _stage("b", items=[1, 2]), _stage("c", items=[3])]
        outcome = await escalate(stages, ResolutionContext(target_id="1"))

        assert outcome.items == [1, 2]
        assert outcome.stage_name == "b"
        assert stages[2].calls["count"] == 0
        assert outcome.describe() == "a:empty,b:hit"

    @pytest.mark.asyncio
    async def test_errors_escalate(self):
        stages = [
            _stage("a", error=TransientNetworkException("u", "reset")),
            _stage("b", error=KeyError("boom")),
            _stage("c", items=["ok"]),
        ]
        outcome = await escalate(stages, ResolutionContext(target_id="1"))

        assert outcome.items == ["ok"]
        assert [a.error_kind for a in outcome.attempts[:2]] == ["transient_network", "unknown"]

    @pytest.mark.asyncio
    async def test_render_failure_moves_to_next_stage(self):
        stages = [_stage("a", error=BrowserException("crashed")), _stage("b", items=[1])]
        outcome = await escalate(stages, ResolutionContext(target_id="1"))

        assert outcome.items == [1]
        assert outcome.attempt("a").error_kind == "render_failure"

    @pytest.mark.asyncio
    async def test_session_stages_skipped_without_session(self):
        stages = [_stage("snapshot", live=False), _stage("listing_fetch", items=[1], requires_session=True)]
        outcome = await escalate(stages, ResolutionContext(target_id="1"))

        assert outcome.items == []
        assert outcome.attempt("listing_fetch").outcome == "skipped"
        assert stages[1].calls["count"] == 0
        assert outcome.live_stage_ran() is False

    @pytest.mark.asyncio
    async def test_stage_timeout(self):
        stages = [_stage("slow", items=[1], delay=1.0, timeout_s=0.05), _stage("fast", items=[2])]
        outcome = await escalate(stages, ResolutionContext(target_id="1"))

        assert outcome.items == [2]
        assert outcome.attempt("slow").outcome == "timeout"

    @pytest.mark.asyncio
    async def test_exhausted_budget_stops_chain(self):
        budget = BudgetManager(BudgetConfig(total_budget=0.6, min_remaining=0.5))
        budget.start()
        stages = [_stage("a", delay=0.2), _stage("b", items=[1])]
        outcome = await escalate(stages, ResolutionContext(target_id="1"), budget=budget)

        assert outcome.items == []
        assert outcome.attempt("b").outcome == "skipped"

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        stage = _stage("a", delay=5.0)
        task = asyncio.create_task(escalate([stage], ResolutionContext(target_id="1")))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task


class TestResult:
    def test_empty_stage_result_has_no_source(self):
        result = ResolutionResult.from_stage([], "listing_fetch", 10)
        assert result.status == ResolutionStatus.EMPTY
        assert result.source == "none"

    def test_cache_result(self):
        result = ResolutionResult.from_cache([1])
        assert result.cached is True and result.is_success
