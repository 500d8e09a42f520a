"""
Crude — Pipeline Tests
========================

What:  Step ordering and context propagation through a Pipeline.

What we test:
    ✅ Steps run in order, each seeing the context its predecessor passed on
    ✅ A step that returns a Response short-circuits the rest
    ✅ unshift / push change the chain
    ✅ Running past the last step answers 404
    ✅ RequestContext is frozen; evolve() derives a new one
"""

import dataclasses

import pytest
from starlette.responses import PlainTextResponse

from crude.controllers.pipeline import Pipeline, RequestContext


def recording_step(label, calls):
    async def step(request, ctx, call_next):
        calls.append(label)
        return await call_next(ctx.evolve(query={**ctx.query, label: True}))

    return step


def final_step(calls):
    async def step(request, ctx, call_next):
        calls.append("final")
        return PlainTextResponse(",".join(sorted(ctx.query)))

    return step


class TestPipeline:
    @pytest.mark.asyncio
    async def test_steps_run_in_order_with_context(self):
        calls = []
        pipeline = Pipeline("demo", [recording_step("a", calls), recording_step("b", calls), final_step(calls)])

        response = await pipeline(request=None)

        assert calls == ["a", "b", "final"]
        assert response.body == b"a,b"

    @pytest.mark.asyncio
    async def test_short_circuit(self):
        calls = []
        pipeline = Pipeline("demo", [final_step(calls), recording_step("never", calls)])

        await pipeline(request=None)

        assert calls == ["final"]

    @pytest.mark.asyncio
    async def test_unshift_and_push(self):
        calls = []
        pipeline = Pipeline("demo", [recording_step("middle", calls)])
        pipeline.unshift(recording_step("first", calls))
        pipeline.push(final_step(calls))

        await pipeline(request=None)

        assert calls == ["first", "middle", "final"]
        assert len(pipeline) == 3

    @pytest.mark.asyncio
    async def test_running_past_the_end_is_404(self):
        pipeline = Pipeline("demo", [recording_step("only", [])])

        response = await pipeline(request=None)

        assert response.status_code == 404

    def test_repr(self):
        assert repr(Pipeline("read_list", [])) == "<Pipeline 'read_list' steps=0>"


class TestRequestContext:
    def test_frozen(self):
        ctx = RequestContext()
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.item = "x"

    def test_evolve_returns_copy(self):
        ctx = RequestContext(error="e")
        changed = ctx.evolve(success="s")

        assert changed is not ctx
        assert changed.error == "e"
        assert changed.success == "s"
        assert ctx.success is None

    def test_template_vars(self):
        variables = RequestContext(item={"name": "x"}).template_vars()

        assert variables["item"] == {"name": "x"}
        assert set(variables) == {
            "opts", "schema", "current_user", "fn", "item",
            "items", "pagination", "error", "success",
        }
