"""
Unit tests for the middleware pipeline.
"""

import pytest

from cowboy.middleware.base import (
    FunctionMiddleware,
    Middleware,
    MiddlewarePipeline,
    as_middleware,
)


class Recorder(Middleware):
    """Appends its label to a shared list."""

    def __init__(self, label, calls, result=None):
        self.label = label
        self.calls = calls
        self.result = result

    async def __call__(self, request, response, env):
        self.calls.append(self.label)
        return self.result


class TestMiddlewarePipeline:
    """Tests for MiddlewarePipeline."""

    @pytest.mark.asyncio
    async def test_runs_in_order(self, make_context, response):
        """Test middleware run in registration order."""
        calls = []
        pipeline = MiddlewarePipeline()
        pipeline.add(Recorder("a", calls)).add(Recorder("b", calls))

        result = await pipeline.run(make_context(), response, {})

        assert result is None
        assert calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_short_circuit(self, make_context, response):
        """Test the first non-None result stops the chain."""
        calls = []
        pipeline = MiddlewarePipeline().use(
            Recorder("a", calls),
            Recorder("b", calls, result="stop"),
            Recorder("c", calls),
        )

        result = await pipeline.run(make_context(), response, {})

        assert result == "stop"
        assert calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_sync_and_async_functions(self, make_context, response):
        """Test plain and coroutine functions both work."""
        def sync_mw(request, response, env):
            response.set("X-Sync", "1")

        async def async_mw(request, response, env):
            response.set("X-Async", env["value"])

        pipeline = MiddlewarePipeline().use(sync_mw, async_mw)

        await pipeline.run(make_context(), response, {"value": "2"})

        assert response.headers == {"X-Sync": "1", "X-Async": "2"}

    @pytest.mark.asyncio
    async def test_mutations_are_visible_downstream(self, make_context, response):
        """Test later middleware see earlier mutations."""
        seen = []

        def first(request, response, env):
            request.body = {"from": "first"}

        def second(request, response, env):
            seen.append(request.body)

        await MiddlewarePipeline().use(first, second).run(make_context(), response, {})

        assert seen == [{"from": "first"}]

    def test_len_and_iter(self):
        """Test the pipeline reports its contents."""
        pipeline = MiddlewarePipeline().use(lambda request, response, env: None)

        assert len(pipeline) == 1
        assert isinstance(list(pipeline)[0], FunctionMiddleware)


class TestAsMiddleware:
    """Tests for wrapping callables."""

    def test_keeps_middleware_instances(self):
        """Test Middleware instances are returned unchanged."""
        recorder = Recorder("a", [])

        assert as_middleware(recorder) is recorder

    def test_wraps_functions(self):
        """Test functions are wrapped and named."""
        def stamp(request, response, env):
            pass

        wrapped = as_middleware(stamp)

        assert isinstance(wrapped, FunctionMiddleware)
        assert wrapped.name == "stamp"

    def test_rejects_non_callables(self):
        """Test non-callables are refused."""
        with pytest.raises(TypeError):
            as_middleware(42)


class TestRegistry:
    """Tests for the middleware factory registry."""

    def test_builtin_factories(self):
        """Test every built-in factory is registered by name."""
        from cowboy.middleware import cors, parse_jwt, registry, validate_body

        assert registry["cors"] is cors
        assert registry["parse_jwt"] is parse_jwt
        assert registry["validate_body"] is validate_body
        assert sorted(registry) == [
            "cors",
            "parse_jwt",
            "validate",
            "validate_body",
            "validate_headers",
            "validate_params",
            "validate_query",
        ]

    def test_factories_build_middleware(self):
        """Test registry factories produce Middleware instances."""
        from cowboy.middleware import registry

        assert isinstance(registry["cors"](), Middleware)
        assert isinstance(registry["validate"]("query", lambda value: True), Middleware)
