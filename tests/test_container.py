"""Tests for the service container.

These tests verify lazy construction, memoization, the missing initiator
error, and single construction under concurrent callers, and the detection of
initiators that depend on themselves.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from core.container import (
    Container,
    ContainerCircularDependencyError,
    ContainerMissingServiceInitiatorError,
)
from core.environment import Environment, MissingEnvironmentVariableError
from core.errors import (
    CONTAINER_CIRCULAR_DEPENDENCY_ERROR_NAME,
    CONTAINER_MISSING_SERVICE_ERROR_NAME,
)
from core.validators import ConfigurationError


@pytest.fixture
def environment():
    """Environment with a bucket name configured."""
    return Environment.create({"MY_S3_BUCKET": "my-s3-bucket"})


class TestMissingService:
    """Test requests for services without an initiator."""

    @pytest.mark.asyncio
    async def test_missing_initiator_raises(self, environment):
        """Test that an unknown service raises without invoking initiators."""
        other_initiator = AsyncMock(return_value=object())
        container = Container(environment, {"aws.s3": other_initiator})

        with pytest.raises(ContainerMissingServiceInitiatorError) as exc_info:
            await container.service("aws.sqs")

        error = exc_info.value
        assert error.name == CONTAINER_MISSING_SERVICE_ERROR_NAME
        assert error.service == "aws.sqs"
        assert error.error == (
            'The service "aws.sqs" has no initiator provided. '
            "Please provide an initiator for this service before calling it."
        )
        other_initiator.assert_not_called()
        assert not container.is_resolved("aws.sqs")

    @pytest.mark.asyncio
    async def test_missing_initiator_raises_every_time(self, environment):
        """Test that the error is not cached as a service."""
        container = Container(environment, {})

        for _ in range(2):
            with pytest.raises(ContainerMissingServiceInitiatorError):
                await container.service("aws.sqs")


class TestMemoization:
    """Test lazy construction and caching."""

    @pytest.mark.asyncio
    async def test_initiator_is_lazy(self, environment):
        """Test that nothing is constructed until requested."""
        initiator = AsyncMock(return_value=object())
        Container(environment, {"aws.s3": initiator})

        initiator.assert_not_called()

    @pytest.mark.asyncio
    async def test_service_constructed_once(self, environment):
        """Test that calling service twice invokes the initiator once."""
        instance = object()
        initiator = AsyncMock(return_value=instance)
        container = Container(environment, {"aws.s3": initiator})

        first = await container.service("aws.s3")
        second = await container.service("aws.s3")

        assert first is instance
        assert second is first
        initiator.assert_awaited_once_with(container)
        assert container.is_resolved("aws.s3")

    @pytest.mark.asyncio
    async def test_sync_initiator_supported(self, environment):
        """Test that plain callables work as initiators."""
        initiator = Mock(return_value={"client": "s3"})
        container = Container(environment, {"aws.s3": initiator})

        assert await container.service("aws.s3") == {"client": "s3"}
        assert await container.service("aws.s3") == {"client": "s3"}
        initiator.assert_called_once_with(container)

    @pytest.mark.asyncio
    async def test_none_result_is_cached(self, environment):
        """Test that an initiator returning None is still only called once."""
        initiator = AsyncMock(return_value=None)
        container = Container(environment, {"feature.flags": initiator})

        assert await container.service("feature.flags") is None
        assert await container.service("feature.flags") is None
        initiator.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_initiator_can_use_services_and_env(self, environment):
        """Test that initiators can depend on other services and the environment."""

        async def create_client(container):
            return {"name": "s3"}

        async def create_uploader(container):
            client = await container.service("aws.s3")
            return {"client": client, "bucket": container.env("MY_S3_BUCKET")}

        container = Container(
            environment,
            {"aws.s3": create_client, "uploader": create_uploader},
        )

        uploader = await container.service("uploader")

        assert uploader["bucket"] == "my-s3-bucket"
        assert uploader["client"] is await container.service("aws.s3")

    @pytest.mark.asyncio
    async def test_failed_construction_is_not_cached(self, environment):
        """Test that a failing initiator is retried on the next call."""
        instance = object()
        initiator = AsyncMock(side_effect=[RuntimeError("connection refused"), instance])
        container = Container(environment, {"aws.s3": initiator})

        with pytest.raises(RuntimeError, match="connection refused"):
            await container.service("aws.s3")
        assert not container.is_resolved("aws.s3")

        assert await container.service("aws.s3") is instance
        assert initiator.await_count == 2


class TestConcurrency:
    """Test single construction under concurrent callers."""

    @pytest.mark.asyncio
    async def test_concurrent_requests_construct_once(self, environment):
        """Test that concurrent callers share one construction."""
        calls = []

        async def create_client(container):
            calls.append(1)
            await asyncio.sleep(0.01)
            return object()

        container = Container(environment, {"aws.s3": create_client})

        results = await asyncio.gather(
            container.service("aws.s3"),
            container.service("aws.s3"),
            container.service("aws.s3"),
        )

        assert len(calls) == 1
        assert results[0] is results[1] is results[2]

    @pytest.mark.asyncio
    async def test_concurrent_failure_reaches_every_caller(self, environment):
        """Test that a failed construction is reported to every waiter."""
        calls = []

        async def create_client(container):
            calls.append(1)
            await asyncio.sleep(0.01)
            raise RuntimeError("connection refused")

        container = Container(environment, {"aws.s3": create_client})

        results = await asyncio.gather(
            container.service("aws.s3"),
            container.service("aws.s3"),
            return_exceptions=True,
        )

        assert len(calls) == 1
        assert all(isinstance(r, RuntimeError) for r in results)
        assert not container.is_resolved("aws.s3")

    def test_cache_survives_separate_event_loops(self, environment):
        """Test that services are reused across invocations on fresh loops."""
        initiator = AsyncMock(return_value=object())
        container = Container(environment, {"aws.s3": initiator})

        first = asyncio.run(container.service("aws.s3"))
        second = asyncio.run(container.service("aws.s3"))

        assert first is second
        initiator.assert_awaited_once()


class TestCircularDependency:
    """Test initiators that request the service they are building."""

    @pytest.mark.asyncio
    async def test_mutual_dependency_raises(self, environment):
        """Test that a -> b -> a raises instead of waiting forever."""

        async def create_a(container):
            return {"b": await container.service("b")}

        async def create_b(container):
            return {"a": await container.service("a")}

        container = Container(environment, {"a": create_a, "b": create_b})

        with pytest.raises(ContainerCircularDependencyError) as exc_info:
            await asyncio.wait_for(container.service("a"), timeout=2)

        error = exc_info.value
        assert error.name == CONTAINER_CIRCULAR_DEPENDENCY_ERROR_NAME
        assert error.chain == ("a", "b", "a")
        assert error.error == 'Circular dependency between service initiators: "a" -> "b" -> "a".'
        assert not container.is_resolved("a")
        assert not container.is_resolved("b")

    @pytest.mark.asyncio
    async def test_self_dependency_raises(self, environment):
        """Test that an initiator requesting its own service raises."""

        async def create_client(container):
            return await container.service("aws.s3")

        container = Container(environment, {"aws.s3": create_client})

        with pytest.raises(ContainerCircularDependencyError) as exc_info:
            await asyncio.wait_for(container.service("aws.s3"), timeout=2)

        assert exc_info.value.chain == ("aws.s3", "aws.s3")

    @pytest.mark.asyncio
    async def test_chain_starts_at_repeated_service(self, environment):
        """Test that services outside the cycle are left out of the chain."""

        async def create_uploader(container):
            return await container.service("aws.s3")

        async def create_client(container):
            return await container.service("aws.sts")

        async def create_credentials(container):
            return await container.service("aws.s3")

        container = Container(
            environment,
            {
                "uploader": create_uploader,
                "aws.s3": create_client,
                "aws.sts": create_credentials,
            },
        )

        with pytest.raises(ContainerCircularDependencyError) as exc_info:
            await asyncio.wait_for(container.service("uploader"), timeout=2)

        assert exc_info.value.chain == ("aws.s3", "aws.sts", "aws.s3")

    @pytest.mark.asyncio
    async def test_concurrent_callers_are_not_cycles(self, environment):
        """Test that separate tasks waiting on one service do not trip detection."""

        async def create_client(container):
            await asyncio.sleep(0.01)
            return object()

        async def create_uploader(container):
            return {"client": await container.service("aws.s3")}

        container = Container(
            environment, {"aws.s3": create_client, "uploader": create_uploader}
        )

        client, uploader = await asyncio.gather(
            container.service("aws.s3"),
            container.service("uploader"),
        )

        assert uploader["client"] is client


class TestEnvironmentAccess:
    """Test environment access through the container."""

    def test_env_returns_value(self, environment):
        """Test that env proxies to the environment."""
        container = Container(environment, {})

        assert container.env("MY_S3_BUCKET") == "my-s3-bucket"

    def test_env_missing_key_raises(self, environment):
        """Test that env raises for missing keys."""
        container = Container(environment, {})

        with pytest.raises(MissingEnvironmentVariableError):
            container.env("LOG_LEVEL")


class TestInitiatorValidation:
    """Test validation of the initiator map at construction."""

    def test_non_callable_initiator_rejected(self, environment):
        """Test that non-callable initiators fail at construction."""
        with pytest.raises(ConfigurationError, match="aws.s3"):
            Container(environment, {"aws.s3": "not-a-function"})

    def test_initiators_are_read_only(self, environment):
        """Test that the container's initiator map cannot be modified."""
        initiators = {"aws.s3": AsyncMock(return_value=object())}
        container = Container(environment, initiators)

        initiators["aws.sqs"] = AsyncMock()

        assert "aws.sqs" not in container.initiators
        with pytest.raises(TypeError):
            container.initiators["aws.sqs"] = AsyncMock()
