"""Async executor for external collaborator calls (place search, directions).

Every network call leaving the service goes through ``CollaboratorExecutor``:
- Hard timeout per call
- Per-collaborator circuit breaker (shared state via registry)
- Cancellation support
- Metrics and structured logging

There are no retries here. The coordinate resolver retries by moving on to
its next query variant, and route totals fall back to haversine.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Generic, TypeVar

from tripsync.app.models.common import Provenance

T = TypeVar("T")


class CollaboratorError(Exception):
    """Base class for collaborator failures."""


class CollaboratorTimeoutError(CollaboratorError):
    """Collaborator call exceeded timeout."""


class CollaboratorCircuitOpenError(CollaboratorError):
    """Circuit breaker is open for this collaborator."""


class CollaboratorExecutionError(CollaboratorError):
    """Collaborator call failed."""


class CollaboratorCancelledError(CollaboratorError):
    """Work was cancelled before the call started."""


@dataclass
class CollaboratorResult(Generic[T]):
    """Collaborator result with provenance metadata."""

    value: T
    provenance: Provenance


@dataclass(frozen=True)
class CollaboratorContext:
    """Context for one collaborator call, used for tracing."""

    trace_id: str
    trip_id: str | None
    collaborator: str


@dataclass
class CancelToken:
    """Token for cancellation signaling.

    Shared by the action resolver and the collaborators it drives. Setting it
    stops new work from starting; calls already awaited run to completion.
    """

    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    def throw_if_cancelled(self) -> None:
        """Raise CollaboratorCancelledError if cancelled."""
        if self.cancelled:
            raise CollaboratorCancelledError("sync cancelled")


@dataclass
class CollaboratorConfig:
    """Configuration for collaborator execution."""

    timeout_ms: int
    breaker_failure_threshold: int = 5
    breaker_window_seconds: int = 60
    breaker_half_open_seconds: int = 30


class BreakerState(str, Enum):
    """Circuit breaker state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Per-collaborator circuit breaker.

    Tracks failures within a time window and opens after threshold.
    """

    collaborator: str
    failure_threshold: int
    window_seconds: int
    half_open_seconds: int
    state: BreakerState = BreakerState.CLOSED
    failure_times: list[datetime] = field(default_factory=list)
    opened_at: datetime | None = None

    def record_success(self) -> None:
        """Record successful call."""
        if self.state == BreakerState.HALF_OPEN:
            self.state = BreakerState.CLOSED
            self.failure_times.clear()
            self.opened_at = None

    def record_failure(self, now: datetime) -> None:
        """Record failed call."""
        cutoff = now - timedelta(seconds=self.window_seconds)
        self.failure_times = [t for t in self.failure_times if t > cutoff]
        self.failure_times.append(now)

        if self.state == BreakerState.HALF_OPEN or len(self.failure_times) >= self.failure_threshold:
            self.state = BreakerState.OPEN
            self.opened_at = now

    def check_and_update_state(self, now: datetime) -> BreakerState:
        """Move OPEN to HALF_OPEN once the cool-down has elapsed."""
        if self.state == BreakerState.OPEN:
            if self.opened_at and (now - self.opened_at).total_seconds() >= self.half_open_seconds:
                self.state = BreakerState.HALF_OPEN

        return self.state

    def is_open(self, now: datetime) -> bool:
        """Check if breaker is currently rejecting calls."""
        return self.check_and_update_state(now) == BreakerState.OPEN


class BreakerRegistry:
    """Registry of per-collaborator circuit breakers with shared state."""

    def __init__(self) -> None:
        self._by_name: dict[str, CircuitBreaker] = {}

    def get_or_create(
        self,
        collaborator: str,
        failure_threshold: int,
        window_seconds: int,
        half_open_seconds: int,
    ) -> CircuitBreaker:
        """Get existing breaker for a collaborator or create one with the given config."""
        if collaborator not in self._by_name:
            self._by_name[collaborator] = CircuitBreaker(
                collaborator=collaborator,
                failure_threshold=failure_threshold,
                window_seconds=window_seconds,
                half_open_seconds=half_open_seconds,
            )
        return self._by_name[collaborator]

    def clear(self) -> None:
        """Clear all breakers (useful for testing)."""
        self._by_name.clear()


_global_breaker_registry = BreakerRegistry()


def get_breaker_registry() -> BreakerRegistry:
    """Get the global breaker registry instance."""
    return _global_breaker_registry


class CollaboratorMetrics:
    """Interface for collaborator metrics."""

    def record_latency(self, collaborator: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_error(self, collaborator: str, reason: str) -> None:
        pass


class CollaboratorLogger:
    """Interface for structured logging."""

    def log_attempt(
        self,
        ctx: CollaboratorContext,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        pass


class CollaboratorExecutor:
    """Runs one collaborator call with timeout, breaker and cancellation."""

    def __init__(
        self,
        metrics: CollaboratorMetrics | None = None,
        logger: CollaboratorLogger | None = None,
        registry: BreakerRegistry | None = None,
    ) -> None:
        self._metrics = metrics or CollaboratorMetrics()
        self._logger = logger or CollaboratorLogger()
        self._registry = registry or get_breaker_registry()

    async def execute(
        self,
        ctx: CollaboratorContext,
        config: CollaboratorConfig,
        fn: Callable[[], Awaitable[T]],
        cancel_token: CancelToken | None = None,
        *,
        source: str | None = None,
        source_url: str | None = None,
    ) -> CollaboratorResult[T]:
        """Execute a collaborator call.

        Args:
            ctx: Context with trace id and collaborator name
            config: Timeout and breaker configuration
            fn: Zero-argument coroutine factory performing the call
            cancel_token: Cancellation token (optional)
            source: Provenance source label (defaults to the collaborator name)
            source_url: Provenance URL (optional)

        Raises:
            CollaboratorCancelledError: Cancelled before the call started
            CollaboratorCircuitOpenError: Circuit breaker is open
            CollaboratorTimeoutError: Call exceeded the timeout
            CollaboratorExecutionError: Any other failure
        """
        if cancel_token is not None:
            cancel_token.throw_if_cancelled()

        breaker = self._registry.get_or_create(
            collaborator=ctx.collaborator,
            failure_threshold=config.breaker_failure_threshold,
            window_seconds=config.breaker_window_seconds,
            half_open_seconds=config.breaker_half_open_seconds,
        )

        start_time = time.monotonic()
        if breaker.is_open(datetime.now()):
            self._metrics.record_latency(ctx.collaborator, "breaker_open", 0.0)
            self._metrics.inc_error(ctx.collaborator, "breaker_open")
            self._logger.log_attempt(ctx, "breaker_open", 0.0, error_reason="breaker_open")
            raise CollaboratorCircuitOpenError(f"Circuit breaker open for {ctx.collaborator}")

        try:
            result = await asyncio.wait_for(fn(), timeout=config.timeout_ms / 1000)
        except TimeoutError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            breaker.record_failure(datetime.now())
            self._metrics.record_latency(ctx.collaborator, "timeout", elapsed_ms)
            self._metrics.inc_error(ctx.collaborator, "timeout")
            self._logger.log_attempt(ctx, "timeout", elapsed_ms, error_reason="timeout")
            raise CollaboratorTimeoutError(f"{ctx.collaborator} timed out") from e
        except Exception as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            breaker.record_failure(datetime.now())
            self._metrics.record_latency(ctx.collaborator, "error", elapsed_ms)
            self._metrics.inc_error(ctx.collaborator, "execution_error")
            self._logger.log_attempt(ctx, "error", elapsed_ms, error_reason=type(e).__name__)
            raise CollaboratorExecutionError(f"{ctx.collaborator} failed: {e}") from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        breaker.record_success()
        self._metrics.record_latency(ctx.collaborator, "success", elapsed_ms)
        self._logger.log_attempt(ctx, "success", elapsed_ms)

        provenance = Provenance(
            source=source or ctx.collaborator,
            source_url=source_url,
            fetched_at=datetime.now(),
            cache_hit=False,
        )
        return CollaboratorResult(value=result, provenance=provenance)
