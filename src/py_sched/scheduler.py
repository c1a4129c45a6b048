"""The scheduler: one policy and one protocol over one context.

This is the whole surface the tick driver talks to:

- ``initialize()`` / ``finalize()``: called once at the start and end
  of a run; they run the strategy's optional hooks.
- ``schedule()``: called once per tick; returns the process to run.
- ``acquire(resource_id)`` / ``release(resource_id)``: called when the
  running process asks for or gives back a resource.

``schedule()`` holds the decision tree every policy shares:

1. Nothing running, the running process just blocked, or it has used
   up its lifespan: go straight to picking from the ready queue.
2. The policy lets it keep the CPU: return it unchanged.
3. Otherwise preempt it back into the ready queue, then pick.

The policy only decides *whether* to preempt and *whom* to pick; the
scheduler performs the state transitions and keeps the current slot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_sched.logging import LogLevel
from py_sched.process import ProcessState

if TYPE_CHECKING:
    from py_sched.context import SimulationContext
    from py_sched.policies import SchedulingPolicy
    from py_sched.process import Process
    from py_sched.protocols import AcquireReleaseProtocol
    from py_sched.strategies import StrategyBundle

_SOURCE = "scheduler"


class Scheduler:
    """Drive one strategy bundle against one simulation context."""

    def __init__(
        self,
        bundle: StrategyBundle,
        context: SimulationContext,
        *,
        quantum: int = 1,
    ) -> None:
        """Build the bundle's policy and protocol over *context*.

        Args:
            bundle: The named strategy to run.
            context: Shared ready queue, resources and current slot.
            quantum: Round Robin time slice (ignored by other policies).

        """
        self._bundle = bundle
        self._context = context
        self._policy = bundle.create_policy(quantum=quantum, max_priority=context.max_priority)
        self._protocol = bundle.create_protocol()
        self._initialized = False
        self._finalized = False
        self._previous: Process | None = None
        self._context_switches = 0

    @property
    def bundle(self) -> StrategyBundle:
        """Return the strategy bundle being run."""
        return self._bundle

    @property
    def context(self) -> SimulationContext:
        """Return the simulation context."""
        return self._context

    @property
    def policy(self) -> SchedulingPolicy:
        """Return the scheduling policy."""
        return self._policy

    @property
    def protocol(self) -> AcquireReleaseProtocol:
        """Return the acquire/release protocol."""
        return self._protocol

    @property
    def current(self) -> Process | None:
        """Return the process selected by the last ``schedule()`` call."""
        return self._context.current

    @property
    def context_switches(self) -> int:
        """Return how many times the CPU changed hands."""
        return self._context_switches

    def initialize(self) -> None:
        """Run the strategy's setup hook once, before the first tick.

        Raises:
            RuntimeError: If already initialized.

        """
        if self._initialized:
            msg = f"Scheduler '{self._bundle.name}' is already initialized"
            raise RuntimeError(msg)
        self._initialized = True
        self._context.log(
            LogLevel.INFO,
            f"Strategy '{self._bundle.display_name}' initialized",
            source=_SOURCE,
        )
        if self._bundle.on_initialize is not None:
            self._bundle.on_initialize(self._context)

    def finalize(self) -> None:
        """Run the strategy's teardown hook once, after the last tick.

        Raises:
            RuntimeError: If not initialized, or already finalized.

        """
        if not self._initialized or self._finalized:
            msg = f"Scheduler '{self._bundle.name}' cannot finalize: not running"
            raise RuntimeError(msg)
        self._finalized = True
        if self._bundle.on_finalize is not None:
            self._bundle.on_finalize(self._context)
        self._context.log(
            LogLevel.INFO,
            f"Strategy '{self._bundle.display_name}' finalized "
            f"after {self._context_switches} context switches",
            source=_SOURCE,
        )

    def schedule(self) -> Process | None:
        """Decide which process runs on this tick.

        Returns:
            The process to run (now RUNNING and current), or None when
            nothing is runnable.

        """
        ctx = self._context
        current = ctx.current
        if (
            current is not None
            and current.state is ProcessState.RUNNING
            and not current.is_complete
        ):
            if not self._policy.should_preempt(current):
                return current
            current.preempt()
            self._policy.on_preempt(ctx.ready_queue, current)

        nxt = self._policy.select(ctx.ready_queue)
        ctx.current = nxt
        if nxt is None:
            ctx.log(LogLevel.DEBUG, "No process ready; CPU idle", source=_SOURCE)
            return None

        nxt.dispatch()
        if self._previous is not None and self._previous is not nxt:
            self._context_switches += 1
        self._previous = nxt
        ctx.log(LogLevel.DEBUG, f"P{nxt.pid} dispatched (prio {nxt.prio})", source=_SOURCE)
        return nxt

    def acquire(self, resource_id: int) -> bool:
        """Request *resource_id* on behalf of the running process.

        Returns:
            True if the running process now owns the resource; False if
            it was blocked and must not run any further this tick.

        """
        return self._protocol.acquire(self._context, resource_id, self._require_current())

    def release(self, resource_id: int) -> None:
        """Release *resource_id* on behalf of the running process.

        Raises:
            ProtocolViolation: If the running process does not own it.

        """
        self._protocol.release(self._context, resource_id, self._require_current())

    def _require_current(self) -> Process:
        """Return the running process or raise if there is none."""
        current = self._context.current
        if current is None:
            msg = "No process is currently running"
            raise RuntimeError(msg)
        return current
