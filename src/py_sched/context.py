"""Simulation context: all the shared mutable state in one place.

A scheduler needs four pieces of process-wide state: the ready queue,
the resource table, the "current process" slot, and the tick counter.
Rather than scattering them as module globals, they live together on a
``SimulationContext`` that is handed to every policy and protocol call.
Two simulations never share a context, so tests stay isolated.

The context also knows the system's maximum priority (the ceiling that
the priority-ceiling protocol raises owners to) and owns the event log.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

from py_sched.logging import Logger, LogLevel
from py_sched.process import ProcessState
from py_sched.resource import NR_RESOURCES, ProtocolViolation, ResourceTable

if TYPE_CHECKING:
    from py_sched.process import Process

MAX_PRIO = 32


class SimulationContext:
    """Ready queue, resource table, current slot, tick counter and log."""

    def __init__(
        self,
        *,
        num_resources: int = NR_RESOURCES,
        max_priority: int = MAX_PRIO,
        logger: Logger | None = None,
    ) -> None:
        """Create an empty context.

        Args:
            num_resources: Size of the fixed resource table.
            max_priority: The system maximum priority.
            logger: Event log to write to; a fresh one by default.

        """
        self.ready_queue: deque[Process] = deque()
        self.resources = ResourceTable(size=num_resources)
        self.current: Process | None = None
        self.ticks: int = 0
        self._max_priority = max_priority
        self._logger = logger if logger is not None else Logger()

    @property
    def max_priority(self) -> int:
        """Return the system maximum priority."""
        return self._max_priority

    @property
    def logger(self) -> Logger:
        """Return the event log."""
        return self._logger

    def log(self, level: LogLevel, message: str, *, source: str) -> None:
        """Record an event stamped with the current tick."""
        self._logger.log(level, message, source=source, tick=self.ticks)

    def add_ready(self, process: Process) -> None:
        """Append a READY process to the ready queue tail.

        Raises:
            RuntimeError: If the process is not in the READY state.

        """
        if process.state is not ProcessState.READY:
            msg = f"Cannot add process {process.pid}: state is {process.state}, expected ready"
            raise RuntimeError(msg)
        self.ready_queue.append(process)

    def check_invariants(self) -> None:
        """Verify queue and ownership exclusivity.

        Every process sits in at most one of {ready queue, one wait-set};
        ready-queue members are READY and wait-set members are WAIT; the
        running process sits in no queue, and no owner waits on the
        resource it holds.  A preempted owner may be READY in the ready
        queue, and an owner may wait on a different resource.

        Raises:
            ProtocolViolation: On the first broken invariant found.

        """
        seen: dict[int, str] = {}

        def _enter(process: Process, where: str) -> None:
            previous = seen.get(id(process))
            if previous is not None:
                msg = f"Process {process.pid} is in both {previous} and {where}"
                raise ProtocolViolation(msg)
            seen[id(process)] = where

        for process in self.ready_queue:
            if process.state is not ProcessState.READY:
                msg = f"Process {process.pid} is in the ready queue but {process.state}"
                raise ProtocolViolation(msg)
            _enter(process, "the ready queue")

        for resource in self.resources:
            for process in resource.waitqueue:
                if process.state is not ProcessState.WAIT:
                    msg = (
                        f"Process {process.pid} waits on resource {resource.resource_id} "
                        f"but is {process.state}"
                    )
                    raise ProtocolViolation(msg)
                _enter(process, f"resource {resource.resource_id}'s wait-set")

        for resource in self.resources:
            owner = resource.owner
            if owner is not None and any(p is owner for p in resource.waitqueue):
                msg = (
                    f"Process {owner.pid} owns resource {resource.resource_id} "
                    "but is queued in its wait-set"
                )
                raise ProtocolViolation(msg)

        current = self.current
        if current is not None and current.state is ProcessState.RUNNING and id(current) in seen:
            msg = f"Running process {current.pid} is queued in {seen[id(current)]}"
            raise ProtocolViolation(msg)
