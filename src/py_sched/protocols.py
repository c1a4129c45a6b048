"""Acquire/release protocols: who owns a resource and who waits.

When the running process asks for a resource the protocol either hands
it over (``acquire`` returns True) or parks the requester in the
resource's wait-set in WAIT state (``acquire`` returns False).  When the
owner lets go, the protocol clears ownership and moves exactly one
waiter back to the ready queue tail.  The woken waiter is *not* given
the resource: it asks again the next time it is scheduled.

Three protocols ship, differing in who is woken and in what they do to
priorities along the way:

- **MutexProtocol**: plain mutual exclusion.  Wakes the first waiter
  (FIFO), or the highest-priority one when built with
  ``WakeOrder.PRIORITY``.
- **PriorityCeilingProtocol**: the owner is raised to the system
  maximum priority for as long as it holds the resource, so no other
  process can outrank it by priority.
- **PriorityInheritanceProtocol**: when a higher-priority process
  blocks, the owner inherits that priority until it releases.

Priority inversion, in one picture: L holds R, H blocks on R, and M
(which never touches R) outranks L, so H effectively waits for M.  The
ceiling protocol stops M from ever outranking L; inheritance lifts L
above M only once H is actually waiting.

Protocols never assume a particular scheduling policy.  Pairing a
priority-aware protocol with a FIFO policy is legal, just pointless.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from py_sched.logging import LogLevel
from py_sched.process import ProcessState
from py_sched.resource import ProtocolViolation

if TYPE_CHECKING:
    from collections import deque

    from py_sched.context import SimulationContext
    from py_sched.process import Process
    from py_sched.resource import Resource

_SOURCE = "resource"


class AcquireReleaseProtocol(Protocol):
    """Interface every resource protocol must satisfy."""

    def acquire(self, context: SimulationContext, resource_id: int, requester: Process) -> bool:
        """Take the resource for *requester*, or block it; True on success."""
        ...  # pragma: no cover

    def release(
        self,
        context: SimulationContext,
        resource_id: int,
        owner: Process,
    ) -> Process | None:
        """Give up the resource and wake one waiter; return the waiter."""
        ...  # pragma: no cover


class WakeOrder(StrEnum):
    """Which waiter a release promotes."""

    FIFO = "fifo"
    PRIORITY = "priority"


def highest_priority(queue: deque[Process]) -> int:
    """Return the index of the highest ``prio`` in *queue* (first seen wins).

    Raises:
        ValueError: If the queue is empty.

    """
    if not queue:
        msg = "Cannot pick from an empty queue"
        raise ValueError(msg)
    best_idx = 0
    for i in range(1, len(queue)):
        if queue[i].prio > queue[best_idx].prio:
            best_idx = i
    return best_idx


def _take_or_block(context: SimulationContext, resource: Resource, requester: Process) -> bool:
    """Grant a free resource or park *requester* in its wait-set."""
    if resource.owner is requester:
        msg = f"Process {requester.pid} already owns resource {resource.resource_id}"
        raise ProtocolViolation(msg)
    if resource.owner is None:
        resource.owner = requester
        context.log(
            LogLevel.DEBUG,
            f"P{requester.pid} acquired resource {resource.resource_id}",
            source=_SOURCE,
        )
        return True
    requester.block()
    resource.waitqueue.append(requester)
    context.log(
        LogLevel.INFO,
        f"P{requester.pid} blocked on resource {resource.resource_id} "
        f"held by P{resource.owner.pid}",
        source=_SOURCE,
    )
    return False


def _give_up(context: SimulationContext, resource: Resource, owner: Process) -> None:
    """Clear ownership after checking that *owner* really holds it."""
    if resource.owner is not owner:
        holder = "nobody" if resource.owner is None else f"P{resource.owner.pid}"
        msg = (
            f"P{owner.pid} cannot release resource {resource.resource_id}: "
            f"it is held by {holder}"
        )
        raise ProtocolViolation(msg)
    resource.owner = None
    context.log(
        LogLevel.DEBUG,
        f"P{owner.pid} released resource {resource.resource_id}",
        source=_SOURCE,
    )


def _wake_one(
    context: SimulationContext,
    resource: Resource,
    order: WakeOrder,
) -> Process | None:
    """Move one waiter from the wait-set to the ready queue tail."""
    waitqueue = resource.waitqueue
    if not waitqueue:
        return None
    idx = 0 if order is WakeOrder.FIFO else highest_priority(waitqueue)
    waiter = waitqueue[idx]
    if waiter.state is not ProcessState.WAIT:
        msg = (
            f"P{waiter.pid} in resource {resource.resource_id}'s wait-set "
            f"is {waiter.state}, expected wait"
        )
        raise ProtocolViolation(msg)
    del waitqueue[idx]
    waiter.wake()
    context.ready_queue.append(waiter)
    context.log(
        LogLevel.INFO,
        f"P{waiter.pid} woken from resource {resource.resource_id}",
        source=_SOURCE,
    )
    return waiter


class MutexProtocol:
    """Plain mutual exclusion: no priority side effects.

    ``acquire`` succeeds iff the resource is free.  ``release`` wakes
    the first-inserted waiter by default; with ``WakeOrder.PRIORITY``
    it wakes the highest-priority waiter instead (ties go to the one
    that blocked first).
    """

    def __init__(self, *, wake_order: WakeOrder = WakeOrder.FIFO) -> None:
        """Create a mutex protocol with the given wake order."""
        self._wake_order = wake_order

    @property
    def wake_order(self) -> WakeOrder:
        """Return which waiter a release promotes."""
        return self._wake_order

    def acquire(self, context: SimulationContext, resource_id: int, requester: Process) -> bool:
        """Grant the resource if free, else block the requester."""
        return _take_or_block(context, context.resources[resource_id], requester)

    def release(
        self,
        context: SimulationContext,
        resource_id: int,
        owner: Process,
    ) -> Process | None:
        """Give up the resource and wake one waiter.

        Raises:
            ProtocolViolation: If *owner* does not hold the resource.

        """
        resource = context.resources[resource_id]
        _give_up(context, resource, owner)
        return _wake_one(context, resource, self._wake_order)


class PriorityCeilingProtocol:
    """Priority ceiling: owners run at the system maximum priority.

    The moment a process gets a resource its priority jumps to
    ``context.max_priority``, so no process can preempt it *by
    priority* until it releases.  The boost is dropped (back to
    ``prio_orig``) before the highest-priority waiter is woken.
    """

    def acquire(self, context: SimulationContext, resource_id: int, requester: Process) -> bool:
        """Grant and boost to the ceiling, or block the requester."""
        if not _take_or_block(context, context.resources[resource_id], requester):
            return False
        requester.prio = context.max_priority
        context.log(
            LogLevel.INFO,
            f"P{requester.pid} raised to ceiling priority {context.max_priority}",
            source=_SOURCE,
        )
        return True

    def release(
        self,
        context: SimulationContext,
        resource_id: int,
        owner: Process,
    ) -> Process | None:
        """Restore the owner's priority and wake the highest-priority waiter.

        Raises:
            ProtocolViolation: If *owner* does not hold the resource.

        """
        resource = context.resources[resource_id]
        _give_up(context, resource, owner)
        owner.restore_priority()
        context.log(
            LogLevel.INFO,
            f"P{owner.pid} priority restored to {owner.prio_orig}",
            source=_SOURCE,
        )
        return _wake_one(context, resource, WakeOrder.PRIORITY)


class PriorityInheritanceProtocol:
    """Priority inheritance: owners borrow their waiters' priority.

    When a requester blocks on a resource whose owner has a lower
    priority, the owner inherits the requester's priority so that it
    can finish its critical section ahead of unrelated mid-priority
    work.  On release the owner drops back to ``prio_orig`` and the
    highest-priority waiter is woken.
    """

    def acquire(self, context: SimulationContext, resource_id: int, requester: Process) -> bool:
        """Grant the resource, or block the requester and boost the owner."""
        resource = context.resources[resource_id]
        if _take_or_block(context, resource, requester):
            return True
        owner = resource.owner
        assert owner is not None  # noqa: S101
        if requester.prio > owner.prio:
            owner.prio = requester.prio
            context.log(
                LogLevel.WARNING,
                f"P{owner.pid} inherits priority {requester.prio} from P{requester.pid}",
                source=_SOURCE,
            )
        return False

    def release(
        self,
        context: SimulationContext,
        resource_id: int,
        owner: Process,
    ) -> Process | None:
        """Drop any inherited priority and wake the highest-priority waiter.

        Raises:
            ProtocolViolation: If *owner* does not hold the resource.

        """
        resource = context.resources[resource_id]
        _give_up(context, resource, owner)
        if owner.prio != owner.prio_orig:
            context.log(
                LogLevel.INFO,
                f"P{owner.pid} priority restored to {owner.prio_orig}",
                source=_SOURCE,
            )
        owner.restore_priority()
        return _wake_one(context, resource, WakeOrder.PRIORITY)
