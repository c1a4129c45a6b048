"""Scheduling policies: which READY process runs on the next tick.

Every tick the scheduler asks two questions, and a policy answers both:

1. *Should the running process give up the CPU?*  (``should_preempt``)
   If not, it simply keeps running.  If so, ``on_preempt`` puts it back
   into the ready queue.
2. *Who runs next?*  (``select``) removes and returns one process from
   the ready queue, or None if it is empty.

The scheduler in ``py_sched.scheduler`` owns the shared decision tree
(no current process, blocked current, finished current) so the policies
below only encode what actually differs between algorithms:

- **FIFOPolicy**: run in arrival order; never preempt.
- **SJFPolicy**: shortest lifespan first; never preempt once chosen.
- **SRTFPolicy**: shortest remaining time first; re-decided every tick.
- **RoundRobinPolicy**: arrival order, preempted every ``quantum`` ticks.
- **PriorityPolicy**: highest ``prio`` first; re-decided every tick.
- **AgingPriorityPolicy**: like PriorityPolicy, but everyone left in the
  ready queue gains +1 priority per decision, so nobody starves.

Ties are always broken by queue order: the process seen first (closest
to the head) wins.

Design: Strategy pattern
    The Scheduler is the *context*; SchedulingPolicy is the *strategy*.
    Adding an algorithm means writing one more small class here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from py_sched.context import MAX_PRIO

if TYPE_CHECKING:
    from collections import deque
    from collections.abc import Callable

    from py_sched.process import Process


class SchedulingPolicy(Protocol):
    """Interface that every scheduling algorithm must satisfy."""

    def should_preempt(self, process: Process) -> bool:
        """Return True if the running, unfinished *process* must yield."""
        ...  # pragma: no cover

    def on_preempt(self, ready_queue: deque[Process], process: Process) -> None:
        """Re-insert a preempted process into the ready queue."""
        ...  # pragma: no cover

    def select(self, ready_queue: deque[Process]) -> Process | None:
        """Remove and return the next process to run, or None if empty."""
        ...  # pragma: no cover


def _pop_best(ready_queue: deque[Process], key: Callable[[Process], int]) -> Process | None:
    """Remove and return the process with the smallest *key* (first seen wins)."""
    if not ready_queue:
        return None
    best_idx = 0
    best_key = key(ready_queue[0])
    for i in range(1, len(ready_queue)):
        k = key(ready_queue[i])
        if k < best_key:
            best_key = k
            best_idx = i
    process = ready_queue[best_idx]
    del ready_queue[best_idx]
    return process


class FIFOPolicy:
    """First In, First Out: processes run in arrival order to completion.

    Simple, but one long job starves everyone behind it (the convoy
    effect).
    """

    def should_preempt(self, process: Process) -> bool:  # noqa: ARG002
        """Never preempt; the running process keeps the CPU."""
        return False

    def on_preempt(self, ready_queue: deque[Process], process: Process) -> None:
        """Append to the back of the queue."""
        ready_queue.append(process)

    def select(self, ready_queue: deque[Process]) -> Process | None:
        """Pop the head of the queue (oldest arrival)."""
        if not ready_queue:
            return None
        return ready_queue.popleft()


class SJFPolicy(FIFOPolicy):
    """Shortest Job First: the smallest total lifespan goes next.

    Non-preemptive: the choice is made only when the CPU is free, so a
    shorter job arriving later waits for the running one to finish.
    Assumes the lifespan is known up front, which is fine in a
    simulator.
    """

    def select(self, ready_queue: deque[Process]) -> Process | None:
        """Remove and return the process with the smallest lifespan."""
        return _pop_best(ready_queue, lambda p: p.lifespan)


class SRTFPolicy:
    """Shortest Remaining Time First: preemptive SJF.

    The running process goes back to the tail of the queue on every
    tick and competes on ``lifespan - age`` with everyone else; on a
    tie the process that was already waiting wins.
    """

    def should_preempt(self, process: Process) -> bool:  # noqa: ARG002
        """Always reconsider."""
        return True

    def on_preempt(self, ready_queue: deque[Process], process: Process) -> None:
        """Append to the back of the queue."""
        ready_queue.append(process)

    def select(self, ready_queue: deque[Process]) -> Process | None:
        """Remove and return the process with the least remaining time."""
        return _pop_best(ready_queue, lambda p: p.remaining)


class RoundRobinPolicy:
    """Round Robin: each process gets a fixed time quantum in turn.

    Ordering is FIFO; the running process is sent to the back of the
    queue once it has run ``quantum`` consecutive ticks.  With the
    default quantum of one tick the CPU rotates every tick.
    """

    def __init__(self, *, quantum: int = 1) -> None:
        """Create a Round Robin policy.

        Args:
            quantum: Number of consecutive ticks before forced preemption.

        Raises:
            ValueError: If quantum is less than one tick.

        """
        if quantum < 1:
            msg = f"Round Robin quantum must be at least 1 tick, got {quantum}"
            raise ValueError(msg)
        self._quantum = quantum
        self._used = 0

    @property
    def quantum(self) -> int:
        """Return the time quantum (ticks per slice)."""
        return self._quantum

    def should_preempt(self, process: Process) -> bool:  # noqa: ARG002
        """Count the tick just run and preempt once the slice is used up."""
        self._used += 1
        return self._used >= self._quantum

    def on_preempt(self, ready_queue: deque[Process], process: Process) -> None:
        """Append to the back of the queue, the round-robin cycle."""
        ready_queue.append(process)

    def select(self, ready_queue: deque[Process]) -> Process | None:
        """Pop the head of the queue and start a fresh slice."""
        self._used = 0
        if not ready_queue:
            return None
        return ready_queue.popleft()


class PriorityPolicy:
    """Priority scheduling: the highest ``prio`` runs.

    Preemptive: the running process is requeued every tick and must win
    again on priority.  Equal priorities fall back to queue order, so a
    freshly requeued process loses ties to those already waiting.

    Starvation risk: a low-priority process can wait forever while
    higher-priority work keeps arriving.  See AgingPriorityPolicy.
    """

    def should_preempt(self, process: Process) -> bool:  # noqa: ARG002
        """Always reconsider."""
        return True

    def on_preempt(self, ready_queue: deque[Process], process: Process) -> None:
        """Append to the back of the queue."""
        ready_queue.append(process)

    def select(self, ready_queue: deque[Process]) -> Process | None:
        """Remove and return the highest-priority process, or None."""
        return _pop_best(ready_queue, lambda p: -p.prio)


class AgingPriorityPolicy(PriorityPolicy):
    """Priority scheduling with aging: nobody starves.

    Each scheduling decision bumps the priority of every process in the
    ready queue by one, so a process that keeps losing keeps climbing
    until it wins.  When a running process is preempted its priority
    drops back to ``prio_orig`` and it starts climbing again.

    Aging stops at ``max_priority``; an aged process can at most tie
    with an owner boosted to the ceiling, never overtake it.
    """

    def __init__(self, *, max_priority: int = MAX_PRIO) -> None:
        """Create an aging priority policy.

        Args:
            max_priority: Priority value aging never exceeds.

        """
        self._max_priority = max_priority

    @property
    def max_priority(self) -> int:
        """Return the aging cap."""
        return self._max_priority

    def on_preempt(self, ready_queue: deque[Process], process: Process) -> None:
        """Reset the preempted process's priority and re-insert at back."""
        process.restore_priority()
        ready_queue.append(process)

    def select(self, ready_queue: deque[Process]) -> Process | None:
        """Age every waiting process, then pick the highest priority."""
        for proc in ready_queue:
            if proc.prio < self._max_priority:
                proc.prio += 1
        return super().select(ready_queue)
