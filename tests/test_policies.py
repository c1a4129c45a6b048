"""Tests for the scheduling policies.

Each policy answers two questions: should the running process give up
the CPU (``should_preempt``), and who runs next (``select``).  We test
six algorithms:

- FIFO: arrival order, never preempts.
- SJF: shortest lifespan first, never preempts.
- SRTF: shortest remaining time first, reconsidered every tick.
- Round Robin: arrival order, preempted after ``quantum`` ticks.
- Priority: highest priority first, reconsidered every tick.
- Aging Priority: like Priority, but everyone still queued gains +1
  priority per decision, up to the system maximum.

Ties always go to the process closest to the head of the queue.
"""

from collections import deque

import pytest

from py_sched.policies import (
    AgingPriorityPolicy,
    FIFOPolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SJFPolicy,
    SRTFPolicy,
)
from py_sched.process import Process

AGING_ROUNDS = 4
AGING_CAP = 6
QUANTUM = 3


def _proc(pid: int, *, lifespan: int = 10, prio: int = 0, age: int = 0) -> Process:
    """Return a READY process that has already run *age* ticks."""
    process = Process(pid=pid, lifespan=lifespan, prio=prio)
    if age:
        process.dispatch()
        for _ in range(age):
            process.run_tick()
        process.preempt()
    return process


def _queue(*processes: Process) -> deque[Process]:
    """Return a ready queue holding *processes* in order."""
    return deque(processes)


class TestFIFOPolicy:
    """Verify first-in first-out selection."""

    def test_select_head(self) -> None:
        """The oldest arrival is picked."""
        a, b = _proc(1), _proc(2)
        queue = _queue(a, b)
        assert FIFOPolicy().select(queue) is a
        assert list(queue) == [b]

    def test_empty_queue(self) -> None:
        """Nothing to pick yields None."""
        assert FIFOPolicy().select(deque()) is None

    def test_never_preempts(self) -> None:
        """The running process keeps the CPU."""
        assert FIFOPolicy().should_preempt(_proc(1)) is False

    def test_on_preempt_appends(self) -> None:
        """A preempted process goes to the tail."""
        a, b = _proc(1), _proc(2)
        queue = _queue(a)
        FIFOPolicy().on_preempt(queue, b)
        assert list(queue) == [a, b]


class TestSJFPolicy:
    """Verify shortest-job-first selection."""

    def test_selects_shortest_lifespan(self) -> None:
        """Among lifespans {5, 2, 8} the 2 goes first."""
        five, two, eight = _proc(1, lifespan=5), _proc(2, lifespan=2), _proc(3, lifespan=8)
        queue = _queue(five, two, eight)
        assert SJFPolicy().select(queue) is two
        assert list(queue) == [five, eight]

    def test_ties_follow_queue_order(self) -> None:
        """Equal lifespans resolve to the earlier arrival."""
        first, second = _proc(1, lifespan=3), _proc(2, lifespan=3)
        assert SJFPolicy().select(_queue(first, second)) is first

    def test_uses_lifespan_not_remaining(self) -> None:
        """SJF compares total job length, not what is left."""
        long_started = _proc(1, lifespan=9, age=8)
        short_fresh = _proc(2, lifespan=3)
        assert SJFPolicy().select(_queue(long_started, short_fresh)) is short_fresh

    def test_non_preemptive(self) -> None:
        """Once chosen, a job keeps the CPU."""
        assert SJFPolicy().should_preempt(_proc(1)) is False

    def test_empty_queue(self) -> None:
        """Nothing to pick yields None."""
        assert SJFPolicy().select(deque()) is None


class TestSRTFPolicy:
    """Verify shortest-remaining-time-first selection."""

    def test_selects_least_remaining(self) -> None:
        """Remaining time, not lifespan, decides."""
        long_started = _proc(1, lifespan=9, age=8)
        short_fresh = _proc(2, lifespan=3)
        assert SRTFPolicy().select(_queue(long_started, short_fresh)) is long_started

    def test_always_preempts(self) -> None:
        """The running process is reconsidered every tick."""
        assert SRTFPolicy().should_preempt(_proc(1)) is True

    def test_requeued_current_loses_ties(self) -> None:
        """The preempted process goes to the tail and loses equal-time ties."""
        policy = SRTFPolicy()
        waiting = _proc(1, lifespan=4)
        running = _proc(2, lifespan=6, age=2)
        queue = _queue(waiting)
        policy.on_preempt(queue, running)
        assert policy.select(queue) is waiting


class TestRoundRobinPolicy:
    """Verify round-robin time slicing."""

    def test_default_quantum_is_one_tick(self) -> None:
        """By default the CPU rotates every tick."""
        policy = RoundRobinPolicy()
        assert policy.quantum == 1
        policy.select(_queue(_proc(1)))
        assert policy.should_preempt(_proc(1)) is True

    def test_longer_quantum(self) -> None:
        """A process runs QUANTUM consecutive ticks before it is preempted."""
        policy = RoundRobinPolicy(quantum=QUANTUM)
        running = policy.select(_queue(_proc(1)))
        assert running is not None
        decisions = [policy.should_preempt(running) for _ in range(QUANTUM)]
        assert decisions == [False] * (QUANTUM - 1) + [True]

    def test_select_starts_fresh_slice(self) -> None:
        """Picking a process resets the slice counter."""
        policy = RoundRobinPolicy(quantum=2)
        a, b = _proc(1), _proc(2)
        policy.select(_queue(a))
        policy.should_preempt(a)
        policy.select(_queue(b))
        assert policy.should_preempt(b) is False

    def test_fifo_order(self) -> None:
        """Selection is head-first."""
        a, b = _proc(1, prio=1), _proc(2, prio=9)
        assert RoundRobinPolicy().select(_queue(a, b)) is a

    @pytest.mark.parametrize("quantum", [0, -2])
    def test_invalid_quantum(self, quantum: int) -> None:
        """The quantum must be at least one tick."""
        with pytest.raises(ValueError, match="at least 1 tick"):
            RoundRobinPolicy(quantum=quantum)


class TestPriorityPolicy:
    """Verify highest-priority-first selection."""

    def test_selects_highest(self) -> None:
        """Higher prio values win."""
        low, high = _proc(1, prio=1), _proc(2, prio=7)
        assert PriorityPolicy().select(_queue(low, high)) is high

    def test_ties_first_seen(self) -> None:
        """Equal priorities resolve to queue order."""
        first, second = _proc(1, prio=4), _proc(2, prio=4)
        assert PriorityPolicy().select(_queue(first, second)) is first

    def test_selection_uses_effective_priority(self) -> None:
        """A boosted prio outranks a higher prio_orig."""
        boosted, plain = _proc(1, prio=1), _proc(2, prio=5)
        boosted.prio = 9
        assert PriorityPolicy().select(_queue(plain, boosted)) is boosted

    def test_always_preempts(self) -> None:
        """The running process must win again every tick."""
        assert PriorityPolicy().should_preempt(_proc(1)) is True


class TestAgingPriorityPolicy:
    """Verify priority scheduling with aging."""

    def test_select_ages_every_queued_process(self) -> None:
        """Each decision adds one to every process in the queue."""
        a, b, c = _proc(1, prio=3), _proc(2, prio=1), _proc(3, prio=2)
        AgingPriorityPolicy().select(_queue(a, b, c))
        assert (a.prio, b.prio, c.prio) == (4, 2, 3)

    def test_picks_highest_after_aging(self) -> None:
        """The winner is the highest aged priority."""
        a, b = _proc(1, prio=3), _proc(2, prio=1)
        assert AgingPriorityPolicy().select(_queue(a, b)) is a

    def test_on_preempt_resets_priority(self) -> None:
        """A preempted process drops back to prio_orig and goes to the tail."""
        process = _proc(1, prio=2)
        process.prio = 9
        queue: deque[Process] = deque()
        AgingPriorityPolicy().on_preempt(queue, process)
        assert process.prio == process.prio_orig
        assert list(queue) == [process]

    def test_aging_monotonicity(self) -> None:
        """A process left in the queue for N decisions gains exactly N."""
        policy = AgingPriorityPolicy()
        starved = _proc(1, prio=0)
        queue = _queue(starved)
        for pid in range(2, 2 + AGING_ROUNDS):
            winner = _proc(pid, prio=20)
            queue.appendleft(winner)
            assert policy.select(queue) is winner
        assert starved.prio == AGING_ROUNDS

    def test_aging_eventually_wins(self) -> None:
        """A low-priority process overtakes a fresh high one after enough waiting."""
        policy = AgingPriorityPolicy()
        starved = _proc(1, prio=0)
        queue = _queue(starved)
        winners: list[Process] = []
        for pid in range(2, 10):
            queue.append(_proc(pid, prio=3))
            chosen = policy.select(queue)
            assert chosen is not None
            winners.append(chosen)
            if chosen is starved:
                break
        assert winners[-1] is starved

    def test_aging_is_capped(self) -> None:
        """Aging never pushes a priority past max_priority."""
        policy = AgingPriorityPolicy(max_priority=AGING_CAP)
        assert policy.max_priority == AGING_CAP
        starved = _proc(1, prio=AGING_CAP - 1)
        queue = _queue(starved)
        for pid in range(2, 2 + AGING_ROUNDS):
            winner = _proc(pid, prio=AGING_CAP + 10)
            queue.appendleft(winner)
            policy.select(queue)
        assert starved.prio == AGING_CAP

    def test_above_cap_priority_is_left_alone(self) -> None:
        """A process already above the cap is not pulled down."""
        policy = AgingPriorityPolicy(max_priority=AGING_CAP)
        high = _proc(1, prio=AGING_CAP + 3)
        policy.select(_queue(_proc(2, prio=AGING_CAP + 5), high))
        assert high.prio == AGING_CAP + 3
