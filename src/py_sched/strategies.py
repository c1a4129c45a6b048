"""Strategy bundles: the named pairings an operator can select.

A bundle pairs exactly one scheduling policy with exactly one
acquire/release protocol, plus a display name and optional hooks run at
the start and end of a simulation.  The set of bundles is closed: each
``StrategyName`` maps to one bundle, and ``get_strategy`` is the only
way to look one up by name.

Pairings:

- ``fifo``, ``sjf``, ``srtf``, ``rr``: plain mutex, FIFO wake-up.
- ``prio``: plain mutex, highest-priority waiter woken first.
- ``pa``: priority with aging over a plain FIFO mutex.
- ``pcp`` / ``pip``: priority scheduling with the priority ceiling and
  priority inheritance protocols, to compare inversion mitigations.

Pairing a priority-aware protocol with a non-priority policy is legal;
nothing checks it, it just buys nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from py_sched.context import MAX_PRIO
from py_sched.policies import (
    AgingPriorityPolicy,
    FIFOPolicy,
    PriorityPolicy,
    RoundRobinPolicy,
    SJFPolicy,
    SRTFPolicy,
)
from py_sched.protocols import (
    MutexProtocol,
    PriorityCeilingProtocol,
    PriorityInheritanceProtocol,
    WakeOrder,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from py_sched.context import SimulationContext
    from py_sched.policies import SchedulingPolicy
    from py_sched.protocols import AcquireReleaseProtocol


class StrategyName(StrEnum):
    """The selectable strategies."""

    FIFO = "fifo"
    SJF = "sjf"
    SRTF = "srtf"
    RR = "rr"
    PRIO = "prio"
    PA = "pa"
    PCP = "pcp"
    PIP = "pip"


@dataclass(frozen=True)
class PolicyOptions:
    """Tunables handed to a policy factory.

    Attributes:
        quantum: Round Robin time slice in ticks.
        max_priority: System maximum priority (the aging cap).

    """

    quantum: int = 1
    max_priority: int = MAX_PRIO


@dataclass(frozen=True)
class StrategyBundle:
    """One scheduling policy paired with one acquire/release protocol.

    Attributes:
        name: Short selection name (``"fifo"``, ``"pip"`` ...).
        display_name: Human-readable name for reports.
        policy_factory: Builds a fresh policy for a run.
        protocol_factory: Builds a fresh protocol for a run.
        on_initialize: Optional hook run once before the first tick.
        on_finalize: Optional hook run once after the last tick.

    """

    name: str
    display_name: str
    policy_factory: Callable[[PolicyOptions], SchedulingPolicy]
    protocol_factory: Callable[[], AcquireReleaseProtocol]
    on_initialize: Callable[[SimulationContext], None] | None = None
    on_finalize: Callable[[SimulationContext], None] | None = None

    def create_policy(
        self,
        *,
        quantum: int = 1,
        max_priority: int = MAX_PRIO,
    ) -> SchedulingPolicy:
        """Return a fresh policy instance for one run."""
        return self.policy_factory(PolicyOptions(quantum=quantum, max_priority=max_priority))

    def create_protocol(self) -> AcquireReleaseProtocol:
        """Return a fresh protocol instance for one run."""
        return self.protocol_factory()


def _fifo_mutex() -> AcquireReleaseProtocol:
    return MutexProtocol(wake_order=WakeOrder.FIFO)


def _priority_mutex() -> AcquireReleaseProtocol:
    return MutexProtocol(wake_order=WakeOrder.PRIORITY)


_BUNDLES: dict[StrategyName, StrategyBundle] = {
    StrategyName.FIFO: StrategyBundle(
        name=StrategyName.FIFO,
        display_name="FIFO",
        policy_factory=lambda _opts: FIFOPolicy(),
        protocol_factory=_fifo_mutex,
    ),
    StrategyName.SJF: StrategyBundle(
        name=StrategyName.SJF,
        display_name="Shortest-Job First",
        policy_factory=lambda _opts: SJFPolicy(),
        protocol_factory=_fifo_mutex,
    ),
    StrategyName.SRTF: StrategyBundle(
        name=StrategyName.SRTF,
        display_name="Shortest Remaining Time First",
        policy_factory=lambda _opts: SRTFPolicy(),
        protocol_factory=_fifo_mutex,
    ),
    StrategyName.RR: StrategyBundle(
        name=StrategyName.RR,
        display_name="Round-Robin",
        policy_factory=lambda opts: RoundRobinPolicy(quantum=opts.quantum),
        protocol_factory=_fifo_mutex,
    ),
    StrategyName.PRIO: StrategyBundle(
        name=StrategyName.PRIO,
        display_name="Priority",
        policy_factory=lambda _opts: PriorityPolicy(),
        protocol_factory=_priority_mutex,
    ),
    StrategyName.PA: StrategyBundle(
        name=StrategyName.PA,
        display_name="Priority + aging",
        policy_factory=lambda opts: AgingPriorityPolicy(max_priority=opts.max_priority),
        protocol_factory=_fifo_mutex,
    ),
    StrategyName.PCP: StrategyBundle(
        name=StrategyName.PCP,
        display_name="Priority + PCP Protocol",
        policy_factory=lambda _opts: PriorityPolicy(),
        protocol_factory=PriorityCeilingProtocol,
    ),
    StrategyName.PIP: StrategyBundle(
        name=StrategyName.PIP,
        display_name="Priority + PIP Protocol",
        policy_factory=lambda _opts: PriorityPolicy(),
        protocol_factory=PriorityInheritanceProtocol,
    ),
}


def available_strategies() -> list[StrategyBundle]:
    """Return every bundle in declaration order."""
    return list(_BUNDLES.values())


def get_strategy(name: str) -> StrategyBundle:
    """Look up a bundle by name.

    Args:
        name: A ``StrategyName`` or its string value.

    Raises:
        ValueError: If no strategy has that name.

    """
    try:
        key = StrategyName(name)
    except ValueError:
        valid = ", ".join(s.value for s in StrategyName)
        msg = f"Unknown strategy '{name}'. Use one of: {valid}"
        raise ValueError(msg) from None
    return _BUNDLES[key]
