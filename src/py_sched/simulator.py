"""Reference tick driver: run a workload through one strategy.

The scheduler core only makes decisions; something has to advance time.
``Simulation`` is that something.  Each call to ``step()`` is one tick:

1. **Arrivals**: processes whose arrival tick has come are created
   READY and appended to the ready queue, in workload order.
2. **Schedule**: the strategy picks the process to run (or none).
3. **Acquire**: resource requests due at the process's current age are
   issued in order.  If one blocks, the tick is spent and the request
   stays pending; it is retried when the process is scheduled again.
4. **Run**: the process consumes one tick (``age += 1``).
5. **Release**: resources whose hold time is up are released, which may
   wake a waiter.
6. **Exit**: a process whose age reached its lifespan terminates.

A workload is a list of ``ProcessSpec`` values.  Each spec may carry
``ResourceAction`` entries meaning "at age *at*, acquire *resource_id*
and hold it for *duration* ticks".
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from py_sched.context import MAX_PRIO, SimulationContext
from py_sched.logging import LogLevel
from py_sched.process import Process, ProcessState
from py_sched.resource import NR_RESOURCES
from py_sched.scheduler import Scheduler
from py_sched.strategies import StrategyBundle, get_strategy

if TYPE_CHECKING:
    from collections.abc import Iterable

    from py_sched.config import SimulationConfig
    from py_sched.logging import LogEntry

DEFAULT_MAX_TICKS = 10_000

_SOURCE = "simulator"


class SimulationError(RuntimeError):
    """Raise when a run cannot finish.

    Examples: the tick limit was hit, or every remaining process is
    blocked and nothing is left to arrive.
    """


@dataclass(frozen=True)
class ResourceAction:
    """Hold a resource for part of a process's life.

    Attributes:
        at: The process age at which the resource is requested.
        resource_id: The resource to acquire.
        duration: How many ticks of CPU the process holds it for.

    """

    at: int
    resource_id: int
    duration: int

    def __post_init__(self) -> None:
        """Validate the action's timing."""
        if self.at < 0:
            msg = f"Resource action cannot start at negative age {self.at}"
            raise ValueError(msg)
        if self.duration < 1:
            msg = f"Resource action duration must be positive, got {self.duration}"
            raise ValueError(msg)

    @property
    def release_at(self) -> int:
        """Return the age at which the resource is released."""
        return self.at + self.duration


@dataclass(frozen=True)
class ProcessSpec:
    """Everything needed to create one process in a workload.

    Attributes:
        name: Human-readable label.
        lifespan: CPU ticks the process needs.
        prio: Original priority (higher = more important).
        arrival: Tick on which the process enters the ready queue.
        actions: Resource holds, in any order.

    """

    name: str
    lifespan: int
    prio: int = 0
    arrival: int = 0
    actions: tuple[ResourceAction, ...] = ()

    def __post_init__(self) -> None:
        """Validate timing against the lifespan and between holds of one resource."""
        if self.lifespan < 1:
            msg = f"Process '{self.name}': lifespan must be positive, got {self.lifespan}"
            raise ValueError(msg)
        if self.arrival < 0:
            msg = f"Process '{self.name}': arrival cannot be negative, got {self.arrival}"
            raise ValueError(msg)
        for action in self.actions:
            if action.release_at > self.lifespan:
                msg = (
                    f"Process '{self.name}': holds resource {action.resource_id} "
                    f"until age {action.release_at}, past its lifespan {self.lifespan}"
                )
                raise ValueError(msg)
        last_release: dict[int, int] = {}
        for action in sorted(self.actions, key=lambda a: a.at):
            if action.at < last_release.get(action.resource_id, 0):
                msg = (
                    f"Process '{self.name}': holds resource {action.resource_id} "
                    f"again at age {action.at} before releasing it at age "
                    f"{last_release[action.resource_id]}"
                )
                raise ValueError(msg)
            last_release[action.resource_id] = action.release_at


@dataclass(frozen=True)
class TickRecord:
    """What happened on one tick.

    Attributes:
        tick: The tick number.
        pid: The scheduled process, or None if the CPU was idle.
        blocked: True if the scheduled process blocked on a resource
            instead of running.

    """

    tick: int
    pid: int | None
    blocked: bool = False


@dataclass(frozen=True)
class SimulationResult:
    """The outcome of a complete run."""

    strategy: str
    records: tuple[TickRecord, ...]
    finish_ticks: dict[int, int] = field(default_factory=lambda: {})  # noqa: PIE807
    context_switches: int = 0
    log: tuple[LogEntry, ...] = ()

    @property
    def timeline(self) -> list[int | None]:
        """Return the PID that actually ran on each tick (None if none did)."""
        return [None if r.blocked else r.pid for r in self.records]

    @property
    def total_ticks(self) -> int:
        """Return the number of ticks the run took."""
        return len(self.records)


class Simulation:
    """Drive a workload through one strategy, one tick at a time."""

    def __init__(
        self,
        strategy: StrategyBundle | str,
        processes: Iterable[ProcessSpec],
        *,
        num_resources: int = NR_RESOURCES,
        max_priority: int = MAX_PRIO,
        quantum: int = 1,
        check_invariants: bool = True,
        max_ticks: int = DEFAULT_MAX_TICKS,
    ) -> None:
        """Create a simulation.

        Args:
            strategy: The bundle to run, or its name.
            processes: The workload; PIDs are assigned in this order from 0.
            num_resources: Size of the resource table.
            max_priority: System maximum priority.
            quantum: Round Robin time slice.
            check_invariants: Verify queue/ownership invariants every tick.
            max_ticks: Abort with SimulationError after this many ticks.

        Raises:
            ValueError: If the strategy is unknown or an action names a
                resource outside the table.

        """
        bundle = strategy if isinstance(strategy, StrategyBundle) else get_strategy(strategy)
        self._specs = tuple(processes)
        for spec in self._specs:
            for action in spec.actions:
                if not 0 <= action.resource_id < num_resources:
                    msg = (
                        f"Process '{spec.name}': no resource {action.resource_id} "
                        f"(table has {num_resources})"
                    )
                    raise ValueError(msg)

        self._context = SimulationContext(num_resources=num_resources, max_priority=max_priority)
        self._scheduler = Scheduler(bundle, self._context, quantum=quantum)
        self._check_invariants = check_invariants
        self._max_ticks = max_ticks

        self._arrivals: deque[tuple[int, ProcessSpec]] = deque(
            sorted(enumerate(self._specs), key=lambda item: item[1].arrival),
        )
        self._processes: dict[int, Process] = {}
        self._pending: dict[int, deque[ResourceAction]] = {}
        self._held: dict[int, list[ResourceAction]] = {}
        self._records: list[TickRecord] = []
        self._finish_ticks: dict[int, int] = {}

    @classmethod
    def from_config(cls, config: SimulationConfig) -> Simulation:
        """Build a simulation from a loaded configuration."""
        return cls(
            config.strategy,
            config.processes,
            num_resources=config.num_resources,
            max_priority=config.max_priority,
            quantum=config.quantum,
            check_invariants=config.check_invariants,
            max_ticks=config.max_ticks,
        )

    @property
    def context(self) -> SimulationContext:
        """Return the simulation context."""
        return self._context

    @property
    def scheduler(self) -> Scheduler:
        """Return the scheduler driving this run."""
        return self._scheduler

    @property
    def processes(self) -> dict[int, Process]:
        """Return every process created so far, by PID."""
        return dict(self._processes)

    @property
    def records(self) -> list[TickRecord]:
        """Return the tick records so far."""
        return list(self._records)

    @property
    def is_finished(self) -> bool:
        """Return True once every process has arrived and terminated."""
        return not self._arrivals and all(
            p.state is ProcessState.TERMINATED for p in self._processes.values()
        )

    def step(self) -> TickRecord:
        """Advance the simulation by one tick.

        Raises:
            SimulationError: If nothing can run and nothing will arrive
                while some process is still blocked.

        """
        ctx = self._context
        tick = ctx.ticks
        self._admit_arrivals(tick)

        process = self._scheduler.schedule()
        if process is None:
            if not self._arrivals and not self.is_finished:
                stuck = sorted(
                    p.pid for p in self._processes.values() if p.state is ProcessState.WAIT
                )
                msg = f"Stalled at tick {tick}: processes {stuck} are blocked forever"
                ctx.log(LogLevel.ERROR, msg, source=_SOURCE)
                raise SimulationError(msg)
            record = TickRecord(tick=tick, pid=None)
        elif not self._issue_acquires(process):
            record = TickRecord(tick=tick, pid=process.pid, blocked=True)
        else:
            process.run_tick()
            self._issue_releases(process)
            if process.is_complete:
                process.terminate()
                self._finish_ticks[process.pid] = tick
                ctx.log(LogLevel.INFO, f"P{process.pid} exited", source=_SOURCE)
            record = TickRecord(tick=tick, pid=process.pid)

        if self._check_invariants:
            ctx.check_invariants()
        ctx.ticks += 1
        self._records.append(record)
        return record

    def run(self) -> SimulationResult:
        """Run the workload to completion.

        Raises:
            SimulationError: If the tick limit is reached or the run stalls.

        """
        self._scheduler.initialize()
        while not self.is_finished:
            if self._context.ticks >= self._max_ticks:
                msg = f"Simulation did not finish within {self._max_ticks} ticks"
                self._context.log(LogLevel.ERROR, msg, source=_SOURCE)
                raise SimulationError(msg)
            self.step()
        self._scheduler.finalize()
        return SimulationResult(
            strategy=self._scheduler.bundle.name,
            records=tuple(self._records),
            finish_ticks=dict(self._finish_ticks),
            context_switches=self._scheduler.context_switches,
            log=tuple(self._context.logger.entries),
        )

    def _admit_arrivals(self, tick: int) -> None:
        """Create every process arriving on *tick* and queue it."""
        while self._arrivals and self._arrivals[0][1].arrival <= tick:
            pid, spec = self._arrivals.popleft()
            process = Process(pid=pid, lifespan=spec.lifespan, prio=spec.prio, name=spec.name)
            self._processes[pid] = process
            self._pending[pid] = deque(sorted(spec.actions, key=lambda a: a.at))
            self._held[pid] = []
            self._context.add_ready(process)
            self._context.log(
                LogLevel.INFO,
                f"P{pid} ({spec.name}) arrived: lifespan {spec.lifespan}, prio {spec.prio}",
                source=_SOURCE,
            )

    def _issue_acquires(self, process: Process) -> bool:
        """Request every resource due at the current age; False if blocked."""
        pending = self._pending[process.pid]
        while pending and pending[0].at == process.age:
            action = pending[0]
            if not self._scheduler.acquire(action.resource_id):
                return False
            pending.popleft()
            self._held[process.pid].append(action)
        return True

    def _issue_releases(self, process: Process) -> None:
        """Release every resource whose hold ends at the current age."""
        held = self._held[process.pid]
        for action in [a for a in held if a.release_at == process.age]:
            self._scheduler.release(action.resource_id)
            held.remove(action)
