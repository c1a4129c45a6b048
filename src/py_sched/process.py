"""Process record: the unit of schedulable work.

A simulated process alternates between running on the CPU and waiting
on a mutually-exclusive resource.  Each one carries:

- **identity**: a PID handed out by whoever creates it, plus a name.
- **timing**: ``age`` (CPU ticks consumed) and ``lifespan`` (ticks it
  needs before it may terminate).
- **priority**: ``prio`` is the effective priority that policies and
  resource protocols are free to rewrite; ``prio_orig`` is the baseline
  it is restored to after a boost.
- **state**: READY, RUNNING, WAIT or TERMINATED.

Transitions are enforced, just like a PCB in a textbook kernel::

    READY ⇄ RUNNING → TERMINATED
              ↓  ↑
              WAIT → READY

Calling a transition from the wrong source state raises RuntimeError;
such a call means the scheduler's bookkeeping is already corrupt.
"""

from enum import StrEnum


class ProcessState(StrEnum):
    """Lifecycle states of a simulated process.

    - READY: eligible to run, sitting in the ready queue.
    - RUNNING: selected to run this tick; in no queue.
    - WAIT: blocked on a resource, sitting in that resource's wait-set.
    - TERMINATED: consumed its whole lifespan; never scheduled again.
    """

    READY = "ready"
    RUNNING = "running"
    WAIT = "wait"
    TERMINATED = "terminated"


class Process:
    """A simulated process.

    Processes are created READY with ``age = 0``.  The scheduling policy
    and the resource protocol move them between states; only the tick
    driver advances ``age``.
    """

    def __init__(
        self,
        *,
        pid: int,
        lifespan: int,
        prio: int = 0,
        name: str | None = None,
    ) -> None:
        """Create a READY process.

        Args:
            pid: Stable identity for the lifetime of the process.
            lifespan: Total CPU ticks required before termination.
            prio: Original priority (higher = more important).
            name: Human-readable label; defaults to ``P<pid>``.

        Raises:
            ValueError: If lifespan is not positive.

        """
        if lifespan < 1:
            msg = f"Process {pid}: lifespan must be positive, got {lifespan}"
            raise ValueError(msg)
        self._pid = pid
        self._name = name if name is not None else f"P{pid}"
        self._lifespan = lifespan
        self._age = 0
        self._prio_orig = prio
        self._prio = prio
        self._state = ProcessState.READY

    @property
    def pid(self) -> int:
        """Return the process identifier."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the process name."""
        return self._name

    @property
    def state(self) -> ProcessState:
        """Return the current process state."""
        return self._state

    @property
    def age(self) -> int:
        """Return the CPU ticks consumed so far."""
        return self._age

    @property
    def lifespan(self) -> int:
        """Return the CPU ticks this process needs in total."""
        return self._lifespan

    @property
    def remaining(self) -> int:
        """Return the CPU ticks still needed (``lifespan - age``)."""
        return self._lifespan - self._age

    @property
    def is_complete(self) -> bool:
        """Return True once the whole lifespan has been consumed."""
        return self._age >= self._lifespan

    @property
    def prio(self) -> int:
        """Return the effective priority."""
        return self._prio

    @prio.setter
    def prio(self, value: int) -> None:
        """Set the effective priority (aging, ceiling and inheritance)."""
        self._prio = value

    @property
    def prio_orig(self) -> int:
        """Return the originally assigned priority (immutable)."""
        return self._prio_orig

    def restore_priority(self) -> None:
        """Drop any boost and return ``prio`` to ``prio_orig``."""
        self._prio = self._prio_orig

    def run_tick(self) -> None:
        """Consume one tick of CPU time.

        Raises:
            RuntimeError: If the process is not running or has already
                consumed its whole lifespan.

        """
        if self._state is not ProcessState.RUNNING:
            msg = f"Cannot run: process {self._pid} is {self._state}, expected running"
            raise RuntimeError(msg)
        if self.is_complete:
            msg = f"Cannot run: process {self._pid} already reached its lifespan"
            raise RuntimeError(msg)
        self._age += 1

    def _transition(self, action: str, expected: ProcessState, target: ProcessState) -> None:
        """Enforce a state transition.

        Args:
            action: Name of the transition (for error messages).
            expected: The state the process must be in.
            target: The state to move to.

        Raises:
            RuntimeError: If the process is not in the expected state.

        """
        if self._state is not expected:
            msg = f"Cannot {action}: process {self._pid} is {self._state}, expected {expected}"
            raise RuntimeError(msg)
        self._state = target

    def dispatch(self) -> None:
        """Transition READY → RUNNING. Give the process the CPU."""
        self._transition("dispatch", ProcessState.READY, ProcessState.RUNNING)

    def preempt(self) -> None:
        """Transition RUNNING → READY. Hand the CPU back to the scheduler."""
        self._transition("preempt", ProcessState.RUNNING, ProcessState.READY)

    def block(self) -> None:
        """Transition RUNNING → WAIT. Block on a busy resource."""
        self._transition("block", ProcessState.RUNNING, ProcessState.WAIT)

    def wake(self) -> None:
        """Transition WAIT → READY. The resource was released."""
        self._transition("wake", ProcessState.WAIT, ProcessState.READY)

    def terminate(self) -> None:
        """Transition RUNNING → TERMINATED. The lifespan is used up.

        Raises:
            RuntimeError: If the process is not running or still has
                ticks left to run.

        """
        if not self.is_complete:
            msg = f"Cannot terminate: process {self._pid} has {self.remaining} ticks left"
            raise RuntimeError(msg)
        self._transition("terminate", ProcessState.RUNNING, ProcessState.TERMINATED)

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return (
            f"Process(pid={self._pid}, name={self._name!r}, state={self._state}, "
            f"age={self._age}/{self._lifespan}, prio={self._prio}/{self._prio_orig})"
        )
