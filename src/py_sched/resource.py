"""Resources: mutually-exclusive objects processes contend for.

A resource is a lock with an owner and a wait-set, much like a kernel
mutex: at most one process owns it, and any other process that asks for
it is parked in the resource's wait-set until the owner lets go.

Unlike a textbook mutex, a resource here does not decide *who* gets it
next.  The record only holds state; the acquire/release protocol in
``py_sched.protocols`` decides the hand-off order and any priority side
effects.  This keeps one resource type usable by every protocol.

The system has a fixed number of resources for the whole run, kept in a
``ResourceTable`` indexed by resource id.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from py_sched.process import Process

NR_RESOURCES = 32


class ProtocolViolation(RuntimeError):  # noqa: N818
    """Raise when the resource/scheduling data model is corrupt.

    Examples: a non-owner releasing a resource, a waiter being woken
    while not in WAIT, a process sitting in two queues at once.  These
    are programming errors in the driver or the strategy, and the run
    cannot safely continue.
    """


class Resource:
    """One mutually-exclusive resource: an owner and an ordered wait-set."""

    def __init__(self, *, resource_id: int) -> None:
        """Create an unowned resource with an empty wait-set."""
        self._resource_id = resource_id
        self._owner: Process | None = None
        self._waitqueue: deque[Process] = deque()

    @property
    def resource_id(self) -> int:
        """Return the index of this resource in the table."""
        return self._resource_id

    @property
    def owner(self) -> Process | None:
        """Return the owning process, or None."""
        return self._owner

    @owner.setter
    def owner(self, process: Process | None) -> None:
        """Set or clear the owner (protocols only)."""
        self._owner = process

    @property
    def is_owned(self) -> bool:
        """Return whether some process holds this resource."""
        return self._owner is not None

    @property
    def waitqueue(self) -> deque[Process]:
        """Return the wait-set (mutable; protocols only)."""
        return self._waitqueue

    @property
    def waiters(self) -> list[Process]:
        """Return a snapshot of the blocked processes in arrival order."""
        return list(self._waitqueue)

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        state = f"owned by {self._owner.pid}" if self._owner is not None else "free"
        return f"Resource({self._resource_id}, {state}, waiters={len(self._waitqueue)})"


class ResourceTable:
    """Fixed-size collection of resources, indexed by resource id."""

    def __init__(self, *, size: int = NR_RESOURCES) -> None:
        """Create *size* unowned resources with ids ``0 .. size-1``.

        Raises:
            ValueError: If size is negative.

        """
        if size < 0:
            msg = f"Resource table size must be non-negative, got {size}"
            raise ValueError(msg)
        self._resources = tuple(Resource(resource_id=i) for i in range(size))

    def __getitem__(self, resource_id: int) -> Resource:
        """Return the resource with the given id.

        Raises:
            IndexError: If the id is outside the table.

        """
        if not 0 <= resource_id < len(self._resources):
            msg = f"No resource {resource_id} (table has {len(self._resources)})"
            raise IndexError(msg)
        return self._resources[resource_id]

    def __len__(self) -> int:
        """Return the number of resources in the table."""
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        """Iterate over resources in id order."""
        return iter(self._resources)

    def owned_by(self, process: Process) -> list[Resource]:
        """Return every resource currently held by *process*."""
        return [r for r in self._resources if r.owner is process]

    def blocking(self, process: Process) -> Resource | None:
        """Return the resource whose wait-set holds *process*, or None."""
        for resource in self._resources:
            if process in resource.waitqueue:
                return resource
        return None
