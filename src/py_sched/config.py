"""Simulation configuration: strategy, system limits and workload.

A configuration document is plain JSON::

    {
      "strategy": "pip",
      "num_resources": 32,
      "max_priority": 32,
      "quantum": 1,
      "check_invariants": true,
      "max_ticks": 10000,
      "processes": [
        {"name": "low", "lifespan": 6, "prio": 1, "arrival": 0,
         "actions": [{"at": 0, "resource": 0, "duration": 4}]}
      ]
    }

Only ``processes`` is required.  ``load_config`` reads a file and
``SimulationConfig.from_dict`` parses an already-decoded mapping (for
example a web request body).  Any problem surfaces as ``ConfigError``
with the underlying cause chained.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from py_sched.context import MAX_PRIO
from py_sched.resource import NR_RESOURCES
from py_sched.simulator import DEFAULT_MAX_TICKS, ProcessSpec, ResourceAction
from py_sched.strategies import StrategyName, get_strategy

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path


class ConfigError(RuntimeError):
    """Raise when a configuration document cannot be used.

    Examples: unreadable file, malformed JSON, unknown strategy, a
    process with a negative lifespan.
    """


@dataclass(frozen=True)
class SimulationConfig:
    """A validated simulation configuration."""

    processes: tuple[ProcessSpec, ...]
    strategy: str = StrategyName.FIFO
    num_resources: int = NR_RESOURCES
    max_priority: int = MAX_PRIO
    quantum: int = 1
    check_invariants: bool = True
    max_ticks: int = DEFAULT_MAX_TICKS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SimulationConfig:
        """Parse a decoded configuration document.

        Raises:
            ConfigError: If a field is missing, mistyped or invalid.

        """
        if not isinstance(data, dict):
            msg = f"Configuration must be a JSON object, got {type(data).__name__}"
            raise ConfigError(msg)
        try:
            strategy = str(data.get("strategy", StrategyName.FIFO))
            get_strategy(strategy)
            raw_processes = data["processes"]
            if not isinstance(raw_processes, list):
                msg = "'processes' must be a list"
                raise TypeError(msg)
            processes = tuple(_parse_process(i, p) for i, p in enumerate(raw_processes))
            num_resources = int(data.get("num_resources", NR_RESOURCES))
            if num_resources < 0:
                msg = f"'num_resources' must be non-negative, got {num_resources}"
                raise ValueError(msg)
            quantum = int(data.get("quantum", 1))
            if quantum < 1:
                msg = f"'quantum' must be at least 1 tick, got {quantum}"
                raise ValueError(msg)
            for spec in processes:
                for action in spec.actions:
                    if not 0 <= action.resource_id < num_resources:
                        msg = (
                            f"process '{spec.name}' uses resource {action.resource_id}, "
                            f"but only {num_resources} exist"
                        )
                        raise ValueError(msg)
            return cls(
                processes=processes,
                strategy=strategy,
                num_resources=num_resources,
                max_priority=int(data.get("max_priority", MAX_PRIO)),
                quantum=quantum,
                check_invariants=bool(data.get("check_invariants", True)),
                max_ticks=int(data.get("max_ticks", DEFAULT_MAX_TICKS)),
            )
        except KeyError as e:
            msg = f"Invalid configuration: missing field {e}"
            raise ConfigError(msg) from e
        except (TypeError, ValueError) as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigError(msg) from e


def _parse_process(index: int, raw: Mapping[str, Any]) -> ProcessSpec:
    """Build one ProcessSpec from its JSON object."""
    if not isinstance(raw, dict):
        msg = f"process #{index} must be an object"
        raise TypeError(msg)
    actions = tuple(
        ResourceAction(
            at=int(a["at"]),
            resource_id=int(a["resource"]),
            duration=int(a["duration"]),
        )
        for a in raw.get("actions", [])
    )
    return ProcessSpec(
        name=str(raw.get("name", f"P{index}")),
        lifespan=int(raw["lifespan"]),
        prio=int(raw.get("prio", 0)),
        arrival=int(raw.get("arrival", 0)),
        actions=actions,
    )


def load_config(path: Path) -> SimulationConfig:
    """Load a configuration document from a JSON file.

    Raises:
        ConfigError: If the file cannot be read or parsed.

    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load configuration: {e}"
        raise ConfigError(msg) from e
    return SimulationConfig.from_dict(data)
