import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .capacity import validate_capacity
from .models import CapacityMode, PlanningInputError


DEFAULT_CAPACITY = 20
DEFAULT_CAPACITY_MODE = CapacityMode.POINTS
DEFAULT_LOG_LEVEL = 'INFO'


@dataclass
class PlannerSettings:
    capacity: float = DEFAULT_CAPACITY
    capacity_mode: CapacityMode = DEFAULT_CAPACITY_MODE
    log_level: str = DEFAULT_LOG_LEVEL


def _parse_capacity(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise PlanningInputError(f"PLANNER_CAPACITY must be a number, got {raw!r}") from None
    if value.is_integer():
        value = int(value)
    return validate_capacity(value)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> PlannerSettings:
    """Read settings from the environment (``.env`` is loaded by the CLI)."""
    env = os.environ if environ is None else environ
    log_level = env.get('PLANNER_LOG_LEVEL', DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL
    if not isinstance(logging.getLevelName(log_level), int):
        raise PlanningInputError(f"PLANNER_LOG_LEVEL {log_level!r} is not a logging level")
    return PlannerSettings(
        capacity=_parse_capacity(env.get('PLANNER_CAPACITY', str(DEFAULT_CAPACITY)).strip()),
        capacity_mode=CapacityMode.parse(env.get('PLANNER_CAPACITY_MODE', DEFAULT_CAPACITY_MODE.value).strip().lower()),
        log_level=log_level,
    )
