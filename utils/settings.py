"""
Central numeric settings for the integral engines.
The REPL (or tests) may call set_subdivisions(value) to change the panel
count; engines should only *read* the current value through
get_subdivisions().
"""
from typing import List, Tuple

DEFAULT_SUBDIVISIONS = 1000
_PRESETS: List[int] = [DEFAULT_SUBDIVISIONS, 10, 100, 5000, 10000]  # default + 4 alternatives
_CURRENT = DEFAULT_SUBDIVISIONS

# Riemann rectangles shown by display tools (the engine itself only needs n >= 1)
RIEMANN_MIN_STEPS = 5
RIEMANN_MAX_STEPS = 50
DEFAULT_RIEMANN_STEPS = 10

# Plot sampling
CURVE_SAMPLES = 200
REGION_SAMPLES = 100
CURVE_MARGIN = 1.0


def get_subdivisions() -> int:
    """Return the active trapezoid panel count."""
    return _CURRENT


def set_subdivisions(value: int) -> None:
    """Set the default panel count used when callers pass none."""
    global _CURRENT
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"subdivisions must be an int, got {value!r}")
    if value < 1:
        raise ValueError(f"subdivisions must be >= 1, got {value}")
    _CURRENT = value


def reset_subdivisions() -> None:
    global _CURRENT
    _CURRENT = DEFAULT_SUBDIVISIONS


def presets() -> List[int]:
    return _PRESETS.copy()


def riemann_range() -> Tuple[int, int]:
    return RIEMANN_MIN_STEPS, RIEMANN_MAX_STEPS


def clamp_riemann_steps(steps: int) -> int:
    """Pin a requested rectangle count into the display range."""
    return max(RIEMANN_MIN_STEPS, min(RIEMANN_MAX_STEPS, int(steps)))
