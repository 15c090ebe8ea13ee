"""
Point sets for drawing f(x) and the region under it.

Unlike the integral engines these helpers are tolerant: points where f is
undefined are dropped (and counted) so the rest of the curve can still be
drawn. Callers that need every point should use sample() directly.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from abc_engines import validate_count, validate_interval
from expression_engine import CompiledExpression
from utils import settings


@dataclass(frozen=True)
class CurveSamples:
    xs: np.ndarray
    ys: np.ndarray
    dropped: int = 0

    def __len__(self) -> int:
        return len(self.xs)

    def points(self) -> List[Tuple[float, float]]:
        return [(float(x), float(y)) for x, y in zip(self.xs, self.ys)]


@dataclass(frozen=True)
class BoundMarker:
    x: float
    height: float

    def segment(self) -> Tuple[List[float], List[float]]:
        return [self.x, self.x], [0.0, self.height]


def _finite_only(xs: np.ndarray, ys: np.ndarray) -> CurveSamples:
    mask = np.isfinite(ys)
    return CurveSamples(xs=xs[mask], ys=ys[mask], dropped=int((~mask).sum()))


def sample_curve(compiled: CompiledExpression, a: float, b: float,
                 samples: Optional[int] = None, margin: Optional[float] = None) -> CurveSamples:
    """f over [min(a,b) - margin, max(a,b) + margin]."""
    a, b = validate_interval(a, b)
    samples = settings.CURVE_SAMPLES if samples is None else validate_count('samples', samples)
    margin = settings.CURVE_MARGIN if margin is None else float(margin)
    if margin < 0:
        raise ValueError(f"margin must be >= 0, got {margin}")
    lo, hi = min(a, b) - margin, max(a, b) + margin
    xs = np.linspace(lo, hi, samples + 1)
    return _finite_only(xs, compiled.evaluate_many(xs))


def sample_region(compiled: CompiledExpression, a: float, b: float,
                  samples: Optional[int] = None) -> CurveSamples:
    """f over the integration interval itself, for shading."""
    a, b = validate_interval(a, b)
    samples = settings.REGION_SAMPLES if samples is None else validate_count('samples', samples)
    xs = np.linspace(min(a, b), max(a, b), samples + 1)
    return _finite_only(xs, compiled.evaluate_many(xs))


def bound_markers(compiled: CompiledExpression, a: float, b: float) -> List[BoundMarker]:
    """Vertical segments at x = a and x = b; bounds where f is undefined are skipped."""
    a, b = validate_interval(a, b)
    markers = []
    for x in (a, b):
        height = compiled.evaluate(x)
        if np.isfinite(height):
            markers.append(BoundMarker(x=x, height=height))
    return markers
