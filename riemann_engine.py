"""
Midpoint Riemann sums with per-rectangle geometry.

    Δx     = (b - a) / n
    left_i = a + i·Δx                 i = 0 … n-1
    h_i    = f(left_i + Δx/2)
    area_i = h_i · Δx                 (signed, like Δx and h_i)

Rectangles come back in index order, i.e. the left-to-right sweep of [a, b]
(right-to-left when a > b).
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from abc_engines import (DomainFailure, EvaluationFailure, IntegralError, IntegrationResult,
                         MathEngine, validate_count, validate_interval)
from expression_engine import CompiledExpression
from utils.settings import DEFAULT_RIEMANN_STEPS


@dataclass(frozen=True)
class Rectangle:
    left: float
    width: float
    height: float
    area: float
    index: int

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def midpoint(self) -> float:
        return self.left + self.width / 2

    def outline(self) -> Tuple[List[float], List[float]]:
        """Closed polygon (xs, ys) tracing the rectangle from its base."""
        xs = [self.left, self.right, self.right, self.left, self.left]
        ys = [0.0, 0.0, self.height, self.height, 0.0]
        return xs, ys

    def describe(self) -> str:
        return (f"rectangle {self.index + 1}: width {self.width:.3f}, "
                f"height {self.height:.3f}, area {self.area:.3f}")


@dataclass(frozen=True)
class RiemannSum:
    total: float
    rectangles: Tuple[Rectangle, ...]

    def __len__(self) -> int:
        return len(self.rectangles)

    @property
    def width(self) -> float:
        return self.rectangles[0].width


def riemann_sum(compiled: CompiledExpression, a: float, b: float, n: int) -> RiemannSum:
    """Midpoint Riemann sum; an undefined height anywhere raises DomainFailure."""
    a, b = validate_interval(a, b)
    n = validate_count('n', n)

    dx = (b - a) / n
    lefts = a + np.arange(n) * dx
    mids = lefts + dx / 2
    heights = compiled.evaluate_many(mids)

    bad = ~np.isfinite(heights)
    if bad.any():
        i = int(np.argmax(bad))
        cause = EvaluationFailure(float(mids[i]), float(heights[i]), compiled.text)
        raise DomainFailure(f"rectangle {i + 1} has no height: {cause}", x=float(mids[i])) from cause

    rectangles = []
    total = 0.0
    for i in range(n):
        height = float(heights[i])
        area = height * dx
        total += area
        rectangles.append(Rectangle(left=float(lefts[i]), width=dx, height=height, area=area, index=i))
    return RiemannSum(total=total, rectangles=tuple(rectangles))


class RiemannEngine(MathEngine):
    """Midpoint Riemann partitions for visualising an integral."""

    def partition(self, compiled: CompiledExpression, a: float, b: float, n: int) -> RiemannSum:
        self._add_traceback('riemann_start', f'{compiled.text} on [{a}, {b}], n={n}')
        result = riemann_sum(compiled, a, b, n)
        self._add_traceback('riemann_end', f'{len(result)} rectangles, total {result.total}')
        return result

    def compute(self, expr, a: float, b: float, n: Optional[int] = None) -> IntegrationResult:
        try:
            compiled = self._compile(expr)
            result = self.partition(compiled, a, b, DEFAULT_RIEMANN_STEPS if n is None else n)
        except IntegralError as exc:
            return self._failed(exc)
        return IntegrationResult.success(result.total)
