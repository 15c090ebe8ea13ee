"""
Integral inspector & orchestrator.

Usage
-----
    inspector = IntegralInspector()
    report = inspector.inspect("x^2", 0, 2, riemann_steps=10)
    report.integral.value      # ≈ 2.666667
    report.riemann.total       # midpoint sum with 10 rectangles
"""
import functools
from dataclasses import dataclass
from typing import Optional, Tuple

from abc_engines import IntegralError, IntegrationResult, validate_interval
from expression_engine import CompiledExpression, compile_expression, integral_latex
from quadrature_engine import QuadratureEngine
from riemann_engine import RiemannEngine, RiemannSum
from utils.settings import clamp_riemann_steps


@dataclass(frozen=True)
class ExampleFunction:
    expr: str
    name: str
    bounds: Tuple[float, float]


EXAMPLE_FUNCTIONS = (
    ExampleFunction('x^2', 'x²', (0.0, 2.0)),
    ExampleFunction('sin(x)', 'sin(x)', (0.0, 3.14159)),
    ExampleFunction('exp(x)', 'eˣ', (0.0, 1.0)),
    ExampleFunction('1/x', '1/x', (1.0, 3.0)),
    ExampleFunction('sqrt(x)', '√x', (0.0, 4.0)),
    ExampleFunction('x^3 - 2*x^2 + x', 'x³-2x²+x', (-1.0, 3.0)),
)


@functools.lru_cache(maxsize=128)  # Cache up to 128 recent formulas
def compile_cached(text: str) -> CompiledExpression:
    """Memoised compile keyed by the exact text; InvalidExpression is not cached."""
    return compile_expression(text)


@dataclass(frozen=True)
class IntegralReport:
    expr: str
    bounds: Tuple[float, float]
    integral: IntegrationResult
    riemann: Optional[RiemannSum] = None
    riemann_error: Optional[str] = None
    latex: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.integral.ok


class IntegralInspector:
    def __init__(self, subdivisions: Optional[int] = None):
        self._engines = {
            'quad':    QuadratureEngine(subdivisions),
            'riemann': RiemannEngine(),
        }

    @property
    def traceback_info(self):
        events = [e for engine in self._engines.values() for e in engine.traceback_info]
        return sorted(events, key=lambda e: e['timestamp'])

    def engine(self, name: str):
        return self._engines[name]

    def inspect(self, expr: str, a: float, b: float, riemann_steps: Optional[int] = None,
                subdivisions: Optional[int] = None) -> IntegralReport:
        """
        Master entry: integral of expr over [a, b] plus, when riemann_steps is
        given, the midpoint partition clamped to the display range.
        """
        try:
            validate_interval(a, b)
            compiled = compile_cached(expr)
        except IntegralError as exc:
            return IntegralReport(expr=expr, bounds=(a, b), integral=IntegrationResult.failure(exc))

        integral = self._engines['quad'].compute(compiled, a, b, subdivisions)

        riemann, riemann_error = None, None
        if riemann_steps is not None:
            try:
                riemann = self._engines['riemann'].partition(
                    compiled, a, b, clamp_riemann_steps(riemann_steps))
            except IntegralError as exc:
                riemann_error = str(exc)

        return IntegralReport(
            expr=compiled.text,
            bounds=(a, b),
            integral=integral,
            riemann=riemann,
            riemann_error=riemann_error,
            latex=integral_latex(compiled, a, b),
        )

    def example(self, index: int, riemann_steps: Optional[int] = None) -> IntegralReport:
        example = EXAMPLE_FUNCTIONS[index]
        return self.inspect(example.expr, *example.bounds, riemann_steps=riemann_steps)
