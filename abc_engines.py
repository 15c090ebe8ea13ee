from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from utils.trace_helpers import add_traceback


class IntegralError(ValueError):
    """Base class for every failure the engines report."""


class InvalidExpression(IntegralError):
    """The expression text cannot be compiled at all."""

    def __init__(self, message: str, text: str = '', position: Optional[int] = None):
        self.text = text
        self.position = position
        if position is not None:
            message = f"{message} (at column {position + 1})"
        super().__init__(message)


class EvaluationFailure(IntegralError):
    """A well-formed expression is undefined (non-finite) at one point."""

    def __init__(self, x: float, value: float, text: str = ''):
        self.x = x
        self.value = value
        self.text = text
        super().__init__(f"f(x) = {text or 'f'} is undefined at x = {x!r} (got {value!r})")


class DomainFailure(IntegralError):
    """An integration or partition request hit an undefined sample point."""

    def __init__(self, message: str, x: Optional[float] = None):
        self.x = x
        super().__init__(message)


class InvalidArgument(IntegralError):
    """Bounds or counts outside what the engines accept."""


@dataclass(frozen=True)
class IntegrationResult:
    value: Optional[float] = None
    error: Optional[str] = None
    kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: float) -> 'IntegrationResult':
        return cls(value=float(value))

    @classmethod
    def failure(cls, exc: Exception) -> 'IntegrationResult':
        return cls(error=str(exc), kind=type(exc).__name__)


class MathEngine(ABC):
    """Abstract base class for all integral engines. Holds a private trace of computation steps."""

    def __init__(self):
        self.traceback_info: List[dict] = []

    def _add_traceback(self, step: str, info: str):
        add_traceback(self, step, info)

    @abstractmethod
    def compute(self, expr: str, a: float, b: float, *args) -> IntegrationResult:
        """Compile `expr`, run the engine over [a, b] and report a result instead of raising."""
        pass

    def _compile(self, expr):
        """Accept text or an already compiled expression."""
        # Late import to avoid circular dependency
        from expression_engine import CompiledExpression, compile_expression
        if isinstance(expr, CompiledExpression):
            return expr
        self._add_traceback('compile_start', repr(expr))
        compiled = compile_expression(expr)
        self._add_traceback('compile_end', f'{compiled.text} -> {compiled.tree}')
        return compiled

    def _failed(self, exc: IntegralError) -> IntegrationResult:
        self._add_traceback('failure', f'{type(exc).__name__}: {exc}')
        return IntegrationResult.failure(exc)


def validate_interval(a, b) -> Tuple[float, float]:
    """Coerce bounds to floats; both must be finite, order is free (oriented)."""
    try:
        a, b = float(a), float(b)
    except (TypeError, ValueError) as exc:
        raise InvalidArgument(f"bounds must be numbers, got [{a!r}, {b!r}]") from exc
    if not (np.isfinite(a) and np.isfinite(b)):
        raise InvalidArgument(f"bounds must be finite, got [{a}, {b}]")
    return a, b


def validate_count(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidArgument(f"{name} must be an int, got {value!r}")
    if value < 1:
        raise InvalidArgument(f"{name} must be >= 1, got {value}")
    return int(value)
