#!/usr/bin/env python3
"""
Interactive REPL for the integral engines.
Set a function and bounds, then integrate or partition into Riemann rectangles.
Type 'help' for the command list and 'quit' to exit.
"""
from abc_engines import IntegralError
from expression_engine import sample
from part_inspector import EXAMPLE_FUNCTIONS, IntegralInspector, compile_cached
from quadrature_engine import reference_integral
from utils.settings import (DEFAULT_RIEMANN_STEPS, get_subdivisions, presets, riemann_range,
                            set_subdivisions)
from utils.trace_helpers import format_trace, recent_traces

HELP = """Commands:
  f <expr>            set the integrand, e.g. 'f x^2' or 'f sin(x)'
  bounds <a> <b>      set the integration bounds
  integrate [N]       trapezoidal integral (N panels, default from 'panels')
  riemann [n]         midpoint Riemann sum with n rectangles ({lo}-{hi})
  eval <x>            evaluate f at one point
  examples            list example functions
  example <i>         load example i
  panels [N]          show or set the default panel count (presets: {presets})
  trace               toggle trace display
  quit                exit"""


class Session:
    """Mutable REPL state: current formula, bounds and display flags."""

    def __init__(self):
        self.expr = EXAMPLE_FUNCTIONS[0].expr
        self.bounds = EXAMPLE_FUNCTIONS[0].bounds
        self.show_trace = False
        self.inspector = IntegralInspector()

    def handle(self, line: str) -> str:
        parts = line.split(maxsplit=1)
        command = parts[0].lower()
        rest = parts[1].strip() if len(parts) > 1 else ''

        if command == 'help':
            lo, hi = riemann_range()
            return HELP.format(lo=lo, hi=hi, presets=presets())
        if command == 'f':
            if not rest:
                return f"f(x) = {self.expr}"
            compile_cached(rest)
            self.expr = rest
            return f"f(x) = {self.expr}"
        if command == 'bounds':
            values = rest.split()
            if len(values) != 2:
                return "Usage: bounds <a> <b>"
            self.bounds = (float(values[0]), float(values[1]))
            return f"[a, b] = [{self.bounds[0]}, {self.bounds[1]}]"
        if command == 'integrate':
            return self._integrate(int(rest) if rest else None)
        if command == 'riemann':
            return self._riemann(int(rest) if rest else DEFAULT_RIEMANN_STEPS)
        if command == 'eval':
            point = sample(compile_cached(self.expr), float(rest))
            if not point.valid:
                return f"f({point.x}) is undefined"
            return f"f({point.x}) = {point.y:.6f}"
        if command == 'examples':
            return '\n'.join(f"  {i}: {ex.name}  [{ex.bounds[0]}, {ex.bounds[1]}]"
                             for i, ex in enumerate(EXAMPLE_FUNCTIONS))
        if command == 'example':
            example = EXAMPLE_FUNCTIONS[int(rest)]
            self.expr, self.bounds = example.expr, example.bounds
            return f"f(x) = {self.expr} on [{self.bounds[0]}, {self.bounds[1]}]"
        if command == 'panels':
            if rest:
                set_subdivisions(int(rest))
            return f"Default panels: {get_subdivisions()}"
        if command == 'trace':
            self.show_trace = not self.show_trace
            return f"Trace display: {'ON' if self.show_trace else 'OFF'}"
        return f"Unknown command {command!r}; type 'help'"

    def _integrate(self, panels):
        a, b = self.bounds
        report = self.inspector.inspect(self.expr, a, b, subdivisions=panels)
        if not report.ok:
            return f"Error: {report.integral.error}"
        lines = [f"∫[{a}, {b}] {report.expr} dx ≈ {report.integral.value:.6f}"]
        try:
            reference = reference_integral(compile_cached(self.expr), a, b)
            lines.append(f"  reference (tanh-sinh): {reference:.6f}")
        except IntegralError as exc:
            lines.append(f"  reference unavailable: {exc}")
        return '\n'.join(lines + self._traces('quad'))

    def _riemann(self, steps):
        a, b = self.bounds
        report = self.inspector.inspect(self.expr, a, b, riemann_steps=steps)
        if report.riemann is None:
            return f"Error: {report.riemann_error or report.integral.error}"
        lines = [f"Riemann sum ({len(report.riemann)} rectangles): {report.riemann.total:.6f}"]
        lines += [f"  {rect.describe()}" for rect in report.riemann.rectangles]
        if report.ok:
            lines.append(f"Trapezoid: {report.integral.value:.6f}")
        return '\n'.join(lines + self._traces('riemann'))

    def _traces(self, engine_name):
        if not self.show_trace:
            return []
        engine = self.inspector.engine(engine_name)
        return ["Trace:"] + [f"  {format_trace(e)}" for e in recent_traces(engine)]


def main():
    """Run the interactive REPL."""
    print("=" * 80)
    print("Integral engine REPL")
    print("Type 'help' for commands, 'quit' to exit")

    session = Session()
    while True:
        try:
            user_input = input("integral> ").strip()
            if not user_input:
                continue
            if user_input.lower() == 'quit':
                print("Goodbye!")
                break
            print(session.handle(user_input))
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break
        except IntegralError as e:
            print(f"Error: {e}")
        except (ValueError, IndexError) as e:
            print(f"Error: {e}")


if __name__ == '__main__':
    main()
