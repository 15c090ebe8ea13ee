#!/usr/bin/env python3
"""
Integral inspector, settings and REPL session: the caller-facing layer over
the engines.
"""
import builtins
import io
import math
import os
import sys
import unittest
from contextlib import redirect_stdout
from unittest import mock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from abc_engines import InvalidExpression
from part_inspector import EXAMPLE_FUNCTIONS, IntegralInspector, compile_cached
from repl import Session, main
from utils import settings
from utils.trace_helpers import add_traceback, format_trace, recent_traces


class InspectorSuite(unittest.TestCase):
    def setUp(self):
        self.inspector = IntegralInspector()

    def test_full_report(self):
        report = self.inspector.inspect('x^2', 0, 2, riemann_steps=10)
        self.assertTrue(report.ok)
        self.assertAlmostEqual(report.integral.value, 8 / 3, places=4)
        self.assertEqual(len(report.riemann), 10)
        self.assertIsNone(report.riemann_error)
        self.assertIn('\\int', report.latex)
        self.assertTrue(self.inspector.traceback_info)

    def test_riemann_only_on_request(self):
        report = self.inspector.inspect('x^2', 0, 2)
        self.assertIsNone(report.riemann)

    def test_riemann_steps_clamped_to_display_range(self):
        self.assertEqual(len(self.inspector.inspect('x', 0, 1, riemann_steps=500).riemann), 50)
        self.assertEqual(len(self.inspector.inspect('x', 0, 1, riemann_steps=1).riemann), 5)

    def test_invalid_expression_reported(self):
        report = self.inspector.inspect('(x', 0, 1, riemann_steps=10)
        self.assertFalse(report.ok)
        self.assertEqual(report.integral.kind, 'InvalidExpression')
        self.assertIsNone(report.riemann)
        self.assertIsNone(report.latex)

    def test_bad_bounds_reported(self):
        for a, b in [(0, math.inf), (math.nan, 1), ('zero', 1)]:
            with self.subTest(bounds=(a, b)):
                report = self.inspector.inspect('x^2', a, b, riemann_steps=10)
                self.assertFalse(report.ok)
                self.assertEqual(report.integral.kind, 'InvalidArgument')
                self.assertIsNone(report.riemann)

    def test_bad_panel_count_reported(self):
        report = self.inspector.inspect('x^2', 0, 1, subdivisions=0)
        self.assertFalse(report.ok)
        self.assertEqual(report.integral.kind, 'InvalidArgument')

    def test_integral_fails_while_rectangles_survive(self):
        # midpoint 0 is undefined, the 10 rectangle midpoints are not
        report = self.inspector.inspect('1/x', -1, 1, riemann_steps=10)
        self.assertEqual(report.integral.kind, 'DomainFailure')
        self.assertIsNotNone(report.riemann)

    def test_rectangles_fail_independently(self):
        report = self.inspector.inspect('sqrt(x)', -1, 1, riemann_steps=5)
        self.assertIsNone(report.riemann)
        self.assertIsNotNone(report.riemann_error)

    def test_every_example_integrates(self):
        for i, example in enumerate(EXAMPLE_FUNCTIONS):
            with self.subTest(expr=example.expr):
                self.assertTrue(self.inspector.example(i, riemann_steps=10).ok)

    def test_compile_cache(self):
        self.assertIs(compile_cached('x^2 + 1'), compile_cached('x^2 + 1'))
        with self.assertRaises(InvalidExpression):
            compile_cached('x +')


class SettingsSuite(unittest.TestCase):
    def tearDown(self):
        settings.reset_subdivisions()

    def test_default(self):
        self.assertEqual(settings.get_subdivisions(), 1000)

    def test_set_and_validate(self):
        settings.set_subdivisions(250)
        self.assertEqual(settings.get_subdivisions(), 250)
        for bad in (0, -5, '10', 2.0, False):
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    settings.set_subdivisions(bad)

    def test_riemann_range(self):
        self.assertEqual(settings.riemann_range(), (5, 50))
        self.assertEqual(settings.clamp_riemann_steps(3), 5)
        self.assertEqual(settings.clamp_riemann_steps(20), 20)
        self.assertEqual(settings.clamp_riemann_steps(70), 50)

    def test_presets_are_a_copy(self):
        presets = settings.presets()
        presets.append(7)
        self.assertNotIn(7, settings.presets())


class SessionSuite(unittest.TestCase):
    def setUp(self):
        self.session = Session()

    def tearDown(self):
        settings.reset_subdivisions()

    def test_set_function_and_integrate(self):
        self.assertEqual(self.session.handle('f 2*x'), 'f(x) = 2*x')
        self.assertEqual(self.session.handle('bounds 0 3'), '[a, b] = [0.0, 3.0]')
        output = self.session.handle('integrate')
        self.assertIn('≈ 9.000000', output)
        self.assertIn('reference', output)

    def test_riemann_listing(self):
        self.session.handle('f x')
        self.session.handle('bounds 0 1')
        output = self.session.handle('riemann 5')
        self.assertIn('5 rectangles', output)
        self.assertIn('rectangle 5:', output)

    def test_invalid_function_keeps_previous(self):
        self.session.handle('f x^2')
        with self.assertRaises(InvalidExpression):
            self.session.handle('f (x')
        self.assertEqual(self.session.expr, 'x^2')

    def test_domain_failure_is_printed(self):
        self.session.handle('f 1/x')
        self.session.handle('bounds -1 1')
        self.assertTrue(self.session.handle('integrate').startswith('Error:'))
        self.assertIn('undefined', self.session.handle('eval 0'))

    def test_examples_and_panels(self):
        self.assertIn('sin(x)', self.session.handle('examples'))
        self.assertIn('1/x', self.session.handle('example 3'))
        self.assertEqual(self.session.handle('panels 10'), 'Default panels: 10')
        self.assertEqual(settings.get_subdivisions(), 10)

    def test_trace_toggle(self):
        self.assertEqual(self.session.handle('trace'), 'Trace display: ON')
        self.assertIn('Trace:', self.session.handle('integrate'))

    def test_unknown_command(self):
        self.assertIn('Unknown command', self.session.handle('bogus'))


class TraceSuite(unittest.TestCase):
    def test_events_and_formatting(self):
        engine = IntegralInspector().engine('quad')
        for i in range(7):
            add_traceback(engine, 'step', str(i))
        self.assertEqual(set(engine.traceback_info[0]), {'step', 'info', 'timestamp'})
        self.assertEqual([e['info'] for e in recent_traces(engine)], ['2', '3', '4', '5', '6'])
        self.assertEqual(recent_traces(engine, 0), [])
        self.assertEqual(format_trace(engine.traceback_info[-1]), 'step: 6')

    def test_requires_trace_list(self):
        with self.assertRaises(AttributeError):
            add_traceback(object(), 'step', 'info')


class MainLoopSuite(unittest.TestCase):
    def run_repl(self, *lines):
        out = io.StringIO()
        with mock.patch.object(builtins, 'input', side_effect=list(lines) + [EOFError()]), redirect_stdout(out):
            main()
        return out.getvalue()

    def test_errors_are_printed_and_loop_continues(self):
        output = self.run_repl('f (x', 'f x²', 'bounds a b', 'example 99', 'f x', 'quit')
        self.assertIn("Error: unbalanced", output)
        self.assertIn("Error: unexpected character '²'", output)
        self.assertIn('f(x) = x', output)
        self.assertTrue(output.rstrip().endswith('Goodbye!'))

    def test_end_of_input_exits(self):
        self.assertIn('Goodbye!', self.run_repl())


if __name__ == '__main__':
    unittest.main()
