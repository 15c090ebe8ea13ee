"""
Expression evaluator: text in one real variable → CompiledExpression.

Pipeline
========

• tokenize()   – numbers, identifiers, operators, parentheses
• _Parser      – precedence climbing over priority_rules.PRIORITY
• AST          – Literal / Variable / UnaryOp / BinaryOp / Call
• evaluation   – numpy float64 ufuncs under np.errstate(all='ignore'),
                 so domain errors surface as NaN / ±inf instead of raising

Supported grammar (lowest → highest binding)::

    expr    := term (('+' | '-') term)*
    term    := unary (('*' | '/') unary)*
    unary   := ('+' | '-') unary | power
    power   := primary (('^' | '**') unary)?      # right-associative
    primary := NUMBER | VARIABLE | 'pi' | 'e'
             | FUNC '(' expr ')' | '(' expr ')'

FUNC is one of sin, cos, tan, exp, sqrt, ln, log (natural), abs.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np
import sympy as sp

from abc_engines import EvaluationFailure, InvalidExpression
from priority_rules import BINARY_OPERATORS, is_right_associative, precedence_of

FUNCTIONS = {
    'sin':  np.sin,
    'cos':  np.cos,
    'tan':  np.tan,
    'exp':  np.exp,
    'sqrt': np.sqrt,
    'ln':   np.log,
    'log':  np.log,
    'abs':  np.abs,
}

CONSTANTS = {
    'pi': float(np.pi),
    'e':  float(np.e),
}

_BINARY_UFUNCS = {
    '+': np.add,
    '-': np.subtract,
    '*': np.multiply,
    '/': np.divide,
    '^': np.power,
}

# Recursion bounds for parsing and for walking the finished tree
MAX_NESTING = 100
MAX_TREE_DEPTH = 500

_UNARY_UFUNCS = {
    '-': np.negative,
    '+': np.positive,
}

_SYMPY_FUNCTIONS = {
    'sin':  sp.sin,
    'cos':  sp.cos,
    'tan':  sp.tan,
    'exp':  sp.exp,
    'sqrt': sp.sqrt,
    'ln':   sp.log,
    'log':  sp.log,
    'abs':  sp.Abs,
}

_SYMPY_CONSTANTS = {
    'pi': sp.pi,
    'e':  sp.E,
}


# ──────────────────────────────────────────────────────────────
#  AST
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Literal:
    value: float
    name: Optional[str] = None    # set for named constants (pi, e)


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: 'Node'


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: 'Node'
    right: 'Node'


@dataclass(frozen=True)
class Call:
    name: str
    argument: 'Node'


Node = Union[Literal, Variable, UnaryOp, BinaryOp, Call]


def _children(node: Node) -> List[Node]:
    if isinstance(node, UnaryOp):
        return [node.operand]
    if isinstance(node, BinaryOp):
        return [node.left, node.right]
    if isinstance(node, Call):
        return [node.argument]
    return []


def tree_depth(node: Node) -> int:
    """Longest root-to-leaf path, counted without recursion."""
    deepest = 0
    stack = [(node, 1)]
    while stack:
        current, depth = stack.pop()
        deepest = max(deepest, depth)
        stack.extend((child, depth + 1) for child in _children(current))
    return deepest


# ──────────────────────────────────────────────────────────────
#  Tokenizer
# ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Token:
    kind: str       # NUM | IDENT | OP | LPAREN | RPAREN | COMMA | END
    value: str
    pos: int


_NUMBER_RE = re.compile(r'([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?')
_DIGITS = '0123456789'
_IDENT_RE = re.compile(r'[A-Za-z_][A-Za-z_0-9]*')


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch.isspace():
            i += 1
            continue
        if ch in _DIGITS or (ch == '.' and i + 1 < len(text) and text[i + 1] in _DIGITS):
            m = _NUMBER_RE.match(text, i)
            tokens.append(Token('NUM', m.group(0), i))
            i = m.end()
            continue
        if (ch.isascii() and ch.isalpha()) or ch == '_':
            m = _IDENT_RE.match(text, i)
            tokens.append(Token('IDENT', m.group(0), i))
            i = m.end()
            continue
        if text.startswith('**', i):
            tokens.append(Token('OP', '^', i))
            i += 2
            continue
        if ch in '+-*/^':
            tokens.append(Token('OP', ch, i))
        elif ch == '(':
            tokens.append(Token('LPAREN', ch, i))
        elif ch == ')':
            tokens.append(Token('RPAREN', ch, i))
        elif ch == ',':
            tokens.append(Token('COMMA', ch, i))
        else:
            raise InvalidExpression(f"unexpected character {ch!r}", text, i)
        i += 1
    tokens.append(Token('END', '', len(text)))
    return tokens


# ──────────────────────────────────────────────────────────────
#  Parser
# ──────────────────────────────────────────────────────────────
class _Parser:
    """Recursive descent with precedence climbing for binary operators."""

    def __init__(self, text: str, variable: str):
        self.text = text
        self.variable = variable
        self.tokens = tokenize(text)
        self.index = 0
        self.depth = 0

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        tok = self.tokens[self.index]
        self.index += 1
        return tok

    def _error(self, message: str, tok: Token) -> InvalidExpression:
        return InvalidExpression(message, self.text, tok.pos)

    def parse(self) -> Node:
        tree = self._parse_binary(1)
        if tree_depth(tree) > MAX_TREE_DEPTH:
            raise InvalidExpression(f"expression has more than {MAX_TREE_DEPTH} levels", self.text)
        tok = self._peek()
        if tok.kind != 'END':
            if tok.kind == 'RPAREN':
                raise self._error("unbalanced ')'", tok)
            raise self._error(f"unexpected {tok.value!r}, missing operator?", tok)
        return tree

    def _parse_binary(self, min_prec: int) -> Node:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise self._error("expression nested too deeply", self._peek())
        try:
            return self._parse_operations(min_prec)
        finally:
            self.depth -= 1

    def _parse_operations(self, min_prec: int) -> Node:
        left = self._parse_unary()
        while True:
            tok = self._peek()
            if tok.kind != 'OP' or tok.value not in BINARY_OPERATORS:
                return left
            prec = precedence_of(tok.value)
            if prec < min_prec:
                return left
            self._advance()
            next_min = prec if is_right_associative(tok.value) else prec + 1
            right = self._parse_binary(next_min)
            left = BinaryOp(tok.value, left, right)

    def _parse_unary(self) -> Node:
        tok = self._peek()
        if tok.kind == 'OP' and tok.value in _UNARY_UFUNCS:
            self._advance()
            operand = self._parse_binary(precedence_of('unary'))
            return UnaryOp(tok.value, operand)
        return self._parse_primary()

    def _parse_primary(self) -> Node:
        tok = self._advance()
        if tok.kind == 'NUM':
            return Literal(float(tok.value))
        if tok.kind == 'IDENT':
            return self._parse_identifier(tok)
        if tok.kind == 'LPAREN':
            inner = self._parse_binary(1)
            self._expect_close(tok)
            return inner
        if tok.kind == 'END':
            raise self._error("unexpected end of expression", tok)
        if tok.kind == 'RPAREN':
            raise self._error("unbalanced ')'", tok)
        raise self._error(f"unexpected {tok.value!r}", tok)

    def _parse_identifier(self, tok: Token) -> Node:
        name = tok.value
        if self._peek().kind == 'LPAREN':
            if name not in FUNCTIONS:
                raise self._error(f"unknown function {name!r}", tok)
            opener = self._advance()
            argument = self._parse_binary(1)
            if self._peek().kind == 'COMMA':
                raise self._error(f"{name}() takes exactly one argument", self._peek())
            self._expect_close(opener)
            return Call(name, argument)
        if name == self.variable:
            return Variable(name)
        if name in CONSTANTS:
            return Literal(CONSTANTS[name], name)
        if name in FUNCTIONS:
            raise self._error(f"function {name!r} needs parentheses", tok)
        raise self._error(f"unknown identifier {name!r}", tok)

    def _expect_close(self, opener: Token) -> None:
        tok = self._peek()
        if tok.kind == 'RPAREN':
            self._advance()
            return
        if tok.kind == 'END':
            raise self._error("unbalanced '('", opener)
        raise self._error(f"expected ')' but found {tok.value!r}", tok)


# ──────────────────────────────────────────────────────────────
#  Evaluation
# ──────────────────────────────────────────────────────────────
def _evaluate_node(node: Node, x):
    if isinstance(node, Literal):
        return np.float64(node.value)
    if isinstance(node, Variable):
        return x
    if isinstance(node, UnaryOp):
        return _UNARY_UFUNCS[node.op](_evaluate_node(node.operand, x))
    if isinstance(node, BinaryOp):
        return _BINARY_UFUNCS[node.op](_evaluate_node(node.left, x),
                                       _evaluate_node(node.right, x))
    if isinstance(node, Call):
        return FUNCTIONS[node.name](_evaluate_node(node.argument, x))
    raise TypeError(f"unknown node type {type(node).__name__}")


def _to_sympy(node: Node, symbol: sp.Symbol):
    if isinstance(node, Literal):
        if node.name is not None:
            return _SYMPY_CONSTANTS[node.name]
        if node.value.is_integer():
            return sp.Integer(int(node.value))
        return sp.Float(node.value)
    if isinstance(node, Variable):
        return symbol
    if isinstance(node, UnaryOp):
        operand = _to_sympy(node.operand, symbol)
        return -operand if node.op == '-' else operand
    if isinstance(node, BinaryOp):
        left = _to_sympy(node.left, symbol)
        right = _to_sympy(node.right, symbol)
        if node.op == '+':
            return left + right
        if node.op == '-':
            return left - right
        if node.op == '*':
            return left * right
        if node.op == '/':
            return left / right
        return left ** right
    if isinstance(node, Call):
        return _SYMPY_FUNCTIONS[node.name](_to_sympy(node.argument, symbol))
    raise TypeError(f"unknown node type {type(node).__name__}")


@dataclass(frozen=True)
class CompiledExpression:
    """Immutable, callable form of an expression; safe to share between threads."""
    text: str
    tree: Node
    variable: str = 'x'

    def __call__(self, x) -> float:
        return self.evaluate(x)

    def __str__(self) -> str:
        return self.text

    def evaluate(self, x) -> float:
        """f(x) as a Python float; NaN/±inf where f is undefined."""
        with np.errstate(all='ignore'):
            return float(_evaluate_node(self.tree, np.float64(x)))

    def evaluate_many(self, xs) -> np.ndarray:
        """Vectorised f over an array of points (same shape as `xs`)."""
        xs = np.asarray(xs, dtype=np.float64)
        with np.errstate(all='ignore'):
            values = _evaluate_node(self.tree, xs)
        if np.ndim(values) == 0:
            return np.full(xs.shape, float(values))
        return np.asarray(values, dtype=np.float64)

    @property
    def symbol(self) -> sp.Symbol:
        return sp.Symbol(self.variable, real=True)

    def to_sympy(self):
        return _to_sympy(self.tree, self.symbol)

    def latex(self) -> str:
        return sp.latex(self.to_sympy())


@dataclass(frozen=True)
class Sample:
    x: float
    y: float

    @property
    def valid(self) -> bool:
        return bool(np.isfinite(self.y))


# ──────────────────────────────────────────────────────────────
#  Public API
# ──────────────────────────────────────────────────────────────
def compile_expression(text: str, variable: str = 'x') -> CompiledExpression:
    """Parse `text` once; raises InvalidExpression when it is not a valid formula."""
    if not isinstance(text, str):
        raise InvalidExpression(f"expression must be text, got {type(text).__name__}")
    if not _IDENT_RE.fullmatch(variable) or variable in FUNCTIONS or variable in CONSTANTS:
        raise ValueError(f"invalid variable name {variable!r}")
    stripped = text.strip()
    if not stripped:
        raise InvalidExpression("empty expression", text)
    tree = _Parser(stripped, variable).parse()
    return CompiledExpression(stripped, tree, variable)


def evaluate(compiled: CompiledExpression, x: float) -> float:
    """Non-raising evaluation; undefined points come back as NaN or ±inf."""
    return compiled.evaluate(x)


def evaluate_checked(compiled: CompiledExpression, x: float) -> float:
    """Like evaluate(), but a non-finite value raises EvaluationFailure."""
    value = compiled.evaluate(x)
    if not np.isfinite(value):
        raise EvaluationFailure(float(x), value, compiled.text)
    return value


def sample(compiled: CompiledExpression, x: float) -> Sample:
    return Sample(float(x), compiled.evaluate(x))


def integral_latex(compiled: CompiledExpression, a: float, b: float) -> str:
    """LaTeX for the oriented integral of `compiled` from a to b."""
    integral = sp.Integral(compiled.to_sympy(), (compiled.symbol, _sympy_bound(a), _sympy_bound(b)))
    return sp.latex(integral)


def _sympy_bound(value: float):
    value = float(value)
    if value.is_integer():
        return sp.Integer(int(value))
    return sp.Float(value)
