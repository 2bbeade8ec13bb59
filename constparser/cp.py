#!/usr/bin/env python3
# cp.py - Assignment-statement calculator with a precedence-climbing parser

import io
import math
import re
import sys
import argparse
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, TextIO
from abc import ABC

from .runtime import createRuntimeStd

# ==================== CONFIGURATION ====================

@dataclass
class CalcConfig:
    verbose: bool = False        # trace every token pulled from the lexer
    max_depth: int = 200         # nesting limit for unary signs
    number_format: str = 'g'     # C-stream default text form

# ==================== BASE COMPONENTS ====================

class CalculatorComponent(ABC):
    """Base class for all calculator components."""

    def __init__(self, calc: 'Calculator'):
        self.calc = calc

class ExprNode(ABC):
    """Base class for all expression tree nodes."""
    pass

# ==================== DIAGNOSTICS ====================

class DiagnosticReporter(CalculatorComponent):
    """Prints advisory messages for recovered errors and keeps a record of them."""

    def __init__(self, calc: 'Calculator'):
        super().__init__(calc)
        self.messages: List[str] = []

    @property
    def count(self) -> int:
        return len(self.messages)

    def reset(self):
        self.messages = []

    def report(self, category: str, message: str, token: Optional['Token'] = None):
        text = f"{category} error: {message}"
        if token is not None and token.line:
            text += f" at line {token.line}, col {token.col}"
        self.messages.append(text)
        self.calc.runtime[('diag', 'report')](text)

    def trace(self, text: str):
        self.calc.runtime[('diag', 'trace')](text)

# ==================== TOKENIZATION ====================

@dataclass(frozen=True)
class Token:
    kind: str
    value: str = ''
    line: int = 0
    col: int = 0

    def __str__(self):
        if self.kind == 'EOF':
            return 'end of input'
        return f"{self.kind} {self.value!r}"

class TokenSpec:
    """Container for the token specifications, in match order."""

    def __init__(self):
        self.specs = [
            # Names and literals
            ('IDENT',    r'[A-Za-z][A-Za-z0-9]*'),
            ('NUMBER',   r'[0-9]+'),

            # Operators and punctuation
            ('PLUS',     r'\+'),
            ('MINUS',    r'-'),
            ('MULT',     r'\*'),
            ('DIVIDE',   r'/'),
            ('EQUAL',    r'='),
            ('LPAREN',   r'\('),
            ('RPAREN',   r'\)'),
            ('SEMI',     r';'),

            # Other
            ('WS',       r'\s+'),
            ('MISMATCH', r'.'),
        ]

    def get_regex(self):
        """Compile the token specification into a regex pattern."""
        return re.compile('|'.join(f'(?P<{k}>{p})' for k, p in self.specs))

class Tokenizer(CalculatorComponent):
    """Turns a text stream into a lazy sequence of tokens."""

    def __init__(self, calc: 'Calculator'):
        super().__init__(calc)
        self.token_spec = TokenSpec()
        self.regex = self.token_spec.get_regex()

    def tokenize(self, stream: TextIO) -> Iterator[Token]:
        """Yield tokens line by line, finishing with exactly one EOF token."""
        line = 0
        for line, text in enumerate(stream, 1):
            for m in self.regex.finditer(text):
                kind = m.lastgroup
                value = m.group()
                col = m.start() + 1

                if kind == 'WS':
                    continue

                if kind == 'MISMATCH':
                    self.calc.diagnostics.report(
                        'Lexical', f"unexpected character {value!r}",
                        Token('INVALID', value, line, col))
                    continue

                yield Token(kind, value, line, col)

        yield Token('EOF', '', line + 1, 1)

class TokenCursor:
    """Single-token lookahead over a token iterator."""

    def __init__(self, tokens: Iterator[Token], diagnostics: Optional[DiagnosticReporter] = None,
                 trace: bool = False):
        self._tokens = tokens
        self._current: Optional[Token] = None
        self._eof: Optional[Token] = None
        self.diagnostics = diagnostics
        self.trace = trace

    def _pull(self) -> Token:
        if self._eof is not None:
            return self._eof
        tok = next(self._tokens, None)
        if tok is None:
            tok = Token('EOF')
        if tok.kind == 'EOF':
            self._eof = tok
        if self.trace and self.diagnostics is not None:
            self.diagnostics.trace(f"Token: {tok.kind} value:{tok.value}")
        return tok

    def peek(self) -> Token:
        if self._current is None:
            self._current = self._pull()
        return self._current

    def advance(self):
        self._current = None

    def next(self) -> Token:
        t = self.peek()
        self.advance()
        return t

    def expect(self, kind: str) -> Optional[Token]:
        """Consume one token; report and return None unless it is `kind` or EOF."""
        t = self.next()
        if t.kind != kind and t.kind != 'EOF':
            if self.diagnostics is not None:
                self.diagnostics.report('Syntax', f"expected {kind} but found {t}", t)
            return None
        return t

# ==================== EXPRESSION TREE ====================

@dataclass(frozen=True)
class Literal(ExprNode):
    value: float

@dataclass(frozen=True)
class VariableRef(ExprNode):
    name: str

@dataclass(frozen=True)
class UnaryOp(ExprNode):
    op: str
    operand: ExprNode

@dataclass(frozen=True)
class BinaryOp(ExprNode):
    op: str
    left: ExprNode
    right: ExprNode

# ==================== SIGNALS ====================

class _EndOfStreamSignal(Exception):
    pass

# ==================== PARSING ====================

OPERATORS = {'PLUS': '+', 'MINUS': '-', 'MULT': '*', 'DIVIDE': '/'}

PRECEDENCE = {'MULT': 2, 'DIVIDE': 2, 'PLUS': 1, 'MINUS': 1}

def precedence(tok: Token) -> int:
    return PRECEDENCE.get(tok.kind, 0)

class Parser(CalculatorComponent):
    """Builds an expression tree from tokens by precedence climbing."""

    def __init__(self, calc: 'Calculator'):
        super().__init__(calc)
        self.cursor: Optional[TokenCursor] = None
        self._depth = 0

    def parse_expression(self, cursor: TokenCursor) -> ExprNode:
        """Parse one expression, stopping before its terminator.

        Running into the end of input yields the sentinel Literal(-1.0);
        the EOF token stays current so the caller sees it too.
        """
        self.cursor = cursor
        self._depth = 0
        try:
            lhs = self.parse_primary()
            return self.parse_expression_at(1, lhs)
        except _EndOfStreamSignal:
            return Literal(-1.0)

    def parse_expression_at(self, min_prec: int, lhs: ExprNode) -> ExprNode:
        while True:
            t = self.peek()
            if t.kind == 'EOF':
                raise _EndOfStreamSignal()
            if t.kind == 'SEMI':
                return lhs
            if t.kind == 'EQUAL':
                self.calc.diagnostics.report('Syntax', "unexpected '='", t)
                self.advance()
                continue
            prec = precedence(t)
            if prec == 0 or prec < min_prec:
                return lhs
            self.advance()
            rhs = self.parse_primary()
            while True:
                nxt = self.peek()
                if nxt.kind == 'EOF':
                    raise _EndOfStreamSignal()
                if precedence(nxt) <= prec:
                    break
                rhs = self.parse_expression_at(prec + 1, rhs)
            lhs = BinaryOp(OPERATORS[t.kind], lhs, rhs)

    def parse_primary(self) -> ExprNode:
        while True:
            t = self.peek()
            if t.kind == 'NUMBER':
                self.advance()
                return Literal(self.to_number(t))
            if t.kind == 'IDENT':
                self.advance()
                return VariableRef(t.value)
            if t.kind in ('PLUS', 'MINUS'):
                if self._depth >= self.calc.config.max_depth:
                    self.calc.diagnostics.report('Syntax', "expression too deep", t)
                    return Literal(0.0)
                self.advance()
                self._depth += 1
                try:
                    operand = self.parse_primary()
                finally:
                    self._depth -= 1
                return UnaryOp(OPERATORS[t.kind], operand)
            if t.kind in ('SEMI', 'EOF'):
                return Literal(0.0)
            if t.kind == 'EQUAL':
                self.calc.diagnostics.report('Syntax', "unexpected '='", t)
                self.advance()
                continue
            self.calc.diagnostics.report('Syntax', f"unexpected token {t} in expression", t)
            return Literal(0.0)

    def to_number(self, t: Token) -> float:
        try:
            value = float(t.value)
        except ValueError:
            value = math.nan
        if not math.isfinite(value):
            self.calc.diagnostics.report('Numeric', f"invalid number {t.value!r}, replacing with -1", t)
            return -1.0
        return value

    # Helper methods
    def peek(self) -> Token:
        return self.cursor.peek()

    def advance(self):
        self.cursor.advance()

# ==================== ENVIRONMENT ====================

class Environment:
    """Variable table shared by all statements of one run."""

    def __init__(self):
        self.values: Dict[str, float] = {}

    def assign(self, name: str, value: float):
        self.values[name] = value

    def lookup(self, name: str) -> Optional[float]:
        return self.values.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.values

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self):
        return f"Environment({self.values!r})"

# ==================== EVALUATION ====================

def _divide(l: float, r: float) -> float:
    if r == 0.0:
        if l == 0.0 or math.isnan(l):
            return math.nan
        return math.copysign(math.inf, l) * math.copysign(1.0, r)
    return l / r

class Evaluator(CalculatorComponent):
    """Reduces an expression tree to a float."""

    def evaluate(self, expr: ExprNode, env: Environment) -> float:
        return self.eval_expr(expr, env)

    def eval_expr(self, expr: ExprNode, env: Environment) -> float:
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, VariableRef):
            value = env.lookup(expr.name)
            if value is None:
                self.calc.diagnostics.report('Semantic', f"invalid variable {expr.name!r}")
                return 0.0
            return value
        if isinstance(expr, UnaryOp):
            v = self.eval_expr(expr.operand, env)
            if expr.op == '+':  return v
            if expr.op == '-':  return -v
            return self.unknown_operation(expr.op)
        if isinstance(expr, BinaryOp):
            # Left-associative chains grow down the left side; fold them in a loop.
            spine: List[BinaryOp] = []
            node = expr
            while isinstance(node, BinaryOp):
                spine.append(node)
                node = node.left
            acc = self.eval_expr(node, env)
            for b in reversed(spine):
                acc = self.apply(b.op, acc, self.eval_expr(b.right, env))
            return acc
        self.calc.diagnostics.report('Internal', f"unsupported node {type(expr).__name__}")
        return 0.0

    def apply(self, op: str, l: float, r: float) -> float:
        if op == '+':  return l + r
        if op == '-':  return l - r
        if op == '*':  return l * r
        if op == '/':  return _divide(l, r)
        return self.unknown_operation(op)

    def unknown_operation(self, op: str) -> float:
        self.calc.diagnostics.report('Internal', f"unknown operation {op!r}")
        return 0.0

# ==================== STATEMENT DRIVER ====================

class StatementDriver(CalculatorComponent):
    """Runs `name = expr ;` statements until the input is exhausted."""

    def run(self, cursor: TokenCursor, env: Environment):
        while self.step(cursor, env):
            pass

    def step(self, cursor: TokenCursor, env: Environment) -> bool:
        """Process one statement. Returns False once EOF is seen where a name is expected."""
        name = cursor.next()
        if name.kind == 'EOF':
            return False
        if name.kind != 'IDENT':
            self.calc.diagnostics.report('Syntax', f"expected IDENT but found {name}", name)
            return True

        if cursor.expect('EQUAL') is None:
            return True

        tree = self.calc.parser.parse_expression(cursor)
        cursor.expect('SEMI')
        value = self.calc.evaluator.evaluate(tree, env)
        env.assign(name.value, value)
        self.calc.runtime[('std', 'println')](f"val={self.calc.format_value(value)}")
        return True

# ==================== CALCULATOR MAIN CLASS ====================

class Calculator:
    """Main calculator class that coordinates all components."""

    def __init__(self, config: Optional[CalcConfig] = None, runtime: Optional[Dict] = None):
        self.config = config or CalcConfig()
        self.runtime = runtime or createRuntimeStd()
        self.diagnostics = DiagnosticReporter(self)
        self.tokenizer = Tokenizer(self)
        self.parser = Parser(self)
        self.evaluator = Evaluator(self)
        self.driver = StatementDriver(self)

    def cursor(self, stream: TextIO) -> TokenCursor:
        """Open a token cursor over a text stream."""
        return TokenCursor(self.tokenizer.tokenize(stream), self.diagnostics,
                           trace=self.config.verbose)

    def run(self, stream: TextIO, env: Optional[Environment] = None) -> Environment:
        """Evaluate every statement in the stream and return the resulting variables."""
        if env is None:
            env = Environment()
        if isinstance(stream, io.TextIOWrapper):
            # undecodable bytes reach the tokenizer as U+FFFD and get reported there
            stream.reconfigure(errors="replace")
        self.diagnostics.reset()
        self.driver.run(self.cursor(stream), env)
        return env

    def run_source(self, source: str, env: Optional[Environment] = None) -> Environment:
        return self.run(io.StringIO(source), env)

    def format_value(self, value: float) -> str:
        return format(value, self.config.number_format)

# ==================== MAIN EXECUTION ====================

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="constparser", add_help=False,
        description="Evaluate 'name = expression ;' statements read from standard input.")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Trace every token read from the input.")
    args = parser.parse_args(argv)

    calc = Calculator(CalcConfig(verbose=args.verbose))
    calc.run(sys.stdin)
    return 0

if __name__ == "__main__":
    sys.exit(main())
