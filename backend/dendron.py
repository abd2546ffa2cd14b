#!/usr/bin/env python3
"""
dendron.py
Dendron: a tiny prefix-notation language.
Pipeline: tokens -> LL(1) parser -> AST -> (tree-walking interpreter | Soros
code generator) -> assembler -> Soros machine.

    := a 3          a := 3
    # + a _ 4       Print ( a + _4 )
"""

import logging
import os
import re
import sys

import soros
from errors import DendronError, DivideByZero, IllegalValue, PrematureEnd, Uninitialized, format_error

logger = logging.getLogger(__name__)

ASSIGN = ':='
PRINT = '#'
NEGATE = '_'
SQRT = '%'
UNARY_OPS = (NEGATE, SQRT)
BINARY_OPS = ('+', '-', '*', '/')

INT_RE = re.compile(r'-?[0-9]+')
IDENT_RE = re.compile(r'[A-Za-z].*')

PRINT_PREFIX = soros.PRINT_PREFIX


def is_numeral(token):
    return INT_RE.fullmatch(token) is not None


def is_identifier(token):
    return IDENT_RE.fullmatch(token) is not None


def tokenize(text):
    return text.split()

# =====================================================
# AST NODES
# =====================================================
class Node: pass

class Program(Node):
    def __init__(self, actions=None):
        self.actions = actions if actions is not None else []

    def add_action(self, action):
        self.actions.append(action)

    def __len__(self):
        return len(self.actions)

# ---- actions ----
class Assign(Node):
    def __init__(self, name, expr):
        if is_numeral(name):
            raise IllegalValue(name, "Cannot assign to a numeral")
        self.name = name
        self.expr = expr

class Print(Node):
    def __init__(self, expr):
        self.expr = expr

# ---- expressions ----
class Constant(Node):
    def __init__(self, value):
        self.value = value

class Variable(Node):
    def __init__(self, name):
        self.name = name

class UnaryOp(Node):
    def __init__(self, op, operand):
        self.op = op  # '_' | '%'
        self.operand = operand

class BinaryOp(Node):
    def __init__(self, op, left, right):
        self.op = op  # '+' | '-' | '*' | '/'
        self.left = left
        self.right = right

# =====================================================
# PARSER (recursive-descent, LL(1))
# =====================================================
class Parser:
    def __init__(self, tokens):
        self.tokens = tuple(tokens)
        self.pos = 0

    def has_more(self):
        return self.pos < len(self.tokens)

    def advance(self):
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def parse(self):
        program = Program()
        while self.has_more():
            program.add_action(self.action())
        return program

    def action(self):
        if not self.has_more():
            raise PrematureEnd()
        tok = self.advance()
        if tok == ASSIGN:
            if not self.has_more():
                raise PrematureEnd(tok, "Nothing follows")
            name = self.advance()
            return Assign(name, self.expression())
        if tok == PRINT:
            if not self.has_more():
                raise PrematureEnd(tok, "Nothing follows")
            return Print(self.expression())
        raise IllegalValue(tok, "Expected an action")

    def expression(self):
        if not self.has_more():
            raise IllegalValue(None, "Expected an expression but the program ended")
        tok = self.advance()
        if is_numeral(tok):
            return Constant(int(tok))
        if is_identifier(tok):
            return Variable(tok)
        if tok in UNARY_OPS:
            return UnaryOp(tok, self.expression())
        if tok in BINARY_OPS:
            left = self.expression()
            right = self.expression()
            return BinaryOp(tok, left, right)
        raise IllegalValue(tok, "Expected an expression")


def parse(tokens):
    return Parser(tokens).parse()

# =====================================================
# INFIX DISPLAY
# =====================================================
def display(node):
    if isinstance(node, Program):
        return [display(a) for a in node.actions]
    if isinstance(node, Assign):
        return f"{node.name} := {display(node.expr)}"
    if isinstance(node, Print):
        return f"Print {display(node.expr)}"
    if isinstance(node, Constant):
        return str(node.value)
    if isinstance(node, Variable):
        return node.name
    if isinstance(node, UnaryOp):
        return f"{node.op}{display(node.operand)}"
    if isinstance(node, BinaryOp):
        return f"( {display(node.left)} {node.op} {display(node.right)} )"
    raise TypeError(f"Cannot display {type(node).__name__}")

# =====================================================
# TREE-WALKING INTERPRETER
# =====================================================
class Interpreter:
    """Evaluates a Program directly. Each run starts with an empty symbol table."""

    def __init__(self):
        self.symbols = {}
        self.output = []

    def run(self, program):
        self.symbols = {}
        self.output = []
        self.execute(program)
        return self.output

    def execute(self, node):
        if isinstance(node, Program):
            for action in node.actions:
                self.execute(action)
        elif isinstance(node, Assign):
            self.symbols[node.name] = self.evaluate(node.expr)
        elif isinstance(node, Print):
            self.output.append(f"{PRINT_PREFIX}{self.evaluate(node.expr)}")
        else:
            raise TypeError(f"Cannot execute {type(node).__name__}")

    def evaluate(self, expr):
        if isinstance(expr, Constant):
            return expr.value
        if isinstance(expr, Variable):
            if expr.name not in self.symbols:
                raise Uninitialized(expr.name)
            return self.symbols[expr.name]
        if isinstance(expr, UnaryOp):
            value = self.evaluate(expr.operand)
            if expr.op == NEGATE:
                return -value
            return soros.int_sqrt(value)
        if isinstance(expr, BinaryOp):
            if expr.op == '+':
                return self.evaluate(expr.left) + self.evaluate(expr.right)
            if expr.op == '-':
                return self.evaluate(expr.left) - self.evaluate(expr.right)
            if expr.op == '*':
                return self.evaluate(expr.left) * self.evaluate(expr.right)
            # divisor is checked on its own evaluation, then both sides are evaluated again
            if self.evaluate(expr.right) == 0:
                raise DivideByZero(display(expr))
            return soros.int_divide(self.evaluate(expr.left), self.evaluate(expr.right))
        raise TypeError(f"Cannot evaluate {type(expr).__name__}")

# =====================================================
# SOROS CODE GENERATION
# =====================================================
class CodeGenerator:
    OPMAP = {
        '+': soros.ADD,
        '-': soros.SUB,
        '*': soros.MUL,
        '/': soros.DIV,
        NEGATE: soros.NEG,
        SQRT: soros.SQRT,
    }

    def __init__(self):
        self.asm = []

    def gen(self, node):
        if isinstance(node, Program):
            for action in node.actions:
                self.gen(action)
            return self.asm
        if isinstance(node, Assign):
            self.gen(node.expr)
            self.asm.append(f"{soros.STORE} {node.name}")
        elif isinstance(node, Print):
            self.gen(node.expr)
            self.asm.append(soros.PRINT)
        elif isinstance(node, Constant):
            self.asm.append(f"{soros.PUSH} {node.value}")
        elif isinstance(node, Variable):
            self.asm.append(f"{soros.LOAD} {node.name}")
        elif isinstance(node, UnaryOp):
            self.gen(node.operand)
            self.asm.append(self.OPMAP[node.op])
        elif isinstance(node, BinaryOp):
            self.gen(node.left)
            self.gen(node.right)
            self.asm.append(self.OPMAP[node.op])
        else:
            raise TypeError(f"Cannot compile {type(node).__name__}")
        return self.asm


def compile_program(program):
    return CodeGenerator().gen(program)

# =====================================================
# DRIVER
# =====================================================
def run_tokens(tokens):
    """
    Run every phase on one token program and collect the results.
    A failing phase records its error and stops the phases after it; whatever
    was produced before the failure stays in the result.
    """
    tokens = list(tokens)
    result = {
        'tokens': tokens,
        'ast': None,
        'display': [],
        'output': [],
        'symbol_table': {},
        'asm': [],
        'warnings': [],
        'machine_output': [],
        'stack_depth': None,
        'machine_symbol_table': {},
        'phases': [],
        'errors': [],
    }

    interp = Interpreter()
    try:
        ast = parse(tokens)
        result['ast'] = ast
        result['display'] = display(ast)
        result['phases'].append('parse')
        logger.debug("parsed %d actions", len(ast))

        try:
            interp.run(ast)
        finally:
            result['output'] = list(interp.output)
            result['symbol_table'] = dict(interp.symbols)
        result['phases'].append('interpret')

        asm = compile_program(ast)
        result['asm'] = asm
        result['phases'].append('compile')

        code = soros.assemble(asm, result['warnings'])
        machine = soros.Machine()
        try:
            run = machine.execute(code)
        finally:
            result['machine_output'] = list(machine.output)
            result['machine_symbol_table'] = dict(machine.table)
        result['stack_depth'] = run.stack_depth
        result['phases'].append('execute')
    except DendronError as e:
        logger.debug("run aborted: %s", e)
        result['errors'].append(format_error(e))
    return result


def run_source(code):
    return run_tokens(tokenize(code))


def render(result):
    """Console listing for one driver result, phase by phase."""
    phases = result['phases']
    lines = []
    if 'parse' in phases:
        lines.append("The Program, with expressions in infix notation:")
        lines.append("")
        lines.extend(result['display'])
        lines.append("")
        lines.append("Interpreting the parse tree...")
        lines.extend(result['output'])
    if 'interpret' in phases:
        lines.append("Interpretation complete.")
        lines.append("")
        lines.extend(soros.dump_table(result['symbol_table']))
    if 'compile' in phases:
        lines.append("")
        lines.extend(result['asm'])
        lines.append("")
        lines.append("Executing compiled code...")
        lines.extend(result['machine_output'])
    if 'execute' in phases:
        lines.append(f"Soros: execution ended with {result['stack_depth']} items left on the stack.")
        lines.append("")
        lines.extend(soros.dump_table(result['machine_symbol_table']))
    return lines

# =====================================================
# SAMPLE PROGRAMS
# =====================================================
PROGRAMS = [
    ["#", "5"],
    ["#", "_", "5"],
    ["#", "%", "5"],
    ["#", "%", "25"],
    ["#", "+", "5", "25"],
    ["#", "-", "5", "25"],
    ["#", "*", "25", "5"],
    ["#", "/", "25", "5"],
    [":=", "x", "55"],
    [":=", "able", "77",
     ":=", "baker", "3",
     ":=", "charlie", "/", "able", "baker"],
    [":=", "a", "3",
     ":=", "b", "4",
     ":=", "c", "5",
     ":=", "result", "+", "*", "b", "b", "_", "*", "*", "4", "a", "c"],
    [":=", "x", "1",
     ":=", "x", "+", "x", "x",
     ":=", "x", "*", "+", "x", "x", "x",
     "#", "x",
     ":=", "x", "-", "2", "_", "x",
     ":=", "x", "/", "x", "-2",
     ":=", "Leicester", "%", "+", "19", "x",
     "#", "Leicester"],
    [":=", "a", "1",
     ":=", "b", "_", "1",
     ":=", "c", "_", "6",
     ":=", "root", "/", "+", "_", "b", "%", "-", "*",
     "b", "b", "*", "*", "4", "a", "c", "*", "2", "a",
     ":=", "root2", "/", "-", "_", "b", "%", "-", "*",
     "b", "b", "*", "*", "4", "a", "c", "*", "2", "a"],
    # the failing ones
    ["#", "/", "5", "0"],
    [":=", "42", "+", "5", "0"],
    ["#", "abracadabra"],
    [":=", "x", "9", "+", "7", "9"],
    [":=", "x", "9", ":="],
    [":=", "y"],
    [":=", "x", "9", "%"],
]

RULE = "_" * 75
PROMPT = "\U0001F333 "

# =====================================================
# COMMAND LINE
# =====================================================
def run_one(tokens, out=None):
    result = run_tokens(tokens)
    print("\n".join(render(result)), file=out or sys.stdout)
    for err in result['errors']:
        print(f"Error: {err}", file=sys.stderr)
    return 0 if not result['errors'] else 1


def read_tokens(stream, prompt=None):
    tokens = []
    if prompt:
        print(prompt, end='', flush=True)
    for line in stream:
        if line.strip() == soros.EOF:
            break
        tokens.extend(tokenize(line))
        if prompt:
            print(prompt, end='', flush=True)
    return tokens


def sample_number(text):
    num = int(text)
    if num < 0 or num >= len(PROGRAMS):
        print(f"Test number out of range: {text}", file=sys.stderr)
        sys.exit(2)
    return num


def run_directory(path):
    if not os.path.isdir(path):
        print(f"Provided directory {path} does not exist.", file=sys.stderr)
        return 1
    status = 0
    for name in sorted(os.listdir(path)):
        full = os.path.join(path, name)
        if not os.path.isfile(full):
            continue
        print(f"\nTest File {name}:\n")
        try:
            with open(full, 'r') as f:
                tokens = tokenize(f.read())
        except OSError as e:
            print(e, file=sys.stderr)
            continue
        status |= run_one(tokens)
        print(f"\n{RULE}")
    return status


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=soros.log_level())

    if not argv:
        prompt = PROMPT if sys.stdin.isatty() else None
        return run_one(read_tokens(sys.stdin, prompt))

    if len(argv) == 1:
        if argv[0].isdigit():
            num = sample_number(argv[0])
            print(f"TEST #{num}\n")
            return run_one(PROGRAMS[num])
        return run_directory(argv[0])

    if len(argv) == 2 and argv[0].isdigit() and argv[1].isdigit():
        start = sample_number(argv[0])
        end = sample_number(argv[1])
        status = 0
        print(f"\n{RULE}")
        for num in range(start, end + 1):
            print(f"TEST #{num}\n")
            status |= run_one(PROGRAMS[num])
            print(f"\n{RULE}")
        return status

    return run_one(argv)


if __name__ == '__main__':
    sys.exit(main())
