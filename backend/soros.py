#!/usr/bin/env python3
"""
soros.py
The Soros stack machine: instruction set, assembler (text lines -> Instruction
objects) and the machine that executes them against an operand stack and a
symbol table.

Assembly format is one instruction per line, mnemonic first:

    PUSH 5
    LOAD x
    ADD
    STORE y
    PRINT

A line holding only "." ends the input early.
"""

import logging
import math
import os
import re
import sys
from collections import namedtuple

from errors import DendronError, DivideByZero, IllegalValue, StackUnderflow, Uninitialized, format_error

logger = logging.getLogger(__name__)

PRINT_PREFIX = "=== "
EOF = "."

# =====================================================
# INSTRUCTION SET
# =====================================================
PUSH = "PUSH"
LOAD = "LOAD"
STORE = "STORE"
ADD = "ADD"
SUB = "SUB"
MUL = "MUL"
DIV = "DIV"
NEG = "NEG"
SQRT = "SQRT"
PRINT = "PRINT"

# mnemonic -> operand kind ('int', 'name' or None)
OPCODES = {
    PUSH: 'int',
    LOAD: 'name',
    STORE: 'name',
    ADD: None,
    SUB: None,
    MUL: None,
    DIV: None,
    NEG: None,
    SQRT: None,
    PRINT: None,
}

INT_RE = re.compile(r'-?[0-9]+')


class Instruction:
    def __init__(self, op, arg=None):
        if op not in OPCODES:
            raise IllegalValue(op, "Unknown Soros instruction")
        self.op = op
        self.arg = arg

    def __repr__(self):
        if self.arg is None:
            return self.op
        return f"{self.op} {self.arg}"

    def __eq__(self, other):
        if not isinstance(other, Instruction):
            return NotImplemented
        return self.op == other.op and self.arg == other.arg

    def __hash__(self):
        return hash((self.op, self.arg))


def int_divide(a, b):
    """Integer quotient truncated toward zero (so -7 / 2 == -3)."""
    if b == 0:
        raise DivideByZero(a)
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def int_sqrt(a):
    """Square root truncated to an integer. Negative operands are rejected."""
    if a < 0:
        raise IllegalValue(a, "Square root of a negative value")
    return math.isqrt(a)

# =====================================================
# ASSEMBLER
# =====================================================
def decode_line(items):
    mnemonic = items[0]
    kind = OPCODES[mnemonic]
    if kind is None:
        return Instruction(mnemonic)
    if len(items) < 2:
        raise IllegalValue(mnemonic, "Missing operand for")
    operand = items[1]
    if kind == 'int':
        if not INT_RE.fullmatch(operand):
            raise IllegalValue(operand, f"{mnemonic} expects an integer operand")
        return Instruction(mnemonic, int(operand))
    # any token the parser takes as an assignment target is a valid name
    if INT_RE.fullmatch(operand):
        raise IllegalValue(operand, f"{mnemonic} expects a variable name")
    return Instruction(mnemonic, operand)


def assemble(lines, warnings=None):
    """
    Decode assembly text into a list of Instruction objects.

    `lines` is either a string or an iterable of lines. Unknown mnemonics are
    logged, appended to `warnings` (when given) and skipped.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()

    program = []
    for lineno, line in enumerate(lines, start=1):
        if line.strip() == EOF:
            break
        items = line.split()
        if not items:
            continue
        mnemonic = items[0]
        if mnemonic in OPCODES:
            program.append(decode_line(items))
        else:
            msg = f"Illegal assembly instr {mnemonic}"
            logger.warning("line %d: %s", lineno, msg)
            if warnings is not None:
                warnings.append(msg)
    return program

# =====================================================
# MACHINE
# =====================================================
ExecutionResult = namedtuple('ExecutionResult', ['output', 'stack_depth', 'symbol_table'])


class Machine:
    def __init__(self):
        self.stack = []
        self.table = {}
        self.output = []
        self.running = False

    def reset(self):
        self.stack = []
        self.table = {}
        self.output = []
        self.running = False

    def push(self, value):
        self.stack.append(value)

    def pop(self):
        if not self.stack:
            raise StackUnderflow()
        return self.stack.pop()

    def get_var(self, name):
        if name not in self.table:
            raise Uninitialized(name)
        return self.table[name]

    def set_var(self, name, value):
        self.table[name] = value

    def step(self, instr):
        op = instr.op
        if op == PUSH:
            self.push(instr.arg)
        elif op == LOAD:
            self.push(self.get_var(instr.arg))
        elif op == STORE:
            self.set_var(instr.arg, self.pop())
        elif op in (ADD, SUB, MUL, DIV):
            right = self.pop()
            left = self.pop()
            if op == ADD:
                self.push(left + right)
            elif op == SUB:
                self.push(left - right)
            elif op == MUL:
                self.push(left * right)
            else:
                self.push(int_divide(left, right))
        elif op == NEG:
            self.push(-self.pop())
        elif op == SQRT:
            self.push(int_sqrt(self.pop()))
        elif op == PRINT:
            self.output.append(f"{PRINT_PREFIX}{self.pop()}")
        else:
            raise TypeError(f"Unhandled instruction {instr!r}")

    def execute(self, program):
        """
        Run `program` from a freshly reset state and report the final stack
        depth and symbol table. A non-empty final stack is reported, not
        raised.
        """
        self.reset()
        self.running = True
        logger.debug("executing %d instructions", len(program))
        try:
            for instr in program:
                self.step(instr)
        finally:
            self.running = False
        return ExecutionResult(list(self.output), len(self.stack), dict(self.table))


def execute(program):
    return Machine().execute(program)

# =====================================================
# REPORTING
# =====================================================
def dump_table(table):
    lines = ["Symbol Table Contents", "========================"]
    for name, value in table.items():
        lines.append(f"{name} :   {value}")
    return lines


def render_execution(result):
    lines = ["Executing compiled code..."]
    lines.extend(result.output)
    lines.append(f"Soros: execution ended with {result.stack_depth} items left on the stack.")
    lines.append("")
    lines.extend(dump_table(result.symbol_table))
    return lines


def log_level(default="WARNING"):
    """Level named by DENDRON_LOG_LEVEL, or `default` when unset or unknown."""
    name = os.environ.get("DENDRON_LOG_LEVEL", default).upper()
    if not isinstance(logging.getLevelName(name), int):
        return default
    return name


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=log_level())

    if len(argv) > 1:
        print("Usage: soros [assembly-code-file]", file=sys.stderr)
        return 1
    try:
        if argv:
            with open(argv[0], 'r') as f:
                text = f.read()
        else:
            text = sys.stdin.read()
    except OSError as e:
        print(e, file=sys.stderr)
        return 1

    try:
        result = execute(assemble(text))
    except DendronError as e:
        print(f"Error: {format_error(e)}", file=sys.stderr)
        return 1
    print("\n".join(render_execution(result)))
    return 0


if __name__ == '__main__':
    sys.exit(main())
