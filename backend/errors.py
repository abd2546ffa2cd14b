"""
errors.py
Error kinds shared by the Dendron parser, interpreter, assembler and the
Soros machine. Every failure aborts the current run by raising one of these.
"""

# =====================================================
# ERROR KINDS
# =====================================================
class DendronError(Exception):
    kind = "Error"

    def __init__(self, value=None, msg=None):
        self.value = value
        self.msg = msg
        super().__init__(self.message())

    def message(self):
        text = self.msg or self.kind
        if self.value is not None:
            return f"{text}: {self.value!r}"
        return text

    def to_dict(self):
        return {"kind": self.kind, "value": self.value, "message": self.message()}


class PrematureEnd(DendronError):
    kind = "PrematureEnd"

    def __init__(self, value=None, msg="Premature end of program"):
        super().__init__(value, msg)


class IllegalValue(DendronError):
    kind = "IllegalValue"

    def __init__(self, value=None, msg="Illegal value"):
        super().__init__(value, msg)


class DivideByZero(DendronError):
    kind = "DivideByZero"

    def __init__(self, value=None, msg="Division by zero"):
        super().__init__(value, msg)


class Uninitialized(DendronError):
    kind = "Uninitialized"

    def __init__(self, value=None, msg="Uninitialized variable"):
        super().__init__(value, msg)


class StackUnderflow(IllegalValue):
    # unbalanced assembly popped an empty operand stack
    kind = "StackUnderflow"

    def __init__(self, value=None, msg="Operand stack is empty"):
        super().__init__(value, msg)


def format_error(err):
    return f"{err.kind} error: {err.message()}"
