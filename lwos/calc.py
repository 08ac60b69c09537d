# Copyright (C) 2014 Andrea Bonomi <andrea.bonomi@gmail.com>

# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to
# deal in the Software without restriction, including without limitation the
# rights to use, copy, modify, merge, publish, distribute, sublicense, and/or
# sell copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in
# all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
# THE SOFTWARE.

import math
import operator
import typing as t

from .commons import InvalidOperatorError

__all__ = [
    "OPERATORS",
    "evaluate",
    "format_result",
    "parse_operand",
]

OPERATORS: t.Dict[str, t.Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}


def parse_operand(text: t.Optional[str]) -> float:
    """
    Convert the operator input to a real number
    """
    try:
        value = float((text or "").strip())
    except ValueError:
        raise ValueError(f"Invalid number {text!r}")
    if not math.isfinite(value):
        raise ValueError(f"Invalid number {text!r}")
    return value


def evaluate(a: float, op: t.Optional[str], b: float) -> float:
    """
    Apply a two-operand operator
    """
    op = (op or "").strip()
    try:
        func = OPERATORS[op]
    except KeyError:
        raise InvalidOperatorError(f"Invalid operator {op!r}")
    if op == "/" and b == 0:
        raise ZeroDivisionError("divide by zero")
    return func(a, b)


def format_result(value: float) -> str:
    """
    Format a result, integral values without the decimal part
    """
    if value == 0:
        # Keep the sign of a negative zero
        return "-0" if math.copysign(1, value) < 0 else "0"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)
