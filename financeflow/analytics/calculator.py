"""
Quick Calculator

A four-function keypad calculator for the sidebar. Like a pocket
calculator it evaluates left to right as operators are pressed, so
2 + 3 × 4 shows 20. Results render the way a browser prints numbers:
"3" rather than "3.0", and "Infinity" after dividing by zero.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


OPERATIONS: dict[str, Callable[[float, float], float]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "×": lambda a, b: a * b,
    "÷": _divide,
}


def format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass
class Calculator:
    """Keypad state; one method per key."""
    display: str = "0"
    previous: Optional[float] = None
    operation: Optional[str] = None
    waiting_for_operand: bool = False

    @property
    def value(self) -> float:
        return float(self.display)

    def input_digit(self, digit: str) -> None:
        if not (len(digit) == 1 and digit.isdigit()):
            raise ValueError(f"Not a digit: {digit!r}")
        if self.waiting_for_operand:
            self.display = digit
            self.waiting_for_operand = False
        else:
            self.display = digit if self.display == "0" else self.display + digit

    def input_decimal(self) -> None:
        if self.waiting_for_operand:
            self.display = "0."
            self.waiting_for_operand = False
        elif "." not in self.display:
            self.display += "."

    def input_operation(self, operation: str) -> None:
        """Apply any pending operation, then wait for the next operand."""
        if operation not in OPERATIONS:
            raise ValueError(f"Unknown operation: {operation!r}")
        if self.previous is None:
            self.previous = self.value
        elif self.operation is not None:
            result = OPERATIONS[self.operation](self.previous, self.value)
            self.display = format_number(result)
            self.previous = result
        self.waiting_for_operand = True
        self.operation = operation

    def equals(self) -> None:
        if self.previous is None or self.operation is None:
            return
        result = OPERATIONS[self.operation](self.previous, self.value)
        self.display = format_number(result)
        self.previous = None
        self.operation = None
        self.waiting_for_operand = True

    def clear(self) -> None:
        self.display = "0"
        self.previous = None
        self.operation = None
        self.waiting_for_operand = False
