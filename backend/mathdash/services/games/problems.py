import random
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Operation(str, Enum):
    ADDITION = 'addition'
    SUBTRACTION = 'subtraction'
    MULTIPLICATION = 'multiplication'
    DIVISION = 'division'

    @classmethod
    def parse(cls, value) -> 'Operation':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            raise ValueError(f"Unknown operation: {value!r}")


_SYMBOLS = {
    Operation.ADDITION: '+',
    Operation.SUBTRACTION: '-',
    Operation.MULTIPLICATION: 'x',
    Operation.DIVISION: '/',
}

# (min, max) operand range per difficulty level
_LEVEL_RANGES = [
    (1, 10),
    (11, 50),
    (51, 100),
    (101, 200),
    (201, 300),
    (301, 500),
    (501, 750),
    (751, 999),
    (1000, 2000),
    (2001, 5000),
]
_FALLBACK_RANGE = (5001, 9999)


@dataclass(frozen=True)
class Problem:
    operand1: int
    operand2: int
    correct_answer: int
    operation: Operation

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self.operation]

    def to_dict(self):
        # The answer stays server-side
        return {
            'operand1': self.operand1,
            'operand2': self.operand2,
            'operation': self.operation.value,
            'symbol': self.symbol,
        }


def level_range(level: int) -> Tuple[int, int]:
    if 0 <= level < len(_LEVEL_RANGES):
        return _LEVEL_RANGES[level]
    return _FALLBACK_RANGE


def factor_range(level: int) -> Tuple[int, int]:
    """Reduced operand range for multiplication and division.

    Keeps factors small enough that products and quotients stay readable
    at the higher levels. From level 2 upwards the cap sits below the
    level's floor, so the bounds are returned in ascending order.
    """
    low, high = level_range(level)
    low, high = max(low, 2), min(high, 20 + 5 * level)
    return min(low, high), max(low, high)


def generate_problem(operation, level: int, rng=random) -> Problem:
    """Build a problem for ``operation`` whose answer is an exact integer.

    - addition/subtraction draw both operands from the level range
    - subtraction puts the larger operand first so the answer is >= 0
    - division draws quotient and divisor, then shows their product
    """
    operation = Operation.parse(operation)
    if operation in (Operation.MULTIPLICATION, Operation.DIVISION):
        low, high = factor_range(level)
    else:
        low, high = level_range(level)
    num1 = rng.randint(low, high)
    num2 = rng.randint(low, high)

    if operation == Operation.ADDITION:
        answer = num1 + num2
    elif operation == Operation.SUBTRACTION:
        if num1 < num2:
            num1, num2 = num2, num1
        answer = num1 - num2
    elif operation == Operation.MULTIPLICATION:
        answer = num1 * num2
    else:
        answer = num1
        num1 = num1 * num2

    return Problem(operand1=num1, operand2=num2, correct_answer=answer, operation=operation)
