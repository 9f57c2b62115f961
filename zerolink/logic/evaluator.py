"""Trigger evaluation.

Pure functions that decide whether a trigger tree holds for a sensor
snapshot. Evaluation is fail-closed: a comparison that makes no sense
for the operand types (e.g. "temperature > 'day'") is false, never an
error.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from zerolink.core.constants import GroupKind, Operator, Sensor, TimeOfDay
from zerolink.logic.schema import Condition, Trigger, TriggerGroup

DAY_START_HOUR = 6  # exclusive
DAY_END_HOUR = 19  # exclusive


@dataclass
class SensorSnapshot:
    """Simulated sensor readings at one instant."""
    temperature: float = 20.0
    light: float = 250.0
    motion: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SensorSnapshot':
        """Build a snapshot from a JSON-like mapping, keeping defaults for gaps."""
        snapshot = cls()
        if "temperature" in data:
            snapshot.temperature = data["temperature"]
        if "light" in data:
            snapshot.light = data["light"]
        if "motion" in data:
            snapshot.motion = data["motion"]
        return snapshot

    def to_dict(self) -> dict:
        """Return the readings as a plain dict."""
        return {"temperature": self.temperature, "light": self.light, "motion": self.motion}

    def value_of(self, sensor: Sensor, now: Optional[datetime] = None) -> Any:
        """Return the reading for a sensor.

        timeOfDay is not part of the snapshot; it is derived from the
        wall clock at evaluation time.
        """
        if sensor is Sensor.TIME_OF_DAY:
            return time_of_day(now or datetime.now())
        return getattr(self, sensor.name.lower())


def time_of_day(now: datetime) -> str:
    """Return "day" between 07:00 and 18:59, otherwise "night"."""
    if DAY_START_HOUR < now.hour < DAY_END_HOUR:
        return TimeOfDay.DAY.value
    return TimeOfDay.NIGHT.value


def is_numeric(value: Any) -> bool:
    """True for ints and floats; booleans do not count as numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number_text(value: float) -> str:
    """Format a float the way JavaScript's Number toString does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    # repr gives the shortest digits that round-trip, as JavaScript uses
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(str(d) for d in digit_tuple).rstrip("0")
    exponent += len(digit_tuple) - len(digits)
    k = len(digits)
    n = k + exponent  # position of the decimal point relative to the digits
    if k <= n <= 21:
        text = digits + "0" * (n - k)
    elif 0 < n <= 21:
        text = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        text = "0." + "0" * -n + digits
    else:
        mantissa = digits if k == 1 else f"{digits[0]}.{digits[1:]}"
        text = f"{mantissa}e{'+' if n > 0 else '-'}{abs(n - 1)}"
    return sign + text


def loose_text(value: Any) -> str:
    """String form used for loose equality, matching JavaScript's String().

    Floats use the shortest round-trip digits and switch to exponent form
    below 1e-6 and from 1e21 up, as Number toString does.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _number_text(value)
    if isinstance(value, int) and abs(value) >= 10 ** 21:
        return _number_text(float(value))
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def loose_equals(left: Any, right: Any) -> bool:
    """Case-insensitive comparison of the string forms of two values.

    Shared by "=" and "!=" so both operators always agree:
    True == "true", 30 == 30.0 == "30", "Night" == "night".
    """
    return loose_text(left).lower() == loose_text(right).lower()


def evaluate_condition(
    condition: Condition,
    snapshot: SensorSnapshot,
    now: Optional[datetime] = None
) -> bool:
    """Evaluate a single leaf condition."""
    actual = snapshot.value_of(condition.sensor, now)
    expected = condition.value
    operator = condition.operator

    if operator is Operator.GREATER:
        return is_numeric(actual) and is_numeric(expected) and actual > expected
    if operator is Operator.LESS:
        return is_numeric(actual) and is_numeric(expected) and actual < expected
    if operator is Operator.EQUAL:
        return loose_equals(actual, expected)
    if operator is Operator.NOT_EQUAL:
        return not loose_equals(actual, expected)
    return False


def evaluate(
    trigger: Trigger,
    snapshot: SensorSnapshot,
    now: Optional[datetime] = None
) -> bool:
    """Evaluate a trigger tree against a snapshot.

    Groups are walked with an explicit stack, so nesting depth is not
    limited by the interpreter's recursion limit. An "all" group with no
    conditions is true and an "any" group with no conditions is false.

    Args:
        trigger: A Condition or a TriggerGroup
        snapshot: Current sensor readings
        now: Wall-clock instant for timeOfDay (defaults to datetime.now())

    Returns:
        Whether the trigger holds
    """
    now = now or datetime.now()

    if isinstance(trigger, Condition):
        return evaluate_condition(trigger, snapshot, now)

    # Each frame: [group, index of next child]
    stack = [[trigger, 0]]
    result = False
    returning = False  # True when `result` holds the value of a finished child

    while stack:
        frame = stack[-1]
        group: TriggerGroup = frame[0]
        wants_all = group.kind is GroupKind.ALL

        if returning:
            returning = False
            # Short-circuit on the child's value
            if wants_all and not result:
                stack.pop()
                result, returning = False, True
                continue
            if not wants_all and result:
                stack.pop()
                result, returning = True, True
                continue

        if frame[1] >= len(group.conditions):
            stack.pop()
            result, returning = wants_all, True
            continue

        child = group.conditions[frame[1]]
        frame[1] += 1
        if isinstance(child, TriggerGroup):
            stack.append([child, 0])
        else:
            result, returning = evaluate_condition(child, snapshot, now), True

    return result
