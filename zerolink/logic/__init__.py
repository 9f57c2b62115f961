"""Logic package for ZeroLink.

This package contains the logic document schema, trigger evaluation,
the rule engine and the saved-logic store.
"""
from zerolink.logic.engine import ActionEvent, EventLogEntry, RuleEngine
from zerolink.logic.evaluator import SensorSnapshot, evaluate, loose_equals, time_of_day
from zerolink.logic.schema import (
    Action,
    ActionPayload,
    Condition,
    LogicDocument,
    TriggerGroup,
    load_document,
    parse_document,
    serialize_document,
)
from zerolink.logic.store import LogicStore

__all__ = [
    "Action",
    "ActionEvent",
    "ActionPayload",
    "Condition",
    "evaluate",
    "EventLogEntry",
    "load_document",
    "LogicDocument",
    "LogicStore",
    "loose_equals",
    "parse_document",
    "RuleEngine",
    "SensorSnapshot",
    "serialize_document",
    "time_of_day",
    "TriggerGroup",
]
