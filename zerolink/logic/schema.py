"""Logic document schema.

A LogicDocument is the unit that travels over QR codes:

    {
      "name": "Cool Room",
      "triggers": [{"sensor": "temperature", "operator": ">", "value": 30}],
      "actions": [{"type": "toggle", "payload": {"device": "fan", "state": "on"}}]
    }

Authors (and LLMs) may write a single trigger or action object instead
of a list. The pydantic models below normalize those to lists and
validate every enumeration, so code past this module only ever sees
lists of typed objects.

Parsed documents may nest trigger groups up to MAX_TRIGGER_DEPTH levels.
Trees built in code are not limited; evaluation and serialization walk
them with an explicit stack.
"""
import json
import logging
from typing import Annotated, Any, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationError,
    field_validator,
    model_validator,
)

from zerolink.core.constants import (
    ActionType,
    Device,
    DeviceState,
    GroupKind,
    Operator,
    Sensor,
)
from zerolink.core.errors import LogicValidationError

# Deeper documents are rejected before validation
MAX_TRIGGER_DEPTH = 64

ConditionValue = Union[bool, int, float, str]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Condition(BaseModel):
    """Leaf trigger comparing one sensor against a value."""

    sensor: Sensor
    operator: Operator
    value: ConditionValue

    @field_validator("value", mode="before")
    @classmethod
    def _scalar_value(cls, value: Any) -> Any:
        if not (_is_number(value) or isinstance(value, (bool, str))):
            raise ValueError("must be a number, boolean or string")
        return value

    def to_dict(self) -> dict:
        """Return the wire dict."""
        return {"sensor": self.sensor.value, "operator": self.operator.value, "value": self.value}


class TriggerGroup(BaseModel):
    """Nested all/any combination of triggers; "type" on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    kind: GroupKind = Field(alias="type")
    conditions: List['Trigger'] = Field(default_factory=list)

    def to_dict(self) -> dict:
        """Return the wire dict, walking nested groups without recursion."""
        root = {"type": self.kind.value, "conditions": []}
        stack = [(self, root)]
        while stack:
            group, out = stack.pop()
            for child in group.conditions:
                if isinstance(child, TriggerGroup):
                    child_out = {"type": child.kind.value, "conditions": []}
                    stack.append((child, child_out))
                    out["conditions"].append(child_out)
                else:
                    out["conditions"].append(child.to_dict())
        return root


def _trigger_tag(value: Any) -> Optional[str]:
    """Tell a leaf condition from a group; None when it is neither."""
    if isinstance(value, dict):
        if "sensor" in value:
            return "condition"
        if "type" in value or "conditions" in value:
            return "group"
        return None
    if isinstance(value, Condition):
        return "condition"
    if isinstance(value, TriggerGroup):
        return "group"
    return None


Trigger = Annotated[
    Union[Annotated[Condition, Tag("condition")], Annotated[TriggerGroup, Tag("group")]],
    Discriminator(
        _trigger_tag,
        custom_error_type="trigger_kind",
        custom_error_message="neither a condition nor a group",
    ),
]

TriggerGroup.model_rebuild()


class ActionPayload(BaseModel):
    """Optional parameters of an action; any of them may be absent.

    A malformed value is dropped with a warning rather than failing the
    whole document.
    """

    message: Optional[str] = None
    color: Optional[str] = None
    duration: Optional[Union[int, float]] = None
    device: Optional[Device] = None
    state: Optional[DeviceState] = None

    @model_validator(mode="before")
    @classmethod
    def _object_or_empty(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, (dict, ActionPayload)):
            return data
        logging.warning("Action payload is not an object, ignoring it: %r", data)
        return {}

    @field_validator("message", "color", mode="before")
    @classmethod
    def _drop_non_text(cls, value: Any, info) -> Any:
        if value is None or isinstance(value, str):
            return value
        logging.warning("payload.%s: ignoring malformed value %r", info.field_name, value)
        return None

    @field_validator("duration", mode="before")
    @classmethod
    def _drop_bad_duration(cls, value: Any) -> Any:
        if value is None or (_is_number(value) and value >= 0):
            return value
        logging.warning("payload.duration: ignoring malformed value %r", value)
        return None

    @field_validator("device", "state", mode="before")
    @classmethod
    def _drop_unknown_member(cls, value: Any, info) -> Any:
        enum_cls = Device if info.field_name == "device" else DeviceState
        if value is None or isinstance(value, enum_cls):
            return value
        try:
            return enum_cls(value)
        except ValueError:
            logging.warning("payload.%s: ignoring malformed value %r", info.field_name, value)
            return None

    def to_dict(self) -> dict:
        """Return only the fields that are set."""
        return self.model_dump(mode="json", exclude_none=True)


class Action(BaseModel):
    """Something the feedback layer should do when a trigger fires."""

    type: ActionType
    payload: ActionPayload = Field(default_factory=ActionPayload)

    def to_dict(self) -> dict:
        """Return the wire dict."""
        return {"type": self.type.value, "payload": self.payload.to_dict()}


def _group_depth(items: Any) -> int:
    """Deepest group nesting in raw trigger JSON, stopping once past the limit."""
    deepest = 0
    stack = [(items, 0)] if isinstance(items, list) else []
    while stack:
        nodes, depth = stack.pop()
        for node in nodes:
            if isinstance(node, dict) and isinstance(node.get("conditions"), list):
                deepest = max(deepest, depth + 1)
                if deepest > MAX_TRIGGER_DEPTH:
                    return deepest
                stack.append((node["conditions"], depth + 1))
    return deepest


class LogicDocument(BaseModel):
    """The transferable automation rule set."""

    name: str
    triggers: List[Trigger] = Field(min_length=1)
    actions: List[Action] = Field(min_length=1)
    id: Optional[str] = None  # storage key, not part of the rule semantics

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        """Wrap a bare trigger or action in a list and bound the nesting."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("triggers", "actions"):
            if isinstance(data.get(key), dict):
                data[key] = [data[key]]
        if _group_depth(data.get("triggers")) > MAX_TRIGGER_DEPTH:
            raise ValueError(f"triggers nest deeper than {MAX_TRIGGER_DEPTH} groups")
        return data

    @field_validator("name")
    @classmethod
    def _non_empty_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    def to_dict(self) -> dict:
        """Return the canonical wire dict (name, triggers, actions[, id])."""
        out = {
            "name": self.name,
            "triggers": [t.to_dict() for t in self.triggers],
            "actions": [a.to_dict() for a in self.actions],
        }
        if self.id is not None:
            out["id"] = self.id
        return out

    def with_id(self, doc_id: Optional[str]) -> 'LogicDocument':
        """Return a copy carrying a different storage id."""
        return self.model_copy(update={"id": doc_id})


def serialize_document(document: LogicDocument) -> str:
    """Serialize a document to its canonical compact JSON string."""
    return json.dumps(document.to_dict(), separators=(",", ":"), ensure_ascii=False)


_UNION_TAGS = ("condition", "group")

_FRIENDLY_MESSAGES = {
    "missing": "missing",
    "model_type": "must be an object",
    "model_attributes_type": "must be an object",
    "list_type": "must be a list",
    "too_short": "must not be empty",
}


def _error_path(loc: tuple) -> str:
    """Render a pydantic location as triggers[0].conditions[1].sensor."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif part not in _UNION_TAGS:
            path = f"{path}.{part}" if path else str(part)
    return path or "document"


def _describe_errors(exc: ValidationError) -> List[str]:
    errors = []
    for error in exc.errors():
        message = _FRIENDLY_MESSAGES.get(error["type"], error["msg"])
        if error["type"] == "enum":
            message = f"{error['input']!r} is not one of {error['ctx']['expected']}"
        errors.append(f"{_error_path(error['loc'])}: {message}")
    return errors


def parse_document(obj: Any) -> LogicDocument:
    """Validate and normalize a decoded JSON value into a LogicDocument.

    Args:
        obj: The value produced by json.loads (or built by hand)

    Returns:
        The normalized document; triggers and actions are always lists

    Raises:
        LogicValidationError: listing every problem found
    """
    if not isinstance(obj, dict):
        raise LogicValidationError(["document must be a JSON object"])
    try:
        return LogicDocument.model_validate(obj)
    except ValidationError as e:
        raise LogicValidationError(_describe_errors(e)) from e


def load_document(text: str) -> LogicDocument:
    """Parse JSON text (scanned, pasted or generated) into a LogicDocument.

    Raises:
        LogicValidationError: if text is not JSON or fails validation
    """
    try:
        obj = json.loads(text)
    except RecursionError as e:
        raise LogicValidationError(["not valid JSON: nested too deeply"]) from e
    except (TypeError, ValueError) as e:
        raise LogicValidationError([f"not valid JSON: {e}"]) from e
    return parse_document(obj)
