from __future__ import annotations

import math
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from questionnaire.schemas import (
    ConditionalLogic,
    ConditionalLogicCondition,
    QuestionnaireField,
    QuestionnaireSchema,
    ValidationRules,
    compile_pattern,
    number_text,
)

# decimal literals only: no "inf", "nan" or "1_000", which the browser reads as NaN
_NUMERIC = re.compile(r"^[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|Infinity)$")


def _to_text(x: Any) -> str:
    # answers arrive as JSON: missing -> "", lists join with commas, 3.0 -> "3"
    if x is None:
        return ""
    if isinstance(x, bool):
        return "true" if x else "false"
    if isinstance(x, (int, float)):
        return number_text(x)
    if isinstance(x, (list, tuple)):
        return ",".join(_to_text(item) for item in x)
    return str(x)


def _to_number(x: Any) -> float:
    # numeric strings like "12.3" convert, "" is 0, anything unparsable is NaN
    if isinstance(x, bool):
        return float(x)
    if isinstance(x, (int, float)):
        return float(x)
    if isinstance(x, (list, tuple)):
        return _to_number(_to_text(x))
    if isinstance(x, str):
        s = x.strip()
        if s == "":
            return 0.0
        if not _NUMERIC.match(s):
            return math.nan
        return float(s)
    return math.nan


def _text_length(text: str) -> int:
    # counted in UTF-16 units, so an emoji is two characters as in the browser
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def evaluate_condition(condition: ConditionalLogicCondition, answers: Mapping[str, Any]) -> bool:
    """
    Evaluate one condition against the current answers.

    A missing answer compares as "" for the string operators and as NaN for
    GREATER_THAN / LESS_THAN, so numeric thresholds never match it.
    """
    field_value = answers.get(condition.fieldKey)
    expected = condition.value
    op = condition.operator

    if op == "EQUALS":
        return _to_text(field_value) == _to_text(expected)
    if op == "NOT_EQUALS":
        return _to_text(field_value) != _to_text(expected)
    if op == "CONTAINS":
        if isinstance(field_value, (list, tuple)):
            return any(_to_text(v) == _to_text(expected) for v in field_value)
        return _to_text(expected) in _to_text(field_value)
    if op == "GREATER_THAN":
        return _to_number(field_value) > _to_number(expected)
    if op == "LESS_THAN":
        return _to_number(field_value) < _to_number(expected)
    # a non-list value makes IN match nothing and NOT_IN match everything
    if op == "IN":
        if isinstance(expected, list):
            return _to_text(field_value) in expected
        return False
    if op == "NOT_IN":
        if isinstance(expected, list):
            return _to_text(field_value) not in expected
        return True
    return False


def evaluate_conditional_logic(logic: Optional[ConditionalLogic], answers: Mapping[str, Any]) -> bool:
    """Returns True when the field should be visible."""
    if logic is None or not logic.conditions:
        return True

    results = [evaluate_condition(c, answers) for c in logic.conditions]
    if logic.logicOperator == "AND":
        conditions_met = all(results)
    else:
        conditions_met = any(results)

    if logic.action == "SHOW":
        return conditions_met
    return not conditions_met


def _message(rules: Optional[ValidationRules], default: str) -> str:
    if rules is not None and rules.customMessage:
        return rules.customMessage
    return default


def validate_field(field: QuestionnaireField, value: Any) -> Optional[str]:
    """
    Validate a single answer against its field configuration.

    Returns None when the answer is valid, otherwise the message to show.
    Checks run in a fixed order per field type and the first failure wins.
    """
    rules = field.validationRules
    label = field.label

    if _is_empty(value):
        if field.required:
            return _message(rules, f"{label} is required")
        return None

    if rules is None:
        return None

    if field.type == "TEXT":
        text = _to_text(value)
        if rules.minLength is not None and _text_length(text) < rules.minLength:
            return _message(rules, f"{label} must be at least {rules.minLength} characters")
        if rules.maxLength is not None and _text_length(text) > rules.maxLength:
            return _message(rules, f"{label} must be at most {rules.maxLength} characters")
        if rules.pattern and not compile_pattern(rules.pattern).search(text):
            return _message(rules, f"{label} has an invalid format")

    elif field.type == "NUMBER":
        num = _to_number(value)
        if rules.min is not None and num < rules.min:
            return _message(rules, f"{label} must not be less than {number_text(rules.min)}")
        if rules.max is not None and num > rules.max:
            return _message(rules, f"{label} must not be greater than {number_text(rules.max)}")

    elif field.type == "DATE":
        date_str = _to_text(value)
        if rules.minDate and date_str < rules.minDate:
            return _message(rules, f"{label} must not be earlier than {rules.minDate}")
        if rules.maxDate and date_str > rules.maxDate:
            return _message(rules, f"{label} must not be later than {rules.maxDate}")

    elif field.type == "MULTI_CHOICE" and isinstance(value, (list, tuple)):
        if rules.minSelect is not None and len(value) < rules.minSelect:
            return _message(rules, f"{label} requires at least {rules.minSelect} selections")
        if rules.maxSelect is not None and len(value) > rules.maxSelect:
            return _message(rules, f"{label} allows at most {rules.maxSelect} selections")

    return None


def evaluate_visibility(schema: QuestionnaireSchema, answers: Mapping[str, Any]) -> Dict[str, bool]:
    return {f.key: evaluate_conditional_logic(f.conditionalLogic, answers) for f in schema.fields}


def validate_answers(schema: QuestionnaireSchema, answers: Mapping[str, Any]) -> Dict[str, str]:
    """Messages for every visible field whose answer is invalid. Hidden fields are never validated."""
    _, _, errors = evaluate_answers(schema, answers)
    return errors


def evaluate_answers(
    schema: QuestionnaireSchema,
    answers: Mapping[str, Any]
) -> Tuple[bool, Dict[str, bool], Dict[str, str]]:
    """
    Returns:
      (all_passed, visibility, errors)

    visibility maps every field key to its current visibility.
    errors maps each visible-but-invalid field key to its message;
    a submission should be blocked while it is non-empty.
    """
    visibility = evaluate_visibility(schema, answers)
    errors: Dict[str, str] = {}
    for f in schema.fields:
        if not visibility[f.key]:
            continue
        message = validate_field(f, answers.get(f.key))
        if message is not None:
            errors[f.key] = message
    return not errors, visibility, errors
