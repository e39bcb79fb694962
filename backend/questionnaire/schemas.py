import math
import re
import time
from datetime import date
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


FieldType = Literal["TEXT", "NUMBER", "SINGLE_CHOICE", "MULTI_CHOICE", "DROPDOWN", "DATE"]
Operator = Literal["EQUALS", "NOT_EQUALS", "CONTAINS", "GREATER_THAN", "LESS_THAN", "IN", "NOT_IN"]
Action = Literal["SHOW", "HIDE"]
LogicOperator = Literal["AND", "OR"]

CHOICE_TYPES = ("SINGLE_CHOICE", "MULTI_CHOICE", "DROPDOWN")

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """Compile a stored validation pattern once. Raises re.error when malformed."""
    return re.compile(pattern)


class FieldOption(BaseModel):
    value: str
    label: str


class ValidationRules(BaseModel):
    # TEXT
    minLength: Optional[int] = Field(default=None, ge=0)
    maxLength: Optional[int] = Field(default=None, ge=0)
    pattern: Optional[str] = None
    # NUMBER
    min: Optional[float] = None
    max: Optional[float] = None
    # DATE, ISO YYYY-MM-DD so plain string comparison orders them
    minDate: Optional[str] = None
    maxDate: Optional[str] = None
    # MULTI_CHOICE
    minSelect: Optional[int] = Field(default=None, ge=0)
    maxSelect: Optional[int] = Field(default=None, ge=0)

    customMessage: Optional[str] = None

    @field_validator("pattern")
    @classmethod
    def pattern_must_compile(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        try:
            compile_pattern(v)
        except re.error as e:
            raise ValueError(f"invalid pattern {v!r}: {e}")
        return v

    @field_validator("minDate", "maxDate")
    @classmethod
    def date_must_be_iso(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if not _ISO_DATE.match(v):
            raise ValueError(f"date {v!r} must use the YYYY-MM-DD format")
        try:
            date.fromisoformat(v)
        except ValueError:
            raise ValueError(f"date {v!r} is not a real calendar date")
        return v

    @field_validator("customMessage")
    @classmethod
    def blank_message_is_unset(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def bounds_must_be_ordered(self) -> "ValidationRules":
        pairs = [
            ("minLength", "maxLength"),
            ("min", "max"),
            ("minDate", "maxDate"),
            ("minSelect", "maxSelect"),
        ]
        for low_name, high_name in pairs:
            low = getattr(self, low_name)
            high = getattr(self, high_name)
            if low is not None and high is not None and low > high:
                raise ValueError(f"{low_name} ({low}) must not exceed {high_name} ({high})")
        return self


def number_text(x: Union[int, float]) -> str:
    """Render a number the way answers are shown in the browser: 18.0 -> "18", inf -> "Infinity"."""
    if isinstance(x, int):
        return str(x)
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x.is_integer():
        return str(int(x))
    return repr(x)


def _value_text(v: Any) -> Any:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return number_text(v)
    return v


class ConditionalLogicCondition(BaseModel):
    fieldKey: str
    operator: Operator
    value: Union[str, List[str]] = ""

    @field_validator("value", mode="before")
    @classmethod
    def numbers_as_text(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [_value_text(item) for item in v]
        return _value_text(v)


class ConditionalLogic(BaseModel):
    action: Action = "SHOW"
    logicOperator: LogicOperator = "AND"
    conditions: List[ConditionalLogicCondition] = Field(default_factory=list)


class QuestionnaireField(BaseModel):
    key: str = Field(min_length=1)
    type: FieldType
    label: str
    required: bool = False
    validationRules: Optional[ValidationRules] = None
    conditionalLogic: Optional[ConditionalLogic] = None
    options: Optional[List[FieldOption]] = None


class FieldGroup(BaseModel):
    name: str
    sortOrder: int = 0
    fields: List[str] = Field(default_factory=list)


class QuestionnaireSchema(BaseModel):
    """
    A questionnaire as produced by the designer.

    Loading a schema runs the authoring checks: unique keys, groups that
    point at existing fields, and patterns that compile. A condition on a
    blank or deleted key is kept and reads that answer as "".
    Conditions read other fields' answers only; a field's visibility never
    depends on another field's visibility.
    """

    groups: List[FieldGroup] = Field(default_factory=list)
    fields: List[QuestionnaireField] = Field(default_factory=list)

    @model_validator(mode="after")
    def keys_must_be_unique(self) -> "QuestionnaireSchema":
        keys = set()
        for f in self.fields:
            if f.key in keys:
                raise ValueError(f"duplicate field key {f.key!r}")
            keys.add(f.key)

        for g in self.groups:
            for key in g.fields:
                if key not in keys:
                    raise ValueError(f"group {g.name!r} references unknown field {key!r}")
        return self

    def field(self, key: str) -> Optional[QuestionnaireField]:
        for f in self.fields:
            if f.key == key:
                return f
        return None


class EvaluateIn(BaseModel):
    schemaDefinition: QuestionnaireSchema
    answers: Dict[str, Any] = Field(default_factory=dict)


class EvaluateOut(BaseModel):
    valid: bool
    visibility: Dict[str, bool]
    errors: Dict[str, str]


class FieldValidateIn(BaseModel):
    field: QuestionnaireField
    value: Any = None


class PaletteItem(BaseModel):
    type: FieldType
    label: str
    icon: str


FIELD_TYPE_LIST: List[PaletteItem] = [
    PaletteItem(type="TEXT", label="Text input", icon="📝"),
    PaletteItem(type="NUMBER", label="Number input", icon="🔢"),
    PaletteItem(type="SINGLE_CHOICE", label="Single choice", icon="🔘"),
    PaletteItem(type="MULTI_CHOICE", label="Multiple choice", icon="☑️"),
    PaletteItem(type="DROPDOWN", label="Dropdown", icon="📋"),
    PaletteItem(type="DATE", label="Date", icon="📅"),
]


def create_default_field(field_type: str, index: int) -> QuestionnaireField:
    """New designer field for a palette type, keyed by creation time and position."""
    label = next((p.label for p in FIELD_TYPE_LIST if p.type == field_type), "New field")
    options = None
    if field_type in CHOICE_TYPES:
        options = [
            FieldOption(value="option1", label="Option 1"),
            FieldOption(value="option2", label="Option 2"),
        ]
    return QuestionnaireField(
        key=f"field_{int(time.time() * 1000)}_{index}",
        type=field_type,
        label=label,
        required=False,
        options=options,
    )
