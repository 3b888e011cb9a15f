"""
Field context: read-only snapshot of everything known about one form input.

Produced by the page analyzer (one per detected input) and handed to the
enhancers unchanged. ``from_dict`` accepts the analyzer's camelCase JSON.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, Optional, Tuple, Union

FINGERPRINT_DELIMITER = "_"

# snake_case attribute -> camelCase key used by the page analyzer
_ELEMENT_KEYS = {
    "type": "type",
    "name": "name",
    "id": "id",
    "placeholder": "placeholder",
    "value": "value",
    "label": "label",
    "aria_label": "ariaLabel",
    "aria_labelled_by": "ariaLabelledBy",
    "autocomplete": "autocomplete",
    "pattern": "pattern",
    "required": "required",
    "min_length": "minLength",
    "max_length": "maxLength",
    "min": "min",
    "max": "max",
}


def _pick(data: Dict[str, Any], snake: str, camel: str) -> Any:
    if snake in data:
        return data[snake]
    return data.get(camel)


@dataclass(frozen=True)
class FieldElement:
    """Attributes of the input element itself."""
    type: Optional[str] = None
    name: Optional[str] = None
    id: Optional[str] = None
    placeholder: Optional[str] = None
    value: Optional[str] = None
    label: Optional[str] = None
    aria_label: Optional[str] = None
    aria_labelled_by: Optional[str] = None
    autocomplete: Optional[str] = None
    pattern: Optional[str] = None
    required: Optional[bool] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min: Optional[str] = None
    max: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "FieldElement":
        data = data or {}
        return cls(**{snake: _pick(data, snake, camel) for snake, camel in _ELEMENT_KEYS.items()})

    def to_dict(self) -> Dict[str, Any]:
        """camelCase view with unset attributes dropped."""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                out[_ELEMENT_KEYS[f.name]] = value
        return out


@dataclass(frozen=True)
class SiblingField:
    type: Optional[str] = None
    name: Optional[str] = None
    label: Optional[str] = None

    @classmethod
    def from_value(cls, value: Union[str, Dict[str, Any], "SiblingField"]) -> "SiblingField":
        if isinstance(value, SiblingField):
            return value
        if isinstance(value, str):
            return cls(name=value)
        return cls(type=value.get("type"), name=value.get("name"), label=value.get("label"))

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in (("type", self.type), ("name", self.name), ("label", self.label)) if v is not None}


@dataclass(frozen=True)
class FormContext:
    form_name: Optional[str] = None
    form_action: Optional[str] = None
    section_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormContext":
        return cls(
            form_name=_pick(data, "form_name", "formName"),
            form_action=_pick(data, "form_action", "formAction"),
            section_name=_pick(data, "section_name", "sectionName"),
        )

    def to_dict(self) -> Dict[str, Any]:
        pairs = (
            ("formName", self.form_name),
            ("formAction", self.form_action),
            ("sectionName", self.section_name),
        )
        return {k: v for k, v in pairs if v is not None}


@dataclass(frozen=True)
class PageContext:
    page_title: Optional[str] = None
    page_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageContext":
        return cls(
            page_title=_pick(data, "page_title", "pageTitle"),
            page_url=_pick(data, "page_url", "pageUrl"),
        )


@dataclass(frozen=True)
class FieldContext:
    """
    Everything known about one input at the moment of analysis.

    ``surrounding_text`` is ordered most-relevant first.
    """
    element: FieldElement = field(default_factory=FieldElement)
    surrounding_text: Tuple[str, ...] = ()
    sibling_fields: Tuple[SiblingField, ...] = ()
    form_context: Optional[FormContext] = None
    page_context: Optional[PageContext] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldContext":
        surrounding = _pick(data, "surrounding_text", "surroundingText") or ()
        if isinstance(surrounding, str):
            surrounding = (surrounding,)
        siblings: Iterable[Any] = _pick(data, "sibling_fields", "siblingFields") or ()
        form = _pick(data, "form_context", "formContext")
        page = _pick(data, "page_context", "pageContext")
        return cls(
            element=FieldElement.from_dict(data.get("element")),
            surrounding_text=tuple(str(s) for s in surrounding if s is not None),
            sibling_fields=tuple(SiblingField.from_value(s) for s in siblings),
            form_context=FormContext.from_dict(form) if form else None,
            page_context=PageContext.from_dict(page) if page else None,
        )

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Subset of the context handed to the model host."""
        element = self.element
        field_keys = ("type", "name", "id", "placeholder", "label", "aria_label",
                      "autocomplete", "pattern", "required")
        field_data = {
            _ELEMENT_KEYS[key]: getattr(element, key)
            for key in field_keys
            if getattr(element, key) is not None
        }
        data: Dict[str, Any] = {"field": field_data}
        if self.surrounding_text:
            data["surrounding"] = list(self.surrounding_text)
        if self.sibling_fields:
            data["siblings"] = [s.to_dict() for s in self.sibling_fields]
        if self.form_context:
            data["form"] = self.form_context.to_dict()
        return data


def field_fingerprint(element: FieldElement) -> str:
    """
    Cache key for a field: type, name, label and placeholder, case-folded.

    Intentionally coarse. Two different fields sharing these four strings
    share a cached classification.
    """
    parts = (element.type, element.name, element.label, element.placeholder)
    return FINGERPRINT_DELIMITER.join(p or "" for p in parts).casefold()
