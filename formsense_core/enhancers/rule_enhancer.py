"""
Rule-based field classification.

Pattern tables and label heuristics, no I/O. Always applicable, so it is
the fallback when the model host is unavailable.
"""

import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from ..enhancement import EnhancementSource, FieldEnhancement, FieldValidation
from ..field_context import FieldContext
from .base import FieldEnhancer

logger = logging.getLogger(__name__)

GENERIC_INPUT_TYPE = "text"

TYPE_CONFIDENCE = 0.8
LABEL_CONFIDENCE = 0.9
VALIDATION_CONFIDENCE = 0.7

# Order matters: first match wins (email before number).
FIELD_TYPE_PATTERNS: List[Tuple[str, List[Pattern[str]]]] = [
    ("email", [
        re.compile(r"email", re.I),
        re.compile(r"e-mail", re.I),
        re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"),
    ]),
    ("phone", [
        re.compile(r"phone", re.I),
        re.compile(r"mobile", re.I),
        re.compile(r"cell", re.I),
        re.compile(r"tel", re.I),
        re.compile(r"^\+?[\d\s\-().]+$"),
    ]),
    ("date", [
        re.compile(r"date", re.I),
        re.compile(r"birth", re.I),
        re.compile(r"dob", re.I),
        re.compile(r"^\d{4}-\d{2}-\d{2}$"),
    ]),
    ("password", [
        re.compile(r"password", re.I),
        re.compile(r"passwd", re.I),
        re.compile(r"pwd", re.I),
    ]),
    ("url", [
        re.compile(r"url", re.I),
        re.compile(r"website", re.I),
        re.compile(r"link", re.I),
        re.compile(r"^https?://"),
    ]),
    ("number", [
        re.compile(r"amount", re.I),
        re.compile(r"quantity", re.I),
        re.compile(r"price", re.I),
        re.compile(r"salary", re.I),
        re.compile(r"age", re.I),
        re.compile(r"year", re.I),
        re.compile(r"^\d+$"),
    ]),
    ("postal", [
        re.compile(r"zip", re.I),
        re.compile(r"postal", re.I),
        re.compile(r"postcode", re.I),
        re.compile(r"^\d{5}(-\d{4})?$"),
    ]),
    ("creditcard", [
        re.compile(r"card", re.I),
        re.compile(r"credit", re.I),
        re.compile(r"payment", re.I),
        re.compile(r"^\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}$"),
    ]),
]

# Browser-standard autocomplete tokens
AUTOCOMPLETE_TYPES: Dict[str, str] = {
    "email": "email",
    "tel": "phone",
    "url": "url",
    "current-password": "password",
    "new-password": "password",
    "cc-number": "creditcard",
    "postal-code": "postal",
    "bday": "date",
}

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"

VALIDATION_DEFAULTS: Dict[str, Dict[str, str]] = {
    "email": {
        "pattern": EMAIL_PATTERN,
        "message": "Please enter a valid email address",
    },
    "phone": {
        "pattern": PHONE_PATTERN,
        "message": "Please enter a valid phone number",
    },
    "url": {
        "pattern": r"^https?:\/\/.+",
        "message": "Please enter a valid URL starting with http:// or https://",
    },
    "postal": {
        "pattern": r"^\d{5}(-\d{4})?$",
        "message": "Please enter a valid ZIP code",
    },
    "creditcard": {
        "pattern": r"^\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}$",
        "message": "Please enter a valid credit card number",
    },
}


def humanize_name(name: str) -> str:
    """'first_name' / 'first-name' / 'firstName' -> 'First Name'"""
    text = re.sub(r"[-_]", " ", name)
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)


class RuleBasedEnhancer(FieldEnhancer):
    """Static pattern rules over the element's own attributes."""

    name = "RuleBasedEnhancer"
    priority = 1

    def can_enhance(self, context: FieldContext) -> bool:
        return True

    async def enhance(self, context: FieldContext) -> Optional[FieldEnhancement]:
        return self.classify(context)

    def classify(self, context: FieldContext) -> Optional[FieldEnhancement]:
        """Synchronous core of ``enhance``."""
        confidence = 0.0

        field_type = self.detect_field_type(context)
        if field_type:
            confidence = max(confidence, TYPE_CONFIDENCE)

        label = self.extract_label(context)
        if label:
            confidence = max(confidence, LABEL_CONFIDENCE)

        validation = self.infer_validation(context, field_type)
        if validation:
            confidence = max(confidence, VALIDATION_CONFIDENCE)

        if confidence == 0:
            return None

        return FieldEnhancement(
            field_type=field_type,
            label=label,
            validation=validation,
            confidence=confidence,
            source=EnhancementSource.RULE,
        )

    def detect_field_type(self, context: FieldContext) -> Optional[str]:
        element = context.element
        if element.type and element.type != GENERIC_INPUT_TYPE:
            return element.type

        search_text = " ".join(
            part for part in (
                element.name,
                element.id,
                element.label,
                element.placeholder,
                element.aria_label,
            ) if part
        ).lower()

        for field_type, patterns in FIELD_TYPE_PATTERNS:
            for pattern in patterns:
                if pattern.search(search_text):
                    return field_type

        if element.autocomplete:
            mapped = AUTOCOMPLETE_TYPES.get(element.autocomplete)
            if mapped:
                return mapped

        if element.pattern:
            return self._reverse_match_pattern(element.pattern)

        return None

    def _reverse_match_pattern(self, field_pattern: str) -> Optional[str]:
        """Find a type whose detection regex source contains the field's pattern."""
        try:
            re.compile(field_pattern)
        except re.error as e:
            logger.debug(f"Skipping reverse pattern match, invalid pattern {field_pattern!r}: {e}")
            return None
        for field_type, patterns in FIELD_TYPE_PATTERNS:
            for pattern in patterns:
                if field_pattern in pattern.pattern:
                    return field_type
        return None

    def extract_label(self, context: FieldContext) -> Optional[str]:
        element = context.element
        if element.label and "field" not in element.label.lower():
            return element.label

        if element.aria_label:
            return element.aria_label

        for text in context.surrounding_text:
            if text and 2 < len(text) < 50 and "*" not in text:
                return text.strip()

        if element.placeholder and len(element.placeholder) > 2:
            return element.placeholder

        if element.name:
            return humanize_name(element.name)

        return None

    def infer_validation(self, context: FieldContext, field_type: Optional[str]) -> Optional[FieldValidation]:
        element = context.element
        validation = FieldValidation()

        if element.required:
            validation.required = True

        if element.pattern:
            validation.pattern = element.pattern
        elif field_type in VALIDATION_DEFAULTS:
            default = VALIDATION_DEFAULTS[field_type]
            validation.pattern = default["pattern"]
            validation.message = default["message"]

        if element.min_length:
            validation.min_length = element.min_length
        if element.max_length:
            validation.max_length = element.max_length
        if element.min:
            validation.min = element.min
        if element.max:
            validation.max = element.max

        return None if validation.is_empty() else validation
