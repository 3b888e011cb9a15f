"""
Remote inference adapter: prompt construction, model call and parsing of
the model's free-text answer into a FieldEnhancement.
"""

import json
import logging
import re
from typing import Any, Optional

from .enhancement import EnhancementSource, FieldEnhancement, FieldValidation
from .field_context import FieldContext
from .llm import OllamaClient, PromptRequest

logger = logging.getLogger(__name__)

DEFAULT_MODEL_CONFIDENCE = 0.5

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

PROMPT_TEMPLATE = """Analyze this HTML form field and provide classification. Return ONLY valid JSON.

Field context:
{context}

Determine:
1. The semantic field type (email, phone, date, password, url, number, text, etc.)
2. The best human-readable label for this field
3. Appropriate validation rules

Response format (JSON only):
{{
  "fieldType": "detected_type",
  "label": "human_readable_label",
  "validation": {{
    "pattern": "regex_if_applicable",
    "required": true_or_false,
    "message": "validation_message"
  }},
  "confidence": 0.0_to_1.0
}}"""


def build_field_prompt(context: FieldContext) -> str:
    """Prompt asking the model for a strict-JSON classification of one field."""
    payload = json.dumps(context.to_prompt_dict(), indent=2, ensure_ascii=False)
    return PROMPT_TEMPLATE.format(context=payload)


def _coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_MODEL_CONFIDENCE
    return min(1.0, max(0.0, float(value)))


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def parse_field_response(text: str) -> Optional[FieldEnhancement]:
    """
    Extract the first ``{...}`` span (greedy) and decode it.

    Returns None when there is no JSON object, it does not decode, or it has
    neither ``fieldType`` nor ``label``.
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse model response: {e}")
        return None
    if not isinstance(parsed, dict):
        return None

    field_type = _optional_str(parsed.get("fieldType"))
    label = _optional_str(parsed.get("label"))
    if field_type is None and label is None:
        logger.debug("Model response has neither fieldType nor label, discarding")
        return None

    return FieldEnhancement(
        field_type=field_type,
        label=label,
        validation=FieldValidation.from_dict(parsed.get("validation")),
        confidence=_coerce_confidence(parsed.get("confidence")),
        source=EnhancementSource.MODEL,
    )


class InferenceAdapter:
    """Binds an Ollama client to a model name."""

    def __init__(self, client: OllamaClient, model: str):
        self.client = client
        self.model = model

    @property
    def host(self) -> str:
        return self.client.host

    def update_host(self, host: str) -> None:
        self.client.update_host(host)

    async def infer(self, prompt: str) -> str:
        """Send one prompt, return the raw response text. Raises NetworkError."""
        response = await self.client.send_prompt(PromptRequest(model=self.model, prompt=prompt))
        return response.response

    async def test_connection(self) -> bool:
        probe = await self.client.test_connection()
        return probe.connected
