"""Enhancer contract."""

from abc import ABC, abstractmethod
from typing import Optional

from ..enhancement import FieldEnhancement
from ..field_context import FieldContext


class FieldEnhancer(ABC):
    """
    One pluggable classifier contributing an opinion about a field.

    Lower ``priority`` sorts first. Enhancers hold no per-request state;
    disabled enhancers stay registered but are skipped.
    """

    name: str = "FieldEnhancer"
    priority: int = 100

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    @abstractmethod
    def can_enhance(self, context: FieldContext) -> bool:
        """Whether there is enough signal in ``context`` to try."""

    @abstractmethod
    async def enhance(self, context: FieldContext) -> Optional[FieldEnhancement]:
        """Classify the field, or return None for no contribution."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority}, enabled={self.enabled})"
