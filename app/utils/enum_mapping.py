# app/utils/enum_mapping.py
import re
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def canonical(value: Any) -> str:
    """'For Sale', 'for-sale', 'FOR_SALE' -> 'forsale'"""
    if value is None:
        return ""
    return _NON_ALNUM.sub("", str(value).strip().lower())


class EnumLookup(Generic[E]):
    """
    Case/separator-insensitive lookup table built once from an Enum.
    Every member is reachable by its name and by its value.
    """

    def __init__(self, enum_cls: Type[E]):
        self.enum_cls = enum_cls
        self._table: Dict[str, E] = {}
        for member in enum_cls:
            for spelling in (member.name, member.value):
                self._table.setdefault(canonical(spelling), member)

    def get(self, value: Any, default: Optional[E] = None) -> Optional[E]:
        if not isinstance(value, str) or not value.strip():
            return default
        return self._table.get(canonical(value), default)

    def __contains__(self, value: Any) -> bool:
        return self.get(value) is not None

    @property
    def choices(self) -> List[str]:
        return [member.value for member in self.enum_cls]

    def choices_text(self) -> str:
        return ", ".join(self.choices)
