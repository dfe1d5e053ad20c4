#!/usr/bin/env python3
"""
КОНТЕКСТ СЕССИИ ДИКТОВКИ
Активная поверхность (buccal / lingual / нет), к которой относится быстрый ввод "3 4 5"
"""

from dataclasses import dataclass, replace
from typing import Optional

from dental_vocabulary import Surface


@dataclass(frozen=True)
class SessionContext:
    """Неизменяемый снимок контекста - парсер только читает его"""
    active_surface: Optional[Surface] = None

    @classmethod
    def from_value(cls, surface: Optional[str]) -> "SessionContext":
        if not surface or surface == "none":
            return cls()
        return cls(active_surface=Surface(surface))

    def with_surface(self, surface: Optional[Surface]) -> "SessionContext":
        return replace(self, active_surface=Surface(surface) if surface else None)

    def apply(self, result) -> "SessionContext":
        """Новый контекст после результата парсинга (если он меняет поверхность)"""
        if result.context_update is None:
            return self
        return self.with_surface(result.context_update)

    def to_dict(self) -> dict:
        return {
            "active_surface": self.active_surface.value if self.active_surface else None
        }
