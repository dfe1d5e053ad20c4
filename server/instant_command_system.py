#!/usr/bin/env python3
"""
INSTANT COMMAND SYSTEM
Мгновенный разбор коротких пародонтальных команд ("buccal 1 7", "3 4 5", "mob 2")
Упорядоченные проходы: первый совпавший проход останавливает разбор
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

from command_normalizer import normalize_command
from dental_vocabulary import (
    MOBILITY_LOCATION,
    MeasurementKind,
    Surface,
    quadrant_to_universal,
    surface_sites,
)
from session_context import SessionContext

logger = logging.getLogger(__name__)


class CommandKind(Enum):
    """Какой проход распознал команду"""
    NAVIGATION = "navigation"
    RAPID_ENTRY = "rapid_entry"
    FULL_COMMAND = "full_command"
    MOBILITY = "mobility"
    SURFACE_CONTEXT = "surface_context"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class MeasurementUpdate:
    """Одно изменение измерения: тип, участок (или mobility/furcation_*) и значение"""
    kind: MeasurementKind
    location: str
    value: Union[int, bool]

    def to_dict(self) -> Dict:
        return {
            "measurement_type": self.kind.value,
            "location": self.location,
            "value": self.value,
        }


@dataclass
class ParseResult:
    """Результат разбора - навигация и измерения никогда не приходят вместе"""
    kind: CommandKind = CommandKind.NO_MATCH
    text: str = ""
    updates: List[MeasurementUpdate] = field(default_factory=list)
    navigation: Optional[int] = None
    context_update: Optional[Surface] = None

    @property
    def success(self) -> bool:
        return bool(self.updates) or self.navigation is not None or self.context_update is not None

    def to_dict(self) -> Dict:
        return {
            "command_type": self.kind.value,
            "text": self.text,
            "success": self.success,
            "updates": [update.to_dict() for update in self.updates],
            "navigation": self.navigation,
            "context_update": self.context_update.value if self.context_update else None,
        }


Handler = Callable[[re.Match, Optional[Surface], str], Optional["ParseResult"]]


@dataclass
class CommandPattern:
    """Паттерн команды и обработчик совпадения"""
    pattern: re.Pattern
    command_type: CommandKind
    handler: Handler
    requires_surface: bool = False


_RAPID_ENTRY_RE = re.compile(r"^(\d{1,2}) (\d{1,2}) (\d{1,2})$")


def _site_updates(kind: MeasurementKind, surface: Surface, values) -> List[MeasurementUpdate]:
    # distal, mid, mesial - клинический порядок, не алфавитный
    return [
        MeasurementUpdate(kind, site, int(value))
        for site, value in zip(surface_sites(surface), values)
    ]


def _navigation(match, active_surface, text) -> Optional[ParseResult]:
    tooth_id = quadrant_to_universal(int(match.group(2)), int(match.group(3)))
    if tooth_id is None:
        return None
    surface = Surface(match.group(1)) if match.group(1) else None
    return ParseResult(CommandKind.NAVIGATION, text, navigation=tooth_id, context_update=surface)


def _rapid_entry(match, active_surface, text) -> Optional[ParseResult]:
    updates = _site_updates(MeasurementKind.POCKET_DEPTH, active_surface, match.groups())
    return ParseResult(CommandKind.RAPID_ENTRY, text, updates=updates)


def _full_command(match, active_surface, text) -> Optional[ParseResult]:
    surface = Surface(match.group(1))
    kind = MeasurementKind.POCKET_DEPTH if match.group(2) == "pd" else MeasurementKind.RECESSION
    updates = _site_updates(kind, surface, match.groups()[2:])
    return ParseResult(CommandKind.FULL_COMMAND, text, updates=updates, context_update=surface)


def _mobility(match, active_surface, text) -> Optional[ParseResult]:
    update = MeasurementUpdate(MeasurementKind.MOBILITY, MOBILITY_LOCATION, int(match.group(1)))
    return ParseResult(CommandKind.MOBILITY, text, updates=[update])


def _surface_context(match, active_surface, text) -> Optional[ParseResult]:
    return ParseResult(CommandKind.SURFACE_CONTEXT, text, context_update=Surface(match.group(1)))


def _resolve_surface(context) -> Optional[Surface]:
    if isinstance(context, SessionContext):
        return context.active_surface
    if isinstance(context, Surface):
        return context
    # Неизвестная поверхность - как будто активной нет
    try:
        return Surface(str(context).strip().lower())
    except ValueError:
        return None


class InstantCommandParser:
    """Парсер мгновенных команд"""

    def __init__(self):
        self.command_patterns = self._initialize_command_patterns()

    def _initialize_command_patterns(self) -> List[CommandPattern]:
        """Порядок важен: широкие паттерны ниже перехватили бы узкие"""

        return [
            # 1. NAVIGATION - "buccal 1 7", "2 5"
            CommandPattern(
                pattern=re.compile(r"^(?:(buccal|lingual) )?([1-4]) ([1-8])$"),
                command_type=CommandKind.NAVIGATION,
                handler=_navigation,
            ),

            # 2. RAPID ENTRY - "3 4 5" на активной поверхности
            CommandPattern(
                pattern=_RAPID_ENTRY_RE,
                command_type=CommandKind.RAPID_ENTRY,
                handler=_rapid_entry,
                requires_surface=True,
            ),

            # 3. FULL COMMAND - "lingual rec 2 3 2"
            CommandPattern(
                pattern=re.compile(r"\b(buccal|lingual) (pd|rec) (\d{1,2}) (\d{1,2}) (\d{1,2})\b"),
                command_type=CommandKind.FULL_COMMAND,
                handler=_full_command,
            ),

            # 4. MOBILITY - "mob 2"
            CommandPattern(
                pattern=re.compile(r"\bmob ([0-3])\b"),
                command_type=CommandKind.MOBILITY,
                handler=_mobility,
            ),

            # 5. SURFACE CONTEXT - "lingual"
            CommandPattern(
                pattern=re.compile(r"^(buccal|lingual)$"),
                command_type=CommandKind.SURFACE_CONTEXT,
                handler=_surface_context,
            ),
        ]

    def parse(self, text: str, context: Union[SessionContext, Surface, str, None] = None) -> ParseResult:
        """
        Разбор команды - КЛЮЧЕВАЯ ФУНКЦИЯ
        Контекст только читается; смена поверхности возвращается в context_update
        """
        command = normalize_command(text)
        active_surface = _resolve_surface(context)

        for pattern_obj in self.command_patterns:
            if pattern_obj.requires_surface and active_surface is None:
                continue

            match = pattern_obj.pattern.search(command)
            if not match:
                continue

            result = pattern_obj.handler(match, active_surface, command)
            if result is not None:
                logger.info(f"✅ PATTERN MATCHED: {pattern_obj.command_type.value} ← '{command}'")
                return result

        logger.info(f"❌ NO PATTERN MATCHED: '{command}'")
        return ParseResult(text=command)


def looks_like_rapid_entry(text: str) -> bool:
    """Три числа подряд - быстрый ввод, которому нужна активная поверхность"""
    return _RAPID_ENTRY_RE.match(normalize_command(text)) is not None


# Глобальный экземпляр парсера
instant_parser = InstantCommandParser()


def parse_command(text: str, context: Union[SessionContext, Surface, str, None] = None) -> ParseResult:
    return instant_parser.parse(text, context)
