#!/usr/bin/env python3
"""
СЕССИЯ ДИКТОВКИ
Применяет результаты разбора к карте: навигация, смена поверхности, измерения.
DebouncedDictation разбирает текст только после паузы ввода и очищает его после успеха.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from chart_store import ChartUpdateError, PeriodontalChart
from dental_vocabulary import MeasurementKind, Surface
from instant_command_system import (
    CommandKind,
    InstantCommandParser,
    MeasurementUpdate,
    ParseResult,
    instant_parser,
    looks_like_rapid_entry,
)
from perio_config import DICTATION_CONFIG
from session_context import SessionContext

logger = logging.getLogger(__name__)

NO_ACTIVE_SURFACE_HINT = "no_active_surface"


@dataclass
class DictationOutcome:
    """Что произошло после одной команды"""
    result: ParseResult
    tooth_number: Optional[int] = None
    active_surface: Optional[Surface] = None
    applied: List[MeasurementUpdate] = field(default_factory=list)
    rejected: List[Tuple[MeasurementUpdate, str]] = field(default_factory=list)
    hint: Optional[str] = None
    message: str = ""
    timestamp: float = field(default_factory=time.time)

    @property
    def success(self) -> bool:
        return self.result.success

    def to_message(self, chart: Optional[PeriodontalChart] = None) -> Dict:
        """Сообщение periodontal_update для веб-клиентов"""
        message = {
            "type": "periodontal_update",
            "success": self.success,
            "timestamp": self.timestamp,
            "tooth_number": self.tooth_number,
            "active_surface": self.active_surface.value if self.active_surface else None,
            "command": self.result.to_dict(),
            "applied": [update.to_dict() for update in self.applied],
            "rejected": [
                {**update.to_dict(), "reason": reason} for update, reason in self.rejected
            ],
            "hint": self.hint,
            "message": self.message,
        }
        if chart is not None and self.tooth_number is not None:
            message["tooth"] = chart.get(self.tooth_number).to_dict()
        return message


def describe_outcome(outcome: DictationOutcome) -> str:
    result = outcome.result
    tooth = outcome.tooth_number

    if result.kind == CommandKind.NAVIGATION:
        if outcome.tooth_number != result.navigation:
            return f"⚠️ Tooth {result.navigation} is missing"
        text = f"✅ Tooth {tooth} selected"
        if result.context_update:
            text += f" ({result.context_update.value})"
        return text

    if result.kind == CommandKind.SURFACE_CONTEXT:
        return f"✅ Active surface: {result.context_update.value}"

    if result.kind == CommandKind.NO_MATCH:
        if outcome.hint == NO_ACTIVE_SURFACE_HINT:
            return "⚠️ Select buccal or lingual before entering depths"
        return f"❓ Not understood: '{result.text}'"

    if tooth is None:
        return "⚠️ Select a tooth before entering measurements"
    if not outcome.applied:
        return f"❌ Tooth {tooth}: no measurements applied"

    first = outcome.applied[0]
    if first.kind == MeasurementKind.MOBILITY:
        return f"✅ Tooth {tooth} mobility: Grade {first.value}"

    values = "-".join(str(update.value) for update in outcome.applied)
    surface = first.location.split("_", 1)[1]
    return f"✅ {first.kind.value} tooth {tooth} {surface}: {values}mm"


class DictationSession:
    """Сессия диктовки одного пациента: карта, выбранный зуб, активная поверхность"""

    def __init__(self, chart: Optional[PeriodontalChart] = None,
                 context: Optional[SessionContext] = None,
                 selected_tooth: Optional[int] = None,
                 parser: Optional[InstantCommandParser] = None):
        self.chart = chart or PeriodontalChart(DICTATION_CONFIG["initial_missing_teeth"])
        self.context = context if context is not None else SessionContext.from_value(
            DICTATION_CONFIG["default_active_surface"]
        )
        self.selected_tooth = selected_tooth if selected_tooth is not None else DICTATION_CONFIG["initial_selected_tooth"]
        self.parser = parser or instant_parser

        self.stats = {
            "commands_processed": 0,
            "commands_matched": 0,
            "updates_applied": 0,
            "updates_rejected": 0,
            "session_start": time.time(),
        }

    def select_tooth(self, tooth_id: int) -> bool:
        """Выбор зуба; отсутствующие зубы не выбираются"""
        if self.chart.is_missing(tooth_id):
            logger.warning(f"⚠️ Tooth {tooth_id} is missing - selection ignored")
            return False
        self.selected_tooth = tooth_id
        return True

    def process_text(self, text: str) -> DictationOutcome:
        """Разбор и применение одной команды"""
        result = self.parser.parse(text, self.context)
        self.stats["commands_processed"] += 1

        outcome = DictationOutcome(result=result)

        if result.navigation is not None:
            self.select_tooth(result.navigation)

        self.context = self.context.apply(result)

        for update in result.updates:
            if self.selected_tooth is None:
                outcome.rejected.append((update, "no tooth selected"))
                continue
            try:
                self.chart.apply_update(self.selected_tooth, update)
                outcome.applied.append(update)
            except ChartUpdateError as e:
                logger.warning(f"❌ Update rejected: {update.location}={update.value}: {e}")
                outcome.rejected.append((update, str(e)))

        if result.success:
            self.stats["commands_matched"] += 1
        elif self.context.active_surface is None and looks_like_rapid_entry(result.text):
            outcome.hint = NO_ACTIVE_SURFACE_HINT

        self.stats["updates_applied"] += len(outcome.applied)
        self.stats["updates_rejected"] += len(outcome.rejected)

        outcome.tooth_number = self.selected_tooth
        outcome.active_surface = self.context.active_surface
        outcome.message = describe_outcome(outcome)
        logger.info(outcome.message)
        return outcome

    def get_stats(self) -> Dict:
        stats = self.stats.copy()
        stats["session_uptime"] = time.time() - stats["session_start"]
        stats["selected_tooth"] = self.selected_tooth
        stats.update(self.context.to_dict())
        return stats


async def _maybe_await(value):
    if inspect.isawaitable(value):
        await value


class DebouncedDictation:
    """
    Разбор после паузы ввода.
    Новый текст отбрасывает ожидающий таймер; после успешной команды
    ввод очищается через clear_delay.
    """

    def __init__(self, session: DictationSession,
                 on_outcome: Optional[Callable] = None,
                 on_clear: Optional[Callable] = None,
                 debounce_seconds: Optional[float] = None,
                 clear_delay_seconds: Optional[float] = None):
        self.session = session
        self.on_outcome = on_outcome
        self.on_clear = on_clear
        self.debounce_seconds = (
            DICTATION_CONFIG["debounce_seconds"] if debounce_seconds is None else debounce_seconds
        )
        self.clear_delay_seconds = (
            DICTATION_CONFIG["clear_delay_seconds"] if clear_delay_seconds is None else clear_delay_seconds
        )
        self.current_text = ""
        self._pending: Optional[asyncio.Task] = None
        self._clear_task: Optional[asyncio.Task] = None

    def submit(self, text: str):
        """Новый текст ввода - перезапускает таймер паузы"""
        self.current_text = text
        self._discard(self._pending)
        if not text.strip():
            self._pending = None
            return
        self._pending = asyncio.get_running_loop().create_task(self._parse_after_quiet(text))

    async def flush(self) -> Optional[DictationOutcome]:
        """Немедленный разбор текущего текста"""
        self._discard(self._pending)
        self._pending = None
        if not self.current_text.strip():
            return None
        return await self._run(self.current_text)

    async def _parse_after_quiet(self, text: str):
        await asyncio.sleep(self.debounce_seconds)
        self._pending = None
        await self._run(text)

    async def _run(self, text: str) -> DictationOutcome:
        outcome = self.session.process_text(text)
        if self.on_outcome:
            await _maybe_await(self.on_outcome(outcome))
        if outcome.success:
            self._discard(self._clear_task)
            self._clear_task = asyncio.get_running_loop().create_task(self._clear_after_delay(text))
        return outcome

    async def _clear_after_delay(self, text: str):
        await asyncio.sleep(self.clear_delay_seconds)
        self._clear_task = None
        # Пользователь уже набирает новую команду - не трогаем
        if self.current_text != text:
            return
        self.current_text = ""
        logger.debug("🧹 Dictation input cleared")
        if self.on_clear:
            await _maybe_await(self.on_clear())

    @staticmethod
    def _discard(task: Optional[asyncio.Task]):
        if task is not None and not task.done():
            task.cancel()

    async def close(self):
        for task in (self._pending, self._clear_task):
            self._discard(task)
        self._pending = None
        self._clear_task = None
