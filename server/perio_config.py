#!/usr/bin/env python3
"""
Конфигурация Periodontal Dictation сервера
Диктовка сокращений, пересчет CAL и риска, WebSocket интеграция
"""

import os
import logging

# =============================================================================
# ЛОГИРОВАНИЕ
# =============================================================================

LOG_LEVEL = os.getenv("PERIO_LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# =============================================================================
# НАСТРОЙКИ СЕРВЕРА
# =============================================================================

WEB_HOST = os.getenv("PERIO_WEB_HOST", "0.0.0.0")
WEB_PORT = int(os.getenv("PERIO_WEB_PORT", "8766"))

SERVER_CONFIG = {
    "ping_interval": 25,
    "ping_timeout": 10,
    "close_timeout": 5,
    "send_timeout": 1.0,        # Таймаут отправки одному клиенту (сек)
    "max_message_size": 64 * 1024,
}

# =============================================================================
# НАСТРОЙКИ ДИКТОВКИ
# =============================================================================


def _parse_teeth_list(raw: str):
    """Список зубов из строки вида "1,16,17,32" """
    teeth = []
    for token in raw.replace(",", " ").split():
        if token.isdigit():
            teeth.append(int(token))
    return teeth


DICTATION_CONFIG = {
    "debounce_seconds": 0.5,          # Пауза после последнего изменения текста
    "clear_delay_seconds": 1.0,       # Очистка ввода после успешной команды
    "default_active_surface": os.getenv("PERIO_DEFAULT_SURFACE", "buccal"),
    "initial_selected_tooth": None,
    "initial_missing_teeth": _parse_teeth_list(os.getenv("PERIO_MISSING_TEETH", "")),
}

# =============================================================================
# КЛИНИЧЕСКИЕ ГРАНИЦЫ ЗНАЧЕНИЙ
# =============================================================================

MEASUREMENT_LIMITS = {
    "pocket_depth": (0, 15),   # мм
    "recession": (0, 15),      # мм
    "mobility": (0, 3),        # степень
    "furcation": (0, 3),       # класс
}

TOOTH_COUNT = 32


def setup_logging(level: str = None):
    """Базовая настройка логирования для запуска сервера"""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
    return logging.getLogger("perio")
