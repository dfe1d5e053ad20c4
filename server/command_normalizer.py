#!/usr/bin/env python3
"""
НОРМАЛИЗАЦИЯ ДИКТОВКИ
Приводит свободный текст ("buckle 1-7", "three, four, five") к каноническому виду
для парсера мгновенных команд. Повторная нормализация ничего не меняет.
"""

import re
import logging
from typing import Dict

logger = logging.getLogger(__name__)

# Синонимы и ASR ошибки -> канонический словарь
SYNONYMS: Dict[str, str] = {
    # Surfaces
    "buckle": "buccal",
    "bocal": "buccal",
    "bucc": "buccal",
    "b": "buccal",
    "buckeal": "buccal",
    "becal": "buccal",
    "ling": "lingual",
    "l": "lingual",
    "palatal": "lingual",
    "pal": "lingual",
    "lingle": "lingual",
    "lingwal": "lingual",

    # Measurements
    "pocket depth": "pd",
    "probing depth": "pd",
    "pocket": "pd",
    "pocky": "pd",
    "period": "pd",
    "depths": "pd",
    "bed": "pd",
    "recession": "rec",
    "receding": "rec",
    "mobility": "mob",
    "bleeding on probing": "bop",
    "bleeding": "bop",

    # Numbers
    "zero": "0",
    "one": "1",
    "two": "2",
    "three": "3",
    "four": "4",
    "five": "5",
    "six": "6",
    "seven": "7",
    "eight": "8",
    "nine": "9",
}

FILLER_WORDS = ("and", "for", "the", "is", "a", "to", "please", "set")


def _synonym_pattern(key: str) -> str:
    # Многословные ключи допускают любые пробелы между словами
    return r"\s+".join(re.escape(word) for word in key.split())


_SYNONYM_RE = re.compile(
    r"\b(?:"
    + "|".join(_synonym_pattern(key) for key in sorted(SYNONYMS, key=len, reverse=True))
    + r")\b"
)
_TRAILING_PUNCT_RE = re.compile(r"[.!?;:]+(?=\s|$)")
_DIGIT_DELIMITER_RE = re.compile(r"(\d)\s*[,-]\s*(\d)")
_QUADRANT_TOOTH_RE = re.compile(r"\b([1-4])-([1-8])\b")
_FILLER_RE = re.compile(r"(?<=\s)(?:" + "|".join(FILLER_WORDS) + r")(?=\s)")
_WHITESPACE_RE = re.compile(r"\s+")


def _replace_synonym(match) -> str:
    return SYNONYMS[" ".join(match.group(0).split())]


def _normalize_once(text: str) -> str:
    normalized = _TRAILING_PUNCT_RE.sub("", text.lower())
    normalized = f" {normalized.strip()} "

    normalized = _SYNONYM_RE.sub(_replace_synonym, normalized)

    # "3, 4, 5" / "3-4-5" -> "3 4 5" (второй проход для трех чисел)
    normalized = _DIGIT_DELIMITER_RE.sub(r"\1 \2", normalized)
    normalized = _DIGIT_DELIMITER_RE.sub(r"\1 \2", normalized)

    # "1-1" -> "1 1"
    normalized = _QUADRANT_TOOTH_RE.sub(r"\1 \2", normalized)

    normalized = _FILLER_RE.sub("", normalized)

    return _WHITESPACE_RE.sub(" ", normalized).strip()


def normalize_command(text: str) -> str:
    """
    Нормализация команды - результат стабилен при повторном применении.
    Удаление слов-паразитов может открыть новую последовательность "3 - 4",
    поэтому конвейер повторяется до неподвижной точки.
    """
    if not text:
        return ""

    normalized = _normalize_once(text)
    while True:
        again = _normalize_once(normalized)
        if again == normalized:
            break
        normalized = again

    logger.debug(f"🔤 NORMALIZED: '{text}' → '{normalized}'")
    return normalized
