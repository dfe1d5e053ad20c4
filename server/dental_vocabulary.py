#!/usr/bin/env python3
"""
СЛОВАРЬ ПАРОДОНТАЛЬНОЙ КАРТЫ
Участки зуба, поверхности, типы измерений и нумерация зубов (American Universal System)
"""

from enum import Enum
from typing import Dict, Optional, Tuple


class Surface(str, Enum):
    """Поверхность зондирования"""
    BUCCAL = "buccal"
    LINGUAL = "lingual"


class MeasurementKind(Enum):
    """Тип измерения"""
    POCKET_DEPTH = "Pocket Depth"
    RECESSION = "Recession"
    BLEEDING = "Bleeding on Probing"
    PLAQUE = "Plaque"
    MOBILITY = "Mobility"
    FURCATION = "Furcation"


# Порядок и написание - внешний контракт (ключи во всех словарях)
SITES: Tuple[str, ...] = (
    "disto_buccal",
    "mid_buccal",
    "mesio_buccal",
    "disto_lingual",
    "mid_lingual",
    "mesio_lingual",
)

SITE_KINDS = (
    MeasurementKind.POCKET_DEPTH,
    MeasurementKind.RECESSION,
    MeasurementKind.BLEEDING,
    MeasurementKind.PLAQUE,
)

# Локации для измерений уровня всего зуба
MOBILITY_LOCATION = "mobility"
FURCATION_LOCATIONS: Dict[str, Surface] = {
    "furcation_buccal": Surface.BUCCAL,
    "furcation_lingual": Surface.LINGUAL,
}


def surface_sites(surface: Surface) -> Tuple[str, str, str]:
    """Три участка поверхности в клиническом порядке: дистальный, средний, мезиальный"""
    surface = Surface(surface)
    return (
        f"disto_{surface.value}",
        f"mid_{surface.value}",
        f"mesio_{surface.value}",
    )


def quadrant_to_universal(quadrant: int, tooth_in_quad: int) -> Optional[int]:
    """
    Квадрант + номер зуба в квадранте -> Universal номер (1-32)
    В каждом квадранте 1 - центральный резец, 8 - третий моляр
    """
    if not (1 <= quadrant <= 4 and 1 <= tooth_in_quad <= 8):
        return None
    if quadrant == 1:
        return 9 - tooth_in_quad
    if quadrant == 2:
        return 8 + tooth_in_quad
    if quadrant == 3:
        return 24 + tooth_in_quad
    return 25 - tooth_in_quad


def universal_to_palmer(tooth_id: int) -> Optional[Tuple[int, int]]:
    """Universal номер -> (квадрант, номер зуба в квадранте)"""
    if 1 <= tooth_id <= 8:
        return 1, 9 - tooth_id
    if 9 <= tooth_id <= 16:
        return 2, tooth_id - 8
    if 17 <= tooth_id <= 24:
        return 4, 25 - tooth_id
    if 25 <= tooth_id <= 32:
        return 3, tooth_id - 24
    return None


def tooth_type(tooth_id: int) -> Optional[str]:
    """Тип зуба по позиции в квадранте"""
    palmer = universal_to_palmer(tooth_id)
    if palmer is None:
        return None
    position = palmer[1]
    if position <= 2:
        return "incisor"
    if position == 3:
        return "canine"
    if position <= 5:
        return "premolar"
    return "molar"


def is_molar(tooth_id: int) -> bool:
    return tooth_type(tooth_id) == "molar"
