#!/usr/bin/env python3
"""
ПЕРЕСЧЕТ ПРОИЗВОДНЫХ ПОКАЗАТЕЛЕЙ ЗУБА
Clinical Attachment Loss по участкам и суммарный риск-скор.
Чистые функции: входная запись не изменяется, соседние зубы не учитываются.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping

import numpy as np

from dental_vocabulary import SITES, MeasurementKind

logger = logging.getLogger(__name__)

# Пороговые значения риска
PD_RISK_THRESHOLD = 4        # мм, выше - риск растет на каждый мм
REC_RISK_THRESHOLD = 2
CAL_RISK_THRESHOLD = 5
BLEEDING_RISK = 2
MOBILITY_RISK_WEIGHT = 10    # на степень подвижности
FURCATION_RISK_WEIGHT = 8    # на класс фуркации с каждой стороны


class RiskLevel(Enum):
    """Уровень риска для отображения"""
    LOW = "low"
    MODERATE = "moderate"
    ELEVATED = "elevated"
    HIGH = "high"


@dataclass
class DerivedMeasurements:
    """Производные поля зуба"""
    cal: Dict[str, int] = field(default_factory=dict)
    risk_score: int = 0


@dataclass
class ChartSummary:
    """Сводка по всей карте"""
    total_sites: int = 0
    bop_sites: int = 0
    plaque_sites: int = 0
    bop_percentage: float = 0.0
    plaque_percentage: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "total_sites": self.total_sites,
            "bop_sites": self.bop_sites,
            "plaque_sites": self.plaque_sites,
            "bop_percentage": self.bop_percentage,
            "plaque_percentage": self.plaque_percentage,
        }


def _numeric(value) -> int:
    # Отсутствующие и нечисловые значения (включая bool) считаются нулем
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _site_vector(site_values: Mapping, numeric: bool = True) -> np.ndarray:
    site_values = site_values or {}
    if numeric:
        # object: целые Python без переполнения int64
        return np.array([_numeric(site_values.get(site)) for site in SITES], dtype=object)
    return np.array([bool(site_values.get(site)) for site in SITES], dtype=bool)


def calculate_derived(tooth) -> DerivedMeasurements:
    """
    CAL и риск-скор зуба.
    tooth - ToothRecord (measurements, mobility, furcation, missing)
    """
    if tooth.missing:
        return DerivedMeasurements(cal={}, risk_score=0)

    measurements = tooth.measurements or {}
    pd = _site_vector(measurements.get(MeasurementKind.POCKET_DEPTH))
    rec = _site_vector(measurements.get(MeasurementKind.RECESSION))
    bleeding = _site_vector(measurements.get(MeasurementKind.BLEEDING), numeric=False)

    cal = pd + rec

    risk = (
        np.maximum(0, pd - PD_RISK_THRESHOLD).sum()
        + np.maximum(0, rec - REC_RISK_THRESHOLD).sum()
        + np.maximum(0, cal - CAL_RISK_THRESHOLD).sum()
        + BLEEDING_RISK * np.count_nonzero(bleeding)
    )

    furcation = tooth.furcation or {}
    risk += MOBILITY_RISK_WEIGHT * _numeric(tooth.mobility)
    risk += FURCATION_RISK_WEIGHT * _numeric(furcation.get("buccal"))
    risk += FURCATION_RISK_WEIGHT * _numeric(furcation.get("lingual"))

    return DerivedMeasurements(
        cal=dict(zip(SITES, cal.tolist())),
        risk_score=risk,
    )


def risk_level(score) -> RiskLevel:
    if score > 40:
        return RiskLevel.HIGH
    if score > 20:
        return RiskLevel.ELEVATED
    if score > 5:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def cal_severity(value) -> str:
    """Тяжесть потери прикрепления на участке"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "none"
    if value >= 7:
        return "severe"
    if value >= 5:
        return "moderate"
    return "none"


def summarize_chart(teeth: Iterable) -> ChartSummary:
    """Процент кровоточивости и налета по всем присутствующим зубам (6 участков на зуб)"""
    present = [tooth for tooth in teeth if not tooth.missing]
    if not present:
        return ChartSummary()

    bop = np.array([
        _site_vector((tooth.measurements or {}).get(MeasurementKind.BLEEDING), numeric=False)
        for tooth in present
    ])
    plaque = np.array([
        _site_vector((tooth.measurements or {}).get(MeasurementKind.PLAQUE), numeric=False)
        for tooth in present
    ])

    total_sites = len(present) * len(SITES)
    bop_sites = int(np.count_nonzero(bop))
    plaque_sites = int(np.count_nonzero(plaque))

    return ChartSummary(
        total_sites=total_sites,
        bop_sites=bop_sites,
        plaque_sites=plaque_sites,
        bop_percentage=bop_sites / total_sites * 100,
        plaque_percentage=plaque_sites / total_sites * 100,
    )
