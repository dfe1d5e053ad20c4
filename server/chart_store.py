#!/usr/bin/env python3
"""
ХРАНИЛИЩЕ ПАРОДОНТАЛЬНОЙ КАРТЫ
32 зуба (American Universal System 1-32), применение измерений,
проверка клинических диапазонов и пересчет CAL / риска после каждого изменения
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Union

from dental_vocabulary import (
    FURCATION_LOCATIONS,
    MOBILITY_LOCATION,
    SITE_KINDS,
    SITES,
    MeasurementKind,
    is_molar,
    universal_to_palmer,
)
from instant_command_system import MeasurementUpdate
from perio_config import MEASUREMENT_LIMITS, TOOTH_COUNT
from periodontal_calculator import (
    ChartSummary,
    calculate_derived,
    cal_severity,
    risk_level,
    summarize_chart,
)

logger = logging.getLogger(__name__)


class ChartUpdateError(ValueError):
    """Измерение не прошло проверку и не было применено"""


@dataclass
class ToothRecord:
    """Запись одного зуба"""
    tooth_id: int
    measurements: Dict[MeasurementKind, Dict[str, Union[int, bool]]] = field(
        default_factory=lambda: {kind: {} for kind in SITE_KINDS}
    )
    mobility: Optional[int] = None
    furcation: Dict[str, int] = field(default_factory=dict)
    missing: bool = False

    # Производные поля - записываются только из calculate_derived
    cal: Dict[str, int] = field(default_factory=dict)
    risk_score: int = 0

    def recompute(self) -> "ToothRecord":
        derived = calculate_derived(self)
        self.cal = derived.cal
        self.risk_score = derived.risk_score
        return self

    def to_dict(self) -> Dict:
        palmer = universal_to_palmer(self.tooth_id)
        return {
            "tooth_number": self.tooth_id,
            "palmer": {"quadrant": palmer[0], "tooth_in_quadrant": palmer[1]},
            "measurements": {
                kind.value: dict(values) for kind, values in self.measurements.items()
            },
            "mobility": self.mobility,
            "furcation": dict(self.furcation),
            "missing": self.missing,
            "cal": dict(self.cal),
            "cal_severity": {site: cal_severity(value) for site, value in self.cal.items()},
            "risk_score": self.risk_score,
            "risk_level": risk_level(self.risk_score).value,
        }


def _check_range(name: str, value) -> int:
    low, high = MEASUREMENT_LIMITS[name]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ChartUpdateError(f"{name} must be an integer, got {value!r}")
    if not (low <= value <= high):
        raise ChartUpdateError(f"{name} {value} outside {low}-{high}")
    return value


def validate_update(tooth: ToothRecord, update: MeasurementUpdate):
    """Проверка клинических диапазонов - граница применения, не парсер"""
    if tooth.missing:
        raise ChartUpdateError(f"tooth {tooth.tooth_id} is marked missing")

    kind = update.kind

    if kind == MeasurementKind.MOBILITY:
        if update.location != MOBILITY_LOCATION:
            raise ChartUpdateError(f"mobility location must be '{MOBILITY_LOCATION}'")
        _check_range("mobility", update.value)

    elif kind == MeasurementKind.FURCATION:
        if update.location not in FURCATION_LOCATIONS:
            raise ChartUpdateError(f"unknown furcation location '{update.location}'")
        if not is_molar(tooth.tooth_id):
            raise ChartUpdateError(f"furcation is recorded on molars only (tooth {tooth.tooth_id})")
        _check_range("furcation", update.value)

    else:
        if update.location not in SITES:
            raise ChartUpdateError(f"unknown site '{update.location}'")
        if kind == MeasurementKind.POCKET_DEPTH:
            _check_range("pocket_depth", update.value)
        elif kind == MeasurementKind.RECESSION:
            _check_range("recession", update.value)
        elif not isinstance(update.value, bool):
            raise ChartUpdateError(f"{kind.value} must be true/false, got {update.value!r}")


class PeriodontalChart:
    """Карта всех зубов сессии - записи создаются один раз и не удаляются"""

    def __init__(self, missing_teeth: Iterable[int] = ()):
        missing = set(missing_teeth)
        self.teeth: Dict[int, ToothRecord] = {}
        for tooth_id in range(1, TOOTH_COUNT + 1):
            record = ToothRecord(tooth_id=tooth_id, missing=tooth_id in missing)
            self.teeth[tooth_id] = record.recompute()

        logger.info(f"🦷 Chart initialized: {TOOTH_COUNT} teeth, missing={sorted(missing)}")

    def get(self, tooth_id: int) -> ToothRecord:
        try:
            return self.teeth[tooth_id]
        except KeyError:
            raise ChartUpdateError(f"tooth number {tooth_id} outside 1-{TOOTH_COUNT}") from None

    def apply_update(self, tooth_id: int, update: MeasurementUpdate) -> ToothRecord:
        """Применение одного измерения и пересчет производных полей зуба"""
        tooth = self.get(tooth_id)
        validate_update(tooth, update)

        if update.kind == MeasurementKind.MOBILITY:
            tooth.mobility = update.value
        elif update.kind == MeasurementKind.FURCATION:
            side = FURCATION_LOCATIONS[update.location].value
            tooth.furcation[side] = update.value
        else:
            tooth.measurements.setdefault(update.kind, {})[update.location] = update.value

        tooth.recompute()
        logger.debug(
            f"📊 Tooth {tooth_id}: {update.kind.value} {update.location}={update.value} "
            f"→ risk {tooth.risk_score}"
        )
        return tooth

    def set_missing(self, tooth_id: int, missing: bool = True) -> ToothRecord:
        tooth = self.get(tooth_id)
        tooth.missing = missing
        logger.info(f"🦷 Tooth {tooth_id} missing={missing}")
        return tooth.recompute()

    def is_missing(self, tooth_id: int) -> bool:
        return self.get(tooth_id).missing

    def summary(self) -> ChartSummary:
        return summarize_chart(self.teeth.values())

    def snapshot(self) -> Dict:
        return {
            "teeth": [self.teeth[tooth_id].to_dict() for tooth_id in sorted(self.teeth)],
            "summary": self.summary().to_dict(),
        }
