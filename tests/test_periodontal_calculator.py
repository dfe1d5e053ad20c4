import copy

import pytest

from chart_store import ToothRecord
from dental_vocabulary import SITES, MeasurementKind
from periodontal_calculator import (
    RiskLevel,
    cal_severity,
    calculate_derived,
    risk_level,
    summarize_chart,
)

PD = MeasurementKind.POCKET_DEPTH
REC = MeasurementKind.RECESSION
BOP = MeasurementKind.BLEEDING
PLAQUE = MeasurementKind.PLAQUE


def _tooth(**kwargs):
    tooth = ToothRecord(tooth_id=kwargs.pop("tooth_id", 3))
    for kind in (PD, REC, BOP, PLAQUE):
        values = kwargs.pop(kind.name.lower(), None)
        if values:
            tooth.measurements[kind] = dict(values)
    for key, value in kwargs.items():
        setattr(tooth, key, value)
    return tooth


def test_empty_tooth_has_zero_cal_and_risk():
    derived = calculate_derived(_tooth())
    assert derived.cal == {site: 0 for site in SITES}
    assert derived.risk_score == 0


def test_cal_is_pd_plus_rec_with_missing_values_as_zero():
    tooth = _tooth(
        pocket_depth={"disto_buccal": 4, "mid_buccal": 5},
        recession={"mid_buccal": 2, "mesio_lingual": 3},
    )
    cal = calculate_derived(tooth).cal
    assert cal["disto_buccal"] == 4
    assert cal["mid_buccal"] == 7
    assert cal["mesio_lingual"] == 3
    assert cal["mid_lingual"] == 0
    assert list(cal) == list(SITES)


def test_boolean_and_non_numeric_values_count_as_zero():
    tooth = _tooth(pocket_depth={"mid_buccal": True, "disto_buccal": "7"})
    assert calculate_derived(tooth).cal["mid_buccal"] == 0
    assert calculate_derived(tooth).cal["disto_buccal"] == 0


def test_risk_score_sample_tooth():
    # pd: (5-4)=1 ; rec: none above 2 ; cal mid 7 -> 2 ; bleeding mid -> 2
    tooth = _tooth(
        pocket_depth={"disto_buccal": 4, "mid_buccal": 5, "mesio_buccal": 4},
        recession={"disto_buccal": 1, "mid_buccal": 2, "mesio_buccal": 1},
        bleeding={"mid_buccal": True},
    )
    assert calculate_derived(tooth).risk_score == 1 + 2 + 2


def test_risk_score_whole_tooth_factors():
    tooth = _tooth(
        pocket_depth={"disto_buccal": 6, "mid_buccal": 8, "mesio_buccal": 6},
        recession={"disto_buccal": 3, "mid_buccal": 4, "mesio_buccal": 3},
        mobility=2,
        furcation={"buccal": 2},
    )
    tooth.measurements[BOP] = {site: True for site in ("disto_buccal", "mid_buccal", "mesio_buccal")}
    pd_part = 2 + 4 + 2
    rec_part = 1 + 2 + 1
    cal_part = (9 - 5) + (12 - 5) + (9 - 5)
    bop_part = 6
    assert calculate_derived(tooth).risk_score == pd_part + rec_part + cal_part + bop_part + 20 + 16


def test_furcation_lingual_counts():
    tooth = _tooth(furcation={"buccal": 1, "lingual": 3})
    assert calculate_derived(tooth).risk_score == 8 + 24


def test_missing_tooth_shortcut_ignores_measurements():
    tooth = _tooth(
        pocket_depth={"mid_buccal": 9},
        mobility=3,
        furcation={"buccal": 3},
        missing=True,
    )
    derived = calculate_derived(tooth)
    assert derived.cal == {}
    assert derived.risk_score == 0


def test_calculation_does_not_mutate_input():
    tooth = _tooth(pocket_depth={"mid_buccal": 6}, mobility=1)
    before = copy.deepcopy(tooth)
    calculate_derived(tooth)
    assert tooth == before


@pytest.mark.parametrize("site", SITES)
@pytest.mark.parametrize("field", ["pd", "rec", "bop"])
def test_risk_is_monotonic_per_site(site, field):
    base = _tooth(pocket_depth={s: 3 for s in SITES}, recession={s: 1 for s in SITES})
    previous = calculate_derived(base).risk_score
    for step in range(1, 12):
        tooth = copy.deepcopy(base)
        if field == "pd":
            tooth.measurements[PD][site] = 3 + step
        elif field == "rec":
            tooth.measurements[REC][site] = 1 + step
        else:
            tooth.measurements[BOP] = {site: True}
        score = calculate_derived(tooth).risk_score
        assert score >= previous
        previous = score


@pytest.mark.parametrize("attribute", ["mobility", "furcation_buccal", "furcation_lingual"])
def test_risk_is_monotonic_whole_tooth(attribute):
    previous = -1
    for grade in range(0, 4):
        tooth = _tooth(pocket_depth={"mid_buccal": 5})
        if attribute == "mobility":
            tooth.mobility = grade
        else:
            tooth.furcation = {attribute.split("_")[1]: grade}
        score = calculate_derived(tooth).risk_score
        assert score >= previous
        previous = score


@pytest.mark.parametrize(
    "score, level",
    [(0, RiskLevel.LOW), (5, RiskLevel.LOW), (6, RiskLevel.MODERATE), (20, RiskLevel.MODERATE),
     (21, RiskLevel.ELEVATED), (40, RiskLevel.ELEVATED), (41, RiskLevel.HIGH)],
)
def test_risk_level_bands(score, level):
    assert risk_level(score) == level


@pytest.mark.parametrize("value, severity", [(4, "none"), (5, "moderate"), (6, "moderate"), (7, "severe"), (None, "none")])
def test_cal_severity(value, severity):
    assert cal_severity(value) == severity


def test_summarize_chart_skips_missing_teeth():
    present = _tooth(tooth_id=2)
    present.measurements[BOP] = {"mid_buccal": True, "disto_buccal": True}
    present.measurements[PLAQUE] = {"mid_lingual": True}
    other = _tooth(tooth_id=3)
    missing = _tooth(tooth_id=1, missing=True)
    missing.measurements[BOP] = {site: True for site in SITES}

    summary = summarize_chart([present, other, missing])
    assert summary.total_sites == 12
    assert summary.bop_sites == 2
    assert summary.plaque_sites == 1
    assert summary.bop_percentage == pytest.approx(2 / 12 * 100)
    assert summary.plaque_percentage == pytest.approx(1 / 12 * 100)


def test_summarize_empty_chart():
    summary = summarize_chart([])
    assert summary.total_sites == 0
    assert summary.bop_percentage == 0.0


def test_huge_values_do_not_overflow():
    big = 10 ** 20
    tooth = _tooth(pocket_depth={"mid_buccal": big}, recession={"mid_buccal": big})
    derived = calculate_derived(tooth)
    assert derived.cal["mid_buccal"] == 2 * big
    assert derived.risk_score == (big - 4) + (big - 2) + (2 * big - 5)

    edge = 2 ** 62
    tooth = _tooth(pocket_depth={"disto_lingual": edge}, recession={"disto_lingual": edge})
    assert calculate_derived(tooth).cal["disto_lingual"] == 2 ** 63


def test_derived_values_are_plain_ints():
    derived = calculate_derived(_tooth(pocket_depth={"mid_buccal": 6}, mobility=1))
    assert type(derived.risk_score) is int
    assert all(type(value) is int for value in derived.cal.values())


def test_summarize_chart_tolerates_empty_measurements():
    tooth = _tooth(tooth_id=4)
    tooth.measurements = None
    summary = summarize_chart([tooth])
    assert summary.total_sites == 6
    assert summary.bop_sites == 0
    assert summary.plaque_percentage == 0.0
