import math
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from weight_tracker.models import Sex


KCAL_PER_KG = 7700
SAFETY_FLOOR_KCAL = 1200
AGGRESSIVE_KG_PER_WEEK = 0.5
MODERATE_KG_PER_WEEK = 0.25

SEX_CONSTANTS = {
    Sex.MALE: 5,
    Sex.FEMALE: -161,
    Sex.UNSPECIFIED: -78,
}

ACTIVITY_LEVELS = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very active": 1.9,
}


def activity_multiplier(level):
    return ACTIVITY_LEVELS.get(level, ACTIVITY_LEVELS["moderate"])


def sort_descending(entries):
    return sorted(entries, key=lambda e: e.date, reverse=True)


def moving_average(values, window=7):
    """Trailing mean; the window shrinks near the start instead of being undefined."""
    if window < 1:
        raise ValueError("window must be at least 1")
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        return []

    sums = np.convolve(values, np.ones(window), mode="full")[: values.size]
    counts = np.minimum(np.arange(1, values.size + 1), window)
    return (sums / counts).tolist()


def _weights(entries):
    return np.array([e.weight for e in entries], dtype=float)


def rolling_average(entries, n=7):
    weights = _weights(entries[:n])
    if weights.size == 0:
        return None
    return float(weights.mean())


def trend7(entries):
    # Compares logged entries, not calendar weeks.
    if len(entries) < 14:
        return None
    weights = _weights(entries[:14])
    return float(weights[:7].mean() - weights[7:14].mean())


def _positive(value):
    return value is not None and not math.isnan(value) and value > 0


def bmi(weight_kg, height_cm):
    if not (_positive(weight_kg) and _positive(height_cm)):
        return None
    height_m = height_cm / 100
    return weight_kg / (height_m * height_m)


def bmr(sex, age, height_cm, weight_kg):
    if age is None or height_cm is None or weight_kg is None:
        return None
    return 10 * weight_kg + 6.25 * height_cm - 5 * age + SEX_CONSTANTS[Sex.parse(sex)]


def tdee(bmr_kcal, activity):
    if bmr_kcal is None or not _positive(activity):
        return None
    return bmr_kcal * activity


@dataclass
class CalorieBands:
    cut_aggressive: float
    cut: float
    maintain: float
    bulk: float
    bulk_aggressive: float


def daily_shift(kg_per_week):
    return KCAL_PER_KG * kg_per_week / 7


def calorie_bands(tdee_kcal):
    if tdee_kcal is None:
        return None
    aggressive = daily_shift(AGGRESSIVE_KG_PER_WEEK)
    moderate = daily_shift(MODERATE_KG_PER_WEEK)
    return CalorieBands(
        cut_aggressive=max(SAFETY_FLOOR_KCAL, tdee_kcal - aggressive),
        cut=tdee_kcal - moderate,
        maintain=tdee_kcal,
        bulk=tdee_kcal + moderate,
        bulk_aggressive=tdee_kcal + aggressive,
    )


@dataclass
class Summary:
    last_weight: Optional[float] = None
    delta: Optional[float] = None
    avg7: Optional[float] = None
    trend7: Optional[float] = None
    bmi: Optional[float] = None
    goal_kg: Optional[float] = None
    to_goal: Optional[float] = None
    last_waist_cm: Optional[float] = None
    last_bodyfat_pct: Optional[float] = None
    bmr: Optional[float] = None
    tdee: Optional[float] = None
    bands: Optional[CalorieBands] = None


def _finite(value):
    if value is None or not math.isfinite(value):
        return None
    return value


def summarize(entries, profile):
    """Headline numbers for a profile; ``entries`` may be in either order."""
    entries = sort_descending(entries)
    goal_kg = profile.goal_kg if profile else None
    if not entries:
        return Summary(goal_kg=goal_kg)

    last = entries[0]
    previous = entries[1] if len(entries) > 1 else None
    summary = Summary(
        last_weight=last.weight,
        delta=last.weight - previous.weight if previous else None,
        avg7=rolling_average(entries, 7),
        trend7=trend7(entries),
        goal_kg=goal_kg,
        to_goal=last.weight - goal_kg if goal_kg is not None else None,
        last_waist_cm=_finite(last.waist_cm),
        last_bodyfat_pct=_finite(last.bodyfat_pct),
    )
    if profile is None:
        return summary

    summary.bmi = bmi(last.weight, profile.height_cm)
    summary.bmr = bmr(profile.sex, profile.age, profile.height_cm, last.weight)
    summary.tdee = tdee(summary.bmr, profile.activity)
    summary.bands = calorie_bands(summary.tdee)
    return summary


@dataclass
class WeightSeries:
    dates: List
    weights: List[float]
    average: List[float]


def weight_series(entries, window=7):
    chronological = sorted(entries, key=lambda e: e.date)
    weights = [e.weight for e in chronological]
    return WeightSeries(
        dates=[e.date for e in chronological],
        weights=weights,
        average=moving_average(weights, window),
    )
