import math

from weight_tracker.config import PROFILE_NAME_MAX
from weight_tracker.errors import ValidationError
from weight_tracker.models import parse_date


WAIST_RANGE = (30, 200)
BODYFAT_RANGE = (1, 80)
WORKOUT_MIN_RANGE = (0, 600)
HEIGHT_RANGE = (80, 250)
GOAL_RANGE = (20, 400)


def parse_number(value):
    """Read a float, accepting a decimal comma. Blank input is None; junk is NaN."""
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return float(text.replace(",", "."))
    except ValueError:
        return math.nan


def parse_float(value, label):
    number = parse_number(value)
    if number is not None and not math.isfinite(number):
        raise ValidationError(label, "enter a valid number")
    return number


def parse_int(value, label):
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(label, "enter a valid integer") from None


def check_date(date_str):
    if not date_str:
        raise ValidationError("date", "please enter a date")
    try:
        return parse_date(date_str)
    except ValueError:
        raise ValidationError("date", "use format YYYY-MM-DD") from None


def _check_range(label, value, bounds):
    low, high = bounds
    if value is not None and not low <= value <= high:
        raise ValidationError(label, f"must be between {low} and {high}")


def _check_positive(label, value):
    if value is not None and value <= 0:
        raise ValidationError(label, "must be positive")


def validate_entry(entry):
    if entry.weight is None or not math.isfinite(entry.weight) or entry.weight <= 0:
        raise ValidationError("weight", "enter a valid weight (kg)")
    _check_range("waist_cm", entry.waist_cm, WAIST_RANGE)
    _check_range("bodyfat_pct", entry.bodyfat_pct, BODYFAT_RANGE)
    _check_range("workout_min", entry.workout_min, WORKOUT_MIN_RANGE)
    return entry


def validate_profile(profile):
    name = (profile.name or "").strip()
    if not name:
        raise ValidationError("name", "is required")
    if len(name) > PROFILE_NAME_MAX:
        raise ValidationError("name", f"at most {PROFILE_NAME_MAX} characters")
    _check_positive("age", profile.age)
    _check_range("height_cm", profile.height_cm, HEIGHT_RANGE)
    _check_range("goal_kg", profile.goal_kg, GOAL_RANGE)
    if profile.activity is None or profile.activity <= 0:
        raise ValidationError("activity", "must be positive")
    if len(profile.training_days) != 7:
        raise ValidationError("training_days", "needs one flag per weekday")
    return profile
