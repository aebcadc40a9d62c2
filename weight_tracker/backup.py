import csv
import io
import json
import logging
import math
from dataclasses import dataclass

from weight_tracker.config import BACKUP_VERSION, DEFAULT_PROFILE_ID
from weight_tracker.errors import BackupFormatError
from weight_tracker.models import Entry, Profile, format_date, parse_date, utcnow
from weight_tracker.validation import parse_number


logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    profiles: int = 0
    entries: int = 0
    skipped: int = 0


async def export_backup(repository):
    profiles = await repository.list_profiles()
    entries = await repository.list_all_entries()
    entries.sort(key=lambda e: (e.profile_id, e.date))
    return {
        "version": BACKUP_VERSION,
        "exported_at": utcnow().isoformat(),
        "profiles": [p.to_record() for p in profiles],
        "entries": [e.to_record() for e in entries],
    }


def dumps(payload):
    return json.dumps(payload, indent=2, ensure_ascii=False)


def loads(text):
    try:
        return json.loads(text)
    except ValueError as exc:
        raise BackupFormatError(f"invalid JSON: {exc}") from exc


def _optional(record, name):
    value = parse_number(record.get(name))
    if value is None or not math.isfinite(value):
        return None
    return value


def _coerce_entry(record, default_profile_id=None):
    if not isinstance(record, dict):
        return None
    profile_id = record.get("profileId") or default_profile_id
    date = record.get("date")
    weight = parse_number(record.get("weight"))
    if not profile_id or not date or weight is None or not math.isfinite(weight):
        return None
    try:
        day = parse_date(str(date))
    except ValueError:
        return None
    workout = record.get("workout")
    return Entry(
        profile_id=str(profile_id),
        date=day,
        weight=weight,
        waist_cm=_optional(record, "waist_cm"),
        bodyfat_pct=_optional(record, "bodyfat_pct"),
        workout=str(workout) if workout else None,
        workout_min=_optional(record, "workout_min"),
        note=str(record.get("note") or ""),
    )


def _coerce_profile(record):
    if not isinstance(record, dict) or not record.get("id"):
        return None
    record = dict(record, id=str(record["id"]))
    for name in ("height_cm", "goal_kg", "activity"):
        record[name] = _optional(record, name)
    age = _optional(record, "age")
    record["age"] = int(age) if age is not None else None
    try:
        return Profile.from_record(record)
    except (TypeError, ValueError):
        return None


def _check_shape(data):
    if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
        raise BackupFormatError("backup must be an object with an entries list")
    if isinstance(data.get("profiles"), list):
        return "profiles"
    if isinstance(data.get("settings"), dict):
        return "settings"
    raise BackupFormatError("backup has neither profiles nor settings")


async def import_backup(repository, data):
    """Replace everything with the backup contents.

    Individual malformed records are skipped; the shape of the document is
    checked before anything is cleared.
    """
    layout = _check_shape(data)
    report = ImportReport()

    await repository.clear_all()

    known = {DEFAULT_PROFILE_ID}
    if layout == "profiles":
        for record in data["profiles"]:
            profile = _coerce_profile(record)
            if profile is None:
                logger.warning("Skipping malformed profile record: %r", record)
                report.skipped += 1
                continue
            await repository.save_profile(profile)
            known.add(profile.id)
            report.profiles += 1
        default_profile_id = None
    else:
        profile = await repository.get_profile(DEFAULT_PROFILE_ID)
        profile.height_cm = _optional(data["settings"], "height_cm")
        profile.goal_kg = _optional(data["settings"], "goal_kg")
        await repository.save_profile(profile)
        report.profiles += 1
        default_profile_id = DEFAULT_PROFILE_ID

    for record in data["entries"]:
        entry = _coerce_entry(record, default_profile_id)
        if entry is None or entry.profile_id not in known:
            logger.warning("Skipping malformed entry record: %r", record)
            report.skipped += 1
            continue
        await repository.save_entry(entry)
        report.entries += 1

    logger.info(
        "Imported %d profiles and %d entries (%d skipped)",
        report.profiles,
        report.entries,
        report.skipped,
    )
    return report


def export_csv(entries, profile):
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(
        ["date", "weight_kg", "waist_cm", "bodyfat_pct", "workout", "workout_min", "note"]
    )
    for e in sorted(entries, key=lambda e: e.date):
        writer.writerow(
            [
                format_date(e.date),
                e.weight,
                "" if e.waist_cm is None else e.waist_cm,
                "" if e.bodyfat_pct is None else e.bodyfat_pct,
                e.workout or "",
                "" if e.workout_min is None else e.workout_min,
                e.note,
            ]
        )
    writer.writerow([])
    writer.writerow(["settings"])
    height = profile.height_cm if profile else None
    goal = profile.goal_kg if profile else None
    writer.writerow(["height_cm", "" if height is None else height])
    writer.writerow(["goal_kg", "" if goal is None else goal])
    return buffer.getvalue()
