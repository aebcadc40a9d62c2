import datetime as dt
import enum
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from weight_tracker.config import DATE_FORMAT, DEFAULT_ACTIVITY, DEFAULT_PROFILE


KEY_SEPARATOR = "|"


class Sex(str, enum.Enum):
    MALE = "M"
    FEMALE = "F"
    UNSPECIFIED = "unspecified"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text in ("m", "male"):
            return cls.MALE
        if text in ("f", "female"):
            return cls.FEMALE
        return cls.UNSPECIFIED


def parse_date(date_str):
    return dt.datetime.strptime(date_str, DATE_FORMAT).date()


def format_date(date_obj):
    return date_obj.strftime(DATE_FORMAT)


def utcnow():
    return dt.datetime.now(dt.timezone.utc)


def parse_timestamp(value):
    if isinstance(value, dt.datetime):
        stamp = value
    else:
        stamp = dt.datetime.fromisoformat(str(value))
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=dt.timezone.utc)
    return stamp


def entry_key(profile_id, date):
    if isinstance(date, dt.date):
        date = format_date(date)
    return f"{profile_id}{KEY_SEPARATOR}{date}"


def new_profile_id():
    return uuid.uuid4().hex


@dataclass
class Profile:
    name: str
    id: str = field(default_factory=new_profile_id)
    age: Optional[int] = None
    sex: Sex = Sex.UNSPECIFIED
    gender: str = ""
    race: str = ""
    phone: str = ""
    address: str = ""
    height_cm: Optional[float] = None
    goal_kg: Optional[float] = None
    activity: float = DEFAULT_ACTIVITY
    training_style: str = ""
    training_days: List[bool] = field(default_factory=lambda: [False] * 7)
    created_at: dt.datetime = field(default_factory=utcnow)
    updated_at: dt.datetime = field(default_factory=utcnow)

    def __post_init__(self):
        self.sex = Sex.parse(self.sex)
        self.created_at = parse_timestamp(self.created_at)
        self.updated_at = parse_timestamp(self.updated_at)

    @classmethod
    def default(cls, now=None):
        now = now or utcnow()
        record = dict(DEFAULT_PROFILE, created_at=now, updated_at=now)
        return cls.from_record(record)

    @classmethod
    def from_record(cls, record):
        days = record.get("training_days") or []
        days = [bool(d) for d in days][:7]
        days += [False] * (7 - len(days))
        created_at = parse_timestamp(record.get("created_at") or utcnow())
        updated_at = parse_timestamp(record.get("updated_at") or created_at)
        activity = record.get("activity")
        return cls(
            id=record["id"],
            name=record.get("name") or "",
            age=record.get("age"),
            sex=Sex.parse(record.get("sex")),
            gender=record.get("gender") or "",
            race=record.get("race") or "",
            phone=record.get("phone") or "",
            address=record.get("address") or "",
            height_cm=record.get("height_cm"),
            goal_kg=record.get("goal_kg"),
            activity=DEFAULT_ACTIVITY if activity is None else activity,
            training_style=record.get("training_style") or "",
            training_days=days,
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_record(self):
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "sex": self.sex.value,
            "gender": self.gender,
            "race": self.race,
            "phone": self.phone,
            "address": self.address,
            "height_cm": self.height_cm,
            "goal_kg": self.goal_kg,
            "activity": self.activity,
            "training_style": self.training_style,
            "training_days": list(self.training_days),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Entry:
    profile_id: str
    date: dt.date
    weight: float
    waist_cm: Optional[float] = None
    bodyfat_pct: Optional[float] = None
    workout: Optional[str] = None
    workout_min: Optional[float] = None
    note: str = ""

    @property
    def key(self):
        return entry_key(self.profile_id, self.date)

    @classmethod
    def from_record(cls, record):
        date = record["date"]
        if not isinstance(date, dt.date):
            date = parse_date(date)
        return cls(
            profile_id=record["profileId"],
            date=date,
            weight=record["weight"],
            waist_cm=record.get("waist_cm"),
            bodyfat_pct=record.get("bodyfat_pct"),
            workout=record.get("workout"),
            workout_min=record.get("workout_min"),
            note=record.get("note") or "",
        )

    def to_record(self):
        return {
            "profileId": self.profile_id,
            "date": format_date(self.date),
            "weight": self.weight,
            "waist_cm": self.waist_cm,
            "bodyfat_pct": self.bodyfat_pct,
            "workout": self.workout,
            "workout_min": self.workout_min,
            "note": self.note,
        }
