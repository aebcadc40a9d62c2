import os


APP_DIR = os.environ.get(
    "WEIGHT_TRACKER_HOME", os.path.join(os.path.expanduser("~"), ".weight_tracker")
)
DB_PATH = os.path.join(APP_DIR, "tracker.sqlite")
DATE_FORMAT = "%Y-%m-%d"

CURRENT_GENERATION = 3
BACKUP_VERSION = 3

DEFAULT_PROFILE_ID = "default"
DEFAULT_ACTIVITY = 1.55
PROFILE_NAME_MAX = 40

DEFAULT_PROFILE = {
    "id": DEFAULT_PROFILE_ID,
    "name": "Default",
    "age": None,
    "sex": "unspecified",
    "gender": "",
    "race": "",
    "phone": "",
    "address": "",
    "height_cm": None,
    "goal_kg": None,
    "activity": DEFAULT_ACTIVITY,
    "training_style": "",
    "training_days": [False] * 7,
}
