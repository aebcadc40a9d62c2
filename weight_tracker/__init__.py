from weight_tracker.context import TrackerContext, open_context
from weight_tracker.errors import (
    BackupFormatError,
    StorageError,
    StoreOpenError,
    ValidationError,
    WeightTrackerError,
)
from weight_tracker.models import Entry, Profile, Sex
from weight_tracker.repository import Repository
from weight_tracker.store import Store, open_store

__version__ = "0.3.0"
