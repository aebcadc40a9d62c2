class WeightTrackerError(Exception):
    pass


class StoreOpenError(WeightTrackerError):
    """The store could not be opened or migrated; it must not be used."""


class StorageError(WeightTrackerError):
    """A single read or write against an open store failed."""


class ValidationError(WeightTrackerError, ValueError):
    def __init__(self, field, message):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class BackupFormatError(WeightTrackerError, ValueError):
    """The backup document does not have a usable top-level shape."""
