import logging

from weight_tracker.config import DEFAULT_PROFILE_ID
from weight_tracker.migrations import ENTRIES, PROFILE_INDEX, PROFILES
from weight_tracker.models import Entry, Profile, entry_key, utcnow


logger = logging.getLogger(__name__)


class Repository:
    """Profile and entry CRUD over an open store.

    Nothing here validates field ranges; callers check input first (see
    ``weight_tracker.validation``).
    """

    def __init__(self, store, clock=utcnow):
        self.store = store
        self.clock = clock

    async def list_profiles(self):
        profiles = [
            Profile.from_record(record) async for _, record in self.store.scan(PROFILES)
        ]
        profiles.sort(key=lambda p: (p.created_at, p.id))
        return profiles

    async def get_profile(self, profile_id):
        record = await self.store.get(PROFILES, profile_id)
        if record is None:
            return None
        return Profile.from_record(record)

    async def save_profile(self, profile):
        now = self.clock()
        stored = await self.store.get(PROFILES, profile.id)
        if stored is not None:
            previous = Profile.from_record(stored)
            profile.created_at = min(previous.created_at, profile.created_at)
            now = max(now, previous.updated_at)
        profile.updated_at = max(now, profile.created_at)
        await self.store.put(PROFILES, profile.id, profile.to_record())
        return profile

    async def delete_profile(self, profile_id):
        async with self.store.transaction():
            keys = [
                key async for key, _ in self.store.scan_index(ENTRIES, PROFILE_INDEX, profile_id)
            ]
            for key in keys:
                await self.store.delete(ENTRIES, key)
            await self.store.delete(PROFILES, profile_id)
            if profile_id == DEFAULT_PROFILE_ID:
                await self._put_default_profile()
        logger.info("Deleted profile %s and %d entries", profile_id, len(keys))
        return len(keys)

    async def list_entries(self, profile_id):
        return [
            Entry.from_record(record)
            async for _, record in self.store.scan_index(
                ENTRIES, PROFILE_INDEX, profile_id, reverse=True
            )
        ]

    async def list_all_entries(self):
        return [Entry.from_record(record) async for _, record in self.store.scan(ENTRIES)]

    async def get_entry(self, profile_id, date):
        record = await self.store.get(ENTRIES, entry_key(profile_id, date))
        if record is None:
            return None
        return Entry.from_record(record)

    async def save_entry(self, entry):
        await self.store.put(ENTRIES, entry.key, entry.to_record())
        return entry

    async def delete_entry(self, key):
        await self.store.delete(ENTRIES, key)

    async def clear_all(self):
        async with self.store.transaction():
            await self.store.clear(ENTRIES)
            await self.store.clear(PROFILES)
            await self._put_default_profile()
        logger.info("Cleared all profiles and entries")

    async def _put_default_profile(self):
        profile = Profile.default(now=self.clock())
        await self.store.put(PROFILES, profile.id, profile.to_record())
        return profile
