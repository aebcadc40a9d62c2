from contextlib import asynccontextmanager

from weight_tracker import analytics, config
from weight_tracker.repository import Repository
from weight_tracker.store import open_store


class TrackerContext:
    """The open store plus the profile the caller is working on."""

    def __init__(self, store, active_profile_id=config.DEFAULT_PROFILE_ID):
        self.store = store
        self.repository = Repository(store)
        self.active_profile_id = active_profile_id

    async def use_profile(self, profile_id):
        profile = await self.repository.get_profile(profile_id)
        if profile is None:
            raise LookupError(f"no profile with id {profile_id!r}")
        self.active_profile_id = profile.id
        return profile

    async def active_profile(self):
        return await self.repository.get_profile(self.active_profile_id)

    async def entries(self):
        return await self.repository.list_entries(self.active_profile_id)

    async def summary(self):
        entries = await self.entries()
        profile = await self.active_profile()
        return analytics.summarize(entries, profile)

    async def close(self):
        await self.store.close()


@asynccontextmanager
async def open_context(path=None, profile_id=config.DEFAULT_PROFILE_ID):
    store = await open_store(path)
    context = TrackerContext(store)
    try:
        if profile_id != config.DEFAULT_PROFILE_ID:
            await context.use_profile(profile_id)
        yield context
    finally:
        await context.close()
