import logging

from weight_tracker.config import DEFAULT_PROFILE_ID
from weight_tracker.errors import StoreOpenError
from weight_tracker.models import Profile, entry_key


logger = logging.getLogger(__name__)

LEGACY_ENTRIES = "entries"
LEGACY_SETTINGS = "settings"
PROFILES = "profiles"
ENTRIES = "entries2"
PROFILE_INDEX = "profileId"

LEGACY_SETTING_FIELDS = ("height_cm", "goal_kg")


async def create_legacy_collections(store):
    await store.create_collection(LEGACY_ENTRIES)
    await store.create_collection(LEGACY_SETTINGS)


async def keep_single_profile_layout(store):
    # Generation 2 reads generation 1 collections unchanged.
    return None


async def introduce_profiles(store):
    """Move single-profile data under the default profile.

    Safe to run more than once: every destination key is derived from
    ``(profileId, date)``, and legacy collections are left in place.
    """
    if not store.has_collection(PROFILES):
        await store.create_collection(PROFILES)
    if not store.has_collection(ENTRIES):
        await store.create_collection(ENTRIES, indexes=(PROFILE_INDEX,))

    profile = Profile.default()

    if store.has_collection(LEGACY_ENTRIES):
        copied = 0
        async for date, legacy in store.scan(LEGACY_ENTRIES):
            date = legacy.get("date") or date
            record = {
                "profileId": DEFAULT_PROFILE_ID,
                "date": date,
                "weight": legacy.get("weight"),
                "note": legacy.get("note") or "",
                "waist_cm": legacy.get("waist_cm"),
                "bodyfat_pct": legacy.get("bodyfat_pct"),
                "workout": None,
                "workout_min": None,
            }
            await store.put(ENTRIES, entry_key(DEFAULT_PROFILE_ID, date), record)
            copied += 1
        logger.info("Copied %d legacy entries to the default profile", copied)

    if store.has_collection(LEGACY_SETTINGS):
        for name in LEGACY_SETTING_FIELDS:
            setting = await store.get(LEGACY_SETTINGS, name)
            if setting and setting.get("value") is not None:
                setattr(profile, name, setting["value"])

    await store.put(PROFILES, profile.id, profile.to_record())


UPGRADES = {
    1: create_legacy_collections,
    2: keep_single_profile_layout,
    3: introduce_profiles,
}


async def upgrade(store, target):
    current = await store.read_generation()
    if current > target:
        raise StoreOpenError(
            f"{store.path} is at generation {current}, newer than requested {target}"
        )
    if not 0 <= target <= max(UPGRADES):
        raise StoreOpenError(f"unknown schema generation {target}")
    if current == target:
        logger.debug("%s already at generation %d", store.path, current)
        return

    async with store.transaction():
        for generation in range(current + 1, target + 1):
            logger.info("Upgrading %s to generation %d", store.path, generation)
            await UPGRADES[generation](store)
        await store.write_generation(target)
