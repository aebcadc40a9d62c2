import pytest

from weight_tracker import backup
from weight_tracker.errors import BackupFormatError
from weight_tracker.models import Profile


@pytest.mark.asyncio
async def test_export_then_import_restores_everything(repository, make_entry):
    ana = await repository.save_profile(Profile(name="Ana", height_cm=165.0))
    await repository.save_entry(make_entry("2024-03-01", weight=80.0, note="x"))
    await repository.save_entry(make_entry("2024-03-02", weight=60.5, profile_id=ana.id))

    payload = backup.loads(backup.dumps(await backup.export_backup(repository)))
    assert payload["version"] == 3
    assert {p["id"] for p in payload["profiles"]} == {"default", ana.id}

    await repository.clear_all()
    report = await backup.import_backup(repository, payload)

    assert (report.profiles, report.entries, report.skipped) == (2, 2, 0)
    assert (await repository.get_profile(ana.id)).height_cm == 165.0
    assert [e.weight for e in await repository.list_entries(ana.id)] == [60.5]
    assert [e.note for e in await repository.list_entries("default")] == ["x"]


@pytest.mark.asyncio
async def test_import_skips_malformed_entries(repository):
    data = {
        "version": 3,
        "exported_at": "2024-03-05T10:00:00+00:00",
        "profiles": [{"id": "default", "name": "Me", "height_cm": "180"}],
        "entries": [
            {"profileId": "default", "date": "2024-03-01", "weight": 80},
            {"profileId": "default", "date": "2024-03-02", "weight": "abc"},
            {"profileId": "default", "date": "2024-03-03", "weight": "79,5", "waist_cm": ""},
            {"profileId": "default", "weight": 79},
            {"date": "2024-03-04", "weight": 79},
            {"profileId": "ghost", "date": "2024-03-04", "weight": 79},
            "not a record",
        ],
    }

    report = await backup.import_backup(repository, data)

    assert report.entries == 2
    assert report.skipped == 5
    entries = await repository.list_entries("default")
    assert [(e.date.isoformat(), e.weight) for e in entries] == [
        ("2024-03-03", 79.5),
        ("2024-03-01", 80.0),
    ]
    assert entries[0].waist_cm is None
    profile = await repository.get_profile("default")
    assert profile.name == "Me"
    assert profile.height_cm == 180.0


@pytest.mark.asyncio
async def test_import_deduplicates_by_profile_and_date(repository):
    data = {
        "profiles": [{"id": "default", "name": "Me"}],
        "entries": [
            {"profileId": "default", "date": "2024-03-01", "weight": 80},
            {"profileId": "default", "date": "2024-03-01", "weight": 81},
        ],
    }

    await backup.import_backup(repository, data)

    assert [e.weight for e in await repository.list_entries("default")] == [81.0]


@pytest.mark.asyncio
async def test_import_skips_profiles_without_id(repository):
    data = {"profiles": [{"name": "No id"}, {"id": "p1", "name": "Ok"}], "entries": []}

    report = await backup.import_backup(repository, data)

    assert report.profiles == 1
    assert report.skipped == 1
    assert [p.id for p in await repository.list_profiles()][-1] == "p1"


@pytest.mark.asyncio
async def test_import_legacy_settings_backup(repository):
    data = {
        "version": 2,
        "exported_at": "2023-05-01T00:00:00Z",
        "settings": {"height_cm": 172, "goal_kg": None},
        "entries": [
            {"date": "2023-04-30", "weight": 90.2, "note": "", "waist_cm": 101, "bodyfat_pct": None},
        ],
    }

    report = await backup.import_backup(repository, data)

    assert report.entries == 1
    profile = await repository.get_profile("default")
    assert profile.height_cm == 172.0
    assert profile.goal_kg is None
    [entry] = await repository.list_entries("default")
    assert entry.waist_cm == 101.0
    assert entry.workout is None


@pytest.mark.asyncio
async def test_bad_backup_shape_keeps_existing_data(repository, make_entry):
    await repository.save_entry(make_entry("2024-03-01"))

    with pytest.raises(BackupFormatError):
        await backup.import_backup(repository, {"entries": "nope"})
    with pytest.raises(BackupFormatError):
        await backup.import_backup(repository, {"entries": []})

    assert len(await repository.list_entries("default")) == 1


def test_loads_rejects_invalid_json():
    with pytest.raises(BackupFormatError):
        backup.loads("{not json")


def test_export_csv(make_entry):
    profile = Profile(name="Me", height_cm=180.0)
    entries = [
        make_entry("2024-03-02", weight=79.5, note='said "hi"'),
        make_entry("2024-03-01", weight=80.0, waist_cm=92.0, workout="run", workout_min=30.0),
    ]

    lines = backup.export_csv(entries, profile).splitlines()

    assert lines[0] == "date,weight_kg,waist_cm,bodyfat_pct,workout,workout_min,note"
    assert lines[1] == "2024-03-01,80.0,92.0,,run,30.0,"
    assert lines[2] == '2024-03-02,79.5,,,,,"said ""hi"""'
    assert lines[-3:] == ["settings", "height_cm,180.0", "goal_kg,"]


@pytest.mark.asyncio
async def test_import_matches_numeric_profile_ids(repository):
    data = {
        "profiles": [{"id": 7, "name": "Seven"}],
        "entries": [{"profileId": 7, "date": "2024-03-01", "weight": 70}],
    }

    report = await backup.import_backup(repository, data)

    assert (report.profiles, report.entries, report.skipped) == (1, 1, 0)
    assert [e.weight for e in await repository.list_entries("7")] == [70.0]
