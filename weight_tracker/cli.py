import asyncio
import datetime as dt
import functools
import logging

import click

from weight_tracker import analytics, backup, config
from weight_tracker.context import open_context
from weight_tracker.errors import (
    BackupFormatError,
    StorageError,
    StoreOpenError,
    ValidationError,
)
from weight_tracker.models import Entry, Profile, Sex, entry_key, format_date
from weight_tracker.validation import (
    check_date,
    parse_float,
    parse_int,
    validate_entry,
    validate_profile,
)


logger = logging.getLogger(__name__)


def _fmt(value, unit="", digits=1, signed=False):
    if value is None:
        return "-"
    sign = "+" if signed and value > 0 else ""
    return f"{sign}{value:.{digits}f}{unit}"


def run_async(func):
    """Run an async command body against the tracker context."""

    @click.pass_obj
    @functools.wraps(func)
    def wrapper(obj, *args, **kwargs):
        async def body():
            async with open_context(obj["db"], obj["profile"]) as context:
                return await func(context, *args, **kwargs)

        try:
            return asyncio.run(body())
        except ValidationError as exc:
            raise click.BadParameter(exc.message, param_hint=exc.field) from exc
        except (StoreOpenError, StorageError, BackupFormatError, LookupError) as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper


def _activity(value):
    if value is None:
        return None
    if value in analytics.ACTIVITY_LEVELS:
        return analytics.activity_multiplier(value)
    return parse_float(value, "activity")


def _training_days(value):
    if value is None:
        return None
    days = [c == "1" for c in value.strip()]
    if len(days) != 7 or set(value.strip()) - {"0", "1"}:
        raise ValidationError("training_days", "use seven 0/1 flags, Sunday first")
    return days


@click.group()
@click.option(
    "--db",
    envvar="WEIGHT_TRACKER_DB",
    default=None,
    help="SQLite file (defaults to ~/.weight_tracker/tracker.sqlite).",
)
@click.option("--profile", "profile_id", default=config.DEFAULT_PROFILE_ID, show_default=True)
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.pass_context
def main(ctx, db, profile_id, verbose):
    """Track body weight and derived stats per profile."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"db": db or config.DB_PATH, "profile": profile_id}
    logger.debug("Using %s (profile %s)", ctx.obj["db"], profile_id)


@main.command("log")
@click.argument("weight")
@click.option("--date", "date_str", default=None, help="YYYY-MM-DD, defaults to today.")
@click.option("--waist", default=None, help="Waist (cm).")
@click.option("--bodyfat", default=None, help="Body fat (%).")
@click.option("--workout", default=None)
@click.option("--workout-min", default=None, help="Workout length (minutes).")
@click.option("--note", default="")
@run_async
async def log_entry(context, weight, date_str, waist, bodyfat, workout, workout_min, note):
    """Save (or replace) the entry for a day."""
    day = check_date(date_str or format_date(dt.date.today()))
    entry = Entry(
        profile_id=context.active_profile_id,
        date=day,
        weight=parse_float(weight, "weight"),
        waist_cm=parse_float(waist, "waist_cm"),
        bodyfat_pct=parse_float(bodyfat, "bodyfat_pct"),
        workout=workout or None,
        workout_min=parse_float(workout_min, "workout_min"),
        note=note,
    )
    validate_entry(entry)
    await context.repository.save_entry(entry)
    click.echo(f"Saved {format_date(day)}: {_fmt(entry.weight, ' kg')}")


@main.command("rm")
@click.argument("date_str")
@run_async
async def remove_entry(context, date_str):
    """Delete the entry for a day."""
    day = check_date(date_str)
    await context.repository.delete_entry(entry_key(context.active_profile_id, day))
    click.echo(f"Deleted {format_date(day)}")


@main.command("history")
@click.option("--limit", type=int, default=None)
@run_async
async def history(context, limit):
    """List entries, most recent first."""
    entries = await context.entries()
    for e in entries[:limit]:
        click.echo(
            "\t".join(
                [
                    format_date(e.date),
                    _fmt(e.weight),
                    _fmt(e.waist_cm),
                    _fmt(e.bodyfat_pct),
                    e.workout or "",
                    _fmt(e.workout_min, digits=0),
                    e.note,
                ]
            )
        )


@main.command("stats")
@run_async
async def stats(context):
    """Show trend and calorie targets for the active profile."""
    s = await context.summary()
    lines = [
        ("Last weight", _fmt(s.last_weight, " kg")),
        ("Change", _fmt(s.delta, " kg", signed=True)),
        ("7-entry average", _fmt(s.avg7, " kg")),
        ("Weekly trend", _fmt(s.trend7, " kg", signed=True)),
        ("BMI", _fmt(s.bmi)),
        ("Goal", _fmt(s.goal_kg, " kg")),
        ("To goal", _fmt(s.to_goal, " kg", signed=True)),
        ("Waist", _fmt(s.last_waist_cm, " cm")),
        ("Body fat", _fmt(s.last_bodyfat_pct, " %")),
        ("BMR", _fmt(s.bmr, " kcal", digits=0)),
        ("TDEE", _fmt(s.tdee, " kcal", digits=0)),
    ]
    if s.bands:
        lines += [
            ("Cut (-0.5 kg/wk)", _fmt(s.bands.cut_aggressive, " kcal", digits=0)),
            ("Cut (-0.25 kg/wk)", _fmt(s.bands.cut, " kcal", digits=0)),
            ("Bulk (+0.25 kg/wk)", _fmt(s.bands.bulk, " kcal", digits=0)),
            ("Bulk (+0.5 kg/wk)", _fmt(s.bands.bulk_aggressive, " kcal", digits=0)),
        ]
    for label, value in lines:
        click.echo(f"{label:<20}{value}")


@main.command("profiles")
@run_async
async def list_profiles(context):
    """List profiles, oldest first."""
    for p in await context.repository.list_profiles():
        marker = "*" if p.id == context.active_profile_id else " "
        click.echo(f"{marker} {p.id}\t{p.name}")


@main.group("profile")
def profile_group():
    """Create, edit and delete profiles."""


def _profile_options(func):
    options = [
        click.option("--name", default=None),
        click.option("--age", default=None),
        click.option("--sex", type=click.Choice([s.value for s in Sex]), default=None),
        click.option("--height", default=None, help="Height (cm)."),
        click.option("--goal", default=None, help="Goal weight (kg)."),
        click.option(
            "--activity",
            default=None,
            help="Multiplier or one of: " + ", ".join(analytics.ACTIVITY_LEVELS),
        ),
        click.option("--training-style", default=None),
        click.option("--training-days", default=None, help="Seven 0/1 flags, Sunday first."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _apply_profile_options(profile, values):
    if values["name"] is not None:
        profile.name = values["name"].strip()
    if values["age"] is not None:
        profile.age = parse_int(values["age"], "age")
    if values["sex"] is not None:
        profile.sex = Sex(values["sex"])
    if values["height"] is not None:
        profile.height_cm = parse_float(values["height"], "height_cm")
    if values["goal"] is not None:
        profile.goal_kg = parse_float(values["goal"], "goal_kg")
    if values["activity"] is not None:
        profile.activity = _activity(values["activity"])
    if values["training_style"] is not None:
        profile.training_style = values["training_style"]
    if values["training_days"] is not None:
        profile.training_days = _training_days(values["training_days"])
    return validate_profile(profile)


@profile_group.command("add")
@_profile_options
@run_async
async def add_profile(context, **values):
    """Create a profile."""
    profile = _apply_profile_options(Profile(name=""), values)
    await context.repository.save_profile(profile)
    click.echo(profile.id)


@profile_group.command("set")
@_profile_options
@run_async
async def set_profile(context, **values):
    """Update the active profile."""
    profile = await context.active_profile()
    profile = _apply_profile_options(profile, values)
    await context.repository.save_profile(profile)
    click.echo(f"Saved profile {profile.id}")


@profile_group.command("rm")
@click.argument("profile_id")
@click.confirmation_option(prompt="Delete this profile and all of its entries?")
@run_async
async def remove_profile(context, profile_id):
    """Delete a profile and every entry it owns."""
    removed = await context.repository.delete_profile(profile_id)
    click.echo(f"Deleted profile {profile_id} ({removed} entries)")


@main.command("export")
@click.option("--format", "fmt", type=click.Choice(["json", "csv"]), default="json")
@click.option("-o", "--output", type=click.File("w", encoding="utf-8"), default="-")
@run_async
async def export(context, fmt, output):
    """Write a JSON backup or a CSV of the active profile."""
    if fmt == "json":
        payload = await backup.export_backup(context.repository)
        output.write(backup.dumps(payload) + "\n")
    else:
        entries = await context.entries()
        profile = await context.active_profile()
        output.write(backup.export_csv(entries, profile))


@main.command("import")
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.confirmation_option(prompt="Importing replaces all profiles and entries. Continue?")
@run_async
async def import_(context, source):
    """Replace all data with a JSON backup."""
    data = backup.loads(source.read())
    report = await backup.import_backup(context.repository, data)
    click.echo(
        f"Imported {report.profiles} profiles, {report.entries} entries"
        f" ({report.skipped} skipped)"
    )


@main.command("wipe")
@click.confirmation_option(prompt="Delete ALL profiles and entries?")
@run_async
async def wipe(context):
    """Delete everything and start over with the default profile."""
    await context.repository.clear_all()
    click.echo("All data deleted")


if __name__ == "__main__":
    main()
