from __future__ import annotations

import argparse
import os
import sys
from datetime import date
from pathlib import Path

from loguru import logger

from . import __version__
from .analytics import (
    available_tags,
    distribution,
    filter_entries,
    history,
    quality_color,
    streak,
    total_logged_days,
    trend,
)
from .database import LifeGridDatabase
from .expectancy import life_progress
from .guide import (
    GUIDE_API_KEY_SETTING_KEY,
    GUIDE_ENDPOINT_SETTING_KEY,
    GUIDE_MODEL_SETTING_KEY,
    GUIDE_PROVIDER_SETTING_KEY,
    GuideContext,
    format_day,
    guide_generator_from_settings,
    insert_guide,
)
from .models import DayDraft, DayEntry, as_day
from .paths import database_path, data_directory, ensure_directories
from .photos import decode_photo_payload
from .reminders import ReminderSchedule, format_time, load_schedule, parse_hhmm, save_schedule
from .tags import QuickTagCatalog, add_tag, normalize_tags, parse_tags, remove_tag, toggle_tag

LOG_LEVEL_ENV_VAR = "LIFEGRID_LOG_LEVEL"

EDITABLE_SETTINGS = (
    GUIDE_PROVIDER_SETTING_KEY,
    GUIDE_MODEL_SETTING_KEY,
    GUIDE_API_KEY_SETTING_KEY,
    GUIDE_ENDPOINT_SETTING_KEY,
)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.version:
        print(__version__)
        return 0
    if not args.command:
        parser.print_help()
        return 0

    _configure_logging()
    base = ensure_directories(Path(args.data_dir) if args.data_dir else data_directory())
    try:
        db = LifeGridDatabase(database_path(base))
        return args.handler(db, args)
    except (ValueError, RuntimeError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lifegrid", description="Daily quality journal and life grid.")
    parser.add_argument("--version", action="store_true", help="Print app version and exit")
    parser.add_argument("--data-dir", help="Directory holding the LifeGrid database")
    commands = parser.add_subparsers(dest="command")

    onboard = commands.add_parser("onboard", help="Create your profile")
    onboard.add_argument("--birth-date", required=True, type=_parse_date)
    onboard.add_argument("--country", default="United States")
    onboard.add_argument("--gender", default="Other")
    onboard.add_argument("--smoker", action="store_true")
    onboard.add_argument("--chronic", action="store_true", help="Has a chronic condition")
    onboard.set_defaults(handler=_cmd_onboard)

    profile = commands.add_parser("profile", help="Show profile and life expectancy")
    profile.add_argument("--today", type=_parse_date)
    profile.set_defaults(handler=_cmd_profile)

    log = commands.add_parser("log", help="Create or update a day entry")
    log.add_argument("--date", type=_parse_date)
    log.add_argument("--quality", type=int)
    log.add_argument("--mood-score", type=int)
    log.add_argument("--energy", type=int)
    log.add_argument("--progress", type=int)
    log.add_argument("--mood")
    log.add_argument("--tags", help="Replace tags with this comma separated list")
    log.add_argument("--add-tag", action="append", default=[])
    log.add_argument("--remove-tag", action="append", default=[])
    log.add_argument("--toggle-tag", action="append", default=[])
    log.add_argument("--plan")
    log.add_argument("--reflection")
    log.add_argument("--photo", action="append", default=[], type=Path)
    log.add_argument("--clear-photos", action="store_true")
    log.add_argument("--thumbnail", type=int, help="Index of the photo shown in the calendar")
    log.set_defaults(handler=_cmd_log)

    show = commands.add_parser("show", help="Show one day")
    show.add_argument("--date", type=_parse_date)
    show.set_defaults(handler=_cmd_show)

    stats = commands.add_parser("stats", help="Streak, totals, trend and distribution")
    stats.add_argument("--date", type=_parse_date, help="Reference day (default today)")
    stats.add_argument("--window", type=int, default=30)
    stats.set_defaults(handler=_cmd_stats)

    hist = commands.add_parser("history", help="List entries, newest first")
    hist.add_argument("--mood")
    hist.add_argument("--tag")
    hist.add_argument("--min-score", type=int)
    hist.add_argument("--search")
    hist.set_defaults(handler=_cmd_history)

    guide = commands.add_parser("guide", help="Print an evening reflection guide")
    guide.add_argument("--date", type=_parse_date)
    guide.add_argument("--insert", action="store_true", help="Append the guide to the day's reflection")
    guide.set_defaults(handler=_cmd_guide)

    reminders = commands.add_parser("reminders", help="Show or change reminder times")
    reminders.add_argument("--morning", help="HH:MM")
    reminders.add_argument("--evening", help="HH:MM")
    reminders.set_defaults(handler=_cmd_reminders)

    tags = commands.add_parser("tags", help="Show or edit quick tags")
    tags.add_argument("--category")
    tags.add_argument("--add")
    tags.add_argument("--delete")
    tags.add_argument("--move")
    tags.add_argument("--to")
    tags.set_defaults(handler=_cmd_tags)

    settings = commands.add_parser("settings", help="Read or write a setting")
    settings.add_argument("key", choices=EDITABLE_SETTINGS)
    settings.add_argument("value", nargs="?")
    settings.set_defaults(handler=_cmd_settings)

    delete_all = commands.add_parser("delete-all", help="Delete every day entry")
    delete_all.add_argument("--yes", action="store_true", help="Confirm deletion")
    delete_all.set_defaults(handler=_cmd_delete_all)

    return parser


def _configure_logging() -> None:
    logger.remove()
    logger.add(sys.stderr, level=os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").upper())


def _cmd_onboard(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    profile = db.create_profile(
        birth_date=args.birth_date,
        country=args.country,
        gender=args.gender,
        is_smoker=args.smoker,
        has_chronic_condition=args.chronic,
    )
    print(f"Profile created for {profile.country} ({profile.gender}), born {profile.birth_date.isoformat()}")
    return 0


def _cmd_profile(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    profile = db.get_profile()
    if profile is None:
        print("No profile yet. Run `lifegrid onboard` first.")
        return 1
    progress = life_progress(profile, today=args.today)
    expectancy = progress.expectancy
    print(f"Country: {profile.country or '-'}")
    print(f"Gender: {profile.gender or '-'}")
    print(f"Age: {progress.age}")
    print(
        f"Estimated Life Expectancy: {expectancy.lower_years}-{expectancy.upper_years} years "
        f"(avg {expectancy.average_years})"
    )
    print(f"Lived: {progress.days_lived} days")
    print(f"Left (avg): {progress.average_days_left} days")
    print(f"Progress: {_bar(progress.lived_ratio)} {progress.lived_ratio:.0%}")
    print(f"Logged: {total_logged_days(db.list_entries())}")
    return 0


def _cmd_log(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    day = args.date or date.today()
    draft = DayDraft.from_entry(db.get_entry(day))

    if args.quality is not None:
        draft.quality_score = args.quality
    if args.mood_score is not None:
        draft.mood_score = args.mood_score
    if args.energy is not None:
        draft.energy_score = args.energy
    if args.progress is not None:
        draft.progress_score = args.progress
    if args.mood is not None:
        draft.mood = args.mood
    if args.tags is not None:
        draft.activities = normalize_tags(args.tags)
    for tag in args.add_tag:
        draft.activities = add_tag(tag, draft.activities)
    for tag in args.remove_tag:
        draft.activities = remove_tag(tag, draft.activities)
    for tag in args.toggle_tag:
        draft.activities = toggle_tag(tag, draft.activities)
    if args.plan is not None:
        draft.morning_plan = args.plan
    if args.reflection is not None:
        draft.evening_reflection = args.reflection
    if args.clear_photos:
        draft.photos = []
        draft.thumbnail_index = None
    for path in args.photo:
        draft.photos.append(path.read_bytes())
    if args.thumbnail is not None:
        draft.thumbnail_index = args.thumbnail

    entry = db.save_day(day, draft)
    if entry is None:
        print(f"Nothing to save for {day.isoformat()}.")
        return 0
    print(f"Saved {entry.day.isoformat()}: {entry.quality_score}/10, {entry.mood}")
    return 0


def _cmd_show(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    day = args.date or date.today()
    entry = db.get_entry(day)
    if entry is None:
        print(f"No entry for {day.isoformat()}.")
        return 1
    for line in _describe_entry(entry):
        print(line)
    return 0


def _cmd_stats(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    reference = args.date or date.today()
    entries = db.list_entries()
    print(f"Current Streak: {streak(entries, reference)} days")
    print(f"Total Logged Days: {total_logged_days(entries)}")
    print("Quality Distribution:")
    for bucket in distribution(entries):
        print(f"  {bucket.score:>2}: {'#' * bucket.count} {bucket.count}")
    print(f"{args.window}-Day Trend:")
    for point in trend(entries, args.window, reference):
        print(f"  {point.day.isoformat()} {point.score}")
    return 0


def _cmd_history(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    entries = history(db.list_entries())
    matches = filter_entries(
        entries,
        mood=args.mood,
        tag=args.tag,
        minimum_score=args.min_score,
        search_text=args.search,
    )
    if not matches:
        print("No entries match your filters.")
        return 0
    for entry in matches:
        tag_text = "  •  ".join(parse_tags(entry.activities))
        print(f"{format_day(entry.day)}  {entry.quality_score}/10  {entry.mood}  {tag_text}".rstrip())
    tags = available_tags(entries)
    if tags:
        print(f"Tags: {', '.join(tags)}")
    return 0


def _cmd_guide(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    day = args.date or date.today()
    draft = DayDraft.from_entry(db.get_entry(day))
    guide = guide_generator_from_settings(db).generate(GuideContext.from_draft(day, draft))
    print(guide)
    if args.insert:
        draft.evening_reflection = insert_guide(draft.evening_reflection, guide)
        db.upsert_entry(day, draft)
    return 0


def _cmd_reminders(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    schedule = load_schedule(db)
    if args.morning or args.evening:
        morning = _require_hhmm(args.morning) if args.morning else (schedule.morning_hour, schedule.morning_minute)
        evening = _require_hhmm(args.evening) if args.evening else (schedule.evening_hour, schedule.evening_minute)
        schedule = ReminderSchedule(morning[0], morning[1], evening[0], evening[1])
        save_schedule(db, schedule)
    print(f"Morning Reminder: {format_time(schedule.morning_hour, schedule.morning_minute)}")
    print(f"Evening Reminder: {format_time(schedule.evening_hour, schedule.evening_minute)}")
    return 0


def _cmd_tags(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    catalog = QuickTagCatalog.from_settings(db)
    changed = False
    if args.add:
        catalog.add_custom_tag(args.add, _require_category(args, catalog))
        changed = True
    if args.delete:
        catalog.delete_tag(args.delete, _require_category(args, catalog))
        changed = True
    if args.move:
        if args.to not in catalog.titles:
            raise ValueError("--move needs --to with a known category")
        catalog.move_tag(args.move, _require_category(args, catalog), args.to)
        changed = True
    if changed:
        catalog.save(db)
    for group in catalog.groups():
        print(f"{group.title}: {', '.join(group.tags)}")
    return 0


def _cmd_settings(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    if args.value is not None:
        db.set_setting(args.key, args.value)
    print(f"{args.key}={db.get_setting(args.key, '')}")
    return 0


def _cmd_delete_all(db: LifeGridDatabase, args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to delete without --yes.")
        return 1
    removed = db.delete_all_entries()
    print(f"Deleted {removed} entries.")
    return 0


def _describe_entry(entry: DayEntry) -> list[str]:
    payload = decode_photo_payload(entry.photo_data)
    lines = [
        f"{format_day(entry.day)} ({quality_color(entry)})",
        f"Quality: {entry.quality_score}/10",
        f"Mood: {entry.mood} ({entry.mood_score}/10)",
        f"Energy: {entry.energy_score}/10",
        f"Progress: {entry.progress_score}/10",
    ]
    if entry.activities:
        lines.append(f"Tags: {entry.activities}")
    if entry.morning_plan:
        lines.append(f"Plan: {entry.morning_plan}")
    if entry.evening_reflection:
        lines.append(f"Reflection: {entry.evening_reflection}")
    if payload.photos:
        thumb = "" if payload.thumbnail_index is None else f", thumbnail #{payload.thumbnail_index}"
        lines.append(f"Photos: {len(payload.photos)}{thumb}")
    return lines


def _bar(ratio: float, width: int = 30) -> str:
    filled = int(round(ratio * width))
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def _parse_date(value: str) -> date:
    try:
        return as_day(date.fromisoformat(value.strip()))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r} (expected YYYY-MM-DD)") from exc


def _require_hhmm(value: str) -> tuple[int, int]:
    parsed = parse_hhmm(value)
    if parsed is None:
        raise ValueError(f"invalid time: {value!r} (expected HH:MM)")
    return parsed


def _require_category(args: argparse.Namespace, catalog: QuickTagCatalog) -> str:
    if not args.category:
        raise ValueError("--category is required")
    if args.category not in catalog.titles:
        raise ValueError(f"unknown category: {args.category}")
    return args.category
