import argparse
import datetime
import shutil
import sys
from typing import List, Optional

from config import YamlConfig, setup_logging
from db import WorkoutRepository
from stats_service import StatisticsService, display_set_number
from workout_form import (
    ExerciseInput,
    SetInput,
    WorkoutSubmission,
    WorkoutValidationError,
    assemble_workout,
)


def parse_exercise_arg(text: str) -> ExerciseInput:
    """Parse ``"Bench Press:80x5,85x3"`` into form input.

    A set may carry its number as ``2=80x5``.
    """
    name, _, sets_text = text.partition(":")
    sets: List[SetInput] = []
    for chunk in filter(None, (c.strip() for c in sets_text.split(","))):
        number, _, values = chunk.rpartition("=")
        weight, _, reps = values.lower().partition("x")
        sets.append(SetInput(set_number=number, weight=weight, reps=reps))
    return ExerciseInput(name=name, sets=sets)


def log_workout(
    repo: WorkoutRepository,
    date: str,
    exercises: List[str],
    name: str = "",
    notes: str = "",
) -> str:
    submission = WorkoutSubmission(
        date=date,
        name=name,
        notes=notes,
        exercises=[parse_exercise_arg(e) for e in exercises],
    )
    record = repo.append(assemble_workout(submission))
    return record.id


def print_history(stats: StatisticsService) -> None:
    workouts = stats.history()
    if not workouts:
        print("No workouts logged yet")
        return
    for w in workouts:
        title = f"{w.date.isoformat()}  {w.name or ''}".rstrip()
        print(f"{title}  [{w.id}]")
        for ex in w.exercises:
            print(f"  {ex.name}")
            for i, s in enumerate(ex.sets):
                print(f"    Set {display_set_number(s, i)}: {s.weight:g} kg x {s.reps} reps")
        if w.notes:
            print(f"  Notes: {w.notes}")


def print_progress(stats: StatisticsService, exercise: str) -> None:
    progress = stats.exercise_progress(exercise)
    if not progress["history"]:
        print(f"No sessions logged for {exercise}")
        return
    prs = progress["prs"]
    for label, key in (
        ("Max weight", "max_weight"),
        ("Max reps", "max_reps"),
        ("Max volume", "max_volume"),
    ):
        if prs[key] is not None:
            print(f"{label}: {prs[key]:g}")
    for point in progress["chart"]:
        print(
            f"{point['date'].isoformat()}  max {point['max_weight']:g}  avg {point['avg_weight']:g}"
        )


def print_stats(stats: StatisticsService, limit: Optional[int] = None) -> None:
    overview = stats.overview()
    last = overview["last_workout_date"]
    freq = overview["frequency"]
    print(f"Total workouts: {overview['total_workouts']}")
    print(f"Last workout: {last.isoformat() if last else 'none'}")
    print(f"This month: {overview['current_month_workouts']}")
    print(f"Per week: {freq['per_week']}  Per month: {freq['per_month']}")
    for rank, item in enumerate(stats.most_common(limit), start=1):
        print(f"#{rank} {item['name']} ({item['count']})")


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(repo: WorkoutRepository) -> None:
    """Populate the store with demo workouts if empty."""
    if repo.load_all():
        print("Database already contains workouts")
        return
    today = datetime.date.today()
    log_workout(
        repo,
        (today - datetime.timedelta(days=7)).isoformat(),
        ["Bench Press:80x5,85x3", "Squat:100x5,100x5"],
        name="Push Day",
    )
    log_workout(
        repo,
        today.isoformat(),
        ["Bench Press:90x2", "Overhead Press:50x8"],
        name="Push Day",
    )
    print("Demo data inserted")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Workout log utility commands")
    parser.add_argument("--settings", default=None)
    parser.add_argument("--db", default=None)
    sub = parser.add_subparsers(dest="cmd", required=True)

    log = sub.add_parser("log")
    log.add_argument("--date", default=datetime.date.today().isoformat())
    log.add_argument("--name", default="")
    log.add_argument("--notes", default="")
    log.add_argument(
        "--exercise",
        action="append",
        default=[],
        help="NAME:WEIGHTxREPS[,WEIGHTxREPS...]",
    )

    sub.add_parser("history")

    delete = sub.add_parser("delete")
    delete.add_argument("workout_id")

    sub.add_parser("exercises")

    progress = sub.add_parser("progress")
    progress.add_argument("exercise")

    stats = sub.add_parser("stats")
    stats.add_argument("--limit", type=int, default=None)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")

    sub.add_parser("demo")

    args = parser.parse_args(argv)

    settings = YamlConfig(args.settings).settings()
    setup_logging(settings.log_level)
    db_path = args.db or settings.db_path

    if args.cmd == "backup":
        backup_db(db_path, args.out)
        return 0
    if args.cmd == "restore":
        restore_db(args.src, db_path)
        return 0

    repo = WorkoutRepository(db_path, settings.storage_key)
    service = StatisticsService(repo, most_common_limit=settings.most_common_limit)

    if args.cmd == "log":
        try:
            workout_id = log_workout(repo, args.date, args.exercise, args.name, args.notes)
        except WorkoutValidationError as e:
            for message in e.errors.values():
                print(message, file=sys.stderr)
            return 1
        print(f"Logged workout {workout_id}")
    elif args.cmd == "history":
        print_history(service)
    elif args.cmd == "delete":
        repo.delete_by_id(args.workout_id)
        print("Deleted")
    elif args.cmd == "exercises":
        for name in service.exercises():
            print(name)
    elif args.cmd == "progress":
        print_progress(service, args.exercise)
    elif args.cmd == "stats":
        print_stats(service, args.limit)
    elif args.cmd == "demo":
        demo_data(repo)
    return 0


if __name__ == "__main__":
    sys.exit(main())
