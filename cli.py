import argparse
import datetime
import shutil
import time
from typing import Optional

import requests

from config import default_db_path, default_program_path
from db import HistoryRepository, KeyValueRepository
from rest_api import WorkoutAPI
from session_timer import ManualTimer
from tools import WeightConverter, WorkoutTools


def _history(db_path: str) -> HistoryRepository:
    return HistoryRepository(KeyValueRepository(db_path))


def _api(db_path: str, yaml_path: str, program_path: Optional[str], clock=None) -> WorkoutAPI:
    # one-shot commands never tick, so the timer is driven manually
    return WorkoutAPI(
        db_path=db_path,
        yaml_path=yaml_path,
        program_path=program_path,
        timer_factory=ManualTimer,
        clock=clock,
    )


def export_history(db_path: str, out_path: str) -> int:
    repo = _history(db_path)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(repo.export_json())
    return repo.count()


def import_history(db_path: str, in_path: str, replace: bool = False) -> int:
    with open(in_path, "r", encoding="utf-8") as f:
        text = f.read()
    return _history(db_path).import_json(text, replace)


def clear_history(db_path: str, yes: bool = False) -> bool:
    if not yes:
        print("Refusing to delete workout history without --yes")
        return False
    _history(db_path).clear_all()
    print("Workout history cleared")
    return True


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def status(db_path: str, yaml_path: str, program_path: Optional[str]) -> dict:
    """Print the program position and any workout in progress."""
    api = _api(db_path, yaml_path, program_path)
    week = api.completion.current_week()
    stats = api.completion.week_completion_stats(week)
    session = api.active_sessions.load()
    print(
        f"{api.catalog.week_label(week)}: {stats['completed']}/{stats['total']} "
        f"days ({stats['percentage']}%)"
    )
    if session is None:
        print("No workout in progress")
    else:
        print(
            f"In progress: week {session.week} {session.day_type}, "
            f"{session.completed_count()}/{len(session.exercises)} exercises, "
            f"{WorkoutTools.format_time(session.elapsed_seconds)} elapsed"
        )
    return {"week": week, "stats": stats, "active": session is not None}


def start_workout(
    db_path: str, yaml_path: str, program_path: Optional[str], week: int, day_type: str
):
    api = _api(db_path, yaml_path, program_path)
    session = api.workouts.start_new_workout(week, day_type)
    print(f"Started week {week} {day_type} with {len(session.exercises)} exercises")
    return session


def print_stats(db_path: str, yaml_path: str) -> dict:
    api = _api(db_path, yaml_path, None)
    stats = api.statistics.history_stats()
    print(f"Total workouts: {stats['total_workouts']}")
    if stats["total_workouts"]:
        print(f"First workout: {stats['first_workout']}")
        print(f"Last workout: {stats['last_workout']}")
        for day_type, count in sorted(stats["workouts_by_type"].items()):
            print(f"  {day_type}: {count}")
    return stats


def print_progress(db_path: str, yaml_path: str, exercise: Optional[str] = None) -> None:
    api = _api(db_path, yaml_path, None)
    names = [exercise] if exercise else api.statistics.exercise_names()
    if not names:
        print("No progress data yet")
        return
    for name in names:
        summary = api.statistics.exercise_summary(name)
        if summary is None:
            print(f"{name}: no progress data")
            continue
        print(
            f"{name}: {summary['starting_weight']} -> {summary['current_weight']} "
            f"{summary.get('unit', '')} ({summary['percent_gain']:+}%), "
            f"PR {summary['personal_record']} over {summary['total_sessions']} sessions"
        )


def demo_data(
    db_path: str, yaml_path: str, program_path: Optional[str] = None, week: int = 1
) -> int:
    """Populate history with one completed workout per day of ``week`` if empty."""
    day = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(days=7)
    moment = [day]
    api = _api(db_path, yaml_path, program_path, clock=lambda: moment[0].isoformat())
    if api.history.count():
        print("Database already contains workouts")
        return 0
    created = 0
    for offset, day_type in enumerate(api.catalog.all_day_types(week)):
        moment[0] = day + datetime.timedelta(days=offset)
        session = api.workouts.start_new_workout(week, day_type)
        for ei, exercise in enumerate(session.exercises):
            for si, _ in enumerate(exercise.logged_sets):
                api.workouts.update_set(ei, si, weight=100 + 5 * ei, reps=8)
                api.workouts.log_set(ei, si)
        api.workouts.finish_workout()
        created += 1
    print("Demo data inserted")
    return created


def benchmark(url: str, runs: int = 10) -> None:
    times: list[float] = []
    for _ in range(runs):
        t0 = time.time()
        requests.get(f"{url}/health", timeout=5)
        times.append(time.time() - t0)
    avg = sum(times) / len(times)
    print(f"Average /health response time over {runs} runs: {avg:.4f}s")


def main() -> None:
    parser = argparse.ArgumentParser(description="Utility commands")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def common(p, yaml: bool = True, program: bool = False) -> None:
        p.add_argument("--db", default=default_db_path())
        if yaml:
            p.add_argument("--yaml", default="settings.yaml")
        if program:
            p.add_argument("--program", default=default_program_path())

    common(sub.add_parser("status"), program=True)

    st = sub.add_parser("start")
    common(st, program=True)
    st.add_argument("--week", type=int, required=True)
    st.add_argument("--day", required=True)

    exp = sub.add_parser("export")
    common(exp, yaml=False)
    exp.add_argument("--out", default="workout_history.json")

    imp = sub.add_parser("import")
    common(imp, yaml=False)
    imp.add_argument("--in", dest="src", required=True)
    imp.add_argument("--replace", action="store_true")

    clr = sub.add_parser("clear")
    common(clr, yaml=False)
    clr.add_argument("--yes", action="store_true")

    bkp = sub.add_parser("backup")
    common(bkp, yaml=False)
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=default_db_path())

    common(sub.add_parser("stats"))

    prog = sub.add_parser("progress")
    common(prog)
    prog.add_argument("--exercise")

    demo = sub.add_parser("demo")
    common(demo, program=True)
    demo.add_argument("--week", type=int, default=1)

    bench = sub.add_parser("benchmark")
    bench.add_argument("--url", default="http://localhost:8000")
    bench.add_argument("--runs", type=int, default=10)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    args = parser.parse_args()

    if args.cmd == "status":
        status(args.db, args.yaml, args.program)
    elif args.cmd == "start":
        start_workout(args.db, args.yaml, args.program, args.week, args.day)
    elif args.cmd == "export":
        count = export_history(args.db, args.out)
        print(f"Exported {count} workouts to {args.out}")
    elif args.cmd == "import":
        count = import_history(args.db, args.src, args.replace)
        print(f"History now holds {count} workouts")
    elif args.cmd == "clear":
        clear_history(args.db, args.yes)
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "stats":
        print_stats(args.db, args.yaml)
    elif args.cmd == "progress":
        print_progress(args.db, args.yaml, args.exercise)
    elif args.cmd == "demo":
        demo_data(args.db, args.yaml, args.program, args.week)
    elif args.cmd == "benchmark":
        benchmark(args.url, args.runs)
    elif args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
        else:
            print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")


if __name__ == "__main__":
    main()
