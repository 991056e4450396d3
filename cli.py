import argparse
import datetime
import getpass
import logging
import sys
from typing import List, Optional

from algorithms import WeightConverter
from avatar_service import AvatarService
from client import ApiError, AuthenticationError, FitnessClient
from config import YamlConfig, DEFAULT_PATH
from dashboard_service import DashboardService, WeightTrackingService, WorkoutHistoryService
from exporters import read_weight_csv
from formatters import (
    format_date,
    format_iso_date,
    format_number,
    format_weight,
    format_weight_stats,
)
from schemas import WeightGoalInput
from seed_sample_data import generate_test_workouts, sample_dashboard_stats
from session import AuthSession, ThemeSettings
from settings_schema import load_settings
from stats_service import StatisticsService
from workout_service import WorkoutLogger

LOGGER = logging.getLogger(__name__)


def parse_set(text: str) -> dict:
    """Parse ``WEIGHTxREPS`` (e.g. ``60x8``) into a tracker set."""
    weight, sep, reps = text.lower().partition("x")
    if not sep or not weight.strip() or not reps.strip():
        raise argparse.ArgumentTypeError(f"expected WEIGHTxREPS, got {text!r}")
    return {"weight": weight.strip(), "reps": reps.strip()}


def parse_day(text: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {text!r}")


def _local_midday(day: datetime.date) -> datetime.datetime:
    return datetime.datetime(day.year, day.month, day.day, 12).astimezone()


def print_dashboard(service: DashboardService, sample: bool = False) -> None:
    if sample:
        data = service.present(sample_dashboard_stats())
        print(data["stats"].message)
    else:
        state = service.load_dashboard()
        if state.error:
            print(state.error)
            return
        if state.empty:
            print("No workout data yet. Log a workout or run 'fitdash dashboard --sample'.")
            return
        data = state.data
    stats = data["stats"]
    print(f"Workouts this month: {stats.workouts_this_month}")
    print(f"Average duration:    {data['avg_duration']}")
    print(f"Total weight lifted: {format_weight(stats.total_weight_lifted)}")
    print("Weekly activity:")
    for bucket in data["activity"]:
        print(f"  {bucket['day']}  {'#' * bucket['workouts']} {bucket['workouts']}")
    if data["progress"]:
        print("Volume trend:")
        for point in data["progress"]:
            print(f"  {point['date']:<10} {format_number(point['volume'])}")
    print("Recent workouts:")
    for workout in data["recent"]:
        print(
            f"  {workout['date']}  {workout['exercise']}  "
            f"{workout['duration']}  {format_weight(workout['volume'])}"
        )


def print_quick_stats(service: DashboardService) -> None:
    state = service.load_quick_stats()
    if state.error:
        print(state.error)
        return
    q = state.data
    month_sign = "+" if q["month_positive"] else "-"
    week_sign = "+" if q["week_positive"] else "-"
    print(f"This month: {q['this_month']} ({month_sign}{q['month_change']} vs last month)")
    print(f"This week:  {q['this_week']} ({week_sign}{q['week_change']} vs last week)")
    print(f"Lifted this month: {format_weight(q['total_lifted_weight'])}")
    print(f"Average duration:  {q['avg_duration_minutes']} min")


def print_history(service: WorkoutHistoryService, args: argparse.Namespace) -> None:
    state = service.load_page(
        page=args.page,
        start=args.start,
        end=args.end,
        search=args.search,
        exercise_id=args.exercise,
    )
    if state.error:
        print(state.error)
        return
    if state.empty:
        print("No workouts found.")
        return
    for workout in state.data["workouts"]:
        summary = StatisticsService.workout_summary(workout)
        print(
            f"{summary['id']}  {summary['date']}  {summary['exercise']}  "
            f"{summary['duration']}  {len(summary['sets'])} sets  "
            f"{format_weight(summary['volume'])}"
        )
    print(f"Page {state.data['page']} of {state.data['pages']} ({state.data['total']} workouts)")


def print_weight(service: WeightTrackingService, unit: str) -> None:
    state = service.load()
    if state.error:
        print(state.error)
        return
    stats = state.data["stats"]
    if stats is not None:
        line = format_weight_stats(stats.model_dump(), stats.unit)
        if line:
            print(line)
    if state.empty:
        print("No weight entries yet. Add one with 'fitdash weight add'.")
        return
    for entry in state.data["entries"]:
        shown = WeightConverter.convert(entry.weight, entry.unit, unit)
        notes = f"  {entry.notes}" if entry.notes else ""
        print(f"{entry.id}  {format_iso_date(entry.date)}  {format_weight(shown, unit)}{notes}")
    averages = state.data["moving_average"]
    if averages:
        latest = averages[-1]
        shown = WeightConverter.convert(latest["avg"], latest["unit"], unit)
        print(f"7-day average ({format_iso_date(latest['date'])}): {format_weight(shown, unit)}")
    projection = state.data["projection"]
    if projection:
        kind = "deficit" if projection["is_deficit"] else "surplus"
        print(
            f"Goal: {abs(projection['daily_calories'])} kcal/day {kind} "
            f"for {projection['days_remaining']} days"
        )


def print_goal(goal) -> None:
    if goal is None:
        print("No weight goal set.")
        return
    status = "completed" if goal.completed else "active"
    print(
        f"Target {format_weight(goal.target_weight, goal.unit)} by "
        f"{format_iso_date(goal.target_date)} ({status})"
    )


def print_exercises(exercises) -> None:
    if not exercises:
        print("No exercises found.")
        return
    for ex in exercises:
        tag = " (custom)" if ex.is_custom else ""
        print(f"{ex.id}  {ex.name}{tag}  [{ex.category or '-'} / {ex.equipment or '-'}]")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fitdash", description="Fitness tracking client")
    parser.add_argument("--config", default=DEFAULT_PATH, help="settings file")
    parser.add_argument("--api-url", default=None, help="override the API base URL")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    reg = sub.add_parser("register")
    reg.add_argument("--name", required=True)
    reg.add_argument("--email", required=True)
    reg.add_argument("--password")
    reg.add_argument("--confirm")

    login = sub.add_parser("login")
    login.add_argument("--email", required=True)
    login.add_argument("--password")

    sub.add_parser("logout")
    sub.add_parser("whoami")

    dash = sub.add_parser("dashboard")
    dash.add_argument("--quick", action="store_true", help="show period comparisons")
    dash.add_argument("--sample", action="store_true", help="show demo data")

    hist = sub.add_parser("history")
    hist.add_argument("--page", type=int, default=1)
    hist.add_argument("--from", dest="start", type=parse_day)
    hist.add_argument("--to", dest="end", type=parse_day)
    hist.add_argument("--search")
    hist.add_argument("--exercise")

    log = sub.add_parser("log-workout")
    log.add_argument("--exercise", required=True)
    log.add_argument("--minutes", type=float, required=True)
    log.add_argument("--set", dest="sets", type=parse_set, action="append", default=[])
    log.add_argument("--notes")

    weight = sub.add_parser("weight")
    weight_sub = weight.add_subparsers(dest="action", required=True)
    w_add = weight_sub.add_parser("add")
    w_add.add_argument("weight")
    w_add.add_argument("--unit", choices=WeightConverter.UNITS)
    w_add.add_argument("--notes")
    w_add.add_argument("--date", type=parse_day)
    w_list = weight_sub.add_parser("list")
    w_list.add_argument("--period", type=int, choices=[7, 30, 90])
    w_del = weight_sub.add_parser("delete")
    w_del.add_argument("id")
    w_exp = weight_sub.add_parser("export")
    w_exp.add_argument("--out")
    w_imp = weight_sub.add_parser("import")
    w_imp.add_argument("path")

    goal = sub.add_parser("goal")
    goal_sub = goal.add_subparsers(dest="action", required=True)
    goal_sub.add_parser("show")
    g_set = goal_sub.add_parser("set")
    g_set.add_argument("target", type=float)
    g_set.add_argument("--date", type=parse_day, required=True)
    g_set.add_argument("--unit", choices=WeightConverter.UNITS)
    g_set.add_argument("--notes")
    goal_sub.add_parser("delete")
    goal_sub.add_parser("complete")

    ex = sub.add_parser("exercises")
    ex_sub = ex.add_subparsers(dest="action", required=True)
    ex_list = ex_sub.add_parser("list")
    for name in ("category", "movement-type", "equipment", "difficulty", "muscle", "search"):
        ex_list.add_argument(f"--{name}")
    ex_list.add_argument("--limit", type=int, default=20)
    ex_list.add_argument("--page", type=int, default=1)
    ex_show = ex_sub.add_parser("show")
    ex_show.add_argument("id")
    ex_sub.add_parser("favorites")
    ex_fav = ex_sub.add_parser("favorite")
    ex_fav.add_argument("id")
    ex_unfav = ex_sub.add_parser("unfavorite")
    ex_unfav.add_argument("id")
    ex_sub.add_parser("recent")

    tpl = sub.add_parser("templates")
    tpl_sub = tpl.add_subparsers(dest="action", required=True)
    tpl_sub.add_parser("list")
    tpl_show = tpl_sub.add_parser("show")
    tpl_show.add_argument("id")
    tpl_del = tpl_sub.add_parser("delete")
    tpl_del.add_argument("id")

    theme = sub.add_parser("theme")
    theme.add_argument("name", nargs="?", choices=ThemeSettings.THEMES)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=WeightConverter.UNITS, required=True)

    seed = sub.add_parser("seed")
    seed.add_argument("--exercise", help="exercise id; defaults to the first listed")
    seed.add_argument("--count", type=int, default=5)

    serve = sub.add_parser("serve")
    serve.add_argument("--db", default="fitdash.db")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    return parser


def run_command(args: argparse.Namespace, config: YamlConfig, http=None) -> None:
    settings = load_settings(config.load())
    auth = AuthSession(config)
    client = FitnessClient(
        args.api_url or settings.api_url,
        auth=auth,
        http=http,
        timeout=settings.request_timeout,
    )
    unit = settings.weight_unit

    if args.cmd == "register":
        password = args.password or getpass.getpass("Password: ")
        confirm = args.confirm if args.confirm is not None else password
        user = auth.register(client, args.name, args.email, password, confirm)
        print(f"Welcome, {user.name}!")
    elif args.cmd == "login":
        password = args.password or getpass.getpass("Password: ")
        user = auth.login(client, args.email, password)
        print(f"Logged in as {user.name}")
    elif args.cmd == "logout":
        auth.logout()
        print("Logged out")
    elif args.cmd == "whoami":
        if not auth.is_authenticated:
            print("Not logged in")
            return
        user = client.current_user()
        print(f"[{AvatarService.initials(user.name)}] {user.name} <{user.email}>")
        print(f"Avatar: {AvatarService.avatar_url(user)}")
    elif args.cmd == "dashboard":
        service = DashboardService(client, StatisticsService(settings.recent_limit))
        if args.quick:
            print_quick_stats(service)
        else:
            print_dashboard(service, sample=args.sample)
    elif args.cmd == "history":
        print_history(WorkoutHistoryService(client), args)
    elif args.cmd == "log-workout":
        entry = WorkoutLogger(client).log_workout(
            args.exercise, args.minutes * 60, args.sets, notes=args.notes
        )
        print(f"Logged workout {entry.id} on {format_date(entry.start_time.astimezone())}")
    elif args.cmd == "weight":
        run_weight(args, client, settings.chart_period, unit)
    elif args.cmd == "goal":
        run_goal(args, client, unit)
    elif args.cmd == "exercises":
        run_exercises(args, client)
    elif args.cmd == "templates":
        run_templates(args, client)
    elif args.cmd == "theme":
        theme = ThemeSettings(config)
        if args.name:
            theme.set_theme(args.name)
        print(f"Theme: {theme.theme}")
    elif args.cmd == "seed":
        exercise_id = args.exercise
        if not exercise_id:
            page = client.exercises(limit=10)
            if not page.exercises:
                raise ValueError("Please select an exercise first")
            exercise_id = page.exercises[0].id
        created = generate_test_workouts(client, exercise_id, args.count)
        print(f"Created {len(created)} test workout logs successfully.")


def run_weight(args: argparse.Namespace, client: FitnessClient, period: int, unit: str) -> None:
    service = WeightTrackingService(client, period=getattr(args, "period", None) or period)
    if args.action == "add":
        date = _local_midday(args.date) if args.date else None
        entry = service.log_weight(args.weight, args.unit or unit, args.notes, date)
        print(f"Logged {format_weight(entry.weight, entry.unit)} on {format_iso_date(entry.date)}")
    elif args.action == "list":
        print_weight(service, unit)
    elif args.action == "delete":
        client.delete_weight_log(args.id)
        print("Weight entry deleted")
    elif args.action == "export":
        state = service.load()
        if state.error:
            raise ValueError(state.error)
        export = service.export_csv()
        path = args.out or export["filename"]
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(export["content"])
        print(f"Exported {len(service.entries)} entries to {path}")
    elif args.action == "import":
        rows = read_weight_csv(args.path)
        for row in rows:
            client.log_weight(row)
        print(f"Imported {len(rows)} entries")


def run_goal(args: argparse.Namespace, client: FitnessClient, unit: str) -> None:
    if args.action == "show":
        print_goal(client.weight_goal())
    elif args.action == "set":
        goal = client.set_weight_goal(
            WeightGoalInput(
                target_weight=args.target,
                target_date=_local_midday(args.date),
                unit=args.unit or unit,
                notes=args.notes,
            )
        )
        print_goal(goal)
    elif args.action == "delete":
        client.delete_weight_goal()
        print("Weight goal removed")
    elif args.action == "complete":
        print_goal(client.complete_weight_goal())


def run_exercises(args: argparse.Namespace, client: FitnessClient) -> None:
    if args.action == "list":
        page = client.exercises(
            category=args.category,
            movement_type=args.movement_type,
            equipment=args.equipment,
            difficulty=args.difficulty,
            target_muscle=args.muscle,
            search=args.search,
            limit=args.limit,
            page=args.page,
        )
        print_exercises(page.exercises)
        if page.pagination:
            print(f"Page {page.pagination.page} of {max(1, page.pagination.pages)}")
    elif args.action == "show":
        ex = client.exercise(args.id)
        print(ex.name)
        if ex.description:
            print(ex.description)
        muscles = ", ".join(ex.target_muscles.primary + ex.target_muscles.secondary)
        print(f"Category: {ex.category or '-'}  Equipment: {ex.equipment or '-'}  Difficulty: {ex.difficulty or '-'}")
        if muscles:
            print(f"Muscles: {muscles}")
    elif args.action == "favorites":
        print_exercises(client.favorites())
    elif args.action == "favorite":
        print(client.add_favorite(args.id).get("message", "Added to favorites"))
    elif args.action == "unfavorite":
        print(client.remove_favorite(args.id).get("message", "Removed from favorites"))
    elif args.action == "recent":
        print_exercises(client.recent_exercises())


def run_templates(args: argparse.Namespace, client: FitnessClient) -> None:
    if args.action == "list":
        templates = client.templates()
        if not templates:
            print("No workout templates yet.")
        for t in templates:
            print(f"{t.id}  {t.plan_name}  {t.difficulty_level or '-'}  {len(t.days)} days")
    elif args.action == "show":
        t = client.template(args.id)
        print(t.plan_name)
        if t.description:
            print(t.description)
        for day in t.days:
            print(f"Day {day.day_number}")
            for ex in day.exercises:
                sets = f" {ex.sets}" if ex.sets else ""
                print(f"  - {ex.exercise_name}{sets}")
    elif args.action == "delete":
        client.delete_template(args.id)
        print("Workout template deleted")


def main(argv: Optional[List[str]] = None, http=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "convert":
        if args.unit == "kg":
            print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lbs")
        else:
            print(f"{args.weight} lbs = {WeightConverter.lb_to_kg(args.weight)} kg")
        return 0
    if args.cmd == "serve":
        import uvicorn
        from rest_api import create_app

        uvicorn.run(create_app(args.db), host=args.host, port=args.port)
        return 0

    try:
        run_command(args, YamlConfig(args.config), http=http)
    except AuthenticationError as e:
        print(f"{e.message}. Please log in again with 'fitdash login'.", file=sys.stderr)
        return 1
    except ApiError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
