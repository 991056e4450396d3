from __future__ import annotations
import datetime
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from algorithms import WeightTrendAnalyzer
from client import ApiError, AuthenticationError, FitnessClient
from exporters import export_filename, export_weight_csv
from formatters import format_duration
from schemas import WeightEntry, WeightLogInput, WorkoutLogEntry
from stats_service import StatisticsService

LOGGER = logging.getLogger(__name__)


@dataclass
class ViewState:
    """Outcome of a fetch: display data, an error message, or nothing to show."""

    data: Any = None
    error: Optional[str] = None
    empty: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, message: str) -> "ViewState":
        return cls(error=message)


class FetchGuard:
    """Run a fetch in the background and drop its result once cancelled."""

    def __init__(self, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1)
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._future: Optional[Future] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self, fetch: Callable[[], Any], callback: Callable[[Any], None]) -> Future:
        def run() -> Any:
            result = fetch()
            with self._lock:
                if self._cancelled.is_set():
                    LOGGER.debug("Discarding result of cancelled fetch")
                    return None
                callback(result)
            return result

        self._future = self._executor.submit(run)
        return self._future

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
        if self._future is not None:
            self._future.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)


class DashboardService:
    """Load the dashboard and the quick stat cards."""

    def __init__(
        self, client: FitnessClient, stats: Optional[StatisticsService] = None
    ) -> None:
        self.client = client
        self.stats = stats or StatisticsService()

    def load_dashboard(self) -> ViewState:
        try:
            stats = self.client.dashboard_stats()
        except AuthenticationError:
            raise
        except ApiError as e:
            LOGGER.error("Error fetching dashboard stats: %s", e)
            return ViewState.failed(f"Failed to load dashboard statistics: {e.message}")
        if not self.stats.has_data(stats):
            return ViewState(data={"stats": stats}, empty=True)
        return ViewState(data=self.present(stats))

    def present(self, stats) -> Dict[str, Any]:
        """Shape dashboard stats for display."""
        activity = [
            {"day": day, "workouts": count}
            for day, count in zip(StatisticsService.DAY_NAMES, stats.activity_by_day())
        ]
        return {
            "stats": stats,
            "avg_duration": format_duration(stats.avg_workout_duration),
            "activity": activity,
            "progress": self.stats.progress_data(stats.recent_workouts),
            "recent": [self.stats.workout_summary(w) for w in stats.recent_workouts],
        }

    def load_quick_stats(self, now: Optional[datetime.datetime] = None) -> ViewState:
        """Fetch the four comparison windows in parallel and summarize them."""
        auth = self.client.auth
        if auth is None or not auth.is_authenticated:
            return ViewState.failed("User not properly authenticated")
        try:
            overall = self.client.workout_logs(limit=1)
            if overall.pagination.total == 0:
                return ViewState(data=self.stats.empty_quick_stats(), empty=True)
            windows = self.stats.date_windows(now)
            with ThreadPoolExecutor(max_workers=len(windows)) as pool:
                futures = {
                    name: pool.submit(
                        self.client.workout_logs,
                        start_date=start,
                        end_date=end,
                        limit=100 if name == "this_month" else None,
                    )
                    for name, (start, end) in windows.items()
                }
                pages = {name: f.result() for name, f in futures.items()}
        except AuthenticationError:
            raise
        except ApiError as e:
            LOGGER.error("Error fetching workout stats: %s", e)
            return ViewState.failed("Could not load workout data")
        return ViewState(data=self.stats.quick_stats(**pages))


class WorkoutHistoryService:
    """Paged workout history with exercise names resolved."""

    ITEMS_PER_PAGE = 20
    UNKNOWN_EXERCISE = "Unknown Exercise"

    def __init__(self, client: FitnessClient, per_page: int = ITEMS_PER_PAGE) -> None:
        self.client = client
        self.per_page = per_page
        self._names: Dict[str, str] = {}

    def exercise_name(self, exercise_id: Optional[str]) -> str:
        if not exercise_id:
            return self.UNKNOWN_EXERCISE
        if exercise_id not in self._names:
            try:
                self._names[exercise_id] = self.client.exercise(exercise_id).name
            except AuthenticationError:
                raise
            except ApiError as e:
                LOGGER.error("Error fetching exercise %s: %s", exercise_id, e)
                self._names[exercise_id] = self.UNKNOWN_EXERCISE
        return self._names[exercise_id]

    def _named(self, entry: WorkoutLogEntry) -> WorkoutLogEntry:
        if entry.exercise_name:
            if entry.exercise_id:
                self._names.setdefault(entry.exercise_id, entry.exercise_name)
            return entry
        return entry.model_copy(update={"exercise_name": self.exercise_name(entry.exercise_id)})

    def load_page(
        self,
        page: int = 1,
        start: Optional[datetime.date] = None,
        end: Optional[datetime.date] = None,
        search: Optional[str] = None,
        exercise_id: Optional[str] = None,
    ) -> ViewState:
        if page < 1:
            raise ValueError("page must be at least 1")
        start_date = None
        end_date = None
        if start is not None:
            start_date = datetime.datetime(start.year, start.month, start.day)
        if end is not None:
            end_date = datetime.datetime(end.year, end.month, end.day, 23, 59, 59, 999000)
        try:
            result = self.client.workout_logs(
                start_date=start_date,
                end_date=end_date,
                page=page,
                limit=self.per_page,
                exercise_id=exercise_id,
            )
        except AuthenticationError:
            raise
        except ApiError as e:
            LOGGER.error("Error fetching workout history: %s", e)
            return ViewState.failed("Failed to load workout history")
        workouts = [self._named(w) for w in result.workouts]
        workouts = StatisticsService.filter_by_name(workouts, search)
        pages = max(1, StatisticsService.page_count(result.pagination.total, self.per_page))
        data = {"workouts": workouts, "page": page, "pages": pages, "total": result.pagination.total}
        return ViewState(data=data, empty=not workouts)


class WeightTrackingService:
    """Weight history, chart series, goal projection and CSV export."""

    def __init__(self, client: FitnessClient, period: int = 30) -> None:
        if period not in WeightTrendAnalyzer.PERIODS:
            raise ValueError(f"period must be one of {WeightTrendAnalyzer.PERIODS}")
        self.client = client
        self.period = period
        self.entries: List[WeightEntry] = []

    def load(self, now: Optional[datetime.datetime] = None) -> ViewState:
        now = now or datetime.datetime.now(datetime.timezone.utc)
        try:
            self.entries = self.client.weight_logs()
        except AuthenticationError:
            raise
        except ApiError as e:
            LOGGER.error("Error fetching weight logs: %s", e)
            return ViewState.failed("Failed to load weight logs. Please try again later.")
        try:
            stats = self.client.weight_stats()
        except AuthenticationError:
            raise
        except ApiError as e:
            LOGGER.error("Error fetching weight stats: %s", e)
            stats = None
        try:
            goal = self.client.weight_goal()
        except AuthenticationError:
            raise
        except ApiError as e:
            LOGGER.error("Error fetching weight goal: %s", e)
            goal = None
        if not self.entries:
            return ViewState(data={"entries": [], "stats": stats, "goal": goal}, empty=True)
        analyzer = WeightTrendAnalyzer
        ordered = analyzer.sort_entries(self.entries)
        goal_weight = goal.target_weight if goal and not goal.completed else None
        data = {
            "entries": list(reversed(ordered)),
            "stats": stats,
            "goal": goal,
            "chart": analyzer.chart_points(ordered, self.period, now),
            "moving_average": analyzer.moving_average(
                analyzer.filter_period(ordered, self.period, now)
            ),
            "bounds": analyzer.axis_bounds(ordered, goal_weight),
            "projection": analyzer.projection_for_entries(ordered, goal, now)
            if goal and not goal.completed
            else None,
        }
        return ViewState(data=data)

    def log_weight(
        self,
        weight: Any,
        unit: str = "kg",
        notes: Optional[str] = None,
        date: Optional[datetime.datetime] = None,
    ) -> WeightEntry:
        """Validate and post a new entry; raises ``ValueError`` before any request."""
        try:
            value = float(weight)
        except (TypeError, ValueError):
            raise ValueError("Please enter a valid weight")
        if value <= 0:
            raise ValueError("Please enter a valid weight")
        entry = self.client.log_weight(
            WeightLogInput(weight=value, unit=unit, notes=notes or None, date=date)
        )
        self.entries = [entry] + self.entries
        return entry

    def export_csv(self, today: Optional[datetime.date] = None) -> Dict[str, str]:
        if not self.entries:
            raise ValueError("No weight data to export")
        ordered = WeightTrendAnalyzer.sort_entries(self.entries)
        return {"filename": export_filename(today), "content": export_weight_csv(ordered)}
