import datetime
import logging
import math
import os
from typing import Callable, Optional

from fastapi import (
    FastAPI,
    HTTPException,
    Body,
    APIRouter,
    Request,
    Header,
    Depends,
    Query,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from algorithms import WeightTrendAnalyzer
from db import (
    UserRepository,
    ExerciseRepository,
    FavoriteExerciseRepository,
    RecentExerciseRepository,
    WorkoutLogRepository,
    WeightLogRepository,
    WeightGoalRepository,
    WorkoutTemplateRepository,
    to_iso,
)
from schemas import (
    ExerciseInput,
    LoginInput,
    RecentExerciseInput,
    RegisterInput,
    WeightEntry,
    WeightGoalInput,
    WeightLogInput,
    WeightLogUpdate,
    WeightStats,
    WorkoutLogEntry,
    WorkoutLogInput,
    WorkoutTemplateInput,
)
from stats_service import StatisticsService

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _parse_id(value: str, message: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=404, detail=message)


def _parse_time(value: Optional[str], name: str) -> Optional[str]:
    """Normalize an ISO timestamp query parameter to the stored format."""
    if not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return to_iso(parsed)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


class FitnessAPI:
    """Reference backend for the fitness tracking REST API."""

    DEFAULT_LIMIT = 10
    MAX_LIMIT = 100
    DASHBOARD_DAYS = 30

    def __init__(
        self,
        db_path: str = "fitdash.db",
        *,
        prefix: str = "/api",
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        self.db_path = db_path
        self.prefix = prefix
        self.clock = clock or _utc_now
        self.users = UserRepository(db_path)
        self.exercises = ExerciseRepository(db_path)
        self.favorites = FavoriteExerciseRepository(db_path)
        self.recent = RecentExerciseRepository(db_path)
        self.workout_logs = WorkoutLogRepository(db_path)
        self.weights = WeightLogRepository(db_path)
        self.weight_goals = WeightGoalRepository(db_path)
        self.templates = WorkoutTemplateRepository(db_path)
        self.statistics = StatisticsService()
        self.app = FastAPI(
            title="Fitdash API",
            description="REST API for workout logs, body weight and exercises",
        )
        self._setup_error_handlers()
        self._setup_routes()

    def _setup_error_handlers(self) -> None:
        @self.app.exception_handler(StarletteHTTPException)
        async def http_error(request: Request, exc: StarletteHTTPException):
            return JSONResponse(
                {"message": exc.detail},
                status_code=exc.status_code,
                headers=getattr(exc, "headers", None),
            )

        @self.app.exception_handler(RequestValidationError)
        async def validation_error(request: Request, exc: RequestValidationError):
            return JSONResponse({"message": _validation_message(exc)}, status_code=400)

    def current_user(self, authorization: Optional[str] = Header(None)) -> dict:
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Not authorized, no token")
        user = self.users.user_for_token(authorization[len("Bearer "):].strip())
        if user is None:
            raise HTTPException(status_code=401, detail="Not authorized, token failed")
        return user

    def _limit(self, limit: Optional[int], default: int) -> int:
        if limit is None:
            return default
        if limit < 1:
            raise HTTPException(status_code=400, detail="limit must be positive")
        return min(limit, self.MAX_LIMIT)

    @staticmethod
    def _page(page: int) -> int:
        if page < 1:
            raise HTTPException(status_code=400, detail="page must be at least 1")
        return page

    def dashboard(self, user_id: int) -> dict:
        """Aggregate the user's workouts since the earlier of month start or 30 days ago."""
        now = self.clock()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        start = min(month_start, now - datetime.timedelta(days=self.DASHBOARD_DAYS))
        rows = self.workout_logs.fetch_range(user_id, to_iso(start), to_iso(now))
        entries = [WorkoutLogEntry.model_validate(r) for r in rows]
        stats = self.statistics.dashboard_stats(entries, now)
        return stats.to_wire()

    def _setup_routes(self) -> None:
        users_router = APIRouter(prefix=f"{self.prefix}/users", tags=["Users"])
        stats_router = APIRouter(prefix=f"{self.prefix}/stats", tags=["Stats"])
        logs_router = APIRouter(prefix=f"{self.prefix}/workout-log", tags=["Workout Log"])
        weight_router = APIRouter(prefix=f"{self.prefix}/weight", tags=["Weight"])
        exercises_router = APIRouter(prefix=f"{self.prefix}/exercises", tags=["Exercises"])
        templates_router = APIRouter(
            prefix=f"{self.prefix}/workout-templates", tags=["Workout Templates"]
        )
        auth = Depends(self.current_user)

        @self.app.get(
            f"{self.prefix}/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            self.users.fetch_all("SELECT 1;")
            return {"status": "ok"}

        @users_router.post("/register", status_code=201)
        def register(payload: RegisterInput):
            try:
                uid = self.users.create(payload.name, payload.email, payload.password)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            LOGGER.info("Registered user %s", uid)
            return {**self.users.fetch(uid), "token": self.users.create_token(uid)}

        @users_router.post("/login")
        def login(payload: LoginInput):
            try:
                user = self.users.authenticate(payload.email, payload.password)
            except ValueError as e:
                raise HTTPException(status_code=401, detail=str(e))
            return {**user, "token": self.users.create_token(int(user["_id"]))}

        @users_router.get("/profile")
        def profile(user: dict = auth):
            return {"user": user}

        @self.app.get(f"{self.prefix}/auth/me", tags=["Users"])
        def me(user: dict = auth):
            return {"user": user}

        @stats_router.get("/dashboard")
        def dashboard_stats(user: dict = auth):
            return self.dashboard(int(user["_id"]))

        @logs_router.get("")
        def list_workout_logs(
            startDate: Optional[str] = Query(None),
            endDate: Optional[str] = Query(None),
            page: int = 1,
            limit: Optional[int] = None,
            exerciseId: Optional[str] = Query(None),
            user: dict = auth,
        ):
            page = self._page(page)
            limit = self._limit(limit, self.DEFAULT_LIMIT)
            exercise_id = None
            if exerciseId:
                exercise_id = _parse_id(exerciseId, "Exercise not found")
            rows, total = self.workout_logs.fetch_page(
                int(user["_id"]),
                _parse_time(startDate, "startDate"),
                _parse_time(endDate, "endDate"),
                exercise_id,
                page,
                limit,
            )
            return {
                "workouts": rows,
                "pagination": {
                    "total": total,
                    "pages": math.ceil(total / limit),
                    "page": page,
                    "limit": limit,
                },
            }

        @logs_router.get("/{log_id}")
        def get_workout_log(log_id: str, user: dict = auth):
            log = self.workout_logs.fetch(
                int(user["_id"]), _parse_id(log_id, "Workout log not found")
            )
            if log is None:
                raise HTTPException(status_code=404, detail="Workout log not found")
            return log

        @logs_router.post("", status_code=201)
        def create_workout_log(payload: WorkoutLogInput, user: dict = auth):
            uid = int(user["_id"])
            exercise_id = None
            if payload.exercise_id:
                exercise_id = _parse_id(payload.exercise_id, "Exercise not found")
                if self.exercises.fetch(exercise_id) is None:
                    raise HTTPException(status_code=404, detail="Exercise not found")
            end_time = payload.end_time or payload.start_time + datetime.timedelta(
                seconds=payload.total_duration
            )
            try:
                log_id = self.workout_logs.add(
                    uid,
                    exercise_id,
                    to_iso(payload.start_time),
                    to_iso(end_time),
                    payload.total_duration,
                    payload.rest_time,
                    payload.active_time,
                    [s.to_wire() for s in payload.sets],
                    payload.notes,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return self.workout_logs.fetch(uid, log_id)

        @logs_router.delete("/{log_id}")
        def delete_workout_log(log_id: str, user: dict = auth):
            try:
                self.workout_logs.delete(
                    int(user["_id"]), _parse_id(log_id, "Workout log not found")
                )
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"message": "Workout log removed"}

        @weight_router.get("")
        def list_weight_logs(
            limit: Optional[int] = None,
            startDate: Optional[str] = Query(None),
            endDate: Optional[str] = Query(None),
            user: dict = auth,
        ):
            return self.weights.fetch_history(
                int(user["_id"]),
                _parse_time(startDate, "startDate"),
                _parse_time(endDate, "endDate"),
                self._limit(limit, 0) or None,
            )

        @weight_router.post("", status_code=201)
        def log_weight(payload: WeightLogInput, user: dict = auth):
            uid = int(user["_id"])
            date = payload.date or self.clock()
            entry_id = self.weights.log(
                uid, to_iso(date), payload.weight, payload.unit, payload.notes
            )
            return self.weights.fetch(uid, entry_id)

        @weight_router.get("/stats")
        def weight_stats(user: dict = auth):
            rows = self.weights.fetch_history(int(user["_id"]))
            entries = [WeightEntry.model_validate(r) for r in rows]
            stats = WeightTrendAnalyzer.weight_stats(entries)
            return WeightStats(**stats).to_wire()

        @weight_router.get("/goal")
        def get_weight_goal(user: dict = auth):
            goal = self.weight_goals.fetch(int(user["_id"]))
            if goal is None:
                raise HTTPException(status_code=404, detail="No weight goal found")
            return goal

        @weight_router.post("/goal", status_code=201)
        def set_weight_goal(payload: WeightGoalInput, user: dict = auth):
            try:
                return self.weight_goals.set(
                    int(user["_id"]),
                    payload.target_weight,
                    to_iso(payload.target_date),
                    payload.unit,
                    payload.notes,
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @weight_router.delete("/goal")
        def delete_weight_goal(user: dict = auth):
            try:
                self.weight_goals.delete(int(user["_id"]))
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"message": "Weight goal removed"}

        @weight_router.put("/goal/complete")
        def complete_weight_goal(user: dict = auth):
            try:
                return self.weight_goals.complete(int(user["_id"]))
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))

        @weight_router.get("/{entry_id}")
        def get_weight_log(entry_id: str, user: dict = auth):
            entry = self.weights.fetch(
                int(user["_id"]), _parse_id(entry_id, "Weight log not found")
            )
            if entry is None:
                raise HTTPException(status_code=404, detail="Weight log not found")
            return entry

        @weight_router.put("/{entry_id}")
        def update_weight_log(entry_id: str, payload: WeightLogUpdate, user: dict = auth):
            uid = int(user["_id"])
            eid = _parse_id(entry_id, "Weight log not found")
            if self.weights.fetch(uid, eid) is None:
                raise HTTPException(status_code=404, detail="Weight log not found")
            changes = payload.model_dump(exclude_none=True)
            if "date" in changes:
                changes["date"] = to_iso(changes["date"])
            try:
                return self.weights.update(uid, eid, changes)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @weight_router.delete("/{entry_id}")
        def delete_weight_log(entry_id: str, user: dict = auth):
            try:
                self.weights.delete(
                    int(user["_id"]), _parse_id(entry_id, "Weight log not found")
                )
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"message": "Weight log removed"}

        @exercises_router.get("")
        def list_exercises(
            category: Optional[str] = None,
            movement_type: Optional[str] = None,
            equipment: Optional[str] = None,
            difficulty: Optional[str] = None,
            target_muscle: Optional[str] = None,
            search: Optional[str] = None,
            limit: Optional[int] = None,
            page: int = 1,
            user: dict = auth,
        ):
            page = self._page(page)
            limit = self._limit(limit, 20)
            rows, total = self.exercises.search(
                int(user["_id"]),
                category,
                movement_type,
                equipment,
                difficulty,
                target_muscle,
                search,
                limit,
                page,
            )
            return {
                "exercises": rows,
                "pagination": {
                    "total": total,
                    "pages": math.ceil(total / limit),
                    "page": page,
                    "limit": limit,
                },
            }

        @exercises_router.get("/favorites")
        def list_favorites(user: dict = auth):
            ids = self.favorites.fetch_ids(int(user["_id"]))
            return {"exercises": self.exercises.fetch_many(ids)}

        @exercises_router.post("/favorites/add/{exercise_id}")
        def add_favorite(exercise_id: str, user: dict = auth):
            uid = int(user["_id"])
            eid = _parse_id(exercise_id, "Exercise not found")
            if self.exercises.fetch(eid) is None:
                raise HTTPException(status_code=404, detail="Exercise not found")
            self.favorites.add(uid, eid)
            return {
                "message": "Exercise added to favorites",
                "favorites": [str(i) for i in self.favorites.fetch_ids(uid)],
            }

        @exercises_router.delete("/favorites/remove/{exercise_id}")
        def remove_favorite(exercise_id: str, user: dict = auth):
            uid = int(user["_id"])
            self.favorites.remove(uid, _parse_id(exercise_id, "Exercise not found"))
            return {
                "message": "Exercise removed from favorites",
                "favorites": [str(i) for i in self.favorites.fetch_ids(uid)],
            }

        @exercises_router.get("/recent")
        def list_recent(user: dict = auth):
            ids = self.recent.fetch_ids(int(user["_id"]))
            return {"exercises": self.exercises.fetch_many(ids)}

        @exercises_router.post("/recent")
        def add_recent(payload: RecentExerciseInput, user: dict = auth):
            uid = int(user["_id"])
            eid = _parse_id(payload.exercise_id, "Exercise not found")
            if self.exercises.fetch(eid) is None:
                raise HTTPException(status_code=404, detail="Exercise not found")
            self.recent.touch(uid, eid)
            return {
                "message": "Recent exercises updated",
                "recent": [str(i) for i in self.recent.fetch_ids(uid)],
            }

        @exercises_router.get("/{exercise_id}")
        def get_exercise(exercise_id: str, user: dict = auth):
            exercise = self.exercises.fetch(_parse_id(exercise_id, "Exercise not found"))
            if exercise is None:
                raise HTTPException(status_code=404, detail="Exercise not found")
            return exercise

        @exercises_router.post("", status_code=201)
        def create_exercise(payload: ExerciseInput, user: dict = auth):
            try:
                eid = self.exercises.add(payload.model_dump(), user_id=int(user["_id"]))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return self.exercises.fetch(eid)

        @exercises_router.put("/{exercise_id}")
        def update_exercise(exercise_id: str, changes: dict = Body(...), user: dict = auth):
            eid = _parse_id(exercise_id, "Exercise not found")
            existing = self.exercises.fetch(eid)
            if existing is None:
                raise HTTPException(status_code=404, detail="Exercise not found")
            try:
                merged = ExerciseInput.model_validate({**existing, **changes})
                return self.exercises.update(eid, int(user["_id"]), merged.model_dump())
            except (ValidationError, ValueError) as e:
                raise HTTPException(status_code=400, detail=str(e))
            except PermissionError as e:
                raise HTTPException(status_code=403, detail=str(e))

        @exercises_router.delete("/{exercise_id}")
        def delete_exercise(exercise_id: str, user: dict = auth):
            try:
                self.exercises.delete(
                    _parse_id(exercise_id, "Exercise not found"), int(user["_id"])
                )
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except PermissionError as e:
                raise HTTPException(status_code=403, detail=str(e))
            return {"message": "Exercise removed"}

        @templates_router.get("")
        def list_templates(user: dict = auth):
            return self.templates.fetch_for_user(int(user["_id"]))

        @templates_router.post("", status_code=201)
        def create_template(payload: WorkoutTemplateInput, user: dict = auth):
            uid = int(user["_id"])
            try:
                tid = self.templates.add(uid, payload.model_dump())
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return self.templates.fetch(uid, tid)

        @templates_router.get("/{template_id}")
        def get_template(template_id: str, user: dict = auth):
            template = self.templates.fetch(
                int(user["_id"]), _parse_id(template_id, "Workout template not found")
            )
            if template is None:
                raise HTTPException(status_code=404, detail="Workout template not found")
            return template

        @templates_router.put("/{template_id}")
        def update_template(template_id: str, changes: dict = Body(...), user: dict = auth):
            uid = int(user["_id"])
            tid = _parse_id(template_id, "Workout template not found")
            existing = self.templates.fetch(uid, tid)
            if existing is None:
                raise HTTPException(status_code=404, detail="Workout template not found")
            try:
                merged = WorkoutTemplateInput.model_validate({**existing, **changes})
                return self.templates.update(uid, tid, merged.model_dump())
            except (ValidationError, ValueError) as e:
                raise HTTPException(status_code=400, detail=str(e))

        @templates_router.delete("/{template_id}")
        def delete_template(template_id: str, user: dict = auth):
            try:
                self.templates.delete(
                    int(user["_id"]), _parse_id(template_id, "Workout template not found")
                )
            except ValueError as e:
                raise HTTPException(status_code=404, detail=str(e))
            return {"message": "Workout template removed"}

        self.app.include_router(users_router)
        self.app.include_router(stats_router)
        self.app.include_router(logs_router)
        self.app.include_router(weight_router)
        self.app.include_router(exercises_router)
        self.app.include_router(templates_router)


def create_app(db_path: Optional[str] = None) -> FastAPI:
    return FitnessAPI(db_path or os.environ.get("FITDASH_DB", "fitdash.db")).app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), port=5000)
