from __future__ import annotations
import datetime
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import requests
from pydantic import BaseModel, TypeAdapter, ValidationError

from schemas import (
    DashboardStats,
    Exercise,
    ExerciseInput,
    ExercisePage,
    RecentExerciseInput,
    User,
    WeightEntry,
    WeightEntryList,
    WeightGoal,
    WeightGoalInput,
    WeightLogInput,
    WeightLogUpdate,
    WeightStats,
    WorkoutLogEntry,
    WorkoutLogInput,
    WorkoutLogPage,
    WorkoutTemplate,
    WorkoutTemplateInput,
    WorkoutTemplateList,
)
from settings_schema import default_api_url

if TYPE_CHECKING:
    from session import AuthSession

LOGGER = logging.getLogger(__name__)

Payload = Union[BaseModel, Dict[str, Any]]


class ApiError(Exception):
    """A request failed; ``status_code`` is ``None`` for transport errors."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationError(ApiError):
    pass


class MalformedResponseError(ApiError):
    pass


def _query_value(value: Any) -> Any:
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value.isoformat()
    if isinstance(value, datetime.date):
        return value.isoformat()
    return value


class FitnessClient:
    """REST client for the fitness API.

    ``http`` is anything with a ``requests``-style ``request`` method; it
    defaults to a ``requests.Session``. When ``auth`` is given its token is
    sent as a bearer token and a 401 response logs it out.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        auth: Optional[AuthSession] = None,
        http: Any = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = (base_url or default_api_url()).rstrip("/")
        self.auth = auth
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        token = self.auth.token if self.auth else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _body(payload: Optional[Payload]) -> Optional[dict]:
        if payload is None:
            return None
        if isinstance(payload, BaseModel):
            return payload.model_dump(mode="json", by_alias=True, exclude_none=True)
        return dict(payload)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Payload] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        query = {
            k: _query_value(v) for k, v in (params or {}).items() if v not in (None, "")
        }
        LOGGER.debug("%s %s %s", method, url, query or "")
        try:
            resp = self.http.request(
                method,
                url,
                params=query or None,
                json=self._body(payload),
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            LOGGER.error("%s %s failed: %s", method, url, e)
            raise ApiError(f"Network error: {e}") from e
        try:
            data = resp.json()
        except ValueError:
            data = None
        if resp.status_code >= 400:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("detail")
            if not isinstance(message, str):
                message = "Something went wrong"
            LOGGER.error("%s %s -> %s: %s", method, url, resp.status_code, message)
            if resp.status_code == 401:
                if self.auth is not None:
                    self.auth.force_logout()
                raise AuthenticationError(message, 401)
            raise ApiError(message, resp.status_code)
        return data

    @staticmethod
    def _parse(schema: Any, data: Any) -> Any:
        try:
            if isinstance(schema, TypeAdapter):
                return schema.validate_python(data)
            return schema.model_validate(data)
        except ValidationError as e:
            LOGGER.error("Malformed response: %s", e)
            raise MalformedResponseError(f"Malformed response: {e}") from e

    # auth

    def register(self, name: str, email: str, password: str) -> User:
        data = self._request(
            "POST",
            "/users/register",
            payload={"name": name, "email": email, "password": password},
        )
        return self._parse(User, data)

    def login(self, email: str, password: str) -> User:
        data = self._request(
            "POST", "/users/login", payload={"email": email, "password": password}
        )
        return self._parse(User, data)

    def _user_from(self, data: Any) -> User:
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            data = data["user"]
        return self._parse(User, data)

    def profile(self) -> User:
        return self._user_from(self._request("GET", "/users/profile"))

    def current_user(self) -> User:
        return self._user_from(self._request("GET", "/auth/me"))

    # dashboard and workout logs

    def dashboard_stats(self) -> DashboardStats:
        return self._parse(DashboardStats, self._request("GET", "/stats/dashboard"))

    def workout_logs(
        self,
        start_date: Optional[datetime.datetime] = None,
        end_date: Optional[datetime.datetime] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        exercise_id: Optional[str] = None,
    ) -> WorkoutLogPage:
        params = {
            "startDate": start_date,
            "endDate": end_date,
            "page": page,
            "limit": limit,
            "exerciseId": exercise_id,
        }
        return self._parse(WorkoutLogPage, self._request("GET", "/workout-log", params))

    def workout_log(self, log_id: str) -> WorkoutLogEntry:
        return self._parse(WorkoutLogEntry, self._request("GET", f"/workout-log/{log_id}"))

    def log_workout(self, workout: Union[WorkoutLogInput, dict]) -> WorkoutLogEntry:
        data = self._request("POST", "/workout-log", payload=workout)
        return self._parse(WorkoutLogEntry, data)

    def delete_workout_log(self, log_id: str) -> dict:
        return self._request("DELETE", f"/workout-log/{log_id}")

    # weight

    def weight_logs(
        self,
        limit: Optional[int] = None,
        start_date: Optional[datetime.datetime] = None,
        end_date: Optional[datetime.datetime] = None,
    ) -> List[WeightEntry]:
        params = {"limit": limit, "startDate": start_date, "endDate": end_date}
        return self._parse(WeightEntryList, self._request("GET", "/weight", params))

    def weight_log(self, entry_id: str) -> WeightEntry:
        return self._parse(WeightEntry, self._request("GET", f"/weight/{entry_id}"))

    def log_weight(self, entry: Union[WeightLogInput, dict]) -> WeightEntry:
        return self._parse(WeightEntry, self._request("POST", "/weight", payload=entry))

    def update_weight_log(
        self, entry_id: str, changes: Union[WeightLogUpdate, dict]
    ) -> WeightEntry:
        data = self._request("PUT", f"/weight/{entry_id}", payload=changes)
        return self._parse(WeightEntry, data)

    def delete_weight_log(self, entry_id: str) -> dict:
        return self._request("DELETE", f"/weight/{entry_id}")

    def weight_stats(self) -> WeightStats:
        return self._parse(WeightStats, self._request("GET", "/weight/stats"))

    def weight_goal(self) -> Optional[WeightGoal]:
        """Return the current goal, or ``None`` when the user has not set one."""
        try:
            data = self._request("GET", "/weight/goal")
        except ApiError as e:
            if e.status_code == 404:
                return None
            raise
        return self._parse(WeightGoal, data)

    def set_weight_goal(self, goal: Union[WeightGoalInput, dict]) -> WeightGoal:
        return self._parse(WeightGoal, self._request("POST", "/weight/goal", payload=goal))

    def delete_weight_goal(self) -> dict:
        return self._request("DELETE", "/weight/goal")

    def complete_weight_goal(self) -> WeightGoal:
        return self._parse(WeightGoal, self._request("PUT", "/weight/goal/complete"))

    # exercises

    def exercises(
        self,
        category: Optional[str] = None,
        movement_type: Optional[str] = None,
        equipment: Optional[str] = None,
        difficulty: Optional[str] = None,
        target_muscle: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        page: Optional[int] = None,
    ) -> ExercisePage:
        params = {
            "category": category,
            "movement_type": movement_type,
            "equipment": equipment,
            "difficulty": difficulty,
            "target_muscle": target_muscle,
            "search": search,
            "limit": limit,
            "page": page,
        }
        return self._parse(ExercisePage, self._request("GET", "/exercises", params))

    def exercise(self, exercise_id: str) -> Exercise:
        return self._parse(Exercise, self._request("GET", f"/exercises/{exercise_id}"))

    def create_exercise(self, exercise: Union[ExerciseInput, dict]) -> Exercise:
        return self._parse(Exercise, self._request("POST", "/exercises", payload=exercise))

    def update_exercise(self, exercise_id: str, changes: dict) -> Exercise:
        data = self._request("PUT", f"/exercises/{exercise_id}", payload=changes)
        return self._parse(Exercise, data)

    def delete_exercise(self, exercise_id: str) -> dict:
        return self._request("DELETE", f"/exercises/{exercise_id}")

    def favorites(self) -> List[Exercise]:
        data = self._request("GET", "/exercises/favorites")
        return self._parse(ExercisePage, data).exercises

    def add_favorite(self, exercise_id: str) -> dict:
        return self._request("POST", f"/exercises/favorites/add/{exercise_id}")

    def remove_favorite(self, exercise_id: str) -> dict:
        return self._request("DELETE", f"/exercises/favorites/remove/{exercise_id}")

    def recent_exercises(self) -> List[Exercise]:
        data = self._request("GET", "/exercises/recent")
        return self._parse(ExercisePage, data).exercises

    def add_recent_exercise(self, exercise_id: str) -> dict:
        payload = RecentExerciseInput(exercise_id=exercise_id)
        return self._request("POST", "/exercises/recent", payload=payload)

    # workout templates

    def templates(self) -> List[WorkoutTemplate]:
        return self._parse(WorkoutTemplateList, self._request("GET", "/workout-templates"))

    def template(self, template_id: str) -> WorkoutTemplate:
        data = self._request("GET", f"/workout-templates/{template_id}")
        return self._parse(WorkoutTemplate, data)

    def create_template(
        self, template: Union[WorkoutTemplateInput, dict]
    ) -> WorkoutTemplate:
        data = self._request("POST", "/workout-templates", payload=template)
        return self._parse(WorkoutTemplate, data)

    def update_template(self, template_id: str, changes: dict) -> WorkoutTemplate:
        data = self._request("PUT", f"/workout-templates/{template_id}", payload=changes)
        return self._parse(WorkoutTemplate, data)

    def delete_template(self, template_id: str) -> dict:
        return self._request("DELETE", f"/workout-templates/{template_id}")
