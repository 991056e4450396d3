from __future__ import annotations
import datetime
from typing import Annotated, Any, List, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _ensure_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


Identifier = Annotated[str, BeforeValidator(lambda v: str(v) if v is not None else v)]
Timestamp = Annotated[datetime.datetime, AfterValidator(_ensure_utc)]
WeightUnit = Literal["kg", "lbs"]


class CamelModel(BaseModel):
    """Documents whose wire names are camelCase (workout logs, weights)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SnakeModel(BaseModel):
    """Documents whose wire names are snake_case (exercises, templates)."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class WorkoutSet(CamelModel):
    model_config = ConfigDict(frozen=True)

    set_number: int = Field(default=1, ge=1)
    # kept as sent; unparseable values count as 0 volume
    weight: Optional[Any] = 0
    reps: Optional[Any] = 0
    completed: bool = True
    notes: Optional[str] = None


class WorkoutLogInput(CamelModel):
    exercise_id: Optional[Identifier] = Field(default=None, alias="exercise")
    start_time: Timestamp
    end_time: Optional[Timestamp] = None
    total_duration: float = Field(default=0, ge=0)
    rest_time: Optional[float] = Field(default=None, ge=0)
    active_time: Optional[float] = Field(default=None, ge=0)
    sets: List[WorkoutSet] = Field(default_factory=list)
    notes: Optional[str] = None


class WorkoutLogEntry(WorkoutLogInput):
    """A logged workout for a single exercise. Read-only once fetched."""

    model_config = ConfigDict(frozen=True)

    id: Identifier = Field(alias="_id")
    exercise_name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _lift_exercise(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "exercise" not in data and "exerciseId" in data:
            data["exercise"] = data.pop("exerciseId")
        exercise = data.get("exercise")
        if isinstance(exercise, dict):
            data["exercise"] = exercise.get("_id") or exercise.get("id")
            if not data.get("exerciseName") and not data.get("exercise_name"):
                data["exerciseName"] = exercise.get("name")
        return data


class Pagination(CamelModel):
    total: int = Field(default=0, ge=0)
    pages: int = Field(default=0, ge=0)
    page: Optional[int] = None
    limit: Optional[int] = None


class WorkoutLogPage(CamelModel):
    workouts: List[WorkoutLogEntry] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class WeightLogInput(CamelModel):
    weight: float = Field(gt=0)
    unit: WeightUnit = "kg"
    notes: Optional[str] = None
    date: Optional[Timestamp] = None


class WeightLogUpdate(CamelModel):
    weight: Optional[float] = Field(default=None, gt=0)
    unit: Optional[WeightUnit] = None
    notes: Optional[str] = None
    date: Optional[Timestamp] = None


class WeightEntry(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[Identifier] = Field(default=None, alias="_id")
    date: Timestamp
    weight: float = Field(gt=0)
    unit: WeightUnit = "kg"
    notes: Optional[str] = None
    body_fat: Optional[float] = None
    time_of_day: Optional[str] = None


class WeightGoalInput(CamelModel):
    target_weight: float = Field(gt=0)
    target_date: Timestamp
    unit: WeightUnit = "kg"
    notes: Optional[str] = None


class WeightGoal(WeightGoalInput):
    id: Optional[Identifier] = Field(default=None, alias="_id")
    completed: bool = False


class WeightStats(CamelModel):
    current_weight: Optional[float] = None
    starting_weight: Optional[float] = None
    weight_change: float = 0.0
    weight_change_pct: float = 0.0
    min_weight: float = 0.0
    max_weight: float = 0.0
    avg_weight: float = 0.0
    count: int = 0
    unit: WeightUnit = "kg"


class ActivityBucket(CamelModel):
    day: int = Field(alias="_id", ge=1, le=7)
    count: int = Field(default=0, ge=0)


class DashboardStats(CamelModel):
    workouts_this_month: int = 0
    avg_workout_duration: float = 0.0
    weekly_activity: List[ActivityBucket] = Field(default_factory=list)
    total_weight_lifted: float = 0.0
    recent_workouts: List[WorkoutLogEntry] = Field(default_factory=list)
    message: Optional[str] = None

    def activity_by_day(self) -> List[int]:
        """Return seven counts, Sunday first, filling omitted days with 0."""
        counts = [0] * 7
        for bucket in self.weekly_activity:
            counts[bucket.day - 1] += bucket.count
        return counts


class TargetMuscles(SnakeModel):
    primary: List[str] = Field(default_factory=list)
    secondary: List[str] = Field(default_factory=list)


class ExerciseMedia(SnakeModel):
    image_url: Optional[str] = None
    video_url: Optional[str] = None


class ExerciseInput(SnakeModel):
    name: str = Field(min_length=1)
    description: str = ""
    instructions: str = ""
    target_muscles: TargetMuscles = Field(default_factory=TargetMuscles)
    category: str = ""
    movement_type: str = ""
    equipment: str = ""
    difficulty: str = ""
    media: ExerciseMedia = Field(default_factory=ExerciseMedia)


class Exercise(ExerciseInput):
    id: Identifier = Field(alias="_id")
    is_custom: bool = False


class ExercisePage(SnakeModel):
    exercises: List[Exercise] = Field(default_factory=list)
    pagination: Optional[Pagination] = None


class RecentExerciseInput(CamelModel):
    exercise_id: Identifier


class DiscordProfile(SnakeModel):
    id: Identifier
    username: str
    avatar: Optional[str] = None
    email: Optional[str] = None


class User(CamelModel):
    id: Identifier = Field(alias="_id")
    name: str
    email: str = ""
    token: Optional[str] = None
    discord: Optional[DiscordProfile] = None
    auth_provider: Literal["local", "discord"] = "local"
    avatar_url: Optional[str] = None


class RegisterInput(SnakeModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)


class LoginInput(SnakeModel):
    email: str
    password: str


class TemplateExercise(SnakeModel):
    exercise_name: str
    sets: Any = None
    intensity: str = ""
    notes: str = ""
    variations: List[str] = Field(default_factory=list)


class TemplateDay(SnakeModel):
    day_number: int
    exercises: List[TemplateExercise] = Field(default_factory=list)
    day_notes: str = ""


class TemplateFocus(SnakeModel):
    strength: bool = False
    hypertrophy: bool = False
    endurance: bool = False
    mobility: bool = False


class WorkoutTemplateInput(SnakeModel):
    plan_name: str = Field(min_length=1)
    description: str = ""
    time: str = ""
    difficulty_level: Literal["Beginner", "Intermediate", "Advanced", ""] = ""
    focus: TemplateFocus = Field(default_factory=TemplateFocus)
    tags: List[str] = Field(default_factory=list)
    days: List[TemplateDay] = Field(default_factory=list)


class WorkoutTemplate(WorkoutTemplateInput):
    id: Identifier = Field(alias="_id")
    user_id: Optional[Identifier] = None
    created_date: Optional[Timestamp] = None
    last_modified: Optional[Timestamp] = None


WeightEntryList = TypeAdapter(List[WeightEntry])
WorkoutTemplateList = TypeAdapter(List[WorkoutTemplate])
