import sqlite3
import csv
import os
import datetime
import json
import hashlib
import hmac
import secrets
from contextlib import contextmanager
from typing import List, Tuple, Optional, Iterable


def to_iso(value: datetime.datetime) -> str:
    """Return a UTC timestamp string that sorts chronologically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    value = value.astimezone(datetime.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def utc_now() -> str:
    return to_iso(datetime.datetime.now(datetime.timezone.utc))


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "users": (
            """CREATE TABLE users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT,
                    salt TEXT,
                    auth_provider TEXT NOT NULL DEFAULT 'local',
                    discord TEXT,
                    avatar_url TEXT,
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "name",
                "email",
                "password_hash",
                "salt",
                "auth_provider",
                "discord",
                "avatar_url",
                "created_at",
            ],
        ),
        "sessions": (
            """CREATE TABLE sessions (
                    token TEXT PRIMARY KEY,
                    user_id INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE CASCADE
                );""",
            ["token", "user_id", "created_at"],
        ),
        "exercises": (
            """CREATE TABLE exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    instructions TEXT NOT NULL DEFAULT '',
                    target_muscles TEXT NOT NULL DEFAULT '{}',
                    category TEXT NOT NULL DEFAULT '',
                    movement_type TEXT NOT NULL DEFAULT '',
                    equipment TEXT NOT NULL DEFAULT '',
                    difficulty TEXT NOT NULL DEFAULT '',
                    media TEXT NOT NULL DEFAULT '{}',
                    is_custom INTEGER NOT NULL DEFAULT 0,
                    user_id INTEGER
                );""",
            [
                "id",
                "name",
                "description",
                "instructions",
                "target_muscles",
                "category",
                "movement_type",
                "equipment",
                "difficulty",
                "media",
                "is_custom",
                "user_id",
            ],
        ),
        "favorite_exercises": (
            """CREATE TABLE favorite_exercises (
                    user_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    PRIMARY KEY (user_id, exercise_id),
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            ["user_id", "exercise_id"],
        ),
        "recent_exercises": (
            """CREATE TABLE recent_exercises (
                    user_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    seq INTEGER NOT NULL,
                    used_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, exercise_id),
                    FOREIGN KEY(exercise_id) REFERENCES exercises(id) ON DELETE CASCADE
                );""",
            ["user_id", "exercise_id", "seq", "used_at"],
        ),
        "workout_logs": (
            """CREATE TABLE workout_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    exercise_id INTEGER,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    total_duration REAL NOT NULL DEFAULT 0,
                    rest_time REAL,
                    active_time REAL,
                    sets TEXT NOT NULL DEFAULT '[]',
                    notes TEXT,
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "user_id",
                "exercise_id",
                "start_time",
                "end_time",
                "total_duration",
                "rest_time",
                "active_time",
                "sets",
                "notes",
                "created_at",
            ],
        ),
        "weight_logs": (
            """CREATE TABLE weight_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    weight REAL NOT NULL,
                    unit TEXT NOT NULL DEFAULT 'kg',
                    notes TEXT
                );""",
            ["id", "user_id", "date", "weight", "unit", "notes"],
        ),
        "weight_goals": (
            """CREATE TABLE weight_goals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL UNIQUE,
                    target_weight REAL NOT NULL,
                    target_date TEXT NOT NULL,
                    unit TEXT NOT NULL DEFAULT 'kg',
                    notes TEXT,
                    completed INTEGER NOT NULL DEFAULT 0
                );""",
            [
                "id",
                "user_id",
                "target_weight",
                "target_date",
                "unit",
                "notes",
                "completed",
            ],
        ),
        "workout_templates": (
            """CREATE TABLE workout_templates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    plan_name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    time TEXT NOT NULL DEFAULT '',
                    difficulty_level TEXT NOT NULL DEFAULT '',
                    focus TEXT NOT NULL DEFAULT '{}',
                    tags TEXT NOT NULL DEFAULT '[]',
                    days TEXT NOT NULL DEFAULT '[]',
                    created_date TEXT NOT NULL,
                    last_modified TEXT NOT NULL
                );""",
            [
                "id",
                "user_id",
                "plan_name",
                "description",
                "time",
                "difficulty_level",
                "focus",
                "tags",
                "days",
                "created_date",
                "last_modified",
            ],
        ),
    }

    def __init__(self, db_path: str = "fitdash.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._import_exercise_catalog_data()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=on;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            conn.execute("PRAGMA foreign_keys=off;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            conn.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)
        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            conn.execute(f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;")
        conn.execute(f"DROP TABLE {table}_old;")

    def _import_exercise_catalog_data(self) -> None:
        csv_path = os.path.join(os.path.dirname(__file__), "exercise_catalog.csv")
        if not os.path.exists(csv_path):
            return
        with self._connection() as conn:
            count = conn.execute(
                "SELECT COUNT(*) FROM exercises WHERE is_custom = 0;"
            ).fetchone()[0]
            if count:
                return
            with open(csv_path, newline="", encoding="utf-8") as csvfile:
                reader = csv.DictReader(csvfile)
                for row in reader:
                    muscles = {
                        "primary": _split(row.get("Primary Muscles", "")),
                        "secondary": _split(row.get("Secondary Muscles", "")),
                    }
                    conn.execute(
                        "INSERT INTO exercises (name, description, target_muscles, category, movement_type, equipment, difficulty, is_custom) "
                        "VALUES (?, ?, ?, ?, ?, ?, ?, 0);",
                        (
                            row["Name"],
                            row.get("Description", ""),
                            json.dumps(muscles),
                            row.get("Category", ""),
                            row.get("Movement Type", ""),
                            row.get("Equipment", ""),
                            row.get("Difficulty", ""),
                        ),
                    )


def _split(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split("|") if v.strip()]


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()


class UserRepository(BaseRepository):
    """Repository for user accounts and their auth tokens."""

    ITERATIONS = 100_000

    @classmethod
    def _hash(cls, password: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256", password.encode("utf-8"), bytes.fromhex(salt), cls.ITERATIONS
        ).hex()

    @staticmethod
    def _row_to_dict(row: Tuple) -> dict:
        user = {
            "_id": str(row[0]),
            "name": row[1],
            "email": row[2],
            "authProvider": row[3],
        }
        if row[4]:
            user["discord"] = json.loads(row[4])
        if row[5]:
            user["avatarUrl"] = row[5]
        return user

    def create(self, name: str, email: str, password: str) -> int:
        email = email.strip().lower()
        if self.fetch_all("SELECT id FROM users WHERE email = ?;", (email,)):
            raise ValueError("User already exists")
        salt = secrets.token_hex(16)
        return self.execute(
            "INSERT INTO users (name, email, password_hash, salt, created_at) VALUES (?, ?, ?, ?, ?);",
            (name, email, self._hash(password, salt), salt, utc_now()),
        )

    def authenticate(self, email: str, password: str) -> dict:
        rows = self.fetch_all(
            "SELECT id, password_hash, salt FROM users WHERE email = ?;",
            (email.strip().lower(),),
        )
        if not rows or not rows[0][1]:
            raise ValueError("Invalid email or password")
        user_id, stored, salt = rows[0]
        if not hmac.compare_digest(stored, self._hash(password, salt)):
            raise ValueError("Invalid email or password")
        return self.fetch(int(user_id))

    def fetch(self, user_id: int) -> Optional[dict]:
        rows = self.fetch_all(
            "SELECT id, name, email, auth_provider, discord, avatar_url FROM users WHERE id = ?;",
            (user_id,),
        )
        return self._row_to_dict(rows[0]) if rows else None

    def create_token(self, user_id: int) -> str:
        token = secrets.token_hex(32)
        self.execute(
            "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?);",
            (token, user_id, utc_now()),
        )
        return token

    def user_for_token(self, token: str) -> Optional[dict]:
        rows = self.fetch_all("SELECT user_id FROM sessions WHERE token = ?;", (token,))
        if not rows:
            return None
        return self.fetch(int(rows[0][0]))

    def revoke_token(self, token: str) -> None:
        self.execute("DELETE FROM sessions WHERE token = ?;", (token,))


class ExerciseRepository(BaseRepository):
    """Repository for the exercise database, built-in and custom."""

    _COLUMNS = (
        "id, name, description, instructions, target_muscles, category, "
        "movement_type, equipment, difficulty, media, is_custom, user_id"
    )
    _FIELDS = (
        "name",
        "description",
        "instructions",
        "category",
        "movement_type",
        "equipment",
        "difficulty",
    )

    @staticmethod
    def _row_to_dict(row: Tuple) -> dict:
        return {
            "_id": str(row[0]),
            "name": row[1],
            "description": row[2],
            "instructions": row[3],
            "target_muscles": json.loads(row[4] or "{}"),
            "category": row[5],
            "movement_type": row[6],
            "equipment": row[7],
            "difficulty": row[8],
            "media": json.loads(row[9] or "{}"),
            "is_custom": bool(row[10]),
            "user_id": str(row[11]) if row[11] is not None else None,
        }

    def add(self, data: dict, user_id: Optional[int] = None) -> int:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValueError("name required")
        return self.execute(
            "INSERT INTO exercises (name, description, instructions, target_muscles, category, movement_type, equipment, difficulty, media, is_custom, user_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                name,
                data.get("description") or "",
                data.get("instructions") or "",
                json.dumps(data.get("target_muscles") or {}),
                data.get("category") or "",
                data.get("movement_type") or "",
                data.get("equipment") or "",
                data.get("difficulty") or "",
                json.dumps(data.get("media") or {}),
                1 if user_id is not None else 0,
                user_id,
            ),
        )

    def fetch(self, exercise_id: int) -> Optional[dict]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercises WHERE id = ?;", (exercise_id,)
        )
        return self._row_to_dict(rows[0]) if rows else None

    def fetch_many(self, ids: Iterable[int]) -> List[dict]:
        """Return exercises for ``ids`` in the given order, skipping unknown ids."""
        result = []
        for exercise_id in ids:
            exercise = self.fetch(exercise_id)
            if exercise is not None:
                result.append(exercise)
        return result

    def search(
        self,
        user_id: Optional[int] = None,
        category: Optional[str] = None,
        movement_type: Optional[str] = None,
        equipment: Optional[str] = None,
        difficulty: Optional[str] = None,
        target_muscle: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        page: int = 1,
    ) -> Tuple[List[dict], int]:
        """Return one page of matching exercises and the total match count."""
        where = " WHERE (is_custom = 0 OR user_id = ?)"
        params: list = [user_id]
        for column, value in (
            ("category", category),
            ("movement_type", movement_type),
            ("equipment", equipment),
            ("difficulty", difficulty),
        ):
            if value:
                where += f" AND LOWER({column}) = LOWER(?)"
                params.append(value)
        if target_muscle:
            where += " AND LOWER(target_muscles) LIKE ?"
            params.append(f'%"{target_muscle.lower()}"%')
        if search:
            where += " AND (name LIKE ? OR description LIKE ?)"
            params.extend([f"%{search}%", f"%{search}%"])
        total = self.fetch_all(f"SELECT COUNT(*) FROM exercises{where};", tuple(params))[0][0]
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM exercises{where} ORDER BY name LIMIT ? OFFSET ?;",
            tuple(params) + (limit, (page - 1) * limit),
        )
        return [self._row_to_dict(r) for r in rows], int(total)

    def _ensure_owned(self, exercise_id: int, user_id: int) -> None:
        exercise = self.fetch(exercise_id)
        if exercise is None:
            raise ValueError("Exercise not found")
        if not exercise["is_custom"] or exercise["user_id"] != str(user_id):
            raise PermissionError("Only your custom exercises can be changed")

    def update(self, exercise_id: int, user_id: int, changes: dict) -> dict:
        self._ensure_owned(exercise_id, user_id)
        if "name" in changes and not (changes["name"] or "").strip():
            raise ValueError("name required")
        sets = []
        params: list = []
        for field in self._FIELDS:
            if field in changes and changes[field] is not None:
                sets.append(f"{field} = ?")
                params.append(changes[field])
        for field in ("target_muscles", "media"):
            if changes.get(field) is not None:
                sets.append(f"{field} = ?")
                params.append(json.dumps(changes[field]))
        if sets:
            params.append(exercise_id)
            self.execute(f"UPDATE exercises SET {', '.join(sets)} WHERE id = ?;", tuple(params))
        return self.fetch(exercise_id)

    def delete(self, exercise_id: int, user_id: int) -> None:
        self._ensure_owned(exercise_id, user_id)
        self.execute("DELETE FROM exercises WHERE id = ?;", (exercise_id,))


class FavoriteExerciseRepository(BaseRepository):
    """Repository for managing favorite exercises."""

    def add(self, user_id: int, exercise_id: int) -> None:
        self.execute(
            "INSERT OR IGNORE INTO favorite_exercises (user_id, exercise_id) VALUES (?, ?);",
            (user_id, exercise_id),
        )

    def remove(self, user_id: int, exercise_id: int) -> None:
        self.execute(
            "DELETE FROM favorite_exercises WHERE user_id = ? AND exercise_id = ?;",
            (user_id, exercise_id),
        )

    def fetch_ids(self, user_id: int) -> List[int]:
        rows = self.fetch_all(
            "SELECT exercise_id FROM favorite_exercises WHERE user_id = ? ORDER BY exercise_id;",
            (user_id,),
        )
        return [int(r[0]) for r in rows]


class RecentExerciseRepository(BaseRepository):
    """Most recently used exercises per user, newest first."""

    MAX_RECENT = 20

    def touch(self, user_id: int, exercise_id: int) -> None:
        with self._connection() as conn:
            seq = conn.execute(
                "SELECT COALESCE(MAX(seq), 0) + 1 FROM recent_exercises WHERE user_id = ?;",
                (user_id,),
            ).fetchone()[0]
            conn.execute(
                "INSERT INTO recent_exercises (user_id, exercise_id, seq, used_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(user_id, exercise_id) DO UPDATE SET seq=excluded.seq, used_at=excluded.used_at;",
                (user_id, exercise_id, seq, utc_now()),
            )
            conn.execute(
                "DELETE FROM recent_exercises WHERE user_id = ? AND exercise_id NOT IN "
                "(SELECT exercise_id FROM recent_exercises WHERE user_id = ? ORDER BY seq DESC LIMIT ?);",
                (user_id, user_id, self.MAX_RECENT),
            )

    def fetch_ids(self, user_id: int) -> List[int]:
        rows = self.fetch_all(
            "SELECT exercise_id FROM recent_exercises WHERE user_id = ? ORDER BY seq DESC;",
            (user_id,),
        )
        return [int(r[0]) for r in rows]


class WorkoutLogRepository(BaseRepository):
    """Repository for logged workouts."""

    _SELECT = (
        "SELECT w.id, w.user_id, w.exercise_id, e.name, w.start_time, w.end_time, "
        "w.total_duration, w.rest_time, w.active_time, w.sets, w.notes, w.created_at "
        "FROM workout_logs w LEFT JOIN exercises e ON e.id = w.exercise_id"
    )

    @staticmethod
    def _row_to_dict(row: Tuple) -> dict:
        log = {
            "_id": str(row[0]),
            "user": str(row[1]),
            "exercise": str(row[2]) if row[2] is not None else None,
            "exerciseName": row[3],
            "startTime": row[4],
            "endTime": row[5],
            "totalDuration": row[6],
            "restTime": row[7],
            "activeTime": row[8],
            "sets": json.loads(row[9] or "[]"),
            "notes": row[10],
            "createdAt": row[11],
        }
        return {k: v for k, v in log.items() if v is not None}

    def add(
        self,
        user_id: int,
        exercise_id: Optional[int],
        start_time: str,
        end_time: Optional[str],
        total_duration: float,
        rest_time: Optional[float],
        active_time: Optional[float],
        sets: List[dict],
        notes: Optional[str] = None,
    ) -> int:
        if total_duration < 0:
            raise ValueError("duration must not be negative")
        return self.execute(
            "INSERT INTO workout_logs (user_id, exercise_id, start_time, end_time, total_duration, rest_time, active_time, sets, notes, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                user_id,
                exercise_id,
                start_time,
                end_time,
                total_duration,
                rest_time,
                active_time,
                json.dumps(sets),
                notes,
                utc_now(),
            ),
        )

    def fetch(self, user_id: int, log_id: int) -> Optional[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE w.id = ? AND w.user_id = ?;", (log_id, user_id)
        )
        return self._row_to_dict(rows[0]) if rows else None

    @staticmethod
    def _filters(
        user_id: int,
        start: Optional[str],
        end: Optional[str],
        exercise_id: Optional[int],
    ) -> Tuple[str, list]:
        where = " WHERE w.user_id = ?"
        params: list = [user_id]
        if start:
            where += " AND w.start_time >= ?"
            params.append(start)
        if end:
            where += " AND w.start_time <= ?"
            params.append(end)
        if exercise_id is not None:
            where += " AND w.exercise_id = ?"
            params.append(exercise_id)
        return where, params

    def fetch_page(
        self,
        user_id: int,
        start: Optional[str] = None,
        end: Optional[str] = None,
        exercise_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[dict], int]:
        """Return one page of logs, newest first, and the total match count."""
        where, params = self._filters(user_id, start, end, exercise_id)
        total = self.fetch_all(
            f"SELECT COUNT(*) FROM workout_logs w{where};", tuple(params)
        )[0][0]
        rows = self.fetch_all(
            f"{self._SELECT}{where} ORDER BY w.start_time DESC, w.id DESC LIMIT ? OFFSET ?;",
            tuple(params) + (limit, (page - 1) * limit),
        )
        return [self._row_to_dict(r) for r in rows], int(total)

    def fetch_range(
        self, user_id: int, start: Optional[str] = None, end: Optional[str] = None
    ) -> List[dict]:
        where, params = self._filters(user_id, start, end, None)
        rows = self.fetch_all(
            f"{self._SELECT}{where} ORDER BY w.start_time DESC;", tuple(params)
        )
        return [self._row_to_dict(r) for r in rows]

    def delete(self, user_id: int, log_id: int) -> None:
        if self.fetch(user_id, log_id) is None:
            raise ValueError("Workout log not found")
        self.execute(
            "DELETE FROM workout_logs WHERE id = ? AND user_id = ?;", (log_id, user_id)
        )


class WeightLogRepository(BaseRepository):
    """Repository for body weight logs."""

    @staticmethod
    def _row_to_dict(row: Tuple) -> dict:
        entry = {
            "_id": str(row[0]),
            "date": row[1],
            "weight": float(row[2]),
            "unit": row[3],
            "notes": row[4],
        }
        return {k: v for k, v in entry.items() if v is not None}

    def log(
        self,
        user_id: int,
        date: str,
        weight: float,
        unit: str = "kg",
        notes: Optional[str] = None,
    ) -> int:
        if weight <= 0:
            raise ValueError("weight must be positive")
        return self.execute(
            "INSERT INTO weight_logs (user_id, date, weight, unit, notes) VALUES (?, ?, ?, ?, ?);",
            (user_id, date, weight, unit, notes),
        )

    def fetch(self, user_id: int, entry_id: int) -> Optional[dict]:
        rows = self.fetch_all(
            "SELECT id, date, weight, unit, notes FROM weight_logs WHERE id = ? AND user_id = ?;",
            (entry_id, user_id),
        )
        return self._row_to_dict(rows[0]) if rows else None

    def fetch_history(
        self,
        user_id: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Return entries newest first."""
        query = "SELECT id, date, weight, unit, notes FROM weight_logs WHERE user_id = ?"
        params: list = [user_id]
        if start_date:
            query += " AND date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND date <= ?"
            params.append(end_date)
        query += " ORDER BY date DESC, id DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)
        rows = self.fetch_all(query + ";", tuple(params))
        return [self._row_to_dict(r) for r in rows]

    def update(self, user_id: int, entry_id: int, changes: dict) -> dict:
        if self.fetch(user_id, entry_id) is None:
            raise ValueError("Weight log not found")
        if changes.get("weight") is not None and changes["weight"] <= 0:
            raise ValueError("weight must be positive")
        sets = []
        params: list = []
        for field in ("date", "weight", "unit", "notes"):
            if changes.get(field) is not None:
                sets.append(f"{field} = ?")
                params.append(changes[field])
        if sets:
            params.extend([entry_id, user_id])
            self.execute(
                f"UPDATE weight_logs SET {', '.join(sets)} WHERE id = ? AND user_id = ?;",
                tuple(params),
            )
        return self.fetch(user_id, entry_id)

    def delete(self, user_id: int, entry_id: int) -> None:
        if self.fetch(user_id, entry_id) is None:
            raise ValueError("Weight log not found")
        self.execute(
            "DELETE FROM weight_logs WHERE id = ? AND user_id = ?;", (entry_id, user_id)
        )


class WeightGoalRepository(BaseRepository):
    """One weight goal per user; setting a new goal replaces the old one."""

    @staticmethod
    def _row_to_dict(row: Tuple) -> dict:
        goal = {
            "_id": str(row[0]),
            "targetWeight": float(row[1]),
            "targetDate": row[2],
            "unit": row[3],
            "notes": row[4],
            "completed": bool(row[5]),
        }
        return {k: v for k, v in goal.items() if v is not None}

    def set(
        self,
        user_id: int,
        target_weight: float,
        target_date: str,
        unit: str = "kg",
        notes: Optional[str] = None,
    ) -> dict:
        if target_weight <= 0:
            raise ValueError("target weight must be positive")
        with self._connection() as conn:
            conn.execute("DELETE FROM weight_goals WHERE user_id = ?;", (user_id,))
            conn.execute(
                "INSERT INTO weight_goals (user_id, target_weight, target_date, unit, notes) VALUES (?, ?, ?, ?, ?);",
                (user_id, target_weight, target_date, unit, notes),
            )
        return self.fetch(user_id)

    def fetch(self, user_id: int) -> Optional[dict]:
        rows = self.fetch_all(
            "SELECT id, target_weight, target_date, unit, notes, completed FROM weight_goals WHERE user_id = ?;",
            (user_id,),
        )
        return self._row_to_dict(rows[0]) if rows else None

    def delete(self, user_id: int) -> None:
        if self.fetch(user_id) is None:
            raise ValueError("No weight goal found")
        self.execute("DELETE FROM weight_goals WHERE user_id = ?;", (user_id,))

    def complete(self, user_id: int) -> dict:
        if self.fetch(user_id) is None:
            raise ValueError("No weight goal found")
        self.execute(
            "UPDATE weight_goals SET completed = 1 WHERE user_id = ?;", (user_id,)
        )
        return self.fetch(user_id)


class WorkoutTemplateRepository(BaseRepository):
    """Repository for multi-day workout templates owned by a user."""

    _COLUMNS = (
        "id, user_id, plan_name, description, time, difficulty_level, focus, tags, "
        "days, created_date, last_modified"
    )

    @staticmethod
    def _row_to_dict(row: Tuple) -> dict:
        return {
            "_id": str(row[0]),
            "user_id": str(row[1]),
            "plan_name": row[2],
            "description": row[3],
            "time": row[4],
            "difficulty_level": row[5],
            "focus": json.loads(row[6] or "{}"),
            "tags": json.loads(row[7] or "[]"),
            "days": json.loads(row[8] or "[]"),
            "created_date": row[9],
            "last_modified": row[10],
        }

    def add(self, user_id: int, data: dict) -> int:
        if not (data.get("plan_name") or "").strip():
            raise ValueError("plan_name required")
        now = utc_now()
        return self.execute(
            "INSERT INTO workout_templates (user_id, plan_name, description, time, difficulty_level, focus, tags, days, created_date, last_modified) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                user_id,
                data["plan_name"].strip(),
                data.get("description") or "",
                data.get("time") or "",
                data.get("difficulty_level") or "",
                json.dumps(data.get("focus") or {}),
                json.dumps(data.get("tags") or []),
                json.dumps(data.get("days") or []),
                now,
                now,
            ),
        )

    def fetch(self, user_id: int, template_id: int) -> Optional[dict]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workout_templates WHERE id = ? AND user_id = ?;",
            (template_id, user_id),
        )
        return self._row_to_dict(rows[0]) if rows else None

    def fetch_for_user(self, user_id: int) -> List[dict]:
        rows = self.fetch_all(
            f"SELECT {self._COLUMNS} FROM workout_templates WHERE user_id = ? ORDER BY last_modified DESC, id DESC;",
            (user_id,),
        )
        return [self._row_to_dict(r) for r in rows]

    def update(self, user_id: int, template_id: int, changes: dict) -> dict:
        if self.fetch(user_id, template_id) is None:
            raise ValueError("Workout template not found")
        if "plan_name" in changes and not (changes["plan_name"] or "").strip():
            raise ValueError("plan_name required")
        sets = []
        params: list = []
        for field in ("plan_name", "description", "time", "difficulty_level"):
            if changes.get(field) is not None:
                sets.append(f"{field} = ?")
                params.append(changes[field])
        for field in ("focus", "tags", "days"):
            if changes.get(field) is not None:
                sets.append(f"{field} = ?")
                params.append(json.dumps(changes[field]))
        sets.append("last_modified = ?")
        params.extend([utc_now(), template_id, user_id])
        self.execute(
            f"UPDATE workout_templates SET {', '.join(sets)} WHERE id = ? AND user_id = ?;",
            tuple(params),
        )
        return self.fetch(user_id, template_id)

    def delete(self, user_id: int, template_id: int) -> None:
        if self.fetch(user_id, template_id) is None:
            raise ValueError("Workout template not found")
        self.execute(
            "DELETE FROM workout_templates WHERE id = ? AND user_id = ?;",
            (template_id, user_id),
        )
