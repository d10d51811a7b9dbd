"""Demo data for local development and the integration tests.

Five accounts: a free athlete, a premium athlete, a coach, and two premium
clients assigned to the coach.  Idempotent: existing rows are replaced.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timedelta, timezone

from coachgate.store import SqliteStore

FREE_ATHLETE_ID = "9b2f5a3e-1c4d-4e8f-9a6b-000000000001"
PREMIUM_ATHLETE_ID = "9b2f5a3e-1c4d-4e8f-9a6b-000000000002"
COACH_ID = "9b2f5a3e-1c4d-4e8f-9a6b-000000000003"
CLIENT_1_ID = "9b2f5a3e-1c4d-4e8f-9a6b-000000000004"
CLIENT_2_ID = "9b2f5a3e-1c4d-4e8f-9a6b-000000000005"

DEMO_USERS = {
    "free": FREE_ATHLETE_ID,
    "premium": PREMIUM_ATHLETE_ID,
    "coach": COACH_ID,
    "client1": CLIENT_1_ID,
    "client2": CLIENT_2_ID,
}

_PROFILES = [
    (FREE_ATHLETE_ID, "Free Tier Athlete", "free", "beginner", ["general_fitness", "weight_loss"],
     None, "lbs", ["dumbbell", "bodyweight"], [], "3 days/week"),
    (PREMIUM_ATHLETE_ID, "Premium Tier Athlete", "premium", "intermediate",
     ["strength", "muscle_building", "endurance"],
     "Mild lower back tightness - avoid heavy deadlifts", "lbs",
     ["barbell", "dumbbell", "cable", "machine"], ["conventional_deadlift"], "5 days/week"),
    (COACH_ID, "Test Coach", "coach", "advanced", ["coaching", "client_success"],
     None, "kg", ["barbell", "dumbbell", "kettlebell"], [], "4 days/week"),
    (CLIENT_1_ID, "Client One", "premium", "beginner", ["weight_loss", "general_fitness"],
     None, "lbs", ["dumbbell", "bodyweight", "bands"], [], "3 days/week"),
    (CLIENT_2_ID, "Client Two", "premium", "intermediate", ["strength", "muscle_building"],
     "Right shoulder impingement - avoid overhead pressing", "kg",
     ["barbell", "dumbbell", "cable"], ["overhead_press", "military_press"], "4 days/week"),
]


def _iso(dt: datetime) -> str:
    return dt.replace(microsecond=0).isoformat()


def seed_demo_data(store: SqliteStore, now: datetime | None = None) -> dict[str, str]:
    """Create schema and demo rows.  Returns the demo user ids by label."""
    now = now or datetime.now(timezone.utc)
    store.initialise()

    conn = sqlite3.connect(store.path)
    try:
        user_ids = [p[0] for p in _PROFILES]
        marks = ",".join("?" * len(user_ids))
        for table in ("workouts", "workout_sets", "daily_workout_analytics"):
            conn.execute(f"DELETE FROM {table} WHERE user_id IN ({marks})", user_ids)
        conn.execute(f"DELETE FROM coach_clients WHERE coach_id IN ({marks})", user_ids)

        conn.executemany(
            "INSERT OR REPLACE INTO user_profiles (user_id, name, tier, experience_level, goals, "
            "injuries, preferred_weight_unit, preferred_equipment, exercises_to_avoid, "
            "training_frequency) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [
                (uid, name, tier, level, json.dumps(goals), injuries, unit,
                 json.dumps(equipment), json.dumps(avoid), freq)
                for uid, name, tier, level, goals, injuries, unit, equipment, avoid, freq in _PROFILES
            ],
        )

        _seed_training(conn, PREMIUM_ATHLETE_ID, now, days=21, base_weight=185.0)
        _seed_training(conn, CLIENT_1_ID, now, days=6, base_weight=45.0)
        # Client Two trained a while ago and has gone quiet.
        _seed_training(conn, CLIENT_2_ID, now - timedelta(days=20), days=10, base_weight=80.0)

        conn.executemany(
            "INSERT INTO coach_clients (coach_id, client_id, status, assigned_at) VALUES (?, ?, ?, ?)",
            [
                (COACH_ID, CLIENT_1_ID, "active", _iso(now - timedelta(days=60))),
                (COACH_ID, CLIENT_2_ID, "active", _iso(now - timedelta(days=45))),
            ],
        )
        conn.commit()
    finally:
        conn.close()

    return dict(DEMO_USERS)


def _seed_training(
    conn: sqlite3.Connection, user_id: str, end: datetime, days: int, base_weight: float
) -> None:
    """Every other day: one completed workout, three sets, one analytics row."""
    for offset in range(days, 0, -2):
        day = end - timedelta(days=offset)
        weight = base_weight + (days - offset) * 1.25
        cursor = conn.execute(
            "INSERT INTO workouts (user_id, name, status, started_at, completed_at, duration_minutes) "
            "VALUES (?, ?, 'completed', ?, ?, ?)",
            (user_id, "Full Body Strength", _iso(day), _iso(day + timedelta(minutes=55)), 55),
        )
        workout_id = cursor.lastrowid
        for exercise, muscle in (("Back Squat", "quads"), ("Bench Press", "chest"), ("Barbell Row", "back")):
            conn.execute(
                "INSERT INTO workout_sets (user_id, workout_id, exercise, weight, reps, rpe, is_pr, created_at) "
                "VALUES (?, ?, ?, ?, 5, 8, ?, ?)",
                (user_id, workout_id, exercise, weight, int(offset <= 2), _iso(day)),
            )
        conn.execute(
            "INSERT OR REPLACE INTO daily_workout_analytics (user_id, date, total_volume, total_sets, "
            "workout_count, pr_count, muscle_group_breakdown) VALUES (?, ?, ?, 3, 1, ?, ?)",
            (
                user_id,
                day.date().isoformat(),
                weight * 5 * 3,
                int(offset <= 2),
                json.dumps({"quads": 1, "chest": 1, "back": 1}),
            ),
        )
