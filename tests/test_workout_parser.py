from __future__ import annotations

from pathlib import Path

import pytest

from settrack.workout.parser import WorkoutParseError, load_workout


def test_load_workout_json(tmp_path: Path) -> None:
    workout_file = tmp_path / "sample.json"
    workout_file.write_text(
        (
            '{"name":"Push Day","exercises":['
            '{"id":"bench","name":"Bench Press","sets":['
            '{"reps":5,"weight":60,"rest_sec":150},{"reps":5,"weight":62.5}]},'
            '{"name":"Lateral Raise","sets":3,"reps":15,"weight":8,"rest_sec":60}]}'
        ),
        encoding="utf-8",
    )

    template = load_workout(workout_file)

    assert template.name == "Push Day"
    assert template.shape == (2, 3)
    assert template.total_sets == 5
    bench, raise_ = template.exercises
    assert bench.exercise_id == "bench"
    assert bench.sets[0].rest_sec == 150
    assert bench.sets[1].weight == 62.5
    assert bench.sets[1].rest_sec == 90
    assert raise_.exercise_id == "lateral-raise"
    assert {item.reps for item in raise_.sets} == {15}


def test_load_workout_csv_groups_consecutive_rows(tmp_path: Path) -> None:
    workout_file = tmp_path / "legs.csv"
    workout_file.write_text(
        "exercise_name,reps,weight,rest_sec\n"
        "Back Squat,5,80,180\n"
        "Back Squat,5,85,180\n"
        "Leg Curl,12,30,\n",
        encoding="utf-8",
    )

    template = load_workout(workout_file)

    assert template.name == "legs"
    assert template.shape == (2, 1)
    assert template.exercises[0].exercise_id == "back-squat"
    assert template.exercises[0].sets[1].weight == 85.0
    assert template.exercises[1].sets[0].rest_sec == 90


def test_load_workout_invalid_extension(tmp_path: Path) -> None:
    workout_file = tmp_path / "sample.txt"
    workout_file.write_text("hello", encoding="utf-8")

    with pytest.raises(WorkoutParseError):
        load_workout(workout_file)


@pytest.mark.parametrize(
    "body",
    [
        '{"name":"X","exercises":[]}',
        '{"name":"X","exercises":[{"name":"A","sets":[]}]}',
        '{"name":"X","exercises":[{"name":"A","sets":[{"reps":0,"weight":10}]}]}',
        '{"name":"X","exercises":[{"name":"A","sets":[{"reps":5,"weight":-1}]}]}',
        '{"name":"X","exercises":[{"name":"","sets":2,"reps":5,"weight":10}]}',
        '{"name":"X","exercises":[{"name":"A","sets":true,"reps":5,"weight":10}]}',
        "[1, 2]",
        "{nope",
    ],
)
def test_load_workout_invalid_json(tmp_path: Path, body: str) -> None:
    workout_file = tmp_path / "bad.json"
    workout_file.write_text(body, encoding="utf-8")

    with pytest.raises(WorkoutParseError):
        load_workout(workout_file)


def test_load_workout_invalid_csv_value(tmp_path: Path) -> None:
    workout_file = tmp_path / "bad.csv"
    workout_file.write_text(
        "exercise_name,reps,weight\nBench Press,five,60\n",
        encoding="utf-8",
    )

    with pytest.raises(WorkoutParseError):
        load_workout(workout_file)


def test_load_workout_csv_missing_headers(tmp_path: Path) -> None:
    workout_file = tmp_path / "bad.csv"
    workout_file.write_text("name,reps\nBench,5\n", encoding="utf-8")

    with pytest.raises(WorkoutParseError):
        load_workout(workout_file)
