import pytest
from fastapi.testclient import TestClient

import main
from schemas import AttendanceRecord, HomeworkRecord, Student
from storage import JsonFileStore
from tracker import Tracker


def make_student(sid, batch="A", active=True, name=None):
    return Student(
        id=sid,
        name=name or sid.upper(),
        batch=batch,
        class_name="10th",
        parent_phone="98765 43210",
        join_date="2024-01-01",
        is_active=active,
    )


def attendance(sid, day, present):
    return AttendanceRecord(
        id=f"att_{sid}_{day}", student_id=sid, date=day, is_present=present, month=day[:7],
    )


def homework(sid, day, done):
    return HomeworkRecord(
        id=f"hw_{sid}_{day}", student_id=sid, date=day, is_completed=done, month=day[:7],
    )


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(str(tmp_path / "data"))


@pytest.fixture
def tracker(store):
    return Tracker(store)


@pytest.fixture
def client(tracker):
    main.app.dependency_overrides[main.get_tracker] = lambda: tracker
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()
