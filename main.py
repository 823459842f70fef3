import logging
from datetime import date as DateType, datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query
from fastapi.middleware.cors import CORSMiddleware

import config
import stats
from schemas import DATE_PATTERN, MONTH_PATTERN, DailyEntry, DailySheet, StudentIn, check_date, check_month
from storage import RecordStore, StoreError, get_store
from tracker import CascadeError, NotFound, Tracker

config.configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Tuition Tracker API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_store: Optional[RecordStore] = None


@app.get("/")
def read_root():
    return {"message": "Tuition Tracker API is running"}


# -------------- Helpers --------------

def get_tracker() -> Tracker:
    global _store
    if _store is None:
        try:
            _store = get_store()
        except StoreError as e:
            logger.error("Record store unavailable: %s", e)
            raise HTTPException(status_code=503, detail="Record store not configured")
    return Tracker(_store)


def _call(fn, *args, **kwargs):
    try:
        return fn(*args, **kwargs)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CascadeError as e:
        raise HTTPException(status_code=500, detail={
            "message": "Student delete only partly applied",
            "completed": e.completed,
            "failed": e.failed,
        })
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Storage error during {e.operation}")


def _today() -> DateType:
    return datetime.now(timezone.utc).date()


def _checked(value: Optional[str], check) -> Optional[str]:
    if value is None:
        return None
    try:
        return check(value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def path_day(day: str = Path(..., pattern=DATE_PATTERN)) -> str:
    return _checked(day, check_date)


def path_month(month: str = Path(..., pattern=MONTH_PATTERN)) -> str:
    return _checked(month, check_month)


def query_day(day: Optional[str] = Query(None, alias="date", pattern=DATE_PATTERN)) -> Optional[str]:
    return _checked(day, check_date)


def query_month(month: Optional[str] = Query(None, pattern=MONTH_PATTERN)) -> Optional[str]:
    return _checked(month, check_month)


def query_selected(selected: Optional[str] = Query(None, pattern=MONTH_PATTERN)) -> Optional[str]:
    return _checked(selected, check_month)


# -------------- Students --------------

@app.get("/api/students")
def list_students(tracker: Tracker = Depends(get_tracker)):
    return list(_call(tracker.snapshot).students)


@app.post("/api/students", status_code=201)
def create_student(item: StudentIn, tracker: Tracker = Depends(get_tracker)):
    return _call(tracker.add_student, item)


@app.put("/api/students/{student_id}")
def update_student(student_id: str, item: StudentIn, tracker: Tracker = Depends(get_tracker)):
    return _call(tracker.update_student, student_id, item)


@app.delete("/api/students/{student_id}")
def delete_student(student_id: str, tracker: Tracker = Depends(get_tracker)):
    removed = _call(tracker.delete_student, student_id)
    return {"status": "ok", "removed": removed}


@app.get("/api/batches")
def list_batches(tracker: Tracker = Depends(get_tracker)):
    return _call(tracker.batches)


# -------------- Daily tracker --------------

@app.get("/api/daily/{day}")
def get_day(
    day: str = Depends(path_day),
    batch: Optional[str] = None,
    tracker: Tracker = Depends(get_tracker),
):
    return _call(tracker.day_sheet, day, batch)


@app.post("/api/daily/{day}")
def save_day(
    sheet: DailySheet,
    day: str = Depends(path_day),
    tracker: Tracker = Depends(get_tracker),
):
    saved = _call(tracker.record_day, day, sheet.entries)
    return {"status": "ok", "saved": saved}


# -------------- Rankings --------------

@app.get("/api/months")
def list_months(
    selected: Optional[str] = Depends(query_selected),
    tracker: Tracker = Depends(get_tracker),
):
    return _call(tracker.months, selected)


@app.get("/api/rankings")
def get_rankings(
    month: Optional[str] = Depends(query_month),
    batch: Optional[str] = None,
    tracker: Tracker = Depends(get_tracker),
):
    month = month or stats.current_month()
    # "all" is the client's label for no batch filter
    if batch == "all":
        batch = None
    return {"month": month, "batch": batch, "rankings": _call(tracker.rankings, month, batch)}


@app.get("/api/dashboard")
def get_dashboard(tracker: Tracker = Depends(get_tracker)):
    return _call(tracker.dashboard)


# -------------- Reports --------------

@app.get("/api/reports/daily/{student_id}")
def daily_report(
    student_id: str,
    day: Optional[str] = Depends(query_day),
    tracker: Tracker = Depends(get_tracker),
):
    return _call(tracker.daily_report, student_id, day or _today().isoformat())


@app.get("/api/reports/monthly/{student_id}")
def monthly_report(
    student_id: str,
    month: Optional[str] = Depends(query_month),
    tracker: Tracker = Depends(get_tracker),
):
    return _call(tracker.monthly_report, student_id, month or stats.current_month())


# -------------- Data management --------------

@app.get("/api/data")
def data_stats(tracker: Tracker = Depends(get_tracker)):
    return _call(tracker.data_stats)


@app.get("/api/data/export")
def export_data(tracker: Tracker = Depends(get_tracker)):
    return _call(tracker.export)


@app.delete("/api/data/months/{month}")
def clear_month(
    month: str = Depends(path_month),
    tracker: Tracker = Depends(get_tracker),
):
    attendance, homework = _call(tracker.clear_month, month)
    return {"status": "ok", "attendanceRemoved": attendance, "homeworkRemoved": homework}


@app.delete("/api/data")
def clear_all(tracker: Tracker = Depends(get_tracker)):
    _call(tracker.clear_all)
    return {"status": "ok"}


@app.get("/test")
def test_store(tracker: Tracker = Depends(get_tracker)):
    response = {
        "backend": "✅ Running",
        "store": tracker.store.name,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        info = tracker.store.describe()
        response["collections"] = info.get("collections", [])
        response["connection_status"] = "Connected"
    except StoreError as e:
        response["connection_status"] = f"❌ Error: {str(e.cause)[:50]}"
    return response


@app.post("/seed")
def seed_demo_data(tracker: Tracker = Depends(get_tracker)):
    """Populate the store with a few students and a week of records for a quick demo."""
    snap = _call(tracker.snapshot)
    if snap.students:
        return {"status": "ok", "message": "Already seeded"}

    today = _today()
    roster = [
        StudentIn(name="Aarav Sharma", batch="Morning", class_name="10th", parent_phone="98765 43210", join_date=today.isoformat()),
        StudentIn(name="Diya Patel", batch="Morning", class_name="9th", parent_phone="98765 43211", join_date=today.isoformat()),
        StudentIn(name="Kabir Singh", batch="Evening", class_name="10th", parent_phone="98765 43212", join_date=today.isoformat()),
    ]
    students = [_call(tracker.add_student, s) for s in roster]

    for offset in range(7):
        day = today - timedelta(days=offset)
        entries = [
            DailyEntry(
                student_id=s.id,
                present=(offset + i) % 4 != 0,
                homework_done=(offset + i) % 3 != 0,
            )
            for i, s in enumerate(students)
        ]
        _call(tracker.record_day, day.isoformat(), entries)

    return {"status": "ok", "message": "Seeded demo content"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
