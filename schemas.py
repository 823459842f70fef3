"""
Database Schemas for the Tuition Tracker

Each persisted Pydantic model represents one collection. Field names are
snake_case in Python and camelCase on the wire (e.g. student_id -> "studentId"),
so documents written by older clients load unchanged.
"""
from datetime import date as DateType
from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from typing import Annotated, List, Tuple

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
MONTH_PATTERN = r"^\d{4}-\d{2}$"


def check_date(value: str) -> str:
    """Reject dates of the right shape that do not exist, e.g. 2024-02-30."""
    DateType.fromisoformat(value)
    return value


def check_month(value: str) -> str:
    DateType.fromisoformat(f"{value}-01")
    return value


IsoDate = Annotated[str, Field(pattern=DATE_PATTERN), AfterValidator(check_date)]
Month = Annotated[str, Field(pattern=MONTH_PATTERN), AfterValidator(check_month)]


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StudentIn(_Document):
    name: str = Field(..., min_length=1, description="Full name of the student")
    batch: str = Field(..., description="Cohort label, e.g. Morning or Batch A")
    class_name: str = Field("", alias="class", description="Class label, e.g. 10th")
    parent_phone: str = Field("", alias="parentPhone", description="Parent contact number")
    join_date: IsoDate = Field(..., alias="joinDate")
    is_active: bool = Field(True, alias="isActive")


class Student(StudentIn):
    id: str


class AttendanceRecord(_Document):
    id: str
    student_id: str = Field(..., alias="studentId")
    date: IsoDate
    is_present: bool = Field(..., alias="isPresent")
    month: Month = Field(..., description="YYYY-MM bucket of date")


class HomeworkRecord(_Document):
    id: str
    student_id: str = Field(..., alias="studentId")
    date: IsoDate
    is_completed: bool = Field(..., alias="isCompleted")
    month: Month = Field(..., description="YYYY-MM bucket of date")


class StudentStats(_Document):
    """Derived per-student figures for one month. Never persisted."""
    student_id: str = Field(..., alias="studentId")
    attendance_rate: float = Field(..., alias="attendanceRate")
    homework_rate: float = Field(..., alias="homeworkRate")
    total_score: float = Field(..., alias="totalScore")
    rank: int = 0
    present_days: int = Field(..., alias="presentDays")
    total_days: int = Field(..., alias="totalDays")
    homework_completed: int = Field(..., alias="homeworkCompleted")
    total_homework: int = Field(..., alias="totalHomework")


class Snapshot(BaseModel):
    """Read-only view of all three collections at one point in time."""
    model_config = ConfigDict(frozen=True)

    students: Tuple[Student, ...] = ()
    attendance: Tuple[AttendanceRecord, ...] = ()
    homework: Tuple[HomeworkRecord, ...] = ()


class DailyEntry(_Document):
    student_id: str = Field(..., alias="studentId")
    present: bool = False
    homework_done: bool = Field(False, alias="homeworkDone")


class DailySheet(_Document):
    entries: List[DailyEntry] = []
