"""
Monthly performance statistics.

Everything here is a pure function over plain collections: no storage access,
no logging, no shared state. Callers pass a fresh snapshot on every call.
"""
from datetime import date as DateType, datetime, timezone
from typing import Iterable, List, Optional, Sequence

from schemas import AttendanceRecord, HomeworkRecord, Student, StudentStats

# Composite score weighting
ATTENDANCE_WEIGHT = 0.6
HOMEWORK_WEIGHT = 0.4


def _rate(done: int, total: int) -> float:
    # No tracked days means a rate of 0, never a division error
    if total == 0:
        return 0.0
    return done / total * 100


def compute_stats(
    students: Iterable[Student],
    attendance_records: Sequence[AttendanceRecord],
    homework_records: Sequence[HomeworkRecord],
    month: str,
    batch: Optional[str] = None,
) -> List[StudentStats]:
    """Rank active students for ``month``, optionally within a single batch.

    Ties keep the order in which the students were given: the sort is stable
    and has no secondary key.
    """
    candidates = [s for s in students if batch is None or s.batch == batch]
    candidates = [s for s in candidates if s.is_active]

    stats = []
    for student in candidates:
        attendance = [
            r for r in attendance_records
            if r.student_id == student.id and r.month == month
        ]
        homework = [
            r for r in homework_records
            if r.student_id == student.id and r.month == month
        ]

        present_days = sum(1 for r in attendance if r.is_present)
        homework_completed = sum(1 for r in homework if r.is_completed)
        attendance_rate = _rate(present_days, len(attendance))
        homework_rate = _rate(homework_completed, len(homework))

        stats.append(StudentStats(
            student_id=student.id,
            attendance_rate=attendance_rate,
            homework_rate=homework_rate,
            total_score=attendance_rate * ATTENDANCE_WEIGHT + homework_rate * HOMEWORK_WEIGHT,
            present_days=present_days,
            total_days=len(attendance),
            homework_completed=homework_completed,
            total_homework=len(homework),
        ))

    stats = sorted(stats, key=lambda s: s.total_score, reverse=True)
    for index, entry in enumerate(stats):
        entry.rank = index + 1
    return stats


def overall_rank(
    students: Iterable[Student],
    attendance_records: Sequence[AttendanceRecord],
    homework_records: Sequence[HomeworkRecord],
    month: str,
) -> List[StudentStats]:
    """Ranking across every batch."""
    return compute_stats(students, attendance_records, homework_records, month)


def available_months(
    attendance_records: Iterable[AttendanceRecord],
    homework_records: Iterable[HomeworkRecord],
) -> List[str]:
    """Distinct month buckets present in either collection, newest first."""
    months = {r.month for r in attendance_records}
    months.update(r.month for r in homework_records)
    return sorted(months, reverse=True)


def current_month(today: Optional[DateType] = None) -> str:
    today = today or datetime.now(timezone.utc).date()
    return today.isoformat()[:7]


def month_of(iso_date: str) -> str:
    return iso_date[:7]


def selectable_months(
    attendance_records: Iterable[AttendanceRecord],
    homework_records: Iterable[HomeworkRecord],
    selected: str,
    today: Optional[DateType] = None,
) -> List[str]:
    """Months a rankings view can offer.

    An empty list means there is nothing to rank yet. Otherwise the current
    month is put first when the selected month has no records and the
    current month is not already listed.
    """
    months = available_months(attendance_records, homework_records)
    if months and selected not in months:
        this_month = current_month(today)
        if this_month not in months:
            months.insert(0, this_month)
    return months
