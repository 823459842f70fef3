"""
Coordinator over a record store.

The tracker never caches collections: every query reads a fresh snapshot, and
every mutation goes straight to the store.
"""
import logging
import random
import string
import time
from datetime import date as DateType, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import config
import messaging
import stats
from schemas import (
    AttendanceRecord,
    DailyEntry,
    HomeworkRecord,
    Snapshot,
    Student,
    StudentIn,
)
from storage import ATTENDANCE, HOMEWORK, STUDENTS, RecordStore, StoreError

logger = logging.getLogger(__name__)

EXPORTED_BY = "Tuition Management System"


class NotFound(Exception):
    pass


class CascadeError(Exception):
    """A student delete stopped part way; some dependent records may remain."""

    def __init__(self, student_id: str, completed: List[str], failed: str, cause: Exception):
        super().__init__(
            f"Deleting student {student_id} stopped at {failed} "
            f"(completed: {', '.join(completed) or 'nothing'}): {cause}"
        )
        self.student_id = student_id
        self.completed = completed
        self.failed = failed
        self.cause = cause


def _new_student_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"student_{int(time.time() * 1000)}_{suffix}"


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(by_alias=True)


class Tracker:
    def __init__(self, store: RecordStore):
        self.store = store

    # -------------- Reads --------------

    def snapshot(self) -> Snapshot:
        return Snapshot(
            students=tuple(Student(**d) for d in self.store.read_all(STUDENTS)),
            attendance=tuple(AttendanceRecord(**d) for d in self.store.read_all(ATTENDANCE)),
            homework=tuple(HomeworkRecord(**d) for d in self.store.read_all(HOMEWORK)),
        )

    def get_student(self, student_id: str, snap: Optional[Snapshot] = None) -> Student:
        snap = snap or self.snapshot()
        for student in snap.students:
            if student.id == student_id:
                return student
        raise NotFound(f"Student {student_id} not found")

    def batches(self, snap: Optional[Snapshot] = None) -> List[str]:
        snap = snap or self.snapshot()
        seen = []
        for student in snap.students:
            if student.batch not in seen:
                seen.append(student.batch)
        return seen

    # -------------- Students --------------

    def add_student(self, data: StudentIn) -> Student:
        student = Student(id=_new_student_id(), **data.model_dump())
        self.store.upsert(STUDENTS, _dump(student))
        logger.info("Registered student %s (%s)", student.id, student.name)
        return student

    def update_student(self, student_id: str, data: StudentIn) -> Student:
        self.get_student(student_id)
        student = Student(id=student_id, **data.model_dump())
        self.store.upsert(STUDENTS, _dump(student))
        return student

    def delete_student(self, student_id: str) -> Dict[str, int]:
        """Delete a student and every attendance and homework record that references it."""
        self.get_student(student_id)

        steps = [
            (STUDENTS, {"id": student_id}),
            (ATTENDANCE, {"studentId": student_id}),
            (HOMEWORK, {"studentId": student_id}),
        ]
        removed = {}
        for namespace, predicate in steps:
            try:
                removed[namespace] = self.store.delete_where(namespace, predicate)
            except StoreError as e:
                if not removed:
                    raise
                logger.error("Cascade delete of %s incomplete at %s", student_id, namespace)
                raise CascadeError(student_id, list(removed), namespace, e) from e

        logger.info(
            "Deleted student %s with %d attendance and %d homework records",
            student_id, removed[ATTENDANCE], removed[HOMEWORK],
        )
        return removed

    # -------------- Daily tracking --------------

    def day_sheet(self, iso_date: str, batch: Optional[str] = None) -> List[Dict[str, Any]]:
        snap = self.snapshot()
        attendance = {r.student_id: r for r in snap.attendance if r.date == iso_date}
        homework = {r.student_id: r for r in snap.homework if r.date == iso_date}

        rows = []
        for student in snap.students:
            if not student.is_active or (batch is not None and student.batch != batch):
                continue
            att = attendance.get(student.id)
            hw = homework.get(student.id)
            rows.append({
                "student": student,
                "present": bool(att and att.is_present),
                "homeworkDone": bool(hw and hw.is_completed),
            })
        return rows

    def record_day(self, iso_date: str, entries: List[DailyEntry]) -> int:
        """Upsert one attendance and one homework record per active student for ``iso_date``.

        Only the records for this date are written; history for other days is
        never rewritten.
        """
        snap = self.snapshot()
        active = {s.id for s in snap.students if s.is_active}
        month = stats.month_of(iso_date)
        attendance = {r.student_id: r for r in snap.attendance if r.date == iso_date}
        homework = {r.student_id: r for r in snap.homework if r.date == iso_date}
        saved = 0

        for entry in entries:
            if entry.student_id not in active:
                logger.debug("Skipping unknown or inactive student %s", entry.student_id)
                continue

            # An existing record for this student and date keeps its id
            att = attendance.get(entry.student_id)
            if att is None:
                att = AttendanceRecord(
                    id=f"att_{entry.student_id}_{iso_date}",
                    student_id=entry.student_id,
                    date=iso_date,
                    is_present=entry.present,
                    month=month,
                )
            self.store.upsert(ATTENDANCE, _dump(att.model_copy(update={"is_present": entry.present})))

            hw = homework.get(entry.student_id)
            if hw is None:
                hw = HomeworkRecord(
                    id=f"hw_{entry.student_id}_{iso_date}",
                    student_id=entry.student_id,
                    date=iso_date,
                    is_completed=entry.homework_done,
                    month=month,
                )
            self.store.upsert(HOMEWORK, _dump(hw.model_copy(update={"is_completed": entry.homework_done})))
            saved += 1

        return saved

    # -------------- Data management --------------

    def clear_month(self, month: str) -> Tuple[int, int]:
        removed = (
            self.store.delete_where(ATTENDANCE, {"month": month}),
            self.store.delete_where(HOMEWORK, {"month": month}),
        )
        logger.info("Cleared %s: %d attendance, %d homework records", month, *removed)
        return removed

    def clear_all(self) -> None:
        self.store.clear()
        logger.warning("All tuition data cleared")

    def export(self) -> Dict[str, Any]:
        snap = self.snapshot()
        return {
            "students": [_dump(s) for s in snap.students],
            "attendance": [_dump(r) for r in snap.attendance],
            "homework": [_dump(r) for r in snap.homework],
            "exportDate": datetime.now(timezone.utc).isoformat(),
            "exportedBy": EXPORTED_BY,
        }

    def data_stats(self) -> Dict[str, Any]:
        snap = self.snapshot()
        months = []
        for month in stats.available_months(snap.attendance, snap.homework):
            months.append({
                "month": month,
                "attendanceRecords": sum(1 for r in snap.attendance if r.month == month),
                "homeworkRecords": sum(1 for r in snap.homework if r.month == month),
            })
        return {
            "totalStudents": len(snap.students),
            "activeStudents": sum(1 for s in snap.students if s.is_active),
            "totalAttendanceRecords": len(snap.attendance),
            "totalHomeworkRecords": len(snap.homework),
            "months": months,
        }

    # -------------- Rankings --------------

    def months(self, selected: Optional[str] = None, today: Optional[DateType] = None) -> Dict[str, Any]:
        snap = self.snapshot()
        selected = selected or stats.current_month(today)
        return {
            "selected": selected,
            "months": stats.selectable_months(snap.attendance, snap.homework, selected, today),
        }

    def rankings(self, month: str, batch: Optional[str] = None) -> List[Dict[str, Any]]:
        snap = self.snapshot()
        overall = {
            s.student_id: s.rank
            for s in stats.overall_rank(snap.students, snap.attendance, snap.homework, month)
        }
        by_id = {s.id: s for s in snap.students}

        rows = []
        for entry in stats.compute_stats(snap.students, snap.attendance, snap.homework, month, batch):
            rows.append({
                "student": by_id[entry.student_id],
                "stats": entry,
                "overallRank": overall.get(entry.student_id, 0),
            })
        return rows

    def dashboard(self, today: Optional[DateType] = None) -> Dict[str, Any]:
        today = today or datetime.now(timezone.utc).date()
        iso_today = today.isoformat()
        snap = self.snapshot()
        ranked = stats.overall_rank(snap.students, snap.attendance, snap.homework, stats.current_month(today))
        by_id = {s.id: s for s in snap.students}

        return {
            "activeStudents": sum(1 for s in snap.students if s.is_active),
            "presentToday": sum(1 for r in snap.attendance if r.date == iso_today and r.is_present),
            "homeworkDoneToday": sum(1 for r in snap.homework if r.date == iso_today and r.is_completed),
            "studentsRanked": len(ranked),
            "topPerformers": [
                {"student": by_id[s.student_id], "stats": s} for s in ranked[:3]
            ],
        }

    # -------------- Reports --------------

    def daily_report(self, student_id: str, iso_date: str) -> Dict[str, str]:
        snap = self.snapshot()
        student = self.get_student(student_id, snap)
        present = any(
            r.is_present for r in snap.attendance
            if r.student_id == student_id and r.date == iso_date
        )
        done = any(
            r.is_completed for r in snap.homework
            if r.student_id == student_id and r.date == iso_date
        )
        message = messaging.daily_message(student.name, iso_date, present, done, config.REPORT_SIGNATURE)
        return _report(student, message)

    def monthly_report(self, student_id: str, month: str) -> Dict[str, str]:
        snap = self.snapshot()
        student = self.get_student(student_id, snap)
        ranked = stats.overall_rank(snap.students, snap.attendance, snap.homework, month)
        entry = next((s for s in ranked if s.student_id == student_id), None)
        if entry is None:
            raise NotFound(f"Student {student_id} is not ranked for {month}")

        message = messaging.monthly_message(
            student.name,
            month,
            entry.present_days,
            entry.total_days,
            entry.homework_completed,
            entry.total_homework,
            entry.rank,
            config.REPORT_SIGNATURE,
        )
        return _report(student, message)


def _report(student: Student, message: str) -> Dict[str, str]:
    return {
        "studentId": student.id,
        "phone": student.parent_phone,
        "message": message,
        "link": messaging.whatsapp_link(student.parent_phone, message, config.COUNTRY_CODE),
    }
