"""
Parent report templates and WhatsApp deep links.

The service only builds the text and the link; opening it is up to the client.
"""
import re
from datetime import date as DateType
from urllib.parse import quote

IMPROVEMENT_THRESHOLD = 80


def whatsapp_link(phone: str, message: str, country_code: str = "91") -> str:
    digits = re.sub(r"\D", "", phone or "")
    if not digits.startswith(country_code):
        digits = country_code + digits
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def format_date(iso_date: str) -> str:
    d = DateType.fromisoformat(iso_date)
    return f"{d.day} {d.strftime('%B %Y')}"


def format_month(month: str) -> str:
    return DateType.fromisoformat(f"{month}-01").strftime("%B %Y")


def _percent(done: int, total: int) -> int:
    if not total:
        return 0
    return round(done / total * 100)


def daily_message(name: str, iso_date: str, present: bool, homework_done: bool, signature: str) -> str:
    lines = [
        f"📚 *Daily Report - {name}*",
        f"📅 Date: {format_date(iso_date)}",
        "",
        f"📝 *Attendance:* {'✅ Present' if present else '❌ Absent'}",
        f"📖 *Homework:* {'✅ Completed' if homework_done else '❌ Not Done'}",
        "",
    ]

    if present and homework_done:
        lines.append(f"🎉 Great job! {name} had a perfect day today.")
    else:
        asks = []
        if not present:
            asks.append("attends classes regularly")
        if not homework_done:
            asks.append("completes homework daily")
        lines.append(f"⚠️ Please ensure {name} {' and '.join(asks)} for better performance.")

    lines += ["", "Thank you!", f"*{signature}*"]
    return "\n".join(lines)


def monthly_message(
    name: str,
    month: str,
    present: int,
    total_days: int,
    completed: int,
    total_homework: int,
    rank: int,
    signature: str,
) -> str:
    attendance_rate = _percent(present, total_days)
    homework_rate = _percent(completed, total_homework)

    lines = [
        f"📊 *Monthly Report - {name}*",
        f"📅 Month: {format_month(month)}",
        "",
        "📝 *Attendance:*",
        f"   Present: {present} out of {total_days} days",
        f"   Rate: {attendance_rate}%",
        "",
        "📖 *Homework:*",
        f"   Completed: {completed} out of {total_homework} assignments",
        f"   Rate: {homework_rate}%",
        "",
        f"🏆 *Class Rank:* #{rank}",
        "",
    ]

    if attendance_rate < IMPROVEMENT_THRESHOLD or homework_rate < IMPROVEMENT_THRESHOLD:
        lines.append("⚠️ *Areas for Improvement:*")
        if attendance_rate < IMPROVEMENT_THRESHOLD:
            lines.append("• Regular attendance needed")
        if homework_rate < IMPROVEMENT_THRESHOLD:
            lines.append("• More focus on homework completion")
    else:
        lines.append("🌟 Excellent performance this month!")

    lines += ["", "Thank you for your support!", f"*{signature}*"]
    return "\n".join(lines)
