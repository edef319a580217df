"""Import test reports and question logs from CSV, JSON or YAML exports.

Legacy question-type labels such as "Single Correct (+4, -1)" are resolved
into structured marking schemes here, so nothing past the import boundary
has to parse them again.
"""
import csv
import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from exam_analytics.db import save_question_outcomes, save_test_attempt
from exam_analytics.marking import marks_for, parse_marking_scheme
from exam_analytics.models import QuestionOutcome, QuestionStatus, SubjectScore, TestAttempt

logger = logging.getLogger(__name__)

REPORT_COLUMNS = {
    "date": ["testdate", "test date", "date"],
    "name": ["testname", "test name", "name"],
    "test_id": ["testid", "test id", "id"],
    "subject": ["subject"],
    "marks": ["marks"],
    "rank": ["rank"],
    "correct": ["correct"],
    "wrong": ["wrong"],
    "partial": ["partial"],
    "unanswered": ["unanswered"],
    "max_marks": ["maxmarks", "max marks"],
}

LOG_COLUMNS = {
    "test_id": ["testid", "test id"],
    "subject": ["subject"],
    "question_number": ["questionnumber", "question number", "q"],
    "topic": ["topic", "chapter"],
    "question_type": ["questiontype", "question type", "type"],
    "positive": ["positivemarks", "positive marks"],
    "negative": ["negativemarks", "negative marks"],
    "status": ["status"],
    "marks_awarded": ["marksawarded", "marks awarded", "marks"],
    "confidence": ["confidence"],
    "error_reason": ["reasonforerror", "reason for error", "reason"],
    "time_spent": ["timespent", "time spent"],
}

STATUS_ALIASES = {
    "fully correct": QuestionStatus.FULLY_CORRECT,
    "correct": QuestionStatus.FULLY_CORRECT,
    "partially correct": QuestionStatus.PARTIALLY_CORRECT,
    "partial": QuestionStatus.PARTIALLY_CORRECT,
    "wrong": QuestionStatus.WRONG,
    "incorrect": QuestionStatus.WRONG,
    "unanswered": QuestionStatus.UNANSWERED,
    "skipped": QuestionStatus.UNANSWERED,
    "": QuestionStatus.UNANSWERED,
}

US_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")


class ImportFormatError(ValueError):
    """An export is missing a required column or holds an unreadable value."""


def read_records(file_path: str) -> list[dict]:
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".csv":
        with path.open(newline="", encoding="utf-8") as fh:
            return list(csv.DictReader(fh))
    elif suffix == ".json":
        data = json.loads(path.read_text(encoding="utf-8"))
    elif suffix in (".yaml", ".yml"):
        import yaml
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    else:
        raise ImportFormatError(f"Unsupported file type: {suffix or path.name}")

    if isinstance(data, dict):
        # {"reports": [...]} or {"logs": [...]}
        lists = [v for v in data.values() if isinstance(v, list)]
        data = lists[0] if lists else []
    return list(data or [])


def _normalize(record: dict, columns: dict[str, list[str]]) -> dict:
    lowered = {str(k).strip().lower(): v for k, v in record.items()}
    result = {}
    for field, aliases in columns.items():
        for alias in aliases:
            if alias in lowered or alias.replace(" ", "_") in lowered:
                value = lowered.get(alias, lowered.get(alias.replace(" ", "_")))
                result[field] = value.strip() if isinstance(value, str) else value
                break
    return result


def _require(row: dict, field: str, row_number: int):
    value = row.get(field)
    if value is None or value == "":
        raise ImportFormatError(f"Row {row_number}: missing required column '{field}'")
    return value


def _number(value, default: Optional[float] = 0) -> Optional[float]:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ImportFormatError(f"Not a number: {value!r}") from exc


def _int(value, default: Optional[int] = 0) -> Optional[int]:
    number = _number(value, None)
    return default if number is None else int(number)


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    match = US_DATE.match(text)
    if match:
        month, day, year = (int(g) for g in match.groups())
        return date(year, month, day)
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise ImportFormatError(f"Unreadable date: {text!r}") from exc


def parse_status(value) -> QuestionStatus:
    key = str(value or "").strip().lower()
    if key not in STATUS_ALIASES:
        raise ImportFormatError(f"Unknown question status: {value!r}")
    return STATUS_ALIASES[key]


def parse_reports(records: list[dict]) -> list[TestAttempt]:
    """Group one-row-per-subject records into test attempts.

    A row whose subject is "total" carries the overall marks and rank; without
    one, total marks are the sum of the subject marks.
    """
    attempts: dict[str, TestAttempt] = {}
    totals_seen = set()
    for i, record in enumerate(records, 1):
        row = _normalize(record, REPORT_COLUMNS)
        test_date = parse_date(_require(row, "date", i))
        name = row.get("name") or ""
        test_id = str(row.get("test_id") or f"{test_date.isoformat()}-{name or i}")
        subject = str(_require(row, "subject", i)).lower()
        score = SubjectScore(
            marks=_number(row.get("marks")),
            correct=_int(row.get("correct")),
            wrong=_int(row.get("wrong")),
            partial=_int(row.get("partial")),
            unanswered=_int(row.get("unanswered")),
            rank=_int(row.get("rank"), None),
            max_marks=_number(row.get("max_marks"), None),
        )
        attempt = attempts.setdefault(test_id, TestAttempt(id=test_id, date=test_date, name=name, total=SubjectScore()))
        if subject == "total":
            attempt.total = score
            totals_seen.add(test_id)
        else:
            attempt.subjects[subject] = score

    for test_id, attempt in attempts.items():
        if test_id not in totals_seen:
            attempt.total.marks = sum(s.marks for s in attempt.subjects.values())
    return list(attempts.values())


def parse_question_logs(records: list[dict]) -> list[QuestionOutcome]:
    outcomes = []
    for i, record in enumerate(records, 1):
        row = _normalize(record, LOG_COLUMNS)
        status = parse_status(row.get("status"))
        scheme = parse_marking_scheme(
            row.get("question_type"),
            _number(row.get("positive"), None),
            _number(row.get("negative"), None),
        )
        awarded = _number(row.get("marks_awarded"), None)
        if awarded is None:
            awarded = marks_for(status, scheme) or 0
        outcomes.append(QuestionOutcome(
            test_id=str(_require(row, "test_id", i)),
            subject=str(_require(row, "subject", i)).lower(),
            question_number=_int(row.get("question_number")),
            topic=row.get("topic") or "N/A",
            question_type=row.get("question_type") or "",
            scheme=scheme,
            status=status,
            marks_awarded=awarded,
            confidence=_int(row.get("confidence"), None),
            error_reason=row.get("error_reason") or None,
            time_spent=_number(row.get("time_spent"), None),
        ))
    return outcomes


def import_reports(db_path: str, file_path: str) -> dict:
    attempts = parse_reports(read_records(file_path))
    for attempt in attempts:
        save_test_attempt(db_path, attempt)
    logger.info("Imported %d test attempts from %s", len(attempts), Path(file_path).name)
    return {"filename": Path(file_path).name, "reports": len(attempts)}


def import_question_logs(db_path: str, file_path: str) -> dict:
    outcomes = parse_question_logs(read_records(file_path))
    save_question_outcomes(db_path, outcomes)
    logger.info("Imported %d question outcomes from %s", len(outcomes), Path(file_path).name)
    return {"filename": Path(file_path).name, "outcomes": len(outcomes)}
