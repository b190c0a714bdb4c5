"""JSON export of analysis reports."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from ..models.analysis import AnalysisReport, AnalysisResult, Score

logger = logging.getLogger(__name__)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.astimezone()
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def export_report(report: AnalysisReport, timestamp: Optional[datetime] = None) -> bytes:
    """Serialize ``{score, analysisResult, timestamp}`` as pretty-printed UTF-8 JSON."""
    payload = {
        "score": report.score.to_dict(),
        "analysisResult": report.result.to_dict(),
        "timestamp": format_timestamp(timestamp or datetime.now(timezone.utc)),
    }
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def parse_export(data: bytes) -> Tuple[Score, AnalysisResult, datetime]:
    """Read back a document written by ``export_report``.

    Raises:
        ValueError: if the document is not valid JSON or misses a field
    """
    try:
        payload = json.loads(data.decode("utf-8"))
        return (
            Score.from_dict(payload["score"]),
            AnalysisResult.from_dict(payload["analysisResult"]),
            parse_timestamp(payload["timestamp"]),
        )
    except (UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError) as e:
        raise ValueError(f"Invalid analysis export: {e}") from e
