"""Answer validation

Pure functions: parse question parameters and check respondent input against
the question type. Nothing here touches the DB or the transport.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

from models.survey import QuestionType

logger = logging.getLogger(__name__)

INTEGER_RE = re.compile(r"^-?[0-9]+$")

REJECT_REASON = "out of range or not a number"
EMPTY_REASON = "empty answer"


@dataclass(frozen=True)
class Scale:
    min: int
    max: int
    low_label: str
    high_label: str


DEFAULT_SCALE = Scale(min=1, max=5, low_label="Low", high_label="High")


@dataclass(frozen=True)
class QuestionView:
    """Normalized, well-typed question as seen by the engine"""
    id: int
    number: int
    type: QuestionType
    text: str
    options: Tuple[str, ...] = ()
    scale: Optional[Scale] = None
    ask_followup: bool = True


@dataclass(frozen=True)
class ValidAnswer:
    value: str


@dataclass(frozen=True)
class Rejected:
    reason: str


ValidationResult = Union[ValidAnswer, Rejected]


def _maybe_json(raw: Any) -> Any:
    if isinstance(raw, (str, bytes)):
        return json.loads(raw)
    return raw


def parse_options(raw: Any) -> List[str]:
    """Options as a list of labels; [] if the data is malformed"""
    if raw is None:
        return []
    try:
        value = _maybe_json(raw)
    except (TypeError, ValueError):
        logger.warning("Malformed question options %r, using no options", raw)
        return []

    if not isinstance(value, (list, tuple)):
        logger.warning("Question options are not a list: %r, using no options", raw)
        return []

    options = [str(item).strip() for item in value if item is not None and str(item).strip()]
    if len(options) != len(value):
        logger.warning("Dropped empty question options from %r", raw)
    return options


def parse_scale(raw: Any) -> Scale:
    """Rating scale; DEFAULT_SCALE if the data is malformed"""
    try:
        value = _maybe_json(raw)
    except (TypeError, ValueError):
        logger.warning("Malformed rating scale %r, using default 1-5", raw)
        return DEFAULT_SCALE

    if not isinstance(value, dict):
        logger.warning("Rating scale is not an object: %r, using default 1-5", raw)
        return DEFAULT_SCALE

    labels = value.get("labels")
    if isinstance(labels, (list, tuple)) and len(labels) >= 2:
        low, high = labels[0], labels[1]
    else:
        low, high = value.get("low_label"), value.get("high_label")

    try:
        scale = Scale(
            min=int(value["min"]),
            max=int(value["max"]),
            low_label=str(low).strip() if low is not None else "",
            high_label=str(high).strip() if high is not None else "",
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Rating scale %r is missing min/max, using default 1-5", raw)
        return DEFAULT_SCALE

    if scale.min >= scale.max or not scale.low_label or not scale.high_label:
        logger.warning("Invalid rating scale %r, using default 1-5", raw)
        return DEFAULT_SCALE
    return scale


def _parse_int(raw_text: str) -> Optional[int]:
    """Plain ASCII integer, None for anything else ("1_0", "+3", "٣")"""
    if not raw_text or not INTEGER_RE.match(raw_text.strip()):
        return None
    return int(raw_text.strip())


def validate_answer(question: QuestionView, raw_text: Optional[str]) -> ValidationResult:
    """Check raw input against the question"""
    text = (raw_text or "").strip()

    if question.type.is_select:
        choice = _parse_int(text)
        if choice is None or not 1 <= choice <= len(question.options):
            return Rejected(REJECT_REASON)
        return ValidAnswer(question.options[choice - 1])

    if question.type == QuestionType.LIKERT:
        scale = question.scale or DEFAULT_SCALE
        rating = _parse_int(text)
        if rating is None or not scale.min <= rating <= scale.max:
            return Rejected(REJECT_REASON)
        return ValidAnswer(str(rating))

    if not text:
        return Rejected(EMPTY_REASON)
    return ValidAnswer(text)
