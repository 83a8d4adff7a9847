"""Formatting of questions and replies"""
from models import QuestionType
from utils.i18n import get_text
from .catalog import SurveyView
from .validator import DEFAULT_SCALE, QuestionView
from .voice import VoiceResolution

UNDECIDED_WORDS = ("undecided", "not sure", "neutral", "neither", "unsure", "don't know", "maybe")


def welcome_text(survey: SurveyView, lang: str = "en") -> str:
    description = f"{survey.description}\n\n" if survey.description else ""
    return get_text(
        lang, "welcome",
        title=survey.title,
        description=description,
        estimated_time=survey.estimated_time,
    )


def question_text(question: QuestionView, index: int, total: int, lang: str = "en") -> str:
    """Question with its numbered options or scale"""
    text = get_text(lang, "question_header", number=index + 1, total=total, text=question.text)

    if question.type.is_select:
        text += "\n".join(f"{i}. {option}" for i, option in enumerate(question.options, start=1))
        text += "\n\n" + get_text(lang, "choose_option")
    elif question.type == QuestionType.LIKERT:
        scale = question.scale or DEFAULT_SCALE
        text += get_text(
            lang, "rate_scale",
            min=scale.min, max=scale.max, low=scale.low_label, high=scale.high_label,
        )
    else:
        text += get_text(lang, "type_answer")
    return text


def retry_text(question: QuestionView, lang: str = "en") -> str:
    if question.type.is_select:
        return get_text(lang, "retry_option", count=len(question.options))
    if question.type == QuestionType.LIKERT:
        scale = question.scale or DEFAULT_SCALE
        return get_text(lang, "retry_scale", min=scale.min, max=scale.max)
    return get_text(lang, "retry_text")


def _curated_flavor(answer: str) -> str:
    words = answer.strip().lower()
    first = words.split()[:1]
    if any(w in words for w in UNDECIDED_WORDS):
        return "followup_undecided"
    if "disagree" in words or first in (["no"], ["not"]):
        return "followup_disagree"
    if "agree" in words or first == ["yes"]:
        return "followup_agree"
    return "followup_choice"


def _rating_flavor(answer: str, question: QuestionView) -> str:
    scale = question.scale or DEFAULT_SCALE
    position = (int(answer) - scale.min) / (scale.max - scale.min)
    if position <= 1 / 3:
        return "followup_rating_low"
    if position >= 2 / 3:
        return "followup_rating_high"
    return "followup_rating_mid"


def followup_text(question: QuestionView, answer: str, lang: str = "en") -> str:
    """Follow-up prompt worded for the given answer"""
    if question.type == QuestionType.CURATED:
        key = _curated_flavor(answer)
    elif question.type == QuestionType.MULTIPLE:
        key = "followup_choice"
    elif question.type == QuestionType.LIKERT:
        key = _rating_flavor(answer, question)
    else:
        key = "followup_text"
    return get_text(lang, key, answer=answer)


def voice_confirmation_text(voice: VoiceResolution, lang: str = "en") -> str:
    text = get_text(lang, "voice_heard", transcript=voice.transcript)
    if voice.was_translated:
        text += get_text(lang, "voice_translated", translation=voice.translation)
    text += get_text(lang, "voice_summary", summary=voice.summary)
    text += get_text(lang, "voice_confirm")
    return text


def progress_text(answered: int, total: int, lang: str = "en") -> str:
    percent = round(answered * 100 / total) if total else 100
    return get_text(lang, "progress", percent=percent)
