"""Conversation engine: the survey state machine

Every inbound message goes through ConversationEngine.handle_inbound_message.
Messages of one respondent are handled one at a time, in arrival order.

Stages:
    initial            -> welcome + first question             -> survey
    survey             -> valid answer (follow-ups on)         -> followup
                       -> valid answer (follow-ups off)        -> next question / done
    followup           -> text or 'skip'                       -> next question / done
                       -> voice, transcribed                   -> voice_confirmation
    voice_confirmation -> 'yes' / 'skip'                       -> next question / done
                       -> 'no'                                 -> followup
"""
import logging
from typing import Optional

from models import Stage, SurveyParticipation
from utils.i18n import DEFAULT_LANG, get_text
from utils.locks import KeyedLock
from .catalog import SurveyCatalog, SurveyView
from .notifier import PARTICIPATION_CHANGED, RESPONSE_SAVED, SURVEY_COMPLETED, Notifier
from .participants import ParticipantRegistry
from .prompts import followup_text, progress_text, question_text, retry_text, voice_confirmation_text, welcome_text
from .responses import ResponseStore
from .sessions import ConversationState, PendingAnswer, PendingVoice, SessionError, SessionStore
from .transport import InboundMessage, MessagingTransport
from .validator import QuestionView, Rejected, validate_answer
from .voice import TranscriptionFailed, TranscriptionUnavailable, VoiceError, VoiceResolution, VoiceResolver

logger = logging.getLogger(__name__)

YES_WORDS = ("yes", "y", "correct")
NO_WORDS = ("no", "n", "incorrect")
SKIP_WORD = "skip"


class SessionStateError(SessionError):
    """Session content does not match its stage"""


class ConversationEngine:
    def __init__(
        self,
        transport: MessagingTransport,
        resolver: VoiceResolver,
        catalog: Optional[SurveyCatalog] = None,
        sessions: Optional[SessionStore] = None,
        participants: Optional[ParticipantRegistry] = None,
        responses: Optional[ResponseStore] = None,
        notifier: Optional[Notifier] = None,
        lang: str = DEFAULT_LANG,
    ):
        self.transport = transport
        self.resolver = resolver
        self.catalog = catalog or SurveyCatalog()
        self.sessions = sessions or SessionStore()
        self.participants = participants or ParticipantRegistry()
        self.responses = responses or ResponseStore()
        self.notifier = notifier or Notifier()
        self.lang = lang
        self._locks = KeyedLock()
        self._handlers = {
            Stage.INITIAL: self._on_initial,
            Stage.SURVEY: self._on_survey,
            Stage.FOLLOWUP: self._on_followup,
            Stage.VOICE_CONFIRMATION: self._on_voice_confirmation,
        }

    async def handle_inbound_message(self, message: InboundMessage):
        """Process one inbound message; never raises"""
        async with self._locks.hold(message.sender):
            survey_id = None
            try:
                survey = await self.catalog.get_active()
                if survey is None:
                    await self._reply(message.sender, "no_active_survey")
                    return
                survey_id = survey.id
                await self._converse(message, survey)
            except Exception:
                logger.exception("Failed to handle message from %s", message.sender)
                await self._recover(message.sender, survey_id)

    async def describe_progress(self, sender: str) -> str:
        """Status text for the respondent"""
        survey = await self.catalog.get_active()
        if survey is None:
            return get_text(self.lang, "no_active_survey")

        state = await self.sessions.find(sender, survey.id)
        if state is None:
            participation = await self.participants.find_participation(sender, survey.id)
            if participation and participation.is_completed:
                return get_text(self.lang, "already_completed")
            return get_text(self.lang, "status_not_started")

        total = survey.question_count
        return get_text(
            self.lang, "status_info",
            title=survey.title,
            answered=state.current_question,
            total=total,
            remaining=max(0, total - state.current_question),
        )

    async def _converse(self, message: InboundMessage, survey: SurveyView):
        participation, created = await self.participants.ensure_participation(message.sender, survey.id)
        if participation.is_completed:
            await self._reply(message.sender, "already_completed")
            return
        if created:
            self.notifier.emit(PARTICIPATION_CHANGED, {
                "survey_id": survey.id,
                "participant_code": participation.participant_survey_code,
                "status": "started",
            })

        state = await self.sessions.get_or_create(
            message.sender,
            survey.id,
            participant_id=participation.participant_id,
            participant_code=participation.participant_survey_code,
        )
        handler = self._handlers.get(state.stage)
        if handler is None:
            raise SessionStateError(f"Session {state.id} is in stage {state.stage.value}")
        await handler(message, survey, state, participation)

    # Stage handlers

    async def _on_initial(self, message, survey, state, participation):
        question = self._question(survey, state)
        await self.sessions.update(state.id, stage=Stage.SURVEY)
        await self._send(message.sender, welcome_text(survey, self.lang))
        await self._send(message.sender, question_text(question, state.current_question, survey.question_count, self.lang))

    async def _on_survey(self, message, survey, state, participation):
        question = self._question(survey, state)
        if message.is_voice:
            await self._reply(message.sender, "voice_not_accepted")
            return

        result = validate_answer(question, message.text)
        if isinstance(result, Rejected):
            await self._send(message.sender, retry_text(question, self.lang))
            return

        pending = PendingAnswer(
            question_id=question.id,
            answer=result.value,
            question_type=question.type.value,
            question_text=question.text,
        )
        if not question.ask_followup:
            await self._commit(message.sender, survey, state, participation, pending)
            return

        await self.sessions.update(state.id, stage=Stage.FOLLOWUP, pending=pending)
        await self._send(message.sender, followup_text(question, result.value, self.lang))

    async def _on_followup(self, message, survey, state, participation):
        pending = state.pending
        if not isinstance(pending, PendingAnswer):
            raise SessionStateError(f"Session {state.id} has no pending answer")

        if message.is_voice:
            await self._resolve_voice(message, state, pending)
        elif message.command == SKIP_WORD:
            await self._commit(message.sender, survey, state, participation, pending)
        elif message.text.strip():
            await self._commit(message.sender, survey, state, participation, pending, follow_up=message.text.strip())
        else:
            await self._reply(message.sender, "followup_help")

    async def _on_voice_confirmation(self, message, survey, state, participation):
        pending = state.pending
        if not isinstance(pending, PendingVoice):
            raise SessionStateError(f"Session {state.id} has no pending voice answer")

        reply = "" if message.is_voice else message.command
        if reply in YES_WORDS:
            await self._commit(
                message.sender, survey, state, participation, pending.answer,
                follow_up=pending.voice.summary, voice=pending.voice,
            )
        elif reply in NO_WORDS:
            await self.sessions.update(state.id, stage=Stage.FOLLOWUP, pending=pending.answer)
            await self._reply(message.sender, "voice_retry")
        elif reply == SKIP_WORD:
            await self._commit(message.sender, survey, state, participation, pending.answer)
        else:
            await self._reply(message.sender, "voice_confirm_help")

    # Helpers

    async def _resolve_voice(self, message: InboundMessage, state: ConversationState, pending: PendingAnswer):
        try:
            self.resolver.check_limits(duration=message.attachment_duration)
            if not self.resolver.is_available:
                raise TranscriptionUnavailable("speech service is not configured")
            try:
                audio = await self.transport.download_attachment(message)
            except Exception as e:
                raise TranscriptionFailed(f"download failed: {e}") from e
            resolution = await self.resolver.resolve(audio, pending.question_text, duration=message.attachment_duration)
        except VoiceError as e:
            logger.warning("Voice follow-up from %s failed: %s: %s", message.sender, type(e).__name__, e)
            await self._reply(message.sender, e.message_key, max_duration=self.resolver.max_duration)
            return

        await self.sessions.update(
            state.id,
            stage=Stage.VOICE_CONFIRMATION,
            pending=PendingVoice(answer=pending, voice=resolution),
        )
        await self._send(message.sender, voice_confirmation_text(resolution, self.lang))

    async def _commit(
        self,
        sender: str,
        survey: SurveyView,
        state: ConversationState,
        participation: SurveyParticipation,
        answer: PendingAnswer,
        follow_up: Optional[str] = None,
        voice: Optional[VoiceResolution] = None,
    ):
        """Persist the answer and move to the next question or finish"""
        await self.responses.save(
            survey.id,
            state.participant_id,
            answer.question_id,
            answer.answer,
            follow_up_comment=follow_up,
            voice=voice,
        )
        self.notifier.emit(RESPONSE_SAVED, {
            "survey_id": survey.id,
            "participant_code": participation.participant_survey_code,
            "question_id": answer.question_id,
            "answer": answer.answer,
            "follow_up": follow_up,
            "voice": voice is not None,
        })

        next_index = state.current_question + 1
        total = survey.question_count
        if next_index < total:
            await self.sessions.update(state.id, stage=Stage.SURVEY, current_question=next_index, pending=None)
            await self._send(sender, progress_text(next_index, total, self.lang))
            await self._send(sender, question_text(survey.questions[next_index], next_index, total, self.lang))
            return

        completed = await self.participants.complete(participation.id)
        await self.sessions.delete(state.id)
        await self._reply(sender, "survey_completed")
        logger.info(
            "Participant %s completed survey %s in %ss",
            completed.participant_survey_code, survey.id, completed.completion_duration_seconds,
        )
        self.notifier.emit(SURVEY_COMPLETED, {
            "survey_id": survey.id,
            "survey_title": survey.title,
            "participant_code": completed.participant_survey_code,
            "duration_seconds": completed.completion_duration_seconds,
        })
        self.notifier.emit(PARTICIPATION_CHANGED, {
            "survey_id": survey.id,
            "participant_code": completed.participant_survey_code,
            "status": "completed",
        })

    def _question(self, survey: SurveyView, state: ConversationState) -> QuestionView:
        question = survey.question_at(state.current_question)
        if question is None:
            raise SessionStateError(
                f"Session {state.id} points to question {state.current_question} "
                f"of {survey.question_count} in survey {survey.id}"
            )
        return question

    async def _send(self, recipient: str, text: str):
        await self.transport.send_text(recipient, text)

    async def _reply(self, recipient: str, key: str, **kwargs):
        await self._send(recipient, get_text(self.lang, key, **kwargs))

    async def _recover(self, sender: str, survey_id: Optional[str]):
        """Drop the broken session and apologize"""
        apology = "error_restart"
        if survey_id is not None:
            try:
                await self.sessions.discard(sender, survey_id)
                participation = await self.participants.find_participation(sender, survey_id)
                if participation is not None and participation.is_completed:
                    # Nothing restarts, the answers are already stored
                    apology = "error_completed"
            except Exception:
                logger.exception("Could not reset the session of %s", sender)
        try:
            await self._reply(sender, apology)
        except Exception:
            logger.exception("Could not send the apology to %s", sender)
