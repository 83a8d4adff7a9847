"""Respondent-facing texts"""

DEFAULT_LANG = "en"

FOLLOWUP_OPTIONS = (
    "You can:\n"
    "🎤 Send a voice message (I'll transcribe it)\n"
    "💬 Type your response\n"
    "⏭️ Type 'skip' to continue"
)

TEXTS = {
    "en": {
        "no_active_survey": "Hello! There's no active survey at the moment. Please check back later!",
        "already_completed": "You have already completed this survey. Thank you for your time!",
        "welcome": (
            "Welcome to our survey! 📊\n\n{title}\n\n{description}"
            "This will take about {estimated_time}. Let's get started!"
        ),
        "question_header": "Question {number}/{total}\n\n{text}\n\n",
        "choose_option": "Reply with the number of your choice (1, 2, 3...)",
        "rate_scale": "Rate from {min} to {max}\n{min} = {low}\n{max} = {high}\n\nReply with a number from {min} to {max}",
        "type_answer": "Please type your answer:",

        "retry_option": "Sorry, I didn't understand that. Please reply with a number from 1 to {count}.",
        "retry_scale": "Sorry, I didn't understand that. Please reply with a number from {min} to {max}.",
        "retry_text": "Sorry, I didn't get an answer. Please type your answer.",
        "voice_not_accepted": (
            "I received your voice message! For survey questions, please respond with the number "
            "of your choice or type your answer. You can use voice messages for follow-up explanations!"
        ),

        "followup_agree": "Great, you agree! What makes you feel that way?\n\n" + FOLLOWUP_OPTIONS,
        "followup_disagree": "Thanks for being honest! What makes you disagree?\n\n" + FOLLOWUP_OPTIONS,
        "followup_undecided": "That's fair! What makes it hard to decide?\n\n" + FOLLOWUP_OPTIONS,
        "followup_choice": "Great! Could you tell me why you chose \"{answer}\"?\n\n" + FOLLOWUP_OPTIONS,
        "followup_rating_low": "You rated it {answer}. What could be improved?\n\n" + FOLLOWUP_OPTIONS,
        "followup_rating_mid": "You rated it {answer}. What would make it better for you?\n\n" + FOLLOWUP_OPTIONS,
        "followup_rating_high": "You rated it {answer}! What do you like the most?\n\n" + FOLLOWUP_OPTIONS,
        "followup_text": "Thank you! Is there anything you'd like to add?\n\n" + FOLLOWUP_OPTIONS,
        "followup_help": "Please tell me a bit more about your answer.\n\n" + FOLLOWUP_OPTIONS,

        "voice_heard": "🎤 Here's what you said:\n\n\"{transcript}\"",
        "voice_translated": "\n\nTranslated: \"{translation}\"",
        "voice_summary": "\n\n📝 Summary of your response:\n\"{summary}\"",
        "voice_confirm": (
            "\n\nIs this what you meant?\n"
            "✅ Type 'yes' to confirm\n"
            "❌ Type 'no' to try again\n"
            "⏭️ Type 'skip' to continue without this response"
        ),
        "voice_confirm_help": "Please respond with:\n✅ 'yes' to confirm\n❌ 'no' to try again\n⏭️ 'skip' to continue",
        "voice_retry": (
            "No problem! Let's try again.\n\n"
            "You can:\n🎤 Send another voice message\n💬 Type your response\n⏭️ Type 'skip' to continue"
        ),

        "voice_too_long": "Voice message is too long. Please keep it under {max_duration} seconds and try again.",
        "voice_unavailable": (
            "I received your voice message, but voice transcription is not available right now. "
            "Could you please type your response instead? Or type 'skip' to continue."
        ),
        "voice_timeout": "Voice processing timed out. Please try a shorter message or type your response instead.",
        "voice_rate_limited": "Too many requests. Please wait a moment and try again, or type your response instead.",
        "voice_failed": "Sorry, I couldn't process your voice message. Please try again or type your response instead.",

        "progress": "Thank you for sharing!\n\nProgress: {percent}% complete\n\n---\n\nLet's continue...",
        "survey_completed": (
            "Thank you for completing the survey!\n\n"
            "Your responses have been recorded. Your feedback is valuable to us!\n\n"
            "Have a great day!"
        ),
        "error_restart": (
            "Sorry, something went wrong on our side. "
            "Your survey will restart with your next message."
        ),
        "error_completed": (
            "Sorry, something went wrong on our side, but your responses have been recorded. "
            "Thank you for completing the survey!"
        ),

        "help_text": (
            "I'm a survey bot. Answer each question with a number or a short text, "
            "then tell me more by text or voice, or type 'skip'.\n\n"
            "/status - your progress"
        ),
        "status_not_started": "You haven't started the survey yet. Send any message to begin!",
        "status_info": "📊 Survey: {title}\n\nAnswered: {answered} of {total}\nRemaining: {remaining}",
    },
}


def get_text(lang: str, key: str, **kwargs) -> str:
    """Text by key, English when the language or key is missing"""
    texts = TEXTS.get(lang) or TEXTS[DEFAULT_LANG]
    text = texts.get(key) or TEXTS[DEFAULT_LANG][key]
    return text.format(**kwargs) if kwargs else text
