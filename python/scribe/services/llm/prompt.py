"""Summary prompt rendering.

The model is forced to answer through the `create_summary` tool, whose JSON
schema fixes the six top-level arrays of a v1 summary. Prompts are chosen by
session language: Dutch for `nl*`, English otherwise.
"""

from collections.abc import Iterable
from typing import Protocol

from scribe.services.llm.types import ToolSpec, Turn

PROMPT_VERSION = "v1"
SUMMARY_TOOL_NAME = "create_summary"

SUMMARY_TOOL = ToolSpec(
    name=SUMMARY_TOOL_NAME,
    description="Create a structured summary of the transcript",
    parameters={
        "type": "object",
        "properties": {
            "summaryBullets": {
                "type": "array",
                "items": {"type": "string"},
                "description": "3-7 key bullet points summarizing the conversation",
            },
            "actionItems": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "task": {"type": "string"},
                        "dueDate": {"type": "string", "description": "ISO date or null"},
                        "priority": {"type": "string", "enum": ["low", "med", "high"]},
                        "context": {"type": "string"},
                    },
                    "required": ["task", "priority"],
                },
                "description": "Action items identified in the conversation",
            },
            "agendaSuggestions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "datetime": {"type": "string", "description": "ISO datetime or null"},
                        "durationMinutes": {"type": "number"},
                        "context": {"type": "string"},
                    },
                    "required": ["title"],
                },
                "description": "Follow-up meetings or agenda suggestions",
            },
            "reminders": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "text": {"type": "string"},
                        "triggerDateTime": {
                            "type": "string",
                            "description": "ISO datetime or null",
                        },
                    },
                    "required": ["text"],
                },
                "description": "Reminders extracted from the conversation",
            },
            "importantFactsToRemember": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Key facts, numbers, or decisions to remember",
            },
            "openQuestions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Unresolved questions from the conversation",
            },
        },
        "required": [
            "summaryBullets",
            "actionItems",
            "agendaSuggestions",
            "reminders",
            "importantFactsToRemember",
            "openQuestions",
        ],
    },
)

SYSTEM_PROMPT_EN = (
    "You are a meeting/conversation summarizer. Analyze the transcript and extract "
    "structured information. Respond ONLY by calling the provided tool."
)
SYSTEM_PROMPT_NL = (
    "Je bent een gespreks-samenvatter. Analyseer het transcript en haal gestructureerde "
    "informatie eruit. Antwoord ALLEEN door de beschikbare tool te gebruiken."
)
USER_PROMPT_EN = 'Summarize this transcript from session "{title}":\n\n{transcript}'
USER_PROMPT_NL = 'Vat dit transcript samen van sessie "{title}":\n\n{transcript}'


class TimedText(Protocol):
    start_time: str
    text: str


def detect_language(
    session_language: str | None, first_chunk_language: str | None, default: str
) -> str:
    """Session language wins, then the first chunk's, then the default."""
    return session_language or first_chunk_language or default


def is_dutch(language: str) -> bool:
    return language.lower().startswith("nl")


def render_transcript(chunks: Iterable[TimedText]) -> str:
    """Render chunks as `[start_time] text` blocks separated by blank lines."""
    return "\n\n".join(f"[{chunk.start_time}] {chunk.text}" for chunk in chunks)


def build_summary_messages(title: str, transcript: str, language: str) -> list[Turn]:
    if is_dutch(language):
        system, user = SYSTEM_PROMPT_NL, USER_PROMPT_NL
    else:
        system, user = SYSTEM_PROMPT_EN, USER_PROMPT_EN
    return [
        Turn(role="system", content=system),
        Turn(role="user", content=user.format(title=title, transcript=transcript)),
    ]
