"""Canned text for the chat front end."""

from __future__ import annotations

from typing import NamedTuple

GREETING = (
    "Hello! I'm your AI Agricultural Assistant. I can help you in multiple "
    "languages - just type in your preferred language! I can assist with crop "
    "diseases, pest control, farming techniques, weather advice, and much more. "
    "What would you like to know?\n\n"
    "नमस्ते! मैं आपका कृषि सहायक हूं। मैं कई भाषाओं में मदद कर सकता हूं!\n\n"
    "వందనములు! నేను మీ వ్యవసాయ సహాయకుడిని. నేను అనేక భాషలలో సహాయం చేయగలను!"
)


class QuickQuestion(NamedTuple):
    text: str
    category: str


QUICK_QUESTIONS: list[QuickQuestion] = [
    QuickQuestion("How to identify pest attacks?", "Pest Control"),
    QuickQuestion("Best irrigation practices", "Water Management"),
    QuickQuestion("Organic farming methods", "Sustainable Farming"),
    QuickQuestion("Crop rotation benefits", "Best Practices"),
]


def resolve_quick_question(entry: str) -> str:
    """Map a 1-based quick question number to its text.

    Anything that isn't a valid number is returned unchanged.
    """
    stripped = entry.strip()
    if stripped.isdigit():
        index = int(stripped) - 1
        if 0 <= index < len(QUICK_QUESTIONS):
            return QUICK_QUESTIONS[index].text
    return entry
