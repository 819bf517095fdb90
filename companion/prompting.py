"""
Prompt assembly for persona replies.

Pure string building: no I/O, identical inputs give identical prompts.
"""

from typing import Iterable

from .models import Turn

HISTORY_WINDOW_LINES = 12
HISTORY_KEEP_LINES = 6  # 3 exchanges of 2 lines


def format_turns(turns: Iterable[Turn], persona_name: str) -> str:
    """Render newest-first turns as chronological 'Speaker: content' lines."""
    lines = [
        f"{'User' if turn.role == 'user' else persona_name}: {turn.content}"
        for turn in turns
    ]
    lines.reverse()
    return "\n".join(lines)


def recent_exchanges(history: str) -> list[str]:
    """Last 3 exchanges: the final 12 lines, blanks dropped, last 6 kept."""
    window = history.split("\n")[-HISTORY_WINDOW_LINES:]
    lines = [line for line in window if line.strip()]
    return lines[-HISTORY_KEEP_LINES:]


def build_prompt(
    persona_name: str,
    persona_instructions: str,
    recent_turns_formatted: str,
    is_repetitive: bool,
    exemplar_text: str,
    current_topic: str,
    relevant_history: str = "",
) -> str:
    """
    Build the instruction block sent to the generation service.

    The anti-repetition rule is always present; when the user is repeating
    themselves the earlier message is quoted so the reply moves on from it.
    """
    sections = [
        "<|system|>",
        f"You are {persona_name}. Stay focused on the current topic of discussion.",
        "",
        "Core Identity:",
        persona_instructions,
        "",
        "CONVERSATION HISTORY (Last 3 exchanges):",
        "\n".join(recent_exchanges(recent_turns_formatted)),
        "",
    ]

    if relevant_history.strip():
        sections.extend([
            "RELEVANT MEMORIES:",
            relevant_history.strip(),
            "",
        ])

    sections.extend([
        f"CURRENT TOPIC: {current_topic}",
        "",
        "RULES:",
        f"1. STAY ON TOPIC: The user is asking about {current_topic}. "
        "Do NOT talk about yourself unless specifically asked",
        "2. NO REPETITION: Don't repeat phrases from your recent messages shown above",
        "3. MEMORY ACTIVE: Reference the conversation history to maintain context",
        "4. FOCUSED RESPONSE: Address the current question directly",
    ])

    if is_repetitive and exemplar_text:
        sections.append(
            f'5. AVOID REPEATING: This closely matches an earlier message: "{exemplar_text}". '
            "Do not reuse that wording; take the conversation somewhere new"
        )

    sections.extend([
        "",
        f"Current question: {current_topic}",
        f"Response as {persona_name}, focusing ONLY on the asked topic:",
        "<|assistant|>",
    ])

    return "\n".join(sections)
