"""
Unit tests for companion/prompting.py
"""

from companion.prompting import build_prompt, format_turns, recent_exchanges
from tests.fixtures import make_turns


def make_prompt(**overrides) -> str:
    kwargs = dict(
        persona_name="Ada",
        persona_instructions="You are Ada, a patient mathematics tutor.",
        recent_turns_formatted="User: hi\nAda: Hello!",
        is_repetitive=False,
        exemplar_text="",
        current_topic="the analytical engine",
    )
    kwargs.update(overrides)
    return build_prompt(**kwargs)


class TestFormatTurns:
    """Tests for format_turns."""

    def test_chronological_with_speaker_labels(self):
        turns = make_turns([
            ("user", "hi"),
            ("assistant", "Hello!"),
            ("user", "what is a loom?"),
        ])

        assert format_turns(turns, "Ada") == "User: hi\nAda: Hello!\nUser: what is a loom?"

    def test_no_turns(self):
        assert format_turns([], "Ada") == ""


class TestRecentExchanges:
    """Tests for the last-3-exchanges window."""

    def test_keeps_last_six_of_final_twelve(self):
        history = "\n".join(f"line {i}" for i in range(20))

        assert recent_exchanges(history) == [f"line {i}" for i in range(14, 20)]

    def test_blank_lines_dropped_inside_window(self):
        history = "a\n\nb\n\nc\n\nd\n\ne\n\nf\n\ng"

        # 13 lines; the final 12 start at the blank after "a"
        assert recent_exchanges(history) == ["b", "c", "d", "e", "f", "g"]

    def test_short_history(self):
        assert recent_exchanges("User: hi") == ["User: hi"]
        assert recent_exchanges("") == []


class TestBuildPrompt:
    """Tests for build_prompt."""

    def test_structure(self):
        prompt = make_prompt()
        lines = prompt.split("\n")

        assert lines[0] == "<|system|>"
        assert lines[1] == "You are Ada. Stay focused on the current topic of discussion."
        assert lines[-1] == "<|assistant|>"
        assert "Core Identity:\nYou are Ada, a patient mathematics tutor." in prompt
        assert "CONVERSATION HISTORY (Last 3 exchanges):\nUser: hi\nAda: Hello!" in prompt
        assert "Response as Ada, focusing ONLY on the asked topic:" in prompt

    def test_topic_appears_in_topic_and_question(self):
        prompt = make_prompt(current_topic="looms")

        assert "CURRENT TOPIC: looms" in prompt
        assert "Current question: looms" in prompt
        assert "The user is asking about looms." in prompt

    def test_no_repetition_rule_always_present(self):
        prompt = make_prompt()

        assert "2. NO REPETITION:" in prompt
        assert "AVOID REPEATING" not in prompt

    def test_repetition_directive_quotes_exemplar(self):
        prompt = make_prompt(is_repetitive=True, exemplar_text="hi")

        assert '5. AVOID REPEATING: This closely matches an earlier message: "hi".' in prompt
        assert prompt.index("5. AVOID REPEATING") < prompt.index("Current question:")

    def test_repetition_without_exemplar_adds_nothing(self):
        assert "AVOID REPEATING" not in make_prompt(is_repetitive=True, exemplar_text="")

    def test_relevant_memories_block(self):
        prompt = make_prompt(relevant_history="Ada met Babbage in 1833.")

        assert "RELEVANT MEMORIES:\nAda met Babbage in 1833." in prompt
        assert prompt.index("RELEVANT MEMORIES:") < prompt.index("CURRENT TOPIC:")

    def test_no_memories_block_when_empty(self):
        assert "RELEVANT MEMORIES" not in make_prompt(relevant_history="  ")

    def test_history_trimmed_to_three_exchanges(self):
        history = "\n".join(f"User: q{i}\nAda: a{i}" for i in range(10))

        prompt = make_prompt(recent_turns_formatted=history)

        assert "User: q6" not in prompt
        assert "User: q7\nAda: a7\nUser: q8\nAda: a8\nUser: q9\nAda: a9" in prompt

    def test_deterministic(self):
        assert make_prompt() == make_prompt()
