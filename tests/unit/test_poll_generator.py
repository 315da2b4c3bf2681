"""Prompt building and model output parsing for poll generation."""

import pytest

from pulseearn.polls.generator import PollGenerationError, build_prompt, parse_polls


class TestBuildPrompt:
    def test_plain(self):
        prompt = build_prompt(3)
        assert prompt.startswith("Generate 3 engaging and neutral poll questions. Each poll")
        assert "2-6 options" in prompt

    def test_topic_and_categories(self):
        prompt = build_prompt(2, topic="food", categories=["Snacks", "Drinks"])
        assert "about food in the following categories: Snacks, Drinks." in prompt


class TestParsePolls:
    def test_object_with_polls(self):
        assert parse_polls('{"polls": [{"title": "A?"}]}') == [{"title": "A?"}]

    def test_bare_list(self):
        assert parse_polls('[{"title": "B?"}]') == [{"title": "B?"}]

    @pytest.mark.parametrize("content", ["not json", '{"polls": "nope"}', '"text"', ""])
    def test_unusable_output(self, content):
        with pytest.raises(PollGenerationError, match="Failed to parse OpenAI response"):
            parse_polls(content)
