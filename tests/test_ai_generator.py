import json

import pytest
from openai import OpenAIError

from app.services.ai_generator import (
    AIGenerationError,
    AIServiceNotConfigured,
    CandidateGenerator,
    clean_source_text,
    parse_card_reply,
)
from conftest import FakeAIClient

SOURCE = "Photosynthesis converts light energy into chemical energy in plants."


def test_clean_source_text_trims():
    assert clean_source_text("   " + SOURCE + "\n") == SOURCE


@pytest.mark.parametrize("text", [None, "", "   ", "too short", "x" * 10001])
def test_clean_source_text_rejects(text):
    with pytest.raises(ValueError):
        clean_source_text(text)


def test_parse_reply_strips_code_fences():
    front, back = parse_card_reply('```json\n{"front": " Q ", "back": "A"}\n```')
    assert (front, back) == ("Q", "A")


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "[1, 2]",
        json.dumps({"front": "Q"}),
        json.dumps({"front": "x" * 201, "back": "A"}),
        json.dumps({"front": "Q", "back": "x" * 501}),
        None,
    ],
)
def test_parse_reply_rejects(content):
    with pytest.raises(AIGenerationError):
        parse_card_reply(content)


def test_generate_single_sends_prompt():
    client = FakeAIClient()
    gen = CandidateGenerator(model="some/model", client=client)

    card = gen.generate_single(SOURCE)

    assert card.front == "What is photosynthesis?"
    assert card.model == "fake/model"
    call = client.chat.completions.calls[0]
    assert call["model"] == "some/model"
    assert call["response_format"] == {"type": "json_object"}
    assert SOURCE in call["messages"][0]["content"]


def test_generate_single_without_key():
    with pytest.raises(AIServiceNotConfigured):
        CandidateGenerator(api_key="").generate_single(SOURCE)


def test_generate_single_validates_before_calling():
    client = FakeAIClient()
    with pytest.raises(ValueError):
        CandidateGenerator(client=client).generate_single("short")
    assert client.chat.completions.calls == []


def test_provider_error_is_wrapped():
    gen = CandidateGenerator(client=FakeAIClient(error=OpenAIError("rate limited")))
    with pytest.raises(AIGenerationError, match="Failed to generate flashcard with AI"):
        gen.generate_single(SOURCE)
