from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from mathscribe.config import settings
from mathscribe.services.llm import LLMService, is_transient_error


class StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def fake_client(create=None, transcribe=None, speech=None):
    return SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create or AsyncMock())),
        audio=SimpleNamespace(
            transcriptions=SimpleNamespace(create=transcribe or AsyncMock()),
            speech=SimpleNamespace(create=speech or AsyncMock()),
        ),
    )


@pytest.mark.asyncio
async def test_submit_sends_prompt_as_system_message():
    create = AsyncMock(return_value=completion("  <result>x</result>  "))
    service = LLMService(client=fake_client(create=create))

    reply = await service.submit("Convert x", "gpt-4o", 0.3)

    assert reply == "<result>x</result>"
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["temperature"] == 0.3
    assert kwargs["messages"] == [{"role": "system", "content": "Convert x"}]
    assert kwargs["max_tokens"] == settings.llm_max_tokens


@pytest.mark.asyncio
async def test_empty_choices_give_empty_text():
    create = AsyncMock(return_value=SimpleNamespace(choices=[]))
    service = LLMService(client=fake_client(create=create))
    assert await service.submit("p", "m", 0.0) == ""


@pytest.mark.asyncio
async def test_transient_errors_are_retried():
    create = AsyncMock(side_effect=[StatusError("busy", 503), completion("ok")])
    service = LLMService(client=fake_client(create=create), max_retries=3, retry_base_delay=0)

    assert await service.submit("p", "m", 0.0) == "ok"
    assert create.await_count == 2


@pytest.mark.asyncio
async def test_retries_are_bounded():
    create = AsyncMock(side_effect=StatusError("rate limit", 429))
    service = LLMService(client=fake_client(create=create), max_retries=2, retry_base_delay=0)

    with pytest.raises(StatusError):
        await service.submit("p", "m", 0.0)
    assert create.await_count == 2


@pytest.mark.asyncio
async def test_non_transient_error_is_raised_immediately():
    create = AsyncMock(side_effect=StatusError("bad request", 400))
    service = LLMService(client=fake_client(create=create), max_retries=3, retry_base_delay=0)

    with pytest.raises(StatusError):
        await service.submit("p", "m", 0.0)
    assert create.await_count == 1


@pytest.mark.asyncio
async def test_submit_with_image_uses_vision_model():
    create = AsyncMock(return_value=completion("x^2"))
    service = LLMService(client=fake_client(create=create))

    assert await service.submit_with_image("read it", "data:image/png;base64,AAAA") == "x^2"
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == settings.vision_model
    assert kwargs["messages"][1]["content"][0]["image_url"]["url"] == "data:image/png;base64,AAAA"


@pytest.mark.asyncio
async def test_audio_round_trip():
    transcribe = AsyncMock(return_value=SimpleNamespace(text=" x squared "))
    speech = AsyncMock(return_value=SimpleNamespace(content=b"mp3"))
    service = LLMService(client=fake_client(transcribe=transcribe, speech=speech))

    assert await service.transcribe(b"RIFF", "a.wav") == "x squared"
    assert transcribe.await_args.kwargs["file"] == ("a.wav", b"RIFF")
    assert await service.text_to_speech("x squared") == b"mp3"
    assert speech.await_args.kwargs["voice"] == settings.tts_voice


@pytest.mark.asyncio
async def test_readiness_probe_reports_failure():
    create = AsyncMock(side_effect=StatusError("down", 500))
    service = LLMService(client=fake_client(create=create))
    assert await service.check_readiness() is False


def test_missing_api_key_is_reported(monkeypatch):
    monkeypatch.setattr(settings, "openai_api_key", "")
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        LLMService()._get_client()


@pytest.mark.parametrize("error, transient", [
    (StatusError("x", 429), True),
    (StatusError("x", 502), True),
    (StatusError("x", 400), False),
    (ConnectionError("connection reset"), True),
    (TimeoutError("request timed out"), True),
    (ValueError("bad prompt"), False),
])
def test_is_transient_error(error, transient):
    assert is_transient_error(error) is transient
