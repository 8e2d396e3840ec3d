import base64
import json

import pytest

from fakes import FakeLLM, tagged
from mathscribe.models.schemas import ExplanationLevel, NotationTarget
from mathscribe.refinement.base import RefinementTimeout, UpstreamFailure
from mathscribe.services.converter import _merge_usage

AUDIO_B64 = base64.b64encode(b"ID3-audio").decode("ascii")


@pytest.mark.asyncio
async def test_text_to_latex(make_converter):
    llm = FakeLLM([tagged("\\frac{1}{2}", thinking="one over two")])
    converter = make_converter(llm)

    result = await converter.text_to_latex("one half", model="m")

    assert result.text == "one half"
    assert result.latex == "\\frac{1}{2}"
    assert "one over two" in result.reasoning
    assert result.refinement.iterations == 1
    assert result.refinement.model_used == "m"
    assert result.usage["call_count"] == 1
    assert result.usage["models"] == ["m"]


@pytest.mark.asyncio
async def test_latex_to_text_and_speech(make_converter):
    llm = FakeLLM([tagged("one half")])
    converter = make_converter(llm)

    result = await converter.latex_to_speech("\\frac{1}{2}", model="m")

    assert result.text == "one half"
    assert result.latex == "\\frac{1}{2}"
    assert result.audio_base64 == AUDIO_B64
    assert llm.spoken == ["one half"]


@pytest.mark.asyncio
async def test_verify_reports_verdict(make_converter):
    converter = make_converter(FakeLLM([tagged("Incorrect.")]))

    result = await converter.verify_latex("1 + 1 = 3", model="m")

    assert result.verdict == "incorrect"
    assert result.correct is False


@pytest.mark.asyncio
async def test_simplify(make_converter):
    converter = make_converter(FakeLLM([tagged("2x")]))
    result = await converter.simplify_latex("x + x", model="m")
    assert result.latex == "2x"
    assert result.text == ""


@pytest.mark.asyncio
async def test_speech_to_latex_transcribes_first(make_converter):
    llm = FakeLLM([tagged("x^{2}")], transcript="x squared")
    converter = make_converter(llm)

    result = await converter.speech_to_latex(b"RIFF", "clip.wav", model="m")

    assert llm.transcribed == [(b"RIFF", "clip.wav")]
    assert result.text == "x squared"
    assert result.latex == "x^{2}"
    assert "x squared" in llm.calls[0].prompt


@pytest.mark.asyncio
async def test_image_to_speech_merges_usage(make_converter):
    llm = FakeLLM(by_model={"m": [tagged("x^{2}"), tagged("x squared")]}, vision_reply="x^{2}")
    converter = make_converter(llm)

    result = await converter.image_to_speech(b"\x89PNG", model="m")

    assert result.latex == "x^{2}"
    assert result.text == "x squared"
    assert result.audio_base64 == AUDIO_B64
    assert len(llm.vision_calls) == 1
    assert result.usage["call_count"] == 2


@pytest.mark.asyncio
async def test_solve_equation_with_audio(make_converter):
    reply = json.dumps({"latex": "x = 2", "steps": ["Subtract 3", "Divide by 2"]})
    llm = FakeLLM([tagged(reply)])
    converter = make_converter(llm)

    result = await converter.solve_equation("2x + 3 = 7", model="m")

    assert result.latex == "x = 2"
    assert result.steps == ["Subtract 3", "Divide by 2"]
    assert result.audio_base64 == AUDIO_B64
    assert llm.spoken == ["Subtract 3. Divide by 2"]


@pytest.mark.asyncio
async def test_solve_equation_without_audio(make_converter):
    reply = json.dumps({"latex": "x = 2", "steps": ["Subtract 3"]})
    llm = FakeLLM([tagged(reply)])

    result = await make_converter(llm).solve_equation("2x + 3 = 7", with_audio=False, model="m")

    assert result.audio_base64 is None
    assert llm.spoken == []


@pytest.mark.asyncio
async def test_explain_expression(make_converter):
    text = "Euler's identity links five fundamental constants through exponentiation and addition."
    reply = json.dumps({"explanation": text, "concepts": ["complex numbers"]})
    converter = make_converter(FakeLLM([tagged(reply)]))

    result = await converter.explain_expression(
        "e^{i\\pi} + 1 = 0", ExplanationLevel.UNDERGRADUATE, with_audio=False, model="m"
    )

    assert result.explanation == text
    assert result.concepts == ["complex numbers"]
    assert result.level is ExplanationLevel.UNDERGRADUATE


@pytest.mark.asyncio
async def test_prove_and_notation(make_converter):
    proof = "\n".join(["Assume n is even, so n = 2k for some integer k."] * 5)
    llm = FakeLLM(by_model={"p": [tagged(proof)], "n": [tagged("<math><mi>x</mi></math>")]})
    converter = make_converter(llm)

    proved = await converter.prove("n^2 is even when n is even", model="p")
    converted = await converter.convert_notation("x", NotationTarget.MATHML, model="n")

    assert proved.proof == proof
    assert converted.output == "<math><mi>x</mi></math>"
    assert converted.target is NotationTarget.MATHML


@pytest.mark.asyncio
async def test_repeat_conversion_is_served_from_cache(make_converter):
    llm = FakeLLM([tagged("x^{2}")])
    converter = make_converter(llm)

    first = await converter.text_to_latex("x squared", model="m")
    second = await converter.text_to_latex("x squared", model="m")

    assert first.latex == second.latex
    assert len(llm.calls) == 1
    assert second.usage["call_count"] == 0
    assert converter.cache.stats()["size"] == 1


@pytest.mark.asyncio
async def test_upstream_failure_propagates(make_converter):
    llm = FakeLLM([RuntimeError("down")])
    with pytest.raises(UpstreamFailure):
        await make_converter(llm).text_to_latex("x", model="m", fallback_model=None)


@pytest.mark.asyncio
async def test_timeout_propagates(make_converter):
    llm = FakeLLM([tagged("x")], delay=0.2)
    with pytest.raises(RefinementTimeout):
        await make_converter(llm).text_to_latex("x", model="m", timeout_ms=10)


def test_merge_usage():
    first = {"call_count": 1, "failed_calls": 0, "total_tokens": 10, "total_cost_usd": 0.001, "models": ["a"]}
    second = {"call_count": 2, "failed_calls": 1, "total_tokens": 5, "total_cost_usd": 0.002, "models": ["b", "a"]}
    merged = _merge_usage(first, second)
    assert merged["call_count"] == 3
    assert merged["failed_calls"] == 1
    assert merged["total_tokens"] == 15
    assert merged["total_cost_usd"] == pytest.approx(0.003)
    assert merged["models"] == ["a", "b"]
