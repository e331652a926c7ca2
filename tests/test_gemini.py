from __future__ import annotations

import io
import json
from types import SimpleNamespace

import pytest
from PIL import Image

pytest.importorskip("google.generativeai")

from seo_geotagger.generation import gemini as gemini_mod
from seo_geotagger.generation.gemini import GeminiClient
from seo_geotagger.util.errors import (
    ConfigurationError,
    EnhancementFailure,
    GenerationFailure,
    GenerationFailureKind,
)


def _png() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (4, 4)).save(buf, format="PNG")
    return buf.getvalue()


def _response(*parts, finish_reason="STOP", block_reason=None, candidates=True):
    candidate = SimpleNamespace(
        finish_reason=SimpleNamespace(name=finish_reason),
        content=SimpleNamespace(parts=list(parts)),
    )
    return SimpleNamespace(
        candidates=[candidate] if candidates else [],
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
    )


class FakeGenAI:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.configured: dict = {}
        self.calls: list[tuple[str, dict, list]] = []

    def configure(self, **kw) -> None:
        self.configured = kw

    def GenerativeModel(self, name, generation_config=None):
        fake = self

        class _Model:
            def generate_content(self, contents):
                fake.calls.append((name, generation_config or {}, contents))
                if fake.error:
                    raise fake.error
                return fake.response

        return _Model()


@pytest.fixture
def fake_genai(monkeypatch: pytest.MonkeyPatch) -> FakeGenAI:
    fake = FakeGenAI()
    monkeypatch.setattr(gemini_mod, "genai", fake)
    return fake


def _payload(**overrides) -> str:
    body = {
        "name": "lg-fridge-acme-repairs",
        "description": "Fridge repair for commercial and domestic clients.",
        "altText": "A white fridge",
        "caption": "Keep it cool!",
        "tags": ["fridge", "lg"],
    }
    body.update(overrides)
    return json.dumps(body)


def test_missing_key_raises(monkeypatch: pytest.MonkeyPatch, fake_genai: FakeGenAI) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        GeminiClient()


def test_generate_parses_and_adds_required_tags(fake_genai: FakeGenAI) -> None:
    fake_genai.response = _response(SimpleNamespace(text=_payload()))
    client = GeminiClient(api_key="k", text_model="text-model")
    record = client.generate(_png(), "Acme Repairs", "image/png")

    assert fake_genai.configured == {"api_key": "k"}
    name, config, contents = fake_genai.calls[0]
    assert name == "text-model"
    assert config["response_mime_type"] == "application/json"
    assert "Acme Repairs" in contents[0]
    assert contents[1]["mime_type"] == "image/png"

    assert record.alt_text == "A white fridge"
    assert record.tags[:2] == ("fridge", "lg")
    assert {"Acme Repairs", "commercial appliance repair", "domestic appliance repair"} <= set(record.tags)


def test_safety_finish_is_policy_failure(fake_genai: FakeGenAI) -> None:
    fake_genai.response = _response(finish_reason="SAFETY")
    with pytest.raises(GenerationFailure) as exc:
        GeminiClient(api_key="k").generate(b"img", "Acme")
    assert exc.value.is_policy_rejection


def test_blocked_prompt_is_policy_failure(fake_genai: FakeGenAI) -> None:
    fake_genai.response = _response(block_reason=SimpleNamespace(name="SAFETY"), candidates=False)
    with pytest.raises(GenerationFailure) as exc:
        GeminiClient(api_key="k").generate(b"img", "Acme")
    assert exc.value.failure == GenerationFailureKind.POLICY


@pytest.mark.parametrize(
    "text",
    ["not json", _payload(tags=[]), _payload(name="  "), json.dumps({"name": "x"})],
)
def test_malformed_payloads(fake_genai: FakeGenAI, text: str) -> None:
    fake_genai.response = _response(SimpleNamespace(text=text))
    with pytest.raises(GenerationFailure) as exc:
        GeminiClient(api_key="k").generate(b"img", "Acme")
    assert exc.value.failure == GenerationFailureKind.MALFORMED_RESPONSE


def test_no_candidates_is_malformed(fake_genai: FakeGenAI) -> None:
    fake_genai.response = _response(candidates=False)
    with pytest.raises(GenerationFailure) as exc:
        GeminiClient(api_key="k").generate(b"img", "Acme")
    assert exc.value.failure == GenerationFailureKind.MALFORMED_RESPONSE


def test_transport_errors_are_wrapped(fake_genai: FakeGenAI) -> None:
    fake_genai.error = ConnectionError("offline")
    logs: list[str] = []
    with pytest.raises(GenerationFailure) as exc:
        GeminiClient(api_key="k", log=logs.append).generate(b"img", "Acme")
    assert exc.value.failure == GenerationFailureKind.TRANSPORT
    assert "offline" in exc.value.reason
    assert logs


def test_enhance_returns_inline_image(fake_genai: FakeGenAI) -> None:
    fake_genai.response = _response(
        SimpleNamespace(text="Here you go", inline_data=None),
        SimpleNamespace(inline_data=SimpleNamespace(mime_type="image/png", data=b"PNGDATA")),
    )
    assert GeminiClient(api_key="k").enhance(b"img", "image/jpeg") == b"PNGDATA"


def test_enhance_without_image_part_fails(fake_genai: FakeGenAI) -> None:
    fake_genai.response = _response(SimpleNamespace(text="sorry", inline_data=None))
    with pytest.raises(EnhancementFailure) as exc:
        GeminiClient(api_key="k").enhance(b"img")
    assert exc.value.failure == GenerationFailureKind.MALFORMED_RESPONSE


def test_add_person_sends_both_images(fake_genai: FakeGenAI) -> None:
    fake_genai.response = _response(
        SimpleNamespace(inline_data=SimpleNamespace(mime_type="image/jpeg", data=b"JPEGDATA"))
    )
    out = GeminiClient(api_key="k", image_model="img-model").add_person(_png(), _png())
    assert out == b"JPEGDATA"
    name, _config, contents = fake_genai.calls[0]
    assert name == "img-model"
    assert [c["mime_type"] for c in contents[1:]] == ["image/png", "image/png"]
