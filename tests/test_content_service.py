import random
from types import SimpleNamespace

from app.data.healthcare_content import AUDIO_SENTENCES, SAMPLE_TEXTS
from app.services.content_service import ContentService


def _client(create):
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def _completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def test_fallback_without_client():
    svc = ContentService(client=None, rng=random.Random(1))
    res = svc.generate("advanced")
    assert res.source.value == "sample"
    assert res.content in SAMPLE_TEXTS["advanced"]


def test_audio_sentence_fallback():
    res = ContentService(client=None).generate("beginner", "audio_sentence")
    assert res.content in AUDIO_SENTENCES


def test_openai_text_is_used():
    seen = {}

    def create(**kwargs):
        seen.update(kwargs)
        return _completion("  Generated passage.  ")

    res = ContentService(client=_client(create), model="m-test").generate("intermediate")
    assert res.source.value == "openai"
    assert res.content == "Generated passage."
    assert seen["model"] == "m-test"
    assert "medium paragraph" in seen["messages"][0]["content"]


def test_openai_error_falls_back():
    def create(**kwargs):
        raise RuntimeError("quota")

    res = ContentService(client=_client(create), rng=random.Random(0)).generate("beginner")
    assert res.source.value == "sample"
    assert res.content in SAMPLE_TEXTS["beginner"]


def test_empty_openai_reply_falls_back():
    res = ContentService(client=_client(lambda **kw: _completion("")), rng=random.Random(0)).generate("beginner")
    assert res.source.value == "sample"
