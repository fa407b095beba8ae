from conftest import FakeGateway, FakeOcr
from studyshelf.services.errors import ProviderError
from studyshelf.services.metadata import FALLBACK_AUTHOR, extract_metadata


def test_title_and_author_from_cover(app):
    gateway = FakeGateway('```json\n{"title": "Organic Chemistry", "author": "P. Bruice"}\n```')
    meta = extract_metadata("https://cdn.test/p1.jpg", FakeOcr(), gateway, provider="gemini")

    assert (meta.title, meta.author) == ("Organic Chemistry", "P. Bruice")
    assert len(gateway.calls) == 1
    assert gateway.calls[0]["kind"] == "gemini"
    assert "Introduction to Biology" in gateway.calls[0]["context"]


def test_unknown_author_triggers_generic_prompt(app):
    def reply(call):
        if "cover page" in call["instruction"]:
            return '{"title": "Organic Chemistry", "author": "Unknown"}'
        return '{"title": "Carbon Compounds Primer", "author": "Chemistry Course Author"}'

    gateway = FakeGateway(reply)
    meta = extract_metadata("https://cdn.test/p1.jpg", FakeOcr(), gateway, fallback_provider="deepseek")

    assert meta.title == "Organic Chemistry"
    assert meta.author == "Chemistry Course Author"
    assert [c["kind"] for c in gateway.calls] == [None, "deepseek"]


def test_unparsable_answer_falls_back_to_generic(app):
    def reply(call):
        if "cover page" in call["instruction"]:
            return "I think this is a biology book."
        return '{"title": "Life Sciences Notes", "author": "Anonymous Publisher"}'

    meta = extract_metadata("https://cdn.test/p1.jpg", FakeOcr(), FakeGateway(reply))
    assert (meta.title, meta.author) == ("Life Sciences Notes", "Anonymous Publisher")


def test_never_empty_when_every_provider_fails(app):
    gateway = FakeGateway(ProviderError("gateway", "No API keys available for AI processing"))
    meta = extract_metadata("https://cdn.test/p1.jpg", FakeOcr(text="\nUnknown\nThe Human Genome\n"), gateway)

    assert meta.title == "The Human Genome"
    assert meta.author == FALLBACK_AUTHOR


def test_ocr_failure_still_produces_metadata(app):
    gateway = FakeGateway(ProviderError("gemini", "quota exceeded"))
    meta = extract_metadata("https://cdn.test/p1.jpg", FakeOcr(failing={1}), gateway)

    assert meta.title
    assert meta.author
    assert meta.title.lower() != "unknown"
