import json
from types import SimpleNamespace

import pytest

from poiseed.vendors import openai_classifier
from poiseed.vendors.openai_classifier import ClassifierError, OpenAIClassifier, parse_classification

from helpers import raw_place


def _reply(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, replies):
        self.replies = replies
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        prompt = kwargs["messages"][1]["content"]
        for name, reply in self.replies.items():
            if f'Name: "{name}"' in prompt:
                if isinstance(reply, Exception):
                    raise reply
                return _reply(reply)
        raise RuntimeError("unexpected prompt")


def _client(replies):
    completions = FakeCompletions(replies)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


VALID = json.dumps(
    {
        "category": "cafe",
        "confidence": 0.92,
        "reasoning": "Coffee shop",
        "isValid": True,
        "alternativeCategory": "restaurant",
    }
)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(openai_classifier.time, "sleep", recorded.append)
    return recorded


def test_parse_classification_accepts_fenced_json():
    result = parse_classification(f"```json\n{VALID}\n```")
    assert result.category == "cafe"
    assert result.confidence == 0.92
    assert result.is_valid is True
    assert result.alternative_category == "restaurant"


def test_parse_classification_clamps_confidence_and_drops_unknown_alternative():
    result = parse_classification(json.dumps({"category": "park", "confidence": 3, "isValid": True, "alternativeCategory": "zoo"}))
    assert result.confidence == 1.0
    assert result.alternative_category is None


@pytest.mark.parametrize(
    "content",
    [
        "not json at all",
        "[1, 2, 3]",
        json.dumps({"category": "zoo", "confidence": 0.9, "isValid": True}),
        None,
    ],
)
def test_parse_classification_rejects_unusable_replies(content):
    with pytest.raises(ClassifierError):
        parse_classification(content)


def test_prompt_lists_place_details_and_taxonomy():
    prompt = openai_classifier.build_prompt(raw_place("Blue Bottle", ["cafe"], vicinity="1 Main St", rating=4.6))
    assert 'Name: "Blue Bottle"' in prompt
    assert "Description/Address: \"1 Main St\"" in prompt
    assert "Google Types: cafe" in prompt
    assert "Rating: 4.6" in prompt
    assert "park, restaurant, attraction" in prompt


def test_classify_returns_result(sleeps):
    client, completions = _client({"Blue Bottle": VALID})
    classifier = OpenAIClassifier("key", "gpt-test", client=client)

    result = classifier.classify(raw_place("Blue Bottle", ["cafe"]))

    assert result.category == "cafe"
    assert completions.calls[0]["model"] == "gpt-test"
    assert completions.calls[0]["temperature"] == 0.1


def test_classify_degrades_to_none(sleeps):
    client, _ = _client({"Broken": "{oops", "Offline": ConnectionError("down")})
    classifier = OpenAIClassifier("key", client=client)

    assert classifier.classify(raw_place("Broken")) is None
    assert classifier.classify(raw_place("Offline")) is None


def test_classify_many_runs_in_groups_with_pauses(sleeps):
    names = [f"Cafe {i}" for i in range(5)]
    replies = {name: VALID for name in names}
    replies["Cafe 3"] = "garbage"
    client, completions = _client(replies)
    classifier = OpenAIClassifier("key", client=client, group_size=2, group_pause=0.5)

    places = [raw_place(name, ["cafe"], place_id=f"id-{i}") for i, name in enumerate(names)]
    results = classifier.classify_many(places)

    assert sorted(results) == ["id-0", "id-1", "id-2", "id-4"]
    assert len(completions.calls) == 5
    assert sleeps.count(0.5) == 2
    per_call = [s for s in sleeps if s != 0.5]
    assert len(per_call) == 5
    assert all(0.05 <= s <= 0.15 for s in per_call)


def test_classify_many_with_no_places_skips_calls(sleeps):
    client, completions = _client({})
    assert OpenAIClassifier("key", client=client).classify_many([]) == {}
    assert completions.calls == []
