import json

import pytest

from talktopost.services.response_contract import (
    DraftResponse,
    ResponseContractError,
    _clean_json_payload,
)


def test_clean_json_payload_strips_markdown_fences():
    payload = '```json\n{"mode": "tweet", "tweets": []}\n```'
    assert _clean_json_payload(payload) == '{"mode": "tweet", "tweets": []}'


def test_clean_json_payload_drops_prose_around_object():
    payload = 'Sure! Here it is: {"mode": "tweet"} Hope this helps.'
    assert _clean_json_payload(payload) == '{"mode": "tweet"}'


def test_clean_json_payload_handles_empty():
    assert _clean_json_payload(None) == ""
    assert _clean_json_payload("") == ""


def test_from_json_recomputes_char_count_and_trims():
    payload = json.dumps(
        {"mode": "tweet", "tweets": [{"text": "  Shipping voice drafts today.  ", "char_count": 999}]}
    )

    draft = DraftResponse.from_json(payload)

    assert draft.texts == ["Shipping voice drafts today."]
    assert draft.tweets[0].char_count == len("Shipping voice drafts today.")


def test_mode_follows_tweet_count():
    payload = json.dumps(
        {"mode": "tweet", "tweets": [{"text": "First idea."}, {"text": "Second idea."}]}
    )
    assert DraftResponse.from_json(payload).mode == "thread"

    payload = json.dumps({"mode": "thread", "tweets": [{"text": "Only one."}]})
    assert DraftResponse.from_json(payload).mode == "tweet"


def test_empty_tweets_are_dropped():
    payload = json.dumps(
        {"mode": "thread", "tweets": [{"text": "Keep me."}, {"text": "   "}, "", "And me."]}
    )

    draft = DraftResponse.from_json(payload)

    assert draft.texts == ["Keep me.", "And me."]
    assert draft.mode == "thread"


def test_plain_string_tweets_are_accepted():
    draft = DraftResponse.from_json('{"tweets": ["Hello there."]}')
    assert draft.thread_payload() == [{"text": "Hello there.", "char_count": 12}]


@pytest.mark.parametrize(
    "payload",
    [
        "not json at all",
        '{"mode": "tweet"}',
        '{"mode": "tweet", "tweets": []}',
        '{"mode": "tweet", "tweets": [{"text": "  "}]}',
        '{"mode": "tweet", "tweets": "nope"}',
    ],
)
def test_invalid_payloads_raise_contract_error(payload):
    with pytest.raises(ResponseContractError):
        DraftResponse.from_json(payload)


def test_fallback_truncates_to_limit():
    draft = DraftResponse.fallback("x" * 400, 280)

    assert draft.mode == "tweet"
    assert len(draft.tweets) == 1
    assert draft.tweets[0].char_count == 280
