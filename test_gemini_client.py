# test_gemini_client.py

import requests

from gemini_client import extract_candidate_text, preview, redact, screen_input, summarize
from prompts import SINGLE_INPUT_DELIMITER
from schema_models import ErrorKind

LONG_INPUT = "The payments team is migrating settlement jobs to the new ledger service."


def test_complete_posts_prompt_and_returns_stripped_text(make_client):
    client, session = make_client("  A tidy summary.  \n")
    res = client.complete("Summarize this please")
    assert res.ok and res.value == "A tidy summary."

    call = session.calls[0]
    assert call.url == "https://example.test/v1beta/models/test-model:generateContent"
    assert call.params == {"key": "test-key"}
    assert call.json["contents"] == [{"parts": [{"text": "Summarize this please"}]}]
    assert call.json["generationConfig"] == {"temperature": 0.2, "maxOutputTokens": 256}


def test_complete_honours_model_and_generation_config(make_client):
    client, session = make_client("ok text")
    client.complete("p", model="other-model", generation_config={"temperature": 0.9, "maxOutputTokens": 10})
    assert session.calls[0].url.endswith("/models/other-model:generateContent")
    assert session.calls[0].json["generationConfig"] == {"temperature": 0.9, "maxOutputTokens": 10}


def test_missing_key_never_calls_the_api(make_client):
    client, session = make_client(api_key="  ")
    res = client.complete("anything")
    assert res.kind == ErrorKind.AUTH_MISSING
    assert res.render() == "AI key not configured."
    assert session.calls == []


def test_non_200_is_request_failed(make_client):
    client, _ = make_client(500)
    assert client.complete("p").render() == "AI response failed"


def test_transport_error_is_connection_error(make_client):
    client, _ = make_client(requests.ConnectionError("connection refused"))
    res = client.complete("p")
    assert res.kind == ErrorKind.CONNECTION_ERROR
    assert res.render() == "Error: Connecting to AI"


def test_missing_candidates_is_empty_response(make_client):
    client, _ = make_client({"candidates": []})
    assert client.complete("p").render() == "Response not available."


def test_generate_joins_instruction_and_input(make_client):
    client, session = make_client("Settlement jobs move to the ledger.")
    out = client.generate(LONG_INPUT, "Summarize in one sentence.")
    assert out == "Settlement jobs move to the ledger."
    assert session.prompt() == "Summarize in one sentence." + SINGLE_INPUT_DELIMITER + LONG_INPUT


def test_generate_screens_degenerate_input_without_calling(make_client):
    client, session = make_client()
    assert client.generate("", "x") == "N/A"
    assert client.generate("   ", "x") == "N/A"
    assert client.generate("N/A", "x") == "N/A"
    assert client.generate("Done", "x") == "N/A"
    assert client.generate("123 456 789", "x") == "N/A"
    assert session.calls == []


def test_generate_returns_short_input_verbatim(make_client):
    client, session = make_client()
    assert client.generate("On track now", "x") == "On track now"
    assert session.calls == []


def test_screen_input_lets_real_text_through():
    assert screen_input(LONG_INPUT) is None


def test_summarize_wrapper_uses_given_client(make_client):
    client, _ = make_client("Short answer.")
    assert summarize(LONG_INPUT, "Summarize.", client=client) == "Short answer."


def test_extract_candidate_text_tolerates_odd_shapes():
    assert extract_candidate_text({"candidates": [{"content": {"parts": [{"text": "hi"}]}}]}) == "hi"
    assert extract_candidate_text({"candidates": [{"content": {}}]}) is None
    assert extract_candidate_text({"candidates": [{"content": {"parts": [{"text": 3}]}}]}) is None
    assert extract_candidate_text(None) is None


def test_api_keys_are_redacted_from_log_text():
    url = "https://host/v1beta/models/m:generateContent?key=AIzaSyA1234567890abcdefghijkl&alt=json"
    out = redact(url)
    assert "AIzaSy" not in out
    assert "key=[redacted]" in out
    assert preview("x" * 50, 10) == "x" * 10 + "..."


def test_unexpected_session_error_is_connection_error(make_client):
    client, _ = make_client(RuntimeError("socket wrapper blew up"))
    res = client.complete("p")
    assert res.kind == ErrorKind.CONNECTION_ERROR
    assert res.render() == "Error: Connecting to AI"


def test_short_input_is_returned_trimmed(make_client):
    client, session = make_client()
    assert client.generate("  On track now \n", "x") == "On track now"
    assert session.calls == []
