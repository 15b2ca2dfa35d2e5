# test_batch_summarize.py

import logging

from batch_summarize import BatchSummarizer, build_batch_prompt, reconcile_count, summarize_batch
from config import BATCH_CHUNK_SIZE, BATCH_MAX_OUTPUT_TOKENS, BATCH_TEMPERATURE
from schema_models import BatchOptions, ErrorKind

TEXTS = ["First note about vendor delays.", "Second note about staffing gaps."]
INSTRUCTION = "Summarize each note in one sentence."


def test_exact_count_is_returned_in_order(make_client):
    client, session = make_client('["Vendor delays.", "Staffing gaps."]')
    out = BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION)
    assert out == ["Vendor delays.", "Staffing gaps."]
    assert len(session.calls) == 1
    assert session.calls[0].json["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 4096}


def test_prompt_carries_count_and_numbered_items(make_client):
    client, session = make_client('["a", "b"]')
    BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION)
    prompt = session.prompt()
    assert prompt.startswith(INSTRUCTION)
    assert "EXACTLY 2 items" in prompt
    assert "=== ITEM 1 OF 2 ===\nFirst note about vendor delays." in prompt
    assert "=== ITEM 2 OF 2 ===\nSecond note about staffing gaps." in prompt


def test_short_array_is_padded(make_client, caplog):
    client, _ = make_client('["Only one."]')
    with caplog.at_level(logging.WARNING, logger="batch"):
        out = BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION)
    assert out == ["Only one.", "Error: AI response incomplete"]
    assert "Too few summaries" in caplog.text


def test_long_array_is_truncated_with_warning(make_client, caplog):
    client, _ = make_client('["One.", "Two.", "Three."]')
    with caplog.at_level(logging.WARNING, logger="batch"):
        out = BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION)
    assert out == ["One.", "Two."]
    assert "Truncating 1 extra" in caplog.text


def test_http_failure_marks_every_item(make_client):
    client, _ = make_client(500)
    out = BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION)
    assert out == ["AI response failed", "AI response failed"]


def test_unparseable_reply_marks_every_item(make_client):
    client, _ = make_client("I am unable to help with that.")
    out = BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION)
    assert out == ["Error: AI response format invalid"] * 2


def test_missing_key_short_circuits(make_client):
    client, session = make_client(api_key="")
    out = BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION)
    assert out == ["AI key not configured."] * 2
    assert session.calls == []


def test_empty_input_makes_no_request(make_client):
    client, session = make_client()
    assert BatchSummarizer(client).summarize_batch([], INSTRUCTION) == []
    assert session.calls == []


def test_large_input_is_chunked_in_order(make_client, sleeps):
    texts = [f"note number {i} with enough words" for i in range(5)]
    client, session = make_client('["s0", "s1"]', '["s2", "s3"]', '["s4"]')
    summarizer = BatchSummarizer(client, chunk_delay_seconds=1.5)
    out = summarizer.summarize_batch(texts, INSTRUCTION, BatchOptions(chunk_size=2))
    assert out == ["s0", "s1", "s2", "s3", "s4"]
    assert len(session.calls) == 3
    assert "EXACTLY 1 items" in session.prompt(2)
    assert sleeps == [1.5, 1.5]


def test_one_failed_chunk_does_not_spoil_the_others(make_client):
    client, _ = make_client('["fine"]', 429)
    out = BatchSummarizer(client, chunk_delay_seconds=0).summarize_batch(
        TEXTS, INSTRUCTION, BatchOptions(chunk_size=1)
    )
    assert out == ["fine", "AI response failed"]


def test_options_pick_model_and_generation_settings(make_client):
    client, session = make_client('["a", "b"]')
    opts = BatchOptions(model="batch-model", temperature=0.1, max_output_tokens=512)
    BatchSummarizer(client).summarize_batch(TEXTS, INSTRUCTION, opts)
    assert session.calls[0].url.endswith("/models/batch-model:generateContent")
    assert session.calls[0].json["generationConfig"] == {"temperature": 0.1, "maxOutputTokens": 512}


def test_reconcile_count_item_types():
    results = reconcile_count(["  text  ", None, 42], 3)
    assert [r.render() for r in results] == ["text", "Error: AI response format invalid", "42"]
    assert results[1].kind == ErrorKind.FORMAT_INVALID


def test_build_batch_prompt_single_item():
    prompt = build_batch_prompt(["only"], "Do it.")
    assert "=== ITEM 1 OF 1 ===\nonly" in prompt
    assert "Return EXACTLY 1 summaries" in prompt


def test_module_wrapper_delegates(make_client):
    client, _ = make_client('["a", "b"]')
    assert summarize_batch(TEXTS, INSTRUCTION, summarizer=BatchSummarizer(client)) == ["a", "b"]


def test_partial_options_keep_configured_defaults():
    opts = BatchOptions(model="batch-model")
    assert opts.chunk_size == BATCH_CHUNK_SIZE
    assert opts.generation_config() == {"temperature": BATCH_TEMPERATURE, "maxOutputTokens": BATCH_MAX_OUTPUT_TOKENS}
