from pathlib import Path
import json
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pytest

from bundle_wizard.core.errors import EMPTY_PAYLOAD, MALFORMED_JSON
from bundle_wizard.core.ingestion import IngestionFailed, IngestionOk, IngestionSession
from bundle_wizard.core.protocol import SENTINEL, StreamMode


def _stream(*lines: str) -> str:
    return "\n".join(lines) + "\n"


BUNDLE = {
    "resourceType": "Bundle",
    "entry": [
        {"resource": {"resourceType": "InsurancePlan", "id": "p1", "status": "active", "name": "Gold"}},
        {"resource": {"resourceType": "Organization", "id": "o1", "name": "Insurer"}},
    ],
}

FULL_STREAM = _stream(
    "Processing 3 chunks",
    "chunk 1/3",
    "Extracting benefits",
    "chunk 2/3",
    "chunk 3/3",
    SENTINEL,
    json.dumps(BUNDLE, indent=2),
)


def _run(chunks) -> tuple[IngestionSession, object]:
    session = IngestionSession()
    for chunk in chunks:
        session.feed(chunk)
    return session, session.finish()


def test_scenario_progress_then_payload():
    session, result = _run(
        [
            _stream(
                "Processing 3 chunks",
                "chunk 1/3",
                "chunk 2/3",
                "chunk 3/3",
                SENTINEL,
                '{"bundle":{"entry":[]}}',
            )
        ]
    )

    assert isinstance(result, IngestionOk)
    assert result.document == {"bundle": {"entry": []}}
    assert session.total_steps == 3
    assert session.current_step == 3
    assert session.progress_log == ["Processing 3 chunks", "chunk 1/3", "chunk 2/3", "chunk 3/3"]
    assert session.mode is StreamMode.JSON_PAYLOAD


def test_marker_then_garbage_is_malformed_json():
    _, result = _run([_stream(SENTINEL, "not json")])

    assert isinstance(result, IngestionFailed)
    assert result.error.reason == MALFORMED_JSON


def test_stream_without_marker_is_empty_payload():
    session, result = _run([_stream("Processing 2 chunks", "chunk 1/2")])

    assert isinstance(result, IngestionFailed)
    assert result.error.reason == EMPTY_PAYLOAD
    assert result.progress.messages == ["Processing 2 chunks", "chunk 1/2"]
    assert session.closed


def test_marker_with_blank_payload_is_empty_payload():
    _, result = _run([_stream(SENTINEL, "", "   ")])

    assert isinstance(result, IngestionFailed)
    assert result.error.reason == EMPTY_PAYLOAD


def test_non_object_payload_is_rejected():
    _, result = _run([_stream(SENTINEL, "[1, 2, 3]")])

    assert isinstance(result, IngestionFailed)
    assert result.error.reason == MALFORMED_JSON


@pytest.mark.parametrize("size", [1, 2, 7, 64, len(FULL_STREAM)])
def test_result_does_not_depend_on_chunk_boundaries(size):
    reference_session, reference = _run([FULL_STREAM])
    chunks = [FULL_STREAM[i : i + size] for i in range(0, len(FULL_STREAM), size)]
    session, result = _run(chunks)

    assert isinstance(reference, IngestionOk)
    assert isinstance(result, IngestionOk)
    assert result.document == reference.document == BUNDLE
    assert session.progress_log == reference_session.progress_log
    assert (session.current_step, session.total_steps) == (3, 3)


def test_byte_chunks_match_text_chunks():
    encoded = FULL_STREAM.encode("utf-8")
    session, result = _run([encoded[i : i + 1] for i in range(len(encoded))])

    assert isinstance(result, IngestionOk)
    assert result.document == BUNDLE
    assert session.total_steps == 3


def test_progress_never_moves_backwards():
    seen: list[tuple[int, int]] = []
    session = IngestionSession(
        on_progress=lambda snapshot: seen.append((snapshot.current_step, snapshot.total_steps))
    )

    session.feed(_stream("chunk 3/5", "chunk 1/5", "Processing 4 chunks", "chunk 2/3"))

    assert session.current_step == 3
    assert session.total_steps == 5
    currents = [current for current, _ in seen]
    assert currents == sorted(currents)


def test_progress_listener_fires_for_each_progress_line():
    snapshots = []
    session = IngestionSession(on_progress=snapshots.append)

    session.feed(_stream("Processing 2 chunks", "", "Reading PDF", "chunk 1/2", SENTINEL, "{}"))

    assert len(snapshots) == 3
    assert snapshots[-1].messages == ["Processing 2 chunks", "Reading PDF", "chunk 1/2"]
    assert snapshots[-1].percentage == 50.0


def test_payload_keeps_blank_lines_and_marker_lookalikes():
    document = {"note": "chunk 1/3", "other": SENTINEL}
    text = json.dumps(document, indent=2).replace("{\n", "{\n\n", 1)
    _, result = _run([_stream("Processing 1 chunk", SENTINEL, text)])

    assert isinstance(result, IngestionOk)
    assert result.document == document


def test_final_line_without_terminator_is_flushed():
    session = IngestionSession()
    session.feed(f"chunk 1/1\n{SENTINEL}\n" + '{"resourceType": "Bundle"}')

    result = session.finish()

    assert isinstance(result, IngestionOk)
    assert result.document == {"resourceType": "Bundle"}


def test_session_is_not_reusable():
    session, _ = _run([_stream(SENTINEL, "{}")])

    with pytest.raises(RuntimeError):
        session.feed("chunk 1/1\n")
    with pytest.raises(RuntimeError):
        session.finish()


def test_cancelled_session_discards_payload():
    session = IngestionSession()
    session.feed(_stream(SENTINEL, '{"partial": '))
    session.cancel()

    assert session.json_lines == []
    with pytest.raises(RuntimeError):
        session.feed("true}\n")
