import json

from policy_oracle.client.stream_consumer import StreamConsumer


def _delta(text: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]}, ensure_ascii=False) + "\n\n"


CITATION_FRAME = "data: " + json.dumps(
    {"citations": [{"document_title": "Travel Policy", "page_number": 2, "section_title": "", "content": "Per diem"}]}
) + "\n\n"

FULL_STREAM = CITATION_FRAME + _delta("Per diem is ") + _delta("€50 per day.") + "data: [DONE]\n\n"


def test_whole_stream_in_one_read():
    consumer = StreamConsumer()

    deltas = consumer.feed(FULL_STREAM.encode())

    assert deltas == ["Per diem is ", "€50 per day."]
    assert consumer.content == "Per diem is €50 per day."
    assert consumer.citations[0]["document_title"] == "Travel Policy"
    assert consumer.done


def test_payload_split_mid_object_is_reassembled():
    data = FULL_STREAM.encode()
    split_at = data.index(b'"delta"') + 4

    consumer = StreamConsumer()
    first = consumer.feed(data[:split_at])
    second = consumer.feed(data[split_at:])

    whole = StreamConsumer()
    whole.feed(data)

    assert first == []
    assert consumer.content == whole.content
    assert consumer.citations == whole.citations


def test_every_byte_boundary_yields_same_message():
    data = FULL_STREAM.encode()
    consumer = StreamConsumer()
    for i in range(len(data)):
        consumer.feed(data[i:i + 1])

    assert consumer.content == "Per diem is €50 per day."
    assert consumer.citations is not None


def test_crlf_comments_and_other_fields_are_ignored():
    stream = (
        ": keep-alive\r\n"
        "\r\n"
        "event: message\r\n"
        + _delta("Hello").replace("\n", "\r\n")
    )
    consumer = StreamConsumer()

    assert consumer.feed(stream) == ["Hello"]


def test_done_sentinel_stops_processing_current_read():
    consumer = StreamConsumer()

    deltas = consumer.feed("data: [DONE]\n" + _delta("late"))

    assert deltas == []
    assert consumer.done
    assert consumer.content == ""
    assert consumer.pending.startswith("data: ")


def test_unparseable_line_is_pushed_back():
    consumer = StreamConsumer()

    assert consumer.feed('data: {"choices": [\n') == []
    assert consumer.pending == 'data: {"choices": [\n'


def test_frames_without_content_are_skipped():
    consumer = StreamConsumer()
    frame = "data: " + json.dumps({"choices": [{"delta": {"role": "assistant"}}]}) + "\n\n"

    assert consumer.feed(frame) == []
    assert consumer.content == ""
    assert consumer.citations is None
