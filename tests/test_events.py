import pytest

from luxai.services.events import DONE_EVENT, aparse_event_lines, format_event, parse_event_lines, token_event


def test_token_event_framing():
    assert token_event("A ") == 'data: {"content": "A "}\n\n'
    assert DONE_EVENT == "data: [DONE]\n\n"


def test_format_event_escapes_newlines():
    # A token containing a newline must stay on one data line
    assert format_event({"content": "line1\nline2"}) == 'data: {"content": "line1\\nline2"}\n\n'


def test_parse_roundtrip_of_a_relayed_stream():
    body = token_event("A ") + token_event("derivative ") + token_event("is...") + DONE_EVENT
    events = list(parse_event_lines(body.split("\n")))
    assert "".join(e["content"] for e in events) == "A derivative is..."


def test_parse_ignores_non_data_lines_and_bad_json():
    lines = [
        ": keep-alive comment",
        "event: message",
        'data: {"content": "ok"}',
        "",
        'data: {"content": "trunc',
        "data: not json at all",
        "data: [1, 2]",
        'data: {"content": "still ok"}',
    ]
    assert list(parse_event_lines(lines)) == [{"content": "ok"}, {"content": "still ok"}]


def test_parse_stops_at_done():
    lines = ['data: {"content": "before"}', "data: [DONE]", 'data: {"content": "after"}']
    assert list(parse_event_lines(lines)) == [{"content": "before"}]


@pytest.mark.asyncio
async def test_async_parse():
    async def lines():
        yield 'data: {"content": "x"}'
        yield "garbage"
        yield "data: [DONE]"

    assert [e async for e in aparse_event_lines(lines())] == [{"content": "x"}]
