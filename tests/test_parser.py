from datetime import datetime

import pytest

from bakery_analytics.parser import group_conversations, parse_transcript


def test_parses_bracketed_line():
    messages = parse_transcript("[10:19 AM, 3/7/2025] Cliente: 2 pastelitos 1 donas")
    assert len(messages) == 1
    message = messages[0]
    assert message.timestamp == datetime(2025, 3, 7, 10, 19)
    assert message.sender == "Cliente"
    assert message.content == "2 pastelitos 1 donas"
    assert message.is_client


@pytest.mark.parametrize("clock,hour", [
    ("12:05 AM", 0),
    ("12:05 PM", 12),
    ("1:05 PM", 13),
    ("11:05 AM", 11),
    ("3:05 p.m.", 15),
])
def test_twelve_hour_clock(clock, hour):
    [message] = parse_transcript(f"[{clock}, 3/7/2025] Cliente: hola")
    assert message.timestamp.hour == hour
    assert message.timestamp.minute == 5


@pytest.mark.parametrize("clock,hour", [("17:05", 17), ("0:05", 0), ("12:05", 12)])
def test_clock_without_period_is_24_hour(clock, hour):
    [message] = parse_transcript(f"[{clock}, 3/7/2025] Cliente: hola")
    assert message.timestamp.hour == hour


def test_bakery_sender_is_not_a_client():
    text = (
        "[7:00 AM, 3/7/2025] PANADERIA QUILANTAN: buenos días\n"
        "[7:01 AM, 3/7/2025] Panadería Quilantan Centro: buenos días\n"
    )
    assert [m.is_client for m in parse_transcript(text)] == [False, False]


def test_unrecognized_lines_are_dropped():
    text = (
        "Los mensajes están cifrados de extremo a extremo\n"
        "[7:00 AM, 3/7/2025] Cliente: 10 donas\n"
        "y también 5 conchas\n"
        "\n"
    )
    messages = parse_transcript(text)
    assert [m.content for m in messages] == ["10 donas"]


def test_no_matching_lines_gives_empty_sequence():
    assert parse_transcript("") == []
    assert parse_transcript("nada que ver aquí") == []


def test_invalid_date_is_skipped():
    assert parse_transcript("[7:00 AM, 2/30/2025] Cliente: hola") == []


def test_sorted_by_time_with_stable_ties():
    text = (
        "[9:00 AM, 3/7/2025] B: segundo\n"
        "[8:00 AM, 3/7/2025] A: primero\n"
        "[9:00 AM, 3/7/2025] C: tercero\n"
    )
    assert [m.content for m in parse_transcript(text)] == ["primero", "segundo", "tercero"]


def test_reparsing_serialized_messages_is_identical(sample_transcript):
    messages = parse_transcript(sample_transcript)
    serialized = "\n".join(m.to_line() for m in messages)
    assert parse_transcript(serialized) == messages


def test_non_string_input_is_rejected():
    with pytest.raises(TypeError):
        parse_transcript(None)


def test_bakery_reply_goes_to_preceding_client():
    messages = parse_transcript(
        "[7:00 AM, 3/7/2025] Ana: 10 donas\n"
        "[7:05 AM, 3/7/2025] Luis: 5 conchas\n"
        "[7:10 AM, 3/7/2025] Panaderia Quilantan: enterado\n"
        "[7:15 AM, 3/7/2025] Ana: gracias\n"
    )
    conversations = group_conversations(messages)
    assert [m.content for m in conversations["Luis"]] == ["5 conchas", "enterado"]
    assert [m.content for m in conversations["Ana"]] == ["10 donas", "gracias"]


def test_leading_bakery_message_goes_to_following_client():
    messages = parse_transcript(
        "[7:00 AM, 3/7/2025] Panaderia Quilantan: cuántas piezas\n"
        "[7:30 AM, 3/7/2025] Ana: 10 donas\n"
    )
    conversations = group_conversations(messages)
    assert list(conversations) == ["Ana"]
    assert [m.is_client for m in conversations["Ana"]] == [False, True]


def test_bakery_only_transcript_has_no_conversations():
    messages = parse_transcript("[7:00 AM, 3/7/2025] Panaderia Quilantan: buenos días")
    assert group_conversations(messages) == {}


def test_name_variants_are_different_clients():
    messages = parse_transcript(
        "[7:00 AM, 3/7/2025] Ana: 10 donas\n"
        "[7:05 AM, 3/7/2025] ana: 5 donas\n"
    )
    assert set(group_conversations(messages)) == {"Ana", "ana"}
