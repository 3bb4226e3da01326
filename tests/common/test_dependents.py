from __future__ import annotations

import logging

import pytest

from visitor_register.common.dependents import decode_dependents, parse_dependents_payload
from visitor_register.core.exceptions import ValidationError
from visitor_register.visits.model import NewDependent


@pytest.mark.parametrize("raw", [None, "", "not json", "{\"full_name\": \"x\"}", 42])
def test_decode_dependents_never_raises(raw):
    assert decode_dependents(raw) == []


def test_decode_dependents_logs_malformed_json(caplog):
    with caplog.at_level(logging.WARNING, logger="visitor_register"):
        assert decode_dependents("[{broken") == []
    assert "Could not parse dependents JSON" in caplog.text


def test_decode_dependents_reads_aggregated_column():
    raw = b'[{"full_name": "Tom", "age": 7}, {"full_name": "Amy", "age": null}, {"age": 3}]'

    assert decode_dependents(raw) == [
        {"full_name": "Tom", "age": 7},
        {"full_name": "Amy", "age": None},
    ]


def test_parse_dependents_payload_accepts_list_and_json():
    expected = [NewDependent("Tom", 7)]
    assert parse_dependents_payload([{"full_name": " Tom ", "age": "7"}]) == expected
    assert parse_dependents_payload('[{"full_name": "Tom", "age": 7}]') == expected
    assert parse_dependents_payload(None) == []


def test_parse_dependents_payload_strict_rejects_non_json():
    with pytest.raises(ValidationError, match="Invalid dependents JSON format."):
        parse_dependents_payload("Tom")
    with pytest.raises(ValidationError):
        parse_dependents_payload('[{"age": 4}]')
    with pytest.raises(ValidationError):
        parse_dependents_payload('{"full_name": "Tom"}')


def test_parse_dependents_payload_lenient_takes_plain_name():
    assert parse_dependents_payload(" Tom Doe ", lenient=True) == [NewDependent("Tom Doe", None)]
    assert parse_dependents_payload("   ", lenient=True) == []
