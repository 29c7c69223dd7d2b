"""Tests for EventRecord."""

import pytest

from ssesource.protocol.event import EventRecord


class TestEventRecord:
    def test_all_fields_absent_rejected(self):
        with pytest.raises(ValueError):
            EventRecord()

    def test_empty_data_is_a_record(self):
        record = EventRecord(data="")
        assert record.data == ""
        assert not record.is_retry_only

    def test_frozen(self):
        record = EventRecord(data="x")
        with pytest.raises(AttributeError):
            record.data = "y"


class TestRetryInterval:
    def test_parses_integer(self):
        assert EventRecord(retry="5000").retry_interval_ms == 5000

    def test_trims_whitespace(self):
        assert EventRecord(retry=" 250\t").retry_interval_ms == 250

    def test_unparsable(self):
        assert EventRecord(retry="soon").retry_interval_ms is None
        assert EventRecord(retry="1.5").retry_interval_ms is None
        assert EventRecord(retry="").retry_interval_ms is None

    def test_signed_values_rejected(self):
        assert EventRecord(retry="+5").retry_interval_ms is None
        assert EventRecord(retry="-5").retry_interval_ms is None

    def test_absent(self):
        assert EventRecord(data="x").retry_interval_ms is None


class TestRetryOnly:
    def test_retry_only(self):
        assert EventRecord(retry="100").is_retry_only

    def test_retry_with_data(self):
        assert not EventRecord(data="x", retry="100").is_retry_only

    def test_retry_with_empty_id(self):
        assert not EventRecord(id="", retry="100").is_retry_only

    def test_no_retry(self):
        assert not EventRecord(event="ping").is_retry_only

