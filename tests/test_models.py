import dataclasses
import re

import pytest

from modules.errors import AnalysisError, CameraPermissionError, ErrorKind, describe_error
from modules.models import AnalysisRecord


class TestAnalysisRecord:

    def test_create_generates_id_and_timestamp(self, make_record):
        record = make_record("desc")
        assert re.fullmatch(r"[0-9a-f-]{36}", record.id)
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", record.timestamp)
        assert record.description == "desc"

    def test_ids_differ(self, make_record):
        assert make_record().id != make_record().id

    def test_timestamps_sort_chronologically(self, make_record):
        first = make_record()
        second = make_record()
        assert first.timestamp <= second.timestamp

    def test_is_immutable(self, make_record):
        record = make_record()
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.description = "edited"

    def test_short_id(self, make_record):
        record = make_record()
        assert record.short_id == record.id[:8]

    def test_dict_round_trip(self, make_record):
        record = make_record()
        data = record.to_dict()
        assert set(data) == {"id", "timestamp", "imageData", "description"}
        assert AnalysisRecord.from_dict(data) == record

    def test_from_dict_accepts_image_key(self):
        record = AnalysisRecord.from_dict({
            "id": "abc", "timestamp": "2026-10-19T00:00:00.000Z",
            "image": "data:image/jpeg;base64,AA==", "description": "x",
        })
        assert record.image == "data:image/jpeg;base64,AA=="


class TestErrors:

    def test_camera_error_is_overlay(self):
        error = CameraPermissionError("denied")
        assert error.kind is ErrorKind.CAMERA
        assert describe_error(error) == ("overlay", "denied")

    def test_analysis_error_is_flash(self):
        error = AnalysisError("failed")
        assert error.kind is ErrorKind.ANALYSIS
        assert describe_error(error) == ("flash", "failed")
        assert str(error) == "failed"
