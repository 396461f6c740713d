import json
from datetime import datetime

import pytest

from takeout_restore.descriptors.parse import (
    extract_geo, extract_timestamp, parse_descriptor, read_descriptor,
    to_local_datetime,
)
from takeout_restore.exceptions import DescriptorUnreadable
from takeout_restore.models import GeoPoint

from conftest import TS


def test_taken_time_wins_over_creation_time():
    tree = {
        "photoTakenTime": {"timestamp": "1500000000"},
        "creationTime": {"timestamp": "1600000000"},
    }
    assert extract_timestamp(tree) == 1500000000


def test_falls_back_to_creation_time():
    assert extract_timestamp({"creationTime": {"timestamp": 1600000000}}) == 1600000000


def test_unparseable_taken_time_falls_through():
    tree = {
        "photoTakenTime": {"timestamp": "soon"},
        "creationTime": {"timestamp": "1600000000"},
    }
    assert extract_timestamp(tree) == 1600000000


@pytest.mark.parametrize("tree", [
    {},
    {"photoTakenTime": {}},
    {"photoTakenTime": "1500000000"},
    {"photoTakenTime": {"timestamp": True}},
    {"photoTakenTime": {"timestamp": 1.5e9}},
    {"creationTime": {"timestamp": None}},
])
def test_no_date_found(tree):
    assert extract_timestamp(tree) is None


def test_to_local_datetime_has_second_resolution():
    dt = to_local_datetime(TS)
    assert dt == datetime.fromtimestamp(TS)
    assert dt.microsecond == 0
    assert dt.tzinfo is None


def test_extract_geo():
    geo = extract_geo({"geoData": {"latitude": 37.7749, "longitude": -122.4194, "altitude": 16.0}})
    assert geo == GeoPoint(37.7749, -122.4194, 16.0)


@pytest.mark.parametrize("tree", [
    {},
    {"geoData": {"latitude": 0.0, "longitude": 0.0, "altitude": 0.0}},
    {"geoData": {"latitude": "north", "longitude": 1.0}},
    {"geoData": {"latitude": 91.0, "longitude": 1.0}},
    {"geoData": {"latitude": 10.0}},
])
def test_extract_geo_absent(tree):
    assert extract_geo(tree) is None


def test_parse_descriptor(tmp_path, write_descriptor):
    path = write_descriptor(
        tmp_path / "IMG_1.jpg.json",
        title="IMG_1.jpg",
        geo={"latitude": 48.8584, "longitude": 2.2945, "altitude": 35.0},
        description="",
    )
    rec = parse_descriptor(path)

    assert rec.path == path
    assert rec.media_filename == "IMG_1.jpg"
    assert rec.captured_at_unix == TS
    assert rec.captured_at == datetime.fromtimestamp(TS)
    assert rec.geo == GeoPoint(48.8584, 2.2945, 35.0)


def test_parse_descriptor_without_title_or_date(tmp_path):
    path = tmp_path / "metadata.json"
    path.write_text(json.dumps({"albumData": {"title": "Trip"}}), encoding="utf-8")

    rec = parse_descriptor(path)
    assert rec.media_filename is None
    assert rec.captured_at_unix is None
    assert rec.captured_at is None


def test_read_descriptor_accepts_bom(tmp_path):
    path = tmp_path / "a.json"
    path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"title": "a.jpg"}).encode("utf-8"))
    assert read_descriptor(path) == {"title": "a.jpg"}


@pytest.mark.parametrize("content", [b"{not json", b"[1, 2]", b"\xff\xfe\x00"])
def test_read_descriptor_unreadable(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_bytes(content)
    with pytest.raises(DescriptorUnreadable):
        read_descriptor(path)


def test_read_descriptor_missing_file(tmp_path):
    with pytest.raises(DescriptorUnreadable):
        read_descriptor(tmp_path / "gone.json")
