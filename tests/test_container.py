from datetime import datetime

import exifread
import pytest
from PIL import Image

from takeout_restore import config
from takeout_restore.exceptions import ContainerDecodeFailure, ContainerEncodeFailure
from takeout_restore.metadata import container
from takeout_restore.metadata.container import TagTable, read_tag_table, rewrite_image
from takeout_restore.metadata.tags import (
    IFD, TagType, build_records, decode_ascii_timestamp, decode_rationals,
    dms_to_degrees, timestamp_records,
)
from takeout_restore.models import GeoPoint

DT = datetime(2019, 8, 17, 14, 30, 5)


def test_empty_table_accepts_records_without_template():
    table = TagTable(Image.Exif())
    assert len(table) == 0

    for rec in timestamp_records(DT):
        table.put(rec)

    assert len(table) == 3
    rec = table.get(IFD.EXIF, config.TAG_DATETIME_ORIGINAL)
    assert rec.type == TagType.ASCII
    assert rec.value == b"2019:08:17 14:30:05\x00"


def test_put_replaces_existing_id():
    table = TagTable(Image.Exif())
    for rec in timestamp_records(datetime(2000, 1, 1)):
        table.put(rec)
    for rec in timestamp_records(DT):
        table.put(rec)

    assert len(table) == 3
    assert decode_ascii_timestamp(table.get(IFD.IFD0, config.TAG_DATETIME).value) == DT


def test_get_missing_tag():
    table = TagTable(Image.Exif())
    assert table.get(IFD.GPS, config.TAG_GPS_LATITUDE) is None
    assert (IFD.GPS, config.TAG_GPS_LATITUDE) not in table


def test_rewrite_jpeg_without_exif(tmp_path, make_image):
    path = make_image(tmp_path / "photo.jpg", "JPEG")

    assert rewrite_image(path, build_records(DT)) is True

    table = read_tag_table(path)
    for ifd, tag in ((IFD.IFD0, 0x0132), (IFD.EXIF, 0x9003), (IFD.EXIF, 0x9004)):
        rec = table.get(ifd, tag)
        assert rec.length == 20
        assert decode_ascii_timestamp(rec.value) == DT

    # No temp files left behind
    assert sorted(p.name for p in tmp_path.iterdir()) == ["photo.jpg"]


def test_rewrite_jpeg_readable_by_exifread(tmp_path, make_image):
    path = make_image(tmp_path / "photo.jpg", "JPEG")
    rewrite_image(path, build_records(DT, GeoPoint(37.7749, -122.4194, 16.5)))

    with path.open("rb") as f:
        tags = exifread.process_file(f, details=False)

    assert str(tags["Image DateTime"]) == "2019:08:17 14:30:05"
    assert str(tags["EXIF DateTimeOriginal"]) == "2019:08:17 14:30:05"
    assert str(tags["EXIF DateTimeDigitized"]) == "2019:08:17 14:30:05"
    assert str(tags["GPS GPSLatitudeRef"]) == "N"
    assert str(tags["GPS GPSLongitudeRef"]) == "W"


def test_rewrite_gps_round_trip(tmp_path, make_image):
    path = make_image(tmp_path / "photo.jpg", "JPEG")
    rewrite_image(path, build_records(DT, GeoPoint(37.7749, -122.4194, 16.5)))

    table = read_tag_table(path)
    lat = dms_to_degrees(decode_rationals(table.get(IFD.GPS, config.TAG_GPS_LATITUDE).value))
    lon = dms_to_degrees(decode_rationals(table.get(IFD.GPS, config.TAG_GPS_LONGITUDE).value))
    alt = decode_rationals(table.get(IFD.GPS, config.TAG_GPS_ALTITUDE).value)

    assert abs(lat - 37.7749) * 3600 <= 0.01
    assert abs(lon - 122.4194) * 3600 <= 0.01
    assert table.get(IFD.GPS, config.TAG_GPS_LATITUDE_REF).value == b"N\x00"
    assert table.get(IFD.GPS, config.TAG_GPS_LONGITUDE_REF).value == b"W\x00"
    assert alt[0][0] / alt[0][1] == pytest.approx(16.5)


def test_rewrite_keeps_unrelated_tags(tmp_path):
    path = tmp_path / "photo.jpg"
    exif = Image.Exif()
    exif[0x010F] = "TestMake"
    exif[0x0132] = "1999:01:01 00:00:00"
    with Image.new("RGB", (8, 8)) as im:
        im.save(path, exif=exif.tobytes())

    rewrite_image(path, build_records(DT))

    with Image.open(path) as im:
        reread = im.getexif()
        assert reread[0x010F] == "TestMake"
        assert reread[0x0132] == "2019:08:17 14:30:05"
        assert reread.get_ifd(config.EXIF_IFD_POINTER)[0x9003] == "2019:08:17 14:30:05"


def test_rewrite_png(tmp_path, make_image):
    path = make_image(tmp_path / "shot.png", "PNG")
    assert rewrite_image(path, build_records(DT)) is True

    with Image.open(path) as im:
        assert im.format == "PNG"
        assert im.getexif()[0x0132] == "2019:08:17 14:30:05"


def test_gif_is_left_untouched(tmp_path, make_image):
    path = make_image(tmp_path / "anim.gif", "GIF")
    before = path.read_bytes()

    assert rewrite_image(path, build_records(DT)) is False
    assert path.read_bytes() == before


def test_undecodable_file_raises_and_is_unchanged(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"definitely not a jpeg")

    with pytest.raises(ContainerDecodeFailure):
        rewrite_image(path, build_records(DT))
    assert path.read_bytes() == b"definitely not a jpeg"


def test_encode_failure_leaves_original(monkeypatch, tmp_path, make_image):
    path = make_image(tmp_path / "photo.jpg", "JPEG")
    before = path.read_bytes()

    def broken_save(self, fp, format=None, **params):
        raise OSError("disk full")

    monkeypatch.setattr(Image.Image, "save", broken_save)

    with pytest.raises(ContainerEncodeFailure):
        rewrite_image(path, build_records(DT))
    assert path.read_bytes() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["photo.jpg"]


def test_replace_failure_leaves_original(monkeypatch, tmp_path, make_image):
    path = make_image(tmp_path / "photo.jpg", "JPEG")
    before = path.read_bytes()

    def broken_replace(src, dst):
        raise PermissionError("locked")

    monkeypatch.setattr(container.os, "replace", broken_replace)

    with pytest.raises(ContainerEncodeFailure):
        rewrite_image(path, build_records(DT))
    assert path.read_bytes() == before
    assert sorted(p.name for p in tmp_path.iterdir()) == ["photo.jpg"]
