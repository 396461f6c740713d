"""
EXIF tag records and their byte-level encodings.

A TagRecord is the unit the container layer writes: an id inside one of the
three directories we touch (IFD0, the Exif sub-IFD, the GPS sub-IFD), a value
kind, and the raw payload. Values are always built here, never read from a
template in the image, so an image without any existing tags is handled like
any other.
"""
import re
import struct
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional, Sequence, Tuple

from .. import config
from ..models import GeoPoint

Rational = Tuple[int, int]

_EXIF_DATE_RE = re.compile(rb'^(\d{4}):(\d{2}):(\d{2}) (\d{2}):(\d{2}):(\d{2})\x00$')
_UINT32_MAX = 0xFFFFFFFF


class TagType(IntEnum):
    ASCII = 2
    RATIONAL = 5


class IFD(Enum):
    IFD0 = "0th"
    EXIF = "Exif"
    GPS = "GPS"


@dataclass(frozen=True)
class TagRecord:
    ifd: IFD
    id: int
    type: int
    length: int
    value: bytes

    @classmethod
    def zero(cls) -> "TagRecord":
        """Blank record every written tag starts from."""
        return cls(ifd=IFD.IFD0, id=0, type=0, length=0, value=b"")

    def with_value(self, ifd: IFD, tag_id: int, tag_type: TagType, value: bytes) -> "TagRecord":
        return replace(self, ifd=ifd, id=tag_id, type=int(tag_type), length=len(value), value=value)


# --- ASCII / timestamps ---

def encode_ascii(text: str) -> bytes:
    return text.encode('ascii') + b"\x00"


def format_exif_datetime(dt: datetime) -> str:
    """`YYYY:MM:DD HH:MM:SS`; microseconds are dropped."""
    return config.EXIF_DATE_FORMAT.format(dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)


def decode_ascii_timestamp(value: bytes) -> datetime:
    m = _EXIF_DATE_RE.match(value)
    if not m:
        raise ValueError(f"Not an EXIF timestamp: {value!r}")
    return datetime(*(int(g) for g in m.groups()))


def _ifd_for_timestamp_tag(tag_id: int) -> IFD:
    return IFD.IFD0 if tag_id == config.TAG_DATETIME else IFD.EXIF


def timestamp_records(dt: datetime) -> List[TagRecord]:
    """DateTime, DateTimeOriginal and DateTimeDigitized, each 20 bytes."""
    payload = encode_ascii(format_exif_datetime(dt))
    return [
        TagRecord.zero().with_value(_ifd_for_timestamp_tag(tag), tag, TagType.ASCII, payload)
        for tag in config.TIMESTAMP_TAGS
    ]


# --- Rationals / GPS ---

def encode_rationals(values: Sequence[Rational]) -> bytes:
    """Little-endian uint32 numerator/denominator pairs, concatenated."""
    out = bytearray()
    for num, den in values:
        if not (0 <= num <= _UINT32_MAX and 0 < den <= _UINT32_MAX):
            raise ValueError(f"Rational out of range: {num}/{den}")
        out += struct.pack('<II', num, den)
    return bytes(out)


def decode_rationals(value: bytes) -> List[Rational]:
    if len(value) % 8:
        raise ValueError(f"Rational payload must be a multiple of 8 bytes, got {len(value)}")
    flat = struct.unpack(f'<{len(value) // 4}I', value)
    return [(flat[i], flat[i + 1]) for i in range(0, len(flat), 2)]


def degrees_to_dms(value: float) -> Tuple[Rational, Rational, Rational]:
    """
    Splits an absolute coordinate into (deg/1, min/1, sec*100/100).
    The seconds part is truncated, never rounded up into the next minute.
    """
    value = abs(value)
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = int((minutes_full - minutes) * 60 * config.GPS_SECONDS_DENOMINATOR)
    return (degrees, 1), (minutes, 1), (seconds, config.GPS_SECONDS_DENOMINATOR)


def dms_to_degrees(dms: Sequence[Rational]) -> float:
    (dn, dd), (mn, md), (sn, sd) = dms
    return dn / dd + (mn / md) / 60 + (sn / sd) / 3600


def gps_records(geo: GeoPoint) -> List[TagRecord]:
    """
    Latitude/longitude refs and values, plus altitude when known.
    Negative altitude needs an AltitudeRef we do not write, so it is skipped.
    """
    lat_ref = 'N' if geo.latitude >= 0 else 'S'
    lon_ref = 'E' if geo.longitude >= 0 else 'W'

    blank = TagRecord.zero()
    records = [
        blank.with_value(IFD.GPS, config.TAG_GPS_LATITUDE_REF, TagType.ASCII, encode_ascii(lat_ref)),
        blank.with_value(IFD.GPS, config.TAG_GPS_LATITUDE, TagType.RATIONAL,
                         encode_rationals(degrees_to_dms(geo.latitude))),
        blank.with_value(IFD.GPS, config.TAG_GPS_LONGITUDE_REF, TagType.ASCII, encode_ascii(lon_ref)),
        blank.with_value(IFD.GPS, config.TAG_GPS_LONGITUDE, TagType.RATIONAL,
                         encode_rationals(degrees_to_dms(geo.longitude))),
    ]

    if geo.altitude is not None and geo.altitude >= 0:
        alt = (int(geo.altitude * config.GPS_ALTITUDE_DENOMINATOR), config.GPS_ALTITUDE_DENOMINATOR)
        records.append(
            blank.with_value(IFD.GPS, config.TAG_GPS_ALTITUDE, TagType.RATIONAL, encode_rationals([alt]))
        )
    return records


def build_records(dt: datetime, geo: Optional[GeoPoint] = None) -> List[TagRecord]:
    records = timestamp_records(dt)
    if geo is not None:
        records.extend(gps_records(geo))
    return records
