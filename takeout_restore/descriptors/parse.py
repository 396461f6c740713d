import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .. import config
from ..exceptions import DescriptorUnreadable
from ..models import DescriptorRecord, GeoPoint


def read_descriptor(path: Path) -> Dict[str, Any]:
    """
    Loads a sidecar JSON file into a plain dict.

    Raises:
        DescriptorUnreadable: IO failure, invalid JSON or a non-object root.
    """
    try:
        # utf-8-sig: some exports prepend a BOM
        with path.open('r', encoding='utf-8-sig') as f:
            tree = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DescriptorUnreadable(f"Cannot read descriptor {path}: {e}") from e

    if not isinstance(tree, dict):
        raise DescriptorUnreadable(f"Descriptor {path} is not a JSON object")
    return tree


def extract_title(tree: Dict[str, Any]) -> Optional[str]:
    title = tree.get(config.TITLE_FIELD)
    if isinstance(title, str) and title.strip():
        return title
    return None


def extract_timestamp(tree: Dict[str, Any]) -> Optional[int]:
    """
    Returns seconds since the epoch from the first usable time field.

    `photoTakenTime` wins over `creationTime`. Each holds a nested
    `timestamp` that is either an int or a string-encoded int. None means
    the descriptor has no date, which callers treat differently from a
    parse failure.
    """
    for field in config.TIMESTAMP_FIELDS:
        node = tree.get(field)
        if not isinstance(node, dict):
            continue
        ts = _parse_int(node.get(config.TIMESTAMP_KEY))
        if ts is not None:
            return ts
    return None


def to_local_datetime(ts: int) -> datetime:
    """Epoch seconds (UTC) -> naive local datetime. No sub-second part."""
    return datetime.fromtimestamp(int(ts))


def extract_geo(tree: Dict[str, Any]) -> Optional[GeoPoint]:
    node = tree.get(config.GEO_FIELD)
    if not isinstance(node, dict):
        return None

    lat = _parse_float(node.get('latitude'))
    lon = _parse_float(node.get('longitude'))
    if lat is None or lon is None:
        return None

    # Takeout writes 0.0/0.0 when the photo has no location
    if lat == 0.0 and lon == 0.0:
        return None

    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        logging.debug(f"Ignoring out-of-range coordinates {lat}, {lon}")
        return None

    alt = _parse_float(node.get('altitude'))
    return GeoPoint(latitude=lat, longitude=lon, altitude=alt)


def parse_descriptor(path: Path) -> DescriptorRecord:
    tree = read_descriptor(path)
    return DescriptorRecord(
        path=path,
        media_filename=extract_title(tree),
        captured_at_unix=extract_timestamp(tree),
        geo=extract_geo(tree),
    )


def _parse_int(value: Any) -> Optional[int]:
    # bool is an int subclass; JSON true/false is not a timestamp
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _parse_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result
