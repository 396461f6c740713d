import json

import pytest
from PIL import Image

# 2020-01-01 12:00:00 UTC
TS = 1577880000


@pytest.fixture
def make_image():
    """Returns a factory that writes a small image with no EXIF block."""
    def _make(path, fmt=None, size=(16, 16), color="red"):
        mode = "P" if fmt == "GIF" else "RGB"
        with Image.new(mode, size, color=0 if mode == "P" else color) as im:
            im.save(path, format=fmt)
        return path
    return _make


@pytest.fixture
def write_descriptor():
    """Returns a factory that writes a Takeout-style sidecar JSON."""
    def _write(path, title=None, taken=TS, created=None, geo=None, **extra):
        data = dict(extra)
        if title is not None:
            data["title"] = title
        if taken is not None:
            data["photoTakenTime"] = {"timestamp": str(taken), "formatted": "ignored"}
        if created is not None:
            data["creationTime"] = {"timestamp": str(created)}
        if geo is not None:
            data["geoData"] = geo
        path.write_text(json.dumps(data), encoding="utf-8")
        return path
    return _write
