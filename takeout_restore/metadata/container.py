"""
Image container access: EXIF tag table in, rewritten file out.

Pillow decodes the container and owns the on-disk EXIF layout; this module
translates between its `Image.Exif` mapping and our TagRecords. The rewrite
never touches the original until a complete replacement exists next to it.
"""
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from .. import config
from ..exceptions import ContainerDecodeFailure, ContainerEncodeFailure
from .tags import IFD, TagRecord, TagType, decode_rationals, encode_ascii, encode_rationals

_POINTERS = {
    IFD.EXIF: config.EXIF_IFD_POINTER,
    IFD.GPS: config.GPS_IFD_POINTER,
}


class TagTable:
    """
    Mutable view over the three EXIF directories of one image.

    Sub-IFDs are copied out of the Exif object once and written back as
    nested dicts by `to_bytes`, which is how Pillow serializes them.
    """
    def __init__(self, exif: Image.Exif):
        self.exif = exif
        self._dirs: Dict[IFD, Any] = {
            IFD.IFD0: exif,
            IFD.EXIF: self._load_subdir(config.EXIF_IFD_POINTER),
            IFD.GPS: self._load_subdir(config.GPS_IFD_POINTER),
        }

    def _load_subdir(self, pointer: int) -> Dict[int, Any]:
        ifd = dict(self.exif.get_ifd(pointer))
        interop = ifd.get(config.INTEROP_IFD_POINTER)
        if pointer == config.EXIF_IFD_POINTER and interop is not None and not isinstance(interop, dict):
            # A bare offset would point at nothing once the block is rebuilt
            resolved = self.exif.get_ifd(config.INTEROP_IFD_POINTER)
            if resolved:
                ifd[config.INTEROP_IFD_POINTER] = dict(resolved)
            else:
                del ifd[config.INTEROP_IFD_POINTER]
        return ifd

    def __len__(self) -> int:
        pointers = set(_POINTERS.values())
        own = sum(1 for tag in self.exif.keys() if tag not in pointers)
        return own + len(self._dirs[IFD.EXIF]) + len(self._dirs[IFD.GPS])

    def __contains__(self, key) -> bool:
        ifd, tag_id = key
        return tag_id in self._dirs[ifd]

    def get(self, ifd: IFD, tag_id: int) -> Optional[TagRecord]:
        """Decodes one entry back into a record; None if absent or not ASCII/RATIONAL."""
        if tag_id not in self._dirs[ifd]:
            return None
        encoded = _from_pillow(self._dirs[ifd][tag_id])
        if encoded is None:
            return None
        tag_type, payload = encoded
        return TagRecord.zero().with_value(ifd, tag_id, tag_type, payload)

    def put(self, record: TagRecord) -> None:
        """Writes a record, replacing any entry with the same id in its directory."""
        self._dirs[record.ifd][record.id] = _to_pillow(record)

    def to_bytes(self) -> bytes:
        for ifd, pointer in _POINTERS.items():
            subdir = self._dirs[ifd]
            if subdir:
                self.exif[pointer] = subdir
            elif pointer in self.exif:
                del self.exif[pointer]
        return self.exif.tobytes()


def _to_pillow(record: TagRecord) -> Any:
    if record.type == TagType.ASCII:
        return record.value.rstrip(b"\x00").decode('ascii')
    if record.type == TagType.RATIONAL:
        values = tuple(IFDRational(num, den) for num, den in decode_rationals(record.value))
        return values[0] if len(values) == 1 else values
    raise ValueError(f"Unsupported tag type {record.type} for tag 0x{record.id:04x}")


def _from_pillow(value: Any):
    if isinstance(value, str):
        return TagType.ASCII, encode_ascii(value)
    if isinstance(value, bytes):
        return TagType.ASCII, value.rstrip(b"\x00") + b"\x00"
    if isinstance(value, IFDRational):
        value = (value,)
    if isinstance(value, tuple) and value and all(isinstance(v, IFDRational) for v in value):
        return TagType.RATIONAL, encode_rationals([(int(v.numerator), int(v.denominator)) for v in value])
    return None


def read_tag_table(path: Path) -> TagTable:
    """Opens `path` just long enough to decode its tag table."""
    try:
        with Image.open(path) as img:
            return TagTable(img.getexif())
    except Exception as e:
        raise ContainerDecodeFailure(f"Cannot read tags from {path}: {e}") from e


def rewrite_image(path: Path, records: Iterable[TagRecord]) -> bool:
    """
    Applies `records` to the image at `path` and replaces the file.

    The new container is written to a temp file in the same directory; the
    source handle is closed before `os.replace` swaps it in. On any failure
    the temp file is removed and the original is left as it was.

    Returns:
        False if the format is left unwritten (GIF, TIFF-based RAW).

    Raises:
        ContainerDecodeFailure: the image or its tags could not be read.
        ContainerEncodeFailure: the new container could not be written.
    """
    tmp_path: Optional[Path] = None
    try:
        try:
            img = Image.open(path)
        except Exception as e:
            raise ContainerDecodeFailure(f"Cannot open image {path}: {e}") from e

        with img:
            fmt = img.format
            if fmt not in config.EXIF_WRITABLE_FORMATS:
                logging.warning(f"{path}: tag table is not rewritten for {fmt} files")
                return False

            try:
                table = TagTable(img.getexif())
            except Exception as e:
                raise ContainerDecodeFailure(f"Cannot read tags from {path}: {e}") from e

            try:
                for record in records:
                    table.put(record)
                exif_bytes = table.to_bytes()
                tmp_path = _temp_sibling(path)
                img.save(tmp_path, **_save_params(img, fmt, exif_bytes))
            except Exception as e:
                raise ContainerEncodeFailure(f"Cannot encode {path}: {e}") from e

        # Source handle is released here
        try:
            shutil.copymode(path, tmp_path)
            os.replace(tmp_path, path)
        except OSError as e:
            raise ContainerEncodeFailure(f"Cannot replace {path}: {e}") from e
        tmp_path = None
        return True
    finally:
        if tmp_path is not None:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                logging.warning(f"Could not remove temp file {tmp_path}: {e}")


def _temp_sibling(path: Path) -> Path:
    fd, name = tempfile.mkstemp(prefix=f".{path.stem}.", suffix=path.suffix + ".tmp", dir=path.parent)
    os.close(fd)
    return Path(name)


def _save_params(img: Image.Image, fmt: str, exif_bytes: bytes) -> Dict[str, Any]:
    params: Dict[str, Any] = {'exif': exif_bytes}

    icc = img.info.get('icc_profile')
    if icc:
        params['icc_profile'] = icc

    if fmt == 'JPEG':
        # Reuse the source quantization tables instead of re-guessing quality
        params.update(format='JPEG', quality='keep', subsampling='keep')
    elif fmt == 'MPO':
        # 'keep' is only accepted for plain JPEG sources
        params.update(format='JPEG', quality=95)
    else:
        params['format'] = fmt
    return params
