import logging
import os
import shutil
import subprocess
import sys
from datetime import datetime
from pathlib import Path

from ..exceptions import FilesystemAttributeFailure


def set_file_times(path: Path, ts: int) -> None:
    """
    Sets creation and modification time of `path` to epoch seconds `ts`.

    Modification time is required; creation time is best effort because
    most Linux filesystems do not let userspace change it.

    Raises:
        FilesystemAttributeFailure: modification time could not be set,
            including timestamps outside the platform's time range.
    """
    # Creation first: macOS pulls birthtime back when mtime goes earlier
    if not set_creation_time(path, ts):
        logging.debug(f"Creation time left unchanged for {path}")

    try:
        os.utime(path, (ts, ts))
    except (OSError, OverflowError, ValueError) as e:
        raise FilesystemAttributeFailure(f"Cannot set modification time on {path}: {e}") from e


def set_creation_time(path: Path, ts: int) -> bool:
    try:
        if sys.platform == 'win32':
            return _set_creation_time_windows(path, ts)
        if sys.platform == 'darwin':
            return _set_creation_time_macos(path, ts)
    except (OSError, OverflowError, ValueError, subprocess.SubprocessError) as e:
        logging.warning(f"Could not set creation time on {path}: {e}")
        return False
    return False


def _set_creation_time_windows(path: Path, ts: int) -> bool:
    import pywintypes
    import win32con
    import win32file

    ctime = pywintypes.Time(datetime.fromtimestamp(ts))
    try:
        handle = win32file.CreateFile(
            str(path),
            win32con.GENERIC_WRITE,
            win32con.FILE_SHARE_READ | win32con.FILE_SHARE_WRITE,
            None,
            win32con.OPEN_EXISTING,
            win32con.FILE_ATTRIBUTE_NORMAL,
            None,
        )
    except pywintypes.error as e:
        logging.warning(f"Could not open {path} to set creation time: {e}")
        return False
    try:
        win32file.SetFileTime(handle, ctime, None, None)
    except pywintypes.error as e:
        logging.warning(f"SetFileTime failed for {path}: {e}")
        return False
    finally:
        handle.Close()
    return True


def _set_creation_time_macos(path: Path, ts: int) -> bool:
    setfile = shutil.which("SetFile")
    if setfile is None:
        return False
    # SetFile expects local time as mm/dd/yyyy HH:MM:SS
    stamp = datetime.fromtimestamp(ts).strftime("%m/%d/%Y %H:%M:%S")
    result = subprocess.run(
        [setfile, "-d", stamp, str(path)],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        text=True,
    )
    if result.returncode != 0:
        logging.warning(f"SetFile failed for {path}: {result.stderr.strip()}")
        return False
    return True
