"""
Custom exception hierarchy for the takeout restorer.

Every error here is recoverable per descriptor/media pair; the scanner logs it
and moves on. Only an invalid root directory stops a run, and that is handled
in the entry point.
"""


class TakeoutRestoreError(Exception):
    """Base exception for all takeout restorer errors."""
    pass


class DescriptorUnreadable(TakeoutRestoreError):
    """Raised when a sidecar JSON file cannot be read or parsed."""
    pass


class MediaUnresolved(TakeoutRestoreError):
    """Raised when no media file can be paired with a descriptor."""
    pass


class NoTimestampFound(TakeoutRestoreError):
    """Raised when a descriptor parses but carries no usable capture time."""
    pass


class ContainerDecodeFailure(TakeoutRestoreError):
    """Raised when an image container cannot be opened or its tags read."""
    pass


class ContainerEncodeFailure(TakeoutRestoreError):
    """Raised when the rewritten image cannot be saved or swapped in."""
    pass


class FilesystemAttributeFailure(TakeoutRestoreError):
    """Raised when file timestamps cannot be applied."""
    pass
