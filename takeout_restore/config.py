"""
Configuration constants for the takeout restorer.
"""

# --- File Type Definitions ---
IMAGE_EXTS = frozenset({'.arw', '.gif', '.png', '.jpg', '.jpeg', '.raw'})
VIDEO_EXTS = frozenset({'.mp4', '.mov', '.avi', '.mkv'})
DESCRIPTOR_EXT = '.json'

# Live/motion clips share the photo's stem. Checked in this order.
COMPANION_SUFFIXES = ('', '.MP4')

# --- Descriptor Fields ---
TITLE_FIELD = 'title'
# Priority: taken -> created
TIMESTAMP_FIELDS = ('photoTakenTime', 'creationTime')
TIMESTAMP_KEY = 'timestamp'
GEO_FIELD = 'geoData'

# --- Suffix-Pattern Resolution ---
# Export tooling truncates long "cover" burst names: _COV -> _CO -> _C
COVER_SUFFIX_STEPS = (('_COV', '_CO'), ('_CO', '_C'))

# --- EXIF Tag Ids ---
TAG_DATETIME = 0x0132
TAG_DATETIME_ORIGINAL = 0x9003
TAG_DATETIME_DIGITIZED = 0x9004
TIMESTAMP_TAGS = (TAG_DATETIME, TAG_DATETIME_ORIGINAL, TAG_DATETIME_DIGITIZED)

TAG_GPS_LATITUDE_REF = 0x0001
TAG_GPS_LATITUDE = 0x0002
TAG_GPS_LONGITUDE_REF = 0x0003
TAG_GPS_LONGITUDE = 0x0004
TAG_GPS_ALTITUDE = 0x0006

# Pointer tags in IFD0 that hold the nested directories
EXIF_IFD_POINTER = 0x8769
GPS_IFD_POINTER = 0x8825
INTEROP_IFD_POINTER = 0xA005

EXIF_DATE_FORMAT = "{:04d}:{:02d}:{:02d} {:02d}:{:02d}:{:02d}"
GPS_SECONDS_DENOMINATOR = 100
GPS_ALTITUDE_DENOMINATOR = 100

# Pillow writers that accept an `exif=` payload.
# Never TIFF: TIFF-based RAW files (ARW) must not be re-encoded.
EXIF_WRITABLE_FORMATS = frozenset({'JPEG', 'MPO', 'PNG', 'WEBP'})

# --- Run ---
LOG_FILENAME = "takeout_restore.log"
DEFAULT_POLICY = "title_then_suffix"
