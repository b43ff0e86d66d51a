"""Minimal ZIP writer — stored (uncompressed) entries only.

Layout follows PKWARE's APPNOTE.TXT:

    [local file header + name + data] * N
    [central directory file header + name] * N
    end of central directory record

All integers are little-endian. Version needed/made by is 1.0 (MS-DOS),
flags and compression method are always 0.
"""

import re
import struct
from datetime import datetime
from typing import Callable

from svgframes.models import ArchiveEntry, MsDosDateTime


class ArchiveError(ValueError):
    pass


class InvalidArchiveName(ArchiveError):
    pass


class DuplicateArchiveName(ArchiveError):
    pass


LOCAL_FILE_HEADER_SIGNATURE = b"PK\x03\x04"
CENTRAL_DIRECTORY_SIGNATURE = b"PK\x01\x02"
END_OF_CENTRAL_DIRECTORY_SIGNATURE = b"PK\x05\x06"

VERSION = 0x000A  # 1.0, MS-DOS compatible
METHOD_STORED = 0

_MAX_U16 = 0xFFFF
_MAX_U32 = 0xFFFFFFFF

_NAME_CHARS_RE = re.compile(r"^[0-9a-zA-Z_.~/-]+$")
# Non-empty segments, no leading/trailing or doubled separators
_NAME_PATH_RE = re.compile(r"^[^/]+(?:/[^/]+)*$")

# sig, version needed, flags, method, time, date, crc, csize, usize, name len, extra len
_LOCAL_HEADER = struct.Struct("<4sHHHHHIIIHH")
# sig, made by, needed, flags, method, time, date, crc, csize, usize,
# name len, extra len, comment len, disk start, internal attrs, external attrs, offset
_CENTRAL_HEADER = struct.Struct("<4sHHHHHHIIIHHHHHII")
# sig, this disk, cd disk, entries on disk, entries, cd size, cd offset, comment len
_END_RECORD = struct.Struct("<4sHHHHIIH")


def _build_crc32_table() -> list[int]:
    table = []
    for index in range(256):
        value = index
        for _ in range(8):
            value = (value >> 1) ^ 0xEDB88320 if value & 1 else value >> 1
        table.append(value)
    return table


_CRC32_TABLE = _build_crc32_table()


def crc32(data: bytes) -> int:
    """IEEE 802.3 CRC-32 (reflected, polynomial 0xEDB88320)."""
    checksum = 0xFFFFFFFF
    for byte in data:
        checksum = _CRC32_TABLE[(checksum ^ byte) & 0xFF] ^ (checksum >> 8)
    return checksum ^ 0xFFFFFFFF


def to_ms_dos_date_time(when: datetime) -> MsDosDateTime:
    """Pack a timestamp into the 16-bit DOS time and date words.

    DOS dates cover 1980 to 2107; anything outside is pinned to the nearest end.
    Seconds are stored with two-second resolution.
    """
    if when.year < 1980:
        when = datetime(1980, 1, 1)
    elif when.year > 2107:
        when = datetime(2107, 12, 31, 23, 59, 58)
    time_word = (when.second // 2) | (when.minute << 5) | (when.hour << 11)
    date_word = when.day | (when.month << 5) | ((when.year - 1980) << 9)
    return MsDosDateTime(time=time_word, date=date_word)


def normalize_name(name: str) -> str:
    """Return the stored form of ``name`` or raise InvalidArchiveName."""
    normalized = name.replace("\\", "/")
    if not normalized:
        raise InvalidArchiveName("File name cannot be empty")
    if not _NAME_CHARS_RE.match(normalized):
        raise InvalidArchiveName(
            f"Invalid file name: {name!r} (only 0-9 a-z A-Z _ . ~ - / are allowed)"
        )
    if not _NAME_PATH_RE.match(normalized):
        raise InvalidArchiveName(f"Invalid file name: {name!r} (normalized to {normalized!r})")
    return normalized


class ArchiveWriter:
    """Accumulates stored entries in memory, strictly append-only."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self._body: list[bytes] = []
        self._body_size = 0
        self._directory: list[bytes] = []
        self._directory_size = 0
        self._entries: list[ArchiveEntry] = []
        self._names: set[str] = set()

    @property
    def entries(self) -> tuple[ArchiveEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def append_entry(self, data: bytes, name: str) -> ArchiveEntry:
        """Append ``data`` as a stored file called ``name``.

        Raises InvalidArchiveName for empty or disallowed names,
        DuplicateArchiveName if the normalized name is already present and
        ArchiveError if the archive would outgrow the 32-bit format.
        """
        normalized = normalize_name(name)
        if normalized in self._names:
            raise DuplicateArchiveName(f"Archive already contains a file named {normalized!r}")
        if len(self._entries) >= _MAX_U16:
            raise ArchiveError(f"Archive cannot hold more than {_MAX_U16} entries")

        name_bytes = normalized.encode("ascii")
        size = len(data)
        offset = self._body_size
        record_size = _LOCAL_HEADER.size + len(name_bytes) + size
        if size > _MAX_U32 or offset + record_size > _MAX_U32:
            raise ArchiveError("Archive cannot exceed 4 GiB without ZIP64 support")

        entry = ArchiveEntry(
            name_bytes=name_bytes,
            crc32=crc32(data),
            size=size,
            offset=offset,
            timestamp=to_ms_dos_date_time(self.clock()),
        )

        local_header = _LOCAL_HEADER.pack(
            LOCAL_FILE_HEADER_SIGNATURE,
            VERSION,
            0,
            METHOD_STORED,
            entry.timestamp.time,
            entry.timestamp.date,
            entry.crc32,
            size,  # compressed size == uncompressed size for stored entries
            size,
            len(name_bytes),
            0,
        )
        central_header = _CENTRAL_HEADER.pack(
            CENTRAL_DIRECTORY_SIGNATURE,
            VERSION,
            VERSION,
            0,
            METHOD_STORED,
            entry.timestamp.time,
            entry.timestamp.date,
            entry.crc32,
            size,
            size,
            len(name_bytes),
            0,
            0,
            0,
            0,
            0,
            offset,
        )

        self._body += [local_header, name_bytes, bytes(data)]
        self._body_size += record_size
        self._directory += [central_header, name_bytes]
        self._directory_size += len(central_header) + len(name_bytes)
        self._entries.append(entry)
        self._names.add(normalized)
        return entry

    def finalize(self) -> bytes:
        """Return the complete archive bytes. The writer stays usable."""
        count = len(self._entries)
        end_record = _END_RECORD.pack(
            END_OF_CENTRAL_DIRECTORY_SIGNATURE,
            0,
            0,
            count,
            count,
            self._directory_size,
            self._body_size,
            0,
        )
        return b"".join([*self._body, *self._directory, end_record])
