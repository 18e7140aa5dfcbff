"""Append layout descriptors.

A layout is an ordered sequence of fields composed left-to-right into one
contiguous byte sequence that gets appended to a player file:

- ``d``: Movie data.
- ``m``: Marker bytes (``56 34 12 FA``).
- ``s``: Size, 32-bit little-endian.
- ``S``: Size, 32-bit big-endian.
- ``l``: Size, 64-bit little-endian (value in the low word).
- ``L``: Size, 64-bit big-endian (value in the low word).

Players locate the movie by scanning backward from end-of-file for the
marker, so field order and endianness must match the target player exactly.
"""

from dataclasses import dataclass
import enum
import struct

from movie_projector.errors import UnknownFieldTagError


MOVIE_APPEND_MARKER: bytes = bytes.fromhex("563412FA")


class AppendField(enum.Enum):
    """A single field of an append layout, keyed by its tag character."""

    DATA = "d"
    MARKER = "m"
    SIZE32_LE = "s"
    SIZE32_BE = "S"
    SIZE64_LE = "l"
    SIZE64_BE = "L"

    @classmethod
    def from_tag(cls, tag: str) -> "AppendField":
        """Look up a field by tag character.

        :param tag: Single tag character.
        :returns: Matching field.
        :raises UnknownFieldTagError: If the tag is not recognized.
        """

        try:
            return cls(tag)
        except ValueError:
            raise UnknownFieldTagError(tag) from None

    def encode(self, payload: bytes) -> bytes:
        """Encode this field for a payload.

        :param payload: Movie data.
        :returns: Field bytes.
        """

        size: int = len(payload)
        if self is AppendField.DATA:
            return payload
        if self is AppendField.MARKER:
            return MOVIE_APPEND_MARKER
        if self is AppendField.SIZE32_LE:
            return struct.pack("<I", size)
        if self is AppendField.SIZE32_BE:
            return struct.pack(">I", size)
        # 64-bit fields only ever carry a 32-bit value, movies cannot be larger.
        if self is AppendField.SIZE64_LE:
            return struct.pack("<I", size) + bytes(4)
        return bytes(4) + struct.pack(">I", size)


@dataclass(frozen=True, slots=True)
class AppendLayout:
    """Ordered list of append fields.

    :ivar fields: Fields in output order.
    """

    fields: tuple[AppendField, ...]

    @classmethod
    def parse(cls, tags: str) -> "AppendLayout":
        """Build a layout from a tag string such as ``"dmsl"``.

        :param tags: Tag characters in output order.
        :returns: Parsed layout.
        :raises UnknownFieldTagError: On the first unrecognized character.
        """

        return cls(fields=tuple(AppendField.from_tag(c) for c in tags))

    @property
    def tags(self) -> str:
        """The layout as a tag string."""

        return "".join(f.value for f in self.fields)

    def compose(self, payload: bytes) -> bytes:
        """Compose the full byte sequence for a payload.

        :param payload: Movie data.
        :returns: Bytes to append.
        """

        return b"".join(f.encode(payload) for f in self.fields)
