"""Error kinds raised while building projectors."""


class ProjectorError(RuntimeError):
    """Base class for projector build failures."""


class PlayerNotSetError(ProjectorError):
    """Raised when a projector is written without a player configured."""


class UnsupportedArchiveError(ProjectorError):
    """Raised when a player path is not a directory or a known archive."""


class NotAFileError(ProjectorError):
    """Raised when an append target is missing or not a regular file."""


class UnknownFieldTagError(ProjectorError):
    """Raised when a layout descriptor contains an unknown tag character.

    :ivar tag: The offending character.
    """

    def __init__(self, tag: str) -> None:
        super().__init__(f"Unknown layout field tag: {tag!r}")
        self.tag: str = tag


class MissingJoinerError(ProjectorError):
    """Raised when a list of strings is given without a joiner."""


class MissingEncodingError(ProjectorError):
    """Raised when string data is given without an encoding."""


class ProjectorIOError(ProjectorError, OSError):
    """Raised when an underlying read, write, open or close fails."""
