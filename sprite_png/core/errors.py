"""Error kinds raised by the codec.

Decode-time failures derive from DecodeError, encode-time failures from
EncodeError. Cooperative stop is not an error and has no exception.
"""


class CodecError(Exception):
    """Base class for every codec failure."""


class DecodeError(CodecError):
    """A decode call failed; no image is handed back."""


class ReadError(DecodeError):
    """The source stream could not be opened or read, or ended early."""


class HeaderError(DecodeError):
    """Malformed or unsupported header fields."""


class UnsupportedColorModel(HeaderError):
    """Colour type outside the supported set."""


class AllocationFailure(DecodeError):
    """The sink could not allocate the target image."""


class CorruptDataError(DecodeError):
    """The compressed image data is damaged."""


class EncodeError(CodecError):
    """An encode call failed. Bytes already written are not retracted."""


class WriteError(EncodeError):
    """Failure while writing to the destination."""


class FormatNotSupported(CodecError):
    """No registered format can handle the request."""


class ConfigError(ValueError):
    """Invalid configuration value."""
