"""Errors raised while reading an uploaded file."""


class ParseError(Exception):
    """The file could not be read into accounts or page images."""
    pass


class UnsupportedFileError(ParseError):
    """The file kind is not one we can import."""
    pass


class EmptyFileError(ParseError):
    """The file was read but held nothing to import."""
    pass
