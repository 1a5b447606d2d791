# services/api/core/errors.py
"""
Error taxonomy for the overlay editor.

- InputError:  user input is missing or invalid; nothing is mutated.
- DecodeError: a raster payload could not be decoded.
- ExportError: the export run failed as a whole; no partial file is produced.
"""


class EditorError(Exception):
    """Base error for the overlay editor."""
    pass


class InputError(EditorError):
    """Missing or invalid user input (empty text, no ink, no image...)."""
    pass


class DecodeError(EditorError):
    """Raster payload could not be decoded."""
    pass


class ExportError(EditorError):
    """Export aborted (font fetch, image payload, no placements...)."""
    pass
