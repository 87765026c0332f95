"""Script Remixer - rewrite a story outline through a director's lens."""

__version__ = "0.1.0"
