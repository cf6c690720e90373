"""inkwell: an encrypted personal diary with background autosave."""

__version__ = "0.1.0"
