"""Input loading for the journal engine."""

from .journal_file import JournalFileError, load_settings_file, load_trades

__all__ = ["JournalFileError", "load_settings_file", "load_trades"]
