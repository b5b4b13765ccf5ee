"""Exceptions raised by the archive and search tools."""


class ConversationArchiverError(Exception):
    """Base class for archiver failures."""


class ArchiveError(ConversationArchiverError):
    """Raised when a project's session logs cannot be archived."""


class SearchError(ConversationArchiverError):
    """Raised when there is nothing to search."""
