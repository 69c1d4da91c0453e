"""
Error Taxonomy — Typed Failures of the Idea Book

Every failure of the storage core is raised as a subclass of
IdeaBookError.  The underlying OSError / csv.Error is chained as
``__cause__`` so callers keep the original context.

Categories:
    I/O          ReadTable, WriteTable, StashContent, ReadContent,
                 DeleteContent, DeleteDirectory
    structural   ParsingTable, UnexpectedTable, InsertTable
    validation   IllegalCharacterInTag, InvalidProgress, InvalidIdea
    not found    InvalidID (record level), RowNotFound (table level)

Nothing inside the core retries or swallows these.
"""

from __future__ import annotations


class IdeaBookError(Exception):
    """Base class of every error raised by the idea book."""


# ---------------------------------------------------------------------------
# I/O failures
# ---------------------------------------------------------------------------


class ReadTable(IdeaBookError):
    """The lookup table could not be read."""


class WriteTable(IdeaBookError):
    """The lookup table could not be exported or written."""


class StashContent(IdeaBookError):
    """An idea's content could not be stored on disk."""


class ReadContent(IdeaBookError):
    """A reference could not be followed to its stored content."""


class DeleteContent(IdeaBookError):
    """Stored content could not be deleted."""


class DeleteDirectory(IdeaBookError):
    """A shard directory could not be removed for a reason other than being non-empty."""


# ---------------------------------------------------------------------------
# Structural failures (possible external corruption)
# ---------------------------------------------------------------------------


class ParsingTable(IdeaBookError):
    """The lookup table is not well-formed CSV."""


class UnexpectedTable(IdeaBookError):
    """The lookup table holds data that should not be there.

    Usually hints at a manually edited table: a missing column, a
    non-numeric id or an unknown progress stage.
    """


class InsertTable(IdeaBookError):
    """Values could not be inserted into (or removed from) the table."""


# ---------------------------------------------------------------------------
# Validation failures
# ---------------------------------------------------------------------------


class IllegalCharacterInTag(IdeaBookError, ValueError):
    """A tag contains whitespace, which the tags column uses as separator."""

    def __init__(self, tag: str):
        self.tag = tag
        super().__init__(f"Tag contains whitespace: {tag!r}")


class InvalidProgress(IdeaBookError, ValueError):
    """A progress name is not one of the known stages."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown progress stage: {name!r}")


class InvalidIdea(IdeaBookError, ValueError):
    """A new-idea request has a field of the wrong type."""


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class RowNotFound(IdeaBookError, LookupError):
    """No row holds the requested value in the requested column."""


class InvalidID(IdeaBookError, LookupError):
    """The requested idea does not exist."""

    def __init__(self, idea_id: int):
        self.idea_id = idea_id
        super().__init__(f"No idea with id {idea_id}")
