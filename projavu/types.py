"""
Idea Data Model

Defines the idea record returned by the book, the closed set of progress
stages, and the request type accepted when stashing a new idea.

Returned ideas own their values: mutating an Idea never touches the
on-disk book.  Changes go through the IdeaBook edit operations.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Union

from projavu.errors import IllegalCharacterInTag, InvalidIdea, InvalidProgress


# ---------------------------------------------------------------------------
# Progress stages
# ---------------------------------------------------------------------------

_PROGRESS_HELP = {
    "pending": "an idea that is being brainstormed or considered, but not acted upon",
    "nigh": "an idea that is being considered for implementation in the near future",
    "current": "an idea that is currently being implemented",
    "maintain": (
        "an idea that has been implemented and is now being managed, "
        "maintained, and possibly improved"
    ),
    "archived": "an idea that is no longer being maintained or acted upon",
    "defer": (
        "an idea that has been intentionally delayed or postponed, "
        "possibly without a specific time frame or deadline"
    ),
}


class IdeaProgress(enum.Enum):
    """Lifecycle stage of an idea.  Stored in the table by its literal name."""

    pending = "pending"
    nigh = "nigh"
    current = "current"
    maintain = "maintain"
    archived = "archived"
    defer = "defer"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, name: str) -> IdeaProgress:
        """Parse a stage name.  Raises InvalidProgress for unknown names."""
        try:
            return cls(name)
        except ValueError:
            raise InvalidProgress(name) from None

    @classmethod
    def names(cls) -> List[str]:
        """All stage names, in lifecycle order."""
        return [p.value for p in cls]

    def describe(self) -> str:
        """One-line description of the stage."""
        return _PROGRESS_HELP[self.value]


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


def check_title(title: Any) -> str:
    """Return title, raising InvalidIdea unless it is a str."""
    if not isinstance(title, str):
        raise InvalidIdea(f"title must be str, got {type(title).__name__}")
    return title


def check_content(content: Any) -> bytes:
    """Return content as bytes (str is UTF-8 encoded)."""
    if isinstance(content, str):
        return content.encode("utf-8")
    if not isinstance(content, bytes):
        raise InvalidIdea(
            f"content must be bytes or str, got {type(content).__name__}"
        )
    return content


def check_progress(progress: Any) -> IdeaProgress:
    """Return progress as an IdeaProgress, parsing stage names."""
    if isinstance(progress, str):
        return IdeaProgress.from_string(progress)
    if not isinstance(progress, IdeaProgress):
        raise InvalidIdea(
            f"progress must be IdeaProgress, got {type(progress).__name__}"
        )
    return progress


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


def validate_tags(tags: Iterable[str]) -> List[str]:
    """Return tags as a list, raising IllegalCharacterInTag on whitespace."""
    if isinstance(tags, str):
        raise InvalidIdea("tags must be a collection of str, got a single str")
    checked = []
    for tag in tags:
        if not isinstance(tag, str):
            raise InvalidIdea(f"tag must be str, got {type(tag).__name__}")
        if any(ch.isspace() for ch in tag):
            raise IllegalCharacterInTag(tag)
        checked.append(tag)
    return checked


def format_tags(tags: Iterable[str]) -> str:
    """Serialize tags into the single space-joined table cell."""
    return " ".join(tags)


def parse_tags(cell: str) -> List[str]:
    """Split a tags cell back into tags, dropping empty tokens."""
    return cell.split()


# ---------------------------------------------------------------------------
# Idea (returned record)
# ---------------------------------------------------------------------------


@dataclass
class Idea:
    """An idea as read back from the book."""

    id: int
    reference: str
    title: str
    content: bytes
    progress: IdeaProgress = IdeaProgress.pending
    tags: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Content decoded as UTF-8 (undecodable bytes replaced)."""
        return self.content.decode("utf-8", errors="replace")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict (content decoded as text)."""
        d = asdict(self)
        d["progress"] = self.progress.value
        d["content"] = self.text
        return d


# ---------------------------------------------------------------------------
# NewIdea (request to stash)
# ---------------------------------------------------------------------------


@dataclass
class NewIdea:
    """Everything needed to add an idea; the book assigns id and reference."""

    title: str
    content: Union[bytes, str]
    progress: IdeaProgress = IdeaProgress.pending
    tags: List[str] = field(default_factory=list)

    def validate(self) -> None:
        """Check field types and tags.  Raises InvalidIdea / IllegalCharacterInTag."""
        check_title(self.title)
        check_content(self.content)
        self.progress = check_progress(self.progress)
        self.tags = validate_tags(self.tags)

    @property
    def content_bytes(self) -> bytes:
        """Content as bytes (str is UTF-8 encoded)."""
        return check_content(self.content)
