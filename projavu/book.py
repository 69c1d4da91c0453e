"""
Idea Book — Record Operations over Content Store + Lookup Table

An idea book is a directory holding the CSV lookup table and the
content-addressed blob tree:

    <root>/
        table.csv       # id,reference,title,progress,tags
        2c/
            f24dba5f...  # blob (62-char name, 2-char shard)

Rules:
    - ids come from max(id) + 1 and are never reused, even after removal.
    - every edit deletes the row and reinserts the full row under the same id.
    - remove() drops the row only; the blob stays until
      clean_invalid_references() collects it.

Public API:
    book = IdeaBook("/path/to/root")
    book.initialize()
    idea_id = book.add("Title", "content", IdeaProgress.nigh, ["tag"])
    idea = book.read(idea_id)
    book.edit_title(idea_id, "New title")
    book.remove(idea_id)
    book.clean_invalid_references()
    for idea in book.iterate(): ...
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

from projavu.content import ContentStore
from projavu.errors import InvalidID, RowNotFound, UnexpectedTable
from projavu.table import (
    COLUMNS,
    IdeaTable,
    Table,
    column_values,
    delete_row,
    find_column,
    find_row_by_value,
    insert_row,
)
from projavu.types import (
    Idea,
    IdeaProgress,
    NewIdea,
    check_content,
    check_progress,
    check_title,
    format_tags,
    parse_tags,
    validate_tags,
)

logger = logging.getLogger(__name__)

DEFAULT_TABLE_BASENAME = "table.csv"


class IdeaBook:
    """On-disk notebook of ideas."""

    def __init__(
        self,
        root: Union[str, Path],
        table_basename: str = DEFAULT_TABLE_BASENAME,
    ):
        self.root = Path(root)
        self.table_basename = table_basename
        self.content = ContentStore(self.root)
        self.table = IdeaTable(self.root / table_basename)

    def __repr__(self) -> str:
        return f"IdeaBook(root={str(self.root)!r})"

    def __iter__(self) -> Iterator[Idea]:
        return self.iterate()

    def initialize(self) -> None:
        """Create the root directory and an empty lookup table if missing."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.table.initialize()

    # -- Table helpers -----------------------------------------------------

    def _push_row(self, table: Table, idea_id: int, reference: str, title: str,
                  progress: IdeaProgress, tags: List[str]) -> None:
        for name in COLUMNS:
            find_column(table, name)
        insert_row(table, {
            "id": str(idea_id),
            "reference": reference,
            "title": title,
            "progress": progress.value,
            "tags": format_tags(tags),
        })

    def _pop_row(self, table: Table, idea_id: int) -> List[str]:
        col = find_column(table, "id")
        try:
            index = find_row_by_value(table, col, str(idea_id))
        except RowNotFound:
            raise InvalidID(idea_id) from None
        return delete_row(table, index)

    @staticmethod
    def _max_id(table: Table) -> int:
        last_id = 0
        for value in column_values(table, "id"):
            if not (value.isascii() and value.isdigit()):
                raise UnexpectedTable(f"Non-numeric id in table: {value!r}")
            last_id = max(last_id, int(value))
        return last_id

    # -- Ids ---------------------------------------------------------------

    def next_id(self) -> int:
        """Next unused id: one more than the highest id in the table."""
        return self._max_id(self.table.read()) + 1

    # -- Create ------------------------------------------------------------

    def add_idea(self, request: NewIdea) -> int:
        """Stash a new idea and return its id."""
        request.validate()
        table = self.table.read()
        for name in COLUMNS:
            find_column(table, name)
        idea_id = self._max_id(table) + 1

        reference = self.content.store(request.content_bytes)
        self._push_row(table, idea_id, reference, request.title,
                       request.progress, request.tags)
        self.table.write(table)
        logger.info("Added idea %d (%s)", idea_id, reference)
        return idea_id

    def add(
        self,
        title: str,
        content: Union[bytes, str],
        progress: Union[IdeaProgress, str] = IdeaProgress.pending,
        tags: Iterable[str] = (),
    ) -> int:
        """Stash a new idea from its fields and return its id."""
        return self.add_idea(NewIdea(
            title=title, content=content, progress=progress, tags=list(tags),
        ))

    # -- Read --------------------------------------------------------------

    def read(self, idea_id: int) -> Idea:
        """Return the idea with the given id, content included."""
        table = self.table.read()
        col_id = find_column(table, "id")
        col_ref = find_column(table, "reference")
        col_title = find_column(table, "title")
        col_progress = find_column(table, "progress")
        col_tags = find_column(table, "tags")

        wanted = str(idea_id)
        for row in table.rows:
            if row[col_id] != wanted:
                continue
            stage = row[col_progress]
            try:
                progress = IdeaProgress(stage)
            except ValueError:
                raise UnexpectedTable(
                    f"Unknown progress {stage!r} for idea {idea_id}"
                ) from None
            reference = row[col_ref]
            return Idea(
                id=idea_id,
                reference=reference,
                title=row[col_title],
                content=self.content.read(reference),
                progress=progress,
                tags=parse_tags(row[col_tags]),
            )
        raise InvalidID(idea_id)

    # -- Edit --------------------------------------------------------------

    def _replace(self, idea: Idea) -> Idea:
        table = self.table.read()
        self._pop_row(table, idea.id)
        self._push_row(table, idea.id, idea.reference, idea.title,
                       idea.progress, idea.tags)
        self.table.write(table)
        logger.debug("Rewrote row of idea %d", idea.id)
        return idea

    def edit_title(self, idea_id: int, title: str) -> Idea:
        """Replace the title of an existing idea."""
        title = check_title(title)
        idea = self.read(idea_id)
        idea.title = title
        return self._replace(idea)

    def edit_content(self, idea_id: int, content: Union[bytes, str]) -> Idea:
        """Replace the content of an existing idea, stashing the new blob.

        The previous blob is left on disk for the garbage collector.
        """
        content = check_content(content)
        idea = self.read(idea_id)
        idea.reference = self.content.store(content)
        idea.content = content
        return self._replace(idea)

    def edit_progress(self, idea_id: int, progress: Union[IdeaProgress, str]) -> Idea:
        """Move an existing idea to another progress stage."""
        progress = check_progress(progress)
        idea = self.read(idea_id)
        idea.progress = progress
        return self._replace(idea)

    def edit_tags(self, idea_id: int, tags: Iterable[str]) -> Idea:
        """Replace the tags of an existing idea."""
        checked = validate_tags(tags)
        idea = self.read(idea_id)
        idea.tags = checked
        return self._replace(idea)

    def add_tags(self, idea_id: int, tags: Iterable[str]) -> Idea:
        """Append tags the idea does not carry yet."""
        idea = self.read(idea_id)
        merged = list(idea.tags)
        for tag in validate_tags(tags):
            if tag not in merged:
                merged.append(tag)
        return self.edit_tags(idea_id, merged)

    def remove_tags(self, idea_id: int, tags: Iterable[str]) -> Idea:
        """Drop every occurrence of the given tags."""
        unwanted = set(tags)
        idea = self.read(idea_id)
        return self.edit_tags(idea_id, [t for t in idea.tags if t not in unwanted])

    # -- Delete ------------------------------------------------------------

    def remove(self, idea_id: int) -> None:
        """Remove an idea's row, leaving its blob behind."""
        table = self.table.read()
        self._pop_row(table, idea_id)
        self.table.write(table)
        logger.info("Removed idea %d", idea_id)

    def clean_invalid_references(self) -> List[str]:
        """Delete every blob no row references.  Returns the deleted references.

        Stops at the first failure; blobs deleted before it stay deleted.
        """
        table = self.table.read()
        recorded = set(column_values(table, "reference"))
        deleted = []
        for reference in self.content.list_all_references():
            if reference in recorded:
                continue
            self.content.delete(reference)
            deleted.append(reference)
            logger.info("Deleted unreferenced blob %s", reference)
        return deleted

    # -- Iterate -----------------------------------------------------------

    def iterate(self) -> IdeaIterator:
        """Iterator over the ideas that exist now, by ascending id."""
        return IdeaIterator(self, self.next_id() - 1)


class IdeaIterator:
    """Forward-only walk over ids 1..last_id, skipping removed ideas.

    last_id is fixed at construction: ideas added later are never seen,
    ideas removed meanwhile are skipped.  Once exhausted it stays exhausted.
    """

    def __init__(self, book: IdeaBook, last_id: int):
        self.book = book
        self.last_id = last_id
        self.cursor = 1

    def __iter__(self) -> IdeaIterator:
        return self

    def __next__(self) -> Idea:
        idea = self.next()
        if idea is None:
            raise StopIteration
        return idea

    def next(self) -> Optional[Idea]:
        """Next existing idea, or None once past last_id."""
        while self.cursor <= self.last_id:
            try:
                idea = self.book.read(self.cursor)
            except InvalidID:
                self.cursor += 1
                continue
            self.cursor += 1
            return idea
        return None
