"""
projavu — On-disk storing and managing of project ideas.

Content is stored once per SHA-256 digest; a CSV lookup table maps idea ids
to their content reference, title, progress stage, and tags.
"""

__version__ = "0.1.0"

from projavu.types import Idea, IdeaProgress, NewIdea
from projavu.errors import IdeaBookError, InvalidID, IllegalCharacterInTag
from projavu.content import ContentStore
from projavu.table import IdeaTable, Table
from projavu.book import IdeaBook, IdeaIterator
from projavu.config import BookConfig, load_config

__all__ = [
    "__version__",
    "Idea",
    "IdeaProgress",
    "NewIdea",
    "IdeaBookError",
    "InvalidID",
    "IllegalCharacterInTag",
    "ContentStore",
    "IdeaTable",
    "Table",
    "IdeaBook",
    "IdeaIterator",
    "BookConfig",
    "load_config",
]
