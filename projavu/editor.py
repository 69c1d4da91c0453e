"""
Editor Bridge — Obtain Idea Content through $EDITOR

Writes the initial text to a temporary file, opens it in the user's editor,
and reads the result back.  Unchanged text means the user provided nothing.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import tempfile
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class EditorError(RuntimeError):
    """Raised when no editor is configured or the editor fails."""


def resolve_editor(env: Optional[Dict[str, str]] = None) -> str:
    """Editor command from $EDITOR.  Raises EditorError when unset."""
    env = os.environ if env is None else env
    editor = env.get("EDITOR", "").strip()
    if not editor:
        raise EditorError("The environment variable $EDITOR is required, but not set")
    return editor


def edit_text(initial: str, editor: Optional[str] = None) -> Optional[str]:
    """Let the user edit initial text.  Returns None if left unchanged."""
    args = shlex.split(editor or resolve_editor())

    fd, path = tempfile.mkstemp(prefix="projavu_", suffix=".txt")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(initial)
        logger.debug("Opening %s in %s", path, args[0])
        try:
            result = subprocess.run(args + [path])
        except OSError as exc:
            raise EditorError(f"Could not spawn editor {args[0]!r}: {exc}") from exc
        if result.returncode != 0:
            raise EditorError(f"Editor exited with status {result.returncode}")
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    finally:
        if os.path.exists(path):
            os.unlink(path)

    if text == initial:
        return None
    return text
