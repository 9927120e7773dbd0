"""Workspace bootstrap: directories and default identity files."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from hearth.utils.helpers import ensure_dir

DEFAULT_SOUL = """# SOUL.md - Who You Are

You are hearth, a lightweight local assistant.

## Personality

- Helpful and friendly
- Concise and to the point
- Practical and action-oriented

## Values

- Accuracy over speed
- Never expose sensitive information
- Explain what you are about to do before using tools

## Memory

Store user preferences, project context and decisions with memory_write.
Do not store transient state or information already in files.
"""

DEFAULT_TOOLS = """# TOOLS.md - Local Tool Notes

Notes about this machine and its tools. Edit freely.

- file_read / file_write: paths are relative to the workspace
- shell: commands run with the workspace as working directory
- memory_read / memory_write: long-term notes, searchable by keyword
"""

DEFAULT_USER = """# USER.md - About the User

Fill in anything the assistant should always know about you.

- Name:
- Timezone:
- Preferences:
"""

TEMPLATES = {
    "SOUL.md": DEFAULT_SOUL,
    "TOOLS.md": DEFAULT_TOOLS,
    "USER.md": DEFAULT_USER,
}


def ensure_workspace(path: Path) -> Path:
    """
    Create the workspace layout and write missing bootstrap files.

    Existing files are never overwritten.

    Returns:
        The expanded workspace path.
    """
    workspace = ensure_dir(path.expanduser())
    ensure_dir(workspace / "memory")
    ensure_dir(workspace / "skills")

    for filename, content in TEMPLATES.items():
        file_path = workspace / filename
        if file_path.exists():
            continue
        file_path.write_text(content, encoding="utf-8")
        logger.info("Created {}", file_path)

    return workspace
