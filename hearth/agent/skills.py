"""Skills loader for agent capabilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml
from loguru import logger

DEFAULT_SKILL_VERSION = "0.1.0"
SKILL_FILE = "SKILL.md"


@dataclass
class Skill:
    """Read-only skill metadata injected into the system prompt."""

    name: str
    description: str
    version: str = DEFAULT_SKILL_VERSION
    author: str | None = None
    tags: list[str] = field(default_factory=list)
    location: Path | None = None


def skills_dir(workspace: Path) -> Path:
    return workspace / "skills"


def load_skill(skill_dir: Path) -> Skill:
    """
    Load one skill from a directory containing SKILL.md.

    YAML front matter (`name`, `description`, `version`, `author`, `tags`)
    wins when present and valid; otherwise the first heading is the name and
    the first non-heading line is the description.

    Raises:
        FileNotFoundError: If the directory has no SKILL.md.
    """
    md_path = skill_dir / SKILL_FILE
    if not md_path.is_file():
        raise FileNotFoundError(f"No {SKILL_FILE} found in {skill_dir}")

    content = md_path.read_text(encoding="utf-8")
    skill = _parse_front_matter(content, md_path)
    if skill is not None:
        return skill

    lines = _strip_front_matter(content.splitlines())
    first_line = next((line for line in lines if line.strip()), "")
    name = first_line.lstrip("#").strip()
    description = next(
        (line.strip() for line in lines if line.strip() and not line.startswith("#")),
        "No description",
    )
    return Skill(
        name=name or "unnamed",
        description=description,
        location=md_path,
    )


def _front_matter_end(lines: list[str]) -> int | None:
    """Index of the closing `---` fence, if the file opens with front matter."""
    if len(lines) < 2 or lines[0].strip() != "---":
        return None
    return next((i for i, line in enumerate(lines[1:], start=1) if line.strip() == "---"), None)


def _strip_front_matter(lines: list[str]) -> list[str]:
    closing = _front_matter_end(lines)
    return lines if closing is None else lines[closing + 1:]


def _parse_front_matter(content: str, md_path: Path) -> Skill | None:
    lines = content.splitlines()
    closing = _front_matter_end(lines)
    if closing is None:
        return None

    try:
        meta = yaml.safe_load("\n".join(lines[1:closing]))
    except yaml.YAMLError as exc:
        logger.debug("Invalid skill front matter in {}: {}", md_path, exc)
        return None

    if not isinstance(meta, dict) or not meta.get("name") or not meta.get("description"):
        return None

    tags = meta.get("tags") or []
    if isinstance(tags, str):
        tags = [t.strip() for t in tags.split(",") if t.strip()]
    elif not isinstance(tags, list):
        tags = [tags]
    author = meta.get("author")
    return Skill(
        name=str(meta["name"]),
        description=str(meta["description"]),
        version=str(meta.get("version") or DEFAULT_SKILL_VERSION),
        author=str(author) if author else None,
        tags=[str(t) for t in tags],
        location=md_path,
    )


def is_unsafe_skill_name(name: str) -> bool:
    return (
        ".." in name
        or "/" in name
        or "\\" in name
        or "\0" in name
        or not name.strip()
    )


class SkillsLoader:
    """
    Loader for agent skills.

    Skills are directories under `<workspace>/skills/` holding a SKILL.md
    file. They are loaded once per session; the agent reads the full file
    with the file_read tool when it needs one.
    """

    def __init__(self, workspace: Path):
        self.workspace = workspace
        self.skills_dir = skills_dir(workspace)
        self._skills: dict[str, Skill] = {}

    def load(self) -> list[Skill]:
        """Scan the skills directory, skipping unsafe or broken skills."""
        self._skills = {}
        if not self.skills_dir.is_dir():
            logger.debug("Skills directory does not exist: {}", self.skills_dir)
            return []

        loaded = 0
        skipped = 0
        for path in sorted(self.skills_dir.iterdir()):
            if not path.is_dir():
                continue
            if is_unsafe_skill_name(path.name):
                logger.warning("Skipping unsafe skill name: {}", path.name)
                skipped += 1
                continue
            try:
                skill = load_skill(path)
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to load skill '{}': {}", path.name, exc)
                skipped += 1
                continue
            self._skills[skill.name] = skill
            loaded += 1

        logger.info("Skills loaded: loaded={} skipped={} path={}", loaded, skipped, self.skills_dir)
        return self.list_skills()

    def list_skills(self) -> list[Skill]:
        return sorted(self._skills.values(), key=lambda s: s.name)

    def get(self, name: str) -> Skill | None:
        return self._skills.get(name)

    def count(self) -> int:
        return len(self._skills)
