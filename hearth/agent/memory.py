"""Memory system for persistent agent memory."""

from __future__ import annotations

import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from loguru import logger

from hearth.utils.helpers import ensure_dir, md5_hex, safe_filename

ENTRY_HEADER_RE = re.compile(r"^###\s+(.+)$", re.MULTILINE)
TOKEN_RE = re.compile(r"[A-Za-z0-9_]+")
_META_KEYS = ("category", "timestamp", "session")


class MemoryCategory(str, Enum):
    """Built-in memory categories. Any other string is a custom category."""

    CORE = "core"
    DAILY = "daily"


def normalize_category(category: MemoryCategory | str | None) -> str:
    """Normalize a category value into its plain string form."""
    if isinstance(category, MemoryCategory):
        return category.value
    value = (category or "").strip().lower()
    return value or MemoryCategory.CORE.value


@dataclass
class MemoryEntry:
    """One stored memory, optionally carrying a relevance score from recall."""

    id: str
    key: str
    content: str
    category: str
    timestamp: str
    session_id: str | None = None
    score: float | None = None


class BaseMemory(ABC):
    """Key/content memory with keyword recall, shared by the context builder, tools and loop."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def store(
        self,
        key: str,
        content: str,
        category: MemoryCategory | str = MemoryCategory.CORE,
        session_id: str | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def recall(
        self,
        query: str,
        limit: int = 5,
        session_id: str | None = None,
    ) -> list[MemoryEntry]:
        pass

    @abstractmethod
    async def get(self, key: str) -> MemoryEntry | None:
        pass

    @abstractmethod
    async def list_entries(
        self,
        category: MemoryCategory | str | None = None,
        session_id: str | None = None,
    ) -> list[MemoryEntry]:
        pass

    @abstractmethod
    async def forget(self, key: str) -> bool:
        pass

    async def count(self) -> int:
        return len(await self.list_entries())

    async def health_check(self) -> bool:
        return True


def query_terms(query: str, *, max_terms: int = 16) -> list[str]:
    """Lowercased, de-duplicated keyword terms (two chars or longer)."""
    terms: list[str] = []
    seen: set[str] = set()
    for word in TOKEN_RE.findall(query or ""):
        normalized = word.lower()
        if len(normalized) < 2 or normalized in seen:
            continue
        seen.add(normalized)
        terms.append(normalized)
        if len(terms) >= max_terms:
            break
    return terms


def keyword_score(terms: list[str], text: str) -> float:
    """Fraction of query terms present in text, in [0, 1]."""
    if not terms:
        return 0.0
    lower = text.lower()
    hits = sum(1 for term in terms if term in lower)
    return hits / len(terms)


class MarkdownMemory(BaseMemory):
    """
    Markdown-file memory under `<workspace>/memory`.

    - core entries live in MEMORY.md
    - daily entries live in daily/YYYY-MM-DD.md
    - custom categories live in <category>.md

    Each entry is one `### <key>` block followed by `category:`, `timestamp:`
    and optional `session:` lines, a blank line, then the content. Storing an
    existing key replaces the old block.
    """

    def __init__(self, workspace: Path):
        self.workspace = workspace
        self.memory_dir = ensure_dir(workspace / "memory")
        self.memory_file = self.memory_dir / "MEMORY.md"
        self.daily_dir = self.memory_dir / "daily"
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "markdown"

    async def store(
        self,
        key: str,
        content: str,
        category: MemoryCategory | str = MemoryCategory.CORE,
        session_id: str | None = None,
    ) -> None:
        key = " ".join((key or "").split())
        if not key:
            raise ValueError("Memory key must not be empty")
        now = datetime.now()
        entry = MemoryEntry(
            id=md5_hex(key)[:12],
            key=key,
            content=(content or "").strip(),
            category=normalize_category(category),
            timestamp=now.isoformat(timespec="seconds"),
            session_id=session_id,
        )
        target = self._file_for(entry.category, now)
        with self._lock:
            self._remove_key_locked(key)
            self._append_locked(target, entry)

    async def recall(
        self,
        query: str,
        limit: int = 5,
        session_id: str | None = None,
    ) -> list[MemoryEntry]:
        terms = query_terms(query)
        if not terms or limit <= 0:
            return []

        scored: list[MemoryEntry] = []
        for entry in await self.list_entries(session_id=session_id):
            score = keyword_score(terms, f"{entry.key}\n{entry.content}")
            if score <= 0:
                continue
            entry.score = round(score, 4)
            scored.append(entry)

        scored.sort(key=lambda e: (e.score or 0.0, e.timestamp), reverse=True)
        return scored[:limit]

    async def get(self, key: str) -> MemoryEntry | None:
        key = " ".join((key or "").split())
        for entry in await self.list_entries():
            if entry.key == key:
                return entry
        return None

    async def list_entries(
        self,
        category: MemoryCategory | str | None = None,
        session_id: str | None = None,
    ) -> list[MemoryEntry]:
        wanted = normalize_category(category) if category is not None else None
        with self._lock:
            entries = [entry for path in self._iter_files() for entry in self._read_file(path)]
        if wanted is not None:
            entries = [e for e in entries if e.category == wanted]
        if session_id is not None:
            # Session-less entries (core facts) stay visible to every session.
            entries = [e for e in entries if e.session_id in (None, session_id)]
        return entries

    async def forget(self, key: str) -> bool:
        key = " ".join((key or "").split())
        with self._lock:
            return self._remove_key_locked(key)

    def _file_for(self, category: str, now: datetime) -> Path:
        if category == MemoryCategory.CORE.value:
            return self.memory_file
        if category == MemoryCategory.DAILY.value:
            return self.daily_dir / f"{now.strftime('%Y-%m-%d')}.md"
        return self.memory_dir / f"{safe_filename(category)}.md"

    def _iter_files(self) -> list[Path]:
        if not self.memory_dir.exists():
            return []
        return sorted(p for p in self.memory_dir.rglob("*.md") if p.is_file())

    def _read_file(self, path: Path) -> list[MemoryEntry]:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.debug("Memory: failed reading {}: {}", path, exc)
            return []
        return self._parse_entries(raw)

    @staticmethod
    def _parse_entries(raw: str) -> list[MemoryEntry]:
        matches = list(ENTRY_HEADER_RE.finditer(raw))
        entries: list[MemoryEntry] = []
        for idx, match in enumerate(matches):
            end = matches[idx + 1].start() if idx + 1 < len(matches) else len(raw)
            key = match.group(1).strip()
            body = raw[match.end():end].strip("\n").splitlines()

            meta: dict[str, str] = {}
            content_start = 0
            for i, line in enumerate(body):
                stripped = line.strip()
                name, sep, value = stripped.partition(":")
                if sep and name.lower() in _META_KEYS:
                    meta[name.lower()] = value.strip()
                    content_start = i + 1
                    continue
                break

            content_lines = [_unescape_line(line) for line in body[content_start:]]
            entries.append(
                MemoryEntry(
                    id=md5_hex(key)[:12],
                    key=key,
                    content="\n".join(content_lines).strip(),
                    category=meta.get("category") or MemoryCategory.CORE.value,
                    timestamp=meta.get("timestamp", ""),
                    session_id=meta.get("session") or None,
                )
            )
        return entries

    def _remove_key_locked(self, key: str) -> bool:
        removed = False
        for path in self._iter_files():
            try:
                raw = path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.warning("Memory: failed reading {}: {}", path, exc)
                continue
            entries = self._parse_entries(raw)
            kept = [e for e in entries if e.key != key]
            if len(kept) == len(entries):
                continue
            title = raw.split("\n", 1)[0] if raw.startswith("# ") else ""
            blocks = [_render_entry(e) for e in kept]
            path.write_text(_render_file(title, blocks), encoding="utf-8")
            removed = True
        return removed

    def _append_locked(self, path: Path, entry: MemoryEntry) -> None:
        ensure_dir(path.parent)
        if not path.exists():
            path.write_text(f"{_file_title(entry.category, path)}\n", encoding="utf-8")
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"\n{_render_entry(entry)}\n")


def _file_title(category: str, path: Path) -> str:
    if category == MemoryCategory.CORE.value:
        return "# Long-term Memory"
    if category == MemoryCategory.DAILY.value:
        return f"# Daily Log {path.stem}"
    return f"# Memory: {category}"


def _render_entry(entry: MemoryEntry) -> str:
    lines = [
        f"### {entry.key}",
        f"category: {entry.category}",
        f"timestamp: {entry.timestamp}",
    ]
    if entry.session_id:
        lines.append(f"session: {entry.session_id}")
    lines.append("")
    lines.extend(_escape_line(line) for line in entry.content.splitlines())
    return "\n".join(lines).rstrip()


def _render_file(title: str, blocks: list[str]) -> str:
    parts = [title] if title else []
    parts.extend(blocks)
    return "\n\n".join(parts) + "\n"


def _escape_line(line: str) -> str:
    # Content lines must not look like entry headers.
    return f"\\{line}" if line.lstrip().startswith("###") or line.startswith("\\") else line


def _unescape_line(line: str) -> str:
    return line[1:] if line.startswith("\\") else line
