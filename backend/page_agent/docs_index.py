"""
Reference Documentation Index

Responsibilities:
- Scan a markdown documentation tree (front matter, headings, code examples)
- Build an inverted keyword index over paths, titles and headings
- Answer search(query, limit) with ranked DocHits
- Load document content for the Context Preparer (exists / read)

Paths are relative to the docs root and always use forward slashes.
"""
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Set


logger = logging.getLogger(__name__)


# =============================================================================
# Content helpers
# =============================================================================
_CODE_EXAMPLE = re.compile(r"```(?:schema|json)[ \t]*\r?\n(.*?)\r?\n[ \t]*```", re.DOTALL)
_FRONT_MATTER = re.compile(r"\A---\r?\n(.*?)\r?\n---\r?\n", re.DOTALL)
_FRONT_MATTER_FIELD = re.compile(r"^(title|description):\s*(.+)$", re.MULTILINE)
_HEADING = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$", re.MULTILINE)
_WORD = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")
_CJK = re.compile(r"[一-龥]+")

SUMMARY_MAX_LINES = 10
SUMMARY_MAX_CHARS = 200


def extract_summary(content: str) -> str:
    """First 10 non-blank lines outside fence markers, trimmed to 200 characters"""
    lines: List[str] = []
    for line in content.splitlines():
        if line.startswith("```") or not line.strip():
            continue
        lines.append(line)
        if len(lines) >= SUMMARY_MAX_LINES:
            break
    return "\n".join(lines).strip()[:SUMMARY_MAX_CHARS]


def extract_code_examples(content: str) -> List[str]:
    """Bodies of every non-empty ```schema / ```json block, in document order"""
    return [m.group(1).strip() for m in _CODE_EXAMPLE.finditer(content) if m.group(1).strip()]


def tokenize(text: str) -> List[str]:
    """
    Lowercase keywords of a text

    Hyphenated words count whole and per part (input-text → input-text,
    input, text). CJK runs are split into single characters.
    """
    keywords: Dict[str, None] = {}
    for word in _WORD.findall(text.lower()):
        keywords[word] = None
        if "-" in word:
            for part in word.split("-"):
                keywords[part] = None
    for run in _CJK.findall(text):
        for char in run:
            keywords[char] = None
    return list(keywords)


# Aliases a document keyword also answers to
KEYWORD_ALIASES: Dict[str, List[str]] = {
    "form": ["表单", "field"],
    "input": ["输入", "text", "field"],
    "table": ["表格", "list", "crud", "grid"],
    "select": ["下拉", "dropdown", "picker"],
    "date": ["日期", "time", "datetime"],
    "upload": ["上传", "file"],
    "checkbox": ["复选", "multiple"],
    "radio": ["单选", "single"],
    "button": ["按钮", "action"],
    "dialog": ["弹窗", "modal", "popup"],
    "drawer": ["抽屉", "panel"],
    "page": ["页面", "view"],
    "api": ["接口", "request", "data"],
    "schema": ["配置", "config", "structure"],
    "action": ["操作", "event", "operation"],
    "validation": ["校验", "validate", "rule"],
    "style": ["样式", "theme", "css"],
    "responsive": ["响应式", "mobile"],
}

TITLE_WEIGHT = 0.5
HEADING_WEIGHT = 0.3
CONTENT_WEIGHT = 0.2
PATH_WEIGHT = 0.3
HITS_PER_KEYWORD = 20


# =============================================================================
# Types
# =============================================================================
@dataclass
class DocHit:
    """One ranked search result"""
    path: str
    score: float
    title: Optional[str] = None
    summary: Optional[str] = None
    anchors: List[str] = field(default_factory=list)
    code_examples: List[str] = field(default_factory=list)


@dataclass
class Heading:
    level: int
    text: str

    @property
    def anchor(self) -> str:
        return re.sub(r"\s+", "-", self.text.lower())


@dataclass
class IndexEntry:
    path: str
    title: str
    content: str
    description: Optional[str] = None
    headings: List[Heading] = field(default_factory=list)
    code_examples: List[str] = field(default_factory=list)


@dataclass
class _Posting:
    path: str
    score: float


class DocumentLoader(Protocol):
    """Loads reference documents by path"""

    def exists(self, path: str) -> bool:
        ...

    def read(self, path: str) -> str:
        ...


class FileDocumentLoader:
    """Loads documents from disk; relative paths resolve against `root`"""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root else None

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute() and self.root is not None:
            candidate = self.root / candidate
        return candidate

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def read(self, path: str) -> str:
        return self._resolve(path).read_text(encoding="utf-8")


# =============================================================================
# Indexer
# =============================================================================
class DocsIndexer(FileDocumentLoader):
    """
    Inverted keyword index over a markdown documentation tree

    Example:
        indexer = DocsIndexer(Path("docs"))
        indexer.build()
        hits = indexer.search("select dropdown", limit=3)
    """

    def __init__(self, docs_root: Path):
        super().__init__(docs_root)
        self.docs_root = Path(docs_root)
        self.entries: Dict[str, IndexEntry] = {}
        self._index: Dict[str, List[_Posting]] = {}
        self.is_ready = False

    def build(self) -> "DocsIndexer":
        """Scan the docs root and (re)build the index"""
        logger.info(f"[DocsIndexer] Scanning documentation: {self.docs_root}")
        self.entries.clear()
        self._index = {}

        if self.docs_root.is_dir():
            self._scan(self.docs_root)
        else:
            logger.warning(f"[DocsIndexer] Docs root not found: {self.docs_root}")

        self._build_inverted_index()
        self.is_ready = True
        logger.info(f"[DocsIndexer] Indexed {len(self.entries)} documents")
        return self

    def clear(self):
        self.entries.clear()
        self._index = {}
        self.is_ready = False

    def paths(self) -> List[str]:
        """Indexed document paths, sorted"""
        return sorted(self.entries)

    def _scan(self, directory: Path):
        for child in sorted(directory.iterdir()):
            if child.name.startswith("."):
                continue
            if child.is_dir():
                self._scan(child)
            elif child.suffix == ".md":
                relative = child.relative_to(self.docs_root).as_posix()
                try:
                    self.entries[relative] = self._parse(relative, child.read_text(encoding="utf-8"))
                except (OSError, UnicodeDecodeError) as e:
                    logger.warning(f"[DocsIndexer] Failed to parse {relative}: {e}")

    @staticmethod
    def _parse(path: str, raw: str) -> IndexEntry:
        content = raw
        meta: Dict[str, str] = {}
        front_matter = _FRONT_MATTER.match(raw)
        if front_matter:
            content = raw[front_matter.end():]
            for key, value in _FRONT_MATTER_FIELD.findall(front_matter.group(1)):
                meta[key] = value.strip().strip("\"'")

        return IndexEntry(
            path=path,
            title=meta.get("title") or Path(path).stem,
            description=meta.get("description"),
            content=content,
            headings=[Heading(len(m.group(1)), m.group(2).strip()) for m in _HEADING.finditer(content)],
            code_examples=extract_code_examples(content),
        )

    def _build_inverted_index(self):
        for path, entry in self.entries.items():
            keywords: Set[str] = set(tokenize(entry.title))
            if entry.description:
                keywords.update(tokenize(entry.description))
            for heading in entry.headings:
                keywords.update(tokenize(heading.text))
            keywords.update(tokenize(path))

            scores = {kw: self._keyword_score(entry, kw) for kw in keywords}
            for kw in list(keywords):
                for alias in KEYWORD_ALIASES.get(kw, []):
                    scores[alias] = max(scores.get(alias, 0.0), self._keyword_score(entry, alias), scores[kw])

            for kw, score in scores.items():
                self._index.setdefault(kw, []).append(_Posting(path, score))

        for postings in self._index.values():
            postings.sort(key=lambda p: p.score, reverse=True)

    @staticmethod
    def _keyword_score(entry: IndexEntry, keyword: str) -> float:
        score = 0.0
        if keyword in entry.title.lower():
            score += TITLE_WEIGHT
        if any(keyword in h.text.lower() for h in entry.headings):
            score += HEADING_WEIGHT
        if keyword in entry.content.lower():
            score += CONTENT_WEIGHT
        if keyword in entry.path.lower():
            score += PATH_WEIGHT
        return min(score, 1.0)

    def search(self, query: str, limit: int = 10) -> List[DocHit]:
        """
        Rank indexed documents against a free-text query

        Returns:
            At most `limit` hits, best first. Empty before build().
        """
        if not self.is_ready:
            logger.warning("[DocsIndexer] Index not built, call build() first")
            return []

        keywords = tokenize(query)
        if not keywords:
            return []

        totals: Dict[str, float] = {}
        anchors: Dict[str, List[str]] = {}
        for kw in keywords:
            for posting in self._index.get(kw, [])[:HITS_PER_KEYWORD]:
                totals[posting.path] = totals.get(posting.path, 0.0) + posting.score
                found = anchors.setdefault(posting.path, [])
                for heading in self.entries[posting.path].headings:
                    if kw in heading.text.lower() and heading.anchor not in found:
                        found.append(heading.anchor)

        hits = []
        for path, total in totals.items():
            entry = self.entries[path]
            hits.append(DocHit(
                path=path,
                score=min(total / len(keywords), 1.0),
                title=entry.title,
                summary=extract_summary(entry.content),
                anchors=anchors.get(path, []),
                code_examples=entry.code_examples[:1],
            ))

        hits.sort(key=lambda h: (-h.score, h.path))
        return hits[:limit]


__all__ = [
    "DocHit",
    "DocumentLoader",
    "FileDocumentLoader",
    "DocsIndexer",
    "extract_summary",
    "extract_code_examples",
    "tokenize",
    "KEYWORD_ALIASES",
]
