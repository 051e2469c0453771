from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

import structlog

from .schemas import Corpus, corpus_from_dict


logger = structlog.get_logger(__name__)

KB_FILENAME = "knowledge-base.json"
PROCESSED_DIRNAME = "processed"


class CorpusMissingError(FileNotFoundError):
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(
            f"Knowledge base not found at {self.path}. Build it first (it is produced from the processed transcripts)."
        )


class DocumentNotFoundError(FileNotFoundError):
    def __init__(self, name: str, directory: Union[str, Path]):
        self.name = name
        self.directory = Path(directory)
        super().__init__(f"Document {name!r} not found in {self.directory}.")


def default_data_dir() -> Path:
    return Path(os.environ.get("VOTO_DATA_DIR") or "data")


def load_corpus(path: Union[str, Path], validate: bool = True) -> Corpus:
    p = Path(path)
    if p.is_dir():
        p = p / KB_FILENAME
    if not p.exists():
        raise CorpusMissingError(p)
    data = json.loads(p.read_text(encoding="utf-8"))
    corpus = corpus_from_dict(data)
    if validate:
        corpus.validate()
    logger.info("corpus_loaded", path=str(p), documents=len(corpus.documents), candidates=len(corpus.candidates))
    return corpus


class TranscriptStore:
    """Plain-text transcripts keyed by the filename recorded on each document."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    @classmethod
    def from_data_dir(cls, data_dir: Union[str, Path]) -> "TranscriptStore":
        return cls(Path(data_dir) / PROCESSED_DIRNAME)

    def path_for(self, filename: str) -> Path:
        return self.directory / filename

    def load(self, filename: str) -> Optional[str]:
        p = self.path_for(filename)
        if not p.is_file():
            logger.debug("transcript_missing", filename=filename)
            return None
        return p.read_text(encoding="utf-8", errors="ignore")

    def read(self, name: str) -> str:
        filename = name if name.endswith(".txt") else f"{name}.txt"
        text = self.load(filename)
        if text is None:
            raise DocumentNotFoundError(name, self.directory)
        return text

    def filenames(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.name for p in self.directory.glob("*.txt"))


@dataclass
class SearchHit:
    document: str
    count: int
    context: str


def search_transcripts(store: TranscriptStore, term: str, candidate: Optional[str] = None, window: int = 100) -> List[SearchHit]:
    # Literal, case-insensitive match; the term is not a regex
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    files = store.filenames()
    if candidate:
        marker = f"-{candidate.upper()}-"
        files = [f for f in files if marker in f]

    hits: List[SearchHit] = []
    for fname in files:
        content = store.load(fname) or ""
        matches = pattern.findall(content)
        if not matches:
            continue
        first = pattern.search(content)
        start = max(0, first.start() - window)
        end = min(len(content), first.end() + window)
        hits.append(SearchHit(document=fname[: -len(".txt")], count=len(matches), context=content[start:end].strip()))
    hits.sort(key=lambda h: h.count, reverse=True)
    return hits


def read_words(store: TranscriptStore, name: str, lines: int = 50) -> tuple[str, int]:
    content = store.read(name)
    words = content.split()
    return " ".join(words[: lines * 10]), len(words)
