from __future__ import annotations

from typing import List, Optional, Protocol

import structlog

from .schemas import Candidate, ContextChunk, Corpus


logger = structlog.get_logger(__name__)

DOCS_PER_CANDIDATE = 2
MATCH_CHAR_LIMIT = 15000
FALLBACK_CHAR_LIMIT = 8000
FALLBACK_CANDIDATES = ("PLN", "PUSC", "CAC", "FA", "PLP")
OFFICIAL_PREFIX = "TSE-"


class TextLoader(Protocol):
    def load(self, filename: str) -> Optional[str]: ...


def mentions_candidate(query_lower: str, candidate: Candidate) -> bool:
    # Any single name token counts, so shared given names also match.
    if candidate.code.lower() in query_lower:
        return True
    return any(part in query_lower for part in candidate.name.lower().split())


def _chunk(corpus: Corpus, loader: TextLoader, code: str, doc_id: str, limit: int) -> Optional[ContextChunk]:
    doc = corpus.document(doc_id)
    if doc is None:
        return None
    text = loader.load(doc.filename)
    if text is None:
        return None
    cand = corpus.candidates[code]
    return ContextChunk(candidate_name=cand.name, candidate_code=code, source=doc.source, text=text[:limit])


def retrieve(query: str, corpus: Corpus, loader: TextLoader, max_fallback_docs: int = 3) -> List[ContextChunk]:
    q = query.lower()
    chunks: List[ContextChunk] = []
    matched: List[str] = []

    for code, cand in corpus.candidates.items():
        if not mentions_candidate(q, cand):
            continue
        matched.append(code)
        for doc_id in corpus.document_ids_for(code)[:DOCS_PER_CANDIDATE]:
            chunk = _chunk(corpus, loader, code, doc_id, MATCH_CHAR_LIMIT)
            if chunk is not None:
                chunks.append(chunk)

    if chunks:
        logger.debug("context_retrieved", matched=matched, chunks=len(chunks))
        return chunks

    for code in FALLBACK_CANDIDATES[:max_fallback_docs]:
        if code not in corpus.candidates:
            continue
        official = next((d for d in corpus.document_ids_for(code) if d.startswith(OFFICIAL_PREFIX)), None)
        if official is None:
            continue
        chunk = _chunk(corpus, loader, code, official, FALLBACK_CHAR_LIMIT)
        if chunk is not None:
            chunks.append(chunk)
    logger.debug("context_fallback", matched=matched, chunks=len(chunks))
    return chunks


def format_chunk(chunk: ContextChunk) -> str:
    return f"=== {chunk.candidate_name} ({chunk.candidate_code}) - {chunk.source} ===\n{chunk.text}\n\n"


def build_context_message(question: str, chunks: List[ContextChunk], label: str = "PREGUNTA DEL USUARIO") -> str:
    if not chunks:
        return question
    body = "".join(format_chunk(c) for c in chunks)
    return f"CONTEXTO DE TRANSCRIPCIONES:\n\n{body}\n---\n{label}: {question}"
