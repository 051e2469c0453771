from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .schemas import Candidate, Corpus


class UnknownCandidateError(LookupError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Candidate {code!r} not found.")


def require_candidate(corpus: Corpus, code: str) -> Candidate:
    cand = corpus.candidates.get(code.upper())
    if cand is None:
        raise UnknownCandidateError(code.upper())
    return cand


def aggregate(document_ids: Iterable[str], corpus: Corpus) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for doc_id in document_ids:
        doc = corpus.document(doc_id)
        if doc is None:
            continue
        for topic, count in doc.topics.items():
            totals[topic] = totals.get(topic, 0) + count
    return totals


def candidate_topics(code: str, corpus: Corpus) -> Dict[str, int]:
    return aggregate(corpus.document_ids_for(code), corpus)


def top_topics(counts: Dict[str, int], n: int) -> List[Tuple[str, int]]:
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]


def global_topics(corpus: Corpus, n: int = 15) -> List[Tuple[str, int]]:
    # Already sorted when the corpus was built
    return list(corpus.global_topics.items())[:n]


@dataclass(frozen=True)
class TopicDiff:
    topic: str
    left: int
    right: int

    @property
    def diff(self) -> int:
        return self.left - self.right


def compare_topics(left: str, right: str, corpus: Corpus) -> List[TopicDiff]:
    require_candidate(corpus, left)
    require_candidate(corpus, right)
    t1 = candidate_topics(left.upper(), corpus)
    t2 = candidate_topics(right.upper(), corpus)
    return [TopicDiff(topic=t, left=t1.get(t, 0), right=t2.get(t, 0)) for t in sorted(set(t1) | set(t2))]
