from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple


# Topic keywords counted per transcript when the knowledge base is built.
TOPICS: Tuple[str, ...] = (
    "educación", "salud", "empleo", "trabajo", "seguridad", "corrupción",
    "economía", "impuestos", "fiscal", "deuda", "inflación",
    "ambiente", "medio ambiente", "cambio climático", "agua",
    "vivienda", "infraestructura", "carreteras",
    "pensiones", "CCSS", "Caja",
    "tecnología", "digitalización", "internet",
    "mujeres", "género", "familia",
    "jóvenes", "juventud", "niñez",
    "pobreza", "desigualdad", "social",
    "agricultura", "agro", "campo",
    "turismo", "pymes", "empresas",
)

# Filename prefix -> source label
SOURCE_TYPES: Tuple[Tuple[str, str], ...] = (
    ("TSE-", "TSE (Entrevista Oficial)"),
    ("DEBATE-", "Debate TSE"),
    ("NPN-", "No Pasa Nada / Apolítico"),
    ("SSL-", "Sepamos Ser Libres"),
    ("EP-", "En Profundidad (Teletica)"),
    ("HC-", "Hablando Claro (Columbia)"),
)
OTHER_SOURCE = "Otro"


class CorpusIntegrityError(ValueError):
    pass


def source_label(filename: str) -> str:
    for prefix, label in SOURCE_TYPES:
        if filename.startswith(prefix):
            return label
    return OTHER_SOURCE


@dataclass(frozen=True)
class Candidate:
    code: str
    name: str
    party: str


@dataclass
class Document:
    id: str
    filename: str
    candidate_code: Optional[str] = None
    candidate_name: Optional[str] = None
    source: str = OTHER_SOURCE
    length: int = 0
    words: int = 0
    topics: Dict[str, int] = field(default_factory=dict)
    summary: str = ""


@dataclass
class Corpus:
    candidates: Dict[str, Candidate] = field(default_factory=dict)
    documents: List[Document] = field(default_factory=list)
    by_candidate: Dict[str, List[str]] = field(default_factory=dict)
    by_source: Dict[str, List[str]] = field(default_factory=dict)
    global_topics: Dict[str, int] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    _by_id: Dict[str, Document] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._by_id = {d.id: d for d in self.documents}
        self.global_topics = dict(sorted(self.global_topics.items(), key=lambda kv: kv[1], reverse=True))

    def document(self, doc_id: str) -> Optional[Document]:
        return self._by_id.get(doc_id)

    def document_ids_for(self, code: str) -> List[str]:
        return list(self.by_candidate.get(code, []))

    def documents_for(self, code: str) -> List[Document]:
        docs = []
        for doc_id in self.by_candidate.get(code, []):
            doc = self._by_id.get(doc_id)
            if doc is not None:
                docs.append(doc)
        return docs

    def validate(self) -> "Corpus":
        for index_name, index in (("indice_por_candidato", self.by_candidate), ("indice_por_fuente", self.by_source)):
            for key, ids in index.items():
                for doc_id in ids:
                    if doc_id not in self._by_id:
                        raise CorpusIntegrityError(f"{index_name}[{key!r}] refers to unknown document {doc_id!r}")
        for code in self.by_candidate:
            if code not in self.candidates:
                raise CorpusIntegrityError(f"indice_por_candidato has unknown candidate {code!r}")
        for doc in self.documents:
            if doc.candidate_code is not None and doc.candidate_code not in self.candidates:
                raise CorpusIntegrityError(f"document {doc.id!r} refers to unknown candidate {doc.candidate_code!r}")
        return self


@dataclass(frozen=True)
class ContextChunk:
    candidate_name: str
    candidate_code: str
    source: str
    text: str


@dataclass(frozen=True)
class Category:
    key: str
    name: str
    topics: Tuple[str, ...]
    description: str


@dataclass(frozen=True)
class QuizProfile:
    code: str
    name: str
    strengths: Tuple[str, ...]
    approach: str  # "mercado", "estado", "balance" or "tradicional"
    summary: str
    keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SpectrumEntry:
    code: str
    economic: int  # -5 state-interventionist .. +5 free-market
    social: int  # -5 progressive .. +5 conservative
    label: str
    description: str
    color: str


@dataclass
class Score:
    total: float = 0.0
    reasons: List[str] = field(default_factory=list)
    coincidences: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class QuizAnswers:
    priority1: str
    priority2: str
    economic_approach: str
    ccss: str
    security: str
    environment: str
    gender: str
    experience: str
    groups: Tuple[str, ...] = ()


@dataclass
class RankedCandidate:
    code: str
    score: Score
    affinity: int = 0


def _get(d: Dict[str, Any], key: str, default):
    v = d.get(key, default)
    return v if v is not None else default


def corpus_from_dict(data: Dict[str, Any]) -> Corpus:
    candidates: Dict[str, Candidate] = {}
    for code, c in _get(data, "candidatos", {}).items():
        candidates[code] = Candidate(code=c.get("siglas", code), name=c.get("nombre", ""), party=c.get("partido", ""))

    documents: List[Document] = []
    for d in _get(data, "documentos", []):
        documents.append(
            Document(
                id=d["id"],
                filename=d.get("archivo") or f"{d['id']}.txt",
                candidate_code=d.get("candidato_siglas"),
                candidate_name=d.get("candidato_nombre"),
                source=d.get("fuente") or source_label(d.get("archivo", d["id"])),
                length=int(_get(d, "longitud", 0)),
                words=int(_get(d, "palabras", 0)),
                topics={t: int(n) for t, n in _get(d, "temas", {}).items()},
                summary=_get(d, "resumen", ""),
            )
        )

    by_candidate = {k: list(v) for k, v in _get(data, "indice_por_candidato", {}).items()}
    by_source = {k: list(v) for k, v in _get(data, "indice_por_fuente", {}).items()}
    global_topics = {t: int(n) for t, n in _get(data, "temas_globales", {}).items()}

    return Corpus(
        candidates=candidates,
        documents=documents,
        by_candidate=by_candidate,
        by_source=by_source,
        global_topics=global_topics,
        metadata=_get(data, "metadata", {}),
    )
