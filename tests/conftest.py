import json
from pathlib import Path

import pytest
import responses

from voto_informado.ingest import TranscriptStore, load_corpus


CANDIDATES = {
    "PLN": ("Álvaro Ramos Chaves", "Partido Liberación Nacional"),
    "PUSC": ("Juan Carlos Hidalgo Bogantes", "Partido Unidad Social Cristiana"),
    "CAC": ("Claudia Dobles Camargo", "Coalición Acción Ciudadana"),
    "FA": ("Ariel Robles Barrantes", "Frente Amplio"),
    "PLP": ("Eliécer Feinzaig Mintz", "Partido Liberal Progresista"),
    "PNR": ("Fabricio Alvarado Muñoz", "Partido Nueva República"),
    "UP": ("Natalia Díaz Quintana", "Unidos Podemos"),
    "PPSO": ("Laura Fernández Delgado", "Partido Pueblo Soberano"),
    "PA": ("José Aguilar Berrocal", "Partido Avanza"),
    "PSD": ("Luz Mary Alpízar Loaiza", "Partido Social Demócrata"),
    "CDS": ("Ana Virginia Calzada Miranda", "Ciudadanos"),
}

# (id, candidate, source, topics, text)
DOCUMENTS = [
    ("TSE-01-PLN-Alvaro_Ramos", "PLN", "TSE (Entrevista Oficial)", {"salud": 40, "Caja": 30, "educación": 5},
     "La salud y la Caja necesitan atención. " * 600),
    ("NPN-PLN-Alvaro_Ramos", "PLN", "No Pasa Nada / Apolítico", {"salud": 10, "empleo": 4},
     "Hablamos de salud y de empleo en el programa."),
    ("EP-PLN-Alvaro_Ramos", "PLN", "En Profundidad (Teletica)", {"agua": 3},
     "El agua es un tema pendiente."),
    ("TSE-02-PUSC-Juan_Carlos_Hidalgo", "PUSC", "TSE (Entrevista Oficial)", {"seguridad": 60, "corrupción": 20, "economía": 10},
     "La seguridad es prioridad. Seguridad y más seguridad contra la corrupción."),
    ("SSL-PUSC-Juan_Carlos_Hidalgo", "PUSC", "Sepamos Ser Libres", {"impuestos": 12},
     "Bajar impuestos para crecer."),
    ("TSE-03-CAC-Claudia_Dobles", "CAC", "TSE (Entrevista Oficial)", {"ambiente": 25, "mujeres": 8},
     "El ambiente y las mujeres en el centro de la política."),
    ("EP-FA-Ariel_Robles", "FA", "En Profundidad (Teletica)", {"social": 30, "seguridad": 5},
     "Lo social primero, también la seguridad."),
    ("TSE-05-PLP-Eliecer_Feinzaig", "PLP", "TSE (Entrevista Oficial)", {"impuestos": 20, "seguridad": 15},
     "Menos impuestos y más seguridad."),
    ("DEBATE-01", None, "Debate TSE", {"seguridad": 7, "educación": 9},
     "Debate sobre seguridad y educación."),
]


def build_kb():
    candidatos = {code: {"nombre": name, "partido": party, "siglas": code} for code, (name, party) in CANDIDATES.items()}
    documentos = []
    by_candidate = {code: [] for code in CANDIDATES}
    by_source = {}
    totals = {}
    for doc_id, code, source, topics, text in DOCUMENTS:
        documentos.append({
            "id": doc_id,
            "archivo": f"{doc_id}.txt",
            "candidato_siglas": code,
            "candidato_nombre": CANDIDATES[code][0] if code else None,
            "fuente": source,
            "longitud": len(text),
            "palabras": len(text.split()),
            "temas": topics,
            "resumen": text[:500] + "...",
        })
        if code:
            by_candidate[code].append(doc_id)
        by_source.setdefault(source, []).append(doc_id)
        for t, n in topics.items():
            totals[t] = totals.get(t, 0) + n
    return {
        "metadata": {"version": "1.0.0", "totalDocuments": len(documentos)},
        "candidatos": candidatos,
        "documentos": documentos,
        "indice_por_candidato": by_candidate,
        "indice_por_fuente": by_source,
        "temas_globales": totals,
    }


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    processed = tmp_path / "processed"
    processed.mkdir()
    for doc_id, _, _, _, text in DOCUMENTS:
        (processed / f"{doc_id}.txt").write_text(text, encoding="utf-8")
    (tmp_path / "knowledge-base.json").write_text(json.dumps(build_kb(), ensure_ascii=False), encoding="utf-8")
    return tmp_path


@pytest.fixture()
def corpus(data_dir: Path):
    return load_corpus(data_dir)


@pytest.fixture()
def store(data_dir: Path) -> TranscriptStore:
    return TranscriptStore.from_data_dir(data_dir)


@pytest.fixture()
def mock_responses():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture()
def config_file(tmp_path: Path, monkeypatch) -> Path:
    for var in ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / "voto-config.json"
    monkeypatch.setenv("VOTO_CONFIG", str(path))
    return path
