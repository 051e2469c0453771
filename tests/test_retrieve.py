from voto_informado.retrieve import (
    FALLBACK_CHAR_LIMIT,
    MATCH_CHAR_LIMIT,
    build_context_message,
    retrieve,
)
from voto_informado.schemas import ContextChunk


NEUTRAL_QUERY = "¿quién habla más de seguridad?"


def test_code_match_any_case(corpus, store):
    chunks = retrieve("¿qué dice el pusc?", corpus, store)
    assert [c.candidate_code for c in chunks] == ["PUSC", "PUSC"]
    assert [c.source for c in chunks] == ["TSE (Entrevista Oficial)", "Sepamos Ser Libres"]


def test_name_token_match_takes_first_two_documents(corpus, store):
    chunks = retrieve("Opiniones de Álvaro sobre salud", corpus, store)
    assert [c.candidate_code for c in chunks] == ["PLN", "PLN"]
    assert chunks[0].candidate_name == "Álvaro Ramos Chaves"
    assert chunks[1].text.startswith("Hablamos de salud")


def test_matched_text_truncated(corpus, store):
    chunks = retrieve("Claudia y Álvaro", corpus, store)
    assert [c.candidate_code for c in chunks] == ["PLN", "PLN", "CAC"]
    assert len(chunks[0].text) == MATCH_CHAR_LIMIT
    assert all(len(c.text) <= MATCH_CHAR_LIMIT for c in chunks)


def test_matched_candidate_without_documents_adds_nothing(corpus, store):
    # "carlos" only belongs to PUSC here, "ana" is a CDS name token with no documents
    chunks = retrieve("carlos y ana", corpus, store)
    assert {c.candidate_code for c in chunks} == {"PUSC"}


def test_fallback_uses_official_interviews(corpus, store):
    chunks = retrieve(NEUTRAL_QUERY, corpus, store)
    assert [c.candidate_code for c in chunks] == ["PLN", "PUSC", "CAC"]
    assert all(c.source == "TSE (Entrevista Oficial)" for c in chunks)
    assert len(chunks[0].text) == FALLBACK_CHAR_LIMIT


def test_fallback_skips_candidates_without_official_interview(corpus, store):
    chunks = retrieve(NEUTRAL_QUERY, corpus, store, max_fallback_docs=5)
    assert [c.candidate_code for c in chunks] == ["PLN", "PUSC", "CAC", "PLP"]


def test_missing_transcript_file_is_skipped(corpus, store):
    store.path_for("TSE-02-PUSC-Juan_Carlos_Hidalgo.txt").unlink()
    chunks = retrieve(NEUTRAL_QUERY, corpus, store)
    assert [c.candidate_code for c in chunks] == ["PLN", "CAC"]


def test_retrieval_is_deterministic(corpus, store):
    assert retrieve("robles y feinzaig", corpus, store) == retrieve("robles y feinzaig", corpus, store)


def test_context_message_layout():
    chunks = [ContextChunk("Ariel Robles Barrantes", "FA", "Debate TSE", "texto")]
    msg = build_context_message("¿Y la educación?", chunks)
    assert msg == (
        "CONTEXTO DE TRANSCRIPCIONES:\n\n"
        "=== Ariel Robles Barrantes (FA) - Debate TSE ===\ntexto\n\n"
        "\n---\nPREGUNTA DEL USUARIO: ¿Y la educación?"
    )
    assert build_context_message("hola", []) == "hola"
