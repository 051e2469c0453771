import json

import pytest
from docx import Document

from voto_informado.cli import configure_provider, main
from voto_informado.config import LLMConfig, Provider, save_config
from voto_informado.llm import ADAPTERS, ProviderRequestError
from voto_informado.quiz import answers_from_dict, score
from voto_informado.render import format_quiz_results, format_spectrum, render_quiz_report

from conftest import build_kb
from test_quiz import EXAMPLE


def _run(capsys, data_dir, *argv):
    main(["--data-dir", str(data_dir), *argv])
    return capsys.readouterr().out


@pytest.fixture()
def answers_file(tmp_path):
    path = tmp_path / "answers.json"
    path.write_text(json.dumps(EXAMPLE), encoding="utf-8")
    return path


def test_candidates_listing(capsys, data_dir):
    out = _run(capsys, data_dir, "candidatos")
    assert "Total: 11 candidatos" in out
    assert "PLN" in out


def test_profile_lists_sources_and_topics(capsys, data_dir):
    out = _run(capsys, data_dir, "perfil", "pusc")
    assert "PERFIL: Juan Carlos Hidalgo Bogantes" in out
    assert "seguridad: 60 menciones" in out


def test_unknown_candidate_exits_with_error(capsys, data_dir):
    with pytest.raises(SystemExit) as exc:
        main(["--data-dir", str(data_dir), "perfil", "XYZ"])
    assert exc.value.code == 1
    assert "'XYZ' not found" in capsys.readouterr().err


def test_missing_corpus_exits_with_error(capsys, tmp_path):
    with pytest.raises(SystemExit) as exc:
        main(["--data-dir", str(tmp_path / "nothing"), "temas"])
    assert exc.value.code == 1
    assert "knowledge-base.json" in capsys.readouterr().err


def test_compare_shows_signed_differences(capsys, data_dir):
    out = _run(capsys, data_dir, "vs", "PUSC", "FA")
    assert "COMPARACIÓN: Juan Carlos Hidalgo Bogantes vs Ariel Robles Barrantes" in out
    assert "+55" in out


def test_search_and_read(capsys, data_dir):
    out = _run(capsys, data_dir, "buscar", "impuestos", "-c", "PLP")
    assert "TSE-05-PLP-Eliecer_Feinzaig (1 menciones)" in out
    out = _run(capsys, data_dir, "leer", "EP-FA-Ariel_Robles")
    assert "Lo social primero" in out


def test_quiz_from_answers_file_as_json(capsys, data_dir, answers_file):
    out = _run(capsys, data_dir, "quiz", "--answers", str(answers_file), "--json")
    ranking = json.loads(out)
    assert ranking[0]["code"] == "PUSC"
    assert ranking[0]["total"] == 14.1
    assert ranking[0]["affinity"] == 100


def test_quiz_rejects_invalid_answers(capsys, data_dir, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(dict(EXAMPLE, genero="otro")), encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["--data-dir", str(data_dir), "quiz", "--answers", str(path)])
    assert "gender" in capsys.readouterr().err


def test_quiz_export_writes_docx(capsys, data_dir, answers_file, tmp_path):
    out_path = tmp_path / "reports" / "quiz.docx"
    out = _run(capsys, data_dir, "quiz", "--answers", str(answers_file), "--export", str(out_path))
    assert "#1 - 100% de afinidad" in out
    assert out_path.exists()
    doc = Document(str(out_path))
    text = "\n".join(p.text for p in doc.paragraphs)
    assert "#1 Juan Carlos Hidalgo Bogantes (PUSC) - 100% de afinidad" in text
    assert len(doc.tables[0].rows) == 11


def test_spectrum_comparison(capsys, data_dir):
    out = _run(capsys, data_dir, "espectro", "FA", "PLP")
    assert "Distancia ideológica: 8.9 (escala 0-14)" in out
    assert "→ Posiciones muy distintas" in out


def test_spectrum_works_without_corpus(capsys, tmp_path):
    out = _run(capsys, tmp_path, "espectro", "-d")
    assert "IZQUIERDA" in out
    assert "Desconocido" in out


def test_ask_requires_provider(capsys, data_dir, config_file):
    with pytest.raises(SystemExit):
        main(["--data-dir", str(data_dir), "ask", "hola"])
    assert "voto config" in capsys.readouterr().err


def test_configure_provider_hosted(config_file, mock_responses):
    replies = iter(["2", ""])
    config = configure_provider(LLMConfig(), read=lambda _: next(replies), secret=lambda _: "sk-new")
    assert config.provider is Provider.OPENAI
    assert config.openai.api_key == "sk-new"
    assert config.openai.model == "gpt-4o-mini"


def test_quiz_results_text(corpus):
    answers = answers_from_dict(EXAMPLE)
    text = format_quiz_results(score(answers, corpus), corpus, answers)
    assert "✓ Coincidencias: Enfoque económico, Reforma de CCSS" in text
    assert "1. Seguridad Ciudadana: Combate al crimen, lucha anticorrupción" in text
    assert "voto perfil PUSC" in text


def test_spectrum_legend_uses_short_names(corpus):
    text = format_spectrum(corpus)
    assert "LEYENDA" in text
    assert "Juan Carlos" in text
    assert "Hidalgo Bogantes" not in text


def test_report_returns_path(tmp_path, corpus):
    answers = answers_from_dict(EXAMPLE)
    out = str(tmp_path / "r.docx")
    assert render_quiz_report(score(answers, corpus)[:2], corpus, answers, out, top=1) == out
    assert len(Document(out).tables[0].rows) == 3


def test_configure_provider_leaves_env_key_out_of_config(config_file, mock_responses, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "gk-env")
    replies = iter(["4", ""])
    config = configure_provider(LLMConfig(), read=lambda _: next(replies), secret=lambda _: pytest.fail("prompted for a key"))
    assert config.provider is Provider.GEMINI
    assert config.gemini.api_key is None


def test_chat_loop_skips_blank_input_and_survives_errors(capsys, data_dir, config_file, monkeypatch):
    config = LLMConfig(provider=Provider.OPENAI)
    config.openai.api_key = "sk"
    save_config(config)

    calls = []

    def fake_openai(messages, config, timeout):
        calls.append(messages[-1]["content"])
        if len(calls) == 2:
            raise ProviderRequestError(Provider.OPENAI, "boom")
        return f"respuesta {len(calls)}"

    prompts = []
    lines = iter(["", "  ", "hola", "otra", "tercera", "salir", "never read"])

    def fake_input(prompt):
        prompts.append(prompt)
        return next(lines)

    monkeypatch.setitem(ADAPTERS, Provider.OPENAI, fake_openai)
    monkeypatch.setattr("builtins.input", fake_input)
    out = _run(capsys, data_dir, "chat")

    assert prompts == ["Vos: "] * 6
    assert len(calls) == 3
    assert calls[0].endswith("hola")
    assert "Asistente:\n\nrespuesta 1" in out
    assert "Error: OpenAI error: boom" in out
    assert "Asistente:\n\nrespuesta 3" in out
    assert out.rstrip().endswith("¡Gracias por informarte! Tu voto hace la diferencia.")


def test_chat_ends_on_eof(capsys, data_dir, config_file, monkeypatch):
    config = LLMConfig(provider=Provider.OPENAI)
    config.openai.api_key = "sk"
    save_config(config)

    def eof(prompt):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)
    assert "¡Gracias por informarte!" in _run(capsys, data_dir, "chat")


def test_spectrum_reports_corrupt_corpus(capsys, data_dir):
    data = build_kb()
    data["documentos"][0]["candidato_siglas"] = "XYZ"
    (data_dir / "knowledge-base.json").write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["--data-dir", str(data_dir), "espectro"])
    assert exc.value.code == 1
    assert "unknown candidate 'XYZ'" in capsys.readouterr().err


def test_log_level_is_validated(capsys, data_dir):
    with pytest.raises(SystemExit) as exc:
        main(["--data-dir", str(data_dir), "--log-level", "verbose", "temas"])
    assert exc.value.code == 2
    assert "invalid choice" in capsys.readouterr().err
    assert "seguridad" in _run(capsys, data_dir, "--log-level", "debug", "temas")
