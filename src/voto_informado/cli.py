from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .chat import EXIT_WORDS, ChatSession, ask
from .config import ConfigError, LLMConfig, Provider, load_config, resolve_api_key, save_config
from .ingest import (
    CorpusMissingError,
    DocumentNotFoundError,
    TranscriptStore,
    default_data_dir,
    load_corpus,
    read_words,
    search_transcripts,
)
from .llm import PROVIDER_INFO, LLMError, check_provider, list_local_models
from .log import configure_logging
from .quiz import answers_from_dict, score
from .render import (
    format_candidates,
    format_comparison,
    format_profile,
    format_quiz_results,
    format_search,
    format_spectrum,
    format_spectrum_comparison,
    format_topics,
    ranking_summary,
    render_quiz_report,
)
from .review import ask_default, ask_secret, ask_text, choose_one, run_questionnaire
from .schemas import Corpus, CorpusIntegrityError
from .spectrum import UnknownPartyError, compare
from .topics import UnknownCandidateError, compare_topics, global_topics


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _fail(message: str, code: int = 1):
    print(message, file=sys.stderr)
    raise SystemExit(code)


def _corpus(args) -> Corpus:
    try:
        return load_corpus(Path(args.data_dir))
    except (CorpusMissingError, CorpusIntegrityError) as e:
        _fail(f"Error: {e}")


def _optional_corpus(args) -> Optional[Corpus]:
    try:
        return load_corpus(Path(args.data_dir))
    except CorpusMissingError:
        return None
    except CorpusIntegrityError as e:
        _fail(f"Error: {e}")


def _store(args) -> TranscriptStore:
    return TranscriptStore.from_data_dir(args.data_dir)


def _config(args) -> LLMConfig:
    try:
        return load_config(args.config)
    except ConfigError as e:
        _fail(f"Error: {e}")


def cmd_candidates(args):
    print(format_candidates(_corpus(args), detail=args.detail))


def cmd_topics(args):
    print(format_topics(global_topics(_corpus(args), args.top)))


def cmd_profile(args):
    corpus = _corpus(args)
    try:
        print(format_profile(corpus, args.candidate))
    except UnknownCandidateError as e:
        _fail(f"{e} Usá 'voto candidatos' para ver la lista completa.")


def cmd_compare(args):
    corpus = _corpus(args)
    try:
        diffs = compare_topics(args.left, args.right, corpus)
    except UnknownCandidateError as e:
        _fail(f"{e} Uno o ambos candidatos no encontrados.")
    print(format_comparison(corpus, args.left, args.right, diffs))


def cmd_search(args):
    store = _store(args)
    if not store.directory.is_dir():
        _fail(f"Error: transcripts directory {store.directory} not found.")
    hits = search_transcripts(store, args.term, candidate=args.candidate)
    print(format_search(args.term, hits))


def cmd_read(args):
    try:
        preview, total = read_words(_store(args), args.document, lines=args.lines)
    except DocumentNotFoundError as e:
        _fail(f"{e} Usá 'voto candidatos -d' para ver documentos disponibles.")
    print(f"\n{args.document}\n")
    print(preview)
    print(f"\n... (mostrando ~{args.lines * 10} palabras de {total} total)")


def cmd_quiz(args):
    corpus = _corpus(args)
    if args.answers:
        try:
            raw = json.loads(Path(args.answers).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            _fail(f"Error: could not read answers file {args.answers}: {e}")
    else:
        print("DESCUBRÍ TU CANDIDATO IDEAL - CR 2026")
        print("Respondé las siguientes preguntas para encontrar los candidatos más alineados con vos.")
        raw = run_questionnaire()
    try:
        answers = answers_from_dict(raw)
    except ValueError as e:
        _fail(f"Error: {e}")

    ranking = score(answers, corpus)
    if not ranking:
        _fail("No hay candidatos con perfil para comparar.")
    if args.json:
        print(json.dumps(ranking_summary(ranking), ensure_ascii=False, indent=2))
    else:
        print(format_quiz_results(ranking, corpus, answers, top=args.top))
    if args.export:
        path = render_quiz_report(ranking, corpus, answers, args.export, top=args.top)
        print(f"\nReporte guardado en: {path}")


def cmd_spectrum(args):
    corpus = _optional_corpus(args)
    if args.left and args.right:
        try:
            cmp = compare(args.left, args.right)
        except UnknownPartyError as e:
            _fail(f"{e} Uno o ambos partidos no encontrados en el espectro.")
        print(format_spectrum_comparison(cmp, corpus))
    elif args.left:
        _fail("Indicá dos partidos para comparar, por ejemplo: voto espectro FA PLP")
    else:
        print(format_spectrum(corpus, detail=args.detail))


def configure_provider(config: LLMConfig, read=input, secret=ask_secret) -> LLMConfig:
    choices = []
    for provider, info in PROVIDER_INFO.items():
        available = check_provider(provider, config)
        if provider is Provider.OLLAMA:
            status = " ✓ Disponible" if available else " (Requiere: ollama serve)"
        else:
            status = " ✓ API Key configurada" if available else " (Requiere API Key)"
        choices.append((provider.value, f"{info.name} - {info.description}{status}"))

    provider = Provider(choose_one("¿Qué LLM querés usar?", choices, read=read))
    config.provider = provider
    info = PROVIDER_INFO[provider]

    if provider is Provider.OLLAMA:
        models = list_local_models(config)
        if models:
            config.ollama.model = choose_one("Elegí el modelo:", [(m, m) for m in models], read=read)
        else:
            print("No se encontraron modelos. Instalá uno con: ollama pull llama3.2")
    else:
        settings = config.hosted(provider)
        if not resolve_api_key(config, provider):
            settings.api_key = secret(f"Ingresá tu API Key de {info.name}: ") or None
        settings.model = ask_default("Modelo?", settings.model or info.default_model, read=read)
    return config


def cmd_config(args):
    config = configure_provider(_config(args))
    path = save_config(config, args.config)
    print(f"\n✓ Configuración guardada en {path}. Usando {PROVIDER_INFO[config.provider].name}")


def _ready_config(args, interactive: bool) -> LLMConfig:
    config = _config(args)
    if config.provider is None:
        if not interactive:
            _fail("LLM no configurado. Ejecutá 'voto config' primero.")
        print("LLM no configurado. Vamos a configurarlo...")
        config = configure_provider(config)
        save_config(config, args.config)
    if not check_provider(config.provider, config):
        hint = "Ejecutá 'ollama serve' en otra terminal." if config.provider is Provider.OLLAMA else "Verificá tu API key con 'voto config'."
        _fail(f"{PROVIDER_INFO[config.provider].name} no está disponible. {hint}")
    return config


def cmd_chat(args):
    config = _ready_config(args, interactive=True)
    session = ChatSession(_corpus(args), _store(args), config)
    print("ASISTENTE DE VOTO INFORMADO CR 2026")
    print(f"Usando: {PROVIDER_INFO[config.provider].name}")
    print('Preguntame sobre los candidatos o sus propuestas. Escribí "salir" para terminar.\n')
    while True:
        try:
            user_input = ask_text("Vos: ", read=input)
        except (EOFError, KeyboardInterrupt):
            print("")
            break
        if user_input.lower() in EXIT_WORDS:
            break
        try:
            reply = session.turn(user_input)
        except LLMError as e:
            print(f"\nError: {e}\n")
            continue
        print(f"\nAsistente:\n\n{reply}\n")
    print("¡Gracias por informarte! Tu voto hace la diferencia.")


def cmd_ask(args):
    config = _ready_config(args, interactive=False)
    question = " ".join(args.question).strip()
    if not question:
        _fail("Escribí una pregunta.")
    try:
        reply = ask(question, _corpus(args), _store(args), config)
    except LLMError as e:
        _fail(f"Error: {e}")
    print(f"\nRespuesta:\n\n{reply}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voto", description="Voto Informado CR 2026 - Investigá a los candidatos")
    parser.add_argument("--data-dir", default=str(default_data_dir()), help="Directory holding knowledge-base.json and processed/ transcripts")
    parser.add_argument("--config", help="Path to the LLM configuration file (default: $VOTO_CONFIG or ~/.voto-informado.json)")
    parser.add_argument("--log-level", default="WARNING", type=str.upper, choices=LOG_LEVELS, help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("candidatos", aliases=["c"], help="Listar todos los candidatos presidenciales")
    p.add_argument("-d", "--detalle", dest="detail", action="store_true", help="Mostrar información detallada")
    p.set_defaults(func=cmd_candidates)

    p = sub.add_parser("temas", aliases=["t"], help="Ver temas más discutidos en las entrevistas")
    p.add_argument("-n", "--top", type=int, default=15, help="Número de temas a mostrar")
    p.set_defaults(func=cmd_topics)

    p = sub.add_parser("perfil", aliases=["p"], help="Ver perfil de un candidato (siglas: PLN, PUSC, CAC, ...)")
    p.add_argument("candidate")
    p.set_defaults(func=cmd_profile)

    p = sub.add_parser("comparar", aliases=["vs"], help="Comparar dos candidatos por temas")
    p.add_argument("left")
    p.add_argument("right")
    p.set_defaults(func=cmd_compare)

    p = sub.add_parser("buscar", aliases=["b"], help="Buscar un término en todas las entrevistas")
    p.add_argument("term")
    p.add_argument("-c", "--candidato", dest="candidate", help="Filtrar por candidato")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("leer", aliases=["l"], help="Leer el contenido de una entrevista")
    p.add_argument("document")
    p.add_argument("-l", "--lineas", dest="lines", type=int, default=50, help="Número de líneas a mostrar")
    p.set_defaults(func=cmd_read)

    p = sub.add_parser("quiz", aliases=["q"], help="Descubrí qué candidatos se alinean más con vos")
    p.add_argument("--answers", help="JSON file with answers (skips the interactive questionnaire)")
    p.add_argument("--top", type=int, default=3, help="Candidates shown in detail")
    p.add_argument("--json", action="store_true", help="Print the full ranking as JSON")
    p.add_argument("--export", help="Save the report as .docx")
    p.set_defaults(func=cmd_quiz)

    p = sub.add_parser("espectro", aliases=["e"], help="Ver el espectro político de los partidos")
    p.add_argument("left", nargs="?")
    p.add_argument("right", nargs="?")
    p.add_argument("-d", "--detalle", dest="detail", action="store_true", help="Mostrar descripción detallada de cada partido")
    p.set_defaults(func=cmd_spectrum)

    p = sub.add_parser("config", help="Configurar el modelo de lenguaje (Ollama, OpenAI, Claude, Gemini)")
    p.set_defaults(func=cmd_config)

    p = sub.add_parser("chat", help="Chatear con el asistente IA sobre los candidatos")
    p.set_defaults(func=cmd_chat)

    p = sub.add_parser("ask", aliases=["a"], help="Hacer una pregunta rápida al asistente IA")
    p.add_argument("question", nargs="+")
    p.set_defaults(func=cmd_ask)
    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    args.func(args)


if __name__ == "__main__":
    main()
