from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from docx import Document
from docx.shared import Pt, Inches

from .ingest import SearchHit
from .quiz import CATEGORIES, PROFILES
from .schemas import Corpus, QuizAnswers, RankedCandidate
from .spectrum import (
    BUCKET_MAX,
    BUCKET_MIN,
    SpectrumComparison,
    axis_marker,
    band_label,
    candidate_name,
    group_by_economic,
    group_by_family,
    sorted_entries,
)
from .topics import TopicDiff, candidate_topics, require_candidate, top_topics


RULE = "═" * 60
THIN = "─" * 45
COLUMN = 7


def _bar(value: int, max_value: int, width: int = 30) -> str:
    if max_value <= 0:
        return ""
    return "█" * round(value / max_value * width)


def format_candidates(corpus: Corpus, detail: bool = False) -> str:
    lines = ["", "CANDIDATOS PRESIDENCIALES 2026", ""]
    for code, cand in corpus.candidates.items():
        docs = corpus.document_ids_for(code)
        if detail:
            lines.append(f"{code} - {cand.name}")
            lines.append(f"   Partido: {cand.party}")
            lines.append(f"   Documentos disponibles: {len(docs)}")
            if docs:
                lines.append(f"   Fuentes: {', '.join(d.split('-')[0] for d in docs)}")
            lines.append("")
        else:
            lines.append(f"{code.ljust(6)} {cand.name.ljust(35)} {'█' * min(len(docs), 10)} ({len(docs)})")
    lines.append("")
    lines.append(f"Total: {len(corpus.candidates)} candidatos")
    return "\n".join(lines)


def format_topics(pairs: Sequence[Tuple[str, int]]) -> str:
    lines = ["", "TEMAS MÁS DISCUTIDOS", ""]
    top = pairs[0][1] if pairs else 1
    for topic, count in pairs:
        lines.append(f"{topic.ljust(20)} {_bar(count, top)} {count}")
    return "\n".join(lines)


def format_profile(corpus: Corpus, code: str, n_topics: int = 8) -> str:
    cand = require_candidate(corpus, code)
    docs = corpus.documents_for(cand.code)
    lines = ["", f"PERFIL: {cand.name}", "", f"Partido: {cand.party} ({cand.code})", f"Documentos: {len(docs)} entrevistas/apariciones"]
    if docs:
        lines += ["", "Fuentes disponibles:"]
        for doc in docs:
            lines.append(f"  • {doc.source}: {doc.filename} ({doc.words} palabras)")
        lines += ["", "Temas principales:"]
        for topic, count in top_topics(candidate_topics(cand.code, corpus), n_topics):
            lines.append(f"  {topic}: {count} menciones")
    return "\n".join(lines)


def format_comparison(corpus: Corpus, left: str, right: str, diffs: Sequence[TopicDiff]) -> str:
    l, r = left.upper(), right.upper()
    lines = [
        "",
        f"COMPARACIÓN: {corpus.candidates[l].name} vs {corpus.candidates[r].name}",
        "",
        f"{'TEMA'.ljust(20)} {l.rjust(8)} {r.rjust(8)}  Diferencia",
        "-" * 55,
    ]
    for d in diffs:
        diff = f"+{d.diff}" if d.diff > 0 else (str(d.diff) if d.diff < 0 else "=")
        lines.append(f"{d.topic.ljust(20)} {str(d.left).rjust(8)} {str(d.right).rjust(8)}  {diff}")
    return "\n".join(lines)


def format_search(term: str, hits: Sequence[SearchHit], limit: int = 10) -> str:
    if not hits:
        return f'\nNo se encontró "{term}" en los documentos.'
    lines = ["", f'RESULTADOS PARA "{term}"', ""]
    for h in hits[:limit]:
        lines.append(f"{h.document} ({h.count} menciones)")
        lines.append(f'  "...{h.context}..."')
        lines.append("")
    lines.append(f"Total: {len(hits)} documentos con coincidencias")
    return "\n".join(lines)


def _recommendation(rank: RankedCandidate, corpus: Corpus) -> List[str]:
    cand = corpus.candidates[rank.code]
    profile = PROFILES.get(rank.code)
    lines = [f"{cand.name} ({rank.code})", f"   {cand.party}"]
    if profile:
        lines.append(f"   {profile.summary}")
    if rank.score.coincidences:
        lines.append(f"   ✓ Coincidencias: {', '.join(rank.score.coincidences)}")
    if rank.score.reasons:
        lines.append(f"   ★ {', '.join(rank.score.reasons)}")
    lines.append(f"   ({len(corpus.document_ids_for(rank.code))} entrevistas disponibles para investigar más)")
    return lines


def format_quiz_results(ranking: Sequence[RankedCandidate], corpus: Corpus, answers: QuizAnswers, top: int = 3) -> str:
    lines = [RULE, "TUS RESULTADOS", RULE, ""]
    for i, rank in enumerate(ranking[:top], start=1):
        lines += ["", f"#{i} - {rank.affinity}% de afinidad", THIN]
        lines += _recommendation(rank, corpus)
    lines += ["", RULE, "RESUMEN DE TUS PRIORIDADES", RULE, ""]
    for i, key in enumerate((answers.priority1, answers.priority2), start=1):
        cat = CATEGORIES.get(key)
        if cat:
            lines.append(f"{i}. {cat.name}: {cat.description}")
    if len(ranking) >= 2:
        first, second = ranking[0].code, ranking[1].code
        lines += [
            "",
            "Para conocer más sobre tus candidatos recomendados:",
            f"  voto perfil {first}",
            f"  voto comparar {first} {second}",
            "  voto buscar educación",
        ]
    lines += ["", "IMPORTANTE: Esta es solo una guía inicial. Investigá más, leé los planes de gobierno",
              "y escuchá los debates antes de decidir tu voto."]
    return "\n".join(lines)


def format_spectrum(corpus: Optional[Corpus], detail: bool = False) -> str:
    entries = sorted_entries()
    lines = [RULE, "ESPECTRO POLITICO - CR 2026", RULE, "", "EJE ECONOMICO",
             "Estado activo ◄──────────────────────────► Libre mercado", ""]
    scale = ["IZQUIERDA", "", "", "", "CENTRO", "", "", "", "DERECHA"]
    lines.append("".join(label.ljust(COLUMN) for label in scale))
    lines.append("".join(("│" if pos == 0 else "·").ljust(COLUMN) for pos in range(BUCKET_MIN, BUCKET_MAX + 1)))
    lines.append("")
    for pos, members in group_by_economic(entries).items():
        for e in members:
            lines.append(" " * COLUMN * (pos - BUCKET_MIN) + e.code)
    lines.append("")

    if detail:
        for family, _, members in group_by_family(entries):
            lines += ["", family.upper(), "─" * 40]
            for e in members:
                name = candidate_name(e.code, corpus) or "Desconocido"
                party = corpus.candidates[e.code].party if corpus and e.code in corpus.candidates else ""
                lines.append(f"{e.code.ljust(6)} {name}")
                if party:
                    lines.append(f"       {party}")
                lines.append(f"       {e.label}")
                lines.append(f"       {e.description}")
                lines.append(f"       Económico: [{axis_marker(e.economic)}]")
                lines.append(f"       Social:    [{axis_marker(e.social)}]")
                lines.append("")
    else:
        lines += ["LEYENDA", ""]
        for e in entries:
            lines.append(f"{e.code.ljust(6)} {candidate_name(e.code, corpus, short=True).ljust(22)} {e.label}")

    lines += ["", "EJE SOCIAL (valores)", "Progresista ◄──────────────────────────► Conservador",
              "", "Nota: Esta clasificación es aproximada y basada en declaraciones públicas."]
    return "\n".join(lines)


def format_spectrum_comparison(cmp: SpectrumComparison, corpus: Optional[Corpus]) -> str:
    lines = [RULE, "COMPARACION DE ESPECTRO POLITICO", RULE, ""]
    for e in (cmp.left, cmp.right):
        lines += [f"{e.code} - {candidate_name(e.code, corpus) or 'Desconocido'}", f"  {e.label}", f"  {e.description}", ""]
    lines.append("Eje Económico (Izq ◄──► Der):")
    for e in (cmp.left, cmp.right):
        lines.append(f"  [{axis_marker(e.economic)}] {e.code}")
    lines.append("Eje Social (Prog ◄──► Cons):")
    for e in (cmp.left, cmp.right):
        lines.append(f"  [{axis_marker(e.social)}] {e.code}")
    lines += ["", f"Distancia ideológica: {cmp.distance} (escala 0-14)", f"→ {band_label(cmp.band)}"]
    return "\n".join(lines)


def _setup_document() -> Document:
    doc = Document()
    sect = doc.sections[0]
    sect.top_margin = Inches(0.75)
    sect.bottom_margin = Inches(0.75)
    sect.left_margin = Inches(0.75)
    sect.right_margin = Inches(0.75)
    styles = doc.styles
    styles["Normal"].font.name = "Calibri"
    styles["Normal"].font.size = Pt(11)
    return doc


def _add_heading(doc: Document, text: str):
    p = doc.add_paragraph()
    run = p.add_run(text.upper())
    run.bold = True
    p.paragraph_format.space_before = Pt(6)
    p.paragraph_format.space_after = Pt(2)
    return p


def render_quiz_report(ranking: Sequence[RankedCandidate], corpus: Corpus, answers: QuizAnswers, out_path: str, top: int = 3) -> str:
    doc = _setup_document()
    title = doc.add_paragraph()
    run = title.add_run("Voto Informado CR 2026 - Resultados del quiz")
    run.bold = True
    run.font.size = Pt(16)
    doc.add_paragraph(date.today().strftime("%d/%m/%Y"))

    _add_heading(doc, "Tus prioridades")
    for key in (answers.priority1, answers.priority2):
        cat = CATEGORIES.get(key)
        if cat:
            doc.add_paragraph(f"{cat.name}: {cat.description}", style="List Bullet")

    _add_heading(doc, "Candidatos más afines")
    for i, rank in enumerate(ranking[:top], start=1):
        cand = corpus.candidates[rank.code]
        p = doc.add_paragraph()
        p.add_run(f"#{i} {cand.name} ({rank.code}) - {rank.affinity}% de afinidad").bold = True
        doc.add_paragraph(cand.party)
        profile = PROFILES.get(rank.code)
        if profile:
            doc.add_paragraph(profile.summary)
        for text in rank.score.coincidences:
            doc.add_paragraph(f"Coincidencia: {text}", style="List Bullet")
        for text in rank.score.reasons:
            doc.add_paragraph(text, style="List Bullet")

    _add_heading(doc, "Ranking completo")
    table = doc.add_table(rows=1, cols=3)
    header = table.rows[0].cells
    header[0].text, header[1].text, header[2].text = "Candidato", "Puntaje", "Afinidad"
    for rank in ranking:
        cells = table.add_row().cells
        cells[0].text = f"{corpus.candidates[rank.code].name} ({rank.code})"
        cells[1].text = f"{rank.score.total:.2f}"
        cells[2].text = f"{rank.affinity}%"

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    doc.save(out_path)
    return out_path


def ranking_summary(ranking: Sequence[RankedCandidate]) -> List[Dict]:
    return [
        {"code": r.code, "total": round(r.score.total, 2), "affinity": r.affinity, "reasons": r.score.reasons, "coincidences": r.score.coincidences}
        for r in ranking
    ]
