from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import structlog

from .schemas import Category, Corpus, QuizAnswers, QuizProfile, RankedCandidate, Score
from .topics import candidate_topics


logger = structlog.get_logger(__name__)


CATEGORIES: Dict[str, Category] = {
    c.key: c
    for c in (
        Category("economia", "Economía y Empleo",
                 ("economía", "empleo", "trabajo", "pymes", "empresas", "impuestos", "fiscal", "deuda", "inflación"),
                 "Generación de empleo, crecimiento económico, apoyo a empresas"),
        Category("social", "Bienestar Social",
                 ("social", "pobreza", "desigualdad", "pensiones", "vivienda"),
                 "Reducción de pobreza, programas sociales, pensiones"),
        Category("salud", "Salud Pública", ("salud", "Caja", "CCSS"),
                 "Sistema de salud, CCSS, acceso a servicios médicos"),
        Category("educacion", "Educación", ("educación", "jóvenes", "juventud", "niñez"),
                 "Calidad educativa, oportunidades para jóvenes"),
        Category("seguridad", "Seguridad Ciudadana", ("seguridad", "corrupción"),
                 "Combate al crimen, lucha anticorrupción"),
        Category("ambiente", "Medio Ambiente", ("ambiente", "medio ambiente", "cambio climático", "agua"),
                 "Protección ambiental, recursos naturales, sostenibilidad"),
        Category("genero", "Género y Familia", ("mujeres", "género", "familia"),
                 "Igualdad de género, protección familiar"),
        Category("infraestructura", "Infraestructura", ("infraestructura", "carreteras", "tecnología", "digitalización"),
                 "Obras públicas, modernización, conectividad"),
        Category("agro", "Agricultura y Campo", ("agricultura", "agro", "campo", "turismo"),
                 "Apoyo al agro, desarrollo rural, turismo"),
    )
}

PROFILES: Dict[str, QuizProfile] = {
    p.code: p
    for p in (
        QuizProfile("PLN", "Álvaro Ramos", ("salud", "infraestructura", "agro"), "balance",
                    "Experiencia en gobierno, enfoque en salud y CCSS, infraestructura",
                    ("Caja", "salud", "infraestructura", "agua", "turismo")),
        QuizProfile("PUSC", "Juan Carlos Hidalgo", ("economia", "educacion", "seguridad"), "mercado",
                    "Liberal clásico, reducción del Estado, énfasis en educación y empleo",
                    ("impuestos", "fiscal", "educación", "empleo", "seguridad")),
        QuizProfile("CAC", "Claudia Dobles", ("ambiente", "social", "genero"), "estado",
                    "Progresista, medio ambiente, igualdad de género, bienestar social",
                    ("ambiente", "mujeres", "social", "educación", "cambio climático")),
        QuizProfile("FA", "Ariel Robles", ("social", "genero", "educacion"), "estado",
                    "Izquierda progresista, derechos sociales, igualdad, educación pública",
                    ("social", "mujeres", "educación", "jóvenes", "trabajo")),
        QuizProfile("PLP", "Eliécer Feinzaig", ("economia", "seguridad", "infraestructura"), "mercado",
                    "Liberal, reducción de impuestos, eficiencia estatal, seguridad",
                    ("impuestos", "fiscal", "empleo", "seguridad", "tecnología")),
        QuizProfile("PNR", "Fabricio Alvarado", ("seguridad", "genero", "social"), "tradicional",
                    "Conservador, valores tradicionales, familia, seguridad",
                    ("familia", "seguridad", "social", "educación")),
        QuizProfile("UP", "Natalia Díaz", ("social", "salud", "genero"), "estado",
                    "Progresista, bienestar social, salud, igualdad de género",
                    ("social", "mujeres", "salud", "pensiones", "jóvenes")),
        QuizProfile("PPSO", "Laura Fernández", ("social", "seguridad", "economia"), "balance",
                    "Independiente, lucha anticorrupción, bienestar social",
                    ("corrupción", "social", "seguridad", "empleo")),
        QuizProfile("PA", "José Aguilar", ("economia", "agro", "infraestructura"), "mercado",
                    "Empresarial, apoyo a pymes, desarrollo económico",
                    ("empresas", "pymes", "empleo", "economía")),
        QuizProfile("PSD", "Luz Mary Alpízar", ("social", "salud", "educacion"), "estado",
                    "Socialdemócrata, bienestar social, salud, educación",
                    ("social", "salud", "educación", "pensiones")),
    )
}


@dataclass(frozen=True)
class Question:
    key: str
    prompt: str
    choices: Tuple[Tuple[str, str], ...]  # (value, label)
    multi: bool = False

    @property
    def values(self) -> Tuple[str, ...]:
        return tuple(v for v, _ in self.choices)


PRIORITY_CHOICES: Tuple[Tuple[str, str], ...] = (
    ("economia", "La falta de empleo y la economía"),
    ("salud", "El estado del sistema de salud (CCSS)"),
    ("educacion", "La calidad de la educación"),
    ("seguridad", "La inseguridad y el crimen"),
    ("ambiente", "El medio ambiente y el agua"),
    ("social", "La pobreza y desigualdad social"),
)

GROUP_LABELS: Dict[str, str] = {
    "trabajador": "Trabajador/empleado",
    "emprendedor": "Emprendedor/empresario",
    "joven": "Estudiante/joven",
    "pensionado": "Pensionado/adulto mayor",
    "rural": "Del campo/zona rural",
    "urbano": "De zona urbana",
    "mujer": "Mujer trabajadora/madre",
}

QUESTIONS: Tuple[Question, ...] = (
    Question("priority1", "¿Cuál es tu MAYOR preocupación para Costa Rica?", PRIORITY_CHOICES),
    Question("priority2", "¿Y tu SEGUNDA mayor preocupación?", PRIORITY_CHOICES),
    Question("economic_approach", "¿Qué enfoque económico preferís?", (
        ("mercado", "Reducir impuestos y dejar que el mercado funcione"),
        ("estado", "Más inversión estatal en programas sociales"),
        ("balance", "Un balance entre mercado y Estado"),
    )),
    Question("ccss", "¿Qué debería pasar con la Caja (CCSS)?", (
        ("reforma", "Reformarla profundamente para hacerla más eficiente"),
        ("fortalecer", "Fortalecerla con más recursos y personal"),
        ("privado", "Permitir más participación del sector privado"),
    )),
    Question("security", "¿Cómo se debería combatir la inseguridad?", (
        ("mano_dura", "Mano dura: más policía y penas más fuertes"),
        ("prevencion", "Prevención: educación y oportunidades"),
        ("integral", "Ambas: seguridad + oportunidades sociales"),
    )),
    Question("environment", "¿Cómo balancear ambiente y desarrollo?", (
        ("ambiente_primero", "Priorizar la protección ambiental siempre"),
        ("desarrollo_primero", "El desarrollo económico es más urgente"),
        ("sostenible", "Se pueden lograr ambos con planificación"),
    )),
    Question("gender", "¿Qué opinás sobre políticas de género?", (
        ("favor", "Son necesarias para lograr igualdad real"),
        ("tradicional", "La familia tradicional debe ser la prioridad"),
        ("neutral", "No es un tema prioritario para mí"),
    )),
    Question("experience", "¿Qué es más importante en un candidato?", (
        ("nuevo", "Que sea nuevo y no tenga pasado político"),
        ("experiencia", "Que tenga experiencia aunque sea de partidos tradicionales"),
        ("historial", "Que tenga un historial limpio, sin importar si es nuevo"),
    )),
    Question("groups", "¿Con cuáles grupos te identificás más? (podés elegir varios)",
             tuple(GROUP_LABELS.items()), multi=True),
)

# answer value -> (allowlist, points, coincidence label)
Allowlist = Tuple[Tuple[str, ...], float, str]

CCSS_RULES: Dict[str, Allowlist] = {
    "fortalecer": (("FA", "UP", "CAC", "PSD"), 1.5, "Fortalecer CCSS"),
    "reforma": (("PUSC", "PLP", "PLN"), 1.5, "Reforma de CCSS"),
}
SECURITY_RULES: Dict[str, Allowlist] = {
    "mano_dura": (("PNR", "PUSC", "PLP"), 1.5, "Seguridad: mano dura"),
    "prevencion": (("FA", "CAC", "UP"), 1.5, "Seguridad: prevención"),
}
SECURITY_DEFAULT: Allowlist = (("PLN", "PPSO", "PSD"), 1.0, "Seguridad: enfoque integral")
ENVIRONMENT_RULES: Dict[str, Allowlist] = {
    "ambiente_primero": (("CAC", "FA"), 2.0, "Prioridad ambiental"),
    "desarrollo_primero": (("PUSC", "PLP", "PA"), 1.5, "Prioridad desarrollo"),
}
GENDER_RULES: Dict[str, Allowlist] = {
    "favor": (("CAC", "FA", "UP"), 2.0, "Políticas de género"),
    "tradicional": (("PNR",), 2.0, "Valores familiares"),
}
EXPERIENCE_RULES: Dict[str, Allowlist] = {
    "nuevo": (("PPSO", "UP", "PA"), 1.0, "Caras nuevas"),
    "experiencia": (("PLN", "PUSC"), 1.0, "Experiencia política"),
}
GROUP_RULES: Dict[str, Tuple[str, ...]] = {
    "emprendedor": ("PUSC", "PLP", "PA"),
    "trabajador": ("FA", "PLN", "PSD"),
    "joven": ("FA", "CAC", "UP"),
    "rural": ("PLN", "PA"),
    "mujer": ("CAC", "FA", "UP"),
    "pensionado": ("PLN", "PSD", "UP"),
    "urbano": (),
}

PRIORITY1_POINTS = 3.0
PRIORITY2_POINTS = 2.0
APPROACH_POINTS = 2.0
BALANCE_PARTIAL_POINTS = 0.5
GROUP_POINTS = 1.0
MENTIONS_PER_POINT = 50
MENTION_POINTS_CAP = 2.0


@dataclass
class Contribution:
    points: float = 0.0
    reasons: List[str] = field(default_factory=list)
    coincidences: List[str] = field(default_factory=list)


@dataclass
class ScoringContext:
    profile: Optional[QuizProfile]
    topic_counts: Dict[str, int]


Rule = Callable[[QuizAnswers, str, ScoringContext], Contribution]


def _allowlist(code: str, rule: Optional[Allowlist]) -> Contribution:
    if rule is None:
        return Contribution()
    codes, points, label = rule
    if code not in codes:
        return Contribution()
    return Contribution(points=points, coincidences=[label])


def _strengths(ctx: ScoringContext) -> Tuple[str, ...]:
    return ctx.profile.strengths if ctx.profile else ()


def priority1_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    cat = CATEGORIES.get(answers.priority1)
    if cat is None:
        return Contribution()
    out = Contribution()
    if answers.priority1 in _strengths(ctx):
        out.points += PRIORITY1_POINTS
        out.reasons.append(f"Enfocado en {cat.name}")
    mentions = sum(ctx.topic_counts.get(t, 0) for t in cat.topics)
    out.points += min(mentions / MENTIONS_PER_POINT, MENTION_POINTS_CAP)
    return out


def priority2_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    cat = CATEGORIES.get(answers.priority2)
    if cat is None or answers.priority2 == answers.priority1:
        return Contribution()
    if answers.priority2 not in _strengths(ctx):
        return Contribution()
    return Contribution(points=PRIORITY2_POINTS, reasons=[f"También prioriza {cat.name}"])


def economic_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    if ctx.profile is not None and ctx.profile.approach == answers.economic_approach:
        return Contribution(points=APPROACH_POINTS, coincidences=["Enfoque económico"])
    if answers.economic_approach == "balance":
        return Contribution(points=BALANCE_PARTIAL_POINTS)
    return Contribution()


def ccss_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    return _allowlist(code, CCSS_RULES.get(answers.ccss))


def security_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    return _allowlist(code, SECURITY_RULES.get(answers.security, SECURITY_DEFAULT))


def environment_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    return _allowlist(code, ENVIRONMENT_RULES.get(answers.environment))


def gender_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    return _allowlist(code, GENDER_RULES.get(answers.gender))


def experience_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    return _allowlist(code, EXPERIENCE_RULES.get(answers.experience))


def groups_rule(answers: QuizAnswers, code: str, ctx: ScoringContext) -> Contribution:
    out = Contribution()
    for group in answers.groups:
        if code in GROUP_RULES.get(group, ()):
            out.points += GROUP_POINTS
            out.coincidences.append(f"Grupo: {GROUP_LABELS.get(group, group)}")
    return out


RULES: Tuple[Rule, ...] = (
    priority1_rule,
    priority2_rule,
    economic_rule,
    ccss_rule,
    security_rule,
    environment_rule,
    gender_rule,
    experience_rule,
    groups_rule,
)


def score_candidate(answers: QuizAnswers, code: str, ctx: ScoringContext, rules: Sequence[Rule] = RULES) -> Score:
    score = Score()
    for rule in rules:
        c = rule(answers, code, ctx)
        score.total += c.points
        score.reasons.extend(c.reasons)
        score.coincidences.extend(c.coincidences)
    return score


def affinity(total: float, top_total: float) -> int:
    if top_total <= 0:
        return 0
    # Halves round up
    return int(math.floor(100 * total / top_total + 0.5))


def score(answers: QuizAnswers, corpus: Corpus, profiles: Dict[str, QuizProfile] = PROFILES) -> List[RankedCandidate]:
    scores: Dict[str, Score] = {}
    for code in corpus.candidates:
        ctx = ScoringContext(profile=profiles.get(code), topic_counts=candidate_topics(code, corpus))
        scores[code] = score_candidate(answers, code, ctx)

    # Profile-table order before the stable sort keeps ties deterministic
    ranked = [RankedCandidate(code=code, score=scores[code]) for code in profiles if code in scores]
    ranked.sort(key=lambda r: r.score.total, reverse=True)
    if ranked:
        top = ranked[0].score.total
        for r in ranked:
            r.affinity = affinity(r.score.total, top)
    logger.debug("quiz_scored", ranking=[(r.code, round(r.score.total, 2)) for r in ranked])
    return ranked


def answers_from_dict(data: Dict) -> QuizAnswers:
    aliases = {
        "prioridad1": "priority1",
        "prioridad2": "priority2",
        "enfoque_economico": "economic_approach",
        "seguridad_enfoque": "security",
        "ambiente_desarrollo": "environment",
        "genero": "gender",
        "corrupcion": "experience",
        "grupos": "groups",
    }
    norm = {aliases.get(k, k): v for k, v in data.items()}
    values: Dict[str, object] = {}
    for q in QUESTIONS:
        raw = norm.get(q.key)
        if q.multi:
            picked = tuple(dict.fromkeys(raw or ()))
            bad = [g for g in picked if g not in q.values]
            if bad:
                raise ValueError(f"Invalid choice(s) for {q.key}: {', '.join(bad)}")
            values[q.key] = picked
        else:
            if raw not in q.values:
                raise ValueError(f"Invalid choice for {q.key}: {raw!r} (expected one of {', '.join(q.values)})")
            values[q.key] = raw
    return QuizAnswers(**values)
