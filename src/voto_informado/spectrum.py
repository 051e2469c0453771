from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .schemas import Corpus, SpectrumEntry


class UnknownPartyError(LookupError):
    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Party {code!r} not found in the spectrum.")


def _e(code, economic, social, label, description, color) -> SpectrumEntry:
    return SpectrumEntry(code=code, economic=economic, social=social, label=label, description=description, color=color)


SPECTRUM: Dict[str, SpectrumEntry] = {
    e.code: e
    for e in (
        _e("FA", -4, -4, "Izquierda progresista", "Estado activo, derechos sociales, igualdad de género, medio ambiente", "red"),
        _e("PDLCT", -4, -3, "Izquierda", "Derechos laborales, sindicalismo, justicia social", "red"),
        _e("CAC", -2, -3, "Centro-izquierda progresista", "Progresista, medio ambiente, políticas de género, desarrollo sostenible", "magenta"),
        _e("UP", -2, -2, "Centro-izquierda", "Bienestar social, salud, derechos de la mujer", "magenta"),
        _e("PSD", -1, -1, "Socialdemocracia", "Estado de bienestar, educación, salud pública", "magenta"),
        _e("PJSC", -2, -1, "Centro-izquierda social", "Justicia social, protección de trabajadores", "magenta"),
        _e("PLN", 0, 0, "Centro pragmático", "Tradición socialdemócrata, pragmatismo, infraestructura", "green"),
        _e("PPSO", 0, 1, "Centro independiente", "Anti-corrupción, soberanía nacional, independiente", "green"),
        _e("CDS", 1, 0, "Centro", "Ciudadanía activa, transparencia, eficiencia", "green"),
        _e("PUSC", 2, 1, "Centro-derecha liberal", "Libre mercado, reducción del Estado, educación", "blue"),
        _e("PA", 3, 1, "Centro-derecha empresarial", "Pro-empresa, pymes, desarrollo económico", "blue"),
        _e("PIN", 2, 2, "Centro-derecha", "Integración, desarrollo, valores tradicionales", "blue"),
        _e("PLP", 4, 0, "Derecha liberal", "Liberalismo clásico, reducción de impuestos, Estado mínimo", "cyan"),
        _e("CR1", 3, 2, "Derecha", "Nacionalismo cívico, seguridad, desarrollo", "cyan"),
        _e("PNR", 2, 4, "Derecha conservadora", "Valores tradicionales, familia, seguridad, fe", "yellow"),
        _e("PNG", 3, 4, "Derecha nacionalista", "Nacionalismo, soberanía, valores tradicionales", "yellow"),
        _e("ACRM", 2, 3, "Derecha populista", "Soberanía popular, anti-establishment", "yellow"),
        _e("PEN", 1, 2, "Centro-derecha popular", "Populismo, anti-élite, pueblo primero", "white"),
        _e("PEL", 0, 1, "Centro", "Propuestas variadas, desarrollo local", "white"),
        _e("PUCD", 1, 1, "Centro-derecha", "Unión democrática, desarrollo", "white"),
    )
}

AXIS_MIN, AXIS_MAX = -5, 5
BUCKET_MIN, BUCKET_MAX = -4, 4

# (name, low, high, color) on the economic axis, inclusive
FAMILIES: Tuple[Tuple[str, int, int, str], ...] = (
    ("Izquierda", -5, -3, "red"),
    ("Centro-izquierda", -2, -1, "magenta"),
    ("Centro", 0, 0, "green"),
    ("Centro-derecha", 1, 2, "blue"),
    ("Derecha", 3, 5, "cyan"),
)

BANDS: Tuple[Tuple[float, str, str], ...] = (
    (2, "very close", "Muy cercanos ideológicamente"),
    (4, "relatively close", "Relativamente cercanos"),
    (6, "moderate differences", "Diferencias moderadas"),
)
FAR_BAND = ("very different", "Posiciones muy distintas")


def get_entry(code: str, spectrum: Dict[str, SpectrumEntry] = SPECTRUM) -> SpectrumEntry:
    entry = spectrum.get(code.upper())
    if entry is None:
        raise UnknownPartyError(code.upper())
    return entry


def sorted_entries(spectrum: Dict[str, SpectrumEntry] = SPECTRUM) -> List[SpectrumEntry]:
    return sorted(spectrum.values(), key=lambda e: e.economic)


def group_by_economic(entries: Iterable[SpectrumEntry]) -> Dict[int, List[SpectrumEntry]]:
    """Bucket entries on the economic axis for the one-line layout.

    Values beyond the -4..+4 layout range are clamped into the edge bucket.
    """
    buckets: Dict[int, List[SpectrumEntry]] = {pos: [] for pos in range(BUCKET_MIN, BUCKET_MAX + 1)}
    for e in sorted(entries, key=lambda x: x.economic):
        pos = min(max(e.economic, BUCKET_MIN), BUCKET_MAX)
        buckets[pos].append(e)
    return buckets


def group_by_family(entries: Iterable[SpectrumEntry]) -> List[Tuple[str, str, List[SpectrumEntry]]]:
    ordered = sorted(entries, key=lambda x: x.economic)
    out = []
    for name, low, high, color in FAMILIES:
        members = [e for e in ordered if low <= e.economic <= high]
        if members:
            out.append((name, color, members))
    return out


def point_distance(a: SpectrumEntry, b: SpectrumEntry) -> float:
    return round(math.hypot(a.economic - b.economic, a.social - b.social), 1)


def distance(a: str, b: str, spectrum: Dict[str, SpectrumEntry] = SPECTRUM) -> float:
    return point_distance(get_entry(a, spectrum), get_entry(b, spectrum))


def classify_distance(d: float) -> str:
    for limit, band, _ in BANDS:
        if d < limit:
            return band
    return FAR_BAND[0]


def band_label(band: str) -> str:
    for _, key, label in BANDS:
        if key == band:
            return label
    return FAR_BAND[1]


@dataclass(frozen=True)
class SpectrumComparison:
    left: SpectrumEntry
    right: SpectrumEntry
    distance: float
    band: str


def compare(a: str, b: str, spectrum: Dict[str, SpectrumEntry] = SPECTRUM) -> SpectrumComparison:
    left = get_entry(a, spectrum)
    right = get_entry(b, spectrum)
    d = point_distance(left, right)
    return SpectrumComparison(left=left, right=right, distance=d, band=classify_distance(d))


def axis_marker(value: int, dot: str = "·", mark: str = "●") -> str:
    pos = min(max(value, AXIS_MIN), AXIS_MAX) - AXIS_MIN
    return dot * pos + mark + dot * (AXIS_MAX - AXIS_MIN - pos)


def candidate_name(code: str, corpus: Optional[Corpus], short: bool = False) -> str:
    if corpus is None:
        return ""
    cand = corpus.candidates.get(code)
    if cand is None:
        return ""
    return " ".join(cand.name.split()[:2]) if short else cand.name
