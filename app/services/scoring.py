from __future__ import annotations

import math
from dataclasses import dataclass

# plancher par défaut du temps écoulé (ms), sinon WPM explose sur une frappe < 1s
DEFAULT_MIN_ELAPSED_MS = 1000


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Arrondi "commercial" (0.5 -> 1), contrairement au round() bancaire de Python.
    """
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


@dataclass(frozen=True)
class SessionScore:
    wpm: int
    accuracy: int  # 0..100
    error_count: int
    correct_chars: int
    typed_chars: int
    reference_chars: int
    elapsed_ms: int  # après plancher

    def as_dict(self) -> dict:
        return {
            "wpm": self.wpm,
            "accuracy": self.accuracy,
            "error_count": self.error_count,
            "correct_chars": self.correct_chars,
            "typed_chars": self.typed_chars,
            "reference_chars": self.reference_chars,
            "elapsed_ms": self.elapsed_ms,
        }


def count_words(text: str) -> int:
    # split() sans argument : découpe sur les suites de blancs, ignore les bords
    return len((text or "").split())


def is_complete(reference: str, typed: str) -> bool:
    """
    La session est terminée dès que la saisie couvre toute la référence.
    """
    return len(typed or "") >= len(reference or "")


def score(
    reference: str,
    typed: str,
    elapsed_ms: float,
    *,
    min_elapsed_ms: int = DEFAULT_MIN_ELAPSED_MS,
) -> SessionScore:
    """
    Calcule WPM / précision / erreurs d'une saisie face au texte de référence.

    - WPM : mots saisis / minutes écoulées (temps plancher `min_elapsed_ms`).
    - Précision : caractères identiques sur le préfixe commun, rapportés à la
      longueur de la référence. Ce qui dépasse le préfixe commun n'est compté
      ni juste ni faux.
    - Erreurs : positions différentes sur le préfixe commun.

    Ne lève jamais : une saisie vide donne des métriques à zéro.
    """
    reference = reference or ""
    typed = typed or ""

    floor_ms = max(1, int(min_elapsed_ms))
    try:
        elapsed = max(float(elapsed_ms), float(floor_ms))
    except (TypeError, ValueError):
        elapsed = float(floor_ms)
    if not math.isfinite(elapsed):
        elapsed = float(floor_ms)

    minutes = elapsed / 60000.0
    wpm = int(round_half_up(count_words(typed) / minutes))

    overlap = min(len(typed), len(reference))
    correct = 0
    errors = 0
    for i in range(overlap):
        if typed[i] == reference[i]:
            correct += 1
        else:
            errors += 1

    if reference:
        accuracy = int(round_half_up(correct / len(reference) * 100))
    else:
        accuracy = 0

    return SessionScore(
        wpm=max(0, wpm),
        accuracy=max(0, min(100, accuracy)),
        error_count=errors,
        correct_chars=correct,
        typed_chars=len(typed),
        reference_chars=len(reference),
        elapsed_ms=int(elapsed),
    )
