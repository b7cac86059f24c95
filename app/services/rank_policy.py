from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from app.services.scoring import round_half_up

# Ordre fixe des grades, du plus bas au plus haut
GRADE_ORDER: Tuple[str, ...] = ("D", "C", "B", "A", "S")

LEVELS: Tuple[str, ...] = ("beginner", "intermediate", "advanced")
UNASSIGNED = "unassigned"


@dataclass(frozen=True)
class RankPolicy:
    """
    Table de barème versionnée : tout changement de seuil / poids doit
    changer `version` (elle est stockée sur chaque RankingRecord).
    """

    version: str = "2024.1"

    # (grade, points mini), du plus haut au plus bas ; en dessous -> D
    grade_thresholds: Tuple[Tuple[str, int], ...] = (
        ("S", 900),
        ("A", 700),
        ("B", 500),
        ("C", 300),
    )
    default_grade: str = "D"

    themes: Dict[str, str] = field(default_factory=lambda: {
        "S": "gold",
        "A": "silver",
        "B": "bronze",
        "C": "standard",
        "D": "standard",
    })

    # points par leçon terminée, modulés par la qualité
    base_points: int = 20
    speed_bonus_cap: float = 1.5
    target_wpm: Dict[str, int] = field(default_factory=lambda: {
        "beginner": 25,
        "intermediate": 40,
        "advanced": 60,
    })
    fallback_target_wpm: int = 40

    # évaluation de placement : (niveau, wpm mini, précision mini), du plus haut au plus bas
    placement_thresholds: Tuple[Tuple[str, int, int], ...] = (
        ("advanced", 45, 90),
        ("intermediate", 25, 80),
    )
    placement_default: str = "beginner"


DEFAULT_POLICY = RankPolicy()


def grade_for_points(points: int, policy: RankPolicy = DEFAULT_POLICY) -> str:
    points = int(points or 0)
    for grade, minimum in policy.grade_thresholds:
        if points >= minimum:
            return grade
    return policy.default_grade


def theme_for_grade(grade: str, policy: RankPolicy = DEFAULT_POLICY) -> str:
    return policy.themes.get(grade, "standard")


def grade_index(grade: str | None) -> int:
    """
    Position dans D < C < B < A < S ; grade inconnu / absent -> D.
    """
    try:
        return GRADE_ORDER.index(grade or "D")
    except ValueError:
        return 0


def is_upgrade(previous_grade: str | None, new_grade: str) -> bool:
    return grade_index(new_grade) > grade_index(previous_grade)


def target_wpm_for(level: str | None, policy: RankPolicy = DEFAULT_POLICY) -> int:
    return policy.target_wpm.get((level or "").lower(), policy.fallback_target_wpm)


def session_points(
    accuracy: float,
    wpm: float,
    level: str | None,
    policy: RankPolicy = DEFAULT_POLICY,
) -> int:
    """
    Points d'une leçon terminée : base × précision × (1 + bonus vitesse plafonné).
    Croissant (au sens large) en précision et en WPM.
    """
    acc = max(0.0, min(100.0, float(accuracy or 0)))
    speed = max(0.0, float(wpm or 0)) / max(1, target_wpm_for(level, policy))
    multiplier = (acc / 100.0) * (1.0 + min(speed, policy.speed_bonus_cap))
    return int(round_half_up(policy.base_points * multiplier))


def placement_level(wpm: int, accuracy: int, policy: RankPolicy = DEFAULT_POLICY) -> str:
    for level, min_wpm, min_acc in policy.placement_thresholds:
        if wpm >= min_wpm and accuracy >= min_acc:
            return level
    return policy.placement_default
