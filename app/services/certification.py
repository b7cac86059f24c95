from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from app.services.rank_policy import is_upgrade


class _RankSnapshot(Protocol):
    total_points: int
    average_wpm: float
    average_accuracy: float


@dataclass(frozen=True)
class CertificationDraft:
    rank_achieved: str
    points_at_issue: int
    wpm_at_issue: float
    accuracy_at_issue: float
    issued_at: datetime

    def as_row(self) -> dict:
        return {
            "rank_achieved": self.rank_achieved,
            "points_at_issue": self.points_at_issue,
            "wpm_at_issue": self.wpm_at_issue,
            "accuracy_at_issue": self.accuracy_at_issue,
            "issued_at": self.issued_at,
        }


def maybe_issue_certificate(
    previous_grade: Optional[str],
    new_grade: str,
    ranking: _RankSnapshot,
    *,
    already_issued: Iterable[str] = (),
    now: Optional[datetime] = None,
) -> Optional[CertificationDraft]:
    """
    Certificat uniquement sur une montée de grade (D < C < B < A < S),
    et une seule fois par grade : redescendre puis remonter ne ré-émet pas.
    """
    if new_grade == previous_grade or not is_upgrade(previous_grade, new_grade):
        return None
    if new_grade in set(already_issued):
        return None

    return CertificationDraft(
        rank_achieved=new_grade,
        points_at_issue=int(ranking.total_points),
        wpm_at_issue=float(ranking.average_wpm),
        accuracy_at_issue=float(ranking.average_accuracy),
        issued_at=now or datetime.now(timezone.utc),
    )
