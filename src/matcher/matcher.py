import re
from typing import Iterable, List, Optional

from config.taxonomy import SkillTaxonomy, fold
from models.candidate_model import CandidateModel
from models.extraction_model import Seniority
from models.match_model import MatchResult, RequirementModel

# ================== NORMALIZERS ==================

def normalize_skill(skill: str) -> str:
    skill = (skill or "").lower()
    # "+" and "#" tell C, C++ and C# apart
    skill = re.sub(r"[^a-z0-9+#\s]", " ", skill)
    skill = re.sub(r"\s+", " ", skill)
    return skill.strip()


def _seniority(level) -> Optional[Seniority]:
    if level is None or isinstance(level, Seniority):
        return level
    try:
        return Seniority(str(level).strip().lower())
    except ValueError:
        return None


# ================== WEIGHTS ==================

REQUIRED_WEIGHT = 60
PREFERRED_WEIGHT = 25
SENIORITY_WEIGHT = 10
SENIORITY_ADJACENT_WEIGHT = 5
LOCATION_WEIGHT = 5

MAX_SCORE = 100.0

SCORE_BANDS = [
    (80, "Excellent"),
    (60, "Strong"),
    (40, "Good"),
    (0, "Partial"),
]


def score_band(score: float) -> str:
    for threshold, label in SCORE_BANDS:
        if score >= threshold:
            return label
    return SCORE_BANDS[-1][1]


# ================== CORE MATCHER ==================

class MatchingEngine:
    """
    Deterministic multi-factor scoring of candidates against a requirement.

    Stateless apart from the read-only taxonomy used to fold aliases
    ("k8s" / "Kubernetes") onto one comparison key.
    """

    def __init__(self, taxonomy: Optional[SkillTaxonomy] = None):
        self.taxonomy = taxonomy

    def skill_key(self, name: str) -> str:
        if self.taxonomy is not None:
            name = self.taxonomy.canonical(name)
        return normalize_skill(fold(name))

    def _keyed(self, names: Iterable[str]) -> List[tuple]:
        # (key, spelling) pairs in input order, first spelling wins
        seen = set()
        keyed = []
        for name in names or []:
            key = self.skill_key(name)
            if key and key not in seen:
                seen.add(key)
                keyed.append((key, name))
        return keyed

    def rank(
        self,
        requirement: RequirementModel,
        candidates: Iterable[CandidateModel],
        limit: Optional[int] = None,
    ) -> List[MatchResult]:
        results = []
        for candidate in candidates:
            result = self.score(requirement, candidate)
            if result is not None:
                results.append(result)

        results.sort(key=lambda r: (-r.score, r.candidate_id))
        if limit is not None:
            results = results[:max(limit, 0)]
        return results

    def score(self, requirement: RequirementModel, candidate: CandidateModel) -> Optional[MatchResult]:
        """Score one candidate, or None when it has none of the required skills."""
        required = self._keyed(requirement.required_skills)
        preferred = [p for p in self._keyed(requirement.preferred_skills) if p[0] not in {k for k, _ in required}]
        candidate_keys = {self.skill_key(s) for s in candidate.skill_names()}

        required_hits = [name for key, name in required if key in candidate_keys]
        preferred_hits = [name for key, name in preferred if key in candidate_keys]

        # ---- Floor rule ----
        if required and not required_hits:
            return None

        required_score = (len(required_hits) / max(len(required), 1)) * REQUIRED_WEIGHT
        # Nothing preferred means nothing is missing
        preferred_score = (len(preferred_hits) / len(preferred)) * PREFERRED_WEIGHT if preferred else PREFERRED_WEIGHT
        seniority_score = self._seniority_score(requirement.seniority, candidate.level)
        location_score = self._location_score(requirement.location, candidate.location)

        total = required_score + preferred_score + seniority_score + location_score
        total = round(min(max(total, 0.0), MAX_SCORE), 2)

        matching_skills = required_hits + preferred_hits
        return MatchResult(
            requirement_id=requirement.requirement_id,
            candidate_id=candidate.candidate_id,
            candidate_name=candidate.name,
            score=total,
            matching_skills=matching_skills,
            summary=self.summarize(total, candidate, matching_skills, len(required) + len(preferred)),
            breakdown={
                "required": round(required_score, 2),
                "preferred": round(preferred_score, 2),
                "seniority": round(seniority_score, 2),
                "location": round(location_score, 2),
            },
        )

    # ---- Seniority ----
    @staticmethod
    def _seniority_score(wanted, level) -> float:
        wanted = _seniority(wanted)
        if wanted is None:
            return SENIORITY_WEIGHT
        have = _seniority(level)
        if have is None:
            return 0.0
        distance = abs(wanted.rank - have.rank)
        if distance == 0:
            return SENIORITY_WEIGHT
        if distance == 1:
            return SENIORITY_ADJACENT_WEIGHT
        return 0.0

    # ---- Location ----
    @staticmethod
    def _location_score(wanted: Optional[str], location: Optional[str]) -> float:
        wanted = fold(wanted)
        if not wanted:
            return LOCATION_WEIGHT
        have = fold(location)
        if have and wanted in have:
            return LOCATION_WEIGHT
        return 0.0

    @staticmethod
    def summarize(score: float, candidate: CandidateModel, matching_skills: List[str], total_skills: int) -> str:
        name = candidate.name or candidate.candidate_id
        summary = f"{score_band(score)} match! {name}"
        if candidate.level:
            summary += f" ({candidate.level.lower()})"
        if total_skills:
            summary += f" has {len(matching_skills)} of {total_skills} requested skills."
        else:
            summary += "."
        if matching_skills:
            summary += f" Key matching skills: {', '.join(matching_skills[:3])}."
        if candidate.location:
            summary += f" Located in {candidate.location}."
        return summary
