"""Tests for the scoring engine."""

import pytest

from matcher.matcher import (
    LOCATION_WEIGHT,
    PREFERRED_WEIGHT,
    REQUIRED_WEIGHT,
    SENIORITY_ADJACENT_WEIGHT,
    SENIORITY_WEIGHT,
    MatchingEngine,
    normalize_skill,
    score_band,
)
from models.candidate_model import CandidateModel, CandidateSkill
from models.extraction_model import Seniority
from models.match_model import RequirementModel


def make_candidate(candidate_id, skills, level=None, location=None, name=None):
    return CandidateModel(
        candidate_id=candidate_id,
        name=name or f"Candidate {candidate_id}",
        level=level,
        location=location,
        skills=[CandidateSkill(name=s) for s in skills],
    )


@pytest.fixture
def engine(taxonomy):
    return MatchingEngine(taxonomy)


class TestScore:

    def test_scenario_a_partial_overlap_with_seniority_bonus(self, engine):
        requirement = RequirementModel(
            required_skills=["React", "JavaScript", "TypeScript", "Node.js", "AWS",
                             "Docker", "Kubernetes", "MySQL", "Redis"],
            seniority=Seniority.SENIOR,
        )
        candidate = make_candidate("c1", ["React", "JavaScript", "AWS", "MySQL"], level="senior")

        result = engine.score(requirement, candidate)

        assert result is not None
        assert result.breakdown["seniority"] == SENIORITY_WEIGHT
        assert result.breakdown["required"] == round(4 / 9 * REQUIRED_WEIGHT, 2)
        assert result.score == round(4 / 9 * REQUIRED_WEIGHT + PREFERRED_WEIGHT + SENIORITY_WEIGHT + LOCATION_WEIGHT, 2)
        assert result.matching_skills == ["React", "JavaScript", "AWS", "MySQL"]

    def test_perfect_match_is_100(self, engine):
        requirement = RequirementModel(
            required_skills=["Python"], preferred_skills=["Docker"],
            seniority=Seniority.MID, location="Madrid",
        )
        candidate = make_candidate("c1", ["Python", "Docker"], level="mid", location="Madrid, Spain")
        assert engine.score(requirement, candidate).score == 100.0

    def test_empty_preferred_earns_full_weight(self, engine):
        requirement = RequirementModel(required_skills=["Python"])
        result = engine.score(requirement, make_candidate("c1", ["Python"]))
        assert result.breakdown["preferred"] == PREFERRED_WEIGHT
        assert result.score == 100.0

    def test_full_required_match_reaches_excellent_band(self, engine):
        requirement = RequirementModel(required_skills=["Python", "Django"], seniority=Seniority.SENIOR)
        candidate = make_candidate("c1", ["Python", "Django"], level="senior", location="Madrid")
        result = engine.score(requirement, candidate)
        assert result.score >= 80
        assert result.summary.startswith("Excellent match!")

    def test_preferred_ratio(self, engine):
        requirement = RequirementModel(required_skills=["Python"], preferred_skills=["Docker", "AWS"])
        result = engine.score(requirement, make_candidate("c1", ["Python", "AWS"]))
        assert result.breakdown["preferred"] == PREFERRED_WEIGHT / 2
        assert result.matching_skills == ["Python", "AWS"]

    @pytest.mark.parametrize("wanted, level, expected", [
        (None, None, SENIORITY_WEIGHT),
        (Seniority.SENIOR, "senior", SENIORITY_WEIGHT),
        (Seniority.SENIOR, "mid", SENIORITY_ADJACENT_WEIGHT),
        (Seniority.SENIOR, "lead", SENIORITY_ADJACENT_WEIGHT),
        (Seniority.SENIOR, "junior", 0),
        (Seniority.SENIOR, None, 0),
        (Seniority.SENIOR, "wizard", 0),
    ])
    def test_seniority_bonus(self, engine, wanted, level, expected):
        requirement = RequirementModel(required_skills=["Python"], seniority=wanted)
        result = engine.score(requirement, make_candidate("c1", ["Python"], level=level))
        assert result.breakdown["seniority"] == expected

    @pytest.mark.parametrize("wanted, location, expected", [
        (None, None, LOCATION_WEIGHT),
        ("", "Madrid", LOCATION_WEIGHT),
        ("madrid", "Madrid, España", LOCATION_WEIGHT),
        ("Madrid, España", "MADRID", 0),
        ("Madrid, Spain", "Spain", 0),
        ("spain", "Madrid, Spain", LOCATION_WEIGHT),
        ("Austin", "Madrid", 0),
        ("Austin", None, 0),
    ])
    def test_location_bonus(self, engine, wanted, location, expected):
        requirement = RequirementModel(required_skills=["Python"], location=wanted)
        result = engine.score(requirement, make_candidate("c1", ["Python"], location=location))
        assert result.breakdown["location"] == expected

    def test_aliases_agree(self, engine):
        requirement = RequirementModel(required_skills=["k8s", "nodejs"])
        result = engine.score(requirement, make_candidate("c1", ["Kubernetes", "Node.js"]))
        assert result.breakdown["required"] == REQUIRED_WEIGHT
        # requirement spelling is kept
        assert result.matching_skills == ["k8s", "nodejs"]

    def test_c_family_is_not_collapsed(self, engine):
        requirement = RequirementModel(required_skills=["C#"])
        assert engine.score(requirement, make_candidate("c1", ["C++", "C"])) is None

    def test_summary_mentions_band_and_skills(self, engine):
        requirement = RequirementModel(required_skills=["Python", "Docker"])
        candidate = make_candidate("c1", ["Python", "Docker"], level="senior", location="Madrid", name="Ana Ruiz")
        summary = engine.score(requirement, candidate).summary
        assert summary.startswith("Excellent match! Ana Ruiz (senior)")
        assert "Python, Docker" in summary
        assert "Madrid" in summary


class TestFloorRule:

    def test_zero_required_overlap_is_excluded(self, engine):
        requirement = RequirementModel(required_skills=["Rust"], preferred_skills=["Python"])
        assert engine.score(requirement, make_candidate("c1", ["Python"])) is None

    def test_single_required_overlap_is_kept(self, engine):
        requirement = RequirementModel(required_skills=["Rust", "Go"])
        result = engine.score(requirement, make_candidate("c1", ["Go"]))
        assert result is not None
        assert result.breakdown["required"] == REQUIRED_WEIGHT / 2

    def test_empty_required_never_excluded(self, engine):
        requirement = RequirementModel(preferred_skills=["Python"])
        result = engine.score(requirement, make_candidate("c1", ["Java"]))
        assert result is not None
        assert result.breakdown["required"] == 0


class TestRank:

    def test_deterministic_order_and_ties_by_id(self, engine):
        requirement = RequirementModel(required_skills=["Python", "Docker"])
        pool = [
            make_candidate("b", ["Python"]),
            make_candidate("a", ["Python"]),
            make_candidate("c", ["Python", "Docker"]),
            make_candidate("d", ["Java"]),
        ]
        first = engine.rank(requirement, pool)
        second = engine.rank(requirement, list(reversed(pool)))

        assert [r.candidate_id for r in first] == ["c", "a", "b"]
        assert [(r.candidate_id, r.score) for r in first] == [(r.candidate_id, r.score) for r in second]

    def test_limit_truncates_after_ordering(self, engine):
        requirement = RequirementModel(required_skills=["Python", "Docker"])
        pool = [make_candidate("b", ["Python"]), make_candidate("c", ["Python", "Docker"])]
        assert [r.candidate_id for r in engine.rank(requirement, pool, limit=1)] == ["c"]

    def test_scores_are_bounded(self, engine):
        requirement = RequirementModel(required_skills=["Python"], preferred_skills=["Docker"])
        pool = [make_candidate(str(i), ["Python", "Docker"][: i % 3]) for i in range(10)]
        for result in engine.rank(requirement, pool):
            assert 0 <= result.score <= 100


class TestHelpers:

    def test_normalize_skill_keeps_plus_and_hash(self):
        assert normalize_skill("C++") == "c++"
        assert normalize_skill("C#") == "c#"
        assert normalize_skill("Node.js") == "node js"

    @pytest.mark.parametrize("score, band", [(80, "Excellent"), (79.99, "Strong"), (60, "Strong"),
                                             (40, "Good"), (39.5, "Partial"), (0, "Partial")])
    def test_score_band(self, score, band):
        assert score_band(score) == band
