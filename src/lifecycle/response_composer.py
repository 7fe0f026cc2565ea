from typing import Dict, List, Optional

from models.api_model import CandidateResult, ExtractedSkillsBlock, MatchEntry
from models.candidate_model import CandidateModel, UpsertOutcome
from models.extraction_model import ExtractionResult
from models.match_model import MatchResult

NO_SKILLS_SUMMARY = "No skills recognized in the request."

CANDIDATE_COMPLETED = "completed"
CANDIDATE_UNRESOLVED = "unresolved"


class ResponseComposer:
    """Turns engine results into the payloads returned to callers."""

    def match_entry(self, result: MatchResult, candidate: Optional[CandidateModel] = None) -> MatchEntry:
        return MatchEntry(
            employee_id=result.candidate_id,
            employee_name=result.candidate_name,
            match_score=result.score,
            matching_skills=list(result.matching_skills),
            ai_summary=result.summary,
            seniority=candidate.level if candidate else None,
            location=candidate.location if candidate else None,
            current_project=candidate.current_project if candidate else None,
            resume_link=candidate.resume_url if candidate else None,
        )

    def match_entries(self, results: List[MatchResult], candidates: Dict[str, CandidateModel]) -> List[MatchEntry]:
        return [self.match_entry(r, candidates.get(r.candidate_id)) for r in results]

    def overall_summary(self, entries: List[MatchEntry], skills: List[str]) -> str:
        if not skills:
            return NO_SKILLS_SUMMARY
        if not entries:
            return f"No candidates found matching the skills: {', '.join(skills)}"

        lines = [f"Found {len(entries)} candidates matching skills: {', '.join(skills)}", ""]
        for i, entry in enumerate(entries, 1):
            who = entry.employee_name or entry.employee_id
            if entry.seniority:
                who += f" ({entry.seniority})"
            lines.append(
                f"{i}. {who} - Score: {entry.match_score:.1f} - {', '.join(entry.matching_skills)}"
            )
        return "\n".join(lines)

    def extracted_block(self, extraction: ExtractionResult) -> ExtractedSkillsBlock:
        return ExtractedSkillsBlock(
            **extraction.skills.model_dump(),
            total_skills_found=extraction.total_skills_found,
            confidence=extraction.confidence,
            language=extraction.language,
            years_experience=extraction.years_experience,
            seniority=extraction.seniority.value if extraction.seniority else None,
            extraction_method=extraction.extraction_method.value,
        )

    def candidate_result(self, outcome: UpsertOutcome) -> CandidateResult:
        return CandidateResult(
            employee_id=outcome.candidate_id,
            action=outcome.action.value,
            changes_detected=outcome.changes_detected,
            changes_summary=list(outcome.change_summary),
            status=CANDIDATE_COMPLETED,
        )

    def unresolved_candidate(self, reason: str) -> CandidateResult:
        return CandidateResult(changes_summary=[reason], status=CANDIDATE_UNRESOLVED)
