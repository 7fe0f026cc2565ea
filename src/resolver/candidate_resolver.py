import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from config.taxonomy import fold
from database.repositories import CandidateRepository, utcnow
from models.candidate_model import CandidateModel, CandidateSkill, UpsertAction, UpsertOutcome
from models.extraction_model import ExtractionResult
from utils.errors import PersistenceError, ResolutionError

logger = logging.getLogger(__name__)

PROFICIENCY_BY_CATEGORY = {
    "programming_languages": 4,
}
DEFAULT_PROFICIENCY = 3

CREATED_SUMMARY = ["New candidate created"]
NO_CHANGES_SUMMARY = ["No changes detected"]


# ================== KEYS ==================

def email_key(email: Optional[str]) -> Optional[str]:
    key = (email or "").strip().lower()
    return key or None


def name_key(name: Optional[str]) -> Optional[str]:
    return fold(name) or None


def location_key(location: Optional[str]) -> Optional[str]:
    return fold(location) or None


def _scalar_updates(extraction: ExtractionResult) -> List[Tuple[str, str, Optional[str]]]:
    # (candidate field, label used in change summaries, extracted value)
    return [
        ("name", "name", extraction.candidate_name),
        ("phone", "phone", extraction.contact.phone),
        ("location", "location", extraction.contact.location),
        ("bio", "bio", extraction.summary),
        ("current_project", "current project", extraction.current_project),
        ("level", "level", extraction.seniority.value if extraction.seniority else None),
    ]


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class CandidateResolver:
    """
    Idempotent create-or-update of candidates from extraction results.

    Upserts for the same identity key are serialised by an in-process lock;
    across processes the unique email_key index decides which insert wins,
    and the loser falls back to the update path. A key's lock is dropped once
    its last user leaves, so idle keys hold no state.
    """

    def __init__(self, repository: CandidateRepository):
        self.repository = repository
        self._locks: Dict[str, _KeyLock] = {}

    @asynccontextmanager
    async def _locked(self, key: str):
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    # -----------------------------
    # Public API
    # -----------------------------
    async def upsert(
        self,
        extraction: ExtractionResult,
        resume_url: Optional[str] = None,
        extraction_source: str = "api",
    ) -> UpsertOutcome:
        e_key = email_key(extraction.contact.email)
        n_key = name_key(extraction.candidate_name)
        l_key = location_key(extraction.contact.location)
        if not e_key and not n_key:
            raise ResolutionError("Extraction has neither an email nor a name to identify the candidate")

        lock_key = f"email:{e_key}" if e_key else f"name:{n_key}"
        async with self._locked(lock_key):
            existing, low_confidence = await self._resolve(e_key, n_key, l_key)

            if existing is None:
                candidate = self._new_candidate(extraction, e_key, n_key, l_key, resume_url, extraction_source)
                try:
                    await self.repository.insert(candidate)
                except DuplicateKeyError:
                    # Another process inserted the same email first
                    logger.info("Concurrent insert detected for %s, updating instead", e_key)
                    existing = await self.repository.find_by_email_key(e_key) if e_key else None
                    if existing is None:
                        raise PersistenceError(f"Duplicate key on insert but no candidate found for {lock_key}")
                else:
                    logger.info("Created candidate %s (%s)", candidate.candidate_id, lock_key)
                    return UpsertOutcome(
                        candidate_id=candidate.candidate_id,
                        action=UpsertAction.CREATED,
                        changes_detected=True,
                        change_summary=list(CREATED_SUMMARY),
                    )

            return await self._update(existing, extraction, resume_url, extraction_source, low_confidence)

    # -----------------------------
    # Resolution
    # -----------------------------
    async def _resolve(
        self, e_key: Optional[str], n_key: Optional[str], l_key: Optional[str]
    ) -> Tuple[Optional[CandidateModel], bool]:
        if e_key:
            return await self.repository.find_by_email_key(e_key), False

        matches = await self.repository.find_by_name_key(n_key)
        if not matches:
            return None, False

        if l_key:
            same_place = [c for c in matches if c.location_key == l_key]
            matches = same_place or matches

        if len(matches) > 1:
            logger.warning(
                "Ambiguous name match for '%s': %d candidates, using most recently updated %s",
                n_key, len(matches), matches[0].candidate_id,
            )
            return matches[0], True
        return matches[0], False

    # -----------------------------
    # Create
    # -----------------------------
    def _new_candidate(self, extraction, e_key, n_key, l_key, resume_url, extraction_source) -> CandidateModel:
        now = utcnow()
        return CandidateModel(
            candidate_id=str(uuid.uuid4()),
            name=extraction.candidate_name,
            email=e_key,
            phone=extraction.contact.phone,
            level=extraction.seniority.value if extraction.seniority else None,
            location=extraction.contact.location,
            bio=extraction.summary,
            current_project=extraction.current_project,
            skills=[self._skill(name, extraction) for name in _unique(extraction.all_skills())],
            resume_url=resume_url,
            extraction_source=extraction_source,
            email_key=e_key,
            name_key=n_key,
            location_key=l_key,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _skill(name: str, extraction: ExtractionResult) -> CandidateSkill:
        category = extraction.skills.category_of(name) or "tools_frameworks"
        years = extraction.skill_years.get(name, extraction.years_experience or 0.0)
        return CandidateSkill(
            name=name,
            category=category,
            proficiency=PROFICIENCY_BY_CATEGORY.get(category, DEFAULT_PROFICIENCY),
            years_experience=years,
        )

    # -----------------------------
    # Diff + update
    # -----------------------------
    async def _update(
        self,
        existing: CandidateModel,
        extraction: ExtractionResult,
        resume_url: Optional[str],
        extraction_source: str,
        low_confidence: bool,
    ) -> UpsertOutcome:
        changes: List[str] = []
        fields = {}

        for field, label, value in _scalar_updates(extraction):
            if not value or not str(value).strip():
                continue
            current = getattr(existing, field)
            if fold(current) != fold(value):
                fields[field] = value
                changes.append(f"Updated {label}: '{current or ''}' -> '{value}'")

        skills = [s.model_copy() for s in existing.skills]
        by_key = {fold(s.name): s for s in skills}
        added = []
        for name in _unique(extraction.all_skills()):
            current = by_key.get(fold(name))
            if current is None:
                skill = self._skill(name, extraction)
                skills.append(skill)
                by_key[fold(name)] = skill
                added.append(name)
                continue
            stated = extraction.skill_years.get(name)
            if stated is not None and stated > current.years_experience:
                changes.append(f"Updated {current.name} experience: {current.years_experience:g} -> {stated:g} years")
                current.years_experience = stated

        if added:
            changes.insert(0, f"Added skills: {', '.join(added)}")

        extracted_keys = {fold(n) for n in extraction.all_skills()}
        missing = [s.name for s in existing.skills if fold(s.name) not in extracted_keys]

        if not changes:
            summary = list(NO_CHANGES_SUMMARY)
            if missing and extracted_keys:
                summary.append(f"Skills not mentioned this time (kept): {', '.join(missing)}")
            logger.info("No changes for candidate %s", existing.candidate_id)
            return UpsertOutcome(
                candidate_id=existing.candidate_id,
                action=UpsertAction.SKIPPED,
                changes_detected=False,
                change_summary=summary,
                low_confidence=low_confidence,
            )

        if missing and extracted_keys:
            changes.append(f"Skills not mentioned this time (kept): {', '.join(missing)}")

        fields["skills"] = [s.model_dump() for s in skills]
        if "name" in fields:
            fields["name_key"] = name_key(fields["name"])
        if "location" in fields:
            fields["location_key"] = location_key(fields["location"])
        if resume_url:
            fields["resume_url"] = resume_url
        fields["extraction_source"] = extraction_source
        fields["updated_at"] = utcnow()

        await self.repository.update(existing.candidate_id, fields)
        logger.info("Updated candidate %s: %s", existing.candidate_id, "; ".join(changes))
        return UpsertOutcome(
            candidate_id=existing.candidate_id,
            action=UpsertAction.UPDATED,
            changes_detected=True,
            change_summary=changes,
            low_confidence=low_confidence,
        )


def _unique(names):
    seen = set()
    result = []
    for name in names:
        key = fold(name)
        if key and key not in seen:
            seen.add(key)
            result.append(name)
    return result
