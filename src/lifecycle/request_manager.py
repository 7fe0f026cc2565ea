import asyncio
import logging
import time
import uuid
from typing import Dict, List, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from config.settings import MATCH_LIMIT
from config.taxonomy import SkillTaxonomy
from database.repositories import CandidateRepository, MatchRepository, RequestRepository, utcnow
from lifecycle.response_composer import ResponseComposer
from matcher.matcher import MatchingEngine
from models.api_model import (
    CandidateResult,
    CreateRequest,
    ExtractSearchRequest,
    ExtractSearchResponse,
    IngestCandidateRequest,
    IngestCandidateResponse,
    ProcessResponse,
)
from models.candidate_model import CandidateModel
from models.extraction_model import ExtractionResult
from models.match_model import MatchResult, RequirementModel
from models.request_model import RequestIntent, RequestModel, RequestStatus
from parsers.llm_extractor import LLMSkillExtractor
from parsers.pdf_extractor import load_attachment_text
from parsers.skill_extractor import SkillExtractor
from parsers.text_normalizer import NormalizedText, normalize
from resolver.candidate_resolver import CandidateResolver
from utils.errors import (
    InvalidTransition,
    PersistenceError,
    RequestNotFound,
    ResolutionError,
    UnsupportedAttachmentError,
)

logger = logging.getLogger(__name__)

SOFT_SKILLS = "soft_skills"


def infer_intent(message_text: str, attachment_url: Optional[str] = None) -> RequestIntent:
    # Chat text is always a search; resumes arrive as attachments or with an explicit intent
    if attachment_url:
        return RequestIntent.INGESTION
    return RequestIntent.SEARCH


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class RequestLifecycleManager:
    """
    Drives a request from intake to a stored response.

    Exclusivity per request comes from the status compare-and-set in the
    repository: only the caller that moves a request out of ``pending`` (or
    ``failed`` for a retry) runs the pipeline.
    """

    def __init__(
        self,
        requests: RequestRepository,
        candidates: CandidateRepository,
        matches: MatchRepository,
        extractor: SkillExtractor,
        resolver: CandidateResolver,
        matcher: MatchingEngine,
        composer: Optional[ResponseComposer] = None,
        llm_extractor: Optional[LLMSkillExtractor] = None,
        match_limit: int = MATCH_LIMIT,
    ):
        self.requests = requests
        self.candidates = candidates
        self.matches = matches
        self.extractor = extractor
        self.resolver = resolver
        self.matcher = matcher
        self.composer = composer or ResponseComposer()
        self.llm_extractor = llm_extractor
        self.match_limit = match_limit

    # -----------------------------------
    # Intake
    # -----------------------------------
    async def create(self, payload: CreateRequest) -> RequestModel:
        if payload.source_message_id:
            existing = await self.requests.find_by_source_message_id(payload.source_message_id)
            if existing:
                logger.info("Duplicate intake of message %s, returning request %s",
                            payload.source_message_id, existing.request_id)
                return existing

        request = RequestModel(
            request_id=str(uuid.uuid4()),
            source_channel=payload.source_channel,
            source_user=payload.source_user,
            source_message_id=payload.source_message_id,
            message_text=payload.message_text,
            attachment_url=payload.attachment_url,
            intent=payload.intent or infer_intent(payload.message_text, payload.attachment_url),
            created_at=utcnow(),
        )
        try:
            await self.requests.insert(request)
        except DuplicateKeyError:
            # Same upstream message delivered twice at the same time
            existing = await self.requests.find_by_source_message_id(payload.source_message_id)
            if existing is None:
                raise
            return existing

        logger.info("Created %s request %s from %s", request.intent.value, request.request_id, request.source_channel)
        return request

    async def get(self, request_id: str) -> RequestModel:
        request = await self.requests.get(request_id)
        if request is None:
            raise RequestNotFound(request_id)
        return request

    # -----------------------------------
    # Processing
    # -----------------------------------
    async def process(self, request_id: str) -> ProcessResponse:
        return await self._claim_and_run(request_id, RequestStatus.PENDING, "process")

    async def retry(self, request_id: str) -> ProcessResponse:
        return await self._claim_and_run(request_id, RequestStatus.FAILED, "retry")

    async def _claim_and_run(self, request_id: str, from_status: RequestStatus, operation: str) -> ProcessResponse:
        claimed = await self.requests.transition(
            request_id,
            from_status,
            RequestStatus.PROCESSING,
            fields={"error": None},
            increment_attempts=True,
        )
        if claimed is None:
            current = await self.requests.get(request_id)
            if current is None:
                raise RequestNotFound(request_id)
            raise InvalidTransition(request_id, current.status.value, operation)

        logger.info("Request %s: %s -> processing (attempt %d)", request_id, from_status.value, claimed.attempts)
        return await self._run_pipeline(claimed)

    async def _run_pipeline(self, request: RequestModel) -> ProcessResponse:
        started = time.perf_counter()
        try:
            response, skills = await self._execute(request, started)
            stored = await self.requests.transition(
                request.request_id,
                RequestStatus.PROCESSING,
                RequestStatus.COMPLETED,
                fields={
                    "extracted_skills": skills,
                    "response": response.model_dump(mode="json"),
                    "processed_at": utcnow(),
                },
            )
        except Exception as e:
            reason = f"{type(e).__name__}: {e}"
            logger.error("Request %s failed: %s", request.request_id, reason)
            failed = ProcessResponse(
                request_id=request.request_id,
                status=RequestStatus.FAILED,
                processing_time_ms=_elapsed_ms(started),
                error=reason,
            )
            try:
                await self.requests.transition(
                    request.request_id,
                    RequestStatus.PROCESSING,
                    RequestStatus.FAILED,
                    fields={"error": reason, "processed_at": utcnow()},
                )
            except PersistenceError:
                logger.exception("Could not record failure of request %s", request.request_id)
            return failed

        if stored is None:
            logger.warning("Request %s left 'processing' before it completed", request.request_id)
        logger.info("Request %s completed with %d matches in %d ms",
                    request.request_id, len(response.matches), response.processing_time_ms)
        return response

    async def _execute(self, request: RequestModel, started: float) -> Tuple[ProcessResponse, List[str]]:
        text = await self._request_text(request)
        extraction = await self.extract(normalize(text))
        skills = extraction.all_skills()
        candidate_result: Optional[CandidateResult] = None

        if request.intent == RequestIntent.INGESTION:
            candidate_result, results, pool = await self._ingest_and_match(
                extraction,
                resume_url=request.attachment_url,
                extraction_source=request.source_channel,
                requirement_id=request.request_id,
            )
        else:
            requirement = self.requirement_from(extraction, requirement_id=request.request_id)
            results, pool = await self.search(requirement)

        await self.matches.insert_many(results, request.request_id)
        entries = self.composer.match_entries(results, pool)
        response = ProcessResponse(
            request_id=request.request_id,
            status=RequestStatus.COMPLETED,
            matches=entries,
            summary=self.composer.overall_summary(entries, skills),
            processing_time_ms=_elapsed_ms(started),
            candidate_result=candidate_result,
        )
        return response, skills

    async def _request_text(self, request: RequestModel) -> str:
        if not request.attachment_url:
            return request.message_text
        try:
            return await asyncio.to_thread(load_attachment_text, request.attachment_url)
        except UnsupportedAttachmentError as e:
            logger.warning("Request %s: %s", request.request_id, e)
            return ""

    async def _ingest_and_match(self, extraction, resume_url, extraction_source, requirement_id):
        try:
            outcome = await self.resolver.upsert(extraction, resume_url=resume_url, extraction_source=extraction_source)
        except ResolutionError as e:
            logger.warning("Request %s: %s", requirement_id, e)
            return self.composer.unresolved_candidate(str(e)), [], {}

        if outcome.low_confidence:
            logger.warning("Candidate %s resolved by name only, several records matched", outcome.candidate_id)
        candidate = await self.candidates.get(outcome.candidate_id)
        results, pool = [], {}
        if candidate is not None:
            requirement = self.requirement_from_candidate(candidate, requirement_id)
            results, pool = await self.search(requirement, exclude=candidate.candidate_id)
        return self.composer.candidate_result(outcome), results, pool

    # -----------------------------------
    # Pipeline steps
    # -----------------------------------
    async def extract(self, normalized: NormalizedText) -> ExtractionResult:
        extraction = self.extractor.extract(normalized.text, normalized.language)
        if (
            extraction.total_skills_found == 0
            and self.llm_extractor is not None
            and self.llm_extractor.is_worth_trying(normalized.text)
        ):
            names = await self.llm_extractor.extract_skills(normalized.text)
            extraction = self.extractor.with_generative_skills(extraction, names)
            logger.info("Generative fallback proposed %d skills", len(names))
        return extraction

    @staticmethod
    def requirement_from(
        extraction: ExtractionResult,
        requirement_id: Optional[str] = None,
        required_skills: Optional[List[str]] = None,
        preferred_skills: Optional[List[str]] = None,
        location: Optional[str] = None,
    ) -> RequirementModel:
        """Every technical skill named is required; soft skills are a plus."""
        soft = extraction.skills.soft_skills
        return RequirementModel(
            requirement_id=requirement_id,
            required_skills=required_skills if required_skills is not None
            else [s for s in extraction.all_skills() if s not in soft],
            preferred_skills=preferred_skills if preferred_skills is not None else list(soft),
            seniority=extraction.seniority,
            location=location or extraction.contact.location,
        )

    @staticmethod
    def requirement_from_candidate(candidate: CandidateModel, requirement_id: Optional[str] = None) -> RequirementModel:
        return RequirementModel(
            requirement_id=requirement_id,
            required_skills=[s.name for s in candidate.skills if s.category != SOFT_SKILLS],
            preferred_skills=[s.name for s in candidate.skills if s.category == SOFT_SKILLS],
        )

    async def search(
        self,
        requirement: RequirementModel,
        exclude: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[MatchResult], Dict[str, CandidateModel]]:
        if not requirement.required_skills and not requirement.preferred_skills:
            return [], {}
        pool = {c.candidate_id: c for c in await self.candidates.list_all() if c.candidate_id != exclude}
        results = self.matcher.rank(requirement, pool.values(), limit=limit or self.match_limit)
        return results, pool

    # -----------------------------------
    # Synchronous combined operations
    # -----------------------------------
    async def extract_and_search(self, payload: ExtractSearchRequest) -> ExtractSearchResponse:
        started = time.perf_counter()
        extraction = await self.extract(normalize(payload.text))
        requirement = self.requirement_from(
            extraction,
            required_skills=payload.required_skills,
            preferred_skills=payload.preferred_skills,
            location=payload.location,
        )
        results, pool = await self.search(requirement, limit=payload.limit)
        await self.matches.insert_many(results)
        entries = self.composer.match_entries(results, pool)
        return ExtractSearchResponse(
            extracted_skills=self.composer.extracted_block(extraction),
            matching_employees=entries,
            total_matches=len(entries),
            processing_time=_elapsed_ms(started),
        )

    async def ingest_candidate(self, payload: IngestCandidateRequest) -> IngestCandidateResponse:
        extraction = await self.extract(normalize(payload.text))
        # ResolutionError propagates: the caller sent a resume with no identity
        outcome = await self.resolver.upsert(
            extraction,
            resume_url=payload.file_url,
            extraction_source=payload.extraction_source,
        )
        return IngestCandidateResponse(candidate_result=self.composer.candidate_result(outcome))


def build_manager(db, taxonomy=None, llm_extractor: Optional[LLMSkillExtractor] = None) -> RequestLifecycleManager:
    """Wire repositories and engines around one database handle."""
    taxonomy = taxonomy or SkillTaxonomy.from_file()
    candidates = CandidateRepository(db)
    return RequestLifecycleManager(
        requests=RequestRepository(db),
        candidates=candidates,
        matches=MatchRepository(db),
        extractor=SkillExtractor(taxonomy),
        resolver=CandidateResolver(candidates),
        matcher=MatchingEngine(taxonomy),
        llm_extractor=llm_extractor,
    )
