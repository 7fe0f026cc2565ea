import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from database.mongo import CANDIDATES, MATCHES, REQUESTS
from models.candidate_model import CandidateModel
from models.match_model import MatchResult
from models.request_model import RequestModel, RequestStatus
from utils.errors import PersistenceError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _run(fn, *args, **kwargs):
    """Run a blocking pymongo call off the event loop."""
    try:
        return await asyncio.to_thread(fn, *args, **kwargs)
    except DuplicateKeyError:
        raise
    except PyMongoError as e:
        raise PersistenceError(str(e)) from e


def _plain(value):
    # BSON has no notion of Enum members
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def to_document(model, **kwargs) -> Dict[str, Any]:
    return _plain(model.model_dump(mode="python", **kwargs))


# ================== CANDIDATES ==================

class CandidateRepository:
    """
    Candidate store with an in-memory copy of the whole pool.

    The cached pool is dropped on every write made through this repository,
    so matching always sees the candidates as of the last write.
    """

    def __init__(self, db):
        self.collection = db[CANDIDATES]
        self._cache: Optional[List[CandidateModel]] = None
        self._version = 0

    def invalidate_cache(self):
        self._version += 1
        self._cache = None

    async def list_all(self) -> List[CandidateModel]:
        if self._cache is not None:
            return list(self._cache)
        version = self._version
        docs = await _run(lambda: list(self.collection.find({}, {"_id": 0})))
        pool = [CandidateModel(**d) for d in docs]
        # A write that landed while reading makes this snapshot stale
        if version == self._version:
            self._cache = pool
        return list(pool)

    async def get(self, candidate_id: str) -> Optional[CandidateModel]:
        doc = await _run(self.collection.find_one, {"candidate_id": candidate_id}, {"_id": 0})
        return CandidateModel(**doc) if doc else None

    async def find_by_email_key(self, email_key: str) -> Optional[CandidateModel]:
        doc = await _run(self.collection.find_one, {"email_key": email_key}, {"_id": 0})
        return CandidateModel(**doc) if doc else None

    async def find_by_name_key(self, name_key: str) -> List[CandidateModel]:
        """Candidates sharing a normalised name, most recently updated first."""
        docs = await _run(
            lambda: list(
                self.collection.find({"name_key": name_key}, {"_id": 0})
                .sort([("updated_at", DESCENDING), ("candidate_id", 1)])
            )
        )
        return [CandidateModel(**d) for d in docs]

    async def insert(self, candidate: CandidateModel) -> CandidateModel:
        # None fields are left out so the sparse email_key index skips them
        doc = to_document(candidate, exclude_none=True)
        try:
            await _run(self.collection.insert_one, doc)
        finally:
            self.invalidate_cache()
        return candidate

    async def update(self, candidate_id: str, fields: Dict[str, Any]) -> None:
        try:
            await _run(self.collection.update_one, {"candidate_id": candidate_id}, {"$set": _plain(fields)})
        finally:
            self.invalidate_cache()

    async def count(self) -> int:
        return await _run(self.collection.count_documents, {})


# ================== REQUESTS ==================

class RequestRepository:

    def __init__(self, db):
        self.collection = db[REQUESTS]

    async def insert(self, request: RequestModel) -> RequestModel:
        await _run(self.collection.insert_one, to_document(request, exclude_none=True))
        return request

    async def get(self, request_id: str) -> Optional[RequestModel]:
        doc = await _run(self.collection.find_one, {"request_id": request_id}, {"_id": 0})
        return RequestModel(**doc) if doc else None

    async def find_by_source_message_id(self, source_message_id: str) -> Optional[RequestModel]:
        doc = await _run(self.collection.find_one, {"source_message_id": source_message_id}, {"_id": 0})
        return RequestModel(**doc) if doc else None

    async def transition(
        self,
        request_id: str,
        from_status: RequestStatus,
        to_status: RequestStatus,
        fields: Optional[Dict[str, Any]] = None,
        increment_attempts: bool = False,
    ) -> Optional[RequestModel]:
        """
        Atomically move a request from ``from_status`` to ``to_status``.

        Returns the updated request, or None when the request is missing or
        is no longer in ``from_status`` (another worker got there first).
        """
        update: Dict[str, Any] = {"$set": {"status": to_status.value, **_plain(fields or {})}}
        if increment_attempts:
            update["$inc"] = {"attempts": 1}
        doc = await _run(
            self.collection.find_one_and_update,
            {"request_id": request_id, "status": from_status.value},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return None
        doc.pop("_id", None)
        return RequestModel(**doc)


# ================== MATCHES ==================

class MatchRepository:

    def __init__(self, db):
        self.collection = db[MATCHES]

    async def insert_many(self, results: List[MatchResult], request_id: Optional[str] = None) -> int:
        if not results:
            return 0
        docs = []
        for r in results:
            doc = to_document(r)
            doc["request_id"] = request_id
            docs.append(doc)
        await _run(self.collection.insert_many, docs)
        return len(docs)

    async def for_request(self, request_id: str) -> List[MatchResult]:
        docs = await _run(
            lambda: list(self.collection.find({"request_id": request_id}, {"_id": 0, "request_id": 0}))
        )
        return [MatchResult(**d) for d in docs]
