"""
College Reference Service - read-only lookups of college documents.

Documents in the `colleges` collection look like:
    {
        "college_id": "aiims-delhi",
        "name": "AIIMS New Delhi",
        "location": "New Delhi",
        "state": "Delhi",
        "type": "government",
        "courses": ["MBBS"],
        "annual_fees_min": 1628, "annual_fees_max": 5856,
        "safety_score": 8.5, "placement_score": 9.0,
        "hostel_available": true
    }
Missing safety/placement scores fall back to the College defaults.
"""

import logging
from typing import Dict, Iterable, Optional

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from app.core.exceptions import DataUnavailableError
from app.db.mongodb import COLLECTIONS, get_collection
from app.models.domain import (
    DEFAULT_PLACEMENT_SCORE,
    DEFAULT_SAFETY_SCORE,
    College,
    CollegeType,
    FeeRange,
)

logger = logging.getLogger(__name__)


def college_from_doc(doc: dict) -> College:
    """Map a MongoDB college document onto the College type."""
    def _number(key, default=None):
        value = doc.get(key)
        return float(value) if value is not None else default

    return College(
        id=str(doc.get("college_id") or doc.get("_id")),
        name=doc.get("name", ""),
        location=doc.get("location", ""),
        state=doc.get("state", ""),
        type=CollegeType.parse(doc.get("type", "private")),
        courses=tuple(doc.get("courses") or ()),
        fee_range=FeeRange(min=_number("annual_fees_min"), max=_number("annual_fees_max")),
        safety_score=_number("safety_score", DEFAULT_SAFETY_SCORE),
        placement_score=_number("placement_score", DEFAULT_PLACEMENT_SCORE),
        hostel_available=bool(doc.get("hostel_available", False)),
    )


class CollegeStore:
    """Interface shared by every college reference backend."""

    def get_many(self, college_ids: Iterable[str]) -> Dict[str, College]:
        """Return the known colleges among college_ids; unknown ids are omitted."""
        raise NotImplementedError


class InMemoryCollegeStore(CollegeStore):

    def __init__(self, colleges: Iterable[College] = ()):
        self._colleges = {c.id: c for c in colleges}

    def get_many(self, college_ids):
        return {cid: self._colleges[cid] for cid in set(college_ids) if cid in self._colleges}


class MongoCollegeStore(CollegeStore):
    """Reads college documents from MongoDB."""

    def __init__(self, collection: Optional[Collection] = None):
        self._collection = collection

    @property
    def collection(self) -> Collection:
        if self._collection is None:
            self._collection = get_collection(COLLECTIONS["colleges"])
        return self._collection

    def get_many(self, college_ids):
        ids = sorted(set(college_ids))
        if not ids:
            return {}
        try:
            docs = list(self.collection.find({"college_id": {"$in": ids}}))
        except PyMongoError as e:
            logger.error("College lookup failed: %s", e)
            raise DataUnavailableError("colleges collection", str(e)) from e

        colleges = {}
        for doc in docs:
            try:
                college = college_from_doc(doc)
            except (TypeError, ValueError) as e:
                logger.warning("Skipping malformed college document %s: %s", doc.get("college_id"), e)
                continue
            colleges[college.id] = college
        return colleges
