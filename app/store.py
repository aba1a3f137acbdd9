"""Read-only access to the portfolio collections in MongoDB."""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from app.cache import TTLCache
from app.config import Settings
from app.utils import serialize_document, serialize_documents

LOGGER = logging.getLogger(__name__)

COLLECTIONS = ("authors", "projects", "education", "resumes")

SEARCH_FIELDS: Dict[str, tuple[str, ...]] = {
    "authors": (
        "name",
        "email",
        "phone",
        "job_title",
        "linkedin_url",
        "github_url",
        "website",
        "hobbies",
    ),
    "projects": ("name", "category", "description", "technologies_used"),
    "education": ("university_name", "major", "field_of_study", "description", "student_name"),
    "resumes": ("skills", "author_name", "experience.job_title", "experience.company"),
}

Document = Dict[str, Any]


class StoreError(RuntimeError):
    """Raised when MongoDB rejects or fails a query."""


class InvalidObjectId(ValueError):
    """Raised when a path or query parameter is not a valid ObjectId."""


def parse_object_id(value: str, field: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise InvalidObjectId(f"Invalid {field}") from exc


def _contains(text: str) -> Dict[str, str]:
    """Case-insensitive substring match on user supplied text."""

    return {"$regex": re.escape(text), "$options": "i"}


class PortfolioStore:
    """Query helpers over the authors, projects, education and resumes collections."""

    def __init__(self, database: Database, cache_ttl_seconds: float = 60) -> None:
        self._db = database
        self._cache = TTLCache(cache_ttl_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PortfolioStore":
        # connect=False defers the handshake until the first query.
        client: MongoClient = MongoClient(settings.mongodb_uri, connect=False, tz_aware=True)
        return cls(client[settings.mongodb_database], settings.cache_ttl_seconds)

    def _find(self, collection: str, query: Optional[Document] = None) -> List[Document]:
        try:
            cursor = self._db[collection].find(query or {})
            return serialize_documents(cursor)
        except PyMongoError as exc:
            LOGGER.error(
                "mongo find failed",
                extra={"detail": {"collection": collection, "error": str(exc)}},
            )
            raise StoreError(f"Failed to query {collection}") from exc

    def _find_one(self, collection: str, query: Document) -> Optional[Document]:
        try:
            document = self._db[collection].find_one(query)
        except PyMongoError as exc:
            LOGGER.error(
                "mongo find_one failed",
                extra={"detail": {"collection": collection, "error": str(exc)}},
            )
            raise StoreError(f"Failed to query {collection}") from exc
        return serialize_document(document) if document else None

    def _count(self, collection: str) -> int:
        try:
            return self._db[collection].count_documents({})
        except PyMongoError as exc:
            LOGGER.error(
                "mongo count failed",
                extra={"detail": {"collection": collection, "error": str(exc)}},
            )
            raise StoreError(f"Failed to count {collection}") from exc

    def _all(self, collection: str) -> List[Document]:
        return self._cache.get_or_load(collection, lambda: self._find(collection))

    # Authors

    def all_authors(self) -> List[Document]:
        return self._all("authors")

    def author_by_name(self, name: str) -> Optional[Document]:
        return self._find_one("authors", {"name": _contains(name)})

    def author_by_email(self, email: str) -> Optional[Document]:
        return self._find_one("authors", {"email": email})

    def count_authors(self) -> int:
        return self._count("authors")

    # Projects

    def all_projects(self) -> List[Document]:
        return self._all("projects")

    def project_by_name(self, name: str) -> Optional[Document]:
        return self._find_one("projects", {"name": _contains(name)})

    def projects_by_category(self, category: str) -> List[Document]:
        return self._find("projects", {"category": _contains(category)})

    def projects_by_technology(self, technology: str) -> List[Document]:
        return self._find("projects", {"technologies_used": _contains(technology)})

    def projects_by_author(self, author_id: str) -> List[Document]:
        return self._find("projects", {"author_id": parse_object_id(author_id, "author ID")})

    def count_projects(self) -> int:
        return self._count("projects")

    # Education

    def all_education(self) -> List[Document]:
        return self._all("education")

    def education_by_university(self, university: str) -> List[Document]:
        return self._find("education", {"university_name": _contains(university)})

    def education_by_major(self, major: str) -> List[Document]:
        return self._find("education", {"major": _contains(major)})

    def education_by_student(self, student_id: str) -> List[Document]:
        return self._find("education", {"student_id": parse_object_id(student_id, "student ID")})

    def count_education(self) -> int:
        return self._count("education")

    # Resumes

    def all_resumes(self) -> List[Document]:
        return self._all("resumes")

    def resume_by_author(self, author_id: str) -> Optional[Document]:
        return self._find_one("resumes", {"author_id": parse_object_id(author_id, "author ID")})

    def resumes_by_skill(self, skill: str) -> List[Document]:
        return self._find("resumes", {"skills": _contains(skill)})

    def count_resumes(self) -> int:
        return self._count("resumes")

    def search_all(self, query: str) -> Dict[str, List[Document]]:
        """Match every whitespace-separated term against each collection.

        An empty query returns every document, which gives the chatbot the
        full portfolio as context for general questions.
        """

        terms = query.lower().split()
        results: Dict[str, List[Document]] = {}
        if not terms:
            for collection in COLLECTIONS:
                results[collection] = self._all(collection)
            return results

        pattern = {"$regex": "|".join(re.escape(term) for term in terms), "$options": "i"}
        for collection in COLLECTIONS:
            search = {"$or": [{field: pattern} for field in SEARCH_FIELDS[collection]]}
            results[collection] = self._find(collection, search)
        return results
