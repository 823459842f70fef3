"""
Record stores.

Both backends expose the same capability set over three fixed namespaces:
read everything, replace everything, upsert by ``id``, delete by ``id``,
delete by field match, and clear. Which backend is used is decided once in
``get_store``; nothing downstream branches on it.
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List

import config
import database

logger = logging.getLogger(__name__)

STUDENTS = "tuition_students"
ATTENDANCE = "tuition_attendance"
HOMEWORK = "tuition_homework"
NAMESPACES = (STUDENTS, ATTENDANCE, HOMEWORK)


class StoreError(Exception):
    def __init__(self, namespace: str, operation: str, cause: Exception):
        super().__init__(f"{operation} on {namespace} failed: {cause}")
        self.namespace = namespace
        self.operation = operation
        self.cause = cause


def _matches(document: Dict[str, Any], predicate: Dict[str, Any]) -> bool:
    return all(document.get(k) == v for k, v in predicate.items())


class RecordStore(ABC):
    name = "abstract"

    @abstractmethod
    def read_all(self, namespace: str) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def replace_all(self, namespace: str, documents: Iterable[Dict[str, Any]]) -> None:
        ...

    @abstractmethod
    def upsert(self, namespace: str, document: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete_by_id(self, namespace: str, document_id: str) -> int:
        ...

    @abstractmethod
    def delete_where(self, namespace: str, predicate: Dict[str, Any]) -> int:
        """Delete every document whose fields equal all values in ``predicate``."""

    def clear(self) -> None:
        for namespace in NAMESPACES:
            self.replace_all(namespace, [])

    def describe(self) -> Dict[str, Any]:
        return {"backend": self.name}


class JsonFileStore(RecordStore):
    """One JSON array per namespace, stored as ``<directory>/<namespace>.json``."""

    name = "local"

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, namespace: str) -> str:
        return os.path.join(self.directory, f"{namespace}.json")

    def read_all(self, namespace):
        path = self._path(namespace)
        if not os.path.exists(path):
            return []
        try:
            with open(path, encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            logger.exception("Reading %s failed", path)
            raise StoreError(namespace, "read_all", e) from e

    def replace_all(self, namespace, documents):
        documents = list(documents)
        # Write to a sibling temp file first so readers never see half a file
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(documents, fh, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._path(namespace))
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            logger.exception("Writing %s failed", namespace)
            raise StoreError(namespace, "replace_all", e) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.remove(tmp_path)

    def upsert(self, namespace, document):
        documents = self.read_all(namespace)
        for index, existing in enumerate(documents):
            if existing.get("id") == document["id"]:
                documents[index] = document
                break
        else:
            documents.append(document)
        self.replace_all(namespace, documents)

    def delete_by_id(self, namespace, document_id):
        return self.delete_where(namespace, {"id": document_id})

    def delete_where(self, namespace, predicate):
        documents = self.read_all(namespace)
        kept = [d for d in documents if not _matches(d, predicate)]
        removed = len(documents) - len(kept)
        if removed:
            self.replace_all(namespace, kept)
        return removed

    def describe(self):
        return {
            "backend": self.name,
            "directory": os.path.abspath(self.directory),
            "collections": [n for n in NAMESPACES if os.path.exists(self._path(n))],
        }


class MongoStore(RecordStore):
    """One MongoDB collection per namespace, documents keyed by their ``id`` field."""

    name = "mongo"

    def __init__(self, db):
        if db is None:
            raise StoreError("*", "connect", RuntimeError("Database not configured"))
        self.db = db

    def _run(self, namespace, operation, fn):
        try:
            return fn()
        except StoreError:
            raise
        except Exception as e:
            logger.exception("%s on %s failed", operation, namespace)
            raise StoreError(namespace, operation, e) from e

    def read_all(self, namespace):
        return self._run(
            namespace, "read_all",
            lambda: database.get_documents(namespace, database=self.db),
        )

    def replace_all(self, namespace, documents):
        documents = list(documents)

        def replace():
            # Write the new set before pruning, so a failure leaves a superset behind
            collection = self.db[namespace]
            for document in documents:
                collection.replace_one({"id": document["id"]}, dict(document), upsert=True)
            collection.delete_many({"id": {"$nin": [d["id"] for d in documents]}})

        self._run(namespace, "replace_all", replace)

    def upsert(self, namespace, document):
        self._run(
            namespace, "upsert",
            lambda: self.db[namespace].replace_one({"id": document["id"]}, dict(document), upsert=True),
        )

    def delete_by_id(self, namespace, document_id):
        result = self._run(
            namespace, "delete_by_id",
            lambda: self.db[namespace].delete_one({"id": document_id}),
        )
        return result.deleted_count

    def delete_where(self, namespace, predicate):
        result = self._run(
            namespace, "delete_where",
            lambda: self.db[namespace].delete_many(dict(predicate)),
        )
        return result.deleted_count

    def clear(self):
        for namespace in NAMESPACES:
            self._run(namespace, "clear", lambda n=namespace: self.db[n].delete_many({}))

    def describe(self):
        info = {"backend": self.name, "database_name": getattr(self.db, "name", None)}
        info["collections"] = self._run("*", "describe", lambda: self.db.list_collection_names())[:10]
        return info


def get_store() -> RecordStore:
    if config.STORE_BACKEND == "mongo":
        return MongoStore(database.db)
    if config.STORE_BACKEND != "local":
        logger.warning("Unknown STORE_BACKEND %r, using local store", config.STORE_BACKEND)
    return JsonFileStore(config.DATA_DIR)
