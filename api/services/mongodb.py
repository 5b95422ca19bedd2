# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with SPPG-scoped operations and connection pooling.
"""

import os
import logging
from typing import List, Dict, Optional, Any
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId

from models.base import utcnow

logger = logging.getLogger(__name__)


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Dict], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


def _stringify_id(document: Dict) -> Dict:
    if "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document


class MongoDBService:
    """MongoDB service where every tenant query is scoped by sppgId."""

    def __init__(self, connection_string: str = None, database_name: str = None):
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/bagizi_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'bagizi_dev')
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Lazily connect on first use."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True,
                    tz_aware=True
                )
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                raise

        return self._client

    @property
    def database(self) -> Database:
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        return self.database[collection_name]

    def close_connection(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Ping the server and report its version."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def _build_sppg_query(self, sppg_id: str, filters: Dict = None, include_deleted: bool = False) -> Dict:
        """Build a tenant-scoped query that hides soft-deleted records."""
        query = {"sppgId": sppg_id}

        if not include_deleted:
            query["deletedAt"] = None

        if filters:
            query.update(filters)

        return query

    def _add_timestamps(self, document: Dict, user_id: str, is_update: bool = False) -> Dict:
        now = utcnow()

        if not is_update:
            document["createdAt"] = now
            document["createdBy"] = user_id

        document["updatedAt"] = now
        document["updatedBy"] = user_id

        return document

    # Tenant-scoped operations

    def create(self, collection: str, document: Dict, user_id: str) -> str:
        """Insert a document and return its id."""
        try:
            document = self._add_timestamps(document, user_id)

            if "id" in document:
                document["_id"] = self._validate_object_id(document.pop("id"))
            elif "_id" not in document:
                document["_id"] = ObjectId()

            result = self.get_collection(collection).insert_one(document)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.error(f"Duplicate key error in {collection}: {e}")
            raise ValueError("Document with this identifier already exists")

    def find_by_sppg(self, collection: str, sppg_id: str, filters: Dict = None,
                     include_deleted: bool = False) -> List[Dict]:
        """Find documents owned by an SPPG."""
        query = self._build_sppg_query(sppg_id, filters, include_deleted)
        documents = [_stringify_id(doc) for doc in self.get_collection(collection).find(query)]

        logger.debug(f"Found {len(documents)} documents in {collection} for sppg {sppg_id}")
        return documents

    def find_one_by_sppg(self, collection: str, sppg_id: str, doc_id: str,
                         include_deleted: bool = False) -> Optional[Dict]:
        """Find one document by id inside the tenant scope."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return None

        query = self._build_sppg_query(sppg_id, {"_id": object_id}, include_deleted)
        document = self.get_collection(collection).find_one(query)

        if document is None:
            logger.debug(f"Document {doc_id} not found in {collection} for sppg {sppg_id}")
            return None
        return _stringify_id(document)

    def update_by_sppg(self, collection: str, sppg_id: str, doc_id: str,
                       updates: Dict, user_id: str) -> bool:
        """Apply a $set update inside the tenant scope."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return False

        updates = {k: v for k, v in updates.items() if k not in ("id", "_id")}
        updates = self._add_timestamps(updates, user_id, is_update=True)
        query = self._build_sppg_query(sppg_id, {"_id": object_id})

        result = self.get_collection(collection).update_one(query, {"$set": updates})

        if result.matched_count > 0:
            logger.info(f"Updated document {doc_id} in {collection}")
            return True
        logger.warning(f"No document updated for {doc_id} in {collection}")
        return False

    def upsert_by_sppg(self, collection: str, sppg_id: str, key: Dict,
                       document: Dict, user_id: str) -> None:
        """Insert or replace the single document matching key in the tenant scope."""
        query = self._build_sppg_query(sppg_id, key)
        document = self._add_timestamps(dict(document), user_id, is_update=True)
        document.pop("id", None)
        document["sppgId"] = sppg_id

        self.get_collection(collection).update_one(
            query,
            {"$set": document, "$setOnInsert": {"createdAt": utcnow(), "createdBy": user_id}},
            upsert=True
        )
        logger.info(f"Upserted document in {collection} for {key}")

    def paginate_by_sppg(self, collection: str, sppg_id: str, page: int = 1, page_size: int = 20,
                         filters: Dict = None, sort_by: str = "createdAt", sort_order: int = -1,
                         include_deleted: bool = False) -> PaginationResult:
        """Paginate tenant documents with sorting and filtering."""
        query = self._build_sppg_query(sppg_id, filters, include_deleted)
        collection_obj = self.get_collection(collection)

        skip = (page - 1) * page_size
        total = collection_obj.count_documents(query)
        cursor = collection_obj.find(query).sort(sort_by, sort_order).skip(skip).limit(page_size)
        documents = [_stringify_id(doc) for doc in cursor]

        logger.debug(f"Paginated {len(documents)} documents from {collection} (page {page})")
        return PaginationResult(documents, total, page, page_size)

    # Platform-level operations (demo requests, SPPG registry)

    def find_one(self, collection: str, doc_id: str) -> Optional[Dict]:
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return None

        document = self.get_collection(collection).find_one({"_id": object_id})
        return _stringify_id(document) if document else None

    def find(self, collection: str, filters: Dict = None) -> List[Dict]:
        return [_stringify_id(doc) for doc in self.get_collection(collection).find(filters or {})]

    def update_one(self, collection: str, doc_id: str, updates: Dict, user_id: str) -> bool:
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.warning(f"Invalid document ID {doc_id}: {e}")
            return False

        updates = {k: v for k, v in updates.items() if k not in ("id", "_id")}
        updates = self._add_timestamps(updates, user_id, is_update=True)
        result = self.get_collection(collection).update_one({"_id": object_id}, {"$set": updates})
        return result.matched_count > 0

    # Index management

    def create_indexes(self) -> None:
        """Create performance indexes for all collections."""
        logger.info("Creating MongoDB indexes...")

        sppgs = self.get_collection("sppgs")
        sppgs.create_index("code", unique=True)

        menus = self.get_collection("nutrition_menus")
        menus.create_index([("sppgId", ASCENDING), ("menuCode", ASCENDING)], unique=True)
        menus.create_index([("sppgId", ASCENDING), ("programId", ASCENDING)])

        calcs = self.get_collection("menu_calculations")
        calcs.create_index([("sppgId", ASCENDING), ("menuId", ASCENDING), ("kind", ASCENDING)], unique=True)

        schedules = self.get_collection("distribution_schedules")
        schedules.create_index([("sppgId", ASCENDING), ("distributionDate", DESCENDING)])
        schedules.create_index([("sppgId", ASCENDING), ("status", ASCENDING)])
        schedules.create_index("vehicleAssignments.vehicleId")

        schools = self.get_collection("school_beneficiaries")
        schools.create_index([("sppgId", ASCENDING), ("programId", ASCENDING), ("isActive", ASCENDING)])
        schools.create_index([("sppgId", ASCENDING), ("schoolName", ASCENDING)])

        programs = self.get_collection("nutrition_programs")
        programs.create_index([("sppgId", ASCENDING), ("programCode", ASCENDING)], unique=True)

        plans = self.get_collection("menu_plans")
        plans.create_index([("sppgId", ASCENDING), ("programId", ASCENDING), ("status", ASCENDING)])

        demo_requests = self.get_collection("demo_requests")
        demo_requests.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
        demo_requests.create_index("picEmail")

        audit_logs = self.get_collection("audit_logs")
        audit_logs.create_index([("sppgId", ASCENDING), ("timestamp", DESCENDING)])
        audit_logs.create_index([("entity", ASCENDING), ("entityId", ASCENDING)])
        audit_logs.create_index("traceId")

        logger.info("MongoDB indexes created successfully")


_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
