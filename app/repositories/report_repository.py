import asyncio
import logging
from typing import List

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, ExecutionTimeout, ServerSelectionTimeoutError

from app.errors import DatabaseUnavailableError, ReportNotFoundError
from app.models.report import Report

logger = logging.getLogger(__name__)

DB_UNAVAILABLE_ERRORS = (asyncio.TimeoutError, ServerSelectionTimeoutError, ConnectionFailure, ExecutionTimeout)


def parse_report_id(report_id: str) -> ObjectId:
    try:
        return ObjectId(report_id)
    except (InvalidId, TypeError):
        raise ReportNotFoundError(f"No report with id {report_id}")


class ReportRepository:
    """CRUD over the `reports` collection. Every call is bounded by `timeout` seconds."""

    def __init__(self, collection, timeout: float = 25.0):
        self.collection = collection
        self.timeout = timeout

    async def _run(self, operation: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except DB_UNAVAILABLE_ERRORS as e:
            logger.error(f"Database unavailable during {operation}: {type(e).__name__}: {str(e)}")
            raise DatabaseUnavailableError(
                "The server is having trouble connecting to the database. Please try again later."
            )

    async def list(self) -> List[Report]:
        documents = await self._run("list", self.collection.find().to_list(length=None))
        logger.info(f"Successfully fetched {len(documents)} reports")
        return [Report.from_document(doc) for doc in documents]

    async def get(self, report_id: str) -> Report:
        oid = parse_report_id(report_id)
        document = await self._run("get", self.collection.find_one({"_id": oid}))
        if not document:
            raise ReportNotFoundError(f"No report with id {report_id}")
        return Report.from_document(document)

    async def create(self, data: dict) -> Report:
        document = dict(data)
        result = await self._run("create", self.collection.insert_one(document))
        document["_id"] = result.inserted_id
        logger.info(f"New report saved successfully: {result.inserted_id}")
        return Report.from_document(document)

    async def update(self, report_id: str, partial: dict) -> Report:
        oid = parse_report_id(report_id)
        if not partial:
            return await self.get(report_id)
        document = await self._run(
            "update",
            self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": partial},
                return_document=ReturnDocument.AFTER,
            ),
        )
        if not document:
            raise ReportNotFoundError(f"No report with id {report_id}")
        logger.info(f"Report updated successfully: {report_id}")
        return Report.from_document(document)

    async def delete(self, report_id: str) -> bool:
        oid = parse_report_id(report_id)
        result = await self._run("delete", self.collection.delete_one({"_id": oid}))
        if result.deleted_count == 0:
            raise ReportNotFoundError(f"No report with id {report_id}")
        logger.info(f"Report deleted successfully: {report_id}")
        return True
