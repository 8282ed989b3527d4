# repositories/attendance_repository.py
import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple
from uuid import uuid4

from bson.objectid import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import translate_mongo_errors
from exceptions import DuplicateAttendanceRecord
from models.attendance_model import AttendanceRecord, AttendanceStatus, Location
from utils.date_utils import utc_now
from utils.query_utils import build_attendance_query_filters, build_status_filter

logger = logging.getLogger(__name__)


class AttendanceRepository(ABC):
    """
    Sole reader/writer of attendance records.

    Implementations must make `create` fail atomically with
    DuplicateAttendanceRecord when (employee_id, date) is taken, and make
    `update_set_punch_out` a conditional write that only applies while
    punchOutTime is unset.
    """

    async def ensure_indexes(self) -> None:
        return None

    @abstractmethod
    async def find_for_day(self, employee_id: str, day: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    async def find_active_for_day(self, employee_id: str, day: date) -> Optional[AttendanceRecord]:
        record = await self.find_for_day(employee_id, day)
        if record is not None and record.status == AttendanceStatus.PUNCHED_IN:
            return record
        return None

    @abstractmethod
    async def find_by_day(self, day: date) -> List[AttendanceRecord]:
        raise NotImplementedError

    async def find_active_by_day(self, day: date) -> List[AttendanceRecord]:
        records = await self.find_by_day(day)
        return [r for r in records if r.status == AttendanceStatus.PUNCHED_IN]

    @abstractmethod
    async def find_all(
        self,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[AttendanceRecord]:
        """Records newest first (date desc, then punch-in desc)."""
        raise NotImplementedError

    @abstractmethod
    async def create(self, record: AttendanceRecord) -> AttendanceRecord:
        raise NotImplementedError

    @abstractmethod
    async def update_set_punch_out(
        self,
        record_id: str,
        timestamp: datetime,
        total_hours: float,
        notes: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> Optional[AttendanceRecord]:
        """Returns the updated record, or None when there was nothing to close."""
        raise NotImplementedError


class MongoAttendanceRepository(AttendanceRepository):
    def __init__(self, collection):
        self._collection = collection

    @translate_mongo_errors
    async def ensure_indexes(self) -> None:
        await self._collection.create_index(
            [("employeeId", ASCENDING), ("date", ASCENDING)],
            unique=True,
            name="employee_day_unique",
        )
        await self._collection.create_index([("date", DESCENDING), ("punchInTime", DESCENDING)])
        logger.info("Attendance indexes ensured")

    @translate_mongo_errors
    async def find_for_day(self, employee_id: str, day: date) -> Optional[AttendanceRecord]:
        doc = await self._collection.find_one({"employeeId": employee_id, "date": day.isoformat()})
        return AttendanceRecord.from_document(doc) if doc else None

    @translate_mongo_errors
    async def find_active_for_day(self, employee_id: str, day: date) -> Optional[AttendanceRecord]:
        doc = await self._collection.find_one({
            "employeeId": employee_id,
            "date": day.isoformat(),
            "punchInTime": {"$ne": None},
            "punchOutTime": None,
        })
        return AttendanceRecord.from_document(doc) if doc else None

    @translate_mongo_errors
    async def find_by_day(self, day: date) -> List[AttendanceRecord]:
        cursor = self._collection.find({"date": day.isoformat()}).sort("punchInTime", DESCENDING)
        docs = await cursor.to_list(length=None)
        return [AttendanceRecord.from_document(doc) for doc in docs]

    @translate_mongo_errors
    async def find_active_by_day(self, day: date) -> List[AttendanceRecord]:
        query = {"date": day.isoformat()}
        query.update(build_status_filter(AttendanceStatus.PUNCHED_IN))
        cursor = self._collection.find(query).sort("punchInTime", DESCENDING)
        docs = await cursor.to_list(length=None)
        return [AttendanceRecord.from_document(doc) for doc in docs]

    @translate_mongo_errors
    async def find_all(
        self,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[AttendanceRecord]:
        query = build_attendance_query_filters(employee_id, start_date, end_date, status)
        cursor = self._collection.find(query).sort([("date", DESCENDING), ("punchInTime", DESCENDING)]).skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(length=None)
        return [AttendanceRecord.from_document(doc) for doc in docs]

    @translate_mongo_errors
    async def create(self, record: AttendanceRecord) -> AttendanceRecord:
        now = utc_now()
        doc = record.model_copy(update={"created_at": now, "updated_at": now}).to_document()
        try:
            result = await self._collection.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateAttendanceRecord(record.employee_id, record.date.isoformat()) from exc
        doc["_id"] = result.inserted_id
        return AttendanceRecord.from_document(doc)

    @translate_mongo_errors
    async def update_set_punch_out(
        self,
        record_id: str,
        timestamp: datetime,
        total_hours: float,
        notes: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> Optional[AttendanceRecord]:
        try:
            oid = ObjectId(record_id)
        except InvalidId:
            return None

        update = {
            "punchOutTime": timestamp,
            "totalHours": total_hours,
            "updatedAt": utc_now(),
        }
        if notes is not None:
            update["notes"] = notes
        if location is not None:
            update["location"] = location.model_dump(by_alias=True)

        doc = await self._collection.find_one_and_update(
            {"_id": oid, "punchInTime": {"$ne": None, "$lt": timestamp}, "punchOutTime": None},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        return AttendanceRecord.from_document(doc) if doc else None


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local store for tests and local demos. Selected by configuration only."""

    def __init__(self):
        self._records: Dict[str, AttendanceRecord] = {}
        self._by_employee_day: Dict[Tuple[str, date], str] = {}

    async def find_for_day(self, employee_id: str, day: date) -> Optional[AttendanceRecord]:
        record_id = self._by_employee_day.get((employee_id, day))
        if record_id is None:
            return None
        return self._records[record_id].model_copy()

    async def find_by_day(self, day: date) -> List[AttendanceRecord]:
        records = [r for r in self._records.values() if r.date == day]
        records.sort(key=lambda r: r.punch_in_time, reverse=True)
        return [r.model_copy() for r in records]

    async def find_all(
        self,
        employee_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[AttendanceRecord]:
        records = []
        for record in self._records.values():
            if employee_id and record.employee_id != employee_id:
                continue
            if start_date and record.date < start_date:
                continue
            if end_date and record.date > end_date:
                continue
            if status and record.status != status:
                continue
            records.append(record)

        records.sort(key=lambda r: (r.date, r.punch_in_time), reverse=True)
        records = records[skip:]
        if limit:
            records = records[:limit]
        return [r.model_copy() for r in records]

    async def create(self, record: AttendanceRecord) -> AttendanceRecord:
        key = (record.employee_id, record.date)
        # Check and insert run without an await in between, so they are atomic on the event loop.
        if key in self._by_employee_day:
            raise DuplicateAttendanceRecord(record.employee_id, record.date.isoformat())

        now = utc_now()
        stored = record.model_copy(update={"id": uuid4().hex, "created_at": now, "updated_at": now})
        self._records[stored.id] = stored
        self._by_employee_day[key] = stored.id
        return stored.model_copy()

    async def update_set_punch_out(
        self,
        record_id: str,
        timestamp: datetime,
        total_hours: float,
        notes: Optional[str] = None,
        location: Optional[Location] = None,
    ) -> Optional[AttendanceRecord]:
        record = self._records.get(record_id)
        if record is None or record.punch_in_time is None or record.punch_out_time is not None:
            return None
        if timestamp <= record.punch_in_time:
            return None

        update = {"punch_out_time": timestamp, "total_hours": total_hours, "updated_at": utc_now()}
        if notes is not None:
            update["notes"] = notes
        if location is not None:
            update["location"] = location
        updated = record.model_copy(update=update)
        self._records[record_id] = updated
        return updated.model_copy()
