# repositories/employee_repository.py
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from pymongo import ASCENDING

from database import translate_mongo_errors
from models.employee import Employee


class EmployeeRepository(ABC):
    """Read access to the employee records owned by the employee-management side."""

    async def ensure_indexes(self) -> None:
        return None

    @abstractmethod
    async def get(self, employee_id: str) -> Optional[Employee]:
        raise NotImplementedError

    @abstractmethod
    async def get_many(self, employee_ids: Iterable[str]) -> Dict[str, Employee]:
        raise NotImplementedError

    @abstractmethod
    async def count(self, active_only: bool = False) -> int:
        raise NotImplementedError

    @abstractmethod
    async def upsert(self, employee: Employee) -> None:
        raise NotImplementedError


class MongoEmployeeRepository(EmployeeRepository):
    def __init__(self, collection):
        self._collection = collection

    @translate_mongo_errors
    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("employeeId", ASCENDING)], unique=True)

    @translate_mongo_errors
    async def get(self, employee_id: str) -> Optional[Employee]:
        doc = await self._collection.find_one({"employeeId": employee_id})
        return Employee.from_document(doc) if doc else None

    @translate_mongo_errors
    async def get_many(self, employee_ids: Iterable[str]) -> Dict[str, Employee]:
        ids = list(set(employee_ids))
        if not ids:
            return {}
        docs = await self._collection.find({"employeeId": {"$in": ids}}).to_list(length=None)
        employees = [Employee.from_document(doc) for doc in docs]
        return {e.employee_id: e for e in employees}

    @translate_mongo_errors
    async def count(self, active_only: bool = False) -> int:
        query = {"isActive": True} if active_only else {}
        return await self._collection.count_documents(query)

    @translate_mongo_errors
    async def upsert(self, employee: Employee) -> None:
        await self._collection.update_one(
            {"employeeId": employee.employee_id},
            {"$set": employee.to_document()},
            upsert=True,
        )


class InMemoryEmployeeRepository(EmployeeRepository):
    def __init__(self, employees: Optional[List[Employee]] = None):
        self._employees: Dict[str, Employee] = {}
        for employee in employees or []:
            self._employees[employee.employee_id] = employee.model_copy()

    async def get(self, employee_id: str) -> Optional[Employee]:
        employee = self._employees.get(employee_id)
        return employee.model_copy() if employee else None

    async def get_many(self, employee_ids: Iterable[str]) -> Dict[str, Employee]:
        return {i: self._employees[i].model_copy() for i in set(employee_ids) if i in self._employees}

    async def count(self, active_only: bool = False) -> int:
        if active_only:
            return sum(1 for e in self._employees.values() if e.is_active)
        return len(self._employees)

    async def upsert(self, employee: Employee) -> None:
        self._employees[employee.employee_id] = employee.model_copy()
