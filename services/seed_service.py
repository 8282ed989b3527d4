# services/seed_service.py
import logging
from typing import List

from models.employee import Employee
from repositories.employee_repository import EmployeeRepository

logger = logging.getLogger(__name__)

DEMO_EMPLOYEES: List[Employee] = [
    Employee(employee_id="EMP0001", first_name="John", last_name="Doe"),
    Employee(employee_id="EMP0002", first_name="Jane", last_name="Smith"),
    Employee(employee_id="EMP0003", first_name="Mike", last_name="Wilson"),
    Employee(employee_id="EMP0004", first_name="Sarah", last_name="Connor", is_active=False),
]


async def seed_employees(employees: EmployeeRepository, seed: List[Employee] = DEMO_EMPLOYEES) -> int:
    """Upsert demo employees so punches can be tried against a fresh database."""
    for employee in seed:
        await employees.upsert(employee)
    logger.info("Seeded %d demo employees", len(seed))
    return len(seed)
