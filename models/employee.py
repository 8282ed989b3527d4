# models/employee.py
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Employee(BaseModel):
    # Reference view of an employee record; CRUD lives outside this service.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    employee_id: str = Field(min_length=1)
    first_name: str
    last_name: str = ""
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Employee":
        return cls.model_validate({k: v for k, v in doc.items() if k != "_id"})
