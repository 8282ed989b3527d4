# exceptions.py


class AttendanceError(Exception):
    """Base class for attendance failures that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def name(self) -> str:
        return type(self).__name__


class EmployeeNotFound(AttendanceError):
    status_code = 404

    def __init__(self, employee_id: str):
        super().__init__(f"Employee {employee_id} not found")
        self.employee_id = employee_id


class EmployeeInactive(AttendanceError):
    status_code = 400

    def __init__(self, employee_id: str):
        super().__init__(f"Employee {employee_id} is not active")
        self.employee_id = employee_id


class AlreadyPunchedIn(AttendanceError):
    status_code = 400


class NoActivePunchIn(AttendanceError):
    status_code = 400


class InvalidPunchTime(AttendanceError):
    status_code = 400


class PersistenceUnavailable(AttendanceError):
    """The document store could not be reached or rejected the operation."""

    status_code = 503


class DuplicateAttendanceRecord(Exception):
    """Raised by a repository when (employeeId, date) already has a record."""

    def __init__(self, employee_id: str, day: str):
        super().__init__(f"Attendance record for {employee_id} on {day} already exists")
        self.employee_id = employee_id
        self.day = day
