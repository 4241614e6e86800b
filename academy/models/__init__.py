from .operator import Operator
from .batch import Batch
from .student import Student
from .instructor import Instructor
from .course import Course
from .exam import Exam
from .result import Result, ResultStatus
from .finance import Finance

__all__ = [
    "Operator",
    "Batch",
    "Student",
    "Instructor",
    "Course",
    "Exam",
    "Result",
    "ResultStatus",
    "Finance"
]
