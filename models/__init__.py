from .semester import Semester, SemesterCreate
from .course import Course, CourseCreate, CourseVisibility
from .log_item import LogItem, LogItemCreate, LogKind
from .exam import Exam, ExamCreate
from .category import Category, CategoryCreate
from .problem import Problem, ProblemCreate, ProblemSource, FromLogItem, FromExam, Unattached
from .translation import TranslationCacheEntry

__all__ = [
    'Semester', 'SemesterCreate', 'Course', 'CourseCreate', 'CourseVisibility',
    'LogItem', 'LogItemCreate', 'LogKind', 'Exam', 'ExamCreate', 'Category', 'CategoryCreate',
    'Problem', 'ProblemCreate', 'ProblemSource', 'FromLogItem', 'FromExam', 'Unattached',
    'TranslationCacheEntry',
]
