import copy

import pytest
from fastapi.testclient import TestClient
from firebase_admin import exceptions as firebase_exceptions
from pymongo.errors import ServerSelectionTimeoutError

from educode.config import DEFAULT_JWT_SECRET
from educode.dependencies import get_app_settings, get_content, get_records
from educode.main import app
from educode.stores.content import ContentStore
from educode.stores.records import RecordStore


# ==================== IN-MEMORY MONGO ====================

def _matches(doc, query):
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict):
            if "$in" in cond and value not in cond["$in"]:
                return False
            if "$ne" in cond and value == cond["$ne"]:
                return False
        elif isinstance(value, list):
            if cond not in value:
                return False
        elif value != cond:
            return False
    return True


def _project(doc, projection):
    included = [k for k, v in projection.items() if v and k != "_id"]
    if included:
        return {k: doc[k] for k in included if k in doc}
    return {k: v for k, v in doc.items() if projection.get(k, 1)}


class FakeCursor:
    def __init__(self, docs, fail=False):
        self.docs = docs
        self.fail = fail

    def sort(self, keys):
        for key, direction in reversed(keys):
            self.docs.sort(key=lambda d: (d.get(key) is None, d.get(key)), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        if self.fail:
            raise ServerSelectionTimeoutError("no servers available")
        return self.docs


class FakeCollection:
    def __init__(self, docs, fail=False):
        self.docs = docs
        self.fail = fail

    def find(self, query, projection):
        found = [_project(copy.deepcopy(d), projection) for d in self.docs if _matches(d, query)]
        return FakeCursor(found, self.fail)

    async def find_one(self, query, projection):
        if self.fail:
            raise ServerSelectionTimeoutError("no servers available")
        for doc in self.docs:
            if _matches(doc, query):
                return _project(copy.deepcopy(doc), projection)
        return None

    async def distinct(self, key, query):
        if self.fail:
            raise ServerSelectionTimeoutError("no servers available")
        return list({d.get(key) for d in self.docs if _matches(d, query)})


class FakeDatabase:
    def __init__(self, tables, fail=False):
        self.tables = tables
        self.fail = fail

    def __getitem__(self, name):
        return FakeCollection(self.tables.setdefault(name, []), self.fail)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


# ==================== IN-MEMORY CONTENT TREE ====================

class FakeContentStore(ContentStore):
    def __init__(self, tree, fail=False):
        super().__init__(app=None, root="EduCode")
        self.tree = tree
        self.fail = fail

    def _read(self, path):
        if self.fail:
            raise firebase_exceptions.UnavailableError("database unavailable")
        node = self.tree
        for part in path.split("/"):
            if isinstance(node, dict):
                node = node.get(part)
            elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
                node = node[int(part)]
            else:
                return None
        return copy.deepcopy(node)


class FakeSettings:
    JWT_SECRET = DEFAULT_JWT_SECRET
    JWT_ALGORITHM = "HS256"
    ADMIN_TOKEN_EXPIRE_HOURS = 2
    ADMIN_COOKIE_NAME = "admin_token"
    ENVIRONMENT = "development"
    is_production = False


# ==================== SAMPLE DATA ====================

def course_tree():
    return {
        "EduCode": {"Courses": {"C1": {"units": {
            "U1": {
                "unit-name": "Basics",
                "sub-units": {
                    "S1": {
                        "sub-unit-name": "Loops Practice",
                        "sub_type": "practice",
                        "type": "mcq",
                        "mcq": {"q1": {"question": "Loop keyword?", "options": ["for", "goto"], "correct_option": 0}},
                        "coding": {"c1": {"title": "Print 1..n"}},
                    },
                    "S2": {"title": "Intro Video", "sub_type": "practice", "type": "video"},
                    "S3": {
                        "name": "Quiz",
                        "sub_type": "practice",
                        "mcq": {"q2": {"question": "True?", "options": [{"text": "yes", "is_correct": True}]}},
                    },
                    "E1": {
                        "sub-unit-name": "Unit Exam",
                        "sub_type": "exam",
                        "mcq-questions-to-show": 2,
                        "mcq": {
                            "q3": {
                                "question": "2+2?",
                                "options": [
                                    {"text": "3", "is_correct": False},
                                    {"text": "4", "is_correct": True},
                                ],
                            },
                            "q4": {"question": "3+3?", "options": [{"text": "6", "is_correct": True}]},
                        },
                        "coding": {
                            "c2": {
                                "title": "Sum",
                                "description": "Add two numbers",
                                "sample-test-cases": [{"input": "1 2", "output": "3"}],
                                "hidden-test-cases": [
                                    {"input": "5 5", "output": "10"},
                                    {"input": "7 8", "output": "15"},
                                ],
                                "solution": "print(sum(map(int, input().split())))",
                            },
                        },
                    },
                },
            },
            "U2": {
                "unit-name": "Advanced",
                "sub-units": {
                    "E2": {"sub-unit-name": "Final", "sub_type": "exam", "total-coding-questions": 2},
                },
            },
        }}}}
    }


def record_tables():
    return {
        "students": [
            {"student_id": "st1", "student_name": "Alice", "uni_reg_id": "REG1", "section": "A",
             "batch_id": "B1", "uni_id": "UNI1", "student_email": "alice@example.com"},
            {"student_id": "st2", "student_name": "Bob", "uni_reg_id": "REG2", "section": "A",
             "batch_id": "B1", "uni_id": "UNI1"},
            {"student_id": "st3", "student_name": "Cara", "uni_reg_id": "REG3", "section": "B",
             "batch_id": "B2", "uni_id": "UNI2"},
        ],
        "batches": [
            {"batch_id": "B1", "batch_name": "2024 Batch", "university_id": "UNI1", "registered_courses_id": ["C1"]},
            {"batch_id": "B2", "batch_name": "2025 Batch", "university_id": "UNI2", "registered_courses_id": []},
        ],
        "courses": [
            {"course_id": "C1", "course_name": "Python", "university_id": "UNI1"},
            {"course_id": "C2", "course_name": "Java", "university_id": "UNI1"},
        ],
        "results": [],
        "student_submission": [],
        "teachers_details": [
            {"teacher_id": "t1", "teacher_name": "Tara", "uni_reg_id": "T100", "university_id": "UNI1",
             "password": "secret"},
            {"teacher_id": "t2", "teacher_name": "Omar", "uni_reg_id": "T200", "university_id": "UNI2",
             "password_hash": "1c8bfe8f801d79745c4631d09fff36c82aa37fc4cce4fc946683d7b336b63032"},
        ],
        "university_admins": [
            {"admin_id": "a1", "admin_name": "Uma", "email": "uma@uni1.edu", "university_id": "UNI1",
             "password": "adminpass"},
        ],
        "super_admins": [
            {"username": "root", "password": "rootpass"},
        ],
    }


def result_row(student_id, sub_unit_id, result_type, attempt=1, marks=0, total=0, unit_id="U1",
               course_id="C1", submitted=True, analytics=None, **extra):
    row = {
        "student_id": student_id,
        "course_id": course_id,
        "unit_id": unit_id,
        "sub_unit_id": sub_unit_id,
        "result_type": result_type,
        "attempt_count": attempt,
        "marks_obtained": marks,
        "total_marks": total,
        "submitted_at": "2024-05-01T10:00:00Z" if submitted else None,
        "analytics": analytics,
    }
    row.update(extra)
    return row


# ==================== FIXTURES ====================

@pytest.fixture
def tables():
    return record_tables()


@pytest.fixture
def tree():
    return course_tree()


@pytest.fixture
def records(tables):
    return RecordStore(FakeDatabase(tables))


@pytest.fixture
def content(tree):
    return FakeContentStore(tree)


@pytest.fixture
def client(records, content):
    app.dependency_overrides[get_records] = lambda: records
    app.dependency_overrides[get_content] = lambda: content
    app.dependency_overrides[get_app_settings] = lambda: FakeSettings()
    yield TestClient(app)
    app.dependency_overrides.clear()
