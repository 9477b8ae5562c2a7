from fastapi.testclient import TestClient
from conftest import FakeContentStore, FakeDatabase, result_row

from educode.dependencies import get_content, get_records
from educode.main import app
from educode.stores.records import RecordStore


class TestUnitCompletion:
    def test_breakdown_over_assessable_sub_units(self, client, tables):
        tables["results"] += [
            result_row("st1", "S1", "mcq"),
            result_row("st1", "S3", "mcq"),
            result_row("st1", "E1", "coding", submitted=False),
        ]
        resp = client.post("/api/teacher/analytics/unit-completion",
                           json={"student_id": "st1", "course_id": "C1", "unit_id": "U1"})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["total_sub_units"] == 4
        assert data["assessable_sub_units"] == 3
        # S1 50 + S3 100 + E1 0 over 3 items
        assert data["overall_unit_completion"] == 50
        breakdown = {b["sub_unit_id"]: b for b in data["sub_unit_breakdown"]}
        assert breakdown["S1"]["details"] == {
            "has_mcq": True, "mcq_submitted": True, "has_coding": True, "coding_submitted": False,
        }
        assert breakdown["E1"]["progress_percentage"] == 0

    def test_missing_fields(self, client):
        resp = client.post("/api/teacher/analytics/unit-completion", json={"student_id": "st1"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"] == "student_id, course_id, and unit_id are required"
        assert body["missing"] == ["course_id", "unit_id"]

    def test_unknown_unit_is_not_found(self, client):
        resp = client.post("/api/teacher/analytics/unit-completion",
                           json={"student_id": "st1", "course_id": "C1", "unit_id": "U404"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "CONTENT_NOT_FOUND"


class TestSectionCompletion:
    def test_section_average_is_mean_of_students(self, client, tables):
        tables["results"] += [
            result_row("st1", "S1", "mcq"),
            result_row("st1", "S1", "coding"),
            result_row("st1", "S3", "mcq"),
        ]
        resp = client.post("/api/teacher/analytics/section-completion",
                           json={"section_name": "A", "course_id": "C1", "university_id": "UNI1"})
        data = resp.json()["data"]
        assert data["total_students"] == 2
        assert data["total_practice_sub_units"] == 2
        assert data["student_performance"] == [
            {"student_name": "Alice", "progress": 100},
            {"student_name": "Bob", "progress": 0},
        ]
        assert data["section_overall_completion"] == 50

    def test_no_students(self, client):
        resp = client.post("/api/teacher/analytics/section-completion",
                           json={"section_name": "Z", "course_id": "C1", "university_id": "UNI1"})
        assert resp.json()["data"] == {"section_name": "Z", "total_students": 0, "section_overall_completion": 0}

    def test_course_missing_from_tree_has_no_items(self, client):
        resp = client.post("/api/teacher/analytics/section-completion",
                           json={"section_name": "A", "course_id": "C404", "university_id": "UNI1"})
        assert resp.status_code == 200
        assert resp.json()["data"]["message"] == "No practice content found in this course."


class TestSectionExamProgress:
    def test_completion_marks_and_configs(self, client, tables):
        tables["results"] += [
            result_row("st1", "E1", "mcq", marks=4, start_config={"browser": "chrome"}),
            result_row("st1", "E1", "coding", marks=10, start_config={"browser": "firefox"}),
            result_row("st1", "E2", "coding", unit_id="U2", marks=6),
            result_row("st2", "E1", "mcq", marks=3),
        ]
        resp = client.post("/api/teacher/analytics/section-exam-progress",
                           json={"course_id": "C1", "section_name": "A"})
        data = resp.json()["data"]
        assert data["total_exams_in_course"] == 2
        alice, bob = data["students"]
        assert alice["exam_completion_percentage"] == 100
        assert alice["total_marks"] == 20
        assert alice["marks_breakdown"] == {"coding_marks": 16, "mcq_marks": 4}
        assert alice["debug_configs"]["start_config"] == {"browser": "firefox"}
        assert alice["debug_configs"]["end_config"] == {}
        # E1 has both modalities, only mcq done; E2 untouched
        assert bob["exam_completion_percentage"] == 25

    def test_numeric_sub_unit_name_does_not_fail_request(self, client, tables, tree):
        tree["EduCode"]["Courses"]["C1"]["units"]["U2"]["sub-units"]["E2"]["sub-unit-name"] = 2024
        tables["results"].append(result_row("st1", "E2", "coding", unit_id="U2", marks=6))
        resp = client.post("/api/teacher/analytics/section-exam-progress",
                           json={"course_id": "C1", "section_name": "A"})
        assert resp.status_code == 200
        assert resp.json()["data"]["total_exams_in_course"] == 2

    def test_no_batch_for_course(self, client):
        resp = client.post("/api/teacher/analytics/section-exam-progress",
                           json={"course_id": "C2", "section_name": "A"})
        assert resp.status_code == 404
        assert resp.json()["details"] == "No batch found for this course."

    def test_missing_section(self, client):
        resp = client.post("/api/teacher/analytics/section-exam-progress", json={"course_id": "C1"})
        assert resp.status_code == 400


class TestStoreFailures:
    def _client(self, records, content):
        app.dependency_overrides[get_records] = lambda: records
        app.dependency_overrides[get_content] = lambda: content
        return TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def test_record_store_failure(self, tables, tree):
        client = self._client(RecordStore(FakeDatabase(tables, fail=True)), FakeContentStore(tree))
        resp = client.post("/api/teacher/analytics/section-completion",
                           json={"section_name": "A", "course_id": "C1", "university_id": "UNI1"})
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "STORE_UNAVAILABLE"
        assert "no servers available" not in str(body)

    def test_content_store_failure(self, tables, tree):
        client = self._client(RecordStore(FakeDatabase(tables)), FakeContentStore(tree, fail=True))
        resp = client.post("/api/teacher/analytics/unit-completion",
                           json={"student_id": "st1", "course_id": "C1", "unit_id": "U1"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "STORE_UNAVAILABLE"
