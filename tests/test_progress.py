import pytest
from conftest import result_row

from educode.analytics.blueprint import BlueprintItem
from educode.analytics.progress import cohort_average, exam_progress, item_progress, student_completion
from educode.analytics.reconciliation import ResultIndex


def item(sub_unit_id, has_mcq, has_coding):
    return BlueprintItem(sub_unit_id=sub_unit_id, unit_id="U1", title=sub_unit_id,
                         has_mcq=has_mcq, has_coding=has_coding)


class TestItemProgress:
    @pytest.mark.parametrize("did_mcq, did_coding, expected", [
        (False, False, 0),
        (True, False, 50),
        (False, True, 50),
        (True, True, 100),
    ])
    def test_both_modalities_split_fifty_fifty(self, did_mcq, did_coding, expected):
        assert item_progress(item("A", True, True), did_mcq, did_coding) == expected

    def test_single_modality_is_all_or_nothing(self):
        mcq_only = item("A", True, False)
        assert item_progress(mcq_only, True, False) == 100
        assert item_progress(mcq_only, False, True) == 0

        coding_only = item("B", False, True)
        assert item_progress(coding_only, False, True) == 100
        assert item_progress(coding_only, True, False) == 0

    def test_never_exceeds_hundred(self):
        for has_mcq in (True, False):
            for has_coding in (True, False):
                for did_mcq in (True, False):
                    for did_coding in (True, False):
                        value = item_progress(item("A", has_mcq, has_coding), did_mcq, did_coding)
                        assert value in (0, 50, 100)


class TestStudentCompletion:
    def test_empty_blueprint_is_zero(self):
        progress = student_completion([], ResultIndex.build([]), "st1")
        assert progress.completion_percentage == 0
        assert progress.items == []

    def test_exam_item_with_only_mcq_submitted_is_half_done(self):
        index = ResultIndex.build([result_row("st1", "A", "mcq")])
        progress = student_completion([item("A", True, True)], index, "st1")
        assert progress.completion_percentage == 50

    def test_two_single_modality_items_both_done(self):
        index = ResultIndex.build([result_row("st1", "X", "mcq"), result_row("st1", "Y", "coding")])
        progress = student_completion([item("X", True, False), item("Y", False, True)], index, "st1")
        assert progress.completion_percentage == 100

    def test_other_students_results_are_ignored(self):
        index = ResultIndex.build([result_row("st2", "X", "mcq")])
        progress = student_completion([item("X", True, False)], index, "st1")
        assert progress.completion_percentage == 0
        assert progress.items[0].mcq_submitted is False

    def test_rounding_half_up(self):
        blueprint = [item("A", True, True), item("B", True, False), item("C", True, False), item("D", True, False)]
        index = ResultIndex.build([result_row("st1", "A", "mcq")])
        # 50 / 4 = 12.5
        assert student_completion(blueprint, index, "st1").completion_percentage == 13


class TestCohortAverage:
    def test_mean_of_student_percentages_not_pooled_points(self):
        blueprint = [item("A", True, False), item("B", True, False)]
        index = ResultIndex.build([result_row("st1", "A", "mcq"), result_row("st1", "B", "mcq")])
        percentages = [
            student_completion(blueprint, index, "st1").completion_percentage,
            student_completion(blueprint, index, "st2").completion_percentage,
        ]
        assert percentages == [100, 0]
        assert cohort_average(percentages) == 50

    def test_empty_cohort(self):
        assert cohort_average([]) == 0


class TestExamProgress:
    def test_marks_summed_across_items(self):
        blueprint = [item("E1", True, True), item("E2", False, True)]
        index = ResultIndex.build([
            result_row("st1", "E1", "mcq", marks=4),
            result_row("st1", "E1", "coding", marks=10),
            result_row("st1", "E2", "coding", marks=6),
        ])
        progress = exam_progress(blueprint, index, "st1")
        assert progress.completion_percentage == 100
        assert progress.mcq_marks == 4
        assert progress.coding_marks == 16
        assert progress.total_marks == 20

    def test_latest_attempt_marks_are_used(self):
        index = ResultIndex.build([
            result_row("st1", "E1", "mcq", attempt=1, marks=2),
            result_row("st1", "E1", "mcq", attempt=2, marks=7),
        ])
        progress = exam_progress([item("E1", True, False)], index, "st1")
        assert progress.mcq_marks == 7

    def test_coding_config_preferred_over_mcq(self):
        index = ResultIndex.build([
            result_row("st1", "E1", "mcq", start_config={"os": "mcq"}, end_config={"os": "mcq-end"}),
            result_row("st1", "E1", "coding", start_config={"os": "coding"}, end_config=None),
        ])
        configs = exam_progress([item("E1", True, True)], index, "st1").debug_configs
        assert configs.start_config == {"os": "coding"}
        # The coding result has no end config, so nothing replaces the running value.
        assert configs.end_config is None

    def test_later_items_replace_earlier_configs(self):
        index = ResultIndex.build([
            result_row("st1", "E1", "mcq", start_config={"n": 1}, end_config={"n": 1}),
            result_row("st1", "E2", "mcq", start_config={"n": 2}),
        ])
        configs = exam_progress([item("E1", True, False), item("E2", True, False)], index, "st1").debug_configs
        assert configs.start_config == {"n": 2}
        assert configs.end_config == {"n": 1}

    def test_missing_configs_render_as_empty_objects(self):
        progress = exam_progress([item("E1", True, False)], ResultIndex.build([]), "st1")
        assert progress.debug_configs.as_response() == {"start_config": {}, "end_config": {}}
        assert progress.completion_percentage == 0
