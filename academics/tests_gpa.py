import random

from django.test import SimpleTestCase

from .utils import gpa_engine
from .utils.gpa_engine import CourseResultRow, GradingPolicy, academic_standing, can_proceed, gpa_trend
from .utils.grade_scale import grade_for_score, is_pass, point_for


def row(grade, credits, year="2023/2024", semester="FIRST", level="LEVEL_100", code=""):
    return CourseResultRow(grade, credits, year, semester, level, code or f"C{grade}{credits}")


class GradeScaleTests(SimpleTestCase):

    def test_point_for_known_grades(self):
        self.assertEqual(
            [point_for(g) for g in "ABCDEF"],
            [5.0, 4.0, 3.0, 2.0, 1.0, 0.0],
        )

    def test_point_for_is_total(self):
        for grade in (None, "", "Z", "AB", " ", 7):
            self.assertEqual(point_for(grade), 0.0)
        self.assertEqual(point_for(" b "), 4.0)

    def test_grade_for_score_bands(self):
        self.assertEqual(grade_for_score(100), "A")
        self.assertEqual(grade_for_score(70), "A")
        self.assertEqual(grade_for_score(69.5), "B")
        self.assertEqual(grade_for_score(50), "C")
        self.assertEqual(grade_for_score(45), "D")
        self.assertEqual(grade_for_score(40), "E")
        self.assertEqual(grade_for_score(39.9), "F")

    def test_weak_pass(self):
        self.assertTrue(is_pass("D"))
        self.assertFalse(is_pass("E"))
        self.assertFalse(is_pass("F"))


class GPAEngineTests(SimpleTestCase):

    def test_credit_weighted_cgpa(self):
        report = gpa_engine.compute([row("A", 3), row("B", 2)])
        self.assertEqual(report.cgpa, 4.6)
        self.assertEqual(report.total_credits, 5)
        self.assertEqual(report.total_grade_points, 23.0)
        self.assertEqual(report.standing.label, "First Class")

    def test_gpa_is_rounded_to_two_places(self):
        report = gpa_engine.compute([row("A", 1), row("B", 1), row("B", 1)])
        self.assertEqual(report.cgpa, 4.33)

    def test_zero_credits_give_zero_gpa(self):
        report = gpa_engine.compute([row("A", 0), row("B", 0)])
        self.assertEqual(report.cgpa, 0.0)
        self.assertEqual(report.sessions[0].gpa, 0.0)

    def test_unknown_grades_count_as_zero_points(self):
        report = gpa_engine.compute([row("A", 3), row(None, 3), row("X", 3)])
        self.assertEqual(report.cgpa, round(15 / 9, 2))

    def test_no_rows(self):
        report = gpa_engine.compute([])
        self.assertEqual(report.cgpa, 0.0)
        self.assertEqual(report.sessions, ())
        self.assertEqual(report.levels, ())
        self.assertEqual(report.progression.current_level, "LEVEL_100")
        self.assertEqual(report.progression.next_level, "LEVEL_200")
        self.assertFalse(report.progression.can_graduate)
        self.assertEqual(report.statistics.pass_rate, 0)

    def test_input_order_does_not_change_report(self):
        rows = [
            row("A", 3, "2022/2023", "FIRST", "LEVEL_100"),
            row("C", 2, "2022/2023", "SECOND", "LEVEL_100"),
            row("B", 3, "2023/2024", "FIRST", "LEVEL_200"),
            row("F", 1, "2023/2024", "SECOND", "LEVEL_200"),
            row("E", 2, "2024/2025", "FIRST", "LEVEL_300"),
        ]
        expected = gpa_engine.compute(rows)
        shuffled = list(rows)
        random.Random(7).shuffle(shuffled)
        self.assertEqual(gpa_engine.compute(shuffled), expected)
        self.assertEqual(gpa_engine.compute(list(reversed(rows))), expected)

    def test_repeated_calls_are_identical_and_input_untouched(self):
        rows = [row("A", 3), row("D", 2, semester="SECOND")]
        snapshot = list(rows)
        self.assertEqual(gpa_engine.compute(rows), gpa_engine.compute(rows))
        self.assertEqual(rows, snapshot)

    def test_sessions_are_chronological(self):
        report = gpa_engine.compute([
            row("A", 3, "2023/2024", "SECOND"),
            row("B", 3, "2023/2024", "FIRST"),
            row("C", 3, "2022/2023", "SECOND"),
        ])
        self.assertEqual(
            [(s.academic_year, s.semester) for s in report.sessions],
            [("2022/2023", "SECOND"), ("2023/2024", "FIRST"), ("2023/2024", "SECOND")],
        )
        self.assertEqual([s.gpa for s in report.sessions], [3.0, 4.0, 5.0])

    def test_level_gpas(self):
        report = gpa_engine.compute([
            row("A", 3, "2023/2024", "FIRST", "LEVEL_200"),
            row("C", 3, "2022/2023", "FIRST", "LEVEL_100"),
            row("E", 3, "2022/2023", "SECOND", "LEVEL_100"),
        ])
        self.assertEqual([lv.level for lv in report.levels], ["LEVEL_100", "LEVEL_200"])
        self.assertEqual(report.levels[0].gpa, 2.0)
        self.assertEqual(report.levels[0].sessions, ("2022/2023-FIRST", "2022/2023-SECOND"))
        self.assertTrue(can_proceed(report.levels[0]))
        self.assertFalse(can_proceed(report.levels[0], minimum=2.5))

    def test_progression_follows_highest_level(self):
        report = gpa_engine.compute([
            row("B", 3, level="LEVEL_100"),
            row("B", 3, level="LEVEL_300"),
            row("B", 3, level="UNKNOWN"),
        ])
        self.assertEqual(report.progression.current_level, "LEVEL_300")
        self.assertEqual(report.progression.next_level, "LEVEL_400")
        self.assertEqual(report.progression.credits_to_next_level, 21)
        self.assertEqual(report.progression.remaining_credits, 111)

    def test_graduation_requires_credits_cgpa_and_final_level(self):
        eligible = [row("C", 3, level="LEVEL_500", code=f"CPT5{i:02d}") for i in range(40)]
        report = gpa_engine.compute(eligible)
        self.assertEqual(report.total_credits, 120)
        self.assertTrue(report.progression.can_graduate)
        self.assertIsNone(report.progression.next_level)

        short = eligible[:-1] + [row("C", 2, level="LEVEL_500", code="CPT599")]
        self.assertFalse(gpa_engine.compute(short).progression.can_graduate)

        failing = [row("F", 3, level="LEVEL_500", code=f"CPT5{i:02d}") for i in range(40)]
        self.assertFalse(gpa_engine.compute(failing).progression.can_graduate)

        not_final = [row("C", 3, level="LEVEL_400", code=f"CPT4{i:02d}") for i in range(40)]
        self.assertFalse(gpa_engine.compute(not_final).progression.can_graduate)

    def test_verdicts_use_unrounded_cgpa(self):
        # 299 / 300 = 0.9967, reported as 1.0
        rows = [row("E", 299, level="LEVEL_500"), row("F", 1, level="LEVEL_500")]
        report = gpa_engine.compute(rows)
        self.assertEqual(report.cgpa, 1.0)
        self.assertFalse(report.progression.can_graduate)
        self.assertEqual(report.standing.label, "Fail")

    def test_policy_thresholds_are_passed_in(self):
        policy = GradingPolicy(graduation_min_credits=6, graduation_min_cgpa=4.5)
        rows = [row("A", 3, level="LEVEL_500"), row("B", 3, level="LEVEL_500")]
        self.assertTrue(gpa_engine.compute(rows, policy).progression.can_graduate)
        self.assertFalse(gpa_engine.compute([row("B", 6, level="LEVEL_500")], policy).progression.can_graduate)

    def test_academic_standing_bands(self):
        bands = GradingPolicy().standing_bands
        self.assertEqual(academic_standing(5.0, bands).label, "First Class")
        self.assertEqual(academic_standing(3.5, bands).label, "Second Class Upper")
        self.assertEqual(academic_standing(2.4, bands).label, "Second Class Lower")
        self.assertEqual(academic_standing(1.6, bands).label, "Third Class")
        self.assertEqual(academic_standing(1.0, bands).label, "Pass")
        self.assertEqual(academic_standing(0.4, bands).label, "Fail")
        self.assertEqual(academic_standing(3.0, ()).label, "Unclassified")

    def test_statistics(self):
        report = gpa_engine.compute([row("A", 3), row("D", 3), row("E", 2), row("F", 1), row("Q", 1)])
        stats = report.statistics
        self.assertEqual(stats.total_courses, 5)
        self.assertEqual(stats.passed_courses, 2)
        self.assertEqual(stats.weak_pass_courses, 1)
        self.assertEqual(stats.failed_courses, 1)
        self.assertEqual(stats.pass_rate, 40)
        self.assertEqual(dict(stats.grade_distribution)["A"], 1)

    def test_to_dict(self):
        data = gpa_engine.compute([row("A", 3), row("B", 2)]).to_dict()
        self.assertEqual(data["cgpa"], 4.6)
        self.assertEqual(data["standing"]["label"], "First Class")
        self.assertEqual(data["statistics"]["grade_distribution"]["B"], 1)
        self.assertEqual(data["sessions"][0]["rows"][0]["grade"], "A")

    def test_trend(self):
        report = gpa_engine.compute([
            row("C", 3, "2022/2023", "FIRST"),
            row("A", 3, "2022/2023", "SECOND"),
        ])
        self.assertEqual(gpa_trend(report.sessions), {"trend": "improving", "change": 2.0, "sessions": 2})
        self.assertEqual(gpa_trend(report.sessions[::-1])["trend"], "declining")
        self.assertEqual(gpa_trend(report.sessions[:1])["trend"], "stable")
