import unittest

from iprep_coach.errors import StorageSchemaError
from iprep_coach.insights import aggregate_user_insights, compute_user_insight, frequency_threshold, merge_forgotten_points
from iprep_coach.schemas import CompletedSession, ForgottenPoint, QuizAttempt, QuizRecord, SessionSummary


def session(session_id, item_count=1, **summary_fields):
	return CompletedSession(session_id=session_id, item_count=item_count, summary=SessionSummary(**summary_fields))


class FakeStore:
	def __init__(self, sessions=(), quizzes=(), fail_field=None) -> None:
		self.sessions = list(sessions)
		self.quizzes = list(quizzes)
		self.fail_field = fail_field
		self.upserts = []

	def load_completed_sessions(self, user_id):
		return self.sessions

	def load_quizzes(self, user_id):
		return self.quizzes

	def upsert_insight(self, insight, include_forgotten_points=True):
		if self.fail_field and include_forgotten_points:
			raise StorageSchemaError(self.fail_field)
		self.upserts.append((insight, include_forgotten_points))


class ThresholdTests(unittest.TestCase):
	def test_small_samples_use_any_appearance(self) -> None:
		self.assertEqual([frequency_threshold(n) for n in (0, 1, 2, 3, 4, 5, 6)], [1, 1, 1, 2, 2, 3, 3])


class ComputeInsightTests(unittest.TestCase):
	def test_single_session_tags_are_kept(self) -> None:
		insight = compute_user_insight("u1", [session("s1", weak_tags=["graphs"], strong_tags=["arrays"])], [])
		self.assertEqual(insight.aggregated_weak_tags, ["graphs"])
		self.assertEqual(insight.aggregated_strong_tags, ["arrays"])

	def test_majority_rule_for_larger_samples(self) -> None:
		sessions = [
			session("s1", weak_tags=["a", "b"], recommended_focus=["b", "a"]),
			session("s2", weak_tags=["a"], recommended_focus=["a"]),
			session("s3", weak_tags=["c"], strong_tags=["b"], recommended_focus=["c"]),
		]
		insight = compute_user_insight("u1", sessions, [])
		self.assertEqual(insight.aggregated_weak_tags, ["a"])
		self.assertEqual(insight.aggregated_strong_tags, [])
		self.assertEqual(insight.top_focus_areas, ["a", "b", "c"])

	def test_quizzes_count_as_summaries(self) -> None:
		quiz = QuizRecord(quiz_id="z1", attempts=[
			QuizAttempt(question_id="q1", question_tags=["a"], score=20),
			QuizAttempt(question_id="q1", question_tags=["a"], score=40),
			QuizAttempt(question_id="q2", question_tags=["b"], score=100),
		])
		sessions = [session("s1", item_count=3, weak_tags=["a"]), session("s2", item_count=2, strong_tags=["b"])]
		insight = compute_user_insight("u1", sessions, [quiz, QuizRecord(quiz_id="empty")])
		# three summaries -> threshold 2
		self.assertEqual(insight.aggregated_weak_tags, ["a"])
		self.assertEqual(insight.aggregated_strong_tags, ["b"])
		self.assertEqual(insight.total_sessions, 3)
		self.assertEqual(insight.total_questions, 7)

	def test_sessions_without_summary_still_count(self) -> None:
		insight = compute_user_insight("u1", [CompletedSession(session_id="s1", item_count=4)], [])
		self.assertEqual((insight.total_sessions, insight.total_questions), (1, 4))
		self.assertEqual(insight.aggregated_weak_tags, [])
		self.assertIsNone(insight.top_forgotten_points)

	def test_zero_input(self) -> None:
		insight = compute_user_insight("u1", [], [])
		self.assertEqual((insight.total_sessions, insight.total_questions), (0, 0))
		self.assertEqual(insight.top_focus_areas, [])
		self.assertIsNone(insight.top_forgotten_points)

	def test_focus_is_top_five(self) -> None:
		sessions = [session(f"s{i}", recommended_focus=[f"t{j}" for j in range(i + 1)]) for i in range(7)]
		insight = compute_user_insight("u1", sessions, [])
		self.assertEqual(insight.top_focus_areas, ["t0", "t1", "t2", "t3", "t4"])


class ForgottenPointMergeTests(unittest.TestCase):
	def test_merged_across_sessions(self) -> None:
		sessions = [
			session("s1", frequently_forgotten_points=[
				ForgottenPoint(point="mention ttl", frequency=2, tags=["x"]),
				ForgottenPoint(point="eviction", frequency=1),
			]),
			session("s2", frequently_forgotten_points=[ForgottenPoint(point=" Mention TTL", frequency=1, tags=["y", "x"])]),
		]
		points = merge_forgotten_points(sessions)
		self.assertEqual(points[0].point, "mention ttl")
		self.assertEqual((points[0].total_frequency, points[0].session_count), (3, 2))
		self.assertEqual(points[0].tags, ["x", "y"])
		self.assertEqual(points[1].point, "eviction")

	def test_top_five(self) -> None:
		sessions = [session("s1", frequently_forgotten_points=[ForgottenPoint(point=f"p{i}", frequency=i) for i in range(8)])]
		self.assertEqual([p.point for p in merge_forgotten_points(sessions)], ["p7", "p6", "p5", "p4", "p3"])


class AggregateUserInsightsTests(unittest.TestCase):
	def test_upserts_the_computed_insight(self) -> None:
		store = FakeStore(sessions=[session("s1", weak_tags=["a"])])
		insight = aggregate_user_insights("u1", store)
		self.assertEqual(store.upserts, [(insight, True)])
		self.assertEqual(insight.aggregated_weak_tags, ["a"])

	def test_zero_summaries_still_write(self) -> None:
		store = FakeStore()
		aggregate_user_insights("u1", store)
		self.assertEqual(len(store.upserts), 1)
		self.assertEqual(store.upserts[0][0].total_sessions, 0)

	def test_forgotten_points_column_missing(self) -> None:
		store = FakeStore(sessions=[session("s1", weak_tags=["a"])], fail_field="top_forgotten_points")
		with self.assertLogs("iprep_coach.insights", level="WARNING"):
			insight = aggregate_user_insights("u1", store)
		self.assertEqual(len(store.upserts), 1)
		written, include = store.upserts[0]
		self.assertFalse(include)
		self.assertEqual(written.aggregated_weak_tags, ["a"])
		self.assertIsNone(insight.top_forgotten_points)

	def test_other_storage_errors_propagate(self) -> None:
		store = FakeStore(fail_field="total_questions")
		with self.assertRaises(StorageSchemaError):
			aggregate_user_insights("u1", store)


if __name__ == "__main__":
	unittest.main()
