import unittest

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from iprep_coach.db import Base, ensure_schema
from iprep_coach.errors import NotFoundError, StorageSchemaError
from iprep_coach.models import LearningSummary
from iprep_coach.schemas import Metrics, QuizAttempt, TopForgottenPoint, UserLearningInsight
from iprep_coach.session_aggregator import summarize_session
from iprep_coach.store import LearningStore, SqlLearningStore

from factories import make_result, memory_sessionmaker


class SqlLearningStoreTests(unittest.TestCase):
	def setUp(self) -> None:
		self.engine, Session = memory_sessionmaker()
		self.db = Session()
		self.store = SqlLearningStore(self.db)
		self.addCleanup(self.engine.dispose)
		self.addCleanup(self.db.close)

	def _answer(self, session_id="s1", question_id="q1", tags=("caching",), user_id="u1", **overrides) -> None:
		self.store.save_session_item(
			user_id,
			session_id,
			question_id,
			list(tags),
			make_result(**overrides),
			transcript="We cached the hot keys.",
			metrics=Metrics(word_count=5, wpm=120),
		)

	def test_items_round_trip(self) -> None:
		self._answer(question_id="q1", starScore=1, dontForget=["TTL"])
		self._answer(question_id="q2", tags=("redis",))
		items = self.store.load_session_items("s1", "u1")
		self.assertEqual([i.question_id for i in items], ["q1", "q2"])
		self.assertEqual(items[0].question_tags, ["caching"])
		self.assertEqual(items[0].star_score, 1)
		self.assertEqual(items[0].dont_forget, ["TTL"])
		self.assertEqual(items[0].better_wording, ["Instead of 'database', say 'PostgreSQL'"])
		self.assertEqual(items[0].metrics.wpm, 120)
		self.assertTrue(items[0].question_answered)

	def test_unknown_or_foreign_session(self) -> None:
		self._answer()
		with self.assertRaises(NotFoundError):
			self.store.load_session_items("missing")
		with self.assertRaises(NotFoundError):
			self.store.load_session_items("s1", "someone-else")
		with self.assertRaises(NotFoundError):
			self._answer(user_id="someone-else")

	def test_completed_sessions_and_summaries(self) -> None:
		self._answer(session_id="s1", starScore=1)
		self._answer(session_id="s1", question_id="q2")
		self._answer(session_id="s2")
		self._answer(session_id="s3")
		summary = summarize_session(self.store.load_session_items("s1"))
		self.store.save_session_summary("s1", "u1", summary)
		self.store.mark_session_completed("s1")
		self.store.mark_session_completed("s2")

		sessions = {s.session_id: s for s in self.store.load_completed_sessions("u1")}
		self.assertEqual(set(sessions), {"s1", "s2"})
		self.assertEqual(sessions["s1"].item_count, 2)
		self.assertEqual(sessions["s1"].summary, summary)
		self.assertIsNone(sessions["s2"].summary)
		self.assertEqual(self.store.sessions_missing_summary("u1"), ["s2"])

	def test_summary_save_is_an_upsert(self) -> None:
		self._answer()
		items = self.store.load_session_items("s1")
		self.store.save_session_summary("s1", "u1", summarize_session(items))
		self.store.save_session_summary("s1", "u1", summarize_session([]))
		self.assertEqual(self.db.query(LearningSummary).count(), 1)
		self.store.mark_session_completed("s1")
		self.assertEqual(self.store.load_completed_sessions("u1")[0].summary.overall_score, 0.0)

	def test_malformed_summary_fields_read_as_empty(self) -> None:
		self._answer()
		self.store.save_session_summary("s1", "u1", summarize_session(self.store.load_session_items("s1")))
		self.store.mark_session_completed("s1")
		row = self.db.get(LearningSummary, "s1")
		row.weak_tags_json = "{not json"
		row.forgotten_points_json = '[{"unexpected": true}]'
		self.db.commit()
		with self.assertLogs("iprep_coach.store", level="WARNING"):
			summary = self.store.load_completed_sessions("u1")[0].summary
		self.assertEqual(summary.weak_tags, [])
		self.assertEqual(summary.frequently_forgotten_points, [])

	def test_quizzes_grouped_by_quiz(self) -> None:
		self.store.save_quiz_attempt("u1", "z1", QuizAttempt(question_id="q1", question_tags=["a"], score=80))
		self.store.save_quiz_attempt("u1", "z2", QuizAttempt(question_id="q2", score=None))
		self.store.save_quiz_attempt("u1", "z1", QuizAttempt(question_id="q3", question_tags=["b"], score=60))
		self.store.save_quiz_attempt("u2", "z9", QuizAttempt(question_id="q1", score=10))
		quizzes = self.store.load_quizzes("u1")
		self.assertEqual([(q.quiz_id, len(q.attempts)) for q in quizzes], [("z1", 2), ("z2", 1)])
		self.assertEqual(quizzes[0].attempts[1].question_tags, ["b"])
		self.assertIsNone(quizzes[1].attempts[0].score)

	def test_insight_upsert_is_idempotent(self) -> None:
		first = UserLearningInsight(user_id="u1", aggregated_weak_tags=["a"], total_sessions=1, total_questions=2)
		second = UserLearningInsight(
			user_id="u1",
			aggregated_strong_tags=["b"],
			top_forgotten_points=[TopForgottenPoint(point="ttl", total_frequency=3, session_count=2)],
			total_sessions=2,
			total_questions=5,
		)
		self.store.upsert_insight(first)
		self.store.upsert_insight(second)
		self.store.upsert_insight(second)
		loaded = self.store.load_insight("u1")
		self.assertEqual(loaded.aggregated_weak_tags, [])
		self.assertEqual(loaded.aggregated_strong_tags, ["b"])
		self.assertEqual(loaded.top_forgotten_points[0].point, "ttl")
		self.assertEqual((loaded.total_sessions, loaded.total_questions), (2, 5))
		self.assertIsNone(self.store.load_insight("nobody"))


class LearningStoreInterfaceTests(unittest.TestCase):
	def test_partial_store_cannot_be_created(self) -> None:
		class SessionsOnlyStore(LearningStore):
			def load_session_items(self, session_id, user_id=None):
				return []

		with self.assertRaises(TypeError):
			SessionsOnlyStore()


class MissingForgottenPointsColumnTests(unittest.TestCase):
	def setUp(self) -> None:
		self.engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool, future=True)
		tables = [t for t in Base.metadata.sorted_tables if t.name != "user_learning_insights"]
		Base.metadata.create_all(bind=self.engine, tables=tables)
		with self.engine.begin() as conn:
			conn.exec_driver_sql(
				"CREATE TABLE user_learning_insights ("
				"user_id VARCHAR(128) PRIMARY KEY, "
				"aggregated_weak_tags_json TEXT, "
				"aggregated_strong_tags_json TEXT, "
				"top_focus_areas_json TEXT, "
				"total_sessions INTEGER NOT NULL DEFAULT 0, "
				"total_questions INTEGER NOT NULL DEFAULT 0, "
				"last_updated DATETIME NOT NULL)"
			)
		self.db = sessionmaker(bind=self.engine, future=True)()
		self.store = SqlLearningStore(self.db)
		self.addCleanup(self.engine.dispose)
		self.addCleanup(self.db.close)

	def test_upsert_degrades_and_migration_adds_column(self) -> None:
		insight = UserLearningInsight(user_id="u1", aggregated_weak_tags=["a"], top_forgotten_points=[])
		with self.assertRaises(StorageSchemaError) as ctx:
			self.store.upsert_insight(insight)
		self.assertEqual(ctx.exception.field, "top_forgotten_points")

		self.store.upsert_insight(insight, include_forgotten_points=False)
		with self.assertLogs("iprep_coach.store", level="WARNING"):
			loaded = self.store.load_insight("u1")
		self.assertEqual(loaded.aggregated_weak_tags, ["a"])
		self.assertIsNone(loaded.top_forgotten_points)

		self.db.close()
		ensure_schema(self.engine)
		columns = {c["name"] for c in inspect(self.engine).get_columns("user_learning_insights")}
		self.assertIn("top_forgotten_points", columns)


if __name__ == "__main__":
	unittest.main()
