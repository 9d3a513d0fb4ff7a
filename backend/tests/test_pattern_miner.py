import unittest

from iprep_coach.pattern_miner import CORRECTION_RULES, PRECISE_WORDING, match_correction, mine_session

from factories import make_item


class CorrectionRuleTests(unittest.TestCase):
	def test_recognised_phrasings(self) -> None:
		cases = [
			("Instead of 'database', say 'PostgreSQL'", ("database", "PostgreSQL")),
			('Instead of "stuff", use "payload".', ("stuff", "payload")),
			("You said: 'gonna'. Better: 'going to'", ("gonna", "going to")),
			("Better: 'idempotent' (instead of 'repeatable')", ("repeatable", "idempotent")),
			("better: 'p99 latency' rather than 'speed'", ("speed", "p99 latency")),
		]
		for text, expected in cases:
			with self.subTest(text=text):
				self.assertEqual(match_correction(text), expected)

	def test_unrelated_text(self) -> None:
		self.assertIsNone(match_correction("Add a concrete metric to the result."))
		self.assertIsNone(match_correction("Use a better example instead of that."))

	def test_rules_are_tried_in_order(self) -> None:
		self.assertEqual([r.name for r in CORRECTION_RULES], ["instead_of_say", "you_said_better", "better_instead_of"])
		self.assertTrue(CORRECTION_RULES[2].swap)


class MineSessionTests(unittest.TestCase):
	def setUp(self) -> None:
		self.items = [
			make_item(
				"q1",
				["caching"],
				4,
				technical_accuracy=2,
				impact_score=1,
				question_answered=False,
				better_wording=[
					"Instead of 'database', say 'PostgreSQL'",
					"Better: 'idempotent' (instead of 'repeatable')",
					"Use a better example instead of that.",
				],
				dont_forget=[" Mention TTL "],
			),
			make_item(
				"q2",
				["caching", "redis"],
				4,
				technical_accuracy=1,
				question_answered=True,
				better_wording=["You said: 'Database'. Better: 'postgresql'"],
				dont_forget=["mention ttl", "Eviction policy"],
			),
		]

	def test_terminology_corrections(self) -> None:
		terms = mine_session(self.items).frequently_misused_terms
		self.assertEqual([(t.incorrect_term, t.correct_term, t.frequency) for t in terms], [
			("database", "PostgreSQL", 2),
			("repeatable", "idempotent", 1),
		])
		self.assertEqual(terms[0].question_ids, ["q1", "q2"])
		self.assertEqual(terms[0].tags, ["caching", "redis"])
		self.assertEqual(len(terms[0].examples), 2)

	def test_score_and_wording_mistakes(self) -> None:
		mistakes = mine_session(self.items).common_mistakes
		self.assertEqual([(m.pattern, m.frequency) for m in mistakes], [
			("Lacks technical depth or accuracy", 2),
			("Missing specific metrics or impact statements", 1),
			("Answer doesn't fully address the question", 1),
			(PRECISE_WORDING, 1),
		])
		self.assertEqual(mistakes[0].examples, ["Technical accuracy: 2/5", "Technical accuracy: 1/5"])
		self.assertEqual(mistakes[2].examples, ["Question not fully answered"])
		self.assertEqual(mistakes[3].examples, ["Use a better example instead of that."])

	def test_forgotten_points(self) -> None:
		points = mine_session(self.items).frequently_forgotten_points
		self.assertEqual([(p.point, p.frequency) for p in points], [("mention ttl", 2), ("eviction policy", 1)])
		self.assertEqual(points[0].question_ids, ["q1", "q2"])
		self.assertEqual(points[0].tags, ["caching", "redis"])

	def test_identical_terms_become_wording_mistake(self) -> None:
		item = make_item("q1", [], 4, better_wording=["Instead of 'cache', say 'cache'", "x" * 150 + " better: tighter"])
		mined = mine_session([item])
		self.assertEqual(mined.frequently_misused_terms, [])
		self.assertEqual(mined.common_mistakes[0].pattern, PRECISE_WORDING)
		self.assertEqual(mined.common_mistakes[0].frequency, 2)
		self.assertEqual(len(mined.common_mistakes[0].examples[1]), 100)

	def test_collections_are_capped(self) -> None:
		items = [make_item(f"q{i}", [], 4, dont_forget=[f"point {i}"] * (i + 1)) for i in range(12)]
		points = mine_session(items).frequently_forgotten_points
		self.assertEqual(len(points), 10)
		self.assertEqual(points[0].point, "point 11")
		self.assertEqual(points[0].frequency, 12)

	def test_examples_are_capped(self) -> None:
		items = [make_item(f"q{i}", [], 4, better_wording=[f"Instead of 'db', say 'Postgres' ({i})"]) for i in range(5)]
		terms = mine_session(items).frequently_misused_terms
		self.assertEqual(terms[0].frequency, 5)
		self.assertEqual(len(terms[0].examples), 3)

	def test_empty_session(self) -> None:
		mined = mine_session([])
		self.assertEqual((mined.common_mistakes, mined.frequently_forgotten_points, mined.frequently_misused_terms), ([], [], []))


if __name__ == "__main__":
	unittest.main()
