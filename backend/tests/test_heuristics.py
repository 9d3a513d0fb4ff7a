import unittest

from iprep_coach.heuristics import (
	_confidence_raw,
	analyze_confidence,
	analyze_heuristics,
	analyze_intonation,
	analyze_pause_patterns,
	analyze_technical_knowledge,
	analyze_voice_quality,
	matched_domain_terms,
	to_band,
)
from iprep_coach.metrics import count_words, extract_metrics
from iprep_coach.schemas import WordTiming

CONFIDENT = (
	"I achieved a forty percent drop in checkout latency by moving session data into a cache. "
	"The team then rolled the change out to every region."
)
CACHING_ANSWER = (
	"We put a cache in front of the database and moved writes to a queue, "
	"which cut latency for 2000 users."
)


class BandTests(unittest.TestCase):
	def test_half_rounds_up_and_clamps(self) -> None:
		cases = [(3.5, 4), (2.5, 3), (2.49, 2), (4.8, 5), (7.3, 5), (-1.0, 0)]
		for raw, expected in cases:
			with self.subTest(raw=raw):
				self.assertEqual(to_band(raw), expected)


class ConfidenceTests(unittest.TestCase):
	def test_table(self) -> None:
		# (transcript, filler_count, long_pauses, expected)
		cases = [
			# complete sentences, no fillers, no pauses, strong statement: 3 + 0.5 + 0.5 + 0.5 + 0.3
			(CONFIDENT, 0, 0, 5),
			# hedging, fillers and long pauses: 3 + 0.5 - 0.5 - 0.5 - 0.5
			("Maybe we could perhaps try it, probably later, I guess.", 1, 4, 2),
			# trailing off: 3 - 0.5 + 0.5 + 0.5 = 3.5 rounds up
			("Well... I was... not sure --", 0, 0, 4),
		]
		for text, fillers, pauses, expected in cases:
			with self.subTest(text=text):
				self.assertEqual(analyze_confidence(text, fillers, count_words(text), pauses), expected)


	def test_one_rule_at_a_time(self) -> None:
		# baseline: two complete sentences of 20 words, 2.5% fillers, two long pauses,
		# no strong statement, no hedges, no trailing off: 3 + 0.5
		base = "The service handled checkout traffic for the whole store. It stayed up during the holiday peak."
		# (name, transcript, filler_count, word_count, long_pauses, raw, band)
		cases = [
			("baseline", base, 1, 40, 2, 3.5, 4),
			("low filler rate", base, 0, 40, 2, 4.0, 4),
			("high filler rate", base, 3, 40, 2, 3.0, 3),
			("filler rate at 5%", base, 2, 40, 2, 3.5, 4),
			("no long pauses", base, 1, 40, 0, 4.0, 4),
			("three long pauses", base, 1, 40, 3, 3.5, 4),
			("four long pauses", base, 1, 40, 4, 3.0, 3),
			("long sentences", base, 2, 80, 2, 3.0, 3),
			(
				"strong statement",
				"We delivered checkout traffic handling for the whole store. It stayed up during the holiday peak.",
				1, 40, 2, 3.8, 4,
			),
			(
				"two hedges",
				"Maybe the service handled checkout traffic for the whole store. It probably stayed up during the peak.",
				1, 40, 2, 3.5, 4,
			),
			(
				"three hedges",
				"Maybe the service handled checkout traffic, perhaps for the whole store. It probably stayed up during the peak.",
				1, 40, 2, 3.0, 3,
			),
			(
				"trailing off",
				"The service handled checkout traffic for the whole store... It stayed up during the holiday peak.",
				1, 40, 2, 3.0, 3,
			),
		]
		for name, text, fillers, words, pauses, raw, band in cases:
			with self.subTest(rule=name):
				self.assertAlmostEqual(_confidence_raw(text, fillers, words, pauses), raw)
				self.assertEqual(analyze_confidence(text, fillers, words, pauses), band)


class IntonationTests(unittest.TestCase):
	def test_flat_delivery_scores_low(self) -> None:
		text = "We built it. We ran it. We kept it."
		self.assertEqual(analyze_intonation(text, count_words(text)), 1)

	def test_varied_delivery_scores_high(self) -> None:
		text = (
			"I'm thrilled! We cut latency by 40% and it's really paying off. Did it work? "
			"Absolutely, and we didn't stop there because users noticed."
		)
		self.assertEqual(analyze_intonation(text, count_words(text)), 5)


class PausePatternTests(unittest.TestCase):
	def test_sentence_boundary_pauses_are_natural(self) -> None:
		words = [
			WordTiming(word="done.", start=0.0, end=0.5),
			WordTiming(word="Then", start=0.9, end=1.1),
			WordTiming(word="we", start=2.0, end=2.2),
		]
		patterns = analyze_pause_patterns(words)
		self.assertEqual(patterns.natural_pauses, 2)
		self.assertEqual(patterns.awkward_pauses, 0)

	def test_no_words(self) -> None:
		patterns = analyze_pause_patterns(None)
		self.assertEqual((patterns.natural_pauses, patterns.awkward_pauses, patterns.pause_distribution), (0, 0, 3))


class VoiceQualityTests(unittest.TestCase):
	def test_pacing_band(self) -> None:
		text = "We shipped the feature on time."
		wc = count_words(text)
		self.assertEqual(analyze_voice_quality(text, None, wc, 130).pacing, 4)
		self.assertEqual(analyze_voice_quality(text, None, wc, 90).pacing, 2)
		self.assertEqual(analyze_voice_quality(text, None, wc, None).pacing, 3)


class TechnicalKnowledgeTests(unittest.TestCase):
	def test_software_engineering_terms(self) -> None:
		knowledge = analyze_technical_knowledge(CACHING_ANSWER)
		self.assertEqual(knowledge.matched_terms, ["database", "cache", "queue", "latency"])
		self.assertEqual(knowledge.terminology, 1)
		self.assertEqual(knowledge.specificity, 4)
		self.assertEqual(knowledge.depth, 3)

	def test_unknown_domain_uses_default_terms(self) -> None:
		self.assertEqual(
			matched_domain_terms(CACHING_ANSWER, "Gardening"),
			matched_domain_terms(CACHING_ANSWER),
		)

	def test_domain_specific_terms(self) -> None:
		self.assertIn("sharding", matched_domain_terms("We added sharding and replication.", "System Design"))


class AnalyzeHeuristicsTests(unittest.TestCase):
	def test_scores_stay_in_band(self) -> None:
		samples = ["", "ok", CONFIDENT, CACHING_ANSWER, "um uh um uh " * 30, "Wow!!! " * 40]
		for text in samples:
			with self.subTest(text=text[:20]):
				scores = analyze_heuristics(text, extract_metrics(text))
				for name, value in scores.model_dump().items():
					self.assertGreaterEqual(value, 0, name)
					self.assertLessEqual(value, 5, name)

	def test_timed_words_are_used(self) -> None:
		words = [WordTiming(word=w, start=i * 0.4, end=i * 0.4 + 0.3) for i, w in enumerate(CONFIDENT.split())]
		scores = analyze_heuristics(CONFIDENT, extract_metrics(CONFIDENT, words), words)
		self.assertGreaterEqual(scores.confidence, 4)


if __name__ == "__main__":
	unittest.main()
