"""
Unit tests for trivia data models.
"""
import unittest
import asyncio

from trivia_bot.models import CATEGORIES, Question, SessionStatus, TriviaSession


class TestQuestion(unittest.TestCase):
    """Test cases for the Question model."""

    def setUp(self):
        self.question = Question("Capital of Italy?", "Rome", ("Milan", "Naples", "Turin"))

    def test_options_contain_every_answer_once(self):
        """Test options include the correct answer and each distractor."""
        options = self.question.options()

        self.assertEqual(len(options), 4)
        self.assertEqual(sorted(options), sorted(["Rome", "Milan", "Naples", "Turin"]))

    def test_options_returns_new_list(self):
        """Test that shuffling never touches the question itself."""
        options = self.question.options()
        options.clear()

        self.assertEqual(len(self.question.options()), 4)
        self.assertEqual(self.question.incorrect_answers, ("Milan", "Naples", "Turin"))

    def test_options_order_varies(self):
        """Test that repeated presentations are shuffled."""
        orders = {tuple(self.question.options()) for _ in range(200)}
        self.assertGreater(len(orders), 1)

    def test_question_is_immutable(self):
        """Test that questions cannot be modified after creation."""
        with self.assertRaises(AttributeError):
            self.question.correct_answer = "Milan"


class TestTriviaSession(unittest.IsolatedAsyncioTestCase):
    """Test cases for the TriviaSession model."""

    async def test_defaults(self):
        """Test a fresh session starts in category selection."""
        session = TriviaSession(participant_id=1)

        self.assertEqual(session.status, SessionStatus.CATEGORY_SELECTING)
        self.assertIsNone(session.category)
        self.assertEqual(session.questions, [])
        self.assertEqual(session.current_index, 0)
        self.assertEqual(session.score, 0)
        self.assertFalse(session.resolved)
        self.assertIsNone(session.active_timer)
        self.assertIsInstance(session.lock, asyncio.Lock)

    async def test_sessions_do_not_share_state(self):
        """Test that default factories give each session its own list and lock."""
        first = TriviaSession(participant_id=1)
        second = TriviaSession(participant_id=2)

        first.questions.append(Question("Q?", "A", ("B",)))

        self.assertEqual(second.questions, [])
        self.assertIsNot(first.lock, second.lock)

    async def test_current_question_and_completion(self):
        """Test current question lookup as the index advances."""
        questions = [Question("Q1?", "A", ("B",)), Question("Q2?", "C", ("D",))]
        session = TriviaSession(participant_id=1, questions=questions)

        self.assertIs(session.current_question, questions[0])
        self.assertFalse(session.is_complete)

        session.current_index = 2
        self.assertIsNone(session.current_question)
        self.assertTrue(session.is_complete)


class TestCategories(unittest.TestCase):
    """Test cases for the category catalogue."""

    def test_ten_categories(self):
        self.assertEqual(len(CATEGORIES), 10)
        self.assertIn("film_and_tv", CATEGORIES)
        self.assertEqual(CATEGORIES["arts_and_literature"], "Arts & Literature")


if __name__ == '__main__':
    unittest.main()
