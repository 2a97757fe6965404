from django.test import TestCase

from examhub.models import UserAnswer
from examhub.services import ReviewHintService
from .factories import make_teacher, make_student, make_exam, add_mc, add_essay


class ReviewHintServiceTests(TestCase):
    """Similarity hints shown next to pending essay reviews."""

    def setUp(self):
        self.service = ReviewHintService(threshold=0.3)
        exam = make_exam(make_teacher())
        self.essay = add_essay(exam, order=1, accepted_answers=[
            'Photosynthesis converts light energy into chemical energy stored in glucose.',
            'Plants make food from sunlight, water and carbon dioxide.',
        ])
        self.mc = add_mc(exam, order=2)
        self.attempt = exam.attempts.create(user=make_student())

    def _answer(self, question, text):
        return UserAnswer.objects.create(attempt=self.attempt, question=question, answer=text, score=0)

    def test_similar_answer_matches(self):
        answer = self._answer(self.essay, 'Photosynthesis turns light energy into chemical energy in glucose.')
        hint = self.service.hint_for(answer)
        self.assertTrue(hint['matches_reference'])
        self.assertEqual(hint['closest_reference'], self.essay.accepted_answers[0])

    def test_unrelated_answer_does_not_match(self):
        answer = self._answer(self.essay, 'The French revolution began in 1789.')
        hint = self.service.hint_for(answer)
        self.assertFalse(hint['matches_reference'])
        self.assertLess(hint['best_similarity'], 0.3)

    def test_no_hint_without_references(self):
        self.essay.accepted_answers = None
        self.essay.save()
        answer = self._answer(self.essay, 'Anything')
        self.assertIsNone(self.service.hint_for(answer))

    def test_no_hint_for_objective_questions(self):
        answer = self._answer(self.mc, 'B')
        self.assertIsNone(self.service.hint_for(answer))

    def test_stop_words_only(self):
        """Text with nothing to compare scores zero instead of failing."""
        self.assertEqual(self.service.similarities('the and of', ['is it']), [0.0])

    def test_hint_never_changes_score(self):
        answer = self._answer(self.essay, 'Photosynthesis converts light energy into chemical energy stored in glucose.')
        self.service.hint_for(answer)
        answer.refresh_from_db()
        self.assertEqual(answer.score, 0)
        self.assertIsNone(answer.is_correct)
