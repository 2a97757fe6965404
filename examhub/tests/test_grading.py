"""
Tests for answer validation and grading rules.
Questions here are unsaved model instances; grading never touches the database.
"""
from django.test import SimpleTestCase

from examhub.exceptions import AnswerValidationError, QuestionMismatch
from examhub.grading import (
    DeferredEssayRule, ObjectiveGradingRule, ValidAnswer, get_grading_rule, grade, validate,
)
from examhub.models import Question


def mc_question(**kwargs):
    fields = dict(question_type='multiple-choice', content='?', order=1, points=2,
                  options=['A', 'B', 'C', 'D'], correct_answer='B')
    fields.update(kwargs)
    return Question(**fields)


def tf_question(**kwargs):
    fields = dict(question_type='true-false', content='?', order=2, points=1, correct_answer=True)
    fields.update(kwargs)
    return Question(**fields)


def essay_question(**kwargs):
    fields = dict(question_type='essay', content='?', order=3, points=5)
    fields.update(kwargs)
    return Question(**fields)


class ValidationTests(SimpleTestCase):
    """Raw answers are checked against the question shape before grading."""

    def assertInvalid(self, question, raw, code):
        with self.assertRaises(AnswerValidationError) as ctx:
            validate(question, raw)
        self.assertEqual(ctx.exception.code, code)

    def test_multiple_choice_accepts_option(self):
        answer = validate(mc_question(), 'C')
        self.assertEqual(answer, ValidAnswer('multiple-choice', 'C'))

    def test_multiple_choice_rejects_non_option(self):
        self.assertInvalid(mc_question(), 'E', AnswerValidationError.INVALID_OPTION)
        self.assertInvalid(mc_question(), 'b', AnswerValidationError.INVALID_OPTION)
        self.assertInvalid(mc_question(), 1, AnswerValidationError.INVALID_OPTION)
        self.assertInvalid(mc_question(), None, AnswerValidationError.INVALID_OPTION)

    def test_true_false_accepts_booleans(self):
        self.assertIs(validate(tf_question(), False).value, False)
        self.assertIs(validate(tf_question(), 'true').value, True)

    def test_true_false_rejects_other_values(self):
        """Integers are not booleans, even 0 and 1."""
        for raw in (1, 0, 'yes', 'True', None):
            self.assertInvalid(tf_question(), raw, AnswerValidationError.INVALID_BOOLEAN)

    def test_essay_requires_text(self):
        self.assertEqual(validate(essay_question(), '  Some text ').value, '  Some text ')
        for raw in ('', '   \n', None, 42):
            self.assertInvalid(essay_question(), raw, AnswerValidationError.EMPTY_ANSWER)

    def test_unsupported_type(self):
        question = Question(question_type='matching', content='?', order=1)
        self.assertInvalid(question, 'A', AnswerValidationError.UNSUPPORTED_TYPE)


class ObjectiveGradingTests(SimpleTestCase):
    """Exact-match grading for multiple-choice and true/false."""

    def test_multiple_choice_correct_and_wrong(self):
        """Correct option earns the points; any other earns zero."""
        question = mc_question()
        right = grade(question, validate(question, 'B'))
        wrong = grade(question, validate(question, 'C'))
        self.assertEqual((right.is_correct, right.score), (True, 2))
        self.assertEqual((wrong.is_correct, wrong.score), (False, 0))
        self.assertFalse(right.needs_review)

    def test_true_false_wrong(self):
        question = tf_question()
        result = grade(question, validate(question, False))
        self.assertEqual((result.is_correct, result.score), (False, 0))

    def test_string_never_matches_boolean_key(self):
        """Type must match as well as value."""
        result = ObjectiveGradingRule().grade_answer(tf_question(), ValidAnswer('true-false', 'true'))
        self.assertFalse(result.is_correct)
        self.assertEqual(result.score, 0)

    def test_missing_key_is_incorrect(self):
        """A question without a usable key grades as incorrect instead of failing."""
        question = tf_question(correct_answer=None)
        with self.assertLogs('examhub.grading.objective', level='WARNING'):
            result = grade(question, ValidAnswer('true-false', True))
        self.assertFalse(result.is_correct)
        self.assertEqual(result.score, 0)
        self.assertEqual(result.grading_method, 'exact_match_ungradable')

    def test_grading_is_repeatable(self):
        """Same question and answer always give the same result."""
        question = mc_question()
        answer = validate(question, 'B')
        self.assertEqual(grade(question, answer), grade(question, answer))

    def test_score_bounded_by_points(self):
        for raw in ('A', 'B', 'C', 'D'):
            result = grade(mc_question(points=3), ValidAnswer('multiple-choice', raw))
            self.assertIn(result.score, (0, 3))


class EssayGradingTests(SimpleTestCase):

    def test_essay_is_deferred(self):
        """Essays score zero with no verdict until reviewed."""
        question = essay_question()
        result = grade(question, validate(question, 'Any text'))
        self.assertIsNone(result.is_correct)
        self.assertEqual(result.score, 0)
        self.assertFalse(result.needs_review)
        self.assertTrue(result.is_deferred)

    def test_review_score(self):
        question = essay_question(points=5)
        self.assertEqual(DeferredEssayRule.review_score(question, True), 5)
        self.assertEqual(DeferredEssayRule.review_score(question, False), 0)


class RuleLookupTests(SimpleTestCase):

    def test_rule_per_type(self):
        self.assertIsInstance(get_grading_rule('multiple-choice'), ObjectiveGradingRule)
        self.assertIsInstance(get_grading_rule('true-false'), ObjectiveGradingRule)
        self.assertIsInstance(get_grading_rule('essay'), DeferredEssayRule)

    def test_unknown_type(self):
        with self.assertRaises(AnswerValidationError):
            get_grading_rule('matching')

    def test_answer_for_other_question_type(self):
        with self.assertRaises(QuestionMismatch):
            grade(mc_question(), ValidAnswer('true-false', True))
