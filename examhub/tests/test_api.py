"""
API tests: HTTP status codes, error bodies and what each role can see.
"""
from django.core.cache import cache
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from examhub.models import AuditLog, Exam, ExamAttempt, UserAnswer
from .factories import make_teacher, make_student, make_exam, add_mc, add_tf, add_essay


class APITestBase(APITestCase):

    def setUp(self):
        # Throttle history lives in the cache.
        cache.clear()
        self.teacher = make_teacher()
        self.student = make_student()
        self.exam = make_exam(self.teacher)
        self.mc = add_mc(self.exam, order=1, points=2)
        self.tf = add_tf(self.exam, order=2, points=1)
        self.essay = add_essay(self.exam, order=3, points=5, accepted_answers=['The axis of the Earth is tilted.'])

    def start_attempt(self, user=None):
        self.client.force_authenticate(user=user or self.student)
        response = self.client.post(f'/api/exams/{self.exam.pk}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data['id']

    def submit(self, attempt_id, question, answer):
        return self.client.post(
            f'/api/attempts/{attempt_id}/answers/',
            {'question_id': question.pk, 'answer': answer},
            format='json'
        )


class ExamAPITests(APITestBase):

    def test_token_authentication(self):
        """Token header authenticates like the rest of the API."""
        token = Token.objects.create(user=self.teacher)
        self.client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
        response = self.client.get('/api/exams/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_unauthenticated_rejected(self):
        response = self.client.get('/api/exams/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_exam_issues_code(self):
        """Access code comes from the server even if the client sends one."""
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post('/api/exams/', {
            'title': 'Algebra', 'duration': 45, 'access_code': 'MINE01'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotEqual(response.data['access_code'], 'MINE01')
        self.assertEqual(len(response.data['access_code']), 6)
        self.assertEqual(Exam.objects.get(pk=response.data['id']).created_by, self.teacher)

    def test_only_owner_lists_and_changes_exam(self):
        other = make_teacher('other')
        self.client.force_authenticate(user=other)
        self.assertEqual(self.client.get('/api/exams/').data['count'], 0)
        response = self.client.patch(f'/api/exams/{self.exam.pk}/', {'title': 'Mine now'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/exams/{self.exam.pk}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_exam_detail_for_owner(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.get(f'/api/exams/{self.exam.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['question_count'], 3)
        self.assertEqual(response.data['total_points'], 8)
        self.assertEqual(len(response.data['questions']), 3)

    def test_add_question(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(f'/api/exams/{self.exam.pk}/questions/', {
            'question_type': 'true-false',
            'content': 'Water boils at 100C at sea level.',
            'points': 1,
            'order': 4,
            'correct_answer': True
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIs(response.data['correct_answer'], True)

    def test_add_question_with_bad_key(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(f'/api/exams/{self.exam.pk}/questions/', {
            'question_type': 'multiple-choice',
            'content': 'Pick',
            'order': 4,
            'options': ['A', 'B'],
            'correct_answer': 'C'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('correct_answer', response.data)

    def test_add_question_duplicate_order(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(f'/api/exams/{self.exam.pk}/questions/', {
            'question_type': 'true-false', 'content': 'Again', 'order': 1, 'correct_answer': False
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('order', response.data)

    def test_student_cannot_add_question(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.post(f'/api/exams/{self.exam.pk}/questions/', {
            'question_type': 'essay', 'content': 'x', 'order': 9
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_question_keeps_key_consistent(self):
        """Partial updates are checked against the stored fields."""
        self.client.force_authenticate(user=self.teacher)
        response = self.client.patch(f'/api/questions/{self.mc.pk}/', {'correct_answer': 'Z'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.patch(f'/api/questions/{self.mc.pk}/', {'correct_answer': 'C'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_exam_attempts_owner_only(self):
        self.start_attempt()
        response = self.client.get(f'/api/exams/{self.exam.pk}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get(f'/api/exams/{self.exam.pk}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['username'], 'student')


class QuestionEditAPITests(APITestBase):
    """Questions keep their scoring while students are answering them."""

    def setUp(self):
        super().setUp()
        self.attempt_id = self.start_attempt()
        response = self.submit(self.attempt_id, self.mc, 'B')
        self.assertEqual(response.data['score'], 2)

    def complete_as_student(self):
        self.client.force_authenticate(user=self.student)
        return self.client.post(f'/api/attempts/{self.attempt_id}/complete/')

    def test_points_change_refused_during_attempt(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.patch(f'/api/questions/{self.mc.pk}/', {'points': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'question_in_use')
        self.mc.refresh_from_db()
        self.assertEqual(self.mc.points, 2)

        response = self.complete_as_student()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 2)
        self.assertEqual(response.data['max_score'], 8)

    def test_delete_refused_during_attempt(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.delete(f'/api/questions/{self.mc.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'question_in_use')
        self.assertTrue(UserAnswer.objects.filter(question=self.mc).exists())

        response = self.complete_as_student()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')

    def test_answer_key_change_refused_during_attempt(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.patch(f'/api/questions/{self.mc.pk}/', {'correct_answer': 'C'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'question_in_use')

    def test_wording_change_allowed_during_attempt(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.patch(
            f'/api/questions/{self.mc.pk}/', {'content': 'Pick the second one', 'points': 2}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['content'], 'Pick the second one')

    def test_edit_and_delete_after_completion(self):
        """Completed attempts keep their totals when questions change later."""
        self.complete_as_student()
        self.client.force_authenticate(user=self.teacher)
        response = self.client.patch(f'/api/questions/{self.mc.pk}/', {'points': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.delete(f'/api/questions/{self.tf.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        attempt = ExamAttempt.objects.get(pk=self.attempt_id)
        self.assertEqual(attempt.score, 2)
        self.assertEqual(attempt.max_score, 8)

    def test_essay_points_fixed_while_reviewable(self):
        self.submit(self.attempt_id, self.essay, 'The Earth is tilted on its axis.')
        self.complete_as_student()
        self.client.force_authenticate(user=self.teacher)
        response = self.client.patch(f'/api/questions/{self.essay.pk}/', {'points': 10}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'question_in_use')


class AttemptAPITests(APITestBase):

    def test_start_attempt_logged(self):
        attempt_id = self.start_attempt()
        self.assertTrue(ExamAttempt.objects.filter(pk=attempt_id, user=self.student).exists())
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.ATTEMPT_START).exists())

    def test_start_attempt_on_draft_exam(self):
        self.exam.status = Exam.Status.DRAFT
        self.exam.save()
        self.client.force_authenticate(user=self.student)
        response = self.client.post(f'/api/exams/{self.exam.pk}/attempts/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'exam_not_open')

    def test_submit_and_complete(self):
        """Answers are graded on submit and the total is fixed on completion."""
        attempt_id = self.start_attempt()

        response = self.submit(attempt_id, self.mc, 'B')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_correct'])
        self.assertEqual(response.data['score'], 2)

        response = self.submit(attempt_id, self.tf, False)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['score'], 0)

        response = self.client.post(f'/api/attempts/{attempt_id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['score'], 2)
        self.assertEqual(response.data['max_score'], 8)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(len(response.data['answers']), 2)

    def test_invalid_answer_error_body(self):
        attempt_id = self.start_attempt()
        response = self.submit(attempt_id, self.tf, 'maybe')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_boolean')
        self.assertIn('detail', response.data)

    def test_duplicate_answer(self):
        attempt_id = self.start_attempt()
        self.submit(attempt_id, self.mc, 'A')
        response = self.submit(attempt_id, self.mc, 'B')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'duplicate_answer')

    def test_submit_to_completed_attempt(self):
        attempt_id = self.start_attempt()
        self.client.post(f'/api/attempts/{attempt_id}/complete/')
        response = self.submit(attempt_id, self.mc, 'B')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(UserAnswer.objects.exists())

    def test_other_student_cannot_submit(self):
        attempt_id = self.start_attempt()
        self.client.force_authenticate(user=make_student('intruder'))
        response = self.submit(attempt_id, self.mc, 'B')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get(f'/api/attempts/{attempt_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_complete_other_students_attempt(self):
        attempt_id = self.start_attempt()
        self.client.force_authenticate(user=make_student('intruder'))
        response = self.client.post(f'/api/attempts/{attempt_id}/complete/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'forbidden')
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.PERMISSION_DENIED).exists())

    def test_attempt_questions_hide_answer_key(self):
        attempt_id = self.start_attempt()
        response = self.client.get(f'/api/attempts/{attempt_id}/questions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([q['order'] for q in response.data], [1, 2, 3])
        for question in response.data:
            self.assertNotIn('correct_answer', question)
            self.assertNotIn('accepted_answers', question)

    def test_shuffled_questions_stable_per_attempt(self):
        self.exam.shuffle_questions = True
        self.exam.save()
        attempt_id = self.start_attempt()
        first = [q['id'] for q in self.client.get(f'/api/attempts/{attempt_id}/questions/').data]
        second = [q['id'] for q in self.client.get(f'/api/attempts/{attempt_id}/questions/').data]
        self.assertEqual(first, second)
        self.assertEqual(sorted(first), sorted([self.mc.pk, self.tf.pk, self.essay.pk]))

    def test_results_hidden_when_disabled(self):
        self.exam.show_results = False
        self.exam.save()
        attempt_id = self.start_attempt()
        response = self.submit(attempt_id, self.mc, 'B')
        self.assertIsNone(response.data['score'])
        self.assertIsNone(response.data['is_correct'])

        self.client.force_authenticate(user=self.teacher)
        response = self.client.get(f'/api/attempts/{attempt_id}/')
        self.assertEqual(response.data['score'], 2)

    def test_correct_answers_shown_after_completion(self):
        self.exam.show_correct_answers = True
        self.exam.save()
        attempt_id = self.start_attempt()
        self.submit(attempt_id, self.mc, 'A')
        response = self.client.post(f'/api/attempts/{attempt_id}/complete/')
        self.assertEqual(response.data['answers'][0]['correct_answer'], 'B')

    def test_my_attempts(self):
        self.start_attempt()
        response = self.client.get('/api/attempts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class ReviewAPITests(APITestBase):

    def setUp(self):
        super().setUp()
        self.attempt_id = self.start_attempt()
        response = self.submit(self.attempt_id, self.essay, 'The Earth is tilted on its axis.')
        self.answer_id = response.data['id']
        self.client.post(f'/api/attempts/{self.attempt_id}/complete/')

    def test_review_flow(self):
        response = self.client.put(f'/api/answers/{self.answer_id}/', {'review_requested': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['review_requested'])

        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(
            f'/api/answers/{self.answer_id}/review/', {'accepted': True, 'comment': 'Correct.'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_correct'])
        self.assertEqual(response.data['score'], 5)
        self.assertEqual(ExamAttempt.objects.get(pk=self.attempt_id).score, 5)
        self.assertTrue(AuditLog.objects.filter(event_type=AuditLog.EventType.REVIEW_COMPLETE).exists())

    def test_student_cannot_complete_review(self):
        self.client.put(f'/api/answers/{self.answer_id}/', {'review_requested': True}, format='json')
        response = self.client.post(f'/api/answers/{self.answer_id}/review/', {'accepted': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.put(
            f'/api/answers/{self.answer_id}/', {'reviewed': True, 'is_correct': True}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(UserAnswer.objects.get(pk=self.answer_id).score, 0)

    def test_review_without_request(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.post(f'/api/answers/{self.answer_id}/review/', {'accepted': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'review_not_requested')

    def test_second_review_conflicts(self):
        self.client.put(f'/api/answers/{self.answer_id}/', {'review_requested': True}, format='json')
        self.client.force_authenticate(user=self.teacher)
        self.client.post(f'/api/answers/{self.answer_id}/review/', {'accepted': False}, format='json')
        response = self.client.post(f'/api/answers/{self.answer_id}/review/', {'accepted': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'already_reviewed')
        self.assertEqual(ExamAttempt.objects.get(pk=self.attempt_id).score, 0)

    def test_unknown_update_field(self):
        response = self.client.patch(f'/api/answers/{self.answer_id}/', {'answer': 'edited'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_answer_detail(self):
        response = self.client.get(f'/api/answers/{self.answer_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['question_type'], 'essay')


class PublicExamAPITests(APITestBase):

    def test_lookup_without_authentication(self):
        response = self.client.get(f'/api/public/exams/{self.exam.access_code}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data), {'id', 'title', 'description', 'subject', 'grade', 'duration'})

    def test_lookup_unknown_code(self):
        response = self.client.get('/api/public/exams/XXXXXX0/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')

    def test_lookup_inactive_exam(self):
        self.exam.status = Exam.Status.DRAFT
        self.exam.save()
        response = self.client.get(f'/api/public/exams/{self.exam.access_code}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class InstructorDashboardAPITests(APITestBase):

    def setUp(self):
        super().setUp()
        attempt_id = self.start_attempt()
        response = self.submit(attempt_id, self.essay, 'Earth axis is tilted so sunlight angle changes.')
        self.answer_id = response.data['id']
        self.client.post(f'/api/attempts/{attempt_id}/complete/')
        self.client.put(f'/api/answers/{self.answer_id}/', {'review_requested': True}, format='json')

    def test_dashboard(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.get('/api/dashboard/instructor/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stats'], {
            'exam_count': 1,
            'student_count': 1,
            'completed_count': 1,
            'pending_count': 0,
            'review_request_count': 1,
        })
        self.assertEqual(len(response.data['review_requests']), 1)

    def test_review_queue_with_hint(self):
        self.client.force_authenticate(user=self.teacher)
        response = self.client.get('/api/reviews/pending/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        item = response.data[0]
        self.assertEqual(item['id'], self.answer_id)
        self.assertEqual(item['student'], 'student')
        self.assertGreater(item['hint']['best_similarity'], 0)

    def test_students_have_no_dashboard(self):
        self.client.force_authenticate(user=self.student)
        response = self.client.get('/api/dashboard/instructor/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
