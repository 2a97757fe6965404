"""
Management command to set up demo data for ExamHub.
Creates a teacher, a student, and one active exam covering every question type.
"""
from django.core.management.base import BaseCommand
from django.contrib.auth.models import User
from rest_framework.authtoken.models import Token
from examhub.models import Exam, Question, UserProfile


class Command(BaseCommand):
    help = 'Set up demo data for testing'

    def _user(self, username, password, role, **defaults):
        user, created = User.objects.get_or_create(username=username, defaults=defaults)
        if created:
            user.set_password(password)
            user.save()
            user.profile.role = role
            user.profile.save()
            self.stdout.write(self.style.SUCCESS(f'✓ Created {role}: {username} / {password}'))
        else:
            self.stdout.write(f'  User {username} already exists')
        token, _ = Token.objects.get_or_create(user=user)
        return user, token

    def handle(self, *args, **options):
        self.stdout.write(self.style.NOTICE('\nSetting up ExamHub demo data...\n'))

        teacher, teacher_token = self._user(
            'teacher', 'teacher123', UserProfile.Role.TEACHER,
            email='teacher@example.com', first_name='Demo', last_name='Teacher'
        )
        student, student_token = self._user(
            'student', 'student123', UserProfile.Role.STUDENT,
            email='student@example.com', first_name='Demo', last_name='Student'
        )

        exam, created = Exam.objects.get_or_create(
            title='Solar System Basics',
            created_by=teacher,
            defaults={
                'description': 'A short quiz on the planets.',
                'subject': 'Science',
                'grade': 'Grade 6',
                'duration': 20,
                'status': Exam.Status.ACTIVE,
                'show_results': True,
                'show_correct_answers': True,
                'allow_review': True,
            }
        )

        if created:
            Question.objects.create(
                exam=exam,
                question_type=Question.QuestionType.MULTIPLE_CHOICE,
                content='Which planet is closest to the Sun?',
                points=2,
                order=1,
                options=['Venus', 'Mercury', 'Mars', 'Earth'],
                correct_answer='Mercury'
            )
            Question.objects.create(
                exam=exam,
                question_type=Question.QuestionType.TRUE_FALSE,
                content='Jupiter is a gas giant.',
                points=1,
                order=2,
                correct_answer=True
            )
            Question.objects.create(
                exam=exam,
                question_type=Question.QuestionType.ESSAY,
                content='Explain why we have seasons on Earth.',
                points=5,
                order=3,
                accepted_answers=[
                    'Seasons are caused by the tilt of the Earth axis relative to its orbit around the Sun.'
                ]
            )
            self.stdout.write(self.style.SUCCESS(f'✓ Exam: {exam.title} with 3 questions'))
        else:
            self.stdout.write(f'  Exam already exists: {exam.title}')

        self.stdout.write(self.style.SUCCESS('\n' + '=' * 60))
        self.stdout.write(self.style.SUCCESS('Demo Setup Complete!'))
        self.stdout.write(self.style.SUCCESS('=' * 60))

        self.stdout.write('\nDemo Accounts:')
        self.stdout.write('  teacher / teacher123')
        self.stdout.write('  student / student123')

        self.stdout.write('\nAPI Tokens:')
        self.stdout.write(f'  Teacher: {teacher_token.key}')
        self.stdout.write(f'  Student: {student_token.key}')

        self.stdout.write(f'\nAccess code: {exam.access_code}')
        self.stdout.write('\nAPI Documentation:')
        self.stdout.write('  Swagger UI: http://localhost:8000/api/docs/')
        self.stdout.write('  ReDoc:      http://localhost:8000/api/redoc/')

        self.stdout.write('\nTry it:')
        self.stdout.write(f'  curl http://localhost:8000/api/public/exams/{exam.access_code}/')
        self.stdout.write(
            f'  curl -X POST -H "Authorization: Token {student_token.key}" '
            f'http://localhost:8000/api/exams/{exam.pk}/attempts/'
        )
        self.stdout.write('')
