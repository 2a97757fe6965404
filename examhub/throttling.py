from rest_framework.throttling import UserRateThrottle, AnonRateThrottle


class AnswerSubmissionThrottle(UserRateThrottle):
    """Rate limit for answer submissions within an attempt."""
    scope = 'submission'
    rate = '60/minute'


class AccessCodeLookupThrottle(AnonRateThrottle):
    """Rate limit for public access-code lookups to slow down code guessing."""
    scope = 'access_code'
    rate = '20/minute'
