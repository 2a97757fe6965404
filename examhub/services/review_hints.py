"""
Review hints: TF-IDF similarity between an essay answer and the question's
accepted reference answers.

Shown to the reviewer next to a pending review. Hints never change a score;
only a completed review does.
"""
from typing import List, Optional

import numpy as np
from django.conf import settings
from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity


class ReviewHintService:
    def __init__(self, threshold: Optional[float] = None):
        if threshold is None:
            threshold = getattr(settings, 'GRADING_ENGINE', {}).get('REVIEW_HINT_THRESHOLD', 0.35)
        self.threshold = threshold

    def _vectorizer(self):
        return TfidfVectorizer(
            lowercase=True,
            stop_words='english',
            ngram_range=(1, 2),
            sublinear_tf=True
        )

    def similarities(self, answer_text: str, references: List[str]) -> List[float]:
        """Cosine similarity of the answer to each reference, in reference order."""
        if not answer_text or not answer_text.strip() or not references:
            return [0.0] * len(references or [])
        try:
            matrix = self._vectorizer().fit_transform([answer_text] + list(references))
        except ValueError:
            # Only stop words or punctuation: nothing to compare.
            return [0.0] * len(references)
        scores = cosine_similarity(matrix[0:1], matrix[1:])[0]
        return [round(float(s), 4) for s in scores]

    def hint_for(self, user_answer) -> Optional[dict]:
        question = user_answer.question
        if not question.is_essay:
            return None
        references = [r for r in (question.accepted_answers or []) if isinstance(r, str) and r.strip()]
        if not references:
            return None

        answer_text = user_answer.answer if isinstance(user_answer.answer, str) else ''
        scores = self.similarities(answer_text, references)
        best = int(np.argmax(scores))
        return {
            'best_similarity': scores[best],
            'closest_reference': references[best],
            'matches_reference': scores[best] >= self.threshold,
        }
