"""
Lesson ordering by the user's `lessons_presentation_order` preference.

Works on subject resources or bare subject data; the input is never reordered
in place. Shuffled orders draw from the supplied `random.Random` so a seeded
generator gives a repeatable order.
"""

import random
from collections.abc import Iterable
from typing import TypeVar

from wanikani.domain.envelope import Envelope
from wanikani.domain.models import LessonPresentationOrder
from wanikani.domain.subjects import SubjectCommon

S = TypeVar("S", bound=Envelope | SubjectCommon)

LESSON_ORDERS: tuple[str, ...] = (
    "ascending_level_then_subject",
    "shuffled",
    "ascending_level_then_shuffled",
)


def _common(subject: Envelope | SubjectCommon) -> SubjectCommon:
    data = subject.data if isinstance(subject, Envelope) else subject
    if not isinstance(data, SubjectCommon):
        raise TypeError(f"Not a subject: {type(subject).__name__}")
    return data


def order_subjects(
    subjects: Iterable[S],
    order: LessonPresentationOrder,
    rng: random.Random | None = None,
) -> list[S]:
    """
    Return subjects in lesson presentation order.

    Args:
        subjects: Subject resources (radical, kanji, vocabulary, kana
            vocabulary) or their data payloads.
        order: One of `LESSON_ORDERS`.
        rng: Source of randomness for the shuffled orders. Defaults to a
            fresh, unseeded generator.

    Raises:
        ValueError: `order` is not a known presentation order.
        TypeError: An item is not a subject.
    """
    if order not in LESSON_ORDERS:
        raise ValueError(f"Unknown lesson presentation order: {order!r}")

    ordered = list(subjects)
    for subject in ordered:
        _common(subject)

    if order == "ascending_level_then_subject":
        ordered.sort(key=lambda s: (_common(s).level, _common(s).lesson_position))
        return ordered

    rng = rng or random.Random()
    rng.shuffle(ordered)
    if order == "ascending_level_then_shuffled":
        # Stable sort keeps the shuffle within each level
        ordered.sort(key=lambda s: _common(s).level)
    return ordered
