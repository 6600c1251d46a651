"""
Subject data models: radicals, kanji, vocabulary and kana vocabulary.

All four share `SubjectCommon`; the envelope's `object` field says which kind
a payload is, so the kind-specific classes carry no discriminator of their own.

Mnemonic and hint strings may contain WaniKani markup such as
`<radical></radical>`, `<kanji></kanji>`, `<meaning></meaning>`; it is kept
verbatim.
"""

from typing import Literal

from pydantic import Field

from .models import Gender, Timestamp, WaniKaniModel


class Meaning(WaniKaniModel):
    meaning: str
    primary: bool
    accepted_answer: bool


class AuxiliaryMeaning(WaniKaniModel):
    """Secondary meaning; `blacklist` entries are used to detect wrong answers."""

    meaning: str
    type: Literal["whitelist", "blacklist"]


class SubjectCommon(WaniKaniModel):
    auxiliary_meanings: list[AuxiliaryMeaning] = Field(default_factory=list)
    created_at: Timestamp
    document_url: str
    hidden_at: Timestamp | None = None
    lesson_position: int
    level: int
    meaning_mnemonic: str
    meanings: list[Meaning]
    slug: str
    spaced_repetition_system_id: int


class SvgMetadata(WaniKaniModel):
    inline_styles: bool


class PngMetadata(WaniKaniModel):
    color: str
    dimensions: str
    style_name: str


class CharacterImage(WaniKaniModel):
    url: str
    content_type: str
    metadata: SvgMetadata | PngMetadata


class Radical(SubjectCommon):
    amalgamation_subject_ids: list[int]
    # Not every radical has a UTF entry; those are represented by images only.
    characters: str | None = None
    character_images: list[CharacterImage] = Field(default_factory=list)


class KanjiReading(WaniKaniModel):
    reading: str
    primary: bool
    accepted_answer: bool
    type: Literal["kunyomi", "nanori", "onyomi"]


class Kanji(SubjectCommon):
    amalgamation_subject_ids: list[int]
    characters: str
    component_subject_ids: list[int]
    meaning_hint: str | None = None
    reading_hint: str | None = None
    reading_mnemonic: str
    readings: list[KanjiReading]
    visually_similar_subject_ids: list[int] = Field(default_factory=list)


class ContextSentence(WaniKaniModel):
    en: str
    ja: str


class AudioMetadata(WaniKaniModel):
    gender: Gender
    source_id: int
    pronunciation: str
    voice_actor_id: int
    voice_actor_name: str
    voice_description: str


class PronunciationAudio(WaniKaniModel):
    url: str
    content_type: str
    metadata: AudioMetadata


class VocabularyReading(WaniKaniModel):
    accepted_answer: bool
    primary: bool
    reading: str


class Vocabulary(SubjectCommon):
    characters: str
    component_subject_ids: list[int]
    context_sentences: list[ContextSentence] = Field(default_factory=list)
    parts_of_speech: list[str]
    pronunciation_audios: list[PronunciationAudio] = Field(default_factory=list)
    readings: list[VocabularyReading]
    reading_mnemonic: str


class KanaVocabulary(SubjectCommon):
    characters: str
    context_sentences: list[ContextSentence] = Field(default_factory=list)
    parts_of_speech: list[str]
    pronunciation_audios: list[PronunciationAudio] = Field(default_factory=list)
