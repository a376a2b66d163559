"""
SQLAlchemy ORM Models for the review store

Defines word lists, their words, per-user study records and the review
event log.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class WordList(Base):
    """
    A named, imported word list.
    """
    __tablename__ = 'word_lists'

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<WordList({self.id}, {self.name!r})>"


class WordListWord(Base):
    """
    A word belonging to a word list. Immutable once imported.
    """
    __tablename__ = 'word_list_words'

    id = Column(String(64), primary_key=True)
    word_list_id = Column(String(64), ForeignKey('word_lists.id'), nullable=False)

    term = Column(String(255), nullable=False)
    definition = Column(Text, nullable=False)
    phonetic_us = Column(String(255), nullable=True)
    phonetic_uk = Column(String(255), nullable=True)
    example = Column(Text, nullable=True)

    # Insertion order within the list (new words are introduced in this order)
    position = Column(Integer, nullable=False)

    __table_args__ = (
        Index('idx_word_list_words_list_position', 'word_list_id', 'position'),
    )

    def __repr__(self):
        return f"<WordListWord({self.id}, {self.term!r})>"


class StudyRecord(Base):
    """
    Latest review state for one (user, word list, word).

    Created on the first successful grading; only the latest state is kept.
    """
    __tablename__ = 'study_records'

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String(255), nullable=False)
    word_list_id = Column(String(64), nullable=False)
    word_id = Column(String(64), ForeignKey('word_list_words.id'), nullable=False)

    familiarity = Column(Integer, nullable=False)  # Last grade: 2=HARD, 3=NORMAL, 4=EASY
    review_count = Column(Integer, nullable=False)
    ease_factor = Column(Float, nullable=False)
    interval_days = Column(Integer, nullable=False)

    last_studied_at = Column(DateTime(timezone=True), nullable=False)
    next_review_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'word_list_id', 'word_id', name='uq_study_records_user_list_word'),
        Index('idx_study_records_due', 'user_id', 'word_list_id', 'next_review_at'),
    )

    def __repr__(self):
        return f"<StudyRecord({self.user_id}, {self.word_list_id}, {self.word_id})>"


class ReviewEvent(Base):
    """
    Log entry for a single persisted grading.

    Forgotten words are requeued in-session and never logged here.
    """
    __tablename__ = 'review_events'

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String(255), nullable=False)
    word_list_id = Column(String(64), nullable=False)
    word_id = Column(String(64), nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False)
    grade = Column(Integer, nullable=False)

    # State before review (NULL for the first grading of a word)
    ease_factor_before = Column(Float, nullable=True)
    interval_days_before = Column(Integer, nullable=True)

    # State after review
    review_count_after = Column(Integer, nullable=False)
    ease_factor_after = Column(Float, nullable=False)
    interval_days_after = Column(Integer, nullable=False)

    __table_args__ = (
        Index('idx_review_events_user_timestamp', 'user_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<ReviewEvent(id={self.id}, {self.word_id}, grade={self.grade})>"
