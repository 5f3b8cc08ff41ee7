"""
Question bank port and an in-memory implementation
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..storage.kv_store import KeyValueStore
from ..storage.models import SCHEMA_VERSION, USED_QUESTIONS_KEY, UsedQuestionsData
from ..storage.state_repository import StateRepository

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
MIXED_DIFFICULTY = "Mixed"
DIFFICULTY_LEVELS = ("Easy", "Medium", "Hard")


@dataclass(frozen=True)
class Question:
    """A multiple-choice question"""

    id: int | str
    category: str
    question: str
    options: dict[str, str] = field(default_factory=dict)
    correct_answer: str = "A"
    explanation: str = "No explanation available."
    level: str = "Medium"

    @classmethod
    def from_record(cls, record: dict[str, Any], index: int = 0) -> "Question":
        options = record.get("options") or {
            letter: record.get(f"option{letter}")
            for letter in ("A", "B", "C", "D")
        }
        return cls(
            id=record.get("id") or index + 1,
            category=record.get("category") or "General",
            question=record.get("question", ""),
            options={k: v for k, v in options.items() if v},
            correct_answer=record.get("correct_answer") or record.get("correctAnswer", "A"),
            explanation=record.get("explanation") or "No explanation available.",
            level=record.get("level") or "Medium",
        )


class QuestionBank(Protocol):
    """Source of quiz questions; owns its own no-repeat bookkeeping"""

    def get_categories(self) -> list[str]: ...

    def pick_question(
        self, category: str = ALL_CATEGORIES, difficulty: str = MIXED_DIFFICULTY
    ) -> Question | None: ...


class InMemoryQuestionBank:
    """Question bank over a fixed list of questions.

    Shown question ids are remembered (and persisted) so a question is not
    repeated until every question matching the filters has been shown.
    """

    def __init__(
        self,
        questions: list[Question],
        store: KeyValueStore | None = None,
        rng: random.Random | None = None,
    ):
        self.questions = [q for q in questions if q.question and q.options]
        self.repository = StateRepository(store) if store is not None else None
        self.rng = rng or random.Random()
        self.used_question_ids: set[int | str] = set()
        self.categories = sorted({q.category for q in self.questions})
        self._load_used_questions()

    @classmethod
    def from_records(
        cls,
        records: list[dict[str, Any]],
        store: KeyValueStore | None = None,
        rng: random.Random | None = None,
    ) -> "InMemoryQuestionBank":
        questions = [Question.from_record(record, i) for i, record in enumerate(records)]
        return cls(questions, store=store, rng=rng)

    def get_categories(self) -> list[str]:
        return list(self.categories)

    def get_difficulty_levels(self) -> list[str]:
        return list(DIFFICULTY_LEVELS)

    def pick_question(
        self, category: str = ALL_CATEGORIES, difficulty: str = MIXED_DIFFICULTY
    ) -> Question | None:
        """Pick an unshown question matching the filters.

        When every matching question has been shown, the used set is
        recycled. Returns None only when nothing matches the filters at all.
        """
        matching = self._filter(category, difficulty)
        if not matching:
            logger.debug(f"No questions for category={category}, difficulty={difficulty}")
            return None

        available = [q for q in matching if q.id not in self.used_question_ids]
        if not available:
            logger.info("All matching questions shown, recycling")
            self.used_question_ids.difference_update(q.id for q in matching)
            available = matching

        question = self.rng.choice(available)
        self.used_question_ids.add(question.id)
        self._save_used_questions()
        return question

    def _filter(self, category: str, difficulty: str) -> list[Question]:
        questions = self.questions
        if category and category != ALL_CATEGORIES:
            questions = [q for q in questions if q.category == category]
        if difficulty and difficulty != MIXED_DIFFICULTY:
            questions = [q for q in questions if q.level == difficulty]
        return questions

    def get_question_stats(self) -> dict[str, Any]:
        """Totals by category and difficulty"""
        by_category: dict[str, int] = {}
        by_difficulty = {level: 0 for level in DIFFICULTY_LEVELS}
        for q in self.questions:
            by_category[q.category] = by_category.get(q.category, 0) + 1
            if q.level in by_difficulty:
                by_difficulty[q.level] += 1

        used = len(self.used_question_ids)
        return {
            "total": len(self.questions),
            "used": used,
            "remaining": len(self.questions) - used,
            "by_category": by_category,
            "by_difficulty": by_difficulty,
        }

    def reset_used_questions(self) -> None:
        self.used_question_ids.clear()
        if self.repository is not None:
            self.repository.remove(USED_QUESTIONS_KEY)
        logger.info("Reset used questions")

    def _load_used_questions(self) -> None:
        if self.repository is None:
            return
        data = self.repository.load(USED_QUESTIONS_KEY)
        if data is None:
            return

        used_ids = data.get("used_ids", [])
        if not isinstance(used_ids, list):
            logger.error("Invalid used questions data, starting with none used")
            return

        known_ids = {q.id for q in self.questions}
        self.used_question_ids = {
            qid
            for qid in used_ids
            if isinstance(qid, (int, str))
            and not isinstance(qid, bool)
            and qid in known_ids
        }

    def _save_used_questions(self) -> None:
        if self.repository is None:
            return
        data: UsedQuestionsData = {
            "schema_version": SCHEMA_VERSION,
            "used_ids": sorted(self.used_question_ids, key=str),
        }
        self.repository.save(USED_QUESTIONS_KEY, data)
