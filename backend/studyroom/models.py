from __future__ import annotations
from typing import List, Tuple
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Flashcard(BaseModel):
	question: str
	answer: str


class QuizQuestion(BaseModel):
	"""One multiple-choice item. Immutable once generated."""
	model_config = ConfigDict(frozen=True)

	question: str
	# Exactly four options, in display order (keys 1-4)
	options: Tuple[str, str, str, str]
	correct_index: int = Field(ge=0, le=3, validation_alias=AliasChoices("correct_index", "correctIndex"))
	explanation: str = ""

	@property
	def correct_option(self) -> str:
		return self.options[self.correct_index]


class LearningContent(BaseModel):
	id: str
	title: str
	summary: str
	flashcards: List[Flashcard] = Field(default_factory=list)
	quiz: List[QuizQuestion] = Field(default_factory=list)
	# Milliseconds since epoch
	timestamp: int


class TeacherScheduleWeek(BaseModel):
	week: str
	topic: str
	objectives: List[str] = Field(default_factory=list)
	activities: List[str] = Field(default_factory=list)


class UserProgress(BaseModel):
	topic: str
	score: int
	total_questions: int
	date: str
