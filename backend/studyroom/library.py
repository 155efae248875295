from __future__ import annotations
from datetime import date
from typing import Any, Dict, List, Optional

from .models import LearningContent, UserProgress


class ContentLibrary:
	"""Generated study content, newest first. Lives only as long as the process."""

	def __init__(self) -> None:
		self._items: List[LearningContent] = []

	def add(self, content: LearningContent) -> LearningContent:
		self._items.insert(0, content)
		return content

	def get(self, content_id: str) -> Optional[LearningContent]:
		for item in self._items:
			if item.id == content_id:
				return item
		return None

	def list(self) -> List[LearningContent]:
		return list(self._items)

	def clear(self) -> None:
		self._items.clear()


class ProgressHistory:
	def __init__(self) -> None:
		self._entries: List[UserProgress] = []

	def record(self, topic: str, score: int, total: int) -> UserProgress:
		entry = UserProgress(topic=topic, score=score, total_questions=total, date=date.today().isoformat())
		self._entries.insert(0, entry)
		return entry

	def list(self) -> List[UserProgress]:
		return list(self._entries)

	def summary(self) -> Dict[str, Any]:
		attempts = [
			{
				"topic": e.topic,
				"date": e.date,
				"score": e.score,
				"total_questions": e.total_questions,
				"percent": (e.score / e.total_questions) * 100 if e.total_questions else 0.0,
			}
			for e in self._entries
		]
		average = round(sum(a["percent"] for a in attempts) / len(attempts)) if attempts else 0
		return {
			"attempts": attempts,
			"quizzes_taken": len(attempts),
			"average_mastery": average,
		}

	def clear(self) -> None:
		self._entries.clear()


library = ContentLibrary()
history = ProgressHistory()
