from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


def normalize_word(word: str) -> str:
	return (word or "").strip().lower()


class Definition(BaseModel):
	partOfSpeech: str = ""
	meaning: str = ""


class ExampleSentence(BaseModel):
	english: str = ""
	chinese: str = ""


class WordEntry(BaseModel):
	word: str
	phonetic: str = ""
	definitions: List[Definition] = Field(default_factory=list)
	examples: List[ExampleSentence] = Field(default_factory=list)

	@classmethod
	def stub(cls, word: str) -> "WordEntry":
		"""Entry standing in for a failed lookup."""
		return cls(word=normalize_word(word))

	@property
	def has_definition(self) -> bool:
		return len(self.definitions) > 0

	# Index-addressed edits used by the admin review screen

	def set_definition(self, index: int, definition: Definition) -> None:
		self.definitions[index] = definition

	def add_definition(self, definition: Optional[Definition] = None) -> None:
		self.definitions.append(definition or Definition())

	def remove_definition(self, index: int) -> None:
		del self.definitions[index]

	def set_example(self, index: int, example: ExampleSentence) -> None:
		self.examples[index] = example

	def add_example(self, example: Optional[ExampleSentence] = None) -> None:
		self.examples.append(example or ExampleSentence())

	def remove_example(self, index: int) -> None:
		del self.examples[index]


class StoryStatus(str, Enum):
	caching = "caching"
	reviewing = "reviewing"
	published = "published"


class Story(BaseModel):
	id: str
	title: str
	content: str
	status: StoryStatus = StoryStatus.caching
	order: Optional[int] = None


class StorySeries(BaseModel):
	id: str
	title: str
	description: str = ""
	stories: List[Story] = Field(default_factory=list)


class VocabularyLibrary(BaseModel):
	id: str
	title: str
	description: str = ""
	series: List[StorySeries] = Field(default_factory=list)


class User(BaseModel):
	phone: str
	email: Optional[str] = None
	role: str = "user"
	activation_code_used: Optional[str] = None

	@property
	def is_admin(self) -> bool:
		return self.role == "admin"
