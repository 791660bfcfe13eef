"""Parser for inline ``word (gloss)`` annotations in story text.

An annotation is a run of ASCII letters or apostrophes, optional
whitespace, then a parenthesised gloss. The first closing parenthesis
ends the gloss, so a gloss that itself contains ``)`` is mis-paired.
Words without a gloss are plain text; there is no document-wide glossary.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Union

from pydantic import BaseModel

from .schemas import normalize_word

# re.ASCII keeps \b from treating CJK characters as word characters
ANNOTATION_RE = re.compile(r"\b([a-zA-Z']+)\s*\(([^)]+)\)", re.ASCII)


class LiteralSegment(BaseModel):
	kind: str = "literal"
	text: str


class AnnotatedSegment(BaseModel):
	kind: str = "annotated"
	word: str
	gloss: str

	@property
	def normalized(self) -> str:
		return normalize_word(self.word)


Segment = Union[LiteralSegment, AnnotatedSegment]


def parse(content: str) -> List[Segment]:
	segments: List[Segment] = []
	pos = 0
	for match in ANNOTATION_RE.finditer(content or ""):
		if match.start() > pos:
			segments.append(LiteralSegment(text=content[pos:match.start()]))
		segments.append(AnnotatedSegment(word=match.group(1), gloss=match.group(2)))
		pos = match.end()
	if content and pos < len(content):
		segments.append(LiteralSegment(text=content[pos:]))
	return segments


def extract_words(content: str) -> List[str]:
	"""Distinct lower-cased annotated words, in order of first occurrence."""
	return unique_words(m.group(1) for m in ANNOTATION_RE.finditer(content or ""))


def unique_words(words: Iterable[str]) -> List[str]:
	seen = set()
	out: List[str] = []
	for word in words:
		key = normalize_word(word)
		if key and key not in seen:
			seen.add(key)
			out.append(key)
	return out
