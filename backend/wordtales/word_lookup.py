from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .annotation import unique_words
from .errors import ExternalServiceFailure
from .gemini_client import GeminiClient
from .schemas import WordEntry, normalize_word

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = (
	"You are a professional lexicographer compiling a comprehensive English-to-Chinese dictionary "
	"for advanced learners. Provide dictionary entries that are accurate, thorough, and cover the most "
	"frequent meanings and uses of a word. Do not tailor the definitions to any specific context. "
	"All Chinese text must be Standard Simplified Chinese."
)


def build_prompt(words: List[str]) -> str:
	return f"""
For each of the following English words: [{", ".join(words)}], provide a comprehensive, general-purpose dictionary entry suitable for a language learner.
Cover ALL common definitions of each word across its parts of speech; do not limit them to any story or context.

Return STRICTLY a JSON array, no markdown, one object per word:
[
  {{
    "word": string (the English word, lowercase),
    "phonetic": string (IPA, e.g. /ɡriːf/),
    "definitions": [{{"partOfSpeech": string (e.g. "n.", "v.", "adj."), "meaning": string (Simplified Chinese)}}],
    "examples": [{{"english": string, "chinese": string}}] (one or two)
  }}
]
""".strip()


def _extract_json_array(text: str) -> List[Any]:
	try:
		data = json.loads(text)
	except Exception:
		match = re.search(r"\[[\s\S]*\]", text)
		if not match:
			raise ValueError("Failed to parse JSON from Gemini output")
		data = json.loads(match.group(0))
	if isinstance(data, dict):
		data = data.get("entries") or data.get("words") or [data]
	if not isinstance(data, list):
		raise ValueError("Gemini output is not a JSON array")
	return data


def parse_entries(text: str, requested: List[str]) -> Dict[str, WordEntry]:
	entries: Dict[str, WordEntry] = {}
	for item in _extract_json_array(text):
		# The model may return nulls or malformed objects in the array
		if not isinstance(item, dict) or not item.get("word"):
			continue
		try:
			entry = WordEntry.model_validate(item)
		except ValidationError as exc:
			logger.warning("skipping malformed entry for %r: %s", item.get("word"), exc)
			continue
		key = normalize_word(entry.word)
		entries[key] = entry.model_copy(update={"word": key})
	for word in requested:
		if word not in entries:
			entries[word] = WordEntry.stub(word)
	return entries


class GeminiWordLookup:
	def __init__(self, *, model: Optional[str] = None) -> None:
		self.model = model

	async def lookup_words(self, words: List[str]) -> Dict[str, WordEntry]:
		requested = unique_words(words)
		if not requested:
			return {}
		client: Optional[GeminiClient] = None
		try:
			client = GeminiClient(model=self.model)
			raw = await client.generate(
				build_prompt(requested),
				system_instruction=SYSTEM_INSTRUCTION,
				response_mime_type="application/json",
			)
			return parse_entries(raw, requested)
		except Exception as exc:
			raise ExternalServiceFailure(
				f"Could not generate definitions for: {', '.join(requested)}"
			) from exc
		finally:
			if client is not None:
				await client.aclose()
