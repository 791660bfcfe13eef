from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from .annotation import extract_words
from .content_store import ContentStore
from .schemas import StoryStatus
from .word_cache import WordCache, WordLookup, SqlWordStore, fill_missing

logger = logging.getLogger(__name__)

SEED_DATA: List[Dict[str, Any]] = [
	{
		"library": {"title": "初级词汇", "description": "适合初学者的基础词汇练习。"},
		"series": [
			{
				"series": {"title": "小动物的故事", "description": "通过可爱动物的日常故事学习单词。"},
				"stories": [
					{
						"title": "小猫的一天",
						"content": "Once upon a time, there was a little cat (猫) named Lily. She loved to play (玩) with a small, red ball (球). Every morning, she would wake up and look for her favorite toy. The sun (太阳) was shining brightly in the sky. It was a beautiful (美丽的) day.",
					},
					{
						"title": "小狗的朋友",
						"content": "Max was a happy (快乐的) dog (狗). He had many friends in the park. One of his best friends was a bird (鸟) who could sing (唱歌) very well. They often sat under a big tree (树) together.",
					},
				],
			},
			{
				"series": {"title": "日常对话", "description": "模拟日常生活中的简单对话场景。"},
				"stories": [
					{
						"title": "在商店",
						"content": "I want to buy (买) an apple (苹果). The apple is very red (红色的). How much is it? It is not expensive (昂贵的). I will take (拿) it.",
					},
				],
			},
		],
	},
	{
		"library": {"title": "中级词汇", "description": "为有一定基础的学习者准备。"},
		"series": [
			{
				"series": {"title": "奇幻旅程", "description": "探索充满想象力的奇幻世界。"},
				"stories": [
					{
						"title": "魔法森林",
						"content": "In a faraway land, there was a magic (魔法的) forest (森林). An ancient (古老的) river (河流) flowed through it. Many mysterious (神秘的) creatures (生物) lived there. A brave (勇敢的) hero decided to explore (探索) its secrets.",
					},
				],
			},
		],
	},
]


async def seed_initial_data(db: Session, lookup: WordLookup, *, batch_size: int = 10) -> bool:
	"""Create demo content when no library exists. Returns True if seeded.

	Seeded stories skip admin review: their words are cached directly and
	the story is published.
	"""
	store = ContentStore(db)
	if store.count_libraries() > 0:
		return False
	cache = WordCache(SqlWordStore(db))
	for lib_data in SEED_DATA:
		library = store.add_library(**lib_data["library"])
		for series_data in lib_data["series"]:
			series = store.add_series(library.id, **series_data["series"])
			for order, story_data in enumerate(series_data["stories"]):
				story = store.add_story(series.id, story_data["title"], story_data["content"], StoryStatus.caching, order)
				await fill_missing(cache, extract_words(story.content), lookup, batch_size=batch_size)
				store.update_story(story.id, status=StoryStatus.published)
	logger.info("seeded %d libraries of demo content", len(SEED_DATA))
	return True
