import asyncio
from datetime import datetime, timedelta

from conftest import FakeLookup, create_user, entry

from wordtales.cleanup import purge_expired
from wordtales.content_store import ContentStore
from wordtales.models import AuthSession, PasswordReset
from wordtales.schemas import StoryStatus
from wordtales.seed import SEED_DATA, seed_initial_data
from wordtales.word_cache import SqlWordStore, WordCache


def test_seed_publishes_every_story_and_caches_words(db):
	lookup = FakeLookup({"cat": entry("cat", "猫")})

	assert asyncio.run(seed_initial_data(db, lookup)) is True

	store = ContentStore(db)
	libraries = store.list_libraries()
	assert [l.title for l in libraries] == [d["library"]["title"] for d in SEED_DATA]
	series = store.list_series(libraries[0].id)
	stories = store.list_stories(series[0].id)
	assert [s.order for s in stories] == [0, 1]
	assert all(s.status == StoryStatus.published for s in stories)
	cache = WordCache(SqlWordStore(db))
	assert cache.get("cat").definitions[0].meaning == "猫"
	assert cache.get("forest") is not None
	assert not cache.get("forest").has_definition


def test_seed_is_skipped_when_content_exists(db):
	ContentStore(db).add_library("mine")
	lookup = FakeLookup()
	assert asyncio.run(seed_initial_data(db, lookup)) is False
	assert lookup.calls == []


def test_cleanup_removes_stale_sessions_and_spent_tokens(db):
	create_user(db, "13800000000")
	old = datetime.utcnow() - timedelta(days=365)
	db.add(AuthSession(session_id="old", phone="13800000000", last_activity_at=old))
	db.add(AuthSession(session_id="fresh", phone="13800000000"))
	db.add(PasswordReset(token="expired", phone="13800000000", expires_at=old))
	db.add(PasswordReset(token="live", phone="13800000000", expires_at=datetime.utcnow() + timedelta(hours=1)))
	db.commit()

	assert purge_expired(db) == 2
	assert [s.session_id for s in db.query(AuthSession).all()] == ["fresh"]
	assert [t.token for t in db.query(PasswordReset).all()] == ["live"]
