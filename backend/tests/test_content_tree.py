from datetime import datetime, timedelta

import pytest

from wordtales.content_store import ContentStore
from wordtales.content_tree import ContentTree, visible_stories
from wordtales.errors import NotFound, PermissionDenied, ValidationFailure
from wordtales.models import StoryRow
from wordtales.schemas import StoryStatus, User


class CountingStore(ContentStore):
	def __init__(self, db):
		super().__init__(db)
		self.calls = {"libraries": 0, "series": 0, "stories": 0}

	def list_libraries(self):
		self.calls["libraries"] += 1
		return super().list_libraries()

	def list_series(self, library_id):
		self.calls["series"] += 1
		return super().list_series(library_id)

	def list_stories(self, series_id):
		self.calls["stories"] += 1
		return super().list_stories(series_id)


@pytest.fixture
def populated(db):
	store = ContentStore(db)
	library = store.add_library("初级词汇", "basics")
	series = store.add_series(library.id, "小动物的故事")
	stories = [
		store.add_story(series.id, f"story {i}", f"a cat{i} (猫)", StoryStatus.published, i)
		for i in range(4)
	]
	return library, series, stories


def test_levels_load_once(db, populated):
	library, series, _ = populated
	store = CountingStore(db)
	tree = ContentTree()

	tree.load_series(store, library.id)
	tree.load_series(store, library.id)
	first = tree.load_stories(store, series.id)
	second = tree.load_stories(store, series.id)

	assert store.calls == {"libraries": 1, "series": 1, "stories": 1}
	assert first is second
	assert [s.order for s in first] == [0, 1, 2, 3]


def test_empty_library_is_not_refetched(db):
	store = CountingStore(db)
	library = store.add_library("empty")
	tree = ContentTree()
	assert tree.load_series(store, library.id) == []
	assert tree.load_series(store, library.id) == []
	assert store.calls["series"] == 1


def test_reorder_rewrites_dense_order(db, populated):
	_, series, stories = populated
	store = ContentStore(db)
	tree = ContentTree()

	result = tree.reorder(store, series.id, 0, 2)

	expected = [stories[1].id, stories[2].id, stories[0].id, stories[3].id]
	assert [s.id for s in result] == expected
	assert [s.order for s in result] == [0, 1, 2, 3]
	persisted = store.list_stories(series.id)
	assert [s.id for s in persisted] == expected
	assert [s.order for s in persisted] == [0, 1, 2, 3]


def test_reorder_rejects_bad_indices(db, populated):
	_, series, _ = populated
	with pytest.raises(ValidationFailure):
		ContentTree().reorder(ContentStore(db), series.id, 0, 9)


def test_stories_without_order_sort_last_then_by_creation(db, populated):
	_, series, stories = populated
	now = datetime.utcnow()
	db.add(StoryRow(series_id=series.id, title="late", content="x", status="published", order=None, created_at=now + timedelta(seconds=5)))
	db.add(StoryRow(series_id=series.id, title="early", content="x", status="published", order=None, created_at=now - timedelta(days=1)))
	db.commit()
	titles = [s.title for s in ContentStore(db).list_stories(series.id)]
	assert titles[-2:] == ["early", "late"]


def test_next_order_is_series_length(db, populated):
	_, series, _ = populated
	assert ContentTree().next_order(ContentStore(db), series.id) == 4


def test_unknown_ids_raise_not_found(db):
	tree = ContentTree()
	with pytest.raises(NotFound):
		tree.load_series(ContentStore(db), "missing")
	with pytest.raises(NotFound):
		tree.load_stories(ContentStore(db), "missing")


def test_writes_require_admin(db, populated):
	library, _, _ = populated
	store = ContentStore(db, User(phone="13800000000", role="user"))
	with pytest.raises(PermissionDenied) as info:
		store.add_series(library.id, "nope")
	assert info.value.resource == "StorySeries"
	admin_store = ContentStore(db, User(phone="admin", role="admin"))
	assert admin_store.add_series(library.id, "ok").title == "ok"


def test_empty_title_is_rejected(db):
	with pytest.raises(ValidationFailure):
		ContentStore(db).add_library("   ")


def test_visibility_by_role(db, populated):
	_, series, _ = populated
	store = ContentStore(db)
	store.add_story(series.id, "draft", "a dog (狗)", StoryStatus.reviewing, 4)
	stories = store.list_stories(series.id)
	assert len(visible_stories(stories, User(phone="u", role="user"))) == 4
	assert len(visible_stories(stories, User(phone="a", role="admin"))) == 5


def test_save_orders_with_unknown_story_changes_nothing(db, populated):
	_, series, stories = populated
	store = ContentStore(db)

	with pytest.raises(NotFound):
		store.save_story_orders([(stories[0].id, 3), ("missing", 0)])

	assert not db.dirty
	assert [s.order for s in store.list_stories(series.id)] == [0, 1, 2, 3]
