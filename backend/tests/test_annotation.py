from wordtales.annotation import AnnotatedSegment, LiteralSegment, extract_words, parse


def test_duplicate_annotations_collapse():
	assert extract_words("I saw a cat (猫) and a cat (猫) today.") == ["cat"]


def test_parse_splits_literal_and_annotated():
	segments = parse("I saw a cat (猫) today.")
	assert segments == [
		LiteralSegment(text="I saw a "),
		AnnotatedSegment(word="cat", gloss="猫"),
		LiteralSegment(text=" today."),
	]


def test_word_boundary_is_required():
	assert extract_words("The birds scatter (散开) quickly.") == ["scatter"]


def test_words_without_gloss_are_not_extracted():
	words = extract_words("The dog ran after a cat (猫). The dog was fast.")
	assert words == ["cat"]
	assert all(isinstance(s, LiteralSegment) for s in parse("The dog ran."))


def test_case_is_preserved_for_display_and_lowered_for_lookup():
	segments = [s for s in parse("Cat (猫) and CAT (猫)") if isinstance(s, AnnotatedSegment)]
	assert [s.word for s in segments] == ["Cat", "CAT"]
	assert [s.normalized for s in segments] == ["cat", "cat"]
	assert extract_words("Cat (猫) and CAT (猫)") == ["cat"]


def test_first_occurrence_order_and_apostrophes():
	text = "Don't (不要) be a brave (勇敢的) hero, said the ancient (古老的) brave (勇敢的) king."
	assert extract_words(text) == ["don't", "brave", "ancient"]


def test_whitespace_before_gloss_is_optional():
	assert extract_words("an apple(苹果) and a pear   (梨)") == ["apple", "pear"]


def test_cjk_text_directly_before_word():
	assert extract_words("这是cat (猫)") == ["cat"]


def test_first_closing_paren_wins():
	segments = parse("a bank (银行(金融)) here")
	annotated = [s for s in segments if isinstance(s, AnnotatedSegment)]
	assert annotated == [AnnotatedSegment(word="bank", gloss="银行(金融")]
	assert segments[-1] == LiteralSegment(text=") here")


def test_extract_is_idempotent():
	text = "A magic (魔法的) forest (森林) by the river (河流). Magic (魔法的)!"
	assert extract_words(text) == extract_words(text)
	assert set(extract_words(text)) == {"magic", "forest", "river"}


def test_empty_content():
	assert parse("") == []
	assert extract_words("") == []
