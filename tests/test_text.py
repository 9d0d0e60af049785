from src.app.browser_automation.text import clean_text, label_text, original_text


def test_clean_text_collapses_whitespace():
    assert clean_text("  Go \n\t to   market ") == "Go to market"


def test_original_text_cuts_translation_after_double_nbsp():
    assert original_text("Onwards\u00a0\u00a0继续") == "Onwards"


def test_original_text_cuts_translation_after_spaces():
    assert original_text("Try again   再试一次") == "Try again"


def test_single_spaces_are_kept():
    assert original_text("Go to market") == "Go to market"


def test_label_text_drops_stock_counter():
    assert label_text("Buy a candle (12)") == "Buy a candle"
    assert label_text("Chapter (2) begins") == "Chapter (2) begins"


def test_original_text_drops_everything_after_the_first_separator():
    assert original_text("Onwards  继续  more") == "Onwards"
