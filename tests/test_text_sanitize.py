from anita.utils.text import (
    CHAT_MESSAGE_MAX_LENGTH,
    sanitize_chat_message,
    sanitize_input,
    sanitize_title,
)


def test_chat_message_drops_script_blocks():
    assert sanitize_chat_message("hi<script>alert(1)</script>") == "hi"


def test_chat_message_keeps_ordinary_markup_like_text():
    assert sanitize_chat_message("5 < 10 and 10 > 5") == "5 < 10 and 10 > 5"


def test_chat_message_strips_protocols_and_handlers():
    assert sanitize_chat_message("click javascript:alert(1)") == "click alert(1)"
    assert sanitize_chat_message("<img src=x onerror=alert(1)>") == "<img src=x alert(1)>"


def test_chat_message_allows_inline_images_only():
    img = "data:image/png;base64,AAAA"
    assert sanitize_chat_message(img) == img
    assert sanitize_chat_message("data:text/html,hi") == "text/html,hi"


def test_invisible_and_control_characters_removed():
    assert sanitize_chat_message("o\u200bk\x07\n") == "ok"
    assert sanitize_input("a\u00adb") == "ab"


def test_chat_message_capped():
    assert len(sanitize_chat_message("x" * (CHAT_MESSAGE_MAX_LENGTH + 10))) == CHAT_MESSAGE_MAX_LENGTH


def test_sanitize_input_strips_tags_and_collapses_whitespace():
    assert sanitize_input("<b>Pizza</b>   night\n\n") == "Pizza night"
    assert sanitize_input("&lt;iframe src=x") == "src=x"
    assert sanitize_input("abcdef", 3) == "abc"


def test_title_capped_at_200():
    assert len(sanitize_title("t" * 500)) == 200


def test_empty_values():
    assert sanitize_chat_message(None) == ""
    assert sanitize_input("") == ""
