from sf6rank.workflows.html_normalize import (
    clean_text,
    declared_charset,
    decode_bytes_auto,
    text_tokens,
    visible_text,
)


def test_declared_charset_is_case_insensitive() -> None:
    assert declared_charset({"content-type": 'text/html; charset="GBK"'}) == "gbk"
    assert declared_charset({"Content-Type": "text/html"}) is None
    assert declared_charset(None) is None


def test_decode_uses_declared_charset() -> None:
    body = "格斗点".encode("gbk")
    assert decode_bytes_auto(body, {"Content-Type": "text/html; charset=gbk"}) == "格斗点"


def test_decode_unknown_label_falls_back_to_detection() -> None:
    body = b"<p>profile 1234567890</p>"
    assert decode_bytes_auto(body, {"Content-Type": "text/html; charset=bogus-x"}) == "<p>profile 1234567890</p>"


def test_clean_text_drops_zero_width_characters() -> None:
    assert clean_text("Dai\u200bgo\ufeff") == "Daigo"
    assert clean_text("") == ""


def test_visible_text_skips_scripts() -> None:
    html = "<div><script>var rank = 1;</script><p>简介</p>\n<p> Daigo </p><style>p{}</style></div>"
    assert visible_text(html) == "简介 Daigo"
    assert text_tokens(html) == ["简介", "Daigo"]
