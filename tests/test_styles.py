from __future__ import annotations

from webglue_mirror.core.models import TargetURL
from webglue_mirror.core.styles import has_style_url, rewrite_style_urls


def test_single_quotes_are_preserved(page_target: TargetURL) -> None:
    assert rewrite_style_urls(page_target, "url('a.png')") == "url('https://example.com/dir/a.png')"


def test_double_quotes_are_preserved(page_target: TargetURL) -> None:
    assert rewrite_style_urls(page_target, 'url("a.png")') == 'url("https://example.com/dir/a.png")'


def test_unquoted_stays_unquoted(page_target: TargetURL) -> None:
    assert rewrite_style_urls(page_target, "url(a.png)") == "url(https://example.com/dir/a.png)"


def test_rewrites_every_occurrence_and_skips_data_urls(page_target: TargetURL) -> None:
    css = 'body { background: url(/bg.png) no-repeat; } .i { mask: url("data:image/svg+xml;base64,AAA"); }'
    out = rewrite_style_urls(page_target, css)
    assert "url(https://example.com/bg.png) no-repeat" in out
    assert 'url("data:image/svg+xml;base64,AAA")' in out


def test_text_without_urls_is_unchanged(page_target: TargetURL) -> None:
    css = "p { color: red; }"
    assert rewrite_style_urls(page_target, css) == css
    assert not has_style_url(css)
    assert not has_style_url(None)
    assert has_style_url("background:url(x.png)")
