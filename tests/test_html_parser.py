"""测试 HTML 简化流水线."""

import pytest

from podsync.utils import html_parser
from podsync.utils.html_parser import (
    SHORT_DESCRIPTION_LENGTH,
    SIMPLIFY_STAGES,
    collapse_line_breaks,
    html_to_text,
    replace_line_breaks,
    replace_list_items,
    sanitize,
    short_description,
    simplify_html,
    trim,
)


class TestStages:
    """测试单个步骤."""

    def test_stage_order(self) -> None:
        """步骤按固定顺序执行."""
        assert [stage.name for stage in SIMPLIFY_STAGES] == [
            "bullets",
            "line_breaks",
            "sanitize",
            "paragraphs",
            "unescape",
            "trim",
            "collapse_breaks",
            "link_emails",
            "link_bare_domains",
            "link_urls",
            "link_phones",
        ]

    def test_list_items_become_bullets(self) -> None:
        """<li> 开始标签替换为圆点，结束标签保留."""
        text = "<ul><li>a</li><li class='x'>b</li></ul>"
        assert replace_list_items(text) == "<ul>•a</li>•b</li></ul>"

    def test_line_break_tokens(self) -> None:
        """换行符、</li> 和 <img> 替换为 <br/>."""
        assert replace_line_breaks("a\nb</li><img src='x'>") == "a<br/>b<br/><br/>"

    def test_sanitize_blocks_and_dropped_tags(self) -> None:
        """块级标签变为段落，script 连同内容删除，不支持的标签去壳."""
        text = "<div class='c'>hi <span>there</span><script>bad()</script></div>"
        assert sanitize(text) == "<p>hi there</p>"

    def test_sanitize_keeps_only_href(self) -> None:
        """链接只保留 href 属性."""
        text = '<a href="http://x.com" target="_blank" onclick="y()">x</a>'
        assert sanitize(text) == '<a href="http://x.com">x</a>'

    def test_sanitize_removes_comments(self) -> None:
        """注释被删除."""
        assert sanitize("<!-- note -->text") == "text"

    def test_trim(self) -> None:
        """去掉首尾空白和 <br>."""
        assert trim("  <br/> text <br>\n ") == "text"

    def test_collapse_line_breaks(self) -> None:
        """连续 <br> 合并为一个."""
        assert collapse_line_breaks("a<br/> <br>\n<br/>b") == "a<br/>b"


class TestSimplifyHtml:
    """测试 simplify_html."""

    def test_list_and_paragraphs(self) -> None:
        """列表和段落转换为扁平文本."""
        text = "<p>Hello &amp; welcome</p>\n<ul><li>One</li><li>Two</li></ul>"
        assert simplify_html(text) == "Hello & welcome<br/>•One<br/>•Two"

    def test_links_email(self) -> None:
        """邮箱转换为 mailto 链接."""
        assert (
            simplify_html("Contact me@example.com now")
            == 'Contact <a href="mailto:me@example.com">me@example.com</a> now'
        )

    def test_links_url(self) -> None:
        """带协议的 URL 转换为链接."""
        assert (
            simplify_html("Visit https://example.com/path today")
            == 'Visit <a href="https://example.com/path">https://example.com/path</a> today'
        )

    def test_links_bare_domain(self) -> None:
        """缺少协议的域名补全为 http."""
        assert (
            simplify_html("Go to example.com now")
            == 'Go to <a href="http://example.com">example.com</a> now'
        )

    def test_links_phone(self) -> None:
        """电话号码转换为 tel 链接."""
        assert (
            simplify_html("Call 555-123-4567 today")
            == 'Call <a href="tel:555-123-4567">555-123-4567</a> today'
        )

    def test_dates_are_not_phone_numbers(self) -> None:
        """日期不会被识别为电话号码."""
        assert simplify_html("Recorded 2015-02-02 live") == "Recorded 2015-02-02 live"

    def test_existing_links_untouched(self) -> None:
        """已有链接中的 URL 不会重复链接."""
        text = '<a href="http://example.com">site</a>'
        assert simplify_html(text) == text

    def test_nbsp_is_not_a_separator(self) -> None:
        """&nbsp; 还原出的不换行空格属于域名，只生成一个链接."""
        result = simplify_html("<p>Visit&nbsp;example.com today</p>")

        assert result == '<a href="http://Visit\xa0example.com">Visit\xa0example.com</a> today'
        assert result.count("<a ") == 1

    def test_escaped_tags_restored(self) -> None:
        """转义的标签在实体还原后成为真实标签."""
        assert simplify_html("&lt;b&gt;bold") == "<b>bold"

    @pytest.mark.parametrize(
        "text",
        [
            "<p>Hello &amp; welcome</p>\n<ul><li>One</li><li>Two</li></ul>",
            "<div><h1>Title</h1><p>Body <i>text</i></p></div>",
            "Contact me@example.com now",
            "Visit https://example.com/path today",
            "plain text",
            "",
        ],
    )
    def test_idempotent(self, text: str) -> None:
        """重复简化结果不变."""
        once = simplify_html(text)
        assert simplify_html(once) == once

    def test_sanitize_failure_does_not_raise(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """清理失败时继续执行后续步骤."""

        def broken(*args, **kwargs):
            raise ValueError("boom")

        monkeypatch.setattr(html_parser, "BeautifulSoup", broken)
        assert simplify_html("<b>x</b>\n") == "<b>x</b>"


class TestPlainText:
    """测试纯文本转换."""

    def test_html_to_text(self) -> None:
        """<br> 转换为换行，标签去除."""
        assert html_to_text("a<br/><b>b</b>") == "a\nb"

    def test_html_to_text_empty(self) -> None:
        """空输入返回空字符串."""
        assert html_to_text("") == ""

    def test_short_description_truncated(self) -> None:
        """短描述按字符截断."""
        assert len(short_description("x" * 500)) == SHORT_DESCRIPTION_LENGTH
