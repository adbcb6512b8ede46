"""HTML 解析工具 - 节目描述的简化流水线."""

import html
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from bs4 import BeautifulSoup
from bs4.element import PreformattedString

logger = logging.getLogger(__name__)

# 短描述最大字符数
SHORT_DESCRIPTION_LENGTH = 200

LINE_BREAK = "<br/>"
BULLET = "•"

# 富文本可表示的标签
SUPPORTED_TAGS = frozenset(
    {
        "a",
        "b",
        "big",
        "blockquote",
        "br",
        "cite",
        "dfn",
        "em",
        "font",
        "i",
        "p",
        "small",
        "strike",
        "strong",
        "sub",
        "sup",
        "tt",
        "u",
    }
)

# 块级容器，转换为段落
BLOCK_TAGS = frozenset(
    {
        "address",
        "article",
        "center",
        "dd",
        "div",
        "dl",
        "dt",
        "footer",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "ol",
        "pre",
        "section",
        "table",
        "tr",
        "ul",
    }
)

# 连同内容一起丢弃的标签
DROPPED_TAGS = frozenset(
    {
        "embed",
        "head",
        "iframe",
        "noscript",
        "object",
        "script",
        "style",
        "svg",
        "template",
        "title",
    }
)

# 只把 ASCII 空白视为分隔符，&nbsp; 还原出的 U+00A0 属于域名字符
WHITESPACE = r"[ \t\n\x0b\f\r]"

# <br[^>]*> 而不是 <br.*?>，否则 <br/><tag><br/> 会被整体匹配
BR_TAG = r"</?br[^>]*>"

_LIST_ITEM = re.compile(r"<li[^>]*>", re.IGNORECASE)
_LINE_BREAK_TOKEN = re.compile(r"</?img[^>]*>|</?li[^>]*>|\n", re.IGNORECASE)
_PARAGRAPH = re.compile(r"</?p[^>]*>", re.IGNORECASE)
_TRIM_START = re.compile(r"\A(?:" + WHITESPACE + r"|" + BR_TAG + r")*")
_TRIM_END = re.compile(r"(?:" + WHITESPACE + r"|" + BR_TAG + r")*\Z")
_BR_REPEAT = re.compile(r"(?:" + WHITESPACE + r"*" + BR_TAG + WHITESPACE + r"*)+")

# 自动链接：首尾必须是字符串边界、空白或 <br/>，避免匹配标签内已有的链接
_LEADING = r"((?:\A|" + WHITESPACE + r"|<br/>)+)"
_TRAILING = r"((?:\Z|" + WHITESPACE + r"|<br/>)+)"
_TRAILING_URL = r"((?:\b|$|<br/>)+)"

GOOD_IRI_CHAR = r"a-zA-Z0-9\u00A0-\uD7FF\uF900-\uFDCF\uFDF0-\uFFEF"
IP_ADDRESS = (
    r"(?:(?:25[0-5]|2[0-4][0-9]|[0-1][0-9]{2}|[1-9][0-9]|[1-9])\.(?:25[0-5]|2[0-4]"
    r"[0-9]|[0-1][0-9]{2}|[1-9][0-9]|[1-9]|0)\.(?:25[0-5]|2[0-4][0-9]|[0-1]"
    r"[0-9]{2}|[1-9][0-9]|[1-9]|0)\.(?:25[0-5]|2[0-4][0-9]|[0-1][0-9]{2}"
    r"|[1-9][0-9]|[0-9]))"
)
IRI = r"[" + GOOD_IRI_CHAR + r"](?:[" + GOOD_IRI_CHAR + r"\-]{0,61}[" + GOOD_IRI_CHAR + r"])?"
GTLD = r"[a-zA-Z\u00C0-\uD7FF\uF900-\uFDCF\uFDF0-\uFFEF]{2,63}"
HOST_NAME = r"(?:" + IRI + r"\.)+" + GTLD
DOMAIN_NAME = r"(?:" + HOST_NAME + r"|" + IP_ADDRESS + r")"
IRI_PART = (
    r"(?:/(?:(?:[" + GOOD_IRI_CHAR + r";/\?:@&=#~\-\.\+!\*'\(\),_])"
    r"|(?:%[a-fA-F0-9]{2}))*)?"
)

# 最后一段至少 10 位，否则会匹配日期（2015-02-02）
PHONE = re.compile(
    _LEADING
    + r"((?:\+[0-9]+[\- \.]*)?(?:\([0-9]+\)[\- \.]*)?(?:[0-9][0-9\- \.]{9,}[0-9]))"
    + _TRAILING
)
EMAIL_ADDRESS = re.compile(
    _LEADING
    + r"([a-zA-Z0-9\+\._%\-]{1,256}@[a-zA-Z0-9][a-zA-Z0-9\-]{0,64}"
    + r"(?:\.[a-zA-Z0-9][a-zA-Z0-9\-]{0,25}))"
    + _TRAILING
)
WEB_URL = re.compile(
    _LEADING
    + r"((?:(?:(?:http|https|Http|Https|rtsp|Rtsp)://(?:(?:[a-zA-Z0-9\$\-_\.\+!\*"
    + r"'\(\),;\?&=]|(?:%[a-fA-F0-9]{2})){1,64}(?::(?:[a-zA-Z0-9\$\-_"
    + r"\.\+!\*\(\),;\?&=]|(?:%[a-fA-F0-9]{2})){1,25})?@)?)?"
    + DOMAIN_NAME
    + r"(?::\d{1,5})?)"
    + IRI_PART
    + r")"
    + _TRAILING_URL
)
WEB_URL_NO_PROTO = re.compile(
    _LEADING + r"((?:" + DOMAIN_NAME + r"(?::\d{1,5})?)" + IRI_PART + r")" + _TRAILING_URL
)


@dataclass(frozen=True)
class TextStage:
    """简化流水线中的一个步骤."""

    name: str
    apply: Callable[[str], str]


def replace_list_items(text: str) -> str:
    """<li> 开始标签替换为圆点符号."""
    return _LIST_ITEM.sub(BULLET, text)


def replace_line_breaks(text: str) -> str:
    """换行符、</li> 和 <img> 统一替换为 <br/>."""
    return _LINE_BREAK_TOKEN.sub(LINE_BREAK, text)


def sanitize(text: str) -> str:
    """
    只保留富文本支持的标签.

    解析后重新序列化：块级容器变为 <p>，不支持的标签去掉外壳保留内容，
    script/style 等连同内容删除，除 <a href> 外的属性全部移除。
    解析失败时原样返回，后续步骤继续处理。
    """
    try:
        soup = BeautifulSoup(text, "html.parser")

        for node in soup.find_all(string=lambda s: isinstance(s, PreformattedString)):
            node.extract()

        for tag in soup.find_all(list(DROPPED_TAGS)):
            tag.decompose()

        for tag in soup.find_all(True):
            if tag.name in BLOCK_TAGS:
                tag.name = "p"
                tag.attrs = {}
            elif tag.name not in SUPPORTED_TAGS:
                tag.unwrap()
            elif tag.name == "a" and tag.get("href"):
                tag.attrs = {"href": tag["href"]}
            else:
                tag.attrs = {}

        return str(soup)
    except Exception:
        logger.warning("HTML 清理失败，保留原始文本", exc_info=True)
        return text


def replace_paragraphs(text: str) -> str:
    """清理步骤生成的 <p> 转换为 <br/>，保持输出扁平."""
    return _PARAGRAPH.sub(LINE_BREAK, text)


def unescape_entities(text: str) -> str:
    """HTML 实体还原为字符."""
    return html.unescape(text)


def trim(text: str) -> str:
    """去掉首尾的空白和 <br>."""
    text = _TRIM_END.sub("", text)
    return _TRIM_START.sub("", text)


def collapse_line_breaks(text: str) -> str:
    """连续的 <br> 合并为一个."""
    return _BR_REPEAT.sub(LINE_BREAK, text)


def link_emails(text: str) -> str:
    """邮箱地址转换为 mailto 链接."""
    return EMAIL_ADDRESS.sub(r'\1<a href="mailto:\2">\2</a>\3', text)


def link_bare_domains(text: str) -> str:
    """缺少协议的域名转换为 http 链接."""
    return WEB_URL_NO_PROTO.sub(r'\1<a href="http://\2">\2</a>\3', text)


def link_urls(text: str) -> str:
    """带协议的 URL 转换为链接."""
    return WEB_URL.sub(r'\1<a href="\2">\2</a>\3', text)


def link_phones(text: str) -> str:
    """电话号码转换为 tel 链接."""
    return PHONE.sub(r'\1<a href="tel:\2">\2</a>\3', text)


# 顺序不可调整：后面的步骤依赖前面步骤的输出
SIMPLIFY_STAGES: tuple[TextStage, ...] = (
    TextStage("bullets", replace_list_items),
    TextStage("line_breaks", replace_line_breaks),
    TextStage("sanitize", sanitize),
    TextStage("paragraphs", replace_paragraphs),
    TextStage("unescape", unescape_entities),
    TextStage("trim", trim),
    TextStage("collapse_breaks", collapse_line_breaks),
    TextStage("link_emails", link_emails),
    TextStage("link_bare_domains", link_bare_domains),
    TextStage("link_urls", link_urls),
    TextStage("link_phones", link_phones),
)


def simplify_html(text: str) -> str:
    """
    把 feed 中的 HTML 简化为扁平的富文本 HTML.

    Args:
        text: 原始 HTML

    Returns:
        简化后的 HTML，只包含 <br/>、基本格式标签和自动生成的链接

    实体还原在清理之后执行，因此转义的标签（&lt;b&gt;）会作为真实标签留在结果中，
    对这类输入再次简化时结果可能不同（未闭合的标签会被补全）。
    """
    for stage in SIMPLIFY_STAGES:
        text = stage.apply(text)
    return text


def html_to_text(html_text: str) -> str:
    """
    将 HTML 转换为纯文本.

    <br> 转换为换行，其余标签只保留文字内容。
    """
    if not html_text:
        return ""

    soup = BeautifulSoup(html_text, "lxml")
    for br in soup.find_all("br"):
        br.replace_with("\n")

    return soup.get_text()


def short_description(html_text: str) -> str:
    """简化 HTML 的纯文本版本，按字符截断."""
    return html_to_text(html_text)[:SHORT_DESCRIPTION_LENGTH]
