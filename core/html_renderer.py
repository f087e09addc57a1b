"""문서 콘텐츠 노드를 HTML 조각으로 변환하는 렌더러.

텍스트 서식, 이미지, 수식(LaTeX), 목록 묶음, 표(중첩 포함)를 처리합니다.
"""

from __future__ import annotations

import html
import math
import re
from dataclasses import dataclass, field
from typing import Optional

from models.document_tree import (
    Block,
    Equation,
    GlyphType,
    Image,
    InlineNode,
    ListItem,
    Paragraph,
    Table,
    Text,
    TextRun,
    TextStyle,
    VerticalAlign,
)
from core.equation_latex import equation_to_latex

# 선택지 앞의 정답 표시: 공백(선택) + "<>" + 공백 한 칸(선택)
CORRECT_MARKER_PREFIX_RE = re.compile(r"^\s*<>\s?")

# MIME → 확장자 (알 수 없으면 png)
MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
}

# 글머리 기호 → <ul>
_BULLET_GLYPHS = {
    GlyphType.BULLET,
    GlyphType.HOLLOW_BULLET,
    GlyphType.SQUARE_BULLET,
}

# 번호 종류 → <ol type="...">
_ORDERED_TYPES = {
    GlyphType.NUMBER: "1",
    GlyphType.LATIN_UPPER: "A",
    GlyphType.LATIN_LOWER: "a",
    GlyphType.ROMAN_UPPER: "I",
    GlyphType.ROMAN_LOWER: "i",
}


def escape_html(text: str) -> str:
    """본문 텍스트용 HTML 이스케이프 (& < > " ')."""
    if not text:
        return ""
    return html.escape(text, quote=True)


def escape_html_attr(value: str) -> str:
    """속성값용 HTML 이스케이프. 따옴표까지 반드시 이스케이프."""
    return html.escape(str(value or ""), quote=True)


def image_extension(mime_type: str) -> str:
    return MIME_EXTENSIONS.get((mime_type or "").lower(), "png")


class ImageSink:
    """파싱 한 번 동안 추출된 이미지를 모으는 저장소.

    파일명 카운터는 문제 ID별로 따로 관리합니다.
    """

    def __init__(self):
        self.images: dict[str, bytes] = {}
        self._next_index: dict[str, int] = {}

    def add(self, question_id: str, data: bytes, mime_type: str) -> str:
        """이미지를 등록하고 생성된 파일명을 반환."""
        index = self._next_index.get(question_id, 1)
        self._next_index[question_id] = index + 1
        filename = f"{question_id}_img_{index:03d}.{image_extension(mime_type)}"
        self.images[filename] = data
        return filename


@dataclass
class RenderContext:
    """렌더링 상태.

    strip_correct_marker가 켜지면 첫 텍스트 구간에서만 정답 표시를 한 번 제거합니다.
    """
    in_equation: bool = False
    strip_correct_marker: bool = False
    marker_checked: bool = False


# ─── 인라인 렌더링 ─────────────────────────────────────────


def split_runs(text: Text) -> list[TextRun]:
    """서식이 바뀌는 경계마다 나눈 구간 목록 (같은 서식의 인접 run은 합침)."""
    segments: list[TextRun] = []
    for run in text.runs:
        if not run.text:
            continue
        if segments and segments[-1].style == run.style:
            segments[-1] = TextRun(segments[-1].text + run.text, run.style)
        else:
            segments.append(TextRun(run.text, run.style))
    return segments


def render_styled_text(text: Text, context: Optional[RenderContext] = None) -> str:
    """서식이 있는 텍스트를 HTML로 변환."""
    parts = []
    for segment in split_runs(text):
        chunk = segment.text

        if context and context.strip_correct_marker and not context.marker_checked:
            # 첫 구간에서만 시도하고, 없으면 더 이상 찾지 않음
            chunk = CORRECT_MARKER_PREFIX_RE.sub("", chunk, count=1)
            context.marker_checked = True
        if not chunk:
            continue

        parts.append(_wrap_style(escape_html(chunk).replace("\n", "<br/>"), segment.style))

    return "".join(parts)


def _wrap_style(body: str, style: TextStyle) -> str:
    """서식 태그를 고정된 순서로 감쌈 (안쪽부터 sup/sub, s, u, i, b, a)."""
    if style.vertical_align == VerticalAlign.SUPERSCRIPT:
        body = f"<sup>{body}</sup>"
    elif style.vertical_align == VerticalAlign.SUBSCRIPT:
        body = f"<sub>{body}</sub>"

    if style.strikethrough:
        body = f"<s>{body}</s>"
    if style.underline:
        body = f"<u>{body}</u>"
    if style.italic:
        body = f"<i>{body}</i>"
    if style.bold:
        body = f"<b>{body}</b>"

    if style.link_url:
        href = escape_html_attr(style.link_url)
        body = f'<a href="{href}" target="_blank" rel="noopener noreferrer">{body}</a>'
    return body


def render_image(image: Image, sink: ImageSink, question_id: str) -> str:
    """이미지를 저장소에 등록하고 <img> 태그를 반환."""
    filename = sink.add(question_id, image.data, image.mime_type)

    # 사용자가 지정한 크기만 유지, 미리보기에서는 max-width로 반응형
    width_attr = _dimension_attr("width", image.width)
    height_attr = _dimension_attr("height", image.height)
    return (
        f'<img src="images/{filename}"{width_attr}{height_attr} '
        'style="max-width: 100%; height: auto;" />'
    )


def _dimension_attr(name: str, value: Optional[float]) -> str:
    if isinstance(value, (int, float)) and math.isfinite(value) and value > 0:
        return f' {name}="{round(value)}"'
    return ""


def render_inline(
    node: InlineNode,
    sink: ImageSink,
    question_id: str,
    context: Optional[RenderContext] = None,
) -> str:
    """인라인 노드 하나를 HTML로 변환."""
    if isinstance(node, Text):
        if context and context.in_equation:
            return escape_html(node.text)
        return render_styled_text(node, context)
    if isinstance(node, Image):
        return render_image(node, sink, question_id)
    if isinstance(node, Equation):
        return "$" + equation_to_latex(node) + "$"
    raise TypeError(f"Unsupported inline node: {type(node).__name__}")


def render_children(
    container: Paragraph | ListItem,
    sink: ImageSink,
    question_id: str,
    context: Optional[RenderContext] = None,
) -> str:
    """문단/목록 항목의 자식 노드를 모두 렌더링해서 이어 붙임."""
    return "".join(
        render_inline(child, sink, question_id, context)
        for child in container.children
    )


# ─── 목록/블록 렌더링 ──────────────────────────────────────


def list_info_for_glyph(glyph_type: Optional[GlyphType]) -> tuple[str, str]:
    """글머리 종류에 맞는 (태그, 속성 문자열) 반환."""
    if glyph_type in _BULLET_GLYPHS:
        return ("ul", "")
    type_attr = _ORDERED_TYPES.get(glyph_type)
    if type_attr:
        return ("ol", f' type="{type_attr}"')
    return ("ul", "")


@dataclass
class HtmlBuffer:
    """HTML 조각 누적 버퍼. 현재 열려 있는 목록을 수준별 스택으로 추적.

    열린 목록마다 마지막 <li>도 열려 있으며, 한 수준 깊은 항목은 그 <li> 안에
    새 목록으로 들어갑니다.
    """
    parts: list[str] = field(default_factory=list)
    open_lists: list[tuple[str, str]] = field(default_factory=list)  # (tag, attrs)

    def _pop_list(self):
        tag, _ = self.open_lists.pop()
        self.parts.append(f"</li></{tag}>")

    def close_list(self):
        while self.open_lists:
            self._pop_list()

    def add_list_item(
        self, glyph_type: Optional[GlyphType], item_html: str, nesting_level: int = 0
    ):
        info = list_info_for_glyph(glyph_type)
        # 중간 수준을 건너뛰지 않음
        level = min(max(nesting_level, 0), len(self.open_lists))

        while len(self.open_lists) > level + 1:
            self._pop_list()
        if len(self.open_lists) == level + 1:
            if self.open_lists[-1] == info:
                self.parts.append("</li>")
            else:
                self._pop_list()
        if len(self.open_lists) == level:
            self.parts.append(f"<{info[0]}{info[1]}>")
            self.open_lists.append(info)
        self.parts.append(f"<li>{item_html}")

    def add_block(self, block_html: str):
        """목록이 아닌 블록 추가 (열린 목록은 먼저 닫음)."""
        self.close_list()
        if block_html:
            self.parts.append(block_html)

    def add_paragraph(self, paragraph_html: str):
        self.close_list()
        if paragraph_html:
            self.parts.append(f"<p>{paragraph_html}</p>")

    def render(self) -> str:
        self.close_list()
        return "".join(self.parts)


def append_block(buffer: HtmlBuffer, block: Block, sink: ImageSink, question_id: str):
    """문제 본문/해설 버퍼에 블록 하나를 렌더링해서 추가."""
    if isinstance(block, Paragraph):
        buffer.add_paragraph(render_children(block, sink, question_id))
    elif isinstance(block, ListItem):
        buffer.add_list_item(
            block.glyph_type, render_children(block, sink, question_id), block.nesting_level
        )
    elif isinstance(block, Table):
        buffer.add_block(render_table(block, sink, question_id))
    elif isinstance(block, Image):
        buffer.add_paragraph(render_image(block, sink, question_id))
    else:
        raise TypeError(f"Unsupported block: {type(block).__name__}")


def render_table(table: Table, sink: ImageSink, question_id: str) -> str:
    """표를 HTML로 변환. 셀 안의 표도 재귀적으로 처리."""
    out = ["<table>"]
    for row in table.rows:
        out.append("<tr>")
        for cell in row:
            cell_buffer = HtmlBuffer()
            for block in cell.blocks:
                if isinstance(block, Paragraph):
                    # 셀 문단은 <p> 대신 줄바꿈으로 구분
                    cell_buffer.add_block(render_children(block, sink, question_id) + "<br/>")
                elif isinstance(block, ListItem):
                    cell_buffer.add_list_item(
                        block.glyph_type,
                        render_children(block, sink, question_id),
                        block.nesting_level,
                    )
                elif isinstance(block, Table):
                    cell_buffer.add_block(render_table(block, sink, question_id))
                elif isinstance(block, Image):
                    cell_buffer.add_block(render_image(block, sink, question_id) + "<br/>")
            out.append(f"<td>{cell_buffer.render()}</td>")
        out.append("</tr>")
    out.append("</table>")
    return "".join(out)
