"""입력 문서 트리 모델.

호스트(워드프로세서)에서 읽어 온 블록 시퀀스를 표현합니다.
파서는 이 트리를 읽기만 하며 수정하지 않습니다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class VerticalAlign(Enum):
    """텍스트 세로 정렬 (위첨자/아래첨자)."""
    NORMAL = "normal"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"


class GlyphType(Enum):
    """목록 항목의 글머리 기호/번호 종류."""
    BULLET = "bullet"
    HOLLOW_BULLET = "hollow_bullet"
    SQUARE_BULLET = "square_bullet"
    NUMBER = "number"
    LATIN_UPPER = "latin_upper"
    LATIN_LOWER = "latin_lower"
    ROMAN_UPPER = "roman_upper"
    ROMAN_LOWER = "roman_lower"


@dataclass(frozen=True)
class TextStyle:
    """텍스트 run의 서식 속성 집합."""
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strikethrough: bool = False
    vertical_align: VerticalAlign = VerticalAlign.NORMAL
    link_url: Optional[str] = None


@dataclass
class TextRun:
    """같은 서식을 공유하는 연속 텍스트 구간."""
    text: str
    style: TextStyle = field(default_factory=TextStyle)


@dataclass
class Text:
    """텍스트 요소. 서식이 다른 여러 run으로 구성될 수 있음."""
    runs: list[TextRun] = field(default_factory=list)

    @classmethod
    def plain(cls, text: str, style: Optional[TextStyle] = None) -> Text:
        return cls(runs=[TextRun(text=text, style=style or TextStyle())])

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)


@dataclass
class Image:
    """이미지 (인라인 또는 블록).

    width/height는 문서에서 사용자가 지정한 표시 크기(px)이며,
    알 수 없으면 None.
    """
    data: bytes
    mime_type: str = "image/png"
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def text(self) -> str:
        return ""


@dataclass
class EquationSymbol:
    """수식 기호 (내부 코드 + 표시 텍스트)."""
    code: str
    text: str = ""


@dataclass
class EquationFunction:
    """수식 함수. arguments의 각 항목이 인자 하나의 하위 트리."""
    code: str
    arguments: list[EquationNode] = field(default_factory=list)


# 수식 내부 노드
EquationNode = Union[Text, EquationFunction, EquationSymbol]


@dataclass
class Equation:
    """인라인 수식."""
    children: list[EquationNode] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(_equation_text(child) for child in self.children)


def _equation_text(node: EquationNode) -> str:
    if isinstance(node, Text):
        return node.text
    if isinstance(node, EquationSymbol):
        return node.text or node.code
    return "".join(_equation_text(arg) for arg in node.arguments)


# 문단/목록 항목의 인라인 자식
InlineNode = Union[Text, Image, Equation]


@dataclass
class Paragraph:
    """일반 문단."""
    children: list[InlineNode] = field(default_factory=list)

    @classmethod
    def of_text(cls, text: str, style: Optional[TextStyle] = None) -> Paragraph:
        return cls(children=[Text.plain(text, style)])

    @property
    def text(self) -> str:
        return "".join(child.text for child in self.children)


@dataclass
class ListItem:
    """목록 항목."""
    children: list[InlineNode] = field(default_factory=list)
    glyph_type: Optional[GlyphType] = GlyphType.BULLET
    nesting_level: int = 0

    @classmethod
    def of_text(
        cls,
        text: str,
        glyph_type: Optional[GlyphType] = GlyphType.BULLET,
        style: Optional[TextStyle] = None,
    ) -> ListItem:
        return cls(children=[Text.plain(text, style)], glyph_type=glyph_type)

    @property
    def text(self) -> str:
        return "".join(child.text for child in self.children)


@dataclass
class TableCell:
    """표 셀. 블록을 재귀적으로 포함."""
    blocks: list[Block] = field(default_factory=list)


@dataclass
class Table:
    """표."""
    rows: list[list[TableCell]] = field(default_factory=list)

    @property
    def text(self) -> str:
        # 태그 인식 대상이 아니므로 항상 빈 문자열
        return ""


# 최상위 블록
Block = Union[Paragraph, ListItem, Table, Image]
