"""Word(.docx) 문서를 문서 트리 블록으로 읽는 모듈.

python-docx로 문서를 열고, 목록 번호·하이퍼링크·그림·수식(OMML)처럼
python-docx가 직접 노출하지 않는 부분은 lxml로 XML을 직접 읽습니다.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import Optional

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.text.run import Run
from lxml import etree
from PIL import Image as PILImage

from models.document_tree import (
    Block,
    Equation,
    EquationFunction,
    EquationNode,
    EquationSymbol,
    GlyphType,
    Image,
    InlineNode,
    ListItem,
    Paragraph,
    Table,
    TableCell,
    Text,
    TextRun,
    TextStyle,
    VerticalAlign,
)
from core.html_renderer import MIME_EXTENSIONS
from utils.config import IMAGE_DPI

logger = logging.getLogger(__name__)

# OOXML 네임스페이스
NS = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "m": "http://schemas.openxmlformats.org/officeDocument/2006/math",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
}

EMU_PER_INCH = 914400

# w:numFmt → 글머리 종류
NUM_FORMATS = {
    "bullet": GlyphType.BULLET,
    "decimal": GlyphType.NUMBER,
    "decimalZero": GlyphType.NUMBER,
    "upperLetter": GlyphType.LATIN_UPPER,
    "lowerLetter": GlyphType.LATIN_LOWER,
    "upperRoman": GlyphType.ROMAN_UPPER,
    "lowerRoman": GlyphType.ROMAN_LOWER,
}

# 글머리 문자로 구분하는 기호 모양
_HOLLOW_BULLET_CHARS = {"o", "◦", "○"}
_SQUARE_BULLET_CHARS = {"\uf0a7", "§", "▪", "■"}

# 수식 안의 유니코드 기호 → 수식 기호 코드
UNICODE_SYMBOLS = {
    "×": "times", "÷": "div", "±": "pm", "∓": "mp",
    "·": "cdot", "⋅": "cdot", "∘": "circ", "∗": "ast",
    "≤": "leq", "≥": "geq", "≠": "neq", "≈": "approx",
    "∼": "sim", "≡": "equiv", "∝": "propto",
    "∈": "in", "∉": "notin", "⊂": "subset", "⊆": "subseteq",
    "⊃": "supset", "⊇": "supseteq", "∪": "cup", "∩": "cap",
    "∀": "forall", "∃": "exists", "¬": "neg",
    "∧": "land", "∨": "lor",
    "→": "rightarrow", "←": "leftarrow", "↔": "leftrightarrow",
    "⇒": "Rightarrow", "⇐": "Leftarrow", "⇔": "Leftrightarrow",
    "∞": "infty",
    "∑": "sum", "∏": "prod", "∫": "int", "∮": "oint",
    # 그리스 문자
    "α": "alpha", "β": "beta", "γ": "gamma", "δ": "delta",
    "ε": "epsilon", "ζ": "zeta", "η": "eta", "θ": "theta",
    "ι": "iota", "κ": "kappa", "λ": "lambda", "μ": "mu",
    "ν": "nu", "ξ": "xi", "ο": "omicron", "π": "pi",
    "ρ": "rho", "σ": "sigma", "τ": "tau", "υ": "upsilon",
    "φ": "phi", "χ": "chi", "ψ": "psi", "ω": "omega",
    "Γ": "Gamma", "Δ": "Delta", "Θ": "Theta", "Λ": "Lambda",
    "Ξ": "Xi", "Π": "Pi", "Σ": "Sigma", "Υ": "Upsilon",
    "Φ": "Phi", "Ψ": "Psi", "Ω": "Omega",
}


def _qn(prefix: str, local: str) -> str:
    """Clark notation으로 네임스페이스 태그 생성."""
    return f"{{{NS[prefix]}}}{local}"


def _val(elem) -> Optional[str]:
    """w:val / m:val 속성값."""
    if elem is None:
        return None
    return elem.get(_qn("w", "val")) or elem.get(_qn("m", "val"))


class DocxReader:
    """python-docx Document → 문서 트리 블록 목록."""

    def __init__(self, document):
        self.document = document
        self.part = document.part
        self._styles = {
            style.get(_qn("w", "styleId")): style
            for style in document.styles.element.findall(_qn("w", "style"))
        }
        self._num_to_abstract: dict[str, str] = {}
        self._abstract_levels: dict[str, dict[str, GlyphType]] = {}
        self._load_numbering()

    def read(self) -> list[Block]:
        return self._read_blocks(self.document.element.body)

    # ─── 블록 ────────────────────────────────────────────

    def _read_blocks(self, container) -> list[Block]:
        blocks: list[Block] = []
        for child in container.iterchildren():
            if child.tag == _qn("w", "p"):
                blocks.append(self._read_paragraph(child))
            elif child.tag == _qn("w", "tbl"):
                blocks.append(self._read_table(child))
            elif child.tag == _qn("w", "sdt"):
                # 콘텐츠 컨트롤 안의 블록
                content = child.find(_qn("w", "sdtContent"))
                if content is not None:
                    blocks.extend(self._read_blocks(content))
        return blocks

    def _read_paragraph(self, p) -> Paragraph | ListItem:
        children = self._read_inline(p)
        list_info = self._list_info(p)
        if list_info is None:
            return Paragraph(children=children)
        glyph_type, level = list_info
        return ListItem(children=children, glyph_type=glyph_type, nesting_level=level)

    def _read_table(self, tbl) -> Table:
        rows = []
        for tr in tbl.iterchildren(_qn("w", "tr")):
            cells = [
                TableCell(blocks=self._read_blocks(tc))
                for tc in tr.iterchildren(_qn("w", "tc"))
            ]
            rows.append(cells)
        return Table(rows=rows)

    # ─── 목록 번호 ────────────────────────────────────────

    def _load_numbering(self):
        """numbering.xml에서 numId → abstractNum → 수준별 번호 형식 추출."""
        try:
            numbering = self.part.numbering_part.element
        except (KeyError, NotImplementedError):
            return

        for num in numbering.findall(_qn("w", "num")):
            abstract = _val(num.find(_qn("w", "abstractNumId")))
            if abstract is not None:
                self._num_to_abstract[num.get(_qn("w", "numId"))] = abstract

        for abstract in numbering.findall(_qn("w", "abstractNum")):
            levels = {}
            for lvl in abstract.findall(_qn("w", "lvl")):
                glyph = self._glyph_for_level(lvl)
                if glyph is not None:
                    levels[lvl.get(_qn("w", "ilvl"))] = glyph
            self._abstract_levels[abstract.get(_qn("w", "abstractNumId"))] = levels

    @staticmethod
    def _glyph_for_level(lvl) -> Optional[GlyphType]:
        fmt = _val(lvl.find(_qn("w", "numFmt")))
        glyph = NUM_FORMATS.get(fmt)
        if glyph == GlyphType.BULLET:
            char = _val(lvl.find(_qn("w", "lvlText"))) or ""
            if char in _HOLLOW_BULLET_CHARS:
                return GlyphType.HOLLOW_BULLET
            if char in _SQUARE_BULLET_CHARS:
                return GlyphType.SQUARE_BULLET
        return glyph

    def _list_info(self, p) -> Optional[tuple[Optional[GlyphType], int]]:
        """목록 항목이면 (글머리 종류, 수준), 아니면 None."""
        ppr = p.find(_qn("w", "pPr"))
        num_pr = ppr.find(_qn("w", "numPr")) if ppr is not None else None

        style = None
        if ppr is not None:
            style = self._styles.get(_val(ppr.find(_qn("w", "pStyle"))))
        if num_pr is None and style is not None:
            # 스타일(예: List Number)에 정의된 번호 매기기
            num_pr = style.find(f"{_qn('w', 'pPr')}/{_qn('w', 'numPr')}")

        style_glyph = self._glyph_from_style_name(style)

        if num_pr is not None:
            num_id = _val(num_pr.find(_qn("w", "numId")))
            ilvl = _val(num_pr.find(_qn("w", "ilvl"))) or "0"
            if num_id and num_id != "0":
                abstract = self._num_to_abstract.get(num_id)
                glyph = self._abstract_levels.get(abstract, {}).get(ilvl)
                return glyph or style_glyph, int(ilvl)

        if style_glyph is not None:
            return style_glyph, 0
        return None

    @staticmethod
    def _glyph_from_style_name(style) -> Optional[GlyphType]:
        if style is None:
            return None
        name = (_val(style.find(_qn("w", "name"))) or "").lower()
        if name.startswith("list bullet"):
            return GlyphType.BULLET
        if name.startswith("list number"):
            return GlyphType.NUMBER
        return None

    # ─── 인라인 ──────────────────────────────────────────

    def _read_inline(self, parent, link_url: Optional[str] = None) -> list[InlineNode]:
        nodes: list[InlineNode] = []
        for child in parent.iterchildren():
            tag = child.tag
            if tag == _qn("w", "r"):
                nodes.extend(self._read_run(child, link_url))
            elif tag == _qn("w", "hyperlink"):
                nodes.extend(self._read_inline(child, self._hyperlink_target(child)))
            elif tag in (_qn("w", "ins"), _qn("w", "smartTag"), _qn("w", "fldSimple")):
                nodes.extend(self._read_inline(child, link_url))
            elif tag == _qn("m", "oMath"):
                nodes.append(self._read_equation(child))
            elif tag == _qn("m", "oMathPara"):
                for math in child.iter(_qn("m", "oMath")):
                    nodes.append(self._read_equation(math))
        return _merge_text_nodes(nodes)

    def _read_run(self, r, link_url: Optional[str]) -> list[InlineNode]:
        run = Run(r, self.document)
        nodes: list[InlineNode] = []

        text = run.text
        if text:
            nodes.append(Text(runs=[TextRun(text, self._run_style(run, link_url))]))

        for blip in r.iter(_qn("a", "blip")):
            image = self._read_image(blip)
            if image is not None:
                nodes.append(image)
        return nodes

    @staticmethod
    def _run_style(run: Run, link_url: Optional[str]) -> TextStyle:
        font = run.font
        if font.superscript:
            vertical_align = VerticalAlign.SUPERSCRIPT
        elif font.subscript:
            vertical_align = VerticalAlign.SUBSCRIPT
        else:
            vertical_align = VerticalAlign.NORMAL

        return TextStyle(
            bold=bool(run.bold),
            italic=bool(run.italic),
            underline=bool(run.underline),
            strikethrough=bool(font.strike or font.double_strike),
            vertical_align=vertical_align,
            link_url=link_url,
        )

    def _hyperlink_target(self, hyperlink) -> Optional[str]:
        r_id = hyperlink.get(_qn("r", "id"))
        if r_id and r_id in self.part.rels:
            return self.part.rels[r_id].target_ref
        anchor = hyperlink.get(_qn("w", "anchor"))
        return f"#{anchor}" if anchor else None

    # ─── 그림 ────────────────────────────────────────────

    def _read_image(self, blip) -> Optional[Image]:
        r_id = blip.get(_qn("r", "embed"))
        if not r_id:
            return None
        part = self.part.related_parts.get(r_id)
        if part is None:
            logger.warning("그림 파트를 찾을 수 없습니다: rId=%s", r_id)
            return None

        data = part.blob
        width, height = self._image_extent(blip)
        return Image(
            data=data,
            mime_type=detect_image_mime(data, part.content_type),
            width=width,
            height=height,
        )

    @staticmethod
    def _image_extent(blip) -> tuple[Optional[float], Optional[float]]:
        """wp:extent(EMU)에서 표시 크기(px) 계산."""
        for drawing in blip.iterancestors(_qn("wp", "inline"), _qn("wp", "anchor")):
            extent = drawing.find(_qn("wp", "extent"))
            if extent is None:
                break
            cx, cy = extent.get("cx"), extent.get("cy")
            if cx and cy:
                return (
                    int(cx) * IMAGE_DPI / EMU_PER_INCH,
                    int(cy) * IMAGE_DPI / EMU_PER_INCH,
                )
            break
        return (None, None)

    # ─── 수식 (OMML) ─────────────────────────────────────

    def _read_equation(self, omath) -> Equation:
        return Equation(children=self._math_children(omath))

    def _math_children(self, elem) -> list[EquationNode]:
        nodes: list[EquationNode] = []
        for child in elem.iterchildren():
            nodes.extend(self._math_node(child))
        return nodes

    def _math_arg(self, elem, name: str) -> EquationNode:
        """m:num, m:e 같은 인자 하나를 노드 하나로 (여러 개면 빈 코드 함수로 묶음)."""
        child = elem.find(_qn("m", name))
        if child is None:
            return Text.plain("")
        nodes = self._math_children(child)
        if not nodes:
            return Text.plain("")
        if len(nodes) == 1:
            return nodes[0]
        return EquationFunction(code="", arguments=nodes)

    def _math_node(self, elem) -> list[EquationNode]:
        qname = etree.QName(elem)
        if qname.namespace != NS["m"] or qname.localname.endswith("Pr"):
            return []

        local = qname.localname
        if local == "r":
            text = "".join(t.text or "" for t in elem.iter(_qn("m", "t")))
            return split_math_text(text)
        if local == "f":
            return [EquationFunction("frac", [self._math_arg(elem, "num"), self._math_arg(elem, "den")])]
        if local == "rad":
            # [base, index] 순서
            return [EquationFunction("root", [self._math_arg(elem, "e"), self._math_arg(elem, "deg")])]
        if local == "sSup":
            return [
                self._math_arg(elem, "e"),
                EquationFunction("superscript", [self._math_arg(elem, "sup")]),
            ]
        if local == "sSub":
            return [
                self._math_arg(elem, "e"),
                EquationFunction("subscript", [self._math_arg(elem, "sub")]),
            ]
        if local == "sSubSup":
            return [
                self._math_arg(elem, "e"),
                EquationFunction("subscript", [self._math_arg(elem, "sub")]),
                EquationFunction("superscript", [self._math_arg(elem, "sup")]),
            ]
        if local == "d":
            return self._math_delimiter(elem)
        if local == "nary":
            return self._math_nary(elem)
        return self._math_children(elem)

    def _math_delimiter(self, elem) -> list[EquationNode]:
        props = elem.find(_qn("m", "dPr"))
        beg, end, sep = "(", ")", "|"
        if props is not None:
            beg = _val(props.find(_qn("m", "begChr"))) or beg
            end = _val(props.find(_qn("m", "endChr"))) or end
            sep = _val(props.find(_qn("m", "sepChr"))) or sep

        nodes: list[EquationNode] = [Text.plain(beg)]
        for i, e in enumerate(elem.findall(_qn("m", "e"))):
            if i:
                nodes.append(Text.plain(sep))
            nodes.extend(self._math_children(e))
        nodes.append(Text.plain(end))
        return nodes

    def _math_nary(self, elem) -> list[EquationNode]:
        props = elem.find(_qn("m", "naryPr"))
        char = _val(props.find(_qn("m", "chr"))) if props is not None else None
        char = char or "∫"

        nodes: list[EquationNode] = [EquationSymbol(UNICODE_SYMBOLS.get(char, ""), char)]
        lower = self._math_arg(elem, "sub")
        upper = self._math_arg(elem, "sup")
        # 비어 있는 한계는 생략
        if not (isinstance(lower, Text) and not lower.text):
            nodes.append(EquationFunction("subscript", [lower]))
        if not (isinstance(upper, Text) and not upper.text):
            nodes.append(EquationFunction("superscript", [upper]))
        nodes.append(self._math_arg(elem, "e"))
        return nodes


def split_math_text(text: str) -> list[EquationNode]:
    """수식 텍스트에서 알려진 유니코드 기호를 기호 노드로 분리."""
    nodes: list[EquationNode] = []
    buffer = []
    for ch in text:
        code = UNICODE_SYMBOLS.get(ch)
        if code is None:
            buffer.append(ch)
            continue
        if buffer:
            nodes.append(Text.plain("".join(buffer)))
            buffer = []
        nodes.append(EquationSymbol(code=code, text=ch))
    if buffer:
        nodes.append(Text.plain("".join(buffer)))
    return nodes


def _merge_text_nodes(nodes: list[InlineNode]) -> list[InlineNode]:
    """연속된 텍스트 노드를 하나의 Text(여러 run)로 합침."""
    merged: list[InlineNode] = []
    for node in nodes:
        if isinstance(node, Text) and merged and isinstance(merged[-1], Text):
            merged[-1] = Text(runs=merged[-1].runs + node.runs)
        else:
            merged.append(node)
    return merged


def detect_image_mime(data: bytes, content_type: Optional[str] = None) -> str:
    """이미지 MIME 결정. 파트의 content type을 모르면 Pillow로 판별."""
    if content_type in MIME_EXTENSIONS:
        return content_type
    try:
        with PILImage.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (OSError, ValueError):
        return content_type or "image/png"
    return PILImage.MIME.get(fmt, content_type or "image/png")


def read_document(document) -> list[Block]:
    """열려 있는 python-docx Document를 블록 목록으로 변환."""
    return DocxReader(document).read()


def read_docx(docx_path: str | Path) -> list[Block]:
    """.docx 파일을 블록 목록으로 읽기.

    Args:
        docx_path: .docx 파일 경로

    Returns:
        문서 순서대로 나열된 블록 목록

    Raises:
        FileNotFoundError: 파일이 없을 때
        ValueError: .docx가 아니거나 올바른 Word 패키지가 아닐 때
    """
    docx_path = Path(docx_path)
    if not docx_path.exists():
        raise FileNotFoundError(f"문서 파일을 찾을 수 없습니다: {docx_path}")
    if docx_path.suffix.lower() != ".docx":
        raise ValueError(f"지원하지 않는 파일 형식입니다: {docx_path.suffix} (.docx만 가능)")

    try:
        document = Document(str(docx_path))
    except (PackageNotFoundError, zipfile.BadZipFile) as e:
        raise ValueError(f"올바른 .docx 파일이 아닙니다: {docx_path}") from e

    blocks = read_document(document)
    logger.info("문서 로드 완료: %s (블록 %d개)", docx_path.name, len(blocks))
    return blocks
