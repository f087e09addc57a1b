"""퀴즈 마크업 편집 보조 함수.

헤더 확인, 정답 표시 토글, 문제 번호 재정렬, 새 문제 템플릿 생성 등
문서를 작성할 때 쓰는 텍스트 단위 도구입니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from models.document_tree import Block, GlyphType, ListItem, Paragraph, TextStyle
from models.quiz_model import QuizType
from core.quiz_parser import (
    DESCRIPTIONS_TAG,
    OPTIONS_TAG,
    QUESTION_PREFIX,
    block_text,
    parse_begin_tag,
    parse_question_tag,
)

# 토글 시 제거할 정답 표시 (뒤 공백은 한 칸까지만)
_MARKER_TOGGLE_RE = re.compile(r"^\s*<>\s?")
CORRECT_MARKER = "<> "

_TAG_STYLE = TextStyle(bold=True)


@dataclass
class HeaderInfo:
    """헤더 태그 정보."""
    quiz_type: QuizType
    line: int


def get_quiz_type_header(blocks: Sequence[Block]) -> Optional[HeaderInfo]:
    """첫 비어 있지 않은 줄이 올바른 헤더면 그 정보를, 아니면 None."""
    for i, block in enumerate(blocks):
        if not isinstance(block, (Paragraph, ListItem)):
            return None
        text = block_text(block)
        if not text:
            continue
        quiz_type = parse_begin_tag(text)
        if quiz_type is None:
            return None
        return HeaderInfo(quiz_type=quiz_type, line=i + 1)
    return None


# ─── 정답 표시 ─────────────────────────────────────────────


def has_correct_marker(text: str) -> bool:
    return bool(_MARKER_TOGGLE_RE.match(text or ""))


def remove_correct_marker(text: str) -> str:
    return _MARKER_TOGGLE_RE.sub("", text or "", count=1)


def toggle_correct_marker(text: str) -> str:
    """정답 표시 토글. 두 번 적용하면 원래 텍스트로 돌아옴."""
    if has_correct_marker(text):
        return remove_correct_marker(text)
    return CORRECT_MARKER + (text or "")


def toggle_correct_option(option_texts: Sequence[str], index: int) -> list[str]:
    """선택지 하나의 정답 표시를 토글.

    새로 정답으로 표시할 때는 같은 문제의 다른 선택지에서 표시를 제거하여
    정답이 하나만 남도록 합니다.

    Raises:
        IndexError: index가 범위를 벗어날 때
    """
    texts = list(option_texts)
    if not 0 <= index < len(texts):
        raise IndexError(f"Option index out of range: {index}")

    if has_correct_marker(texts[index]):
        texts[index] = remove_correct_marker(texts[index])
        return texts

    for i, text in enumerate(texts):
        if i != index:
            texts[i] = remove_correct_marker(text)
    texts[index] = toggle_correct_marker(texts[index])
    return texts


# ─── 문제 번호 ─────────────────────────────────────────────


def next_question_label(lines: Sequence[str]) -> int:
    """다음 문제 번호 (기존 태그 개수 + 1, 가장 큰 #n과는 무관)."""
    count = 0
    for i, raw in enumerate(lines):
        # 형식 검사도 겸함 ([QUESTION#] 등은 오류)
        if parse_question_tag(raw, i + 1) is not None:
            count += 1
    return count + 1


def renumber_question_labels(lines: Sequence[str]) -> tuple[list[str], int]:
    """모든 문제 태그를 문서 순서대로 [QUESTION#1..n]으로 다시 씀.

    [QUESTION] 태그도 번호형으로 바뀌며, 앞 공백과 인라인 텍스트는 유지됩니다.

    Returns:
        (새 줄 목록, 바꾼 태그 수)

    Raises:
        QuizParseError: 형식이 잘못된 문제 태그
    """
    result = []
    counter = 0
    for i, raw in enumerate(lines):
        tag = parse_question_tag(raw, i + 1)
        if tag is None:
            result.append(raw)
            continue

        counter += 1
        leading = raw[: len(raw) - len(raw.lstrip())]
        rest = raw.lstrip()[tag.tag_length:]
        result.append(f"{leading}[QUESTION#{counter}]{rest}")
    return result, counter


# ─── 템플릿 ───────────────────────────────────────────────


def new_quiz_blocks(quiz_type: QuizType | str) -> list[Block]:
    """새 퀴즈 문서의 시작 블록 (헤더 + 빈 줄)."""
    quiz_type = QuizType(quiz_type.upper()) if isinstance(quiz_type, str) else quiz_type
    return [
        Paragraph.of_text(f"[BEGIN#{quiz_type.value}]", _TAG_STYLE),
        Paragraph.of_text(""),
    ]


def question_template(quiz_type: QuizType, label: int) -> list[Block]:
    """새 문제 템플릿 블록.

    MCQ: 태그, 본문 자리표시, 빈 줄, [OPTIONS], 정답 선택지, 오답 선택지
    ESSAY: 태그, 본문 자리표시, 빈 줄, [DESCRIPTIONS], 해설 자리표시
    """
    blocks: list[Block] = [
        Paragraph.of_text(f"{QUESTION_PREFIX}#{label}]", _TAG_STYLE),
        Paragraph.of_text("Question text..."),
        Paragraph.of_text(""),
    ]
    if quiz_type == QuizType.MCQ:
        blocks += [
            Paragraph.of_text(OPTIONS_TAG, _TAG_STYLE),
            ListItem.of_text(CORRECT_MARKER + "Option A (Correct)", GlyphType.LATIN_UPPER),
            ListItem.of_text("Option B", GlyphType.LATIN_UPPER),
        ]
    else:
        blocks += [
            Paragraph.of_text(DESCRIPTIONS_TAG, _TAG_STYLE),
            Paragraph.of_text("Optional explanation..."),
        ]
    return blocks
