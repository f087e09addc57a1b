"""문서 트리를 구조화 데이터(QuizModel)로 변환하는 파서.

블록을 문서 순서대로 한 번 훑으면서 태그를 인식하고,
상태 머신(WAITING → READING_QUESTION → READING_OPTIONS / READING_DESCRIPTIONS)에
따라 문제 본문·선택지·해설을 모읍니다.

구조 오류는 모두 QuizParseError로 즉시 중단되며, 부분 결과는 반환하지 않습니다.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from models.document_tree import Block, Image, ListItem, Paragraph, Table
from models.quiz_model import Option, Question, QuizModel, QuizType
from core.html_renderer import (
    HtmlBuffer,
    ImageSink,
    RenderContext,
    append_block,
    escape_html,
    render_children,
)

logger = logging.getLogger(__name__)

# 헤더: 단독 줄이어야 함
BEGIN_TAG_RE = re.compile(r"^\[BEGIN#(MCQ|ESSAY)\]$")
BEGIN_PREFIX = "[BEGIN#"

QUESTION_PREFIX = "[QUESTION"
QUESTION_PLAIN_TAG = "[QUESTION]"
QUESTION_NUMBERED_RE = re.compile(r"^\[QUESTION#([0-9]+)\](.*)$", re.DOTALL)

OPTIONS_TAG = "[OPTIONS]"
DESCRIPTIONS_TAG = "[DESCRIPTIONS]"

# 정답 판별용 (getText 기준, HTML 이스케이프와 무관)
CORRECT_MARKER_RE = re.compile(r"^\s*<>\s*")

_MISSING_HEADER = (
    "Missing quiz type header. The first non-empty line must be "
    "[BEGIN#MCQ] or [BEGIN#ESSAY]."
)


class QuizParseError(ValueError):
    """문서 구조 오류. line은 문제가 된 블록 번호 (1부터, 모르면 0)."""

    def __init__(self, message: str, line: int = 0):
        super().__init__(message)
        self.line = line


class ParserState(Enum):
    WAITING = "waiting"
    READING_QUESTION = "reading_question"
    READING_OPTIONS = "reading_options"
    READING_DESCRIPTIONS = "reading_descriptions"


@dataclass
class QuestionTag:
    """[QUESTION] / [QUESTION#n] 태그 파싱 결과."""
    inline_text: str
    label: Optional[int] = None
    tag_length: int = 0


def parse_begin_tag(text: str) -> Optional[QuizType]:
    """헤더 태그면 퀴즈 유형, 아니면 None."""
    m = BEGIN_TAG_RE.match((text or "").strip())
    if not m:
        return None
    return QuizType(m.group(1))


def parse_question_tag(text: str, line: int = 0) -> Optional[QuestionTag]:
    """문제 태그 파싱.

    지원 형식: [QUESTION], [QUESTION#<숫자>] (뒤에 인라인 텍스트 가능).
    그 밖의 [QUESTION... 형식은 QuizParseError.

    Returns:
        QuestionTag, 문제 태그가 아니면 None
    """
    t = (text or "").strip()
    if not t.startswith(QUESTION_PREFIX):
        return None

    if t.startswith(QUESTION_PLAIN_TAG):
        return QuestionTag(
            inline_text=t[len(QUESTION_PLAIN_TAG):].strip(),
            tag_length=len(QUESTION_PLAIN_TAG),
        )

    m = QUESTION_NUMBERED_RE.match(t)
    if m:
        return QuestionTag(
            inline_text=m.group(2).strip(),
            label=int(m.group(1)),
            tag_length=len(t) - len(m.group(2)),
        )

    raise QuizParseError(
        f'Invalid question tag "{t}" at line {line}. Use [QUESTION] or '
        f"[QUESTION#<number>] (e.g., [QUESTION#1]).",
        line,
    )


def block_text(block: Block) -> str:
    """태그 인식용 텍스트 (문단/목록 항목만, 앞뒤 공백 제거)."""
    if isinstance(block, (Paragraph, ListItem)):
        return block.text.strip()
    return ""


def find_header(blocks: Sequence[Block]) -> tuple[QuizType, int]:
    """헤더 위치 탐색.

    Returns:
        (퀴즈 유형, 헤더 블록 인덱스)

    Raises:
        QuizParseError: 첫 비어 있지 않은 줄이 헤더가 아닐 때
    """
    for i, block in enumerate(blocks):
        if not isinstance(block, (Paragraph, ListItem)):
            # 헤더 앞의 표/이미지 등은 비어 있지 않은 구조로 간주
            raise QuizParseError(_MISSING_HEADER, i + 1)

        text = block_text(block)
        if not text:
            continue

        quiz_type = parse_begin_tag(text)
        if quiz_type is None:
            raise QuizParseError(f'{_MISSING_HEADER} (Found: "{text}")', i + 1)
        return quiz_type, i

    raise QuizParseError(_MISSING_HEADER)


@dataclass
class _QuestionDraft:
    """작성 중인 문제. 완료되면 불변 Question으로 변환."""
    num: int
    line: int
    label: Optional[int] = None
    content: HtmlBuffer = field(default_factory=HtmlBuffer)
    descriptions: HtmlBuffer = field(default_factory=HtmlBuffer)
    has_options_tag: bool = False
    options_tag_line: int = 0
    has_descriptions_tag: bool = False
    descriptions_tag_line: int = 0
    options: list[Option] = field(default_factory=list)

    @property
    def id(self) -> str:
        return f"q{self.num}"

    def close_lists(self):
        self.content.close_list()
        self.descriptions.close_list()

    def finalize(self) -> Question:
        descriptions = self.descriptions.render()
        return Question(
            num=self.num,
            line=self.line,
            label=self.label,
            content=self.content.render(),
            descriptions=descriptions or None,
            has_options_tag=self.has_options_tag,
            options_tag_line=self.options_tag_line,
            has_descriptions_tag=self.has_descriptions_tag,
            descriptions_tag_line=self.descriptions_tag_line,
            options=tuple(self.options),
        )


class QuizParser:
    """문서 블록 → QuizModel 상태 머신 파서."""

    def __init__(self, blocks: Sequence[Block]):
        self.blocks = list(blocks)
        self.sink = ImageSink()
        self.quiz_type: Optional[QuizType] = None
        self.questions: list[Question] = []
        self.current: Optional[_QuestionDraft] = None
        self.state = ParserState.WAITING

    def parse(self) -> QuizModel:
        self.quiz_type, header_index = find_header(self.blocks)
        logger.info("퀴즈 유형: %s (line %d)", self.quiz_type.value, header_index + 1)

        for i, block in enumerate(self.blocks):
            if i == header_index:
                continue
            self._process_block(block, i + 1)

        self._close_current()

        model = QuizModel(
            quiz_type=self.quiz_type,
            questions=tuple(self.questions),
            images=self.sink.images,
        )
        logger.info(
            "파싱 완료: 문제 %d개, 이미지 %d개",
            len(model.questions), len(model.images),
        )
        return model

    def _process_block(self, block: Block, line: int):
        text = block_text(block)

        if text.startswith(BEGIN_PREFIX):
            raise QuizParseError(
                f"Invalid BEGIN header placement at line {line}. "
                f"[BEGIN#{self.quiz_type.value}] must be the first non-empty line "
                "and may appear only once.",
                line,
            )

        # 1. 상태 전이
        tag = parse_question_tag(text, line)
        if tag is not None:
            self._start_question(tag, line)
            return
        if text.startswith(OPTIONS_TAG):
            self._enter_options(line)
            return
        if text.startswith(DESCRIPTIONS_TAG):
            self._enter_descriptions(line)
            return

        # 2. 상태별 콘텐츠 처리
        if self.current is None:
            return

        if self.state == ParserState.READING_QUESTION:
            append_block(self.current.content, block, self.sink, self.current.id)
        elif self.state == ParserState.READING_DESCRIPTIONS:
            append_block(self.current.descriptions, block, self.sink, self.current.id)
        elif self.state == ParserState.READING_OPTIONS:
            if isinstance(block, ListItem):
                self.current.options.append(self._build_option(block, line))
            elif text or isinstance(block, (Table, Image)):
                logger.warning(
                    "line %d: [OPTIONS] 구간의 목록이 아닌 블록은 무시됩니다.", line
                )

    def _start_question(self, tag: QuestionTag, line: int):
        self._close_current()

        # 번호는 태그의 숫자가 아니라 문서 내 위치로 결정
        self.current = _QuestionDraft(
            num=len(self.questions) + 1, line=line, label=tag.label
        )
        self.state = ParserState.READING_QUESTION

        if tag.inline_text:
            self.current.content.add_paragraph(escape_html(tag.inline_text))

    def _enter_options(self, line: int):
        q = self.current
        if q is None:
            raise QuizParseError(
                f"Invalid [OPTIONS] placement at line {line}. "
                "[OPTIONS] must appear after a [QUESTION#n] tag.",
                line,
            )
        if self.quiz_type == QuizType.ESSAY:
            raise QuizParseError(
                f"Invalid [OPTIONS] for ESSAY at line {line}. "
                "Essay questions must not contain [OPTIONS].",
                line,
            )
        if q.has_options_tag:
            raise QuizParseError(
                f"Duplicate [OPTIONS] tag for Question {q.num} at line {line}. "
                "Only one [OPTIONS] section is allowed per question.",
                line,
            )
        q.has_options_tag = True
        q.options_tag_line = line
        q.close_lists()
        self.state = ParserState.READING_OPTIONS

    def _enter_descriptions(self, line: int):
        q = self.current
        if q is None:
            raise QuizParseError(
                f"Invalid [DESCRIPTIONS] placement at line {line}. "
                "[DESCRIPTIONS] must appear after a [QUESTION#n] tag.",
                line,
            )
        if q.has_descriptions_tag:
            raise QuizParseError(
                f"Duplicate [DESCRIPTIONS] tag for Question {q.num} at line {line}. "
                "Only one [DESCRIPTIONS] section is allowed per question.",
                line,
            )
        if self.quiz_type == QuizType.MCQ and self.state != ParserState.READING_OPTIONS:
            raise QuizParseError(
                f"Invalid [DESCRIPTIONS] placement at line {line}. "
                "For MCQ, [DESCRIPTIONS] must appear after [OPTIONS].",
                line,
            )
        q.has_descriptions_tag = True
        q.descriptions_tag_line = line
        q.close_lists()
        self.state = ParserState.READING_DESCRIPTIONS

    def _build_option(self, item: ListItem, line: int) -> Option:
        q = self.current
        raw_text = item.text.strip()
        is_correct = bool(CORRECT_MARKER_RE.match(raw_text))
        choice_text = " ".join(CORRECT_MARKER_RE.sub("", raw_text).split())

        # 정답 표시는 미리보기/내보내기 HTML에 나타나지 않도록 제거
        context = RenderContext(strip_correct_marker=is_correct)
        html = render_children(item, self.sink, q.id, context)

        return Option(
            id=f"opt_{len(q.options)}",
            text=html,
            choice_text=choice_text,
            is_correct=is_correct,
            line=line,
        )

    def _close_current(self):
        if self.current is None:
            return
        self.questions.append(self.current.finalize())
        self.current = None


def parse_document(blocks: Sequence[Block]) -> QuizModel:
    """문서 블록 시퀀스를 QuizModel로 변환.

    Args:
        blocks: 문서 순서대로 나열된 최상위 블록

    Returns:
        QuizModel

    Raises:
        QuizParseError: 헤더 누락/중복, 잘못된 위치의 태그, 중복 구간 태그,
            잘못된 문제 태그, ESSAY의 [OPTIONS]
    """
    return QuizParser(blocks).parse()
