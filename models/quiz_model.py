from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class QuizType(Enum):
    """퀴즈 유형 (헤더 태그로 한 번만 결정)."""
    MCQ = "MCQ"
    ESSAY = "ESSAY"


@dataclass(frozen=True)
class Option:
    """MCQ 선택지."""
    id: str
    text: str                   # HTML (정답 표시 <> 제거됨)
    choice_text: Optional[str]  # 중복 비교용 평문
    is_correct: bool = False
    line: int = 0


@dataclass(frozen=True)
class Question:
    """파싱이 끝난 문제 하나."""
    num: int                    # 문서 순서 기준 1부터
    line: int                   # 태그가 있는 블록 번호 (1부터)
    content: str = ""
    descriptions: Optional[str] = None
    label: Optional[int] = None  # [QUESTION#n]의 n (표시용)
    has_options_tag: bool = False
    options_tag_line: int = 0
    has_descriptions_tag: bool = False
    descriptions_tag_line: int = 0
    options: tuple[Option, ...] = ()

    @property
    def id(self) -> str:
        return f"q{self.num}"


@dataclass(frozen=True)
class QuizModel:
    """전체 퀴즈."""
    quiz_type: QuizType
    questions: tuple[Question, ...] = ()
    images: dict[str, bytes] = field(default_factory=dict)  # 파일명 → 바이너리

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def find_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None
