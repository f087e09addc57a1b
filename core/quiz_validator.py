"""퀴즈 작성 규칙 검사 모듈.

파싱된 문제 목록에 고정 규칙을 적용하여 오류/경고 목록을 만듭니다.
오류가 하나라도 있으면 내보내기가 차단되며, 경고는 참고용입니다.
검사 함수는 예외를 던지지 않고 항상 결과 객체를 반환합니다.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from models.quiz_model import Option, Question, QuizModel, QuizType

_TAG_RE = re.compile(r"<[^>]*>")


@dataclass
class ValidationIssue:
    """오류/경고 한 건."""
    message: str
    line: int = 0


@dataclass
class ValidationResult:
    """검사 결과."""
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


def validate_quiz(
    quiz_type: Union[QuizType, str, None],
    questions: Sequence[Question],
) -> ValidationResult:
    """퀴즈 유형과 문제 목록을 검사.

    Args:
        quiz_type: QuizType 또는 "MCQ"/"ESSAY"
        questions: 파싱된 문제 목록

    Returns:
        ValidationResult (is_valid, errors, warnings)
    """
    result = ValidationResult()

    kind = _coerce_quiz_type(quiz_type)
    if kind is None:
        result.errors.append(ValidationIssue(
            "Missing or invalid quiz type. Add [BEGIN#MCQ] or [BEGIN#ESSAY] "
            "as the first non-empty line."
        ))
        return result

    if not questions:
        result.errors.append(ValidationIssue(
            "No questions found. Please check [QUESTION] / [QUESTION#n] tags."
        ))
        return result

    for question in questions:
        _check_content(question, result)
        if kind == QuizType.ESSAY:
            _check_essay_options(question, result)
            continue
        _check_options_tag(question, result)
        _check_option_count(question, result)
        _check_correct_count(question, result)
        _check_duplicates(question, result)
        _check_empty_options(question, result)

    return result


def validate_model(model: QuizModel) -> ValidationResult:
    """QuizModel 검사 (validate_quiz의 편의 함수)."""
    return validate_quiz(model.quiz_type, model.questions)


def _coerce_quiz_type(quiz_type: Union[QuizType, str, None]) -> Optional[QuizType]:
    if isinstance(quiz_type, QuizType):
        return quiz_type
    if isinstance(quiz_type, str):
        try:
            return QuizType(quiz_type.strip().upper())
        except ValueError:
            return None
    return None


# ─── 개별 검사 함수 ──────────────────────────────────────────


def _check_content(question: Question, result: ValidationResult) -> None:
    if not (question.content or "").strip():
        result.errors.append(ValidationIssue(
            f"Question {question.num}: Content is empty.", question.line
        ))


def _check_essay_options(question: Question, result: ValidationResult) -> None:
    if question.has_options_tag or question.options:
        result.errors.append(ValidationIssue(
            f"Question {question.num}: [OPTIONS] is not allowed for ESSAY.",
            question.options_tag_line or question.line,
        ))


def _check_options_tag(question: Question, result: ValidationResult) -> None:
    if not question.has_options_tag:
        result.errors.append(ValidationIssue(
            f"Question {question.num}: Missing [OPTIONS] section.", question.line
        ))


def _check_option_count(question: Question, result: ValidationResult) -> None:
    count = len(question.options)
    if count < 2:
        result.errors.append(ValidationIssue(
            f"Question {question.num}: Needs at least 2 options (found {count}).",
            question.options_tag_line or question.line,
        ))


def _check_correct_count(question: Question, result: ValidationResult) -> None:
    correct = sum(1 for option in question.options if option.is_correct)
    if correct == 0:
        result.errors.append(ValidationIssue(
            f"Question {question.num}: No correct answer marked. "
            "Add '<>' to one option.",
            question.line,
        ))
    elif correct > 1:
        result.errors.append(ValidationIssue(
            f"Question {question.num}: Multiple correct answers found ({correct}). "
            "Only one allowed.",
            question.line,
        ))


def _check_duplicates(question: Question, result: ValidationResult) -> None:
    # 대소문자/문장부호는 구분 (의도된 동작)
    seen: set[str] = set()
    for option in question.options:
        value = comparable_text(option)
        if value in seen:
            result.errors.append(ValidationIssue(
                f'Question {question.num}: Duplicate options found: "{value}".',
                option.line,
            ))
        else:
            seen.add(value)


def _check_empty_options(question: Question, result: ValidationResult) -> None:
    for idx, option in enumerate(question.options, start=1):
        if not (option.text or "").strip():
            result.warnings.append(ValidationIssue(
                f"Question {question.num}, Option {idx}: Option text is empty.",
                option.line,
            ))


def format_report(model: QuizModel, result: ValidationResult) -> str:
    """검사 결과 요약 텍스트."""
    lines = [
        "Validation Results:",
        "",
        f"Questions found: {len(model.questions)}",
        f"Total images: {len(model.images)}",
        "",
    ]
    if result.errors:
        lines.append(f"ERRORS ({len(result.errors)}):")
        lines.extend(f"  - {issue.message}" for issue in result.errors)
        lines.append("")
    if result.warnings:
        lines.append(f"WARNINGS ({len(result.warnings)}):")
        lines.extend(f"  - {issue.message}" for issue in result.warnings)
        lines.append("")

    if not result.is_valid:
        lines.append("Validation Failed. Please fix errors before exporting.")
    elif result.warnings:
        lines.append("Passed with Warnings")
    else:
        lines.append("Passed")
    return "\n".join(lines)


def comparable_text(option: Option) -> str:
    """중복 비교용 평문. choice_text가 없으면 HTML에서 태그를 제거해 만듦."""
    if option.choice_text is not None:
        return option.choice_text
    plain = html.unescape(_TAG_RE.sub("", option.text or ""))
    return " ".join(plain.split())
