"""퀴즈 미리보기 HTML 생성 모듈.

문제별 HTML 조각을 만들고, images/... 경로를 data URI로 바꿔
외부 파일 없이 열 수 있는 미리보기 페이지를 만듭니다.
수식($...$)은 페이지에서 MathJax로 렌더링됩니다.
"""

from __future__ import annotations

import base64
import re
from typing import Optional

from models.quiz_model import Question, QuizModel
from core.html_renderer import MIME_EXTENSIONS, escape_html
from utils.config import MATHJAX_URL

_IMAGE_SRC_RE = re.compile(r'src\s*=\s*"(images/[^"]+)"')

# 확장자 → MIME (MIME_EXTENSIONS의 역방향)
_EXTENSION_MIME = {ext: mime for mime, ext in MIME_EXTENSIONS.items()}

_PAGE_STYLE = """
body { font-family: Arial, sans-serif; margin: 16px; color: #1d2939; }
.question { border: 1px solid #e4e7ec; border-radius: 8px; padding: 12px 16px; margin-bottom: 16px; }
.q-header { display: flex; justify-content: space-between; margin-bottom: 8px; }
.q-title { font-weight: bold; }
.q-id { color: #98a2b3; font-size: 12px; }
.options li.is-correct { color: #027a48; font-weight: bold; }
.q-section-title { font-weight: bold; margin-top: 8px; }
table { border-collapse: collapse; }
td { border: 1px solid #d0d5dd; padding: 4px 8px; }
"""


def build_image_data_uris(model: QuizModel) -> dict[str, str]:
    """images/<파일명> → data URI 매핑."""
    uris = {}
    for filename, data in model.images.items():
        ext = filename.rsplit(".", 1)[-1].lower()
        mime = _EXTENSION_MIME.get(ext, "image/png")
        b64 = base64.b64encode(data).decode("ascii")
        uris[f"images/{filename}"] = f"data:{mime};base64,{b64}"
    return uris


def replace_image_sources(html: Optional[str], data_uris: dict[str, str]) -> str:
    """HTML 안의 src="images/..."를 data URI로 교체 (없는 이미지는 그대로)."""
    if not html:
        return ""

    def _repl(m: re.Match) -> str:
        path = m.group(1)
        return f'src="{data_uris.get(path, path)}"'

    return _IMAGE_SRC_RE.sub(_repl, html)


def preview_question_list(model: QuizModel) -> list[dict]:
    """미리보기 선택 목록 [{value, label}]."""
    return [
        {"value": q.id, "label": f"Question {q.num} ({q.id})"}
        for q in model.questions
    ]


def _render_question(question: Question, data_uris: dict[str, str]) -> str:
    content = replace_image_sources(question.content, data_uris)
    descriptions = replace_image_sources(question.descriptions, data_uris)

    option_items = []
    for o in question.options:
        css = ' class="is-correct"' if o.is_correct else ""
        option_items.append(f"<li{css}>{replace_image_sources(o.text, data_uris)}</li>")
    options = "".join(option_items)

    parts = [
        '<div class="question">',
        '<div class="q-header">',
        f'<div class="q-title">Question {question.num}</div>',
        f'<div class="q-id">{escape_html(question.id)}</div>',
        "</div>",
        f'<div class="q-content">{content}</div>',
        f'<ol class="options" type="A">{options}</ol>',
    ]
    if descriptions:
        parts.append(
            '<div class="q-content q-section q-descriptions">'
            '<div class="q-section-title">Descriptions</div>'
            f"{descriptions}</div>"
        )
    parts.append("</div>")
    return "".join(parts)


def render_preview(model: QuizModel, question_id: str = "all") -> str:
    """문제별 미리보기 HTML 조각.

    Args:
        model: 파싱된 퀴즈
        question_id: "all" 또는 특정 문제 ID (예: "q1")
    """
    data_uris = build_image_data_uris(model)
    if question_id == "all":
        questions = model.questions
    else:
        questions = tuple(q for q in model.questions if q.id == question_id)
    return "".join(_render_question(q, data_uris) for q in questions)


def render_preview_page(model: QuizModel, question_id: str = "all") -> str:
    """MathJax를 불러오는 독립 실행형 미리보기 페이지."""
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        "<title>Quiz Preview</title>"
        f"<style>{_PAGE_STYLE}</style>"
        "<script>window.MathJax = {tex: {inlineMath: [['$', '$']]}};</script>"
        f'<script async src="{escape_html(MATHJAX_URL)}"></script>'
        "</head><body>"
        f"{render_preview(model, question_id)}"
        "</body></html>\n"
    )
