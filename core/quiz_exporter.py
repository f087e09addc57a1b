"""검증된 QuizModel을 quiz.json + 이미지 묶음으로 내보내는 모듈.

JSON 형태는 고정되어 있으며, 같은 모델을 두 번 직렬화하면
generated_at 필드를 제외하고 바이트 단위로 동일합니다.
"""

from __future__ import annotations

import json
import logging
import zipfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from models.quiz_model import QuizModel
from core.quiz_validator import ValidationResult
from utils.config import EXPORT_JSON_INDENT, MAX_EXPORT_SIZE_MB

logger = logging.getLogger(__name__)

QUIZ_JSON_NAME = "quiz.json"
IMAGES_PREFIX = "images/"


@dataclass
class ExportBundle:
    """내보내기 결과. assets는 모델의 이미지 매핑 그대로 (파일명 → 바이트)."""
    quiz_json: str
    assets: dict[str, bytes] = field(default_factory=dict)

    def archive_entries(self) -> list[tuple[str, bytes]]:
        """묶음 안의 (경로, 내용) 목록."""
        entries = [(QUIZ_JSON_NAME, self.quiz_json.encode("utf-8"))]
        for filename, data in self.assets.items():
            entries.append((IMAGES_PREFIX + filename, data))
        return entries


def _timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_export_dict(model: QuizModel, generated_at: Optional[str] = None) -> dict:
    """QuizModel → quiz.json 구조 (dict). 모델은 변경하지 않음."""
    return {
        "metadata": {
            "generated_at": generated_at or _timestamp(),
            "quiz_type": model.quiz_type.value,
            "question_count": len(model.questions),
        },
        "questions": [
            {
                "id": q.id,
                "content": q.content,
                "descriptions": q.descriptions,
                "options": [
                    {"content": o.text, "is_correct": o.is_correct}
                    for o in q.options
                ],
            }
            for q in model.questions
        ],
    }


def serialize_quiz(model: QuizModel, generated_at: Optional[str] = None) -> str:
    """quiz.json 문자열 생성."""
    return json.dumps(
        build_export_dict(model, generated_at),
        ensure_ascii=False,
        indent=EXPORT_JSON_INDENT,
    )


def export_quiz(
    model: QuizModel,
    validation: Optional[ValidationResult] = None,
    generated_at: Optional[str] = None,
) -> ExportBundle:
    """QuizModel을 내보내기 묶음으로 변환.

    모델은 호출 전에 검증되어 있어야 합니다. validation을 넘기면
    오류가 있는 결과는 거부합니다.

    Raises:
        ValueError: validation에 오류가 있을 때
    """
    if validation is not None and not validation.is_valid:
        raise ValueError(
            f"Validation failed ({len(validation.errors)} errors). "
            "Fix errors before exporting."
        )
    return ExportBundle(
        quiz_json=serialize_quiz(model, generated_at),
        assets=dict(model.images),
    )


def write_bundle(bundle: ExportBundle, output_path: str | Path) -> Path:
    """묶음을 ZIP 파일로 저장.

    Raises:
        ValueError: 크기 제한(MAX_EXPORT_SIZE_MB) 초과
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(str(output_path), "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in bundle.archive_entries():
            zf.writestr(name, data)

    size_mb = output_path.stat().st_size / (1024 * 1024)
    if size_mb > MAX_EXPORT_SIZE_MB:
        output_path.unlink()
        raise ValueError(
            f"ZIP too large ({size_mb:.2f}MB). Max {MAX_EXPORT_SIZE_MB:g}MB."
        )

    logger.info("내보내기 저장 완료: %s (%.2fMB)", output_path, size_mb)
    return output_path
