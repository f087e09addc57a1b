"""퀴즈 마크업 문서(.docx) 검사/내보내기/미리보기 프로그램 진입점."""

import argparse
import logging
import sys
from pathlib import Path

# 프로젝트 루트를 sys.path에 추가
PROJECT_ROOT = Path(__file__).parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

logger = logging.getLogger(__name__)


def setup_logging():
    """로깅 설정."""
    from utils.config import LOG_LEVEL

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doc-quiz",
        description="태그 마크업으로 작성한 .docx 퀴즈 문서를 검사하고 내보냅니다.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_validate = sub.add_parser("validate", help="문서를 파싱하고 작성 규칙 검사")
    p_validate.add_argument("docx", help="입력 .docx 파일")

    p_export = sub.add_parser("export", help="quiz.json + images/ ZIP으로 내보내기")
    p_export.add_argument("docx", help="입력 .docx 파일")
    p_export.add_argument("-o", "--output", help="출력 ZIP 경로 (기본: OUTPUT_DIR/<문서명>.zip)")

    p_preview = sub.add_parser("preview", help="미리보기 HTML 페이지 생성")
    p_preview.add_argument("docx", help="입력 .docx 파일")
    p_preview.add_argument("-o", "--output", help="출력 HTML 경로 (기본: OUTPUT_DIR/<문서명>.html)")
    p_preview.add_argument("--question", default="all", help='문제 ID (예: q1, 기본 "all")')

    return parser


def _load_model(docx_path: str):
    from core.docx_reader import read_docx
    from core.quiz_parser import parse_document

    return parse_document(read_docx(docx_path))


def cmd_validate(args) -> int:
    from core.quiz_validator import format_report, validate_model

    model = _load_model(args.docx)
    result = validate_model(model)
    print(format_report(model, result))
    return 0 if result.is_valid else 1


def cmd_export(args) -> int:
    from core.quiz_exporter import export_quiz, write_bundle
    from core.quiz_validator import format_report, validate_model
    from utils.config import get_output_dir

    model = _load_model(args.docx)
    result = validate_model(model)
    if not result.is_valid:
        print(format_report(model, result))
        return 1

    output = Path(args.output) if args.output else get_output_dir() / f"{Path(args.docx).stem}.zip"
    path = write_bundle(export_quiz(model, result), output)
    print(f"Export Successful: {path} ({model.question_count} questions, {len(model.images)} images)")
    return 0


def cmd_preview(args) -> int:
    from core.preview import render_preview_page
    from utils.config import get_output_dir

    model = _load_model(args.docx)
    if args.question != "all" and model.find_question(args.question) is None:
        raise ValueError(f"문제를 찾을 수 없습니다: {args.question}")

    output = Path(args.output) if args.output else get_output_dir() / f"{Path(args.docx).stem}.html"
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(render_preview_page(model, args.question), encoding="utf-8")
    print(f"Preview written: {output}")
    return 0


COMMANDS = {
    "validate": cmd_validate,
    "export": cmd_export,
    "preview": cmd_preview,
}


def main(argv=None) -> int:
    setup_logging()
    args = build_arg_parser().parse_args(argv)

    from core.quiz_parser import QuizParseError

    try:
        return COMMANDS[args.command](args)
    except QuizParseError as e:
        logger.error("문서 구조 오류 (line %d): %s", e.line, e)
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (FileNotFoundError, ValueError) as e:
        logger.error("처리 실패: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
