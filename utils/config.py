import os
from pathlib import Path
from dotenv import load_dotenv

# 프로젝트 루트 디렉토리
PROJECT_ROOT = Path(__file__).parent.parent

# .env 파일 로드
load_dotenv(PROJECT_ROOT / ".env")


def get_output_dir() -> Path:
    """기본 출력 디렉토리 반환."""
    output_dir = Path(os.getenv("OUTPUT_DIR", str(PROJECT_ROOT / "output")))
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


# 로그 레벨
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# quiz.json 들여쓰기
EXPORT_JSON_INDENT = int(os.getenv("EXPORT_JSON_INDENT", "2"))

# 내보내기 ZIP 최대 크기 (MB)
MAX_EXPORT_SIZE_MB = float(os.getenv("MAX_EXPORT_SIZE_MB", "50"))

# docx 이미지 크기(EMU) → 픽셀 변환 DPI
IMAGE_DPI = int(os.getenv("IMAGE_DPI", "96"))

# 미리보기 페이지 수식 렌더러
MATHJAX_URL = os.getenv(
    "MATHJAX_URL",
    "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js",
)
