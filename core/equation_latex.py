"""문서 수식 트리를 LaTeX 문자열로 변환하는 모듈.

워드프로세서의 수식 편집기는 수식을 텍스트/함수/기호 노드의 트리로 저장합니다.
이 모듈은 그 트리를 MathJax가 렌더링할 수 있는 LaTeX로 변환합니다.

주요 매핑:
  frac(a, b)        → \\frac{a}{b}
  root(x, n)        → \\sqrt[n]{x}
  root(x)           → \\sqrt{x}
  superscript(a)    → ^{a}
  subscript(a)      → _{a}
  기호 "alpha"       → \\alpha
  기호 "x"           → x
"""

from __future__ import annotations

import html
import re

from models.document_tree import (
    Equation,
    EquationFunction,
    EquationNode,
    EquationSymbol,
    Text,
)

_LEADING_BACKSLASHES = re.compile(r"^\\+")
_SINGLE_ALNUM = re.compile(r"^[A-Za-z0-9]$")
_ALPHA_ONLY = re.compile(r"^[A-Za-z]+$")


class EquationToLatexConverter:
    """수식 노드 트리 → LaTeX 변환기."""

    # 그리스 문자
    GREEK_LETTERS = frozenset({
        "alpha", "beta", "gamma", "delta", "epsilon", "zeta", "eta",
        "theta", "iota", "kappa", "lambda", "mu", "nu", "xi", "omicron",
        "pi", "rho", "sigma", "tau", "upsilon", "phi", "chi", "psi", "omega",
        "Gamma", "Delta", "Theta", "Lambda", "Xi", "Pi", "Sigma",
        "Upsilon", "Phi", "Psi", "Omega",
    })

    # 연산자/관계/화살표
    OPERATORS = frozenset({
        "pm", "mp", "times", "div", "cdot", "circ", "ast", "star",
        "oplus", "otimes",
        "leq", "geq", "neq", "approx", "sim", "equiv", "propto",
        "in", "notin", "subset", "subseteq", "supset", "supseteq",
        "cup", "cap",
        "forall", "exists", "neg", "land", "lor",
        "rightarrow", "leftarrow", "leftrightarrow",
        "Rightarrow", "Leftarrow", "Leftrightarrow",
        "infty",
        "sum", "prod", "int", "oint",
    })

    KNOWN_COMMANDS = GREEK_LETTERS | OPERATORS

    # 첨자 토큰
    SCRIPT_TOKENS = {
        "superscript": "^",
        "super": "^",
        "subscript": "_",
        "sub": "_",
    }

    def convert(self, equation: Equation) -> str:
        """수식 전체를 LaTeX로 변환 ($ 구분자 제외)."""
        return "".join(self.convert_node(child) for child in equation.children)

    def convert_node(self, node: EquationNode) -> str:
        """수식 노드 하나를 LaTeX로 변환."""
        if isinstance(node, Text):
            # 수식 안의 텍스트는 서식 없이 그대로
            return html.escape(node.text)
        if isinstance(node, EquationFunction):
            args = [self.convert_node(arg) for arg in node.arguments]
            return self.function_to_latex(node.code, args)
        if isinstance(node, EquationSymbol):
            if node.code:
                return self.symbol_to_latex(node.code)
            return html.escape(node.text)
        raise TypeError(f"Unsupported equation node: {type(node).__name__}")

    @staticmethod
    def function_to_latex(code: str, args: list[str]) -> str:
        """변환이 끝난 인자 목록에 함수 코드를 적용."""
        func = _LEADING_BACKSLASHES.sub("", (code or "").strip())

        if func == "frac":
            # 인자가 3개 이상인 비정상 분수도 허용: 첫 인자가 분자, 나머지는 분모
            numerator = args[0] if args else ""
            denominator = "".join(args[1:])
            return f"\\frac{{{numerator}}}{{{denominator}}}"
        if func == "root":
            # [base, index] 순서로 가정
            base = args[0] if args else ""
            if len(args) > 1 and args[1]:
                return f"\\sqrt[{args[1]}]{{{base}}}"
            return f"\\sqrt{{{base}}}"
        if func in ("super", "superscript"):
            return f"^{{{args[0] if args else ''}}}"
        if func in ("sub", "subscript"):
            return f"_{{{args[0] if args else ''}}}"

        if not func:
            return "".join(args)
        return f"\\{func}" + "".join(f"{{{arg}}}" for arg in args)

    def symbol_to_latex(self, code: str) -> str:
        """수식 기호 내부 코드를 LaTeX 토큰으로 변환."""
        token = _LEADING_BACKSLASHES.sub("", (code or "").strip())
        if not token:
            return ""

        if token in self.SCRIPT_TOKENS:
            return self.SCRIPT_TOKENS[token]

        # 한 글자 변수/숫자
        if _SINGLE_ALNUM.match(token):
            return token

        # 알 수 없는 영문 단어는 사용자가 입력한 변수명으로 취급
        if _ALPHA_ONLY.match(token) and token not in self.KNOWN_COMMANDS:
            return token

        return f"\\{token}"


# 모듈 레벨 싱글톤
_converter = EquationToLatexConverter()


def equation_to_latex(equation: Equation) -> str:
    """수식을 LaTeX 문자열로 변환 ($ 구분자 제외)."""
    return _converter.convert(equation)


def symbol_to_latex(code: str) -> str:
    """수식 기호 코드를 LaTeX로 변환 (예: "alpha" → "\\\\alpha")."""
    return _converter.symbol_to_latex(code)
