# codeforge/core/validator.py
"""
Static validation of generated source.

Heuristic only: pattern checks over the text, no parser. Returns the shape the
validation gate consumes:

    {"is_valid": bool, "score": 0-100, "issues": [{"severity", "message"}, ...]}
"""
import re
from typing import Any, Dict, List

ERROR = "error"
WARNING = "warning"

MAX_RELATIVE_IMPORTS = 5
PAIRS = [("{", "}", "brace"), ("(", ")", "parenthesis"), ("[", "]", "bracket")]
TYPED_LANGUAGES = ("typescript", "tsx")

STRING_RE = re.compile(r"`(?:\\.|[^`\\])*`|'(?:\\.|[^'\\\n])*'|\"(?:\\.|[^\"\\\n])*\"")
COMMENT_RE = re.compile(r"/\*[\s\S]*?\*/|(?<![:\w])//[^\n]*")


def _strip_literals(code: str) -> str:
    """Remove comments and string literals so delimiter counts are not skewed."""
    return STRING_RE.sub('""', COMMENT_RE.sub("", code))


def _issue(severity: str, message: str) -> Dict[str, str]:
    return {"severity": severity, "message": message}


def check_syntax(code: str) -> List[Dict[str, str]]:
    issues = []
    bare = _strip_literals(code)
    for opener, closer, label in PAIRS:
        opened, closed = bare.count(opener), bare.count(closer)
        if opened > closed:
            issues.append(_issue(ERROR, f"Unclosed {label} ({opened - closed} open)"))
        elif closed > opened:
            issues.append(_issue(ERROR, f"Unmatched closing {label} ({closed - opened} extra)"))
    return issues


def check_types(code: str, language: str) -> List[Dict[str, str]]:
    if language not in TYPED_LANGUAGES:
        return []
    issues = []
    if ": " not in code:
        issues.append(_issue(WARNING, "Missing type annotations"))
    if re.search(r":\s*any\b", code):
        issues.append(_issue(WARNING, 'Avoid using "any" type. Use specific types instead.'))
    if re.search(r"\bfunction\s+\w+\s*\([^)]*\)(?!\s*:)\s*\{", code):
        issues.append(_issue(WARNING, "Function missing return type annotation"))
    return issues


def check_imports(code: str) -> List[Dict[str, str]]:
    relative = re.findall(r"""from\s+['"]\.{1,2}/""", code)
    if len(relative) > MAX_RELATIVE_IMPORTS:
        return [_issue(WARNING, f"{len(relative)} relative imports; consider an index module or path aliases")]
    return []


def validate_code(code: str, language: str = "typescript") -> Dict[str, Any]:
    """Run all checks. Score is 100 - (20 * errors + 5 * warnings), floored at 0."""
    if not code or not code.strip():
        issues = [_issue(ERROR, "Empty source")]
    else:
        issues = check_syntax(code) + check_types(code, language) + check_imports(code)
    errors = sum(1 for i in issues if i["severity"] == ERROR)
    warnings = len(issues) - errors
    return {
        "is_valid": errors == 0,
        "score": max(0, 100 - (errors * 20 + warnings * 5)),
        "issues": issues,
    }


class HeuristicValidator:
    """StaticValidator backed by validate_code."""

    async def validate(self, code: str, language: str = "typescript") -> Dict[str, Any]:
        return validate_code(code, language)
