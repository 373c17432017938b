# codeforge/core/quality.py
import re
from typing import Any, Dict, List


def _max_nesting(code: str) -> int:
    depth = deepest = 0
    for ch in code:
        if ch == "{":
            depth += 1
            deepest = max(deepest, depth)
        elif ch == "}":
            depth = max(0, depth - 1)
    return deepest


def score_complexity(code: str, issues: List[str]) -> int:
    score = 100
    functions = len(re.findall(r"function\s+\w+|const\s+\w+\s*=\s*(?:async\s*)?\(", code))
    conditionals = len(re.findall(r"\b(?:if|else|switch|case|while|for)\b", code))
    nesting = _max_nesting(code)
    if functions > 20:
        score -= 10
        issues.append(f"High function count: {functions}")
    if nesting > 4:
        score -= 15
        issues.append(f"Deep nesting: {nesting} levels")
    if conditionals > 30:
        score -= 10
        issues.append(f"High conditional count: {conditionals}")
    return max(0, score)


def score_maintainability(code: str, issues: List[str]) -> int:
    score = 100
    lines = code.splitlines()
    if len(lines) > 300:
        score -= 15
        issues.append(f"Long file: {len(lines)} lines")
    long_lines = sum(1 for ln in lines if len(ln) > 120)
    if long_lines > 5:
        score -= 10
        issues.append(f"{long_lines} lines longer than 120 characters")
    magic = len(re.findall(r"(?<![\w.])\d{3,}(?![\w.])", code))
    if magic > 10:
        score -= 5
        issues.append(f"{magic} magic numbers")
    return max(0, score)


def score_reliability(code: str, issues: List[str]) -> int:
    score = 100
    try_blocks = len(re.findall(r"\btry\s*\{", code))
    async_fns = len(re.findall(r"\basync\s+function|\basync\s*\(|\basync\s+\w+\s*=>", code))
    if async_fns and not try_blocks:
        score -= 20
        issues.append("Async functions without error handling")
    guards = len(re.findall(r"[!=]==\s*(?:null|undefined)", code)) + code.count("?.")
    if guards < 5 and len(code) > 1000:
        score -= 10
        issues.append("Limited null/undefined checks")
    return max(0, score)


def score_security(code: str, issues: List[str]) -> int:
    score = 100
    if "eval(" in code:
        score -= 30
        issues.append("Use of eval()")
    if "innerHTML" in code or "dangerouslySetInnerHTML" in code:
        score -= 15
        issues.append("Direct HTML injection")
    if re.search(r"""(?i)(?:api[_-]?key|secret|password|token)\s*[:=]\s*['"][^'"]{6,}['"]""", code):
        score -= 25
        issues.append("Possible hard-coded secret")
    return max(0, score)


def score_documentation(code: str, issues: List[str]) -> int:
    score = 100
    jsdoc = len(re.findall(r"/\*\*[\s\S]*?\*/", code))
    functions = len(re.findall(r"\bfunction\b|const\s+\w+\s*=\s*(?:async\s*)?\(", code))
    if functions > 5 and not jsdoc:
        score -= 20
        issues.append("No JSDoc comments")
    head = code[:500]
    if "/*" not in head and "//" not in head:
        score -= 10
        issues.append("No header comment")
    return max(0, score)


def score_type_safety(code: str, issues: List[str]) -> int:
    score = 100
    any_types = len(re.findall(r":\s*any\b", code))
    if any_types:
        score -= any_types * 5
        issues.append(f"{any_types} 'any' type(s)")
    implicit = len(re.findall(r"\bfunction\s+\w+\s*\([^:)]+\)|const\s+\w+\s*=\s*\([^:)]+\)\s*=>", code))
    if implicit:
        score -= implicit * 3
        issues.append(f"{implicit} function(s) with implicit parameter types")
    return max(0, score)


DIMENSIONS = {
    "complexity": score_complexity,
    "maintainability": score_maintainability,
    "reliability": score_reliability,
    "security": score_security,
    "documentation": score_documentation,
    "type_safety": score_type_safety,
}


def grade_for(score: float) -> str:
    if score >= 95:
        return "A+"
    if score >= 85:
        return "A"
    if score >= 75:
        return "B"
    if score >= 65:
        return "C"
    if score >= 55:
        return "D"
    return "F"


def analyze_quality(code: str) -> Dict[str, Any]:
    """
    Returns {"overall_score", "grade", "metrics", "issues"}; overall_score is the
    rounded mean of the dimension scores. Empty code scores 0.
    """
    if not code or not code.strip():
        return {"overall_score": 0, "grade": "F", "metrics": {k: 0 for k in DIMENSIONS}, "issues": ["Empty source"]}
    issues: List[str] = []
    metrics = {name: fn(code, issues) for name, fn in DIMENSIONS.items()}
    overall = round(sum(metrics.values()) / len(metrics))
    return {"overall_score": overall, "grade": grade_for(overall), "metrics": metrics, "issues": issues}


class HeuristicQualityAnalyzer:
    async def analyze(self, code: str, language: str = "typescript") -> Dict[str, Any]:
        return analyze_quality(code)
