# codeforge/core/optimizer.py
"""
Conservative source rewrites applied after generation.

Each pass takes code and returns (code, changes). A change is a dict:
{"type", "description", "before", "after"}. Passes that cannot prove a rewrite
is safe only report a suggestion and leave the code untouched.
"""
import re
from typing import Any, Dict, List, Optional, Tuple

Change = Dict[str, str]

DEFAULT_FLAGS = {
    "remove_unused_imports": True,
    "optimize_loops": True,
    "apply_best_practices": True,
    "consolidate_duplicates": True,
}

# names that are used implicitly by JSX or tooling
IMPLICIT_IMPORTS = {"React"}

IMPORT_LINE_RE = re.compile(
    r"^import\s+(?!type\b)(?P<clause>[^'\"]+?)\s+from\s+(?P<src>['\"][^'\"]+['\"]);?[ \t]*$",
    re.MULTILINE,
)
FOREACH_RE = re.compile(r"(?P<array>[A-Za-z_$][\w$.]*)\.forEach\(\s*\(?\s*(?P<item>[A-Za-z_$][\w$]*)\s*\)?\s*=>\s*\{")
FOR_LENGTH_RE = re.compile(
    r"for\s*\(\s*let\s+(\w+)\s*=\s*0\s*;\s*\1\s*<\s*([\w$.]+)\.length\s*;\s*\1\+\+\s*\)"
)
LITERAL_RE = re.compile(r"""(['"`])(?:\\.|(?!\1)[^\\\n])*\1""")


def _change(kind: str, description: str, before: str = "", after: str = "") -> Change:
    return {"type": kind, "description": description, "before": before, "after": after}


def _is_used(name: str, body: str) -> bool:
    return re.search(rf"(?<![\w$]){re.escape(name)}(?![\w$])", body) is not None


def _parse_clause(clause: str) -> Tuple[Optional[str], Optional[str], List[Tuple[str, str]]]:
    """-> (default import, namespace import, [(imported spec, local name)])"""
    default = namespace = None
    named: List[Tuple[str, str]] = []
    braces = re.search(r"\{([^}]*)\}", clause)
    if braces:
        for spec in braces.group(1).split(","):
            spec = spec.strip()
            if not spec:
                continue
            local = spec.split(" as ")[-1].strip()
            local = re.sub(r"^type\s+", "", local)
            named.append((spec, local))
    rest = re.sub(r"\{[^}]*\}", "", clause).strip().strip(",").strip()
    ns = re.match(r"\*\s+as\s+([\w$]+)", rest)
    if ns:
        namespace = ns.group(1)
    elif rest:
        default = rest.split(",")[0].strip() or None
    return default, namespace, named


def remove_unused_imports(code: str) -> Tuple[str, List[Change]]:
    changes: List[Change] = []
    body = IMPORT_LINE_RE.sub("", code)

    def _rewrite(m: re.Match) -> str:
        line, clause, src = m.group(0), m.group("clause"), m.group("src")
        default, namespace, named = _parse_clause(clause)
        keep_default = default and (default in IMPLICIT_IMPORTS or _is_used(default, body))
        keep_ns = namespace and (namespace in IMPLICIT_IMPORTS or _is_used(namespace, body))
        kept_named = [spec for spec, local in named if local in IMPLICIT_IMPORTS or _is_used(local, body)]
        dropped = [local for spec, local in named if spec not in kept_named]
        if default and not keep_default:
            dropped.insert(0, default)
        if namespace and not keep_ns:
            dropped.insert(0, namespace)
        if not dropped:
            return line

        parts = []
        if keep_default:
            parts.append(default)
        if keep_ns:
            parts.append(f"* as {namespace}")
        if kept_named:
            parts.append("{ " + ", ".join(kept_named) + " }")
        new_line = f"import {', '.join(parts)} from {src};" if parts else ""
        changes.append(_change("REMOVE_UNUSED_IMPORT", f"Removed unused import(s): {', '.join(dropped)}",
                               line, new_line))
        return new_line

    out = IMPORT_LINE_RE.sub(_rewrite, code)
    if changes:
        out = re.sub(r"\n{3,}", "\n\n", out).lstrip("\n")
    return out, changes


def _matching_brace(code: str, open_idx: int) -> Optional[int]:
    depth = 0
    for i in range(open_idx, len(code)):
        if code[i] == "{":
            depth += 1
        elif code[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def optimize_loops(code: str) -> Tuple[str, List[Change]]:
    """
    forEach callbacks become for...of when the callback body has no `return`
    and its closing `})` can be located; for-loops get a cached length.
    """
    changes: List[Change] = []
    pos = 0
    while True:
        m = FOREACH_RE.search(code, pos)
        if not m:
            break
        open_idx = m.end() - 1
        close_idx = _matching_brace(code, open_idx)
        tail = re.match(r"\}\s*\)\s*;?", code[close_idx:]) if close_idx is not None else None
        inner = code[open_idx + 1:close_idx] if close_idx is not None else ""
        if tail is None or re.search(r"\breturn\b", inner):
            pos = m.end()
            continue
        head = f"for (const {m.group('item')} of {m.group('array')}) {{"
        code = code[:m.start()] + head + inner + "}" + code[close_idx + tail.end():]
        changes.append(_change("OPTIMIZE_LOOP", "Converted .forEach to for...of", m.group(0), head))
        pos = m.start() + len(head)

    def _cache_len(m: re.Match) -> str:
        it, arr = m.group(1), m.group(2)
        after = f"for (let {it} = 0, {it}Len = {arr}.length; {it} < {it}Len; {it}++)"
        changes.append(_change("OPTIMIZE_LOOP", "Cached array length in for loop", m.group(0), after))
        return after

    code = FOR_LENGTH_RE.sub(_cache_len, code)
    return code, changes


def apply_best_practices(code: str) -> Tuple[str, List[Change]]:
    changes: List[Change] = []
    if re.search(r"\bvar\s+", code):
        code = re.sub(r"\bvar(\s+)", r"let\1", code)
        changes.append(_change("BEST_PRACTICE", "Replaced var with let", "var", "let"))
    if ".then(" in code and "async " not in code:
        changes.append(_change("BEST_PRACTICE", "Consider async/await instead of .then() chains", ".then()", "await"))
    return code, changes


def consolidate_duplicates(code: str) -> Tuple[str, List[Change]]:
    """Report long string literals repeated more than twice; code is not modified."""
    counts: Dict[str, int] = {}
    for m in LITERAL_RE.finditer(code):
        literal = m.group(0)
        if len(literal) > 20:
            counts[literal] = counts.get(literal, 0) + 1
    changes = [
        _change("CONSOLIDATE_DUPLICATE", f"String repeated {n} times, candidate for a constant", lit,
                "extract to constant")
        for lit, n in counts.items() if n > 2
    ]
    return code, changes


PASSES = [
    ("remove_unused_imports", remove_unused_imports),
    ("optimize_loops", optimize_loops),
    ("apply_best_practices", apply_best_practices),
    ("consolidate_duplicates", consolidate_duplicates),
]


def optimize_code(code: str, flags: Optional[Dict[str, bool]] = None) -> Dict[str, Any]:
    """Run the enabled passes in order. Returns {"optimized_code", "changes"}."""
    enabled = dict(DEFAULT_FLAGS, **(flags or {}))
    changes: List[Change] = []
    for name, fn in PASSES:
        if enabled.get(name):
            code, found = fn(code)
            changes.extend(found)
    return {"optimized_code": code, "changes": changes}


class HeuristicCodeOptimizer:
    async def optimize(self, code: str, flags: Optional[Dict[str, bool]] = None) -> Dict[str, Any]:
        return optimize_code(code, flags)
