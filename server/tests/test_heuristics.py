import pytest

from codeforge.core.optimizer import (
    HeuristicCodeOptimizer,
    apply_best_practices,
    consolidate_duplicates,
    optimize_code,
    optimize_loops,
    remove_unused_imports,
)
from codeforge.core.quality import HeuristicQualityAnalyzer, analyze_quality, grade_for
from codeforge.core.validator import HeuristicValidator, validate_code


# ---- validator ----
def test_valid_typed_component():
    code = "export const Hello = ({ name }: { name: string }): JSX.Element => <p>{name}</p>;\n"
    report = validate_code(code, "typescript")
    assert report["is_valid"] is True
    assert report["score"] == 100
    assert report["issues"] == []


def test_empty_source_is_invalid():
    report = validate_code("   ", "typescript")
    assert report["is_valid"] is False
    assert report["score"] == 80


def test_unclosed_brace_is_error():
    report = validate_code("function f(): void {\n  if (x) {\n}\n", "typescript")
    assert report["is_valid"] is False
    assert any("Unclosed brace" in i["message"] for i in report["issues"])


def test_delimiters_inside_strings_and_comments_are_ignored():
    code = "const a: string = '{ ( [';\n// }\nconst b: string = \"]\";\n"
    assert validate_code(code, "typescript")["is_valid"] is True


def test_any_and_missing_return_type_are_warnings():
    code = "function load(x: any) {\n  return x;\n}\n"
    report = validate_code(code, "typescript")
    assert report["is_valid"] is True
    assert report["score"] == 90
    assert len(report["issues"]) == 2


def test_type_checks_skipped_for_plain_javascript():
    assert validate_code("function load(x) {\n  return x;\n}\n", "javascript")["score"] == 100


def test_many_relative_imports_warn():
    code = "\n".join(f"import a{i}: number from './a{i}';" for i in range(6))
    report = validate_code(code, "typescript")
    assert any("relative imports" in i["message"] for i in report["issues"])


def test_score_floor_is_zero():
    code = "{{{{{{ (((((( [[[[[[ : any"
    assert validate_code(code, "typescript")["score"] >= 0


@pytest.mark.asyncio
async def test_heuristic_validator_collaborator():
    report = await HeuristicValidator().validate("const x: number = 1;", "typescript")
    assert report["is_valid"]


# ---- quality ----
@pytest.mark.parametrize("score,grade", [(100, "A+"), (95, "A+"), (90, "A"), (80, "B"), (70, "C"), (60, "D"), (10, "F")])
def test_grades(score, grade):
    assert grade_for(score) == grade


def test_quality_of_clean_code_is_high():
    code = "// Greeting component\nexport const Greeting = ({ name }: { name: string }) => <p>Hello {name}</p>;\n"
    report = analyze_quality(code)
    assert report["overall_score"] >= 90
    assert set(report["metrics"]) == {"complexity", "maintainability", "reliability",
                                      "security", "documentation", "type_safety"}


def test_quality_penalises_eval_and_any():
    clean = analyze_quality("// x\nconst a: number = 1;\n")["overall_score"]
    risky = analyze_quality("// x\nconst a: any = eval('1');\n")
    assert risky["overall_score"] < clean
    assert any("eval" in i for i in risky["issues"])


def test_quality_of_empty_code_is_zero():
    report = analyze_quality("")
    assert report["overall_score"] == 0
    assert report["grade"] == "F"


@pytest.mark.asyncio
async def test_quality_collaborator():
    report = await HeuristicQualityAnalyzer().analyze("// c\nconst a: number = 1;\n")
    assert 0 <= report["overall_score"] <= 100


# ---- optimizer ----
def test_remove_unused_named_import():
    code = (
        "import React, { useState, useEffect } from 'react';\n"
        "import { unused } from 'lodash';\n"
        "\n"
        "export const C = () => { const [a] = useState(0); return <p>{a}</p>; };\n"
    )
    out, changes = remove_unused_imports(code)
    assert "import React, { useState } from 'react';" in out
    assert "lodash" not in out
    assert len(changes) == 2
    assert all(c["type"] == "REMOVE_UNUSED_IMPORT" for c in changes)


def test_side_effect_and_react_imports_are_kept():
    code = "import React from 'react';\nimport './styles.css';\nexport const C = () => null;\n"
    out, changes = remove_unused_imports(code)
    assert out == code
    assert changes == []


def test_foreach_becomes_for_of():
    code = "items.forEach((item) => {\n  console.log(item);\n});\n"
    out, changes = optimize_loops(code)
    assert out == "for (const item of items) {\n  console.log(item);\n}\n"
    assert changes[0]["type"] == "OPTIMIZE_LOOP"


def test_foreach_with_return_is_left_alone():
    code = "items.forEach(item => {\n  if (!item) return;\n  use(item);\n});\n"
    out, changes = optimize_loops(code)
    assert out == code
    assert changes == []


def test_for_loop_length_is_cached():
    out, changes = optimize_loops("for (let i = 0; i < rows.length; i++) { sum += rows[i]; }")
    assert "iLen = rows.length" in out
    assert len(changes) == 1


def test_var_becomes_let():
    out, changes = apply_best_practices("var count = 0;\nvariable = 1;\n")
    assert out == "let count = 0;\nvariable = 1;\n"
    assert changes[0]["type"] == "BEST_PRACTICE"


def test_duplicate_literals_reported_not_rewritten():
    literal = "'a fairly long repeated message'"
    code = f"a({literal}); b({literal}); c({literal});"
    out, changes = consolidate_duplicates(code)
    assert out == code
    assert changes[0]["type"] == "CONSOLIDATE_DUPLICATE"


def test_flags_disable_passes():
    result = optimize_code("var a = 1;", {"apply_best_practices": False})
    assert result["optimized_code"] == "var a = 1;"
    assert result["changes"] == []


@pytest.mark.asyncio
async def test_optimizer_collaborator():
    result = await HeuristicCodeOptimizer().optimize("var a = 1;")
    assert result["optimized_code"] == "let a = 1;"
