import json
from unittest.mock import MagicMock

import pytest

from codeforge.core import extractor
from codeforge.core.aggregator import create_file
from codeforge.core.extractor import (
    STRATEGIES,
    derive_name,
    extract_files,
    extract_main_entity,
    from_generic_fences,
    from_json_payload,
    repair_generic_names,
)
from codeforge.models import FileType

from conftest import GREETING_TEXT


def _shape(files):
    return [(f.path, f.name, f.content) for f in files]


# ---- strategy 1: fenced header ----
def test_component_header_fence():
    files = extract_files(GREETING_TEXT)
    assert len(files) == 1
    assert files[0].name == "Greeting"
    assert files[0].path == "src/Greeting.tsx"
    assert files[0].filename == "Greeting.tsx"
    assert files[0].type == FileType.TSX
    assert files[0].content == "export const Greeting = () => <div>Hi</div>;"


def test_lang_path_header_fence():
    text = (
        "Here you go:\n"
        "```tsx:src/components/Card.tsx\n"
        "export function Card() { return <div className=\"card\" />; }\n"
        "```\n"
        "```css:src/styles/card.css\n"
        ".card { padding: 1rem; }\n"
        "```\n"
    )
    files = extract_files(text)
    assert [f.path for f in files] == ["src/components/Card.tsx", "src/styles/card.css"]
    assert files[0].name == "Card"
    assert files[1].type == FileType.CSS


def test_header_with_too_little_code_falls_through():
    files = extract_files("```component:X:tsx:src/X.tsx\nhi\n```")
    assert len(files) == 1
    assert files[0].path == "src/App.tsx"
    assert files[0].content == "hi"


# ---- strategy 2: path markers ----
def test_comment_path_markers():
    text = (
        "// src/components/Header.tsx\n"
        "import React from 'react';\n"
        "export const Header = () => <header className=\"p-4\">Site header</header>;\n"
        "// src/components/Footer.tsx\n"
        "import React from 'react';\n"
        "export const Footer = () => <footer className=\"p-4\">Site footer</footer>;\n"
    )
    files = extract_files(text)
    assert [f.path for f in files] == ["src/components/Header.tsx", "src/components/Footer.tsx"]
    assert [f.name for f in files] == ["Header", "Footer"]
    assert files[0].metadata.dependencies == ["react"]
    assert "Footer" not in files[0].content


def test_file_prefixed_marker_and_fences_are_stripped():
    text = (
        "// File: src/server.ts\n"
        "```ts\n"
        "import express from 'express';\n"
        "const app = express();\n"
        "app.listen(3000, () => console.log('listening'));\n"
        "```\n"
    )
    files = extract_files(text)
    assert len(files) == 1
    assert files[0].path == "src/server.ts"
    assert "```" not in files[0].content


def test_short_marker_segments_are_dropped():
    text = "// src/a.ts\nconst a = 1;\n// src/b.ts\nconst b = 2;\n"
    files = extract_files(text)
    assert len(files) == 1
    assert files[0].path == "src/App.tsx"


# ---- strategy 3: generic fences ----
def test_generic_fence_defaults_to_components_folder():
    text = (
        "```tsx\n"
        "export default function TodoList() {\n"
        "  return <ul className=\"space-y-2\"><li>First</li></ul>;\n"
        "}\n"
        "```"
    )
    files = extract_files(text)
    assert len(files) == 1
    assert files[0].path == "src/components/TodoList.tsx"
    assert files[0].name == "TodoList"


def test_generic_fence_with_path_comment_first_line():
    text = (
        "```tsx\n"
        "// src/pages/Home.tsx\n"
        "export default function Home() {\n"
        "  return <main className=\"container\">Welcome home</main>;\n"
        "}\n"
        "```"
    )
    files = from_generic_fences(text)
    assert [f.path for f in files] == ["src/pages/Home.tsx"]
    assert not files[0].content.startswith("//")


def test_generic_fence_short_code_is_rejected():
    assert from_generic_fences("```js\nx()\n```") is None


# ---- strategy 4: declarations ----
def test_declaration_boundaries_split_files():
    text = (
        "import React from 'react';\n"
        "\n"
        "export function TodoItem({ title }: { title: string }) {\n"
        "  return <li className=\"todo-item\">{title}</li>;\n"
        "}\n"
        "\n"
        "export default function TodoList() {\n"
        "  return <ul className=\"todo-list\"><TodoItem title=\"a\" /></ul>;\n"
        "}\n"
    )
    files = extract_files(text)
    assert [f.path for f in files] == ["src/components/TodoItem.tsx", "src/components/TodoList.tsx"]
    assert files[0].content.startswith("import React")
    assert "TodoList()" not in files[0].content


def test_single_declaration_is_whole_text():
    text = (
        "import React from 'react';\n"
        "const Banner: React.FC = () => <div className=\"banner\">Sale</div>;\n"
        "export default Banner;\n"
    )
    files = extract_files(text)
    assert len(files) == 1
    assert files[0].path == "src/Banner.tsx"
    assert files[0].content.startswith("import React")


# ---- strategy 5: JSON ----
def test_json_payload_collections():
    payload = {
        "server": "import express from 'express';\nexport const server = express();",
        "controllers": [{"name": "userController", "content": "export const list = () => [];"}],
        "routes": [{"name": "users.ts", "path": "src/api/routes", "content": "export default [];"}],
    }
    files = extract_files(json.dumps(payload))
    assert [f.path for f in files] == [
        "src/server.ts",
        "src/controllers/userController.ts",
        "src/api/routes/users.ts",
    ]
    assert files[0].name == "Server"
    assert files[1].name == "userController"


def test_empty_json_yields_nothing_then_fallback():
    assert from_json_payload("{}") is None
    files = extract_files("{}")
    assert len(files) == 1
    assert files[0].path == "src/App.tsx"


def test_json_without_known_keys_is_ignored():
    assert from_json_payload(json.dumps({"foo": [1, 2]})) is None
    assert from_json_payload("[1, 2, 3]") is None
    assert from_json_payload("not json") is None


# ---- strategy 6 / liveness ----
@pytest.mark.parametrize("text", ["", "not code at all", "   \n\n  ", "```\n```"])
def test_extract_always_returns_a_file(text):
    files = extract_files(text)
    assert len(files) >= 1
    assert all(f.path for f in files)


def test_empty_text_gets_stub_component():
    files = extract_files("")
    assert files[0].name == "App"
    assert "export default function App" in files[0].content
    assert files[0].metadata.generator == "fallback"


def test_fallback_name_comes_from_prompt():
    files = extract_files("just some words", prompt="crie um botão azul")
    assert files[0].name == "Button"
    assert files[0].path == "src/Button.tsx"
    assert files[0].content == "just some words"


def test_extract_is_idempotent():
    text = GREETING_TEXT + "\n" + "```tsx:src/Other.tsx\nexport const Other = () => null;\n```"
    assert _shape(extract_files(text)) == _shape(extract_files(text))


# ---- cascade ----
def test_first_successful_strategy_short_circuits(monkeypatch):
    instrumented = [(name, MagicMock(wraps=fn)) for name, fn in STRATEGIES]
    fallback = MagicMock(wraps=extractor.fallback_file)
    monkeypatch.setattr(extractor, "fallback_file", fallback)

    files = extract_files(GREETING_TEXT, strategies=instrumented)

    assert len(files) == 1
    instrumented[0][1].assert_called_once_with(GREETING_TEXT)
    for _, later in instrumented[1:]:
        later.assert_not_called()
    fallback.assert_not_called()


def test_raising_strategy_is_skipped():
    def boom(text):
        raise ValueError("bad")

    good = MagicMock(return_value=[create_file("src/A.ts", "export const a = 1;")])
    files = extract_files("anything", strategies=[("boom", boom), ("good", good)])
    assert [f.path for f in files] == ["src/A.ts"]
    good.assert_called_once()


# ---- helpers ----
def test_derive_name_order():
    assert derive_name("src/components/Nav.tsx", "export default function Other() {}") == "Nav"
    assert derive_name(None, "export default function Main() {}\nexport function Side() {}") == "Main"
    assert derive_name(None, "export const useThing = () => 1") == "useThing"
    assert derive_name(None, "const Panel: React.FC = () => null") == "Panel"
    assert derive_name(None, "class Store {}") == "Store"
    assert derive_name(None, "nothing here") == "Component"


@pytest.mark.parametrize("prompt,entity", [
    ("Create a pricing table", "Table"),
    ("crie um botão azul", "Button"),
    ("Make a Kanban board", "Kanban"),
    ("make something nice", "Component"),
    ("", "Component"),
    ("A list of movies", "List"),
])
def test_extract_main_entity(prompt, entity):
    assert extract_main_entity(prompt) == entity


def test_repair_generic_names():
    content = (
        "import React from 'react';\n"
        "interface ComponentProps { label: string }\n"
        "export const Component: React.FC<ComponentProps> = ({ label }) => <button>{label}</button>;\n"
        "class Legacy extends React.Component {}\n"
    )
    files = [create_file("src/components/Component.tsx", content, name="Component"),
             create_file("src/components/Icon.tsx", "export const Icon = () => null;", name="Icon")]

    repair_generic_names(files, "Button")

    fixed, untouched = files
    assert fixed.path == "src/components/Button.tsx"
    assert fixed.filename == "Button.tsx"
    assert fixed.name == "Button"
    assert "ButtonProps" in fixed.content
    assert "export const Button: React.FC<ButtonProps>" in fixed.content
    assert "React.Component" in fixed.content
    assert fixed.metadata.auto_fixed_naming is True
    assert fixed.metadata.original_name == "Component"
    assert untouched.path == "src/components/Icon.tsx"
    assert untouched.metadata.auto_fixed_naming is False


def test_repair_skips_generic_entity():
    files = [create_file("src/Item.tsx", "export const Item = () => null;", name="Item")]
    repair_generic_names(files, "Component")
    assert files[0].name == "Item"


UNNAMED_FENCES = (
    "```tsx\n<div className=\"primary-button\">Click here to continue with checkout</div>\n```\n"
    "```tsx\n<div className=\"secondary-button\">Click here to go back to the cart page</div>\n```\n"
)


def test_unnamed_fences_get_distinct_paths():
    files = extract_files(UNNAMED_FENCES)
    assert [f.path for f in files] == ["src/components/Component.tsx", "src/components/Component2.tsx"]
    assert files[1].filename == "Component2.tsx"


def test_repair_keeps_numeric_suffix():
    files = extract_files(UNNAMED_FENCES)
    repair_generic_names(files, "Button")
    assert [f.path for f in files] == ["src/components/Button.tsx", "src/components/Button2.tsx"]
