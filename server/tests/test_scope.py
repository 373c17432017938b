import pytest

from codeforge.core.scope import classify_scope, find_terms
from codeforge.models import Complexity, ScopeType


def test_fullstack_phrase():
    scope = classify_scope("Create a full-stack todo app with React and Express")
    assert scope.type == ScopeType.FULLSTACK
    assert scope.complexity == Complexity.COMPLEX
    assert scope.expected_file_count.min >= 20
    assert scope.include_frontend and scope.include_backend
    assert "full-stack" in scope.matched_keywords


def test_single_button_component():
    scope = classify_scope("Create a simple button component")
    assert scope.type == ScopeType.SINGLE_COMPONENT
    assert (scope.expected_file_count.min, scope.expected_file_count.max) == (2, 4)
    assert scope.complexity == Complexity.MINIMAL
    assert not scope.include_backend


def test_frontend_and_backend_vocabulary_cooccur_is_fullstack():
    scope = classify_scope("Build a react component that calls an api")
    assert scope.type == ScopeType.FULLSTACK
    assert "react" in scope.matched_keywords and "api" in scope.matched_keywords


def test_backend_vocabulary_alone_is_backend():
    scope = classify_scope("Build a REST API for managing users with a postgres database")
    assert scope.type == ScopeType.BACKEND
    assert (scope.expected_file_count.min, scope.expected_file_count.max) == (8, 12)
    assert not scope.include_frontend
    assert scope.include_backend
    assert scope.include_database


def test_explicit_backend_only_beats_frontend_words():
    scope = classify_scope("Express server, api only, no frontend")
    assert scope.type == ScopeType.BACKEND
    assert "api only" in scope.matched_keywords


def test_landing_page_phrase():
    scope = classify_scope("Landing page for a coffee subscription")
    assert scope.type == ScopeType.LANDING_PAGE
    assert (scope.expected_file_count.min, scope.expected_file_count.max) == (10, 15)


def test_landing_sections_combination():
    scope = classify_scope("Marketing site with a hero, pricing and testimonials")
    assert scope.type == ScopeType.LANDING_PAGE


def test_single_section_word_is_not_landing():
    scope = classify_scope("A pricing calculator")
    assert scope.type != ScopeType.LANDING_PAGE


def test_dashboard_is_page():
    scope = classify_scope("Sales dashboard with charts")
    assert scope.type == ScopeType.PAGE
    assert (scope.expected_file_count.min, scope.expected_file_count.max) == (6, 12)


def test_component_phrasing_with_app_word_is_not_single_component():
    scope = classify_scope("Create a button for my app")
    assert scope.type == ScopeType.FEATURE


@pytest.mark.parametrize("intent,expected", [
    ("CREATE_COMPONENT", ScopeType.SINGLE_COMPONENT),
    ("CREATE_API", ScopeType.BACKEND),
    ("CREATE_APP", ScopeType.FULLSTACK),
    ("create_fullstack_app", ScopeType.FULLSTACK),
])
def test_upstream_intent_used_without_lexical_match(intent, expected):
    scope = classify_scope("Something for tracking my recipes", intent)
    assert scope.type == expected
    assert scope.matched_keywords == [f"intent:{intent.upper()}"]
    assert scope.confidence < 0.9


def test_lexical_match_wins_over_intent():
    scope = classify_scope("Sales dashboard", "CREATE_API")
    assert scope.type == ScopeType.PAGE


def test_default_feature():
    scope = classify_scope("Help me organise my recipes")
    assert scope.type == ScopeType.FEATURE
    assert scope.complexity == Complexity.MODERATE
    assert scope.confidence == 0.5
    assert scope.matched_keywords == []


def test_empty_text_is_total():
    assert classify_scope("").type == ScopeType.FEATURE
    assert classify_scope(None).type == ScopeType.FEATURE


def test_unknown_intent_falls_to_default():
    assert classify_scope("recipes", "DO_SOMETHING").type == ScopeType.FEATURE


@pytest.mark.parametrize("prompt", [
    "Create a full-stack todo app with React and Express",
    "Create a simple button component",
    "Landing page",
    "dashboard",
    "api",
    "a",
    "crie um componente de botão",
    "aplicação completa de vendas",
])
def test_range_is_ordered_and_type_known(prompt):
    scope = classify_scope(prompt)
    assert scope.expected_file_count.min <= scope.expected_file_count.max
    assert scope.type in set(ScopeType)
    assert 0.0 <= scope.confidence <= 1.0


def test_terms_match_whole_words_only():
    assert find_terms("build a guide", ["ui"]) == []
    assert find_terms("a rapid prototype", ["api"]) == []
    assert find_terms("my ui kit", ["ui"]) == ["ui"]


def test_deterministic():
    text = "Create a full stack blog with a database"
    assert classify_scope(text) == classify_scope(text)
