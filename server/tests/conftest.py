import sys
from pathlib import Path

# Ensure the codeforge package under server/ is importable when running tests
SERVER_PATH = Path(__file__).resolve().parents[1]
if str(SERVER_PATH) not in sys.path:
    sys.path.insert(0, str(SERVER_PATH))

import pytest

from codeforge.models import GenerationRequest
from codeforge.utils.config import PipelineConfig


GREETING_TEXT = "```component:Greeting:tsx:src/Greeting.tsx\nexport const Greeting = () => <div>Hi</div>;\n```"


class FakeRawGenerator:
    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.text


class FakeMultiGenerator:
    def __init__(self, output=None, error=None):
        self.output = output
        self.error = error
        self.descriptions = []

    async def generate(self, description):
        self.descriptions.append(description)
        if self.error:
            raise self.error
        return self.output


class FakeAnalyzer:
    def __init__(self, analysis=None, error=None):
        self.analysis = analysis
        self.error = error
        self.calls = 0

    async def analyze(self, prompt, context=None):
        self.calls += 1
        if self.error:
            raise self.error
        return self.analysis


class Exploding:
    """Stands in for any collaborator; every call raises."""

    async def validate(self, *args, **kwargs):
        raise RuntimeError("validator down")

    async def analyze(self, *args, **kwargs):
        raise RuntimeError("analyzer down")

    async def optimize(self, *args, **kwargs):
        raise RuntimeError("optimizer down")

    async def search(self, *args, **kwargs):
        raise RuntimeError("templates down")

    async def generate(self, *args, **kwargs):
        raise RuntimeError("generator down")


@pytest.fixture
def make_request():
    def _make(prompt="Create a simple button component", **options):
        return GenerationRequest(prompt=prompt, options=options)
    return _make


@pytest.fixture
def config():
    return PipelineConfig(gate_concurrency=2, cache_ttl=60)
