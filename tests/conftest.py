"""
Make the src/ layout importable without installing the package, and share
deterministic tokenizers between test modules.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to PYTHONPATH
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from langchain_recall.memory.tokenizer import Tokenizer  # noqa: E402


@pytest.fixture
def char_tokenizer():
    """One token per character, so token counts are easy to reason about."""
    return Tokenizer("chars", len)
