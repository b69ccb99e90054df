"""Shared pytest fixtures for the tag cloud tests."""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture
def sample_text():
    return "The cat sat on the mat.\nThe dog -- and the CAT -- sat too!\n"


@pytest.fixture
def text_file(tmp_path, sample_text):
    path = tmp_path / "sample.txt"
    path.write_text(sample_text, encoding="utf-8")
    return path
