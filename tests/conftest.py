"""
Pytest configuration and shared fixtures
"""

import pytest
import os
import sys
import tempfile
import shutil

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from viewcompiler.compiler import ViewCompiler

EXAMPLES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'examples')


@pytest.fixture
def temp_dir():
    """Create temporary directory for test files"""
    dirpath = tempfile.mkdtemp()
    yield dirpath
    shutil.rmtree(dirpath)


@pytest.fixture
def compiler():
    """Compiler with the default javascript and python engines"""
    return ViewCompiler()


@pytest.fixture
def collect():
    """Emitter that records (key, value) pairs in a list"""
    class Collector:
        def __init__(self):
            self.rows = []

        def __call__(self, key, value):
            self.rows.append((key, value))

    return Collector()


@pytest.fixture
def sample_documents():
    """Blog-style documents with nested containers"""
    return [
        {"_id": "post-1", "type": "post", "author": "ada", "year": 2021,
         "tags": ["engines", "math"], "meta": {"ratings": [5, 4]}},
        {"_id": "post-2", "type": "post", "author": "ada", "year": 2022,
         "tags": ["looms"], "meta": {"ratings": []}},
        {"_id": "post-3", "type": "post", "author": "grace", "year": 2021,
         "tags": ["compilers", "math"], "meta": {"ratings": [3]}},
        {"_id": "comment-1", "type": "comment", "post": "post-1"},
    ]


@pytest.fixture
def documents_file():
    """Path to the example JSON-lines documents"""
    return os.path.join(EXAMPLES_DIR, 'documents.jsonl')


@pytest.fixture
def word_count_design():
    """Path to the javascript word count design"""
    return os.path.join(EXAMPLES_DIR, 'designs', 'word_count.json')


@pytest.fixture
def by_author_design():
    """Path to the javascript by-author design"""
    return os.path.join(EXAMPLES_DIR, 'designs', 'by_author.json')


@pytest.fixture
def tag_counts_design():
    """Path to the python tag count design"""
    return os.path.join(EXAMPLES_DIR, 'designs', 'tag_counts.json')
