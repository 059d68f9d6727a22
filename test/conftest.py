"""
Test configuration for Ember parser tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import EmberGrammar


@pytest.fixture(scope="session")
def shared_grammar():
  """Grammar construction is the slow part; tests only read from it"""
  return EmberGrammar()
