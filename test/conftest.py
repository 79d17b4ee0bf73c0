import os
import sys

import pytest

# Ensure the repository root is importable when the package is not installed
HERE = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(HERE, ".."))

if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from fsa_feedback.core.models import Automaton, EvaluationConfig


@pytest.fixture
def make_automaton():
    """Factory with the smallest valid automaton as defaults."""
    def _make(**overrides):
        data = {
            "states": ["q0"],
            "alphabet": ["a"],
            "transitions": [],
            "initial_state": "q0",
            "accept_states": ["q0"],
        }
        data.update(overrides)
        return Automaton(**data)
    return _make


@pytest.fixture
def dfa_config():
    return EvaluationConfig(expected_type="DFA")


@pytest.fixture
def ends_with_b():
    """Complete DFA over {a, b} accepting strings ending in b."""
    return Automaton(
        states=["q0", "q1"],
        alphabet=["a", "b"],
        transitions=["q0|a|q0", "q0|b|q1", "q1|a|q0", "q1|b|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
