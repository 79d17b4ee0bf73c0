"""FSA Feedback: structural validation and live preview for authored finite-state automata."""

__version__ = "1.0.0"
