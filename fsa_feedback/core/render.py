"""
Graphviz DOT rendering with highlight resolution.

Maps finding highlights onto concrete nodes and edges: state highlights
mark the node with that id, transition highlights mark every edge with the
same endpoints (and symbol, when given), alphabet symbol highlights mark
every edge carrying that symbol. Errors take precedence over warnings.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from .codec import Transition, decode_transition
from .models import Automaton
from .schemas import (
    AlphabetSymbolHighlight,
    FeedbackReport,
    StateHighlight,
    TransitionHighlight,
    ValidationError,
)

ERROR_STYLE = {"color": "#d32f2f", "fillcolor": "#ffebee", "penwidth": "3"}
WARNING_STYLE = {"color": "#ed6c02", "fillcolor": "#fff3e0", "penwidth": "3"}


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _attrs(attrs: Dict[str, str]) -> str:
    if not attrs:
        return ""
    return " [" + ", ".join(f"{k}={_quote(v)}" for k, v in attrs.items()) + "]"


class HighlightMap:
    """Resolved highlight marks: node id -> style, edge index -> style."""

    def __init__(self, states: Iterable[str], edges: List[Transition]):
        self.states = set(states)
        self.edges = edges
        self.nodes: Dict[str, Dict[str, str]] = {}
        self.edge_marks: Dict[int, Dict[str, str]] = {}

    def apply(self, finding: ValidationError, style: Dict[str, str]) -> None:
        h = finding.highlight
        if h is None:
            return

        if isinstance(h, StateHighlight):
            if h.state_id and h.state_id in self.states:
                self.nodes.setdefault(h.state_id, style)
            return

        for index in self._matching_edges(h):
            self.edge_marks.setdefault(index, style)

    def _matching_edges(self, h) -> List[int]:
        matches = []
        for index, edge in enumerate(self.edges):
            if isinstance(h, TransitionHighlight):
                if not (h.from_state and h.to_state):
                    continue
                if edge.source != h.from_state or edge.destination != h.to_state:
                    continue
                if h.symbol and edge.symbol != h.symbol:
                    continue
                matches.append(index)
            elif isinstance(h, AlphabetSymbolHighlight) and h.symbol == edge.symbol:
                matches.append(index)
        return matches


def resolve_highlights(automaton: Automaton,
                       report: Optional[FeedbackReport]) -> Tuple[List[Transition], HighlightMap]:
    edges = [t for t in map(decode_transition, automaton.transitions) if isinstance(t, Transition)]
    marks = HighlightMap(automaton.states, edges)
    if report is not None:
        # Errors first so they win over warnings on the same element
        for finding in report.errors:
            marks.apply(finding, ERROR_STYLE)
        for finding in report.warnings:
            marks.apply(finding, WARNING_STYLE)
    return edges, marks


def to_dot(automaton: Automaton, report: Optional[FeedbackReport] = None, name: str = "FSA") -> str:
    """Render the automaton as a DOT digraph, marking highlighted elements."""
    edges, marks = resolve_highlights(automaton, report)
    lines = [f"digraph {name} {{", "  rankdir=LR;", "  node [shape=circle];"]

    for state in dict.fromkeys(automaton.states):
        attrs: Dict[str, str] = {}
        if state in automaton.accept_states:
            attrs["shape"] = "doublecircle"
        style = marks.nodes.get(state)
        if style:
            attrs.update(style)
            attrs["style"] = "filled"
        lines.append(f"  {_quote(state)}{_attrs(attrs)};")

    if automaton.initial_state in automaton.states:
        lines.append("  __start__ [shape=point];")
        lines.append(f"  __start__ -> {_quote(automaton.initial_state)};")

    for index, edge in enumerate(edges):
        attrs = {"label": edge.symbol}
        style = marks.edge_marks.get(index)
        if style:
            attrs.update({k: v for k, v in style.items() if k != "fillcolor"})
        lines.append(f"  {_quote(edge.source)} -> {_quote(edge.destination)}{_attrs(attrs)};")

    lines.append("}")
    return "\n".join(lines)
