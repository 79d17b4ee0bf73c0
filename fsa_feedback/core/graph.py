"""
Transition Graph
================
Adjacency structure shared by every structural computation of the
validator, plus the graph algorithms that run over it:

- Forward reachability (states reachable from the initial state)
- Backward reachability (states that can reach an accept state)
- Duplicate (state, symbol) detection for determinism
- Minimal state count by partition refinement

The graph is built once per validation call from the successfully decoded
transitions and is never mutated afterwards.
"""

from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .codec import Transition

Edge = Tuple[str, str]  # (symbol, destination)


class TransitionGraph:
    """
    Outgoing adjacency map: source -> [(symbol, destination), ...].

    Insertion order is preserved everywhere so that findings derived from
    the graph follow input order.
    """

    def __init__(self, transitions: Iterable[Transition] = ()):
        self.outgoing: Dict[str, List[Edge]] = {}
        # Input order, across sources
        self.transitions: List[Transition] = []
        for transition in transitions:
            self.add(transition)

    def add(self, transition: Transition) -> None:
        self.transitions.append(transition)
        self.outgoing.setdefault(transition.source, []).append(
            (transition.symbol, transition.destination)
        )

    def edges_from(self, state: str) -> List[Edge]:
        return self.outgoing.get(state, [])

    def targets(self, state: str, symbol: str) -> List[str]:
        return [dest for sym, dest in self.edges_from(state) if sym == symbol]

    def first_with_symbol(self, symbol: str) -> Optional[Transition]:
        """First transition in input order carrying the symbol."""
        for transition in self.transitions:
            if transition.symbol == symbol:
                return transition
        return None

    def duplicated_symbols(self) -> List[Tuple[str, str]]:
        """
        (state, symbol) pairs with more than one outgoing transition,
        sources in first-seen order, symbols in first-seen order per source.
        """
        duplicates: List[Tuple[str, str]] = []
        for source, edges in self.outgoing.items():
            counts: Dict[str, int] = {}
            for symbol, _ in edges:
                counts[symbol] = counts.get(symbol, 0) + 1
            duplicates.extend((source, symbol) for symbol, n in counts.items() if n > 1)
        return duplicates

    def reachable_from(self, initial_state: Optional[str], states: Sequence[str]) -> Set[str]:
        """
        States reachable from the initial state (DFS).

        Empty when the initial state is not a known state.
        """
        reachable: Set[str] = set()
        if initial_state not in states:
            return reachable

        stack = [initial_state]
        reachable.add(initial_state)
        while stack:
            current = stack.pop()
            for _, dest in self.edges_from(current):
                if dest not in reachable:
                    reachable.add(dest)
                    stack.append(dest)
        return reachable

    def reverse(self) -> Dict[str, List[str]]:
        reverse: Dict[str, List[str]] = {}
        for source, edges in self.outgoing.items():
            for _, dest in edges:
                reverse.setdefault(dest, []).append(source)
        return reverse

    def can_reach(self, targets: Iterable[str]) -> Set[str]:
        """
        States that can reach any of the targets (BFS on the reverse graph).
        Targets trivially reach themselves.
        """
        reverse = self.reverse()
        productive: Set[str] = set(targets)
        queue: deque = deque(productive)

        while queue:
            current = queue.popleft()
            for prev_state in reverse.get(current, []):
                if prev_state not in productive:
                    productive.add(prev_state)
                    queue.append(prev_state)
        return productive

    def minimal_state_count(
        self,
        initial_state: str,
        states: Sequence[str],
        alphabet: Sequence[str],
        accept_states: Sequence[str],
    ) -> int:
        """
        Number of states of the minimal equivalent DFA (Moore refinement).

        Only meaningful for a complete deterministic automaton whose
        endpoints are all known states; the caller checks that.
        """
        reachable = self.reachable_from(initial_state, states)
        if not reachable:
            return 0

        accepting = set(accept_states)
        ordered = [s for s in dict.fromkeys(states) if s in reachable]
        block_of: Dict[str, int] = {
            s: (0 if s in accepting else 1) for s in ordered
        }

        block_count = len(set(block_of.values()))
        while True:
            signatures: Dict[Tuple[int, ...], int] = {}
            refined: Dict[str, int] = {}
            for state in ordered:
                signature = (block_of[state],) + tuple(
                    block_of[self.targets(state, symbol)[0]] for symbol in alphabet
                )
                refined[state] = signatures.setdefault(signature, len(signatures))
            if len(signatures) == block_count:
                return block_count
            block_of, block_count = refined, len(signatures)
