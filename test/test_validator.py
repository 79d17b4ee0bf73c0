import pytest

from fsa_feedback.core.models import Automaton, EvaluationConfig
from fsa_feedback.core.schemas import ErrorCode, Severity
from fsa_feedback.core.validator import StructuralValidator, summarize, validate


def codes(findings):
    return [f.code for f in findings]


# --- Totality ---

def test_missing_automaton_yields_single_evaluation_error():
    report = validate(None)
    assert codes(report.errors) == [ErrorCode.EVALUATION_ERROR]
    assert report.warnings == []
    assert report.structural is None


def test_loose_mapping_input_is_accepted():
    report = validate({
        "states": ["q0"],
        "alphabet": ["a"],
        "transitions": ["q0|a|q0"],
        "initial_state": "q0",
        "accept_states": ["q0"],
    })
    assert report.is_valid
    assert report.summary == "DFA with 1 state and 1 transition"


def test_non_list_field_becomes_evaluation_error():
    report = validate({"states": "q0"})
    assert codes(report.errors) == [ErrorCode.EVALUATION_ERROR]
    assert report.structural is None


def test_null_initial_state_is_an_invalid_initial_finding():
    report = validate({
        "states": ["q0"],
        "alphabet": ["a"],
        "transitions": [],
        "initial_state": None,
        "accept_states": ["q0"],
    })
    assert codes(report.errors) == [ErrorCode.INVALID_INITIAL]
    assert report.errors[0].highlight.type == "initial_state"
    assert report.errors[0].highlight.state_id is None
    assert report.structural is not None
    assert report.structural.unreachable_states == ["q0"]


def test_non_string_transition_is_a_decode_error_for_that_item_only():
    report = validate({
        "states": ["q0"],
        "alphabet": ["a"],
        "transitions": ["q0|a|q0", None, 7],
        "initial_state": "q0",
        "accept_states": ["q0"],
    })
    assert codes(report.errors) == [
        ErrorCode.INVALID_TRANSITION_SYMBOL,
        ErrorCode.INVALID_TRANSITION_SYMBOL,
    ]
    assert all(f.highlight is None for f in report.errors)
    assert report.structural is not None
    assert report.structural.num_transitions == 3
    assert report.structural.is_complete is True


def test_input_is_not_mutated(make_automaton):
    automaton = make_automaton(states=["q0", "q1"], transitions=["q0|a|q1", "bad"])
    before = automaton.model_dump()
    validate(automaton, EvaluationConfig(evaluation_mode="strict"))
    assert automaton.model_dump() == before


# --- Stage 1: non-emptiness ---

def test_empty_states_reported_once():
    report = validate(Automaton(states=[], alphabet=["a"], initial_state="", accept_states=[]))
    assert codes(report.errors).count(ErrorCode.EMPTY_STATES) == 1
    assert report.structural.num_states == 0


def test_empty_alphabet_tolerated_in_lenient_mode_when_unused(make_automaton):
    report = validate(make_automaton(alphabet=[]))
    assert ErrorCode.EMPTY_ALPHABET not in codes(report.errors)


def test_empty_alphabet_is_error_in_strict_mode(make_automaton):
    report = validate(make_automaton(alphabet=[]), EvaluationConfig(evaluation_mode="strict"))
    assert codes(report.errors) == [ErrorCode.EMPTY_ALPHABET]


def test_empty_alphabet_is_error_when_transitions_use_symbols(make_automaton):
    report = validate(make_automaton(alphabet=[], transitions=["q0|a|q0"]))
    assert codes(report.errors) == [ErrorCode.EMPTY_ALPHABET, ErrorCode.INVALID_TRANSITION_SYMBOL]


# --- Stages 2-3: initial and accept states ---

def test_invalid_initial_state_does_not_short_circuit(make_automaton):
    report = validate(make_automaton(initial_state="qx"))
    initial_errors = [f for f in report.errors if f.code == ErrorCode.INVALID_INITIAL]
    assert len(initial_errors) == 1
    assert initial_errors[0].highlight.type == "initial_state"
    assert initial_errors[0].highlight.state_id == "qx"
    assert report.structural is not None
    assert report.structural.unreachable_states == ["q0"]


def test_unset_initial_state_highlights_null_id(make_automaton):
    report = validate(make_automaton(initial_state=""))
    finding = report.errors[0]
    assert finding.code == ErrorCode.INVALID_INITIAL
    assert finding.highlight.state_id is None
    assert finding.message == "No initial state has been set."


def test_each_invalid_accept_state_is_its_own_error(make_automaton):
    report = validate(make_automaton(accept_states=["q0", "qx", "qy"]))
    accept_errors = [f for f in report.errors if f.code == ErrorCode.INVALID_ACCEPT]
    assert [f.highlight.state_id for f in accept_errors] == ["qx", "qy"]
    assert all(f.highlight.type == "accept_state" for f in accept_errors)


# --- Stage 4: transitions ---

def test_transition_endpoint_and_symbol_errors_follow_input_order():
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a"],
        transitions=["q0|a|q9", "q8|b|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton)
    assert codes(report.errors) == [
        ErrorCode.INVALID_TRANSITION_DEST,
        ErrorCode.INVALID_TRANSITION_SOURCE,
        ErrorCode.INVALID_TRANSITION_SYMBOL,
    ]

    dest = report.errors[0].highlight
    assert (dest.type, dest.from_state, dest.to_state, dest.symbol) == ("transition", "q0", "q9", "a")

    symbol = report.errors[2].highlight
    assert symbol.type == "alphabet_symbol"
    assert symbol.symbol == "b"


def test_malformed_transition_does_not_stop_the_rest():
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a"],
        transitions=["q0-a-q1", "q0|a|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton)

    assert len(report.errors) == 1
    assert report.errors[0].code == ErrorCode.INVALID_TRANSITION_SYMBOL
    assert report.errors[0].highlight is None
    # The well-formed transition still feeds the graph
    assert report.structural.unreachable_states == []
    assert report.structural.num_transitions == 2


def test_epsilon_symbol_must_be_declared_in_alphabet():
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a"],
        transitions=["q0|epsilon|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton)
    assert codes(report.errors) == [ErrorCode.INVALID_TRANSITION_SYMBOL]
    assert report.errors[0].highlight.type == "alphabet_symbol"
    assert report.errors[0].highlight.symbol == "epsilon"


# --- Stage 5: determinism ---

def test_duplicate_symbol_is_error_for_expected_dfa(dfa_config):
    automaton = Automaton(
        states=["q0", "q1", "q2"],
        alphabet=["a"],
        transitions=["q0|a|q1", "q0|a|q2"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton, dfa_config)

    assert codes(report.errors) == [ErrorCode.NOT_DETERMINISTIC]
    assert report.errors[0].highlight.state_id == "q0"
    assert report.structural.is_deterministic is False
    assert report.summary == "NFA with 3 states and 2 transitions"


def test_duplicate_symbol_is_warning_otherwise():
    automaton = Automaton(
        states=["q0", "q1", "q2"],
        alphabet=["a"],
        transitions=["q0|a|q1", "q0|a|q2"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton, EvaluationConfig(expected_type="NFA"))
    assert report.errors == []
    nondet = [f for f in report.warnings if f.code == ErrorCode.NOT_DETERMINISTIC]
    assert len(nondet) == 1
    assert nondet[0].severity == Severity.warning


def test_adding_duplicate_transition_flips_determinism(ends_with_b):
    before = validate(ends_with_b)
    assert before.structural.is_deterministic is True
    assert ErrorCode.NOT_DETERMINISTIC not in before.codes()

    after = validate(ends_with_b.model_copy(update={
        "transitions": ends_with_b.transitions + ["q0|a|q1"],
    }))
    assert after.structural.is_deterministic is False
    assert after.codes().count(ErrorCode.NOT_DETERMINISTIC) == 1


def test_epsilon_transition_in_dfa_raises_distinct_error(dfa_config):
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a", "epsilon"],
        transitions=["q0|epsilon|q1", "q0|a|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton, dfa_config)

    assert codes(report.errors) == [ErrorCode.NOT_DETERMINISTIC]
    assert "Epsilon" in report.errors[0].message
    assert report.errors[0].highlight.symbol == "epsilon"
    assert report.structural.is_deterministic is False
    assert report.summary.startswith("NFA")


def test_epsilon_error_highlights_first_epsilon_transition_in_input_order(dfa_config):
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a", "epsilon"],
        transitions=["q0|a|q1", "q1|epsilon|q0", "q0|epsilon|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton, dfa_config)

    epsilon_errors = [f for f in report.errors if "Epsilon" in f.message]
    assert len(epsilon_errors) == 1
    highlight = epsilon_errors[0].highlight
    assert (highlight.from_state, highlight.to_state) == ("q1", "q0")



def test_epsilon_transition_without_dfa_expectation_only_changes_class():
    automaton = Automaton(
        states=["q0", "q1", "q2"],
        alphabet=["a", "epsilon"],
        transitions=["q0|epsilon|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton)
    assert ErrorCode.NOT_DETERMINISTIC not in report.codes()
    assert report.summary == "NFA with 3 states and 1 transition"


def test_custom_epsilon_symbol(dfa_config):
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a", "ε"],
        transitions=["q0|ε|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton, dfa_config.with_overrides(epsilon_symbol="ε"))
    assert codes(report.errors) == [ErrorCode.NOT_DETERMINISTIC]


# --- Stage 6: completeness ---

def test_single_state_without_transitions():
    automaton = Automaton(
        states=["q0"], alphabet=["a"], transitions=[], initial_state="q0", accept_states=["q0"],
    )
    report = validate(automaton)

    assert report.summary == "DFA with 1 state and 0 transitions"
    assert report.errors == []
    assert report.structural.is_complete is False
    missing = [f for f in report.warnings if f.code == ErrorCode.MISSING_TRANSITION]
    assert len(missing) == 1
    assert missing[0].highlight.state_id == "q0"


def test_complete_dfa_has_no_findings(ends_with_b, dfa_config):
    report = validate(ends_with_b, dfa_config)
    assert report.errors == []
    assert report.warnings == []
    assert report.structural.is_complete is True
    assert report.summary == "DFA with 2 states and 4 transitions"


def test_missing_transition_promoted_by_check_completeness(make_automaton):
    report = validate(make_automaton(), EvaluationConfig(check_completeness=True))
    assert codes(report.errors) == [ErrorCode.MISSING_TRANSITION]


def test_completeness_skipped_when_epsilon_is_declared(ends_with_b):
    automaton = ends_with_b.model_copy(update={"alphabet": ["a", "b", "epsilon"]})
    report = validate(automaton)
    assert report.structural.is_complete is False
    assert ErrorCode.MISSING_TRANSITION not in report.codes()


def test_completeness_skipped_for_nondeterministic_automaton():
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a", "b"],
        transitions=["q0|a|q0", "q0|a|q1"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton)
    assert report.structural.is_complete is False
    assert ErrorCode.MISSING_TRANSITION not in report.codes()


# --- Stages 7-8: reachability and dead states ---

def test_reachable_and_unreachable_partition_states():
    states = ["q0", "q1", "q2", "q3"]
    automaton = Automaton(
        states=states,
        alphabet=["a"],
        transitions=["q0|a|q1", "q1|a|q2", "q3|a|q0"],
        initial_state="q0",
        accept_states=["q2"],
    )
    report = validate(automaton)
    unreachable = report.structural.unreachable_states
    assert unreachable == ["q3"]

    reachable = {"q0", "q1", "q2"}
    assert reachable.isdisjoint(unreachable)
    assert reachable | set(unreachable) == set(states)

    warning = next(f for f in report.warnings if f.code == ErrorCode.UNREACHABLE_STATE)
    assert warning.highlight.type == "state"
    assert warning.highlight.state_id == "q3"


def test_dead_states():
    automaton = Automaton(
        states=["q0", "q1", "q2"],
        alphabet=["a", "b"],
        transitions=[
            "q0|a|q1", "q0|b|q2",
            "q1|a|q1", "q1|b|q1",
            "q2|a|q2", "q2|b|q2",
        ],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton)
    assert report.structural.dead_states == ["q2"]
    assert [f.highlight.state_id for f in report.warnings if f.code == ErrorCode.DEAD_STATE] == ["q2"]


def test_accept_state_is_never_dead():
    automaton = Automaton(
        states=["q0", "q1"],
        alphabet=["a"],
        transitions=["q0|a|q0"],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton)
    assert "q1" not in report.structural.dead_states
    assert "q0" in report.structural.dead_states


def test_warning_order_follows_pipeline_stages():
    automaton = Automaton(
        states=["q0", "q1", "q2"],
        alphabet=["a"],
        transitions=["q0|a|q0"],
        initial_state="q0",
        accept_states=["q0"],
    )
    report = validate(automaton)
    assert codes(report.warnings) == [
        ErrorCode.MISSING_TRANSITION,
        ErrorCode.MISSING_TRANSITION,
        ErrorCode.UNREACHABLE_STATE,
        ErrorCode.UNREACHABLE_STATE,
        ErrorCode.DEAD_STATE,
        ErrorCode.DEAD_STATE,
    ]
    assert [f.highlight.state_id for f in report.warnings] == ["q1", "q2", "q1", "q2", "q1", "q2"]


def test_duplicate_states_are_counted_raw():
    automaton = Automaton(states=["q0", "q0"], alphabet=["a"], initial_state="q0", accept_states=["q0"])
    report = validate(automaton)
    assert report.structural.num_states == 2
    assert report.summary == "DFA with 2 states and 0 transitions"


# --- Minimality ---

def test_redundant_state_reported_when_minimality_checked():
    automaton = Automaton(
        states=["q0", "q1", "q2"],
        alphabet=["a", "b"],
        transitions=[
            "q0|a|q0", "q0|b|q1",
            "q1|a|q2", "q1|b|q1",
            "q2|a|q2", "q2|b|q1",
        ],
        initial_state="q0",
        accept_states=["q1"],
    )
    report = validate(automaton, EvaluationConfig(check_minimality=True))
    assert codes(report.warnings) == [ErrorCode.NOT_MINIMAL]
    assert "needs only 2" in report.warnings[0].message

    unchecked = validate(automaton)
    assert unchecked.warnings == []


def test_minimal_dfa_passes_minimality_check(ends_with_b):
    report = validate(ends_with_b, EvaluationConfig(check_minimality=True))
    assert ErrorCode.NOT_MINIMAL not in report.codes()


# --- Presentation ---

def test_minimal_verbosity_drops_suggestions(make_automaton):
    report = validate(make_automaton(initial_state="qx"), EvaluationConfig(feedback_verbosity="minimal"))
    assert all(f.suggestion is None for f in report.all_findings())


def test_standard_verbosity_keeps_suggestions_without_hints(make_automaton):
    report = validate(make_automaton(initial_state="qx"))
    assert report.errors[0].suggestion
    assert report.hints == []


def test_detailed_verbosity_adds_hints(make_automaton):
    report = validate(make_automaton(), EvaluationConfig(feedback_verbosity="detailed"))
    assert any("trap state" in h for h in report.hints)


def test_highlights_can_be_disabled(make_automaton):
    report = validate(make_automaton(accept_states=["qx"]), EvaluationConfig(highlight_errors=False))
    assert report.errors
    assert all(f.highlight is None for f in report.all_findings())


@pytest.mark.parametrize("det,n,m,expected", [
    (True, 1, 1, "DFA with 1 state and 1 transition"),
    (False, 0, 2, "NFA with 0 states and 2 transitions"),
    (True, 2, 0, "DFA with 2 states and 0 transitions"),
])
def test_summary_wording(det, n, m, expected):
    assert summarize(det, n, m) == expected


def test_validator_instance_is_reusable(ends_with_b, make_automaton):
    validator = StructuralValidator(EvaluationConfig(expected_type="DFA"))
    first = validator.validate(ends_with_b)
    validator.validate(make_automaton(initial_state="nope"))
    assert validator.validate(ends_with_b) == first
