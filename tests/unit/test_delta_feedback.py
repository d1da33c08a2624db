import pytest

from autosend.models.domain.decision_domain import DeltaClassification
from autosend.services.autosend.delta_feedback import (
    DeltaFeedbackService,
    analyze,
    classify_ratio,
    edit_distance,
)


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ("", "", 0),
        ("abc", "", 3),
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("abc", "xyz", 3),
        ("Thanks!", "Thanks!!", 1),
    ],
)
def test_edit_distance(a, b, expected):
    assert edit_distance(a, b) == expected
    assert edit_distance(b, a) == expected


def test_identical_texts_are_negligible():
    result = analyze("abc", "abc")

    assert result.ratio == 0
    assert result.distance == 0
    assert result.classification == DeltaClassification.NEGLIGIBLE


def test_completely_different_texts_are_full_rewrite():
    result = analyze("abc", "xyz")

    assert result.distance == 3
    assert result.ratio == 1.0
    assert result.classification == DeltaClassification.FULL_REWRITE


def test_both_empty_is_zero():
    result = analyze("", "")

    assert result.ratio == 0
    assert result.classification == DeltaClassification.NEGLIGIBLE


def test_ratio_normalized_by_longer_text():
    draft = "Thanks for the update, see you Monday."
    final = "Thanks for the update, see you Tuesday."

    result = analyze(draft, final)

    assert result.ratio == result.distance / len(final)
    assert result.classification == DeltaClassification.PARTIAL


@pytest.mark.parametrize(
    ("a", "b"),
    [
        ("Sounds good, talk soon", "Sounds great - talk to you soon!"),
        ("", "hello"),
        ("confirmed for 3pm", "Confirmed for 3 PM."),
    ],
)
def test_analyze_is_symmetric(a, b):
    assert analyze(a, b) == analyze(b, a)


@pytest.mark.parametrize(
    ("ratio", "expected"),
    [
        (0.0, DeltaClassification.NEGLIGIBLE),
        (0.0499, DeltaClassification.NEGLIGIBLE),
        (0.05, DeltaClassification.PARTIAL),
        (0.80, DeltaClassification.PARTIAL),
        (0.8001, DeltaClassification.FULL_REWRITE),
    ],
)
def test_classification_boundaries(ratio, expected):
    assert classify_ratio(ratio) == expected


def test_service_skips_unchanged_drafts(recording_sink):
    service = DeltaFeedbackService(sink=recording_sink)

    assert service.process("user-1", "Thanks!", "Thanks!") is None
    assert service.process("user-1", None, "Thanks!") is None
    assert recording_sink.records == []


def test_service_forwards_full_rewrites(recording_sink):
    service = DeltaFeedbackService(sink=recording_sink)

    result = service.process("user-1", "abc", "xyz")

    assert result.classification == DeltaClassification.FULL_REWRITE
    assert recording_sink.records == [("user-1", result, "abc", "xyz")]


def test_service_does_not_forward_negligible_edits(recording_sink):
    service = DeltaFeedbackService(sink=recording_sink)
    draft = "Thanks for sending this over, I will review it and get back to you tomorrow."

    result = service.process("user-1", draft, draft + ".")

    assert result.classification == DeltaClassification.NEGLIGIBLE
    assert recording_sink.records == []


def test_sink_failure_does_not_raise():
    class BrokenSink:
        def submit(self, *args):
            raise RuntimeError("pipeline down")

    service = DeltaFeedbackService(sink=BrokenSink())

    result = service.process("user-1", "abc", "xyz")

    assert result.classification == DeltaClassification.FULL_REWRITE
