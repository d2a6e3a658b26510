"""Tests for the symptom-medication correlation engine."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from medlog.domains.adherence.domain_logic.correlation_engine import (
    correlate_medication_symptoms,
    day_contingency,
    effectiveness_label,
    efficacy_symptom_effectiveness,
    phi_coefficient,
    run_correlation_analysis,
    symptom_network,
    temporal_lag,
    temporal_patterns,
)
from medlog.domains.adherence.domain_logic.correlation_models import (
    Contingency,
    EfficacyTimeline,
    MedicationTimeline,
    SymptomTimeline,
    Timelines,
)


def _day(n: int) -> date:
    return date(2024, 3, 1) + timedelta(days=n - 1)


def _timelines(medications: dict[str, list[int]], symptoms: dict[str, list[int]]) -> Timelines:
    return Timelines(
        medications={
            mid: MedicationTimeline(medication_id=mid, name=mid.title(), dates={_day(d): 1 for d in days})
            for mid, days in medications.items()
        },
        symptoms={
            name: SymptomTimeline(name=name, dates={_day(d): 1 for d in days})
            for name, days in symptoms.items()
        },
    )


class TestPhi:
    def test_perfect_positive_and_negative(self):
        assert phi_coefficient(Contingency(both=3, only_a=0, only_b=0, neither=3)) == pytest.approx(1.0)
        assert phi_coefficient(Contingency(both=0, only_a=3, only_b=3, neither=0)) == pytest.approx(-1.0)

    def test_empty_marginal_is_zero(self):
        assert phi_coefficient(Contingency(both=0, only_a=0, only_b=2, neither=5)) == 0.0
        assert phi_coefficient(Contingency(both=4, only_a=0, only_b=0, neither=0)) == 0.0

    @pytest.mark.parametrize("table", [(4, 1, 1, 2), (1, 5, 2, 9), (7, 0, 3, 1), (2, 2, 2, 2)])
    def test_symmetric_and_bounded(self, table):
        both, only_a, only_b, neither = table
        forward = phi_coefficient(Contingency(both, only_a, only_b, neither))
        swapped = phi_coefficient(Contingency(both, only_b, only_a, neither))
        assert forward == pytest.approx(swapped)
        assert -1.0 <= forward <= 1.0

    def test_day_contingency(self):
        table = day_contingency([_day(1), _day(2)], [_day(2), _day(4)], _day(1), _day(5))
        assert (table.both, table.only_a, table.only_b, table.neither) == (1, 1, 1, 2)
        assert table.total == 5


class TestLag:
    def test_same_day_dominant(self):
        lag = temporal_lag([_day(1), _day(2), _day(3)], [_day(2), _day(3), _day(4)])
        assert lag.distribution == {0: 2, 1: 1, 2: 0, -1: 0}
        assert lag.dominant_lag == 0
        assert lag.confidence == 0.67
        assert lag.pattern == "same_day"

    def test_after_medication(self):
        lag = temporal_lag([_day(1), _day(5)], [_day(2), _day(6)])
        assert lag.dominant_lag == 1
        assert lag.pattern == "after_medication"

    def test_tie_goes_to_earlier_search_entry(self):
        lag = temporal_lag([_day(1)], [_day(1), _day(2)])
        assert lag.dominant_lag == 0
        assert lag.confidence == 0.5
        assert lag.pattern is None

    def test_symptom_before_medication(self):
        lag = temporal_lag([_day(3), _day(8)], [_day(2), _day(7)])
        assert lag.distribution == {0: 0, 1: 0, 2: 0, -1: 2}
        assert lag.dominant_lag == -1
        assert lag.confidence == 1.0
        assert lag.pattern == "before_medication"

    def test_no_matches(self):
        lag = temporal_lag([_day(1)], [_day(20)])
        assert lag.dominant_lag is None
        assert lag.total_matches == 0


class TestCorrelations:
    def test_positive_correlation(self):
        timelines = _timelines({"med-1": [1, 2, 3, 4, 7]}, {"headache": [1, 2, 3, 4, 8]})
        result = correlate_medication_symptoms(timelines)[0]
        assert result.correlation == 0.47
        assert result.strength == "weak"
        assert result.direction == "positive"
        assert result.interpretation == "likely_related"
        assert result.overlap.total_days == 8
        assert result.overlap.days_with_both == 4
        assert result.overlap.overlap_percentage == 50.0

    def test_negative_correlation(self):
        timelines = _timelines({"med-1": [1, 3, 5, 7]}, {"nausea": [2, 4, 6, 8]})
        result = correlate_medication_symptoms(timelines)[0]
        assert result.correlation == -1.0
        assert result.strength == "strong"
        assert result.interpretation == "may_reduce"

    def test_non_overlapping_pairs_skipped(self):
        timelines = _timelines({"med-1": [1, 2, 3]}, {"rash": [10, 11, 12]})
        assert correlate_medication_symptoms(timelines) == []

    def test_strongest_first(self):
        timelines = _timelines(
            {"med-1": [1, 3, 5, 7], "med-2": [1, 2, 3, 4, 7]},
            {"headache": [2, 4, 6, 8]},
        )
        results = correlate_medication_symptoms(timelines)
        assert [abs(r.correlation) for r in results] == sorted((abs(r.correlation) for r in results), reverse=True)


class TestTemporalPatterns:
    def test_next_day_onset_and_offset(self):
        timelines = _timelines({"med-1": [1, 4, 7]}, {"dizziness": [2, 5, 8]})
        pattern = temporal_patterns(timelines)[0]
        assert pattern.onset_count == 3
        assert pattern.average_onset_days == 1.0
        assert pattern.categories == ["onset_same_or_next_day", "offset_after_discontinuation"]

    def test_delayed_onset(self):
        timelines = _timelines({"med-1": [1, 5, 9]}, {"dizziness": [3, 7, 11]})
        pattern = temporal_patterns(timelines)[0]
        assert "onset_delayed" in pattern.categories

    def test_needs_three_dates(self):
        timelines = _timelines({"med-1": [1, 2]}, {"dizziness": [2, 3, 4]})
        assert temporal_patterns(timelines) == []


class TestEfficacyEffectiveness:
    def test_symptom_drops_after_good_days(self):
        timelines = _timelines({"med-1": [10, 20]}, {"headache": [7, 8, 9, 17, 18]})
        timelines.efficacy["med-1"] = EfficacyTimeline(
            medication_id="med-1",
            ratings={_day(10): 5, _day(20): 4},
            target_symptoms=["headache"],
        )
        result = efficacy_symptom_effectiveness(timelines)[0]
        symptom = result.symptoms[0]
        assert (symptom.before_count, symptom.after_count) == (5, 0)
        assert symptom.effectiveness_ratio == 1.0
        assert symptom.label == "highly effective"
        assert result.average_efficacy == 4.5

    def test_label_uses_unrounded_ratio(self):
        high_days = [10 * k for k in range(1, 9)]
        before = [d - o for d in high_days for o in (1, 2, 3) if d - o != 77]
        after = [d + 1 for d in high_days[:7]]
        timelines = _timelines({"med-1": high_days}, {"headache": before + after})
        timelines.efficacy["med-1"] = EfficacyTimeline(
            medication_id="med-1",
            ratings={_day(d): 5 for d in high_days},
            target_symptoms=["headache"],
        )
        symptom = efficacy_symptom_effectiveness(timelines)[0].symptoms[0]
        assert (symptom.before_count, symptom.after_count) == (23, 7)
        # 16 / 23 is just under 0.7 and rounds up to it
        assert symptom.effectiveness_ratio == 0.7
        assert symptom.label == "moderately effective"

    def test_requires_medication_timeline(self):
        timelines = _timelines({}, {"headache": [7, 8]})
        timelines.efficacy["med-1"] = EfficacyTimeline(
            medication_id="med-1", ratings={_day(10): 5, _day(20): 4}, target_symptoms=["headache"]
        )
        assert efficacy_symptom_effectiveness(timelines) == []

    @pytest.mark.parametrize(
        "ratio, label",
        [(0.7, "highly effective"), (0.5, "moderately effective"), (0.05, "neutral"), (-0.2, "potentially counterproductive")],
    )
    def test_labels(self, ratio, label):
        assert effectiveness_label(ratio) == label


class TestNetwork:
    def test_links_need_two_shared_days(self):
        timelines = _timelines({}, {"a": [1, 2, 3], "b": [2, 3], "c": [3]})
        network = symptom_network(timelines)
        assert {n.id: n.frequency for n in network.nodes} == {"a": 3, "b": 2, "c": 1}
        assert [(link.source, link.target, link.value) for link in network.links] == [("a", "b", 2)]


def test_run_correlation_analysis_combines_all_parts():
    timelines = _timelines({"med-1": [1, 2, 3, 4, 7]}, {"headache": [1, 2, 3, 4, 8], "fatigue": [2, 3]})
    analysis = run_correlation_analysis(timelines)
    assert analysis.correlations
    assert len(analysis.network.nodes) == 2
    assert analysis.to_dict()["network"]["links"] == [{"source": "headache", "target": "fatigue", "value": 2}]
