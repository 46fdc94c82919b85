import pytest

from blindcheck.ner.accumulator import EntityAccumulator, attach_positions_from_lines
from blindcheck.ner.models import EntityFinding, NamedEntity


def _entity(value: str, label: str = "PER", score: float = 0.5) -> NamedEntity:
    return NamedEntity(label=label, value=value, score=score)


class TestEntityAccumulator:
    def test_case_insensitive_key_keeps_first_spelling(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity("Jane Doe", score=0.8)])
        accumulator.add([_entity("JANE DOE", score=0.4)])

        findings = accumulator.finalize()

        assert len(findings) == 1
        assert findings[0].value == "Jane Doe"
        assert findings[0].occurrences == 2
        assert findings[0].average_score == pytest.approx(0.6)

    def test_repeated_person_averages_scores(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity("John Doe", score=0.9)])
        accumulator.add([_entity("John Doe", score=0.8)])

        [finding] = accumulator.finalize()

        assert finding.label == "PER"
        assert finding.occurrences == 2
        assert finding.average_score == pytest.approx(0.85)

    def test_same_value_different_label_kept_apart(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity("Jordan", "PER"), _entity("Jordan", "LOC")])
        assert len(accumulator) == 2

    def test_positions_unioned_and_sorted(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity("Acme", "ORG")], position=3)
        accumulator.add([_entity("acme", "ORG")], position=1)
        accumulator.add([_entity("Acme", "ORG")], position=3)

        assert accumulator.finalize()[0].positions == [1, 3]

    def test_no_positions_when_none_given(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity("Acme", "ORG")])
        assert accumulator.finalize()[0].positions is None

    def test_sorted_by_occurrences_then_score_then_value(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity("Zed", score=0.1), _entity("Zed", score=0.1)])
        accumulator.add([_entity("Bob", score=0.9)])
        accumulator.add([_entity("Amy", score=0.9)])
        accumulator.add([_entity("Cat", score=0.95)])

        assert [f.value for f in accumulator.finalize()] == ["Zed", "Cat", "Amy", "Bob"]

    def test_capped_at_fifty(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity(f"Person {i}") for i in range(70)])
        assert len(accumulator.finalize()) == EntityAccumulator.MAX_FINDINGS

    def test_to_dict_uses_output_names(self) -> None:
        accumulator = EntityAccumulator()
        accumulator.add([_entity("Acme", "ORG", 1.0)], position=2)
        assert accumulator.finalize()[0].to_dict() == {
            "label": "ORG",
            "value": "Acme",
            "occurrences": 1,
            "averageScore": 1.0,
            "positions": [2],
        }


class TestAttachPositionsFromLines:
    def test_case_insensitive_line_matches(self) -> None:
        findings = [EntityFinding("PER", "Alice", 2, 0.9)]
        lines = ["hi alice", "", "ALICE again", "bob"]

        result = attach_positions_from_lines(findings, lines)

        assert result[0].positions == [1, 3]

    def test_short_values_and_existing_positions_untouched(self) -> None:
        findings = [
            EntityFinding("PER", "Al", 1, 0.9),
            EntityFinding("PER", "Alice", 1, 0.9, positions=[7]),
        ]
        result = attach_positions_from_lines(findings, ["Al and Alice"])
        assert result[0].positions is None
        assert result[1].positions == [7]

    def test_limited_to_max_matches(self) -> None:
        findings = [EntityFinding("ORG", "Acme", 1, 0.9)]
        result = attach_positions_from_lines(findings, ["Acme"] * 30)
        assert result[0].positions == list(range(1, 13))
