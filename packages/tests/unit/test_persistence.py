"""Unit tests for hotlap._persistence — JSON reference file gateway.

Test Techniques Used:
    - Round-trip Testing: save then load preserves names and times
    - Specification-based Testing: on-disk schema and legacy field names
    - Error Condition Testing: missing / malformed files raise
      PersistenceError; failed saves leave the old file intact
    - Protocol Conformance: adapters satisfy PersistenceGateway
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from hotlap._duration import Duration
from hotlap._errors import PersistenceError
from hotlap._ledger import Ledger, Milestone
from hotlap._persistence import JsonFileGateway, PersistenceGateway
from hotlap.testing import MemoryGateway


@pytest.fixture
def ref_file(tmp_path: Path) -> Path:
    return tmp_path / "laps" / "reference.json"


class TestProtocolConformance:
    """Technique: Protocol Conformance."""

    def test_json_gateway_is_gateway(self, ref_file: Path) -> None:
        assert isinstance(JsonFileGateway(ref_file), PersistenceGateway)

    def test_memory_gateway_is_gateway(self) -> None:
        assert isinstance(MemoryGateway(), PersistenceGateway)


class TestRoundTrip:
    """Technique: Round-trip Testing."""

    def test_names_and_times_survive(self, ref_file: Path) -> None:
        gateway = JsonFileGateway(ref_file)
        original = [
            Milestone("Hairpin", Duration.from_parts(0, 0, 41, 200), delta=-0.25),
            Milestone("Chicane", Duration.from_parts(0, 1, 2, 870)),
            Milestone("Finish", Duration.from_parts(1, 30, 0, 5), delta=0.125),
        ]

        gateway.save(original)
        loaded = gateway.load()

        assert [m.name for m in loaded] == [m.name for m in original]
        assert [m.reference_time for m in loaded] == [m.reference_time for m in original]
        assert all(m.delta is None for m in loaded)

    def test_saved_deltas_returned_on_request(self, ref_file: Path) -> None:
        gateway = JsonFileGateway(ref_file)
        gateway.save(
            [
                Milestone("Hairpin", Duration(41_200), delta=-0.25),
                Milestone("Chicane", Duration(62_870)),
            ]
        )

        loaded = gateway.load(keep_delta=True)

        assert [m.delta for m in loaded] == [pytest.approx(-0.25), None]
        assert Ledger.load(loaded).milestones[0].delta is None

    def test_saved_ledger_reloads(self, ref_file: Path) -> None:
        gateway = JsonFileGateway(ref_file)
        ledger = Ledger.load([Milestone("A", Duration(10_000))])
        ledger.start_run()
        ledger.advance(Duration(9_800))

        gateway.save(ledger.milestones)

        assert Ledger.load(gateway.load()).milestones == (Milestone("A", Duration(9_800)),)

    def test_empty_list(self, ref_file: Path) -> None:
        gateway = JsonFileGateway(ref_file)
        gateway.save([])
        assert gateway.load() == []


class TestFormat:
    """Technique: Specification-based Testing."""

    def test_written_schema(self, ref_file: Path) -> None:
        JsonFileGateway(ref_file).save([Milestone("A", Duration(9_800), delta=-0.2)])
        data = json.loads(ref_file.read_text())
        assert data == [
            {
                "name": "A",
                "reference_time": {"h": 0, "m": 0, "s": 9, "ms": 800},
                "delta": -0.2,
            },
        ]

    def test_delta_may_be_omitted(self, tmp_path: Path) -> None:
        path = tmp_path / "ref.json"
        path.write_text('[{"name": "A", "reference_time": {"h": 0, "m": 0, "s": 10, "ms": 0}}]')
        assert JsonFileGateway(path).load() == [Milestone("A", Duration(10_000))]

    def test_legacy_field_names_accepted(self, tmp_path: Path) -> None:
        """Older files used ``time`` and ``result``."""
        path = tmp_path / "ref.json"
        path.write_text(
            '[{"name": "A", "time": {"h": 0, "m": 0, "s": 10, "ms": 0}, "result": 0.5}]'
        )
        assert JsonFileGateway(path).load() == [Milestone("A", Duration(10_000))]
        assert JsonFileGateway(path).load(keep_delta=True)[0].delta == pytest.approx(0.5)


class TestErrors:
    """Technique: Error Condition Testing."""

    def test_missing_file(self, ref_file: Path) -> None:
        with pytest.raises(PersistenceError) as excinfo:
            JsonFileGateway(ref_file).load()
        assert excinfo.value.path == ref_file

    def test_malformed_json(self, tmp_path: Path) -> None:
        path = tmp_path / "ref.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError, match="invalid reference data"):
            JsonFileGateway(path).load()

    def test_not_an_array(self, tmp_path: Path) -> None:
        path = tmp_path / "ref.json"
        path.write_text('{"name": "A"}')
        with pytest.raises(PersistenceError):
            JsonFileGateway(path).load()

    @pytest.mark.parametrize(
        "time",
        [
            {"h": 0, "m": 60, "s": 0, "ms": 0},
            {"h": 0, "m": 0, "s": 0, "ms": 1000},
            {"h": -1, "m": 0, "s": 0, "ms": 0},
        ],
    )
    def test_out_of_range_time(self, tmp_path: Path, time: dict[str, int]) -> None:
        path = tmp_path / "ref.json"
        path.write_text(json.dumps([{"name": "A", "reference_time": time}]))
        with pytest.raises(PersistenceError):
            JsonFileGateway(path).load()

    def test_failed_save_keeps_old_file(
        self, ref_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        gateway = JsonFileGateway(ref_file)
        gateway.save([Milestone("A", Duration(10_000))])
        before = ref_file.read_bytes()

        def _boom(src: str, dst: str) -> None:
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(os, "replace", _boom)

        with pytest.raises(PersistenceError, match="No space left"):
            gateway.save([Milestone("B", Duration(1))])

        assert ref_file.read_bytes() == before
        assert [p.name for p in ref_file.parent.iterdir()] == [ref_file.name]
