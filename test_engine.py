"""End-to-end tests for the population analysis pipeline and the CLI."""

import asyncio
import json
from datetime import timedelta

import pytest

from conftest import NOW, NOW_MS, make_tx
from sybilscope.detection import BehaviorPattern
from sybilscope.engine import PopulationReport, WalletClusteringEngine
from sybilscope.exceptions import ClusteringCancelledError, InvalidParameterError
from sybilscope.main import main

FARM = [f"0xfa{i:038x}" for i in range(4)]
HUB = "0x" + "ab" * 20
WHALE = "0x" + "cd" * 20
EMPTY = "0x" + "ef" * 20


def population():
    """Four lockstep farm wallets sharing a hub, one whale and one empty wallet."""
    data = {}
    for address in FARM:
        data[address] = [
            make_tx(address, HUB, NOW - timedelta(days=day, hours=2))
            for day in range(1, 6)
        ] + [make_tx(address, FARM[0] if address != FARM[0] else FARM[1], NOW - timedelta(days=3))]
    data[WHALE] = [
        make_tx(WHALE, "0x" + "01" * 20, NOW - timedelta(days=400), value=500_000, gas_price=1),
        make_tx("0x" + "02" * 20, WHALE, NOW - timedelta(days=20), value=400_000, gas_price=1),
    ]
    data[EMPTY] = []
    return data


class TestAnalyze:

    def test_report_covers_every_usable_wallet(self):
        report = WalletClusteringEngine(random_state=1).analyze(
            population(), reference_time_ms=NOW_MS
        )

        analyzed = {f.address for f in report.features}
        assert analyzed == set(FARM) | {WHALE}
        assert list(report.failures) == [EMPTY]

        clustered = [address for c in report.clusters for address in c.wallets]
        assert sorted(clustered) == sorted(analyzed)
        assert set(report.classifications) == analyzed
        assert report.sybil is None

    def test_whale_classification(self):
        report = WalletClusteringEngine(random_state=1).analyze(
            population(), reference_time_ms=NOW_MS
        )

        assert report.classifications[WHALE].pattern == BehaviorPattern.WHALE

    def test_farm_wallets_share_a_community_with_the_hub(self):
        report = WalletClusteringEngine(random_state=1).analyze(
            population(), reference_time_ms=NOW_MS
        )

        community = report.graph.community_of(FARM[0])
        assert community is not None
        assert set(FARM) | {HUB} <= set(community.members)
        assert report.graph.community_of(WHALE) is None

    def test_target_runs_sybil_detection(self):
        report = WalletClusteringEngine(random_state=1).analyze(
            population(), target_address=FARM[1], reference_time_ms=NOW_MS
        )

        assert report.sybil is not None
        assert report.sybil.is_sybil
        assert set(report.sybil.related_wallets) >= {FARM[2], FARM[3]}
        assert WHALE not in report.sybil.related_wallets

    def test_cluster_lookup(self):
        report = WalletClusteringEngine(random_state=1).analyze(
            population(), k=2, reference_time_ms=NOW_MS
        )

        cluster = report.get_cluster_by_wallet(FARM[0])
        assert cluster is not None
        assert FARM[0] in cluster.wallets
        assert report.get_cluster_by_wallet("0x" + FARM[0][2:].upper()) is cluster
        assert report.get_cluster_by_wallet(EMPTY) is None

    def test_report_is_json_serializable(self):
        report = WalletClusteringEngine(random_state=1).analyze(
            population(), target_address=FARM[0], reference_time_ms=NOW_MS
        )

        data = json.loads(json.dumps(report.to_dict()))

        assert data["failures"] == {EMPTY: report.failures[EMPTY]}
        assert data["sybil"]["target_address"] == FARM[0]

    def test_empty_population(self):
        report = WalletClusteringEngine().analyze({})

        assert report == PopulationReport()

    def test_invalid_k(self):
        with pytest.raises(InvalidParameterError):
            WalletClusteringEngine().analyze(population(), k=0)

    def test_cancellation_propagates(self):
        with pytest.raises(ClusteringCancelledError):
            WalletClusteringEngine(random_state=0).analyze(
                population(), k=2, should_cancel=lambda: True
            )


class TestAnalyzeAsync:

    def test_matches_sync_result(self):
        engine = WalletClusteringEngine(random_state=3)

        report = asyncio.run(engine.analyze_async(population(), reference_time_ms=NOW_MS))

        assert {f.address for f in report.features} == set(FARM) | {WHALE}

    def test_concurrent_runs_do_not_interfere(self):
        async def run_both():
            first = WalletClusteringEngine(random_state=7)
            second = WalletClusteringEngine(random_state=7)
            return await asyncio.gather(
                first.analyze_async(population(), k=2, reference_time_ms=NOW_MS),
                second.analyze_async(population(), k=2, reference_time_ms=NOW_MS),
            )

        a, b = asyncio.run(run_both())

        assert sorted(map(sorted, (c.wallets for c in a.clusters))) == \
            sorted(map(sorted, (c.wallets for c in b.clusters)))


class TestCommandLine:

    @pytest.fixture
    def input_file(self, tmp_path):
        path = tmp_path / "wallets.json"
        path.write_text(json.dumps(population()))
        return path

    def test_analyze_json(self, input_file, capsys):
        exit_code = main(["analyze", str(input_file), "--seed", "1", "--json", "--target", FARM[0]])

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["sybil"]["target_address"] == FARM[0]
        assert EMPTY in data["failures"]

    def test_analyze_table_output(self, input_file, capsys):
        assert main(["analyze", str(input_file), "--seed", "1"]) == 0

        assert "Behavioral Clusters" in capsys.readouterr().out

    def test_classify_json(self, input_file, capsys):
        assert main(["classify", str(input_file), "--address", WHALE, "--json"]) == 0

        assert json.loads(capsys.readouterr().out)["pattern"] == "whale"

    def test_classify_matches_address_in_any_hex_case(self, input_file, capsys):
        assert main(["classify", str(input_file), "--address", "0x" + WHALE[2:].upper(), "--json"]) == 0

        assert json.loads(capsys.readouterr().out)["pattern"] == "whale"

    def test_classify_unknown_address(self, input_file):
        assert main(["classify", str(input_file), "--address", "0xnobody"]) == 1

    def test_missing_file(self, tmp_path):
        assert main(["analyze", str(tmp_path / "missing.json")]) == 1

    def test_input_must_be_an_object(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[]")

        assert main(["analyze", str(path)]) == 1
