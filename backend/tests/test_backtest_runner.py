"""
PURPOSE: Tests for the bridge to the external code generator and backtester.

The executables are replaced by small shell scripts written into a
temporary backtest directory.
"""

import json

import pytest

from graph_factory import rsi_entry_graph, rsi_round_trip_graph
from stratgraph.backtest.runner import BacktestRunner, parse_metrics, read_csv_records
from stratgraph.core.exceptions import BacktestError, InvalidStrategyError

CODEGEN_SCRIPT = """#!/bin/sh
test -f "$1" || exit 4
cp "$1" codegen_input.json
"""

BACKTEST_SCRIPT = """#!/bin/sh
echo "$@" > backtest_args.txt
cat > "metrics_$1.txt" <<'EOT'
=== Backtest Results ===
Total Return: 12.5%
Sharpe Ratio: 1.35
Final Equity: $10,250.00
Max Drawdown: -4.2%
Total Trades: 12
EOT
printf 'date,side,price\\n2024-01-02,BUY,185.2\\n2024-01-09,SELL,190.1\\n' > "trades_$1.csv"
echo finished
"""


def _script(path, body):
    path.write_text(body, encoding="utf-8")
    path.chmod(0o755)
    return str(path)


@pytest.fixture
def backtest_dir(tmp_path):
    work = tmp_path / "cppBacktester"
    work.mkdir()
    _script(work / "codegen", CODEGEN_SCRIPT)
    _script(work / "backtest", BACKTEST_SCRIPT)
    return work


def _runner(work, validator, backtest_exe=None, timeout=30.0):
    return BacktestRunner(
        work_dir=str(work),
        codegen_exe=str(work / "codegen"),
        backtest_exe=backtest_exe or str(work / "backtest"),
        timeout=timeout,
        validator=validator,
    )


class TestParseMetrics:
    def test_parses_report(self):
        text = "=== Results ===\nTotal Return: 12.5%\nFinal Equity: $10,250.00\nMax Drawdown: -4.2%\n"
        assert parse_metrics(text) == {
            "total_return": 12.5,
            "final_equity": 10250.0,
            "max_drawdown": -4.2,
        }

    def test_ignores_non_numeric_lines(self):
        text = "Symbol: AAPL\nPeriod: 2024-01-01 to 2024-06-30\nWin Rate: 55%"
        assert parse_metrics(text) == {"win_rate": 55.0}


class TestReadCsvRecords:
    def test_missing_file(self, tmp_path):
        assert read_csv_records(tmp_path / "trades_AAPL.csv") == []

    def test_empty_file(self, tmp_path):
        path = tmp_path / "trades_AAPL.csv"
        path.write_text("", encoding="utf-8")
        assert read_csv_records(path) == []

    def test_rows_as_strings(self, tmp_path):
        path = tmp_path / "indicators_AAPL.csv"
        path.write_text("date, rsi\n2024-01-02, 28.5\n2024-01-03,\n", encoding="utf-8")
        assert read_csv_records(path) == [
            {"date": "2024-01-02", "rsi": "28.5"},
            {"date": "2024-01-03", "rsi": ""},
        ]


class TestPayload:
    def test_invalid_graph_refused(self, backtest_dir, validator):
        g = rsi_entry_graph()
        g["nodes"][0]["nextIfTrue"] = "missing"
        with pytest.raises(InvalidStrategyError) as exc_info:
            _runner(backtest_dir, validator).build_payload(g, "1H")
        assert exc_info.value.status_code == 400
        assert any("'missing'" in e for e in exc_info.value.validation_errors)

    def test_payload_shape(self, backtest_dir, validator):
        g = rsi_round_trip_graph()
        g["warnings"] = ["dropped from payload"]
        payload = _runner(backtest_dir, validator).build_payload(g, "1D")

        assert set(payload) == {"symbol", "timeframe", "entryNode", "nodes"}
        assert payload["timeframe"] == "1D"
        buy = payload["nodes"][1]
        assert buy == {
            "id": "buy",
            "type": "action",
            "actionType": "ENTER_LONG",
            "symbol": "AAPL",
            "qty": 10,
            "qtyType": "PERCENT_EQUITY",
            "next": None,
        }
        assert payload["nodes"][0]["expr"]["left"]["args"][1] == {"kind": "numberLiteral", "value": 14}


class TestRun:
    async def test_full_run(self, backtest_dir, validator):
        artifacts = await _runner(backtest_dir, validator).run(
            rsi_round_trip_graph(), "1D", start_date="2024-01-01", end_date="2024-06-30"
        )

        assert artifacts.symbol == "AAPL"
        assert artifacts.metrics["total_return"] == 12.5
        assert artifacts.metrics["final_equity"] == 10250.0
        assert artifacts.metrics["total_trades"] == 12.0
        assert [t["side"] for t in artifacts.trades] == ["BUY", "SELL"]
        assert artifacts.indicators == []
        assert "finished" in artifacts.console_output

        written = json.loads((backtest_dir / "strategy.json").read_text(encoding="utf-8"))
        assert written == json.loads((backtest_dir / "codegen_input.json").read_text(encoding="utf-8"))
        assert written["entryNode"] == "cond1"
        args = (backtest_dir / "backtest_args.txt").read_text(encoding="utf-8").split()
        assert args == ["AAPL", "2024-01-01", "2024-06-30"]

    async def test_dates_need_both_ends(self, backtest_dir, validator):
        await _runner(backtest_dir, validator).run(rsi_round_trip_graph(), "1D", start_date="2024-01-01")
        args = (backtest_dir / "backtest_args.txt").read_text(encoding="utf-8").split()
        assert args == ["AAPL"]

    async def test_missing_directory(self, tmp_path, validator):
        runner = _runner(tmp_path / "absent", validator)
        with pytest.raises(BacktestError, match="Backtest directory not found"):
            await runner.run(rsi_round_trip_graph(), "1D")

    async def test_missing_executable(self, backtest_dir, validator):
        runner = _runner(backtest_dir, validator, backtest_exe=str(backtest_dir / "nope"))
        with pytest.raises(BacktestError, match="backtest could not be started"):
            await runner.run(rsi_round_trip_graph(), "1D")

    async def test_failing_step(self, backtest_dir, validator):
        failing = _script(backtest_dir / "broken", "#!/bin/sh\necho 'no data for symbol' >&2\nexit 3\n")
        runner = _runner(backtest_dir, validator, backtest_exe=failing)
        with pytest.raises(BacktestError, match="exit code 3: no data for symbol") as exc_info:
            await runner.run(rsi_round_trip_graph(), "1D")
        assert exc_info.value.context["step"] == "backtest"

    async def test_no_metrics_file(self, backtest_dir, validator):
        silent = _script(backtest_dir / "silent", "#!/bin/sh\nexit 0\n")
        runner = _runner(backtest_dir, validator, backtest_exe=silent)
        with pytest.raises(BacktestError, match="no metrics file"):
            await runner.run(rsi_round_trip_graph(), "1D")

    async def test_timeout(self, backtest_dir, validator):
        slow = _script(backtest_dir / "slow", "#!/bin/sh\nexec sleep 10\n")
        runner = _runner(backtest_dir, validator, backtest_exe=slow, timeout=0.5)
        with pytest.raises(BacktestError, match="timed out"):
            await runner.run(rsi_round_trip_graph(), "1D")


class TestHealth:
    def test_healthy(self, backtest_dir, validator):
        report = _runner(backtest_dir, validator).health()
        assert report["healthy"] is True
        assert report["checks"] == {"backtest_exe": True, "codegen_exe": True, "strategy_dir": True}

    def test_missing_components(self, tmp_path, validator):
        report = _runner(tmp_path / "absent", validator).health()
        assert report["healthy"] is False
        assert report["checks"]["strategy_dir"] is False
        assert report["paths"]["strategy_dir"] == str(tmp_path / "absent")
