"""
PURPOSE: Hand a validated strategy graph to the external code generator and
backtester, and collect the artifacts they write.

Steps, each run as an asyncio subprocess with a timeout:
    1. write <BACKTEST_DIR>/strategy.json  {symbol, timeframe, entryNode, nodes}
    2. <CODEGEN_EXE> strategy.json
    3. BACKTEST_COMPILE_CMD (shell, optional)
    4. <BACKTEST_EXE> SYMBOL [start end]
    5. read trades_<SYMBOL>.csv, indicators_<SYMBOL>.csv, metrics_<SYMBOL>.txt

Only one run touches the working directory at a time: the executables read
and write fixed file names there.

CALLED BY: api/routes_backtest.py
"""

import asyncio
import json
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from stratgraph.config.settings import Settings, settings as default_settings
from stratgraph.core.exceptions import BacktestError, InvalidStrategyError
from stratgraph.schemas.graph import parse_strategy_graph
from stratgraph.utils.logger import get_logger
from stratgraph.validation.validator import StrategyValidator

logger = get_logger("backtest.runner")

# "Total Return: 12.5%", "Final Equity: $10,250.00", "Sharpe Ratio: 1.2"
_METRIC_LINE_RE = re.compile(r"^(.+?):\s*\$?(-?[0-9][0-9,]*\.?[0-9]*|-?\.[0-9]+)\s*(%)?$")

_run_lock = asyncio.Lock()


def parse_metrics(text: str) -> Dict[str, float]:
    """
    PURPOSE: Parse the backtester's metrics report into a flat dict.

    Each "Label: value" line with a numeric value becomes
    {label_in_snake_case: float}; a leading "$", thousands separators and a
    trailing "%" are dropped. Other lines are ignored.
    """
    metrics: Dict[str, float] = {}
    for line in text.splitlines():
        match = _METRIC_LINE_RE.match(line.strip())
        if not match:
            continue
        key = re.sub(r"\s+", "_", match.group(1).strip()).lower()
        try:
            value = float(match.group(2).replace(",", ""))
        except ValueError:
            continue
        if math.isfinite(value):
            metrics[key] = value
    return metrics


def read_csv_records(path: Path) -> List[Dict[str, Any]]:
    """Read a CSV artifact as a list of row dicts (string values). Missing or empty files yield []."""
    if not path.exists():
        return []
    try:
        frame = pd.read_csv(path, dtype=str, keep_default_na=False, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        return []
    frame.columns = [str(col).strip() for col in frame.columns]
    return frame.to_dict(orient="records")


@dataclass
class BacktestArtifacts:
    """Everything one backtest run produced."""

    symbol: str
    timeframe: str
    metrics: Dict[str, float] = field(default_factory=dict)
    trades: List[Dict[str, Any]] = field(default_factory=list)
    indicators: List[Dict[str, Any]] = field(default_factory=list)
    console_output: str = ""


class BacktestRunner:
    """
    PURPOSE: Drive the external code generator / compiler / backtester.

    CALLED BY: api/routes_backtest.py
    """

    def __init__(
        self,
        work_dir: str,
        codegen_exe: str,
        backtest_exe: str,
        compile_cmd: str = "",
        timeout: float = 600.0,
        validator: Optional[StrategyValidator] = None,
    ) -> None:
        self._work_dir = Path(work_dir)
        self._codegen_exe = codegen_exe
        self._backtest_exe = backtest_exe
        self._compile_cmd = compile_cmd.strip()
        self._timeout = timeout
        self._validator = validator

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "BacktestRunner":
        config = config or default_settings
        return cls(
            work_dir=config.BACKTEST_DIR,
            codegen_exe=config.CODEGEN_EXE,
            backtest_exe=config.BACKTEST_EXE,
            compile_cmd=config.BACKTEST_COMPILE_CMD,
            timeout=config.BACKTEST_TIMEOUT_SECONDS,
        )

    @property
    def strategy_path(self) -> Path:
        return self._work_dir / "strategy.json"

    # ------------------------------------------------------------------ #
    #  Subprocess helpers
    # ------------------------------------------------------------------ #

    async def _communicate(self, proc: asyncio.subprocess.Process, step: str) -> str:
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            logger.error("backtest_step_timeout", step=step, timeout=self._timeout)
            raise BacktestError(f"{step} timed out after {self._timeout:.0f}s", {"step": step}) from e

        out = stdout.decode("utf-8", errors="replace") if stdout else ""
        err = stderr.decode("utf-8", errors="replace") if stderr else ""
        if proc.returncode != 0:
            logger.error("backtest_step_failed", step=step, returncode=proc.returncode, stderr=err[-500:])
            raise BacktestError(
                f"{step} failed with exit code {proc.returncode}: {err.strip()[-500:]}",
                {"step": step, "returncode": proc.returncode},
            )
        logger.info("backtest_step_complete", step=step)
        return out

    async def _exec(self, step: str, args: Sequence[str]) -> str:
        logger.info("backtest_step_start", step=step, command=" ".join(args))
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(self._work_dir),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("backtest_step_unavailable", step=step, error=str(e))
            raise BacktestError(f"{step} could not be started: {e}", {"step": step}) from e
        return await self._communicate(proc, step)

    async def _shell(self, step: str, command: str) -> str:
        logger.info("backtest_step_start", step=step, command=command)
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=str(self._work_dir),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        return await self._communicate(proc, step)

    # ------------------------------------------------------------------ #
    #  Public API
    # ------------------------------------------------------------------ #

    def build_payload(self, graph: Dict[str, Any], timeframe: str) -> Dict[str, Any]:
        """
        Check the graph and build the strategy.json document.

        Raises:
            InvalidStrategyError: If the graph does not validate.
        """
        validator = self._validator or StrategyValidator()
        validation = validator.validate(graph, timeframe)
        if not validation.is_valid:
            raise InvalidStrategyError("Cannot backtest invalid strategy", validation.errors)
        return parse_strategy_graph(graph).to_codegen_payload(timeframe)

    async def run(
        self,
        graph: Dict[str, Any],
        timeframe: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> BacktestArtifacts:
        """
        PURPOSE: Generate, compile and run a backtest for one graph.

        Args:
            graph: Wire-format graph {symbol, entryNode, nodes}.
            timeframe: Bar timeframe.
            start_date: Optional first date (YYYY-MM-DD); used only with end_date.
            end_date: Optional last date (YYYY-MM-DD).

        Returns:
            BacktestArtifacts: Parsed metrics plus trade and indicator rows.

        Raises:
            InvalidStrategyError: If the graph does not validate.
            BacktestError: If any external step fails or times out.
        """
        payload = self.build_payload(graph, timeframe)
        symbol = payload["symbol"]

        async with _run_lock:
            if not self._work_dir.is_dir():
                raise BacktestError(f"Backtest directory not found: {self._work_dir}")

            self.strategy_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            logger.info("strategy_file_written", path=str(self.strategy_path), symbol=symbol)

            await self._exec("codegen", [self._codegen_exe, str(self.strategy_path)])
            if self._compile_cmd:
                await self._shell("compile", self._compile_cmd)

            args = [self._backtest_exe, symbol]
            if start_date and end_date:
                args += [start_date, end_date]
            output = await self._exec("backtest", args)

            metrics_path = self._work_dir / f"metrics_{symbol}.txt"
            try:
                metrics_text = metrics_path.read_text(encoding="utf-8")
            except OSError as e:
                raise BacktestError(f"Backtest produced no metrics file: {metrics_path.name}") from e

            artifacts = BacktestArtifacts(
                symbol=symbol,
                timeframe=timeframe,
                metrics=parse_metrics(metrics_text),
                trades=read_csv_records(self._work_dir / f"trades_{symbol}.csv"),
                indicators=read_csv_records(self._work_dir / f"indicators_{symbol}.csv"),
                console_output=output,
            )

        logger.info(
            "backtest_complete",
            symbol=symbol,
            trades=len(artifacts.trades),
            metrics=len(artifacts.metrics),
        )
        return artifacts

    def health(self) -> Dict[str, Any]:
        """
        PURPOSE: Report which backtester components are present.

        Returns:
            Dict with per-component booleans, overall `healthy`, and the paths checked.
        """
        checks = {
            "backtest_exe": Path(self._backtest_exe).is_file(),
            "codegen_exe": Path(self._codegen_exe).is_file(),
            "strategy_dir": self._work_dir.is_dir(),
        }
        return {
            "healthy": all(checks.values()),
            "checks": checks,
            "paths": {
                "backtest_exe": self._backtest_exe,
                "codegen_exe": self._codegen_exe,
                "strategy_dir": str(self._work_dir),
            },
        }
