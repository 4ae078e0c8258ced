"""
Simulation Engine — FraudGuard
Generates a live stream of loan transactions on a fixed interval, either
random or replayed from the loaded Home Credit sample, and keeps rolling
fraud statistics.
"""

import asyncio
from collections import deque
from datetime import datetime, timezone

import numpy as np
from loguru import logger

from fraudguard.config import SIM_INTERVAL
from fraudguard.data.store import DataStore

BUFFER_SIZE      = 50    # most recent transactions kept
HISTORY_SIZE     = 20    # fraud-rate points kept
RATE_WINDOW      = 20    # transactions per fraud-rate point
RATE_EVERY       = 5     # ticks between fraud-rate points

SIM_CONTRACT_TYPES = ["Cash loans", "Revolving loans"]
SIM_INCOME_TYPES   = ["Working", "Commercial associate", "Pensioner", "State servant"]


class SimulationEngine:
    """
    Bounded, tick-driven transaction simulator.

    Usage
    -----
    engine = SimulationEngine(store)
    engine.tick()                   # one step, synchronous
    await engine.start("kaggle")    # background ticks every `interval` s
    await engine.stop()
    await engine.reset()
    engine.snapshot()               # JSON-ready state
    """

    def __init__(
        self,
        store:    DataStore | None = None,
        rng:      np.random.Generator | None = None,
        interval: float = SIM_INTERVAL,
    ) -> None:
        self._store    = store
        self._rng      = rng if rng is not None else np.random.default_rng()
        self._interval = interval
        self._task: asyncio.Task | None = None

        self.mode = "random"
        self.transactions: deque[dict] = deque(maxlen=BUFFER_SIZE)
        self.fraud_rate_history: deque[dict] = deque(maxlen=HISTORY_SIZE)
        self._reset_counters()

    def _reset_counters(self) -> None:
        self.total        = 0
        self.fraudulent   = 0
        self.avg_score    = 0.0
        self._tick_count  = 0
        self._kaggle_idx  = 0

    # ------------------------------------------------------------------ #
    # State                                                                #
    # ------------------------------------------------------------------ #

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def kaggle_available(self) -> bool:
        return bool(self._store and self._store.data_loaded and self._store.applications)

    @property
    def fraud_rate(self) -> float:
        return round(self.fraudulent / self.total * 100, 1) if self.total else 0.0

    def snapshot(self) -> dict:
        return {
            "running":          self.is_running,
            "mode":             self.mode,
            "kaggleAvailable":  self.kaggle_available,
            "stats": {
                "total":         self.total,
                "fraudulent":    self.fraudulent,
                "genuine":       self.total - self.fraudulent,
                "avgFraudScore": self.avg_score,
                "fraudRate":     self.fraud_rate,
            },
            "transactions":     list(self.transactions),
            "fraudRateHistory": list(self.fraud_rate_history),
        }

    # ------------------------------------------------------------------ #
    # Generation                                                           #
    # ------------------------------------------------------------------ #

    def _next_kaggle(self, now: datetime) -> dict:
        apps = self._store.applications
        app = apps[self._kaggle_idx % len(apps)]
        self._kaggle_idx += 1
        return {
            "id":           f"SIM-{app['SK_ID_CURR']}",
            "timestamp":    now.isoformat(),
            "amount":       app["AMT_CREDIT"],
            "contractType": app["NAME_CONTRACT_TYPE"],
            "incomeType":   app["NAME_INCOME_TYPE"],
            "isFraud":      app["TARGET"] == 1 or app["RISK_SCORE"] > 60,
            "fraudScore":   app["RISK_SCORE"] / 100,
            "extSource2":   app["EXT_SOURCE_2"],
            "creditRatio":  app["CREDIT_INCOME_RATIO"],
        }

    def _next_random(self, now: datetime) -> dict:
        rng = self._rng
        is_fraud = bool(rng.random() > 0.88)
        if is_fraud:
            amount = rng.random() * 1_500_000 + 200_000
            score  = 0.6 + rng.random() * 0.4
        else:
            amount = rng.random() * 500_000 + 50_000
            score  = rng.random() * 0.4
        return {
            "id":           f"SIM-{self._tick_count:06d}",
            "timestamp":    now.isoformat(),
            "amount":       round(amount),
            "contractType": SIM_CONTRACT_TYPES[int(rng.integers(len(SIM_CONTRACT_TYPES)))],
            "incomeType":   SIM_INCOME_TYPES[int(rng.integers(len(SIM_INCOME_TYPES)))],
            "isFraud":      is_fraud,
            "fraudScore":   float(score),
            "extSource2":   float(rng.random()),
            "creditRatio":  float(2 + rng.random() * 6),
        }

    def tick(self) -> dict:
        """Generate one transaction, update stats and, every 5th tick, the fraud-rate series."""
        self._tick_count += 1
        now = datetime.now(timezone.utc)

        if self.mode == "kaggle" and self.kaggle_available:
            txn = self._next_kaggle(now)
        else:
            txn = self._next_random(now)

        self.transactions.appendleft(txn)

        self.total += 1
        self.fraudulent += int(txn["isFraud"])
        self.avg_score += (txn["fraudScore"] - self.avg_score) / self.total

        if self._tick_count % RATE_EVERY == 0:
            recent = list(self.transactions)[:RATE_WINDOW]
            rate = sum(1 for t in recent if t["isFraud"]) / len(recent) * 100
            self.fraud_rate_history.append({
                "time":  now.strftime("%H:%M:%S"),
                "rate":  round(rate, 1),
                "count": self._tick_count,
            })

        return txn

    # ------------------------------------------------------------------ #
    # Control                                                              #
    # ------------------------------------------------------------------ #

    def set_mode(self, mode: str) -> None:
        if mode not in ("random", "kaggle"):
            raise ValueError(f"Unknown simulation mode: {mode!r}")
        self.mode = mode

    async def _run(self) -> None:
        while True:
            try:
                self.tick()
            except Exception:
                logger.exception(f"Simulation tick failed | mode={self.mode}")
            await asyncio.sleep(self._interval)

    async def start(self, mode: str | None = None) -> None:
        """Start background ticking. No-op if already running."""
        if mode is not None:
            self.set_mode(mode)
        if self.is_running:
            return
        if self.mode == "kaggle" and not self.kaggle_available:
            logger.warning("Kaggle mode requested but no data loaded — using random transactions")
        self._task = asyncio.create_task(self._run())
        logger.info(f"Simulation started | mode={self.mode} interval={self._interval}s")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info(f"Simulation stopped after {self.total} transactions")

    async def reset(self) -> None:
        await self.stop()
        self.transactions.clear()
        self.fraud_rate_history.clear()
        self._reset_counters()
