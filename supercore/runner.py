"""Poll loop — feed the newest result into the engine and persist the outcome.

Each tick fetches the latest resolved period, merges it into the stored
history, runs one cycle and writes the new state and history back.
"""

from __future__ import annotations

import asyncio
import contextlib
import random
import signal
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from supercore.core.logging import get_logger
from supercore.data.state_store import HISTORY_KEY, STATE_KEY
from supercore.models.outcome import HistoryRecord, RecordStatus

if TYPE_CHECKING:
    from supercore.config.loader import ConfigLoader
    from supercore.engine.orchestrator import CycleOrchestrator
    from supercore.interfaces import MLPredictionClient, OutcomeSource, StateStore
    from supercore.models.prediction import CycleResult

log = get_logger(__name__)


def merge_result(
    history: list[HistoryRecord],
    record: HistoryRecord,
    limit: int = 500,
) -> tuple[list[HistoryRecord], bool]:
    """Fold a fetched result into a newest-first history.

    A pending record for the same period receives the actual and stays
    pending so the next cycle can score it. A period nobody predicted is
    inserted as skipped. A period that is already resolved is left alone.

    Returns:
        The new history (capped at ``limit``) and whether anything changed.
    """
    for i, existing in enumerate(history):
        if existing.period != record.period:
            continue
        if existing.is_resolved:
            return history, False
        updated = existing.model_copy(update={"actual": record.actual})
        return [*history[:i], updated, *history[i + 1 :]][:limit], True

    inserted = record.model_copy(update={"status": RecordStatus.SKIPPED})
    return [inserted, *history][:limit], True


def decode_history(raw: Any) -> list[HistoryRecord]:
    """Stored history payload to records; unreadable entries are dropped."""
    if not isinstance(raw, list):
        return []
    records: list[HistoryRecord] = []
    for item in raw:
        try:
            records.append(HistoryRecord.model_validate(item))
        except ValidationError:
            log.warning("history_record_invalid", item=str(item)[:120], action="dropped")
    return records


def encode_history(history: list[HistoryRecord]) -> list[dict[str, Any]]:
    return [record.model_dump(mode="json") for record in history]


class ResultPoller:
    """Drives the orchestrator from a live result feed."""

    def __init__(
        self,
        config: ConfigLoader,
        source: OutcomeSource,
        store: StateStore,
        orchestrator: CycleOrchestrator,
        rng: random.Random | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self._orchestrator = orchestrator
        self._rng = rng or random.Random()
        self._poll_interval = float(config.get("data.poll_interval_seconds", 20.0))
        self._history_limit = int(config.get("data.history_limit", 500))
        self._running = False
        self._shutdown_event = asyncio.Event()

    async def start(self) -> int:
        """Install signal handlers and poll until shutdown."""
        self._running = True
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._request_shutdown, sig)

        log.info("poller_start", poll_interval=self._poll_interval)
        try:
            await self._main_loop()
        except asyncio.CancelledError:
            log.info("poller_cancelled")
        finally:
            await self._cleanup()
        return 0

    def _request_shutdown(self, sig: signal.Signals) -> None:
        log.info("shutdown_requested", signal=sig.name)
        self._running = False
        self._shutdown_event.set()

    async def _main_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except Exception:
                log.exception("tick_error")

            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=self._poll_interval)
                break
            except TimeoutError:
                continue

    async def tick(self) -> CycleResult | None:
        """One poll. Returns the cycle result, or None when nothing new arrived."""
        latest = await self._source.fetch_latest()
        if latest is None:
            log.debug("poll_empty")
            return None

        history = decode_history(await self._store.get(HISTORY_KEY))
        history, changed = merge_result(history, latest, self._history_limit)
        if not changed:
            log.debug("poll_no_new_result", period=latest.period)
            return None

        prior = await self._store.get(STATE_KEY)
        result = await self._orchestrator.run_cycle(history, prior, rng=self._rng)
        await self._store.set(STATE_KEY, result.state.to_payload())
        await self._store.set(HISTORY_KEY, encode_history(result.history[: self._history_limit]))

        prediction = result.prediction
        log.info(
            "prediction_emitted",
            period=prediction.period,
            decision=prediction.final_decision.value,
            confidence=round(prediction.final_confidence, 4),
            level=prediction.confidence_level,
            forced=prediction.is_forced_prediction,
            regime=prediction.macro_regime,
        )
        return result

    async def _cleanup(self) -> None:
        log.info("poller_shutdown")
        self._running = False
        for resource in (self._source, self._store):
            close = getattr(resource, "close", None)
            if close is not None:
                with contextlib.suppress(Exception):
                    await close()


def build_ml_client(config: ConfigLoader) -> MLPredictionClient | None:
    """Model client named by ``ml.backend``; None selects the built-in rule model."""
    backend = str(config.get("ml.backend", "local"))
    if backend == "generative":
        from supercore.data.generative_client import GenerativeModelClient

        return GenerativeModelClient(
            endpoint=str(config.get("ml.endpoint", "https://generativelanguage.googleapis.com/v1beta/models")),
            model=str(config.get("ml.model", "gemini-2.0-flash")),
            timeout=float(config.get("ml.timeout_seconds", 8.0)),
        )
    return None


def build_store(config: ConfigLoader) -> StateStore:
    backend = str(config.get("data.store", "file"))
    if backend == "redis":
        from supercore.data.state_store import RedisStateStore

        return RedisStateStore(url=config.get("data.redis_url"))
    from supercore.data.state_store import FileStateStore

    return FileStateStore(str(config.get("data.state_dir", "state")))


def run_poller(
    config_dir: str = "config",
    env: str | None = None,
    preset: str | None = None,
    seed: int | None = None,
) -> int:
    """Run the live poll loop.

    Args:
        config_dir: Path to config directory.
        env: Environment name.
        preset: Optional tuning preset name.
        seed: Optional RNG seed for reproducible forced decisions.

    Returns:
        Exit code (0 = success).
    """
    from supercore.config.loader import ConfigLoader
    from supercore.data.game_client import GameResultClient
    from supercore.engine.orchestrator import CycleOrchestrator

    config = ConfigLoader(config_dir=config_dir, env=env)
    config.load()
    if preset:
        config.load_preset(preset)
    config.validate_ranges()

    poller = ResultPoller(
        config=config,
        source=GameResultClient(str(config.require("data.api_url"))),
        store=build_store(config),
        orchestrator=CycleOrchestrator(config, ml_client=build_ml_client(config)),
        rng=random.Random(seed),
    )
    return asyncio.run(poller.start())
