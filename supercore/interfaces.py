"""Protocol interfaces for the engine's collaborators.

The core never performs I/O itself; outcome feeds, persistence and
external model calls are injected behind these contracts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from supercore.models.outcome import HistoryRecord
    from supercore.signals.ml import MLFeatures, MLModelType, MLResponse


@runtime_checkable
class OutcomeSource(Protocol):
    """Protocol for game-result feeds."""

    async def fetch_latest(self) -> HistoryRecord | None: ...


@runtime_checkable
class StateStore(Protocol):
    """Protocol for key-value persistence of engine state and history (JSON values)."""

    async def get(self, key: str) -> Any: ...

    async def set(self, key: str, value: Any) -> None: ...


@runtime_checkable
class MLPredictionClient(Protocol):
    """Protocol for model-backed prediction calls.

    Implementations may raise; the ML signal wrapper isolates failures.
    ``None`` means the model had no usable answer.
    """

    async def predict(self, features: MLFeatures, model_type: MLModelType) -> MLResponse | None: ...
