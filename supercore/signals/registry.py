"""Signal registry: the fixed roster of generators and their base weights."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supercore.signals.base import SignalGenerator


@dataclass(frozen=True)
class GeneratorSpec:
    name: str
    base_weight: float
    func: SignalGenerator


_REGISTRY: dict[str, GeneratorSpec] = {}


def register(name: str, base_weight: float) -> Any:
    """Decorator to register a signal generator with its base weight.

    Usage:
        @register("rsi", base_weight=0.08)
        def rsi_signal(ctx: GeneratorContext, base_weight: float) -> Signal | None:
            ...
    """

    def decorator(func: SignalGenerator) -> SignalGenerator:
        _REGISTRY[name] = GeneratorSpec(name=name, base_weight=base_weight, func=func)
        return func

    return decorator


def roster() -> list[GeneratorSpec]:
    """Registered generators in registration order."""
    return list(_REGISTRY.values())


def load_builtin() -> list[GeneratorSpec]:
    """Import the built-in generator modules so they register, then return the roster."""
    import supercore.signals.context_fusion
    import supercore.signals.patterns
    import supercore.signals.technical  # noqa: F401

    return roster()
