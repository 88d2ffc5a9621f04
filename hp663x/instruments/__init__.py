from .base import InstrumentLink
from .hp663x import HP663x, Measurement

__all__ = ["InstrumentLink", "HP663x", "Measurement"]
