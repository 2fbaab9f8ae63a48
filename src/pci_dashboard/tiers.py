from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable

from .logging_config import get_logger, log_event


DETAIL_ZOOM = 13
INSPECTION_ZOOM = 15

_LOGGER = get_logger("pci_dashboard.tiers")


class ZoomTier(IntEnum):
    OVERVIEW = 0
    DETAIL = 1
    INSPECTION = 2


class TierScheme(str, Enum):
    THREE_TIER = "three"
    # Deployed simplification: detail and inspection collapse into one tier.
    TWO_TIER = "two"


@dataclass(frozen=True)
class VisibleLayers:
    super_sections: bool = True
    sections: bool = False
    distress: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {
            "superSections": self.super_sections,
            "sections": self.sections,
            "distress": self.distress,
        }


_TIER_LAYERS: dict[ZoomTier, VisibleLayers] = {
    ZoomTier.OVERVIEW: VisibleLayers(True, False, False),
    ZoomTier.DETAIL: VisibleLayers(True, True, False),
    ZoomTier.INSPECTION: VisibleLayers(True, True, True),
}


def tier_for_zoom(zoom: float, scheme: TierScheme = TierScheme.THREE_TIER) -> ZoomTier:
    value = float(zoom)
    if math.isnan(value) or value < DETAIL_ZOOM:
        return ZoomTier.OVERVIEW
    if scheme is TierScheme.TWO_TIER or value < INSPECTION_ZOOM:
        return ZoomTier.DETAIL
    return ZoomTier.INSPECTION


def layers_for_tier(tier: ZoomTier) -> VisibleLayers:
    return _TIER_LAYERS[ZoomTier(tier)]


TierListener = Callable[[int], None]


class ZoomTierResolver:
    """Turns zoom notifications into tier transitions.

    The tier is recomputed from scratch on every notification. Listeners only
    hear about actual transitions, so repeated notifications at one zoom are
    silent.
    """

    def __init__(
        self,
        scheme: TierScheme = TierScheme.THREE_TIER,
        listeners: list[TierListener] | None = None,
    ) -> None:
        self.scheme = TierScheme(scheme)
        self._listeners: list[TierListener] = list(listeners or [])
        self._tier: ZoomTier | None = None
        self._layers = layers_for_tier(ZoomTier.OVERVIEW)

    @property
    def tier(self) -> ZoomTier:
        return ZoomTier.OVERVIEW if self._tier is None else self._tier

    @property
    def visible_layers(self) -> VisibleLayers:
        return self._layers

    def subscribe(self, listener: TierListener) -> None:
        self._listeners.append(listener)

    def resolve(self, zoom: float) -> ZoomTier:
        return tier_for_zoom(zoom, self.scheme)

    def on_zoom_changed(self, zoom: float) -> bool:
        """Returns True when the notification caused a tier transition."""
        tier = self.resolve(zoom)
        if tier == self._tier:
            return False

        previous = self._tier
        self._tier = tier
        self._layers = layers_for_tier(tier)
        log_event(
            _LOGGER,
            "debug",
            "tier_changed",
            zoom=zoom,
            previous=None if previous is None else int(previous),
            tier=int(tier),
            scheme=self.scheme.value,
        )
        for listener in list(self._listeners):
            listener(int(tier))
        return True
