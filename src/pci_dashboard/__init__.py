"""pci_dashboard package."""

from .association import Association, DistressAssociator
from .condition import color_for, condition_label
from .config import RuntimeConfig, load_runtime_config
from .dashboard import Dashboard, DashboardOutputs, HeadlessMapSurface
from .models import (
    DatasetError,
    DistressPoint,
    DistressType,
    SubSection,
    SuperSection,
    ViewportState,
    YearDataset,
)
from .sync import CameraFollower, PositionSyncEngine
from .synthetic import DatasetCatalog, SyntheticNetworkGenerator
from .tiers import TierScheme, VisibleLayers, ZoomTier, ZoomTierResolver
from .viewport import CameraTarget, FrameQueue, ViewportContinuityController

__all__ = [
    "Association",
    "CameraFollower",
    "CameraTarget",
    "Dashboard",
    "DashboardOutputs",
    "DashboardReportBuilder",
    "DatasetCatalog",
    "DatasetError",
    "DistressAssociator",
    "DistressPoint",
    "DistressType",
    "FrameQueue",
    "HeadlessMapSurface",
    "PositionSyncEngine",
    "RuntimeConfig",
    "SubSection",
    "SuperSection",
    "SyntheticNetworkGenerator",
    "TierScheme",
    "ViewportContinuityController",
    "ViewportState",
    "VisibleLayers",
    "YearDataset",
    "ZoomTier",
    "ZoomTierResolver",
    "color_for",
    "condition_label",
    "load_runtime_config",
]


def __getattr__(name: str) -> object:
    if name == "DashboardReportBuilder":
        try:
            from .reporting import DashboardReportBuilder as _DashboardReportBuilder
        except ImportError as exc:
            raise ImportError(
                "DashboardReportBuilder requires report dependencies. "
                "Install with: pip install pci-dashboard[report]"
            ) from exc
        return _DashboardReportBuilder
    raise AttributeError(name)
