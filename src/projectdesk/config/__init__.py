"""Runtime settings and the district configuration table."""

from projectdesk.config.district import DistrictConfig
from projectdesk.config.settings import Settings, load_settings

__all__ = ["DistrictConfig", "Settings", "load_settings"]
