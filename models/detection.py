from dataclasses import dataclass
from typing import Optional

from core.version_utils import Version
from models.reference import UNKNOWN_KEY
from models.taxonomy import Browser, OperatingSystem


@dataclass(frozen=True)
class UserAgentDetection:
    """Browser and operating system detected for one user agent."""
    user_agent: str
    browser: Browser
    operating_system: OperatingSystem
    version: Optional[Version] = None  # Browser version, if its pattern matched

    @property
    def is_unknown_browser(self) -> bool:
        return self.browser.key == UNKNOWN_KEY and self.browser.is_root

    @property
    def is_unknown_operating_system(self) -> bool:
        return self.operating_system.key == UNKNOWN_KEY and self.operating_system.is_root
