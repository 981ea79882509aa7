"""
User-Agent providers for upstream requests.
"""

import itertools
import threading
from typing import Iterable, Optional

from ..domain.interfaces import UserAgentProvider


DEFAULT_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:125.0) Gecko/20100101 Firefox/125.0",
)


class RotatingUserAgentProvider(UserAgentProvider):
    """Round-robin over a fixed list of browser User-Agents"""

    def __init__(self, user_agents: Optional[Iterable[str]] = None):
        agents = tuple(user_agents or ()) or DEFAULT_USER_AGENTS
        self._cycle = itertools.cycle(agents)
        self._lock = threading.Lock()

    def next_user_agent(self) -> str:
        with self._lock:
            return next(self._cycle)


class FixedUserAgentProvider(UserAgentProvider):
    """Always the same User-Agent"""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENTS[0]):
        self.user_agent = user_agent

    def next_user_agent(self) -> str:
        return self.user_agent
