"""Keeps the installed intercept rule in step with the persisted groups."""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from config import BLOCK_PAGE_URL, GROUPS_KEY
from errors import StorageUnavailable
from group_store import Group
from rule_compiler import RuleSet, compile_patterns

logger = logging.getLogger(__name__)


class RequestInterceptor:
    """
    Holds the one installed rule set and answers interception checks.

    install() and uninstall() replace the rule set with a single reference
    assignment; checks take a local reference first, so each check runs
    against one complete rule set.
    """

    def __init__(self, redirect_url: str = BLOCK_PAGE_URL):
        self.redirect_url = redirect_url
        self._rules: Optional[RuleSet] = None

    @property
    def installed(self) -> bool:
        return self._rules is not None

    @property
    def patterns(self) -> frozenset[str]:
        rules = self._rules
        return rules.patterns if rules is not None else frozenset()

    def install(self, patterns: frozenset[str]) -> None:
        """Install a rule for these patterns, replacing any existing one."""
        self._rules = RuleSet(patterns)
        logger.info("Installed intercept rule with %d patterns", len(patterns))

    def uninstall(self) -> None:
        if self._rules is not None:
            self._rules = None
            logger.info("Uninstalled intercept rule")

    def intercept(self, url: str) -> Optional[str]:
        """Return the redirect destination for a blocked URL, else None."""
        rules = self._rules
        if rules is not None and rules.matches_url(url):
            return self.redirect_url
        return None

    def blocks_host(self, host: str) -> bool:
        rules = self._rules
        return rules is not None and rules.matches_host(host)


@dataclass(frozen=True)
class Uninstalled:
    pass


@dataclass(frozen=True)
class Installed:
    patterns: frozenset[str]


State = Union[Uninstalled, Installed]


class RuleStateMachine:
    """
    Two-state machine: Uninstalled, or Installed(patterns).

    Every change event re-reads the groups and recompiles the pattern set.
    If the groups cannot be read, the current rule stays in place.
    """

    def __init__(
        self,
        read_groups: Callable[[], list[Group]],
        interceptor: RequestInterceptor,
        key: str = GROUPS_KEY,
    ):
        self.read_groups = read_groups
        self.interceptor = interceptor
        self.key = key
        self.state: State = Uninstalled()
        self._lock = threading.Lock()

    def on_event(self) -> State:
        """Process one change event (service start or a store change)."""
        with self._lock:
            try:
                groups = self.read_groups()
            except (StorageUnavailable, ValueError) as e:
                logger.warning("Cannot read groups, keeping current rules: %s", e)
                return self.state

            self._transition(compile_patterns(groups))
            return self.state

    def _transition(self, new_patterns: frozenset[str]) -> None:
        state = self.state

        if not new_patterns:
            if isinstance(state, Installed):
                self.interceptor.uninstall()
                self.state = Uninstalled()
            else:
                logger.debug("No websites to block")
            return

        if isinstance(state, Installed) and state.patterns == new_patterns:
            return

        # install() swaps out any existing rule in one step
        self.interceptor.install(new_patterns)
        self.state = Installed(new_patterns)

    def handle_change(self, key: str, old_value: Any, new_value: Any) -> None:
        """Change notification entry point for the store and its watcher."""
        if key != self.key or old_value == new_value:
            return
        self.on_event()
