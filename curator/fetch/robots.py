"""robots.txt parsing and access checks."""

import re
from dataclasses import dataclass, field
from urllib.parse import unquote, urlparse


@dataclass(frozen=True)
class RobotsRule:
    """One Allow or Disallow line.

    Attributes:
        allow: True for Allow, False for Disallow.
        path: Path pattern; may contain ``*`` wildcards and a trailing ``$``.
    """

    allow: bool
    path: str

    def matches(self, path: str) -> bool:
        """Check if the rule's pattern matches a URL path."""
        if "*" not in self.path and not self.path.endswith("$"):
            return path.startswith(self.path)
        return _pattern_to_regex(self.path).match(path) is not None


def _pattern_to_regex(pattern: str) -> re.Pattern[str]:
    anchored = pattern.endswith("$")
    body = pattern[:-1] if anchored else pattern
    regex = ".*".join(re.escape(part) for part in body.split("*"))
    return re.compile(regex + ("$" if anchored else ""))


@dataclass
class RobotsGroup:
    """Rules that apply to a set of user agents."""

    agents: list[str] = field(default_factory=list)
    rules: list[RobotsRule] = field(default_factory=list)
    crawl_delay: float | None = None

    def applies_to(self, agent_token: str) -> bool:
        """Check if the group names our agent token (case-insensitive)."""
        token = agent_token.lower()
        return any(token in agent for agent in self.agents)

    @property
    def is_wildcard(self) -> bool:
        """Check if the group applies to every agent."""
        return "*" in self.agents

    def is_allowed(self, path: str) -> bool:
        """Decide access for a path within this group.

        The longest matching pattern wins; on a tie Allow wins.
        A path no rule matches is allowed.
        """
        best: RobotsRule | None = None
        for rule in self.rules:
            if not rule.matches(path):
                continue
            if (
                best is None
                or len(rule.path) > len(best.path)
                or (len(rule.path) == len(best.path) and rule.allow)
            ):
                best = rule
        return best is None or best.allow


class RobotsRules:
    """Parsed robots.txt for one host."""

    def __init__(self, groups: list[RobotsGroup] | None = None) -> None:
        self._groups = groups or []

    @classmethod
    def allow_all(cls) -> "RobotsRules":
        """Rules used when robots.txt is missing or unreadable."""
        return cls()

    @classmethod
    def parse(cls, text: str) -> "RobotsRules":
        """Parse robots.txt content.

        Consecutive ``User-agent`` lines share one group. Rules before the
        first ``User-agent`` line are ignored. An empty ``Disallow`` value
        allows everything and adds no rule.

        Args:
            text: robots.txt body.

        Returns:
            Parsed rules.
        """
        groups: list[RobotsGroup] = []
        current: RobotsGroup | None = None
        in_agent_block = False

        for raw_line in text.splitlines():
            line = raw_line.split("#", 1)[0].strip()
            if ":" not in line:
                continue
            key, _, value = line.partition(":")
            key = key.strip().lower()
            value = value.strip()

            if key == "user-agent":
                if current is None or not in_agent_block:
                    current = RobotsGroup()
                    groups.append(current)
                current.agents.append(value.lower())
                in_agent_block = True
                continue

            in_agent_block = False
            if current is None:
                continue

            if key in ("disallow", "allow"):
                if not value:
                    continue
                current.rules.append(RobotsRule(allow=key == "allow", path=value))
            elif key == "crawl-delay":
                try:
                    delay = float(value)
                except ValueError:
                    continue
                if delay >= 0:
                    current.crawl_delay = delay

        return cls(groups)

    def _applicable_groups(self, agent_token: str) -> list[RobotsGroup]:
        return [
            g for g in self._groups if g.is_wildcard or g.applies_to(agent_token)
        ]

    def is_allowed(self, url: str, agent_token: str) -> bool:
        """Check whether we may fetch a URL.

        A URL is disallowed when either the wildcard group or a group
        naming our agent disallows it.

        Args:
            url: Absolute URL or path.
            agent_token: Our robots identity token.

        Returns:
            True if fetching is allowed.
        """
        parsed = urlparse(url)
        path = unquote(parsed.path) or "/"
        if parsed.query:
            path = f"{path}?{parsed.query}"
        return all(g.is_allowed(path) for g in self._applicable_groups(agent_token))

    def crawl_delay(self, agent_token: str) -> float | None:
        """Crawl delay in seconds, preferring our own group over the wildcard."""
        own = [
            g.crawl_delay
            for g in self._groups
            if g.applies_to(agent_token) and g.crawl_delay is not None
        ]
        if own:
            return own[0]
        wildcard = [
            g.crawl_delay
            for g in self._groups
            if g.is_wildcard and g.crawl_delay is not None
        ]
        return wildcard[0] if wildcard else None
