# domain_scout/crawler/robots.py
"""
Parser for robots.txt rules and the per-run robots policy resolver.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from domain_scout.crawler.fetcher import Fetcher
from domain_scout.crawler.models import RobotsPolicy
from domain_scout.logger import get_logger
from domain_scout.utils import robots_path_allowed

__all__ = ("RobotsTxtRules", "RobotsPolicyResolver")


class RobotsTxtRules:
    """
    Парсит robots.txt (RFC 9309).
    Пустое Disallow считается разрешением всех путей; Sitemap - глобальная директива.
    """

    def __init__(self, text: str) -> None:
        self._groups: List[Dict[str, Any]] = []
        self.sitemaps: List[str] = []
        self._parse(text)

    def can_fetch(self, user_agent: str, path: str) -> bool:
        return robots_path_allowed(self.rules_for(user_agent), path)

    def rules_for(self, user_agent: str) -> List[Tuple[str, str]]:
        """Директивы Allow/Disallow группы, выбранной для *user_agent*."""
        group = self._match_group(user_agent)
        return [] if group is None else list(group["directives"])

    def crawl_delay(self, user_agent: str) -> Optional[float]:
        group = self._match_group(user_agent)
        return None if group is None else group.get("crawl_delay")

    def disallowed_paths(self, user_agent: str) -> List[str]:
        group = self._match_group(user_agent)
        if group is None:
            return []
        return [pattern for directive, pattern in group["directives"] if directive == "disallow"]

    def allowed_paths(self, user_agent: str) -> List[str]:
        group = self._match_group(user_agent)
        if group is None:
            return []
        return [p for d, p in group["directives"] if d == "allow" and p not in ("", "/")]

    def _new_group(self) -> Dict[str, Any]:
        group: Dict[str, Any] = {"agents": [], "directives": [], "crawl_delay": None}
        self._groups.append(group)
        return group

    def _parse(self, text: str) -> None:
        current: Optional[Dict[str, Any]] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "sitemap":
                if val:
                    self.sitemaps.append(val)
            elif key == "user-agent":
                if current is None or (current["directives"] or current["crawl_delay"] is not None):
                    current = self._new_group()
                current["agents"].append(val.lower())
            elif key in ("allow", "disallow"):
                # пустой Disallow разрешает все, пропускаем
                if key == "disallow" and val == "":
                    continue
                if current is None:
                    current = self._new_group()
                    current["agents"].append("*")
                current["directives"].append((key, val))
            elif key == "crawl-delay":
                if current is None:
                    current = self._new_group()
                    current["agents"].append("*")
                try:
                    current["crawl_delay"] = float(val)
                except ValueError:
                    pass

    def _match_group(self, user_agent: str) -> Optional[Dict[str, Any]]:
        ua = user_agent.lower()
        for group in self._groups:
            if any(a != "*" and ua.startswith(a) for a in group["agents"]):
                return group
        for group in self._groups:
            if "*" in group["agents"]:
                return group
        return None


class RobotsPolicyResolver:
    """Fetches ``/robots.txt`` once per domain and turns it into a :class:`RobotsPolicy`.

    Robots absence never blocks discovery: any fetch failure or non-200 answer
    yields the permissive default policy.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        user_agent: str,
        default_delay_ms: int = 0,
    ) -> None:
        self.fetcher = fetcher
        self.user_agent = user_agent
        self.default_delay_ms = default_delay_ms
        self._cache: Dict[str, RobotsPolicy] = {}
        self.logger = get_logger("robots")

    async def resolve(self, domain: str) -> RobotsPolicy:
        key = domain.lower()
        if key not in self._cache:
            self._cache[key] = await self._fetch_policy(key)
        return self._cache[key]

    async def _fetch_policy(self, domain: str) -> RobotsPolicy:
        robots_url = f"https://{domain}/robots.txt"
        result = await self.fetcher.get(robots_url)
        if result.status != 200 or result.content is None:
            self.logger.debug(
                "robots.txt %s -> %s, using permissive policy",
                robots_url, result.status if result.status is not None else result.error,
            )
            return RobotsPolicy.permissive(self.default_delay_ms)
        return self.parse(result.content)

    def parse(self, text: str) -> RobotsPolicy:
        rules = RobotsTxtRules(text)
        directives = rules.rules_for(self.user_agent)
        delay = rules.crawl_delay(self.user_agent)
        # a lone "Disallow: /" closes the whole domain
        allowed = not (
            "/" in rules.disallowed_paths(self.user_agent) and not rules.allowed_paths(self.user_agent)
        )
        policy = RobotsPolicy(
            allowed=allowed,
            crawl_delay_ms=int(delay * 1000) if delay is not None else self.default_delay_ms,
            sitemap_urls=tuple(dict.fromkeys(rules.sitemaps)),
            rules=tuple(directives),
            has_crawl_delay=delay is not None,
        )
        self.logger.info(
            "robots.txt: allowed=%s crawl-delay=%d ms sitemaps=%d disallow=%d",
            policy.allowed, policy.crawl_delay_ms, len(policy.sitemap_urls), len(policy.disallowed_paths),
        )
        return policy
