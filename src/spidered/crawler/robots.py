"""
robots.txt loading and the allow/deny gate used while crawling.

A policy that could not be loaded is represented by None. What None means
depends on the crawl's strictness: a permissive crawl treats it as "allow
everything", a strict crawl as "deny everything". In practice a strict crawl
never reaches the gate without a policy, because the scheduler aborts when
robots.txt is unavailable.
"""

from typing import Optional
from urllib.parse import urljoin
from urllib.robotparser import RobotFileParser

from ..utils.errors import RobotsUnavailableError


def robots_url(root_url: str) -> str:
    """URL of the robots.txt file for a crawl root."""
    return urljoin(root_url, '/robots.txt')


def load_policy(status_code: int, body: bytes, url: str = '') -> RobotFileParser:
    """
    Build a policy from a robots.txt response.

    Follows RobotFileParser.read(): 401 and 403 deny everything, any other
    4xx means the site publishes no rules and everything is allowed.

    Raises:
        RobotsUnavailableError: on a server error or an undecodable body
    """
    rp = RobotFileParser()
    rp.set_url(url)

    if status_code in (401, 403):
        rp.disallow_all = True
    elif 400 <= status_code < 500:
        rp.allow_all = True
    elif 200 <= status_code < 300:
        try:
            content = body.decode('utf-8')
        except UnicodeDecodeError as e:
            raise RobotsUnavailableError(url, f"robots.txt is not valid UTF-8: {e}") from e
        rp.parse(content.splitlines())
    else:
        raise RobotsUnavailableError(url, f"unexpected response status {status_code}")

    # can_fetch() answers False until the policy has been marked as read
    rp.modified()
    return rp


def is_allowed(policy: Optional[RobotFileParser], path: str, user_agent: str, *,
               ignore_robots: bool = False, strict: bool = False) -> bool:
    """Check whether a path may be fetched by the given user agent."""
    if ignore_robots:
        return True
    if policy is None:
        return not strict
    return policy.can_fetch(user_agent, path)
