"""
Static, synchronous heuristics on a candidate Reality target hostname:
DNS format check, risk classification and premium list membership.
No I/O happens here.
"""

import re
from typing import Tuple

from .models import RiskAssessment

DEFAULT_PORT = 443

_DOMAIN_RE = re.compile(r"^([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,6}$", re.IGNORECASE)

# large providers that rarely get blocked and speak TLS 1.3
PREMIUM_DOMAINS = (
    "microsoft.com",
    "apple.com",
    "cisco.com",
    "icloud.com",
    "azure.microsoft.com",
    "raw.githubusercontent.com",
    "amazon.com",
    "cloudflare.com",
    "steamcommunity.com",
)

RESTRICTED_SUFFIXES = (".cn",)
RESTRICTED_KEYWORDS = ("baidu.com", "qq.com", "gov.cn")
INSTITUTION_KEYWORDS = (".gov", ".edu")
HIGH_RISK_SUFFIXES = (".ru", ".ir", ".kp", ".sy")
CONTENT_KEYWORDS = ("pornhub", "gambling", "casino", "bet")
FINANCE_KEYWORDS = ("bank", "paypal", "stripe", "visa", "mastercard", "chase")

NO_RISK = RiskAssessment(is_risk=False, penalty=0)

# priority order, first match wins
_RULES = (
    (
        lambda d: d.endswith(RESTRICTED_SUFFIXES) or any(k in d for k in RESTRICTED_KEYWORDS),
        40,
        "Regional restriction: mainland China domain. Using a domestic site as a Reality "
        "target causes traffic loop-back and immediate censorship exposure.",
    ),
    (
        lambda d: any(k in d for k in INSTITUTION_KEYWORDS),
        20,
        "Sensitive institution: government and education domains are closely monitored and "
        "their uniform access pattern is easy to single out statistically.",
    ),
    (
        lambda d: d.endswith(HIGH_RISK_SUFFIXES),
        25,
        "Regional risk: this country suffix draws heavy attention from national firewalls.",
    ),
    (
        lambda d: any(k in d for k in CONTENT_KEYWORDS),
        50,
        "Content risk: adult and gambling sites are force-reset on many networks for legal "
        "and censorship reasons.",
    ),
    (
        lambda d: any(k in d for k in FINANCE_KEYWORDS),
        30,
        "Behavioral risk: financial domain. Impersonating a bank draws anomalous traffic "
        "statistics under probing.",
    ),
)


def is_valid_domain_format(host: str) -> bool:
    return bool(_DOMAIN_RE.match(host))


def classify_risk(host: str) -> RiskAssessment:
    """Match a hostname against the known-risk categories.

    Args:
        host: Bare hostname, without port.

    Returns:
        The first matching rule's penalty and narrative, or no risk.

    Examples:
        >>> classify_risk("bank.example.com").penalty
        30
        >>> classify_risk("example.com").is_risk
        False
    """
    domain = host.lower()
    for matches, penalty, reason in _RULES:
        if matches(domain):
            return RiskAssessment(is_risk=True, penalty=penalty, reason=reason)
    return NO_RISK


def is_premium(host: str) -> bool:
    host = host.lower()
    return any(host.endswith(domain) for domain in PREMIUM_DOMAINS)


def split_target(target: str) -> Tuple[str, int]:
    """Normalize ``host[:port]`` input into ``(host, port)``; port defaults to 443.

    Surrounding whitespace is dropped and an empty port (``"a.com:"``)
    means the default. A port that is not a number is kept as part of the
    host, which then fails the format check.
    """
    target = target.strip()
    host, sep, port = target.partition(":")
    if not sep or not port:
        return host, DEFAULT_PORT
    if port.isascii() and port.isdigit():
        return host, int(port)
    return target, DEFAULT_PORT
