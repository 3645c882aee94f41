"""Fitness evaluation of Reality camouflage targets.

``quick_check`` is synchronous and offline: format plus static risk.
``DomainChecker.full_check`` additionally runs a local reachability probe
and the panel's remote TLS probe concurrently and turns the evidence into
a 0-100 score and a verdict. It never raises.
"""

import asyncio
import enum
import logging
from typing import Optional, Tuple

from . import risk
from .config import CheckerConfig
from .models import DomainCheckResult, LocalProbeResult, RealityProbeResult, RiskAssessment
from .probes import HttpLocalProbe, LocalProbe, RemoteProbe

FORMAT_ERROR = "✗ Invalid domain format"
QUICK_RISKY = "⚠️ Risk detected"
QUICK_OK = "✓ Format OK"
TLS13_REQUIRED = "✗ Domain unusable: Reality requires the target to support TLS 1.3"
EXCELLENT = "🌟 Excellent! A top-tier Reality camouflage target"
GOOD = "✅ Good! Recommended for production nodes"
RISKY = "⚠️ Warning: technically usable, but exposed to detection risk"
PASSABLE = "⚠ Check passed, but look for a domain with a higher score"
COMMUNICATION_FAILURE = "✗ Check failed: communication error"
COMMUNICATION_FAILURE_DETAILS = "Could not reach the checking service, or the target is fully blocked"


class ProbeError(Exception):
    """Neither probe produced any usable evidence."""


def quick_check(target: str) -> DomainCheckResult:
    """Offline pre-check for as-you-type feedback.

    Examples:
        >>> quick_check("not a domain").is_valid
        False
    """
    host, _ = risk.split_target(target)
    if not risk.is_valid_domain_format(host):
        return DomainCheckResult(is_valid=False, message=FORMAT_ERROR)
    assessment = risk.classify_risk(host)
    return DomainCheckResult(
        is_valid=not assessment.is_risk,
        message=QUICK_RISKY if assessment.is_risk else QUICK_OK,
        warning=assessment.reason,
    )


class DomainChecker:
    """Runs full checks of Reality targets.

    Attributes:
        remote_probe: Async callable asking the panel about TLS 1.3 support,
            or None to run without server-side evidence.
        local_probe: Async callable timing a request from this machine.
        config: Timeouts and scoring weights.
    """

    def __init__(self, remote_probe: RemoteProbe | None = None, *,
                 local_probe: LocalProbe | None = None,
                 config: CheckerConfig | None = None) -> None:
        self.remote_probe = remote_probe
        self.local_probe: LocalProbe = local_probe or HttpLocalProbe()
        self.config: CheckerConfig = config or CheckerConfig()

    quick_check = staticmethod(quick_check)

    async def full_check(self, target: str) -> DomainCheckResult:
        try:
            return await self.evaluate(target)
        except Exception as e:
            logging.warning(f"Full check of {target} failed: {e!r}")
            return self.failure_result(target)

    def failure_result(self, target: str) -> DomainCheckResult:
        """Communication-failure verdict; the static risk warning is kept."""
        host, _ = risk.split_target(target)
        return DomainCheckResult(
            is_valid=False,
            message=COMMUNICATION_FAILURE,
            details=COMMUNICATION_FAILURE_DETAILS,
            warning=risk.classify_risk(host).reason,
        )

    async def evaluate(self, target: str) -> DomainCheckResult:
        """Full check that lets orchestration failures propagate.

        Raises:
            ProbeError: If both probes failed outright.
        """
        host, _ = risk.split_target(target)
        if not risk.is_valid_domain_format(host):
            return DomainCheckResult(is_valid=False, message=FORMAT_ERROR)

        assessment = risk.classify_risk(host)
        premium = risk.is_premium(host)
        local, remote = await self._run_probes(host)
        return self._score(assessment, premium, local, remote)

    async def _run_probes(self, host: str) -> Tuple[Optional[LocalProbeResult], Optional[RealityProbeResult]]:
        """Run both probes concurrently; one failing never cancels the other."""
        local_task = asyncio.wait_for(self.local_probe(host, self.config.timeout), self.config.timeout)
        remote_task = self._remote(host)
        local, remote = await asyncio.gather(local_task, remote_task, return_exceptions=True)

        if isinstance(local, BaseException) and isinstance(remote, BaseException):
            raise ProbeError(f"both probes failed: {local!r}, {remote!r}")
        if isinstance(local, BaseException):
            logging.warning(f"Local probe of {host} failed: {local!r}")
            local = None
        if isinstance(remote, BaseException):
            logging.warning(f"Remote probe of {host} failed: {remote!r}")
            remote = None
        logging.debug(f"Probes for {host}: local={local}, remote={remote}")
        return local, remote

    async def _remote(self, host: str) -> Optional[RealityProbeResult]:
        if self.remote_probe is None:
            return None
        return await asyncio.wait_for(self.remote_probe(host), self.config.effective_remote_timeout)

    def _score(self, assessment: RiskAssessment, premium: bool,
               local: Optional[LocalProbeResult],
               remote: Optional[RealityProbeResult]) -> DomainCheckResult:
        weights = self.config.scoring
        score = 0
        info: list[str] = []

        # TLS 1.3 is a hard gate as well as points
        has_tls13 = bool(remote and remote.has_tls13)
        if has_tls13:
            score += weights.tls13_points
            info.append(f"✓ TLS 1.3 | {remote.key_exchange or 'X25519'} (verified)")
        else:
            info.append(f"✗ {(remote.message if remote else '') or 'TLS 1.3 probe failed'}")

        local_completed = bool(local and local.completed)
        if remote and remote.latency:
            latency, source = remote.latency, "Server"
        elif local_completed:
            latency, source = local.latency_ms, "Local"
        else:
            latency, source = None, None

        if latency is None:
            info.append("⚠ No latency measurement")
        elif latency < weights.fast_latency_ms:
            score += weights.fast_latency_points
            info.append(f"✓ {source} instant response ({latency}ms)")
        elif latency < weights.ok_latency_ms:
            score += weights.ok_latency_points
            info.append(f"✓ Normal response ({latency}ms)")
        else:
            info.append(f"⚠ High latency ({latency}ms)")

        # alternative evidence of a modern HTTP/TLS stack, counted once
        if local_completed or premium or has_tls13:
            score += weights.modern_stack_points
            info.append("✓ H2/H3 compatible")

        if premium:
            score += weights.premium_points
            info.append("✓ Premium target")

        score = max(0, min(100, score) - assessment.penalty)
        is_valid = has_tls13 and not assessment.is_risk and score >= weights.pass_score

        if remote is not None and not remote.has_tls13:
            message = TLS13_REQUIRED
        elif score >= weights.excellent_score:
            message = EXCELLENT
        elif score >= weights.good_score:
            message = GOOD
        elif assessment.is_risk:
            message = RISKY
        else:
            message = PASSABLE

        return DomainCheckResult(
            is_valid=is_valid,
            score=score,
            message=message,
            details=" | ".join(info),
            warning=assessment.reason,
        )


class CheckState(enum.Enum):
    IDLE = "idle"
    QUICK_CHECKED = "quick_checked"
    CHECKING = "checking"
    CHECKED = "checked"
    CHECK_FAILED = "check_failed"


class DomainCheckSession:
    """Check lifecycle of the hostname currently entered by a caller.

    Changing the hostname discards any full-check result. When several full
    checks overlap, only the most recently issued one may store its result,
    whatever order they complete in.
    """

    def __init__(self, checker: DomainChecker) -> None:
        self.checker = checker
        self.hostname: str = ""
        self.state: CheckState = CheckState.IDLE
        self.result: DomainCheckResult | None = None
        self._request = 0

    def set_hostname(self, hostname: str) -> DomainCheckResult:
        self._request += 1
        self.hostname = hostname
        self.result = self.checker.quick_check(hostname)
        self.state = CheckState.QUICK_CHECKED
        return self.result

    async def check(self) -> DomainCheckResult:
        """Run a full check of the current hostname.

        Returns:
            The result of this request. It is stored on the session only if
            no newer request or hostname change happened meanwhile.
        """
        self._request += 1
        request, hostname = self._request, self.hostname
        self.state = CheckState.CHECKING
        try:
            result = await self.checker.evaluate(hostname)
            state = CheckState.CHECKED
        except Exception as e:
            logging.warning(f"Full check of {hostname} failed: {e!r}")
            result = self.checker.failure_result(hostname)
            state = CheckState.CHECK_FAILED

        if request != self._request:
            logging.debug(f"Discarding stale check result for {hostname}")
            return result
        self.state, self.result = state, result
        return result
