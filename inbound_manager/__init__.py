"""Inbound listener definitions and Reality target checks for a proxy panel."""

from .api import PanelClient
from .config import CheckerConfig, ScoringConfig, load_checker_config, load_panel_config
from .domain_checker import CheckState, DomainChecker, DomainCheckSession, quick_check
from .draft import InboundDraft
from .models import DomainCheckResult, InboundConfig, RealityProbeResult, RiskAssessment
from .probes import HttpLocalProbe, panel_probe
from .risk import classify_risk, is_premium, is_valid_domain_format
from .synthesizer import FieldError, synthesize

__all__ = [
    "CheckState",
    "CheckerConfig",
    "DomainCheckResult",
    "DomainCheckSession",
    "DomainChecker",
    "FieldError",
    "HttpLocalProbe",
    "InboundConfig",
    "InboundDraft",
    "PanelClient",
    "RealityProbeResult",
    "RiskAssessment",
    "ScoringConfig",
    "classify_risk",
    "is_premium",
    "is_valid_domain_format",
    "load_checker_config",
    "load_panel_config",
    "panel_probe",
    "quick_check",
    "synthesize",
]
