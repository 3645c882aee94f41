"""Unit tests for the static domain heuristics."""
import pytest

from inbound_manager.risk import classify_risk, is_premium, is_valid_domain_format, split_target


class TestClassifyRisk:

    def test_financial_brand(self):
        result = classify_risk("bank.example.com")
        assert result.is_risk
        assert result.penalty == 30
        assert result.reason

    def test_clean_domain(self):
        result = classify_risk("example.com")
        assert not result.is_risk
        assert result.penalty == 0
        assert result.reason is None

    @pytest.mark.parametrize("host, penalty", [
        ("www.baidu.com", 40),
        ("shop.example.cn", 40),
        ("whitehouse.gov", 20),
        ("mit.edu", 20),
        ("yandex.ru", 25),
        ("example.ir", 25),
        ("pornhub.com", 50),
        ("casino-royale.com", 50),
        ("paypal.com", 30),
        ("WWW.PAYPAL.COM", 30),
    ])
    def test_categories(self, host, penalty):
        assert classify_risk(host).penalty == penalty

    @pytest.mark.parametrize("host, penalty", [
        ("bank.cn", 40),          # restricted region before finance
        ("casino.ru", 25),        # high-risk suffix before content
        ("paypal.edu", 20),       # institution before finance
    ])
    def test_first_match_wins(self, host, penalty):
        assert classify_risk(host).penalty == penalty


class TestFormat:

    @pytest.mark.parametrize("host", ["www.microsoft.com", "a.io", "x-1.example.travel", "A.COM"])
    def test_valid(self, host):
        assert is_valid_domain_format(host)

    @pytest.mark.parametrize("host", [
        "not a domain", "localhost", "-bad.com", "bad-.com", "a.b.verylongtld", "1.2.3.4", "", "a..com",
        f"{'a' * 64}.com",
    ])
    def test_invalid(self, host):
        assert not is_valid_domain_format(host)


class TestHelpers:

    def test_premium(self):
        assert is_premium("www.apple.com")
        assert is_premium("Azure.Microsoft.com")
        assert not is_premium("example.com")

    @pytest.mark.parametrize("target, expected", [
        ("a.com", ("a.com", 443)),
        ("a.com:8443", ("a.com", 8443)),
        ("  a.com  ", ("a.com", 443)),
        ("a.com:https", ("a.com:https", 443)),
        ("a.com:", ("a.com", 443)),
        ("a.com:\u0668\u0664\u0664\u0663", ("a.com:\u0668\u0664\u0664\u0663", 443)),
    ])
    def test_split_target(self, target, expected):
        assert split_target(target) == expected
