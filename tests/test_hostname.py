"""Tests for hostname canonicalization."""

from sshbook.hostname import HostnameCanonicalizer, is_ip, is_url_host


class TestHelpers:
    def test_is_ip(self):
        assert is_ip("10.0.0.1")
        assert is_ip("::1")
        assert not is_ip("example.com")
        assert not is_ip("10.0.0")

    def test_is_url_host(self):
        assert is_url_host("example.com")
        assert is_url_host("db-1.internal")
        assert not is_url_host("two words")
        assert not is_url_host("-leading.dash")


class TestCanonicalize:
    def test_resolves_name(self, resolver):
        result = HostnameCanonicalizer(resolver).canonicalize("example.com")
        assert result.hostname == "93.184.216.34"
        assert result.warning is None

    def test_ip_unchanged_without_lookup(self, resolver):
        result = HostnameCanonicalizer(resolver).canonicalize(" 10.1.1.1 ")
        assert result.hostname == "10.1.1.1"
        assert resolver.calls == []

    def test_lookup_disabled(self, resolver):
        result = HostnameCanonicalizer(resolver).canonicalize("example.com", lookup_enabled=False)
        assert result.hostname == "example.com"
        assert resolver.calls == []

    def test_failed_lookup_warns_when_certain(self, resolver):
        result = HostnameCanonicalizer(resolver).canonicalize("nowhere.invalid")
        assert result.hostname == "nowhere.invalid"
        assert "Failed lookup - nowhere.invalid" in result.warning
        assert "pssh.lookup" in result.warning

    def test_failed_lookup_silent_when_uncertain(self, resolver):
        result = HostnameCanonicalizer(resolver).canonicalize("nowhere.invalid", certain=False)
        assert result.hostname == "nowhere.invalid"
        assert result.warning is None

    def test_uncertain_non_host_not_looked_up(self, resolver):
        result = HostnameCanonicalizer(resolver).canonicalize("two words", certain=False)
        assert result.hostname == "two words"
        assert resolver.calls == []

    def test_lookups_are_memoized(self, resolver):
        canonicalizer = HostnameCanonicalizer(resolver)
        canonicalizer.canonicalize("example.com")
        canonicalizer.canonicalize("example.com")
        canonicalizer.canonicalize("nowhere.invalid")
        canonicalizer.canonicalize("nowhere.invalid")
        assert resolver.calls == ["example.com", "nowhere.invalid"]

    def test_default_resolver_is_module_function(self):
        # conftest patches the module resolver to fail every lookup
        result = HostnameCanonicalizer().canonicalize("example.com")
        assert result.warning is not None
