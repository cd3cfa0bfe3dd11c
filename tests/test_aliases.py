"""Tests for alias resolution."""

from sshbook.aliases import build_alias_map, host_aliases
from sshbook.types import HostRecord


def host(**pssh) -> HostRecord:
    return HostRecord(ssh={"hostname": "10.0.0.1"}, pssh=pssh)


class TestHostAliases:
    def test_key_is_default_alias(self):
        assert host_aliases("web", host()) == ["web"]

    def test_primary_then_additional_then_key(self):
        record = host(alias="www", alias_additional=["w", "www"])
        assert host_aliases("web", record) == ["www", "w", "web"]


class TestBuildAliasMap:
    def test_maps_every_alias(self):
        result = build_alias_map({"web": host(alias_additional=["w"]), "db": host()})
        assert result.aliases == {"db": "db", "web": "web", "w": "web"}
        assert result.collisions == []

    def test_first_key_in_sorted_order_wins(self):
        hosts = {"web2": host(alias="web"), "web": host()}
        result = build_alias_map(hosts)

        assert result.aliases["web"] == "web"
        assert result.aliases["web2"] == "web2"
        assert len(result.collisions) == 1
        collision = result.collisions[0]
        assert (collision.alias, collision.existing_key, collision.key) == ("web", "web", "web2")
        assert "Duplicate alias" in collision.message
