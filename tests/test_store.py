"""Tests for the host store."""

import json

import pytest

from sshbook.errors import NotExportableError, SSHConfigSyntaxError, StoreInvariantError, StoreLoadError
from sshbook.merge import HostSearch


@pytest.fixture
def two_users(make_store):
    return make_store(
        {
            "hosts": {
                "web": {"ssh": {"hostname": "10.0.0.1", "user": "bob", "port": "22"}},
                "web-admin": {"ssh": {"hostname": "10.0.0.1", "user": "alice", "port": "2222"}},
                "db": {"ssh": {"hostname": "10.0.0.9", "user": "pg"}, "pssh": {"alias_additional": ["pg"]}},
            }
        }
    )


class TestLoading:
    def test_read_json_merges_files_in_order(self, make_store, tmp_path):
        base = tmp_path / "base.json"
        local = tmp_path / "local.json"
        base.write_text(json.dumps({"ssh": {"ServerAliveInterval": 30}, "hosts": {"web": {"ssh": {"user": "bob"}}}}))
        local.write_text(json.dumps({"ssh": {"serveraliveinterval": "60"}, "hosts": {"web": {"ssh": {"port": 22}}}}))

        store = make_store()
        store.read_json([base, tmp_path / "missing.json", local])

        assert store.global_options == {"serveraliveinterval": "60"}
        assert store.hosts["web"].ssh == {"user": "bob", "port": "22"}

    def test_read_json_missing_file_gives_empty_store(self, make_store, tmp_path):
        store = make_store()
        store.read_json(tmp_path / "nothing.json")
        assert store.hosts == {}

    def test_read_json_broken_file(self, make_store, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")
        with pytest.raises(StoreLoadError):
            make_store().read_json(path)

    def test_empty_lists_read_as_empty_maps(self, make_store):
        store = make_store({"ssh": [], "pssh": [], "hosts": {"web": {"ssh": {"hostname": "10.0.0.1"}, "pssh": []}}})
        assert store.global_options == {}
        assert store.hosts["web"].pssh.alias is None

    def test_host_must_be_object(self, make_store):
        with pytest.raises(StoreInvariantError, match="'web'"):
            make_store({"hosts": {"web": "10.0.0.1"}})

    def test_read_ssh_attaches_options_to_host(self, make_store, tmp_path):
        path = tmp_path / "config"
        path.write_text("Compression yes\n\nHost web1\n    HostName example.com\n    user deploy\n")

        store = make_store()
        store.read_ssh(path)

        assert store.hosts["web1"].ssh == {"hostname": "example.com", "user": "deploy"}
        assert store.global_options == {"compression": "yes"}

    def test_read_ssh_warns_about_unknown_keys(self, make_store, reporter, tmp_path):
        path = tmp_path / "config"
        path.write_text("Host web1\n    MadeUpOption 1\n")

        make_store().read_ssh(path)

        assert any("MadeUpOption" in warning for warning in reporter.warnings)

    def test_read_ssh_syntax_error(self, make_store, tmp_path):
        path = tmp_path / "config"
        path.write_text("Host web1\nnonsense\n")
        with pytest.raises(SSHConfigSyntaxError, match="line 2"):
            make_store().read_ssh(path)

    def test_read_ssh_non_utf8_names_file(self, make_store, tmp_path):
        path = tmp_path / "config"
        path.write_bytes(b"Host caf\xe9\n    User bob\n")
        with pytest.raises(StoreLoadError, match="config"):
            make_store().read_ssh(path)


class TestClean:
    def test_normalizes_hosts(self, make_store):
        store = make_store({"hosts": {"web": {"ssh": {"hostname": "example.com", "user": " bob "}}}})

        assert store.clean()
        host = store.hosts["web"]
        assert host.ssh == {"hostname": "93.184.216.34", "port": "22", "user": "bob"}
        assert host.pssh.alias == "web"

    def test_is_exportable_requires_clean(self, make_store):
        store = make_store({"hosts": {}})
        with pytest.raises(RuntimeError):
            store.is_exportable()
        store.clean()
        assert store.is_exportable()

    def test_idempotent(self, make_store):
        store = make_store(
            {
                "hosts": {
                    "web": {"ssh": {"hostname": "example.com", "port": "0"}, "pssh": {"alias": "www site"}},
                    "db": {"ssh": {"hostname": "10.0.0.9"}, "pssh": {"alias_additional": ["pg", "pg", "postgres"]}},
                }
            }
        )
        store.clean()
        first = store.to_dict()
        store.clean()
        assert store.to_dict() == first

    def test_bad_port_not_exportable(self, make_store, reporter):
        store = make_store({"hosts": {"web": {"ssh": {"hostname": "10.0.0.1", "port": "70000"}}}})

        assert not store.clean()
        assert store.hosts["web"].ssh["port"] == "70000"
        assert any("Host 'web' port" in warning for warning in reporter.warnings)

    def test_clean_port_opt_out(self, make_store):
        store = make_store(
            {"hosts": {"web": {"ssh": {"hostname": "10.0.0.1", "port": "70000"}, "pssh": {"clean_port": "no"}}}}
        )
        assert store.clean()
        assert store.hosts["web"].ssh["port"] == "70000"

    def test_failed_lookup_not_exportable(self, make_store, reporter):
        store = make_store({"hosts": {"web": {"ssh": {"hostname": "nowhere.invalid"}}}})

        assert not store.clean()
        assert any("Failed lookup - nowhere.invalid" in warning for warning in reporter.warnings)

    def test_lookup_opt_out(self, make_store, resolver):
        store = make_store({"hosts": {"web": {"ssh": {"hostname": "nowhere.invalid"}, "pssh": {"lookup": "no"}}}})

        assert store.clean()
        assert store.hosts["web"].ssh["hostname"] == "nowhere.invalid"
        assert resolver.calls == []

    def test_keys_follow_alias(self, make_store):
        store = make_store({"hosts": {"old": {"ssh": {"hostname": "10.0.0.1"}, "pssh": {"alias": "new"}}}})

        assert store.clean()
        assert list(store.hosts) == ["new"]

    def test_rename_onto_taken_key_not_exportable(self, make_store):
        store = make_store(
            {
                "hosts": {
                    "a": {"ssh": {"hostname": "10.0.0.1"}, "pssh": {"alias": "b"}},
                    "b": {"ssh": {"hostname": "10.0.0.2"}},
                }
            }
        )
        assert not store.clean()
        assert set(store.hosts) == {"a", "b"}

    def test_alias_collision_keeps_first_key(self, make_store, reporter):
        store = make_store(
            {
                "hosts": {
                    "web": {"ssh": {"hostname": "10.0.0.1"}},
                    "web2": {"ssh": {"hostname": "10.0.0.2"}, "pssh": {"alias": "web"}},
                }
            }
        )

        assert not store.clean()
        assert store.get_host_key("web") == "web"
        assert any("Duplicate alias" in warning for warning in reporter.warnings)

    def test_collision_before_clean_leaves_exportable_unset(self, make_store):
        store = make_store(
            {
                "hosts": {
                    "web": {"ssh": {"hostname": "10.0.0.1"}},
                    "web2": {"ssh": {"hostname": "10.0.0.2"}, "pssh": {"alias": "web"}},
                }
            }
        )

        store.get_alias_map()

        with pytest.raises(RuntimeError):
            store.is_exportable()

    def test_hosts_sorted(self, make_store):
        store = make_store({"hosts": {"b": {"ssh": {"hostname": "10.0.0.2"}}, "a": {"ssh": {"hostname": "10.0.0.1"}}}})
        store.clean()
        assert list(store.hosts) == ["a", "b"]


class TestWriting:
    def test_json_round_trip(self, make_store, tmp_path):
        store = make_store(
            {
                "ssh": {"compression": "yes"},
                "pssh": {"team_keys_identifier": "ops"},
                "hosts": {
                    "web": {
                        "ssh": {"hostname": "example.com", "identityfile": "~/.ssh/id_work"},
                        "pssh": {"alias_additional": ["w"], "clean_user": "no"},
                    },
                },
            }
        )
        store.clean()
        path = tmp_path / "hosts.json"
        store.write_json(path)

        reread = make_store()
        reread.read_json(path)

        assert reread.to_dict() == store.to_dict()
        assert reread.hosts["web"].pssh.model_extra == {"clean_user": "no"}

    def test_hjson_round_trip(self, make_store, tmp_path):
        store = make_store({"hosts": {"web": {"ssh": {"hostname": "10.0.0.1", "user": "bob"}}}})
        store.clean()
        path = tmp_path / "hosts.hjson"
        store.write_json(path)

        reread = make_store()
        reread.read_json(path)

        assert reread.to_dict() == store.to_dict()

    def test_write_ssh(self, make_store, tmp_path):
        store = make_store(
            {
                "ssh": {"serveraliveinterval": "60"},
                "hosts": {"web": {"ssh": {"hostname": "10.0.0.1", "user": "deploy"}, "pssh": {"alias_additional": ["w"]}}},
            }
        )
        path = tmp_path / "ssh" / "config"

        store.write_ssh(path)

        text = path.read_text()
        block = "    HostName 10.0.0.1\n    Port 22\n    User deploy\n"
        assert "Host web\n" + block in text
        assert "Host w\n" + block in text
        assert "ServerAliveInterval 60\n" in text
        assert text.endswith("# vim: syntax=sshconfig\n")

    def test_write_ssh_refuses_problems(self, make_store, tmp_path):
        store = make_store({"hosts": {"web": {"ssh": {"hostname": "10.0.0.1", "port": "70000"}}}})
        path = tmp_path / "config"

        with pytest.raises(NotExportableError):
            store.write_ssh(path)
        assert not path.exists()


class TestLookups:
    def test_get_hosts(self, two_users):
        assert set(two_users.get_hosts()) == {"web", "web-admin", "db"}
        assert two_users.get_hosts("pg") == [two_users.hosts["db"]]
        assert two_users.get_hosts("nope") == []

    def test_hosts_by_hostname(self, two_users):
        assert set(two_users.get_hosts_by_hostname("10.0.0.1")) == {"web", "web-admin"}
        assert set(two_users.get_hosts_by_hostname()) == {"10.0.0.1", "10.0.0.9"}

    def test_find_by_alias(self, two_users):
        result = two_users.find("db")
        assert result.alias == {"db": [two_users.hosts["db"]]}
        assert result.hostname == {}

    def test_find_by_hostname_groups_by_user(self, two_users):
        result = two_users.find(HostSearch(hostname="10.0.0.1"))
        assert set(result.hostname) == {"bob", "alice"}
        assert list(result.hostname["alice"]) == ["web-admin"]

    def test_find_filters_port(self, two_users):
        result = two_users.find(HostSearch(hostname="10.0.0.1", port="2222"))
        assert list(result.hostname) == ["alice"]

    def test_find_default_port_is_22(self, make_store):
        store = make_store({"hosts": {"web": {"ssh": {"hostname": "10.0.0.1", "user": "bob"}}}})
        result = store.find(HostSearch(hostname="10.0.0.1", port="22", user="bob"))
        assert result.connection("bob")[0] == "web"

    def test_find_unknown_user_is_empty(self, two_users):
        result = two_users.find(HostSearch(hostname="10.0.0.1", user="carol"))
        assert result.hostname == {"carol": {}}
        assert result.connection("carol") is None


class TestMutation:
    def test_delete_by_additional_alias(self, two_users):
        assert two_users.delete_host("pg")
        assert "db" not in two_users.hosts
        assert two_users.get_host_key("pg") is None

    def test_delete_missing(self, two_users):
        assert not two_users.delete_host("nope")

    def test_set_host_replaces_owner(self, two_users):
        two_users.set_host("pg", {"ssh": {"hostname": "10.0.0.10", "user": "pg"}})
        assert two_users.hosts["db"].hostname == "10.0.0.10"

    def test_set_host_adds_new(self, two_users):
        two_users.set_host("cache", {"ssh": {"hostname": "10.0.0.20"}})
        assert two_users.get_host_key("cache") == "cache"


class TestTeamKeys:
    def test_reads_bundle(self, make_store, tmp_path):
        path = tmp_path / "team.json"
        path.write_text(json.dumps({"ops": {"bob": {"keys": [{"key": "ssh-ed25519 AAAA bob"}]}}}))
        store = make_store({"pssh": {"team_keys": str(path), "team_keys_identifier": "ops keys"}})

        assert store.get_team_keys() == {"ops": {"bob": {"keys": [{"key": "ssh-ed25519 AAAA bob"}]}}}
        assert store.get_team_keys_identifier() == "ops keys"

    def test_missing_bundle_warns(self, make_store, reporter, tmp_path):
        store = make_store({"pssh": {"team_keys": str(tmp_path / "absent.json")}})

        assert store.get_team_keys() == {}
        assert reporter.warnings
        assert store.get_team_keys_identifier() == "team keys"
