"""Core type definitions for sshbook."""

from pydantic import BaseModel, ConfigDict, field_validator


def normalize_options(options) -> dict:
    """Lowercase option keys and render scalar values as strings.

    Hand-written files may hold integer ports or booleans; ``[]`` is what an
    empty map looks like in files written by older tools.
    """
    if options is None or options == []:
        return {}
    if not isinstance(options, dict):
        return options
    normalized = {}
    for key, value in options.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "yes" if value else "no"
        elif isinstance(value, (int, float)):
            value = str(value)
        normalized[str(key).lower()] = value
    return normalized


class HostMeta(BaseModel):
    """sshbook metadata kept under a host's ``pssh`` key.

    Unknown keys (``clean_port: "no"`` and friends) are preserved as extras so
    that a load/write cycle never drops hand-written settings.
    """

    model_config = ConfigDict(extra="allow")

    alias: str | None = None
    alias_additional: list[str] = []
    lookup: str | None = None  # "no" disables DNS canonicalization
    team_keys: str | None = None
    team_keys_identifier: str | None = None

    @field_validator("alias_additional", mode="before")
    @classmethod
    def coerce_alias_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, dict):
            return list(v.values())
        return v

    def cleaning_enabled(self, field: str) -> bool:
        """Whether ``field`` should be cleaned for this host."""
        extra = self.model_extra or {}
        value = extra.get(f"clean_{field}")
        return not (isinstance(value, str) and value.strip().lower() == "no")

    def lookup_enabled(self) -> bool:
        return not (self.lookup is not None and self.lookup.strip().lower() == "no")


class HostRecord(BaseModel):
    """One SSH destination: OpenSSH options plus sshbook metadata."""

    ssh: dict[str, str] = {}
    pssh: HostMeta = HostMeta()

    @field_validator("ssh", mode="before")
    @classmethod
    def normalize_ssh(cls, v):
        return normalize_options(v)

    @field_validator("pssh", mode="before")
    @classmethod
    def empty_meta(cls, v):
        if v is None or v == []:
            return {}
        return v

    @property
    def hostname(self) -> str | None:
        return self.ssh.get("hostname") or None

    @property
    def user(self) -> str | None:
        return self.ssh.get("user") or None

    @property
    def port(self) -> str | None:
        return self.ssh.get("port") or None

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
