# ABOUTME: Data model for the Git repository the GitOps controller bootstraps from
# ABOUTME: Holds repository coordinates and the SSH credentials used to reach it

"""Bootstrap repository description."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator


class BootstrapRepository(BaseModel):
    """
    Git repository the controller is configured to track.

    The credential fields are SecretStr: printing the model or logging it
    shows "**********" instead of key material. Use get_secret_value() to
    read the actual value.

    The model is mutable. Credential resolution assigns the
    fetched values in place, and validate_assignment makes plain strings
    assigned later still end up as SecretStr.

    USAGE EXAMPLE:
    --------------
        repository = BootstrapRepository(
            url="ssh://git@github.com/example/fleet.git",
            branch="main",
            path="./clusters/dev",
            secret_name="wego/github-ssh",
        )
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        validate_assignment=True,
    )

    url: str = Field(
        validation_alias=AliasChoices("url", "URL"),
        description="SSH URI of the repository used for bootstrapping team workloads",
    )
    # Every field also accepts the host framework's spelling (URL, secretName, ...).

    branch: str = Field(description="Branch to track for continuous reconciliation")
    path: str = Field(description="Path in the repository used as root for all declarations")

    secret_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("secret_name", "secretName"),
        description="Secret holding private_key, public_key and known_hosts",
    )

    private_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("private_key", "privateKey"),
        description="SSH private key",
    )
    public_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("public_key", "publicKey"),
        description="SSH public key",
    )
    known_hosts: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("known_hosts", "knownHosts"),
        description="known_hosts entries",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Reject blank URLs; the value itself is passed to the controller unmodified."""
        if not v.strip():
            raise ValueError("bootstrap repository URL must not be empty")
        return v

    @field_validator("secret_name")
    @classmethod
    def blank_secret_name_is_unset(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    def has_credentials(self) -> bool:
        """True when both the private key and known hosts are non-empty."""
        missing = not _revealed(self.private_key) or not _revealed(self.known_hosts)
        return not missing


def _revealed(value: SecretStr | None) -> str:
    return value.get_secret_value() if value is not None else ""
