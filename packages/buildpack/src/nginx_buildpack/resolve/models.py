from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

SYSTEM_SENTINEL = "system"


class PackageSpec(BaseModel):
    """
    Static description of the package this buildpack compiles and of its
    bundled secondary dependency.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(default="nginx", min_length=1)
    binary: str = Field(default="nginx", min_length=1)
    binary_relpath: str = Field(default="objs/nginx", min_length=1)
    source_url_template: str = "https://nginx.org/download/nginx-{version}.tar.gz"
    default_version: str = "1.7.9"

    secondary_name: str = Field(default="pcre", min_length=1)
    secondary_url_template: str = (
        "https://downloads.sourceforge.net/project/pcre/pcre/"
        "{version}/pcre-{version}.tar.gz"
    )
    secondary_default_version: str = "8.36"
    secondary_configure_flag: str = "--with-pcre"

    configure_command: tuple[str, ...] = ("./configure",)
    compile_command: tuple[str, ...] = ("make",)

    version_key: str = "NGINX_VERSION"
    secondary_version_key: str = "PCRE_VERSION"
    configure_options_key: str = "NGINX_CONFIGURE_OPTIONS"

    config_file: str = "buildpack.config"
    process_type: str = "web"
    launch_script: str = "start-nginx"

    @model_validator(mode="after")
    def _validate_templates(self) -> "PackageSpec":
        for t in (self.source_url_template, self.secondary_url_template):
            if "{version}" not in t:
                raise ValueError(f"URL template must contain '{{version}}': {t}")
        if not self.configure_command or not self.compile_command:
            raise ValueError("configure_command and compile_command must be non-empty")
        return self

    def source_dirname(self, version: str) -> str:
        return f"{self.name}-{version}"

    def secondary_dirname(self, version: str) -> str:
        return f"{self.secondary_name}-{version}"

    def metadata_names(self) -> tuple[str, str, str]:
        """
        File names of the three fingerprint components, in fingerprint order.
        """
        return (
            self.version_key.lower(),
            self.secondary_version_key.lower(),
            self.configure_options_key.lower(),
        )


class BuildRequest(BaseModel):
    """
    Fully resolved build parameters for one invocation.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    package_version: str = Field(min_length=1)
    secondary_dependency_version: str = Field(min_length=1)
    configure_options: str = ""
    source_url: str
    secondary_source_url: Optional[str] = None

    @model_validator(mode="after")
    def _validate_secondary(self) -> "BuildRequest":
        if self.uses_system_secondary and self.secondary_source_url is not None:
            raise ValueError("secondary_source_url must be unset for the system sentinel")
        if not self.uses_system_secondary and self.secondary_source_url is None:
            raise ValueError("secondary_source_url is required for a bundled dependency")
        return self

    @property
    def uses_system_secondary(self) -> bool:
        return self.secondary_dependency_version == SYSTEM_SENTINEL

    @classmethod
    def for_spec(
        cls,
        spec: PackageSpec,
        *,
        package_version: str,
        secondary_dependency_version: str,
        configure_options: str = "",
    ) -> "BuildRequest":
        secondary_url = None
        if secondary_dependency_version != SYSTEM_SENTINEL:
            secondary_url = spec.secondary_url_template.format(
                version=secondary_dependency_version
            )
        return cls(
            package_version=package_version,
            secondary_dependency_version=secondary_dependency_version,
            configure_options=configure_options,
            source_url=spec.source_url_template.format(version=package_version),
            secondary_source_url=secondary_url,
        )
