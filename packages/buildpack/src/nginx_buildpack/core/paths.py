from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class BuildLayout:
    """
    Canonical path layout for one compile invocation:

      {build}/vendor/{package}/bin/{binary}
      {build}/.metadata/{metadata files}
      {build}/bin/{launch script}
      {build}/Procfile
      {build}/.profile.d/{package}.sh
      {build}/config/{package}.conf.template

      {cache}/{package}/bin/{binary}
      {cache}/{package}/.metadata/{metadata files}
    """

    build_dir: Path
    cache_dir: Path
    package: str
    binary: str

    # build side

    def vendor(self) -> Path:
        return self.build_dir / "vendor" / self.package

    def vendor_bin(self) -> Path:
        return self.vendor() / "bin"

    def vendor_binary(self) -> Path:
        return self.vendor_bin() / self.binary

    def build_metadata(self) -> Path:
        return self.build_dir / ".metadata"

    def launch_bin_dir(self) -> Path:
        return self.build_dir / "bin"

    def procfile(self) -> Path:
        return self.build_dir / "Procfile"

    def profile_d(self) -> Path:
        return self.build_dir / ".profile.d"

    def config_dir(self) -> Path:
        return self.build_dir / "config"

    # cache side

    def cache_entry(self) -> Path:
        return self.cache_dir / self.package

    def cache_bin(self) -> Path:
        return self.cache_entry() / "bin"

    def cache_binary(self) -> Path:
        return self.cache_bin() / self.binary

    def cache_metadata(self) -> Path:
        return self.cache_entry() / ".metadata"

    def default_run_root(self) -> Path:
        return self.cache_dir / ".buildpack-runs"
