"""Configuration for report generation."""

import getpass
import os
import socket
from pathlib import Path

from pydantic import BaseModel, Field


def _user_name() -> str:
    return getpass.getuser()


def _machine_name() -> str:
    return socket.gethostname().split(".")[0]


def _user_domain() -> str:
    # Hosts outside a domain report the machine name, as Windows does.
    return os.environ.get("USERDOMAIN") or _machine_name()


class HostIdentity(BaseModel):
    """Identity of the user and machine producing the report."""

    user_name: str = Field(default_factory=_user_name)
    machine_name: str = Field(default_factory=_machine_name)
    user_domain: str = Field(default_factory=_user_domain)

    @property
    def run_user(self) -> str:
        """Return the legacy ``DOMAIN\\user`` run user string."""
        return f"{self.user_domain}\\{self.user_name}"


class ReportConfig(BaseModel):
    """Configuration for writing TRX reports."""

    output_dir: Path
    host: HostIdentity = Field(default_factory=HostIdentity)
    # Raise on metadata lookup failures instead of falling back per test
    strict_metadata: bool = True
