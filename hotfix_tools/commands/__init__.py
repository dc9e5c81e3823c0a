"""CLI command implementations for hotfix_tools.

This module contains all command-line interface implementations:
- export: Export the labels config of a content manifest
- build: Build full and hotfix packages
- release: Confirm staged hotfix snapshots
- update: Run the client update flow
- inspect: Show a package's version descriptor
- verify: Re-hash a package against its descriptor
"""

from hotfix_tools.commands.build import build_group, release_group
from hotfix_tools.commands.export import export
from hotfix_tools.commands.package import inspect, verify
from hotfix_tools.commands.update import update

__all__ = ["build_group", "export", "inspect", "release_group", "update", "verify"]
