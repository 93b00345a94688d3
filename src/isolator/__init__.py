"""
Isolator - Materialize components into isolated, reusable capsules.

The isolator resolves requested components into their dependency graph and
writes each one into its own sandbox directory ("capsule") with its source
files, a package manifest and links to its resolved dependencies.
It provides:
- Deterministic capsule locations per workspace
- Manifest diffing so unchanged capsules are not relinked
- One shared install per isolation root

Example usage:
    $ isolator list ./my-workspace
    $ isolator root-dir ./my-workspace
"""

__version__ = "0.1.0"
__author__ = "Capsule Contributors"

from isolator.capsule import Capsule, CapsuleList
from isolator.concurrency import CancellationToken
from isolator.config import IsolatorConfig, load_config
from isolator.engine import Isolator
from isolator.network import ListResults, Network
from isolator.schema import Component, ComponentID, IsolateOptions

__all__ = [
    "__version__",
    "__author__",
    "CancellationToken",
    "Capsule",
    "CapsuleList",
    "Component",
    "ComponentID",
    "IsolateOptions",
    "Isolator",
    "IsolatorConfig",
    "ListResults",
    "Network",
    "load_config",
]
