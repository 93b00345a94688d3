"""
Capsule module for the isolator.

A capsule is an isolated directory holding one component: its source files,
its package manifest and links to its resolved dependencies.

Architecture:
    - Capsule: One sandbox bound to one component
    - CapsuleList: Ordered, unique-by-id collection of capsules
    - CapsuleFS: Filesystem view confined to a capsule directory
    - InstallMarker: "root fully installed" flag
    - RootLock: Serializes runs sharing an isolation root
"""

from isolator.capsule.capsule import Capsule
from isolator.capsule.capsule_list import CapsuleList
from isolator.capsule.fs import CapsuleFS
from isolator.capsule.lock import RootLock
from isolator.capsule.marker import InstallMarker

__all__ = [
    "Capsule",
    "CapsuleFS",
    "CapsuleList",
    "InstallMarker",
    "RootLock",
]
