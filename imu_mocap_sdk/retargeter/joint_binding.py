"""
JointBindingTable - which skeletal joint each sensor label drives.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional


logger = logging.getLogger(__name__)


class JointBindingTable:
    """
    Static label -> joint table, resolved once against a loaded skeleton.

    Binding is by exact joint name. Labels whose joint name is missing from
    the skeleton stay unbound and skeleton joints nobody asked for are
    ignored; a partial skeleton is not an error.

    Example usage:
        table = JointBindingTable({"RA": "mixamorigRightArm"})
        table.bind(skeleton.list_joint_names(), skeleton.resolve_joint)
        joint = table.resolve("RA")
    """

    def __init__(self, label_to_joint_name: Dict[str, str]):
        self.label_to_joint_name = dict(label_to_joint_name)
        self.bindings: Dict[str, object] = {}

    def bind(self, joint_names: Iterable[str], resolve_joint: Optional[Callable[[str], object]] = None):
        """
        Resolve every configured label against the skeleton's joint names.

        Args:
            joint_names: Full list of joint names of the skeleton
            resolve_joint: Maps a joint name to the skeleton's joint handle
                (default: the name itself)

        Returns:
            Dict mapping bound labels to joint handles
        """
        resolve_joint = resolve_joint or (lambda name: name)
        name_to_labels: Dict[str, List[str]] = {}
        for label, joint_name in self.label_to_joint_name.items():
            name_to_labels.setdefault(joint_name, []).append(label)

        bindings = {}
        for name in joint_names:
            for label in name_to_labels.get(name, ()):
                if label in bindings:
                    continue
                bindings[label] = resolve_joint(name)
                logger.info(f"Mapped label {label} to joint {name}")

        self.bindings = bindings
        for label in self.unbound_labels:
            logger.warning(f"Joint '{self.label_to_joint_name[label]}' for label {label} "
                           f"not found in skeleton, label left unbound")
        return dict(bindings)

    def resolve(self, label: str):
        """Joint handle bound to ``label``, or None if unbound."""
        return self.bindings.get(label)

    def is_bound(self, label: str) -> bool:
        return label in self.bindings

    @property
    def bound_labels(self) -> List[str]:
        return [label for label in self.label_to_joint_name if label in self.bindings]

    @property
    def unbound_labels(self) -> List[str]:
        return [label for label in self.label_to_joint_name if label not in self.bindings]
