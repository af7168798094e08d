"""
Configuration Migration Module

Moves legacy key spellings, nested sections and array encodings of the
controller configuration onto their canonical places.
"""

import copy
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config_schema.definitions import (
    TOP_LEVEL_ALIASES,
    EQUITHERM_NESTED_SECTIONS,
    SECTION_RENAMES,
    TWO_POINT_RENAMES,
    VALVE_PARAM_RENAMES,
    RenameTarget,
)
from ..utils.issues import IssueCollector

logger = logging.getLogger(__name__)

_MISSING = object()


class ConfigMigration:
    """Handles configuration migration between firmware/UI generations."""

    # ========== Dotted path helpers ==========

    @staticmethod
    def get_path(obj: Dict[str, Any], path: str, default: Any = None) -> Any:
        node: Any = obj
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    @staticmethod
    def has_path(obj: Dict[str, Any], path: str) -> bool:
        return ConfigMigration.get_path(obj, path, _MISSING) is not _MISSING

    @staticmethod
    def set_path(obj: Dict[str, Any], path: str, value: Any) -> None:
        parts = path.split(".")
        node = obj
        for part in parts[:-1]:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value

    @staticmethod
    def pop_path(obj: Dict[str, Any], path: str) -> Any:
        """Remove a dotted key, pruning parents it leaves empty."""
        parts = path.split(".")
        chain = [obj]
        node: Any = obj
        for part in parts[:-1]:
            if not isinstance(node, dict) or not isinstance(node.get(part), dict):
                return _MISSING
            node = node[part]
            chain.append(node)

        if parts[-1] not in node:
            return _MISSING
        value = node.pop(parts[-1])

        for depth in range(len(parts) - 1, 0, -1):
            if chain[depth]:
                break
            chain[depth - 1].pop(parts[depth - 1], None)
        return value

    # ========== Key renames ==========

    @classmethod
    def rename_keys(cls, section: Dict[str, Any],
                    renames: Sequence[Tuple[str, RenameTarget]],
                    issues: Optional[IssueCollector] = None,
                    prefix: str = "") -> Dict[str, Any]:
        """
        Move legacy keys onto canonical ones.

        The canonical key wins when both are present; the legacy key is
        removed either way. When several legacy spellings target one key
        the first one listed wins.
        """
        for legacy, targets in renames:
            if not cls.has_path(section, legacy):
                continue

            if isinstance(targets, str):
                targets = (targets,)

            value = cls.pop_path(section, legacy)
            for target in targets:
                if not cls.has_path(section, target):
                    cls.set_path(section, target, copy.deepcopy(value))

            if issues is not None:
                issues.legacy(f"{prefix}{legacy}", f"'{legacy}' migrated to '{targets[0]}'")

        return section

    @classmethod
    def rename_top_level(cls, config: Dict[str, Any],
                         issues: Optional[IssueCollector] = None) -> Dict[str, Any]:
        return cls.rename_keys(config, TOP_LEVEL_ALIASES, issues)

    @classmethod
    def rename_section_keys(cls, config: Dict[str, Any], section_name: str,
                            issues: Optional[IssueCollector] = None) -> Dict[str, Any]:
        section = config.get(section_name)
        if isinstance(section, dict):
            cls.rename_keys(section, SECTION_RENAMES.get(section_name, []), issues,
                            prefix=f"{section_name}.")
        return config

    @classmethod
    def migrate_two_point(cls, point: Any, issues: Optional[IssueCollector] = None,
                          path: str = "") -> Any:
        """tout1/tflow1/tout2/tflow2 -> outdoorC1/flowC1/outdoorC2/flowC2"""
        if isinstance(point, dict):
            cls.rename_keys(point, TWO_POINT_RENAMES, issues, prefix=f"{path}.")
        return point

    @classmethod
    def migrate_valve_params(cls, params: Dict[str, Any],
                             issues: Optional[IssueCollector] = None,
                             path: str = "") -> Dict[str, Any]:
        return cls.rename_keys(params, VALVE_PARAM_RENAMES, issues, prefix=f"{path}.")

    @classmethod
    def hoist_equitherm_sections(cls, config: Dict[str, Any],
                                 issues: Optional[IssueCollector] = None) -> Dict[str, Any]:
        """
        Move sections older UIs nested under "equitherm" to top level.

        The top-level copy wins when both exist. The nested copy is
        removed in every case.
        """
        eq = config.get("equitherm")
        if not isinstance(eq, dict):
            return config

        for key in EQUITHERM_NESTED_SECTIONS:
            if key not in eq:
                continue
            value = eq.pop(key)
            if config.get(key) is None and isinstance(value, (dict, list)):
                config[key] = value
                logger.debug(f"Hoisted equitherm.{key} to top level")
            if issues is not None:
                issues.legacy(f"equitherm.{key}", f"'equitherm.{key}' moved to top level")

        return config

    # ========== Indexed-object encoding ==========

    @staticmethod
    def decode_indexed(value: Any, length: int, default: Any,
                       coerce: Optional[Callable[[Any], Any]] = None) -> List[Any]:
        """
        Decode a fixed-length sequence from a list or an indexed object.

        {"0": "x", "2": "y"} and ["x", None, "y"] both decode to
        ["x", default, "y", default, ...]. Keys outside 0..length-1 and
        non-numeric keys are dropped; missing slots take the default.
        """
        result = [copy.deepcopy(default) for _ in range(length)]

        items: List[Tuple[int, Any]] = []
        if isinstance(value, (list, tuple)):
            items = list(enumerate(value))
        elif isinstance(value, dict):
            for key, item in value.items():
                try:
                    items.append((int(str(key).strip()), item))
                except ValueError:
                    continue

        for idx, item in items:
            if not 0 <= idx < length or item is None:
                continue
            result[idx] = coerce(item) if coerce else item

        return result

    @staticmethod
    def encode_indexed(values: Sequence[Any]) -> Dict[str, Any]:
        """Inverse of decode_indexed: ["x", "y"] -> {"0": "x", "1": "y"}"""
        return {str(i): copy.deepcopy(v) for i, v in enumerate(values)}
