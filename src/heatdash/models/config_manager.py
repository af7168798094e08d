"""
Heating Controller Configuration Manager

Holds the canonical configuration the dashboard edits. Every document,
whether read from a file or fetched from the device, goes through the
normalizer first; saving writes the firmware payload shape.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, List

from .config_schema import ConfigValidator, create_default_config
from .config_normalizer import normalize_with_report, to_device_payload
from .role_registry import role_label
from .source_descriptor import SourceDescriptor
from .valve_binder import resolve_valve_outputs, ValveBinding
from ..utils.issues import ConfigIssue

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages heating controller configuration files (JSON format)"""

    def __init__(self):
        self.config: Dict[str, Any] = create_default_config()
        self.issues: List[ConfigIssue] = []
        self.current_file: Optional[Path] = None
        self.modified: bool = False

    def get_config(self) -> Dict[str, Any]:
        """Get current configuration"""
        return self.config

    def new_config(self) -> None:
        """Create new default configuration"""
        self.config = create_default_config()
        self.issues = []
        self.current_file = None
        self.modified = False
        logger.info("Created new configuration")

    def _apply(self, raw: Any) -> None:
        config, issues = normalize_with_report(raw)
        self.config = config
        self.issues = issues

        is_valid, validation_errors = ConfigValidator.validate_config(config)
        if not is_valid:
            error_msg = ConfigValidator.format_validation_errors(validation_errors)
            # Don't fail on validation, the operator fixes it in the editor
            logger.warning(f"Config validation warnings:\n{error_msg}")

    def load_from_file(self, filepath: str) -> Tuple[bool, Optional[str]]:
        """
        Load configuration from JSON file

        Args:
            filepath: Path to JSON configuration file

        Returns:
            Tuple[bool, Optional[str]]: (success, error_message)
        """
        try:
            path = Path(filepath)

            if not path.exists():
                error_msg = f"Configuration file not found: {filepath}"
                logger.error(error_msg)
                return False, error_msg

            with open(path, 'r', encoding='utf-8') as f:
                loaded_config = json.load(f)

            self._apply(loaded_config)
            self.current_file = path
            self.modified = False

            logger.info(f"Loaded configuration from: {filepath} ({len(self.issues)} migration notes)")
            return True, None

        except json.JSONDecodeError as e:
            error_msg = (
                f"Invalid JSON format in configuration file:\n\n"
                f"Line {e.lineno}, Column {e.colno}:\n{e.msg}\n\n"
                f"Please check the file syntax."
            )
            logger.error(f"JSON decode error: {e}")
            return False, error_msg

        except Exception as e:
            error_msg = f"Failed to load configuration:\n\n{str(e)}"
            logger.error(f"Failed to load configuration: {e}")
            return False, error_msg

    def load_from_dict(self, config_dict: Any) -> Tuple[bool, Optional[str]]:
        """
        Load configuration from dictionary (e.g., from device).

        Any shape is accepted; anything not understood is reported
        through self.issues.

        Returns:
            Tuple[bool, Optional[str]]: (success, error_message)
        """
        try:
            self._apply(config_dict)
            self.current_file = None
            self.modified = False

            logger.info("Loaded configuration from device")
            return True, None

        except Exception as e:
            error_msg = f"Failed to load configuration: {str(e)}"
            logger.error(error_msg)
            return False, error_msg

    def load_from_json_text(self, text: str) -> Tuple[bool, Optional[str]]:
        """Load configuration from a JSON document body (HTTP /api/config response)"""
        try:
            data = json.loads(text) if text and text.strip() else {}
        except json.JSONDecodeError as e:
            error_msg = f"Invalid JSON from device: {e.msg} (line {e.lineno})"
            logger.error(error_msg)
            return False, error_msg
        return self.load_from_dict(data)

    def save_to_file(self, filepath: Optional[str] = None, device_format: bool = True) -> bool:
        """
        Save configuration to JSON file

        Args:
            filepath: Path to save to (uses current_file if None)
            device_format: Write the firmware payload instead of the canonical shape

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            if filepath:
                path = Path(filepath)
            elif self.current_file:
                path = self.current_file
            else:
                logger.error("No filepath specified")
                return False

            export_config = self.get_device_payload() if device_format else self.config

            path.parent.mkdir(parents=True, exist_ok=True)

            with open(path, 'w', encoding='utf-8') as f:
                json.dump(export_config, f, indent=2, ensure_ascii=False)

            self.current_file = path
            self.modified = False

            logger.info(f"Saved configuration to: {path}")
            return True

        except Exception as e:
            logger.error(f"Failed to save configuration: {e}")
            return False

    def get_device_payload(self) -> Dict[str, Any]:
        """Configuration in the shape the firmware reads (POST /api/config body)"""
        return to_device_payload(self.config)

    # ========== Thermometer Roles ==========

    def get_role_source(self, role: str) -> SourceDescriptor:
        return SourceDescriptor.from_dict(self.config.get("thermometerRoles", {}).get(role))

    def set_role_source(self, role: str, source: SourceDescriptor) -> None:
        """Bind a thermometer role to a sensor"""
        self.config.setdefault("thermometerRoles", {})[role] = source.to_dict()
        self.modified = True
        logger.info(f"Role '{role}' bound to {source.describe()}")

    # ========== Sections ==========

    def get_section(self, name: str) -> Dict[str, Any]:
        return self.config.get(name, {})

    def update_section(self, name: str, values: Dict[str, Any]) -> None:
        """Merge values into a section and re-normalize the whole document"""
        section = dict(self.config.get(name, {}))
        section.update(values)
        self.config[name] = section
        self._apply(self.config)
        self.modified = True

    def get_valve_bindings(self) -> List[ValveBinding]:
        return resolve_valve_outputs(self.config)

    # ========== State ==========

    def is_modified(self) -> bool:
        """Check if configuration has been modified"""
        return self.modified

    def set_modified(self, modified: bool = True) -> None:
        """Set modified flag"""
        self.modified = modified

    def get_current_file(self) -> Optional[Path]:
        """Get current configuration file path"""
        return self.current_file

    # ========== Validation ==========

    def validate_config(self) -> Tuple[bool, List[str]]:
        """
        Validate current configuration

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        return ConfigValidator.validate_config(self.config)

    def unsupported_paths(self) -> List[str]:
        """Paths the editor should mark as unsupported"""
        return [issue.path for issue in self.issues if issue.unsupported]

    # ========== Export ==========

    def export_to_yaml(self, filepath: str) -> bool:
        """Export configuration to YAML format"""
        try:
            import yaml

            path = Path(filepath)
            path.parent.mkdir(parents=True, exist_ok=True)

            with open(path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(self.config, f, default_flow_style=False, allow_unicode=True, sort_keys=False)

            logger.info(f"Exported configuration to YAML: {filepath}")
            return True

        except ImportError:
            logger.error("PyYAML not installed. Cannot export to YAML.")
            return False
        except Exception as e:
            logger.error(f"Failed to export to YAML: {e}")
            return False

    def export_role_summary(self) -> str:
        """
        Export summary of thermometer bindings and valves

        Returns:
            Formatted string summary
        """
        lines = ["Heating Controller Configuration Summary", "=" * 40, ""]

        lines.append("Thermometer roles:")
        for role, raw in self.config.get("thermometerRoles", {}).items():
            desc = SourceDescriptor.from_dict(raw)
            lines.append(f"  {role_label(role)}: {desc.describe()}")

        lines.append("")
        lines.append("Valves:")
        for binding in self.get_valve_bindings():
            peer = f"R{binding.peer_relay}" if binding.peer_relay is not None else "single relay"
            lines.append(f"  R{binding.master_relay} ({binding.role}) -> {peer}")

        return "\n".join(lines)
