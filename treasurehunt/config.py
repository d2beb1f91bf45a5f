"""
Deployment configuration for a TreasureHunt contract.

Example hunt.yaml:

    contract_id: spring-hunt
    admins:
      - admin-0x01
    audit_log: .treasurehunt/ledger     # directory, holds audit.jsonl
    key_path: .treasurehunt/signing.pem # generated on first use
    charities:
      1:
        owner: charity-0xaa
        revenue_share: 20

Relative paths are resolved against the directory holding the file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from treasurehunt.contract import DEFAULT_CONTRACT_ID, TreasureHunt
from treasurehunt.core.crypto import Ed25519KeyManager
from treasurehunt.core.exceptions import ConfigError, InvalidInput
from treasurehunt.registry.gateway import InMemoryCharityRegistry


@dataclass
class HuntConfig:
    contract_id: str                       = DEFAULT_CONTRACT_ID
    admins:      List[str]                 = field(default_factory=list)
    audit_log:   Optional[Path]            = None
    key_path:    Optional[Path]            = None
    charities:   Dict[Any, Dict[str, Any]] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, config_file: Path) -> "HuntConfig":
        """Load configuration from a YAML file."""
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc
        return cls.from_dict(data, base_dir=config_file.parent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "HuntConfig":
        if not isinstance(data, dict):
            raise ConfigError("Config root must be a mapping")

        unknown = set(data) - {"contract_id", "admins", "audit_log", "key_path", "charities"}
        if unknown:
            raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

        admins = data.get("admins") or []
        if not isinstance(admins, list) or not all(isinstance(a, str) and a for a in admins):
            raise ConfigError("admins must be a list of addresses")

        contract_id = data.get("contract_id", DEFAULT_CONTRACT_ID)
        if not isinstance(contract_id, str) or not contract_id:
            raise ConfigError("contract_id must be a non-empty string")

        charities = data.get("charities") or {}
        if not isinstance(charities, dict):
            raise ConfigError("charities must be a mapping of id to owner/revenue_share")

        return cls(
            contract_id= contract_id,
            admins=      admins,
            audit_log=   _resolve(data.get("audit_log"), base_dir),
            key_path=    _resolve(data.get("key_path"), base_dir),
            charities=   charities,
        )

    def load_key(self) -> Ed25519KeyManager:
        """Load the signing key, generating and saving one if the file is missing."""
        if self.key_path is None:
            return Ed25519KeyManager.generate()
        if self.key_path.exists():
            try:
                return Ed25519KeyManager.from_file(self.key_path)
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
        key_manager = Ed25519KeyManager.generate()
        key_manager.save(self.key_path)
        return key_manager

    def build_registry(self) -> InMemoryCharityRegistry:
        try:
            return InMemoryCharityRegistry.from_dict(self.charities)
        except InvalidInput as exc:
            raise ConfigError(f"Invalid charities section: {exc}") from exc

    def build(self) -> TreasureHunt:
        """A contract wired to this configuration, resumed from its audit log."""
        return TreasureHunt(
            registry=    self.build_registry(),
            admins=      self.admins,
            key_manager= self.load_key(),
            contract_id= self.contract_id,
            ledger_path= str(self.audit_log) if self.audit_log else None,
        )


def _resolve(value: Any, base_dir: Optional[Path]) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise ConfigError(f"Expected a path string, got {value!r}")
    path = Path(value)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path
