import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .constants import ArtifactKinds, DefaultConfig
from .domain.naming import validate_python_identifier
from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def is_valid_package_path(name: str) -> bool:
    """Check if a string is a dotted path of valid Python identifiers."""
    if not isinstance(name, str) or not name:
        return False
    return all(validate_python_identifier(part) for part in name.split("."))


# --- Pydantic Model for Configuration Schema ---


class ToolConfigSchema(BaseModel):
    """Pydantic schema defining the expected structure and types for the configuration."""

    # model_dir / model_package are domain terms, not pydantic's model_* API
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    model_dir: str = Field(
        ...,
        min_length=1,
        description="Directory holding the annotated domain model modules.",
    )
    output_dir: str = Field(
        "./generated",
        min_length=1,
        description="Directory for generated artifacts.",
    )
    base_package: str = Field(
        DefaultConfig.BASE_PACKAGE,
        description="Package the generated modules are imported from.",
    )
    model_package: str = Field(
        DefaultConfig.MODEL_PACKAGE,
        description="Package the declared aggregates are imported from.",
    )
    runtime_package: str = Field(
        DefaultConfig.RUNTIME_PACKAGE,
        description="Runtime persistence library imported by generated code.",
    )
    workers: int = Field(
        DefaultConfig.WORKERS,
        ge=1,
        le=64,
        description="Number of concurrent generation workers.",
    )
    strict_relations: bool = Field(
        DefaultConfig.STRICT_RELATIONS,
        description="Abort before generation when a relation points at an unknown aggregate.",
    )
    allow_partial: bool = Field(
        False,
        description="Exit successfully even when some artifacts failed.",
    )
    format_code: bool = Field(
        True,
        description="Format generated Python modules with black.",
    )
    external_refs: List[str] = Field(
        default_factory=list,
        description="Reference targets owned by other bounded contexts.",
    )
    include_aggregates: Optional[List[str]] = Field(
        None, description="Optional list of aggregates to generate artifacts for."
    )
    exclude_aggregates: Optional[List[str]] = Field(
        None, description="Optional list of aggregates to skip during generation."
    )
    artifacts: List[str] = Field(
        default_factory=lambda: list(ArtifactKinds.ALL),
        description="Artifact kinds to generate.",
    )

    def __getitem__(self, key: str) -> Any:
        return getattr(self, key)

    def get(self, key: str, default: Any = None) -> Any:
        return getattr(self, key, default)

    # --- Custom Validators ---

    @field_validator("base_package", "model_package", "runtime_package")
    @classmethod
    def check_valid_package(cls, v):
        """Validate package settings are dotted Python identifiers."""
        if not is_valid_package_path(v):
            raise ValueError(
                f"'{v}' is not a valid Python package path. Use dotted snake_case identifiers."
            )
        return v

    @field_validator("external_refs", "include_aggregates", "exclude_aggregates", mode="before")
    @classmethod
    def check_names_are_strings(cls, v):
        """Ensure aggregate names in lists are non-empty strings."""
        if v is None:
            return v
        if not isinstance(v, list):
            raise ValueError("Aggregate name settings must be lists.")
        for item in v:
            if not isinstance(item, str):
                raise ValueError(
                    f"Aggregate names must be strings, found: {type(item).__name__}"
                )
            if not item.strip():
                raise ValueError("Aggregate names cannot be empty or just whitespace.")
        return [item.strip() for item in v]

    @field_validator("artifacts")
    @classmethod
    def check_artifact_kinds(cls, v):
        """Ensure every requested artifact kind exists."""
        unknown = [kind for kind in v if kind not in ArtifactKinds.ALL]
        if unknown:
            raise ValueError(
                f"Unknown artifact kind(s): {', '.join(unknown)}. Allowed: {', '.join(ArtifactKinds.ALL)}"
            )
        return v

    @model_validator(mode="after")
    def check_include_exclude_overlap(self):
        """An aggregate cannot be both included and excluded."""
        if self.include_aggregates and self.exclude_aggregates:
            overlap = set(self.include_aggregates) & set(self.exclude_aggregates)
            if overlap:
                raise ValueError(
                    f"Aggregates both included and excluded: {', '.join(sorted(overlap))}"
                )
        return self

    def wants(self, aggregate_name: str) -> bool:
        """Whether per-aggregate artifacts should be produced for an aggregate."""
        if self.include_aggregates is not None and aggregate_name not in self.include_aggregates:
            return False
        if self.exclude_aggregates and aggregate_name in self.exclude_aggregates:
            return False
        return True


# --- Validation Function (Internal) ---
def _validate_and_parse_config(config_dict: Dict[str, Any], config_path: Optional[str] = None) -> ToolConfigSchema:
    """
    Validates a raw configuration dictionary against the Pydantic schema.
    Prints detailed errors and raises ConfigurationError on validation failure.
    """
    try:
        validated_config = ToolConfigSchema.model_validate(config_dict)
        logger.debug("Configuration dictionary parsed and validated successfully.")
        return validated_config
    except ValidationError as e:
        logger.error(
            "Configuration validation failed. Please check your config file or arguments."
        )
        print("\n--- Configuration Errors ---", file=sys.stderr)
        for error in e.errors():
            loc_parts = [str(loc_item) for loc_item in error.get("loc", ())]
            loc_str = " -> ".join(loc_parts) if loc_parts else "Top Level"

            msg = error.get("msg", "Unknown error")
            print(f"  - Location: '{loc_str}'", file=sys.stderr)
            print(f"    Error: {msg}", file=sys.stderr)

            if any(x in loc_parts for x in ["base_package", "model_package", "runtime_package"]):
                print(
                    "    Hint: Use a dotted package path such as 'app.domain.model'.",
                    file=sys.stderr,
                )
            elif "workers" in loc_parts:
                print("    Hint: Workers must be a number between 1 and 64.", file=sys.stderr)
            elif "artifacts" in loc_parts:
                print(
                    f"    Hint: Allowed kinds are: {', '.join(ArtifactKinds.ALL)}",
                    file=sys.stderr,
                )
            elif "model_dir" in loc_parts:
                print(
                    "    Hint: Pass the model directory as the first argument or set 'model_dir'.",
                    file=sys.stderr,
                )

        print("----------------------------", file=sys.stderr)
        raise ConfigurationError(
            f"Invalid configuration ({len(e.errors())} error(s))",
            config_file=config_path,
        ) from e


def _read_yaml(config_path: str) -> Dict[str, Any]:
    config_file = Path(config_path)
    if not config_file.is_file():
        raise ConfigurationError(f"Config file not found: {config_path}", config_file=config_path)

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML file: {e}", config_file=config_path) from e

    if yaml_config is None:
        return {}
    if not isinstance(yaml_config, dict):
        raise ConfigurationError(
            "Config file must contain a mapping at the top level",
            config_file=config_path,
        )
    logger.debug(f"Loaded configuration from {config_path}")
    return yaml_config


# --- Main Configuration Loading Function ---


def load_config(
    config_path: Optional[str], cli_args: argparse.Namespace
) -> ToolConfigSchema:
    """
    Loads configuration from YAML file, merges with CLI arguments,
    validates the result, and returns a validated Pydantic model instance.

    Raises:
        ConfigurationError: If the file cannot be read or the result is invalid
    """
    raw_config: Dict[str, Any] = {}

    # 1. Load from YAML file if path is provided
    if config_path:
        raw_config.update(_read_yaml(config_path))

    # 2. Override with CLI arguments (only those explicitly provided)
    overridden_keys = set()
    for key, value in vars(cli_args).items():
        if value is not None and key in ToolConfigSchema.model_fields:
            raw_config[key] = value
            overridden_keys.add(key)
    if overridden_keys:
        logger.debug(f"Overridden config keys from CLI arguments: {overridden_keys}")

    # 3. Validate the combined configuration dictionary using Pydantic
    logger.debug("Validating final configuration...")
    validated_config = _validate_and_parse_config(raw_config, config_path)

    # 4. Resolve paths
    validated_config.model_dir = str(Path(validated_config.model_dir).resolve())
    validated_config.output_dir = str(Path(validated_config.output_dir).resolve())

    if not Path(validated_config.model_dir).is_dir():
        raise ConfigurationError(
            f"Model directory does not exist: {validated_config.model_dir}",
            config_file=config_path,
        )

    logger.debug("Configuration loaded and validated successfully.")
    return validated_config
