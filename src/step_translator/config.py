"""Configuration management for Step Translator."""

import re
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file at import time
load_dotenv()


class FrameDetectionConfig(BaseModel):
    """Heuristics used to attribute steps to iframes."""

    auth_host_patterns: list[str] = Field(
        default_factory=lambda: ["login.", "identity.", "auth.", "oauth", "okta", "sso"]
    )
    iframe_path_markers: list[str] = Field(
        default_factory=lambda: ["frames", "embed", "widget"]
    )
    # Same-host path divergence only counts as an iframe after a login redirect
    path_divergence_requires_auth: bool = True


class ScriptConfig(BaseModel):
    """Shape of the generated Playwright scripts."""

    test_timeout_ms: int = 120_000
    helper_module: str = "helpers"
    indent: str = "    "


class MultiStepConfig(BaseModel):
    """Multi-step API test generation."""

    http_compatible_subtypes: list[str] = Field(default_factory=lambda: ["http", "ssl"])


class Config(BaseSettings):
    """Main configuration for Step Translator."""

    model_config = SettingsConfigDict(
        env_prefix="STEP_TRANSLATOR_",
        env_nested_delimiter="__",
    )

    # Core settings
    output_root: Path = Path("checkly-migrated")
    customer: str | None = None
    exports_dir: Path = Path("exports")
    workers: int = Field(default=1, ge=1)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-configurations
    frame_detection: FrameDetectionConfig = Field(default_factory=FrameDetectionConfig)
    script: ScriptConfig = Field(default_factory=ScriptConfig)
    multi_step: MultiStepConfig = Field(default_factory=MultiStepConfig)

    @property
    def project_root(self) -> Path:
        """Output root, scoped to the customer when one is set."""
        if self.customer:
            return self.output_root / sanitize_customer_name(self.customer)
        return self.output_root

    @property
    def exports_path(self) -> Path:
        if self.exports_dir.is_absolute():
            return self.exports_dir
        return self.project_root / self.exports_dir

    @property
    def variable_report_path(self) -> Path:
        return self.exports_path / "variable-usage.json"

    @property
    def browser_output_dir(self) -> Path:
        return self.project_root / "tests" / "browser"

    @property
    def multi_output_dir(self) -> Path:
        return self.project_root / "tests" / "multi"


def sanitize_customer_name(name: str) -> str:
    """Lower-case a customer name into a directory-safe slug."""
    slug = re.sub(r"[^a-z0-9-]", "-", name.lower())
    return re.sub(r"-+", "-", slug).strip("-")


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file and environment variables."""
    config_data: dict = {}

    # Try to find config file
    if config_path is None:
        for name in ["step_translator.yaml", "step_translator.yml", ".step_translator.yaml"]:
            if Path(name).exists():
                config_path = Path(name)
                break

    # Load from YAML if exists
    if config_path and config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if raw and "step_translator" in raw:
                config_data = raw["step_translator"]
            elif raw:
                config_data = raw

    # Environment variables fill in whatever the YAML file leaves unset
    return Config(**config_data)
