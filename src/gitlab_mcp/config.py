"""
Server configuration for gitlab-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (gitlab-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- GITLAB_API_URL: GitLab instance URL (``/api/v4`` is appended when missing)
- GITLAB_TOKEN / GITLAB_PERSONAL_ACCESS_TOKEN: Personal access token
- GITLAB_AUTH_COOKIE_PATH: Netscape cookie file for cookie-based auth
- API_TIMEOUT_MS: Transport timeout in milliseconds
- GITLAB_READ_ONLY_MODE: Expose read-only tools and actions only (true/false)
- GITLAB_DENIED_TOOLS_REGEX: Remove tools whose name matches this regex
- GITLAB_DENIED_ACTIONS: Comma-separated ``tool:action`` pairs to deny
- GITLAB_SCHEMA_MODE: Input schema dialect (flat, discriminated, auto)
- USE_<ENTITY>: Enable/disable an entity tool group (default enabled)
- GITLAB_TOOL_<NAME>: Override a tool description
- GITLAB_ACTION_<NAME>: Override the ``action`` parameter description of a tool
- GITLAB_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- GITLAB_MCP_STRUCTURED_LOGGING: JSON-style log lines (true/false)
- GITLAB_MCP_CONFIG_FILE: Path to TOML config file

Credentials are configuration only. Cookie jars and instance info live on a
``GitLabSession`` created by the caller, never on this module.
"""

import os
import re
import logging
import sys
from dataclasses import dataclass, field
from importlib.metadata import version as get_package_version, PackageNotFoundError
from pathlib import Path
from typing import Optional, Dict, Any, FrozenSet, Pattern

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://gitlab.com/api/v4"
DEFAULT_TIMEOUT_MS = 20000
VALID_SCHEMA_MODES = frozenset(["flat", "discriminated", "auto"])

# Entity group name -> environment variable gating it
ENTITY_FLAGS: Dict[str, str] = {
    "labels": "USE_LABELS",
    "mrs": "USE_MRS",
    "milestones": "USE_MILESTONE",
    "variables": "USE_VARIABLES",
    "wiki": "USE_GITLAB_WIKI",
    "webhooks": "USE_WEBHOOKS",
    "releases": "USE_RELEASES",
    "refs": "USE_REFS",
    "time_tracking": "USE_TIME_TRACKING",
}


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("gitlab-mcp")
    except PackageNotFoundError:
        return "0.3.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_enabled(value: Any) -> bool:
    """Entity gates default to enabled; only an explicit false value disables."""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in {"false", "0", "no", "off"}


def normalize_api_url(url: Optional[str]) -> str:
    """Return the API root for a GitLab URL, always ending in ``/api/v4``."""
    if not url or not url.strip():
        return DEFAULT_API_URL

    normalized = url.strip().rstrip("/")
    if not normalized.endswith("/api/v4"):
        normalized = f"{normalized}/api/v4"
    return normalized


def parse_denied_actions(raw: Any) -> Dict[str, FrozenSet[str]]:
    """Parse ``tool:action`` entries into a lowercase tool -> actions map.

    Accepts a comma-separated string or a list of strings. Malformed entries
    are skipped with a warning.
    """
    if not raw:
        return {}

    entries = raw.split(",") if isinstance(raw, str) else list(raw)
    denied: Dict[str, set] = {}
    for entry in entries:
        entry = str(entry).strip()
        if not entry:
            continue
        tool, sep, action = entry.partition(":")
        if not sep or not tool.strip() or not action.strip():
            logger.warning("Ignoring malformed denied action entry '%s'", entry)
            continue
        denied.setdefault(tool.strip().lower(), set()).add(action.strip().lower())

    return {tool: frozenset(actions) for tool, actions in denied.items()}


def _compile_regex(pattern: Optional[str]) -> Optional[Pattern[str]]:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        logger.warning("Invalid GITLAB_DENIED_TOOLS_REGEX '%s': %s", pattern, exc)
        return None


@dataclass
class GitLabSettings:
    """Connection settings for the GitLab instance.

    Attributes:
        api_url: API root, normalized to end with ``/api/v4``
        token: Personal access token sent as a bearer token
        auth_cookie_path: Optional Netscape cookie file for cookie auth
        timeout_ms: Transport timeout in milliseconds
        tier_group: Group whose features are inspected when the license
            query does not reveal a paid tier; the first visible group is
            used when unset
    """

    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    auth_cookie_path: Optional[Path] = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    tier_group: Optional[str] = None

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def graphql_url(self) -> str:
        return self.api_url[: -len("/api/v4")] + "/api/graphql"


@dataclass
class PolicySettings:
    """Exposure policy applied by the tool registry.

    Attributes:
        read_only: Keep only read-only tools and actions
        denied_tools_regex: Tools whose name matches are removed
        denied_actions: Lowercase tool name -> denied action names
        schema_mode: ``flat``, ``discriminated`` or ``auto``
    """

    read_only: bool = False
    denied_tools_regex: Optional[Pattern[str]] = None
    denied_actions: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    schema_mode: str = "flat"

    def is_action_denied(self, tool_name: str, action: str) -> bool:
        denied = self.denied_actions.get(tool_name.lower())
        return bool(denied) and action.lower() in denied

    def effective_schema_mode(self) -> str:
        # No client detection yet; auto behaves like flat
        return "flat" if self.schema_mode == "auto" else self.schema_mode


@dataclass
class DescriptionOverrides:
    """Description overrides for tools, their action enum and parameters."""

    tools: Dict[str, str] = field(default_factory=dict)
    actions: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "DescriptionOverrides":
        """Create overrides from a ``[descriptions]`` TOML section.

        Args:
            data: Dict from TOML parsing

        Returns:
            DescriptionOverrides instance
        """
        return cls(
            tools={k.lower(): str(v) for k, v in data.get("tools", {}).items() if v},
            actions={k.lower(): str(v) for k, v in data.get("actions", {}).items() if v},
            params={k.lower(): str(v) for k, v in data.get("params", {}).items() if v},
        )


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    gitlab: GitLabSettings = field(default_factory=GitLabSettings)
    policy: PolicySettings = field(default_factory=PolicySettings)
    descriptions: DescriptionOverrides = field(default_factory=DescriptionOverrides)

    # Entity group name -> enabled
    features: Dict[str, bool] = field(
        default_factory=lambda: {name: True for name in ENTITY_FLAGS}
    )

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "gitlab-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        # Load TOML config if available
        toml_path = config_file or os.environ.get("GITLAB_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            # Try default locations
            for default_path in ["gitlab-mcp.toml", ".gitlab-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        # Override with environment variables
        config._load_env()

        return config

    def is_entity_enabled(self, name: str) -> bool:
        return self.features.get(name, True)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        if "gitlab" in data:
            gl = data["gitlab"]
            if "api_url" in gl:
                self.gitlab.api_url = normalize_api_url(gl["api_url"])
            if "token" in gl:
                self.gitlab.token = gl["token"] or None
            if "auth_cookie_path" in gl:
                self.gitlab.auth_cookie_path = Path(gl["auth_cookie_path"]).expanduser()
            if "timeout_ms" in gl:
                self.gitlab.timeout_ms = int(gl["timeout_ms"])
            if "tier_group" in gl:
                self.gitlab.tier_group = gl["tier_group"] or None

        if "policy" in data:
            pol = data["policy"]
            if "read_only" in pol:
                self.policy.read_only = _parse_bool(pol["read_only"])
            if "denied_tools_regex" in pol:
                self.policy.denied_tools_regex = _compile_regex(pol["denied_tools_regex"])
            if "denied_actions" in pol:
                self.policy.denied_actions = parse_denied_actions(pol["denied_actions"])
            if "schema_mode" in pol:
                self._set_schema_mode(pol["schema_mode"])

        if "features" in data:
            for name, enabled in data["features"].items():
                if name not in ENTITY_FLAGS:
                    logger.warning("Unknown feature group in config: %s", name)
                    continue
                self.features[name] = _parse_enabled(enabled)

        if "descriptions" in data:
            self.descriptions = DescriptionOverrides.from_toml_dict(data["descriptions"])

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = log["level"].upper()
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "server" in data and "name" in data["server"]:
            self.server_name = data["server"]["name"]

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if api_url := os.environ.get("GITLAB_API_URL"):
            self.gitlab.api_url = normalize_api_url(api_url)

        token = os.environ.get("GITLAB_TOKEN") or os.environ.get(
            "GITLAB_PERSONAL_ACCESS_TOKEN"
        )
        if token:
            self.gitlab.token = token

        if cookie_path := os.environ.get("GITLAB_AUTH_COOKIE_PATH"):
            self.gitlab.auth_cookie_path = Path(cookie_path).expanduser()

        if timeout := os.environ.get("API_TIMEOUT_MS"):
            try:
                self.gitlab.timeout_ms = int(timeout)
            except ValueError:
                logger.warning("Invalid API_TIMEOUT_MS '%s', keeping %s", timeout, self.gitlab.timeout_ms)

        if tier_group := os.environ.get("GITLAB_TIER_GROUP"):
            self.gitlab.tier_group = tier_group

        if read_only := os.environ.get("GITLAB_READ_ONLY_MODE"):
            self.policy.read_only = _parse_bool(read_only)

        if regex := os.environ.get("GITLAB_DENIED_TOOLS_REGEX"):
            self.policy.denied_tools_regex = _compile_regex(regex)

        if denied := os.environ.get("GITLAB_DENIED_ACTIONS"):
            self.policy.denied_actions = parse_denied_actions(denied)

        if mode := os.environ.get("GITLAB_SCHEMA_MODE"):
            self._set_schema_mode(mode)

        for name, env_var in ENTITY_FLAGS.items():
            if (value := os.environ.get(env_var)) is not None:
                self.features[name] = _parse_enabled(value)

        for key, value in os.environ.items():
            if not value:
                continue
            if key.startswith("GITLAB_TOOL_"):
                self.descriptions.tools[key[len("GITLAB_TOOL_"):].lower()] = value
            elif key.startswith("GITLAB_ACTION_"):
                self.descriptions.actions[key[len("GITLAB_ACTION_"):].lower()] = value

        if level := os.environ.get("GITLAB_MCP_LOG_LEVEL"):
            self.log_level = level.upper()

        if structured := os.environ.get("GITLAB_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

    def _set_schema_mode(self, value: str) -> None:
        mode = str(value).strip().lower()
        if mode not in VALID_SCHEMA_MODES:
            logger.warning(
                "Invalid schema mode '%s'. Falling back to 'flat'. Valid options: %s",
                value,
                ", ".join(sorted(VALID_SCHEMA_MODES)),
            )
            mode = "flat"
        self.policy.schema_mode = mode

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
                '"logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        # stdout carries the stdio protocol stream
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        root_logger = logging.getLogger("gitlab_mcp")
        root_logger.setLevel(level)
        if not root_logger.handlers:
            root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
