"""Configuration management for the Clickbait Resolver."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv


DISPLAY_STYLES = ("inline", "below", "tooltip")
PROVIDER_TYPES = ("openai", "anthropic")

DEFAULT_CONFIG_PATH = "config/config.yaml"
DEFAULT_AI_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_SELECTORS = ["h3", "h4", ".ipQwMb"]


@dataclass
class ProviderConfig:
    """Configuration for the external classification service."""
    provider_type: str = "openai"  # "openai" or "anthropic"
    endpoint: str = DEFAULT_AI_ENDPOINT
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout: int = 30
    max_tokens: int = 1500
    temperature: float = 0.2

    @property
    def has_credential(self) -> bool:
        """True when a non-blank API key is configured."""
        return bool(self.api_key and self.api_key.strip())


@dataclass
class SummarizerConfig:
    """Configuration for article fetching and summarization."""
    timeout: float = 10.0
    user_agent: str = "Mozilla/5.0 (compatible; ClickbaitResolver/0.1)"
    max_sentences: int = 2
    min_sentence_words: int = 5


@dataclass
class ResolverConfig:
    """Main application configuration."""
    active: bool = True
    display_style: str = "inline"  # "inline", "below" or "tooltip"
    debug_mode: bool = True
    use_ai: bool = True
    batch_size: int = 10
    max_headlines: int = 20  # 0 = unlimited
    min_headline_length: int = 15
    max_headline_length: int = 500
    headline_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_SELECTORS))
    reprocess_debounce_seconds: float = 0.25

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    summarizer: SummarizerConfig = field(default_factory=SummarizerConfig)

    cache_file: Path = field(default_factory=lambda: Path("data/summary_cache.json"))
    log_file: Path = field(default_factory=lambda: Path("logs/clickbait_resolver.log"))
    issue_report_file: Path = field(default_factory=lambda: Path("data/issue_reports.jsonl"))


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


def parse_bool(value: Any) -> Optional[bool]:
    """
    Interpret a boolean setting given as bool, int or string.

    Args:
        value: Raw value from YAML or a command

    Returns:
        The boolean, or None if the value is not recognisably boolean
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    return None


def _setting_bool(section: dict, key: str, default: bool) -> bool:
    value = parse_bool(section.get(key, default))
    if value is None:
        raise ConfigError(f"Invalid boolean for '{key}': {section.get(key)!r}")
    return value


def _resolve_api_key(provider_type: str, configured: Optional[str]) -> Optional[str]:
    """Pick the credential from the environment first, then the config file."""
    api_key = os.getenv('CLICKBAIT_AI_API_KEY')
    if not api_key:
        env_var = 'ANTHROPIC_API_KEY' if provider_type == 'anthropic' else 'OPENAI_API_KEY'
        api_key = os.getenv(env_var)
    if not api_key:
        api_key = configured
    return api_key or None


def load_config(config_path: Optional[str] = None) -> ResolverConfig:
    """
    Load configuration from YAML file and environment variables.

    When no path is given the default location is tried and silently skipped
    if absent, so the resolver can run on built-in defaults.

    Args:
        config_path: Path to the configuration YAML file

    Returns:
        ResolverConfig object with all settings

    Raises:
        ConfigError: If configuration is invalid or an explicit path is missing
    """
    # Load environment variables
    load_dotenv("config/.env")
    load_dotenv()  # Also load from project root .env if exists

    path = config_path or DEFAULT_CONFIG_PATH
    yaml_config = {}

    if os.path.exists(path):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f) or {}
        except Exception as e:
            raise ConfigError(f"Failed to parse YAML configuration: {e}")
    elif config_path is not None:
        raise ConfigError(f"Configuration file not found: {config_path}")

    if not isinstance(yaml_config, dict):
        raise ConfigError("Configuration file must contain a mapping at the top level")

    resolver_data = yaml_config.get('resolver', {}) or {}
    ai_data = yaml_config.get('ai', {}) or {}
    summarizer_data = yaml_config.get('summarizer', {}) or {}
    cache_data = yaml_config.get('cache', {}) or {}
    paths_data = yaml_config.get('paths', {}) or {}

    provider_type = ai_data.get('provider_type', 'openai')
    endpoint = os.getenv('CLICKBAIT_AI_ENDPOINT') or ai_data.get('endpoint', DEFAULT_AI_ENDPOINT)

    try:
        provider = ProviderConfig(
            provider_type=provider_type,
            endpoint=endpoint,
            api_key=_resolve_api_key(provider_type, ai_data.get('api_key')),
            model=ai_data.get('model', 'gpt-4o-mini'),
            timeout=int(ai_data.get('timeout', 30)),
            max_tokens=int(ai_data.get('max_tokens', 1500)),
            temperature=float(ai_data.get('temperature', 0.2))
        )

        summarizer = SummarizerConfig(
            timeout=float(summarizer_data.get('timeout', 10.0)),
            user_agent=summarizer_data.get('user_agent', SummarizerConfig.user_agent),
            max_sentences=int(summarizer_data.get('max_sentences', 2)),
            min_sentence_words=int(summarizer_data.get('min_sentence_words', 5))
        )

        config = ResolverConfig(
            active=_setting_bool(resolver_data, 'active', True),
            display_style=resolver_data.get('display_style', 'inline'),
            debug_mode=_setting_bool(resolver_data, 'debug_mode', True),
            use_ai=_setting_bool(ai_data, 'enabled', True),
            batch_size=int(ai_data.get('batch_size', 10)),
            max_headlines=int(resolver_data.get('max_headlines', 20)),
            min_headline_length=int(resolver_data.get('min_headline_length', 15)),
            max_headline_length=int(resolver_data.get('max_headline_length', 500)),
            headline_selectors=list(resolver_data.get('headline_selectors', DEFAULT_SELECTORS)),
            reprocess_debounce_seconds=float(resolver_data.get('reprocess_debounce_seconds', 0.25)),
            provider=provider,
            summarizer=summarizer,
            cache_file=Path(cache_data.get('file', 'data/summary_cache.json')),
            log_file=Path(paths_data.get('log_file', 'logs/clickbait_resolver.log')),
            issue_report_file=Path(paths_data.get('issue_report_file', 'data/issue_reports.jsonl'))
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}")

    validate_config(config)
    return config


def validate_config(config: ResolverConfig) -> None:
    """
    Validate configuration object.

    Args:
        config: Configuration object to validate

    Raises:
        ConfigError: If configuration is invalid
    """
    if config.display_style not in DISPLAY_STYLES:
        raise ConfigError(
            f"Invalid display_style '{config.display_style}'. "
            f"Must be one of: {', '.join(DISPLAY_STYLES)}"
        )

    if config.provider.provider_type not in PROVIDER_TYPES:
        raise ConfigError(
            f"Invalid provider_type '{config.provider.provider_type}'. "
            f"Must be one of: {', '.join(PROVIDER_TYPES)}"
        )

    if config.batch_size <= 0:
        raise ConfigError(f"batch_size must be greater than 0, got {config.batch_size}")

    if config.max_headlines < 0:
        raise ConfigError(f"max_headlines must be 0 (unlimited) or positive, got {config.max_headlines}")

    if not (0 < config.min_headline_length < config.max_headline_length):
        raise ConfigError(
            f"Invalid headline length bounds: [{config.min_headline_length}, "
            f"{config.max_headline_length})"
        )

    if not config.headline_selectors:
        raise ConfigError("headline_selectors must contain at least one selector")

    if config.reprocess_debounce_seconds < 0:
        raise ConfigError("reprocess_debounce_seconds cannot be negative")
