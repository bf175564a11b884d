"""Application configuration module for the locale synchronisation service."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Any

import yaml
from dotenv import load_dotenv
from openai import AsyncOpenAI

from locale_sync.logging_config import setup_logger
from locale_sync.models import (
    DEFAULT_API_BASE_URL,
    ApiConfig,
    CacheOptions,
    ValidationRules,
    as_string_list
)


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    # Core paths
    project_root: str
    locales_dir: str

    # Locales
    base_locale: str
    target_locales: List[str]
    language_codes: Dict[str, str]

    # Model configuration
    model_name: str
    max_context_tokens: int

    # Processing settings
    dry_run: bool
    validation_rules: ValidationRules
    cache_options: CacheOptions
    api_config: ApiConfig

    # OpenAI-compatible client
    openai_client: Optional[AsyncOpenAI]


def _compute_project_root() -> str:
    """Compute the project root directory."""
    script_real_path = os.path.realpath(__file__)
    script_dir = os.path.dirname(script_real_path)
    return os.path.abspath(os.path.join(script_dir, os.pardir))


def _load_dotenv_files(project_root: str) -> None:
    """Load .env files from project root or docker directory."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        load_dotenv(dotenv_path_project_root)
    elif os.path.exists(dotenv_path_docker_dir):
        load_dotenv(dotenv_path_docker_dir)


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to an empty config on any problem."""
    default_config_path = os.path.join(project_root, 'config.yaml')
    config_file = os.environ.get('LOCALE_SYNC_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            print(f"Tip: Create a config.yaml file in '{project_root}' or set LOCALE_SYNC_CONFIG_FILE environment variable.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging', {})
    log_level_str = log_config.get('log_level', 'INFO').upper()
    log_file_path = log_config.get('log_file_path', 'logs/locale_sync.log')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _log_dotenv_status(logger: logging.Logger, project_root: str) -> None:
    """Log the status of .env file loading."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        logger.info("Loaded environment variables from: %s", dotenv_path_project_root)
    elif os.path.exists(dotenv_path_docker_dir):
        logger.info("Loaded environment variables from: %s", dotenv_path_docker_dir)
    else:
        logger.info(
            "No .env file found in project root ('%s') or in docker/ ('%s'). Relying on system environment variables if any.",
            dotenv_path_project_root,
            dotenv_path_docker_dir
        )


def _build_language_codes(locales_list: List[Dict[str, str]]) -> Dict[str, str]:
    """Build the locale code -> language name mapping from supported locales."""
    language_codes: Dict[str, str] = {}
    for locale in locales_list:
        code = locale.get('code')
        name = locale.get('name')
        if code and name:
            language_codes[code] = name
    return language_codes


def _build_cache_options(overrides: Dict[str, Any]) -> CacheOptions:
    defaults = CacheOptions()
    return CacheOptions(
        max_size=int(overrides.get('max_size', defaults.max_size)),
        ttl_ms=int(overrides.get('ttl_ms', defaults.ttl_ms)),
    )


def _build_api_config(overrides: Dict[str, Any]) -> ApiConfig:
    defaults = ApiConfig()
    return ApiConfig(
        base_url=overrides.get('base_url') or os.environ.get('DEEPSEEK_API_URL', DEFAULT_API_BASE_URL),
        retry_attempts=int(overrides.get('retry_attempts', defaults.retry_attempts)),
        rate_limit=float(overrides.get('rate_limit', defaults.rate_limit)),
        timeout_ms=int(overrides.get('timeout_ms', defaults.timeout_ms)),
    )


def _create_openai_client(dry_run: bool, api_config: ApiConfig, logger: logging.Logger) -> Optional[AsyncOpenAI]:
    """Create the OpenAI-compatible client unless running in dry-run mode."""
    if dry_run:
        logger.info("Running in dry-run mode, the translation client will not be initialized")
        return None

    api_key_from_env = os.environ.get('DEEPSEEK_API_KEY')
    if not api_key_from_env:
        logger.critical("CRITICAL: DEEPSEEK_API_KEY environment variable not found.")
        logger.critical("Please set DEEPSEEK_API_KEY or enable dry_run mode in configuration.")
        sys.exit(1)

    try:
        # Retries are handled by the translation manager, not by the client.
        client = AsyncOpenAI(
            api_key=api_key_from_env,
            base_url=api_config.base_url,
            timeout=api_config.timeout_seconds,
            max_retries=0,
        )
        logger.info("Translation client initialized for %s", api_config.base_url)
        return client
    except Exception as e:
        logger.critical("Failed to initialize the translation client: %s", str(e))
        sys.exit(1)


def load_app_config(dry_run: Optional[bool] = None, create_client: bool = True) -> AppConfig:
    """
    Load application configuration from YAML file and environment variables.

    Args:
        dry_run: Overrides the ``dry_run`` setting of the config file when not None.
        create_client: Set to False for commands that never call the translation API.

    Returns:
        AppConfig: The loaded application configuration.
    """
    project_root = _compute_project_root()

    _load_dotenv_files(project_root)

    config = _load_yaml_config(project_root)

    logger = _setup_logger_from_config(config)

    _log_dotenv_status(logger, project_root)

    language_codes = _build_language_codes(config.get('supported_locales', []))

    if dry_run is None:
        dry_run = config.get('dry_run', False)
    model_name = os.environ.get('TRANSLATION_MODEL_NAME', config.get('model_name', 'deepseek-chat'))

    try:
        target_locales = as_string_list(config.get('target_locales', ['ru']), 'target_locales')
        validation_rules = ValidationRules.from_overrides(config.get('validation_rules', {}))
        cache_options = _build_cache_options(config.get('cache_options', {}))
        api_config = _build_api_config(config.get('api_config', {}))
    except ValueError as e:
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    openai_client = _create_openai_client(dry_run, api_config, logger) if create_client else None

    return AppConfig(
        project_root=project_root,
        locales_dir=config.get('locales_dir', 'src/locales'),
        base_locale=config.get('base_locale', 'en'),
        target_locales=target_locales,
        language_codes=language_codes,
        model_name=model_name,
        max_context_tokens=int(config.get('max_context_tokens', 1000)),
        dry_run=dry_run,
        validation_rules=validation_rules,
        cache_options=cache_options,
        api_config=api_config,
        openai_client=openai_client
    )
