"""配置管理模块 - 处理pricetrack的配置"""

import os
import tomllib
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from pricetrack.core.exceptions import ConfigurationError
from pricetrack.core.logging import get_logger
from pricetrack.core.models.metric import BUILTIN_KINDS, MetricKind

logger = get_logger(__name__)

UNBOUNDED_WORDS = {"none", "null", "unbounded", "inf", "infinite", "forever"}
STORAGE_BACKENDS = ("memory", "duckdb", "http")


@dataclass
class StorageConfig:
    """对象存储配置"""

    backend: str = "memory"
    duckdb_path: str = str(Path.home() / ".pricetrack" / "store.duckdb")
    blob_base_url: str = "https://blob.vercel-storage.com"
    blob_token: str | None = None
    timeout: float = 10.0
    fallback_cache_size: int = 1000

    def __post_init__(self) -> None:
        self.backend = self.backend.strip().lower()
        if self.backend not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"Unsupported storage backend '{self.backend}'",
                context={"allowed": list(STORAGE_BACKENDS)},
            )
        if self.fallback_cache_size <= 0:
            raise ConfigurationError("fallback_cache_size must be positive")


@dataclass
class LoggingConfig:
    """日志配置"""

    level: str = "WARNING"
    file: str | None = None
    console: bool = True


@dataclass
class MetricKindConfig:
    """单个指标类型的保留策略配置"""

    key_prefix: str
    value_field: str = "value"
    retention_window_days: int | None = None
    recent_window_days: int = 30
    max_series_entries: int | None = 400
    max_pending_entries: int | None = 1000
    pending_retention_days: int | None = 120
    require_numeric: bool = False

    @classmethod
    def from_metric_kind(cls, kind: MetricKind) -> "MetricKindConfig":
        names = {f.name for f in fields(cls)}
        return cls(**{name: getattr(kind, name) for name in names})

    def to_metric_kind(self, name: str) -> MetricKind:
        base = BUILTIN_KINDS.get(name)
        description = base.description if base else ""
        return MetricKind(name=name, description=description, **asdict(self))


def _default_kinds() -> dict[str, MetricKindConfig]:
    return {name: MetricKindConfig.from_metric_kind(kind) for name, kind in BUILTIN_KINDS.items()}


def parse_optional_int(value: Any) -> int | None:
    """Parse a count/day option where ``none``/``unbounded`` mean no limit."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Expected a number, got {value!r}")
    if isinstance(value, str):
        text = value.strip().lower()
        if text in UNBOUNDED_WORDS or not text:
            return None
        try:
            return int(text)
        except ValueError as exc:
            raise ConfigurationError(f"Expected a number, got {value!r}") from exc
    return int(value)


_OPTIONAL_INT_OPTIONS = ("retention_window_days", "max_series_entries", "max_pending_entries", "pending_retention_days")


def _kind_config_from_dict(name: str, values: dict[str, Any]) -> MetricKindConfig:
    if name in BUILTIN_KINDS:
        merged = asdict(MetricKindConfig.from_metric_kind(BUILTIN_KINDS[name]))
    elif "key_prefix" not in values:
        raise ConfigurationError(f"Metric kind '{name}' needs a key_prefix", context={"kind": name})
    else:
        merged = {}
    known = {f.name for f in fields(MetricKindConfig)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown options for metric kind '{name}'",
            context={"kind": name, "options": sorted(unknown)},
        )
    merged.update(values)
    for option in _OPTIONAL_INT_OPTIONS:
        if option in merged:
            merged[option] = parse_optional_int(merged[option])
    return MetricKindConfig(**merged)


@dataclass
class TrackerConfig:
    """pricetrack主配置"""

    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    kinds: dict[str, MetricKindConfig] = field(default_factory=_default_kinds)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "TrackerConfig":
        """从字典创建配置"""
        try:
            storage_config = StorageConfig(**config_dict.get("storage", {}))
            logging_config = LoggingConfig(**config_dict.get("logging", {}))
        except TypeError as exc:
            raise ConfigurationError(str(exc)) from exc

        kinds = _default_kinds()
        for name, values in config_dict.get("kinds", {}).items():
            kinds[name] = _kind_config_from_dict(name, dict(values))

        return cls(storage=storage_config, logging=logging_config, kinds=kinds)

    def to_dict(self) -> dict[str, Any]:
        """转换为字典 (None 以 "unbounded" 表示, TOML 没有 null)"""
        kinds: dict[str, Any] = {}
        for name, kind in self.kinds.items():
            kinds[name] = {k: ("unbounded" if v is None else v) for k, v in asdict(kind).items()}
        storage = {k: v for k, v in asdict(self.storage).items() if v is not None}
        log = {k: v for k, v in asdict(self.logging).items() if v is not None}
        return {"storage": storage, "logging": log, "kinds": kinds}

    def metric_kinds(self) -> dict[str, MetricKind]:
        return {name: kind.to_metric_kind(name) for name, kind in self.kinds.items()}


def _deep_update(d: dict[str, Any], u: dict[str, Any]) -> dict[str, Any]:
    """深度更新字典"""
    for k, v in u.items():
        if isinstance(v, dict):
            d[k] = _deep_update(dict(d.get(k, {})), v)
        else:
            d[k] = v
    return d


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_path: Path | None = None, *, use_env: bool = True):
        """初始化配置管理器

        Args:
            config_path: 配置文件路径，如果为None则使用默认路径
            use_env: 是否叠加环境变量中的配置
        """
        self.config_path = config_path or Path.home() / ".pricetrack" / "config.toml"
        self.use_env = use_env
        self.config = self._load_config()

    def _load_config(self) -> TrackerConfig:
        """加载配置"""
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                logger.warning("Failed to load config, using defaults", path=str(self.config_path), error=str(e))
                config_dict = {}

        try:
            if self.use_env:
                config_dict = _deep_update(config_dict, load_config_from_env())
            return TrackerConfig.from_dict(config_dict)
        except ConfigurationError as e:
            logger.warning("Invalid config, using defaults", path=str(self.config_path), error=e.message)
            return TrackerConfig()

    def get_config(self) -> TrackerConfig:
        """获取当前配置"""
        return self.config

    def update_config(self, **updates: Any) -> None:
        """更新配置"""
        config_dict = _deep_update(self.config.to_dict(), updates)
        self.config = TrackerConfig.from_dict(config_dict)

    def save_config(self) -> None:
        """保存配置到文件"""
        import tomli_w

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "wb") as f:
            tomli_w.dump(self.config.to_dict(), f)


def get_default_config() -> TrackerConfig:
    """获取默认配置"""
    return TrackerConfig()


def _env_int(env: Any, name: str) -> int:
    try:
        return int(env[name])
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer", context={"value": env[name]}) from exc


def load_config_from_env(environ: dict[str, str] | None = None) -> dict[str, Any]:
    """从环境变量加载配置"""
    env = os.environ if environ is None else environ
    config: dict[str, Any] = {}

    # 存储配置
    storage_config: dict[str, Any] = {}
    if env.get("PRICETRACK_STORAGE_BACKEND"):
        storage_config["backend"] = env["PRICETRACK_STORAGE_BACKEND"]
    if env.get("PRICETRACK_DUCKDB_PATH"):
        storage_config["duckdb_path"] = env["PRICETRACK_DUCKDB_PATH"]
    if env.get("PRICETRACK_BLOB_URL"):
        storage_config["blob_base_url"] = env["PRICETRACK_BLOB_URL"]
    if env.get("BLOB_READ_WRITE_TOKEN"):
        storage_config["blob_token"] = env["BLOB_READ_WRITE_TOKEN"]
    if env.get("PRICETRACK_FALLBACK_CACHE_SIZE"):
        storage_config["fallback_cache_size"] = _env_int(env, "PRICETRACK_FALLBACK_CACHE_SIZE")
    if storage_config:
        config["storage"] = storage_config

    # 日志配置
    logging_config: dict[str, Any] = {}
    if env.get("PRICETRACK_LOGGING_LEVEL"):
        logging_config["level"] = env["PRICETRACK_LOGGING_LEVEL"]
    if env.get("PRICETRACK_LOGGING_FILE"):
        logging_config["file"] = env["PRICETRACK_LOGGING_FILE"]
    if logging_config:
        config["logging"] = logging_config

    # 指标类型配置: PRICETRACK_<KIND>_<OPTION>
    kinds_config: dict[str, dict[str, Any]] = {}
    options = ("recent_window_days", *_OPTIONAL_INT_OPTIONS)
    for kind_name in BUILTIN_KINDS:
        for option in options:
            value = env.get(f"PRICETRACK_{kind_name.upper()}_{option.upper()}")
            if value is not None:
                kinds_config.setdefault(kind_name, {})[option] = value
    for kind_name, values in kinds_config.items():
        if "recent_window_days" in values:
            values["recent_window_days"] = _env_int(values, "recent_window_days")
    if kinds_config:
        config["kinds"] = kinds_config

    return config
